"""Custom exception classes for infraplan."""

from typing import List, Optional


class InfraPlanError(Exception):
    """Base exception for all infraplan errors."""
    pass


class DeclarationError(InfraPlanError):
    """Raised when a declaration file or expression is malformed."""
    pass


class DuplicateIdentity(InfraPlanError):
    """Raised when two expanded instances share type, name and index."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Duplicate resource identity: {address}")


class UnresolvedReference(InfraPlanError):
    """Raised when a reference points at an address that does not exist."""

    def __init__(self, source: str, target: str, detail: Optional[str] = None):
        self.source = source
        self.target = target
        message = f"{source} references unknown resource {target}"
        if detail:
            message = f"{source} references {target}: {detail}"
        super().__init__(message)


class CyclicDependency(InfraPlanError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"Cyclic dependency: {' -> '.join(cycle)}")


class StateCorruption(InfraPlanError):
    """Raised when stored state cannot be interpreted. Requires operator intervention."""
    pass


class ProviderError(InfraPlanError):
    """Raised by providers when a create, update or destroy call fails."""

    def __init__(self, message: str, retryable: bool = False):
        self.retryable = retryable
        super().__init__(message)


class ApplyError(InfraPlanError):
    """Raised when an action cannot be executed (e.g. a reference has no value yet)."""
    pass


class ConfigError(InfraPlanError):
    """Raised when configuration is invalid or missing."""
    pass
