"""Simulated providers: in-memory and file-backed."""

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict
from ..utils.errors import ProviderError
from ..utils.logging import get_logger
from .base import Provider, ProviderResult

logger = get_logger("providers.memory")


def id_prefix(resource_type: str) -> str:
    """aws_nat_gateway -> nat-gateway; types without a vendor prefix are used as-is."""
    _, _, rest = resource_type.partition("_")
    return (rest or resource_type).replace("_", "-")


class InMemoryProvider(Provider):
    """
    Simulated cloud. Allocates deterministic ids (vpc-000000000001, ...)
    and keeps resources in a dict. Useful for tests and for exercising a
    declaration set end to end without credentials.
    """

    name = "memory"

    def __init__(self, account: str = "000000000000", region: str = "local"):
        self.account = account
        self.region = region
        self.resources: Dict[str, Dict[str, Any]] = {}
        self._counter = 0
        self._lock = threading.RLock()

    def _outputs(self, resource_type: str, provider_id: str) -> Dict[str, Any]:
        return {
            "id": provider_id,
            "arn": f"arn:infraplan:{self.region}:{self.account}:{id_prefix(resource_type)}/{provider_id}",
        }

    def create(self, resource_type: str, attributes: Dict[str, Any]) -> ProviderResult:
        with self._lock:
            self._counter += 1
            provider_id = f"{id_prefix(resource_type)}-{self._counter:012x}"
            outputs = self._outputs(resource_type, provider_id)
            self.resources[provider_id] = {
                "type": resource_type,
                "attributes": dict(attributes),
                "outputs": outputs,
            }
            self._persist()
        logger.debug(f"Created {resource_type} {provider_id}")
        return ProviderResult(provider_id=provider_id, outputs=outputs)

    def update(self, provider_id: str, changed_attributes: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            resource = self.resources.get(provider_id)
            if resource is None:
                raise ProviderError(f"Resource {provider_id} not found")
            for key, value in changed_attributes.items():
                if value is None:
                    resource["attributes"].pop(key, None)
                else:
                    resource["attributes"][key] = value
            self._persist()
        logger.debug(f"Updated {provider_id}: {', '.join(changed_attributes)}")
        return dict(resource["outputs"])

    def destroy(self, provider_id: str) -> None:
        with self._lock:
            if self.resources.pop(provider_id, None) is None:
                raise ProviderError(f"Resource {provider_id} not found")
            self._persist()
        logger.debug(f"Destroyed {provider_id}")

    def _persist(self) -> None:
        """Hook for subclasses that keep resources outside the process."""
        pass


class LocalFileProvider(InMemoryProvider):
    """InMemoryProvider whose resources survive between runs in a JSON file."""

    name = "local"

    def __init__(self, path: str, account: str = "000000000000", region: str = "local"):
        super().__init__(account=account, region=region)
        self.path = Path(path)
        if self.path.exists():
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ProviderError(f"Cannot read local provider file {self.path}: {e}")
            self.resources = data.get("resources", {})
            self._counter = data.get("counter", 0)
            logger.debug(f"Loaded {len(self.resources)} simulated resources from {self.path}")

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump({"counter": self._counter, "resources": self.resources}, f, indent=2, default=str)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise ProviderError(f"Cannot write local provider file {self.path}: {e}")
