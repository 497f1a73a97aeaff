"""Declaration path resolution for the CLI."""

from pathlib import Path

# Looked up, in order, when DECLARATIONS names a directory
DEFAULT_DECLARATION_FILES = ("main.yaml", "main.yml", "infraplan.yaml")


def resolve_declaration_path(declarations: str) -> Path:
    """
    Resolve the DECLARATIONS argument to a YAML file.

    A directory resolves to the first of DEFAULT_DECLARATION_FILES inside it.

    Raises:
        FileNotFoundError: If nothing usable exists at the path
    """
    path = Path(declarations).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    path = path.resolve()

    if path.is_dir():
        for name in DEFAULT_DECLARATION_FILES:
            candidate = path / name
            if candidate.is_file():
                return candidate
        raise FileNotFoundError(
            f"File not found: no {' or '.join(DEFAULT_DECLARATION_FILES)} in {declarations}"
        )

    if not path.exists():
        raise FileNotFoundError(
            f"File not found: {declarations}. Please check the file path and try again."
        )
    return path
