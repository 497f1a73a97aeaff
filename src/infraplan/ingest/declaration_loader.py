"""Load resource declarations from YAML and bind variables."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml
from pydantic import ValidationError
from ..utils.errors import DeclarationError
from ..utils.logging import get_logger
from .expressions import substitute
from .models import DeclarationSet, ResourceDeclaration, ResourceTypeSchema

logger = get_logger("ingest.declaration_loader")

KNOWN_SECTIONS = ("variables", "resource_types", "resources")
DECLARATION_FIELDS = ("type", "name", "attributes", "count", "for_each", "depends_on")


def load_declarations(declaration_path: str, variables: Optional[Dict[str, Any]] = None) -> DeclarationSet:
    """
    Load and validate a YAML declaration file.

    Args:
        declaration_path: Path to the declaration YAML file
        variables: Variable values overriding the file's defaults

    Returns:
        DeclarationSet with variables bound

    Raises:
        DeclarationError: If the file cannot be read or is invalid
    """
    path = Path(declaration_path)

    if not path.exists():
        raise DeclarationError(
            f"Declaration file not found: {declaration_path}. "
            "Please check the file path and ensure the file exists."
        )

    if not path.is_file():
        raise DeclarationError(f"Path is not a file: {declaration_path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DeclarationError(f"Invalid YAML in declaration file: {e}")
    except OSError as e:
        raise DeclarationError(f"Error reading declaration file: {e}")

    declaration_set = parse_declarations(data, variables=variables, source=str(path))
    logger.info(
        f"Loaded {len(declaration_set.declarations)} declarations from {declaration_path} "
        f"({len(declaration_set.variables)} variables)"
    )
    return declaration_set


def parse_declarations(
    data: Any,
    variables: Optional[Dict[str, Any]] = None,
    source: Optional[str] = None
) -> DeclarationSet:
    """Validate a parsed declaration document and bind its variables."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DeclarationError("Declaration file must contain a mapping")

    data = _json_form(data, "declaration document")
    unknown = [key for key in data if key not in KNOWN_SECTIONS]
    if unknown:
        logger.warning(f"Ignoring unknown top-level sections: {', '.join(unknown)}")

    bound = _bind_variables(data.get("variables") or {}, _json_form(variables or {}, "variables"))
    resource_types = _parse_resource_types(data.get("resource_types") or {})

    resources = data.get("resources") or []
    if not isinstance(resources, list):
        raise DeclarationError("'resources' must be a list")

    declarations: List[ResourceDeclaration] = []
    for idx, item in enumerate(resources):
        declarations.append(_parse_declaration(item, idx, bound))

    return DeclarationSet(
        declarations=declarations,
        variables=bound,
        resource_types=resource_types,
        source=source
    )


def _json_form(value: Any, what: str) -> Any:
    """
    Rewrite a YAML value the way the state file will store it.

    Non-string mapping keys become strings and dates become ISO text, so a
    value read back from state compares equal to its declaration.
    """
    try:
        return json.loads(json.dumps(value, default=str))
    except (TypeError, ValueError) as e:
        raise DeclarationError(f"The {what} cannot be stored as JSON: {e}")


def _bind_variables(defaults: Any, overrides: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(defaults, dict):
        raise DeclarationError("'variables' must be a mapping of name to default value")

    bound = dict(defaults)
    for name, value in overrides.items():
        if name not in defaults:
            logger.warning(f"Variable '{name}' is not declared in the file")
        bound[name] = value

    missing = [name for name, value in bound.items() if value is None]
    if missing:
        raise DeclarationError(
            f"Variables without a value: {', '.join(missing)}. "
            "Provide them with --var name=value"
        )
    return bound


def _parse_resource_types(data: Any) -> Dict[str, ResourceTypeSchema]:
    if not isinstance(data, dict):
        raise DeclarationError("'resource_types' must be a mapping")
    schemas = {}
    for resource_type, schema in data.items():
        try:
            schemas[resource_type] = ResourceTypeSchema(**(schema or {}))
        except (ValidationError, TypeError) as e:
            raise DeclarationError(f"Invalid resource_types entry '{resource_type}': {e}")
    return schemas


def _parse_declaration(item: Any, idx: int, variables: Dict[str, Any]) -> ResourceDeclaration:
    if not isinstance(item, dict):
        raise DeclarationError(f"Resource at index {idx} must be a mapping")

    where = f"resources[{idx}]"
    if "type" in item and "name" in item:
        where = f"{item['type']}.{item['name']}"

    unknown = [key for key in item if key not in DECLARATION_FIELDS]
    if unknown:
        raise DeclarationError(f"{where}: unknown fields {', '.join(unknown)}")

    context = {"var": variables}
    resolved = substitute(dict(item), context, where, deferred=("count", "each"))

    count = resolved.get("count")
    if isinstance(count, str) and count.strip().isdigit():
        resolved["count"] = int(count)

    try:
        return ResourceDeclaration(**resolved)
    except ValidationError as e:
        raise DeclarationError(f"Invalid resource at index {idx} ({where}): {e}")


def parse_var_assignments(assignments: List[str]) -> Dict[str, Any]:
    """
    Parse CLI --var name=value pairs. Values are read as YAML scalars,
    so 'count=3' binds an int and 'azs=[a, b]' a list.
    """
    variables: Dict[str, Any] = {}
    for assignment in assignments:
        if "=" not in assignment:
            raise DeclarationError(f"Invalid variable assignment '{assignment}', expected name=value")
        name, raw = assignment.split("=", 1)
        name = name.strip()
        if not name:
            raise DeclarationError(f"Invalid variable assignment '{assignment}', name is empty")
        try:
            variables[name] = yaml.safe_load(raw) if raw.strip() else ""
        except yaml.YAMLError:
            variables[name] = raw
    return variables
