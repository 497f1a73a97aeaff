"""Parse ${...} expressions: variable/count/each substitution and resource references."""

import re
from typing import Any, Dict, Iterator, Iterable, List, Optional, Tuple, Union
from pydantic import BaseModel, Field
from ..utils.errors import DeclarationError

CONTEXT_ROOTS = ("var", "count", "each")

_EXPR_BODY = r"((?:[^{}]|\$\{[^{}]*\})*)"
_INTERPOLATION = re.compile(r"\$\{" + _EXPR_BODY + r"\}")
_WHOLE = re.compile(r"^\$\{" + _EXPR_BODY + r"\}$")
_PATH_TOKEN = re.compile(r'\.?([A-Za-z_][\w-]*)|\[(\d+)\]|\["([^"\]]*)"\]')
_ADDRESS = re.compile(
    r'^(?P<type>[A-Za-z][\w-]*)\.(?P<name>[A-Za-z_][\w-]*)'
    r'(?:\[(?P<index>\d+|"[^"\]]*")\])?$'
)
_REFERENCE = re.compile(
    r'^(?P<target>[A-Za-z][\w-]*\.[A-Za-z_][\w-]*(?:\[(?:\d+|"[^"\]]*")\])?)'
    r'(?:\.(?P<attribute>[A-Za-z_][\w-]*(?:\.[A-Za-z_][\w-]*)*))?$'
)

Index = Optional[Union[int, str]]


class Reference(BaseModel):
    """Typed edge from an attribute to another resource instance's attribute."""
    target: str = Field(..., description="Address of the referenced instance or declaration")
    attribute: str = Field("id", description="Attribute (dotted path) read from the target")

    class Config:
        frozen = True

    def __str__(self) -> str:
        return f"${{{self.target}.{self.attribute}}}"


def format_address(resource_type: str, name: str, index: Index = None) -> str:
    """Build an instance address: type.name, type.name[0] or type.name["key"]."""
    if index is None:
        return f"{resource_type}.{name}"
    if isinstance(index, int):
        return f"{resource_type}.{name}[{index}]"
    return f'{resource_type}.{name}["{index}"]'


def parse_address(address: str) -> Tuple[str, str, Index]:
    """Split an address into (type, name, index). Raises DeclarationError if malformed."""
    match = _ADDRESS.match(address.strip())
    if not match:
        raise DeclarationError(f"Invalid resource address: '{address}'")
    raw_index = match.group("index")
    index: Index = None
    if raw_index is not None:
        index = raw_index.strip('"') if raw_index.startswith('"') else int(raw_index)
    return match.group("type"), match.group("name"), index


def base_address(address: str) -> str:
    """Strip the index from an address (aws_subnet.public[0] -> aws_subnet.public)."""
    resource_type, name, _ = parse_address(address)
    return format_address(resource_type, name)


def _split_path(expr: str, where: str) -> List[Union[str, int]]:
    segments: List[Union[str, int]] = []
    pos = 0
    while pos < len(expr):
        match = _PATH_TOKEN.match(expr, pos)
        if not match or match.end() == pos:
            raise DeclarationError(f"{where}: invalid expression '${{{expr}}}'")
        name, number, key = match.groups()
        if name is not None:
            segments.append(name)
        elif number is not None:
            segments.append(int(number))
        else:
            segments.append(key)
        pos = match.end()
    if not segments:
        raise DeclarationError(f"{where}: empty expression '${{}}'")
    return segments


def walk_path(value: Any, segments: Iterable[Union[str, int]]) -> Any:
    """Follow mapping keys / list indices. Raises KeyError when a segment is missing."""
    current = value
    for segment in segments:
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and isinstance(segment, int) and 0 <= segment < len(current):
            current = current[segment]
        else:
            raise KeyError(segment)
    return current


def _lookup(expr: str, context: Dict[str, Any], where: str) -> Any:
    segments = _split_path(expr, where)
    try:
        return walk_path(context[segments[0]], segments[1:])
    except KeyError:
        if segments[0] == "var":
            raise DeclarationError(f"{where}: undefined variable '${{{expr}}}'")
        raise DeclarationError(f"{where}: '${{{expr}}}' has no value")


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _root_of(expr: str, where: str) -> str:
    return str(_split_path(expr, where)[0])


def substitute(
    value: Any,
    context: Dict[str, Any],
    where: str,
    deferred: Tuple[str, ...] = (),
) -> Any:
    """
    Replace var/count/each expressions in a (nested) value.

    A string that is exactly one expression takes the looked-up value with its
    type; expressions embedded in longer strings are rendered as text.
    Resource references are left untouched for parse_references.

    Args:
        value: Attribute value (str, list, dict or scalar)
        context: Available roots, e.g. {"var": {...}, "count": {"index": 0}}
        where: Location used in error messages
        deferred: Context roots to leave untouched (resolved in a later pass)

    Raises:
        DeclarationError: Undefined variable or root not available here
    """
    if isinstance(value, str):
        return _substitute_string(value, context, where, deferred)
    if isinstance(value, list):
        return [substitute(item, context, where, deferred) for item in value]
    if isinstance(value, dict):
        return {key: substitute(item, context, where, deferred) for key, item in value.items()}
    return value


def _resolve_nested(expr: str, context: Dict[str, Any], where: str, deferred: Tuple[str, ...]) -> Optional[str]:
    """Substitute expressions nested in an index, e.g. aws_eip.nat["${each.key}"]. None while deferred."""
    if "${" not in expr:
        return expr
    resolved = _substitute_string(expr, context, where, deferred)
    if not isinstance(resolved, str) or "${" in resolved:
        return None
    return resolved


def _substitute_string(text: str, context: Dict[str, Any], where: str, deferred: Tuple[str, ...]) -> Any:
    whole = _WHOLE.match(text)
    if whole:
        expr = _resolve_nested(whole.group(1).strip(), context, where, deferred)
        if expr is None:
            return text
        root = _root_of(expr, where)
        if root in context:
            return _lookup(expr, context, where)
        if root in CONTEXT_ROOTS and root not in deferred:
            raise DeclarationError(f"{where}: '${{{expr}}}' is not available here")
        return f"${{{expr}}}"

    def replace(match: "re.Match") -> str:
        expr = _resolve_nested(match.group(1).strip(), context, where, deferred)
        if expr is None:
            return match.group(0)
        root = _root_of(expr, where)
        if root in context:
            resolved = _lookup(expr, context, where)
            if isinstance(resolved, (dict, list)):
                raise DeclarationError(f"{where}: cannot interpolate a collection into a string ('${{{expr}}}')")
            return _to_text(resolved)
        if root in CONTEXT_ROOTS and root not in deferred:
            raise DeclarationError(f"{where}: '${{{expr}}}' is not available here")
        return f"${{{expr}}}"

    return _INTERPOLATION.sub(replace, text)


def parse_reference(expr: str, where: str) -> Reference:
    """Parse 'type.name[idx].attr' into a Reference."""
    expr = expr.strip()
    if _root_of(expr, where) in CONTEXT_ROOTS:
        raise DeclarationError(f"{where}: unresolved expression '${{{expr}}}'")
    match = _REFERENCE.match(expr)
    if not match:
        raise DeclarationError(f"{where}: invalid reference '${{{expr}}}'")
    return Reference(target=match.group("target"), attribute=match.group("attribute") or "id")


def parse_references(value: Any, where: str) -> Any:
    """Turn whole-value ${type.name.attr} strings into Reference objects (recursively)."""
    if isinstance(value, str):
        whole = _WHOLE.match(value)
        if whole:
            return parse_reference(whole.group(1), where)
        if _INTERPOLATION.search(value):
            raise DeclarationError(
                f"{where}: references must be the whole attribute value, got '{value}'"
            )
        return value
    if isinstance(value, list):
        return [parse_references(item, where) for item in value]
    if isinstance(value, dict):
        return {key: parse_references(item, where) for key, item in value.items()}
    return value


def iter_references(value: Any) -> Iterator[Reference]:
    """Yield every Reference inside a (nested) value."""
    if isinstance(value, Reference):
        yield value
    elif isinstance(value, list):
        for item in value:
            yield from iter_references(item)
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_references(item)
