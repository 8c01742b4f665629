"""Declarative parameter schemas for tool handlers.

Each capability declares a schema dict mapping field names to type
descriptors. The same declaration produces the JSON Schema advertised in the
tool catalog (:func:`to_json_schema`) and the checks run before the handler
touches the network (:func:`validate_arguments`).

Example::

    _SCHEMA = {
        "dashboard_id": Num(required=True, integer_only=True, description="ID of the dashboard"),
        "name": Str(description="New name"),
        "archived": Bool(default=False),
    }

    validate_arguments(args, _SCHEMA, tool_name="update_dashboard")
    # args values are now validated and normalised in-place
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple, Union

from metabase_mcp.core.errors import InvalidArgumentsError

# ---------------------------------------------------------------------------
# Schema types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Str:
    """String parameter."""

    required: bool = False
    description: Optional[str] = None
    strip: bool = True
    allow_empty: bool = False
    choices: Optional[FrozenSet[str]] = None
    default: Optional[str] = None


@dataclass(frozen=True)
class Num:
    """Numeric parameter (int or float)."""

    required: bool = False
    description: Optional[str] = None
    integer_only: bool = False
    min_val: Optional[Union[int, float]] = None
    max_val: Optional[Union[int, float]] = None
    nullable: bool = False
    default: Optional[Union[int, float]] = None


@dataclass(frozen=True)
class Id:
    """Entity identifier: an integer, or a string key such as ``"root"``."""

    required: bool = False
    description: Optional[str] = None
    nullable: bool = False


@dataclass(frozen=True)
class Bool:
    """Boolean parameter."""

    required: bool = False
    description: Optional[str] = None
    default: Optional[bool] = None


@dataclass(frozen=True)
class List_:
    """List parameter."""

    required: bool = False
    description: Optional[str] = None
    items: Optional[Mapping[str, Any]] = None
    min_items: Optional[int] = None


@dataclass(frozen=True)
class Dict_:
    """Dict parameter."""

    required: bool = False
    description: Optional[str] = None
    min_keys: Optional[int] = None


@dataclass(frozen=True)
class AtLeastOne:
    """Cross-field rule: at least one of *fields* must be non-None."""

    fields: Tuple[str, ...]


# Union of all field-level schema types.
FieldSchema = Union[Str, Num, Id, Bool, List_, Dict_]
Schema = Mapping[str, FieldSchema]


# ---------------------------------------------------------------------------
# JSON Schema generation
# ---------------------------------------------------------------------------


def _field_json_schema(spec: FieldSchema) -> Dict[str, Any]:
    if isinstance(spec, Str):
        out: Dict[str, Any] = {"type": "string"}
        if spec.choices is not None:
            out["enum"] = sorted(spec.choices)
    elif isinstance(spec, Num):
        out = {"type": "integer" if spec.integer_only else "number"}
        if spec.min_val is not None:
            out["minimum"] = spec.min_val
        if spec.max_val is not None:
            out["maximum"] = spec.max_val
    elif isinstance(spec, Id):
        out = {"type": ["integer", "string"]}
    elif isinstance(spec, Bool):
        out = {"type": "boolean"}
    elif isinstance(spec, List_):
        out = {"type": "array", "items": dict(spec.items) if spec.items else {}}
        if spec.min_items is not None:
            out["minItems"] = spec.min_items
    else:
        out = {"type": "object"}
        if spec.min_keys is not None:
            out["minProperties"] = spec.min_keys

    if getattr(spec, "nullable", False):
        out["type"] = [*(out["type"] if isinstance(out["type"], list) else [out["type"]]), "null"]
    if spec.description:
        out["description"] = spec.description
    default = getattr(spec, "default", None)
    if default is not None:
        out["default"] = default
    return out


def to_json_schema(schema: Schema) -> Dict[str, Any]:
    """Render a parameter schema as a JSON Schema object for the tool catalog."""
    properties = {name: _field_json_schema(spec) for name, spec in schema.items()}
    required = [name for name, spec in schema.items() if spec.required]
    out: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        out["required"] = required
    return out


# ---------------------------------------------------------------------------
# Validation engine
# ---------------------------------------------------------------------------


def validate_arguments(
    payload: Dict[str, Any],
    schema: Schema,
    *,
    tool_name: str,
    cross_field_rules: Optional[Sequence[AtLeastOne]] = None,
) -> None:
    """Validate *payload* against *schema*, raising on the first problem.

    On success, payload values are **normalised in-place** (strings stripped,
    integral floats made ``int`` for integer fields, defaults applied). Fields not named in the schema are left untouched;
    the schema describes what a tool understands, it does not forbid extras.

    Validation order:
      1. Defaults
      2. Required field presence
      3. Type check (with ``bool``-is-not-``int`` guard)
      4. Format checks (empty string, choices, range)
      5. Cross-field rules (:class:`AtLeastOne`)

    Raises:
        InvalidArgumentsError: naming the offending field.
    """

    def _error(field: str, message: str) -> InvalidArgumentsError:
        return InvalidArgumentsError(
            f"Invalid field '{field}' for {tool_name}: {message}",
            field=field,
            tool=tool_name,
        )

    for field_name, spec in schema.items():
        value = payload.get(field_name)

        default = getattr(spec, "default", None)
        if value is None and default is not None and field_name not in payload:
            payload[field_name] = default
            value = default

        nullable = getattr(spec, "nullable", False)
        if spec.required:
            missing = field_name not in payload if nullable else value is None
            if missing:
                raise _error(field_name, f"Missing required field: {field_name}")

        if value is None:
            continue

        message = _check_type(field_name, value, spec) or _check_format(field_name, value, spec)
        if message is not None:
            raise _error(field_name, message)

        if isinstance(spec, Str) and spec.strip:
            payload[field_name] = value.strip()
        elif isinstance(spec, Num) and spec.integer_only and isinstance(value, float):
            payload[field_name] = int(value)

    for rule in cross_field_rules or ():
        if all(payload.get(f) is None for f in rule.fields):
            names = ", ".join(f"'{f}'" for f in rule.fields)
            raise _error(rule.fields[0], f"At least one of {names} must be provided")


def _check_type(field: str, value: Any, spec: FieldSchema) -> Optional[str]:
    """Return an error message if *value* fails the type check for *spec*."""
    if isinstance(spec, Str):
        if not isinstance(value, str):
            return f"{field} must be a string"

    elif isinstance(spec, Num):
        # bool is a subclass of int; reject booleans explicitly.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return "Provide an integer value" if spec.integer_only else "Provide a numeric value"
        if spec.integer_only and not isinstance(value, int):
            if not (isinstance(value, float) and value.is_integer()):
                return f"{field} must be an integer"

    elif isinstance(spec, Id):
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            return f"{field} must be an integer or a string identifier"

    elif isinstance(spec, Bool):
        if not isinstance(value, bool):
            return "Expected a boolean value"

    elif isinstance(spec, List_):
        if not isinstance(value, list):
            return f"{field} must be a list"

    elif isinstance(spec, Dict_):
        if not isinstance(value, dict):
            return f"{field} must be an object"

    return None


def _check_format(field: str, value: Any, spec: FieldSchema) -> Optional[str]:
    """Return an error message if *value* fails format/range checks for *spec*."""
    if isinstance(spec, Str):
        text = value.strip() if spec.strip else value
        if not spec.allow_empty and spec.required and not text:
            return f"Missing required field: {field}"
        if spec.choices is not None and text not in spec.choices:
            allowed = ", ".join(sorted(spec.choices))
            return f"Must be one of: {allowed}"

    elif isinstance(spec, Num):
        if spec.min_val is not None and value < spec.min_val:
            return f"Value must be >= {spec.min_val}"
        if spec.max_val is not None and value > spec.max_val:
            return f"Value must be <= {spec.max_val}"

    elif isinstance(spec, Id):
        if isinstance(value, str) and not value.strip():
            return f"Missing required field: {field}"

    elif isinstance(spec, List_):
        if spec.min_items is not None and len(value) < spec.min_items:
            return f"{field} must have at least {spec.min_items} items"

    elif isinstance(spec, Dict_):
        if spec.min_keys is not None and len(value) < spec.min_keys:
            return f"{field} must have at least {spec.min_keys} keys"

    return None


def pick(payload: Mapping[str, Any], *fields: str) -> Dict[str, Any]:
    """Copy the listed fields that are present and not ``None``."""
    return {name: payload[name] for name in fields if payload.get(name) is not None}


def omit(payload: Mapping[str, Any], *fields: str) -> Dict[str, Any]:
    """Copy every field except the listed ones, skipping ``None`` values."""
    excluded = set(fields)
    return {name: value for name, value in payload.items() if name not in excluded and value is not None}


def ids_param(values: Optional[List[Any]]) -> Optional[str]:
    """Join a list of ids as Metabase's comma separated query parameter."""
    if not values:
        return None
    return ",".join(str(v) for v in values)
