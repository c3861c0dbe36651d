"""Minimal argument coercion against a tool's declared input schema."""

from typing import Any, Dict, Mapping, Optional

from .errors import ValidationError
from .registry import ToolDescriptor

_NUMERIC_TYPES = ("number", "integer")


def _coerce_number(name: str, value: Any, expected: str) -> Any:
    label = "an integer" if expected == "integer" else "a number"
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValidationError(f"Argument '{name}' must be {label}")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValidationError(f"Argument '{name}' must be {label}") from None
    if float(value).is_integer():
        return int(value)
    if expected == "integer":
        raise ValidationError(f"Argument '{name}' must be an integer")
    return value


def coerce_arguments(
    descriptor: ToolDescriptor,
    arguments: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """
    Check and normalize invocation arguments.

    Missing required string arguments become "" instead of failing. Numeric
    strings are accepted for number/integer properties. Arguments the schema
    does not declare are passed through untouched.

    Args:
        descriptor: Descriptor of the tool being invoked
        arguments: Raw arguments from the request (may be None)

    Returns:
        A new dict of coerced arguments

    Raises:
        ValidationError: If arguments are not a mapping, a value has the wrong
            type or falls outside a declared enum, or a required non-string
            argument is missing
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise ValidationError("Arguments must be an object")

    coerced = dict(arguments)
    properties = descriptor.properties

    for name in descriptor.required:
        if coerced.get(name) is not None:
            continue
        expected = properties.get(name, {}).get("type", "string")
        if expected == "string":
            coerced[name] = ""
        else:
            raise ValidationError(f"Missing required argument: {name}")

    for name, prop in properties.items():
        if name not in coerced or coerced[name] is None:
            coerced.pop(name, None)
            continue

        value = coerced[name]
        expected = prop.get("type")

        if expected == "string" and not isinstance(value, str):
            raise ValidationError(f"Argument '{name}' must be a string")
        if expected in _NUMERIC_TYPES:
            value = _coerce_number(name, value, expected)
        if expected == "boolean" and not isinstance(value, bool):
            raise ValidationError(f"Argument '{name}' must be a boolean")

        enum = prop.get("enum")
        if enum is not None and value not in enum:
            raise ValidationError(
                f"Argument '{name}' must be one of: {', '.join(map(str, enum))}"
            )
        coerced[name] = value

    return coerced
