"""Input schema parsing for discovered tools."""

from enum import Enum
from typing import Any

from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from shared.errors import UnsupportedSchemaTypeError
from shared.models import ParameterSpec, ParameterType, ToolDescriptor


class UnknownTypePolicy(str, Enum):
    """How a parameter with a type outside the supported set is handled."""
    TEXT = "text"
    REJECT = "reject"


def check_schema(schema: dict[str, Any]) -> list[str]:
    """
    Check that a tool's input schema is itself a valid JSON Schema document.

    Args:
        schema: The raw ``inputSchema`` object from a tool listing

    Returns:
        List of error messages (empty if the schema is well formed)
    """
    if not schema:
        return []

    validator_cls = validator_for(schema)
    try:
        validator_cls.check_schema(schema)
    except SchemaError as e:
        path = ".".join(str(p) for p in e.path)
        return [f"{path}: {e.message}" if path else e.message]
    return []


def parse_parameter(definition: Any) -> ParameterSpec:
    """
    Build a ParameterSpec from one ``properties`` entry.

    A missing type is read as string. A type outside the supported set is
    recorded in ``declared_type`` and handled as text until a form applies
    its unknown-type policy.
    """
    if not isinstance(definition, dict):
        definition = {}

    declared = definition.get("type", "string")
    description = definition.get("description")

    try:
        param_type = ParameterType(declared)
    except ValueError:
        return ParameterSpec(
            type=ParameterType.STRING,
            description=description,
            declared_type=str(declared),
        )

    return ParameterSpec(type=param_type, description=description)


def ensure_supported(
    descriptor: ToolDescriptor,
    policy: UnknownTypePolicy
) -> None:
    """
    Apply the unknown-type policy to a descriptor.

    Raises:
        UnsupportedSchemaTypeError: On the first defaulted parameter when
            policy is REJECT
    """
    if policy is not UnknownTypePolicy.REJECT:
        return
    for name, spec in descriptor.input_schema.items():
        if spec.declared_type is not None:
            raise UnsupportedSchemaTypeError(name, spec.declared_type)


def descriptor_from_listing(entry: Any) -> ToolDescriptor:
    """
    Build a ToolDescriptor from a raw ``tools/list`` entry.

    Only the name, description and the ``properties`` of the input schema are
    kept; a missing schema or missing properties means zero parameters.

    Raises:
        ValueError: If the entry has no name or its schema is malformed
    """
    if not isinstance(entry, dict):
        raise ValueError(f"Tool entry must be an object, got {type(entry).__name__}")

    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise ValueError("Tool entry is missing a name")

    input_schema = entry.get("inputSchema") or {}
    if not isinstance(input_schema, dict):
        raise ValueError(f"Tool '{name}' has a non-object input schema")

    errors = check_schema(input_schema)
    if errors:
        raise ValueError(
            f"Tool '{name}' has an invalid input schema: {'; '.join(errors)}"
        )

    properties = input_schema.get("properties") or {}
    return ToolDescriptor(
        name=name,
        description=entry.get("description"),
        input_schema={
            param: parse_parameter(definition)
            for param, definition in properties.items()
        },
    )
