"""Schema-driven form model.

Derives editable field state from a tool's input schema and projects it
into call arguments.
"""

import math
from typing import Any, Optional, Union

from shared.errors import FieldControlError, UnknownFieldError
from shared.models import (
    BoolValue,
    ControlKind,
    FieldState,
    FieldValue,
    NumberValue,
    ParameterSpec,
    ParameterType,
    StringValue,
    ToolDescriptor,
)
from shared.schema import UnknownTypePolicy, ensure_supported

INDETERMINATE = "indeterminate"


def default_value(spec: ParameterSpec) -> FieldValue:
    """False for booleans, empty text for strings and numbers."""
    if spec.type is ParameterType.BOOLEAN:
        return BoolValue(checked=False)
    if spec.type is ParameterType.NUMBER:
        return NumberValue(text="")
    return StringValue(text="")


def to_number(text: str) -> Union[int, float]:
    """
    Convert numeric field text to a number.

    Empty text is 0, integer literals stay integers, anything that does not
    parse (including transitional text such as "-" or "1e") is NaN.
    """
    stripped = text.strip()
    if not stripped:
        return 0
    if "_" in stripped:
        return math.nan
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        return float(stripped)
    except ValueError:
        return math.nan


def _number_text(raw_input: Any) -> str:
    if isinstance(raw_input, bool):
        raise FieldControlError("A number control cannot submit a boolean")
    if isinstance(raw_input, (int, float)):
        return repr(raw_input)
    if raw_input is None:
        return ""
    return str(raw_input)


def _checked(raw_input: Any) -> bool:
    """Tri-state checkbox result; indeterminate counts as unchecked."""
    if raw_input is None or raw_input == INDETERMINATE:
        return False
    if isinstance(raw_input, bool):
        return raw_input
    raise FieldControlError(f"Checkbox value must be a boolean, got {raw_input!r}")


class SchemaFormModel:
    """
    Field state for one tool form.

    The key set of the field state equals the descriptor's input schema and
    is fixed at initialization; edits only replace values.
    """

    def __init__(
        self,
        descriptor: ToolDescriptor,
        policy: UnknownTypePolicy = UnknownTypePolicy.TEXT
    ) -> None:
        self.policy = policy
        self.descriptor = descriptor
        self.field_state = self.initialize(descriptor)

    def initialize(self, descriptor: ToolDescriptor) -> FieldState:
        """
        Build default field state for ``descriptor``.

        Replaces any previous state wholesale.

        Raises:
            UnsupportedSchemaTypeError: If the policy is REJECT and a parameter
                declares an unsupported type
        """
        ensure_supported(descriptor, self.policy)
        self.descriptor = descriptor
        self.field_state = FieldState({
            name: default_value(spec)
            for name, spec in descriptor.input_schema.items()
        })
        return self.field_state

    def set_field(
        self,
        name: str,
        raw_input: Any,
        source_type: Optional[Union[ControlKind, str]] = None
    ) -> FieldState:
        """
        Store an edit for one field.

        Args:
            name: Field name; must be part of the schema
            raw_input: Value from the control (text, number or checkbox state)
            source_type: Control the edit came from; defaults to the field's own

        Returns:
            The updated field state

        Raises:
            UnknownFieldError: If ``name`` is not a field of this form
            FieldControlError: If the control does not match the field type
        """
        spec = self.descriptor.input_schema.get(name)
        if spec is None:
            raise UnknownFieldError(name)

        try:
            control = ControlKind(source_type) if source_type is not None else spec.control
        except ValueError:
            raise FieldControlError(f"Unknown control type {source_type!r}") from None
        if control is not spec.control:
            raise FieldControlError(
                f"Field '{name}' is edited with a {spec.control.value} control, "
                f"not {control.value}"
            )

        value: FieldValue
        if control is ControlKind.CHECKBOX:
            value = BoolValue(checked=_checked(raw_input))
        elif control is ControlKind.NUMBER:
            value = NumberValue(text=_number_text(raw_input))
        else:
            value = StringValue(text="" if raw_input is None else str(raw_input))

        self.field_state = self.field_state.replace(name, value)
        return self.field_state

    def to_arguments(
        self,
        descriptor: Optional[ToolDescriptor] = None,
        field_state: Optional[FieldState] = None
    ) -> dict[str, Any]:
        """
        Project field state through the declared parameter types.

        Booleans yield bool, numbers yield int or float, strings pass through
        untouched. The result has exactly the keys of the field state.
        """
        descriptor = descriptor or self.descriptor
        field_state = self.field_state if field_state is None else field_state

        arguments: dict[str, Any] = {}
        for name, value in field_state.items():
            spec = descriptor.input_schema.get(name)
            if spec is None:
                raise UnknownFieldError(name)

            if spec.type is ParameterType.BOOLEAN:
                arguments[name] = bool(getattr(value, "checked", False))
            elif spec.type is ParameterType.NUMBER:
                arguments[name] = to_number(getattr(value, "text", ""))
            else:
                arguments[name] = getattr(value, "text", "")
        return arguments
