"""Core data models for the MCP Tool Runner.

This module defines the data structures exchanged between the form model,
the invoker, the sessions, and the presentation layer. Values cross component
boundaries by copy; only sessions hold mutable state.
"""

from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from shared.errors import ToolRunnerError, UnknownFieldError


class ParameterType(str, Enum):
    """Primitive types a tool parameter may declare."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class ControlKind(str, Enum):
    """Input control used to edit a field."""
    TEXT = "text"
    NUMBER = "number"
    CHECKBOX = "checkbox"


CONTROL_FOR_TYPE: dict[ParameterType, ControlKind] = {
    ParameterType.STRING: ControlKind.TEXT,
    ParameterType.NUMBER: ControlKind.NUMBER,
    ParameterType.BOOLEAN: ControlKind.CHECKBOX,
}


class ParameterSpec(BaseModel):
    """Declared contract for one input field."""
    model_config = ConfigDict(frozen=True)

    type: ParameterType
    description: Optional[str] = Field(
        default=None,
        description="Placeholder text; never used for validation"
    )
    declared_type: Optional[str] = Field(
        default=None,
        description="Raw type string when it was defaulted to text"
    )

    @property
    def control(self) -> ControlKind:
        """Control kind used to render and edit this parameter."""
        return CONTROL_FOR_TYPE[self.type]


class ToolDescriptor(BaseModel):
    """
    Identity and contract of one discoverable tool.

    Built once per discovery and never mutated; schemas are not
    hot-reloaded mid-session.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    input_schema: dict[str, ParameterSpec] = Field(default_factory=dict)


class StringValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["string"] = "string"
    text: str = ""


class NumberValue(BaseModel):
    """Raw text of a numeric field; converted only when arguments are built."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["number"] = "number"
    text: str = ""


class BoolValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["boolean"] = "boolean"
    checked: bool = False


FieldValue = Union[StringValue, NumberValue, BoolValue]


class FieldState(Mapping):
    """
    Ordered mapping from parameter name to its current value.

    The key set is fixed at construction. Replacing a value returns a new
    FieldState; assigning to an unknown name raises UnknownFieldError.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, FieldValue]) -> None:
        self._values: dict[str, FieldValue] = dict(values)

    def __getitem__(self, name: str) -> FieldValue:
        try:
            return self._values[name]
        except KeyError:
            raise UnknownFieldError(name) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FieldState):
            return self._values == other._values
        return NotImplemented

    def __repr__(self) -> str:
        return f"FieldState({self._values!r})"

    def replace(self, name: str, value: FieldValue) -> "FieldState":
        """Return a copy with one existing field replaced."""
        if name not in self._values:
            raise UnknownFieldError(name)
        values = dict(self._values)
        values[name] = value
        return FieldState(values)

    def raw(self) -> dict[str, Any]:
        """Values as held, for rendering inputs."""
        raw: dict[str, Any] = {}
        for name, value in self._values.items():
            if isinstance(value, BoolValue):
                raw[name] = value.checked
            else:
                raw[name] = value.text
        return raw


class CallRequest(BaseModel):
    """Outbound invocation payload."""
    model_config = ConfigDict(frozen=True)

    binary_path: str
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResultItem(BaseModel):
    """
    One item of tool output.

    The type tag is opaque and passed through to presentation; any extra keys
    reported by the backend are preserved.
    """
    model_config = ConfigDict(extra="allow")

    type: str
    text: str = ""


class ToolResult(BaseModel):
    """Successful outcome of one invocation. Empty items means no output."""
    tool_name: str
    items: list[ToolResultItem] = Field(default_factory=list)
    execution_time_ms: float = 0


class FailureKind(str, Enum):
    """Where a failure originated."""
    DISCOVERY = "discovery"
    INVOCATION = "invocation"
    SCHEMA = "schema"


class Failure(BaseModel):
    """Typed failure handed to session state in place of an exception."""
    kind: FailureKind
    message: str
    tool_name: Optional[str] = None

    @classmethod
    def from_error(
        cls,
        kind: FailureKind,
        error: ToolRunnerError,
        tool_name: Optional[str] = None
    ) -> "Failure":
        return cls(
            kind=kind,
            message=str(error) or error.__class__.__name__,
            tool_name=tool_name,
        )


class ViewState(str, Enum):
    """Lifecycle state of one tool session."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class DiscoveryState(str, Enum):
    """Lifecycle state of a discovery session."""
    IDLE = "idle"
    DISCOVERING = "discovering"
    READY = "ready"
    ERROR = "error"


class FieldView(BaseModel):
    """Presentation snapshot of one form field."""
    name: str
    type: ParameterType
    control: ControlKind
    value: Any
    placeholder: Optional[str] = None


class ToolView(BaseModel):
    """Presentation snapshot of one tool session."""
    name: str
    description: Optional[str] = None
    state: ViewState
    fields: list[FieldView] = Field(default_factory=list)
    result: Optional[list[ToolResultItem]] = None
    error: Optional[str] = None
    form_error: Optional[str] = None


class DiscoveryView(BaseModel):
    """Presentation snapshot of the discovery session."""
    state: DiscoveryState
    binary_path: Optional[str] = None
    error: Optional[str] = None
    tools: list[ToolView] = Field(default_factory=list)
