"""Error taxonomy for the MCP Tool Runner.

Backend faults are converted into typed errors at the invoker and discovery
boundaries. Form contract errors are raised to the caller unchanged.
"""

from typing import Optional


class ToolRunnerError(Exception):
    """Base exception for all tool runner errors."""
    pass


class BackendError(ToolRunnerError):
    """The MCP binary could not be started, reached, or answered with a fault."""
    pass


class DiscoveryError(ToolRunnerError):
    """Listing tools for a binary path failed."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class ToolInvocationError(ToolRunnerError):
    """A single tool call failed."""

    def __init__(self, message: str, tool_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class UnsupportedSchemaTypeError(ToolRunnerError):
    """A parameter declares a type outside string, number and boolean."""

    def __init__(self, parameter: str, declared_type: object) -> None:
        super().__init__(
            f"Parameter '{parameter}' declares unsupported type {declared_type!r}"
        )
        self.parameter = parameter
        self.declared_type = declared_type


class FormContractError(ToolRunnerError):
    """A form was edited in a way its schema does not allow."""
    pass


class UnknownFieldError(FormContractError, KeyError):
    """An edit targeted a field name absent from the form's schema."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown field '{self.name}'"


class FieldControlError(FormContractError):
    """An edit arrived from a control that does not match the field type."""
    pass


class FormUnavailableError(FormContractError):
    """The tool's form could not be built, so no field can be edited."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Form of tool '{tool_name}' is unavailable")
        self.tool_name = tool_name
