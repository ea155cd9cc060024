"""Shared models, errors and utilities for the MCP Tool Runner."""

from shared.errors import (
    BackendError,
    DiscoveryError,
    FieldControlError,
    FormContractError,
    FormUnavailableError,
    ToolInvocationError,
    ToolRunnerError,
    UnknownFieldError,
    UnsupportedSchemaTypeError,
)
from shared.models import (
    CallRequest,
    FieldState,
    Failure,
    ParameterSpec,
    ParameterType,
    ToolDescriptor,
    ToolResult,
    ToolResultItem,
)
from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "BackendError",
    "DiscoveryError",
    "FieldControlError",
    "FormContractError",
    "FormUnavailableError",
    "ToolInvocationError",
    "ToolRunnerError",
    "UnknownFieldError",
    "UnsupportedSchemaTypeError",
    "CallRequest",
    "FieldState",
    "Failure",
    "ParameterSpec",
    "ParameterType",
    "ToolDescriptor",
    "ToolResult",
    "ToolResultItem",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
