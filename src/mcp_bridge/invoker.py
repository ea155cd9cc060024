"""Tool invocation.

Dispatches one CallRequest to the backend and normalizes the outcome.
"""

import time
from typing import Union

from pydantic import ValidationError

from shared.errors import BackendError, ToolInvocationError
from shared.logging import get_logger
from shared.models import (
    CallRequest,
    Failure,
    FailureKind,
    ToolResult,
    ToolResultItem,
)
from mcp_bridge.backend import ToolBackend

logger = get_logger(__name__)


class ToolInvoker:
    """
    Invokes tools through a ToolBackend.

    Holds no state besides the backend handle, so one invoker can serve
    calls for several tools at once. Every call reaches the backend exactly
    once; failures are returned, never retried or raised.
    """

    def __init__(self, backend: ToolBackend) -> None:
        self.backend = backend

    async def invoke(self, request: CallRequest) -> Union[ToolResult, Failure]:
        """
        Execute a tool call.

        Args:
            request: Binary path, tool name and coerced arguments

        Returns:
            ToolResult with the backend's items on success, or a Failure of
            kind INVOCATION carrying the backend's message
        """
        log = logger.bind(tool=request.tool_name, path=request.binary_path)
        log.debug("Invoking tool", arguments=list(request.arguments))

        start_time = time.perf_counter()
        try:
            raw_items = await self.backend.call_tool(
                request.binary_path,
                request.tool_name,
                dict(request.arguments)
            )
            items = [ToolResultItem.model_validate(item) for item in raw_items]
        except (BackendError, ValidationError) as e:
            error = ToolInvocationError(str(e), tool_name=request.tool_name)
        except Exception as e:
            log.error("Unexpected backend fault", error=str(e), exc_info=True)
            error = ToolInvocationError(
                str(e) or e.__class__.__name__, tool_name=request.tool_name
            )
        else:
            execution_time = (time.perf_counter() - start_time) * 1000
            log.info(
                "Tool invoked",
                item_count=len(items),
                execution_time_ms=round(execution_time, 2)
            )
            return ToolResult(
                tool_name=request.tool_name,
                items=items,
                execution_time_ms=execution_time
            )

        log.warning("Tool invocation failed", error=str(error))
        return Failure.from_error(
            FailureKind.INVOCATION, error, tool_name=request.tool_name
        )
