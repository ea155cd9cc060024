"""MCP Bridge - the boundary between sessions and MCP binaries.

Lists and calls tools of a local MCP binary, stores uploaded binaries,
and turns backend outcomes into results or typed failures.
"""

from mcp_bridge.backend import ToolBackend
from mcp_bridge.invoker import ToolInvoker
from mcp_bridge.stdio import StdioToolBackend
from mcp_bridge.storage import BinaryStore

__all__ = [
    "BinaryStore",
    "StdioToolBackend",
    "ToolBackend",
    "ToolInvoker",
]
