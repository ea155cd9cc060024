"""Stdio MCP backend.

Runs the uploaded binary as an MCP server over stdin/stdout, one process per
request, and speaks the protocol through the ``mcp`` SDK.
"""

import asyncio
import os
import stat
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from shared.config import BackendSettings
from shared.errors import BackendError
from shared.logging import get_logger
from mcp_bridge.backend import ToolBackend

logger = get_logger(__name__)

EXECUTABLE_MODE = (
    stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH
)


def ensure_executable(path: Path) -> None:
    """Set mode 0755 on ``path``. No-op outside POSIX."""
    if os.name != "posix":
        return
    try:
        os.chmod(path, EXECUTABLE_MODE)
    except OSError as e:
        raise BackendError(f"chmod error: {e}") from e


class StdioToolBackend(ToolBackend):
    """
    ToolBackend that spawns the MCP binary for every request.

    Each request starts the process, performs the initialize handshake, sends
    one request and tears the process down. No process is kept alive between
    requests, so a replaced binary is picked up on the next call.
    """

    def __init__(self, settings: Optional[BackendSettings] = None) -> None:
        self.settings = settings or BackendSettings()

    def _prepare(self, path: str) -> Path:
        exe_path = Path(path)
        if not exe_path.is_file():
            raise BackendError(f"Executable not found: {exe_path}")
        if self.settings.make_executable:
            ensure_executable(exe_path)
        return exe_path

    @asynccontextmanager
    async def _session(self, exe_path: Path) -> AsyncIterator[ClientSession]:
        params = StdioServerParameters(command=str(exe_path), args=[])
        async with stdio_client(params) as (read, write):
            async with ClientSession(read, write) as session:
                await session.initialize()
                yield session

    async def _list(self, exe_path: Path) -> list[dict[str, Any]]:
        tools: list[dict[str, Any]] = []
        async with self._session(exe_path) as session:
            response = await session.list_tools()
            tools.extend(_dump(t) for t in response.tools)

            cursor = response.nextCursor
            while cursor:
                response = await session.list_tools(cursor=cursor)
                tools.extend(_dump(t) for t in response.tools)
                cursor = response.nextCursor
        return tools

    async def _call(
        self,
        exe_path: Path,
        tool: str,
        arguments: dict[str, Any]
    ) -> list[dict[str, Any]]:
        async with self._session(exe_path) as session:
            response = await session.call_tool(tool, arguments)

        items = [_dump(item) for item in response.content]
        if response.isError:
            message = "\n".join(i.get("text", "") for i in items if i.get("text"))
            raise BackendError(message or f"Tool '{tool}' reported an error")
        return items

    async def list_tools(self, path: str) -> list[dict[str, Any]]:
        """List the tools exposed by the binary at ``path``."""
        exe_path = self._prepare(path)
        logger.debug("Listing tools", path=str(exe_path))

        try:
            return await asyncio.wait_for(
                self._list(exe_path),
                timeout=self.settings.list_timeout_seconds
            )
        except asyncio.TimeoutError:
            raise BackendError(
                f"tools/list timed out after {self.settings.list_timeout_seconds}s"
            ) from None
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(f"Failed to list tools of `{exe_path}`: {e}") from e

    async def call_tool(
        self,
        path: str,
        tool: str,
        arguments: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """Call ``tool`` on the binary at ``path`` with ``arguments``."""
        exe_path = self._prepare(path)
        logger.debug("Calling tool", path=str(exe_path), tool=tool)

        try:
            return await asyncio.wait_for(
                self._call(exe_path, tool, arguments),
                timeout=self.settings.call_timeout_seconds
            )
        except asyncio.TimeoutError:
            raise BackendError(
                f"tools/call timed out after {self.settings.call_timeout_seconds}s"
            ) from None
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(f"Failed to call `{tool}`: {e}") from e


def _dump(model: Any) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)
