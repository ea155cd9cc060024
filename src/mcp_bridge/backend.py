"""Backend boundary between the sessions and an MCP binary.

The sessions only depend on this interface. ``StdioToolBackend`` is the
concrete implementation that runs the binary; tests substitute fakes.
"""

from abc import ABC, abstractmethod
from typing import Any


class ToolBackend(ABC):
    """Abstract RPC surface for listing and calling the tools of a binary."""

    @abstractmethod
    async def list_tools(self, path: str) -> list[dict[str, Any]]:
        """
        List the tools exposed by the binary at ``path``.

        Returns:
            Raw tool entries with ``name``, ``description`` and ``inputSchema``

        Raises:
            BackendError: If the path is not a runnable MCP binary
        """
        pass

    @abstractmethod
    async def call_tool(
        self,
        path: str,
        tool: str,
        arguments: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """
        Call one tool of the binary at ``path``.

        Returns:
            Raw result items, each with at least ``type``

        Raises:
            BackendError: If the tool is unknown, rejects its arguments, or faults
        """
        pass
