"""Tests for the MCP bridge: invoker, storage and stdio backend."""

import os
import stat
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from mcp.types import CallToolResult, ListToolsResult, TextContent, Tool

from shared.errors import BackendError
from shared.models import CallRequest, Failure, FailureKind, ToolResult


def make_backend(**calls) -> MagicMock:
    backend = MagicMock()
    for name, mock in calls.items():
        setattr(backend, name, mock)
    return backend


class TestToolInvoker:
    """Tests for ToolInvoker."""

    @pytest.mark.asyncio
    async def test_success_passes_items_through(self):
        """Test that backend items are passed through unchanged and in order."""
        from mcp_bridge.invoker import ToolInvoker

        backend = make_backend(call_tool=AsyncMock(return_value=[
            {"type": "text", "text": "first"},
            {"type": "image", "data": "aGk=", "mimeType": "image/png"},
        ]))
        invoker = ToolInvoker(backend)

        result = await invoker.invoke(CallRequest(
            binary_path="/bin/server",
            tool_name="echo",
            arguments={"msg": "hi"}
        ))

        assert isinstance(result, ToolResult)
        assert [item.type for item in result.items] == ["text", "image"]
        assert result.items[0].text == "first"
        assert result.items[1].model_dump()["mimeType"] == "image/png"
        backend.call_tool.assert_awaited_once_with("/bin/server", "echo", {"msg": "hi"})

    @pytest.mark.asyncio
    async def test_empty_result_is_success(self):
        """Test that an empty item list is a success, not a failure."""
        from mcp_bridge.invoker import ToolInvoker

        invoker = ToolInvoker(make_backend(call_tool=AsyncMock(return_value=[])))

        result = await invoker.invoke(CallRequest(binary_path="p", tool_name="noop"))

        assert isinstance(result, ToolResult)
        assert result.items == []

    @pytest.mark.asyncio
    async def test_backend_error_becomes_failure(self):
        """Test that backend errors are returned as invocation failures."""
        from mcp_bridge.invoker import ToolInvoker

        backend = make_backend(call_tool=AsyncMock(side_effect=BackendError("bad arguments")))
        invoker = ToolInvoker(backend)

        result = await invoker.invoke(CallRequest(binary_path="p", tool_name="echo"))

        assert isinstance(result, Failure)
        assert result.kind is FailureKind.INVOCATION
        assert result.message == "bad arguments"
        assert result.tool_name == "echo"
        assert backend.call_tool.await_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_failure(self):
        """Test that arbitrary faults never escape the invoker."""
        from mcp_bridge.invoker import ToolInvoker

        backend = make_backend(call_tool=AsyncMock(side_effect=RuntimeError("crashed")))

        result = await ToolInvoker(backend).invoke(
            CallRequest(binary_path="p", tool_name="echo")
        )

        assert isinstance(result, Failure)
        assert "crashed" in result.message

    @pytest.mark.asyncio
    async def test_malformed_items_become_failure(self):
        """Test that items without a type tag are reported as a failure."""
        from mcp_bridge.invoker import ToolInvoker

        backend = make_backend(call_tool=AsyncMock(return_value=[{"text": "no type"}]))

        result = await ToolInvoker(backend).invoke(
            CallRequest(binary_path="p", tool_name="echo")
        )

        assert isinstance(result, Failure)


class TestBinaryStore:
    """Tests for BinaryStore."""

    @pytest.mark.asyncio
    async def test_save_writes_under_data_dir(self, tmp_path):
        """Test that uploads land at <data_dir>/<file name>."""
        from mcp_bridge.storage import BinaryStore

        store = BinaryStore(tmp_path / "data")

        path = await store.save("server.bin", b"\x7fELF")

        assert path == tmp_path / "data" / "server.bin"
        assert path.read_bytes() == b"\x7fELF"

    @pytest.mark.asyncio
    async def test_same_name_overwrites(self, tmp_path):
        """Test that re-uploading a same-named file replaces it."""
        from mcp_bridge.storage import BinaryStore

        store = BinaryStore(tmp_path)
        await store.save("server", b"old")

        path = await store.save("server", b"new")

        assert path.read_bytes() == b"new"

    @pytest.mark.parametrize("name, expected", [
        ("../../etc/passwd", "passwd"),
        ("dir/sub/server", "server"),
        ("C:\\Users\\me\\server.exe", "server.exe"),
    ])
    def test_directory_components_stripped(self, tmp_path, name, expected):
        """Test that names cannot escape the data directory."""
        from mcp_bridge.storage import BinaryStore

        assert BinaryStore(tmp_path).path_for(name) == tmp_path / expected

    @pytest.mark.parametrize("name", ["", "..", "/"])
    def test_invalid_name(self, tmp_path, name):
        """Test that unusable names are rejected."""
        from mcp_bridge.storage import BinaryStore

        with pytest.raises(ValueError):
            BinaryStore(tmp_path).path_for(name)


def fake_session_factory(session):
    @asynccontextmanager
    async def _session(exe_path):
        yield session
    return _session


class TestStdioToolBackend:
    """Tests for StdioToolBackend."""

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path):
        """Test that a missing binary is reported as a backend error."""
        from mcp_bridge.stdio import StdioToolBackend

        backend = StdioToolBackend()

        with pytest.raises(BackendError, match="Executable not found"):
            await backend.list_tools(str(tmp_path / "absent"))
        with pytest.raises(BackendError, match="Executable not found"):
            await backend.call_tool(str(tmp_path / "absent"), "echo", {})

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions only")
    def test_ensure_executable(self, tmp_path):
        """Test that the binary is made executable before spawning."""
        from mcp_bridge.stdio import ensure_executable

        binary = tmp_path / "server"
        binary.write_bytes(b"")
        binary.chmod(0o600)

        ensure_executable(binary)

        assert stat.S_IMODE(binary.stat().st_mode) == 0o755

    @pytest.mark.asyncio
    async def test_list_tools_follows_pages(self, tmp_path):
        """Test that every page of the tool listing is collected in order."""
        from mcp_bridge.stdio import StdioToolBackend

        binary = tmp_path / "server"
        binary.write_bytes(b"")

        session = MagicMock()
        session.list_tools = AsyncMock(side_effect=[
            ListToolsResult(
                tools=[Tool(name="a", inputSchema={"type": "object", "properties": {}})],
                nextCursor="page-2",
            ),
            ListToolsResult(
                tools=[Tool(name="b", description="B", inputSchema={"type": "object"})],
            ),
        ])
        backend = StdioToolBackend()
        backend._session = fake_session_factory(session)

        tools = await backend.list_tools(str(binary))

        assert [t["name"] for t in tools] == ["a", "b"]
        assert tools[0]["inputSchema"] == {"type": "object", "properties": {}}
        assert tools[1]["description"] == "B"
        session.list_tools.assert_awaited_with(cursor="page-2")

    @pytest.mark.asyncio
    async def test_call_tool_returns_content(self, tmp_path):
        """Test that result content is dumped to plain items."""
        from mcp_bridge.stdio import StdioToolBackend

        binary = tmp_path / "server"
        binary.write_bytes(b"")

        session = MagicMock()
        session.call_tool = AsyncMock(return_value=CallToolResult(
            content=[TextContent(type="text", text="hello")]
        ))
        backend = StdioToolBackend()
        backend._session = fake_session_factory(session)

        items = await backend.call_tool(str(binary), "echo", {"msg": "hello"})

        assert items[0]["type"] == "text"
        assert items[0]["text"] == "hello"
        session.call_tool.assert_awaited_once_with("echo", {"msg": "hello"})

    @pytest.mark.asyncio
    async def test_call_tool_error_result_raises(self, tmp_path):
        """Test that results flagged as errors become backend errors."""
        from mcp_bridge.stdio import StdioToolBackend

        binary = tmp_path / "server"
        binary.write_bytes(b"")

        session = MagicMock()
        session.call_tool = AsyncMock(return_value=CallToolResult(
            content=[TextContent(type="text", text="unknown tool: nope")],
            isError=True,
        ))
        backend = StdioToolBackend()
        backend._session = fake_session_factory(session)

        with pytest.raises(BackendError, match="unknown tool: nope"):
            await backend.call_tool(str(binary), "nope", {})

    @pytest.mark.asyncio
    async def test_transport_fault_wrapped(self, tmp_path):
        """Test that protocol faults are wrapped in BackendError."""
        from mcp_bridge.stdio import StdioToolBackend

        binary = tmp_path / "server"
        binary.write_bytes(b"")

        session = MagicMock()
        session.list_tools = AsyncMock(side_effect=ConnectionError("pipe closed"))
        backend = StdioToolBackend()
        backend._session = fake_session_factory(session)

        with pytest.raises(BackendError, match="pipe closed"):
            await backend.list_tools(str(binary))


SERVER_SCRIPT = '''\
#!{python}
from mcp.server.fastmcp import FastMCP

server = FastMCP("runner-test")


@server.tool()
def echo(msg: str) -> str:
    """Echo a message."""
    return msg


@server.tool()
def fail(reason: str) -> str:
    """Always fail with the given reason."""
    raise ValueError(reason)


if __name__ == "__main__":
    server.run()
'''


@pytest.mark.skipif(os.name != "posix", reason="Spawns a shebang script")
class TestStdioToolBackendProcess:
    """Tests for StdioToolBackend against a real MCP server process."""

    @pytest.fixture
    def server_binary(self, tmp_path):
        import sys

        binary = tmp_path / "server"
        binary.write_text(SERVER_SCRIPT.format(python=sys.executable))
        binary.chmod(0o600)
        return binary

    @pytest.mark.asyncio
    async def test_list_tools(self, server_binary):
        """Test that the tools of a running server are listed with their schema."""
        from mcp_bridge.stdio import StdioToolBackend

        tools = await StdioToolBackend().list_tools(str(server_binary))

        assert [t["name"] for t in tools] == ["echo", "fail"]
        assert tools[0]["description"] == "Echo a message."
        assert tools[0]["inputSchema"]["properties"]["msg"]["type"] == "string"
        assert stat.S_IMODE(server_binary.stat().st_mode) == 0o755

    @pytest.mark.asyncio
    async def test_call_tool(self, server_binary):
        """Test that a successful call returns the server's content items."""
        from mcp_bridge.stdio import StdioToolBackend

        items = await StdioToolBackend().call_tool(
            str(server_binary), "echo", {"msg": "hello"}
        )

        assert len(items) == 1
        assert items[0]["type"] == "text"
        assert items[0]["text"] == "hello"

    @pytest.mark.asyncio
    async def test_call_tool_error_result(self, server_binary):
        """Test that a tool reporting an error raises BackendError with its text."""
        from mcp_bridge.stdio import StdioToolBackend

        with pytest.raises(BackendError, match="boom"):
            await StdioToolBackend().call_tool(
                str(server_binary), "fail", {"reason": "boom"}
            )
