"""Discovery Session - the loaded binary and its tools.

Stores uploaded binaries, lists their tools and builds one ToolSession per
tool. Every discovery bumps a generation counter; responses that arrive for
an older generation are discarded instead of overwriting newer state.
"""

from typing import Any, Optional

from shared.errors import DiscoveryError
from shared.logging import get_logger
from shared.models import (
    DiscoveryState,
    DiscoveryView,
    Failure,
    FailureKind,
    ToolDescriptor,
)
from shared.schema import UnknownTypePolicy, descriptor_from_listing
from mcp_bridge.backend import ToolBackend
from mcp_bridge.invoker import ToolInvoker
from mcp_bridge.storage import BinaryStore
from workbench.tool_session import ToolSession

logger = get_logger(__name__)


def parse_listing(entries: Any) -> list[ToolDescriptor]:
    """
    Turn a raw tool listing into descriptors, preserving order.

    Raises:
        ValueError: If the listing is not a list, an entry is malformed, or
            two tools share a name
    """
    if not isinstance(entries, list):
        raise ValueError(f"Tool listing must be a list, got {type(entries).__name__}")

    descriptors: list[ToolDescriptor] = []
    seen: set[str] = set()
    for entry in entries:
        descriptor = descriptor_from_listing(entry)
        if descriptor.name in seen:
            raise ValueError(f"Duplicate tool name '{descriptor.name}'")
        seen.add(descriptor.name)
        descriptors.append(descriptor)
    return descriptors


class DiscoverySession:
    """
    Owns the loaded binary path and the discovered tools.

    State machine: idle -> discovering -> ready | error. Entering
    discovering clears the previous tools and error before the backend is
    asked. ToolSessions only read the binary path they were built with.
    """

    def __init__(
        self,
        backend: ToolBackend,
        store: BinaryStore,
        invoker: Optional[ToolInvoker] = None,
        policy: UnknownTypePolicy = UnknownTypePolicy.TEXT
    ) -> None:
        self.backend = backend
        self.store = store
        self.invoker = invoker or ToolInvoker(backend)
        self.policy = policy

        self.state = DiscoveryState.IDLE
        self.binary_path: Optional[str] = None
        self.error: Optional[Failure] = None
        self.generation = 0
        self._sessions: dict[str, ToolSession] = {}

    @property
    def tools(self) -> list[ToolDescriptor]:
        return [s.descriptor for s in self._sessions.values()]

    @property
    def sessions(self) -> list[ToolSession]:
        return list(self._sessions.values())

    def session(self, name: str) -> ToolSession:
        """
        Get the ToolSession for a discovered tool.

        Raises:
            KeyError: If no tool with that name was discovered
        """
        try:
            return self._sessions[name]
        except KeyError:
            raise KeyError(f"Tool '{name}' not found") from None

    def _begin(self) -> int:
        for session in self._sessions.values():
            session.retire()
        self._sessions = {}
        self.error = None
        self.state = DiscoveryState.DISCOVERING
        self.generation += 1
        return self.generation

    def _fail(self, error: DiscoveryError) -> None:
        self._sessions = {}
        self.error = Failure.from_error(FailureKind.DISCOVERY, error)
        self.state = DiscoveryState.ERROR
        logger.warning("Discovery failed", path=error.path, error=str(error))

    async def load_binary(self, file_name: str, data: bytes) -> DiscoveryView:
        """
        Store an uploaded binary and discover its tools.

        Args:
            file_name: Original name of the uploaded file
            data: File contents

        Returns:
            Discovery snapshot after the discovery settled. If the file could
            not be stored, no binary is loaded afterwards.
        """
        generation = self._begin()

        try:
            path = await self.store.save(file_name, data)
        except (OSError, ValueError) as e:
            if generation == self.generation:
                self.binary_path = None
                self._fail(DiscoveryError(f"Failed to store binary: {e}"))
            return self.view()

        if generation != self.generation:
            logger.info("Discarding stale upload", path=str(path), generation=generation)
            return self.view()

        self.binary_path = str(path)
        return await self._discover(self.binary_path, generation)

    async def discover(self, path: str) -> DiscoveryView:
        """List the tools of the binary at ``path`` and rebuild sessions."""
        generation = self._begin()
        self.binary_path = path
        return await self._discover(path, generation)

    async def refresh(self) -> DiscoveryView:
        """Re-run discovery for the current binary, if one is loaded."""
        if self.binary_path is None:
            return self.view()
        return await self.discover(self.binary_path)

    async def _discover(self, path: str, generation: int) -> DiscoveryView:
        logger.info("Discovering tools", path=path, generation=generation)

        error: Optional[DiscoveryError] = None
        descriptors: list[ToolDescriptor] = []
        try:
            entries = await self.backend.list_tools(path)
            descriptors = parse_listing(entries)
        except Exception as e:
            error = DiscoveryError(str(e) or e.__class__.__name__, path=path)

        if generation != self.generation:
            logger.info("Discarding stale discovery", path=path, generation=generation)
            return self.view()

        if error is not None:
            self._fail(error)
            return self.view()

        self._sessions = {
            descriptor.name: ToolSession(
                descriptor,
                path,
                self.invoker,
                policy=self.policy,
                generation=generation
            )
            for descriptor in descriptors
        }
        self.state = DiscoveryState.READY

        logger.info("Tools discovered", path=path, tool_count=len(descriptors))
        return self.view()

    def view(self) -> DiscoveryView:
        """Snapshot for the presentation layer."""
        return DiscoveryView(
            state=self.state,
            binary_path=self.binary_path,
            error=self.error.message if self.error is not None else None,
            tools=[session.view() for session in self._sessions.values()],
        )
