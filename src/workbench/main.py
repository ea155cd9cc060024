"""Workbench - FastAPI Application.

The presentation boundary of the tool runner:
- Upload an MCP binary and discover its tools
- Read discovery and per-tool view state
- Edit tool fields and submit invocations
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from shared.config import get_settings
from shared.errors import FormContractError
from shared.logging import get_logger, setup_logging
from shared.models import ControlKind, DiscoveryView, ToolView
from mcp_bridge.stdio import StdioToolBackend
from mcp_bridge.storage import BinaryStore
from workbench.discovery import DiscoverySession
from workbench.tool_session import ToolSession

logger = get_logger(__name__)


class FieldEdit(BaseModel):
    """A single field edit from an input control."""
    value: Any = Field(default=None, description="Text, number or checkbox state")
    source_type: Optional[ControlKind] = Field(
        default=None,
        description="Control the edit came from; defaults to the field's own"
    )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    discovery: str
    tool_count: int


# Global instances
_discovery: Optional[DiscoverySession] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    global _discovery

    settings = get_settings()
    setup_logging(settings.log_level, json_output=settings.environment == "production")

    logger.info("Starting Workbench", data_dir=str(settings.storage.data_dir))

    _discovery = DiscoverySession(
        backend=StdioToolBackend(settings.backend),
        store=BinaryStore(settings.storage.data_dir),
        policy=settings.form.unknown_type_policy,
    )

    yield

    logger.info("Shutting down Workbench")
    _discovery = None


app = FastAPI(
    title="MCP Tool Runner",
    description="Load an MCP binary, discover its tools and invoke them",
    version="0.1.0",
    lifespan=lifespan
)


def get_discovery() -> DiscoverySession:
    """Dependency returning the application's discovery session."""
    if _discovery is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Workbench not initialized"
        )
    return _discovery


def get_tool_session(
    name: str,
    discovery: DiscoverySession = Depends(get_discovery)
) -> ToolSession:
    """Dependency resolving a discovered tool by name."""
    try:
        return discovery.session(name)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tool '{name}' not found"
        )


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(discovery: DiscoverySession = Depends(get_discovery)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        discovery=discovery.state.value,
        tool_count=len(discovery.sessions)
    )


@app.post("/binary", response_model=DiscoveryView, tags=["Discovery"])
async def upload_binary(
    file: UploadFile = File(...),
    discovery: DiscoverySession = Depends(get_discovery)
):
    """Store an uploaded MCP binary and discover its tools."""
    data = await file.read()
    return await discovery.load_binary(file.filename or "", data)


@app.post("/discovery/refresh", response_model=DiscoveryView, tags=["Discovery"])
async def refresh_discovery(discovery: DiscoverySession = Depends(get_discovery)):
    """Re-run discovery against the loaded binary."""
    return await discovery.refresh()


@app.get("/discovery", response_model=DiscoveryView, tags=["Discovery"])
async def get_discovery_view(discovery: DiscoverySession = Depends(get_discovery)):
    """Current discovery state and tools."""
    return discovery.view()


@app.get("/tools/{name}", response_model=ToolView, tags=["Tools"])
async def get_tool(session: ToolSession = Depends(get_tool_session)):
    """Current view state of one tool."""
    return session.view()


@app.put("/tools/{name}/fields/{field}", response_model=ToolView, tags=["Tools"])
async def set_field(
    field: str,
    edit: FieldEdit,
    session: ToolSession = Depends(get_tool_session)
):
    """Edit one field of a tool form."""
    try:
        session.set_field(field, edit.value, edit.source_type)
    except FormContractError as e:
        raise HTTPException(
            status_code=422,
            detail=str(e)
        )
    return session.view()


@app.post("/tools/{name}/submit", response_model=ToolView, tags=["Tools"])
async def submit_tool(session: ToolSession = Depends(get_tool_session)):
    """
    Submit the tool form.

    A submit while a call is already in flight is ignored and the current
    (loading) view is returned.
    """
    await session.submit()
    return session.view()


def main():
    """Run the Workbench server."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "workbench.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.environment == "development"
    )


if __name__ == "__main__":
    main()
