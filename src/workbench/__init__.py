"""Workbench - interactive tool sessions.

Derives forms from tool schemas, tracks per-tool invocation state, and
exposes discovery and tool views through a FastAPI application.
"""

from workbench.discovery import DiscoverySession
from workbench.form import SchemaFormModel
from workbench.tool_session import ToolSession

__all__ = [
    "DiscoverySession",
    "SchemaFormModel",
    "ToolSession",
]
