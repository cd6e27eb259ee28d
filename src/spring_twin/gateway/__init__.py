"""Tool gateway: typed manifest and dispatch for external callers."""

from .gateway import (
    INTERNAL_ERROR,
    INVALID_ARGUMENTS,
    PERMISSION_DENIED,
    UNKNOWN_TOOL,
    ToolError,
    ToolGateway,
    ToolResponse,
)
from .tool_definitions import TOOL_DEFINITIONS, ToolDefinition, find_tool, get_tool_definitions

__all__ = [
    "INTERNAL_ERROR",
    "INVALID_ARGUMENTS",
    "PERMISSION_DENIED",
    "UNKNOWN_TOOL",
    "TOOL_DEFINITIONS",
    "ToolDefinition",
    "ToolError",
    "ToolGateway",
    "ToolResponse",
    "find_tool",
    "get_tool_definitions",
]
