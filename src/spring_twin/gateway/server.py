"""
MCP server exposing the tool gateway over stdio (official MCP SDK).

Tools are listed from the gateway manifest; every call returns the
gateway's ToolResponse as JSON text content.
"""

import json
from typing import Any, Dict, List, Sequence

from loguru import logger
from mcp.server import Server
from mcp.types import TextContent, Tool

from spring_twin import __version__

from .gateway import ToolGateway

SERVER_NAME = "spring-twin"


def build_server(gateway: ToolGateway) -> Server:
    """Create an MCP server bound to ``gateway``."""
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def handle_list_tools() -> List[Tool]:
        return [
            Tool(name=tool.name, description=tool.description, inputSchema=tool.parameter_schema())
            for tool in gateway.tools()
        ]

    @server.call_tool()
    async def handle_call_tool(name: str, arguments: Dict[str, Any]) -> Sequence[TextContent]:
        response = await gateway.call(name, arguments)
        if not response.success:
            logger.info(f"Tool '{name}' returned {response.error.code}")
        return [TextContent(type="text", text=json.dumps(response.model_dump(), indent=2, sort_keys=True))]

    return server


async def serve_stdio(gateway: ToolGateway) -> None:
    """Run the MCP server on stdin/stdout until the client disconnects"""
    from mcp.server.stdio import stdio_server

    server = build_server(gateway)
    logger.info("=" * 70)
    logger.info(f"MCP Server: {server.name} v{__version__}")
    logger.info("Transport: stdio")
    logger.info(f"Tools: {', '.join(tool.name for tool in gateway.tools())}")
    logger.info("=" * 70)

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
