"""
MCP Server for Tiered Traffic Policy Expansion

This module implements the main MCP (Model Context Protocol) server that provides
LLMs with tools to expand tiered traffic policies into per-tier firewall rules.
Policies describe network tiers (security groups, subnet groups, CIDR blocks,
prefix lists) and shorthand traffic rules between them; the server expands
them into AWS security group rules or network ACL rules and renders Terraform.

The server runs locally and communicates with LLM clients via stdio (standard input/output).
Logging goes to stderr (and optionally a rotating log file) so it never mixes with the protocol stream.

Architecture:
    LLM Client (stdio) <-> MCP Server <-> Policy engine (YAML in, rules/Terraform out)

Configuration (environment variables):
    TIERPOLICY_LOG_LEVEL     - Log level (default INFO)
    TIERPOLICY_LOG_FILE      - Optional rotating log file
    TIERPOLICY_TEMPLATES_DIR - Override the bundled Terraform templates

Usage:
    Run this module directly to start the MCP server:
        python server.py

    Or configure it in your MCP client (Claude Desktop, Cursor, etc.)
"""

import asyncio
import logging
import sys
import traceback
from pathlib import Path

# Add the project directory to Python path so imports work correctly
# when the server is started from another working directory
_server_dir = Path(__file__).parent.absolute()
if str(_server_dir) not in sys.path:
    sys.path.insert(0, str(_server_dir))

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from tierpolicy.logging_config import setup_logging
from tierpolicy.tools.policy_tools import get_policy_tools, handle_tool_call

logger = logging.getLogger(__name__)


# Create MCP server instance with unique identifier
server = Server("tierpolicy-mcp")


@server.list_tools()
async def handle_list_tools() -> list[Tool]:
    """
    Handle tool listing requests from MCP clients.

    Returns:
        list[Tool]: Policy loading, querying, rendering and CIDR tools
    """
    return get_policy_tools()


@server.call_tool()
async def handle_call_tool(name: str, arguments: dict) -> list[TextContent]:
    """
    Handle tool execution requests from MCP clients.

    Args:
        name: Name of the tool to execute (e.g., "load_policy", "query_rules")
        arguments: Dictionary of arguments for the tool call

    Returns:
        list[TextContent]: JSON response (errors are returned as {"error": ...})
    """
    logger.debug("Tool call: %s", name)
    return await handle_tool_call(name, arguments)


async def main():
    """
    Main entry point for the MCP server.

    Sets up stdio communication channels and runs the server until the
    client disconnects or the process is terminated.
    """
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


if __name__ == "__main__":
    setup_logging()
    try:
        asyncio.run(main())
    except Exception as e:
        print(f"Error running MCP server: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        sys.exit(1)
