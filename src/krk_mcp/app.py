"""MCP application instance.

This module exists to avoid circular import issues when running with `python -m`.
All tool modules should import `mcp` from here, not from server.py.
"""

from mcp.server.fastmcp import FastMCP

# Initialize the MCP server
mcp = FastMCP(
    "Kraków Transit",
    instructions=(
        "Kraków public transport trip planning - walking, bus, tram and train routes, "
        "nearby stops, stop name resolution and place search"
    ),
)
