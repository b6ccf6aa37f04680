"""
Alfred - MCP Server Entry Point
Run this file to start the MCP server for Alfred's booking tools
"""

from alfred.mcp_server import mcp

if __name__ == "__main__":
    # Start the MCP server with streamable HTTP transport
    print("🚀 Starting Alfred MCP Server at http://localhost:8000/mcp")
    mcp.run(transport="streamable-http")
