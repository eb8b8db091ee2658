"""MCP (Model Context Protocol) configuration for lens-cli."""

from lens_cli.mcp.config import MCPConfig, MCPServerConfig

__all__ = ["MCPConfig", "MCPServerConfig"]
