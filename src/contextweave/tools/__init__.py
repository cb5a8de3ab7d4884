"""Tool-server integrations for contextweave."""

from .mcp_manager import MCPManager

__all__ = ["MCPManager"]
