"""MCP tool service."""
