"""Business logic shared by the REST routers and MCP tools."""
