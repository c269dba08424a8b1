"""Database models, session handling and reference data shared by the API and MCP service."""
