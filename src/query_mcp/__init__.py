"""query-mcp - read-only SQL query tool and coding agent installer over MCP."""
