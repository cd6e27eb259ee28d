"""Process entry points: web server, MCP stdio server and one-shot CLI analysis."""
