"""FastAPI application for the PilotFrame MCP gateway."""
