"""API routers for the PilotFrame gateway."""

from . import health, mcp

__all__ = ["health", "mcp"]
