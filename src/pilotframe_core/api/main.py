"""PilotFrame MCP gateway - FastAPI application."""
import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import get_settings
from .routers import health, mcp

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("pilotframe-core")

logger.info(f"Starting PilotFrame MCP gateway (store: {settings.control_plane_url})")

# Create FastAPI app
app = FastAPI(
    title="PilotFrame MCP Gateway",
    description="MCP protocol gateway for personas, workflows and project backlogs",
    version=settings.mcp_server_version,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(mcp.router, prefix="/mcp")
app.include_router(health.router)


@app.get("/")
def root():
    """Root endpoint with server info."""
    return {
        "name": "PilotFrame MCP Gateway",
        "version": settings.mcp_server_version,
        "mcp": "/mcp",
        "docs": "/docs",
    }


def run():
    """Serve the gateway with uvicorn."""
    uvicorn.run(app, host=settings.gateway_host, port=settings.gateway_port)
