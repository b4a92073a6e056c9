"""PilotFrame MCP Server - stdio transport for local MCP clients.

Every request opens its own SpecificationStore and delegates to the same
dispatcher functions the HTTP gateway uses, so both transports expose
identical tools and resources.
"""
import sys
import asyncio
import logging
import traceback
from typing import Any, Iterable

from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.types import Resource, TextContent, Tool
from pydantic import AnyUrl

from pilotframe_core.config import get_settings
from pilotframe_core.store_client import SpecificationStore, StoreError

from . import dispatcher
from .catalog import load_catalog
from .errors import RpcError


settings = get_settings()

# Configure logging to stderr; stdout carries the MCP stream
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr,
    force=True
)
logger = logging.getLogger("pilotframe-mcp")

logger.info(f"MCP Server starting with CONTROL_PLANE_URL: {settings.control_plane_url}")
if settings.control_plane_token:
    logger.info("MCP Server configured with control plane token")
else:
    logger.info("MCP Server running without a control plane token")


# MCP Server instance
app = Server(settings.mcp_server_name, version=settings.mcp_server_version)


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List persona, workflow and project tools."""
    async with SpecificationStore.from_settings(settings) as store:
        catalog = await load_catalog(store, settings.tool_naming, include_resources=False)
    return catalog.tools


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List persona and project resources."""
    async with SpecificationStore.from_settings(settings) as store:
        catalog = await load_catalog(store, settings.tool_naming, include_tools=False)
    return [Resource(**resource.model_dump()) for resource in catalog.resources]


@app.read_resource()
async def read_resource(uri: AnyUrl) -> Iterable[ReadResourceContents]:
    """Read a persona:// or project:// resource."""
    async with SpecificationStore.from_settings(settings) as store:
        contents = await dispatcher.read_resource(str(uri), store)
    return [ReadResourceContents(content=contents["text"], mime_type=contents["mimeType"])]


@app.call_tool()
async def call_tool(name: str, arguments: Any):
    """Handle MCP tool calls by delegating to the shared dispatcher."""
    async with SpecificationStore.from_settings(settings) as store:
        try:
            content, structured = await dispatcher.call_tool(name, arguments, store, settings)
            if structured is None:
                return content
            return content, structured

        except RpcError as e:
            logger.warning(f"Tool call {name} rejected ({e.code}): {e.message}")
            return [TextContent(type="text", text=f"Error: {e.message}")]

        except StoreError as e:
            logger.error(f"Specification store failure during {name} call: {e}")
            return [TextContent(type="text", text=f"Error: {str(e)}")]

        except Exception as e:
            # Catch-all for unexpected errors
            logger.error(f"Unexpected error during {name} call:")
            logger.error(f"  Error type: {type(e).__name__}")
            logger.error(f"  Error message: {str(e)}")
            logger.error(f"  Arguments: {arguments}")
            logger.error(f"  Traceback:\n{traceback.format_exc()}")
            return [TextContent(type="text", text=f"Error: {type(e).__name__}: {str(e)}")]


async def run():
    """Run the MCP server over stdio."""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
