"""MCP gateway endpoints: JSON-RPC over HTTP plus a plain-GET discovery surface."""
import json
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from pilotframe_mcp import dispatcher
from pilotframe_mcp.catalog import load_catalog
from pilotframe_mcp.errors import PARSE_ERROR, RpcError

from ...config import Settings, get_settings
from ...store_client import SpecificationStore
from ..dependencies import get_store

logger = logging.getLogger("pilotframe-core.mcp")

router = APIRouter(tags=["mcp"])


@router.post("")
async def handle_rpc(
    request: Request,
    store: SpecificationStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    JSON-RPC 2.0 endpoint.

    - **initialize**, **ping**
    - **tools/list**, **tools/call**
    - **resources/list**, **resources/read**

    Errors are always returned as JSON-RPC error objects with HTTP 200.
    Notifications are acknowledged with 202 and no body.
    """
    raw = await request.body()
    try:
        envelope = json.loads(raw)
    except ValueError as e:
        logger.warning(f"Unparseable JSON-RPC request: {e}")
        return JSONResponse(dispatcher.error_response(None, RpcError(PARSE_ERROR, "Parse error")))

    response = await dispatcher.dispatch(envelope, store, settings)
    if response is None:
        return Response(status_code=202)
    return JSONResponse(response)


@router.get("")
def server_description(settings: Settings = Depends(get_settings)):
    """MCP server information (for testing/debugging)."""
    return {
        "name": settings.mcp_server_name,
        "version": settings.mcp_server_version,
        "protocolVersion": settings.mcp_protocol_version,
        "description": "PilotFrame MCP server exposing personas, workflows, and project management",
        "protocol": "HTTP/JSON-RPC",
        "toolNaming": settings.tool_naming,
        "endpoints": {
            "mcp": "POST /mcp",
            "tools": "GET /mcp/tools",
            "resources": "GET /mcp/resources",
        },
        "features": {
            "personas": "Load and execute AI personas",
            "workflows": "Multi-step persona orchestration",
            "projects": "Project backlog management and story tracking",
        },
    }


@router.get("/tools")
async def list_tools(
    store: SpecificationStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """List all available MCP tools (for testing/debugging)."""
    catalog = await load_catalog(store, settings.tool_naming, include_resources=False)
    return {"tools": catalog.tool_dicts(), "unavailable": catalog.unavailable}


@router.get("/resources")
async def list_resources(
    store: SpecificationStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """List all available MCP resources (for testing/debugging)."""
    catalog = await load_catalog(store, settings.tool_naming, include_tools=False)
    return {"resources": catalog.resource_dicts(), "unavailable": catalog.unavailable}
