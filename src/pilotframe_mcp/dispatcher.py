"""JSON-RPC method dispatcher for the MCP gateway.

One call to `dispatch` handles one JSON-RPC envelope from start to finish:

    awaiting_request -> handling_{initialize,list,call,resource} -> responded

Nothing is kept between calls. Every failure, expected or not, is turned into
a JSON-RPC error object here, so a transport only ever sees a response dict
(or None for notifications).
"""
import json
import logging
import traceback
from typing import Any, Awaitable, Callable, NamedTuple, Optional

from pydantic import ValidationError

from pilotframe_core.config import Settings, get_settings
from pilotframe_core.store_client import SpecificationStore, StoreError

from . import handlers
from .catalog import PERSONA_URI_SCHEME, PROJECT_URI_SCHEME, load_catalog
from .errors import (
    INVALID_REQUEST,
    RpcError,
    internal_error,
    invalid_params,
    method_not_found,
)
from .naming import (
    PERSONA_NAMESPACE,
    PERSONA_ACTION,
    WORKFLOW_NAMESPACE,
    discovery_tool_name,
    normalize_tool_name,
)
from .tools import input_schema

logger = logging.getLogger("pilotframe-mcp.dispatcher")

JSONRPC_VERSION = "2.0"


# ============================================================================
# Tool routing
# ============================================================================

class ToolRoute(NamedTuple):
    """Result of resolving a normalized tool name."""

    kind: str  # discovery | persona | workflow | project
    target_id: Optional[str]
    handler: Callable[..., Awaitable[handlers.HandlerResult]]


_PERSONA_HEAD = f"{PERSONA_NAMESPACE}_"
_PERSONA_TAIL = f"_{PERSONA_ACTION}"
_WORKFLOW_HEAD = f"{WORKFLOW_NAMESPACE}_"


def resolve_tool(normalized: str) -> Optional[ToolRoute]:
    """Route a canonical flat name; first match wins.

    Precedence: discovery tool, persona pattern, workflow pattern, fixed
    project/story tools.
    """
    if normalized == discovery_tool_name("flat"):
        return ToolRoute("discovery", None, handlers.handle_list_personas)

    if (
        normalized.startswith(_PERSONA_HEAD)
        and normalized.endswith(_PERSONA_TAIL)
        and len(normalized) > len(_PERSONA_HEAD) + len(_PERSONA_TAIL)
    ):
        persona_id = normalized[len(_PERSONA_HEAD):-len(_PERSONA_TAIL)]
        return ToolRoute("persona", persona_id, handlers.handle_get_persona_specification)

    if normalized.startswith(_WORKFLOW_HEAD) and len(normalized) > len(_WORKFLOW_HEAD):
        workflow_id = normalized[len(_WORKFLOW_HEAD):]
        return ToolRoute("workflow", workflow_id, handlers.handle_workflow)

    handler = handlers.PROJECT_HANDLERS.get(normalized)
    if handler is not None:
        return ToolRoute("project", None, handler)

    return None


async def call_tool(
    name: str,
    arguments: Optional[dict],
    store: SpecificationStore,
    settings: Optional[Settings] = None,
) -> handlers.HandlerResult:
    """Normalize, route and execute one tool call.

    Raises:
        RpcError: -32601 for an unknown tool, -32602 for bad arguments or unknown ids
    """
    settings = settings or get_settings()
    arguments = arguments or {}
    if not isinstance(arguments, dict):
        raise invalid_params("Tool arguments must be an object")

    normalized = normalize_tool_name(name, settings.client_prefixes)
    logger.info(f"Tool call: {name} (normalized: {normalized})")

    route = resolve_tool(normalized)
    if route is None:
        logger.warning(f"Unknown tool requested: {name}")
        raise method_not_found(
            f"Method not found: {name} (normalized: {normalized})",
            {"name": name, "normalized": normalized},
        )

    schema = input_schema(route.kind, normalized, route.target_id or "")
    handlers.validate_argument_types(normalized, arguments, schema)
    if route.target_id is not None:
        return await route.handler(route.target_id, arguments, store, settings.tool_naming)

    if route.kind == "project":
        handlers.validate_required(normalized, arguments)
    return await route.handler(arguments, store, settings.tool_naming)


async def read_resource(uri: str, store: SpecificationStore) -> dict:
    """Read a persona:// or project:// resource as pretty-printed JSON.

    Raises:
        RpcError: -32602 for an unknown scheme or id
    """
    if uri.startswith(PERSONA_URI_SCHEME):
        persona_id = uri[len(PERSONA_URI_SCHEME):]
        persona = await store.get_persona(persona_id) if persona_id else None
        if persona is None:
            raise invalid_params(f"Persona {persona_id} not found", {"id": persona_id})
        document = persona.model_dump(mode="json")
    elif uri.startswith(PROJECT_URI_SCHEME):
        project_id = uri[len(PROJECT_URI_SCHEME):]
        project = await store.get_project(project_id) if project_id else None
        if project is None:
            raise invalid_params(f"Project {project_id} not found", {"id": project_id})
        document = project.to_document()
    else:
        raise invalid_params(f"Resource {uri} not found", {"uri": uri})

    return {"uri": uri, "mimeType": "application/json", "text": json.dumps(document, indent=2)}


# ============================================================================
# Method handlers
# ============================================================================

async def _initialize(params: dict, store: SpecificationStore, settings: Settings) -> dict:
    client = params.get("clientInfo")
    if not isinstance(client, dict):
        client = {}
    logger.info(f"Initialize from client: {client.get('name', 'unknown')} {client.get('version', '')}".rstrip())
    return server_info(settings)


async def _ping(params: dict, store: SpecificationStore, settings: Settings) -> dict:
    return {}


async def _tools_list(params: dict, store: SpecificationStore, settings: Settings) -> dict:
    catalog = await load_catalog(store, settings.tool_naming, include_resources=False)
    return {"tools": catalog.tool_dicts()}


async def _resources_list(params: dict, store: SpecificationStore, settings: Settings) -> dict:
    catalog = await load_catalog(store, settings.tool_naming, include_tools=False)
    return {"resources": catalog.resource_dicts()}


async def _tools_call(params: dict, store: SpecificationStore, settings: Settings) -> dict:
    name = params.get("name")
    if not isinstance(name, str) or not name:
        raise invalid_params("Missing tool name")

    content, structured = await call_tool(name, params.get("arguments"), store, settings)
    result: dict[str, Any] = {
        "content": [item.model_dump(by_alias=True, exclude_none=True) for item in content],
        "isError": False,
    }
    if structured is not None:
        result["structuredContent"] = structured
    return result


async def _resources_read(params: dict, store: SpecificationStore, settings: Settings) -> dict:
    uri = params.get("uri")
    if not isinstance(uri, str) or not uri:
        raise invalid_params("Missing resource uri")
    return {"contents": [await read_resource(uri, store)]}


METHOD_HANDLERS = {
    "initialize": _initialize,
    "ping": _ping,
    "tools/list": _tools_list,
    "tools/call": _tools_call,
    "resources/list": _resources_list,
    "resources/read": _resources_read,
}


def server_info(settings: Optional[Settings] = None) -> dict:
    """Result of `initialize`: protocol version, capabilities and server identity."""
    settings = settings or get_settings()
    return {
        "protocolVersion": settings.mcp_protocol_version,
        "capabilities": {"tools": {}, "resources": {}},
        "serverInfo": {"name": settings.mcp_server_name, "version": settings.mcp_server_version},
    }


# ============================================================================
# Envelope handling
# ============================================================================

def error_response(request_id: Any, error: RpcError) -> dict:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_dict()}


async def dispatch(
    envelope: Any,
    store: SpecificationStore,
    settings: Optional[Settings] = None,
) -> Optional[dict]:
    """Handle one JSON-RPC envelope.

    Returns:
        The response envelope, or None when the envelope is a notification
    """
    settings = settings or get_settings()

    if not isinstance(envelope, dict) or not isinstance(envelope.get("method"), str):
        request_id = envelope.get("id") if isinstance(envelope, dict) else None
        return error_response(request_id, RpcError(INVALID_REQUEST, "Invalid Request"))

    method = envelope["method"]
    if "id" not in envelope:
        logger.debug(f"Notification received: {method}")
        return None

    request_id = envelope["id"]
    params = envelope.get("params")
    if params is None:
        params = {}

    try:
        if not isinstance(params, dict):
            raise invalid_params("params must be an object")
        handler = METHOD_HANDLERS.get(method)
        if handler is None:
            raise method_not_found(f"Method not found: {method}", {"method": method})
        result = await handler(params, store, settings)

    except RpcError as e:
        logger.info(f"{method} failed with {e.code}: {e.message}")
        return error_response(request_id, e)

    except StoreError as e:
        logger.error(f"Specification store failure during {method}: {e}")
        return error_response(request_id, internal_error("Internal error", str(e)))

    except ValidationError as e:
        logger.error(f"Invalid document from specification store during {method}: {e}")
        return error_response(request_id, internal_error("Internal error", str(e)))

    except Exception as e:
        logger.error(f"Unexpected error during {method}:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Error message: {str(e)}")
        logger.error(f"  Traceback:\n{traceback.format_exc()}")
        return error_response(request_id, internal_error("Internal error", str(e)))

    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}
