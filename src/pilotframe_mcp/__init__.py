"""PilotFrame MCP - Model Context Protocol surface for personas, workflows and projects.

Modules:
- naming: tool name grammar (flat and hierarchical spellings)
- tools: MCP tool definitions
- catalog: tool and resource catalog built from live documents
- execution_guide: workflow execution guide synthesis
- formatters: Response formatting utilities
- handlers: Tool implementation handlers
- dispatcher: JSON-RPC method dispatcher shared by both transports
- server: stdio MCP server implementation
"""

__version__ = "0.2.0"

# Export shared modules for use by the HTTP gateway
from . import formatters
from . import tools
from . import handlers
from . import dispatcher

__all__ = ["formatters", "tools", "handlers", "dispatcher", "__version__"]
