"""Tool naming grammar.

Two spellings of every tool name are accepted:

- flat:          persona_list, persona_<id>_get_specification, workflow_<id>,
                 project_get, story_update_status, ...
- hierarchical:  persona.list, persona.<id>.get_specification, workflow.<id>,
                 project.get, story.update_status, ...

Client bridges may also prepend their own prefix (e.g. "mcp_pilotframe_").
`normalize_tool_name` strips those prefixes and maps either spelling to the
flat form, which is the single key handlers are registered under.
"""
from typing import Iterable, Literal, Optional

NamingStyle = Literal["flat", "hierarchical"]

PERSONA_NAMESPACE = "persona"
WORKFLOW_NAMESPACE = "workflow"
PERSONA_ACTION = "get_specification"
DISCOVERY_ACTION = "list"

# Namespaces whose hierarchical names convert by swapping the first dot
_SIMPLE_NAMESPACES = ("project", "story")

DEFAULT_CLIENT_PREFIXES = ("mcp__pilotframe__", "mcp_pilotframe_", "mcp_")


def discovery_tool_name(style: NamingStyle = "flat") -> str:
    if style == "hierarchical":
        return f"{PERSONA_NAMESPACE}.{DISCOVERY_ACTION}"
    return f"{PERSONA_NAMESPACE}_{DISCOVERY_ACTION}"


def persona_tool_name(persona_id: str, style: NamingStyle = "flat") -> str:
    if style == "hierarchical":
        return f"{PERSONA_NAMESPACE}.{persona_id}.{PERSONA_ACTION}"
    return f"{PERSONA_NAMESPACE}_{persona_id}_{PERSONA_ACTION}"


def workflow_tool_name(workflow_id: str, style: NamingStyle = "flat") -> str:
    if style == "hierarchical":
        return f"{WORKFLOW_NAMESPACE}.{workflow_id}"
    return f"{WORKFLOW_NAMESPACE}_{workflow_id}"


def fixed_tool_name(flat_name: str, style: NamingStyle = "flat") -> str:
    """Spell a project/story tool name (given flat) in the requested style."""
    if style == "hierarchical":
        return flat_name.replace("_", ".", 1)
    return flat_name


def strip_client_prefix(name: str, prefixes: Optional[Iterable[str]] = None) -> str:
    """Remove bridge-added prefixes, each at most once, in the given order."""
    for prefix in prefixes if prefixes is not None else DEFAULT_CLIENT_PREFIXES:
        if prefix and name.startswith(prefix):
            name = name[len(prefix):]
    return name


def _to_flat(name: str) -> str:
    discovery = f"{PERSONA_NAMESPACE}.{DISCOVERY_ACTION}"
    if name == discovery:
        return discovery_tool_name("flat")

    persona_head = f"{PERSONA_NAMESPACE}."
    persona_tail = f".{PERSONA_ACTION}"
    if (
        name.startswith(persona_head)
        and name.endswith(persona_tail)
        and len(name) > len(persona_head) + len(persona_tail)
    ):
        persona_id = name[len(persona_head):-len(persona_tail)]
        return persona_tool_name(persona_id, "flat")

    workflow_head = f"{WORKFLOW_NAMESPACE}."
    if name.startswith(workflow_head) and len(name) > len(workflow_head):
        return workflow_tool_name(name[len(workflow_head):], "flat")

    for namespace in _SIMPLE_NAMESPACES:
        if name.startswith(f"{namespace}."):
            return name.replace(".", "_", 1)

    return name


def normalize_tool_name(name: str, prefixes: Optional[Iterable[str]] = None) -> str:
    """Map any accepted external spelling to the canonical flat tool name.

    Names that match no known grammar are returned prefix-stripped but
    otherwise unchanged, so the caller can report them.
    """
    return _to_flat(strip_client_prefix(name.strip(), prefixes))
