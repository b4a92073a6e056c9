"""MCP tool definitions for PilotFrame.

Tool descriptors are shared by the HTTP gateway and the stdio server so both
transports expose identical tools. Persona and workflow tools are generated
per document; the project/story tools are a fixed set.
"""
from mcp.types import Tool

from .naming import (
    NamingStyle,
    discovery_tool_name,
    persona_tool_name,
    workflow_tool_name,
    fixed_tool_name,
)

STORY_STATUSES = ["draft", "ready", "in_progress", "review", "blocked", "done"]
PROJECT_STATUSES = ["draft", "published", "in_development", "completed", "archived"]

# Canonical (flat) names of the fixed project/story tools
PROJECT_TOOL_NAMES = (
    "project_list",
    "project_get",
    "story_get",
    "story_list_by_status",
    "story_update_status",
    "story_add_comment",
    "story_mark_criteria_complete",
)


def discovery_tool(style: NamingStyle = "flat") -> Tool:
    return Tool(
        name=discovery_tool_name(style),
        description="List all available personas with their IDs, names, and tags. "
                    "Useful for discovering which personas you can use.",
        inputSchema={
            "type": "object",
            "properties": {
                "filter_by_tag": {
                    "type": "string",
                    "description": "Optional tag to filter personas (e.g., \"seo\", \"content\")"
                }
            }
        }
    )


def persona_tool(persona_id: str, persona_name: str, style: NamingStyle = "flat") -> Tool:
    return Tool(
        name=persona_tool_name(persona_id, style),
        description=f"Get the specification and instructions for persona: {persona_name}. "
                    "Use this to understand how to work as this persona.",
        inputSchema={
            "type": "object",
            "properties": {
                "context": {
                    "type": "string",
                    "description": "Optional context or input for the persona to consider"
                }
            }
        }
    )


def workflow_tool(workflow_id: str, workflow_name: str, style: NamingStyle = "flat") -> Tool:
    return Tool(
        name=workflow_tool_name(workflow_id, style),
        description=f"Get the complete workflow definition and execution guide for: {workflow_name}. "
                    "This includes detailed instructions on what each persona does, how they communicate, "
                    "execution order, and data flow.",
        inputSchema={
            "type": "object",
            "properties": {
                "input": {
                    "type": "object",
                    "description": "Optional context or input for the workflow"
                }
            }
        }
    )


def get_project_tools(style: NamingStyle = "flat") -> list[Tool]:
    """Get the fixed project/story management tools."""
    tools = [
        # ============================================================================
        # Project Tools
        # ============================================================================
        Tool(
            name="project_list",
            description="List all projects with optional status filter. "
                        "Returns project summaries with progress information. "
                        "Common pattern: project_list() → project_get(projectId=...) → story_get().",
            inputSchema={
                "type": "object",
                "properties": {
                    "status": {
                        "type": "string",
                        "enum": PROJECT_STATUSES,
                        "description": "Filter projects by status"
                    }
                }
            }
        ),
        Tool(
            name="project_get",
            description="Get complete project details including all epics, stories, and acceptance criteria. "
                        "Errors: invalid params (project not found).",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectId": {
                        "type": "string",
                        "description": "Project ID"
                    }
                },
                "required": ["projectId"]
            }
        ),
        # ============================================================================
        # Story Tools
        # ============================================================================
        Tool(
            name="story_get",
            description="Get a specific story with full details including acceptance criteria and comments.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectId": {
                        "type": "string",
                        "description": "Project ID"
                    },
                    "storyId": {
                        "type": "string",
                        "description": "Story ID"
                    }
                },
                "required": ["projectId", "storyId"]
            }
        ),
        Tool(
            name="story_list_by_status",
            description="List all stories filtered by status. Use this to find stories that are ready to work on.",
            inputSchema={
                "type": "object",
                "properties": {
                    "status": {
                        "type": "string",
                        "enum": STORY_STATUSES,
                        "description": "Story status to filter by"
                    },
                    "projectId": {
                        "type": "string",
                        "description": "Optional: limit to specific project"
                    }
                },
                "required": ["status"]
            }
        ),
        Tool(
            name="story_update_status",
            description="Update the status of a story. Use this to track progress as you work on stories. "
                        "Entering in_progress or done stamps the story's start/completion time once, "
                        "an audit comment is added, and the epic's progress is recalculated.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectId": {
                        "type": "string",
                        "description": "Project ID"
                    },
                    "storyId": {
                        "type": "string",
                        "description": "Story ID"
                    },
                    "status": {
                        "type": "string",
                        "enum": STORY_STATUSES,
                        "description": "New status"
                    },
                    "updatedBy": {
                        "type": "string",
                        "description": "Your persona or agent identifier"
                    },
                    "authorType": {
                        "type": "string",
                        "enum": ["user", "persona", "agent"],
                        "description": "Optional: type of the updater for the audit comment "
                                       "(inferred from updatedBy when omitted)"
                    }
                },
                "required": ["projectId", "storyId", "status", "updatedBy"]
            }
        ),
        Tool(
            name="story_add_comment",
            description="Add a comment to a story. Use this to log updates, decisions, or questions.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectId": {
                        "type": "string",
                        "description": "Project ID"
                    },
                    "storyId": {
                        "type": "string",
                        "description": "Story ID"
                    },
                    "content": {
                        "type": "string",
                        "description": "Comment text (markdown supported)"
                    },
                    "author": {
                        "type": "string",
                        "description": "Your persona or agent identifier"
                    },
                    "authorType": {
                        "type": "string",
                        "enum": ["user", "persona", "agent"],
                        "description": "Type of author"
                    },
                    "type": {
                        "type": "string",
                        "enum": ["update", "question", "decision", "blocker", "note"],
                        "description": "Comment type",
                        "default": "update"
                    }
                },
                "required": ["projectId", "storyId", "content", "author", "authorType"]
            }
        ),
        Tool(
            name="story_mark_criteria_complete",
            description="Mark an acceptance criteria as complete with verification details. "
                        "Completion is one-way: a verified criteria cannot be reopened, "
                        "and repeating the call keeps the original verification.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectId": {
                        "type": "string",
                        "description": "Project ID"
                    },
                    "storyId": {
                        "type": "string",
                        "description": "Story ID"
                    },
                    "criteriaId": {
                        "type": "string",
                        "description": "Acceptance criteria ID"
                    },
                    "verifiedBy": {
                        "type": "string",
                        "description": "Your persona or agent identifier"
                    },
                    "evidence": {
                        "type": "string",
                        "description": "Optional: How the criteria was verified or evidence of completion"
                    }
                },
                "required": ["projectId", "storyId", "criteriaId", "verifiedBy"]
            }
        ),
    ]
    if style != "flat":
        tools = [t.model_copy(update={"name": fixed_tool_name(t.name, style)}) for t in tools]
    return tools


def input_schema(kind: str, flat_name: str, target_id: str = "") -> dict:
    """inputSchema of the tool a call was routed to.

    Persona and workflow schemas are the same for every document, so the
    target id only fills in the tool name.
    """
    if kind == "discovery":
        return discovery_tool().inputSchema
    if kind == "persona":
        return persona_tool(target_id, target_id).inputSchema
    if kind == "workflow":
        return workflow_tool(target_id, target_id).inputSchema
    for tool in get_project_tools():
        if tool.name == flat_name:
            return tool.inputSchema
    return {}


def required_arguments(flat_name: str) -> list[str]:
    """Required argument names declared by a fixed tool's inputSchema."""
    return list(input_schema("project", flat_name).get("required", []))
