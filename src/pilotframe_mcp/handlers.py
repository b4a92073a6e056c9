"""MCP tool handlers shared between the HTTP gateway and the stdio server.

All handlers follow a consistent pattern:
- Accept: arguments dict, a SpecificationStore, and the advertised naming style
- Return: tuple of (list[TextContent], Optional[dict]) where the second element
  is the structuredContent of the result
- Use formatters from the formatters module for consistent output
- Raise RpcError for anything the caller got wrong (missing arguments,
  unknown ids, invalid enum values)

Handlers hold no state between calls; every call reads the store afresh.
"""
import asyncio
import enum
import logging
from typing import Optional, Type

from mcp.types import TextContent

from pilotframe_core.models import ProjectStatus, StoryStatus, CommentAuthorType, CommentType
from pilotframe_core.schemas import Project
from pilotframe_core.store_client import SpecificationStore
from pilotframe_core import story_state
from pilotframe_core.story_state import (
    StoryStateError,
    calculate_progress,
    project_story_counts,
)

from . import formatters
from .errors import invalid_params
from .execution_guide import synthesize_guide
from .naming import NamingStyle, persona_tool_name
from .tools import required_arguments

logger = logging.getLogger("pilotframe-mcp.handlers")

HandlerResult = tuple[list[TextContent], Optional[dict]]

# inputSchema "type" -> accepted Python types
_JSON_TYPES = {"string": str, "object": dict, "array": list, "boolean": bool}


# ============================================================================
# Argument helpers
# ============================================================================

def validate_required(tool_name: str, arguments: dict) -> None:
    """Check the fixed tool's declared required arguments are present and non-empty.

    Raises:
        RpcError: -32602 naming every missing argument
    """
    missing = [
        name for name in required_arguments(tool_name)
        if arguments.get(name) is None or arguments.get(name) == ""
    ]
    if missing:
        raise invalid_params(
            f"Missing required argument(s) for {tool_name}: {', '.join(missing)}",
            {"missing": missing},
        )


def validate_argument_types(tool_name: str, arguments: dict, schema: dict) -> None:
    """Check each supplied argument against the type its inputSchema declares.

    Absent and null arguments are left to validate_required.

    Raises:
        RpcError: -32602 naming the first argument of the wrong type
    """
    for name, prop in schema.get("properties", {}).items():
        value = arguments.get(name)
        expected = _JSON_TYPES.get(prop.get("type"))
        if value is None or expected is None or isinstance(value, expected):
            continue
        raise invalid_params(
            f"Invalid argument {name} for {tool_name}: expected {prop['type']}, got {type(value).__name__}",
            {"argument": name, "expected": prop["type"]},
        )


def _parse_enum(enum_cls: Type[enum.Enum], value, argument: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise invalid_params(
            f"Invalid {argument}: {value}. Must be one of: {', '.join(allowed)}",
            {"argument": argument, "allowed": allowed},
        )


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


async def _load_project(store: SpecificationStore, project_id: str) -> Project:
    project = await store.get_project(project_id)
    if project is None:
        raise invalid_params(f"Project not found: {project_id}", {"id": project_id})
    return project


def _not_found(e: StoryStateError):
    return invalid_params(str(e), {"id": e.missing_id})


async def _save_epics(store: SpecificationStore, project: Project) -> None:
    saved = await store.update_project(
        project.id, {"epics": [epic.to_document() for epic in project.epics]}
    )
    if saved is None:
        raise invalid_params(f"Project not found: {project.id}", {"id": project.id})


def _project_rollup(project: Project) -> dict:
    done, total = project_story_counts(project)
    return {
        "storyCount": total,
        "completedStories": done,
        "progressPercentage": calculate_progress(done, total),
    }


# ============================================================================
# Persona Handlers
# ============================================================================

async def handle_list_personas(
    arguments: dict,
    store: SpecificationStore,
    naming: NamingStyle = "flat",
) -> HandlerResult:
    """List personas with their tool names, optionally filtered by exact tag."""
    personas = await store.list_personas_with_specs()
    filter_tag = arguments.get("filter_by_tag")
    if filter_tag:
        personas = [p for p in personas if filter_tag in p.tags]

    entries = [
        {
            "id": p.id,
            "name": p.name,
            "tags": p.tags,
            "tool_name": persona_tool_name(p.id, naming),
        }
        for p in personas
    ]
    logger.info(f"Listed {len(entries)} personas" + (f" with tag '{filter_tag}'" if filter_tag else ""))

    body = "\n\n".join(
        formatters.format_persona_entry(p, entry["tool_name"]) for p, entry in zip(personas, entries)
    )
    text = f"Available Personas:\n\n{body}" if entries else "No personas found"
    return _text(text), {"personas": entries, "total": len(entries)}


async def handle_get_persona_specification(
    persona_id: str,
    arguments: dict,
    store: SpecificationStore,
    naming: NamingStyle = "flat",
) -> HandlerResult:
    """Return one persona's specification as working instructions.

    The optional `context` argument is accepted and ignored; the
    specification does not depend on it.
    """
    persona = await store.get_persona(persona_id)
    if persona is None:
        raise invalid_params(f"Persona not found: {persona_id}", {"id": persona_id})
    logger.info(f"Retrieved persona specification {persona_id}: {persona.name}")

    structured = {
        "persona_id": persona.id,
        "persona_name": persona.name,
        "specification": persona.specification.model_dump(mode="json"),
        "tags": persona.tags,
        "web_search_enabled": persona.web_search_enabled,
    }
    return _text(formatters.format_persona_instructions(persona)), structured


# ============================================================================
# Workflow Handlers
# ============================================================================

async def handle_workflow(
    workflow_id: str,
    arguments: dict,
    store: SpecificationStore,
    naming: NamingStyle = "flat",
) -> HandlerResult:
    """Return the execution guide for a workflow.

    Only the personas the workflow's steps reference are fetched. A step whose
    persona is missing is still rendered; the guide never fails on it.
    """
    workflow = await store.get_workflow(workflow_id)
    if workflow is None:
        raise invalid_params(f"Workflow not found: {workflow_id}", {"id": workflow_id})

    personas = await store.get_personas(step.persona_id for step in workflow.steps)
    missing = sorted({s.persona_id for s in workflow.steps} - set(personas))
    if missing:
        logger.warning(f"Workflow {workflow_id} references unknown personas: {', '.join(missing)}")

    text, structured = synthesize_guide(workflow, personas, naming)
    logger.info(f"Built execution guide for workflow {workflow_id} ({len(workflow.steps)} steps)")
    return _text(text), structured


# ============================================================================
# Project Handlers
# ============================================================================

async def handle_project_list(
    arguments: dict,
    store: SpecificationStore,
    naming: NamingStyle = "flat",
) -> HandlerResult:
    """List projects with progress.

    COMMON PATTERNS:
    • Browse → Details → Story: project_list() → project_get() → story_get()
    • Filter: project_list(status="in_development")
    """
    status = arguments.get("status")
    if status:
        status = _parse_enum(ProjectStatus, status, "status").value

    projects = await store.list_projects(status)
    logger.info(f"Successfully listed {len(projects)} projects")

    summaries = []
    for project in projects:
        document = project.to_document()
        document["progressPercentage"] = calculate_progress(project.completed_stories, project.story_count)
        summaries.append(document)

    if projects:
        items_text = "\n\n".join(formatters.format_project_summary(p) for p in projects)
        text = f"# Projects\n\n{items_text}\n\nUse `project_get` tool to get full project details."
    else:
        text = "No projects found"
    return _text(text), {"projects": summaries, "total": len(summaries)}


async def handle_project_get(
    arguments: dict,
    store: SpecificationStore,
    naming: NamingStyle = "flat",
) -> HandlerResult:
    """Get complete project details including all epics, stories, and acceptance criteria.

    Errors: -32602 (project not found)
    """
    project = await _load_project(store, arguments["projectId"])
    story_state.recompute_project(project)
    logger.info(f"Successfully retrieved project {project.id}: {project.name}")

    structured = project.to_document()
    structured.update(_project_rollup(project))
    return _text(formatters.format_project(project)), structured


# ============================================================================
# Story Handlers
# ============================================================================

async def handle_story_get(
    arguments: dict,
    store: SpecificationStore,
    naming: NamingStyle = "flat",
) -> HandlerResult:
    """Get a story with its acceptance criteria and activity log.

    Errors: -32602 (project or story not found)
    """
    project = await _load_project(store, arguments["projectId"])
    try:
        epic, story = story_state.find_story(project, arguments["storyId"])
    except StoryStateError as e:
        raise _not_found(e)
    logger.info(f"Successfully retrieved story {story.id} from project {project.id}")

    structured = story.to_document()
    structured["epicId"] = epic.id
    structured["projectId"] = project.id
    return _text(formatters.format_story(story)), structured


async def handle_story_list_by_status(
    arguments: dict,
    store: SpecificationStore,
    naming: NamingStyle = "flat",
) -> HandlerResult:
    """List stories in one status, across all projects or within one."""
    status = _parse_enum(StoryStatus, arguments["status"], "status")
    project_id = arguments.get("projectId")

    if project_id:
        projects = [await _load_project(store, project_id)]
    else:
        summaries = await store.list_projects()
        loaded = await asyncio.gather(*(store.get_project(s.id) for s in summaries))
        projects = [p for p in loaded if p is not None]

    matches = [
        (project, story)
        for project in projects
        for epic in project.epics
        for story in epic.stories
        if story.status == status
    ]
    logger.info(f"Found {len(matches)} stories with status {status.value}")

    structured = {
        "status": status.value,
        "stories": [
            {**story.to_document(), "projectId": project.id, "projectName": project.name}
            for project, story in matches
        ],
        "total": len(matches),
    }
    if not matches:
        return _text(f"No stories found with status: {status.value}"), structured

    items_text = "\n\n".join(formatters.format_story_summary(story, project.id) for project, story in matches)
    return _text(f"# Stories with status: {status.value}\n\n{items_text}"), structured


async def handle_story_update_status(
    arguments: dict,
    store: SpecificationStore,
    naming: NamingStyle = "flat",
) -> HandlerResult:
    """Update a story's status and persist the recomputed epics.

    Entering in_progress or done stamps startedAt/completedAt the first time
    only. An audit comment is appended and every epic's roll-up is recomputed.

    Errors: -32602 (invalid status, project or story not found)
    """
    new_status = _parse_enum(StoryStatus, arguments["status"], "status")
    author_type = None
    if arguments.get("authorType"):
        author_type = _parse_enum(CommentAuthorType, arguments["authorType"], "authorType")

    project = await _load_project(store, arguments["projectId"])
    try:
        story = story_state.apply_status_change(
            project,
            arguments["storyId"],
            new_status,
            arguments["updatedBy"],
            author_type=author_type,
        )
    except StoryStateError as e:
        raise _not_found(e)

    await _save_epics(store, project)
    logger.info(f"Story {story.id} status set to {new_status.value} by {arguments['updatedBy']}")

    epic, _ = story_state.find_story(project, story.id)
    structured = {
        "story": story.to_document(),
        "epic": {
            "id": epic.id,
            "status": epic.status.value,
            "completedStories": epic.completed_stories,
            "storyCount": len(epic.stories),
        },
        "project": {"id": project.id, **_project_rollup(project)},
    }
    text = (
        f"✅ Story status updated to: {new_status.value}\n\n"
        f"Story: {story.title}\n"
        f"Epic: {epic.title} ({epic.completed_stories}/{len(epic.stories)} stories done, {epic.status.value})"
    )
    return _text(text), structured


async def handle_story_add_comment(
    arguments: dict,
    store: SpecificationStore,
    naming: NamingStyle = "flat",
) -> HandlerResult:
    """Append a comment to a story.

    Errors: -32602 (invalid authorType/type, project or story not found)
    """
    author_type = _parse_enum(CommentAuthorType, arguments["authorType"], "authorType")
    comment_type = _parse_enum(CommentType, arguments.get("type") or CommentType.UPDATE.value, "type")

    project = await _load_project(store, arguments["projectId"])
    try:
        _, story = story_state.find_story(project, arguments["storyId"])
    except StoryStateError as e:
        raise _not_found(e)

    comment = story_state.add_comment(
        story,
        content=arguments["content"],
        author=arguments["author"],
        author_type=author_type,
        comment_type=comment_type,
    )
    await _save_epics(store, project)
    logger.info(f"Added {comment_type.value} comment to story {story.id} by {comment.author}")

    text = f"✅ Comment added to story: {story.title}\n\n**[{comment_type.value}]** {comment.content}"
    return _text(text), {"storyId": story.id, "comment": comment.to_document()}


async def handle_story_mark_criteria_complete(
    arguments: dict,
    store: SpecificationStore,
    naming: NamingStyle = "flat",
) -> HandlerResult:
    """Mark an acceptance criterion complete.

    Repeating the call on a completed criterion writes nothing and reports
    the original verification.

    Errors: -32602 (project, story or criteria not found)
    """
    project = await _load_project(store, arguments["projectId"])
    try:
        criteria, changed = story_state.complete_criteria(
            project,
            arguments["storyId"],
            arguments["criteriaId"],
            arguments["verifiedBy"],
            evidence=arguments.get("evidence"),
        )
    except StoryStateError as e:
        raise _not_found(e)

    if changed:
        await _save_epics(store, project)
        logger.info(f"Criteria {criteria.id} verified by {criteria.verified_by}")
        text = f"✅ Acceptance criteria marked complete: {criteria.description}"
    else:
        text = (
            f"Acceptance criteria already complete: {criteria.description}\n"
            f"Verified by {criteria.verified_by} at {criteria.verified_at}"
        )
    if criteria.evidence:
        text += f"\nEvidence: {criteria.evidence}"

    structured = {
        "storyId": arguments["storyId"],
        "criteria": criteria.to_document(),
        "alreadyComplete": not changed,
    }
    return _text(text), structured


# Fixed project/story tools, keyed by canonical (flat) name
PROJECT_HANDLERS = {
    # Project handlers
    "project_list": handle_project_list,
    "project_get": handle_project_get,
    # Story handlers
    "story_get": handle_story_get,
    "story_list_by_status": handle_story_list_by_status,
    "story_update_status": handle_story_update_status,
    "story_add_comment": handle_story_add_comment,
    "story_mark_criteria_complete": handle_story_mark_criteria_complete,
}
