"""Shared formatting functions for MCP responses.

This module provides consistent markdown for both the HTTP gateway and the stdio server.
"""
import json

from pilotframe_core.schemas import PersonaSpec, Project, ProjectSummary, Story
from pilotframe_core.story_state import calculate_progress, project_story_counts


def format_persona_entry(persona: PersonaSpec, tool_name: str) -> str:
    """Format a persona as a discovery list entry."""
    tags = ", ".join(persona.tags) or "none"
    return f"""- **{persona.name}** ({persona.id})
  Tags: {tags}
  Tool: `{tool_name}`"""


def format_persona_instructions(persona: PersonaSpec) -> str:
    """Format a persona's specification as working instructions."""
    spec_text = json.dumps(persona.specification.model_dump(mode="json"), indent=2)
    text = f"# Persona: {persona.name}\n\n## Specification\n\n{spec_text}\n\n"

    if persona.web_search_enabled:
        text += (
            "## Web Search Capability\n\n"
            "**IMPORTANT**: This persona has web search enabled. When executing tasks as this persona:\n\n"
            "- Use web search to gather current, real-time information when needed\n"
            "- Verify facts, statistics, and claims using web search\n"
            "- Look up recent developments, trends, or updates relevant to the task\n"
            "- Cross-reference information from multiple sources when accuracy is critical\n"
            "- Cite sources when providing information gathered from web search\n\n"
            "Web search should be used proactively to ensure the information you provide "
            "is accurate, current, and well-researched.\n\n"
        )

    return text + "Use this specification to guide your actions when working as this persona."


def format_project_summary(summary: ProjectSummary) -> str:
    """Format a project summary for list views."""
    progress = calculate_progress(summary.completed_stories, summary.story_count)
    created = (summary.created_at or "unknown")[:10]
    return f"""**{summary.name}** ({summary.id})
  Status: {summary.status.value}
  Type: {summary.project_type or 'unspecified'}
  Progress: {progress}% ({summary.completed_stories}/{summary.story_count} stories)
  Epics: {summary.epic_count}
  Created: {created}"""


def format_project(project: Project) -> str:
    """Format a project with its full epic/story/criteria tree."""
    done, total = project_story_counts(project)
    lines = [
        f"# {project.name}",
        "",
        project.description,
        "",
        f"**Status**: {project.status.value}",
        f"**Type**: {project.project_type or 'unspecified'}",
        f"**Complexity**: {project.estimated_complexity or 'unknown'}",
        f"**Progress**: {calculate_progress(done, total)}% ({done}/{total} stories)",
    ]
    if project.workflow_id:
        lines.append(f"**Workflow**: {project.workflow_id}")
    lines += ["", "## Epics", ""]

    for epic_index, epic in enumerate(project.epics, start=1):
        lines += [
            f"### Epic {epic_index}: {epic.title} ({epic.status.value})",
            "",
            epic.description,
            "",
            f"**Priority**: {epic.priority.value} | "
            f"**Stories**: {len(epic.stories)} ({epic.completed_stories} done)",
            "",
            "#### Stories:",
            "",
        ]
        for story_index, story in enumerate(epic.stories, start=1):
            lines += [
                f"##### {epic_index}.{story_index}. {story.title} [{story.status.value}]",
                "",
                f"ID: `{story.id}`",
                "",
                story.description,
                "",
            ]
            if story.assigned_personas:
                lines += [f"**Assigned Personas**: {', '.join(story.assigned_personas)}", ""]
            lines += ["**Acceptance Criteria**:", ""]
            for criteria_index, criteria in enumerate(story.acceptance_criteria, start=1):
                mark = "✓" if criteria.completed else "○"
                lines.append(f"{mark} {criteria_index}. {criteria.description} (`{criteria.id}`)")
                if criteria.completed and criteria.verified_by:
                    lines.append(f"   Verified by: {criteria.verified_by}")
                    if criteria.evidence:
                        lines.append(f"   Evidence: {criteria.evidence}")
            lines.append("")

    lines += [
        "",
        "---",
        "",
        "To work on stories, use:",
        "- `story_get` to get story details",
        "- `story_update_status` to update story progress",
        "- `story_add_comment` to log updates",
        "- `story_mark_criteria_complete` to mark acceptance criteria done",
    ]
    return "\n".join(lines) + "\n"


def format_story(story: Story) -> str:
    """Format a story with criteria and activity log."""
    lines = [
        f"# {story.title}",
        "",
        f"ID: `{story.id}`",
        f"**Status**: {story.status.value}",
        f"**Priority**: {story.priority.value}",
    ]
    if story.assigned_personas:
        lines.append(f"**Assigned Personas**: {', '.join(story.assigned_personas)}")
    if story.tags:
        lines.append(f"**Tags**: {', '.join(story.tags)}")
    lines += ["", "## Description", "", story.description, "", "## Acceptance Criteria", ""]

    for index, criteria in enumerate(story.acceptance_criteria, start=1):
        mark = "✅" if criteria.completed else "⬜"
        blocking = " (blocking)" if criteria.is_blocking else ""
        lines.append(f"{mark} {index}. {criteria.description}{blocking} (`{criteria.id}`)")
        if criteria.completed and criteria.verified_by:
            lines.append(f"   Verified by: {criteria.verified_by} at {criteria.verified_at}")
            if criteria.evidence:
                lines.append(f"   Evidence: {criteria.evidence}")

    if story.comments:
        lines += ["", "## Activity Log", ""]
        for comment in story.comments:
            lines.append(
                f"**[{comment.type.value}]** {comment.author} "
                f"({comment.author_type.value}) - {comment.created_at}"
            )
            lines += [comment.content, ""]

    return "\n".join(lines) + "\n"


def format_story_summary(story: Story, project_id: str) -> str:
    """Format a story as a compact entry for list views."""
    done = sum(1 for c in story.acceptance_criteria if c.completed)
    return f"""**{story.title}** ({story.id})
  Project: {project_id}
  Status: {story.status.value}
  Priority: {story.priority.value}
  Assigned: {', '.join(story.assigned_personas) or 'none'}
  Acceptance Criteria: {done}/{len(story.acceptance_criteria)} complete"""
