"""Catalog builder: tool and resource descriptors derived from live documents.

`build_tools` and `build_resources` are pure functions of the documents they
receive. `load_catalog` fetches those documents from the store for one request;
a family whose fetch fails is left out (and logged) instead of failing the
whole catalog, so an unavailable workflow or project listing never hides the
persona tools.
"""
import logging
from typing import Sequence

from mcp.types import Tool
from pydantic import BaseModel, Field, ValidationError

from pilotframe_core.schemas import (
    PersonaSummary,
    WorkflowSummary,
    ProjectSummary,
    ResourceDescriptor,
)
from pilotframe_core.store_client import SpecificationStore, StoreError
from pilotframe_core.story_state import calculate_progress

from . import tools
from .naming import NamingStyle

logger = logging.getLogger("pilotframe-mcp.catalog")

PERSONA_URI_SCHEME = "persona://"
PROJECT_URI_SCHEME = "project://"


class Catalog(BaseModel):
    """Tools and resources available for one request."""

    tools: list[Tool] = Field(default_factory=list)
    resources: list[ResourceDescriptor] = Field(default_factory=list)
    unavailable: list[str] = Field(default_factory=list)  # document families that failed to load

    def tool_dicts(self) -> list[dict]:
        return [tool.model_dump(by_alias=True, exclude_none=True) for tool in self.tools]

    def resource_dicts(self) -> list[dict]:
        return [resource.model_dump() for resource in self.resources]


def _unique_by_id(items: Sequence, family: str) -> list:
    seen: set[str] = set()
    unique = []
    for item in items:
        if item.id in seen:
            logger.warning(f"Duplicate {family} id '{item.id}' skipped in catalog")
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


def build_tools(
    personas: Sequence[PersonaSummary],
    workflows: Sequence[WorkflowSummary],
    style: NamingStyle = "flat",
) -> list[Tool]:
    """Discovery tool, one tool per persona, one per workflow, then the fixed project tools."""
    result = [tools.discovery_tool(style)]
    result.extend(tools.persona_tool(p.id, p.name, style) for p in _unique_by_id(personas, "persona"))
    result.extend(tools.workflow_tool(w.id, w.name, style) for w in _unique_by_id(workflows, "workflow"))
    result.extend(tools.get_project_tools(style))
    return result


def persona_resource(persona: PersonaSummary) -> ResourceDescriptor:
    return ResourceDescriptor(
        uri=f"{PERSONA_URI_SCHEME}{persona.id}",
        name=persona.name,
        description=f"Persona specification for {persona.name}",
    )


def project_resource(project: ProjectSummary) -> ResourceDescriptor:
    progress = calculate_progress(project.completed_stories, project.story_count)
    return ResourceDescriptor(
        uri=f"{PROJECT_URI_SCHEME}{project.id}",
        name=project.name,
        description=f"Project: {project.name} ({project.status.value}, {progress}% complete)",
    )


def build_resources(
    personas: Sequence[PersonaSummary],
    projects: Sequence[ProjectSummary],
) -> list[ResourceDescriptor]:
    """One resource per persona and one per project."""
    result = [persona_resource(p) for p in _unique_by_id(personas, "persona")]
    result.extend(project_resource(p) for p in _unique_by_id(projects, "project"))
    return result


async def _fetch_family(family: str, fetch, unavailable: list[str]) -> list:
    try:
        return await fetch()
    except (StoreError, ValidationError) as e:
        logger.warning(f"Could not load {family} for catalog, omitting them: {e}")
        unavailable.append(family)
        return []


async def load_catalog(
    store: SpecificationStore,
    style: NamingStyle = "flat",
    include_tools: bool = True,
    include_resources: bool = True,
) -> Catalog:
    """Fetch the documents the catalog needs and build it, degrading per family."""
    unavailable: list[str] = []
    personas = await _fetch_family("personas", store.list_personas, unavailable)

    tool_list: list[Tool] = []
    resource_list: list[ResourceDescriptor] = []
    if include_tools:
        workflows = await _fetch_family("workflows", store.list_workflows, unavailable)
        tool_list = build_tools(personas, workflows, style)
    if include_resources:
        projects = await _fetch_family("projects", store.list_projects, unavailable)
        resource_list = build_resources(personas, projects)

    catalog = Catalog(tools=tool_list, resources=resource_list, unavailable=unavailable)
    logger.info(
        f"Catalog built: {len(catalog.tools)} tools, {len(catalog.resources)} resources"
        + (f" (unavailable: {', '.join(unavailable)})" if unavailable else "")
    )
    return catalog
