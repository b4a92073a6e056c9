"""Pydantic schemas for the documents served by the specification store.

Persona and workflow documents use snake_case on the wire. Project documents
use camelCase; their models accept either spelling and dump camelCase so a
document read from the store can be written back unchanged.
Unknown fields are kept (extra="allow") for the same reason.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import (
    FlowPattern,
    MergeStrategy,
    ProjectStatus,
    Priority,
    EpicStatus,
    StoryStatus,
    CommentAuthorType,
    CommentType,
)


# Persona Schemas

class PersonaSpecification(BaseModel):
    """The declarative body of a persona."""

    mission: Optional[str] = None
    inputs: list[str] = Field(default_factory=list)
    workflow: list[str] = Field(default_factory=list)
    success_criteria: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    handoff_expectations: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class PersonaSpec(BaseModel):
    """Full persona document."""

    id: str = Field(..., min_length=1)
    name: str
    tags: list[str] = Field(default_factory=list)
    specification: PersonaSpecification
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

    @property
    def web_search_enabled(self) -> bool:
        return bool(self.metadata.get("web_search_enabled", False))


class PersonaSummary(BaseModel):
    """Persona list item as returned by the store."""

    id: str
    name: str
    slug: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(extra="allow")


# Workflow Schemas

class WorkflowStep(BaseModel):
    """One step of a workflow, bound to a persona."""

    id: str
    persona_id: str  # Not checked against the persona set at write time
    order: int
    condition: Optional[str] = None
    handoff_to: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class CycleDetails(BaseModel):
    cycle_steps: list[str] = Field(default_factory=list)
    exit_condition: str = ""
    max_iterations: int = 10

    @field_validator("cycle_steps", "exit_condition", mode="before")
    @classmethod
    def _null_as_empty(cls, value, info):
        if value is None:
            return [] if info.field_name == "cycle_steps" else ""
        return value

    @field_validator("max_iterations", mode="before")
    @classmethod
    def _unset_max_iterations(cls, value):
        # null and 0 both mean "use the default cap"
        return value or 10


class ParallelDetails(BaseModel):
    parallel_steps: list[str] = Field(default_factory=list)
    merge_strategy: MergeStrategy = MergeStrategy.ALL
    description: Optional[str] = None

    @field_validator("merge_strategy", mode="before")
    @classmethod
    def _unset_merge_strategy(cls, value):
        return value or MergeStrategy.ALL


class ConditionalBranch(BaseModel):
    condition: str
    target_step: str
    description: Optional[str] = None


class ExecutionSpec(BaseModel):
    """Structured description of how a workflow's steps interact."""

    description: Optional[str] = None
    flow_pattern: FlowPattern = FlowPattern.SEQUENTIAL
    cycle_details: Optional[CycleDetails] = None
    parallel_details: Optional[ParallelDetails] = None
    conditional_branches: list[ConditionalBranch] = Field(default_factory=list)
    execution_guidance: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class WorkflowDefinition(BaseModel):
    """Full workflow document."""

    id: str = Field(..., min_length=1)
    name: str
    steps: list[WorkflowStep] = Field(default_factory=list)
    execution_spec: Optional[ExecutionSpec] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

    def ordered_steps(self) -> list[WorkflowStep]:
        """Steps in ascending `order`; equal orders keep their array position."""
        return sorted(self.steps, key=lambda step: step.order)


class WorkflowSummary(BaseModel):
    """Workflow list item as returned by the store."""

    id: str
    name: str
    slug: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(extra="allow")


# Project Schemas

class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_document(self) -> dict:
        """Dump in the store's camelCase shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AcceptanceCriteria(_CamelModel):
    id: str
    description: str
    completed: bool = False
    verified_by: Optional[str] = None
    verified_at: Optional[str] = None
    evidence: Optional[str] = None
    is_blocking: bool = False


class Comment(_CamelModel):
    id: str
    content: str
    author: str
    author_type: CommentAuthorType
    type: CommentType = CommentType.UPDATE
    created_at: str
    updated_at: Optional[str] = None


class Story(_CamelModel):
    id: str
    title: str
    description: str = ""
    status: StoryStatus = StoryStatus.DRAFT
    assigned_personas: list[str] = Field(default_factory=list)
    priority: Priority = Priority.MEDIUM
    tags: list[str] = Field(default_factory=list)
    acceptance_criteria: list[AcceptanceCriteria] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    updated_at: Optional[str] = None


class Epic(_CamelModel):
    id: str
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    status: EpicStatus = EpicStatus.PENDING
    stories: list[Story] = Field(default_factory=list)
    completed_stories: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Project(_CamelModel):
    id: str
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.DRAFT
    project_type: Optional[str] = None
    workflow_id: Optional[str] = None
    estimated_complexity: Optional[str] = None
    created_by: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    epics: list[Epic] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ProjectSummary(_CamelModel):
    """Project list item as returned by the store."""

    id: str
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.DRAFT
    project_type: Optional[str] = None
    epic_count: int = 0
    story_count: int = 0
    completed_stories: int = 0
    progress_percentage: int = 0
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# Catalog Schemas

class ResourceDescriptor(BaseModel):
    """A readable resource advertised by resources/list."""

    uri: str
    name: str
    description: str
    mimeType: str = "application/json"
