"""Shared fixtures: an in-memory specification store and sample documents."""
import copy
from typing import Iterable, Optional

import pytest

from pilotframe_core.config import Settings
from pilotframe_core.schemas import (
    PersonaSpec,
    PersonaSummary,
    WorkflowDefinition,
    WorkflowSummary,
    Project,
    ProjectSummary,
)
from pilotframe_core.store_client import StoreError


PERSONAS = [
    {
        "id": "writer",
        "name": "Content Writer",
        "tags": ["content", "seo"],
        "specification": {
            "mission": "Draft clear, accurate articles",
            "inputs": ["brief", "keywords"],
            "workflow": ["Read the brief", "Outline the article", "Write the draft"],
            "success_criteria": ["Covers every keyword"],
            "constraints": ["No more than 1500 words"],
            "handoff_expectations": ["draft: markdown text"],
        },
        "metadata": {},
    },
    {
        "id": "reviewer",
        "name": "Editorial Reviewer",
        "tags": ["review"],
        "specification": {
            "mission": "Score drafts and request changes",
            "inputs": ["draft"],
            "workflow": ["Check facts", "Score the draft"],
            "handoff_expectations": ["score: number between 0 and 1", "notes: list of changes"],
        },
        "metadata": {"web_search_enabled": True},
    },
]

WORKFLOWS = [
    {
        "id": "loop1",
        "name": "Write and Review Loop",
        "steps": [
            {"id": "s1", "persona_id": "writer", "order": 2},
            {"id": "s2", "persona_id": "reviewer", "order": 1},
        ],
        "execution_spec": {
            "description": "Review first, then rewrite until the draft scores well.",
            "flow_pattern": "cycle",
            "cycle_details": {"cycle_steps": ["s1", "s2"], "exit_condition": "score>0.8"},
        },
    },
    {
        "id": "launch",
        "name": "Launch Campaign",
        "steps": [
            {"id": "draft", "persona_id": "writer", "order": 1},
            {"id": "review", "persona_id": "reviewer", "order": 2},
            {"id": "legal", "persona_id": "ghost", "order": 2, "condition": "regulated market"},
        ],
        "execution_spec": {
            "flow_pattern": "mixed",
            "execution_guidance": "Draft once, then run review and legal side by side.",
            "parallel_details": {
                "parallel_steps": ["review", "legal"],
                "merge_strategy": "majority",
                "description": "Both reviewers see the same draft.",
            },
            "conditional_branches": [
                {"condition": "legal rejects", "target_step": "draft", "description": "rewrite"},
            ],
        },
        "metadata": {
            "success_criteria": ["Approved by review", "Cleared by legal"],
            "estimated_duration": "2 days",
        },
    },
]


def _story(story_id, title, status, criteria=None, **extra):
    story = {
        "id": story_id,
        "title": title,
        "description": f"{title} description",
        "status": status,
        "assignedPersonas": ["writer"],
        "priority": "high",
        "tags": [],
        "acceptanceCriteria": criteria or [],
        "comments": [],
        "createdAt": "2024-01-01T00:00:00Z",
    }
    story.update(extra)
    return story


PROJECTS = [
    {
        "id": "proj1",
        "name": "Content Hub",
        "description": "Editorial platform",
        "status": "in_development",
        "projectType": "web",
        "estimatedComplexity": "medium",
        "workflowId": "launch",
        "epics": [
            {
                "id": "e1",
                "title": "Authoring",
                "description": "Write things",
                "priority": "high",
                "status": "pending",
                "completedStories": 0,
                "stories": [
                    _story("st1", "Editor shell", "done", completedAt="2024-01-02T00:00:00Z"),
                    _story(
                        "st2",
                        "Autosave",
                        "in_progress",
                        criteria=[
                            {"id": "c1", "description": "Saves every 30s", "completed": False, "isBlocking": True},
                            {
                                "id": "c2",
                                "description": "Restores after crash",
                                "completed": True,
                                "verifiedBy": "qa_bot",
                                "verifiedAt": "2024-01-03T00:00:00Z",
                                "evidence": "crash test log",
                            },
                        ],
                        startedAt="2024-01-02T12:00:00Z",
                    ),
                    _story("st3", "Spellcheck", "ready"),
                ],
            },
            {
                "id": "e2",
                "title": "Publishing",
                "description": "Ship things",
                "priority": "medium",
                "status": "completed",
                "completedStories": 2,
                "stories": [],
            },
        ],
        "createdAt": "2024-01-01T00:00:00Z",
    },
    {
        "id": "proj2",
        "name": "Archive Cleanup",
        "description": "Old content",
        "status": "draft",
        "epics": [
            {
                "id": "e3",
                "title": "Cleanup",
                "stories": [_story("st4", "Delete stale drafts", "ready")],
            },
        ],
        "createdAt": "2024-02-01T00:00:00Z",
    },
]


class FakeStore:
    """In-memory stand-in for SpecificationStore.

    Documents are kept as plain dicts and validated on the way out, the same
    way the real client validates store responses.
    """

    def __init__(self, personas=None, workflows=None, projects=None):
        self.personas = {p["id"]: copy.deepcopy(p) for p in (personas if personas is not None else PERSONAS)}
        self.workflows = {w["id"]: copy.deepcopy(w) for w in (workflows if workflows is not None else WORKFLOWS)}
        self.projects = {p["id"]: copy.deepcopy(p) for p in (projects if projects is not None else PROJECTS)}
        self.failing: set[str] = set()
        self.updates: list[tuple[str, dict]] = []
        self.closed = False

    def _check(self, family: str) -> None:
        if family in self.failing:
            raise StoreError(f"{family} unavailable", status_code=503)

    async def __aenter__(self) -> "FakeStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.closed = True

    async def list_personas(self) -> list[PersonaSummary]:
        self._check("personas")
        return [PersonaSummary(id=p["id"], name=p["name"]) for p in self.personas.values()]

    async def get_persona(self, persona_id: str) -> Optional[PersonaSpec]:
        self._check("personas")
        doc = self.personas.get(persona_id)
        return PersonaSpec.model_validate(copy.deepcopy(doc)) if doc else None

    async def get_personas(self, persona_ids: Iterable[str]) -> dict[str, PersonaSpec]:
        result = {}
        for pid in persona_ids:
            spec = await self.get_persona(pid)
            if spec is not None:
                result[pid] = spec
        return result

    async def list_personas_with_specs(self) -> list[PersonaSpec]:
        self._check("personas")
        return [PersonaSpec.model_validate(copy.deepcopy(p)) for p in self.personas.values()]

    async def list_workflows(self) -> list[WorkflowSummary]:
        self._check("workflows")
        return [WorkflowSummary(id=w["id"], name=w["name"]) for w in self.workflows.values()]

    async def get_workflow(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        self._check("workflows")
        doc = self.workflows.get(workflow_id)
        return WorkflowDefinition.model_validate(copy.deepcopy(doc)) if doc else None

    async def list_projects(self, status: Optional[str] = None) -> list[ProjectSummary]:
        self._check("projects")
        summaries = []
        for doc in self.projects.values():
            if status and doc.get("status") != status:
                continue
            stories = [s for e in doc.get("epics", []) for s in e.get("stories", [])]
            summaries.append(ProjectSummary(
                id=doc["id"],
                name=doc["name"],
                status=doc.get("status", "draft"),
                project_type=doc.get("projectType"),
                epic_count=len(doc.get("epics", [])),
                story_count=len(stories),
                completed_stories=sum(1 for s in stories if s["status"] == "done"),
                created_at=doc.get("createdAt"),
            ))
        return summaries

    async def get_project(self, project_id: str) -> Optional[Project]:
        self._check("projects")
        doc = self.projects.get(project_id)
        return Project.model_validate(copy.deepcopy(doc)) if doc else None

    async def update_project(self, project_id: str, fields: dict) -> Optional[Project]:
        self._check("projects")
        if project_id not in self.projects:
            return None
        self.updates.append((project_id, copy.deepcopy(fields)))
        self.projects[project_id].update(copy.deepcopy(fields))
        return Project.model_validate(copy.deepcopy(self.projects[project_id]))


@pytest.fixture
def store():
    """A fresh in-memory store with the sample documents."""
    return FakeStore()


@pytest.fixture
def settings():
    """Settings advertising flat tool names."""
    return Settings(tool_naming="flat")


@pytest.fixture
def hierarchical_settings():
    """Settings advertising hierarchical tool names."""
    return Settings(tool_naming="hierarchical")
