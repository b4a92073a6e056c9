"""HTTP client for the specification store (control plane).

The store owns every persona, workflow and project document. This client only
performs typed retrieval and forwards project updates; it holds no cache, so
every call reflects the store's current state.

All store responses are wrapped as {"data": ...}. A 404 on a single-document
request is reported as None; any other failure raises StoreError.
"""
import asyncio
import logging
from typing import Any, Iterable, Optional
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter

from .config import Settings, get_settings
from .schemas import (
    PersonaSpec,
    PersonaSummary,
    WorkflowDefinition,
    WorkflowSummary,
    Project,
    ProjectSummary,
)

logger = logging.getLogger("pilotframe-core.store_client")

_persona_summaries = TypeAdapter(list[PersonaSummary])
_workflow_summaries = TypeAdapter(list[WorkflowSummary])
_project_summaries = TypeAdapter(list[ProjectSummary])


def _segment(document_id: str) -> str:
    """Escape an id for use as a single URL path segment."""
    return quote(document_id, safe="")


class StoreError(Exception):
    """Raised when the specification store cannot be reached or rejects a call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SpecificationStore:
    """Async client for persona, workflow and project documents.

    Use as an async context manager; one instance is meant to live for the
    duration of a single inbound request.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"content-type": "application/json"}
        if token:
            headers["authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        token: Optional[str] = None,
    ) -> "SpecificationStore":
        """Build a client from settings, preferring the caller's forwarded token."""
        settings = settings or get_settings()
        return cls(
            base_url=settings.control_plane_url,
            token=token or settings.control_plane_token or None,
            timeout=settings.store_timeout,
        )

    async def __aenter__(self) -> "SpecificationStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        allow_missing: bool = False,
    ) -> Any:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            logger.error(f"Request error calling store {method} {path}: {type(e).__name__}: {e}")
            raise StoreError(f"Specification store unreachable: {e}") from e

        if allow_missing and response.status_code == 404:
            logger.info(f"Store returned 404 for {method} {path}")
            return None

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error calling store {method} {path}:")
            logger.error(f"  Status: {e.response.status_code}")
            logger.error(f"  URL: {e.request.url}")
            logger.error(f"  Response text: {e.response.text}")
            raise StoreError(
                f"Specification store returned {e.response.status_code} for {method} {path}",
                status_code=e.response.status_code,
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise StoreError(f"Store returned invalid JSON for {method} {path}") from e
        if not isinstance(body, dict) or "data" not in body:
            raise StoreError(f"Malformed store response for {method} {path}: missing 'data'")
        return body["data"]

    # ------------------------------------------------------------------
    # Personas
    # ------------------------------------------------------------------

    async def list_personas(self) -> list[PersonaSummary]:
        data = await self._request("GET", "/api/personas")
        return _persona_summaries.validate_python(data)

    async def get_persona(self, persona_id: str) -> Optional[PersonaSpec]:
        data = await self._request("GET", f"/api/personas/{_segment(persona_id)}/spec", allow_missing=True)
        if data is None:
            return None
        return PersonaSpec.model_validate(data)

    async def get_personas(self, persona_ids: Iterable[str]) -> dict[str, PersonaSpec]:
        """Fetch several personas concurrently; ids the store does not know are left out."""
        unique_ids = list(dict.fromkeys(persona_ids))
        specs = await asyncio.gather(*(self.get_persona(pid) for pid in unique_ids))
        return {pid: spec for pid, spec in zip(unique_ids, specs) if spec is not None}

    async def list_personas_with_specs(self) -> list[PersonaSpec]:
        """Full persona documents in store list order."""
        summaries = await self.list_personas()
        by_id = await self.get_personas(s.id for s in summaries)
        return [by_id[s.id] for s in summaries if s.id in by_id]

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    async def list_workflows(self) -> list[WorkflowSummary]:
        data = await self._request("GET", "/api/workflows")
        return _workflow_summaries.validate_python(data)

    async def get_workflow(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        data = await self._request("GET", f"/api/workflows/{_segment(workflow_id)}", allow_missing=True)
        if data is None:
            return None
        return WorkflowDefinition.model_validate(data)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def list_projects(self, status: Optional[str] = None) -> list[ProjectSummary]:
        params = {"status": status} if status else None
        data = await self._request("GET", "/api/projects", params=params)
        return _project_summaries.validate_python(data)

    async def get_project(self, project_id: str) -> Optional[Project]:
        data = await self._request("GET", f"/api/projects/{_segment(project_id)}", allow_missing=True)
        if data is None:
            return None
        return Project.model_validate(data)

    async def update_project(self, project_id: str, fields: dict) -> Optional[Project]:
        """Send a partial update; the store applies it last-write-wins."""
        data = await self._request(
            "PATCH", f"/api/projects/{_segment(project_id)}", json=fields, allow_missing=True
        )
        if data is None:
            return None
        logger.info(f"Updated project {project_id} fields: {', '.join(fields)}")
        return Project.model_validate(data)
