"""State rules for the Project -> Epic -> Story -> Criteria tree.

Operations here mutate an in-memory Project and never talk to the store;
callers persist the resulting `epics` list.

Rules maintained:
- Epic.completed_stories equals the number of its stories with status done
- Epic.status is derived from that count (none -> pending, some -> in_progress,
  all -> completed)
- Story.started_at / completed_at are stamped on the first transition into
  in_progress / done and never overwritten
- An acceptance criterion, once completed, stays completed; repeating the
  completion keeps the first verifier, timestamp and evidence
"""
import logging
import math
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from .models import EpicStatus, StoryStatus, CommentAuthorType, CommentType
from .schemas import Project, Epic, Story, AcceptanceCriteria, Comment

logger = logging.getLogger("pilotframe-core.story_state")


class StoryStateError(LookupError):
    """Raised when a story or criterion is not present in the project tree."""

    def __init__(self, message: str, missing_id: str):
        super().__init__(message)
        self.missing_id = missing_id


def utc_now() -> str:
    """ISO-8601 UTC timestamp in the store's format."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def calculate_progress(completed: int, total: int) -> int:
    """Percentage of completed items, rounded half-up; 0 when there are none."""
    if total == 0:
        return 0
    return math.floor(completed / total * 100 + 0.5)


def derive_epic_status(completed_stories: int, total_stories: int) -> EpicStatus:
    """Epic status as a pure function of its done-story count."""
    if completed_stories == 0:
        return EpicStatus.PENDING
    if completed_stories < total_stories:
        return EpicStatus.IN_PROGRESS
    return EpicStatus.COMPLETED


def recompute_epic(epic: Epic) -> Epic:
    """Re-derive completed_stories and status from the epic's stories."""
    epic.completed_stories = sum(1 for s in epic.stories if s.status == StoryStatus.DONE)
    epic.status = derive_epic_status(epic.completed_stories, len(epic.stories))
    return epic


def recompute_project(project: Project) -> Project:
    """Re-derive roll-ups for every epic in the project."""
    for epic in project.epics:
        recompute_epic(epic)
    return project


def project_story_counts(project: Project) -> tuple[int, int]:
    """Return (done stories, total stories) across all epics."""
    total = sum(len(epic.stories) for epic in project.epics)
    done = sum(
        1 for epic in project.epics for story in epic.stories if story.status == StoryStatus.DONE
    )
    return done, total


def find_story(project: Project, story_id: str) -> tuple[Epic, Story]:
    """Locate a story and its owning epic.

    Raises:
        StoryStateError: If no epic contains the story
    """
    for epic in project.epics:
        for story in epic.stories:
            if story.id == story_id:
                return epic, story
    raise StoryStateError(f"Story {story_id} not found in project {project.id}", story_id)


def find_criteria(story: Story, criteria_id: str) -> AcceptanceCriteria:
    for criteria in story.acceptance_criteria:
        if criteria.id == criteria_id:
            return criteria
    raise StoryStateError(
        f"Acceptance criteria {criteria_id} not found in story {story.id}", criteria_id
    )


def infer_author_type(identifier: str) -> CommentAuthorType:
    """Guess the author type for audit comments.

    Persona slugs use underscores (e.g. "seo_writer"); anything else is
    treated as an agent identifier.
    """
    return CommentAuthorType.PERSONA if "_" in identifier else CommentAuthorType.AGENT


def add_comment(
    story: Story,
    content: str,
    author: str,
    author_type: CommentAuthorType,
    comment_type: CommentType = CommentType.UPDATE,
    now: Optional[str] = None,
) -> Comment:
    """Append a comment to the story and return it."""
    comment = Comment(
        id=str(uuid4()),
        content=content,
        author=author,
        author_type=author_type,
        type=comment_type,
        created_at=now or utc_now(),
    )
    story.comments.append(comment)
    return comment


def apply_status_change(
    project: Project,
    story_id: str,
    new_status: StoryStatus,
    updated_by: str,
    author_type: Optional[CommentAuthorType] = None,
    now: Optional[str] = None,
) -> Story:
    """Set a story's status, stamp lifecycle timestamps, log an audit comment
    and recompute every epic's roll-up.

    Any status may follow any other; setting the current status again is
    recorded like any other change.

    Returns:
        The updated story

    Raises:
        StoryStateError: If the story is not in the project
    """
    now = now or utc_now()
    _, story = find_story(project, story_id)
    old_status = story.status

    story.status = new_status
    story.updated_at = now
    if new_status == StoryStatus.IN_PROGRESS and not story.started_at:
        story.started_at = now
    elif new_status == StoryStatus.DONE and not story.completed_at:
        story.completed_at = now

    add_comment(
        story,
        content=f"Status changed to: {new_status.value}",
        author=updated_by,
        author_type=author_type or infer_author_type(updated_by),
        comment_type=CommentType.UPDATE,
        now=now,
    )

    recompute_project(project)
    logger.debug(f"Story {story_id}: {old_status.value} -> {new_status.value} by {updated_by}")
    return story


def complete_criteria(
    project: Project,
    story_id: str,
    criteria_id: str,
    verified_by: str,
    evidence: Optional[str] = None,
    now: Optional[str] = None,
) -> tuple[AcceptanceCriteria, bool]:
    """Mark an acceptance criterion complete.

    Completion is one-way: there is no operation that resets it. Completing an
    already completed criterion changes nothing.

    Returns:
        (criteria, changed) where changed is False for a repeated completion

    Raises:
        StoryStateError: If the story or criterion is not in the project
    """
    _, story = find_story(project, story_id)
    criteria = find_criteria(story, criteria_id)

    if criteria.completed:
        logger.debug(f"Criteria {criteria_id} already verified by {criteria.verified_by}")
        return criteria, False

    criteria.completed = True
    criteria.verified_by = verified_by
    criteria.verified_at = now or utc_now()
    if evidence:
        criteria.evidence = evidence
    return criteria, True
