"""Enumerations shared by the gateway's document schemas."""
import enum


class FlowPattern(str, enum.Enum):
    """Execution pattern declared by a workflow's execution spec."""

    SEQUENTIAL = "sequential"
    CYCLE = "cycle"
    PARALLEL = "parallel"
    CONDITIONAL = "conditional"
    MIXED = "mixed"


class MergeStrategy(str, enum.Enum):
    """How results of parallel steps are combined."""

    ALL = "all"
    ANY = "any"
    MAJORITY = "majority"


class ProjectStatus(str, enum.Enum):
    """Project lifecycle status enum."""

    DRAFT = "draft"
    PUBLISHED = "published"
    IN_DEVELOPMENT = "in_development"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Priority(str, enum.Enum):
    """Priority enum for epics and stories."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EpicStatus(str, enum.Enum):
    """Epic status enum.

    Never set directly: derived from the number of done stories
    (see story_state.derive_epic_status).
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class StoryStatus(str, enum.Enum):
    """Story status enum."""

    DRAFT = "draft"
    READY = "ready"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    BLOCKED = "blocked"
    DONE = "done"


class CommentAuthorType(str, enum.Enum):
    """Who wrote a story comment."""

    USER = "user"
    PERSONA = "persona"
    AGENT = "agent"


class CommentType(str, enum.Enum):
    """Comment category enum."""

    UPDATE = "update"
    QUESTION = "question"
    DECISION = "decision"
    BLOCKER = "blocker"
    NOTE = "note"


# Human-readable meaning of each merge strategy, used by the execution guide
MERGE_STRATEGY_MEANING: dict[MergeStrategy, str] = {
    MergeStrategy.ALL: "wait for all",
    MergeStrategy.ANY: "first success",
    MergeStrategy.MAJORITY: "consensus",
}

