from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_RECENT_RECORDS = 5


class ChangeKind(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"


class TaskCategory(str, Enum):
    DOCUMENTATION = "documentation"
    AUTOMATION = "automation"
    FEATURE = "feature"
    MAINTENANCE = "maintenance"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class FileDelta(_Frozen):
    path: str
    status: ChangeKind
    additions: int = Field(0, ge=0)
    deletions: int = Field(0, ge=0)


class ChangeSetRecord(_Frozen):
    id: int
    title: str
    description: str = ""
    merged_at: Optional[datetime] = Field(None, alias="mergedAt")
    file_deltas: List[FileDelta] = Field(default_factory=list, alias="fileDeltas")
    summary: str = ""

    @field_validator("description", mode="before")
    @classmethod
    def _null_description(cls, value):
        return "" if value is None else value

    @property
    def merged(self) -> bool:
        return self.merged_at is not None

    @property
    def paths(self) -> List[str]:
        return [delta.path for delta in self.file_deltas]


class Analysis(_Frozen):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    total_count: int = Field(0, ge=0, alias="totalCount")
    recent_records: List[ChangeSetRecord] = Field(default_factory=list, alias="recentRecords")
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_counts(self) -> "Analysis":
        if len(self.recent_records) > MAX_RECENT_RECORDS:
            raise ValueError(f"recentRecords holds at most {MAX_RECENT_RECORDS} records, got {len(self.recent_records)}")
        if self.total_count < len(self.recent_records):
            raise ValueError(
                f"totalCount ({self.total_count}) is smaller than the number of recent records ({len(self.recent_records)})"
            )
        return self

    @classmethod
    def empty(cls, error: Optional[str] = None, timestamp: Optional[datetime] = None) -> "Analysis":
        return cls(timestamp=timestamp or datetime.now(timezone.utc), error=error)

    @property
    def paths(self) -> List[str]:
        """All touched paths across the recent records, in record order."""
        return [path for record in self.recent_records for path in record.paths]


class Task(_Frozen):
    id: str
    created_at: datetime = Field(alias="createdAt")
    title: str
    description: str
    category: TaskCategory
    priority: TaskPriority = TaskPriority.MEDIUM
    estimated_hours: float = Field(gt=0, alias="estimatedHours")
    target_files: List[str] = Field(default_factory=list, alias="targetFiles")


class DevelopmentProposal(_Frozen):
    """A change set the hosting platform could open for the synthesized tasks."""

    title: str
    branch: str
    body: str
    task_ids: List[str] = Field(default_factory=list, alias="taskIds")
