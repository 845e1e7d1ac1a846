from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class Task(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    note: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("note")
    @classmethod
    def _note_not_empty(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("note must be absent or a non-empty string")
        return value


class TaskCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO


class TaskUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None


SortOrder = Literal["ASC", "DESC"]
SORT_FIELDS: tuple[str, ...] = ("created_at", "updated_at", "title", "status")


class TaskQuery(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[TaskStatus] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)
    sort_by: str = "created_at"
    sort_order: SortOrder = "DESC"


class PaginationMeta(BaseModel):
    model_config = ConfigDict(extra="forbid")

    page: int
    limit: int
    total: int
    total_pages: int
    has_previous_page: bool
    has_next_page: bool


class TaskPage(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data: List[Task] = Field(default_factory=list)
    meta: PaginationMeta


class TaskStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total: int = 0
    todo: int = 0
    in_progress: int = 0
    done: int = 0


AuditEventType = Literal[
    "TASK_CREATED",
    "TASK_UPDATED",
    "NOTE_REQUESTED",
    "NOTE_ATTEMPT_FAILED",
    "NOTE_GENERATED",
    "NOTE_FAILED",
]


class AuditEvent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ts_iso: str
    task_id: str
    type: AuditEventType
    code: str
    detail: str
    duration_ms: Optional[int] = None
