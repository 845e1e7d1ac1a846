from __future__ import annotations

import math
import uuid
from collections import Counter
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Dict, List, Optional

from .contracts import (
    SORT_FIELDS,
    AuditEvent,
    PaginationMeta,
    Task,
    TaskCreate,
    TaskPage,
    TaskQuery,
    TaskStats,
    TaskStatus,
    TaskUpdate,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _sort_key(field: str):
    if field == "title":
        return lambda task: task.title.lower()
    if field == "status":
        return lambda task: task.status.value
    return lambda task: getattr(task, field)


class InMemoryTaskStore:
    def __init__(self, default_page_size: int = 5):
        self._default_page_size = default_page_size
        self._lock = RLock()
        self._tasks: Dict[str, Task] = {}
        self._audit: Dict[str, List[AuditEvent]] = {}
        self._generating: Counter[str] = Counter()

    def _require(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise KeyError(f"Unknown task_id: {task_id}")
        return task

    def create_task(self, payload: TaskCreate) -> Task:
        now = _utc_now()
        task = Task(
            id=uuid.uuid4().hex,
            title=payload.title,
            description=payload.description,
            status=payload.status,
            note=None,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._tasks[task.id] = task
            self._audit[task.id] = []
        return task.model_copy()

    def get_task(self, task_id: str) -> Task:
        with self._lock:
            return self._require(task_id).model_copy()

    def update_task(self, task_id: str, payload: TaskUpdate) -> Task:
        changes: Dict[str, Any] = payload.model_dump(exclude_unset=True)
        # Explicit nulls are only meaningful for the description.
        changes = {k: v for k, v in changes.items() if v is not None or k == "description"}
        with self._lock:
            current = self._require(task_id)
            updated = current.model_copy(update={**changes, "updated_at": _utc_now()})
            self._tasks[task_id] = updated
            return updated.model_copy()

    def set_note(self, task_id: str, note: str) -> Task:
        if not note or not note.strip():
            raise ValueError("note must be a non-empty string")
        with self._lock:
            current = self._require(task_id)
            updated = current.model_copy(update={"note": note, "updated_at": _utc_now()})
            self._tasks[task_id] = updated
            return updated.model_copy()

    def delete_task(self, task_id: str) -> None:
        with self._lock:
            self._require(task_id)
            self._tasks.pop(task_id, None)
            self._audit.pop(task_id, None)
            self._generating.pop(task_id, None)

    def list_tasks(self, query: TaskQuery) -> TaskPage:
        limit = query.limit or self._default_page_size
        sort_field = query.sort_by if query.sort_by in SORT_FIELDS else "created_at"
        needle = (query.search or "").strip().lower()

        with self._lock:
            candidates = list(self._tasks.values())

        if query.status is not None:
            candidates = [task for task in candidates if task.status == query.status]
        if needle:
            candidates = [
                task
                for task in candidates
                if needle in task.title.lower() or needle in (task.description or "").lower()
            ]

        candidates.sort(key=_sort_key(sort_field), reverse=query.sort_order == "DESC")

        total = len(candidates)
        total_pages = math.ceil(total / limit)
        start = (query.page - 1) * limit
        page_items = candidates[start : start + limit]
        meta = PaginationMeta(
            page=query.page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_previous_page=query.page > 1,
            has_next_page=query.page < total_pages,
        )
        return TaskPage(data=[task.model_copy() for task in page_items], meta=meta)

    def list_by_status(self, status: TaskStatus) -> List[Task]:
        with self._lock:
            matches = [task for task in self._tasks.values() if task.status == status]
        matches.sort(key=lambda task: task.created_at, reverse=True)
        return [task.model_copy() for task in matches]

    def stats(self) -> TaskStats:
        with self._lock:
            statuses = [task.status for task in self._tasks.values()]
        return TaskStats(
            total=len(statuses),
            todo=statuses.count(TaskStatus.TODO),
            in_progress=statuses.count(TaskStatus.IN_PROGRESS),
            done=statuses.count(TaskStatus.DONE),
        )

    def mark_generating(self, task_id: str) -> None:
        with self._lock:
            self._require(task_id)
            self._generating[task_id] += 1

    def clear_generating(self, task_id: str) -> None:
        # Counted per id: overlapping requests for one task each hold a slot.
        with self._lock:
            remaining = self._generating.get(task_id, 0) - 1
            if remaining > 0:
                self._generating[task_id] = remaining
            else:
                self._generating.pop(task_id, None)

    def generating_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._generating)

    def append_audit_event(self, task_id: str, event: AuditEvent) -> None:
        with self._lock:
            events: Optional[List[AuditEvent]] = self._audit.get(task_id)
            if events is None:
                return
            events.append(event)

    def audit_events(self, task_id: str) -> List[AuditEvent]:
        with self._lock:
            self._require(task_id)
            return list(self._audit.get(task_id) or [])
