from __future__ import annotations

import datetime as _dt
from typing import TYPE_CHECKING, Optional

from .contracts import AuditEvent, AuditEventType
from .task_store import InMemoryTaskStore

if TYPE_CHECKING:
    from ..note.base import GenerationAttempt

_MAX_DETAIL_CHARS = 200


def _ts_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat()


def _sanitize_detail(detail: str) -> str:
    # Keep audit metadata short: no note bodies or descriptions in detail.
    detail = (detail or "").replace("\n", " ").strip()
    if len(detail) > _MAX_DETAIL_CHARS:
        detail = detail[:_MAX_DETAIL_CHARS] + "…"
    return detail


def failure_code(kind_name: Optional[str]) -> str:
    return f"NOTE_{kind_name}" if kind_name else "NOTE_FAILED"


def log_event(
    store: InMemoryTaskStore,
    task_id: str,
    event_type: AuditEventType,
    code: str,
    detail: str,
    duration_ms: Optional[int] = None,
) -> None:
    event = AuditEvent(
        ts_iso=_ts_iso(),
        task_id=task_id,
        type=event_type,
        code=code,
        detail=_sanitize_detail(detail),
        duration_ms=duration_ms,
    )
    store.append_audit_event(task_id, event)


def log_attempt(store: InMemoryTaskStore, task_id: str, record: "GenerationAttempt") -> bool:
    """Record a retried generation attempt on the task's audit trail.

    Only ``retryable_failure`` attempts are recorded here; success and
    exhaustion are summarised by the caller once the pipeline returns.
    Returns whether an event was written.
    """
    if record.outcome != "retryable_failure":
        return False
    kind_name = record.kind.value if record.kind is not None else None
    log_event(
        store,
        task_id,
        "NOTE_ATTEMPT_FAILED",
        failure_code(kind_name),
        f"attempt={record.attempt} backoff_ms={record.backoff_ms}",
        duration_ms=int(record.delay_ms),
    )
    return True
