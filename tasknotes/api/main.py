from __future__ import annotations

"""
HTTP surface for the tasknotes service.

Design intent:
- Keep routes thin: validation via pydantic, domain work in internal_core/note.
- Translate domain exceptions into predictable status codes.
- Allow pipeline collaborators to be swapped on app.state for deterministic tests.
"""

import logging
import random
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from tasknotes.internal_core import AppConfig, InMemoryTaskStore, load_config
from tasknotes.internal_core import audit
from tasknotes.internal_core.contracts import (
    AuditEvent,
    SortOrder,
    Task,
    TaskCreate,
    TaskPage,
    TaskQuery,
    TaskStats,
    TaskStatus,
    TaskUpdate,
)
from tasknotes.note import (
    FailureInjector,
    FailureKind,
    RandomFailureInjector,
    ScriptedFailureInjector,
    ServiceError,
    generate_task_note,
)


class GeneratingTasksResponse(BaseModel):
    task_ids: list[str] = Field(default_factory=list)


_SERVICE_ERROR_STATUS: dict[FailureKind, int] = {
    FailureKind.TIMEOUT: 408,
    FailureKind.UNAVAILABLE: 503,
    FailureKind.GENERIC: 503,
}

_startup_config = load_config()
logging.getLogger("tasknotes").setLevel(_startup_config.TASKNOTES_LOG_LEVEL)

app = FastAPI(title="tasknotes service")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(_startup_config.TASKNOTES_CORS_ORIGINS),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_config() -> AppConfig:
    existing = getattr(app.state, "config", None)
    if isinstance(existing, AppConfig):
        return existing
    return _startup_config


def _get_task_store() -> InMemoryTaskStore:
    existing = getattr(app.state, "task_store", None)
    if isinstance(existing, InMemoryTaskStore):
        return existing
    created = InMemoryTaskStore(default_page_size=_get_config().TASKNOTES_PAGE_SIZE_DEFAULT)
    setattr(app.state, "task_store", created)
    return created


def _resolve_note_rng(cfg: AppConfig) -> random.Random:
    injected = getattr(app.state, "note_rng", None)
    if isinstance(injected, random.Random):
        return injected
    if cfg.TASKNOTES_NOTE_RANDOM_SEED is not None:
        return random.Random(cfg.TASKNOTES_NOTE_RANDOM_SEED)
    return random.Random()


def _resolve_failure_injector(cfg: AppConfig, rng: random.Random) -> FailureInjector:
    injected = getattr(app.state, "note_failure_injector", None)
    if isinstance(injected, FailureInjector):
        return injected
    if cfg.TASKNOTES_TEST_INJECT_NOTE_FAILURE:
        return ScriptedFailureInjector(default=FailureKind(cfg.TASKNOTES_TEST_INJECT_NOTE_FAILURE))
    return RandomFailureInjector(rng, failure_rate=cfg.TASKNOTES_NOTE_FAILURE_RATE)


def _note_runtime(cfg: AppConfig) -> dict[str, Any]:
    rng = _resolve_note_rng(cfg)
    return {
        "max_attempts": cfg.TASKNOTES_NOTE_MAX_ATTEMPTS,
        "rng": rng,
        "sleep": getattr(app.state, "note_sleep_callable", None),
        "injector": _resolve_failure_injector(cfg, rng),
        "network_delay_ms": cfg.network_delay_ms(),
        "backoff_base_ms": cfg.TASKNOTES_NOTE_BACKOFF_BASE_MS,
    }


def _not_found(task_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Task not found: {task_id}")


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/tasks", response_model=Task, status_code=201)
async def create_task(payload: TaskCreate) -> Task:
    store = _get_task_store()
    task = store.create_task(payload)
    audit.log_event(store, task.id, "TASK_CREATED", "TASK_CREATE", f"status={task.status.value}")
    return task


@app.get("/tasks", response_model=TaskPage)
async def list_tasks(
    status: Optional[TaskStatus] = None,
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    sort_by: str = "created_at",
    sort_order: SortOrder = "DESC",
) -> TaskPage:
    cfg = _get_config()
    if limit is not None and limit > cfg.TASKNOTES_PAGE_SIZE_MAX:
        raise HTTPException(
            status_code=400,
            detail=f"limit must be <= {cfg.TASKNOTES_PAGE_SIZE_MAX}.",
        )
    query = TaskQuery(
        status=status,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return _get_task_store().list_tasks(query)


@app.get("/tasks/stats", response_model=TaskStats)
async def task_stats() -> TaskStats:
    return _get_task_store().stats()


@app.get("/tasks/by-status/{status}", response_model=list[Task])
async def tasks_by_status(status: TaskStatus) -> list[Task]:
    return _get_task_store().list_by_status(status)


@app.get("/tasks/generating", response_model=GeneratingTasksResponse)
async def generating_tasks() -> GeneratingTasksResponse:
    return GeneratingTasksResponse(task_ids=_get_task_store().generating_ids())


@app.get("/tasks/{task_id}", response_model=Task)
async def get_task(task_id: str) -> Task:
    try:
        return _get_task_store().get_task(task_id)
    except KeyError as exc:
        raise _not_found(task_id) from exc


@app.patch("/tasks/{task_id}", response_model=Task)
async def update_task(task_id: str, payload: TaskUpdate) -> Task:
    store = _get_task_store()
    try:
        task = store.update_task(task_id, payload)
    except KeyError as exc:
        raise _not_found(task_id) from exc
    changed = sorted(payload.model_dump(exclude_unset=True).keys())
    audit.log_event(store, task_id, "TASK_UPDATED", "TASK_UPDATE", f"fields={','.join(changed)}")
    return task


@app.delete("/tasks/{task_id}", status_code=204)
async def delete_task(task_id: str) -> Response:
    try:
        _get_task_store().delete_task(task_id)
    except KeyError as exc:
        raise _not_found(task_id) from exc
    return Response(status_code=204)


@app.get("/tasks/{task_id}/audit", response_model=list[AuditEvent])
async def task_audit(task_id: str) -> list[AuditEvent]:
    try:
        return _get_task_store().audit_events(task_id)
    except KeyError as exc:
        raise _not_found(task_id) from exc


@app.post("/tasks/{task_id}/generate-note", response_model=Task)
async def generate_note_for_task(task_id: str) -> Task:
    cfg = _get_config()
    store = _get_task_store()
    try:
        return await generate_task_note(store, task_id, **_note_runtime(cfg))
    except KeyError as exc:
        raise _not_found(task_id) from exc
    except ServiceError as exc:
        logger.warning("Note generation for task %s failed: kind=%s", task_id, exc.kind.value)
        raise HTTPException(
            status_code=_SERVICE_ERROR_STATUS[exc.kind],
            detail={"kind": exc.kind.value, "message": exc.message},
        ) from exc
