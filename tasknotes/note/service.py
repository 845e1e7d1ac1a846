from __future__ import annotations

import logging
import random
import time
from typing import Optional

from ..internal_core import audit
from ..internal_core.contracts import Task
from ..internal_core.task_store import InMemoryTaskStore
from .base import FailureInjector, ServiceError
from .pipeline import (
    DEFAULT_BACKOFF_BASE_MS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_NETWORK_DELAY_MS,
    SleepCallable,
    generate_note,
)

logger = logging.getLogger(__name__)


async def generate_task_note(
    store: InMemoryTaskStore,
    task_id: str,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    rng: Optional[random.Random] = None,
    sleep: Optional[SleepCallable] = None,
    injector: Optional[FailureInjector] = None,
    network_delay_ms: tuple[float, float] = DEFAULT_NETWORK_DELAY_MS,
    backoff_base_ms: int = DEFAULT_BACKOFF_BASE_MS,
) -> Task:
    # Raises KeyError before any attempt when the task does not exist.
    task = store.get_task(task_id)
    logger.info("Generating note for task: %s", task_id)

    store.mark_generating(task_id)
    audit.log_event(store, task_id, "NOTE_REQUESTED", "NOTE_START", f"max_attempts={max_attempts}")
    started = time.monotonic()
    try:
        note = await generate_note(
            task,
            max_attempts,
            rng=rng,
            sleep=sleep,
            injector=injector,
            network_delay_ms=network_delay_ms,
            backoff_base_ms=backoff_base_ms,
            on_attempt=lambda record: audit.log_attempt(store, task_id, record),
        )
    except ServiceError as exc:
        duration_ms = int((time.monotonic() - started) * 1000)
        audit.log_event(
            store,
            task_id,
            "NOTE_FAILED",
            audit.failure_code(exc.kind.value),
            f"attempt={exc.attempt} {exc.message}",
            duration_ms=duration_ms,
        )
        logger.error("Failed to generate note for task: %s (%s)", task_id, exc.kind.value)
        raise
    finally:
        store.clear_generating(task_id)

    updated = store.set_note(task_id, note)
    audit.log_event(
        store,
        task_id,
        "NOTE_GENERATED",
        "NOTE_OK",
        f"status={updated.status.value}",
        duration_ms=int((time.monotonic() - started) * 1000),
    )
    logger.info("Note generated successfully for task: %s", task_id)
    return updated
