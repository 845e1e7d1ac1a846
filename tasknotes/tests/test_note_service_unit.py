import asyncio
import random

import pytest

from tasknotes.internal_core import InMemoryTaskStore
from tasknotes.internal_core.contracts import TaskCreate, TaskStatus
from tasknotes.note import FailureKind, ScriptedFailureInjector, ServiceError, generate_task_note


async def _no_sleep(seconds: float) -> None:
    _ = seconds


def _generate(store: InMemoryTaskStore, task_id: str, injector, max_attempts: int = 3, sleep=_no_sleep):
    return asyncio.run(
        generate_task_note(
            store,
            task_id,
            max_attempts=max_attempts,
            rng=random.Random(0),
            sleep=sleep,
            injector=injector,
        )
    )


def test_generate_task_note_persists_note() -> None:
    store = InMemoryTaskStore()
    task = store.create_task(TaskCreate(title="Prepare demo", status=TaskStatus.IN_PROGRESS))
    updated = _generate(store, task.id, ScriptedFailureInjector())

    assert updated.note and "Prepare demo" in updated.note
    assert store.get_task(task.id).note == updated.note
    assert updated.updated_at >= task.updated_at
    assert store.generating_ids() == []
    assert [event.type for event in store.audit_events(task.id)] == ["NOTE_REQUESTED", "NOTE_GENERATED"]


def test_generate_task_note_records_retried_attempts() -> None:
    store = InMemoryTaskStore()
    task = store.create_task(TaskCreate(title="Prepare demo"))
    _generate(store, task.id, ScriptedFailureInjector({1: FailureKind.TIMEOUT, 2: FailureKind.UNAVAILABLE}))

    events = store.audit_events(task.id)
    assert [event.type for event in events] == [
        "NOTE_REQUESTED",
        "NOTE_ATTEMPT_FAILED",
        "NOTE_ATTEMPT_FAILED",
        "NOTE_GENERATED",
    ]
    assert events[1].code == "NOTE_TIMEOUT"
    assert events[2].code == "NOTE_UNAVAILABLE"
    assert "backoff_ms=4000" in events[2].detail


def test_generate_task_note_failure_leaves_note_untouched() -> None:
    store = InMemoryTaskStore()
    task = store.create_task(TaskCreate(title="Prepare demo"))
    store.set_note(task.id, "Existing note")

    with pytest.raises(ServiceError) as excinfo:
        _generate(store, task.id, ScriptedFailureInjector(default=FailureKind.TIMEOUT), max_attempts=2)

    assert excinfo.value.kind is FailureKind.TIMEOUT
    assert store.get_task(task.id).note == "Existing note"
    assert store.generating_ids() == []
    failed = store.audit_events(task.id)[-1]
    assert failed.type == "NOTE_FAILED"
    assert failed.code == "NOTE_TIMEOUT"


def test_generate_task_note_unknown_task_makes_no_attempt() -> None:
    store = InMemoryTaskStore()
    injector = ScriptedFailureInjector()
    with pytest.raises(KeyError):
        _generate(store, "missing", injector)
    assert injector.calls == []


def test_task_is_marked_generating_while_in_flight() -> None:
    store = InMemoryTaskStore()
    task = store.create_task(TaskCreate(title="Prepare demo"))
    seen: list[list[str]] = []

    async def _observing_sleep(seconds: float) -> None:
        _ = seconds
        seen.append(store.generating_ids())

    _generate(store, task.id, ScriptedFailureInjector(), sleep=_observing_sleep)
    assert seen and all(ids == [task.id] for ids in seen)
    assert store.generating_ids() == []


def test_concurrent_generation_for_different_tasks() -> None:
    store = InMemoryTaskStore()
    first = store.create_task(TaskCreate(title="First"))
    second = store.create_task(TaskCreate(title="Second", status=TaskStatus.DONE))

    async def _yield(seconds: float) -> None:
        _ = seconds
        await asyncio.sleep(0)

    async def _both():
        return await asyncio.gather(
            generate_task_note(
                store,
                first.id,
                rng=random.Random(1),
                sleep=_yield,
                injector=ScriptedFailureInjector({1: FailureKind.UNAVAILABLE}),
            ),
            generate_task_note(store, second.id, rng=random.Random(2), sleep=_yield, injector=ScriptedFailureInjector()),
        )

    updated_first, updated_second = asyncio.run(_both())
    assert "First" in updated_first.note
    assert "Second" in updated_second.note
    assert store.generating_ids() == []
