import asyncio
import random
from types import SimpleNamespace

import pytest

from tasknotes.note import (
    FailureKind,
    RandomFailureInjector,
    ScriptedFailureInjector,
    ServiceError,
    backoff_delay_ms,
    generate_note,
    note_pool,
)


class _RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _task(status: str = "TODO", title: str = "Write quarterly report"):
    return SimpleNamespace(id="task_1", title=title, status=status)


def _run(task, max_attempts: int, injector, sleep=None, on_attempt=None, rng=None) -> str:
    return asyncio.run(
        generate_note(
            task,
            max_attempts,
            rng=rng or random.Random(0),
            sleep=sleep or _RecordingSleep(),
            injector=injector,
            network_delay_ms=(0.0, 0.0),
            on_attempt=on_attempt,
        )
    )


def test_backoff_delay_doubles_per_attempt() -> None:
    assert [backoff_delay_ms(k) for k in (1, 2, 3, 4)] == [2000, 4000, 8000, 16000]
    assert backoff_delay_ms(2, base_ms=10) == 40


def test_succeeds_on_first_attempt_without_backoff() -> None:
    injector = ScriptedFailureInjector()
    sleep = _RecordingSleep()
    records = []
    note = _run(_task(), 5, injector, sleep=sleep, on_attempt=records.append)

    assert "Write quarterly report" in note
    assert injector.calls == [1]
    assert [r.outcome for r in records] == ["success"]
    assert [s for s in sleep.calls if s > 0] == []


def test_two_timeouts_then_success_waits_exponential_backoff() -> None:
    injector = ScriptedFailureInjector({1: FailureKind.TIMEOUT, 2: FailureKind.TIMEOUT})
    sleep = _RecordingSleep()
    records = []
    note = _run(_task(), 3, injector, sleep=sleep, on_attempt=records.append)

    assert note
    assert injector.calls == [1, 2, 3]
    assert [r.outcome for r in records] == ["retryable_failure", "retryable_failure", "success"]
    assert [r.backoff_ms for r in records] == [2000, 4000, 0]
    backoffs = [s for s in sleep.calls if s > 0]
    assert backoffs == [2.0, 4.0]
    assert sum(backoffs) >= 6.0


def test_single_attempt_failure_is_exhausted_without_backoff() -> None:
    injector = ScriptedFailureInjector({1: FailureKind.UNAVAILABLE})
    sleep = _RecordingSleep()
    records = []
    with pytest.raises(ServiceError) as excinfo:
        _run(_task(), 1, injector, sleep=sleep, on_attempt=records.append)

    assert excinfo.value.kind is FailureKind.UNAVAILABLE
    assert excinfo.value.attempt == 1
    assert [r.outcome for r in records] == ["exhausted"]
    assert [s for s in sleep.calls if s > 0] == []


@pytest.mark.parametrize("kind", [FailureKind.TIMEOUT, FailureKind.UNAVAILABLE])
def test_final_attempt_failure_preserves_kind(kind: FailureKind) -> None:
    injector = ScriptedFailureInjector(default=kind)
    sleep = _RecordingSleep()
    with pytest.raises(ServiceError) as excinfo:
        _run(_task(), 3, injector, sleep=sleep)

    assert excinfo.value.kind is kind
    assert injector.calls == [1, 2, 3]
    # Backoff only follows attempts 1 and 2; the final failure is immediate.
    assert [s for s in sleep.calls if s > 0] == [2.0, 4.0]
    assert sleep.calls[-1] == 0.0


@pytest.mark.parametrize("max_attempts", [1, 2, 3, 6])
def test_attempts_never_exceed_max(max_attempts: int) -> None:
    injector = ScriptedFailureInjector(default=FailureKind.TIMEOUT)
    with pytest.raises(ServiceError):
        _run(_task(), max_attempts, injector)
    assert injector.calls == list(range(1, max_attempts + 1))


def test_rejects_non_positive_max_attempts() -> None:
    with pytest.raises(ValueError):
        _run(_task(), 0, ScriptedFailureInjector())


def test_network_delay_is_sampled_within_bounds() -> None:
    sleep = _RecordingSleep()
    records = []
    asyncio.run(
        generate_note(
            _task(),
            3,
            rng=random.Random(3),
            sleep=sleep,
            injector=ScriptedFailureInjector({1: FailureKind.TIMEOUT}),
            on_attempt=records.append,
        )
    )
    assert len(records) == 2
    for record in records:
        assert 1000.0 <= record.delay_ms < 4000.0
    assert sleep.calls[0] == pytest.approx(records[0].delay_ms / 1000.0)
    assert sleep.calls[1] == 2.0


def test_random_injector_never_fails_last_attempt() -> None:
    injector = RandomFailureInjector(random.Random(11), failure_rate=1.0)
    assert injector.draw(3, 3) is None
    assert injector.draw(1, 3) in {FailureKind.TIMEOUT, FailureKind.UNAVAILABLE}


def test_always_failing_random_injector_succeeds_on_last_attempt() -> None:
    sleep = _RecordingSleep()
    records = []
    note = _run(
        _task(status="DONE"),
        4,
        RandomFailureInjector(random.Random(5), failure_rate=1.0),
        sleep=sleep,
        on_attempt=records.append,
    )
    assert note in {t.format(title="Write quarterly report") for t in note_pool("DONE")}
    assert [r.attempt for r in records] == [1, 2, 3, 4]
    assert [s for s in sleep.calls if s > 0] == [2.0, 4.0, 8.0]


def test_random_injector_rejects_invalid_rate() -> None:
    with pytest.raises(ValueError):
        RandomFailureInjector(random.Random(0), failure_rate=1.5)


def test_concurrent_invocations_are_independent() -> None:
    async def _both():
        first = generate_note(
            _task(title="Alpha"),
            3,
            rng=random.Random(1),
            sleep=lambda s: asyncio.sleep(0),
            injector=ScriptedFailureInjector({1: FailureKind.TIMEOUT}),
        )
        second = generate_note(
            _task(title="Beta", status="IN_PROGRESS"),
            3,
            rng=random.Random(2),
            sleep=lambda s: asyncio.sleep(0),
            injector=ScriptedFailureInjector(),
        )
        return await asyncio.gather(first, second)

    alpha, beta = asyncio.run(_both())
    assert "Alpha" in alpha
    assert "Beta" in beta
