from __future__ import annotations

"""
Resilient note generation against a simulated unreliable service.

Design intent:
- One sequential attempt loop per invocation, bounded by max_attempts.
- Non-final transient failures are logged and retried after exponential backoff.
- A failure on the final attempt surfaces unchanged; there is no degraded success.
- Randomness, failure injection and sleeping are injectable for deterministic tests.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from .base import FailureInjector, FailureKind, GenerationAttempt, ServiceError
from .injectors import RandomFailureInjector
from .templates import select_note

logger = logging.getLogger(__name__)

SleepCallable = Callable[[float], Awaitable[None]]
AttemptCallback = Callable[[GenerationAttempt], None]

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_NETWORK_DELAY_MS: tuple[float, float] = (1000.0, 4000.0)
DEFAULT_BACKOFF_BASE_MS = 1000


def backoff_delay_ms(attempt: int, base_ms: int = DEFAULT_BACKOFF_BASE_MS) -> int:
    return (2**attempt) * base_ms


def _sample_network_delay_ms(rng: random.Random, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return low + rng.random() * (high - low)


async def generate_note(
    task: Any,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    rng: Optional[random.Random] = None,
    sleep: Optional[SleepCallable] = None,
    injector: Optional[FailureInjector] = None,
    network_delay_ms: tuple[float, float] = DEFAULT_NETWORK_DELAY_MS,
    backoff_base_ms: int = DEFAULT_BACKOFF_BASE_MS,
    on_attempt: Optional[AttemptCallback] = None,
) -> str:
    """Generate a note for ``task``, retrying transient failures.

    ``task`` needs ``id``, ``title`` and ``status`` attributes. Returns the note
    text, or raises ``ServiceError`` carrying the kind of the final failure.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    rng = rng or random.Random()
    sleep = sleep or asyncio.sleep
    injector = injector or RandomFailureInjector(rng)

    def _report(record: GenerationAttempt) -> None:
        if on_attempt is not None:
            on_attempt(record)

    for attempt in range(1, max_attempts + 1):
        logger.info("Note generation attempt %d/%d for task %s", attempt, max_attempts, task.id)

        delay_ms = _sample_network_delay_ms(rng, network_delay_ms)
        await sleep(delay_ms / 1000.0)

        kind = injector.draw(attempt, max_attempts)
        if kind is None:
            note = select_note(task.title, task.status, rng)
            _report(GenerationAttempt(attempt=attempt, delay_ms=delay_ms, outcome="success"))
            return note

        error = ServiceError(kind, attempt=attempt)
        logger.warning("Note generation attempt %d failed for task %s: %s", attempt, task.id, error.message)

        if attempt == max_attempts:
            _report(GenerationAttempt(attempt=attempt, delay_ms=delay_ms, outcome="exhausted", kind=kind))
            logger.error(
                "Note generation exhausted after %d attempts for task %s (kind=%s)",
                attempt,
                task.id,
                kind.value,
            )
            raise error

        backoff_ms = backoff_delay_ms(attempt, backoff_base_ms)
        _report(
            GenerationAttempt(
                attempt=attempt,
                delay_ms=delay_ms,
                outcome="retryable_failure",
                kind=kind,
                backoff_ms=backoff_ms,
            )
        )
        logger.info("Retrying note generation for task %s in %dms", task.id, backoff_ms)
        await sleep(backoff_ms / 1000.0)

    # Unreachable: the final attempt either returns or raises above.
    raise ServiceError(FailureKind.GENERIC, attempt=max_attempts)
