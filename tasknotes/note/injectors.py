from __future__ import annotations

import random
from typing import Mapping, Optional

from .base import FailureInjector, FailureKind


class RandomFailureInjector(FailureInjector):
    """Simulates an unreliable upstream: transient failures, never on the last attempt."""

    def __init__(self, rng: Optional[random.Random] = None, failure_rate: float = 0.2) -> None:
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")
        self._rng = rng or random.Random()
        self._failure_rate = failure_rate

    def draw(self, attempt: int, max_attempts: int) -> Optional[FailureKind]:
        should_fail = self._rng.random() < self._failure_rate
        if not should_fail or attempt >= max_attempts:
            return None
        return FailureKind.TIMEOUT if self._rng.random() < 0.5 else FailureKind.UNAVAILABLE

    def name(self) -> str:
        return "random"


class ScriptedFailureInjector(FailureInjector):
    def __init__(
        self,
        script: Optional[Mapping[int, FailureKind]] = None,
        default: Optional[FailureKind] = None,
    ) -> None:
        self._script = dict(script or {})
        self._default = default
        self.calls: list[int] = []

    def draw(self, attempt: int, max_attempts: int) -> Optional[FailureKind]:
        self.calls.append(attempt)
        return self._script.get(attempt, self._default)

    def name(self) -> str:
        return "scripted"
