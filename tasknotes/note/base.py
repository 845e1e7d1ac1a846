from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional


class FailureKind(str, Enum):
    TIMEOUT = "TIMEOUT"
    UNAVAILABLE = "UNAVAILABLE"
    GENERIC = "GENERIC"


_DEFAULT_MESSAGES = {
    FailureKind.TIMEOUT: "Note service request timed out",
    FailureKind.UNAVAILABLE: "Note service is temporarily unavailable",
    FailureKind.GENERIC: "Failed to generate note after maximum retries",
}


class ServiceError(RuntimeError):
    """Failure of the note service, tagged with its kind."""

    def __init__(self, kind: FailureKind, message: Optional[str] = None, attempt: Optional[int] = None):
        message = message or _DEFAULT_MESSAGES[kind]
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.attempt = attempt


AttemptOutcome = Literal["success", "retryable_failure", "exhausted"]


@dataclass(frozen=True)
class GenerationAttempt:
    attempt: int
    delay_ms: float
    outcome: AttemptOutcome
    kind: Optional[FailureKind] = None
    backoff_ms: int = 0


class FailureInjector(ABC):
    @abstractmethod
    def draw(self, attempt: int, max_attempts: int) -> Optional[FailureKind]: ...

    @abstractmethod
    def name(self) -> str: ...
