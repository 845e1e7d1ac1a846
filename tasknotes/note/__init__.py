"""
Note generation boundary for tasknotes.

Design intent:
- Produce a short status-aware note for a task via a simulated unreliable service.
- Retry transient failures with bounded attempts and exponential backoff.
- Surface exhaustion as a kind-tagged ServiceError, never as a placeholder note.
"""

from .base import FailureInjector, FailureKind, GenerationAttempt, ServiceError
from .injectors import RandomFailureInjector, ScriptedFailureInjector
from .pipeline import backoff_delay_ms, generate_note
from .service import generate_task_note
from .templates import note_pool, select_note

__all__ = [
    "FailureInjector",
    "FailureKind",
    "GenerationAttempt",
    "RandomFailureInjector",
    "ScriptedFailureInjector",
    "ServiceError",
    "backoff_delay_ms",
    "generate_note",
    "generate_task_note",
    "note_pool",
    "select_note",
]
