"""
Status-aware note templates for simulated task insights.

Design intent:
- Keep one ordered pool of templates per task status, plus a generic pool.
- Every template interpolates the task title so a note is never empty.
- Selection is pure: all randomness comes from the injected rng.
"""

from __future__ import annotations

import random
from typing import Any

_STATUS_NOTE_POOLS: dict[str, tuple[str, ...]] = {
    "TODO": (
        'Analysis: "{title}" is ready to start. Break it into smaller, actionable steps to track progress.',
        'Insight: "{title}" looks well defined. Reserve a focused block of time to tackle it.',
        'Suggestion: before starting "{title}", gather the resources you need and clarify dependencies.',
        'Tip: "{title}" appears straightforward. A few focused work intervals should carry it through.',
    ),
    "IN_PROGRESS": (
        'Analysis: good progress on "{title}". Keep the momentum you have built.',
        'Insight: you are actively working on "{title}". Record progress as you go.',
        'Recommendation: set concrete milestones for "{title}" to measure completion and avoid scope creep.',
        'Observation: "{title}" is moving forward. Short breaks will help keep productivity up.',
    ),
    "DONE": (
        'Analysis: "{title}" is complete. Capture any lessons learned for future reference.',
        'Insight: "{title}" finished successfully. Review what worked well for similar tasks.',
        'Celebration: well done on finishing "{title}". Consistent effort paid off.',
        'Reflection: "{title}" is done. Check whether follow-up or related tasks need to be created.',
    ),
}

_GENERIC_NOTE_POOL: tuple[str, ...] = (
    'Analysis: "{title}" appears well structured and achievable. Consider splitting it into subtasks.',
    'Insight: "{title}" looks like a high-priority item. Work on it when you have uninterrupted time.',
    'Suggestion: "{title}" could benefit from collaboration with teammates who know the area.',
    'Recommendation: set specific milestones for "{title}" to track progress effectively.',
    'Observation: "{title}" aligns well with the overall project goals.',
    'Tip: time-blocking can help complete "{title}" more efficiently.',
    'Analysis: "{title}" has clear deliverables. Document progress for future reference.',
    'Insight: "{title}" may take longer than first estimated. Plan accordingly.',
)


def _status_key(status: Any) -> str:
    return str(getattr(status, "value", status) or "")


def note_pool(status: Any) -> tuple[str, ...]:
    return _STATUS_NOTE_POOLS.get(_status_key(status), _GENERIC_NOTE_POOL)


def select_note(title: str, status: Any, rng: random.Random) -> str:
    pool = note_pool(status)
    template = pool[rng.randrange(len(pool))]
    return template.format(title=title)
