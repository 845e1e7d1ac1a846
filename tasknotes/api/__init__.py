"""
API orchestration boundary for tasknotes.

Design intent:
- Expose thin, typed endpoints for task CRUD and note generation.
- Keep request validation explicit and failure modes predictable.
- Orchestrate modules without embedding domain logic in routers.
"""
