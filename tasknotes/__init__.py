"""
tasknotes service package.

Design intent:
- Host task CRUD plus simulated note generation behind a small HTTP service.
- Keep the retrying note pipeline independent from storage and routing.
"""
