"""
Day Planner Backend — Application Package Initializer
======================================================

What: Marks the `dayplanner` directory as a Python package.
Who:  Imported by uvicorn (dayplanner.main:app), Alembic, pytest and the
      reminder console script.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← cookies, status codes
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← accounts, tokens, reminders
    ├─────────────────────────────────────┤
    │  Models & Schemas │ Redis │ Sanity  │  ← users, sessions, events
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
