"""
Sociality Backend — Application Package Initializer
====================================================

What: Marks the `sociality` directory as a Python package.
Why:  Enables module imports like `from sociality.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows the same layered shape for every resource:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, compatibility views
    ├─────────────────────────────────────┤
    │   Dependencies (auth, pagination)   │  ← Viewer identity, query bounds
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Ownership rules, counts, upserts
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never touch the ORM directly; services never build HTTP responses.
"""

__version__ = "1.0.0"
