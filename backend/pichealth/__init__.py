"""
PicHealth API — Application Package Initializer
================================================

What: Marks the `pichealth` directory as a Python package.
Who:  Used by uvicorn (`pichealth.main:app`), Alembic and pytest.

Architecture Note:
    The backend is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │     Routes + Middleware (HTTP)      │  ← status codes, headers, CORS
    ├─────────────────────────────────────┤
    │   Security (key gate, rate limit)   │  ← request admission
    ├─────────────────────────────────────┤
    │   Services (AI, storage, logging)   │  ← orchestration, collaborators
    ├─────────────────────────────────────┤
    │   Core (extract, normalize, check)  │  ← pure functions, no I/O
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘

    The core layer never performs I/O: it turns untrusted model text into
    typed records, so it is tested without HTTP, Gemini or a database.
"""

__version__ = "1.0.0"
