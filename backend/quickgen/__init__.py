"""
QuickGen Backend: Application Package
=====================================

What: AI content tools (articles, blog titles, images, background/object
      removal, resume review) behind a single FastAPI service.
How:  Every capability delegates the heavy lifting to a vendor API; this
      package only gates access, calls the vendor, and records the result.

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP envelope only
    ├─────────────────────────────────────┤
    │   Services (gating, vendors, quota) │  ← Orchestration
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
