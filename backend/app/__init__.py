"""
X Tracking API — Application Package
======================================

Backend for tracking X (Twitter) accounts grouped into categories.

Layers:

    ┌─────────────────────────────────────┐
    │   Route tables (routes/)            │  ← declarative: path, rules, auth, handler
    ├─────────────────────────────────────┤
    │   Gate + validation                 │  ← middleware/auth.py, validation.py
    ├─────────────────────────────────────┤
    │   Services (services/)              │  ← business rules
    ├─────────────────────────────────────┤
    │   Models & Schemas                  │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (database.py)            │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
