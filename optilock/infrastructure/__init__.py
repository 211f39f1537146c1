"""Infrastructure Layer — the SQLAlchemy side of the store and cross-cutting concerns.

Invariants:
    - Store errors are logged and re-raised unchanged, never translated
    - Only update_executor.py issues the version-checked statements

Design Decisions:
    - Thin adapters over SQLAlchemy Core statements (ADR: single responsibility)
"""
