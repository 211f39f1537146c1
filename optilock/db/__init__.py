"""Database Infrastructure — async session factory and SQLAlchemy Base.

Invariants:
    - All sessions are async (AsyncSession), created by infrastructure/database.py
"""
