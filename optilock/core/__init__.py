"""Core Layer — pure locking logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic

Design Decisions:
    - Functional core separated from imperative shell: builders and detectors
      here, the UPDATE round-trip in infrastructure/
"""
