"""Services Layer — the imperative shell that runs the lock protocol.

Invariants:
    - VersionedRepository is the only place that advances an entity's version
    - Exactly one write statement per persist/touch/delete call

Design Decisions:
    - Pure builders/detectors from core/, IO from infrastructure/ (ADR: impureim sandwich)
"""
