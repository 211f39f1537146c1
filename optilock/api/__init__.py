"""API Layer — FastAPI plumbing for carrying version tokens over HTTP.

Invariants:
    - OptiLockError maps to its own http_status (conflict -> 409)
    - Version tokens travel as ETag / If-Match values

Design Decisions:
    - No routes shipped: applications include the handlers and dependencies they need
"""
