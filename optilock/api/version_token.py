"""Version Tokens — carry an entity's version across an HTTP round trip.

Invariants:
    - ETag for a lockable entity is the quoted version number: "3"
    - If-Match accepts "3" and W/"3"; anything else is InvalidVersionTokenError (400)
    - Missing If-Match means "use the version this request loaded"

Design Decisions:
    - Header dependency over a form field: no multipart parser needed
    - The token is applied with VersionedRepository.expect_version(), so the
      write is checked against what the client saw, not what the server re-read
"""

from fastapi import Header

from optilock.core.errors import InvalidVersionTokenError


def format_version_token(version: int | None) -> str:
    return f'"{0 if version is None else int(version)}"'


def parse_version_token(token: str) -> int:
    """'"3"' or 'W/"3"' -> 3."""
    raw = token.strip()
    if raw.startswith("W/"):
        raw = raw[2:]
    if len(raw) >= 2 and raw[0] == raw[-1] == '"':
        raw = raw[1:-1]
    if not (raw.isascii() and raw.isdigit()):
        raise InvalidVersionTokenError(token)
    return int(raw)


def etag_for(repository, entity) -> str:
    """ETag header value for ``entity``'s current in-memory version."""
    return format_version_token(repository.version_of(entity))


async def expected_version_from_headers(
    if_match: str | None = Header(default=None),
) -> int | None:
    """FastAPI dependency: version the client expects, from If-Match."""
    if if_match is None or not if_match.strip():
        return None
    return parse_version_token(if_match)
