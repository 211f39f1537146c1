"""Root conftest — shared test configuration."""

import os

# Ensure tests never pick up a developer's real database
os.environ.setdefault(
    "OPTILOCK_DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
