"""Version Tokens over HTTP — ETag out, If-Match in, 409 on a stale token.

Tests cover:
    - parse_version_token accepts "3" and W/"3", rejects garbage
    - GET returns the version as ETag
    - PATCH with the current ETag commits and returns the bumped ETag
    - PATCH with an old ETag returns 409 STALE_VERSION_CONFLICT
    - malformed If-Match (including non-ASCII digits) returns 400 INVALID_VERSION_TOKEN

Design Decisions:
    - Routes defined in the test: the library ships handlers and dependencies, not routes
"""

import pytest
from fastapi import Depends, FastAPI, Response
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from optilock.api.error_handlers import register_error_handlers
from optilock.api.version_token import (
    etag_for,
    expected_version_from_headers,
    format_version_token,
    parse_version_token,
)
from optilock.core.errors import InvalidVersionTokenError
from optilock.db.base import Base
from optilock.services.versioned_repository import VersionedRepository
from tests.sample_models import Document, sample_config


class DocumentPatch(BaseModel):
    title: str


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db:
        await VersionedRepository(db, Document, sample_config()).create(
            Document(id=1, title="Draft"),
        )
        await db.commit()
    yield factory
    await engine.dispose()


@pytest.fixture
async def client(session_factory):
    app = FastAPI()
    register_error_handlers(app)
    config = sample_config()

    async def get_db():
        async with session_factory() as session:
            yield session

    @app.get("/documents/{doc_id}")
    async def read_document(doc_id: int, response: Response, db=Depends(get_db)):
        repo = VersionedRepository(db, Document, config)
        doc = await repo.get(doc_id)
        response.headers["ETag"] = etag_for(repo, doc)
        return {"id": doc.id, "title": doc.title}

    @app.patch("/documents/{doc_id}")
    async def update_document(
        doc_id: int,
        patch: DocumentPatch,
        response: Response,
        expected: int | None = Depends(expected_version_from_headers),
        db=Depends(get_db),
    ):
        repo = VersionedRepository(db, Document, config)
        doc = await repo.get(doc_id)
        if expected is not None:
            repo.expect_version(doc, expected)
        doc.title = patch.title
        await repo.persist(doc)
        await db.commit()
        response.headers["ETag"] = etag_for(repo, doc)
        return {"id": doc.id, "title": doc.title}

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c


# ─── token parsing ───────────────────────────────────────────────

@pytest.mark.parametrize("token, version", [('"3"', 3), ('W/"3"', 3), ("12", 12)])
def test_parse_version_token(token, version):
    assert parse_version_token(token) == version


@pytest.mark.parametrize("token", ['"abc"', "*", '"-1"', "", '"\u00b2"', "\u0663"])
def test_parse_version_token_rejects_garbage(token):
    with pytest.raises(InvalidVersionTokenError):
        parse_version_token(token)


def test_format_version_token():
    assert format_version_token(4) == '"4"'
    assert format_version_token(None) == '"0"'


# ─── HTTP round trip ─────────────────────────────────────────────

async def test_get_returns_version_etag(client):
    res = await client.get("/documents/1")
    assert res.status_code == 200
    assert res.headers["etag"] == '"0"'


async def test_patch_with_current_token_commits(client):
    res = await client.patch(
        "/documents/1", json={"title": "Edited"}, headers={"If-Match": '"0"'},
    )
    assert res.status_code == 200
    assert res.headers["etag"] == '"1"'
    assert res.json()["title"] == "Edited"


async def test_patch_with_stale_token_conflicts(client):
    first = await client.patch(
        "/documents/1", json={"title": "First"}, headers={"If-Match": '"0"'},
    )
    assert first.status_code == 200

    second = await client.patch(
        "/documents/1", json={"title": "Second"}, headers={"If-Match": '"0"'},
    )
    assert second.status_code == 409
    error = second.json()["error"]
    assert error["code"] == "STALE_VERSION_CONFLICT"
    assert error["context"]["expected_version"] == 0
    assert error["recoverable"] is True

    current = await client.get("/documents/1")
    assert current.json()["title"] == "First"
    assert current.headers["etag"] == '"1"'


async def test_patch_without_token_uses_loaded_version(client):
    res = await client.patch("/documents/1", json={"title": "No token"})
    assert res.status_code == 200
    assert res.headers["etag"] == '"1"'


async def test_patch_with_malformed_token_is_rejected(client):
    res = await client.patch(
        "/documents/1", json={"title": "x"}, headers={"If-Match": "not-a-version"},
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_VERSION_TOKEN"


async def test_missing_document_is_404(client):
    res = await client.get("/documents/99")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_patch_with_non_ascii_digit_token_is_rejected(client):
    # latin-1 superscript two: str.isdigit() is True but int() refuses it
    res = await client.patch(
        "/documents/1", json={"title": "x"}, headers=[(b"if-match", b'"\xb2"')],
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_VERSION_TOKEN"
