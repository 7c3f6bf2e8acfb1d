from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update

from carriergate.db.base import Base, build_engine, build_session_factory, get_session_factory, unit_of_work
from carriergate.domain.doc_request import DocRequest
from carriergate.domain.mixins import utcnow
from carriergate.domain.token import DocRequestToken
from carriergate.main import app
from carriergate.services.audit import AuditTrail
from carriergate.services.doc_requests import DocRequestLifecycle
from carriergate.services.sweeper import ExpirationSweeper
from carriergate.services.tokens import TokenAuthority
from carriergate.services.uploads import UploadLifecycle
from carriergate.schemas.upload import FileMetadata, StorageLocator

SHA_A = "a" * 64
SHA_B = "b" * 64


@pytest.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'carriergate.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def tokens(session_factory):
    return TokenAuthority(session_factory)


@pytest.fixture
def doc_requests(session_factory, tokens):
    return DocRequestLifecycle(session_factory, tokens)


@pytest.fixture
def uploads(session_factory):
    return UploadLifecycle(session_factory)


@pytest.fixture
def audit(session_factory):
    return AuditTrail(session_factory)


@pytest.fixture
def sweeper(session_factory):
    return ExpirationSweeper(session_factory)


@pytest.fixture
async def client(session_factory):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def open_request(doc_requests):
    """Factory: open a request for cab_card + coi and return (id, raw_token, expires_at)."""

    async def _open(required_docs=None, ttl_minutes=None):
        return await doc_requests.create(
            broker_org_id="broker-1",
            carrier_org_id="carrier-1",
            verification_id="verif-1",
            required_docs=required_docs or [
                {"doc_type": "cab_card", "required": True},
                {"doc_type": "coi", "required": True},
            ],
            ttl_minutes=ttl_minutes,
        )

    return _open


def file_meta(name="cab_card.pdf", sha256=SHA_A, size=1024) -> FileMetadata:
    return FileMetadata(
        file_name=name, content_type="application/pdf", byte_size=size, sha256=sha256,
    )


def storage(path="broker-1/cab_card.pdf") -> StorageLocator:
    return StorageLocator(bucket="carrier-docs", path=path)


async def backdate_request(session_factory, doc_request_id, minutes=5):
    """Push a request (and its tokens) into the past."""
    past = utcnow() - timedelta(minutes=minutes)
    async with unit_of_work(session_factory) as session:
        await session.execute(
            update(DocRequest).where(DocRequest.id == doc_request_id).values(expires_at=past)
        )
        await session.execute(
            update(DocRequestToken)
            .where(DocRequestToken.doc_request_id == doc_request_id)
            .values(expires_at=past)
        )
