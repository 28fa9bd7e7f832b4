"""
Options Admin - test configuration and fixtures.

The options API runs in-process (httpx ASGITransport) on a per-test SQLite file,
and the editor core talks to it through the real HttpOptionsRepository.
"""
import os
import asyncio

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEED_REFERENCE_OPTIONS"] = "false"
os.environ["OPTIONS_API_BASE_URL"] = "http://test"
os.environ["HIERARCHY_DELETE_CONFIRM_STEPS"] = "3"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.main import app
from app.database import Base, get_db
from app.models import ReferenceOption  # noqa: F401
from app.schemas.options import OptionItem, OptionPayload, OptionTypeItem
from app.seed import seed_reference_options
from app.services.errors import RepositoryError
from app.services.options_repository import HttpOptionsRepository, OptionsRepository


class RecordingRepository(OptionsRepository):
    """Delegates to a real repository, recording calls; can fail or hold individual methods."""

    def __init__(self, inner: OptionsRepository):
        self.inner = inner
        self.calls: list[tuple] = []
        self.failures: dict[str, RepositoryError] = {}
        self.gates: dict[str, asyncio.Event] = {}

    def fail(self, method: str, message: str = "Server error", status_code: int = 500) -> None:
        self.failures[method] = RepositoryError(message, status_code=status_code)

    def heal(self, method: str) -> None:
        self.failures.pop(method, None)

    def hold(self, method: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[method] = gate
        return gate

    def count(self, method: str) -> int:
        return sum(1 for c in self.calls if c[0] == method)

    async def _call(self, method: str, *args):
        self.calls.append((method, *args))
        gate = self.gates.get(method)
        if gate is not None:
            await gate.wait()
        if method in self.failures:
            raise self.failures[method]
        return await getattr(self.inner, method)(*args)

    async def list_types(self) -> list[OptionTypeItem]:
        return await self._call("list_types")

    async def list_options(self, type_tag: str, parent_id: str | None = None) -> list[OptionItem]:
        return await self._call("list_options", type_tag, parent_id)

    async def upsert_option(self, option_id: str | None, payload: OptionPayload) -> OptionItem:
        return await self._call("upsert_option", option_id, payload)

    async def delete_option(self, option_id: str) -> None:
        return await self._call("delete_option", option_id)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'options.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded(db_session):
    """Sample data: CBSE/ICSE with grades and subjects, Bhopal/Indore with areas, modes, genders."""
    seed_reference_options(db_session)
    return db_session


@pytest.fixture
async def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def http_repo(client) -> HttpOptionsRepository:
    return HttpOptionsRepository(base_url="http://test", client=client)


@pytest.fixture
def repo(http_repo) -> RecordingRepository:
    return RecordingRepository(http_repo)


async def find(repository: OptionsRepository, type_tag: str, value: str, parent_id: str | None = None) -> OptionItem:
    items = await repository.list_options(type_tag, parent_id)
    return next(o for o in items if o.value == value)


@pytest.fixture
def find_option():
    return find
