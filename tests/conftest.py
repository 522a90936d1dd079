import pytest

from helpers.fakes import (
    FakeRedis,
    FakeSession,
    MemoryStore,
    MockResultRepository,
    MockStatsRepository,
    MockSurveyRepository,
    session_factory,
)
from survey_core.cache import SurveyCache
from survey_core.models.identity import AdminIdentity, AdminRole, UserIdentity, UserType
from survey_core.reader import SurveyReader
from survey_core.service import SurveyService


@pytest.fixture
def store():
    """Fresh in-memory committed state for each test."""
    return MemoryStore()


@pytest.fixture
def db(store):
    """FakeSession standing in for AsyncSession."""
    return FakeSession(store)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def reader(store, fake_redis):
    return SurveyReader(
        SurveyCache(fake_redis), session_factory(store), MockSurveyRepository(store),
    )


@pytest.fixture
def service(store, reader):
    """SurveyService wired to in-memory repositories and a fake Redis."""
    svc = SurveyService(reader, timezone="UTC")
    svc._surveys = MockSurveyRepository(store)
    svc._results = MockResultRepository(store)
    svc._stats = MockStatsRepository(store)
    return svc


@pytest.fixture
def admin():
    return AdminIdentity(id=1, username="alice")


@pytest.fixture
def other_admin():
    return AdminIdentity(id=2, username="bob")


@pytest.fixture
def super_admin():
    return AdminIdentity(id=99, username="root", role=AdminRole.SUPER)


@pytest.fixture
def user():
    return UserIdentity(username="20260001", user_type=UserType.UNDERGRAD)
