"""Test config and shared fixtures."""
import pytest
from typing import AsyncGenerator, Optional
from fastapi import HTTPException, status
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, delete
from sqlmodel.ext.asyncio.session import AsyncSession

from main import app
from framework.security import CurrentUser, Scope, USER_TOKEN_SCOPES, get_password_hash
from apps.clients.models import AuthorizationCode, ClientDetails
from apps.notifications.models import Notification
from apps.profiles.models import Profile
from apps.works.models import Work


# In-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Valid iDs (checksums hold)
OWNER_ORCID = "0000-0002-1825-0097"
OTHER_ORCID = "0000-0001-5109-3700"
UNCLAIMED_ORCID = "0000-0002-1694-233X"
CLIENT_ID = "APP-TESTCLIENT0001"
CLIENT_SECRET = "test-client-secret"
OTHER_CLIENT_ID = "APP-TESTCLIENT0002"
REDIRECT_URI = "https://member.example.org/callback"

MEMBER_SCOPES = [Scope.AUTHENTICATE.value, Scope.READ_LIMITED.value, Scope.ACTIVITIES_UPDATE.value]


def owner_user(orcid: str = OWNER_ORCID) -> CurrentUser:
    return CurrentUser(orcid=orcid, scopes=list(USER_TOKEN_SCOPES))


def member_user(orcid: str = OWNER_ORCID, client_id: str = CLIENT_ID, scopes=None) -> CurrentUser:
    return CurrentUser(orcid=orcid, client_id=client_id, scopes=list(scopes or MEMBER_SCOPES))


class Caller:
    """Who the test client is acting as; None means anonymous."""

    def __init__(self):
        self.user: Optional[CurrentUser] = None

    def as_owner(self, orcid: str = OWNER_ORCID) -> CurrentUser:
        self.user = owner_user(orcid)
        return self.user

    def as_member(self, orcid: str = OWNER_ORCID, client_id: str = CLIENT_ID, scopes=None) -> CurrentUser:
        self.user = member_user(orcid, client_id, scopes)
        return self.user

    def as_anonymous(self) -> None:
        self.user = None


@pytest.fixture(scope="function")
async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """Create async test database session."""
    import apps.models  # noqa: F401  register tables

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    async_session_maker = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def caller() -> Caller:
    return Caller()


@pytest.fixture
async def client(
    async_session: AsyncSession,
    caller: Caller
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client; switch identity through the `caller` fixture."""
    from framework.dependencies import get_db
    from framework.security import get_current_user, get_optional_user
    from apps.profiles.cache import ProfileCache, get_profile_cache

    async def _get_db():
        yield async_session

    def _get_current_user():
        if caller.user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
            )
        return caller.user

    def _get_optional_user():
        return caller.user

    async def _get_profile_cache():
        return ProfileCache(None)

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = _get_current_user
    app.dependency_overrides[get_optional_user] = _get_optional_user
    app.dependency_overrides[get_profile_cache] = _get_profile_cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def sample_profile(async_session: AsyncSession) -> Profile:
    """Claimed record with public defaults."""
    profile = Profile(
        orcid=OWNER_ORCID,
        email="josiah.carberry@example.org",
        hashed_password=get_password_hash("correct-horse"),
        given_names="Josiah",
        family_name="Carberry",
        biography="Psychoceramics.",
        claimed=True,
    )
    async_session.add(profile)
    await async_session.commit()
    await async_session.refresh(profile)
    return profile


@pytest.fixture
async def other_profile(async_session: AsyncSession) -> Profile:
    profile = Profile(
        orcid=OTHER_ORCID,
        email="other@example.org",
        hashed_password=get_password_hash("another-pass"),
        given_names="Ada",
        family_name="Other",
        claimed=True,
    )
    async_session.add(profile)
    await async_session.commit()
    await async_session.refresh(profile)
    return profile


@pytest.fixture
async def unclaimed_profile(async_session: AsyncSession) -> Profile:
    """Record provisioned on the researcher's behalf; no password yet."""
    profile = Profile(
        orcid=UNCLAIMED_ORCID,
        email="unclaimed@example.org",
        given_names="Una",
        family_name="Claimed",
        activities_visibility_default="public",
        claimed=False,
    )
    async_session.add(profile)
    await async_session.commit()
    await async_session.refresh(profile)
    return profile


@pytest.fixture
async def sample_client(async_session: AsyncSession, sample_profile: Profile) -> ClientDetails:
    client = ClientDetails(
        client_id=CLIENT_ID,
        client_secret_hash=get_password_hash(CLIENT_SECRET),
        name="Test Member App",
        description="Publishes works for researchers",
        member_name="Test University",
        redirect_uris=[REDIRECT_URI],
        allowed_scopes=list(MEMBER_SCOPES),
        owner_orcid=OWNER_ORCID,
    )
    async_session.add(client)
    await async_session.commit()
    await async_session.refresh(client)
    return client


@pytest.fixture
async def sample_work(async_session: AsyncSession, sample_profile: Profile) -> Work:
    """Public journal article added by the owner."""
    work = Work(
        orcid=OWNER_ORCID,
        title="Ceramic pots of the ancient world",
        work_type="journal-article",
        journal_title="Journal of Psychoceramics",
        publication_date="2020-05",
        external_ids=[{
            "type": "doi",
            "value": "10.1000/pots.2020",
            "normalized": "10.1000/pots.2020",
            "normalized_url": "https://doi.org/10.1000/pots.2020",
            "url": None,
            "relationship": "self",
        }],
        contributors=[],
        visibility="public",
        display_index=1,
        source_id=OWNER_ORCID,
    )
    async_session.add(work)
    await async_session.commit()
    await async_session.refresh(work)
    return work


@pytest.fixture(autouse=True)
async def cleanup_test_data(async_session: AsyncSession, request):
    """
    Fixture to auto-cleanup test data.

    Cleans test data after each test. Disable with pytest option --no-cleanup.
    """
    yield

    if request.config.getoption("--no-cleanup", default=False):
        return

    await async_session.rollback()
    # Children first
    for model in (Notification, AuthorizationCode, Work, ClientDetails, Profile):
        await async_session.execute(delete(model))
    await async_session.commit()


def pytest_addoption(parser):
    """Add pytest command-line options."""
    parser.addoption(
        "--no-cleanup",
        action="store_true",
        default=False,
        help="Disable auto-cleanup of test data"
    )


def ext(id_type: str, value: str, relationship: str = "self") -> dict:
    """Stored form of an external identifier."""
    from apps.works.identifiers import ExternalID, normalize_external_id
    return normalize_external_id(ExternalID(type=id_type, value=value, relationship=relationship)).model_dump()


async def add_work(
    session: AsyncSession,
    title: str,
    external_ids=None,
    visibility: str = "public",
    client_id: Optional[str] = None,
    display_index: int = 0,
    publication_date: Optional[str] = None,
    work_type: str = "journal-article",
    orcid: str = OWNER_ORCID,
) -> Work:
    """Insert a work directly, sourced by `client_id` or else by the record owner."""
    work = Work(
        orcid=orcid,
        title=title,
        work_type=work_type,
        publication_date=publication_date,
        external_ids=list(external_ids or []),
        contributors=[],
        visibility=visibility,
        display_index=display_index,
        source_id=None if client_id else orcid,
        client_source_id=client_id,
    )
    session.add(work)
    await session.commit()
    await session.refresh(work)
    return work
