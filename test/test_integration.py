import pytest
import pytest_asyncio
import os
from datetime import datetime
from typing import AsyncGenerator
from unittest.mock import MagicMock

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# --- SETUP ---
os.environ["TESTING"] = "True"

# --- App Imports ---
from main import app
from app.database.connection import Base, get_db
from app.database.models import User, PendingNotification
from app.models.authorization import AuthorizationStatus
from app.services.notification_center import NotificationCenter, NotificationSchedulingError
from app.models.notification import NotificationCreate

# --- Test DB Setup ---
DATABASE_URL = "sqlite+aiosqlite:///:memory:"
engine = create_async_engine(DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = async_sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)

GYM = {"title": "Gym", "body": "Leg day", "year": 2099, "month": 1, "day": 1, "hour": 7, "minute": 0}


# --- CORE FIXTURES ---

@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with TestingSessionLocal() as session:
        yield session
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    del app.dependency_overrides[get_db]


@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    user = User(firebase_uid="test_firebase_uid_123", email="authtest@example.com", full_name="Auth Test User",
                authorization_status=AuthorizationStatus.AUTHORIZED)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def undetermined_user(db_session: AsyncSession) -> User:
    user = User(firebase_uid="fresh_firebase_uid", email="fresh@example.com", full_name="Fresh User")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def mock_firebase_auth(mocker):
    """Mocks the firebase_admin.auth module where the security dependency uses it."""
    return mocker.patch('app.services.firebase_auth.auth')


@pytest_asyncio.fixture(scope="function")
async def authenticated_client(client: AsyncClient, test_user: User, mock_firebase_auth) -> AsyncClient:
    """Provides a client authenticated as an EXISTING, authorized user."""
    mock_firebase_auth.verify_id_token.return_value = {'uid': test_user.firebase_uid, 'email': test_user.email}
    client.headers["Authorization"] = "Bearer existing-user-token"
    yield client


@pytest_asyncio.fixture(scope="function")
async def undetermined_client(client: AsyncClient, undetermined_user: User, mock_firebase_auth) -> AsyncClient:
    """Provides a client for a user who has not answered the permission prompt yet."""
    mock_firebase_auth.verify_id_token.return_value = {'uid': undetermined_user.firebase_uid}
    client.headers["Authorization"] = "Bearer fresh-user-token"
    yield client


async def create(client: AsyncClient, **overrides) -> dict:
    response = await client.post("/api/notifications/", json={**GYM, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


# --- Integration Test Cases ---

@pytest.mark.asyncio
async def test_itc_001_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert "running" in response.json()["message"]


@pytest.mark.asyncio
async def test_itc_002_auth_sync_new_user(client: AsyncClient, mock_firebase_auth, mocker):
    """Tests ITC-002: A new Firebase user is synced with an undetermined permission state."""
    mock_firebase_auth.verify_id_token.return_value = {'uid': 'new_firebase_uid'}
    mock_controller_auth = mocker.patch('app.controllers.auth.auth')
    mock_controller_auth.get_user.return_value = MagicMock(
        uid='new_firebase_uid', email='new.user@test.com', display_name='New Test User'
    )

    response = await client.post("/auth/sync", headers={"Authorization": "Bearer new-user-token"}, json={})

    assert response.status_code == 200, response.text
    assert response.json()["email"] == "new.user@test.com"
    assert response.json()["full_name"] == "New Test User"
    assert response.json()["authorization_status"] == "not_determined"


@pytest.mark.asyncio
async def test_itc_003_auth_sync_existing_user(client: AsyncClient, test_user: User, mock_firebase_auth):
    mock_firebase_auth.verify_id_token.return_value = {'uid': test_user.firebase_uid}
    response = await client.post("/auth/sync", headers={"Authorization": "Bearer existing_token"}, json={})
    assert response.status_code == 200
    assert response.json()["id"] == test_user.id


@pytest.mark.asyncio
async def test_itc_004_requires_token(client: AsyncClient):
    response = await client.get("/api/notifications/")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_itc_005_unsynced_user_is_not_found(client: AsyncClient, mock_firebase_auth):
    mock_firebase_auth.verify_id_token.return_value = {'uid': 'nobody'}
    response = await client.get("/auth/me", headers={"Authorization": "Bearer some-token"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_itc_006_create_and_list_notification(authenticated_client: AsyncClient):
    created = await create(authenticated_client)
    assert created["title"] == "Gym"
    assert created["display_time"] == "7:00 AM"
    assert created["next_trigger_date"].startswith("2099-01-01T07:00")

    response = await authenticated_client.get("/api/notifications/")
    assert response.status_code == 200
    assert [n["identifier"] for n in response.json()] == [created["identifier"]]


@pytest.mark.asyncio
async def test_itc_007_search_by_title_and_body(authenticated_client: AsyncClient):
    gym = await create(authenticated_client)
    dentist = await create(authenticated_client, title="Dentist", body="Bring the GYM bag back")

    response = await authenticated_client.get("/api/notifications/", params={"q": "gym"})
    assert [n["identifier"] for n in response.json()] == [gym["identifier"], dentist["identifier"]]

    response = await authenticated_client.get("/api/notifications/", params={"q": "yoga"})
    assert response.json() == []


@pytest.mark.asyncio
async def test_itc_008_create_past_date_is_rejected(authenticated_client: AsyncClient):
    response = await authenticated_client.post("/api/notifications/", json={**GYM, "year": 2000})
    assert response.status_code == 400
    assert "future" in response.json()["detail"]

    listing = await authenticated_client.get("/api/notifications/")
    assert listing.json() == []


@pytest.mark.asyncio
async def test_itc_008b_create_past_date_repeating_is_rejected(authenticated_client: AsyncClient):
    """A repeating trigger whose first date has passed is never scheduled."""
    response = await authenticated_client.post("/api/notifications/", json={**GYM, "year": 2000, "repeats": True})
    assert response.status_code == 400
    assert "future" in response.json()["detail"]

    listing = await authenticated_client.get("/api/notifications/")
    assert listing.json() == []


@pytest.mark.asyncio
async def test_itc_009_create_invalid_payload(authenticated_client: AsyncClient):
    response = await authenticated_client.post("/api/notifications/", json={**GYM, "title": ""})
    assert response.status_code == 422
    response = await authenticated_client.post("/api/notifications/", json={**GYM, "month": 2, "day": 30})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_itc_010_delete_set_ignores_absent_identifiers(authenticated_client: AsyncClient):
    first = await create(authenticated_client, title="First")
    second = await create(authenticated_client, title="Second")

    response = await authenticated_client.post(
        "/api/notifications/delete", json={"identifiers": [first["identifier"], "does-not-exist"]}
    )
    assert response.status_code == 204

    listing = await authenticated_client.get("/api/notifications/")
    assert [n["identifier"] for n in listing.json()] == [second["identifier"]]


@pytest.mark.asyncio
async def test_itc_011_delete_single_is_idempotent(authenticated_client: AsyncClient):
    created = await create(authenticated_client)
    first = await authenticated_client.delete(f"/api/notifications/{created['identifier']}")
    again = await authenticated_client.delete(f"/api/notifications/{created['identifier']}")
    assert first.status_code == 204
    assert again.status_code == 204


@pytest.mark.asyncio
async def test_itc_012_delete_all(authenticated_client: AsyncClient):
    await create(authenticated_client, title="One")
    await create(authenticated_client, title="Two")
    response = await authenticated_client.delete("/api/notifications/")
    assert response.status_code == 204
    listing = await authenticated_client.get("/api/notifications/")
    assert listing.json() == []


@pytest.mark.asyncio
async def test_itc_013_reorder_is_reflected_on_reload(authenticated_client: AsyncClient):
    a = await create(authenticated_client, title="A")
    b = await create(authenticated_client, title="B")
    c = await create(authenticated_client, title="C")

    response = await authenticated_client.post("/api/notifications/reorder", json={"from_offsets": [0], "to_offset": 3})
    assert response.status_code == 200
    assert [n["title"] for n in response.json()] == ["B", "C", "A"]

    listing = await authenticated_client.get("/api/notifications/")
    assert [n["identifier"] for n in listing.json()] == [b["identifier"], c["identifier"], a["identifier"]]


@pytest.mark.asyncio
async def test_itc_014_reorder_out_of_range(authenticated_client: AsyncClient):
    await create(authenticated_client)
    response = await authenticated_client.post("/api/notifications/reorder", json={"from_offsets": [5], "to_offset": 0})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_itc_015_overview_for_empty_authorized_user(authenticated_client: AsyncClient):
    response = await authenticated_client.get("/api/notifications/overview")
    body = response.json()
    assert response.status_code == 200
    assert body["authorization_status"] == "authorized"
    assert body["overlay"]["action"] == "create"
    assert body["notifications"] == []


@pytest.mark.asyncio
async def test_itc_016_permission_flow(undetermined_client: AsyncClient):
    """The prompt is answered once; settings toggles afterwards."""
    status_response = await undetermined_client.get("/api/authorization/")
    assert status_response.json()["status"] == "not_determined"

    listing = await undetermined_client.get("/api/notifications/")
    assert listing.json() == []

    blocked = await undetermined_client.post("/api/notifications/", json=GYM)
    assert blocked.status_code == 403

    too_early = await undetermined_client.put("/api/authorization/settings", json={"enabled": True})
    assert too_early.status_code == 409

    denied = await undetermined_client.post("/api/authorization/request", json={"granted": False})
    assert denied.json()["status"] == "denied"

    overview = await undetermined_client.get("/api/notifications/overview")
    assert overview.json()["overlay"]["kind"] == "permission_denied"
    assert overview.json()["overlay"]["action_url"]

    # A second prompt answer does not change anything
    again = await undetermined_client.post("/api/authorization/request", json={"granted": True})
    assert again.json()["status"] == "denied"

    enabled = await undetermined_client.put("/api/authorization/settings", json={"enabled": True})
    assert enabled.json()["status"] == "authorized"

    created = await undetermined_client.post("/api/notifications/", json=GYM)
    assert created.status_code == 201


@pytest.mark.asyncio
async def test_itc_017_denied_user_lists_nothing(authenticated_client: AsyncClient):
    await create(authenticated_client)
    await authenticated_client.put("/api/authorization/settings", json={"enabled": False})

    listing = await authenticated_client.get("/api/notifications/")
    assert listing.json() == []

    await authenticated_client.put("/api/authorization/settings", json={"enabled": True})
    listing = await authenticated_client.get("/api/notifications/")
    assert len(listing.json()) == 1


@pytest.mark.asyncio
async def test_itc_018_pending_limit(db_session: AsyncSession, test_user: User):
    center = NotificationCenter(db_session, test_user, max_pending=1)
    await center.add(NotificationCreate(**GYM))
    with pytest.raises(NotificationSchedulingError):
        await center.add(NotificationCreate(**{**GYM, "title": "Another"}))
    assert len(await center.pending_requests()) == 1


@pytest.mark.asyncio
async def test_itc_019_scheduler_retires_fired_one_shots(db_session: AsyncSession, test_user: User, mocker):
    from scripts.notification_scheduler import retire_fired_notifications

    def row(identifier, year, repeats=False):
        return PendingNotification(identifier=identifier, user_id=test_user.id, title=identifier, body="",
                                   year=year, month=1, day=1, hour=7, minute=0, repeats=repeats, position=0)

    db_session.add_all([row("fired", 2020), row("yearly", 2020, repeats=True), row("upcoming", 2099)])
    await db_session.commit()

    mock_get_db_session = mocker.patch('scripts.notification_scheduler.get_db_session')
    mock_get_db_session.return_value.__aenter__.return_value = db_session

    removed = await retire_fired_notifications(datetime(2026, 10, 17, 12, 0))

    assert removed == 1
    remaining = await NotificationCenter(db_session, test_user).pending_requests()
    assert sorted(n.identifier for n in remaining) == ["upcoming", "yearly"]
