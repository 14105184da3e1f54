import pytest

from betre.core.exceptions import Conflict
from betre.models.user import User
from betre.schemas.user import UserCreate, UserUpdate
from betre.services import auth_service


async def _nobody(db, value):
    return None


@pytest.fixture
def lookups_miss(monkeypatch) -> None:
    # Simulates another request taking the name right after the lookup.
    monkeypatch.setattr(auth_service, "get_user_by_username", _nobody)
    monkeypatch.setattr(auth_service, "get_user_by_email", _nobody)


@pytest.mark.asyncio
async def test_create_user_conflict_on_taken_username(db_session, make_user) -> None:
    await make_user("taken")
    with pytest.raises(Conflict):
        await auth_service.create_user(
            db_session, UserCreate(username="taken", email="fresh@example.com", password="password123")
        )
    with pytest.raises(Conflict):
        await auth_service.create_user(
            db_session, UserCreate(username="fresh", email="TAKEN@example.com", password="password123")
        )


@pytest.mark.asyncio
async def test_create_user_unique_race_is_conflict(db_session, make_user, lookups_miss) -> None:
    await make_user("taken")
    with pytest.raises(Conflict):
        await auth_service.create_user(
            db_session, UserCreate(username="taken", email="fresh@example.com", password="password123")
        )


@pytest.mark.asyncio
async def test_update_profile_unique_race_is_conflict(db_session, make_user, lookups_miss) -> None:
    await make_user("taken")
    bob = await make_user("bob")
    user = await db_session.get(User, bob.id)
    with pytest.raises(Conflict):
        await auth_service.update_profile(db_session, user, UserUpdate(username="taken"))
