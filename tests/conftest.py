import os
import tempfile
from collections.abc import AsyncGenerator, Awaitable, Callable

# Settings are read at import time, so the environment has to be in place first.
_TMP = tempfile.mkdtemp(prefix="betre-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/app.db"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from betre.core.roles import Role  # noqa: E402
from betre.core.security import create_access_token, get_password_hash  # noqa: E402
from betre.db.base import Base  # noqa: E402
from betre.db.session import get_db  # noqa: E402
from betre.main import app  # noqa: E402
from betre.models.user import User  # noqa: E402

PASSWORD = "password123"
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest_asyncio.fixture
async def engine(tmp_path):
    # One connection per session so concurrent sessions really are concurrent.
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory) -> Callable[..., Awaitable[User]]:
    """Create and commit a user in its own session."""

    async def _make(username: str, role: Role = Role.USER) -> User:
        async with session_factory() as session:
            user = User(
                username=username,
                email=f"{username}@example.com",
                password_hash=PASSWORD_HASH,
                role=role.value,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


def _bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    return _bearer


@pytest_asyncio.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
