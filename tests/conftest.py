"""Shared test fixtures.

Service and API tests run against a throwaway SQLite database (aiosqlite) per
test. SQLite has no row locks, so ``FOR UPDATE [SKIP LOCKED]`` compiles away;
concurrent-claim behaviour is covered by the PostgreSQL-only test.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable, Iterator
from datetime import datetime, timedelta, timezone

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.config import get_settings
from levelboard.database import close_db, get_engine, get_session_factory, init_db
from levelboard.db.base import Base
from levelboard.db.models import (
    Level,
    ListVariant,
    Record,
    Shift,
    ShiftStatus,
    Submission,
    SubmissionStatus,
)


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Settings are lru_cached; tests that monkeypatch LVB_* env vars need a clean cache."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[None, None]:
    """Initialize the global engine on a fresh SQLite file with all tables."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'levelboard.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for setup and assertions."""
    async with get_session_factory()() as session:
        yield session


class Factory:
    """Insert-and-commit helpers for test rows."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def level(
        self,
        variant: ListVariant = ListVariant.CLASSIC,
        position: int = 500,
        legacy: bool = False,
        name: str | None = None,
    ) -> Level:
        return await self._save(Level(
            list_variant=variant.value,
            name=name or f"Level {position}",
            position=position,
            legacy=legacy,
        ))

    async def submission(
        self,
        level: Level,
        submitted_by: uuid.UUID | None = None,
        priority: bool = False,
        created_at: datetime | None = None,
        status: SubmissionStatus = SubmissionStatus.PENDING,
        reviewer_id: uuid.UUID | None = None,
        user_notes: str | None = None,
        locked: bool = False,
    ) -> Submission:
        created_at = created_at or datetime.now(timezone.utc)
        if status != SubmissionStatus.PENDING and reviewer_id is None:
            reviewer_id = uuid.uuid4()
        return await self._save(Submission(
            list_variant=level.list_variant,
            level_id=level.id,
            submitted_by=submitted_by or uuid.uuid4(),
            video_url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            raw_url="https://drive.example.com/raw.mp4",
            user_notes=user_notes,
            priority=priority,
            status=status.value,
            reviewer_id=reviewer_id,
            locked=locked,
            created_at=created_at,
            updated_at=created_at,
        ))

    async def record(self, level: Level, submitted_by: uuid.UUID, is_verification: bool = False) -> Record:
        now = datetime.now(timezone.utc)
        return await self._save(Record(
            list_variant=level.list_variant,
            level_id=level.id,
            submitted_by=submitted_by,
            video_url="https://www.youtube.com/watch?v=old",
            is_verification=is_verification,
            created_at=now - timedelta(days=30),
            updated_at=now - timedelta(days=30),
        ))

    async def shift(
        self,
        user_id: uuid.UUID,
        variant: ListVariant = ListVariant.CLASSIC,
        target_count: int = 5,
        completed_count: int = 0,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        status: ShiftStatus = ShiftStatus.RUNNING,
    ) -> Shift:
        now = datetime.now(timezone.utc)
        return await self._save(Shift(
            list_variant=variant.value,
            user_id=user_id,
            target_count=target_count,
            completed_count=completed_count,
            start_at=start_at or now - timedelta(hours=1),
            end_at=end_at or now + timedelta(hours=1),
            status=status.value,
            created_at=now,
            updated_at=now,
        ))


@pytest_asyncio.fixture
async def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Mint access tokens the way the account service does."""

    def _make(
        user_id: uuid.UUID,
        permissions: tuple[str, ...] = (),
        priority: bool = False,
        **overrides,
    ) -> str:
        settings = get_settings()
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "permissions": list(permissions),
            "priority": priority,
            "iat": now,
            "exp": now + timedelta(hours=1),
            "iss": settings.jwt_issuer,
            "type": "access",
        }
        payload.update(overrides)
        return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    return _make


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, sharing the test database."""
    from levelboard.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
