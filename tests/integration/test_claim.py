"""Claim coordinator: ordering, exclusions, and the reviewer invariant."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from levelboard.db.models import ListVariant, Notification, SubmissionHistory, SubmissionStatus
from levelboard.errors import NotFoundError
from levelboard.submissions.claim_service import claim

T0 = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class TestClaimOrdering:
    @pytest.mark.asyncio
    async def test_priority_beats_age(self, db_session, factory):
        level = await factory.level()
        older = await factory.submission(level, priority=False, created_at=T0)
        urgent = await factory.submission(level, priority=True, created_at=T0 + timedelta(minutes=5))

        claimed = await claim(db_session, ListVariant.CLASSIC, uuid.uuid4())
        assert claimed.id == urgent.id
        assert claimed.id != older.id

    @pytest.mark.asyncio
    async def test_oldest_first_within_tier(self, db_session, factory):
        level = await factory.level()
        first = await factory.submission(level, priority=True, created_at=T0)
        await factory.submission(level, priority=True, created_at=T0 + timedelta(minutes=5))

        claimed = await claim(db_session, ListVariant.CLASSIC, uuid.uuid4())
        assert claimed.id == first.id

    @pytest.mark.asyncio
    async def test_successive_claims_walk_the_queue(self, db_session, factory):
        level = await factory.level()
        subs = [
            await factory.submission(level, created_at=T0 + timedelta(minutes=i))
            for i in range(3)
        ]
        reviewer = uuid.uuid4()

        got = [(await claim(db_session, ListVariant.CLASSIC, reviewer)).id for _ in range(3)]
        assert got == [s.id for s in subs]

        with pytest.raises(NotFoundError):
            await claim(db_session, ListVariant.CLASSIC, reviewer)


class TestClaimExclusions:
    @pytest.mark.asyncio
    async def test_empty_queue_is_not_found(self, db_session):
        with pytest.raises(NotFoundError, match="No pending submissions"):
            await claim(db_session, ListVariant.CLASSIC, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_reviewer_skips_own_submission(self, db_session, factory):
        reviewer = uuid.uuid4()
        level = await factory.level()
        await factory.submission(level, submitted_by=reviewer, priority=True, created_at=T0)
        other = await factory.submission(level, created_at=T0 + timedelta(hours=1))

        claimed = await claim(db_session, ListVariant.CLASSIC, reviewer)
        assert claimed.id == other.id

    @pytest.mark.asyncio
    async def test_only_own_submission_left(self, db_session, factory):
        reviewer = uuid.uuid4()
        level = await factory.level()
        await factory.submission(level, submitted_by=reviewer)

        with pytest.raises(NotFoundError):
            await claim(db_session, ListVariant.CLASSIC, reviewer)

    @pytest.mark.asyncio
    async def test_variants_are_isolated(self, db_session, factory):
        platformer_level = await factory.level(variant=ListVariant.PLATFORMER)
        await factory.submission(platformer_level)

        with pytest.raises(NotFoundError):
            await claim(db_session, ListVariant.CLASSIC, uuid.uuid4())

        claimed = await claim(db_session, ListVariant.PLATFORMER, uuid.uuid4())
        assert claimed.list_variant == ListVariant.PLATFORMER.value

    @pytest.mark.asyncio
    async def test_non_pending_rows_are_ignored(self, db_session, factory):
        level = await factory.level()
        for status in (SubmissionStatus.CLAIMED, SubmissionStatus.DENIED, SubmissionStatus.UNDER_CONSIDERATION):
            await factory.submission(level, status=status)

        with pytest.raises(NotFoundError):
            await claim(db_session, ListVariant.CLASSIC, uuid.uuid4())


class TestClaimSideEffects:
    @pytest.mark.asyncio
    async def test_sets_reviewer_and_status(self, db_session, factory):
        reviewer = uuid.uuid4()
        level = await factory.level()
        await factory.submission(level)

        claimed = await claim(db_session, ListVariant.CLASSIC, reviewer)
        assert claimed.status == SubmissionStatus.CLAIMED.value
        assert claimed.reviewer_id == reviewer

    @pytest.mark.asyncio
    async def test_appends_history_and_notifies_submitter(self, db_session, factory):
        reviewer = uuid.uuid4()
        level = await factory.level(name="Bloodbath")
        sub = await factory.submission(level)

        await claim(db_session, ListVariant.CLASSIC, reviewer)

        history = (await db_session.execute(
            select(SubmissionHistory).where(SubmissionHistory.submission_id == sub.id)
        )).scalars().all()
        assert [h.status for h in history] == [SubmissionStatus.CLAIMED.value]
        assert history[0].reviewer_id == reviewer

        notes = (await db_session.execute(
            select(Notification).where(Notification.user_id == sub.submitted_by)
        )).scalars().all()
        assert len(notes) == 1
        assert "Bloodbath" in notes[0].content
        assert notes[0].notification_type == "info"

    @pytest.mark.asyncio
    async def test_pushes_notification_after_commit(self, db_session, factory):
        from unittest.mock import AsyncMock

        level = await factory.level()
        sub = await factory.submission(level)
        redis = AsyncMock()

        await claim(db_session, ListVariant.CLASSIC, uuid.uuid4(), redis=redis)

        redis.publish.assert_awaited_once()
        channel = redis.publish.await_args.args[0]
        assert channel == f"ws:user:{sub.submitted_by}"


class TestClaimRetries:
    """A candidate whose status flip matches nothing is skipped for the next one."""

    @staticmethod
    def _lose_first(monkeypatch, losses: int | None) -> list[uuid.UUID]:
        from levelboard.submissions import claim_service

        real = claim_service._try_claim
        attempted: list[uuid.UUID] = []

        async def racing(db, candidate_id, reviewer_id, now):
            attempted.append(candidate_id)
            if losses is None or len(attempted) <= losses:
                return None
            return await real(db, candidate_id, reviewer_id, now)

        monkeypatch.setattr(claim_service, "_try_claim", racing)
        return attempted

    @pytest.mark.asyncio
    async def test_lost_candidate_falls_through_to_next(self, db_session, factory, monkeypatch):
        level = await factory.level()
        subs = [
            await factory.submission(level, created_at=T0 + timedelta(minutes=i))
            for i in range(3)
        ]
        ids = [s.id for s in subs]
        attempted = self._lose_first(monkeypatch, losses=2)

        claimed = await claim(db_session, ListVariant.CLASSIC, uuid.uuid4())

        assert attempted == ids
        assert claimed.id == ids[2]
        assert claimed.status == SubmissionStatus.CLAIMED.value

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, db_session, factory, monkeypatch):
        from levelboard.config import get_settings

        monkeypatch.setenv("LVB_CLAIM_MAX_ATTEMPTS", "2")
        get_settings.cache_clear()
        level = await factory.level()
        for i in range(4):
            await factory.submission(level, created_at=T0 + timedelta(minutes=i))
        attempted = self._lose_first(monkeypatch, losses=None)

        with pytest.raises(NotFoundError, match="No pending submissions"):
            await claim(db_session, ListVariant.CLASSIC, uuid.uuid4())

        assert len(attempted) == 2
        assert len(set(attempted)) == 2
        history = (await db_session.execute(select(SubmissionHistory))).scalars().all()
        assert history == []
