"""Submission intake: create, edit, withdraw, and the submissions gate."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from levelboard.db.models import ListVariant, Submission, SubmissionHistory, SubmissionStatus
from levelboard.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    SubmissionValidationError,
)
from levelboard.submissions.gate_service import is_enabled, set_enabled
from levelboard.submissions.schemas import SubmissionCreate, SubmissionPatch
from levelboard.submissions.submission_service import (
    create_submission,
    edit_submission,
    withdraw_submission,
)

CLASSIC = ListVariant.CLASSIC
VIDEO = "https://www.youtube.com/watch?v=abc123"
RAW = "https://drive.example.com/raw-footage.mkv"


def _body(level, **overrides) -> SubmissionCreate:
    data = {"level_id": level.id, "video_url": VIDEO, "raw_url": RAW}
    data.update(overrides)
    return SubmissionCreate(**data)


class TestCreateSubmission:
    @pytest.mark.asyncio
    async def test_creates_pending_submission(self, db_session, factory):
        player = uuid.uuid4()
        level = await factory.level()

        sub = await create_submission(db_session, CLASSIC, player, _body(level, user_notes="first try"))

        assert sub.status == SubmissionStatus.PENDING.value
        assert sub.reviewer_id is None
        assert sub.submitted_by == player
        assert sub.priority is False
        assert sub.user_notes == "first try"

    @pytest.mark.asyncio
    async def test_priority_comes_from_the_caller(self, db_session, factory):
        level = await factory.level()
        sub = await create_submission(db_session, CLASSIC, uuid.uuid4(), _body(level), priority=True)
        assert sub.priority is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["not a url", "ftp://files.example.com/run.mp4", "https://"])
    async def test_rejects_bad_video_url(self, db_session, factory, url):
        level = await factory.level()
        with pytest.raises(SubmissionValidationError, match="video_url"):
            await create_submission(db_session, CLASSIC, uuid.uuid4(), _body(level, video_url=url))

    @pytest.mark.asyncio
    async def test_rejects_bad_raw_url(self, db_session, factory):
        level = await factory.level()
        with pytest.raises(SubmissionValidationError, match="raw_url"):
            await create_submission(db_session, CLASSIC, uuid.uuid4(), _body(level, raw_url="raw.mp4"))

    @pytest.mark.asyncio
    async def test_unknown_level(self, db_session):
        body = SubmissionCreate(level_id=uuid.uuid4(), video_url=VIDEO, raw_url=RAW)
        with pytest.raises(NotFoundError):
            await create_submission(db_session, CLASSIC, uuid.uuid4(), body)

    @pytest.mark.asyncio
    async def test_level_from_other_variant_is_unknown(self, db_session, factory):
        level = await factory.level(variant=ListVariant.PLATFORMER)
        with pytest.raises(NotFoundError):
            await create_submission(db_session, CLASSIC, uuid.uuid4(), _body(level))

    @pytest.mark.asyncio
    async def test_legacy_level_is_rejected(self, db_session, factory):
        level = await factory.level(legacy=True)
        with pytest.raises(SubmissionValidationError, match="Legacy"):
            await create_submission(db_session, CLASSIC, uuid.uuid4(), _body(level))

    @pytest.mark.asyncio
    async def test_top_levels_require_raw_footage(self, db_session, factory):
        top = await factory.level(position=10)
        low = await factory.level(position=900)

        with pytest.raises(SubmissionValidationError, match="Raw footage"):
            await create_submission(db_session, CLASSIC, uuid.uuid4(), _body(top, raw_url=None))

        await db_session.refresh(low)
        sub =await create_submission(db_session, CLASSIC, uuid.uuid4(), _body(low, raw_url=None))
        assert sub.raw_url is None

    @pytest.mark.asyncio
    async def test_duplicate_is_conflict(self, db_session, factory):
        player = uuid.uuid4()
        level = await factory.level()
        await create_submission(db_session, CLASSIC, player, _body(level))

        with pytest.raises(ConflictError):
            await create_submission(db_session, CLASSIC, player, _body(level))

    @pytest.mark.asyncio
    async def test_on_behalf_requires_review_rights(self, db_session, factory):
        level = await factory.level()
        player = uuid.uuid4()

        with pytest.raises(ForbiddenError):
            await create_submission(db_session, CLASSIC, uuid.uuid4(), _body(level, submitted_by=player))

        await db_session.refresh(level)
        sub = await create_submission(
            db_session, CLASSIC, uuid.uuid4(), _body(level, submitted_by=player), can_review=True,
        )
        assert sub.submitted_by == player


class TestGate:
    @pytest.mark.asyncio
    async def test_open_by_default(self, db_session):
        assert await is_enabled(db_session, CLASSIC) is True

    @pytest.mark.asyncio
    async def test_latest_toggle_wins(self, db_session):
        moderator = uuid.uuid4()
        await set_enabled(db_session, CLASSIC, moderator, False)
        await db_session.commit()
        assert await is_enabled(db_session, CLASSIC) is False
        assert await is_enabled(db_session, ListVariant.PLATFORMER) is True

        await set_enabled(db_session, CLASSIC, moderator, True)
        await db_session.commit()
        assert await is_enabled(db_session, CLASSIC) is True

    @pytest.mark.asyncio
    async def test_closed_gate_blocks_self_submission(self, db_session, factory):
        level = await factory.level()
        await set_enabled(db_session, CLASSIC, uuid.uuid4(), False)
        await db_session.commit()

        with pytest.raises(SubmissionValidationError, match="disabled"):
            await create_submission(db_session, CLASSIC, uuid.uuid4(), _body(level))

    @pytest.mark.asyncio
    async def test_closed_gate_allows_reviewer_on_behalf(self, db_session, factory):
        level = await factory.level()
        await set_enabled(db_session, CLASSIC, uuid.uuid4(), False)
        await db_session.commit()

        sub = await create_submission(
            db_session, CLASSIC, uuid.uuid4(), _body(level, submitted_by=uuid.uuid4()), can_review=True,
        )
        assert sub.status == SubmissionStatus.PENDING.value


class TestEditSubmission:
    @pytest.mark.asyncio
    async def test_denied_submission_returns_to_queue(self, db_session, factory):
        level = await factory.level()
        sub = await factory.submission(level, status=SubmissionStatus.DENIED)

        edited = await edit_submission(
            db_session, CLASSIC, sub.id, sub.submitted_by,
            SubmissionPatch(video_url="https://www.youtube.com/watch?v=better"),
        )

        assert edited.status == SubmissionStatus.PENDING.value
        assert edited.reviewer_id is None
        assert edited.video_url == "https://www.youtube.com/watch?v=better"
        history = (await db_session.execute(
            select(SubmissionHistory).where(SubmissionHistory.submission_id == sub.id)
        )).scalars().all()
        assert [h.status for h in history] == [SubmissionStatus.PENDING.value]

    @pytest.mark.asyncio
    async def test_other_users_submission_is_not_found(self, db_session, factory):
        level = await factory.level()
        sub = await factory.submission(level)

        with pytest.raises(NotFoundError):
            await edit_submission(db_session, CLASSIC, sub.id, uuid.uuid4(), SubmissionPatch(user_notes="x"))

    @pytest.mark.asyncio
    async def test_locked_is_forbidden(self, db_session, factory):
        level = await factory.level()
        sub = await factory.submission(level, locked=True)

        with pytest.raises(ForbiddenError):
            await edit_submission(db_session, CLASSIC, sub.id, sub.submitted_by, SubmissionPatch(user_notes="x"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [SubmissionStatus.CLAIMED, SubmissionStatus.UNDER_CONSIDERATION])
    async def test_in_review_is_conflict(self, db_session, factory, status):
        level = await factory.level()
        sub = await factory.submission(level, status=status)

        with pytest.raises(ConflictError):
            await edit_submission(db_session, CLASSIC, sub.id, sub.submitted_by, SubmissionPatch(user_notes="x"))

        await db_session.refresh(sub)
        assert sub.status == status.value

    @pytest.mark.asyncio
    async def test_empty_patch_is_invalid(self, db_session, factory):
        level = await factory.level()
        sub = await factory.submission(level)

        with pytest.raises(SubmissionValidationError, match="No changes"):
            await edit_submission(db_session, CLASSIC, sub.id, sub.submitted_by, SubmissionPatch())

    @pytest.mark.asyncio
    async def test_video_url_cannot_be_cleared(self, db_session, factory):
        level = await factory.level()
        sub = await factory.submission(level)

        with pytest.raises(SubmissionValidationError, match="cannot be cleared"):
            await edit_submission(db_session, CLASSIC, sub.id, sub.submitted_by, SubmissionPatch(video_url=None))

    @pytest.mark.asyncio
    async def test_clearing_raw_footage_on_top_level(self, db_session, factory):
        level = await factory.level(position=3)
        sub = await factory.submission(level)

        with pytest.raises(SubmissionValidationError, match="Raw footage"):
            await edit_submission(db_session, CLASSIC, sub.id, sub.submitted_by, SubmissionPatch(raw_url=None))

    @pytest.mark.asyncio
    async def test_closed_gate_blocks_resubmitting_denied(self, db_session, factory):
        level = await factory.level()
        pending = await factory.submission(level)
        pending_id, owner = pending.id, pending.submitted_by
        denied = await factory.submission(level, status=SubmissionStatus.DENIED)
        await set_enabled(db_session, CLASSIC, uuid.uuid4(), False)
        await db_session.commit()

        with pytest.raises(SubmissionValidationError, match="disabled"):
            await edit_submission(
                db_session, CLASSIC, denied.id, denied.submitted_by, SubmissionPatch(user_notes="again"),
            )

        edited = await edit_submission(db_session, CLASSIC, pending_id, owner, SubmissionPatch(user_notes="typo"))
        assert edited.user_notes == "typo"


class TestWithdrawSubmission:
    @pytest.mark.asyncio
    async def test_owner_withdraws_pending(self, db_session, factory):
        level = await factory.level()
        sub = await factory.submission(level)

        await withdraw_submission(db_session, CLASSIC, sub.id, sub.submitted_by)
        assert await db_session.get(Submission, sub.id) is None

    @pytest.mark.asyncio
    async def test_owner_cannot_withdraw_claimed(self, db_session, factory):
        level = await factory.level()
        sub = await factory.submission(level, status=SubmissionStatus.CLAIMED)

        with pytest.raises(NotFoundError):
            await withdraw_submission(db_session, CLASSIC, sub.id, sub.submitted_by)

    @pytest.mark.asyncio
    async def test_stranger_cannot_withdraw(self, db_session, factory):
        level = await factory.level()
        sub = await factory.submission(level)

        with pytest.raises(NotFoundError):
            await withdraw_submission(db_session, CLASSIC, sub.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_reviewer_deletes_anything(self, db_session, factory):
        level = await factory.level()
        sub = await factory.submission(level, status=SubmissionStatus.UNDER_CONSIDERATION)

        await withdraw_submission(db_session, CLASSIC, sub.id, uuid.uuid4(), can_review=True)
        assert await db_session.get(Submission, sub.id) is None
