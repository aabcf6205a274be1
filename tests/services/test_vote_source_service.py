from datetime import datetime, timedelta, timezone

import pytest

from faceoff.core.config import settings
from faceoff.core.errors import InvalidInput, NotFound, SourceRejected
from faceoff.schemas.vote_source_schemas import VoteSourceCreate, VoteSourceUpdate
from faceoff.services import vote_source_service

OPENS = datetime(2026, 3, 1, 9, 0)
CLOSES = datetime(2026, 3, 1, 17, 0)


@pytest.fixture
def campaign(campaign_factory):
    return campaign_factory(n=2)


@pytest.fixture
def booth(db, campaign):
    return vote_source_service.create_vote_source(
        db,
        VoteSourceCreate(code="booth-day-1", name="Booth, day 1", campaign_id=campaign.id, valid_from=OPENS, valid_until=CLOSES),
    )


class TestCheckSourceAllowed:

    def test_direct_always_passes(self, db, campaign):
        assert vote_source_service.check_source_allowed(db, campaign.id, "direct") is None
        assert vote_source_service.check_source_allowed(db, campaign.id, "") is None

    def test_inside_the_window(self, db, campaign, booth):
        source = vote_source_service.check_source_allowed(db, campaign.id, "booth-day-1", now=OPENS + timedelta(hours=1))
        assert source.id == booth.id

    def test_window_start_is_inclusive(self, db, campaign, booth):
        assert vote_source_service.check_source_allowed(db, campaign.id, "booth-day-1", now=OPENS) is not None

    def test_window_end_is_exclusive(self, db, campaign, booth):
        with pytest.raises(SourceRejected) as exc_info:
            vote_source_service.check_source_allowed(db, campaign.id, "booth-day-1", now=CLOSES)
        assert exc_info.value.reason == SourceRejected.EXPIRED
        assert exc_info.value.status_code == 403

    def test_too_early(self, db, campaign, booth):
        with pytest.raises(SourceRejected) as exc_info:
            vote_source_service.check_source_allowed(db, campaign.id, "booth-day-1", now=OPENS - timedelta(seconds=1))
        assert exc_info.value.reason == SourceRejected.NOT_YET_VALID

    def test_aware_timestamps_are_compared_in_utc(self, db, campaign, booth):
        berlin = timezone(timedelta(hours=1))
        now = datetime(2026, 3, 1, 18, 30, tzinfo=berlin)  # 17:30 UTC
        with pytest.raises(SourceRejected) as exc_info:
            vote_source_service.check_source_allowed(db, campaign.id, "booth-day-1", now=now)
        assert exc_info.value.reason == SourceRejected.EXPIRED

    def test_inactive(self, db, campaign, booth):
        vote_source_service.update_vote_source(db, booth.id, VoteSourceUpdate(is_active=False))
        with pytest.raises(SourceRejected) as exc_info:
            vote_source_service.check_source_allowed(db, campaign.id, "booth-day-1", now=OPENS)
        assert exc_info.value.reason == SourceRejected.INACTIVE

    def test_unknown_code(self, db, campaign):
        with pytest.raises(SourceRejected) as exc_info:
            vote_source_service.check_source_allowed(db, campaign.id, "nope")
        assert exc_info.value.reason == SourceRejected.NOT_FOUND
        assert exc_info.value.status_code == 400
        assert exc_info.value.to_dict() == {
            "error": "source_rejected",
            "detail": "Invalid vote source",
            "reason": "not_found",
            "source": "nope",
        }

    def test_global_source_as_fallback(self, db, campaign):
        vote_source_service.create_vote_source(db, VoteSourceCreate(code="newsletter", name="Newsletter"))
        assert vote_source_service.check_source_allowed(db, campaign.id, "newsletter") is not None

    def test_global_fallback_can_be_switched_off(self, db, campaign, monkeypatch):
        vote_source_service.create_vote_source(db, VoteSourceCreate(code="newsletter", name="Newsletter"))
        monkeypatch.setattr(settings, "ALLOW_GLOBAL_VOTE_SOURCES", False)
        with pytest.raises(SourceRejected):
            vote_source_service.check_source_allowed(db, campaign.id, "newsletter")

    def test_campaign_scoped_source_wins_over_global(self, db, campaign):
        vote_source_service.create_vote_source(db, VoteSourceCreate(code="talk", name="Global", is_active=False))
        vote_source_service.create_vote_source(db, VoteSourceCreate(code="talk", name="Ours", campaign_id=campaign.id))
        assert vote_source_service.check_source_allowed(db, campaign.id, "talk").name == "Ours"


class TestDescribeSource:

    def test_allowed(self, db, campaign, booth, monkeypatch):
        monkeypatch.setattr(vote_source_service, "utcnow", lambda: OPENS)
        check = vote_source_service.describe_source(db, campaign.id, "booth-day-1")
        assert (check.allowed, check.reason) == (True, None)

    def test_rejected(self, db, campaign):
        check = vote_source_service.describe_source(db, campaign.id, "nope")
        assert check.allowed is False
        assert check.reason == "not_found"
        assert check.detail == "Invalid vote source"


class TestVoteSourceAdmin:

    def test_direct_is_reserved(self, db):
        with pytest.raises(InvalidInput):
            vote_source_service.create_vote_source(db, VoteSourceCreate(code="direct", name="Direct"))

    def test_code_unique_per_scope(self, db, campaign, booth, campaign_factory):
        with pytest.raises(InvalidInput):
            vote_source_service.create_vote_source(
                db, VoteSourceCreate(code="booth-day-1", name="Again", campaign_id=campaign.id)
            )
        other = campaign_factory(n=2, slug="other", active=False)
        assert vote_source_service.create_vote_source(
            db, VoteSourceCreate(code="booth-day-1", name="Other booth", campaign_id=other.id)
        ).campaign_id == other.id

    def test_global_codes_are_unique_too(self, db):
        vote_source_service.create_vote_source(db, VoteSourceCreate(code="newsletter", name="Newsletter"))
        with pytest.raises(InvalidInput):
            vote_source_service.create_vote_source(db, VoteSourceCreate(code="newsletter", name="Again"))

    def test_unknown_campaign(self, db):
        with pytest.raises(NotFound):
            vote_source_service.create_vote_source(db, VoteSourceCreate(code="x", name="X", campaign_id=42))

    def test_update_keeps_the_window_ordered(self, db, booth):
        with pytest.raises(InvalidInput):
            vote_source_service.update_vote_source(db, booth.id, VoteSourceUpdate(valid_until=OPENS - timedelta(days=1)))

    def test_list_and_delete(self, db, campaign, booth):
        vote_source_service.create_vote_source(
            db, VoteSourceCreate(code="off", name="Off", campaign_id=campaign.id, is_active=False)
        )
        assert [s.code for s in vote_source_service.list_vote_sources(db, campaign_id=campaign.id)] == ["booth-day-1", "off"]
        assert [s.code for s in vote_source_service.list_vote_sources(db, active_only=True)] == ["booth-day-1"]

        vote_source_service.delete_vote_source(db, booth.id)

        with pytest.raises(NotFound):
            vote_source_service.get_vote_source(db, booth.id)
