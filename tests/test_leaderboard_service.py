"""
Tests for the daily leaderboard

Covers:
- Ranking order and tie-break
- Release hour gating boundary
- Best-effort enrichment from UserProgress
- Messages and date validation
"""
import logging
from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest

from luku_engine.errors import DependencyUnavailableError, InvalidArgumentError
from luku_engine.logic.leaderboard_service import LeaderboardService

SATURDAY = date(2024, 1, 6)
FRIDAY = date(2024, 1, 5)


def at(hour, minute=0, second=0, day=6):
    return datetime(2024, 1, day, hour, minute, second, tzinfo=timezone.utc)


class TestRanking:
    """Entries sorted by rating desc, earlier submission first on ties"""

    def test_tie_break_favors_earlier_submission(self, engine, add_submission):
        add_submission("late", 9.0, SATURDAY, submitted_at=at(11))
        add_submission("low", 7.5, SATURDAY, submitted_at=at(8))
        add_submission("early", 9.0, SATURDAY, submitted_at=at(10))
        add_submission("top", 9.8, SATURDAY, submitted_at=at(12))

        board = engine.get_daily_leaderboard("2024-01-06", now=at(19))

        assert [e.userId for e in board.entries] == ["top", "early", "late", "low"]
        assert [e.rank for e in board.entries] == [1, 2, 3, 4]
        assert board.message == "Displaying 4 entries for 2024-01-06."

    def test_other_dates_excluded(self, engine, add_submission):
        add_submission("friday", 9.9, FRIDAY)
        add_submission("saturday", 5.0, SATURDAY)

        board = engine.get_daily_leaderboard(SATURDAY, now=at(19))

        assert [e.userId for e in board.entries] == ["saturday"]

    def test_user_rank(self, engine, add_submission):
        add_submission("a", 8.0, FRIDAY)
        add_submission("b", 9.0, FRIDAY)

        assert engine.leaderboard.get_user_rank(FRIDAY, "a") == 2
        assert engine.leaderboard.get_user_rank(FRIDAY, "nobody") is None


class TestReleaseGating:
    """Visibility flips exactly at the release hour (18:00 UTC in tests)"""

    def test_at_release_hour_shows_requested_day(self, engine, add_submission):
        add_submission("friday-user", 8.0, FRIDAY)

        board = engine.get_daily_leaderboard("2024-01-06", now=at(18))

        assert board.isWaitingForRelease is False
        assert board.leaderboardDate == SATURDAY
        assert board.timeUntilReleaseSeconds == 0
        assert board.entries == []
        assert board.message == "No submissions found for 2024-01-06."

    def test_one_second_before_shows_previous_day(self, engine, add_submission):
        add_submission("friday-user", 8.0, FRIDAY)
        add_submission("saturday-user", 9.0, SATURDAY)

        board = engine.get_daily_leaderboard("2024-01-06", now=at(17, 59, 59))

        assert board.isWaitingForRelease is True
        assert board.requestedDate == SATURDAY
        assert board.leaderboardDate == FRIDAY
        assert board.timeUntilReleaseSeconds == 1
        assert [e.userId for e in board.entries] == ["friday-user"]

    def test_future_date_before_release_hides_today(self, engine, add_submission):
        add_submission("friday-user", 8.0, FRIDAY)
        add_submission("saturday-user", 9.0, SATURDAY)

        board = engine.get_daily_leaderboard("2024-01-07", now=at(10))

        assert board.isWaitingForRelease is True
        assert board.leaderboardDate == FRIDAY
        assert [e.userId for e in board.entries] == ["friday-user"]
        assert board.timeUntilReleaseSeconds == 32 * 3600

    def test_future_date_after_release_shows_today(self, engine, add_submission):
        add_submission("saturday-user", 9.0, SATURDAY)

        board = engine.get_daily_leaderboard("2024-01-08", now=at(19))

        assert board.isWaitingForRelease is True
        assert board.leaderboardDate == SATURDAY
        assert [e.userId for e in board.entries] == ["saturday-user"]

    def test_uses_engine_clock_by_default(self, engine, clock):
        clock.now = at(9)

        board = engine.get_daily_leaderboard("2024-01-06")

        assert board.isWaitingForRelease is True
        assert board.timeUntilReleaseSeconds == 9 * 3600

    def test_release_hour_in_local_timezone(self, engine):
        service = LeaderboardService(
            engine.submissions, engine.progress, release_hour=18, timezone="America/Sao_Paulo"
        )

        # 18:00 in Sao Paulo (UTC-3) is 21:00 UTC
        assert service.get_daily_leaderboard(SATURDAY, now=at(20, 59)).isWaitingForRelease is True
        assert service.get_daily_leaderboard(SATURDAY, now=at(21)).isWaitingForRelease is False


class TestEnrichment:
    """Live profile data joined onto entries"""

    def test_profile_fields_joined(self, engine, seed_user, add_submission):
        seed_user(
            "maria", username="maria_style", photoUrl="https://img/default.png",
            customPhotoUrl="https://img/custom.png", tiktokUrl="https://tiktok.com/@maria",
            points=42, currentStreak=3,
        )
        add_submission("maria", 9.0, SATURDAY, username="old_name", outfitImageUrl="https://img/outfit.png",
                       complimentOrCritique="Great layering", colorSuggestions=["olive"])

        entry = engine.get_daily_leaderboard(SATURDAY, now=at(19)).entries[0]

        assert entry.username == "maria_style"
        assert entry.userPhotoUrl == "https://img/custom.png"
        assert entry.tiktokUrl == "https://tiktok.com/@maria"
        assert entry.instagramUrl is None
        assert entry.points == 42
        assert entry.currentStreak == 3
        assert entry.outfitImageUrl == "https://img/outfit.png"
        assert entry.colorSuggestions == ["olive"]

    def test_missing_progress_uses_neutral_defaults(self, engine, add_submission):
        add_submission("ghost", 7.0, SATURDAY, username="ghost_snapshot", userPhotoUrl="https://img/g.png")

        entry = engine.get_daily_leaderboard(SATURDAY, now=at(19)).entries[0]

        assert entry.username == "ghost_snapshot"
        assert entry.userPhotoUrl == "https://img/g.png"
        assert entry.points == 0
        assert entry.currentStreak == 0

    def test_enrichment_failure_is_not_fatal(self, engine, seed_user, add_submission, caplog):
        seed_user("maria", points=42)
        add_submission("maria", 9.0, SATURDAY)

        with patch.object(engine.progress, "read_user", side_effect=DependencyUnavailableError("down")):
            with caplog.at_level(logging.WARNING):
                board = engine.get_daily_leaderboard(SATURDAY, now=at(19))

        assert len(board.entries) == 1
        assert board.entries[0].points == 0
        assert "Enrichment lookup failed" in caplog.text

    def test_ledger_failure_is_surfaced(self, engine):
        with patch.object(engine.submissions, "list_for_date", side_effect=DependencyUnavailableError("down")):
            with pytest.raises(DependencyUnavailableError):
                engine.get_daily_leaderboard(SATURDAY, now=at(19))


    def test_malformed_ledger_item_is_surfaced(self, engine):
        engine.submissions.table.put_item(Item={
            "PK": "DATE#2024-01-06", "SK": "SUBMISSION#broken",
            "user_id": "maria", "leaderboard_date": "2024-01-06",
        })

        with pytest.raises(DependencyUnavailableError):
            engine.get_daily_leaderboard(SATURDAY, now=at(19))


class TestValidation:

    @pytest.mark.parametrize("bad_date", ["2024-1-6", "20240106", "2024-13-01", None])
    def test_malformed_date(self, engine, bad_date):
        with pytest.raises(InvalidArgumentError):
            engine.get_daily_leaderboard(bad_date, now=at(19))
