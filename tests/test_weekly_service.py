"""Tests for the weekly leaderboard and week start helper"""
from datetime import date, datetime, timezone

import pytest

from luku_engine.errors import InvalidArgumentError
from luku_engine.logic.weekly_service import WeeklyLeaderboardService, week_start_for, weekly_score

WEEK_START = date(2024, 1, 1)  # Monday


class TestWeeklyAggregate:

    def test_formula(self, engine, add_submission):
        add_submission("user-1", 8.0, date(2024, 1, 1))
        add_submission("user-1", 9.0, date(2024, 1, 3))
        add_submission("user-1", 7.5, date(2024, 1, 7))

        board = engine.get_weekly_leaderboard("2024-01-01")

        entry = board.entries[0]
        assert entry.totalSubmissions == 3
        assert entry.avgRating == 8.2
        assert entry.bestRating == 9.0
        # round(8.2 * 3 * 10 + 9.0 * 5)
        assert entry.totalPoints == 291

    def test_window(self, engine, add_submission):
        add_submission("before", 9.0, date(2023, 12, 31))
        add_submission("inside", 6.0, date(2024, 1, 7))
        add_submission("after", 9.0, date(2024, 1, 8))

        board = engine.get_weekly_leaderboard(WEEK_START)

        assert board.weekStart == WEEK_START
        assert board.weekEnd == date(2024, 1, 7)
        assert [e.userId for e in board.entries] == ["inside"]

    def test_sorted_by_points_then_best_rating(self, engine, add_submission):
        # best 6.0: round(4.5 * 2 * 10 + 6 * 5) = 120
        add_submission("b", 6.0, date(2024, 1, 2))
        add_submission("b", 3.0, date(2024, 1, 3))
        # best 8.0: round(8.0 * 1 * 10 + 8 * 5) = 120
        add_submission("a", 8.0, date(2024, 1, 2))
        # round(9.0 * 10 + 9 * 5) = 135
        add_submission("c", 9.0, date(2024, 1, 4))

        board = engine.get_weekly_leaderboard(WEEK_START)

        assert [(e.userId, e.totalPoints) for e in board.entries] == [("c", 135), ("a", 120), ("b", 120)]
        assert [e.rank for e in board.entries] == [1, 2, 3]

    def test_empty_week(self, engine):
        board = engine.get_weekly_leaderboard(WEEK_START)

        assert board.entries == []
        assert board.message.startswith("No submissions found")

    def test_week_start_is_not_normalized(self, engine):
        board = engine.get_weekly_leaderboard("2024-01-03")

        assert board.weekEnd == date(2024, 1, 9)

    def test_invalid_week_start(self, engine):
        with pytest.raises(InvalidArgumentError):
            engine.get_weekly_leaderboard("next-week")

    def test_score_rounds_half_up(self):
        assert weekly_score(8.5, 1, 8.5) == 128  # 85 + 42.5


class TestCurrentWeekStart:

    @pytest.mark.parametrize("today,expected", [
        (date(2024, 1, 1), "2024-01-01"),   # Monday
        (date(2024, 1, 3), "2024-01-01"),   # Wednesday
        (date(2024, 1, 7), "2024-01-01"),   # Sunday steps back 6 days
        (date(2024, 3, 2), "2024-02-26"),   # across a month boundary
    ])
    def test_week_start_for(self, today, expected):
        assert week_start_for(today).isoformat() == expected

    def test_uses_injected_now(self, engine):
        now = datetime(2024, 1, 7, 23, 30, tzinfo=timezone.utc)

        assert engine.get_current_week_start(now) == "2024-01-01"

    def test_uses_engine_clock(self, engine):
        # clock fixture: Saturday 2024-01-06
        assert engine.get_current_week_start() == "2024-01-01"

    def test_local_timezone(self, engine):
        service = WeeklyLeaderboardService(engine.submissions, timezone="America/Sao_Paulo")

        # Monday 02:00 UTC is still Sunday evening in Sao Paulo
        assert service.get_current_week_start(datetime(2024, 1, 8, 2, 0, tzinfo=timezone.utc)) == "2024-01-01"
