"""
WolfPack — Aggregation Engine Tests
Points, apparel usage, progress latching and challenge derivations.
Run with: pytest test_aggregation.py -v
"""

import pytest
from datetime import datetime, timedelta, timezone

import aggregation as agg


# ══════════════════════════════════════════════════════════════════════════════
# POINTS & LEVELS
# ══════════════════════════════════════════════════════════════════════════════

class TestPointsAndLevels:

    def test_level_starts_at_one(self):
        assert agg.level_for_points(0) == 1

    def test_level_boundaries(self):
        assert agg.level_for_points(99) == 1
        assert agg.level_for_points(100) == 2
        assert agg.level_for_points(250) == 3

    def test_level_invariant_over_range(self):
        for points in range(0, 1000, 7):
            assert agg.level_for_points(points) == points // 100 + 1

    def test_workout_points_floor(self):
        assert agg.points_for_workout(40) == 8
        assert agg.points_for_workout(44) == 8
        assert agg.points_for_workout(4) == 0

    def test_progress_heuristic(self):
        assert agg.workout_progress(31) == 10
        assert agg.workout_progress(30) == 5   # strictly greater than 30
        assert agg.workout_progress(1) == 5


class TestRounding:

    def test_half_rounds_up(self):
        assert agg.round_half_up(2.5) == 3
        assert agg.round_half_up(3.5) == 4

    def test_below_half_rounds_down(self):
        assert agg.round_half_up(2.49) == 2

    def test_as_utc_attaches_zone_to_naive(self):
        naive = datetime(2024, 1, 1, 12, 0)
        assert agg.as_utc(naive).tzinfo == timezone.utc


# ══════════════════════════════════════════════════════════════════════════════
# APPAREL USAGE
# ══════════════════════════════════════════════════════════════════════════════

class TestApparelUsage:

    def setup_method(self):
        self.when = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)

    def test_first_workout(self):
        usage = agg.apply_workout(agg.ApparelUsage(), duration=40, calories=300, when=self.when)
        assert usage.usage_count == 1
        assert usage.total_workout_duration == 40
        assert usage.total_calories_burned == 300
        assert usage.average_workout_duration == 40
        assert usage.last_used == self.when

    def test_first_workout_rating(self):
        # current = round((40/60*0.5 + 300/500*0.5) * 100) = 63; 0.3 * 63 = 18.9
        usage = agg.apply_workout(agg.ApparelUsage(), duration=40, calories=300, when=self.when)
        assert agg.performance_score(40, 300) == 63
        assert usage.performance_rating == 19

    def test_original_value_untouched(self):
        before = agg.ApparelUsage()
        agg.apply_workout(before, duration=20, calories=100, when=self.when)
        assert before.usage_count == 0
        assert before.last_used is None

    def test_average_is_rounded(self):
        usage = agg.apply_workout(agg.ApparelUsage(), 20, 0, self.when)
        usage = agg.apply_workout(usage, 25, 0, self.when)
        assert usage.average_workout_duration == 23  # 22.5 rounds up

    def test_performance_score_caps(self):
        assert agg.performance_score(600, 9000) == 100
        assert agg.performance_score(0, 0) == 0

    def test_smoothing_bound(self):
        """A single update moves the rating by at most 30 points."""
        for old in (0, 17, 50, 83, 100):
            for current in (0, 25, 50, 75, 100):
                new = agg.smooth_rating(old, current)
                assert abs(new - old) <= 30
                assert 0 <= new <= 100

    def test_smoothing_exact_half(self):
        # (7*1 + 3*0) / 10 = 0.7; (7*5 + 3*0) / 10 = 3.5 -> 4
        assert agg.smooth_rating(5, 0) == 4


# ══════════════════════════════════════════════════════════════════════════════
# MONOTONIC PROGRESS
# ══════════════════════════════════════════════════════════════════════════════

class TestAdvanceProgress:

    def test_increase_applies(self):
        update = agg.advance_progress(agg.ProgressState(20, False), 45)
        assert update.changed
        assert update.state == agg.ProgressState(45, False)
        assert not update.newly_completed

    def test_lower_submission_is_noop(self):
        current = agg.ProgressState(60, False)
        update = agg.advance_progress(current, 30)
        assert not update.changed
        assert update.state is current

    def test_equal_submission_is_noop(self):
        update = agg.advance_progress(agg.ProgressState(60, False), 60)
        assert not update.changed

    def test_completion_latches_once(self):
        first = agg.advance_progress(agg.ProgressState(90, False), 100)
        assert first.newly_completed
        assert first.state.completed
        second = agg.advance_progress(first.state, 100)
        assert not second.changed
        assert not second.newly_completed

    def test_clamped_to_range(self):
        assert agg.advance_progress(agg.ProgressState(), 250).state.progress == 100
        assert not agg.advance_progress(agg.ProgressState(), -5).changed

    def test_stored_progress_is_max(self):
        state = agg.ProgressState()
        for submitted in (10, 50, 30, 70, 70, 20):
            previous = state.progress
            state = agg.advance_progress(state, submitted).state
            assert state.progress == max(previous, submitted)


class TestAchievementRules:

    def test_consistency_threshold(self):
        assert not agg.consistency_reached(4)
        assert agg.consistency_reached(5)
        assert agg.consistency_reached(12)

    def test_calorie_progress_linear(self):
        assert agg.calorie_progress(2500) == 25
        assert agg.calorie_progress(0) == 0

    def test_calorie_progress_never_completes_early(self):
        assert agg.calorie_progress(9_960) == 99
        assert agg.calorie_progress(9_999) == 99

    def test_calorie_progress_completes_at_goal(self):
        assert agg.calorie_progress(10_000) == 100
        assert agg.calorie_progress(25_000) == 100


# ══════════════════════════════════════════════════════════════════════════════
# CHALLENGES
# ══════════════════════════════════════════════════════════════════════════════

class TestChallenges:

    def setup_method(self):
        self.now = datetime(2024, 6, 15, tzinfo=timezone.utc)

    def test_status_upcoming(self):
        start = self.now + timedelta(days=3)
        assert agg.challenge_status(start, start + timedelta(days=30), self.now) == "upcoming"

    def test_status_active(self):
        assert agg.challenge_status(self.now - timedelta(days=1), self.now + timedelta(days=1), self.now) == "active"

    def test_status_expired(self):
        assert agg.challenge_status(self.now - timedelta(days=40), self.now - timedelta(days=10), self.now) == "expired"

    def test_status_accepts_naive_dates(self):
        start = (self.now - timedelta(days=1)).replace(tzinfo=None)
        end = (self.now + timedelta(days=1)).replace(tzinfo=None)
        assert agg.challenge_status(start, end, self.now) == "active"

    def test_category_keywords(self):
        assert agg.workout_category("Running") == "cardio"
        assert agg.workout_category("Morning Cycling") == "cardio"
        assert agg.workout_category("Weightlifting") == "strength"
        assert agg.workout_category("yoga flow") == "flexibility"
        assert agg.workout_category("Chess") is None

    def test_any_category_matches_everything(self):
        assert agg.matches_category("Chess", None)
        assert not agg.matches_category("Chess", "cardio")

    def test_challenge_progress(self):
        assert agg.challenge_progress(1, 20) == 5
        assert agg.challenge_progress(1, 30) == 3
        assert agg.challenge_progress(45, 30) == 100


# ══════════════════════════════════════════════════════════════════════════════
# RANKINGS & STATS
# ══════════════════════════════════════════════════════════════════════════════

class TestRankings:

    def test_descending_with_limit(self):
        ranked = agg.rank_descending([3, 9, 1, 7], key=lambda v: v, limit=2)
        assert ranked == [9, 7]

    def test_ties_keep_input_order(self):
        items = [("a", 5), ("b", 9), ("c", 5)]
        ranked = agg.rank_descending(items, key=lambda t: t[1])
        assert [name for name, _ in ranked] == ["b", "a", "c"]

    def test_workout_totals(self):
        totals = agg.workout_totals([300, 200, 100], [10, 5, 5])
        assert totals.total_workouts == 3
        assert totals.total_calories == 600
        assert totals.avg_progress == 7   # 6.67

    def test_workout_totals_empty(self):
        totals = agg.workout_totals([], [])
        assert totals == agg.WorkoutTotals(0, 0, 0)
