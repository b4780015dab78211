"""Tests for XP and average rating math."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from errors import ConflictError
from models.rating import RatingCreate
from services.reputation import (
    average_rating,
    calculate_xp,
    is_early_completion,
    settle_rating,
)


class TestCalculateXP:
    """baseXP = clamp(price * 0.1, 10, 100), scaled by rating/5 and early bonus."""

    def test_five_stars_mid_price(self):
        assert calculate_xp(5, 500, False) == 50

    def test_small_job_hits_floor(self):
        # 50 * 0.1 = 5 -> clamped to 10, then * 1/5
        assert calculate_xp(1, 50, False) == 2

    def test_large_job_early_completion(self):
        # 1000 * 0.1 = 100 (cap), * 1.2 early
        assert calculate_xp(5, 1000, True) == 120

    def test_price_above_cap(self):
        assert calculate_xp(5, 100000) == 100

    def test_rounds_half_up(self):
        # base 15 * 3/5 = 9.0 ; base 10.5 * 1/5 = 2.1 ; base 12.5 * 1/5 = 2.5 -> 3
        assert calculate_xp(3, 150) == 9
        assert calculate_xp(1, 105) == 2
        assert calculate_xp(1, 125) == 3

    def test_accepts_decimal_price(self):
        assert calculate_xp(4, Decimal("750.00")) == 60


class TestEarlyCompletion:
    def test_no_end_date_is_never_early(self):
        assert is_early_completion(None, datetime(2030, 1, 1, tzinfo=timezone.utc)) is False

    def test_before_end_date(self):
        assert is_early_completion(date(2030, 1, 14), datetime(2030, 1, 13, 18, tzinfo=timezone.utc)) is True

    def test_end_date_means_midnight_utc(self):
        """Completing during the end day itself is not early."""
        assert is_early_completion(date(2030, 1, 14), datetime(2030, 1, 14, 0, 0, 1, tzinfo=timezone.utc)) is False

    def test_exactly_at_end_is_not_early(self):
        assert is_early_completion(date(2030, 1, 14), datetime(2030, 1, 14, tzinfo=timezone.utc)) is False

    def test_string_dates(self):
        assert is_early_completion("2030-01-14", "2030-01-10T09:00:00+00:00") is True

    def test_naive_datetime_treated_as_utc(self):
        assert is_early_completion(date(2030, 1, 14), datetime(2030, 1, 13, 23, 59)) is True


class TestAverageRating:
    def test_running_average(self):
        assert average_rating([5, 4], 3) == 4.0

    def test_first_rating(self):
        assert average_rating([], 5) == 5.0

    def test_one_decimal_half_up(self):
        # 17 / 4 = 4.25 -> 4.3 (not banker's 4.2)
        assert average_rating([5, 4, 4], 4) == 4.3
        assert average_rating([4, 5], 5) == 4.7


class TestSettleRating:
    @pytest.mark.asyncio
    async def test_writes_rating_xp_and_average(self, store, make_user, job):
        """Rated user gets XP added and average recomputed over previous ratings plus this one."""
        employer = await store.get("User", job["employer_id"])
        rated = await make_user("worker", xp=30)
        await store.create("Rating", {
            "job_id": "previous-job", "rater_id": employer["id"], "rated_id": rated["id"],
            "rating": 5, "comment": "Ótimo", "qualities": [],
        })
        await store.create("Rating", {
            "job_id": "another-job", "rater_id": employer["id"], "rated_id": rated["id"],
            "rating": 4, "comment": "Bom", "qualities": [],
        })

        result = await settle_rating(
            store, job, employer, rated,
            RatingCreate(rating=3, comment="Razoável", qualities=["Pontual", "Pontual"]),
            completed_at=datetime(2031, 1, 1, tzinfo=timezone.utc),
        )

        assert result["xp_gained"] == 30  # 50 * 3/5, not early
        assert result["xp"] == 60
        assert result["average_rating"] == 4.0
        assert result["rating"]["qualities"] == ["Pontual"]

        stored = await store.get("User", rated["id"])
        assert stored["xp"] == 60
        assert stored["rating"] == 4.0

    @pytest.mark.asyncio
    async def test_second_rating_for_same_pair_conflicts(self, store, make_user, job):
        employer = await store.get("User", job["employer_id"])
        rated = await make_user("worker")
        data = RatingCreate(rating=5, comment="Excelente")
        now = datetime(2031, 1, 1, tzinfo=timezone.utc)

        await settle_rating(store, job, employer, rated, data, now)
        with pytest.raises(ConflictError):
            await settle_rating(store, job, employer, rated, data, now)


class TestRatingInput:
    def test_blank_comment_rejected(self):
        with pytest.raises(ValueError):
            RatingCreate(rating=4, comment="   ")

    @pytest.mark.parametrize("value", [0, 6])
    def test_out_of_range_rejected(self, value):
        with pytest.raises(ValueError):
            RatingCreate(rating=value, comment="ok")
