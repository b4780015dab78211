# services/reputation.py
"""
Reputation math: experience points and running average rating.

The first three functions are pure. settle_rating() is the single place that
writes rating/xp back to a user, and it runs inside the caller's transaction.
"""

import logging
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal

from models.rating import RatingCreate

logger = logging.getLogger(__name__)

XP_RATE = Decimal("0.1")
XP_MIN = Decimal("10")
XP_MAX = Decimal("100")
EARLY_BONUS = Decimal("1.2")


def calculate_xp(rating: int, job_price, is_early: bool = False) -> int:
    """
    baseXP = clamp(price * 0.1, 10, 100)
    xp = round_half_up(baseXP * rating / 5 * (1.2 if early else 1.0))
    """
    base = Decimal(str(job_price)) * XP_RATE
    base = min(max(base, XP_MIN), XP_MAX)

    xp = base * Decimal(rating) / Decimal(5)
    if is_early:
        xp *= EARLY_BONUS

    return int(xp.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _as_utc(value) -> datetime | None:
    # Date-only values mean midnight UTC; naive datetimes are taken as UTC
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value) if "T" in value else date.fromisoformat(value)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def is_early_completion(end_date, completed_at) -> bool:
    """True only when a planned end date exists and completion came strictly before it."""
    end = _as_utc(end_date)
    done = _as_utc(completed_at)
    if end is None or done is None:
        return False
    return done < end


def average_rating(existing: list[int], new_rating: int) -> float:
    """Mean of previous ratings plus the new one, half-up to one decimal."""
    values = [*existing, new_rating]
    mean = Decimal(sum(values)) / Decimal(len(values))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


async def settle_rating(store, job: dict, rater: dict, rated: dict, data: RatingCreate, completed_at: datetime) -> dict:
    """
    Record a rating and fold it into the rated user's reputation.

    1. Read the ratings `rated` has received so far (before this one).
    2. Create the Rating (the store rejects a second one for the same job/pair).
    3. Add the XP for this job and rewrite the average.
    """
    # --- 1. Previous ratings ---
    previous = await store.filter("Rating", {"rated_id": rated["id"]})

    # --- 2. Rating record ---
    record = await store.create("Rating", {
        "job_id": job["id"],
        "rater_id": rater["id"],
        "rated_id": rated["id"],
        "rating": data.rating,
        "comment": data.comment,
        "qualities": data.qualities,
    })

    # --- 3. XP and average ---
    early = is_early_completion(job.get("end_date"), completed_at)
    xp_gained = calculate_xp(data.rating, job["price"], early)
    new_average = average_rating([r["rating"] for r in previous], data.rating)

    # `rated` may be stale, add onto the stored xp
    current = await store.get("User", rated["id"]) or rated
    updated = await store.update("User", rated["id"], {
        "xp": (current.get("xp") or 0) + xp_gained,
        "rating": new_average,
    })

    logger.info(
        "User %s rated %s on job %s: +%s XP (early=%s), average %s",
        rated["id"], data.rating, job["id"], xp_gained, early, new_average,
    )
    return {
        "rating": record,
        "xp_gained": xp_gained,
        "xp": updated["xp"],
        "average_rating": updated["rating"],
    }
