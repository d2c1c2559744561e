import math
from typing import NamedTuple, Optional

from errors import ValidationError
from utils.clock import DAY_MS, now_ms

MIN_EASE = 1.3
DEFAULT_EASE = 2.5

QUALITY_FORGOT = 0
QUALITY_SHAKY = 1
QUALITY_GOOD = 2
QUALITY_SOLID = 3

QUALITY_BY_CONFIDENCE = {
    "new": QUALITY_FORGOT,
    "learning": QUALITY_SHAKY,
    "shaky": QUALITY_SHAKY,
    "good": QUALITY_GOOD,
    "solid": QUALITY_SOLID,
}


class SM2State(NamedTuple):
    ease: float
    interval: int
    streak: int


def confidence_to_quality(confidence: str) -> int:
    """Map a confidence label to an SM-2 quality score (0-3)."""
    label = getattr(confidence, "value", confidence)
    try:
        return QUALITY_BY_CONFIDENCE[label]
    except KeyError:
        raise ValidationError(f"Unknown confidence: {confidence!r}") from None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_next_state(
    quality: int,
    current_ease: float,
    current_interval: int,
    current_streak: int,
) -> SM2State:
    """Compute the next ease factor, interval (days) and streak.

    quality: 0=forgot, 1=shaky, 2=good, 3=solid
    """
    if quality == QUALITY_FORGOT:
        return SM2State(max(MIN_EASE, current_ease - 0.2), 1, 0)
    if quality == QUALITY_SHAKY:
        interval = max(1, min(3, _round_half_up(current_interval * 0.5)))
        return SM2State(max(MIN_EASE, current_ease - 0.15), interval, 0)
    if quality == QUALITY_GOOD:
        streak = current_streak + 1
        if streak == 1:
            interval = 1
        elif streak == 2:
            interval = 6
        else:
            interval = _round_half_up(current_interval * current_ease)
        return SM2State(max(MIN_EASE, current_ease), max(1, interval), streak)
    if quality == QUALITY_SOLID:
        streak = current_streak + 1
        if streak == 1:
            interval = 2
        elif streak == 2:
            interval = 7
        else:
            interval = _round_half_up(current_interval * current_ease * 1.2)
        return SM2State(max(MIN_EASE, current_ease + 0.1), max(1, interval), streak)
    raise ValidationError(f"Quality must be between 0 and 3, got {quality!r}")


def next_review_at(interval_days: int, now: Optional[int] = None) -> int:
    """Epoch-ms timestamp ``interval_days`` after ``now``."""
    anchor = now_ms() if now is None else now
    return anchor + int(interval_days) * DAY_MS
