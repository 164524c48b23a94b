"""SM-2 spaced repetition scheduler."""

import logging
import math
from dataclasses import replace
from datetime import date, timedelta
from typing import Optional, Union

from snapy.models import (
    DEFAULT_EASE_FACTOR,
    MIN_EASE_FACTOR,
    Difficulty,
    ProgressRecord,
    ReviewStatus,
)

logger = logging.getLogger("snapy.scheduler")

MATURE_INTERVAL_DAYS = 21
LEARNING_INTERVAL_DAYS = 7

_QUALITY_BY_DIFFICULTY = {
    Difficulty.EASY: 5,
    Difficulty.MEDIUM: 4,
    Difficulty.HARD: 3,
}


class InvalidArgument(ValueError):
    """Raised when a quality score is outside 0-5."""


def _check_quality(quality) -> None:
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidArgument(f"Quality must be an int 0-5, got {quality!r}")
    if not (0 <= quality <= 5):
        raise InvalidArgument(f"Quality must be 0-5, got {quality}")


def _round_half_up(value: float) -> int:
    # round() is banker's rounding: round(12.5) == 12
    return int(math.floor(value + 0.5))


def ease_factor_after(ease_factor: float, quality: int) -> float:
    """
    SM-2 ease adjustment:
        EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02)), floored at 1.3
    """
    miss = 5 - quality
    adjustment = 0.1 - miss * (0.08 + miss * 0.02)
    return max(MIN_EASE_FACTOR, ease_factor + adjustment)


def next_progress(
    current: Optional[ProgressRecord],
    quality: int,
    today: date,
    user_id: Optional[str] = None,
    flashcard_id: Optional[int] = None,
) -> ProgressRecord:
    """
    Compute the progress record that follows one review.

    Args:
        current:      Existing record, or None for a never-reviewed card
        quality:      Recall quality 0-5 (0=blackout, 5=perfect)
        today:        Reference date for the new due date
        user_id:      Owner of the new record when current is None
        flashcard_id: Card of the new record when current is None

    Returns:
        A new ProgressRecord; current is never modified.

    Raises:
        InvalidArgument if quality is not an int in 0-5.
    """
    _check_quality(quality)

    base_ease = current.ease_factor if current is not None else DEFAULT_EASE_FACTOR
    new_ease = ease_factor_after(base_ease, quality)
    successful = quality >= 3

    if current is None:
        # First review is one day out whether or not it was recalled
        return ProgressRecord(
            user_id=user_id,
            flashcard_id=flashcard_id,
            ease_factor=new_ease,
            interval=1,
            repetitions=1 if successful else 0,
            next_review_date=today + timedelta(days=1),
            last_reviewed_at=today,
            total_reviews=1,
            correct_reviews=1 if successful else 0,
            incorrect_reviews=0 if successful else 1,
            created_at=today,
            updated_at=today,
        )

    if not successful:
        new_interval, new_reps = 1, 0
    elif current.repetitions == 0:
        new_interval, new_reps = 1, 1
    elif current.repetitions == 1:
        new_interval, new_reps = 6, 2
    else:
        new_interval = _round_half_up(current.interval * new_ease)
        new_reps = current.repetitions + 1

    return replace(
        current,
        ease_factor=new_ease,
        interval=new_interval,
        repetitions=new_reps,
        next_review_date=today + timedelta(days=new_interval),
        last_reviewed_at=today,
        total_reviews=current.total_reviews + 1,
        correct_reviews=current.correct_reviews + (1 if successful else 0),
        incorrect_reviews=current.incorrect_reviews + (0 if successful else 1),
        created_at=current.created_at or today,
        updated_at=today,
    )


def quality_from_difficulty(difficulty: Union[Difficulty, str], is_correct: bool) -> int:
    """
    Map a difficulty pick plus correctness to a 0-5 quality.

    A wrong answer is always 0. Unknown labels count as MEDIUM.
    """
    if not is_correct:
        return 0
    try:
        key = Difficulty(difficulty.upper() if isinstance(difficulty, str) else difficulty)
    except ValueError:
        logger.debug("Unknown difficulty %r, treating as MEDIUM", difficulty)
        return _QUALITY_BY_DIFFICULTY[Difficulty.MEDIUM]
    return _QUALITY_BY_DIFFICULTY[key]


def is_due(record: Optional[ProgressRecord], today: date) -> bool:
    """New cards and cards without a review date are always due."""
    if record is None or record.next_review_date is None:
        return True
    return record.next_review_date <= today


def days_overdue(record: Optional[ProgressRecord], today: date) -> int:
    if record is None or record.next_review_date is None:
        return 0
    return max(0, (today - record.next_review_date).days)


def is_mature(record: ProgressRecord) -> bool:
    return record.interval >= MATURE_INTERVAL_DAYS and record.repetitions >= 3


def is_learning(record: ProgressRecord) -> bool:
    return record.interval < LEARNING_INTERVAL_DAYS or record.repetitions < 2


def classify(record: ProgressRecord) -> ReviewStatus:
    """MATURE wins over LEARNING when both predicates hold."""
    if is_mature(record):
        return ReviewStatus.MATURE
    if is_learning(record):
        return ReviewStatus.LEARNING
    return ReviewStatus.REVIEW


def review_status(record: Optional[ProgressRecord]) -> ReviewStatus:
    if record is None:
        return ReviewStatus.NEW
    return classify(record)
