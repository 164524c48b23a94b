"""Study statistics derived from progress records and review counters."""

from dataclasses import dataclass, asdict
from typing import Dict, Iterable

from snapy.models import DEFAULT_EASE_FACTOR, ProgressRecord, ReviewStatus
from snapy.scheduler import classify


@dataclass(frozen=True)
class StudyStats:
    total_cards: int = 0
    new_cards: int = 0
    learning_cards: int = 0
    review_cards: int = 0
    mature_cards: int = 0
    cards_due_today: int = 0
    total_reviews: int = 0
    correct_reviews: int = 0
    incorrect_reviews: int = 0
    retention_rate: float = 0.0
    average_ease_factor: float = DEFAULT_EASE_FACTOR
    average_interval: int = 0

    @property
    def retention_percentage(self) -> int:
        return int(self.retention_rate * 100)

    def to_dict(self) -> Dict:
        d = asdict(self)
        d['retention_percentage'] = self.retention_percentage
        return d


def retention_rate(total_reviews: int, correct_reviews: int) -> float:
    """Share of reviews answered correctly (0.0 when nothing was reviewed)."""
    if total_reviews == 0:
        return 0.0
    return correct_reviews / total_reviews


def aggregate_stats(
    records: Iterable[ProgressRecord],
    total_reviews: int,
    correct_reviews: int,
    incorrect_reviews: int,
    cards_due_today: int = 0,
) -> StudyStats:
    """
    Bucket records by classify() and average their scheduling state.

    The review counters come from the caller (quiz responses), not from
    the records, so they may cover cards that were later removed.

    Returns:
        StudyStats. With no records, average_ease_factor is 2.5 and
        average_interval is 0.
    """
    records = list(records)
    buckets = {status: 0 for status in ReviewStatus}
    for record in records:
        buckets[classify(record)] += 1

    if records:
        average_ease = sum(r.ease_factor for r in records) / len(records)
        average_interval = sum(r.interval for r in records) // len(records)
    else:
        average_ease = DEFAULT_EASE_FACTOR
        average_interval = 0

    return StudyStats(
        total_cards=len(records),
        new_cards=buckets[ReviewStatus.NEW],
        learning_cards=buckets[ReviewStatus.LEARNING],
        review_cards=buckets[ReviewStatus.REVIEW],
        mature_cards=buckets[ReviewStatus.MATURE],
        cards_due_today=cards_due_today,
        total_reviews=total_reviews,
        correct_reviews=correct_reviews,
        incorrect_reviews=incorrect_reviews,
        retention_rate=retention_rate(total_reviews, correct_reviews),
        average_ease_factor=average_ease,
        average_interval=average_interval,
    )
