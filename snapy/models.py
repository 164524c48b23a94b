"""Data models for the scheduling engine: progress records, cards, responses."""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum
from typing import Dict, Optional


DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3


class Difficulty(str, Enum):
    """Three-level difficulty the learner picks after answering."""
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class ReviewStatus(str, Enum):
    """Coarse scheduling maturity of a card."""
    NEW = "New"
    LEARNING = "Learning"
    REVIEW = "Review"
    MATURE = "Mature"


class CardType(str, Enum):
    """How a flashcard is answered."""
    SELF_EVAL = "SELF_EVAL"
    MCQ = "MCQ"


class ResponseType(str, Enum):
    CORRECT = "CORRECT"
    INCORRECT = "INCORRECT"


def _parse_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


@dataclass(frozen=True)
class ProgressRecord:
    """
    SM-2 progress for one (user, flashcard) pair.

    A card that has never been reviewed has no record at all; callers pass
    None for it. Records are immutable: the scheduler returns a new one.
    """
    user_id: str
    flashcard_id: int
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0
    next_review_date: Optional[date] = None
    last_reviewed_at: Optional[date] = None
    total_reviews: int = 0
    correct_reviews: int = 0
    incorrect_reviews: int = 0
    created_at: Optional[date] = None
    updated_at: Optional[date] = None

    def to_dict(self) -> Dict:
        d = asdict(self)
        for key in ('next_review_date', 'last_reviewed_at', 'created_at', 'updated_at'):
            if d[key] is not None:
                d[key] = d[key].isoformat()
        return d

    @classmethod
    def from_dict(cls, data: Dict) -> 'ProgressRecord':
        known = cls.__dataclass_fields__
        data = {k: v for k, v in data.items() if k in known}
        for key in ('next_review_date', 'last_reviewed_at', 'created_at', 'updated_at'):
            if key in data:
                data[key] = _parse_date(data[key])
        return cls(**data)


@dataclass(frozen=True)
class Flashcard:
    """A question/answer card belonging to a study unit."""
    id: int
    unit_id: int
    question: str
    answer: str
    card_type: str = CardType.SELF_EVAL.value
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict:
        d = asdict(self)
        if d['created_at'] is not None:
            d['created_at'] = d['created_at'].isoformat()
        return d


@dataclass(frozen=True)
class QuizResponse:
    """One answered card, used for the aggregate review counters."""
    user_id: str
    flashcard_id: int
    response_type: str
    responded_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_correct(self) -> bool:
        return self.response_type == ResponseType.CORRECT.value
