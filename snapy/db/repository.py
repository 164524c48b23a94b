"""Progress repository: flashcards, per-user SM-2 records and quiz responses."""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from snapy.analytics import StudyStats, aggregate_stats
from snapy.db.models import FlashcardRow, QuizResponseRow, UserProgressRow
from snapy.models import CardType, Flashcard, ProgressRecord, QuizResponse, ResponseType

logger = logging.getLogger("snapy.store")

_PROGRESS_FIELDS = (
    'ease_factor', 'interval', 'repetitions', 'next_review_date',
    'last_reviewed_at', 'total_reviews', 'correct_reviews',
    'incorrect_reviews', 'created_at', 'updated_at',
)


class StaleProgressError(RuntimeError):
    """The stored progress changed after the record being saved was computed."""

    def __init__(self, record: ProgressRecord):
        super().__init__(
            f"Progress for user {record.user_id} card {record.flashcard_id} "
            f"changed since it was read"
        )
        self.record = record


def _to_record(row: UserProgressRow) -> ProgressRecord:
    return ProgressRecord(
        user_id=row.user_id,
        flashcard_id=row.flashcard_id,
        **{name: getattr(row, name) for name in _PROGRESS_FIELDS},
    )


def _to_flashcard(row: FlashcardRow) -> Flashcard:
    return Flashcard(
        id=row.id,
        unit_id=row.unit_id,
        question=row.question,
        answer=row.answer,
        card_type=row.card_type,
        created_at=row.created_at,
    )


class ProgressStore:
    """
    SQLAlchemy-backed storage for the scheduler's collaborators.

    Writes flush but do not commit; the owner of the session decides when
    a review is final (see commit()).
    """

    def __init__(self, db: DBSession):
        self.db = db

    def commit(self) -> None:
        """Commit pending writes; on failure roll back so stored rows are unchanged."""
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def rollback(self) -> None:
        self.db.rollback()

    # -- flashcards --

    def add_flashcard(
        self,
        unit_id: int,
        question: str,
        answer: str,
        card_type: str = CardType.SELF_EVAL.value,
    ) -> Flashcard:
        row = FlashcardRow(
            unit_id=unit_id,
            question=question,
            answer=answer,
            card_type=CardType(card_type).value,
        )
        self.db.add(row)
        self.db.flush()
        return _to_flashcard(row)

    def get_flashcard(self, flashcard_id: int) -> Flashcard:
        """Raises KeyError if the card does not exist."""
        row = self.db.get(FlashcardRow, flashcard_id)
        if row is None:
            raise KeyError(f"Flashcard not found: {flashcard_id}")
        return _to_flashcard(row)

    def get_flashcards_by_unit(self, unit_id: int) -> List[Flashcard]:
        rows = (
            self.db.query(FlashcardRow)
            .filter(FlashcardRow.unit_id == unit_id)
            .order_by(FlashcardRow.id)
            .all()
        )
        return [_to_flashcard(r) for r in rows]

    # -- progress --

    def _progress_row(self, user_id: str, flashcard_id: int) -> Optional[UserProgressRow]:
        return (
            self.db.query(UserProgressRow)
            .filter(
                UserProgressRow.user_id == user_id,
                UserProgressRow.flashcard_id == flashcard_id,
            )
            .first()
        )

    def get_progress(self, user_id: str, flashcard_id: int) -> Optional[ProgressRecord]:
        """None means the user has never reviewed this card."""
        row = self._progress_row(user_id, flashcard_id)
        return _to_record(row) if row is not None else None

    def save_progress(self, record: ProgressRecord) -> ProgressRecord:
        """
        Insert or update the row for (user_id, flashcard_id).

        The write only lands on top of the review the record was computed
        from: a first review (total_reviews <= 1) needs the row to be absent,
        a later one needs the stored total_reviews to be one less.

        Raises:
            StaleProgressError if another review of the pair got there first.
        """
        values = {name: getattr(record, name) for name in _PROGRESS_FIELDS}
        if record.total_reviews <= 1:
            if self._progress_row(record.user_id, record.flashcard_id) is not None:
                raise StaleProgressError(record)
            self.db.add(UserProgressRow(
                user_id=record.user_id, flashcard_id=record.flashcard_id, **values,
            ))
            try:
                self.db.flush()
            except IntegrityError as e:
                raise StaleProgressError(record) from e
        else:
            # Compare-and-set on the review counter
            updated = (
                self.db.query(UserProgressRow)
                .filter(
                    UserProgressRow.user_id == record.user_id,
                    UserProgressRow.flashcard_id == record.flashcard_id,
                    UserProgressRow.total_reviews == record.total_reviews - 1,
                )
                .update(values, synchronize_session='fetch')
            )
            if updated != 1:
                raise StaleProgressError(record)
            self.db.flush()
        row = self._progress_row(record.user_id, record.flashcard_id)
        logger.debug(
            "Saved progress user=%s card=%s interval=%s reps=%s",
            record.user_id, record.flashcard_id, record.interval, record.repetitions,
        )
        return _to_record(row)

    def get_all_progress(self, user_id: str) -> List[ProgressRecord]:
        rows = (
            self.db.query(UserProgressRow)
            .filter(UserProgressRow.user_id == user_id)
            .order_by(UserProgressRow.flashcard_id)
            .all()
        )
        return [_to_record(r) for r in rows]

    def get_due_progress(self, user_id: str, today: date) -> List[ProgressRecord]:
        """Records with next_review_date <= today (or no date), earliest first."""
        rows = (
            self.db.query(UserProgressRow)
            .filter(
                UserProgressRow.user_id == user_id,
                (UserProgressRow.next_review_date <= today)
                | (UserProgressRow.next_review_date.is_(None)),
            )
            .order_by(UserProgressRow.next_review_date, UserProgressRow.flashcard_id)
            .all()
        )
        return [_to_record(r) for r in rows]

    def get_due_flashcards(self, user_id: str, unit_id: int, today: date) -> List[Flashcard]:
        """Cards of a unit that are due: never-reviewed ones first, then by due date."""
        rows = (
            self.db.query(FlashcardRow, UserProgressRow.next_review_date)
            .outerjoin(
                UserProgressRow,
                (UserProgressRow.flashcard_id == FlashcardRow.id)
                & (UserProgressRow.user_id == user_id),
            )
            .filter(
                FlashcardRow.unit_id == unit_id,
                (UserProgressRow.next_review_date.is_(None))
                | (UserProgressRow.next_review_date <= today),
            )
            .all()
        )
        rows.sort(key=lambda r: (r[1] is not None, r[1] or today, r[0].id))
        return [_to_flashcard(card) for card, _ in rows]

    # -- quiz responses --

    def save_quiz_response(self, response: QuizResponse) -> None:
        self.db.add(QuizResponseRow(
            user_id=response.user_id,
            flashcard_id=response.flashcard_id,
            response_type=ResponseType(response.response_type).value,
            responded_at=response.responded_at,
        ))
        self.db.flush()

    def count_responses(self, user_id: str) -> int:
        return (
            self.db.query(func.count(QuizResponseRow.id))
            .filter(QuizResponseRow.user_id == user_id)
            .scalar()
        ) or 0

    def count_responses_by_type(self, user_id: str, response_type: str) -> int:
        return (
            self.db.query(func.count(QuizResponseRow.id))
            .filter(
                QuizResponseRow.user_id == user_id,
                QuizResponseRow.response_type == ResponseType(response_type).value,
            )
            .scalar()
        ) or 0

    # -- reporting --

    def study_stats(self, user_id: str, today: date) -> StudyStats:
        records = self.get_all_progress(user_id)
        return aggregate_stats(
            records,
            total_reviews=self.count_responses(user_id),
            correct_reviews=self.count_responses_by_type(user_id, ResponseType.CORRECT.value),
            incorrect_reviews=self.count_responses_by_type(user_id, ResponseType.INCORRECT.value),
            cards_due_today=len(self.get_due_progress(user_id, today)),
        )
