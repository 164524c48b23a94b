"""Study session: walks a deck, scores answers and records SM-2 progress."""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, Dict, List, Optional, Union

from snapy.db.repository import ProgressStore
from snapy.models import (
    CardType,
    Difficulty,
    Flashcard,
    ProgressRecord,
    QuizResponse,
    ResponseType,
)
from snapy.scheduler import next_progress, quality_from_difficulty

logger = logging.getLogger("snapy.session")

_DIFFICULTY_KEYS = {
    'e': Difficulty.EASY,
    'm': Difficulty.MEDIUM,
    'h': Difficulty.HARD,
}


class ProgressSaveError(RuntimeError):
    """
    The store failed while loading or saving a review.

    The stored record is left as it was. `response` and `quality` describe
    the answer so the caller can retry it; `record` is the computed progress,
    or None when the failure happened before it could be computed.
    """

    def __init__(
        self,
        response: QuizResponse,
        quality: int,
        record: Optional[ProgressRecord] = None,
    ):
        super().__init__(f"Could not save progress for card {response.flashcard_id}")
        self.response = response
        self.quality = quality
        self.record = record


@dataclass(frozen=True)
class QuizSession:
    """Tally of one pass through a deck."""
    total_cards: int
    current_card_index: int = 0
    correct_answers: int = 0
    incorrect_answers: int = 0

    @property
    def is_quiz_complete(self) -> bool:
        return self.current_card_index >= self.total_cards

    @property
    def answered(self) -> int:
        return self.correct_answers + self.incorrect_answers

    @property
    def progress(self) -> float:
        if self.total_cards == 0:
            return 0.0
        return min(1.0, self.current_card_index / self.total_cards)

    def with_answer(self, is_correct: bool) -> 'QuizSession':
        if is_correct:
            return replace(self, correct_answers=self.correct_answers + 1)
        return replace(self, incorrect_answers=self.incorrect_answers + 1)

    def advanced(self) -> 'QuizSession':
        if self.is_quiz_complete:
            return self
        return replace(self, current_card_index=self.current_card_index + 1)


class StudySession:
    """
    One learner studying a list of cards.

    Each answer updates the in-memory tally first and then persists the
    SM-2 result, so a storage failure never loses the tally.
    """

    def __init__(
        self,
        store: ProgressStore,
        user_id: str,
        cards: List[Flashcard],
        today: Optional[date] = None,
    ):
        self.store = store
        self.user_id = user_id
        self.cards = list(cards)
        self._today = today
        self.quiz = QuizSession(total_cards=len(self.cards))

    @property
    def today(self) -> date:
        return self._today or date.today()

    def current_card(self) -> Optional[Flashcard]:
        idx = self.quiz.current_card_index
        if idx < len(self.cards):
            return self.cards[idx]
        return None

    def next_card(self) -> None:
        self.quiz = self.quiz.advanced()

    def reset(self) -> None:
        self.quiz = QuizSession(total_cards=len(self.cards))

    def answer_self_eval(
        self, knew: bool, difficulty: Union[Difficulty, str] = Difficulty.MEDIUM,
    ) -> Optional[ProgressRecord]:
        self.quiz = self.quiz.with_answer(knew)
        return self.record(knew, difficulty)

    def answer_mcq(self, is_correct: bool) -> Optional[ProgressRecord]:
        # Multiple-choice answers carry no difficulty pick
        self.quiz = self.quiz.with_answer(is_correct)
        return self.record(is_correct, Difficulty.MEDIUM)

    def record(
        self, is_correct: bool, difficulty: Union[Difficulty, str] = Difficulty.MEDIUM,
    ) -> Optional[ProgressRecord]:
        """
        Schedule the current card and persist the result.

        Returns:
            The saved ProgressRecord, or None when the deck is finished.

        Raises:
            ProgressSaveError if the store fails; nothing is committed.
        """
        card = self.current_card()
        if card is None:
            return None

        quality = quality_from_difficulty(difficulty, is_correct)
        response = QuizResponse(
            user_id=self.user_id,
            flashcard_id=card.id,
            response_type=(ResponseType.CORRECT if is_correct else ResponseType.INCORRECT).value,
        )
        return self._review(response, quality)

    def retry_save(self, error: ProgressSaveError) -> ProgressRecord:
        """
        Apply the answer that raised `error` again.

        The failed attempt was rolled back, so the stored record is re-read
        and the same quality is applied on top of it.
        """
        return self._review(error.response, error.quality)

    def _review(self, response: QuizResponse, quality: int) -> ProgressRecord:
        new_record = None
        try:
            current = self.store.get_progress(response.user_id, response.flashcard_id)
            new_record = next_progress(
                current, quality, self.today,
                user_id=response.user_id, flashcard_id=response.flashcard_id,
            )
            self.store.save_progress(new_record)
            self.store.save_quiz_response(response)
            self.store.commit()
        except Exception as e:
            self.store.rollback()
            logger.exception(
                "Saving progress failed for user %s card %s",
                response.user_id, response.flashcard_id,
            )
            raise ProgressSaveError(response, quality, new_record) from e
        logger.info(
            "Reviewed card %s quality=%s interval=%s next=%s",
            response.flashcard_id, quality, new_record.interval, new_record.next_review_date,
        )
        return new_record


def run_review_session(
    store: ProgressStore,
    user_id: str,
    cards: List[Flashcard],
    today: Optional[date] = None,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> Dict:
    """
    Interactive review loop. IO is injectable for testability.

    Self-eval cards: reveal the answer, ask y/n, then e/m/h difficulty.
    MCQ cards: the typed answer is compared with the stored answer.
    'q' quits and 's' skips at the first prompt of a self-eval card. On MCQ
    cards the commands are ':q' and ':s' so that any answer can be typed.

    Returns:
        Summary dict: {reviewed, correct, incorrect, skipped, unsaved}
    """
    session = StudySession(store, user_id, cards, today=today)
    skipped = 0
    unsaved = 0

    output_fn(f"\n{'='*60}")
    output_fn(f"REVIEW SESSION -- {len(cards)} card(s) due")
    output_fn(f"{'='*60}")
    output_fn("Type 'q' to quit early, 's' to skip a card "
              "(':q' and ':s' on multiple-choice cards).\n")

    while not session.quiz.is_quiz_complete:
        card = session.current_card()
        output_fn(f"\n--- Card {session.quiz.current_card_index + 1}/{len(cards)} "
                  f"[{card.card_type}] ---")
        output_fn(f"  {card.question}")

        is_mcq = card.card_type == CardType.MCQ.value
        try:
            if is_mcq:
                reply = input_fn("\nYour answer: ").strip()
            else:
                reply = input_fn("\nPress Enter to reveal the answer: ").strip()
            command = reply.lower()
            prefix = ':' if is_mcq else ''
            if command == prefix + 'q':
                output_fn("Ending session early.")
                break
            if command == prefix + 's':
                skipped += 1
                output_fn("  (skipped)")
                session.next_card()
                continue

            output_fn(f"  Answer: {card.answer}")
            difficulty = Difficulty.MEDIUM
            if is_mcq:
                is_correct = command == card.answer.strip().lower()
                output_fn("  Correct!" if is_correct else "  Incorrect.")
            else:
                is_correct = input_fn("Did you know it? [y/n]: ").strip().lower() == 'y'
                if is_correct:
                    pick = input_fn("How hard was it? [e]asy/[m]edium/[h]ard: ").strip().lower()
                    difficulty = _DIFFICULTY_KEYS.get(pick[:1], Difficulty.MEDIUM)
        except (EOFError, KeyboardInterrupt):
            output_fn("\nSession ended.")
            break

        try:
            if is_mcq:
                record = session.answer_mcq(is_correct)
            else:
                record = session.answer_self_eval(is_correct, difficulty)
        except ProgressSaveError as e:
            try:
                record = session.retry_save(e)
            except ProgressSaveError:
                record = None
                unsaved += 1
                output_fn("  Progress could not be saved; it will be scheduled as before.")
        if record is not None:
            output_fn(f"  Next review: {record.next_review_date.isoformat()} "
                      f"(interval: {record.interval}d)")
        session.next_card()

    quiz = session.quiz
    summary = {
        'reviewed': quiz.answered,
        'correct': quiz.correct_answers,
        'incorrect': quiz.incorrect_answers,
        'skipped': skipped,
        'unsaved': unsaved,
    }

    output_fn(f"\n{'='*60}")
    output_fn("SESSION COMPLETE")
    output_fn(f"  Reviewed: {summary['reviewed']}  Correct: {summary['correct']}  "
              f"Incorrect: {summary['incorrect']}  Skipped: {skipped}")
    if unsaved:
        output_fn(f"  Not saved: {unsaved} card(s)")
    output_fn(f"{'='*60}")
    return summary
