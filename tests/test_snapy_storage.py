"""Tests for snapy/db -- SQLAlchemy progress repository."""

import sys
import tempfile
from pathlib import Path
from datetime import date, timedelta

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from snapy.config import Settings
from snapy.db.models import UserProgressRow
from snapy.db.repository import ProgressStore, StaleProgressError
from snapy.db.session import get_db, get_session_factory, init_db, reset_engine
from snapy.models import CardType, ProgressRecord, QuizResponse, ResponseType
from snapy.scheduler import next_progress
from sqlalchemy.orm import Session

TODAY = date(2026, 3, 10)


@pytest.fixture
def store():
    reset_engine()
    with tempfile.TemporaryDirectory() as tmp:
        settings = Settings(database_url=f"sqlite:///{Path(tmp) / 'test.db'}")
        init_db(settings)
        db = get_session_factory(settings)()
        try:
            yield ProgressStore(db)
        finally:
            db.close()
            reset_engine()


def _review(store, card_id, quality, today=TODAY, user_id='u1'):
    current = store.get_progress(user_id, card_id)
    record = next_progress(current, quality, today, user_id=user_id, flashcard_id=card_id)
    store.save_progress(record)
    store.commit()
    return record


def test_add_and_get_flashcard(store):
    """Cards get ids and can be fetched by id and by unit."""
    a = store.add_flashcard(1, 'What is 2+2?', '4')
    b = store.add_flashcard(1, 'Capital of France?', 'Paris', CardType.MCQ.value)
    store.add_flashcard(2, 'Other unit', 'x')
    assert store.get_flashcard(a.id).question == 'What is 2+2?'
    assert [c.id for c in store.get_flashcards_by_unit(1)] == [a.id, b.id]
    assert store.get_flashcard(b.id).card_type == 'MCQ'


def test_get_missing_flashcard_raises(store):
    with pytest.raises(KeyError):
        store.get_flashcard(404)


def test_unknown_card_type_rejected(store):
    with pytest.raises(ValueError):
        store.add_flashcard(1, 'Q', 'A', 'ESSAY')


def test_progress_absent_for_new_card(store):
    """A never-reviewed card has no progress record."""
    card = store.add_flashcard(1, 'Q', 'A')
    assert store.get_progress('u1', card.id) is None


def test_save_and_load_round_trip(store):
    card = store.add_flashcard(1, 'Q', 'A')
    record = _review(store, card.id, 5)
    loaded = store.get_progress('u1', card.id)
    assert loaded == record
    assert loaded.next_review_date == TODAY + timedelta(days=1)


def test_upsert_keeps_single_row(store):
    """Repeated reviews update the pair's row in place."""
    card = store.add_flashcard(1, 'Q', 'A')
    for i in range(4):
        _review(store, card.id, 4, today=TODAY + timedelta(days=i * 7))
    rows = store.db.query(UserProgressRow).filter_by(user_id='u1', flashcard_id=card.id).all()
    assert len(rows) == 1
    assert rows[0].total_reviews == 4
    assert rows[0].repetitions == 4


def test_progress_is_per_user(store):
    card = store.add_flashcard(1, 'Q', 'A')
    _review(store, card.id, 5, user_id='alice')
    _review(store, card.id, 0, user_id='bob')
    assert store.get_progress('alice', card.id).repetitions == 1
    assert store.get_progress('bob', card.id).repetitions == 0
    assert len(store.get_all_progress('alice')) == 1


def test_get_due_progress(store):
    """Only records dated on or before today, earliest first."""
    cards = [store.add_flashcard(1, f'Q{i}', 'A') for i in range(3)]
    for card, due_offset in zip(cards, (-2, 0, 3)):
        store.save_progress(ProgressRecord(
            user_id='u1', flashcard_id=card.id, interval=1, repetitions=1,
            next_review_date=TODAY + timedelta(days=due_offset),
        ))
    store.commit()
    due = store.get_due_progress('u1', TODAY)
    assert [r.flashcard_id for r in due] == [cards[0].id, cards[1].id]


def test_get_due_flashcards_new_first(store):
    """Never-reviewed cards come first, then due cards; future cards are left out."""
    reviewed_due = store.add_flashcard(1, 'due', 'A')
    fresh = store.add_flashcard(1, 'new', 'A')
    future = store.add_flashcard(1, 'future', 'A')
    store.add_flashcard(2, 'other unit', 'A')
    store.save_progress(ProgressRecord(
        user_id='u1', flashcard_id=reviewed_due.id, interval=1,
        next_review_date=TODAY - timedelta(days=1),
    ))
    store.save_progress(ProgressRecord(
        user_id='u1', flashcard_id=future.id, interval=6,
        next_review_date=TODAY + timedelta(days=6),
    ))
    store.commit()

    due = store.get_due_flashcards('u1', 1, TODAY)
    assert [c.id for c in due] == [fresh.id, reviewed_due.id]

    # Another user has not reviewed anything yet
    assert len(store.get_due_flashcards('u2', 1, TODAY)) == 3


def test_quiz_response_counts(store):
    card = store.add_flashcard(1, 'Q', 'A')
    for rt in ('CORRECT', 'CORRECT', 'INCORRECT'):
        store.save_quiz_response(QuizResponse('u1', card.id, rt))
    store.save_quiz_response(QuizResponse('u2', card.id, 'CORRECT'))
    store.commit()
    assert store.count_responses('u1') == 3
    assert store.count_responses_by_type('u1', ResponseType.CORRECT.value) == 2
    assert store.count_responses_by_type('u1', 'INCORRECT') == 1
    assert store.count_responses('nobody') == 0


def test_study_stats(store):
    """Stats combine the user's records with quiz-response counters."""
    a = store.add_flashcard(1, 'A', 'a')
    b = store.add_flashcard(1, 'B', 'b')
    _review(store, a.id, 5)
    _review(store, b.id, 0)
    store.save_quiz_response(QuizResponse('u1', a.id, 'CORRECT'))
    store.save_quiz_response(QuizResponse('u1', b.id, 'INCORRECT'))
    store.commit()

    stats = store.study_stats('u1', TODAY + timedelta(days=1))
    assert stats.total_cards == 2
    assert stats.learning_cards == 2
    assert stats.cards_due_today == 2
    assert stats.total_reviews == 2
    assert stats.retention_percentage == 50


def test_study_stats_empty(store):
    stats = store.study_stats('u1', TODAY)
    assert stats.total_cards == 0
    assert stats.average_ease_factor == 2.5
    assert stats.average_interval == 0


def test_rollback_discards_unsaved_changes(store):
    card = store.add_flashcard(1, 'Q', 'A')
    store.commit()
    first = _review(store, card.id, 5)
    store.save_progress(next_progress(first, 0, TODAY))
    store.rollback()
    assert store.get_progress('u1', card.id) == first


def test_stale_first_review_is_rejected(store):
    """Two readers see a new card; the second write of a first review fails."""
    card = store.add_flashcard(1, 'Q', 'A')
    store.commit()
    other = ProgressStore(Session(store.db.get_bind()))
    try:
        seen_by_other = other.get_progress('u1', card.id)
        assert seen_by_other is None

        # This session finishes a whole review in between
        _review(store, card.id, 5)
        store.save_quiz_response(QuizResponse('u1', card.id, 'CORRECT'))
        store.commit()

        late = next_progress(seen_by_other, 4, TODAY, user_id='u1', flashcard_id=card.id)
        with pytest.raises(StaleProgressError):
            other.save_progress(late)
        other.rollback()
    finally:
        other.db.close()

    stored = store.get_progress('u1', card.id)
    assert stored.total_reviews == 1
    assert stored.total_reviews == store.count_responses('u1')


def test_stale_repeat_review_is_rejected(store):
    """A record computed from an outdated read cannot overwrite a newer one."""
    card = store.add_flashcard(1, 'Q', 'A')
    first = _review(store, card.id, 5)
    second = next_progress(first, 5, TODAY + timedelta(days=1))
    store.save_progress(second)
    store.commit()

    outdated = next_progress(first, 0, TODAY + timedelta(days=1))
    with pytest.raises(StaleProgressError) as exc_info:
        store.save_progress(outdated)
    assert exc_info.value.record == outdated
    store.rollback()
    assert store.get_progress('u1', card.id) == second


def test_get_db_commits():
    """get_db commits on clean exit."""
    reset_engine()
    with tempfile.TemporaryDirectory() as tmp:
        settings = Settings(database_url=f"sqlite:///{Path(tmp) / 'db.sqlite'}")
        init_db(settings)
        with get_db(settings) as db:
            card_id = ProgressStore(db).add_flashcard(3, 'Q', 'A').id
        with get_db(settings) as db:
            assert ProgressStore(db).get_flashcard(card_id).unit_id == 3
        reset_engine()
