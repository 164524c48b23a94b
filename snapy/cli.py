"""
Snapy study CLI.

Usage:
    python -m snapy.cli --db sqlite:///snapy.db add --unit 1 --question Q --answer A [--mcq]
    python -m snapy.cli --db sqlite:///snapy.db due [--unit 1]
    python -m snapy.cli --db sqlite:///snapy.db review --unit 1
    python -m snapy.cli --db sqlite:///snapy.db stats
    python -m snapy.cli --db sqlite:///snapy.db show <flashcard_id>
"""

import sys
import argparse
import logging
from datetime import date

from snapy.config import Settings
from snapy.db.repository import ProgressStore
from snapy.db.session import get_db, init_db
from snapy.models import CardType
from snapy.scheduler import days_overdue, review_status
from snapy.session import run_review_session


def _settings(args) -> Settings:
    return Settings(database_url=args.db, default_user_id=args.user)


def cmd_add(args):
    """Add a flashcard to a unit."""
    settings = _settings(args)
    init_db(settings)
    card_type = CardType.MCQ.value if args.mcq else CardType.SELF_EVAL.value
    with get_db(settings) as db:
        card = ProgressStore(db).add_flashcard(args.unit, args.question, args.answer, card_type)
    print(f"Added card {card.id} [{card.card_type}] to unit {card.unit_id}")


def cmd_due(args):
    """Show due cards."""
    settings = _settings(args)
    init_db(settings)
    today = date.today()
    with get_db(settings) as db:
        store = ProgressStore(db)
        if args.unit is not None:
            cards = store.get_due_flashcards(settings.default_user_id, args.unit, today)
            if not cards:
                print("No cards due today.")
                return
            print(f"\n{len(cards)} card(s) due for review:\n")
            for i, card in enumerate(cards, 1):
                record = store.get_progress(settings.default_user_id, card.id)
                print(f"  {i}. [{review_status(record).value}] {card.question[:80]}")
            return

        due = store.get_due_progress(settings.default_user_id, today)
        if not due:
            print("No cards due today.")
            return
        print(f"\n{len(due)} reviewed card(s) due:\n")
        for i, record in enumerate(due, 1):
            print(f"  {i}. card={record.flashcard_id}  due={record.next_review_date}  "
                  f"overdue={days_overdue(record, today)}d  ease={record.ease_factor:.2f}  "
                  f"reps={record.repetitions}")


def cmd_review(args):
    """Run interactive review session."""
    settings = _settings(args)
    init_db(settings)
    with get_db(settings) as db:
        store = ProgressStore(db)
        cards = store.get_due_flashcards(settings.default_user_id, args.unit, date.today())
        if not cards:
            print("No cards due today. Come back later!")
            return
        run_review_session(store, settings.default_user_id, cards,
                           input_fn=input, output_fn=print)


def cmd_stats(args):
    """Show study statistics."""
    settings = _settings(args)
    init_db(settings)
    with get_db(settings) as db:
        stats = ProgressStore(db).study_stats(settings.default_user_id, date.today())

    print(f"\nUser: {settings.default_user_id}")
    print(f"  Cards studied:   {stats.total_cards}")
    print(f"  Due today:       {stats.cards_due_today}")
    print(f"  Learning:        {stats.learning_cards}")
    print(f"  Review:          {stats.review_cards}")
    print(f"  Mature:          {stats.mature_cards}")
    print(f"  Reviews:         {stats.total_reviews} "
          f"({stats.correct_reviews} correct, {stats.incorrect_reviews} incorrect)")
    print(f"  Retention:       {stats.retention_percentage}%")
    print(f"  Average ease:    {stats.average_ease_factor:.2f}")
    print(f"  Average interval: {stats.average_interval}d")


def cmd_show(args):
    """Show one card and its progress."""
    settings = _settings(args)
    init_db(settings)
    with get_db(settings) as db:
        store = ProgressStore(db)
        try:
            card = store.get_flashcard(args.flashcard_id)
        except KeyError:
            print(f"Card not found: {args.flashcard_id}")
            sys.exit(1)
        record = store.get_progress(settings.default_user_id, card.id)

    print(f"\nCard {card.id} (unit {card.unit_id}) [{card.card_type}]")
    print(f"  Q: {card.question}")
    print(f"  A: {card.answer}")
    print(f"  Status: {review_status(record).value}")
    if record is not None:
        print(f"  Next review: {record.next_review_date}  interval={record.interval}d  "
              f"ease={record.ease_factor:.2f}  reps={record.repetitions}")
        print(f"  Reviews: {record.total_reviews} "
              f"({record.correct_reviews} correct, {record.incorrect_reviews} incorrect)")


def main(argv=None):
    defaults = Settings()
    logging.basicConfig(
        level=defaults.log_level_value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = argparse.ArgumentParser(
        description="Snapy -- SM-2 flashcard study from the terminal",
        prog="python -m snapy.cli",
    )
    parser.add_argument(
        '--db', default=defaults.database_url,
        help=f"SQLAlchemy database URL (default: {defaults.database_url})",
    )
    parser.add_argument(
        '--user', default=defaults.default_user_id,
        help=f"Learner id (default: {defaults.default_user_id})",
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    add_parser = subparsers.add_parser('add', help='Add a flashcard')
    add_parser.add_argument('--unit', type=int, required=True, help='Unit id')
    add_parser.add_argument('--question', required=True)
    add_parser.add_argument('--answer', required=True)
    add_parser.add_argument('--mcq', action='store_true',
                            help='Answer is typed and checked instead of self-evaluated')

    due_parser = subparsers.add_parser('due', help='Show cards due for review')
    due_parser.add_argument('--unit', type=int, default=None,
                            help='Include never-reviewed cards of this unit')

    review_parser = subparsers.add_parser('review', help='Run interactive review session')
    review_parser.add_argument('--unit', type=int, required=True, help='Unit id')

    subparsers.add_parser('stats', help='Show study statistics')

    show_parser = subparsers.add_parser('show', help='Show card details')
    show_parser.add_argument('flashcard_id', type=int, help='Flashcard id to display')

    args = parser.parse_args(argv)

    if args.command == 'add':
        cmd_add(args)
    elif args.command == 'due':
        cmd_due(args)
    elif args.command == 'review':
        cmd_review(args)
    elif args.command == 'stats':
        cmd_stats(args)
    elif args.command == 'show':
        cmd_show(args)
    else:
        parser.print_help()


if __name__ == '__main__':
    main()
