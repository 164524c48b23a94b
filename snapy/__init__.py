"""Snapy: SM-2 spaced repetition for flashcard study."""
