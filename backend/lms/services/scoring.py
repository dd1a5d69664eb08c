"""Scoring engine for quiz answers.

All three question types use the same rule: the submitted text and the
answer key are trimmed and case-folded, then compared for equality.
  - multiple-choice → 'b' matches 'B'
  - true-false      → ' TRUE ' matches 'true'
  - short-answer    → 'Cache' matches 'cache' (exact match only, no
                      free-text grading and no partial credit)

``score`` is pure: no I/O, no state, same output for the same input in any
call order, so it can be reused to re-grade stored answers.
"""

from __future__ import annotations

from typing import NamedTuple, Protocol


class Gradable(Protocol):
    correct_answer: str
    points: int


class Score(NamedTuple):
    is_correct: bool
    marks: int


def normalise(text: str | None) -> str:
    """Trim and case-fold; ``None`` becomes the empty string."""
    if text is None:
        return ""
    return text.strip().casefold()


def is_answered(text: str | None) -> bool:
    return bool(normalise(text))


def score(question: Gradable, submitted_text: str | None) -> Score:
    """Grade one answer.

    An absent or blank answer is incorrect and earns nothing; otherwise the
    answer earns the question's full points when it matches the key.
    """
    if not is_answered(submitted_text):
        return Score(False, 0)

    is_correct = normalise(submitted_text) == normalise(question.correct_answer)
    return Score(is_correct, question.points if is_correct else 0)


def percentage(total_score: int, total_marks: int) -> float:
    """Score as a percentage of the marks available; 0 for an empty quiz."""
    if total_marks <= 0:
        return 0.0
    return round(total_score / total_marks * 100, 2)
