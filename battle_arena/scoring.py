"""
Scoring rules for battle answers.

Points are a difficulty-based base value plus a small time bonus for the
seconds still on the question timer when the answer was submitted. The bonus
is capped at half of the base value.
All functions here are pure.
"""
from typing import Optional

from .models import Difficulty, Question

BASE_POINTS = {
    Difficulty.EASY: 10,
    Difficulty.MEDIUM: 20,
    Difficulty.HARD: 30,
}


def base_points(difficulty: Difficulty) -> int:
    """
    Get the base points for a difficulty level.

    Args:
        difficulty: Question difficulty

    Returns:
        Points awarded for a correct answer before any time bonus
    """
    return BASE_POINTS[difficulty]


def time_bonus(difficulty: Difficulty, remaining_seconds: float) -> int:
    """
    Calculate the speed bonus for an answer.

    Args:
        difficulty: Question difficulty, used for the bonus cap
        remaining_seconds: Seconds left on the question timer

    Returns:
        floor(remaining_seconds / 2), between 0 and half the base points
    """
    if remaining_seconds <= 0:
        return 0
    bonus = int(remaining_seconds // 2)
    return min(bonus, base_points(difficulty) // 2)


def points(difficulty: Difficulty, remaining_seconds: float) -> int:
    """Points for a correct answer given its difficulty and the time left."""
    return base_points(difficulty) + time_bonus(difficulty, remaining_seconds)


def score_answer(question: Question, option_index: Optional[int], remaining_seconds: float) -> int:
    """
    Score one answer to a question.

    Args:
        question: The question being answered
        option_index: Chosen option, or None when the timer ran out
        remaining_seconds: Seconds left on the timer when the answer arrived

    Returns:
        Points earned; 0 for wrong or missing answers
    """
    if not question.is_correct(option_index):
        return 0
    return points(question.difficulty, remaining_seconds)


def max_points(question: Question) -> int:
    """Best reachable score for a question (correct with the whole timer left)."""
    return points(question.difficulty, question.time_limit_seconds)
