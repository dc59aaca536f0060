"""Quiz engine package."""

from finwise.quizzes.engine import QUESTION_NOT_FOUND, QuizEngine, score_percentage

__all__ = [
    "QUESTION_NOT_FOUND",
    "QuizEngine",
    "score_percentage",
]
