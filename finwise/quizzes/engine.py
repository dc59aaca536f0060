"""
Quiz Engine

A quiz attempt moves NotStarted -> Presented -> Scored, but nothing
about the attempt is kept server-side: present() hands out a random
question set without answer keys, and score() grades whatever answers
come back against the questions as they are at that moment.

DESIGN DECISION: An answer for a question that no longer exists does
not abort the submission. It becomes an error-marked result entry and
still counts in the denominator.
"""

import random
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence, Union

import pydantic
import structlog

from finwise.config import get_settings
from finwise.guards.errors import EmptySubmissionError, NotFoundError, ValidationError
from finwise.models.content import (
    PresentedQuestion,
    QuizAnswer,
    QuizCategory,
    QuizPresentation,
    QuizResultItem,
    QuizScore,
)
from finwise.services.storage.interface import ContentStorageInterface


logger = structlog.get_logger(__name__)

QUESTION_NOT_FOUND = "Question not found"


def score_percentage(score: int, total: int) -> int:
    """Whole-number percentage, ties rounded half up."""
    if total == 0:
        return 0
    ratio = Decimal(score * 100) / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class QuizEngine:
    """
    Presents and scores quizzes.

    Args:
        storage: Where questions are read from
        rng: Random source for sampling; tests pass a seeded one
        default_count: Questions per quiz when present() gets no count
    """

    def __init__(
        self,
        storage: ContentStorageInterface,
        rng: Optional[random.Random] = None,
        default_count: Optional[int] = None,
    ):
        self._storage = storage
        self._rng = rng or random.Random()
        self._default_count = default_count or get_settings().quiz.default_question_count

    async def present(
        self,
        category: Optional[QuizCategory] = None,
        count: Optional[int] = None,
    ) -> QuizPresentation:
        """
        Sample up to `count` questions, optionally from one category.

        Raises:
            ValidationError: count is less than 1
            NotFoundError: No question matches
        """
        if count is None:
            count = self._default_count
        elif count < 1:
            raise ValidationError("Question count must be at least 1", field="count")
        questions = await self._storage.list_questions(category=category)
        if not questions:
            raise NotFoundError("Quiz question", message="No quiz questions available")

        sample = self._rng.sample(questions, min(count, len(questions)))
        presented = [PresentedQuestion.from_question(q) for q in sample]

        logger.debug(
            "Quiz presented",
            category=category.value if category else None,
            question_count=len(presented),
        )
        return QuizPresentation(total_questions=len(presented), questions=presented)

    async def score(
        self,
        answers: Optional[Sequence[Union[QuizAnswer, dict]]],
    ) -> QuizScore:
        """
        Grade a submission.

        Raises:
            EmptySubmissionError: answers is None or empty
            ValidationError: An answer is malformed
        """
        if not answers:
            raise EmptySubmissionError()

        try:
            parsed = [
                a if isinstance(a, QuizAnswer) else QuizAnswer.model_validate(a)
                for a in answers
            ]
        except pydantic.ValidationError as e:
            raise ValidationError.from_pydantic(e) from e

        results = []
        correct = 0
        for answer in parsed:
            question = await self._storage.get_question(answer.question_id)
            if question is None:
                results.append(QuizResultItem(
                    question_id=answer.question_id,
                    error=QUESTION_NOT_FOUND,
                ))
                continue

            is_correct = answer.selected_index == question.correct_answer_index
            if is_correct:
                correct += 1
            results.append(QuizResultItem(
                question_id=question.id,
                question_text=question.question_text,
                options=list(question.options),
                category=question.category,
                selected_index=answer.selected_index,
                correct_answer_index=question.correct_answer_index,
                is_correct=is_correct,
            ))

        total = len(parsed)
        result = QuizScore(
            score=correct,
            total_questions=total,
            score_percentage=score_percentage(correct, total),
            results=results,
        )
        logger.info(
            "Quiz scored",
            score=result.score,
            total_questions=result.total_questions,
            score_percentage=result.score_percentage,
        )
        return result
