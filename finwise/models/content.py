"""
Learning Content Models

Quiz questions and financial tips are admin-managed reference data.
They are not owned by end users.

A quiz attempt is never persisted: answers are scored against the
current question state and the result is returned to the caller.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QuizCategory(str, Enum):
    """Topic labels for quiz questions."""
    DEBT = "Debt"
    INVESTING = "Investing"
    BUDGETING = "Budgeting"
    SAVING = "Saving"
    TAX_PLANNING = "Tax Planning"
    RETIREMENT = "Retirement"
    GENERAL = "General"


class TipCategory(str, Enum):
    """Topic labels for financial tips."""
    BUDGETING = "Budgeting"
    INVESTING = "Investing"
    DEBT_MANAGEMENT = "Debt Management"
    SAVING = "Saving"
    TAX_PLANNING = "Tax Planning"


# =============================================================================
# QUIZ QUESTIONS
# =============================================================================

class QuizQuestion(BaseModel):
    """
    A multiple-choice question with its answer key.

    This model must never be returned to a quiz taker as-is; use
    PresentedQuestion for that.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    question_text: str = Field(..., min_length=1, max_length=1000)
    options: list[str] = Field(..., min_length=2)
    correct_answer_index: int = Field(..., ge=0)
    category: QuizCategory = QuizCategory.GENERAL
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('options')
    @classmethod
    def validate_options(cls, v: list[str]) -> list[str]:
        """Options must be non-blank."""
        cleaned = [opt.strip() for opt in v]
        if any(not opt for opt in cleaned):
            raise ValueError("Quiz options cannot be blank")
        return cleaned

    @model_validator(mode='after')
    def validate_answer_index(self) -> 'QuizQuestion':
        """The answer key must point at one of the options."""
        if self.correct_answer_index >= len(self.options):
            raise ValueError(
                f"correct_answer_index {self.correct_answer_index} is out of range "
                f"for {len(self.options)} options"
            )
        return self


class PresentedQuestion(BaseModel):
    """A quiz question as shown to the quiz taker, without the answer key."""

    id: UUID
    question_text: str
    options: list[str]
    category: QuizCategory

    @classmethod
    def from_question(cls, question: QuizQuestion) -> 'PresentedQuestion':
        return cls(
            id=question.id,
            question_text=question.question_text,
            options=list(question.options),
            category=question.category,
        )


class QuizPresentation(BaseModel):
    """A freshly sampled question set."""

    total_questions: int
    questions: list[PresentedQuestion]


class QuizAnswer(BaseModel):
    """One submitted answer."""

    question_id: UUID
    selected_index: int = Field(..., ge=0)


class QuizResultItem(BaseModel):
    """
    Per-answer scoring result.

    When the question no longer exists only question_id and error are
    set; every other field stays None.
    """

    question_id: UUID
    question_text: Optional[str] = None
    options: Optional[list[str]] = None
    category: Optional[QuizCategory] = None
    selected_index: Optional[int] = None
    correct_answer_index: Optional[int] = None
    is_correct: Optional[bool] = None
    error: Optional[str] = None


class QuizScore(BaseModel):
    """The outcome of a scored submission."""

    score: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=0)
    score_percentage: int = Field(..., ge=0, le=100)
    results: list[QuizResultItem]


# =============================================================================
# TIPS
# =============================================================================

class Tip(BaseModel):
    """An admin-authored financial tip."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    admin_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1, max_length=5000)
    category: TipCategory
    is_published: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
