"""
Auto-grading of a single submitted response.

Everything in here is pure: no ORM access, no clock. ``QuestionDefinition``
snapshots what grading needs from a ``Question`` so the function can be
exercised with plain values.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Tuple

from exam_engine import errors
from exams.models import Question

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class OptionDefinition:
    id: int
    is_correct: bool


@dataclass(frozen=True)
class QuestionDefinition:
    question_type: str
    options: Tuple[OptionDefinition, ...] = ()
    correct_answer: str = ""
    case_sensitive: bool = False
    allow_partial_match: bool = False

    @classmethod
    def from_question(cls, question: Question) -> "QuestionDefinition":
        return cls(
            question_type=question.question_type,
            options=tuple(
                OptionDefinition(id=option.id, is_correct=option.is_correct)
                for option in question.options.all()
            ),
            correct_answer=question.correct_answer or "",
            case_sensitive=question.case_sensitive,
            allow_partial_match=question.allow_partial_match,
        )

    def find_option(self, option_id: Optional[int]) -> Optional[OptionDefinition]:
        if option_id is None:
            return None
        return next((option for option in self.options if option.id == option_id), None)


@dataclass(frozen=True)
class ResponseData:
    chosen_answer_id: Optional[int] = None
    text_response: Optional[str] = None

    @classmethod
    def from_payload(cls, payload) -> "ResponseData":
        """Build from a raw mapping, rejecting values of the wrong type."""
        payload = payload or {}
        chosen = payload.get("chosen_answer_id")
        text = payload.get("text_response")

        if chosen is not None:
            # Integers or digit strings only, floats are never truncated
            if isinstance(chosen, str) and chosen.isdecimal():
                chosen = int(chosen)
            elif isinstance(chosen, bool) or not isinstance(chosen, int):
                raise errors.ValidationError("chosen_answer_id must be an integer.")
        if text is not None and not isinstance(text, str):
            raise errors.ValidationError("text_response must be a string.")

        return cls(chosen_answer_id=chosen, text_response=text)


@dataclass(frozen=True)
class GradeResult:
    is_correct: bool
    score_awarded: Decimal = field(default=ZERO)


def _text_matches(submitted: str, definition: QuestionDefinition) -> bool:
    expected = definition.correct_answer
    if not definition.case_sensitive:
        submitted = submitted.lower()
        expected = expected.lower()

    if definition.allow_partial_match:
        return expected in submitted or submitted in expected
    return submitted == expected


def grade_response(definition: QuestionDefinition, max_points: Decimal, response: ResponseData) -> GradeResult:
    """
    Grade one response against its question.

    Scoring is always full-or-zero: ``allow_partial_match`` only loosens the
    text comparison to substring containment in either direction.
    """
    is_correct = False

    if definition.question_type == Question.QuestionType.MULTIPLE_CHOICE:
        chosen = definition.find_option(response.chosen_answer_id)
        is_correct = bool(chosen and chosen.is_correct)
    elif definition.question_type in Question.TEXT_TYPES:
        # Empty text would be a substring of anything under partial matching
        if response.text_response and definition.correct_answer:
            is_correct = _text_matches(response.text_response, definition)

    return GradeResult(is_correct=is_correct, score_awarded=max_points if is_correct else ZERO)
