"""Question evaluation.

Pure functions over immutable question snapshots: no database access, no clock.
The attempt service calls these synchronously on every answer save.

Marking policy:
    * correct   -> ``question.marks``
    * incorrect -> ``-penalty`` when negative marking is on, else ``0``
    * essay     -> ``is_correct=None`` and ``0`` until a grader scores it

Unanswered questions never reach this module; they have no answer record and
contribute nothing, with or without negative marking.
"""
import re
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict

from app.core.constants import QuestionTypeEnum
from app.core.exceptions import AnswerValidationError
from app.schemas.question import QuestionSnapshot

_WHITESPACE = re.compile(r"\s+")


class Evaluation(BaseModel):
    is_correct: Optional[bool] = None
    marks_awarded: float = 0

    model_config = ConfigDict(frozen=True)


def normalize_text(value: str) -> str:
    return _WHITESPACE.sub(" ", value.strip().lower())


def _is_option_id(value: Any) -> bool:
    # bool is an int subclass; True must not pass as option id 1
    return isinstance(value, int) and not isinstance(value, bool)


def validate_answer_value(question: QuestionSnapshot, value: Any) -> None:
    if value is None:
        raise AnswerValidationError("An answer value is required.")

    kind = question.question_type
    option_ids = {o.id for o in question.options}

    if kind == QuestionTypeEnum.SINGLE_CHOICE:
        if not _is_option_id(value):
            raise AnswerValidationError("Single-choice answers must be an option id.")
        if value not in option_ids:
            raise AnswerValidationError(f"Option {value} does not belong to question {question.id}.")

    elif kind == QuestionTypeEnum.MULTIPLE_CHOICE:
        if not isinstance(value, list) or not value or not all(_is_option_id(v) for v in value):
            raise AnswerValidationError("Multiple-choice answers must be a non-empty list of option ids.")
        unknown = sorted(set(value) - option_ids)
        if unknown:
            raise AnswerValidationError(f"Options {unknown} do not belong to question {question.id}.")

    elif kind == QuestionTypeEnum.TRUE_FALSE:
        if not isinstance(value, bool):
            raise AnswerValidationError("True/false answers must be a boolean.")

    elif kind in (QuestionTypeEnum.SHORT_ANSWER, QuestionTypeEnum.ESSAY):
        if not isinstance(value, str):
            raise AnswerValidationError("Text answers must be a string.")


def penalty_for(question: QuestionSnapshot, negative_marking_percentage: float) -> float:
    if question.negative_marks:
        return question.negative_marks
    return question.marks * negative_marking_percentage / 100


def is_answer_correct(question: QuestionSnapshot, value: Any) -> Optional[bool]:
    kind = question.question_type

    if kind == QuestionTypeEnum.SINGLE_CHOICE:
        return value in question.correct_option_ids and len(question.correct_option_ids) == 1

    if kind == QuestionTypeEnum.MULTIPLE_CHOICE:
        return frozenset(value) == question.correct_option_ids

    if kind == QuestionTypeEnum.TRUE_FALSE:
        correct = next((o for o in question.options if o.is_correct), None)
        if correct is None:
            return False
        return value is (normalize_text(correct.text) == "true")

    if kind == QuestionTypeEnum.SHORT_ANSWER:
        submitted = normalize_text(value)
        return any(submitted == normalize_text(accepted) for accepted in question.accepted_answers)

    return None


def evaluate(question: QuestionSnapshot, value: Any, negative_marking: bool = False,
             negative_marking_percentage: float = 0) -> Evaluation:
    validate_answer_value(question, value)

    is_correct = is_answer_correct(question, value)
    if is_correct is None:
        return Evaluation(is_correct=None, marks_awarded=0)

    if is_correct:
        return Evaluation(is_correct=True, marks_awarded=question.marks)

    if negative_marking:
        return Evaluation(is_correct=False, marks_awarded=-penalty_for(question, negative_marking_percentage))

    return Evaluation(is_correct=False, marks_awarded=0)
