"""
Exam catalog authoring rules.

The views validate shapes through serializers; the rules that depend on the
state of an exam (published, attempted, answered) live here.
"""
import logging

from django.db import transaction
from django.db.models import Max

from exam_engine import errors

from .models import Exam, Option, Question

logger = logging.getLogger(__name__)

QUESTION_FIELDS = (
    'text', 'question_type', 'points', 'order_number',
    'correct_answer', 'case_sensitive', 'allow_partial_match',
)


def _check_question_shape(question_type, options, correct_answer):
    if question_type == Question.QuestionType.MULTIPLE_CHOICE:
        if not options:
            raise errors.ValidationError("A multiple choice question needs at least one option.")
    elif question_type in Question.TEXT_TYPES:
        if not (correct_answer or "").strip():
            raise errors.ValidationError("A text question needs a correct answer.")
    else:
        raise errors.ValidationError(f"Unknown question type '{question_type}'.")


def _create_options(question, options):
    Option.objects.bulk_create([
        Option(
            question=question,
            text=option['text'],
            is_correct=bool(option.get('is_correct', False)),
            order_number=index,
        )
        for index, option in enumerate(options)
    ])


def add_question_to_exam(exam_id, question_def) -> Question:
    """Create a question (and its options, for multiple choice) on an exam."""
    question_def = dict(question_def)
    options = question_def.pop('options', None) or []
    _check_question_shape(question_def.get('question_type'), options, question_def.get('correct_answer'))

    with transaction.atomic():
        try:
            exam = Exam.objects.select_for_update().get(pk=exam_id)
        except Exam.DoesNotExist:
            raise errors.NotFound(f"Exam {exam_id} not found.")

        fields = {key: question_def[key] for key in QUESTION_FIELDS if key in question_def}
        if 'order_number' not in fields:
            last = exam.questions.aggregate(last=Max('order_number'))['last']
            fields['order_number'] = 0 if last is None else last + 1

        question = Question.objects.create(exam=exam, **fields)
        if question.question_type == Question.QuestionType.MULTIPLE_CHOICE:
            _create_options(question, options)

    logger.info("Question %s added to exam %s", question.pk, exam_id)
    return Question.objects.prefetch_related('options').get(pk=question.pk)


def update_question(question: Question, data) -> Question:
    """Update a question; a supplied option list replaces the existing options."""
    data = dict(data)
    options = data.pop('options', None)
    question_type = data.get('question_type', question.question_type)
    correct_answer = data.get('correct_answer', question.correct_answer)
    effective_options = options if options is not None else list(question.options.values('text', 'is_correct'))
    _check_question_shape(question_type, effective_options, correct_answer)

    with transaction.atomic():
        for key in QUESTION_FIELDS:
            if key in data:
                setattr(question, key, data[key])
        question.save()

        if options is not None and question.question_type == Question.QuestionType.MULTIPLE_CHOICE:
            question.options.all().delete()
            _create_options(question, options)

    logger.info("Question %s updated", question.pk)
    return Question.objects.prefetch_related('options').get(pk=question.pk)


def delete_question(question: Question):
    if question.responses.exists():
        raise errors.InvalidState("Cannot delete a question that has student responses.")
    # Assigned question sets are fixed once handed out
    if question.question_assignments.exists():
        raise errors.InvalidState("Cannot delete a question that is assigned to students.")
    logger.info("Question %s deleted from exam %s", question.pk, question.exam_id)
    question.delete()


def check_exam_update(exam: Exam, data):
    if exam.is_published and data.get('is_published') is False:
        raise errors.InvalidState("Cannot unpublish an already published exam.")


def delete_exam(exam: Exam):
    if exam.attempts.exists():
        raise errors.InvalidState("Cannot delete an exam that has student attempts.")
    logger.info("Exam %s deleted", exam.pk)
    with transaction.atomic():
        exam.assignments.all().delete()
        exam.delete()
