"""Small builders shared by the assessment tests."""
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone

from exams.models import Exam, Option, Question

User = get_user_model()


def make_user(name, role=User.Role.STUDENT, **extra):
    return User.objects.create_user(
        username=name, email=f"{name}@example.com", password="testpass123", role=role, **extra
    )


def make_exam(teacher, starts_in=timedelta(hours=-1), ends_in=timedelta(hours=1), duration=60,
              passing=Decimal("60.00"), published=True, **extra):
    now = timezone.now()
    return Exam.objects.create(
        title=extra.pop('title', "Geography"),
        course_id=extra.pop('course_id', 1),
        teacher=teacher,
        start_date=now + starts_in,
        end_date=now + ends_in,
        duration_minutes=duration,
        passing_percentage=passing,
        is_published=published,
        **extra
    )


def add_choice_question(exam, points, correct_index=0, option_count=2, order=None):
    """Returns (question, [options])."""
    question = Question.objects.create(
        exam=exam,
        text=f"Pick one ({points} points)",
        question_type=Question.QuestionType.MULTIPLE_CHOICE,
        points=Decimal(points),
        order_number=exam.questions.count() if order is None else order,
    )
    options = [
        Option.objects.create(question=question, text=f"A{i + 1}", is_correct=(i == correct_index), order_number=i)
        for i in range(option_count)
    ]
    return question, options


def add_text_question(exam, points, answer, question_type=Question.QuestionType.SHORT_ANSWER,
                      case_sensitive=False, allow_partial_match=False, order=None):
    return Question.objects.create(
        exam=exam,
        text="Type the answer",
        question_type=question_type,
        points=Decimal(points),
        order_number=exam.questions.count() if order is None else order,
        correct_answer=answer,
        case_sensitive=case_sensitive,
        allow_partial_match=allow_partial_match,
    )
