from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from exam_engine import errors
from assessments.models import Assignment, Attempt, QuestionAssignment, StudentResponse
from assessments.services import ExamEngine
from assessments.tests.factories import User, add_choice_question, add_text_question, make_exam, make_user

from . import services
from .models import Question


class AddQuestionTests(TestCase):
    def setUp(self):
        self.teacher = make_user("teacher", role=User.Role.TEACHER)
        self.exam = make_exam(self.teacher)

    def test_multiple_choice_with_options_in_order(self):
        question = services.add_question_to_exam(self.exam.pk, {
            "text": "Largest planet?",
            "question_type": Question.QuestionType.MULTIPLE_CHOICE,
            "points": Decimal("2"),
            "options": [{"text": "Mars"}, {"text": "Jupiter", "is_correct": True}],
        })
        options = list(question.options.all())
        self.assertEqual([o.text for o in options], ["Mars", "Jupiter"])
        self.assertEqual([o.is_correct for o in options], [False, True])
        self.assertEqual(question.points, Decimal("2"))

    def test_order_number_follows_existing_questions(self):
        add_text_question(self.exam, 1, "a", order=4)
        question = services.add_question_to_exam(self.exam.pk, {
            "text": "Next", "question_type": "short_answer", "correct_answer": "b",
        })
        self.assertEqual(question.order_number, 5)

    def test_multiple_choice_needs_options(self):
        with self.assertRaises(errors.ValidationError):
            services.add_question_to_exam(self.exam.pk, {"text": "?", "question_type": "multiple_choice"})
        self.assertFalse(self.exam.questions.exists())

    def test_text_question_needs_answer(self):
        with self.assertRaises(errors.ValidationError):
            services.add_question_to_exam(self.exam.pk, {
                "text": "?", "question_type": "fill_in_blank", "correct_answer": "  ",
            })

    def test_unknown_exam(self):
        with self.assertRaises(errors.NotFound):
            services.add_question_to_exam(999999, {"text": "?", "question_type": "short_answer", "correct_answer": "x"})


class CatalogEditTests(TestCase):
    def setUp(self):
        self.teacher = make_user("teacher", role=User.Role.TEACHER)
        self.student = make_user("student")
        self.exam = make_exam(self.teacher)
        self.question, self.options = add_choice_question(self.exam, 5)

    def take_exam(self):
        assignment = Assignment.objects.create(exam=self.exam, student=self.student, assigned_by=self.teacher)
        return Attempt.objects.create(
            assignment=assignment, student=self.student, exam=self.exam,
            started_at=timezone.now(), max_score=Decimal("5"),
        )

    def test_update_replaces_options(self):
        question = services.update_question(self.question, {
            "points": Decimal("3"),
            "options": [{"text": "Yes", "is_correct": True}],
        })
        self.assertEqual(question.points, Decimal("3"))
        self.assertEqual([o.text for o in question.options.all()], ["Yes"])

    def test_update_without_options_keeps_them(self):
        question = services.update_question(self.question, {"text": "Reworded"})
        self.assertEqual(question.text, "Reworded")
        self.assertEqual(question.options.count(), 2)

    def test_switching_to_text_type_needs_answer(self):
        with self.assertRaises(errors.ValidationError):
            services.update_question(self.question, {"question_type": "short_answer"})

    def test_answered_question_cannot_be_deleted(self):
        attempt = self.take_exam()
        StudentResponse.objects.create(
            attempt=attempt, question=self.question, max_score=Decimal("5"), responded_at=timezone.now()
        )
        with self.assertRaises(errors.InvalidState):
            services.delete_question(self.question)

    def test_assigned_question_cannot_be_deleted(self):
        other, _ = add_choice_question(self.exam, 5)
        engine = ExamEngine()
        assignment = engine.assign_exam(self.exam.pk, [self.student.pk], self.teacher.pk)[0]
        attempt = engine.start_attempt(assignment.pk, self.student.pk)

        with self.assertRaises(errors.InvalidState):
            services.delete_question(other)

        self.assertEqual(QuestionAssignment.objects.filter(assignment=assignment).count(), 2)
        engine.submit_response(attempt.pk, self.question.pk, {"chosen_answer_id": self.options[0].pk})
        engine.submit_response(attempt.pk, other.pk, {"chosen_answer_id": other.options.first().pk})
        result = engine.complete_attempt(attempt.pk)
        self.assertEqual(result.percentage, Decimal("100"))

    def test_unanswered_question_can_be_deleted(self):
        services.delete_question(self.question)
        self.assertFalse(Question.objects.filter(pk=self.question.pk).exists())

    def test_published_exam_cannot_be_unpublished(self):
        with self.assertRaises(errors.InvalidState):
            services.check_exam_update(self.exam, {"is_published": False})
        services.check_exam_update(self.exam, {"title": "Renamed"})

    def test_attempted_exam_cannot_be_deleted(self):
        self.take_exam()
        with self.assertRaises(errors.InvalidState):
            services.delete_exam(self.exam)

    def test_exam_with_only_assignments_can_be_deleted(self):
        Assignment.objects.create(exam=self.exam, student=self.student, assigned_by=self.teacher)
        services.delete_exam(self.exam)
        self.assertFalse(Assignment.objects.exists())
