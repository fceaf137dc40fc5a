from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.db import IntegrityError
from django.test import TestCase
from django.utils import timezone

from exam_engine import errors
from assessments.models import Assignment, Attempt, StudentResponse
from assessments.services import AssignmentOptions, AttemptMetadata, ExamEngine
from assessments.services.repositories import AttemptRepository

from .factories import User, add_choice_question, add_text_question, make_exam, make_user


class AttemptTestCase(TestCase):
    """Scenario exam: Q1 multiple choice worth 50 (A2 correct), Q2 short answer worth 50 ("paris")."""

    def setUp(self):
        self.engine = ExamEngine()
        self.teacher = make_user("teacher", role=User.Role.TEACHER)
        self.student = make_user("student")
        self.exam = make_exam(self.teacher, passing=Decimal("60"))
        self.q1, (self.a1, self.a2) = add_choice_question(self.exam, 50, correct_index=1)
        self.q2 = add_text_question(self.exam, 50, "paris")

    def assign(self, options=None, student=None):
        student = student or self.student
        return self.engine.assign_exam(self.exam.pk, [student.pk], self.teacher.pk, options)[0]

    def start(self, assignment, student=None):
        student = student or self.student
        return self.engine.start_attempt(assignment.pk, student.pk, AttemptMetadata("10.0.0.1", "pytest"))


class ScenarioTests(AttemptTestCase):
    def test_all_correct_passes(self):
        attempt = self.start(self.assign())
        self.assertEqual(attempt.max_score, Decimal("100"))

        first = self.engine.submit_response(attempt.pk, self.q1.pk, {"chosen_answer_id": self.a2.pk})
        second = self.engine.submit_response(attempt.pk, self.q2.pk, {"text_response": "Paris"})
        self.assertTrue(first.is_correct)
        self.assertEqual(first.score_awarded, Decimal("50"))
        self.assertTrue(second.is_correct)
        self.assertEqual(second.score_awarded, Decimal("50"))

        result = self.engine.complete_attempt(attempt.pk)
        self.assertEqual(result.status, Attempt.Status.COMPLETED)
        self.assertEqual(result.score, Decimal("100"))
        self.assertEqual(result.percentage, Decimal("100"))
        self.assertTrue(result.passed)
        self.assertIsNotNone(result.completed_at)

    def test_wrong_and_unanswered_fails(self):
        attempt = self.start(self.assign())
        response = self.engine.submit_response(attempt.pk, self.q1.pk, {"chosen_answer_id": self.a1.pk})
        self.assertFalse(response.is_correct)

        result = self.engine.complete_attempt(attempt.pk)
        self.assertEqual(result.score, Decimal("0"))
        self.assertEqual(result.percentage, Decimal("0"))
        self.assertFalse(result.passed)

    def test_question_subset_limits_max_score_and_answers(self):
        assignment = self.assign(AssignmentOptions(student_questions={self.student.pk: [self.q1.pk]}))
        attempt = self.start(assignment)
        self.assertEqual(attempt.max_score, Decimal("50"))

        with self.assertRaisesMessage(errors.NotFound, "Question not part of this attempt's assignment."):
            self.engine.submit_response(attempt.pk, self.q2.pk, {"text_response": "paris"})


class StartAttemptTests(AttemptTestCase):
    def test_start_records_metadata_and_moves_assignment_to_started(self):
        assignment = self.assign()
        attempt = self.start(assignment)

        self.assertEqual(attempt.status, Attempt.Status.IN_PROGRESS)
        self.assertEqual(attempt.ip_address, "10.0.0.1")
        self.assertEqual(attempt.user_agent, "pytest")
        assignment.refresh_from_db()
        self.assertEqual(assignment.status, Assignment.Status.STARTED)

    def test_start_is_idempotent(self):
        assignment = self.assign()
        first = self.start(assignment)
        second = self.start(assignment)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(Attempt.objects.filter(assignment=assignment).count(), 1)

    def test_custom_points_are_summed_into_max_score(self):
        attempt = self.start(self.assign(AssignmentOptions(
            custom_points={self.student.pk: {self.q1.pk: Decimal("20")}}
        )))
        self.assertEqual(attempt.max_score, Decimal("70"))

    def test_window_bounds_are_inclusive(self):
        assignment = self.assign()
        with patch("django.utils.timezone.now", return_value=self.exam.start_date):
            self.assertIsNotNone(self.start(assignment))

        other = make_user("other")
        other_assignment = self.assign(student=other)
        with patch("django.utils.timezone.now", return_value=self.exam.end_date):
            self.assertIsNotNone(self.start(other_assignment, student=other))

    def test_too_early(self):
        assignment = self.assign()
        with patch("django.utils.timezone.now", return_value=self.exam.start_date - timedelta(seconds=1)):
            with self.assertRaisesMessage(errors.InvalidState, "Exam has not started yet."):
                self.start(assignment)

    def test_too_late(self):
        assignment = self.assign()
        with patch("django.utils.timezone.now", return_value=self.exam.end_date + timedelta(seconds=1)):
            with self.assertRaisesMessage(errors.InvalidState, "Exam has already ended."):
                self.start(assignment)
        self.assertFalse(Attempt.objects.exists())

    def test_custom_window_overrides_exam_window(self):
        now = timezone.now()
        assignment = self.assign(AssignmentOptions(
            custom_start_date=now + timedelta(hours=2), custom_end_date=now + timedelta(hours=3)
        ))
        with self.assertRaises(errors.InvalidState):
            self.start(assignment)

    def test_cannot_start_again_after_completion(self):
        assignment = self.assign()
        attempt = self.start(assignment)
        self.engine.complete_attempt(attempt.pk)
        with self.assertRaises(errors.InvalidState):
            self.start(assignment)

    def test_other_students_assignment_is_not_found(self):
        assignment = self.assign()
        intruder = make_user("intruder")
        with self.assertRaises(errors.NotFound):
            self.start(assignment, student=intruder)


class ConcurrentStartTests(AttemptTestCase):
    """A start that loses the race on the open-attempt constraint."""

    def setUp(self):
        super().setUp()
        self.assignment = self.assign()

    def competing_attempt(self):
        return Attempt.objects.create(
            assignment=self.assignment, student=self.student, exam=self.exam,
            started_at=timezone.now(), max_score=Decimal("100"),
        )

    def test_losing_start_returns_the_winning_attempt(self):
        winner = self.competing_attempt()

        # The lock-free check sees nothing, then the insert hits the constraint
        with patch.object(AttemptRepository, "get_open", side_effect=[None, winner]), \
                patch.object(AttemptRepository, "create", side_effect=IntegrityError("duplicate open attempt")):
            attempt = self.start(self.assignment)

        self.assertEqual(attempt.pk, winner.pk)
        self.assertEqual(Attempt.objects.filter(assignment=self.assignment).count(), 1)

    def test_integrity_error_without_open_attempt_is_raised(self):
        with patch.object(AttemptRepository, "get_open", side_effect=[None, None]), \
                patch.object(AttemptRepository, "create", side_effect=IntegrityError("other constraint")):
            with self.assertRaises(IntegrityError):
                self.start(self.assignment)

        self.assertFalse(Attempt.objects.filter(assignment=self.assignment).exists())
        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.status, Assignment.Status.ASSIGNED)


class SubmitResponseTests(AttemptTestCase):
    def setUp(self):
        super().setUp()
        self.attempt = self.start(self.assign())

    def test_resubmission_replaces_previous_grade(self):
        self.engine.submit_response(self.attempt.pk, self.q1.pk, {"chosen_answer_id": self.a2.pk})
        self.engine.submit_response(self.attempt.pk, self.q1.pk, {"chosen_answer_id": self.a1.pk})

        response = StudentResponse.objects.get(attempt=self.attempt, question=self.q1)
        self.assertFalse(response.is_correct)
        self.assertEqual(response.score_awarded, Decimal("0"))
        self.assertEqual(response.chosen_option, self.a1)
        self.assertEqual(StudentResponse.objects.filter(attempt=self.attempt).count(), 1)

    def test_response_snapshots_effective_points(self):
        response = self.engine.submit_response(self.attempt.pk, self.q2.pk, {"text_response": "paris"})
        self.assertEqual(response.max_score, Decimal("50"))

    def test_option_of_another_question_is_stored_as_wrong(self):
        other_question, other_options = add_choice_question(self.exam, 5)
        response = self.engine.submit_response(
            self.attempt.pk, self.q1.pk, {"chosen_answer_id": other_options[0].pk}
        )
        self.assertFalse(response.is_correct)
        self.assertIsNone(response.chosen_option)

    def test_question_from_another_exam_is_not_found(self):
        other_exam = make_exam(self.teacher, title="Other")
        foreign = add_text_question(other_exam, 5, "x")
        with self.assertRaises(errors.NotFound):
            self.engine.submit_response(self.attempt.pk, foreign.pk, {"text_response": "x"})

    def test_other_student_cannot_answer(self):
        intruder = make_user("intruder")
        with self.assertRaisesMessage(errors.NotFound, "Exam attempt not found."):
            self.engine.submit_response(
                self.attempt.pk, self.q2.pk, {"text_response": "paris"}, student_id=intruder.pk
            )

    def test_rejected_after_completion(self):
        self.engine.complete_attempt(self.attempt.pk)
        with self.assertRaisesMessage(errors.InvalidState, "Exam attempt is not in progress."):
            self.engine.submit_response(self.attempt.pk, self.q2.pk, {"text_response": "paris"})

    def test_rejected_after_window_closes(self):
        with patch("django.utils.timezone.now", return_value=self.exam.end_date + timedelta(minutes=1)):
            with self.assertRaisesMessage(errors.InvalidState, "Exam window has closed."):
                self.engine.submit_response(self.attempt.pk, self.q2.pk, {"text_response": "paris"})

    def test_bad_payload(self):
        with self.assertRaises(errors.ValidationError):
            self.engine.submit_response(self.attempt.pk, self.q1.pk, {"chosen_answer_id": "first"})


class CompleteAttemptTests(AttemptTestCase):
    def test_completion_moves_assignment_to_completed(self):
        assignment = self.assign()
        attempt = self.start(assignment)
        self.engine.complete_attempt(attempt.pk)
        assignment.refresh_from_db()
        self.assertEqual(assignment.status, Assignment.Status.COMPLETED)

    def test_cannot_complete_twice(self):
        attempt = self.start(self.assign())
        self.engine.complete_attempt(attempt.pk)
        with self.assertRaises(errors.InvalidState):
            self.engine.complete_attempt(attempt.pk)

    def test_max_score_is_frozen_when_points_change(self):
        attempt = self.start(self.assign())
        self.engine.submit_response(attempt.pk, self.q1.pk, {"chosen_answer_id": self.a2.pk})

        self.q2.points = Decimal("150")
        self.q2.save()

        result = self.engine.complete_attempt(attempt.pk)
        self.assertEqual(result.max_score, Decimal("100"))
        self.assertEqual(result.percentage, Decimal("50"))
        self.assertFalse(result.passed)

    def test_completed_score_survives_later_edits(self):
        attempt = self.start(self.assign())
        self.engine.submit_response(attempt.pk, self.q2.pk, {"text_response": "paris"})
        self.engine.complete_attempt(attempt.pk)

        self.q2.points = Decimal("1")
        self.q2.save()
        attempt.refresh_from_db()
        self.assertEqual(attempt.score, Decimal("50"))

    def test_score_is_capped_at_max(self):
        attempt = self.start(self.assign())
        self.engine.submit_response(attempt.pk, self.q1.pk, {"chosen_answer_id": self.a2.pk})
        # Inflate a stored grade beyond the frozen maximum
        StudentResponse.objects.filter(attempt=attempt).update(score_awarded=Decimal("500"))

        result = self.engine.complete_attempt(attempt.pk)
        self.assertEqual(result.score, Decimal("100"))
        self.assertEqual(result.percentage, Decimal("100"))
