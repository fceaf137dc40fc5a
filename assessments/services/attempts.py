"""
Attempt lifecycle: open, answer, complete, and the external expiry sweep.

Every public method is one ``transaction.atomic()`` unit. Time is read from
``timezone.now()`` only when a caller invokes an operation; nothing here runs
on its own clock.
"""
import logging
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from exam_engine import errors

from ..models import Assignment, Attempt, StudentResponse
from .grading import QuestionDefinition, ResponseData, grade_response
from .repositories import AttemptMetadata, Repositories, ResponseUpdate
from .scoring import CompleteAttemptResult, aggregate_score

logger = logging.getLogger(__name__)


class AttemptManager:
    def __init__(self, repositories: Repositories):
        self.repos = repositories

    def start_attempt(self, assignment_id, student_id, metadata: Optional[AttemptMetadata] = None) -> Attempt:
        """
        Open an attempt, or hand back the one already in progress.

        Repeated calls for the same assignment and student return the same
        attempt rather than failing.
        """
        metadata = metadata or AttemptMetadata()
        now = timezone.now()

        with transaction.atomic():
            # Row lock serializes concurrent starts for this assignment
            assignment = self.repos.assignments.get_for_student(assignment_id, student_id, lock=True)

            if now < assignment.effective_start:
                raise errors.InvalidState("Exam has not started yet.")
            if now > assignment.effective_end:
                raise errors.InvalidState("Exam has already ended.")

            existing = self.repos.attempts.get_open(assignment.pk, student_id)
            if existing is not None:
                return existing

            if assignment.status in (Assignment.Status.COMPLETED, Assignment.Status.MISSED):
                raise errors.InvalidState(f"Exam assignment is already {assignment.status}.")

            max_score = sum(
                (qa.effective_points for qa in self.repos.question_assignments.for_assignment(assignment.pk)),
                Decimal("0.00"),
            )

            try:
                with transaction.atomic():
                    attempt = self.repos.attempts.create(assignment, max_score, now, metadata)
            except IntegrityError:
                # Lost the race on the open-attempt constraint; the winner's attempt stands
                existing = self.repos.attempts.get_open(assignment.pk, student_id)
                if existing is None:
                    raise
                return existing

            self.repos.assignments.advance_status(assignment, Assignment.Status.STARTED)

        logger.info(
            "Attempt %s started for assignment %s (student %s, max score %s)",
            attempt.pk, assignment.pk, student_id, max_score,
        )
        return attempt

    def submit_response(self, attempt_id, question_id, response_data, student_id=None) -> StudentResponse:
        """Grade and store one answer; a repeat for the same question replaces the previous one."""
        if not isinstance(response_data, ResponseData):
            response_data = ResponseData.from_payload(response_data)
        now = timezone.now()

        with transaction.atomic():
            attempt = self.repos.attempts.get(attempt_id, student_id=student_id, lock=True)
            if not attempt.is_open:
                raise errors.InvalidState("Exam attempt is not in progress.")
            if now > attempt.assignment.effective_end:
                raise errors.InvalidState("Exam window has closed.")

            question = self.repos.exams.get_question(question_id, exam_id=attempt.exam_id)
            question_assignment = self.repos.question_assignments.get(attempt.assignment_id, question.pk)
            max_points = question_assignment.effective_points

            definition = QuestionDefinition.from_question(question)
            grade = grade_response(definition, max_points, response_data)
            chosen = definition.find_option(response_data.chosen_answer_id)

            response = self.repos.responses.upsert(
                attempt,
                question,
                ResponseUpdate(
                    chosen_option_id=chosen.id if chosen else None,
                    text_response=response_data.text_response,
                    is_correct=grade.is_correct,
                    score_awarded=grade.score_awarded,
                    max_score=max_points,
                    responded_at=now,
                ),
            )

        logger.debug(
            "Attempt %s question %s graded: correct=%s score=%s",
            attempt.pk, question.pk, grade.is_correct, grade.score_awarded,
        )
        return response

    def complete_attempt(self, attempt_id, student_id=None) -> Attempt:
        with transaction.atomic():
            attempt = self.repos.attempts.get(attempt_id, student_id=student_id, lock=True)
            if not attempt.is_open:
                raise errors.InvalidState("Exam attempt is not in progress.")

            result = self._score(attempt, timezone.now())
            self._finalize(attempt, result, Attempt.Status.COMPLETED)

        logger.info(
            "Attempt %s completed: score %s/%s (%s%%) passed=%s",
            attempt.pk, result.score, attempt.max_score, result.percentage, result.passed,
        )
        return self.repos.attempts.detail(attempt.pk)

    def expire_overdue_attempts(self, now=None) -> int:
        """
        Time out every open attempt whose deadline has passed.

        Meant to be driven by a periodic job (``manage.py expire_exam_attempts``);
        expired attempts are scored exactly as a completion would score them.
        """
        now = now or timezone.now()
        expired = 0
        for candidate in self.repos.attempts.open_attempts():
            if candidate.deadline >= now:
                continue
            with transaction.atomic():
                attempt = self.repos.attempts.get(candidate.pk, lock=True)
                if not attempt.is_open:
                    continue
                result = self._score(attempt, now)
                self._finalize(attempt, result, Attempt.Status.TIMED_OUT)
            expired += 1
            logger.info("Attempt %s timed out with score %s", attempt.pk, result.score)
        return expired

    def _score(self, attempt: Attempt, completed_at) -> CompleteAttemptResult:
        assigned_ids = [qa.question_id for qa in self.repos.question_assignments.for_assignment(attempt.assignment_id)]
        return aggregate_score(
            self.repos.responses.awarded_scores(attempt, assigned_ids),
            attempt.max_score,
            attempt.exam.passing_percentage,
            completed_at,
        )

    def _finalize(self, attempt: Attempt, result: CompleteAttemptResult, status):
        self.repos.attempts.finalize(attempt, result, status)
        self.repos.assignments.advance_status(attempt.assignment, Assignment.Status.COMPLETED)
