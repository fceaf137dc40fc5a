"""
Assignment distribution: materializes per-student assignments of an exam.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence

from django.db import IntegrityError, transaction
from django.utils import timezone

from exam_engine import errors

from ..models import Assignment
from .repositories import QuestionSlot, Repositories

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssignmentOptions:
    custom_start_date: Optional[datetime] = None
    custom_end_date: Optional[datetime] = None
    custom_duration: Optional[int] = None
    # student id -> ordered question ids
    student_questions: Dict[int, List[int]] = field(default_factory=dict)
    # student id -> question id -> points
    custom_points: Dict[int, Dict[int, Decimal]] = field(default_factory=dict)


@dataclass(frozen=True)
class AssignmentFilter:
    status: Optional[str] = None
    upcoming: bool = False
    past: bool = False
    current: bool = False

    @property
    def has_time_filter(self):
        return self.upcoming or self.past or self.current


class AssignmentDistributor:
    def __init__(self, repositories: Repositories):
        self.repos = repositories

    def assign_exam(self, exam_id, student_ids: Sequence[int], assigned_by_id,
                    options: Optional[AssignmentOptions] = None) -> List[Assignment]:
        """
        Create one assignment per student, each with its ordered question set.

        The whole batch is one transaction: a single failing student rolls back
        every assignment created before it.
        """
        options = options or AssignmentOptions()
        self._validate_options(student_ids, options)

        with transaction.atomic():
            exam = self.repos.exams.get(exam_id)
            if not exam.is_published:
                raise errors.InvalidState("Cannot assign an unpublished exam.")

            questions = self.repos.exams.questions(exam)
            if not questions:
                raise errors.ValidationError("Cannot assign an exam with no questions.")

            created = [
                self._assign_student(exam, questions, student_id, assigned_by_id, options)
                for student_id in student_ids
            ]

        logger.info(
            "Assigned exam %s to %d student(s) (assigned by %s)", exam_id, len(created), assigned_by_id
        )
        return self.repos.assignments.with_questions(a.pk for a in created)

    def _validate_options(self, student_ids, options: AssignmentOptions):
        if not student_ids:
            raise errors.ValidationError("At least one student must be given.")
        if len(set(student_ids)) != len(student_ids):
            raise errors.ValidationError("Student IDs must not repeat.")

        start, end = options.custom_start_date, options.custom_end_date
        if start and end and start >= end:
            raise errors.ValidationError("Custom start date must be before the custom end date.")
        if options.custom_duration is not None and options.custom_duration <= 0:
            raise errors.ValidationError("Custom duration must be a positive number of minutes.")

        for student_id, points_by_question in options.custom_points.items():
            for question_id, points in points_by_question.items():
                try:
                    negative = Decimal(points) < 0
                except (InvalidOperation, TypeError, ValueError):
                    negative = True
                if negative:
                    raise errors.ValidationError(
                        f"Invalid custom points for student {student_id}, question {question_id}."
                    )

    def _assign_student(self, exam, questions, student_id, assigned_by_id, options: AssignmentOptions):
        student = self.repos.students.get_student(student_id)

        if self.repos.assignments.exists(exam.pk, student.pk):
            raise errors.Conflict(f"Student with ID {student_id} is already assigned to this exam.")

        slots = self._question_slots(questions, student_id, options)

        try:
            # Savepoint, so a concurrent duplicate surfaces as Conflict
            with transaction.atomic():
                assignment = self.repos.assignments.create(
                    exam,
                    student,
                    assigned_by_id,
                    custom_start_date=options.custom_start_date,
                    custom_end_date=options.custom_end_date,
                    custom_duration=options.custom_duration,
                )
        except IntegrityError:
            raise errors.Conflict(f"Student with ID {student_id} is already assigned to this exam.")

        self.repos.question_assignments.create_many(assignment, slots)
        return assignment

    def _question_slots(self, questions, student_id, options: AssignmentOptions) -> List[QuestionSlot]:
        by_id = {question.pk: question for question in questions}
        points = options.custom_points.get(student_id, {})

        unknown_points = [qid for qid in points if qid not in by_id]
        if unknown_points:
            raise errors.ValidationError(
                f"Invalid custom point question IDs for student {student_id}: "
                f"{', '.join(str(qid) for qid in unknown_points)}"
            )

        if student_id in options.student_questions:
            chosen_ids = list(options.student_questions[student_id])
            if not chosen_ids:
                raise errors.ValidationError(f"No questions given for student {student_id}.")
            invalid = [qid for qid in chosen_ids if qid not in by_id]
            if invalid:
                raise errors.ValidationError(
                    f"Invalid question IDs for student {student_id}: {', '.join(str(qid) for qid in invalid)}"
                )
            if len(set(chosen_ids)) != len(chosen_ids):
                raise errors.ValidationError(f"Question IDs repeat for student {student_id}.")
            chosen = [by_id[qid] for qid in chosen_ids]
        else:
            chosen = questions

        return [
            QuestionSlot(
                question=question,
                order_number=index,
                custom_points=Decimal(points[question.pk]) if question.pk in points else None,
            )
            for index, question in enumerate(chosen)
        ]

    def get_student_assigned_exams(self, student_id, assignment_filter: Optional[AssignmentFilter] = None,
                                   now=None) -> List[Assignment]:
        assignment_filter = assignment_filter or AssignmentFilter()
        self.repos.students.get_student(student_id)
        now = now or timezone.now()

        assignments = self.repos.assignments.list_for_student(student_id, status=assignment_filter.status)
        if not assignment_filter.has_time_filter:
            return assignments
        return [a for a in assignments if self._matches_window(a, assignment_filter, now)]

    @staticmethod
    def _matches_window(assignment, assignment_filter: AssignmentFilter, now) -> bool:
        start, end = assignment.effective_start, assignment.effective_end
        if assignment_filter.upcoming and start > now:
            return True
        if assignment_filter.past and end < now:
            return True
        if assignment_filter.current and assignment.is_open_at(now):
            return True
        return False

    def mark_missed_assignments(self, now=None) -> int:
        """Flip unopened assignments whose window has closed to ``missed``."""
        now = now or timezone.now()
        missed = 0
        for candidate in self.repos.assignments.unopened():
            if candidate.effective_end >= now:
                continue
            with transaction.atomic():
                assignment = self.repos.assignments.lock(candidate.pk)
                if assignment.status != Assignment.Status.ASSIGNED:
                    continue
                self.repos.assignments.advance_status(assignment, Assignment.Status.MISSED)
            missed += 1
            logger.info("Assignment %s marked missed", assignment.pk)
        return missed
