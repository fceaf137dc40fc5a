"""
Per-entity data access for the assessment engine.

Each repository wraps one model's queries so the distributor and the attempt
manager never reach for ``Model.objects`` directly. A ``Repositories`` bundle
is built once (see ``engine.build_engine``) and handed to the services, which
lets tests substitute any of them.

Methods taking ``lock=True`` must run inside ``transaction.atomic()``.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from django.contrib.auth import get_user_model
from django.db.models import Prefetch

from exam_engine import errors
from exams.models import Exam, Question

from ..models import Assignment, Attempt, QuestionAssignment, StudentResponse
from .scoring import CompleteAttemptResult

User = get_user_model()


@dataclass(frozen=True)
class AttemptMetadata:
    ip_address: Optional[str] = None
    user_agent: str = ""


@dataclass(frozen=True)
class ResponseUpdate:
    """Exactly the fields a graded submission writes to its response row."""

    chosen_option_id: Optional[int]
    text_response: Optional[str]
    is_correct: bool
    score_awarded: Decimal
    max_score: Decimal
    responded_at: datetime


@dataclass(frozen=True)
class QuestionSlot:
    question: Question
    order_number: int
    custom_points: Optional[Decimal] = None


class ExamRepository:
    def get(self, exam_id) -> Exam:
        try:
            return Exam.objects.get(pk=exam_id)
        except Exam.DoesNotExist:
            raise errors.NotFound(f"Exam {exam_id} not found.")

    def questions(self, exam: Exam) -> List[Question]:
        return list(exam.questions.order_by('order_number', 'id'))

    def get_question(self, question_id, exam_id=None) -> Question:
        queryset = Question.objects.prefetch_related('options')
        if exam_id is not None:
            queryset = queryset.filter(exam_id=exam_id)
        try:
            return queryset.get(pk=question_id)
        except Question.DoesNotExist:
            if exam_id is not None:
                raise errors.NotFound(f"Question {question_id} not found in this exam.")
            raise errors.NotFound(f"Question {question_id} not found.")


class StudentRepository:
    def get_student(self, student_id):
        try:
            return User.objects.get(pk=student_id, role=User.Role.STUDENT)
        except (User.DoesNotExist, ValueError, TypeError):
            raise errors.NotFound(f"Student with ID {student_id} not found.")


class AssignmentRepository:
    # Forward-only moves; missed is reachable only before anything started.
    TRANSITIONS = {
        Assignment.Status.ASSIGNED.value: {
            Assignment.Status.STARTED.value,
            Assignment.Status.COMPLETED.value,
            Assignment.Status.MISSED.value,
        },
        Assignment.Status.STARTED.value: {Assignment.Status.COMPLETED.value},
        Assignment.Status.COMPLETED.value: set(),
        Assignment.Status.MISSED.value: set(),
    }

    def exists(self, exam_id, student_id) -> bool:
        return Assignment.objects.filter(exam_id=exam_id, student_id=student_id).exists()

    def create(self, exam, student, assigned_by_id, custom_start_date=None, custom_end_date=None,
               custom_duration=None) -> Assignment:
        return Assignment.objects.create(
            exam=exam,
            student=student,
            assigned_by_id=assigned_by_id,
            custom_start_date=custom_start_date,
            custom_end_date=custom_end_date,
            custom_duration=custom_duration,
        )

    def get_for_student(self, assignment_id, student_id, lock=False) -> Assignment:
        queryset = Assignment.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        try:
            assignment = queryset.get(pk=assignment_id, student_id=student_id)
        except Assignment.DoesNotExist:
            raise errors.NotFound("Exam assignment not found.")
        return assignment

    def lock(self, assignment_id) -> Assignment:
        return Assignment.objects.select_for_update().get(pk=assignment_id)

    def with_questions(self, assignment_ids: Iterable[int]) -> List[Assignment]:
        return list(
            Assignment.objects.filter(pk__in=list(assignment_ids))
            .select_related('exam', 'student', 'assigned_by')
            .prefetch_related(
                Prefetch(
                    'question_assignments',
                    queryset=QuestionAssignment.objects.select_related('question').order_by('order_number', 'id'),
                )
            )
            .order_by('id')
        )

    def list_for_student(self, student_id, status=None) -> List[Assignment]:
        queryset = Assignment.objects.filter(student_id=student_id).select_related('exam', 'assigned_by')
        if status:
            queryset = queryset.filter(status=status)
        return list(queryset.order_by('exam__start_date', 'id'))

    def unopened(self) -> List[Assignment]:
        return list(
            Assignment.objects.filter(status=Assignment.Status.ASSIGNED).select_related('exam')
        )

    def advance_status(self, assignment: Assignment, status) -> Assignment:
        status = str(status)
        if assignment.status == status:
            return assignment
        if status not in self.TRANSITIONS[str(assignment.status)]:
            raise errors.InvalidState(
                f"Assignment cannot move from '{assignment.status}' to '{status}'."
            )
        assignment.status = status
        assignment.save(update_fields=['status', 'updated_at'])
        return assignment


class QuestionAssignmentRepository:
    def create_many(self, assignment: Assignment, slots: Iterable[QuestionSlot]) -> List[QuestionAssignment]:
        return QuestionAssignment.objects.bulk_create([
            QuestionAssignment(
                assignment=assignment,
                question=slot.question,
                order_number=slot.order_number,
                custom_points=slot.custom_points,
            )
            for slot in slots
        ])

    def for_assignment(self, assignment_id) -> List[QuestionAssignment]:
        return list(
            QuestionAssignment.objects.filter(assignment_id=assignment_id)
            .select_related('question')
            .order_by('order_number', 'id')
        )

    def get(self, assignment_id, question_id) -> QuestionAssignment:
        try:
            return QuestionAssignment.objects.select_related('question').get(
                assignment_id=assignment_id, question_id=question_id
            )
        except QuestionAssignment.DoesNotExist:
            raise errors.NotFound("Question not part of this attempt's assignment.")


class AttemptRepository:
    def get(self, attempt_id, student_id=None, lock=False) -> Attempt:
        queryset = Attempt.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        filters = {'pk': attempt_id}
        if student_id is not None:
            filters['student_id'] = student_id
        try:
            return queryset.get(**filters)
        except Attempt.DoesNotExist:
            raise errors.NotFound("Exam attempt not found.")

    def get_open(self, assignment_id, student_id) -> Optional[Attempt]:
        return Attempt.objects.filter(
            assignment_id=assignment_id,
            student_id=student_id,
            status=Attempt.Status.IN_PROGRESS,
        ).first()

    def create(self, assignment: Assignment, max_score: Decimal, started_at: datetime,
               metadata: AttemptMetadata) -> Attempt:
        return Attempt.objects.create(
            assignment=assignment,
            student_id=assignment.student_id,
            exam_id=assignment.exam_id,
            started_at=started_at,
            max_score=max_score,
            ip_address=metadata.ip_address or None,
            user_agent=(metadata.user_agent or "")[:255],
        )

    def finalize(self, attempt: Attempt, result: CompleteAttemptResult, status) -> Attempt:
        attempt.score = result.score
        attempt.percentage = result.percentage
        attempt.passed = result.passed
        attempt.completed_at = result.completed_at
        attempt.status = status
        attempt.save(update_fields=['score', 'percentage', 'passed', 'completed_at', 'status'])
        return attempt

    def open_attempts(self) -> List[Attempt]:
        return list(
            Attempt.objects.filter(status=Attempt.Status.IN_PROGRESS)
            .select_related('assignment', 'assignment__exam')
        )

    def detail(self, attempt_id) -> Attempt:
        return (
            Attempt.objects.select_related('assignment', 'exam', 'student')
            .prefetch_related(
                Prefetch('responses', queryset=StudentResponse.objects.select_related('question', 'chosen_option'))
            )
            .get(pk=attempt_id)
        )


class ResponseRepository:
    def upsert(self, attempt: Attempt, question: Question, update: ResponseUpdate) -> StudentResponse:
        response, _ = StudentResponse.objects.update_or_create(
            attempt=attempt,
            question=question,
            defaults={
                'chosen_option_id': update.chosen_option_id,
                'text_response': update.text_response,
                'is_correct': update.is_correct,
                'score_awarded': update.score_awarded,
                'max_score': update.max_score,
                'responded_at': update.responded_at,
            },
        )
        return response

    def awarded_scores(self, attempt: Attempt, question_ids: Iterable[int]) -> List[Decimal]:
        return list(
            StudentResponse.objects.filter(attempt=attempt, question_id__in=list(question_ids))
            .values_list('score_awarded', flat=True)
        )


@dataclass
class Repositories:
    exams: ExamRepository
    students: StudentRepository
    assignments: AssignmentRepository
    question_assignments: QuestionAssignmentRepository
    attempts: AttemptRepository
    responses: ResponseRepository

    @classmethod
    def default(cls) -> "Repositories":
        return cls(
            exams=ExamRepository(),
            students=StudentRepository(),
            assignments=AssignmentRepository(),
            question_assignments=QuestionAssignmentRepository(),
            attempts=AttemptRepository(),
            responses=ResponseRepository(),
        )
