"""
Facade exposing the engine operations to the HTTP layer.

The repositories are built once per process and shared by the distributor and
the attempt manager.
"""
from functools import lru_cache
from typing import Optional

from exams import services as catalog

from .attempts import AttemptManager
from .distribution import AssignmentDistributor, AssignmentFilter, AssignmentOptions
from .repositories import AttemptMetadata, Repositories


class ExamEngine:
    def __init__(self, repositories: Optional[Repositories] = None):
        self.repos = repositories or Repositories.default()
        self.distributor = AssignmentDistributor(self.repos)
        self.attempts = AttemptManager(self.repos)

    def assign_exam(self, exam_id, student_ids, assigned_by_id, options: Optional[AssignmentOptions] = None):
        return self.distributor.assign_exam(exam_id, student_ids, assigned_by_id, options)

    def get_student_assigned_exams(self, student_id, assignment_filter: Optional[AssignmentFilter] = None):
        return self.distributor.get_student_assigned_exams(student_id, assignment_filter)

    def start_attempt(self, assignment_id, student_id, metadata: Optional[AttemptMetadata] = None):
        return self.attempts.start_attempt(assignment_id, student_id, metadata)

    def submit_response(self, attempt_id, question_id, response_data, student_id=None):
        return self.attempts.submit_response(attempt_id, question_id, response_data, student_id=student_id)

    def complete_attempt(self, attempt_id, student_id=None):
        return self.attempts.complete_attempt(attempt_id, student_id=student_id)

    def add_question_to_exam(self, exam_id, question_def):
        return catalog.add_question_to_exam(exam_id, question_def)

    def run_expiry_sweep(self, now=None):
        """Returns (timed_out_attempts, missed_assignments)."""
        return (
            self.attempts.expire_overdue_attempts(now),
            self.distributor.mark_missed_assignments(now),
        )


@lru_cache(maxsize=None)
def build_engine() -> ExamEngine:
    return ExamEngine()
