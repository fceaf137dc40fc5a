"""
Exam assignment, attempt and grading engine.

Structure:
├── repositories.py   # per-entity ORM access, bundled as Repositories
├── grading.py        # pure auto-grading of one response
├── scoring.py        # pure score aggregation for an attempt
├── distribution.py   # AssignmentDistributor
├── attempts.py       # AttemptManager (attempt state machine)
└── engine.py         # ExamEngine facade used by the views
"""

from .attempts import AttemptManager
from .distribution import AssignmentDistributor, AssignmentFilter, AssignmentOptions
from .engine import ExamEngine, build_engine
from .grading import GradeResult, QuestionDefinition, ResponseData, grade_response
from .repositories import AttemptMetadata, Repositories
from .scoring import CompleteAttemptResult, aggregate_score

__all__ = [
    "AssignmentDistributor",
    "AssignmentFilter",
    "AssignmentOptions",
    "AttemptManager",
    "AttemptMetadata",
    "CompleteAttemptResult",
    "ExamEngine",
    "GradeResult",
    "QuestionDefinition",
    "Repositories",
    "ResponseData",
    "aggregate_score",
    "build_engine",
    "grade_response",
]
