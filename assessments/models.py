# exam_engine/assessments/models.py
from datetime import timedelta

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from exams.models import Exam, Option, Question


class Assignment(models.Model):
    """Binds one exam to one student, with optional per-student window overrides."""

    class Status(models.TextChoices):
        ASSIGNED = "assigned", "Assigned"
        STARTED = "started", "Started"
        COMPLETED = "completed", "Completed"
        MISSED = "missed", "Missed"

    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='assignments')
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_assignments')
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='issued_exam_assignments',
    )

    custom_start_date = models.DateTimeField(null=True, blank=True)
    custom_end_date = models.DateTimeField(null=True, blank=True)
    custom_duration = models.PositiveIntegerField(null=True, blank=True, help_text="Minutes; overrides the exam duration")

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ASSIGNED)
    assigned_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['exam', 'student'], name='unique_exam_assignment_per_student'),
        ]

    def __str__(self):
        return f"{self.student} -> {self.exam.title}"

    @property
    def effective_start(self):
        return self.custom_start_date or self.exam.start_date

    @property
    def effective_end(self):
        return self.custom_end_date or self.exam.end_date

    @property
    def effective_duration(self):
        return self.custom_duration or self.exam.duration_minutes

    def is_open_at(self, moment):
        return self.effective_start <= moment <= self.effective_end


class QuestionAssignment(models.Model):
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name='question_assignments')
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='question_assignments')
    order_number = models.PositiveIntegerField(default=0)
    custom_points = models.DecimalField(
        max_digits=7, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )

    class Meta:
        ordering = ['order_number', 'id']
        constraints = [
            models.UniqueConstraint(fields=['assignment', 'question'], name='unique_question_per_assignment'),
        ]

    def __str__(self):
        return f"#{self.order_number} {self.question}"

    @property
    def effective_points(self):
        if self.custom_points is not None:
            return self.custom_points
        return self.question.points


class Attempt(models.Model):
    """One timed pass by a student through their assigned questions."""

    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        TIMED_OUT = "timed_out", "Timed Out"
        SUBMITTED = "submitted", "Submitted"

    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name='attempts')
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_attempts')
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='attempts')

    started_at = models.DateTimeField()
    completed_at = models.DateTimeField(null=True, blank=True)

    # Frozen when the attempt is opened
    max_score = models.DecimalField(max_digits=9, decimal_places=2)
    score = models.DecimalField(max_digits=9, decimal_places=2, null=True, blank=True)
    percentage = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    passed = models.BooleanField(null=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ['-started_at']
        constraints = [
            models.UniqueConstraint(
                fields=['assignment', 'student'],
                condition=Q(status='in_progress'),
                name='unique_open_attempt_per_assignment',
            ),
        ]

    def __str__(self):
        return f"{self.student} - {self.exam.title} ({self.status})"

    @property
    def is_open(self):
        return self.status == self.Status.IN_PROGRESS

    @property
    def deadline(self):
        by_duration = self.started_at + timedelta(minutes=self.assignment.effective_duration)
        return min(by_duration, self.assignment.effective_end)


class StudentResponse(models.Model):
    attempt = models.ForeignKey(Attempt, related_name='responses', on_delete=models.CASCADE)
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='responses')

    # For multiple_choice
    chosen_option = models.ForeignKey(Option, null=True, blank=True, on_delete=models.SET_NULL)

    # For short_answer / fill_in_blank
    text_response = models.TextField(null=True, blank=True)

    # Grading
    is_correct = models.BooleanField(default=False)
    score_awarded = models.DecimalField(max_digits=7, decimal_places=2, default=0)
    max_score = models.DecimalField(max_digits=7, decimal_places=2)

    # Manual override
    graded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='graded_responses'
    )
    graded_at = models.DateTimeField(null=True, blank=True)
    grading_notes = models.TextField(blank=True)

    responded_at = models.DateTimeField()

    class Meta:
        ordering = ['responded_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['attempt', 'question'], name='unique_response_per_attempt_question'),
        ]

    def __str__(self):
        return f"Response to {self.question_id} in attempt {self.attempt_id}"
