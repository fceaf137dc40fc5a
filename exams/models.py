# exam_engine/exams/models.py
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Exam(models.Model):
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    instructions = models.TextField(blank=True)

    # Courses live in the course-authoring subsystem; only the reference is kept here
    course_id = models.PositiveIntegerField()
    teacher = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='authored_exams')

    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    passing_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("60.00"),
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    total_points = models.DecimalField(max_digits=7, decimal_places=2, default=Decimal("100.00"))

    is_published = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class Question(models.Model):
    class QuestionType(models.TextChoices):
        MULTIPLE_CHOICE = "multiple_choice", "Multiple Choice"
        SHORT_ANSWER = "short_answer", "Short Answer"
        FILL_IN_BLANK = "fill_in_blank", "Fill in the Blank"

    TEXT_TYPES = (QuestionType.SHORT_ANSWER, QuestionType.FILL_IN_BLANK)

    exam = models.ForeignKey(Exam, related_name='questions', on_delete=models.CASCADE)
    text = models.TextField()
    question_type = models.CharField(max_length=20, choices=QuestionType.choices)
    points = models.DecimalField(
        max_digits=7, decimal_places=2, default=Decimal("1.00"), validators=[MinValueValidator(0)]
    )
    order_number = models.PositiveIntegerField(default=0)

    # Text questions only
    correct_answer = models.TextField(blank=True)
    case_sensitive = models.BooleanField(default=False)
    allow_partial_match = models.BooleanField(default=False)

    class Meta:
        ordering = ['order_number', 'id']

    def __str__(self):
        return f"{self.text[:50]}..."


class Option(models.Model):
    question = models.ForeignKey(Question, related_name='options', on_delete=models.CASCADE)
    text = models.CharField(max_length=255)
    is_correct = models.BooleanField(default=False)
    order_number = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['order_number', 'id']

    def __str__(self):
        return self.text
