from django.urls import path
from .views import (
    StudentAssignmentsView, StartAttemptView, SubmitResponseView,
    CompleteAttemptView, AttemptDetailView
)

urlpatterns = [
    # Student dashboard
    path('students/<int:student_id>/assignments/', StudentAssignmentsView.as_view(), name='student-assignments'),

    # Student exam flow
    path('assignments/<int:assignment_id>/start/', StartAttemptView.as_view(), name='attempt-start'),
    path(
        'attempts/<int:attempt_id>/questions/<int:question_id>/response/',
        SubmitResponseView.as_view(),
        name='attempt-response',
    ),
    path('attempts/<int:attempt_id>/complete/', CompleteAttemptView.as_view(), name='attempt-complete'),
    path('attempts/<int:pk>/', AttemptDetailView.as_view(), name='attempt-detail'),
]
