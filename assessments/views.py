from rest_framework import generics, permissions, views
from rest_framework.response import Response

from .permissions import IsSelfOrTeacher, IsStudent
from .serializers import (
    AssignmentFilterSerializer, AssignmentListSerializer,
    AttemptDetailSerializer, StudentResponseSerializer
)
from .services import AttemptMetadata, build_engine


def client_metadata(request) -> AttemptMetadata:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    ip_address = forwarded.split(',')[0].strip() if forwarded else request.META.get('REMOTE_ADDR')
    return AttemptMetadata(
        ip_address=ip_address or None,
        user_agent=request.META.get('HTTP_USER_AGENT', ''),
    )


# --- STUDENT DASHBOARD ---

class StudentAssignmentsView(generics.ListAPIView):
    """
    Lists a student's assignments.
    Filters: ?status=assigned&upcoming=true&past=true&current=true
    """
    permission_classes = [IsSelfOrTeacher]
    serializer_class = AssignmentListSerializer

    def get_queryset(self):
        filters = AssignmentFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return build_engine().get_student_assigned_exams(self.kwargs['student_id'], filters.to_filter())


# --- EXAM TAKING ---

class StartAttemptView(views.APIView):
    """
    Student starts (or resumes) the attempt for one of their assignments.
    Returns the attempt WITH its questions.
    """
    permission_classes = [IsStudent]

    def post(self, request, assignment_id):
        attempt = build_engine().start_attempt(assignment_id, request.user.pk, client_metadata(request))
        return Response(AttemptDetailSerializer(attempt).data)


class SubmitResponseView(views.APIView):
    """
    Student answers one question; answering again replaces the earlier answer.
    Payload: { "chosen_answer_id": 7 } or { "text_response": "Paris" }
    """
    permission_classes = [IsStudent]

    def post(self, request, attempt_id, question_id):
        response = build_engine().submit_response(
            attempt_id, question_id, request.data, student_id=request.user.pk
        )
        return Response(StudentResponseSerializer(response).data)


class CompleteAttemptView(views.APIView):
    """Student finishes the attempt; returns the final score."""
    permission_classes = [IsStudent]

    def post(self, request, attempt_id):
        attempt = build_engine().complete_attempt(attempt_id, student_id=request.user.pk)
        return Response(AttemptDetailSerializer(attempt).data)


class AttemptDetailView(generics.RetrieveAPIView):
    """Allow student to retrieve one of their attempts."""
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = AttemptDetailSerializer

    def get_object(self):
        attempts = build_engine().repos.attempts
        attempt = attempts.get(self.kwargs['pk'], student_id=self.request.user.pk)
        return attempts.detail(attempt.pk)
