from rest_framework import viewsets, mixins, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response

from assessments.permissions import IsTeacherOrAdmin
from assessments.serializers import AssignExamSerializer, AssignmentSerializer
from assessments.services import build_engine

from . import services
from .models import Exam, Question
from .serializers import ExamSerializer, ExamDetailSerializer, QuestionSerializer


class ExamViewSet(viewsets.ModelViewSet):
    queryset = Exam.objects.select_related('teacher').order_by('-created_at')
    permission_classes = [IsTeacherOrAdmin]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    lookup_value_regex = r'\d+'

    # Enable search on title
    filter_backends = [filters.SearchFilter]
    search_fields = ['title']

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return ExamDetailSerializer
        return ExamSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action == 'retrieve':
            queryset = queryset.prefetch_related('questions__options')

        # Filter by ?teacher=1, ?course_id=2, ?is_published=true
        params = self.request.query_params
        if params.get('teacher'):
            queryset = queryset.filter(teacher_id=params['teacher'])
        if params.get('course_id'):
            queryset = queryset.filter(course_id=params['course_id'])
        if params.get('is_published') is not None:
            queryset = queryset.filter(is_published=params['is_published'].lower() == 'true')
        return queryset

    def perform_create(self, serializer):
        serializer.save(teacher=self.request.user)

    def perform_update(self, serializer):
        services.check_exam_update(serializer.instance, serializer.validated_data)
        serializer.save()

    def perform_destroy(self, instance):
        services.delete_exam(instance)

    @action(detail=True, methods=['post'], url_path='questions')
    def add_question(self, request, pk=None):
        """
        Adds one question to this exam.
        Payload: { "text": "...", "question_type": "multiple_choice", "points": 2,
                   "options": [ { "text": "A", "is_correct": true }, ... ] }
        """
        serializer = QuestionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        question = build_engine().add_question_to_exam(pk, serializer.validated_data)
        return Response(QuestionSerializer(question).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='assign')
    def assign(self, request, pk=None):
        """
        Assigns this exam to a list of students.
        Payload: { "student_ids": [4, 5], "custom_duration": 30,
                   "student_questions": { "4": [10, 11] }, "custom_points": { "5": { "10": 3 } } }
        """
        serializer = AssignExamSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignments = build_engine().assign_exam(
            pk,
            serializer.validated_data['student_ids'],
            request.user.pk,
            serializer.to_options(),
        )
        return Response(AssignmentSerializer(assignments, many=True).data, status=status.HTTP_201_CREATED)


class QuestionViewSet(mixins.RetrieveModelMixin,
                      mixins.UpdateModelMixin,
                      mixins.DestroyModelMixin,
                      viewsets.GenericViewSet):
    queryset = Question.objects.select_related('exam').prefetch_related('options')
    serializer_class = QuestionSerializer
    permission_classes = [IsTeacherOrAdmin]
    http_method_names = ['get', 'patch', 'delete', 'head', 'options']

    def update(self, request, *args, **kwargs):
        question = self.get_object()
        serializer = self.get_serializer(question, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        question = services.update_question(question, serializer.validated_data)
        return Response(self.get_serializer(question).data)

    def perform_destroy(self, instance):
        services.delete_question(instance)
