from rest_framework import serializers

from exams.serializers import ExamListSerializer, StudentOptionSerializer

from .models import Assignment, Attempt, QuestionAssignment, StudentResponse
from .services import AssignmentFilter, AssignmentOptions


def _int_keys(mapping, label):
    try:
        return {int(key): value for key, value in mapping.items()}
    except (TypeError, ValueError):
        raise serializers.ValidationError({label: "Keys must be numeric IDs."})


# --- Assignment input ---

class AssignExamSerializer(serializers.Serializer):
    student_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    custom_start_date = serializers.DateTimeField(required=False, allow_null=True)
    custom_end_date = serializers.DateTimeField(required=False, allow_null=True)
    custom_duration = serializers.IntegerField(required=False, allow_null=True)

    # JSON object keys arrive as strings: { "4": [10, 11] }
    student_questions = serializers.DictField(
        child=serializers.ListField(child=serializers.IntegerField()), required=False
    )
    custom_points = serializers.DictField(
        child=serializers.DictField(child=serializers.DecimalField(max_digits=7, decimal_places=2)),
        required=False,
    )

    def to_options(self) -> AssignmentOptions:
        data = self.validated_data
        custom_points = {
            student_id: _int_keys(points, 'custom_points')
            for student_id, points in _int_keys(data.get('custom_points', {}), 'custom_points').items()
        }
        return AssignmentOptions(
            custom_start_date=data.get('custom_start_date'),
            custom_end_date=data.get('custom_end_date'),
            custom_duration=data.get('custom_duration'),
            student_questions=_int_keys(data.get('student_questions', {}), 'student_questions'),
            custom_points=custom_points,
        )


class AssignmentFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Assignment.Status.choices, required=False)
    upcoming = serializers.BooleanField(required=False, default=False)
    past = serializers.BooleanField(required=False, default=False)
    current = serializers.BooleanField(required=False, default=False)

    def to_filter(self) -> AssignmentFilter:
        return AssignmentFilter(**self.validated_data)


# --- Assignment output ---

class AssignedQuestionSerializer(serializers.ModelSerializer):
    """A question as it appears in one student's assignment, with their points."""
    id = serializers.IntegerField(source='question.id', read_only=True)
    text = serializers.CharField(source='question.text', read_only=True)
    question_type = serializers.CharField(source='question.question_type', read_only=True)
    points = serializers.DecimalField(source='effective_points', max_digits=7, decimal_places=2, read_only=True)
    options = StudentOptionSerializer(source='question.options', many=True, read_only=True)

    class Meta:
        model = QuestionAssignment
        fields = ['id', 'order_number', 'text', 'question_type', 'points', 'options']


class AssignmentListSerializer(serializers.ModelSerializer):
    exam = ExamListSerializer(read_only=True)
    effective_start = serializers.DateTimeField(read_only=True)
    effective_end = serializers.DateTimeField(read_only=True)
    effective_duration = serializers.IntegerField(read_only=True)

    class Meta:
        model = Assignment
        fields = [
            'id', 'exam', 'student', 'assigned_by', 'status',
            'custom_start_date', 'custom_end_date', 'custom_duration',
            'effective_start', 'effective_end', 'effective_duration', 'assigned_at'
        ]


class AssignmentSerializer(AssignmentListSerializer):
    """Assignment with its ordered question set."""
    questions = AssignedQuestionSerializer(source='question_assignments', many=True, read_only=True)

    class Meta(AssignmentListSerializer.Meta):
        fields = AssignmentListSerializer.Meta.fields + ['questions']


# --- Attempts ---

class StudentResponseSerializer(serializers.ModelSerializer):
    class Meta:
        model = StudentResponse
        fields = [
            'id', 'question', 'chosen_option', 'text_response',
            'is_correct', 'score_awarded', 'max_score', 'responded_at'
        ]
        read_only_fields = fields


class AttemptSerializer(serializers.ModelSerializer):
    """Lightweight serializer for lists / dashboard history."""
    exam_title = serializers.CharField(source='exam.title', read_only=True)
    deadline = serializers.DateTimeField(read_only=True)

    class Meta:
        model = Attempt
        fields = [
            'id', 'assignment', 'exam', 'exam_title', 'student', 'status',
            'started_at', 'deadline', 'completed_at',
            'max_score', 'score', 'percentage', 'passed'
        ]
        read_only_fields = fields


class AttemptDetailSerializer(AttemptSerializer):
    """Heavy serializer for taking the exam. Includes QUESTIONS and responses so far."""
    questions = serializers.SerializerMethodField()
    responses = StudentResponseSerializer(many=True, read_only=True)

    class Meta(AttemptSerializer.Meta):
        fields = AttemptSerializer.Meta.fields + ['questions', 'responses']

    def get_questions(self, obj):
        question_assignments = (
            obj.assignment.question_assignments
            .select_related('question')
            .prefetch_related('question__options')
        )
        return AssignedQuestionSerializer(question_assignments, many=True).data
