# exam_engine/exams/serializers.py
from rest_framework import serializers
from .models import Exam, Question, Option

# --- Helper Serializers ---

class OptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Option
        fields = ['id', 'text', 'is_correct', 'order_number']
        read_only_fields = ['order_number']

class OptionInputSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=255)
    is_correct = serializers.BooleanField(default=False)

class StudentOptionSerializer(serializers.ModelSerializer):
    """Options as shown to a student: correctness stays hidden."""
    class Meta:
        model = Option
        fields = ['id', 'text']

# --- Question Serializers ---

class QuestionSerializer(serializers.ModelSerializer):
    # Options go in as a list of {text, is_correct} and come back with ids
    options = OptionInputSerializer(many=True, required=False, write_only=True)
    options_data = OptionSerializer(source='options', many=True, read_only=True)

    # Read-only field to show exam title
    exam_title = serializers.CharField(source='exam.title', read_only=True)

    class Meta:
        model = Question
        fields = [
            'id', 'exam', 'exam_title', 'text', 'question_type', 'points', 'order_number',
            'correct_answer', 'case_sensitive', 'allow_partial_match',
            'options', 'options_data'
        ]
        read_only_fields = ['exam']
        extra_kwargs = {'order_number': {'required': False}}

# --- Exam Serializers ---

class ExamSerializer(serializers.ModelSerializer):
    teacher = serializers.PrimaryKeyRelatedField(read_only=True)

    # Read-only counts
    total_questions = serializers.IntegerField(source='questions.count', read_only=True)

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'description', 'instructions', 'course_id', 'teacher',
            'start_date', 'end_date', 'duration_minutes', 'passing_percentage',
            'total_points', 'is_published', 'total_questions', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and start >= end:
            raise serializers.ValidationError({'end_date': "End date must be after the start date."})
        return attrs

class ExamListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Exam
        fields = ['id', 'title', 'course_id', 'start_date', 'end_date', 'duration_minutes', 'passing_percentage']

class ExamDetailSerializer(ExamSerializer):
    """Detailed view for teachers, including questions and answers"""
    questions = QuestionSerializer(many=True, read_only=True)
    class Meta(ExamSerializer.Meta):
        fields = ExamSerializer.Meta.fields + ['questions']
