from django.contrib import admin

from .models import Assignment, Attempt, QuestionAssignment, StudentResponse


class QuestionAssignmentInline(admin.TabularInline):
    model = QuestionAssignment
    extra = 0


class StudentResponseInline(admin.TabularInline):
    model = StudentResponse
    extra = 0
    readonly_fields = ('question', 'chosen_option', 'text_response', 'is_correct', 'score_awarded', 'max_score')


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ('exam', 'student', 'status', 'assigned_by', 'assigned_at')
    list_filter = ('status',)
    inlines = [QuestionAssignmentInline]


@admin.register(Attempt)
class AttemptAdmin(admin.ModelAdmin):
    list_display = ('exam', 'student', 'status', 'score', 'max_score', 'percentage', 'passed', 'started_at')
    list_filter = ('status', 'passed')
    inlines = [StudentResponseInline]
