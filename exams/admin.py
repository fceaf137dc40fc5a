from django.contrib import admin

from .models import Exam, Question, Option


class OptionInline(admin.TabularInline):
    model = Option
    extra = 0


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('title', 'course_id', 'teacher', 'start_date', 'end_date', 'is_published')
    list_filter = ('is_published',)
    search_fields = ('title',)


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('__str__', 'exam', 'question_type', 'points', 'order_number')
    list_filter = ('question_type',)
    inlines = [OptionInline]
