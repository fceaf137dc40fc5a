from rest_framework import permissions

class IsTeacherOrAdmin(permissions.BasePermission):
    """
    Allows access to Teachers and Admins.
    Strictly blocks Students.
    """
    def has_permission(self, request, view):
        # 1. User must be logged in
        if not request.user or not request.user.is_authenticated:
            return False

        # 2. Check Role
        # Allow if Superuser/Staff OR Role is teacher/admin
        return (
            request.user.is_staff or
            getattr(request.user, 'role', '') in ['teacher', 'admin']
        )


class IsStudent(permissions.BasePermission):
    """Only accounts with the student role may take exams."""
    message = "Only students can take exams."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return getattr(request.user, 'role', '') == 'student'


class IsSelfOrTeacher(permissions.BasePermission):
    """A student may read their own records; teachers and admins may read anyone's."""

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if IsTeacherOrAdmin().has_permission(request, view):
            return True
        return str(view.kwargs.get('student_id')) == str(request.user.pk)
