from rest_framework import permissions


class IsTeacher(permissions.BasePermission):
    message = 'Only teachers can perform this action.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_teacher)


class IsTeacherOrReadOnly(IsTeacher):
    """Anyone authenticated may read; only teachers may write."""

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return super().has_permission(request, view)


class IsAssessmentOwner(permissions.BasePermission):
    def has_object_permission(self, request, view, obj):
        return obj.created_by_id == request.user.pk


class IsAttemptOwner(permissions.BasePermission):
    """
    Students see their own attempts; the teacher who wrote the
    assessment sees every attempt on it.
    """

    def has_object_permission(self, request, view, obj):
        return (
            obj.student_id == request.user.pk
            or obj.assessment.created_by_id == request.user.pk
        )


class IsStudent(permissions.BasePermission):
    message = 'Only students can take assessments.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.role == 'student')
