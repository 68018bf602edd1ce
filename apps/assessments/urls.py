from django.urls import path
from .views import (
    RegisterView,
    LoginView,
    AssessmentListCreateView,
    TeacherAssessmentListView,
    AssessmentDetailView,
    AssessmentStatsView,
    AssessmentAttemptListView,
    AttemptStartView,
    AttemptSubmitView,
    AttemptListView,
    AttemptDetailView,
    CreditSummaryView,
    LeaderboardView,
)

urlpatterns = [
    # Authentication
    path('auth/register/', RegisterView.as_view(), name='register'),
    path('auth/login/', LoginView.as_view(), name='login'),

    # Assessments
    path('assessments/', AssessmentListCreateView.as_view(), name='assessment-list'),
    path('assessments/mine/', TeacherAssessmentListView.as_view(), name='assessment-mine'),
    path('assessments/stats/', AssessmentStatsView.as_view(), name='assessment-stats'),
    path('assessments/<uuid:pk>/', AssessmentDetailView.as_view(), name='assessment-detail'),
    path('assessments/<uuid:pk>/attempts/', AssessmentAttemptListView.as_view(), name='assessment-attempts'),
    path('assessments/<uuid:pk>/start/', AttemptStartView.as_view(), name='attempt-start'),

    # Attempts
    path('attempts/mine/', AttemptListView.as_view(), name='attempt-list'),
    path('attempts/<uuid:pk>/', AttemptDetailView.as_view(), name='attempt-detail'),
    path('attempts/<uuid:pk>/submit/', AttemptSubmitView.as_view(), name='attempt-submit'),

    # Credits
    path('credits/mine/', CreditSummaryView.as_view(), name='credit-summary'),
    path('credits/leaderboard/', LeaderboardView.as_view(), name='credit-leaderboard'),
]
