from rest_framework import status, generics
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.authtoken.models import Token
from django.conf import settings
from django.contrib.auth import authenticate
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .models import Assessment, AssessmentAttempt, CreditTransaction
from .serializers import (
    UserRegistrationSerializer,
    AssessmentListSerializer,
    AssessmentDetailSerializer,
    AssessmentCreateSerializer,
    AttemptSubmitSerializer,
    AttemptListSerializer,
    AttemptDetailSerializer,
    CreditTransactionSerializer,
)
from . import assessment_service
from .attempt_service import AttemptService
from .credits import CreditLedger, student_leaderboard
from .exceptions import (
    AssessmentNotFound,
    AttemptAlreadySubmitted,
    AttemptInProgress,
    AttemptNotFound,
)
from .permissions import IsStudent, IsTeacher, IsTeacherOrReadOnly, IsAssessmentOwner, IsAttemptOwner


@extend_schema(tags=['Authentication'])
class RegisterView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = UserRegistrationSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            # Generate token for auto-login
            token, _ = Token.objects.get_or_create(user=user)
            return Response({
                'user_id': user.id,
                'username': user.username,
                'email': user.email,
                'role': user.role,
                'token': token.key
            }, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@extend_schema(tags=['Authentication'])
class LoginView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        username = request.data.get('username')
        password = request.data.get('password')

        if not username or not password:
            return Response(
                {'error': 'Username and password required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        user = authenticate(username=username, password=password)

        if user:
            token, _ = Token.objects.get_or_create(user=user)
            return Response({
                'token': token.key,
                'user_id': user.id,
                'username': user.username,
                'role': user.role
            })

        return Response(
            {'error': 'Invalid credentials'},
            status=status.HTTP_401_UNAUTHORIZED
        )


@extend_schema(tags=['Assessments'])
class AssessmentListCreateView(generics.ListCreateAPIView):
    """
    GET lists published assessments; POST creates one (teachers only).
    """
    permission_classes = [IsTeacherOrReadOnly]

    def get_queryset(self):
        return assessment_service.published_assessments().prefetch_related('questions')

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return AssessmentCreateSerializer
        return AssessmentListSerializer

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)


@extend_schema(tags=['Assessments'])
class TeacherAssessmentListView(generics.ListAPIView):
    """Assessments authored by the requesting teacher, drafts included."""
    permission_classes = [IsTeacher]
    serializer_class = AssessmentListSerializer

    def get_queryset(self):
        return assessment_service.assessments_by_teacher(self.request.user).prefetch_related('questions')


@extend_schema(tags=['Assessments'])
class AssessmentDetailView(generics.RetrieveAPIView):
    """Published assessments, plus drafts for their own author."""
    permission_classes = [IsAuthenticated]
    serializer_class = AssessmentDetailSerializer
    lookup_field = 'pk'

    def get_queryset(self):
        return (
            Assessment.objects
            .filter(Q(is_published=True) | Q(created_by=self.request.user))
            .prefetch_related('questions')
        )


@extend_schema(tags=['Assessments'])
class AssessmentStatsView(APIView):
    permission_classes = [IsTeacher]

    def get(self, request):
        return Response(assessment_service.platform_stats())


@extend_schema(tags=['Attempts'])
class AssessmentAttemptListView(generics.ListAPIView):
    """Every attempt on one assessment, visible to its author."""
    permission_classes = [IsTeacher, IsAssessmentOwner]
    serializer_class = AttemptListSerializer

    def get_queryset(self):
        assessment = get_object_or_404(Assessment, pk=self.kwargs['pk'])
        self.check_object_permissions(self.request, assessment)
        return assessment_service.attempts_for_assessment(assessment).select_related('assessment')


@extend_schema(tags=['Attempts'], request=None, responses=AttemptDetailSerializer)
class AttemptStartView(APIView):
    permission_classes = [IsStudent]

    def post(self, request, pk):
        try:
            attempt = AttemptService().start_attempt(pk, request.user)
        except AssessmentNotFound as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except AttemptInProgress as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(AttemptDetailSerializer(attempt).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=['Attempts'], request=AttemptSubmitSerializer, responses=AttemptDetailSerializer)
class AttemptSubmitView(APIView):
    """
    Submit answers for an in-progress attempt and return the graded result.

    Identity comes from request.user: another student's attempt id is
    reported as not found.
    """
    permission_classes = [IsStudent]

    def post(self, request, pk):
        serializer = AttemptSubmitSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            attempt = AttemptService().submit_attempt(
                pk,
                serializer.validated_data['answers'],
                student=request.user
            )
        except AttemptNotFound as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except AttemptAlreadySubmitted as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        attempt = AssessmentAttempt.objects.select_related('assessment').prefetch_related('answers').get(pk=attempt.pk)
        return Response(AttemptDetailSerializer(attempt).data)


@extend_schema(tags=['Attempts'])
class AttemptListView(generics.ListAPIView):
    """List the requesting student's own attempts."""
    permission_classes = [IsAuthenticated]
    serializer_class = AttemptListSerializer

    def get_queryset(self):
        return assessment_service.attempts_for_student(self.request.user)


@extend_schema(tags=['Attempts'])
class AttemptDetailView(generics.RetrieveAPIView):
    permission_classes = [IsAuthenticated, IsAttemptOwner]
    serializer_class = AttemptDetailSerializer
    lookup_field = 'pk'

    def get_queryset(self):
        return AssessmentAttempt.objects.select_related(
            'assessment'
        ).prefetch_related(
            'answers'
        )


@extend_schema(
    tags=['Credits'],
    parameters=[OpenApiParameter('type', str, description='Filter transactions by type')],
)
class CreditSummaryView(APIView):
    """Balance, this month's earnings and transaction history for the requesting user."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        transaction_type = request.query_params.get('type')
        valid_types = {choice for choice, _ in CreditTransaction.TRANSACTION_TYPES}
        if transaction_type and transaction_type not in valid_types:
            return Response(
                {'error': f'Unknown transaction type: {transaction_type}'},
                status=status.HTTP_400_BAD_REQUEST
            )

        ledger = CreditLedger()
        now = timezone.localtime()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        return Response({
            'balance': ledger.balance(request.user),
            'this_month': ledger.earned_since(request.user, month_start),
            'transactions': CreditTransactionSerializer(
                ledger.transactions(request.user, transaction_type), many=True
            ).data,
        })


@extend_schema(
    tags=['Credits'],
    parameters=[OpenApiParameter('limit', int, description='Number of students to return')],
)
class LeaderboardView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        default_limit = getattr(settings, 'LEADERBOARD_SIZE', 10)
        try:
            limit = int(request.query_params.get('limit', default_limit))
        except ValueError:
            return Response({'error': 'limit must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
        if limit < 1:
            return Response({'error': 'limit must be positive'}, status=status.HTTP_400_BAD_REQUEST)

        return Response(student_leaderboard(limit=limit))
