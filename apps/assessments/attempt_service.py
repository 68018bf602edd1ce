import logging
import math

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .assessment_service import get_assessment, recompute_assessment_stats
from .credits import CreditLedger, calculate_credits
from .exceptions import (
    AssessmentNotFound,
    AttemptAlreadySubmitted,
    AttemptInProgress,
    AttemptNotFound,
)
from .grading_service import GradingService, calculate_percentage
from .models import AssessmentAttempt, StudentAnswer

logger = logging.getLogger(__name__)


class AttemptService:
    """
    Start and submit assessment attempts.

    Submission grades the answers, persists the attempt, refreshes the
    assessment stats and appends the credit transaction inside a single
    database transaction, so either all four writes land or none do.
    """

    def __init__(self, grading_service=None, ledger=None):
        self.grading_service = grading_service or GradingService()
        self.ledger = ledger or CreditLedger()

    def start_attempt(self, assessment_id, student, student_name=None):
        assessment = get_assessment(assessment_id)
        # Drafts cannot be taken
        if assessment is None or not assessment.is_published:
            raise AssessmentNotFound(f"Assessment {assessment_id} not found")

        if getattr(settings, 'ASSESSMENT_EXCLUSIVE_ATTEMPTS', False):
            open_attempt = AssessmentAttempt.objects.filter(
                assessment=assessment,
                student=student,
                status=AssessmentAttempt.STATUS_IN_PROGRESS,
            ).exists()
            if open_attempt:
                raise AttemptInProgress("You already have an attempt in progress for this assessment")

        attempt = AssessmentAttempt.objects.create(
            assessment=assessment,
            student=student,
            student_name=student_name or student.display_name,
            started_at=timezone.now(),
            status=AssessmentAttempt.STATUS_IN_PROGRESS,
            score=0,
            percentage=0,
            time_spent=0,
            credits_earned=0,
        )
        logger.info("Student %s started attempt %s on assessment %s", student.pk, attempt.id, assessment.id)
        return attempt

    @transaction.atomic
    def submit_attempt(self, attempt_id, answers, student=None):
        """
        Grade and complete an in-progress attempt.

        answers: list of dicts with question_id, answer and optional
        time_spent. When student is given, attempts owned by anyone else
        are reported as not found.
        """
        attempt = (
            AssessmentAttempt.objects
            .select_for_update()
            .select_related('assessment')
            .filter(pk=attempt_id)
            .first()
        )
        if attempt is None or (student is not None and attempt.student_id != student.pk):
            raise AttemptNotFound("Attempt not found")
        if attempt.is_terminal:
            raise AttemptAlreadySubmitted(f"Attempt is already {attempt.status}")

        assessment = attempt.assessment
        result = self.grading_service.grade(assessment.questions.all(), answers)

        percentage = calculate_percentage(result.score, assessment.total_points)
        credits = calculate_credits(percentage, assessment.difficulty)

        ended_at = timezone.now()
        attempt.ended_at = ended_at
        attempt.status = AssessmentAttempt.STATUS_COMPLETED
        attempt.score = result.score
        attempt.percentage = None if math.isnan(percentage) else percentage
        attempt.time_spent = int((ended_at - attempt.started_at).total_seconds())
        attempt.credits_earned = credits
        attempt.save()

        StudentAnswer.objects.bulk_create([
            StudentAnswer(
                attempt=attempt,
                question_id=str(graded.question_id),
                answer=graded.answer,
                time_spent=graded.time_spent,
                is_correct=graded.is_correct,
                points_earned=graded.points_earned,
                feedback=graded.feedback,
                position=position,
            )
            for position, graded in enumerate(result.answers)
        ])

        recompute_assessment_stats(assessment)

        self.ledger.award(
            attempt.student,
            credits,
            'assessment',
            f"Assessment: {assessment.title}",
            reference_id=assessment.id,
        )

        logger.info(
            "Attempt %s completed: score=%s/%s credits=%s",
            attempt.id, result.score, assessment.total_points, credits
        )
        return attempt
