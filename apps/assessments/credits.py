"""
Credit formula, ledger and leaderboard.

The ledger is the only record of a student's credits; balances are
always summed from CreditTransaction rows.
"""
import logging
import math

from django.contrib.auth import get_user_model
from django.db.models import Sum
from django.db.models.functions import Coalesce

from .models import CreditTransaction

logger = logging.getLogger(__name__)

User = get_user_model()

# (minimum percentage, base credits), checked top-down
CREDIT_TIERS = [
    (90, 50),
    (80, 40),
    (70, 30),
    (60, 20),
]
MIN_CREDITS = 10

DIFFICULTY_MULTIPLIERS = {
    'easy': 1.0,
    'medium': 1.2,
    'hard': 1.5,
}

# (minimum balance, level), checked top-down
STUDENT_LEVELS = [
    (1000, 'Expert'),
    (500, 'Advanced'),
    (250, 'Intermediate'),
    (100, 'Novice'),
]
DEFAULT_LEVEL = 'Beginner'


def calculate_credits(percentage, difficulty):
    """
    Credits for a completed attempt.

    A NaN percentage fails every tier comparison and lands on MIN_CREDITS.
    Unknown difficulties use the easy multiplier.
    """
    base_credits = MIN_CREDITS
    for threshold, credits in CREDIT_TIERS:
        if percentage >= threshold:
            base_credits = credits
            break

    multiplier = DIFFICULTY_MULTIPLIERS.get(difficulty, 1.0)
    # Round half up
    return int(math.floor(base_credits * multiplier + 0.5))


def level_for_balance(balance):
    for threshold, level in STUDENT_LEVELS:
        if balance >= threshold:
            return level
    return DEFAULT_LEVEL


class CreditLedger:
    """Append-only access to CreditTransaction."""

    VALID_TYPES = {choice for choice, _ in CreditTransaction.TRANSACTION_TYPES}

    def award(self, student, amount, transaction_type, description, reference_id=''):
        if transaction_type not in self.VALID_TYPES:
            raise ValueError(f"Unknown credit transaction type: {transaction_type}")
        if amount <= 0:
            raise ValueError("Credit amount must be positive")

        transaction = CreditTransaction.objects.create(
            student=student,
            transaction_type=transaction_type,
            amount=amount,
            description=description,
            reference_id=str(reference_id or ''),
        )
        logger.info(
            "Awarded %s %s credits to student %s (%s)",
            amount, transaction_type, student.pk, description
        )
        return transaction

    def transactions(self, student, transaction_type=None):
        qs = CreditTransaction.objects.filter(student=student)
        if transaction_type:
            qs = qs.filter(transaction_type=transaction_type)
        return qs.order_by('-created_at')

    def balance(self, student):
        return self._total(CreditTransaction.objects.filter(student=student))

    def earned_since(self, student, since):
        return self._total(
            CreditTransaction.objects.filter(student=student, created_at__gte=since)
        )

    @staticmethod
    def _total(queryset):
        return queryset.aggregate(total=Coalesce(Sum('amount'), 0))['total']


def student_leaderboard(limit=10):
    """
    Students ranked by credit balance, highest first.

    Returns a list of dicts: student_id, name, credits, rank, level.
    """
    students = (
        User.objects.filter(role='student')
        .annotate(credits=Coalesce(Sum('credit_transactions__amount'), 0))
        .filter(credits__gt=0)
        .order_by('-credits', 'username')[:limit]
    )

    return [
        {
            'student_id': student.pk,
            'name': student.display_name,
            'credits': student.credits,
            'rank': index,
            'level': level_for_balance(student.credits),
        }
        for index, student in enumerate(students, start=1)
    ]
