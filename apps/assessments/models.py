import uuid
from django.db import models
from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator
from django.utils import timezone


DIFFICULTY_CHOICES = [
    ('easy', 'Easy'),
    ('medium', 'Medium'),
    ('hard', 'Hard'),
]


class User(AbstractUser):
    # AbstractUser already has first_name and last_name
    # Credit balance is derived from CreditTransaction, never stored here
    ROLE_CHOICES = [
        ('student', 'Student'),
        ('teacher', 'Teacher'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='student')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['email'], name='users_email_idx'),
        ]

    @property
    def is_teacher(self):
        return self.role == 'teacher'

    @property
    def display_name(self):
        return self.get_full_name() or self.username


class Assessment(models.Model):
    """
    Teacher-authored quiz definition.

    total_points is computed from the questions when the assessment is
    created. attempt_count and average_score are derived fields, written
    only by the stats recomputation after each completed attempt.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    subject = models.CharField(max_length=100)
    grade_level = models.CharField(max_length=50)
    created_by = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='authored_assessments'
    )
    created_by_name = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    duration_minutes = models.IntegerField(validators=[MinValueValidator(1)])
    total_points = models.IntegerField(default=0)
    is_published = models.BooleanField(default=False)
    attempt_count = models.IntegerField(default=0)
    average_score = models.FloatField(default=0)
    difficulty = models.CharField(max_length=10, choices=DIFFICULTY_CHOICES, default='easy')
    tags = models.JSONField(default=list, blank=True)
    instructions = models.TextField(blank=True)

    class Meta:
        db_table = 'assessments'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['created_by'], name='assessments_author_idx'),
            models.Index(fields=['is_published'], name='assessments_published_idx'),
        ]

    def __str__(self):
        return f"{self.subject} - {self.title}"


class Question(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    QUESTION_TYPES = [
        ('multiple_choice', 'Multiple Choice'),
        ('true_false', 'True/False'),
        ('short_answer', 'Short Answer'),
        ('essay', 'Essay'),
    ]

    assessment = models.ForeignKey(
        Assessment,
        on_delete=models.CASCADE,
        related_name='questions'
    )
    question_type = models.CharField(max_length=20, choices=QUESTION_TYPES)
    question_text = models.TextField()
    # Only populated for multiple_choice
    options = models.JSONField(default=list, blank=True)
    # Option index for multiple_choice, text for everything else
    correct_answer = models.JSONField()
    explanation = models.TextField(blank=True)
    points = models.IntegerField(validators=[MinValueValidator(1)])
    difficulty = models.CharField(max_length=10, choices=DIFFICULTY_CHOICES, default='easy')
    subject = models.CharField(max_length=100, blank=True)
    grade_level = models.CharField(max_length=50, blank=True)
    tags = models.JSONField(default=list, blank=True)
    order = models.IntegerField(default=0)

    class Meta:
        db_table = 'questions'
        ordering = ['assessment', 'order']
        indexes = [
            models.Index(fields=['assessment', 'order'], name='questions_order_idx'),
        ]

    def __str__(self):
        return f"Q{self.order}: {self.question_text[:50]}"


class AssessmentAttempt(models.Model):
    """
    One student's run at an assessment.

    Starts in_progress and is mutated exactly once, at submission, when
    grading fills in score/percentage/credits and flips the status to
    completed. completed and abandoned are terminal.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_ABANDONED = 'abandoned'
    STATUS_CHOICES = [
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_ABANDONED, 'Abandoned'),
    ]
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_ABANDONED)

    assessment = models.ForeignKey(
        Assessment,
        on_delete=models.CASCADE,
        related_name='attempts'
    )
    student = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='assessment_attempts'
    )
    student_name = models.CharField(max_length=255, blank=True)
    started_at = models.DateTimeField(default=timezone.now)
    ended_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_IN_PROGRESS
    )
    score = models.IntegerField(default=0)
    # Null when the assessment has no points to divide by
    percentage = models.FloatField(null=True, blank=True, default=0)
    time_spent = models.IntegerField(default=0)
    credits_earned = models.IntegerField(default=0)
    feedback = models.TextField(blank=True)

    class Meta:
        db_table = 'assessment_attempts'
        ordering = ['-started_at']
        indexes = [
            models.Index(fields=['student', '-started_at'], name='attempts_student_idx'),
            models.Index(fields=['assessment', 'status'], name='attempts_status_idx'),
        ]

    def __str__(self):
        return f"{self.student_name or self.student_id} - {self.assessment.title}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class StudentAnswer(models.Model):
    """
    Individual response within an attempt.

    question_id is the reference the student submitted rather than a
    foreign key: answers pointing at unknown questions are kept, ungraded.
    is_correct and points_earned stay null until grading.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    attempt = models.ForeignKey(
        AssessmentAttempt,
        on_delete=models.CASCADE,
        related_name='answers'
    )
    question_id = models.CharField(max_length=64)
    answer = models.JSONField()
    time_spent = models.IntegerField(default=0)
    is_correct = models.BooleanField(null=True, blank=True)
    points_earned = models.IntegerField(null=True, blank=True)
    feedback = models.TextField(blank=True)
    position = models.IntegerField(default=0)

    class Meta:
        db_table = 'student_answers'
        ordering = ['attempt', 'position']
        constraints = [
            models.UniqueConstraint(
                fields=['attempt', 'question_id'],
                name='unique_attempt_question_answer'
            )
        ]

    def __str__(self):
        return f"Answer to {self.question_id} in {self.attempt_id}"


class CreditTransaction(models.Model):
    """
    Append-only ledger entry. A student's balance is the sum of their
    transaction amounts.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    TRANSACTION_TYPES = [
        ('upload', 'Upload'),
        ('approval', 'Approval'),
        ('quality_bonus', 'Quality Bonus'),
        ('view_bonus', 'View Bonus'),
        ('like_bonus', 'Like Bonus'),
        ('assessment', 'Assessment'),
    ]

    student = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='credit_transactions'
    )
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPES)
    amount = models.IntegerField(validators=[MinValueValidator(1)])
    description = models.CharField(max_length=255)
    reference_id = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'credit_transactions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['student', '-created_at'], name='credits_student_idx'),
            models.Index(fields=['transaction_type'], name='credits_type_idx'),
        ]

    def __str__(self):
        return f"+{self.amount} {self.transaction_type} for {self.student_id}"
