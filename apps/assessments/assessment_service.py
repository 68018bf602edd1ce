import logging
from collections import defaultdict

from django.conf import settings
from django.db import transaction
from django.db.models import Avg

from .models import Assessment, AssessmentAttempt, Question

logger = logging.getLogger(__name__)

TOP_PERFORMERS = 5


@transaction.atomic
def create_assessment(*, teacher, questions, **fields):
    """
    Creates an assessment and its questions.

    total_points is the sum of question points. Questions without their own
    subject or grade level inherit the assessment's.
    """
    fields.setdefault('created_by_name', teacher.display_name)
    assessment = Assessment.objects.create(
        created_by=teacher,
        total_points=sum(q['points'] for q in questions),
        attempt_count=0,
        average_score=0,
        **fields
    )

    Question.objects.bulk_create([
        Question(
            assessment=assessment,
            order=q.get('order', index),
            subject=q.get('subject') or assessment.subject,
            grade_level=q.get('grade_level') or assessment.grade_level,
            **{k: v for k, v in q.items() if k not in ('order', 'subject', 'grade_level')}
        )
        for index, q in enumerate(questions, start=1)
    ])

    logger.info(
        "Teacher %s created assessment %s (%s questions, %s points)",
        teacher.pk, assessment.id, len(questions), assessment.total_points
    )
    return assessment


def all_assessments():
    return Assessment.objects.all()


def assessments_by_teacher(teacher):
    return Assessment.objects.filter(created_by=teacher)


def published_assessments():
    return Assessment.objects.filter(is_published=True)


def get_assessment(assessment_id):
    return Assessment.objects.filter(pk=assessment_id).first()


def attempts_for_student(student):
    return AssessmentAttempt.objects.filter(student=student).select_related('assessment')


def attempts_for_assessment(assessment):
    return AssessmentAttempt.objects.filter(assessment=assessment)


def recompute_assessment_stats(assessment):
    """
    Rescans the assessment's completed attempts and overwrites
    attempt_count and average_score (mean percentage).
    """
    completed = AssessmentAttempt.objects.filter(
        assessment=assessment,
        status=AssessmentAttempt.STATUS_COMPLETED
    )
    assessment.attempt_count = completed.count()
    assessment.average_score = completed.aggregate(avg=Avg('percentage'))['avg'] or 0.0
    assessment.save(update_fields=['attempt_count', 'average_score'])
    return assessment


def platform_stats():
    """
    Totals across all assessments and completed attempts.

    completion_rate is the share of completed attempts scoring at least
    ASSESSMENT_COMPLETION_THRESHOLD percent. top_performers holds up to five
    students ordered by their mean percentage.
    """
    threshold = getattr(settings, 'ASSESSMENT_COMPLETION_THRESHOLD', 60)
    attempts = list(
        AssessmentAttempt.objects.filter(
            status=AssessmentAttempt.STATUS_COMPLETED,
            percentage__isnull=False,
        ).values('student_id', 'student_name', 'percentage')
    )

    total_attempts = len(attempts)
    average_score = 0.0
    completion_rate = 0.0
    if total_attempts:
        average_score = sum(a['percentage'] for a in attempts) / total_attempts
        passed = sum(1 for a in attempts if a['percentage'] >= threshold)
        completion_rate = passed / total_attempts * 100

    by_student = defaultdict(lambda: {'name': '', 'scores': []})
    for attempt in attempts:
        entry = by_student[attempt['student_id']]
        entry['name'] = entry['name'] or attempt['student_name']
        entry['scores'].append(attempt['percentage'])

    performers = [
        {
            'student_id': student_id,
            'student_name': data['name'],
            'best_percentage': max(data['scores']),
            'average_percentage': sum(data['scores']) / len(data['scores']),
        }
        for student_id, data in by_student.items()
    ]
    performers.sort(key=lambda p: p['average_percentage'], reverse=True)

    return {
        'total_assessments': Assessment.objects.count(),
        'total_attempts': total_attempts,
        'average_score': average_score,
        'completion_rate': completion_rate,
        'top_performers': performers[:TOP_PERFORMERS],
    }
