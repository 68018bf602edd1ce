"""
Unit tests covering grading, the attempt lifecycle, credits and the API.

Tests On:
- Per-type answer comparison and score aggregation
- Credit formula and the credit ledger
- Attempt start/submit, stats recomputation and transactional submit
- Authentication, permissions and request validation
"""
import math
import uuid
from datetime import timedelta
from unittest import mock

from django.test import SimpleTestCase, TestCase, override_settings
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status

from .assessment_service import (
    create_assessment,
    platform_stats,
    published_assessments,
    assessments_by_teacher,
)
from .attempt_service import AttemptService
from .credits import CreditLedger, calculate_credits, level_for_balance, student_leaderboard
from .exceptions import (
    AssessmentNotFound,
    AttemptAlreadySubmitted,
    AttemptInProgress,
    AttemptNotFound,
)
from .grading_service import (
    ExactMatchGrader,
    GeminiGrader,
    GradingService,
    calculate_percentage,
    grade_answers,
)
from .models import Assessment, AssessmentAttempt, CreditTransaction, Question, StudentAnswer

User = get_user_model()


def sample_questions():
    return [
        {
            'question_type': 'multiple_choice',
            'question_text': 'What is the value of x in 2x + 5 = 13?',
            'options': ['3', '4', '5', '6'],
            'correct_answer': 1,
            'points': 10,
        },
        {
            'question_type': 'true_false',
            'question_text': 'y = 2x + 3 is a linear function.',
            'correct_answer': 'true',
            'points': 5,
        },
    ]


def make_assessment(teacher, difficulty='easy', is_published=True, questions=None):
    return create_assessment(
        teacher=teacher,
        questions=questions or sample_questions(),
        title='Basic Algebra Quiz',
        subject='Mathematics',
        grade_level='9th Grade',
        duration_minutes=30,
        difficulty=difficulty,
        is_published=is_published,
    )


class GradingServiceTestCase(SimpleTestCase):
    """Test the exact-match comparison policy."""

    def setUp(self):
        self.grader = ExactMatchGrader()

    def _question(self, question_type, correct_answer, points=10, options=None):
        return Question(
            id=uuid.uuid4(),
            question_type=question_type,
            question_text='Question?',
            options=options or [],
            correct_answer=correct_answer,
            points=points,
        )

    def test_multiple_choice_grading(self):
        """Correct index earns full points, any other index earns zero."""
        question = self._question('multiple_choice', 1, options=['a', 'b', 'c'])

        result = self.grader.grade_answer(question, 1)
        self.assertTrue(result['is_correct'])
        self.assertEqual(result['points_earned'], 10)

        result = self.grader.grade_answer(question, 2)
        self.assertFalse(result['is_correct'])
        self.assertEqual(result['points_earned'], 0)

    def test_multiple_choice_requires_an_index(self):
        question = self._question('multiple_choice', 1, options=['a', 'b'])

        self.assertFalse(self.grader.grade_answer(question, '1')['is_correct'])
        self.assertFalse(self.grader.grade_answer(question, True)['is_correct'])

    def test_multiple_choice_accepts_integral_floats(self):
        question = self._question('multiple_choice', 1, options=['a', 'b', 'c'])

        self.assertTrue(self.grader.grade_answer(question, 1.0)['is_correct'])
        self.assertFalse(self.grader.grade_answer(question, 1.5)['is_correct'])
        self.assertFalse(self.grader.grade_answer(question, '1.0')['is_correct'])

    def test_true_false_is_case_insensitive(self):
        question = self._question('true_false', 'true', points=5)

        self.assertTrue(self.grader.grade_answer(question, 'True')['is_correct'])
        self.assertTrue(self.grader.grade_answer(question, True)['is_correct'])
        self.assertFalse(self.grader.grade_answer(question, 'false')['is_correct'])

    def test_short_answer_trims_and_ignores_case(self):
        question = self._question('short_answer', 'Paris')

        self.assertTrue(self.grader.grade_answer(question, ' Paris ')['is_correct'])
        self.assertTrue(self.grader.grade_answer(question, 'paris')['is_correct'])

        result = self.grader.grade_answer(question, 'Paris, France')
        self.assertFalse(result['is_correct'])
        self.assertEqual(result['points_earned'], 0)

    def test_essay_has_no_partial_credit(self):
        question = self._question('essay', 'Plants turn sunlight into glucose.', points=20)

        result = self.grader.grade_answer(question, 'Plants turn sunlight into sugar.')
        self.assertFalse(result['is_correct'])
        self.assertEqual(result['points_earned'], 0)

        result = self.grader.grade_answer(question, 'plants turn sunlight into glucose.')
        self.assertEqual(result['points_earned'], 20)

    def test_incorrect_feedback_uses_explanation(self):
        question = self._question('short_answer', 'Paris')
        question.explanation = 'Paris is the capital of France.'

        result = self.grader.grade_answer(question, 'Lyon')
        self.assertEqual(result['feedback'], 'Paris is the capital of France.')

    def test_grade_totals_score_and_skips_unknown_questions(self):
        mc = self._question('multiple_choice', 1, points=10, options=['a', 'b'])
        tf = self._question('true_false', 'true', points=5)
        unknown_id = uuid.uuid4()

        result = GradingService(grader=self.grader).grade(
            [mc, tf],
            [
                {'question_id': tf.id, 'answer': 'TRUE', 'time_spent': 4},
                {'question_id': unknown_id, 'answer': 'anything'},
                {'question_id': str(mc.id), 'answer': 0},
            ]
        )

        self.assertEqual(result.score, 5)
        self.assertEqual([a.question_id for a in result.answers], [tf.id, unknown_id, str(mc.id)])

        tf_answer, skipped, mc_answer = result.answers
        self.assertTrue(tf_answer.is_correct)
        self.assertEqual(tf_answer.points_earned, 5)
        self.assertEqual(tf_answer.time_spent, 4)
        self.assertFalse(skipped.is_graded)
        self.assertIsNone(skipped.is_correct)
        self.assertEqual(mc_answer.points_earned, 0)

    def test_grade_answers_with_explicit_grader(self):
        tf = self._question('true_false', 'false', points=5)
        grader = mock.Mock()
        grader.grade_answer.return_value = {'is_correct': True, 'points_earned': 5, 'feedback': 'ok'}

        result = grade_answers([tf], [{'question_id': tf.id, 'answer': 'true'}], grader)

        grader.grade_answer.assert_called_once_with(tf, 'true')
        self.assertEqual(result.score, 5)
        self.assertEqual(result.answers[0].feedback, 'ok')

    @override_settings(GRADER_TYPE='exact')
    def test_grade_answers_defaults_to_configured_grader(self):
        tf = self._question('true_false', 'false', points=5)

        result = grade_answers([tf], [{'question_id': tf.id, 'answer': 'true'}])

        self.assertEqual(result.score, 0)
        self.assertFalse(result.answers[0].is_correct)

    def test_percentage(self):
        self.assertEqual(calculate_percentage(15, 15), 100)
        self.assertEqual(calculate_percentage(5, 20), 25)
        self.assertTrue(math.isnan(calculate_percentage(0, 0)))

    @override_settings(GRADER_TYPE='exact')
    def test_default_grader_is_exact_match(self):
        self.assertIsInstance(GradingService().grader, ExactMatchGrader)


class GeminiGraderTestCase(SimpleTestCase):
    """Test LLM-judged grading and its fallback."""

    def setUp(self):
        self.model = mock.Mock()
        self.grader = GeminiGrader(model=self.model)
        self.essay = Question(
            id=uuid.uuid4(),
            question_type='essay',
            question_text='Explain photosynthesis',
            correct_answer='Plants convert light into chemical energy.',
            points=20,
        )

    def test_model_judgement_awards_full_points(self):
        self.model.generate_content.return_value = mock.Mock(
            text='```json\n{"is_correct": true, "feedback": "Covers the key idea."}\n```'
        )

        result = self.grader.grade_answer(self.essay, 'Light energy becomes glucose in plants.')
        self.assertTrue(result['is_correct'])
        self.assertEqual(result['points_earned'], 20)
        self.assertEqual(result['feedback'], 'Covers the key idea.')

    def test_api_failure_falls_back_to_exact_match(self):
        self.model.generate_content.side_effect = RuntimeError('quota exceeded')

        result = self.grader.grade_answer(self.essay, 'Something else entirely')
        self.assertFalse(result['is_correct'])
        self.assertEqual(result['points_earned'], 0)

    def test_malformed_response_falls_back(self):
        self.model.generate_content.return_value = mock.Mock(text='{"is_correct": "maybe"}')

        result = self.grader.grade_answer(self.essay, 'plants convert light into chemical energy.')
        self.assertTrue(result['is_correct'])
        self.assertEqual(result['points_earned'], 20)

    def test_choice_questions_skip_the_model(self):
        question = Question(
            id=uuid.uuid4(),
            question_type='multiple_choice',
            options=['a', 'b'],
            correct_answer=0,
            points=5,
        )

        result = self.grader.grade_answer(question, 0)
        self.assertEqual(result['points_earned'], 5)
        self.model.generate_content.assert_not_called()


class CreditFormulaTestCase(SimpleTestCase):

    def test_tiers_and_multipliers(self):
        self.assertEqual(calculate_credits(90, 'hard'), 75)
        self.assertEqual(calculate_credits(55, 'easy'), 10)
        self.assertEqual(calculate_credits(72, 'medium'), 36)
        self.assertEqual(calculate_credits(100, 'easy'), 50)
        self.assertEqual(calculate_credits(80, 'easy'), 40)
        self.assertEqual(calculate_credits(60, 'hard'), 30)
        self.assertEqual(calculate_credits(59.99, 'medium'), 12)

    def test_nan_and_unknown_difficulty(self):
        self.assertEqual(calculate_credits(math.nan, 'hard'), 15)
        self.assertEqual(calculate_credits(95, 'extreme'), 50)

    def test_levels(self):
        self.assertEqual(level_for_balance(0), 'Beginner')
        self.assertEqual(level_for_balance(100), 'Novice')
        self.assertEqual(level_for_balance(250), 'Intermediate')
        self.assertEqual(level_for_balance(999), 'Advanced')
        self.assertEqual(level_for_balance(1000), 'Expert')


class AttemptServiceTestCase(TestCase):
    """Test the start/submit lifecycle."""

    def setUp(self):
        self.teacher = User.objects.create_user(
            username='teacher', password='pass12345', role='teacher',
            first_name='Demo', last_name='Teacher'
        )
        self.student = User.objects.create_user(
            username='student1', password='pass12345',
            first_name='Alice', last_name='Johnson'
        )
        self.assessment = make_assessment(self.teacher)
        self.q1, self.q2 = self.assessment.questions.order_by('order')
        self.service = AttemptService()

    def _answers(self, first, second):
        return [
            {'question_id': self.q1.id, 'answer': first, 'time_spent': 12},
            {'question_id': self.q2.id, 'answer': second, 'time_spent': 3},
        ]

    def test_total_points_computed_at_creation(self):
        self.assertEqual(self.assessment.total_points, 15)
        self.assertEqual(self.assessment.attempt_count, 0)
        self.assertEqual(self.assessment.created_by_name, 'Demo Teacher')
        self.assertEqual(self.q1.subject, 'Mathematics')

    def test_start_attempt(self):
        attempt = self.service.start_attempt(self.assessment.id, self.student)

        self.assertEqual(attempt.status, AssessmentAttempt.STATUS_IN_PROGRESS)
        self.assertEqual(attempt.score, 0)
        self.assertEqual(attempt.student_name, 'Alice Johnson')
        self.assertFalse(attempt.answers.exists())
        self.assertIsNone(attempt.ended_at)

    def test_start_unknown_assessment(self):
        with self.assertRaises(AssessmentNotFound):
            self.service.start_attempt(uuid.uuid4(), self.student)

    def test_draft_cannot_be_started(self):
        draft = make_assessment(self.teacher, is_published=False)

        with self.assertRaises(AssessmentNotFound):
            self.service.start_attempt(draft.id, self.student)
        self.assertFalse(AssessmentAttempt.objects.exists())

    def test_concurrent_attempts_allowed_by_default(self):
        self.service.start_attempt(self.assessment.id, self.student)
        self.service.start_attempt(self.assessment.id, self.student)

        self.assertEqual(
            AssessmentAttempt.objects.filter(student=self.student, status='in_progress').count(), 2
        )

    @override_settings(ASSESSMENT_EXCLUSIVE_ATTEMPTS=True)
    def test_exclusive_attempts(self):
        self.service.start_attempt(self.assessment.id, self.student)

        with self.assertRaises(AttemptInProgress):
            self.service.start_attempt(self.assessment.id, self.student)

    def test_full_marks_scenario(self):
        attempt = self.service.start_attempt(self.assessment.id, self.student)
        attempt = self.service.submit_attempt(attempt.id, self._answers(1, 'true'))

        self.assertEqual(attempt.status, AssessmentAttempt.STATUS_COMPLETED)
        self.assertEqual(attempt.score, 15)
        self.assertEqual(attempt.percentage, 100)
        self.assertEqual(attempt.credits_earned, 50)
        self.assertIsNotNone(attempt.ended_at)

        answers = list(attempt.answers.all())
        self.assertEqual([a.points_earned for a in answers], [10, 5])
        self.assertTrue(all(a.is_correct for a in answers))
        self.assertEqual(sum(a.points_earned for a in answers), attempt.score)

        transaction = CreditTransaction.objects.get(student=self.student)
        self.assertEqual(transaction.transaction_type, 'assessment')
        self.assertEqual(transaction.amount, 50)
        self.assertEqual(transaction.description, 'Assessment: Basic Algebra Quiz')
        self.assertEqual(transaction.reference_id, str(self.assessment.id))

        self.assessment.refresh_from_db()
        self.assertEqual(self.assessment.attempt_count, 1)
        self.assertEqual(self.assessment.average_score, 100)

    def test_zero_score_scenario(self):
        attempt = self.service.start_attempt(self.assessment.id, self.student)
        attempt = self.service.submit_attempt(attempt.id, self._answers(0, 'false'))

        self.assertEqual(attempt.score, 0)
        self.assertEqual(attempt.percentage, 0)
        self.assertEqual(attempt.credits_earned, 10)
        self.assertEqual(CreditLedger().balance(self.student), 10)

    def test_difficulty_multiplier_applied(self):
        hard = make_assessment(self.teacher, difficulty='hard')
        q1, q2 = hard.questions.order_by('order')
        attempt = self.service.start_attempt(hard.id, self.student)

        attempt = self.service.submit_attempt(attempt.id, [
            {'question_id': q1.id, 'answer': 1},
            {'question_id': q2.id, 'answer': 'True'},
        ])
        self.assertEqual(attempt.credits_earned, 75)

    def test_unknown_attempt_writes_nothing(self):
        self.service.start_attempt(self.assessment.id, self.student)

        with self.assertRaises(AttemptNotFound):
            self.service.submit_attempt(uuid.uuid4(), self._answers(1, 'true'))

        self.assertEqual(AssessmentAttempt.objects.count(), 1)
        self.assertEqual(CreditTransaction.objects.count(), 0)
        self.assertEqual(StudentAnswer.objects.count(), 0)

    def test_attempt_of_another_student_is_not_found(self):
        other = User.objects.create_user(username='student2', password='pass12345')
        attempt = self.service.start_attempt(self.assessment.id, self.student)

        with self.assertRaises(AttemptNotFound):
            self.service.submit_attempt(attempt.id, self._answers(1, 'true'), student=other)

    def test_completed_attempt_cannot_be_resubmitted(self):
        attempt = self.service.start_attempt(self.assessment.id, self.student)
        self.service.submit_attempt(attempt.id, self._answers(0, 'false'))

        with self.assertRaises(AttemptAlreadySubmitted):
            self.service.submit_attempt(attempt.id, self._answers(1, 'true'))

        attempt.refresh_from_db()
        self.assertEqual(attempt.score, 0)
        self.assertEqual(CreditTransaction.objects.count(), 1)

    def test_unknown_question_is_stored_ungraded(self):
        attempt = self.service.start_attempt(self.assessment.id, self.student)
        stray_id = uuid.uuid4()

        attempt = self.service.submit_attempt(attempt.id, [
            {'question_id': self.q1.id, 'answer': 1},
            {'question_id': stray_id, 'answer': 'extra'},
            {'question_id': 'q-legacy', 'answer': 'B'},
        ])

        self.assertEqual(attempt.score, 10)
        self.assertEqual(attempt.answers.count(), 3)
        for reference in (str(stray_id), 'q-legacy'):
            stray = attempt.answers.get(question_id=reference)
            self.assertIsNone(stray.is_correct)
            self.assertIsNone(stray.points_earned)

        graded = attempt.answers.get(question_id=str(self.q1.id))
        self.assertTrue(graded.is_correct)
        self.assertEqual(graded.points_earned, 10)

    def test_assessment_without_points(self):
        assessment = create_assessment(
            teacher=self.teacher,
            questions=[],
            title='Empty Quiz',
            subject='Mathematics',
            grade_level='9th Grade',
            duration_minutes=30,
            is_published=True,
        )
        self.assertEqual(assessment.total_points, 0)

        attempt = self.service.start_attempt(assessment.id, self.student)
        attempt = self.service.submit_attempt(attempt.id, [])

        self.assertEqual(attempt.status, AssessmentAttempt.STATUS_COMPLETED)
        self.assertIsNone(attempt.percentage)
        self.assertEqual(attempt.credits_earned, 10)
        self.assertEqual(CreditLedger().balance(self.student), 10)

        assessment.refresh_from_db()
        self.assertEqual(assessment.attempt_count, 1)
        self.assertEqual(assessment.average_score, 0.0)

    def test_partial_submission(self):
        attempt = self.service.start_attempt(self.assessment.id, self.student)
        attempt = self.service.submit_attempt(attempt.id, [])

        self.assertEqual(attempt.status, AssessmentAttempt.STATUS_COMPLETED)
        self.assertEqual(attempt.score, 0)
        self.assertEqual(attempt.credits_earned, 10)

    def test_time_spent_is_wall_clock(self):
        attempt = self.service.start_attempt(self.assessment.id, self.student)
        attempt.started_at = timezone.now() - timedelta(seconds=90)
        attempt.save()

        attempt = self.service.submit_attempt(attempt.id, self._answers(1, 'true'))
        self.assertGreaterEqual(attempt.time_spent, 90)
        self.assertLess(attempt.time_spent, 120)

    def test_stats_average_over_completed_attempts(self):
        first = self.service.start_attempt(self.assessment.id, self.student)
        second = self.service.start_attempt(self.assessment.id, self.student)
        self.service.start_attempt(self.assessment.id, self.student)

        self.service.submit_attempt(first.id, self._answers(1, 'true'))
        self.service.submit_attempt(second.id, self._answers(0, 'false'))

        self.assessment.refresh_from_db()
        self.assertEqual(self.assessment.attempt_count, 2)
        self.assertEqual(self.assessment.average_score, 50)

    def test_failed_credit_award_rolls_back_submission(self):
        ledger = mock.Mock()
        ledger.award.side_effect = RuntimeError('ledger unavailable')
        service = AttemptService(ledger=ledger)
        attempt = service.start_attempt(self.assessment.id, self.student)

        with self.assertRaises(RuntimeError):
            service.submit_attempt(attempt.id, self._answers(1, 'true'))

        attempt.refresh_from_db()
        self.assessment.refresh_from_db()
        self.assertEqual(attempt.status, AssessmentAttempt.STATUS_IN_PROGRESS)
        self.assertFalse(attempt.answers.exists())
        self.assertEqual(self.assessment.attempt_count, 0)


class CreditLedgerTestCase(TestCase):

    def setUp(self):
        self.ledger = CreditLedger()
        self.alice = User.objects.create_user(
            username='alice', password='pass12345', first_name='Alice', last_name='Johnson'
        )
        self.bob = User.objects.create_user(username='bob', password='pass12345')
        self.teacher = User.objects.create_user(username='teacher', password='pass12345', role='teacher')

    def test_rejects_invalid_awards(self):
        with self.assertRaises(ValueError):
            self.ledger.award(self.alice, 0, 'upload', 'Nothing')
        with self.assertRaises(ValueError):
            self.ledger.award(self.alice, 10, 'gift', 'Unknown type')
        self.assertEqual(CreditTransaction.objects.count(), 0)

    def test_balance_is_sum_of_transactions(self):
        self.ledger.award(self.alice, 20, 'upload', 'Video upload submitted', reference_id='upload-1')
        self.ledger.award(self.alice, 30, 'approval', 'Video approved by moderator', reference_id='upload-1')
        self.ledger.award(self.bob, 5, 'like_bonus', 'Likes')

        self.assertEqual(self.ledger.balance(self.alice), 50)
        self.assertEqual(self.ledger.balance(self.teacher), 0)
        self.assertEqual(self.ledger.transactions(self.alice, 'upload').count(), 1)
        self.assertEqual(self.ledger.transactions(self.alice).count(), 2)

    def test_earned_since(self):
        old = self.ledger.award(self.alice, 40, 'assessment', 'Assessment: Old')
        old.created_at = timezone.now() - timedelta(days=45)
        old.save()
        self.ledger.award(self.alice, 10, 'assessment', 'Assessment: New')

        since = timezone.now() - timedelta(days=30)
        self.assertEqual(self.ledger.earned_since(self.alice, since), 10)

    def test_leaderboard_ranks_students_by_balance(self):
        self.ledger.award(self.alice, 120, 'assessment', 'Assessment: A')
        self.ledger.award(self.bob, 300, 'assessment', 'Assessment: B')
        self.ledger.award(self.teacher, 500, 'upload', 'Teacher upload')

        board = student_leaderboard(limit=10)

        self.assertEqual([row['student_id'] for row in board], [self.bob.pk, self.alice.pk])
        self.assertEqual(board[0]['rank'], 1)
        self.assertEqual(board[0]['level'], 'Intermediate')
        self.assertEqual(board[1]['name'], 'Alice Johnson')
        self.assertEqual(board[1]['level'], 'Novice')
        self.assertEqual(len(student_leaderboard(limit=1)), 1)


class AssessmentStoreTestCase(TestCase):

    def setUp(self):
        self.teacher = User.objects.create_user(username='teacher', password='pass12345', role='teacher')
        self.other_teacher = User.objects.create_user(username='teacher2', password='pass12345', role='teacher')
        self.published = make_assessment(self.teacher)
        self.draft = make_assessment(self.teacher, is_published=False)
        self.foreign = make_assessment(self.other_teacher)

    def test_queries(self):
        self.assertEqual(set(published_assessments()), {self.published, self.foreign})
        self.assertEqual(set(assessments_by_teacher(self.teacher)), {self.published, self.draft})

    def test_platform_stats(self):
        service = AttemptService()
        alice = User.objects.create_user(username='alice', password='pass12345')
        bob = User.objects.create_user(username='bob', password='pass12345')
        q1, q2 = self.published.questions.order_by('order')

        for student, answers in [
            (alice, [{'question_id': q1.id, 'answer': 1}, {'question_id': q2.id, 'answer': 'true'}]),
            (alice, [{'question_id': q1.id, 'answer': 1}]),
            (bob, [{'question_id': q2.id, 'answer': 'true'}]),
        ]:
            attempt = service.start_attempt(self.published.id, student)
            service.submit_attempt(attempt.id, answers)
        service.start_attempt(self.published.id, bob)

        stats = platform_stats()

        self.assertEqual(stats['total_assessments'], 3)
        self.assertEqual(stats['total_attempts'], 3)
        self.assertAlmostEqual(stats['average_score'], (100 + 200 / 3 + 100 / 3) / 3)
        self.assertAlmostEqual(stats['completion_rate'], 200 / 3)

        top = stats['top_performers']
        self.assertEqual([p['student_id'] for p in top], [alice.pk, bob.pk])
        self.assertEqual(top[0]['best_percentage'], 100)
        self.assertAlmostEqual(top[0]['average_percentage'], (100 + 200 / 3) / 2)


class AuthenticationTestCase(APITestCase):
    """Test authentication flows."""

    def test_user_registration(self):
        """Test a teacher can register and receive a token."""
        data = {
            'username': 'testteacher',
            'email': 'test@example.com',
            'password': 'securepass123',
            'first_name': 'Test',
            'last_name': 'Teacher',
            'role': 'teacher'
        }
        response = self.client.post('/api/auth/register/', data)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('token', response.data)
        self.assertEqual(User.objects.get(username='testteacher').role, 'teacher')

    def test_user_login(self):
        User.objects.create_user(
            username='testuser',
            email='test@example.com',
            password='testpass123'
        )
        data = {'username': 'testuser', 'password': 'testpass123'}
        response = self.client.post('/api/auth/login/', data)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('token', response.data)
        self.assertEqual(response.data['role'], 'student')

    def test_invalid_login(self):
        response = self.client.post('/api/auth/login/', {'username': 'nobody', 'password': 'wrong'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AssessmentAPITestCase(APITestCase):
    """Test assessment authoring and browsing."""

    def setUp(self):
        self.teacher = User.objects.create_user(username='teacher', password='pass12345', role='teacher')
        self.student = User.objects.create_user(username='student1', password='pass12345')
        self.payload = {
            'title': 'Basic Algebra Quiz',
            'subject': 'Mathematics',
            'grade_level': '9th Grade',
            'duration_minutes': 30,
            'difficulty': 'medium',
            'is_published': True,
            'tags': ['algebra'],
            'questions': [
                {
                    'question_type': 'multiple_choice',
                    'question_text': 'What is x in 2x + 5 = 13?',
                    'options': ['3', '4', '5', '6'],
                    'correct_answer': 1,
                    'points': 10,
                },
                {
                    'question_type': 'true_false',
                    'question_text': 'y = 2x + 3 is linear.',
                    'correct_answer': 'True',
                    'points': 5,
                },
            ],
        }

    def test_teacher_creates_assessment(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post('/api/assessments/', self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_points'], 15)
        self.assertEqual(len(response.data['questions']), 2)
        self.assertNotIn('correct_answer', response.data['questions'][0])

        assessment = Assessment.objects.get(pk=response.data['id'])
        self.assertEqual(assessment.created_by, self.teacher)
        tf = assessment.questions.get(question_type='true_false')
        self.assertEqual(tf.correct_answer, 'true')

    def test_student_cannot_create_assessment(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.post('/api/assessments/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_assessment_needs_questions(self):
        self.client.force_authenticate(user=self.teacher)
        self.payload['questions'] = []
        response = self.client.post('/api/assessments/', self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('questions', response.data)

    def test_assessment_needs_title(self):
        self.client.force_authenticate(user=self.teacher)
        self.payload['title'] = '   '
        response = self.client.post('/api/assessments/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_multiple_choice_index_must_be_in_range(self):
        self.client.force_authenticate(user=self.teacher)
        self.payload['questions'][0]['correct_answer'] = 4
        response = self.client.post('/api/assessments/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_shows_published_and_mine_shows_drafts(self):
        make_assessment(self.teacher, is_published=True)
        draft = make_assessment(self.teacher, is_published=False)

        self.client.force_authenticate(user=self.student)
        response = self.client.get('/api/assessments/')
        self.assertEqual(response.data['count'], 1)

        self.client.force_authenticate(user=self.teacher)
        response = self.client.get('/api/assessments/mine/')
        self.assertEqual(response.data['count'], 2)
        self.assertIn(str(draft.id), [row['id'] for row in response.data['results']])

    def test_detail_hides_answers(self):
        assessment = make_assessment(self.teacher)
        self.client.force_authenticate(user=self.student)
        response = self.client.get(f'/api/assessments/{assessment.id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        for question in response.data['questions']:
            self.assertNotIn('correct_answer', question)
            self.assertNotIn('explanation', question)

    def test_draft_detail_visible_to_author_only(self):
        draft = make_assessment(self.teacher, is_published=False)

        self.client.force_authenticate(user=self.student)
        response = self.client.get(f'/api/assessments/{draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        other_teacher = User.objects.create_user(username='teacher2', password='pass12345', role='teacher')
        self.client.force_authenticate(user=other_teacher)
        response = self.client.get(f'/api/assessments/{draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        self.client.force_authenticate(user=self.teacher)
        response = self.client.get(f'/api/assessments/{draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_published'])

    def test_stats_are_teacher_only(self):
        self.client.force_authenticate(user=self.student)
        self.assertEqual(self.client.get('/api/assessments/stats/').status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.teacher)
        response = self.client.get('/api/assessments/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_attempts'], 0)


class AttemptAPITestCase(APITestCase):
    """Test the attempt flow and its security."""

    def setUp(self):
        self.teacher = User.objects.create_user(username='teacher', password='pass12345', role='teacher')
        self.student = User.objects.create_user(username='student1', password='pass12345')
        self.other_student = User.objects.create_user(username='student2', password='pass12345')
        self.assessment = make_assessment(self.teacher)
        self.q1, self.q2 = self.assessment.questions.order_by('order')

    def _start(self, user):
        self.client.force_authenticate(user=user)
        response = self.client.post(f'/api/assessments/{self.assessment.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data['id']

    def _submission(self, first=1, second='true'):
        return {
            'answers': [
                {'question_id': str(self.q1.id), 'answer': first, 'time_spent': 20},
                {'question_id': str(self.q2.id), 'answer': second},
            ]
        }

    def test_start_and_submit(self):
        attempt_id = self._start(self.student)

        response = self.client.post(f'/api/attempts/{attempt_id}/submit/', self._submission(), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['score'], 15)
        self.assertEqual(response.data['percentage'], 100)
        self.assertEqual(response.data['credits_earned'], 50)
        self.assertEqual(len(response.data['answers']), 2)

        response = self.client.get('/api/credits/mine/')
        self.assertEqual(response.data['balance'], 50)
        self.assertEqual(response.data['this_month'], 50)
        self.assertEqual(response.data['transactions'][0]['transaction_type'], 'assessment')

    def test_start_unknown_assessment(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.post(f'/api/assessments/{uuid.uuid4()}/start/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_draft_cannot_be_started(self):
        draft = make_assessment(self.teacher, is_published=False)

        self.client.force_authenticate(user=self.student)
        response = self.client.post(f'/api/assessments/{draft.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(AssessmentAttempt.objects.exists())

    def test_teachers_cannot_take_assessments(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(f'/api/assessments/{self.assessment.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(AssessmentAttempt.objects.exists())

        attempt_id = self._start(self.student)
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(f'/api/attempts/{attempt_id}/submit/', self._submission(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(CreditTransaction.objects.count(), 0)

    def test_unrecognised_question_reference_is_stored_ungraded(self):
        attempt_id = self._start(self.student)
        payload = self._submission()
        payload['answers'].append({'question_id': 'q-legacy', 'answer': 'B'})

        response = self.client.post(f'/api/attempts/{attempt_id}/submit/', payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['score'], 15)
        answers = {a['question_id']: a for a in response.data['answers']}
        self.assertIsNone(answers['q-legacy']['is_correct'])
        self.assertIsNone(answers['q-legacy']['points_earned'])
        self.assertEqual(answers[str(self.q1.id)]['points_earned'], 10)

    def test_submit_unknown_attempt(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.post(f'/api/attempts/{uuid.uuid4()}/submit/', self._submission(), format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(CreditTransaction.objects.count(), 0)

    def test_resubmission_is_rejected(self):
        attempt_id = self._start(self.student)
        self.client.post(f'/api/attempts/{attempt_id}/submit/', self._submission(), format='json')

        response = self.client.post(f'/api/attempts/{attempt_id}/submit/', self._submission(), format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_duplicate_answers_rejected(self):
        attempt_id = self._start(self.student)
        payload = {
            'answers': [
                {'question_id': str(self.q1.id), 'answer': 1},
                {'question_id': str(self.q1.id), 'answer': 2},
            ]
        }
        response = self.client.post(f'/api/attempts/{attempt_id}/submit/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_submit_other_student_attempt(self):
        attempt_id = self._start(self.student)

        self.client.force_authenticate(user=self.other_student)
        response = self.client.post(f'/api/attempts/{attempt_id}/submit/', self._submission(), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_cannot_view_other_student_attempt(self):
        attempt_id = self._start(self.student)

        self.client.force_authenticate(user=self.other_student)
        response = self.client.get(f'/api/attempts/{attempt_id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.teacher)
        response = self.client.get(f'/api/attempts/{attempt_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_assessment_attempts_visible_to_author_only(self):
        self._start(self.student)
        other_teacher = User.objects.create_user(username='teacher2', password='pass12345', role='teacher')

        self.client.force_authenticate(user=other_teacher)
        response = self.client.get(f'/api/assessments/{self.assessment.id}/attempts/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.teacher)
        response = self.client.get(f'/api/assessments/{self.assessment.id}/attempts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_my_attempts(self):
        self._start(self.student)
        self._start(self.other_student)

        self.client.force_authenticate(user=self.student)
        response = self.client.get('/api/attempts/mine/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['assessment_title'], 'Basic Algebra Quiz')

    def test_credit_history_filter(self):
        CreditLedger().award(self.student, 20, 'upload', 'Video upload submitted')
        attempt_id = self._start(self.student)
        self.client.post(f'/api/attempts/{attempt_id}/submit/', self._submission(0, 'false'), format='json')

        response = self.client.get('/api/credits/mine/', {'type': 'upload'})
        self.assertEqual(response.data['balance'], 30)
        self.assertEqual(len(response.data['transactions']), 1)

        response = self.client.get('/api/credits/mine/', {'type': 'bogus'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_leaderboard(self):
        attempt_id = self._start(self.student)
        self.client.post(f'/api/attempts/{attempt_id}/submit/', self._submission(), format='json')

        response = self.client.get('/api/credits/leaderboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['student_id'], self.student.pk)
        self.assertEqual(response.data[0]['credits'], 50)

        response = self.client.get('/api/credits/leaderboard/', {'limit': 'x'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
