from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from apps.assessments.assessment_service import create_assessment
from apps.assessments.models import Assessment

User = get_user_model()


SAMPLE_ASSESSMENTS = [
    {
        'title': 'Basic Algebra Quiz',
        'description': 'Test your understanding of basic algebraic concepts',
        'subject': 'Mathematics',
        'grade_level': '9th Grade',
        'duration_minutes': 30,
        'is_published': True,
        'difficulty': 'easy',
        'tags': ['algebra', 'equations', 'variables'],
        'instructions': 'Answer all questions to the best of your ability. You have 30 minutes to complete this quiz.',
        'questions': [
            {
                'question_type': 'multiple_choice',
                'question_text': 'What is the value of x in the equation 2x + 5 = 13?',
                'options': ['3', '4', '5', '6'],
                'correct_answer': 1,
                'explanation': '2x + 5 = 13, so 2x = 8, therefore x = 4',
                'points': 10,
                'difficulty': 'easy',
                'tags': ['algebra', 'equations'],
            },
            {
                'question_type': 'true_false',
                'question_text': 'The equation y = 2x + 3 represents a linear function.',
                'correct_answer': 'true',
                'explanation': 'Yes, this is a linear function because it has the form y = mx + b',
                'points': 5,
                'difficulty': 'easy',
                'tags': ['linear', 'functions'],
            },
        ],
    },
    {
        'title': 'Science Fundamentals',
        'description': 'Basic concepts in physics and chemistry',
        'subject': 'Science',
        'grade_level': '10th Grade',
        'duration_minutes': 45,
        'is_published': True,
        'difficulty': 'medium',
        'tags': ['physics', 'chemistry', 'fundamentals'],
        'instructions': 'This assessment covers basic physics and chemistry concepts. Read each question carefully.',
        'questions': [
            {
                'question_type': 'multiple_choice',
                'question_text': 'What is the chemical symbol for water?',
                'options': ['H2O', 'CO2', 'NaCl', 'O2'],
                'correct_answer': 0,
                'explanation': 'Water is composed of two hydrogen atoms and one oxygen atom: H2O',
                'points': 5,
                'difficulty': 'easy',
                'tags': ['chemistry', 'molecules'],
            },
        ],
    },
]


class Command(BaseCommand):
    help = 'Creates demo users and sample assessments for trying the API'

    def handle(self, *args, **kwargs):
        self.stdout.write('Creating sample data...')

        teacher = User.objects.filter(username='teacher-demo').first()
        if teacher is None:
            teacher = User.objects.create_user(
                username='teacher-demo',
                email='teacher@test.com',
                password='testpass123',
                first_name='Demo',
                last_name='Teacher',
                role='teacher'
            )
            self.stdout.write(self.style.SUCCESS('Created user: teacher-demo'))

        if not User.objects.filter(username='student1').exists():
            User.objects.create_user(
                username='student1',
                email='student1@test.com',
                password='testpass123',
                first_name='Alice',
                last_name='Johnson',
                role='student'
            )
            self.stdout.write(self.style.SUCCESS('Created user: student1'))

        for sample in SAMPLE_ASSESSMENTS:
            if Assessment.objects.filter(title=sample['title'], created_by=teacher).exists():
                self.stdout.write(f"Skipping existing assessment: {sample['title']}")
                continue

            fields = {k: v for k, v in sample.items() if k != 'questions'}
            questions = [dict(q) for q in sample['questions']]
            assessment = create_assessment(teacher=teacher, questions=questions, **fields)
            self.stdout.write(self.style.SUCCESS(
                f'Created {assessment.title} with {len(questions)} questions '
                f'({assessment.total_points} points)'
            ))

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('Test credentials: username=student1 or teacher-demo, password=testpass123')
