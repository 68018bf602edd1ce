from rest_framework import serializers
from django.contrib.auth import get_user_model
from .models import Assessment, Question, AssessmentAttempt, StudentAnswer, CreditTransaction
from .assessment_service import create_assessment

User = get_user_model()


class UserRegistrationSerializer(serializers.ModelSerializer):
    """Registration with password hashing via set_password."""
    password = serializers.CharField(write_only=True, min_length=8)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, default='student')

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'role', 'password']

    def create(self, validated_data):
        user = User(
            username=validated_data['username'],
            email=validated_data.get('email', ''),
            first_name=validated_data.get('first_name', ''),
            last_name=validated_data.get('last_name', ''),
            role=validated_data.get('role', 'student')
        )
        user.set_password(validated_data['password'])
        user.save()
        return user


class QuestionSerializer(serializers.ModelSerializer):
    """
    Public question view - excludes correct_answer and explanation.
    Students must never see answers before submission.
    """
    class Meta:
        model = Question
        fields = ['id', 'question_type', 'question_text', 'options', 'points',
                  'difficulty', 'tags', 'order']


class QuestionCreateSerializer(serializers.ModelSerializer):
    """Teacher-authored question, including the answer key."""
    correct_answer = serializers.JSONField()

    class Meta:
        model = Question
        fields = ['question_type', 'question_text', 'options', 'correct_answer',
                  'explanation', 'points', 'difficulty', 'subject', 'grade_level',
                  'tags', 'order']
        extra_kwargs = {'order': {'required': False}}

    def validate(self, attrs):
        qtype = attrs['question_type']
        options = attrs.get('options') or []
        correct = attrs['correct_answer']

        if qtype == 'multiple_choice':
            if not isinstance(options, list) or len(options) < 2:
                raise serializers.ValidationError(
                    {'options': 'Multiple choice questions need at least two options.'}
                )
            if isinstance(correct, bool) or not isinstance(correct, int) or not 0 <= correct < len(options):
                raise serializers.ValidationError(
                    {'correct_answer': 'Must be the index of one of the options.'}
                )
            return attrs

        if options:
            raise serializers.ValidationError(
                {'options': 'Only multiple choice questions take options.'}
            )

        if qtype == 'true_false':
            if isinstance(correct, bool):
                correct = 'true' if correct else 'false'
            if not isinstance(correct, str) or correct.strip().lower() not in ('true', 'false'):
                raise serializers.ValidationError(
                    {'correct_answer': 'Must be "true" or "false".'}
                )
            attrs['correct_answer'] = correct.strip().lower()
        elif not isinstance(correct, str) or not correct.strip():
            raise serializers.ValidationError(
                {'correct_answer': 'Expected a non-empty text answer.'}
            )
        return attrs


class AssessmentListSerializer(serializers.ModelSerializer):
    """Lightweight assessment listing for browse view."""
    question_count = serializers.SerializerMethodField()

    class Meta:
        model = Assessment
        fields = ['id', 'title', 'subject', 'grade_level', 'difficulty', 'duration_minutes',
                  'total_points', 'question_count', 'is_published', 'attempt_count',
                  'average_score', 'created_by_name', 'created_at']

    def get_question_count(self, obj):
        return obj.questions.count()


class AssessmentDetailSerializer(serializers.ModelSerializer):
    """Full assessment with public questions for the take-assessment view."""
    questions = QuestionSerializer(many=True, read_only=True)

    class Meta:
        model = Assessment
        fields = ['id', 'title', 'description', 'subject', 'grade_level', 'difficulty',
                  'duration_minutes', 'instructions', 'tags', 'total_points', 'is_published',
                  'attempt_count', 'average_score', 'created_by_name', 'created_at', 'questions']


class AssessmentCreateSerializer(serializers.ModelSerializer):
    """
    Teacher submission of a new assessment with nested questions.
    total_points and the stats fields are derived, never accepted.
    """
    questions = QuestionCreateSerializer(many=True)

    class Meta:
        model = Assessment
        fields = ['id', 'title', 'description', 'subject', 'grade_level', 'difficulty',
                  'duration_minutes', 'instructions', 'tags', 'is_published', 'questions',
                  'total_points', 'attempt_count', 'average_score', 'created_by_name', 'created_at']
        read_only_fields = ['id', 'total_points', 'attempt_count', 'average_score',
                            'created_by_name', 'created_at']

    def validate_questions(self, value):
        if not value:
            raise serializers.ValidationError("An assessment needs at least one question.")
        return value

    def create(self, validated_data):
        questions = validated_data.pop('questions')
        teacher = validated_data.pop('created_by')
        return create_assessment(teacher=teacher, questions=questions, **validated_data)

    def to_representation(self, instance):
        return AssessmentDetailSerializer(instance, context=self.context).data


class AnswerSubmissionSerializer(serializers.Serializer):
    """
    Validates one submitted answer.
    answer is an option index for multiple choice, text otherwise.
    """
    question_id = serializers.CharField(max_length=64)
    answer = serializers.JSONField()
    time_spent = serializers.IntegerField(min_value=0, default=0)

    def validate_answer(self, value):
        if value is None or isinstance(value, (list, dict)):
            raise serializers.ValidationError("Answer must be text or an option index.")
        return value


class AttemptSubmitSerializer(serializers.Serializer):
    """
    Handles attempt submission payload.
    An empty list is allowed: a timed-out attempt submits whatever it has.
    """
    answers = AnswerSubmissionSerializer(many=True)

    def validate_answers(self, value):
        """Ensure no duplicate question_ids in submission."""
        question_ids = [a['question_id'] for a in value]
        if len(question_ids) != len(set(question_ids)):
            raise serializers.ValidationError(
                "Each question can only be answered once."
            )
        return value


class StudentAnswerSerializer(serializers.ModelSerializer):
    class Meta:
        model = StudentAnswer
        fields = ['question_id', 'answer', 'time_spent', 'is_correct',
                  'points_earned', 'feedback']


class AttemptListSerializer(serializers.ModelSerializer):
    """Lightweight attempt listing."""
    assessment_title = serializers.CharField(source='assessment.title', read_only=True)
    subject = serializers.CharField(source='assessment.subject', read_only=True)

    class Meta:
        model = AssessmentAttempt
        fields = ['id', 'assessment', 'assessment_title', 'subject', 'student', 'student_name',
                  'status', 'started_at', 'ended_at', 'score', 'percentage', 'credits_earned']


class AttemptDetailSerializer(serializers.ModelSerializer):
    """Full attempt with graded answers for the result view."""
    assessment_title = serializers.CharField(source='assessment.title', read_only=True)
    total_points = serializers.IntegerField(source='assessment.total_points', read_only=True)
    answers = StudentAnswerSerializer(many=True, read_only=True)

    class Meta:
        model = AssessmentAttempt
        fields = ['id', 'assessment', 'assessment_title', 'student', 'student_name', 'status',
                  'started_at', 'ended_at', 'score', 'total_points', 'percentage',
                  'time_spent', 'credits_earned', 'feedback', 'answers']


class CreditTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = CreditTransaction
        fields = ['id', 'transaction_type', 'amount', 'description', 'reference_id', 'created_at']
