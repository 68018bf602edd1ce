"""
Grading service with Strategy Pattern implementation.

Architecture:
- BaseGrader: Abstract interface for grading strategies
- ExactMatchGrader: Deterministic comparison per question type
- GeminiGrader: LLM judgement for free-text questions with fallback
- GradingService: Matches submitted answers to questions and totals the score

Every strategy is all-or-nothing: an answer earns the question's full
points or zero.
"""
import json
import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional

from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass
class GradedAnswer:
    question_id: Any
    answer: Any
    time_spent: int = 0
    is_correct: Optional[bool] = None
    points_earned: Optional[int] = None
    feedback: str = ''

    @property
    def is_graded(self):
        return self.points_earned is not None


@dataclass
class GradingResult:
    answers: List[GradedAnswer] = field(default_factory=list)
    score: int = 0


def calculate_percentage(score, total_points):
    """score / total_points * 100, or NaN when there are no points."""
    if not total_points:
        return math.nan
    return score / total_points * 100


class BaseGrader(ABC):
    """
    Strategy interface for grading implementations.
    Enables dependency injection and easy testing.
    """
    @abstractmethod
    def grade_answer(self, question, student_answer):
        """
        Returns dict: {
            'is_correct': bool,
            'points_earned': int,
            'feedback': str
        }
        """
        pass

    @staticmethod
    def _result(question, is_correct):
        if is_correct:
            feedback = 'Correct!'
        else:
            feedback = question.explanation or 'Incorrect.'
        return {
            'is_correct': is_correct,
            'points_earned': question.points if is_correct else 0,
            'feedback': feedback
        }


class ExactMatchGrader(BaseGrader):
    """
    Deterministic grading without external dependencies.

    Strategies by question type:
    - multiple_choice: submitted option index must equal the stored index
    - true_false: case-insensitive string comparison
    - short_answer/essay: trimmed, case-insensitive exact comparison
    """

    def grade_answer(self, question, student_answer):
        qtype = question.question_type

        if qtype == 'multiple_choice':
            is_correct = self._match_index(question.correct_answer, student_answer)
        elif qtype == 'true_false':
            is_correct = self._as_text(student_answer).lower() == self._as_text(question.correct_answer).lower()
        else:
            is_correct = self._normalize_text(student_answer) == self._normalize_text(question.correct_answer)

        return self._result(question, is_correct)

    @staticmethod
    def _match_index(expected, submitted):
        # "1" is not index 1, and neither is True; 1.0 is
        if isinstance(submitted, bool):
            return False
        if isinstance(submitted, float) and submitted.is_integer():
            submitted = int(submitted)
        if not isinstance(submitted, int):
            return False
        return submitted == expected

    @staticmethod
    def _as_text(value):
        # Mirror JSON spelling so a boolean true compares equal to "true"
        if isinstance(value, bool):
            return 'true' if value else 'false'
        return str(value)

    @classmethod
    def _normalize_text(cls, value):
        """Case-insensitive, whitespace-trimmed comparison."""
        return cls._as_text(value).strip().lower()


class GeminiGrader(BaseGrader):
    """
    LLM-judged grading for short_answer and essay questions using Google Gemini.
    Choice questions and any API failure fall back to ExactMatchGrader.

    The model only decides correctness; points stay all-or-nothing.
    """
    FREE_TEXT_TYPES = ('short_answer', 'essay')

    def __init__(self, model=None):
        self.fallback_grader = ExactMatchGrader()
        self.model = model
        if self.model is not None:
            return

        try:
            import google.generativeai as genai
            api_key = getattr(settings, 'GEMINI_API_KEY', None)
            if not api_key:
                raise ValueError("GEMINI_API_KEY not configured")

            genai.configure(api_key=api_key)
            self.model = genai.GenerativeModel(getattr(settings, 'GEMINI_MODEL', 'gemini-pro'))
        except Exception as e:
            logger.warning("Gemini initialization failed: %s", e)
            self.model = None

    def grade_answer(self, question, student_answer):
        if not self.model or question.question_type not in self.FREE_TEXT_TYPES:
            return self.fallback_grader.grade_answer(question, student_answer)

        try:
            prompt = self._build_grading_prompt(question, student_answer)
            response = self.model.generate_content(prompt)
            return self._parse_llm_response(response.text, question)
        except Exception as e:
            logger.warning("LLM grading failed for question %s: %s. Falling back to exact match.", question.id, e)
            return self.fallback_grader.grade_answer(question, student_answer)

    def _build_grading_prompt(self, question, student_answer):
        """Construct prompt for LLM with strict JSON output requirement."""
        return f"""You are an expert academic grader. Decide whether the student's answer is correct.

Question Type: {question.question_type}
Question: {question.question_text}
Expected Answer: {question.correct_answer}

Student's Answer: {student_answer}

CRITICAL: Respond ONLY with valid JSON in this exact format (no markdown, no backticks):
{{
  "is_correct": true or false,
  "feedback": "<brief constructive feedback>"
}}

Grading Guidelines:
- There is no partial credit: the answer is either correct or not
- For short answers: correct only if the key concept matches the expected answer
- For essays: correct only if it accurately covers the key concepts of the expected answer
"""

    def _parse_llm_response(self, response_text, question):
        """Extract JSON from LLM response, handling markdown wrapping."""
        cleaned = re.sub(r'```json\s*|\s*```', '', response_text).strip()
        result = json.loads(cleaned)

        is_correct = result.get('is_correct')
        if not isinstance(is_correct, bool):
            raise ValueError(f"is_correct must be a boolean, got {is_correct!r}")

        graded = self._result(question, is_correct)
        feedback = str(result.get('feedback', '')).strip()
        if feedback:
            graded['feedback'] = feedback
        return graded


def get_grader(grader_type=None):
    grader_type = grader_type or getattr(settings, 'GRADER_TYPE', 'exact')

    if grader_type == 'gemini':
        return GeminiGrader()
    return ExactMatchGrader()


class GradingService:
    """
    Grades a list of submitted answers against an assessment's questions.
    Configurable via settings to switch between graders.
    """

    def __init__(self, grader_type=None, grader=None):
        self.grader = grader or get_grader(grader_type)

    def grade(self, questions, answers):
        """
        answers is a list of dicts with question_id, answer and optional
        time_spent. Answers referencing unknown questions pass through
        ungraded and contribute nothing to the score.

        Returns: GradingResult
        """
        questions_by_id = {str(q.id): q for q in questions}
        result = GradingResult()

        for submitted in answers:
            graded = GradedAnswer(
                question_id=submitted['question_id'],
                answer=submitted['answer'],
                time_spent=submitted.get('time_spent', 0),
            )
            question = questions_by_id.get(str(submitted['question_id']))

            if question is None:
                logger.debug("Skipping answer for unknown question %s", submitted['question_id'])
                result.answers.append(graded)
                continue

            outcome = self.grader.grade_answer(question, submitted['answer'])
            graded.is_correct = outcome['is_correct']
            graded.points_earned = outcome['points_earned']
            graded.feedback = outcome.get('feedback', '')

            result.score += graded.points_earned
            result.answers.append(graded)

        return result


def grade_answers(questions, answers, grader=None):
    """Grade answers with the given grader, or the configured one."""
    return GradingService(grader=grader).grade(questions, answers)
