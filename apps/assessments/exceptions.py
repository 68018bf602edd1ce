class AssessmentError(Exception):
    """Base class for assessment lifecycle failures."""


class AssessmentNotFound(AssessmentError):
    pass


class AttemptNotFound(AssessmentError):
    pass


class AttemptAlreadySubmitted(AssessmentError):
    """The attempt is completed or abandoned and cannot be graded again."""


class AttemptInProgress(AssessmentError):
    """The student already has an open attempt and exclusive attempts are enabled."""
