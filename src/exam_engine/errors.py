from __future__ import annotations


class ExamEngineError(Exception):
    pass


class ConfigurationError(ExamEngineError):
    """Exam definition is unusable for a question; processing of that question stops."""

    def __init__(self, message: str, *, question_id: str | None = None):
        super().__init__(message)
        self.question_id = question_id


class UnknownQuestionType(ConfigurationError):
    pass


class MissingAnswerKey(ConfigurationError):
    pass


class InvalidAnswerKey(ConfigurationError):
    pass


class AttemptStateError(ExamEngineError):
    pass


class UnknownQuestion(ExamEngineError, LookupError):
    pass


class UnknownAttempt(ExamEngineError, LookupError):
    pass
