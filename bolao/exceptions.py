"""Errors raised by the scoring and result-entry services."""


class BolaoError(Exception):
    """Base class for application errors"""


class OutcomeNotReadyError(BolaoError):
    """The real outcome is missing or not final, so nothing can be scored."""


class InvalidResultError(BolaoError, ValueError):
    """An administrator submitted a result that fails validation."""


class ScoringError(BolaoError):
    """A store read or write failed while a scoring pass was running."""

    def __init__(self, message, category=None, subject_id=None):
        super().__init__(message)
        self.category = category
        self.subject_id = subject_id
