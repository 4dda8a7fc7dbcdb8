"""
Custom application-specific exceptions.

Every error carries a user-facing message; routes map each class to an
HTTP status in app.py.
"""

class BaseAppException(Exception):
    """Base exception for the application."""
    pass

class ValidationError(BaseAppException):
    """Raised when quiz content or a request parameter is invalid. Nothing is persisted."""
    pass

class NotFoundError(BaseAppException):
    """Raised when a quiz or submission is not found in the store."""
    pass

class QuizNotPublishedError(NotFoundError):
    """Raised when a respondent opens a quiz that is still a draft."""
    pass

class AuthorizationError(BaseAppException):
    """Raised when the acting user is not the creator of the quiz."""
    pass

class AuthenticationError(BaseAppException):
    """Raised for bad credentials or an invalid reset token."""
    pass

class ConflictError(BaseAppException):
    """Raised when an account with the same e-mail already exists."""
    pass

class IncompleteAttemptError(BaseAppException):
    """Raised when an attempt is submitted with an unanswered question."""
    pass

class PersistenceError(BaseAppException):
    """Raised when a store call fails. Callers may retry."""
    pass
