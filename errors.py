"""
Console errors

Every failure in the console is scoped to a single form and is recoverable.
The HTTP layer maps each class to a status code.
"""


class ConsoleError(Exception):
    """Base class for all recoverable console errors"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ConsoleError):
    """Bad form input: short password, mismatch, missing or mistyped field"""
    status_code = 400


class UploadError(ValidationError):
    """A file could not be fully read into an embeddable value"""
    pass


class NotFound(ConsoleError):
    """Target id (or episode index) does not exist"""
    status_code = 404


class TransportError(ConsoleError):
    """The persistence gateway rejected a call; nothing was applied"""
    status_code = 502


class Unavailable(ConsoleError):
    """Stored state could not be loaded, so acting on defaults is refused"""
    status_code = 503


class SubmissionInProgress(ConsoleError):
    """A form received a second submission while the first is in flight"""
    status_code = 409


class FeedbackDisabled(ConsoleError):
    """Comments or ratings are switched off in the settings"""
    status_code = 403


class AuthError(ConsoleError):
    status_code = 401


class IncorrectPassword(AuthError):
    pass


class NotAuthenticated(AuthError):
    pass
