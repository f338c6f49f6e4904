from __future__ import annotations


class ReviewError(Exception):
    error_code = "review_error"

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class BindError(ReviewError):
    error_code = "bind_failed"

    def __init__(self, message: str = "Review server port unavailable."):
        super().__init__(message, status_code=503)


class SessionAlreadyDecided(ReviewError):
    error_code = "session_already_decided"

    def __init__(self, message: str = "This review session has already been decided."):
        super().__init__(message, status_code=409)


class SessionAborted(ReviewError):
    """Raised to a waiter when the session stops before a decision arrives."""

    error_code = "session_aborted"

    def __init__(self, message: str = "Review session aborted before a decision was made."):
        super().__init__(message, status_code=499)


class DecodeError(ReviewError):
    error_code = "invalid_link"

    def __init__(self, message: str = "Invalid or corrupted link."):
        super().__init__(message, status_code=400)
