"""Domain-specific exceptions"""

from typing import Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class StoreAPIError(DomainException):
    """Remote store call failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StoreNetworkError(StoreAPIError):
    """Store unreachable (timeout, connection refused); retryable"""

    pass


class StoreServerError(StoreAPIError):
    """Store answered with a 5xx"""

    pass


class StoreValidationError(StoreAPIError):
    """Store rejected the request or returned a malformed payload"""

    pass


class MappingConflictError(DomainException):
    """Refcode already carries an active truth mapping, or the insert conflicted"""

    pass


class MatcherRunError(DomainException):
    """Remote matcher run failed or returned an unreadable result"""

    pass


class DuplicateSubmissionError(DomainException):
    """Same action is already in flight"""

    pass


class InvalidRefcodeError(DomainException):
    """Refcode is empty after normalization"""

    pass
