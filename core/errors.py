"""
Error taxonomy shared by the services and the HTTP layer.

Each error carries the HTTP status the API layer answers with. The
builtin base classes are kept so callers that only know about
ValueError / PermissionError / LookupError still catch them.
"""


class BooruError(Exception):
    """Base class for all expected, user-facing failures."""
    status_code = 500

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class ValidationError(BooruError, ValueError):
    """Missing or invalid input."""
    status_code = 400


class UnsupportedMediaError(ValidationError):
    """Unsupported file type."""
    status_code = 400


class AuthenticationError(BooruError):
    """You must be logged in."""
    status_code = 401


class PermissionDeniedError(BooruError, PermissionError):
    """You do not have permission to do that."""
    status_code = 403


class NotFoundError(BooruError, LookupError):
    """Resource not found."""
    status_code = 404


class DuplicateContentError(BooruError):
    """This file has already been uploaded."""
    status_code = 409

    def __init__(self, message: str = None, existing_post_id: int = None):
        super().__init__(message)
        self.existing_post_id = existing_post_id


class ConflictError(BooruError):
    """This post is busy, try again."""
    status_code = 409


class ProcessingError(BooruError):
    """Server error during media processing."""
    status_code = 500


class DataIntegrityError(BooruError):
    """A stored record is malformed."""
    status_code = 500


class AutoTaggerError(Exception):
    """Vision model call failed. Never leaves the auto-tagger client."""
