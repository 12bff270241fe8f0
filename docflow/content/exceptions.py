class ContentError(Exception):
    """Base exception for attachment content resolution."""


class UnsupportedLocationError(ContentError):
    """Raised when a content location uses a scheme the loader cannot read."""


class ContentFetchError(ContentError):
    """Raised when attachment bytes cannot be fetched."""
