"""
Exception types shared by the ingestion and rating modules.

Malformed rows and entries are never raised: they are skipped with a logged
diagnostic. These exceptions cover input that cannot be processed at all.
"""


class IngestionError(Exception):
    """Base exception for ingestion errors"""
    pass


class UnreadableInputError(IngestionError):
    """Raised when a document cannot be read as its declared structure at all"""
    pass


class UnsupportedFormatError(IngestionError, ValueError):
    """Raised when an import format identifier is not one of the supported formats"""
    pass


class RatingInputError(ValueError):
    """Raised when a rating update receives values outside the Glicko-2 domain"""
    pass


class ConvergenceError(AssertionError):
    """Raised when the volatility root search exceeds its iteration budget"""
    pass
