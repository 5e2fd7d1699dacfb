"""Exception hierarchy for the reconciliation service."""


class ObligationsError(Exception):
    """Base exception for all service errors."""


class NotFoundError(ObligationsError):
    """Raised when a referenced record does not exist."""


class InvalidInputError(ObligationsError):
    """Raised when user-supplied data (files, amounts, selections) is rejected."""


class StorageError(ObligationsError):
    """Raised when a storage bucket operation fails."""


class AnalysisServiceError(ObligationsError):
    """Raised when a remote analysis function fails or is unavailable."""
