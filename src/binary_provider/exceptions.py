"""Binary provider exceptions.

Every error carries a context dict (offending path, expected vs. actual
digest or platform) so callers can decide whether to retry, re-fetch or
report upward.
"""


class BinaryProviderError(Exception):
    """Base exception for binary provider operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (file paths, digests, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class HashMismatchError(BinaryProviderError):
    """Archive digest does not match the expected digest."""


class PlatformMismatchError(BinaryProviderError):
    """Archive was built for a platform other than the host."""


class DestinationExistsError(BinaryProviderError):
    """Package output or extraction target already exists."""


class OrphanFileError(BinaryProviderError):
    """File exists but is not listed in any manifest."""


class ArtifactNotFoundError(BinaryProviderError):
    """Manifest, file or product path is absent."""


class UnsatisfiedProductError(BinaryProviderError):
    """Product could not be located when it was required."""


class FetchError(BinaryProviderError):
    """Remote archive could not be downloaded."""
