"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class FragmentDlError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(FragmentDlError):
    """Raised for issues related to configuration loading or validation."""


class ListingError(FragmentDlError):
    """Raised when the fragment list or base URI cannot be obtained."""


class TransientFetchError(FragmentDlError):
    """
    A single failed attempt to fetch a fragment. Consumed by the retry loop and
    never surfaced to the user on its own.
    """

    def __init__(self, index: int, attempt: int, cause: BaseException):
        self.index = index
        self.attempt = attempt
        self.cause = cause
        super().__init__(f"Fragment #{index} attempt {attempt} failed: {cause}")


class ExhaustedRetriesError(FragmentDlError):
    """Raised when a fragment could not be fetched within the allowed attempts."""

    def __init__(self, index: int, attempts: int, cause: BaseException | None):
        self.index = index
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"Fragment #{index} could not be downloaded after {attempts} "
            f"attempt(s): {cause}"
        )


class WriteError(FragmentDlError):
    """Raised when the output artifact rejects a fragment write."""

    def __init__(self, index: int, cause: BaseException):
        self.index = index
        self.cause = cause
        super().__init__(f"Could not write fragment #{index} to output: {cause}")
