"""Custom exception classes for folio-tracker.

Validation outcomes inside the pipelines are returned as values; these
exceptions cover network faults and batch-level stop conditions.
"""

from typing import Sequence


class FolioError(Exception):
    """Base exception for all folio-tracker errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# Provider / network


class APIError(FolioError):
    """A provider request failed."""


class APIRateLimitError(APIError):
    """Provider kept answering 429 after every retry."""

    def __init__(self, api_name: str, retry_after: str = "later"):
        """
        Args:
            api_name: Provider that throttled the request
            retry_after: When to retry (e.g., "in 12 seconds", "tomorrow")
        """
        self.api_name = api_name
        super().__init__(f"{api_name} API rate limit exceeded. Try again {retry_after}.")


class APIConnectionError(APIError):
    """Provider could not be reached at all."""

    def __init__(self, api_name: str, details: str = ""):
        self.api_name = api_name
        message = f"Failed to connect to {api_name} API"
        super().__init__(f"{message}: {details}" if details else message)


# Data


class DataError(FolioError):
    """Portfolio data is missing or inconsistent."""


class ValidationError(DataError):
    """User input (symbol, quantity, amount, date) was rejected."""


class ParseError(DataError):
    """A provider answered, but not in a shape we understand."""

    def __init__(self, source: str, details: str = ""):
        """
        Args:
            source: Provider whose payload was rejected
            details: What was wrong with it
        """
        self.source = source
        message = f"Unexpected response from {source}"
        super().__init__(f"{message}: {details}" if details else message)


class ImportAbortedError(DataError):
    """An import produced no positions at all."""

    def __init__(self, errors: list[str]):
        """
        Args:
            errors: Per-line parse and resolution errors; the first ten are quoted
        """
        self.errors = errors
        if errors:
            detail = "; ".join(errors[:10])
        else:
            detail = (
                "Make sure your data contains at least a Ticker/ISIN column "
                "and a Quantity column."
            )
        super().__init__(f"No positions could be imported. {detail}")


# Environment


class StorageError(FolioError):
    """Reading or writing the portfolio database failed."""

    def __init__(self, operation: str, cause: object):
        """
        Args:
            operation: What was attempted, e.g. "save positions"
            cause: Underlying database error
        """
        self.operation = operation
        super().__init__(f"Failed to {operation}: {cause}")


class ConfigurationError(FolioError):
    """The environment is missing something the command needs."""


class MissingAPIKeyError(ConfigurationError):
    """No key is configured for a provider the command depends on."""

    def __init__(self, purpose: str, env_vars: Sequence[str]):
        """
        Args:
            purpose: What the key is needed for, e.g. "Price provider"
            env_vars: Environment variables any one of which would satisfy it
        """
        self.env_vars = tuple(env_vars)
        super().__init__(
            f"{purpose} API key not configured. "
            f"Set one of: {', '.join(self.env_vars)}"
        )


# Error message helpers

# First match wins; anything unlisted is red
ERROR_COLORS: tuple[tuple[type[Exception], str], ...] = (
    (APIRateLimitError, "yellow"),
    (ConfigurationError, "orange1"),
    (StorageError, "magenta"),
)


def format_error_message(error: Exception) -> str:
    """
    Message shown to the user: our own errors verbatim, anything else
    prefixed with its exception type.
    """
    if isinstance(error, FolioError):
        return error.message
    return f"{type(error).__name__}: {error}"


def get_error_color(error: Exception) -> str:
    """Rich color for an error."""
    for error_type, color in ERROR_COLORS:
        if isinstance(error, error_type):
            return color
    return "red"
