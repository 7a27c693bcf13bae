"""Custom exceptions for the authorities package.

Missing authorities, already-harvested names, empty queries and unbound
terms are not errors: they are logged or answered with an empty result.
The exceptions below cover the conditions a caller has to act on.
"""

from typing import Optional


class AuthorityError(Exception):
    """Base class for all local authority errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        """Initialize AuthorityError.

        Args:
            message: Human-readable error message
            original_error: Exception that caused this error (optional)
        """
        super().__init__(message)
        self.original_error = original_error


class HarvestError(AuthorityError):
    """A harvest call failed."""


class SourceUnavailableError(HarvestError):
    """A harvest source could not be opened, fetched or parsed."""

    def __init__(self, location: str, original_error: Optional[Exception] = None):
        detail = f": {original_error}" if original_error else ""
        super().__init__(f"Unable to read source {location}{detail}", original_error)
        self.location = location


class MalformedSourceError(HarvestError):
    """A source line or statement does not have the expected shape."""

    def __init__(self, location: str, line_number: int, reason: str):
        super().__init__(f"{location}, line {line_number}: {reason}")
        self.location = location
        self.line_number = line_number
        self.reason = reason

    @classmethod
    def too_few_fields(cls, location: str, line_number: int, found: int) -> "MalformedSourceError":
        """Create error for a TSV line without the identifier/code/label columns."""
        return cls(location, line_number, f"expected at least 3 tab-separated fields, found {found}")


class PartialHarvestError(HarvestError):
    """A harvest failed after its authority row was created.

    The authority now exists with zero or some of its entries, so the
    idempotency guard will turn every retry into a no-op. Delete the
    authority (`authorities delete <name>`) before harvesting again.

    Attributes:
        authority_name: Name of the half-built authority
        entries_written: Entries persisted before the failure
        cleaned_up: True when the authority was deleted again before raising
    """

    def __init__(
        self,
        authority_name: str,
        entries_written: int,
        original_error: Optional[Exception] = None,
        cleaned_up: bool = False,
    ):
        if cleaned_up:
            hint = "The authority was removed; the harvest can be retried."
        else:
            hint = (
                f"Authority '{authority_name}' is left with {entries_written} entries. "
                "Delete it before retrying."
            )
        cause = f"{type(original_error).__name__}: {original_error}" if original_error else "unknown cause"
        super().__init__(f"Harvest of '{authority_name}' failed ({cause}). {hint}", original_error)
        self.authority_name = authority_name
        self.entries_written = entries_written
        self.cleaned_up = cleaned_up


class HarvestCancelledError(PartialHarvestError):
    """A harvest job was cancelled before it finished."""


class StoreUnavailableError(AuthorityError):
    """The entry store could not be reached; callers may retry later."""

    @classmethod
    def from_database_error(cls, error: Exception) -> "StoreUnavailableError":
        """Create error for an unreachable or locked SQLite database."""
        return cls(
            f"Authority store unavailable: {type(error).__name__}: {error}",
            original_error=error,
        )
