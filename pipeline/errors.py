"""
Error taxonomy for the analysis pipeline.

Only input errors, exhausted/terminal transport errors and contract
violations are meant to reach a caller. PersistenceError and
MetadataLookupError are raised by the low-level helpers and absorbed by
the components that own them.
"""

from typing import Optional


class ShadowScanError(Exception):
    """Base class for every error raised by the scanner."""
    pass


class EmptyInputError(ShadowScanError):
    """Nothing analyzable was supplied (user-correctable)."""
    pass


class TransportError(ShadowScanError):
    """Retryable failure talking to the remote service (5xx, 429, network)."""

    def __init__(self, message: str, status_code: Optional[int] = None, kind: str = "network"):
        super().__init__(message)
        self.status_code = status_code
        self.kind = kind


class RetriesExhaustedError(TransportError):
    """A TransportError that survived every allowed attempt."""

    def __init__(self, last_error: TransportError, attempts: int):
        super().__init__(
            f"{last_error} (gave up after {attempts} attempts)",
            status_code=last_error.status_code,
            kind=last_error.kind,
        )
        self.last_error = last_error
        self.attempts = attempts


class TerminalRequestError(ShadowScanError):
    """Malformed request, auth failure or policy rejection. Never retried."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EmptyResponseError(ShadowScanError):
    """The remote service answered without any usable payload."""
    pass


class ContractViolationError(ShadowScanError):
    """The remote payload could not be parsed or failed schema validation."""
    pass


class PersistenceError(ShadowScanError):
    """Local storage could not be read or written."""
    pass


class MetadataLookupError(ShadowScanError):
    """Public video metadata could not be fetched."""
    pass


def user_message(exc: BaseException) -> str:
    """Single human-readable line shown in place of a result."""
    if isinstance(exc, EmptyInputError):
        return str(exc) or "No content provided for analysis."
    if isinstance(exc, RetriesExhaustedError):
        return "The analysis service is unavailable right now. Please try again in a moment."
    if isinstance(exc, TerminalRequestError):
        return f"The analysis request was rejected: {exc}"
    if isinstance(exc, (EmptyResponseError, ContractViolationError)):
        return "Failed to analyze content. Please try again."
    if isinstance(exc, TransportError):
        return "Network error while contacting the analysis service."
    return "Something went wrong during analysis."
