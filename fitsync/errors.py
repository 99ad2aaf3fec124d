from __future__ import annotations


class FitsyncError(Exception):
    """Base exception for fitsync errors."""


class ConfigError(FitsyncError, ValueError):
    """Invalid configuration value."""


class QueueStoreError(FitsyncError):
    """Any failure while reading or writing the mutation queue."""


class TransmissionError(FitsyncError):
    """Failed to transmit a single mutation record to the remote store."""


class RemoteStoreError(TransmissionError):
    """
    The remote store rejected a request or could not be reached.

    ``status_code`` is the HTTP status when a response was received,
    otherwise None (timeouts, DNS failures, refused connections).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnknownEntityTypeError(TransmissionError):
    """No handler is registered for a queued record's entity type."""
