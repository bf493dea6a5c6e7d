"""Mapping of domain errors to HTTP errors."""

from fastapi import HTTPException

from ..errors import (
    BlobStoreFailed,
    HistoryUnavailable,
    LedgerCallFailed,
    SubmissionRejected,
)

_STATUS_CODES = (
    (HistoryUnavailable, 503),
    (SubmissionRejected, 409),
    (BlobStoreFailed, 502),
    (LedgerCallFailed, 404),
    (ValueError, 400),
)


def to_http_error(error: Exception) -> HTTPException:
    """Convert an exception raised by a component into an HTTPException."""
    if isinstance(error, HTTPException):
        return error
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            detail = error.reason if isinstance(error, SubmissionRejected) else str(error)
            return HTTPException(status_code=status_code, detail=detail)
    return HTTPException(status_code=500, detail=str(error))
