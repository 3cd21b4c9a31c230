"""
Errors raised by the issuance service.

Each error carries the HTTP status it maps to at the request boundary.
"""


class CredentialServiceError(Exception):
    """Base error for the issuance service."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(CredentialServiceError):
    """Missing or empty required field."""

    status_code = 400


class NotFoundError(CredentialServiceError):
    """No credential recorded for the subject."""

    status_code = 404


class StoreError(CredentialServiceError):
    """Durable storage I/O or constraint failure."""

    status_code = 500


class CredentialExistsError(StoreError):
    """Insert rejected by a uniqueness constraint."""
