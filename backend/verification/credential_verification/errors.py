"""
Errors raised by the verification service.
"""


class CredentialServiceError(Exception):
    """Base error for the verification service."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(CredentialServiceError):
    """Missing or empty subject id."""

    status_code = 400


class ServiceUnavailableError(CredentialServiceError):
    """The issuance service could not answer."""

    status_code = 503
