"""
HTTP client for the issuance service's credential lookup.
"""

from typing import Optional
from urllib.parse import quote

import httpx
import pydantic
import structlog

from .models import IssuedCredential

logger = structlog.get_logger()


class IssuanceClientError(Exception):
    """Error from an issuance lookup."""


class CredentialNotFoundError(IssuanceClientError):
    """The issuance service has no credential for the subject (HTTP 404)."""

    def __init__(self, subject_id: str):
        self.subject_id = subject_id
        super().__init__(f"No credential for subject {subject_id!r}")


class IssuanceUnavailableError(IssuanceClientError):
    """Network error, timeout, unexpected status or malformed response."""


class IssuanceClient:
    """
    Async client for the issuance service.

    Every lookup is a single bounded-time request; there is no retry and no
    caching.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def credential_url(self, subject_id: str) -> str:
        return f"{self.base_url}/api/issuance/credentials/{quote(subject_id, safe='')}"

    async def get_credential(self, subject_id: str) -> IssuedCredential:
        """
        Fetch the credential issued to subject_id.

        Raises:
            CredentialNotFoundError: issuance service answered 404
            IssuanceUnavailableError: anything else went wrong
        """
        url = self.credential_url(subject_id)
        try:
            async with self._client() as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning("issuance_request_failed", url=url, error=repr(e))
            raise IssuanceUnavailableError(f"Request to issuance service failed: {e!r}") from e

        if response.status_code == 404:
            raise CredentialNotFoundError(subject_id)

        if response.status_code != 200:
            logger.warning("issuance_unexpected_status", url=url, status=response.status_code)
            raise IssuanceUnavailableError(f"Issuance service returned HTTP {response.status_code}")

        try:
            return IssuedCredential.model_validate(response.json())
        except (ValueError, pydantic.ValidationError) as e:
            logger.warning("issuance_malformed_response", url=url, error=str(e))
            raise IssuanceUnavailableError("Malformed response from issuance service") from e

    async def check_connectivity(self) -> bool:
        """Check that the issuance service answers its health endpoint."""
        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}/api/issuance/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False
