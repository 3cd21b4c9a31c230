"""
Verification logic: one lookup against the issuance service.

Outcomes are verified, not found, or unavailable. Every failure other than
a 404 from the issuance service counts as unavailable.
"""

from typing import Optional, Union

import structlog

from .client import CredentialNotFoundError, IssuanceClient, IssuanceUnavailableError
from .errors import ServiceUnavailableError, ValidationError
from .models import NotFoundResponse, VerifiedResponse

logger = structlog.get_logger()


class VerificationService:
    """Confirms credentials by asking the issuance service."""

    def __init__(self, client: IssuanceClient, worker_id: str):
        self.client = client
        self.worker_id = worker_id

    async def verify(self, subject_id: Optional[str]) -> Union[VerifiedResponse, NotFoundResponse]:
        """
        Verify that subject_id holds a credential.

        Raises:
            ValidationError: subject_id missing or blank
            ServiceUnavailableError: issuance service unreachable or erroring
        """
        subject_id = subject_id.strip() if subject_id else ""
        if not subject_id:
            raise ValidationError("Subject ID is required")

        try:
            credential = await self.client.get_credential(subject_id)
        except CredentialNotFoundError:
            logger.info("Credential not found", subject_id=subject_id, verified_by=self.worker_id)
            return NotFoundResponse(verified_by=self.worker_id)
        except IssuanceUnavailableError as e:
            logger.error("Issuance service unavailable", subject_id=subject_id, error=str(e))
            raise ServiceUnavailableError("Issuance service unavailable") from e

        logger.info(
            "Credential verified",
            subject_id=subject_id,
            credential_id=credential.credential_id,
            verified_by=self.worker_id,
        )
        return VerifiedResponse.from_credential(credential, verified_by=self.worker_id)
