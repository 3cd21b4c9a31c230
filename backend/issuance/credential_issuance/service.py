"""
Issuance logic: validate, check for an existing credential, insert.

The existence check and the insert are separate statements. Two requests
for the same new subject can both pass the check; the store's unique
constraint rejects the second insert and that outcome is reported as the
same conflict a later request would see.
"""

import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

import structlog

from .db import CredentialRecord
from .errors import CredentialExistsError, NotFoundError, StoreError, ValidationError
from .models import IssueCredentialRequest

logger = structlog.get_logger()

MISSING_FIELDS_MESSAGE = "Missing required fields: type, issuer, subject"


class CredentialStoreProtocol(Protocol):
    def find_by_subject(self, subject_id: str) -> Optional[CredentialRecord]: ...

    def insert(self, record: CredentialRecord) -> CredentialRecord: ...

    def list_all(self) -> list[CredentialRecord]: ...


@dataclass
class IssueOutcome:
    """Result of an issuance attempt."""

    record: CredentialRecord
    created: bool  # False: record is the subject's existing credential


def _clean(value: Optional[str]) -> str:
    return value.strip() if value else ""


class IssuanceService:
    """Issues at most one credential per subject."""

    def __init__(self, store: CredentialStoreProtocol, worker_id: str):
        self.store = store
        self.worker_id = worker_id

    def issue(self, request: IssueCredentialRequest) -> IssueOutcome:
        """
        Issue a credential for request.subject_id.

        Returns:
            IssueOutcome with created=True for a new credential, or
            created=False carrying the subject's existing credential

        Raises:
            ValidationError: type, issuer or subjectId missing
            StoreError: database failure
        """
        credential_type = _clean(request.type)
        issuer = _clean(request.issuer)
        subject_id = _clean(request.subject_id)

        if not credential_type or not issuer or not subject_id:
            raise ValidationError(MISSING_FIELDS_MESSAGE)

        existing = self.store.find_by_subject(subject_id)
        if existing is not None:
            logger.info(
                "Credential already issued",
                subject_id=subject_id,
                credential_id=existing.credential_id,
            )
            return IssueOutcome(record=existing, created=False)

        record = CredentialRecord(
            credential_id=_clean(request.credential_id) or str(uuid.uuid4()),
            subject_id=subject_id,
            type=credential_type,
            issuer=issuer,
            claims=request.claims or {},
            worker_id=self.worker_id,
        )

        try:
            stored = self.store.insert(record)
        except CredentialExistsError as e:
            # Lost the race, or the caller reused another subject's credentialId
            winner = self.store.find_by_subject(subject_id)
            if winner is None:
                raise StoreError("Failed to issue credential") from e
            logger.info(
                "Credential already issued",
                subject_id=subject_id,
                credential_id=winner.credential_id,
                concurrent=True,
            )
            return IssueOutcome(record=winner, created=False)

        logger.info(
            "Credential issued",
            subject_id=subject_id,
            credential_id=stored.credential_id,
            worker_id=self.worker_id,
        )
        return IssueOutcome(record=stored, created=True)

    def get(self, subject_id: str) -> CredentialRecord:
        """Credential issued to subject_id; raises NotFoundError if none."""
        record = self.store.find_by_subject(_clean(subject_id))
        if record is None:
            raise NotFoundError("Credential not found")
        return record

    def list_all(self) -> list[CredentialRecord]:
        return self.store.list_all()
