"""
Tests for the issuance service.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

import pytest

from credential_issuance.db import CredentialRecord, CredentialStore
from credential_issuance.errors import CredentialExistsError, NotFoundError, StoreError, ValidationError
from credential_issuance.models import IssueCredentialRequest
from credential_issuance.service import MISSING_FIELDS_MESSAGE, IssuanceService

ISSUED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeStore:
    """In-memory store recording calls."""

    def __init__(self) -> None:
        self.records: dict[str, CredentialRecord] = {}
        self.finds = 0
        self.inserts = 0

    def find_by_subject(self, subject_id: str) -> Optional[CredentialRecord]:
        self.finds += 1
        return self.records.get(subject_id)

    def insert(self, record: CredentialRecord) -> CredentialRecord:
        self.inserts += 1
        if record.subject_id in self.records:
            raise CredentialExistsError("Credential already issued")
        stored = replace(record, issued_at=ISSUED_AT)
        self.records[record.subject_id] = stored
        return stored

    def list_all(self) -> list[CredentialRecord]:
        return list(self.records.values())


class RacingStore(FakeStore):
    """Store where another worker inserts between the check and the insert."""

    def __init__(self, winner: Optional[CredentialRecord]) -> None:
        super().__init__()
        self.winner = winner

    def find_by_subject(self, subject_id: str) -> Optional[CredentialRecord]:
        self.finds += 1
        # First lookup misses; the re-read after the failed insert sees the winner
        return None if self.finds == 1 else self.winner

    def insert(self, record: CredentialRecord) -> CredentialRecord:
        self.inserts += 1
        raise CredentialExistsError("Credential already issued")


class FailingStore(FakeStore):
    def __init__(self, fail_on: str) -> None:
        super().__init__()
        self.fail_on = fail_on

    def find_by_subject(self, subject_id: str) -> Optional[CredentialRecord]:
        if self.fail_on == "find":
            raise StoreError("Database error")
        return super().find_by_subject(subject_id)

    def insert(self, record: CredentialRecord) -> CredentialRecord:
        if self.fail_on == "insert":
            raise StoreError("Failed to issue credential")
        return super().insert(record)


def make_request(**overrides) -> IssueCredentialRequest:
    body = {
        "type": "Identity Credential",
        "issuer": "Kube Credential System",
        "subjectId": "user123",
        "claims": {"name": "John Doe", "email": "john@example.com"},
    }
    body.update(overrides)
    return IssueCredentialRequest.model_validate(body)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def service(store):
    return IssuanceService(store, worker_id="worker-a")


class TestIssue:
    """Tests for IssuanceService.issue."""

    def test_issues_new_credential(self, service, store):
        outcome = service.issue(make_request())

        assert outcome.created is True
        assert outcome.record.subject_id == "user123"
        assert outcome.record.worker_id == "worker-a"
        assert outcome.record.issued_at == ISSUED_AT
        assert outcome.record.claims == {"name": "John Doe", "email": "john@example.com"}
        assert store.finds == 1
        assert store.inserts == 1

    def test_generates_credential_id(self, service):
        first = service.issue(make_request(subjectId="a"))
        second = service.issue(make_request(subjectId="b"))

        assert first.record.credential_id
        assert first.record.credential_id != second.record.credential_id

    def test_uses_supplied_credential_id(self, service):
        outcome = service.issue(make_request(credentialId="my-id"))
        assert outcome.record.credential_id == "my-id"

    def test_blank_credential_id_is_generated(self, service):
        outcome = service.issue(make_request(credentialId="   "))
        assert outcome.record.credential_id.strip()

    def test_fields_are_trimmed(self, service, store):
        outcome = service.issue(make_request(type=" Badge ", issuer=" X ", subjectId=" u1 "))
        assert outcome.record.subject_id == "u1"
        assert outcome.record.type == "Badge"
        assert outcome.record.issuer == "X"
        assert "u1" in store.records

    def test_claims_default_to_empty(self, service):
        outcome = service.issue(make_request(claims=None))
        assert outcome.record.claims == {}

    def test_second_issue_returns_first_credential(self, service, store):
        """Repeat issuance observes the existing record and discards the new payload."""
        first = service.issue(make_request(credentialId="first-id"))
        second = service.issue(
            make_request(credentialId="second-id", type="Other", claims={"name": "B"})
        )

        assert second.created is False
        assert second.record.credential_id == "first-id"
        assert second.record.issued_at == first.record.issued_at
        assert second.record.type == "Identity Credential"
        assert len(store.records) == 1
        assert store.inserts == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"type": None},
            {"issuer": None},
            {"subjectId": None},
            {"type": "", "issuer": ""},
            {"subjectId": "   "},
        ],
    )
    def test_missing_fields(self, service, store, overrides):
        with pytest.raises(ValidationError) as exc_info:
            service.issue(make_request(**overrides))

        assert exc_info.value.message == MISSING_FIELDS_MESSAGE
        assert exc_info.value.status_code == 400
        assert store.finds == 0

    def test_lost_race_returns_conflict(self):
        winner = CredentialRecord(
            credential_id="winner-id",
            subject_id="user123",
            type="Identity Credential",
            issuer="X",
            worker_id="worker-b",
            issued_at=ISSUED_AT,
        )
        store = RacingStore(winner)
        service = IssuanceService(store, worker_id="worker-a")

        outcome = service.issue(make_request())

        assert outcome.created is False
        assert outcome.record.credential_id == "winner-id"
        assert outcome.record.worker_id == "worker-b"
        assert store.finds == 2

    def test_credential_id_collision_is_store_error(self):
        """Constraint violation with no record for the subject is a failure, not a conflict."""
        service = IssuanceService(RacingStore(winner=None), worker_id="worker-a")

        with pytest.raises(StoreError) as exc_info:
            service.issue(make_request(credentialId="taken"))
        assert exc_info.value.message == "Failed to issue credential"

    def test_lookup_failure_propagates(self):
        service = IssuanceService(FailingStore("find"), worker_id="w")
        with pytest.raises(StoreError, match="Database error"):
            service.issue(make_request())

    def test_insert_failure_propagates(self):
        store = FailingStore("insert")
        service = IssuanceService(store, worker_id="w")
        with pytest.raises(StoreError, match="Failed to issue credential"):
            service.issue(make_request())
        assert store.records == {}


class TestLookup:
    """Tests for get / list_all."""

    def test_get_existing(self, service):
        service.issue(make_request(credentialId="c1"))
        assert service.get("user123").credential_id == "c1"

    def test_get_uses_trimmed_subject(self, service):
        service.issue(make_request(subjectId=" u1 ", credentialId="c1"))
        assert service.get(" u1 ").credential_id == "c1"
        assert service.get("u1").credential_id == "c1"

    def test_get_missing(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            service.get("nobody")
        assert exc_info.value.status_code == 404

    def test_list_all(self, service):
        service.issue(make_request(subjectId="a"))
        service.issue(make_request(subjectId="b"))
        assert {r.subject_id for r in service.list_all()} == {"a", "b"}


class GatedStore:
    """Real store whose first lookups all return before any insert runs."""

    def __init__(self, store: CredentialStore, parties: int) -> None:
        self.store = store
        self.barrier = threading.Barrier(parties, timeout=10)
        self.lock = threading.Lock()
        self.gated = parties

    def find_by_subject(self, subject_id: str) -> Optional[CredentialRecord]:
        record = self.store.find_by_subject(subject_id)
        with self.lock:
            wait = self.gated > 0
            self.gated -= 1
        if wait:
            self.barrier.wait()
        return record

    def insert(self, record: CredentialRecord) -> CredentialRecord:
        return self.store.insert(record)

    def list_all(self) -> list[CredentialRecord]:
        return self.store.list_all()


class TestConcurrentIssue:
    """Concurrent issuance against a real SQLite store."""

    def test_one_record_per_subject(self, tmp_path):
        workers = 8
        store = CredentialStore(f"sqlite:///{tmp_path / 'issuance.db'}")
        gated = GatedStore(store, parties=workers)
        try:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = [
                    pool.submit(
                        IssuanceService(gated, worker_id=f"worker-{i}").issue,
                        make_request(subjectId="u1", credentialId=f"cred-{i}"),
                    )
                    for i in range(workers)
                ]
                outcomes = [f.result() for f in futures]

            created = [o for o in outcomes if o.created]
            assert len(created) == 1
            winner_id = created[0].record.credential_id
            assert all(o.record.credential_id == winner_id for o in outcomes)

            stored = store.list_all()
            assert len(stored) == 1
            assert stored[0].credential_id == winner_id
        finally:
            store.close()
