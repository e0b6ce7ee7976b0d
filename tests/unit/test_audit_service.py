"""Unit tests for the audit trail service."""

import math
from dataclasses import replace

import pytest

from ledger_mirror.errors import (
    ConflictIgnored,
    LedgerUnavailable,
    StorageError,
    TransactionNotFound,
    ValidationError,
)
from ledger_mirror.persistence import Database, InMemoryAuditStore, SqliteAuditStore
from ledger_mirror.service.audit import AuditService, diff_payloads


@pytest.fixture
def store():
    return InMemoryAuditStore()


@pytest.fixture
def service(ledger, store, clock):
    return AuditService(ledger, store, time_provider=clock)


class RacingStore(InMemoryAuditStore):
    """Store where another writer lands the same hash just before our insert."""

    def __init__(self, competitor_record=None):
        super().__init__()
        self.competitor_record = competitor_record

    def insert(self, record):
        if self.competitor_record is not None:
            super().insert(self.competitor_record)
            self.competitor_record = None
        super().insert(record)


class VanishingStore(InMemoryAuditStore):
    """Store that reports a conflict but cannot read the row back."""

    def insert(self, record):
        raise ConflictIgnored(record.tx_hash)


class TestFetchAndStore:
    """Tests for capturing transactions into the audit trail."""

    def test_stores_ledger_copy(self, service, ledger, store, make_transaction, clock):
        """The record mirrors the ledger's transaction facts."""
        tx = make_transaction()
        ledger.publish(tx)

        record = service.fetch_and_store(tx.hash)

        assert record.tx_hash == tx.hash
        assert record.source_account == tx.source_account
        assert record.payload == tx.to_payload()
        assert store.get(tx.hash) == record

    def test_second_call_is_idempotent(self, service, ledger, store, make_transaction):
        """Re-auditing returns the stored record without a ledger call."""
        tx = make_transaction()
        ledger.publish(tx)

        first = service.fetch_and_store(tx.hash)
        second = service.fetch_and_store(tx.hash)

        assert second == first
        assert second.fetched_at == first.fetched_at
        assert ledger.calls_to("fetch_transaction") == 1
        assert len(store) == 1

    def test_uppercase_hash_normalized(self, service, ledger, make_transaction):
        """Hashes differing only in case address the same record."""
        tx = make_transaction(hash="ab" * 32)
        ledger.publish(tx)

        first = service.fetch_and_store("AB" * 32)
        second = service.fetch_and_store("ab" * 32)

        assert first.tx_hash == "ab" * 32
        assert second == first
        assert ledger.calls_to("fetch_transaction") == 1

    @pytest.mark.parametrize(
        "bad_hash",
        ["", "abc", "g" * 64, "a" * 63, "a" * 65, "a" * 64 + "\n", "a" * 64 + " ", " " + "a" * 64],
    )
    def test_malformed_hash(self, service, ledger, bad_hash):
        """Malformed hashes are rejected before any ledger call."""
        with pytest.raises(ValidationError):
            service.fetch_and_store(bad_hash)
        assert ledger.calls == []

    def test_not_found_stores_nothing(self, service, store):
        """A hash the ledger does not know leaves the store untouched."""
        with pytest.raises(TransactionNotFound):
            service.fetch_and_store("0" * 64)
        assert len(store) == 0

    def test_ledger_unavailable_stores_nothing(self, service, ledger, store, make_transaction):
        """Ledger failures propagate and store nothing."""
        tx = make_transaction()
        ledger.publish(tx)
        ledger.unavailable = True

        with pytest.raises(LedgerUnavailable):
            service.fetch_and_store(tx.hash)
        assert len(store) == 0

    def test_concurrent_insert_returns_winner(self, ledger, make_transaction, clock):
        """Losing an insert race returns the record that won."""
        tx = make_transaction()
        ledger.publish(tx)
        winner_store = InMemoryAuditStore()
        winner = AuditService(ledger, winner_store, time_provider=clock).fetch_and_store(tx.hash)

        store = RacingStore(competitor_record=winner)
        service = AuditService(ledger, store, time_provider=clock)

        result = service.fetch_and_store(tx.hash)

        assert result == winner
        assert len(store) == 1

    def test_conflict_without_stored_record(self, ledger, make_transaction):
        """A conflict that cannot be read back is a storage error."""
        tx = make_transaction()
        ledger.publish(tx)
        service = AuditService(ledger, VanishingStore())

        with pytest.raises(StorageError):
            service.fetch_and_store(tx.hash)

    def test_sqlite_first_and_repeat_serialize_identically(
        self, ledger, make_transaction, clock, tmp_path
    ):
        """The freshly stored record matches what later reads return, byte for byte."""
        tx = make_transaction(memo="payroll", fee_charged="100")
        ledger.publish(tx)

        with Database(tmp_path / "mirror.db") as db:
            service = AuditService(ledger, SqliteAuditStore(db), time_provider=clock)
            first = service.fetch_and_store(tx.hash)
            second = service.fetch_and_store(tx.hash)

        assert second.model_dump_json() == first.model_dump_json()
        assert list(first.payload) == sorted(first.payload)


class TestGetByHash:
    """Tests for local lookup."""

    def test_local_only(self, service, ledger, make_transaction):
        """Lookups never consult the ledger."""
        tx = make_transaction()
        ledger.publish(tx)
        service.fetch_and_store(tx.hash)
        ledger.calls.clear()

        assert service.get_by_hash(tx.hash).tx_hash == tx.hash
        assert service.get_by_hash("f" * 64) is None
        assert ledger.calls == []

    def test_malformed_hash(self, service):
        """Lookups validate the hash too."""
        with pytest.raises(ValidationError):
            service.get_by_hash("xyz")


class TestList:
    """Tests for paginated listing."""

    @pytest.fixture
    def populated(self, service, ledger, make_transaction, wallet):
        hashes = []
        for i in range(25):
            tx = make_transaction(source_account=wallet if i % 5 == 0 else None)
            ledger.publish(tx)
            service.fetch_and_store(tx.hash)
            hashes.append(tx.hash)
        return hashes

    def test_first_page(self, service, populated):
        """Defaults to page 1 with 20 records, newest first."""
        page = service.list()

        assert page.total == 25
        assert page.page == 1
        assert page.limit == 20
        assert page.total_pages == 2
        assert page.has_more is True
        assert [r.tx_hash for r in page.data] == list(reversed(populated))[:20]

    def test_last_page(self, service, populated):
        """The last page holds the remainder and has no more."""
        page = service.list(page=2, limit=20)

        assert len(page.data) == 5
        assert page.has_more is False

    def test_page_beyond_end(self, service, populated):
        """Pages past the end are empty, not errors."""
        page = service.list(page=10, limit=20)

        assert page.data == []
        assert page.total == 25
        assert page.has_more is False

    @pytest.mark.parametrize("limit", [1, 3, 7, 20, 25, 100])
    def test_page_count(self, service, populated, limit):
        """total_pages is the ceiling of total over limit."""
        page = service.list(page=1, limit=limit)

        assert page.total_pages == math.ceil(25 / limit)
        assert page.has_more == (1 < page.total_pages)
        assert len(page.data) == min(limit, 25)

    @pytest.mark.parametrize("limit", [1, 4, 6, 25])
    def test_pages_concatenate_to_full_set(self, service, populated, limit):
        """Walking every page yields each record once, in order."""
        seen = []
        page_number = 1
        while True:
            page = service.list(page=page_number, limit=limit)
            seen.extend(r.tx_hash for r in page.data)
            if not page.has_more:
                break
            page_number += 1

        assert page_number == math.ceil(25 / limit)
        assert seen == list(reversed(populated))

    def test_filter_by_source(self, service, populated, wallet):
        """Filtering counts only the given source account."""
        page = service.list(source_account=wallet)

        assert page.total == 5
        assert all(r.source_account == wallet for r in page.data)

    def test_empty(self, service):
        """An empty trail has zero pages."""
        page = service.list()

        assert page.total == 0
        assert page.total_pages == 0
        assert page.has_more is False

    @pytest.mark.parametrize("page,limit", [(0, 20), (-1, 20), (1, 0), (1, 101), (10**20, 10)])
    def test_bounds(self, service, page, limit):
        """Out-of-range page or limit is rejected."""
        with pytest.raises(ValidationError):
            service.list(page=page, limit=limit)

    def test_last_addressable_page_on_sqlite(self, ledger, tmp_path):
        """The deepest page SQLite can seek to is empty rather than an error."""
        with Database(tmp_path / "mirror.db") as db:
            service = AuditService(ledger, SqliteAuditStore(db))
            page = service.list(page=(2**63 - 1) // 10 + 1, limit=10)

        assert page.data == []
        assert page.total == 0

    def test_bad_source_filter(self, service):
        """A malformed source account filter is rejected."""
        with pytest.raises(ValidationError):
            service.list(source_account="not-an-address")

    def test_custom_max_limit(self, ledger, store):
        """The limit ceiling is configurable."""
        service = AuditService(ledger, store, max_page_limit=10)
        with pytest.raises(ValidationError):
            service.list(limit=11)
        assert service.list(limit=10).limit == 10


class TestVerify:
    """Tests for drift detection."""

    def test_round_trip_verifies(self, service, ledger, make_transaction):
        """An unchanged ledger copy verifies."""
        tx = make_transaction()
        ledger.publish(tx)
        service.fetch_and_store(tx.hash)

        result = service.verify(tx.hash)

        assert result.verified is True
        assert result.mismatches == []
        assert result.record.tx_hash == tx.hash

    def test_reports_drift(self, service, ledger, store, make_transaction):
        """Changed fields are reported and the stored record is untouched."""
        tx = make_transaction()
        ledger.publish(tx)
        stored = service.fetch_and_store(tx.hash)

        ledger.publish(replace(tx, memo="tampered", fee_charged="200"))
        result = service.verify(tx.hash)

        assert result.verified is False
        assert result.mismatches == ["fee_charged", "memo"]
        assert store.get(tx.hash) == stored

    def test_unknown_hash(self, service, ledger):
        """Nothing stored means no ledger call and no record."""
        result = service.verify("e" * 64)

        assert result.verified is False
        assert result.record is None
        assert ledger.calls == []

    def test_ledger_forgot_transaction(self, service, ledger, make_transaction):
        """A stored hash missing from the ledger raises not found."""
        tx = make_transaction()
        ledger.publish(tx)
        service.fetch_and_store(tx.hash)
        del ledger.transactions[tx.hash]

        with pytest.raises(TransactionNotFound):
            service.verify(tx.hash)

    def test_ledger_unavailable(self, service, ledger, make_transaction):
        """Unavailability is not a verdict."""
        tx = make_transaction()
        ledger.publish(tx)
        service.fetch_and_store(tx.hash)
        ledger.unavailable = True

        with pytest.raises(LedgerUnavailable):
            service.verify(tx.hash)


class TestDiffPayloads:
    """Tests for field-by-field comparison."""

    def test_equal(self):
        """Identical payloads have no differences."""
        assert diff_payloads({"a": 1, "b": None}, {"a": 1, "b": None}) == []

    def test_changed_and_one_sided(self):
        """Fields present on only one side count as differences."""
        stored = {"a": 1, "b": 2, "only_stored": None}
        live = {"a": 1, "b": 3, "only_live": "x"}
        assert diff_payloads(stored, live) == ["b", "only_live", "only_stored"]

    def test_type_sensitive(self):
        """A numeric string differs from the number."""
        assert diff_payloads({"fee": "100"}, {"fee": 100}) == ["fee"]
