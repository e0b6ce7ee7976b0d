"""Integration tests for the application wired to SQLite.

The ledger is stubbed; everything else is the production wiring.
"""

import pytest
from fastapi.testclient import TestClient

from ledger_mirror.persistence import Database
from ledger_mirror.service.app import create_app
from ledger_mirror.service.config import LedgerMirrorConfig

EMPLOYEE_ID = 42


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "data" / "ledger_mirror.db")


@pytest.fixture
def seeded(db_path, wallet):
    with Database(db_path) as db:
        with db.transaction() as conn:
            conn.execute(
                "INSERT INTO employees (id, wallet_address) VALUES (?, ?)",
                (EMPLOYEE_ID, wallet),
            )
    return db_path


def make_client(db_path, ledger, issuer):
    config = LedgerMirrorConfig(db_path=db_path, asset_issuer=issuer)
    return TestClient(create_app(config, gateway=ledger))


@pytest.mark.integration
class TestSqliteApplication:
    """End-to-end flows against a file-backed database."""

    def test_healthz_checks_database(self, db_path, ledger, issuer):
        """The database check is reported alongside the ledger."""
        with make_client(db_path, ledger, issuer) as client:
            data = client.get("/healthz").json()

        assert data["status"] == "ok"
        assert data["checks"]["database"] == {"status": "healthy"}

    def test_employee_trustline_lifecycle(self, seeded, ledger, wallet, issuer):
        """none -> pending -> established for a seeded employee."""
        ledger.fund(wallet)

        with make_client(seeded, ledger, issuer) as client:
            first = client.post(f"/trustlines/employees/{EMPLOYEE_ID}/refresh").json()
            assert first["status"] == "none"

            prompt = client.post(
                "/trustlines/prompt",
                json={"employeeId": EMPLOYEE_ID, "walletAddress": wallet},
            )
            assert prompt.status_code == 200
            assert prompt.json()["record"]["status"] == "pending"

            ledger.add_trustline(wallet, "ORGUSD", issuer)
            final = client.post(f"/trustlines/employees/{EMPLOYEE_ID}/refresh").json()
            assert final["status"] == "established"
            assert client.get(f"/trustlines/employees/{EMPLOYEE_ID}").json() == final

    def test_audit_records_survive_restart(self, db_path, ledger, issuer, make_transaction):
        """Records written by one app instance are served by the next."""
        tx = make_transaction()
        ledger.publish(tx)

        with make_client(db_path, ledger, issuer) as client:
            created = client.post(f"/audit/{tx.hash}")
            assert created.status_code == 201

        with make_client(db_path, ledger, issuer) as client:
            assert client.get(f"/audit/{tx.hash}").json() == created.json()
            again = client.post(f"/audit/{tx.hash}")
            assert again.json() == created.json()
            assert client.get(f"/audit/{tx.hash}/verify").json()["verified"] is True

        assert ledger.calls_to("fetch_transaction") == 2

    def test_repeat_audit_responses_are_byte_identical(
        self, db_path, ledger, issuer, make_transaction
    ):
        """The first capture and every later read serialize to the same bytes."""
        tx = make_transaction()
        ledger.publish(tx)

        with make_client(db_path, ledger, issuer) as client:
            created = client.post(f"/audit/{tx.hash}")
            again = client.post(f"/audit/{tx.hash}")
            fetched = client.get(f"/audit/{tx.hash}")

        assert created.status_code == 201
        assert again.content == created.content
        assert fetched.content == created.content


@pytest.mark.integration
class TestSqliteIntegerLimits:
    """Numbers beyond SQLite's 64-bit range are refused before any query."""

    HUGE = 10**20

    def test_huge_page(self, db_path, ledger, issuer):
        """A page whose offset would overflow is a 400."""
        with make_client(db_path, ledger, issuer) as client:
            response = client.get("/audit", params={"page": self.HUGE, "limit": 10})

        assert response.status_code == 400
        assert response.json()["reason"] == "validation_error"

    def test_huge_employee_id_status(self, seeded, ledger, issuer):
        """Status lookups reject employee ids SQLite cannot bind."""
        with make_client(seeded, ledger, issuer) as client:
            response = client.get(f"/trustlines/employees/{self.HUGE}")

        assert response.status_code == 400
        assert response.json()["reason"] == "validation_error"

    def test_huge_employee_id_refresh(self, seeded, ledger, issuer):
        """Refresh rejects the id without touching the ledger."""
        with make_client(seeded, ledger, issuer) as client:
            response = client.post(f"/trustlines/employees/{self.HUGE}/refresh")

        assert response.status_code == 400
        assert response.json()["reason"] == "validation_error"
        assert ledger.calls == []

    def test_huge_employee_id_prompt(self, seeded, ledger, wallet, issuer):
        """The prompt body bounds employeeId during request validation."""
        ledger.fund(wallet)

        with make_client(seeded, ledger, issuer) as client:
            response = client.post(
                "/trustlines/prompt",
                json={"employeeId": self.HUGE, "walletAddress": wallet},
            )

        assert response.status_code == 422
