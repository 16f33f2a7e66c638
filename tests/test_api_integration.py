"""
Integration tests for the Transaction Ledger API
Tests end-to-end flows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from ledger_core.api import create_app
from ledger_core.api.dependencies import get_ledger_service, parse_timestamp
from ledger_core.exceptions import ValidationError
from ledger_core.ledger import LedgerService
from ledger_core.storage import InMemoryLedgerStorage


@pytest.fixture
def service():
    """Fresh ledger service per test"""
    return LedgerService(InMemoryLedgerStorage())


@pytest.fixture
def client(service):
    """Create a test client wired to the test ledger service"""
    app = create_app()
    app.dependency_overrides[get_ledger_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def post_tx(client, account_id, **body):
    payload = {"accountType": "SAVINGS", "type": "DEPOSIT", "amount": "100.00", "currency": "USD"}
    payload.update(body)
    return client.post(f"/accounts/{account_id}/transactions", json=payload)


class TestHealthEndpoint:
    """Test service endpoints"""

    def test_health(self, client):
        """Test health endpoint"""
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"


class TestTransactionFlow:
    """End-to-end transaction recording tests"""

    def test_create_transaction(self, client):
        """Deposit returns the created transaction"""
        r = post_tx(client, "A1", transactionCode="ATM-DEP-001")
        assert r.status_code == 200
        data = r.json()
        assert data["account_id"] == "A1"
        assert data["type"] == "DEPOSIT"
        assert data["account_type"] == "SAVINGS"
        assert data["amount"] == "100.00"
        assert data["currency"] == "USD"
        assert data["transaction_code"] == "ATM-DEP-001"
        assert data["id"]

    def test_numeric_amount_and_snake_case_fields(self, client):
        """Amounts may be JSON numbers and field names snake_case"""
        r = client.post("/accounts/A1/transactions", json={
            "account_type": "CREDIT_CARD",
            "type": "WITHDRAWAL",
            "amount": 12.5,
            "currency": "eur",
            "transaction_code": "SPEND-1"
        })
        assert r.status_code == 200
        assert r.json()["currency"] == "EUR"
        assert client.get("/accounts/A1/balance").json()["balance"] == "-12.5"

    def test_idempotent_replay(self, client):
        """Same referenceId returns the same transaction"""
        r1 = post_tx(client, "A1", amount="200.00", referenceId="r1")
        r2 = post_tx(client, "A1", amount="200.00", referenceId="r1")

        assert r1.json()["id"] == r2.json()["id"]
        assert len(client.get("/accounts/A1/transactions").json()) == 1

    def test_insufficient_funds_is_bad_request(self, client):
        """Savings overdraw maps to 400"""
        post_tx(client, "A1")
        r = post_tx(client, "A1", type="WITHDRAWAL", amount="150.00")

        assert r.status_code == 400
        assert r.json()["detail"] == "Insufficient funds for withdrawal"
        assert client.get("/accounts/A1/balance").json()["balance"] == "100.00"

    def test_currency_mismatch_is_bad_request(self, client):
        """Currency mismatch maps to 400 with the message"""
        post_tx(client, "C1")
        r = post_tx(client, "C1", currency="INR")

        assert r.status_code == 400
        assert "Currency mismatch for account C1" in r.json()["detail"]

    def test_missing_fields_are_bad_request(self, client):
        """Engine validation errors map to 400"""
        r = client.post("/accounts/A1/transactions", json={"type": "DEPOSIT", "amount": "1", "currency": "USD"})
        assert r.status_code == 400
        assert r.json()["detail"] == "accountType required"

        r = post_tx(client, "A1", amount="-1")
        assert r.status_code == 400

    def test_malformed_body_is_bad_request(self, client):
        """Unknown enum values map to 400"""
        r = post_tx(client, "A1", type="TRANSFER")
        assert r.status_code == 400

    def test_timestamp_parsing(self, client):
        """ISO-8601 timestamps with Z or offsets are accepted; blank means now"""
        r = post_tx(client, "A1", timestamp="2025-10-01T10:00:00Z")
        assert r.status_code == 200
        assert r.json()["timestamp"] == "2025-10-01T10:00:00+00:00"

        r = post_tx(client, "A1", timestamp="   ")
        assert r.status_code == 200

        r = post_tx(client, "A1", timestamp="yesterday")
        assert r.status_code == 400

    def test_internal_error_is_server_error(self, client, service):
        """Inconsistent storage maps to 500"""
        service.storage.check_and_add_idempotency("A1", "ghost")
        r = post_tx(client, "A1", referenceId="ghost")

        assert r.status_code == 500
        assert "ghost" in r.json()["detail"]


class TestQueries:
    """Balance, history and ledger queries"""

    def test_history_sorted(self, client):
        """History is ordered by timestamp"""
        post_tx(client, "A1", amount="2.00", timestamp="2025-10-02T00:00:00Z")
        post_tx(client, "A1", amount="1.00", timestamp="2025-10-01T00:00:00Z")

        amounts = [tx["amount"] for tx in client.get("/accounts/A1/transactions").json()]
        assert amounts == ["1.00", "2.00"]

    def test_balance_at(self, client):
        """Point-in-time balance excludes later transactions"""
        post_tx(client, "A1", amount="100.00", timestamp="2025-10-01T10:00:00Z")
        post_tx(client, "A1", amount="50.00", timestamp="2025-10-03T10:00:00Z")

        r = client.get("/accounts/A1/balanceAt", params={"at": "2025-10-02T00:00:00+00:00"})
        assert r.status_code == 200
        assert r.json()["balance"] == "100.00"

        r = client.get("/accounts/A1/balanceAt", params={"at": "2025-09-01T00:00:00Z"})
        assert r.json()["balance"] == "0"

        assert client.get("/accounts/A1/balance").json()["balance"] == "150.00"

    def test_balance_at_requires_valid_instant(self, client):
        """Missing or invalid 'at' is a bad request"""
        assert client.get("/accounts/A1/balanceAt").status_code == 400
        assert client.get("/accounts/A1/balanceAt", params={"at": "2025-10-01T00:00:00"}).status_code == 400

    def test_ledger_rows(self, client):
        """The ledger lists all accounts in timestamp order"""
        post_tx(client, "A1", timestamp="2025-10-02T00:00:00Z")
        post_tx(client, "B1", accountType="CREDIT_CARD", type="WITHDRAWAL", timestamp="2025-10-01T00:00:00Z")

        rows = client.get("/ledger").json()
        assert [row["account_id"] for row in rows] == ["B1", "A1"]

    def test_account_summary(self, client):
        """Known accounts have a summary; unknown ones are 404"""
        assert client.get("/accounts/A1").status_code == 404

        post_tx(client, "A1")
        data = client.get("/accounts/A1").json()
        assert data["currency"] == "USD"
        assert data["balance"] == "100.00"
        assert data["transaction_count"] == 1

    def test_credit_card_scenario(self, client):
        """Charge 100 then pay 50 leaves -50"""
        post_tx(client, "CC1", accountType="CREDIT_CARD", type="WITHDRAWAL", amount="100.00")
        assert client.get("/accounts/CC1/balance").json()["balance"] == "-100.00"

        post_tx(client, "CC1", accountType="CREDIT_CARD", type="DEPOSIT", amount="50.00")
        assert client.get("/accounts/CC1/balance").json()["balance"] == "-50.00"


class TestParseTimestamp:
    """Test timestamp parsing helper"""

    def test_blank_is_none(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_offset_kept(self):
        parsed = parse_timestamp("2025-10-01T10:00:00+05:30")
        assert parsed.utcoffset().total_seconds() == 5.5 * 3600

    def test_naive_rejected(self):
        with pytest.raises(ValidationError, match="UTC offset"):
            parse_timestamp("2025-10-01T10:00:00")
