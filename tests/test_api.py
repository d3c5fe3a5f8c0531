"""API tests for the credit-gated endpoints."""

import pytest
from fastapi.testclient import TestClient

from leadgen.core.exceptions import ConcurrencyConflict, StorageError
from leadgen.db.session import get_db
from leadgen.dependencies.auth import get_current_account_id
from leadgen.main import app
from leadgen.services.account_store import SqlAccountStore
from leadgen.services.credit_service import CreditService
from leadgen.utils.credit_enforcement import get_credit_service

ACCOUNT_ID = "6f1c2a9e-4b7d-4a8e-9c3f-2d5e8b1a7c40"

GENERATE_PAYLOAD = {
    "contact_name": "Jane Doe",
    "job_title": "Analyst",
    "company_name": "Acme Capital",
    "email_type": "coffee_chat",
}


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_account_id] = lambda: ACCOUNT_ID
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def account(make_user):
    def _account(**fields):
        return make_user(ACCOUNT_ID, **fields)

    return _account


class ConflictingStore(SqlAccountStore):
    def conditional_increment_usage(self, account_id, expected_usage_count):
        raise ConcurrencyConflict(account_id, expected_usage_count)


class BrokenStore(SqlAccountStore):
    def read_account(self, account_id):
        raise StorageError("connection reset by peer", account_id=account_id)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestCreditStatusEndpoint:

    def test_fresh_freemium_account(self, client, account):
        account()

        response = client.get("/api/credits")

        assert response.status_code == 200
        assert response.json() == {
            "can_generate": True,
            "credits_used": 0,
            "credits_remaining": {"kind": "remaining", "count": 5},
            "max_credits": {"kind": "remaining", "count": 5},
            "plan": "freemium",
            "is_at_limit": False,
        }

    def test_premium_account(self, client, account):
        account(plan="premium", email_credits=11)

        body = client.get("/api/credits").json()

        assert body["credits_remaining"] == {"kind": "unlimited"}
        assert body["max_credits"] == {"kind": "unlimited"}
        assert body["can_generate"] is True

    def test_unknown_account(self, client):
        response = client.get("/api/credits")

        assert response.status_code == 404
        assert response.json() == {"error": "User not found"}

    def test_profile_includes_credits(self, client, account):
        account(email_credits=2, first_name="Ada", last_name="Lovelace")

        body = client.get("/api/users/me").json()

        assert body["id"] == ACCOUNT_ID
        assert body["plan"] == "freemium"
        assert body["credits"]["credits_remaining"] == {"kind": "remaining", "count": 3}


class TestGenerateEmail:

    def test_generates_and_consumes_a_credit(self, client, account, read_usage):
        account(first_name="Ada", last_name="Lovelace", university="HEC Paris")

        response = client.post("/api/emails/generate", json=GENERATE_PAYLOAD)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["email_type"] == "Coffee Chat"
        assert body["language"] == "English"
        assert body["subject"] == "Request for professional exchange"
        assert "Hello Jane Doe" in body["body"]
        assert "Ada Lovelace" in body["body"]
        assert "HEC Paris" in body["body"]
        assert body["credits"]["new_credits_used"] == 1
        assert body["credits"]["credits_remaining"] == {"kind": "remaining", "count": 4}
        assert read_usage(ACCOUNT_ID) == 1

    def test_quota_exhausted_after_last_free_credit(self, client, account, read_usage):
        account(email_credits=4)

        ok = client.post("/api/emails/generate", json=GENERATE_PAYLOAD)
        assert ok.status_code == 200
        assert ok.json()["credits"]["credits_remaining"] == {"kind": "remaining", "count": 0}

        denied = client.post("/api/emails/generate", json=GENERATE_PAYLOAD)
        assert denied.status_code == 403
        body = denied.json()
        assert "5" in body["error"]
        assert "Upgrade to Premium" in body["error"]
        assert "rateLimited" not in body
        assert read_usage(ACCOUNT_ID) == 5

    def test_premium_generation_is_free(self, client, account, read_usage):
        account(plan="premium", email_credits=40)

        for _ in range(3):
            response = client.post("/api/emails/generate", json=GENERATE_PAYLOAD)
            assert response.status_code == 200
            assert response.json()["credits"]["credits_remaining"] == {"kind": "unlimited"}

        assert read_usage(ACCOUNT_ID) == 40

    def test_missing_fields_do_not_cost_a_credit(self, client, account, read_usage):
        account()

        response = client.post("/api/emails/generate", json={"contact_name": "Jane Doe"})

        assert response.status_code == 400
        assert "required" in response.json()["detail"]
        assert read_usage(ACCOUNT_ID) == 0

    def test_french_email(self, client, account):
        account()

        body = client.post(
            "/api/emails/generate",
            json={**GENERATE_PAYLOAD, "email_type": "referral", "language": "Français"},
        ).json()

        assert body["email_type"] == "Referral Request"
        assert body["subject"] == "Demande d'échange professionnel"
        assert body["body"].startswith("Bonjour Jane Doe")

    def test_suspended_plan_is_denied(self, client, account, read_usage):
        account(plan="suspended")

        response = client.post("/api/emails/generate", json=GENERATE_PAYLOAD)

        assert response.status_code == 403
        assert response.json() == {"error": "Unable to generate email at this time."}
        assert read_usage(ACCOUNT_ID) == 0

    def test_contention_is_reported_as_rate_limited(self, client, account, session_factory):
        account()
        db = session_factory()
        app.dependency_overrides[get_credit_service] = lambda: CreditService(
            ConflictingStore(db), max_retries=2, backoff_seconds=0
        )

        response = client.post("/api/emails/generate", json=GENERATE_PAYLOAD)
        db.close()

        assert response.status_code == 429
        assert response.json()["rateLimited"] is True
        assert "try again" in response.json()["error"]

    def test_storage_failure_hides_internals(self, client, account, session_factory):
        account()
        db = session_factory()
        app.dependency_overrides[get_credit_service] = lambda: CreditService(BrokenStore(db))

        response = client.post("/api/emails/generate", json=GENERATE_PAYLOAD)
        db.close()

        assert response.status_code == 500
        body = response.json()
        assert "try again" in body["error"]
        assert "connection reset" not in body["error"]
        assert "rateLimited" not in body
