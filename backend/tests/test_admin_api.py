"""
Tests for the admin router.

Test Coverage:
1. DELETE /admin/principals: 200, 207, 404, 422, 403 and 500
2. Erasure preview and principal lookup
3. Identity-removal retry: 200 and 502
4. Erasure audit log written and listed
5. Bearer token authentication against admin_profiles
6. Erasure and identity retry run in the thread pool
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from app.auth import create_access_token, require_admin
from app.database import get_db
from app.identity import get_identity_provider
from app.main import app
from app.models.db_models import AdminProfileDB, ErasureAuditLogDB, LoanDB, ProfileDB
from app.services.erasure import ErasureError, ErasureOrchestrator

from conftest import FakeIdentityProvider, add_admin, add_customer, new_id


def _acting_admin(db, role):
    admin_id = add_admin(db, role=role)
    return db.query(AdminProfileDB).filter(AdminProfileDB.id == admin_id).one()


@pytest.fixture
def make_client(db):
    """Client factory: acting admin role and identity provider per test."""
    def _make(role="super_admin", provider=None):
        admin = _acting_admin(db, role)
        provider = provider or FakeIdentityProvider()
        app.dependency_overrides[get_db] = lambda: db
        app.dependency_overrides[get_identity_provider] = lambda: provider
        app.dependency_overrides[require_admin] = lambda: admin
        return TestClient(app), admin.id, provider

    yield _make
    app.dependency_overrides.clear()


def _erase(client, **payload):
    return client.request("DELETE", "/admin/principals", json=payload)


# =============================================================================
# TEST: ERASE
# =============================================================================

class TestErasePrincipal:
    """DELETE /admin/principals"""

    def test_complete(self, db, make_client):
        client, _, provider = make_client()
        customer = add_customer(db)

        response = _erase(client, contact_address=customer["email"])

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["principal_id"] == customer["user_id"]
        assert provider.removed == {customer["user_id"]}
        assert db.query(ProfileDB).filter(ProfileDB.id == customer["user_id"]).first() is None

    def test_partial(self, db, make_client):
        client, _, _ = make_client(provider=FakeIdentityProvider(fail=True))
        customer = add_customer(db)

        response = _erase(client, principal_id=customer["user_id"])

        assert response.status_code == 207
        body = response.json()
        assert body["success"] is False
        assert body["partial"] is True
        assert body["principal_id"] == customer["user_id"]
        assert "identity record persists" in body["message"]

    def test_not_found(self, make_client):
        client, _, provider = make_client()

        response = _erase(client, contact_address="nobody@example.com")

        assert response.status_code == 404
        assert response.json() == {"error": "principal not found"}
        assert provider.calls == []

    @pytest.mark.parametrize("payload", [{}, {"principal_id": "", "contact_address": "  "}])
    def test_missing_identifiers(self, make_client, payload):
        client, _, _ = make_client()

        response = _erase(client, **payload)

        assert response.status_code == 422

    def test_admin_target_requires_super_admin(self, db, make_client):
        client, _, provider = make_client(role="admin")
        target_id = add_admin(db, role="manager")

        response = _erase(client, principal_id=target_id)

        assert response.status_code == 403
        assert provider.calls == []
        assert db.query(AdminProfileDB).filter(AdminProfileDB.id == target_id).first() is not None

    def test_super_admin_erases_admin(self, db, make_client):
        client, _, _ = make_client(role="super_admin")
        target_id = add_admin(db, role="manager")
        customer = add_customer(db, admin_id=target_id)

        response = _erase(client, principal_id=target_id)

        assert response.status_code == 200
        loan = db.query(LoanDB).filter(LoanDB.id == customer["loan_id"]).one()
        assert loan.approved_by is None

    def test_orchestrator_failure(self, make_client, monkeypatch):
        client, _, _ = make_client()

        def _fail(self, principal_id=None, contact_address=None):
            raise ErasureError("Owner resolution failed: connection reset")

        monkeypatch.setattr(ErasureOrchestrator, "resolve", _fail)

        response = _erase(client, principal_id=new_id())

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
        assert "connection reset" in response.json()["details"]

    def test_audit_entry_recorded(self, db, make_client):
        client, admin_id, _ = make_client()
        customer = add_customer(db)

        _erase(client, principal_id=customer["user_id"])

        entry = db.query(ErasureAuditLogDB).filter(
            ErasureAuditLogDB.principal_id == customer["user_id"]
        ).one()
        assert entry.overall_status == "complete"
        assert entry.identity_removed is True
        assert entry.performed_by == admin_id
        assert entry.rows_affected > 0

    def test_audit_listing(self, db, make_client):
        client, admin_id, _ = make_client()
        first, second = add_customer(db), add_customer(db)
        _erase(client, principal_id=first["user_id"])
        _erase(client, contact_address="nobody@example.com")
        _erase(client, principal_id=second["user_id"])

        response = client.get("/admin/erasure/audit", params={"page": 1, "page_size": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert len(body["entries"]) == 2
        assert body["entries"][0]["performed_by"] == admin_id


# =============================================================================
# TEST: PREVIEW, LOOKUP, IDENTITY RETRY
# =============================================================================

class TestSupportingRoutes:
    """Preview, lookup and identity retry."""

    def test_preview_changes_nothing(self, db, make_client):
        client, _, provider = make_client()
        customer = add_customer(db)

        response = client.post("/admin/principals/erasure/preview", json={"principal_id": customer["user_id"]})

        assert response.status_code == 200
        body = response.json()
        assert body["total_rows"] > 0
        threads = next(step for step in body["steps"] if step["name"] == "chat_threads")
        assert threads["rows"] == 3
        assert provider.calls == []
        assert db.query(ProfileDB).filter(ProfileDB.id == customer["user_id"]).first() is not None

    def test_lookup(self, db, make_client):
        client, _, _ = make_client()
        customer = add_customer(db)

        response = client.post("/admin/principals/lookup", json={"contact_address": customer["email"]})

        assert response.status_code == 200
        body = response.json()
        assert body["principal_id"] == customer["user_id"]
        assert body["kind"] == "user"
        assert body["first_name"] == "Dana"

    def test_lookup_unknown_id(self, make_client):
        client, _, _ = make_client()

        response = client.post("/admin/principals/lookup", json={"principal_id": new_id()})

        assert response.status_code == 404

    def test_identity_retry(self, make_client):
        client, _, provider = make_client()
        principal_id = new_id()

        response = client.post("/admin/principals/identity/remove", json={"principal_id": principal_id})

        assert response.status_code == 200
        assert response.json() == {"success": True, "principal_id": principal_id}
        assert provider.calls == [principal_id]

    def test_identity_retry_failure(self, make_client):
        client, _, _ = make_client(provider=FakeIdentityProvider(fail=True))

        response = client.post("/admin/principals/identity/remove", json={"principal_id": new_id()})

        assert response.status_code == 502
        assert response.json()["error"] == "identity removal failed"


# =============================================================================
# TEST: AUTHENTICATION
# =============================================================================

class TestAuthentication:
    """Bearer tokens verified against admin_profiles."""

    @pytest.fixture
    def client(self, db):
        app.dependency_overrides[get_db] = lambda: db
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_active_admin_token(self, db, client):
        admin_id = add_admin(db)
        token = create_access_token(admin_id, "ops@oakline.com")

        response = client.get("/admin/erasure/audit", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200

    def test_customer_token_rejected(self, db, client):
        customer = add_customer(db)
        token = create_access_token(customer["user_id"], customer["email"])

        response = client.get("/admin/erasure/audit", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_inactive_admin_forbidden(self, db, client):
        admin_id = add_admin(db)
        db.query(AdminProfileDB).filter(AdminProfileDB.id == admin_id).update({"is_active": False})
        db.commit()
        token = create_access_token(admin_id, "ops@oakline.com")

        response = client.get("/admin/erasure/audit", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403

    def test_bad_token(self, client):
        response = client.get("/admin/erasure/audit", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401

    def test_missing_token(self, client):
        response = client.get("/admin/erasure/audit")

        assert response.status_code in (401, 403)


# =============================================================================
# TEST: BLOCKING WORK OFF THE EVENT LOOP
# =============================================================================

class LoopCheckingProvider(FakeIdentityProvider):
    """Records whether each removal ran on a thread with a running event loop."""

    def __init__(self):
        super().__init__()
        self.on_event_loop = []

    def remove_identity(self, principal_id):
        try:
            asyncio.get_running_loop()
            self.on_event_loop.append(True)
        except RuntimeError:
            self.on_event_loop.append(False)
        super().remove_identity(principal_id)


class TestThreadPoolRoutes:
    """Erasure and identity retry run in the thread pool, not on the loop."""

    def test_erase_runs_off_event_loop(self, db, make_client):
        provider = LoopCheckingProvider()
        client, _, _ = make_client(provider=provider)
        customer = add_customer(db)

        response = _erase(client, principal_id=customer["user_id"])

        assert response.status_code == 200
        assert provider.on_event_loop == [False]

    def test_identity_retry_runs_off_event_loop(self, make_client):
        provider = LoopCheckingProvider()
        client, _, _ = make_client(provider=provider)

        response = client.post("/admin/principals/identity/remove", json={"principal_id": new_id()})

        assert response.status_code == 200
        assert provider.on_event_loop == [False]
