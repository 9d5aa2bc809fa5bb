# Overview: Pytest coverage for bearer-token auth, role permissions and the pluggable identity seams.

"""
Authorization Tests

- missing, unknown, revoked and expired tokens are 401
- roles map to permissions; a missing permission is 403 naming the action
- the identity provider and permission checker are swappable app extensions
"""

from datetime import timedelta

import pytest

from conftest import auth_headers
from erp.services.permission_service import RolePermissionChecker
from erp.services.session_service import Identity, issue_session_token, revoke_session_token


class TestAuthentication:
    def test_missing_header(self, client, db_session):
        resp = client.get("/api/sales")

        assert resp.status_code == 401
        assert resp.json["error"] == "Authentication required"

    def test_non_bearer_header(self, client, db_session):
        resp = client.get("/api/sales", headers={"Authorization": "Basic abc"})

        assert resp.status_code == 401

    def test_unknown_token(self, client, db_session):
        resp = client.get("/api/sales", headers=auth_headers("not-a-real-token"))

        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"

    def test_revoked_token(self, client, db_session, token_a):
        assert revoke_session_token(token_a) is True
        db_session.commit()

        resp = client.get("/api/sales", headers=auth_headers(token_a))

        assert resp.status_code == 401
        assert revoke_session_token(token_a) is False

    def test_expired_token(self, client, db_session, admin_a):
        _, token = issue_session_token(employee_id=admin_a.id, ttl=timedelta(seconds=-1))
        db_session.commit()

        resp = client.get("/api/sales", headers=auth_headers(token))

        assert resp.status_code == 401

    def test_inactive_company(self, client, db_session, company_a, token_a):
        company_a.is_active = False
        db_session.commit()

        resp = client.get("/api/sales", headers=auth_headers(token_a))

        assert resp.status_code == 401

    def test_valid_token(self, client, headers_a):
        assert client.get("/api/sales", headers=headers_a).status_code == 200


class TestPermissions:
    """Role -> permission map."""

    @pytest.mark.parametrize(
        "path",
        ["/api/inventory/levels", "/api/purchase-orders", "/api/goods-receipts", "/api/product-lots"],
    )
    def test_cashier_denied_outside_sales(self, client, cashier_headers_a, path):
        resp = client.get(path, headers=cashier_headers_a)

        assert resp.status_code == 403
        assert resp.json["error"] == "Permission denied"

    def test_cashier_can_sell(self, client, cashier_headers_a, customer_a, product_a):
        resp = client.post(
            "/api/sales",
            json={"CustomerID": customer_a.id, "Items": [{"ProductID": product_a.id, "Quantity": 1, "UnitPrice": 1}]},
            headers=cashier_headers_a,
        )

        assert resp.status_code == 201

    @pytest.mark.parametrize(
        "role, action, allowed",
        [
            ("CompanyAdmin", "purchaseOrders.manage", True),
            ("Warehouse", "inventory.adjust", True),
            ("Warehouse", "sales.create", False),
            ("Finance", "purchaseOrders.manage", True),
            ("Sales", "sales.view", True),
            ("Sales", "inventory.view", False),
            ("Unknown", "sales.view", False),
        ],
    )
    def test_role_map(self, role, action, allowed):
        assert RolePermissionChecker().has_permission(role, action) is allowed


class _StaticProvider:
    def __init__(self, identity):
        self.identity = identity

    def resolve(self, token):
        return self.identity if token == "letmein" else None


class _DenyAll:
    def has_permission(self, role, action):
        return False


class TestPluggableSeams:
    def test_custom_identity_provider(self, app, client, company_a, warehouse_a):
        original = app.extensions["erp.identity_provider"]
        app.extensions["erp.identity_provider"] = _StaticProvider(
            Identity(company_id=company_a.id, employee_id=None, role="Sales")
        )
        try:
            ok = client.get("/api/sales", headers=auth_headers("letmein"))
            bad = client.get("/api/sales", headers=auth_headers("nope"))
        finally:
            app.extensions["erp.identity_provider"] = original

        assert ok.status_code == 200
        assert bad.status_code == 401

    def test_custom_permission_checker(self, app, client, headers_a):
        original = app.extensions["erp.permission_checker"]
        app.extensions["erp.permission_checker"] = _DenyAll()
        try:
            resp = client.get("/api/sales", headers=headers_a)
        finally:
            app.extensions["erp.permission_checker"] = original

        assert resp.status_code == 403
        assert resp.json["required_permission"] == "sales.view"


class TestHealth:
    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["database"]["status"] == "healthy"
