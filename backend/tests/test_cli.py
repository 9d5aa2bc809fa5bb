# Overview: Pytest coverage for the `flask erp` command group.

from conftest import auth_headers
from erp.extensions import db
from erp.models import Company, DocumentSequence


class TestSeedDemo:
    def test_seed_creates_tenant_and_usable_token(self, app, client, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["erp", "seed-demo", "--company", "Demo SpA", "--tax-id", "76.555.555-5"])

        assert result.exit_code == 0
        token = result.output.strip().splitlines()[-1].removeprefix("Bearer token: ")
        company = db.session.query(Company).filter_by(tax_id="76.555.555-5").one()
        assert company.name == "Demo SpA"
        types = {s.document_type for s in db.session.query(DocumentSequence).filter_by(company_id=company.id)}
        assert types == {"BOLETA", "FACTURA", "NOTA_CREDITO", "NOTA_DEBITO", "GUIA_DESPACHO"}

        resp = client.get("/api/document-sequences", headers=auth_headers(token))
        assert resp.status_code == 200
        assert len(resp.json) == 5

    def test_seed_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        runner.invoke(args=["erp", "seed-demo", "--tax-id", "76.666.666-6"])
        second = runner.invoke(args=["erp", "seed-demo", "--tax-id", "76.666.666-6"])

        assert second.exit_code == 0
        assert "Using existing" in second.output
        assert db.session.query(Company).filter_by(tax_id="76.666.666-6").count() == 1
        assert db.session.query(DocumentSequence).count() == 5


class TestTokens:
    def test_issue_and_revoke(self, app, client, db_session, admin_a):
        runner = app.test_cli_runner()

        issued = runner.invoke(args=["erp", "issue-token", "--employee-id", str(admin_a.id), "--ttl-hours", "1"])
        token = issued.output.strip().splitlines()[-1]
        revoked = runner.invoke(args=["erp", "revoke-token", token])

        assert issued.exit_code == 0
        assert "PASS Token revoked" in revoked.output
        assert client.get("/api/sales", headers=auth_headers(token)).status_code == 401

    def test_issue_for_unknown_employee(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["erp", "issue-token", "--employee-id", "999999"])

        assert result.exit_code == 1
        assert "FAIL Employee not found" in result.output
