# Overview: Flask CLI command group for local bootstrap and session tokens.

# backend/erp/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "erp" (PowerShell: $env:FLASK_APP="erp").
# - Use: python -m flask erp <command> [options]
#
# - python -m flask erp init-db
#   Create every table from the model metadata (use `flask db upgrade` for migrated databases).
# - python -m flask erp seed-demo [--company "Demo SpA"]
#   Idempotent demo tenant: company, primary warehouse, customer, supplier,
#   product, CompanyAdmin employee and default document sequences. Prints a token.
# - python -m flask erp issue-token --employee-id 1 [--ttl-hours 8]
#   Issue a bearer token for an existing employee.
# - python -m flask erp revoke-token TOKEN
#   Revoke a bearer token.

import click
from datetime import timedelta
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Company, Customer, DocumentSequence, Employee, Product, Supplier, Warehouse
from .services.session_service import issue_session_token, revoke_session_token
from .validation import DomainError


DEFAULT_SEQUENCES = (
    ("BOLETA", "B-"),
    ("FACTURA", "F-"),
    ("NOTA_CREDITO", "NC-"),
    ("NOTA_DEBITO", "ND-"),
    ("GUIA_DESPACHO", "GD-"),
)


def _session_ttl(ttl_hours: int | None) -> timedelta:
    hours = ttl_hours if ttl_hours else current_app.config.get("SESSION_TTL_HOURS", 24)
    return timedelta(hours=int(hours))


def _get_or_create(model, defaults: dict | None = None, **filters):
    row = db.session.query(model).filter_by(**filters).first()
    if row is not None:
        return row, False
    row = model(**filters, **(defaults or {}))
    db.session.add(row)
    db.session.flush()
    return row, True


@click.group('erp')
def erp_group():
    """ERP bootstrap and session commands."""


@erp_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables from model metadata."""
    db.create_all()
    click.echo("PASS Database tables created")


@erp_group.command('seed-demo')
@click.option('--company', 'company_name', default='Demo Company', help='Company name')
@click.option('--tax-id', default='76.000.000-0', help='Company RUT')
@with_appcontext
def seed_demo(company_name, tax_id):
    """
    Create (or reuse) a demo tenant with one of everything the transaction
    engine needs, then print a CompanyAdmin token for it.
    """
    click.echo("START Seeding demo tenant...")

    company, created = _get_or_create(Company, {"name": company_name, "is_active": True}, tax_id=tax_id)
    click.echo(f"{'PASS Created' if created else 'PASS Using existing'} company: {company.name} (ID: {company.id})")

    warehouse, _ = _get_or_create(
        Warehouse, {"is_primary": True, "is_active": True}, company_id=company.id, name="Main Warehouse"
    )
    customer, _ = _get_or_create(Customer, {"tax_id": "11.111.111-1"}, company_id=company.id, name="Walk-in Customer")
    supplier, _ = _get_or_create(Supplier, {"tax_id": "22.222.222-2"}, company_id=company.id, name="Demo Supplier")
    product, _ = _get_or_create(
        Product, {"name": "Demo Product", "is_active": True}, company_id=company.id, sku="DEMO-001"
    )
    employee, _ = _get_or_create(
        Employee,
        {"first_name": "Demo", "last_name": "Admin", "role": "CompanyAdmin", "is_active": True},
        company_id=company.id,
        email="admin@demo.local",
    )

    for document_type, prefix in DEFAULT_SEQUENCES:
        _, seq_created = _get_or_create(
            DocumentSequence,
            {"prefix": prefix, "next_number": 1, "is_active": True},
            company_id=company.id,
            document_type=document_type,
            is_electronic=True,
        )
        if seq_created:
            click.echo(f"PASS Created sequence {document_type} ({prefix}1)")

    _, token = issue_session_token(employee_id=employee.id, ttl=_session_ttl(None))
    db.session.commit()

    click.echo("\n" + "=" * 60)
    click.echo(f"Company:   {company.name} (ID: {company.id})")
    click.echo(f"Warehouse: {warehouse.name} (ID: {warehouse.id})")
    click.echo(f"Customer:  {customer.name} (ID: {customer.id})")
    click.echo(f"Supplier:  {supplier.name} (ID: {supplier.id})")
    click.echo(f"Product:   {product.sku} (ID: {product.id})")
    click.echo(f"Employee:  {employee.email} (ID: {employee.id}, role {employee.role})")
    click.echo("=" * 60)
    click.echo(f"Bearer token: {token}")


@erp_group.command('issue-token')
@click.option('--employee-id', type=int, required=True, help='Employee ID')
@click.option('--ttl-hours', type=int, default=None, help='Token lifetime (defaults to ERP_SESSION_TTL_HOURS)')
@with_appcontext
def issue_token(employee_id, ttl_hours):
    """Issue a bearer token for an active employee."""
    try:
        session, token = issue_session_token(employee_id=employee_id, ttl=_session_ttl(ttl_hours))
        db.session.commit()
    except DomainError as e:
        db.session.rollback()
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Token for employee {employee_id} (expires {session.expires_at.isoformat()}):")
    click.echo(token)


@erp_group.command('revoke-token')
@click.argument('token')
@with_appcontext
def revoke_token(token):
    """Revoke a bearer token."""
    if revoke_session_token(token):
        db.session.commit()
        click.echo("PASS Token revoked")
    else:
        click.echo("WARN Token not found or already revoked")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(erp_group)
