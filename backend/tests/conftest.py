"""
Pytest fixtures for ERP backend tests.

Provides test database setup, two tenants with their master data, bearer
tokens and a test client.
"""

import pytest
from erp import create_app
from erp.extensions import db
from erp.models import Company, Customer, Employee, Product, Supplier, Warehouse
from erp.services.inventory_service import lock_level
from erp.services.session_service import issue_session_token


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _add(session, row):
    session.add(row)
    session.commit()
    return row


@pytest.fixture(scope='function')
def company_a(db_session):
    """Company A (first tenant)."""
    return _add(db_session, Company(name="Comercial Andes SpA", tax_id="76.111.111-1", is_active=True))


@pytest.fixture(scope='function')
def company_b(db_session):
    """Company B (second tenant)."""
    return _add(db_session, Company(name="Distribuidora Bio SpA", tax_id="76.222.222-2", is_active=True))


@pytest.fixture(scope='function')
def warehouse_a(db_session, company_a):
    """Primary warehouse of company A."""
    return _add(db_session, Warehouse(company_id=company_a.id, name="Bodega Central", is_primary=True))


@pytest.fixture(scope='function')
def warehouse_a2(db_session, company_a):
    """Secondary warehouse of company A."""
    return _add(db_session, Warehouse(company_id=company_a.id, name="Bodega Norte", is_primary=False))


@pytest.fixture(scope='function')
def warehouse_b(db_session, company_b):
    return _add(db_session, Warehouse(company_id=company_b.id, name="Bodega B", is_primary=True))


@pytest.fixture(scope='function')
def customer_a(db_session, company_a):
    return _add(db_session, Customer(company_id=company_a.id, name="Cliente A", tax_id="11.111.111-1"))


@pytest.fixture(scope='function')
def customer_b(db_session, company_b):
    return _add(db_session, Customer(company_id=company_b.id, name="Cliente B", tax_id="22.222.222-2"))


@pytest.fixture(scope='function')
def supplier_a(db_session, company_a):
    return _add(db_session, Supplier(company_id=company_a.id, name="Proveedor A"))


@pytest.fixture(scope='function')
def supplier_b(db_session, company_b):
    return _add(db_session, Supplier(company_id=company_b.id, name="Proveedor B"))


@pytest.fixture(scope='function')
def product_a(db_session, company_a):
    """Plain stocked product in company A."""
    return _add(db_session, Product(company_id=company_a.id, sku="A-001", name="Tornillo"))


@pytest.fixture(scope='function')
def product_a2(db_session, company_a):
    return _add(db_session, Product(company_id=company_a.id, sku="A-002", name="Tuerca"))


@pytest.fixture(scope='function')
def lot_product_a(db_session, company_a):
    """Lot-tracked product in company A."""
    return _add(db_session, Product(company_id=company_a.id, sku="A-LOT", name="Yogur", uses_lots=True))


@pytest.fixture(scope='function')
def serial_product_a(db_session, company_a):
    """Serial-tracked product in company A."""
    return _add(db_session, Product(company_id=company_a.id, sku="A-SER", name="Notebook", uses_serials=True))


@pytest.fixture(scope='function')
def product_b(db_session, company_b):
    return _add(db_session, Product(company_id=company_b.id, sku="B-001", name="Martillo"))


@pytest.fixture(scope='function')
def admin_a(db_session, company_a):
    """CompanyAdmin of company A."""
    return _add(db_session, Employee(
        company_id=company_a.id, first_name="Ana", last_name="Admin", email="ana@a.cl", role="CompanyAdmin",
    ))


@pytest.fixture(scope='function')
def cashier_a(db_session, company_a):
    """Cashier of company A (sales only)."""
    return _add(db_session, Employee(
        company_id=company_a.id, first_name="Carlos", last_name="Caja", email="carlos@a.cl", role="Cashier",
    ))


@pytest.fixture(scope='function')
def admin_b(db_session, company_b):
    return _add(db_session, Employee(
        company_id=company_b.id, first_name="Beto", last_name="Admin", email="beto@b.cl", role="CompanyAdmin",
    ))


def _token(session, employee) -> str:
    _, token = issue_session_token(employee_id=employee.id)
    session.commit()
    return token


@pytest.fixture(scope='function')
def token_a(db_session, admin_a, warehouse_a):
    """Bearer token for company A's admin (warehouse A exists as the default)."""
    return _token(db_session, admin_a)


@pytest.fixture(scope='function')
def cashier_token_a(db_session, cashier_a, warehouse_a):
    return _token(db_session, cashier_a)


@pytest.fixture(scope='function')
def token_b(db_session, admin_b, warehouse_b):
    return _token(db_session, admin_b)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_a(token_a):
    return auth_headers(token_a)


@pytest.fixture(scope='function')
def cashier_headers_a(cashier_token_a):
    return auth_headers(cashier_token_a)


@pytest.fixture(scope='function')
def headers_b(token_b):
    return auth_headers(token_b)


def stock_of(product_id: int, warehouse_id: int, lot_id=None) -> float:
    """Current level row quantity for one ledger key (0 when the row does not exist)."""
    product = db.session.get(Product, product_id)
    level = lock_level(product.company_id, product_id, warehouse_id, lot_id) if product else None
    return float(level.stock_quantity) if level else 0.0
