from __future__ import annotations

from ..extensions import db
from erp.time_utils import to_utc_z, utcnow


class Company(db.Model):
    """
    Multi-tenant root: every tenant is a Company.

    All warehouses, employees, documents and inventory rows carry company_id
    and every read or write is scoped by it. No data crosses company
    boundaries.
    """
    __tablename__ = "companies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    tax_id = db.Column(db.String(32), nullable=True, unique=True)  # RUT
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "CompanyID": self.id,
            "CompanyName": self.name,
            "TaxID": self.tax_id,
            "IsActive": self.is_active,
            "CreatedAt": to_utc_z(self.created_at),
        }


class Employee(db.Model):
    """
    Company staff. role is one of the core role names understood by the
    permission checker (SuperAdmin, CompanyAdmin, Admin, Cashier, ...).
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.UniqueConstraint("company_id", "email", name="uq_employees_company_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(64), nullable=False, default="Cashier")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Employee id={self.id} company_id={self.company_id} role={self.role!r}>"


class Warehouse(db.Model):
    """
    Stock location. The default warehouse for a company is its active
    primary one, then the lowest id among active warehouses.
    """
    __tablename__ = "warehouses"
    __table_args__ = (
        db.UniqueConstraint("company_id", "name", name="uq_warehouses_company_name"),
        db.Index("ix_warehouses_company_active", "company_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "WarehouseID": self.id,
            "CompanyID": self.company_id,
            "WarehouseName": self.name,
            "IsPrimary": self.is_primary,
            "IsActive": self.is_active,
        }


class Customer(db.Model):
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    tax_id = db.Column(db.String(32), nullable=True)


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    tax_id = db.Column(db.String(32), nullable=True)
