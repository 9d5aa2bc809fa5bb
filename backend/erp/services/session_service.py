# Overview: Bearer-token identity resolution; maps an opaque token to (company, employee, role).

"""
Identity provider used by require_auth.

Tokens are random 32-byte hex strings handed to clients once; only their
SHA-256 hash is stored. Credentials and login flows live outside this
service: whatever authenticates an employee calls issue_session_token().
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

from ..extensions import db
from ..models import Company, Employee, SessionToken
from ..time_utils import as_utc_naive, utcnow
from ..validation import NotFoundError, ValidationError

DEFAULT_TTL = timedelta(hours=24)


@dataclass(frozen=True)
class Identity:
    company_id: int
    employee_id: int | None
    role: str


class IdentityProvider(Protocol):
    def resolve(self, token: str) -> Identity | None: ...


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_session_token(*, employee_id: int, ttl: timedelta = DEFAULT_TTL) -> tuple[SessionToken, str]:
    """
    Create a session for an active employee of an active company.

    Returns (session_record, plaintext_token); the caller commits.
    """
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    if not employee.is_active:
        raise ValidationError("Employee is not active")
    company = db.session.get(Company, employee.company_id)
    if company is None or not company.is_active:
        raise ValidationError("Company is not active")

    token = generate_token()
    now = utcnow()
    session = SessionToken(
        employee_id=employee.id,
        company_id=employee.company_id,
        role=employee.role,
        token_hash=hash_token(token),
        created_at=now,
        expires_at=now + ttl,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.flush()
    return session, token


def revoke_session_token(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if session is None or session.is_revoked:
        return False
    session.is_revoked = True
    session.revoked_at = utcnow()
    db.session.flush()
    return True


class SessionTokenIdentityProvider:
    """Looks tokens up in session_tokens; expired or revoked tokens resolve to None."""

    def resolve(self, token: str) -> Identity | None:
        if not token:
            return None
        session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
        if session is None or session.is_revoked:
            return None
        if as_utc_naive(session.expires_at) <= utcnow():
            return None
        company = db.session.get(Company, session.company_id)
        if company is None or not company.is_active:
            return None
        return Identity(company_id=session.company_id, employee_id=session.employee_id, role=session.role)
