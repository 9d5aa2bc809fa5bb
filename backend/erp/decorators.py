# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .services.permission_service import is_admin_role


def _is_authenticated() -> bool:
    return hasattr(g, 'identity') and hasattr(g, 'company_id')


def require_auth(f):
    """
    Require a bearer token and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.identity: the resolved Identity
    - g.company_id: the company every query is scoped to - REQUIRED
    - g.employee_id: the acting employee (may be None for service tokens)
    - g.role: the employee's role name

    The token is resolved by the identity provider registered in
    app.extensions["erp.identity_provider"].

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        provider = current_app.extensions["erp.identity_provider"]
        identity = provider.resolve(token)

        if identity is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        if not identity.company_id:
            current_app.logger.warning("Token without company context on %s %s", request.method, request.path)
            return jsonify({"error": "Invalid session: missing tenant context"}), 401

        g.identity = identity
        g.company_id = identity.company_id
        g.employee_id = identity.employee_id
        g.role = identity.role

        return f(*args, **kwargs)

    return decorated_function


def require_permission(action: str):
    """Require the caller's role to grant `action` (checked by the registered PermissionChecker)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            checker = current_app.extensions["erp.permission_checker"]
            if not checker.has_permission(g.role, action):
                current_app.logger.info(
                    "Permission denied: role=%s action=%s company=%s path=%s",
                    g.role, action, g.company_id, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": action,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin(f):
    """Require a company-admin role (SuperAdmin or CompanyAdmin)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not is_admin_role(g.role):
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)
    return decorated_function
