# Overview: Request decorators establishing the caller's principal and role for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import ValidationError
from .services.tenant_service import Principal


def principal_from_gateway_headers(req) -> Principal | None:
    """
    Default resolver: trust the identity headers set by the upstream auth gateway.

    The gateway authenticates the caller and strips any client-supplied
    copies of these headers before forwarding.
    """
    actor_id = (req.headers.get("X-Actor-Id") or "").strip()
    role = (req.headers.get("X-Actor-Role") or "").strip().upper()
    shop_id = (req.headers.get("X-Shop-Id") or "").strip()

    # str.isdigit() also accepts superscripts and non-Latin digits that int() rejects.
    if not actor_id or not role or not (shop_id.isascii() and shop_id.isdigit()):
        return None

    return Principal(actor_id=actor_id, role=role, shop_id=int(shop_id))


def require_principal(f):
    """
    Require an authenticated principal and establish tenant context.

    MULTI-TENANT: Sets g.principal (actor id, role, shop id). Routes pass it
    to the services; shop ids in request bodies are never trusted.

    SECURITY: Returns 401 if no principal can be resolved.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        resolver = current_app.config.get("PRINCIPAL_RESOLVER") or principal_from_gateway_headers
        try:
            principal = resolver(request)
        except ValidationError:
            principal = None

        if principal is None:
            return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED"}), 401

        g.principal = principal
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the principal to hold one of the given roles.

    Must be applied after @require_principal.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = getattr(g, "principal", None)
            if principal is None:
                return jsonify({"error": "Authentication required", "code": "UNAUTHENTICATED"}), 401

            if principal.role not in roles:
                current_app.logger.warning(
                    "Role %s denied on %s %s (requires any of %s)",
                    principal.role, request.method, request.path, ", ".join(roles),
                )
                return jsonify({
                    "error": "Permission denied",
                    "code": "FORBIDDEN",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
