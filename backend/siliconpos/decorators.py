# Overview: Request decorators that resolve the caller and run the authorization guard.

from functools import wraps

from flask import current_app, g, jsonify, request

from .services import session_service
from .services.authorization import Identity, authorize, REASON_UNAUTHENTICATED


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session token.

    Sets:
    - g.current_user: the User behind the token
    - g.identity: Identity(id, role, is_active) handed to the guard
    - g.token: the plaintext bearer token (for logout)

    Returns 401 if the Authorization header is missing or the token is
    invalid, expired or revoked. Inactive accounts are resolved; the guard
    in @require_roles turns them away with 403.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.identity = Identity.from_user(user)
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_roles(*roles):
    """
    Require the caller's role to be one of roles (and the account active).

    Accepts role names or role sets, e.g. @require_roles(*SUBMIT_SALE_ROLES).
    """
    required = frozenset(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            identity = g.get("identity")
            decision = authorize(identity, required)

            if not decision:
                if decision.reason == REASON_UNAUTHENTICATED:
                    return jsonify({"error": "Authentication required"}), 401

                current_app.logger.warning(
                    "Authorization denied: user=%s role=%s active=%s path=%s",
                    identity.id,
                    identity.role,
                    identity.is_active,
                    request.path,
                )
                message = "Account is inactive" if not identity.is_active else "Insufficient role"
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": sorted(required),
                    "message": message,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
