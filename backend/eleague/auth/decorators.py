from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from eleague.extensions import db
from eleague.models.user import User, UserRole


def current_user():
    """The authenticated user for this request, or None."""
    return db.session.get(User, int(get_jwt_identity()))


def role_required(*roles):
    """Decorator to restrict access to specific roles."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            user = current_user()

            if not user:
                return jsonify({"error": "User not found"}), 404

            if user.is_banned:
                return jsonify({"error": "Account is banned"}), 403

            if user.role.value not in [r.value if hasattr(r, "value") else r for r in roles]:
                return jsonify({"error": "Insufficient permissions"}), 403

            return fn(*args, **kwargs)

        return wrapper

    return decorator


def login_required(fn):
    """Any authenticated, non-banned user."""
    return role_required(*UserRole)(fn)


def admin_required(fn):
    """Decorator to restrict access to admins only."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        user = current_user()

        if not user or user.is_banned:
            return jsonify({"error": "Access denied"}), 403

        if user.role != UserRole.ADMIN:
            return jsonify({"error": "Admin access required"}), 403

        return fn(*args, **kwargs)

    return wrapper
