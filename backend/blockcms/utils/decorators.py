from functools import wraps
from flask import current_app, jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity


def current_role():
    return get_jwt().get(current_app.config["JWT_ROLE_CLAIM"])


def has_permission(role, permission) -> bool:
    granted = current_app.config["ROLE_PERMISSIONS"].get(role, ())
    return "*" in granted or permission in granted


def permission_required(permission):
    """Must be stacked below @jwt_required()."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not has_permission(current_role(), permission):
                return jsonify({
                    "error": "Forbidden",
                    "message": f"Missing permission '{permission}'",
                }), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator


def current_actor():
    """Opaque actor id carried in the token subject."""
    return get_jwt_identity()
