from __future__ import annotations
from functools import wraps
from flask import request, g

from services import current_services
from services.authenticator import authorize


def jwt_required():
    """
    Authenticate the Authorization header; the caller's IdentitySummary lands on g.current_user.
    AuthError subclasses propagate to the error handlers (401/403/500/503).
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            identity = current_services().authenticator.authenticate(request.headers.get("Authorization"))
            g.current_user = identity
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the user's role is one of required_roles; 403 otherwise.
    """
    allowed = set(required_roles or [])

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            authorize(g.current_user, allowed)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
