from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app
from utils.security import InvalidAccessToken, extract_bearer_token
from models import storage
from models.user import User


def jwt_required(optional: bool = False):
    """
    Require a valid access token in the Authorization header.

    Sets g.current_user, g.current_user_roles and g.current_token_jti.
    With optional=True a missing, expired or otherwise invalid token leaves
    g.current_user as None instead of aborting.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            g.current_user = None
            g.current_user_roles = []
            g.current_token_jti = None
            token = extract_bearer_token(request.headers.get("Authorization"))
            if token is None:
                if optional:
                    return fn(*args, **kwargs)
                abort(401, description="Missing or invalid Authorization header")

            signer = current_app.extensions["tokens"].signer
            try:
                decoded = signer.decode(token, expected_type="access")
            except InvalidAccessToken as e:
                if optional:
                    return fn(*args, **kwargs)
                abort(401, description=str(e))

            user = storage.get(User, decoded.get("sub"))
            if not user:
                if optional:
                    return fn(*args, **kwargs)
                abort(401, description="User not found")
            g.current_user = user
            g.current_user_roles = decoded.get("roles", getattr(user, "roles", []))
            g.current_token_jti = decoded.get("jti")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
