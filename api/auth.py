"""
Authentication blueprint:
- POST   /auth/login/<provider>   -> verify external identity, start a session
- POST   /auth/refresh            -> rotate the refresh token
- POST   /auth/logout             -> revoke this device (refresh_token) or everything (logout_all)
- GET    /auth/verify             -> current user for a valid access token
- GET    /auth/sessions           -> active sessions of the current user
- DELETE /auth/sessions/<id>      -> revoke one of them

The token lifecycle itself lives in the `tokens` package; these handlers only
validate input, collect request metadata and shape responses.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, abort, current_app
from sqlalchemy.exc import SQLAlchemyError

from models import storage
from models.user import User
from models.schemas.session import (
    LoginRequestSchema,
    LogoutRequestSchema,
    RefreshRequestSchema,
    SessionOutSchema,
    TokenPairOutSchema,
)
from models.schemas.user import UserOutSchema
from tokens import PersistenceError, SessionMeta
from utils.decorators import jwt_required

bp = Blueprint("auth", __name__, url_prefix="/auth")

login_schema = LoginRequestSchema()
refresh_schema = RefreshRequestSchema()
logout_schema = LogoutRequestSchema()
token_pair_schema = TokenPairOutSchema()
session_list_schema = SessionOutSchema(many=True)
user_out_schema = UserOutSchema()


def _tokens():
    return current_app.extensions["tokens"]


def _session_meta() -> SessionMeta:
    return SessionMeta(
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )


def _upsert_user(identity) -> User:
    """Find the user linked to this provider identity, creating it on first login."""
    session = storage.get_session()
    try:
        user = (
            session.query(User)
            .filter(User.provider == identity.provider, User.provider_id == identity.provider_id)
            .first()
        )
    except SQLAlchemyError as exc:
        storage.rollback()
        raise PersistenceError() from exc

    if user is None:
        user = User(
            email=identity.email,
            name=identity.name,
            avatar=identity.avatar,
            provider=identity.provider,
            provider_id=identity.provider_id,
            roles=["user"],
        )
        storage.new(user)
    else:
        user.email = identity.email
        user.name = identity.name or user.name
        user.avatar = identity.avatar or user.avatar
    try:
        storage.save()
    except SQLAlchemyError as exc:
        # save() has already rolled back
        raise PersistenceError() from exc
    return user


@bp.post("/login/<provider>")
def login(provider):
    """
    Exchange a provider credential for access and refresh tokens
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: path
        name: provider
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          properties:
            credential: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Identity verification failed
      501:
        description: No identity verifier configured
    """
    payload = login_schema.load(request.get_json(silent=True) or {})
    verifier = current_app.extensions.get("identity_verifier")
    if verifier is None:
        abort(501, description="Identity provider login is not configured")

    identity = verifier.verify(provider, payload["credential"])
    user = _upsert_user(identity)
    issued = _tokens().issue(user.id, _session_meta(), roles=user.roles)
    return jsonify(
        {
            "data": {
                "user": user_out_schema.dump(user),
                "tokens": token_pair_schema.dump(issued),
            }
        }
    ), 200


@bp.post("/refresh")
def refresh():
    """
    Rotate a refresh token: the presented token is spent, a new pair is returned
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            refresh_token: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid or expired refresh token
      422:
        description: Validation error
    """
    payload = refresh_schema.load(request.get_json(silent=True) or {})
    issued = _tokens().rotate(payload["refresh_token"], _session_meta())
    return jsonify({"data": token_pair_schema.dump(issued)}), 200


@bp.post("/logout")
@jwt_required(optional=True)
def logout():
    """
    Logout: revoke this device's refresh token, or every session with logout_all
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            refresh_token: { type: string }
            logout_all: { type: boolean }
    responses:
      204:
        description: ""
      401:
        description: logout_all without a valid access token
    """
    payload = logout_schema.load(request.get_json(silent=True) or {})

    if payload["logout_all"]:
        if g.current_user is None:
            abort(401, description="Missing or invalid Authorization header")
        _tokens().revoke_all_for_user(g.current_user.id)
    elif payload["refresh_token"]:
        _tokens().revoke_by_refresh_token(payload["refresh_token"])

    return ("", 204)


@bp.get("/verify")
@jwt_required()
def verify():
    """
    Verify the access token and return the current user
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"data": {"user": user_out_schema.dump(g.current_user)}}), 200


@bp.get("/sessions")
@jwt_required()
def list_sessions():
    """
    List active sessions (one per signed-in device)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
    """
    sessions = _tokens().list_sessions(g.current_user.id)
    return jsonify({"data": {"sessions": session_list_schema.dump(sessions)}}), 200


@bp.delete("/sessions/<session_id>")
@jwt_required()
def revoke_session(session_id):
    """
    Revoke one of the current user's sessions
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    parameters:
      - in: path
        name: session_id
        type: string
        required: true
    responses:
      204:
        description: ""
      404:
        description: Session not found
    """
    _tokens().revoke_session(g.current_user.id, session_id)
    return ("", 204)
