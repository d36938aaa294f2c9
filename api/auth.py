"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh-token
- POST /auth/revoke-token
- POST /auth/forgot-password
- POST /auth/reset-password
- GET  /auth/sessions

The implementation:
- Uses argon2 for password hashing (via utils.security.PasswordService)
- Issues access tokens and refresh tokens signed with two independent secrets (PyJWT)
- Stores each refresh token as a session row so it can be revoked
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, g

from api.responses import client_ip, success_response
from models.schemas.auth import (
    ForgotPasswordSchema,
    LoginSchema,
    RefreshTokenSchema,
    RegisterSchema,
    ResetPasswordSchema,
    SessionOutSchema,
)
from services import current_services
from utils.decorators import jwt_required

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_token_schema = RefreshTokenSchema()
forgot_password_schema = ForgotPasswordSchema()
reset_password_schema = ResetPasswordSchema()
sessions_out_schema = SessionOutSchema(many=True)


def _token_payload(tokens) -> dict:
    return {
        "access_token": tokens.access.token,
        "refresh_token": tokens.refresh.token,
        "token_type": "bearer",
        "access_token_expires_at": tokens.access.expires_at.isoformat(),
        "refresh_token_expires_at": tokens.refresh.expires_at.isoformat(),
        "expires_in": tokens.access.expires_in,
    }


@bp.post("/register")
def register():
    """
    Register a new company and its first (admin) user.
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
          required: [email, password, first_name, last_name, company_name]
          properties:
            email: { type: string }
            password: { type: string }
            first_name: { type: string }
            last_name: { type: string }
            company_name: { type: string }
    responses:
      201:
        description: Created (returns identity and tokens)
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    data = register_schema.load(request.get_json(silent=True) or {})
    sessions = current_services().sessions

    identity = sessions.register(
        email=data["email"],
        password=data["password"],
        first_name=data["first_name"],
        last_name=data["last_name"],
        company_name=data["company_name"],
    )
    tokens = sessions.open_session(identity.id, client_ip(), request.headers.get("User-Agent", ""))
    return success_response(
        "Registration successful",
        {"user": identity.to_dict(), **_token_payload(tokens)},
        201,
    )


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid email or password
    """
    data = login_schema.load(request.get_json(silent=True) or {})
    result = current_services().sessions.login(
        data["email"], data["password"], client_ip(), request.headers.get("User-Agent", "")
    )
    return success_response(
        "Login successful",
        {"user": result.identity.to_dict(), **_token_payload(result.tokens)},
    )


@bp.post("/refresh-token")
def refresh_token():
    """
    Exchange a live refresh token for a new access token.
    Body: { "refresh_token": "<token>" }
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (new access token; new refresh token too when rotation is enabled)
      401:
        description: Invalid, expired or revoked refresh token
    """
    data = refresh_token_schema.load(request.get_json(silent=True) or {})
    result = current_services().sessions.refresh(
        data["refresh_token"], client_ip(), request.headers.get("User-Agent", "")
    )
    payload = {
        "access_token": result.access.token,
        "token_type": "bearer",
        "access_token_expires_at": result.access.expires_at.isoformat(),
        "expires_in": result.access.expires_in,
        "user_id": result.identity.id,
        "email": result.identity.email,
    }
    if result.refresh is not None:
        payload["refresh_token"] = result.refresh.token
        payload["refresh_token_expires_at"] = result.refresh.expires_at.isoformat()
    return success_response("Token refreshed successfully", payload)


@bp.post("/revoke-token")
def revoke_token():
    """
    Revoke a refresh token (log out one device).
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: Revoked (also when it was already gone)
      401:
        description: Not a valid refresh token
    """
    data = refresh_token_schema.load(request.get_json(silent=True) or {})
    current_services().sessions.revoke(data["refresh_token"])
    return success_response("Token revoked successfully")


@bp.post("/forgot-password")
def forgot_password():
    """
    Start a password reset. Always answers the same, known email or not.
    ---
    tags:
      - Auth
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
    responses:
      200:
        description: OK
    """
    data = forgot_password_schema.load(request.get_json(silent=True) or {})
    token = current_services().sessions.request_password_reset(data["email"])
    if token:
        # delivery is out of scope; the raw token only exists in this process
        logger.debug("Password reset token issued for %s", data["email"])
    return success_response("Password reset link sent to your email")


@bp.post("/reset-password")
def reset_password():
    """
    Finish a password reset with the emailed token. Signs out every device.
    ---
    tags:
      - Auth
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             token: { type: string }
             new_password: { type: string }
    responses:
      200:
        description: OK
      401:
        description: Invalid or expired token
    """
    data = reset_password_schema.load(request.get_json(silent=True) or {})
    current_services().sessions.reset_password(data["token"], data["new_password"])
    return success_response("Password reset successful")


@bp.get("/sessions")
@jwt_required()
def list_sessions():
    """
    Devices currently holding a live refresh token for the caller.
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
    rows = current_services().sessions.list_sessions(g.current_user.id)
    return success_response("Sessions retrieved successfully", {"sessions": sessions_out_schema.dump(rows)})
