"""Authentication endpoints: login, refresh, logout and password reset."""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity

from portfolio.api.deps import get_session_service, json_response, require_auth, timing
from portfolio.schemas import (
    ForgotPasswordSchema,
    LoginResponseSchema,
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    ResetPasswordSchema,
    TokenPairSchema,
    UserSchema,
)
from portfolio.services.session import (
    LoginIn,
    LogoutIn,
    PasswordResetIn,
    PasswordResetRequestIn,
    RefreshIn,
)

bp = Blueprint("auth", __name__, url_prefix="/auth")

login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
forgot_schema = ForgotPasswordSchema()
reset_schema = ResetPasswordSchema()
login_out_schema = LoginResponseSchema()
token_schema = TokenPairSchema()
user_schema = UserSchema()

FORGOT_PASSWORD_MESSAGE = "If the email exists, a password reset link has been sent"


def _message(text: str):
    return json_response({"data": {"message": text}})


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue an access/refresh token pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    result = get_session_service().login(
        LoginIn(email=data["email"], password=data["password"])
    )
    return json_response({"data": login_out_schema.dump(result)})


@bp.post("/refresh")
@timing
def refresh():
    """Rotate a refresh token; the presented token stops working."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    pair = get_session_service().refresh_access_token(
        RefreshIn(refresh_token=data["refresh_token"])
    )
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/logout")
@timing
def logout():
    """Revoke a refresh token. Unknown or already revoked tokens still succeed."""

    data = logout_schema.load(request.get_json(silent=True) or {})
    get_session_service().logout(
        LogoutIn(refresh_token=data["refresh_token"], all_sessions=data["all_sessions"])
    )
    return _message("Logged out successfully")


@bp.post("/forgot-password")
@timing
def forgot_password():
    """Request a reset mail; the answer never reveals whether the email exists."""

    data = forgot_schema.load(request.get_json(silent=True) or {})
    get_session_service().request_password_reset(PasswordResetRequestIn(email=data["email"]))
    return _message(FORGOT_PASSWORD_MESSAGE)


@bp.post("/reset-password")
@timing
def reset_password():
    data = reset_schema.load(request.get_json(silent=True) or {})
    get_session_service().reset_password(
        PasswordResetIn(token=data["token"], new_password=data["password"])
    )
    return _message("Password reset successfully")


@bp.get("/verify-reset-token/<token>")
@timing
def verify_reset_token(token: str):
    valid = get_session_service().verify_reset_token(token)
    return json_response({"data": {"valid": valid}})


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated user profile."""

    user = get_session_service().get_user(get_jwt_identity())
    return json_response({"data": user_schema.dump(user)})
