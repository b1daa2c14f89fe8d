"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from portfolio.models.user import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH, Role

_new_password = validate.Length(min=PASSWORD_MIN_LENGTH, max=PASSWORD_MAX_LENGTH)


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    # Policy is enforced when a password is set, not when it is checked
    password = fields.String(
        required=True, validate=validate.Length(min=1, max=PASSWORD_MAX_LENGTH)
    )


class RefreshSchema(Schema):
    """Input payload carrying the refresh token to rotate."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))


class LogoutSchema(Schema):
    """Input payload for revoking a refresh token (or every session)."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))
    all_sessions = fields.Boolean(load_default=False)


class ForgotPasswordSchema(Schema):
    """Input payload requesting a password reset mail."""

    email = fields.Email(required=True, validate=validate.Length(max=254))


class ResetPasswordSchema(Schema):
    """Input payload consuming a reset token."""

    token = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, validate=_new_password)


class UserSchema(Schema):
    """Public representation of an account."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    role = fields.String(required=True, validate=validate.OneOf([r.value for r in Role]))


class TokenPairSchema(Schema):
    """Response payload containing an access/refresh token pair."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")


class LoginResponseSchema(TokenPairSchema):
    """Response payload of a successful login."""

    user = fields.Nested(UserSchema, required=True)
