from marshmallow import EXCLUDE, Schema, fields, pre_load

from models.schemas.common import normalize_email_field, not_blank, validate_password


class _RequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE


class RegisterSchema(_RequestSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate_password)
    first_name = fields.String(required=True, validate=not_blank)
    last_name = fields.String(required=True, validate=not_blank)
    company_name = fields.String(required=True, validate=not_blank)

    @pre_load
    def normalize(self, data, **kwargs):
        return normalize_email_field(data)


class LoginSchema(_RequestSchema):
    email = fields.String(required=True, validate=not_blank)
    password = fields.String(required=True, load_only=True, validate=not_blank)

    @pre_load
    def normalize(self, data, **kwargs):
        return normalize_email_field(data)


class RefreshTokenSchema(_RequestSchema):
    refresh_token = fields.String(required=True, validate=not_blank)


class ForgotPasswordSchema(_RequestSchema):
    email = fields.Email(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        return normalize_email_field(data)


class ResetPasswordSchema(_RequestSchema):
    token = fields.String(required=True, validate=not_blank)
    new_password = fields.String(required=True, load_only=True, validate=validate_password)


class ChangePasswordSchema(_RequestSchema):
    current_password = fields.String(required=True, load_only=True, validate=not_blank)
    new_password = fields.String(required=True, load_only=True, validate=validate_password)


class SessionOutSchema(Schema):
    """A logged-in device; the token itself is never echoed back."""
    id = fields.String()
    ip_address = fields.String()
    user_agent = fields.String()
    browser = fields.String()
    os = fields.String()
    created_at = fields.DateTime()
    expires_at = fields.DateTime()
