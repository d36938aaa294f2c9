from marshmallow import EXCLUDE, Schema, fields, pre_load, validate

from models.schemas.common import normalize_email_field, not_blank, validate_password
from models.user import ROLES, THEMES


class NotificationTogglesSchema(Schema):
    email = fields.Boolean()
    in_app = fields.Boolean()


class PreferencesSchema(Schema):
    notifications = fields.Nested(NotificationTogglesSchema)
    theme = fields.String(validate=validate.OneOf(THEMES))


class ProfileUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    first_name = fields.String(validate=not_blank)
    last_name = fields.String(validate=not_blank)
    position = fields.String(validate=not_blank)
    department = fields.String(validate=not_blank)
    avatar = fields.URL(allow_none=True)
    phone_number = fields.String(allow_none=True)
    location = fields.String(allow_none=True)
    bio = fields.String(allow_none=True)
    preferences = fields.Nested(PreferencesSchema)


class MemberCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate_password)
    first_name = fields.String(required=True, validate=not_blank)
    last_name = fields.String(required=True, validate=not_blank)
    role = fields.String(required=True, validate=validate.OneOf(ROLES))
    position = fields.String(allow_none=True)
    department = fields.String(allow_none=True)

    @pre_load
    def normalize(self, data, **kwargs):
        return normalize_email_field(data)


class MemberUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    role = fields.String(validate=validate.OneOf(ROLES))
    position = fields.String(validate=not_blank)
    department = fields.String(validate=not_blank)
    is_active = fields.Boolean()


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    email = fields.String()
    first_name = fields.String()
    last_name = fields.String()
    full_name = fields.String()
    role = fields.String()
    company_id = fields.String(allow_none=True)
    position = fields.String(allow_none=True)
    department = fields.String(allow_none=True)
    avatar = fields.String(allow_none=True)
    phone_number = fields.String(allow_none=True)
    location = fields.String(allow_none=True)
    bio = fields.String(allow_none=True)
    preferences = fields.Dict(allow_none=True)
    is_active = fields.Boolean()
    last_login = fields.DateTime(allow_none=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class TeamMemberOutSchema(Schema):
    id = fields.String()
    name = fields.String(attribute="full_name")
    email = fields.String()
    role = fields.String()
    position = fields.Method("get_position")
    department = fields.Method("get_department")
    avatar = fields.Method("get_avatar")
    is_active = fields.Boolean()

    def get_position(self, obj):
        return obj.position or "Not specified"

    def get_department(self, obj):
        return obj.department or "Not specified"

    def get_avatar(self, obj):
        return obj.avatar or "/placeholder.svg"
