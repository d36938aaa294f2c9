from marshmallow import EXCLUDE, Schema, fields, validate

from models.company import COMPANY_SIZES
from models.schemas.common import not_blank


class CompanyUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    name = fields.String(validate=not_blank)
    description = fields.String(allow_none=True)
    logo = fields.URL(allow_none=True)
    website = fields.URL(allow_none=True)
    industry = fields.String(allow_none=True)
    size = fields.String(allow_none=True, validate=validate.OneOf(COMPANY_SIZES))
    location = fields.String(allow_none=True)


class CompanyOutSchema(Schema):
    id = fields.String()
    name = fields.String()
    description = fields.String(allow_none=True)
    logo = fields.String(allow_none=True)
    website = fields.String(allow_none=True)
    industry = fields.String(allow_none=True)
    size = fields.String(allow_none=True)
    location = fields.String(allow_none=True)
    settings = fields.Method("get_settings")
    created_at = fields.DateTime()
    updated_at = fields.DateTime()

    def get_settings(self, obj):
        return obj.get_settings()


class InterviewPreferencesSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    default_duration = fields.Integer(validate=validate.Range(min=15, max=480))
    default_location = fields.String(validate=not_blank)


class EmailNotificationSchema(Schema):
    new_applicant = fields.Boolean()
    interview_scheduled = fields.Boolean()
    interview_completed = fields.Boolean()


class NotificationPreferencesSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Nested(EmailNotificationSchema)

