from marshmallow import Schema, fields


class ActivityOutSchema(Schema):
    id = fields.String()
    user_id = fields.String(allow_none=True)
    action = fields.String()
    entity_type = fields.String()
    entity_id = fields.String()
    description = fields.String()
    details = fields.Dict(allow_none=True)
    created_at = fields.DateTime()
