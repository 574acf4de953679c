from marshmallow import Schema, fields


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    email = fields.String(allow_none=False)
    name = fields.String(allow_none=True)
    avatar = fields.String(allow_none=True)
    provider = fields.String()
    provider_id = fields.String()
    roles = fields.List(fields.String(allow_none=True))
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
