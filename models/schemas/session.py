from marshmallow import Schema, fields, pre_load, validate


def _strip(v):
    return v.strip() if isinstance(v, str) else v


class LoginRequestSchema(Schema):
    credential = fields.String(required=True, validate=validate.Length(min=1))


class RefreshRequestSchema(Schema):
    refresh_token = fields.String(required=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "refresh_token" in data:
            data = dict(data, refresh_token=_strip(data["refresh_token"]))
        return data


class LogoutRequestSchema(Schema):
    refresh_token = fields.String(load_default=None, allow_none=True)
    logout_all = fields.Boolean(load_default=False)


class TokenPairOutSchema(Schema):
    access_token = fields.String()
    refresh_token = fields.String()
    token_type = fields.Constant("bearer")
    expires_in = fields.Integer()


class SessionOutSchema(Schema):
    id = fields.String()
    created_at = fields.DateTime()
    expires_at = fields.DateTime()
    last_used_at = fields.DateTime(allow_none=True)
    ip_address = fields.String(allow_none=True)
    user_agent = fields.String(allow_none=True)
