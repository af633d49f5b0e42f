from marshmallow import Schema, fields, pre_load, validates, validate, ValidationError

def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v

class SignupSchema(Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    bookstore_id = fields.String(required=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("Password must not be empty.")

class SigninSchema(Schema):
    email = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data

class TokensSchema(Schema):
    access_token = fields.String()
    refresh_token = fields.String()
