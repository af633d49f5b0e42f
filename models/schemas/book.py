from marshmallow import Schema, fields, validates, ValidationError


class SearchBooksSchema(Schema):
    query = fields.String(required=True)

    @validates("query")
    def _validate_query(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("query must not be empty.")


class BookOutSchema(Schema):
    id = fields.String()
    title = fields.String()
    author = fields.String()
    quantity = fields.Integer()
    bookstore_id = fields.String()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
