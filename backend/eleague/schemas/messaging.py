from eleague.extensions import ma
from eleague.models.chat import ChatMessage
from eleague.models.support import SupportTicket, TicketMessage
from marshmallow import Schema, fields, validate, validates_schema, ValidationError


class TicketMessageSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = TicketMessage
        include_fk = True

    sender = ma.Nested("UserSchema", only=("id", "username", "role"), dump_only=True)


class SupportTicketSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = SupportTicket
        include_fk = True

    status = fields.Function(lambda obj: obj.status.value if obj.status else None)
    user = ma.Nested("UserSchema", only=("id", "username", "email"), dump_only=True)


class ChatMessageSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = ChatMessage
        include_fk = True

    sender = ma.Nested("UserSchema", only=("id", "username", "role"), dump_only=True)


class PostMessageSchema(Schema):
    content = fields.String(load_default=None, validate=validate.Length(max=4000))
    attachment_url = fields.String(load_default=None, validate=validate.Length(max=500))

    @validates_schema
    def require_body(self, data, **kwargs):
        if not data.get("content") and not data.get("attachment_url"):
            raise ValidationError("Message needs content or an attachment")
