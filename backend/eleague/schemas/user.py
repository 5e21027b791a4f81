from eleague.extensions import ma
from eleague.models.user import User
from marshmallow import fields, validate, Schema


class UserSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = User
        load_instance = True
        include_fk = True
        exclude = ("password_hash",)

    role = fields.Function(lambda obj: obj.role.value if obj.role else None)
    team_id = fields.Function(lambda obj: obj.team_id, dump_only=True)


class RegisterSchema(Schema):
    email = fields.Email(required=True)
    username = fields.String(required=True, validate=validate.Length(min=3, max=50))
    password = fields.String(required=True, validate=validate.Length(min=8))
    game_id = fields.String(load_default=None, validate=validate.Length(max=100))


class UpdateProfileSchema(Schema):
    username = fields.String(validate=validate.Length(min=3, max=50))
    game_id = fields.String(allow_none=True, validate=validate.Length(max=100))
    avatar_url = fields.String(allow_none=True, validate=validate.Length(max=500))


class SetRoleSchema(Schema):
    role = fields.String(
        required=True, validate=validate.OneOf(["admin", "captain", "player"])
    )


class SetBannedSchema(Schema):
    banned = fields.Boolean(required=True)
