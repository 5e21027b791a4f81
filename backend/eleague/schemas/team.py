from eleague.extensions import ma
from eleague.models.team import Team, TeamMember
from eleague.models.request import CaptainRequest, TeamRequest
from marshmallow import Schema, fields, validate


class TeamMemberSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = TeamMember
        include_fk = True

    user = ma.Nested("UserSchema", only=("id", "username", "game_id", "avatar_url"), dump_only=True)


class TeamSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Team
        load_instance = True
        include_fk = True

    captain = ma.Nested("UserSchema", only=("id", "username"), dump_only=True)
    member_count = fields.Function(lambda obj: obj.members.count(), dump_only=True)


class UpdateTeamSchema(Schema):
    name = fields.String(validate=validate.Length(min=1, max=100))
    description = fields.String(allow_none=True)
    logo_url = fields.String(validate=validate.Length(max=500), load_default=None, allow_none=True)


class AddMemberSchema(Schema):
    user_id = fields.Integer(required=True)


class CaptainRequestSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = CaptainRequest
        include_fk = True

    status = fields.Function(lambda obj: obj.status.value if obj.status else None)
    user = ma.Nested("UserSchema", only=("id", "username", "email"), dump_only=True)


class TeamRequestSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = TeamRequest
        include_fk = True

    status = fields.Function(lambda obj: obj.status.value if obj.status else None)
    captain = ma.Nested("UserSchema", only=("id", "username", "email"), dump_only=True)


class CreateTeamRequestSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    description = fields.String(load_default=None)
    logo_url = fields.String(load_default=None, validate=validate.Length(max=500))


class ResolveRequestSchema(Schema):
    approve = fields.Boolean(required=True)
