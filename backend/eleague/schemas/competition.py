from eleague.extensions import ma
from eleague.models.competition import Competition
from marshmallow import Schema, fields, validate


class CompetitionSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Competition
        load_instance = True
        include_fk = True

    type = fields.Function(lambda obj: obj.type.value if obj.type else None)
    status = fields.Function(lambda obj: obj.status.value if obj.status else None)
    entered_teams = fields.Function(lambda obj: obj.teams.count(), dump_only=True)


class CreateCompetitionSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=200))
    type = fields.String(
        required=True, validate=validate.OneOf(["league", "champions", "cup"])
    )
    team_count = fields.Integer(required=True, validate=validate.Range(min=2, max=128))


class UpdateCompetitionSchema(Schema):
    name = fields.String(validate=validate.Length(min=1, max=200))
    status = fields.String(validate=validate.OneOf(["active", "completed"]))


class SetupBracketSchema(Schema):
    slots = fields.Dict(keys=fields.String(), values=fields.Integer(), required=True)


class ResolveTieSchema(Schema):
    round = fields.Integer(required=True, validate=validate.Range(min=1))
    slot = fields.Integer(required=True, validate=validate.Range(min=1))
    winner_team_id = fields.Integer(required=True)
