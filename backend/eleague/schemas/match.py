from eleague.extensions import ma
from eleague.models.match import Match, MatchStatus
from eleague.models.result import MatchResult, MatchProof, MatchLineup, PlayerStat
from marshmallow import Schema, fields, validate


def _scheduled_for(match):
    """ISO kick-off, or None while the fixture is still unscheduled."""
    if match.scheduled_for is None or match.is_unscheduled:
        return None
    return match.scheduled_for.isoformat()


class MatchSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Match
        load_instance = True
        include_fk = True

    status = fields.Function(lambda obj: obj.status.value if obj.status else None)
    stage = fields.Function(lambda obj: obj.stage.value if obj.stage else None)
    scheduled_for = fields.Function(_scheduled_for)
    can_submit_result = fields.Function(
        lambda obj: not obj.approved and obj.status != MatchStatus.COMPLETED, dump_only=True
    )
    home_team = ma.Nested("TeamSchema", only=("id", "name", "logo_url"), dump_only=True)
    away_team = ma.Nested("TeamSchema", only=("id", "name", "logo_url"), dump_only=True)
    penalty_winner = ma.Nested("TeamSchema", only=("id", "name"), dump_only=True)
    competition = ma.Nested("CompetitionSchema", only=("id", "name", "type"), dump_only=True)
    approved_by = ma.Nested("UserSchema", only=("id", "username"), dump_only=True)


class MatchResultSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = MatchResult
        include_fk = True

    status = fields.Function(lambda obj: obj.status.value if obj.status else None)
    submitted_by = ma.Nested("UserSchema", only=("id", "username"), dump_only=True)


class MatchProofSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = MatchProof
        include_fk = True


class MatchLineupSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = MatchLineup
        include_fk = True


class PlayerStatSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = PlayerStat
        include_fk = True

    player = ma.Nested("UserSchema", only=("id", "username"), dump_only=True)


class CreateMatchSchema(Schema):
    competition_id = fields.Integer(required=True)
    home_team_id = fields.Integer(required=True)
    away_team_id = fields.Integer(required=True)
    scheduled_for = fields.DateTime(load_default=None)
    match_day = fields.Integer(load_default=None, validate=validate.Range(min=1))
    stage = fields.String(load_default="league", validate=validate.OneOf(["league", "group"]))
    group_name = fields.String(load_default=None, validate=validate.Length(max=10))


class UpdateMatchSchema(Schema):
    home_team_id = fields.Integer()
    away_team_id = fields.Integer()
    scheduled_for = fields.DateTime(allow_none=True)
    match_day = fields.Integer(allow_none=True, validate=validate.Range(min=1))


class ProofsSchema(Schema):
    player_list_url = fields.String(required=True, validate=validate.Length(min=1, max=500))
    result_url = fields.String(required=True, validate=validate.Length(min=1, max=500))
    stats_url = fields.String(required=True, validate=validate.Length(min=1, max=500))
    stream_url = fields.Url(required=True)


class LineupSchema(Schema):
    formation = fields.String(required=True, validate=validate.Length(min=1, max=20))
    player_positions = fields.Dict(keys=fields.String(), values=fields.Integer(), required=True)


class PlayerStatInputSchema(Schema):
    player_id = fields.Integer(required=True)
    goals = fields.Integer(load_default=0, validate=validate.Range(min=0))
    assists = fields.Integer(load_default=0, validate=validate.Range(min=0))


class SubmitResultSchema(Schema):
    home_score = fields.Integer(required=True, validate=validate.Range(min=0))
    away_score = fields.Integer(required=True, validate=validate.Range(min=0))
    proofs = fields.Nested(ProofsSchema, required=True)
    lineup = fields.Nested(LineupSchema, load_default=None)
    player_stats = fields.List(fields.Nested(PlayerStatInputSchema), load_default=list)


class ApproveResultSchema(Schema):
    home_score = fields.Integer(load_default=None, validate=validate.Range(min=0))
    away_score = fields.Integer(load_default=None, validate=validate.Range(min=0))
    notes = fields.String(load_default=None)


class RejectResultSchema(Schema):
    notes = fields.String(load_default=None)


class GenerateFixturesSchema(Schema):
    start_date = fields.Date(load_default=None)
    interval_days = fields.Integer(load_default=7, validate=validate.Range(min=1))


class GenerateGroupsSchema(Schema):
    start_date = fields.Date(load_default=None)
    interval_days = fields.Integer(load_default=7, validate=validate.Range(min=1))
    group_size = fields.Integer(load_default=4, validate=validate.Range(min=2))
    seed = fields.Integer(load_default=None)
