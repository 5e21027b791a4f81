import queue

from flask import Blueprint, request, jsonify, Response, send_from_directory, url_for
from flask_jwt_extended import get_jwt_identity

from eleague.extensions import db
from eleague.events import event_bus
from eleague.models.competition import Competition, CompetitionType, CompetitionStatus
from eleague.models.match import Match, MatchStatus, MatchStage
from eleague.models.team import Team
from eleague.models.user import User
from eleague.models.request import CaptainRequest, TeamRequest

from eleague.schemas import (
    CompetitionSchema,
    CreateCompetitionSchema,
    UpdateCompetitionSchema,
    SetupBracketSchema,
    ResolveTieSchema,
    TeamSchema,
    TeamMemberSchema,
    UpdateTeamSchema,
    AddMemberSchema,
    CaptainRequestSchema,
    TeamRequestSchema,
    CreateTeamRequestSchema,
    MatchSchema,
    MatchResultSchema,
    MatchProofSchema,
    MatchLineupSchema,
    PlayerStatSchema,
    CreateMatchSchema,
    UpdateMatchSchema,
    SubmitResultSchema,
    GenerateFixturesSchema,
    GenerateGroupsSchema,
    SocialPostSchema,
)

from eleague.auth.decorators import admin_required, login_required, role_required
from eleague import storage
from eleague.services.competition_service import (
    create_competition,
    update_competition,
    delete_competition,
    add_team_to_competition,
    remove_team_from_competition,
)
from eleague.services.team_service import (
    request_captaincy,
    request_team,
    add_member,
    remove_member,
    leave_team,
    update_team,
)
from eleague.services.match_service import (
    create_match,
    update_match,
    delete_match,
    submit_result,
)
from eleague.services.scheduler_service import (
    generate_league_fixtures,
    generate_group_stage,
    seed_knockout_from_groups,
)
from eleague.services.bracket_service import (
    setup_bracket,
    advance_knockout,
    resolve_tie,
    get_bracket,
)
from eleague.services.standings import compute_standings
from eleague.services.stats_service import top_scorers, top_assists, player_totals
from eleague.services.social_service import list_social_posts

api_bp = Blueprint("api", __name__)

# ── Schema instances ─────────────────────────────────────────────────────────
competition_schema = CompetitionSchema()
competitions_schema = CompetitionSchema(many=True)
create_competition_schema = CreateCompetitionSchema()
update_competition_schema = UpdateCompetitionSchema()
setup_bracket_schema = SetupBracketSchema()
resolve_tie_schema = ResolveTieSchema()

team_schema = TeamSchema()
teams_schema = TeamSchema(many=True)
members_schema = TeamMemberSchema(many=True)
update_team_schema = UpdateTeamSchema()
add_member_schema = AddMemberSchema()

captain_request_schema = CaptainRequestSchema()
captain_requests_schema = CaptainRequestSchema(many=True)
team_request_schema = TeamRequestSchema()
team_requests_schema = TeamRequestSchema(many=True)
create_team_request_schema = CreateTeamRequestSchema()

match_schema = MatchSchema()
matches_schema = MatchSchema(many=True)
results_schema = MatchResultSchema(many=True)
proofs_schema = MatchProofSchema(many=True)
lineups_schema = MatchLineupSchema(many=True)
player_stats_schema = PlayerStatSchema(many=True)
create_match_schema = CreateMatchSchema()
update_match_schema = UpdateMatchSchema()
submit_result_schema = SubmitResultSchema()
generate_fixtures_schema = GenerateFixturesSchema()
generate_groups_schema = GenerateGroupsSchema()
social_posts_schema = SocialPostSchema(many=True)


def error_status(error):
    """Map a service error message to an HTTP status code."""
    lowered = error.lower()
    if "not found" in lowered:
        return 404
    if lowered.startswith("only") or "cannot view" in lowered or "not part of" in lowered:
        return 403
    if "already" in lowered or "taken" in lowered:
        return 409
    return 400


def _current_user_id():
    return int(get_jwt_identity())


# ─── Competitions ─────────────────────────────────────────────────────────────

@api_bp.route("/competitions", methods=["GET"])
def get_competitions():
    comp_type = request.args.get("type")
    status = request.args.get("status")

    query = Competition.query
    if comp_type:
        query = query.filter_by(type=CompetitionType(comp_type))
    if status:
        query = query.filter_by(status=CompetitionStatus(status))

    competitions = query.order_by(Competition.created_at.desc()).all()
    return jsonify({"competitions": competitions_schema.dump(competitions)}), 200


@api_bp.route("/competitions/<int:comp_id>", methods=["GET"])
def get_competition(comp_id):
    competition = db.get_or_404(Competition, comp_id)
    return jsonify({"competition": competition_schema.dump(competition)}), 200


@api_bp.route("/competitions", methods=["POST"])
@admin_required
def create_competition_route():
    data = create_competition_schema.load(request.get_json())
    competition, error = create_competition(data)
    if error:
        return jsonify({"error": error}), 400
    return jsonify({"competition": competition_schema.dump(competition)}), 201


@api_bp.route("/competitions/<int:comp_id>", methods=["PUT"])
@admin_required
def update_competition_route(comp_id):
    data = update_competition_schema.load(request.get_json())
    competition, error = update_competition(comp_id, data)
    if error:
        return jsonify({"error": error}), 404
    return jsonify({"competition": competition_schema.dump(competition)}), 200


@api_bp.route("/competitions/<int:comp_id>", methods=["DELETE"])
@admin_required
def delete_competition_route(comp_id):
    _competition, error = delete_competition(comp_id)
    if error:
        return jsonify({"error": error}), 404 if "not found" in error else 409
    return jsonify({"message": "Competition deleted"}), 200


@api_bp.route("/competitions/<int:comp_id>/teams", methods=["GET"])
def get_competition_teams(comp_id):
    competition = db.get_or_404(Competition, comp_id)
    teams = competition.teams.order_by(Team.name).all()
    return jsonify({"teams": teams_schema.dump(teams)}), 200


@api_bp.route("/competitions/<int:comp_id>/teams", methods=["POST"])
@admin_required
def add_team_to_competition_route(comp_id):
    data = request.get_json()
    if not data or "team_id" not in data:
        return jsonify({"error": "team_id is required"}), 400
    _competition, error = add_team_to_competition(comp_id, data["team_id"])
    if error:
        status = 404 if "not found" in error else 409
        return jsonify({"error": error}), status
    return jsonify({"message": "Team added to competition"}), 200


@api_bp.route("/competitions/<int:comp_id>/teams/<int:team_id>", methods=["DELETE"])
@admin_required
def remove_team_from_competition_route(comp_id, team_id):
    _competition, error = remove_team_from_competition(comp_id, team_id)
    if error:
        status = 404 if "not found" in error or "not in" in error else 409
        return jsonify({"error": error}), status
    return jsonify({"message": "Team removed from competition"}), 200


# ─── Scheduling ───────────────────────────────────────────────────────────────

@api_bp.route("/competitions/<int:comp_id>/generate-fixtures", methods=["POST"])
@admin_required
def generate_fixtures_route(comp_id):
    data = generate_fixtures_schema.load(request.get_json() or {})
    matches, error = generate_league_fixtures(
        comp_id, data["start_date"], data["interval_days"]
    )
    if error:
        return jsonify({"error": error}), 409 if "already" in error.lower() else 400
    return jsonify({
        "message": f"{len(matches)} fixtures generated",
        "matches": matches_schema.dump(matches),
    }), 201


@api_bp.route("/competitions/<int:comp_id>/generate-groups", methods=["POST"])
@admin_required
def generate_groups_route(comp_id):
    data = generate_groups_schema.load(request.get_json() or {})
    result, error = generate_group_stage(
        comp_id,
        start_date=data["start_date"],
        interval_days=data["interval_days"],
        group_size=data["group_size"],
        seed=data["seed"],
    )
    if error:
        return jsonify({"error": error}), 409 if "already" in error.lower() else 400
    return jsonify({
        "groups": result["groups"],
        "matches": matches_schema.dump(result["matches"]),
    }), 201


@api_bp.route("/competitions/<int:comp_id>/seed-knockout", methods=["POST"])
@admin_required
def seed_knockout_route(comp_id):
    result, error = seed_knockout_from_groups(comp_id)
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({
        "bracket_slots": result["bracket_slots"],
        "total_rounds": result["total_rounds"],
        "created": matches_schema.dump(result["created"]),
    }), 201


# ─── Bracket ──────────────────────────────────────────────────────────────────

@api_bp.route("/competitions/<int:comp_id>/bracket", methods=["GET"])
def get_bracket_route(comp_id):
    bracket, error = get_bracket(comp_id)
    if error:
        return jsonify({"error": error}), 404
    return jsonify(bracket), 200


@api_bp.route("/competitions/<int:comp_id>/bracket", methods=["POST"])
@admin_required
def setup_bracket_route(comp_id):
    data = setup_bracket_schema.load(request.get_json())
    result, error = setup_bracket(comp_id, data["slots"])
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({
        "bracket_slots": result["bracket_slots"],
        "total_rounds": result["total_rounds"],
        "created": matches_schema.dump(result["created"]),
    }), 201


@api_bp.route("/competitions/<int:comp_id>/advance-knockout", methods=["POST"])
@admin_required
def advance_knockout_route(comp_id):
    result, error = advance_knockout(comp_id)
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({**result, "created": matches_schema.dump(result["created"])}), 200


@api_bp.route("/competitions/<int:comp_id>/resolve-tie", methods=["POST"])
@admin_required
def resolve_tie_route(comp_id):
    data = resolve_tie_schema.load(request.get_json())
    result, error = resolve_tie(comp_id, data["round"], data["slot"], data["winner_team_id"])
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({**result, "created": matches_schema.dump(result["created"])}), 200


# ─── Standings & stats ────────────────────────────────────────────────────────

@api_bp.route("/competitions/<int:comp_id>/standings", methods=["GET"])
def get_standings(comp_id):
    group_name = request.args.get("group")
    tables, error = compute_standings(comp_id, group_name)
    if error:
        return jsonify({"error": error}), 404
    groups = [
        {"group_name": name, "standings": rows}
        for name, rows in sorted(tables.items(), key=lambda kv: kv[0] or "")
    ]
    return jsonify({"groups": groups}), 200


@api_bp.route("/stats/top-scorers", methods=["GET"])
def get_top_scorers():
    competition_id = request.args.get("competition_id", type=int)
    limit = request.args.get("limit", 10, type=int)
    return jsonify({"players": top_scorers(competition_id, limit)}), 200


@api_bp.route("/stats/top-assists", methods=["GET"])
def get_top_assists():
    competition_id = request.args.get("competition_id", type=int)
    limit = request.args.get("limit", 10, type=int)
    return jsonify({"players": top_assists(competition_id, limit)}), 200


@api_bp.route("/users/<int:user_id>/stats", methods=["GET"])
def get_player_stats(user_id):
    db.get_or_404(User, user_id)
    return jsonify({"stats": player_totals(user_id)}), 200


@api_bp.route("/social-posts", methods=["GET"])
def get_social_posts():
    return jsonify({"posts": social_posts_schema.dump(list_social_posts())}), 200


# ─── Teams ────────────────────────────────────────────────────────────────────

@api_bp.route("/teams", methods=["GET"])
def get_teams():
    teams = Team.query.order_by(Team.name).all()
    return jsonify({"teams": teams_schema.dump(teams)}), 200


@api_bp.route("/teams/<int:team_id>", methods=["GET"])
def get_team(team_id):
    team = db.get_or_404(Team, team_id)
    return jsonify({
        "team": team_schema.dump(team),
        "members": members_schema.dump(team.members.all()),
    }), 200


@api_bp.route("/teams/<int:team_id>", methods=["PUT"])
@login_required
def update_team_route(team_id):
    data = update_team_schema.load(request.get_json())
    team, error = update_team(team_id, data, _current_user_id())
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"team": team_schema.dump(team)}), 200


@api_bp.route("/teams/<int:team_id>/members", methods=["POST"])
@role_required("captain", "admin")
def add_member_route(team_id):
    data = add_member_schema.load(request.get_json())
    _member, error = add_member(team_id, data["user_id"], _current_user_id())
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"message": "Member added"}), 201


@api_bp.route("/teams/<int:team_id>/members/<int:user_id>", methods=["DELETE"])
@role_required("captain", "admin")
def remove_member_route(team_id, user_id):
    _member, error = remove_member(team_id, user_id, _current_user_id())
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"message": "Member removed"}), 200


@api_bp.route("/teams/leave", methods=["POST"])
@login_required
def leave_team_route():
    _member, error = leave_team(_current_user_id())
    if error:
        return jsonify({"error": error}), 400
    return jsonify({"message": "You left the team"}), 200


# ─── Requests ─────────────────────────────────────────────────────────────────

@api_bp.route("/requests/captain", methods=["POST"])
@login_required
def request_captaincy_route():
    req, error = request_captaincy(_current_user_id())
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"request": captain_request_schema.dump(req)}), 201


@api_bp.route("/requests/team", methods=["POST"])
@role_required("captain")
def request_team_route():
    data = create_team_request_schema.load(request.get_json())
    req, error = request_team(_current_user_id(), data)
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"request": team_request_schema.dump(req)}), 201


@api_bp.route("/requests/mine", methods=["GET"])
@login_required
def my_requests():
    user_id = _current_user_id()
    captain_requests = CaptainRequest.query.filter_by(user_id=user_id).order_by(
        CaptainRequest.created_at.desc()
    ).all()
    team_requests = TeamRequest.query.filter_by(captain_id=user_id).order_by(
        TeamRequest.created_at.desc()
    ).all()
    return jsonify({
        "captain_requests": captain_requests_schema.dump(captain_requests),
        "team_requests": team_requests_schema.dump(team_requests),
    }), 200


# ─── Matches ──────────────────────────────────────────────────────────────────

@api_bp.route("/matches", methods=["GET"])
def get_matches():
    competition_id = request.args.get("competition_id", type=int)
    team_id = request.args.get("team_id", type=int)
    status = request.args.get("status")
    stage = request.args.get("stage")
    group_name = request.args.get("group_name")
    round_number = request.args.get("round", type=int)
    match_day = request.args.get("match_day", type=int)

    query = Match.query
    if competition_id:
        query = query.filter_by(competition_id=competition_id)
    if team_id:
        query = query.filter(
            (Match.home_team_id == team_id) | (Match.away_team_id == team_id)
        )
    if status:
        query = query.filter_by(status=MatchStatus(status))
    if stage:
        query = query.filter_by(stage=MatchStage(stage))
    if group_name:
        query = query.filter_by(group_name=group_name)
    if round_number:
        query = query.filter_by(round_number=round_number)
    if match_day:
        query = query.filter_by(match_day=match_day)

    matches = query.order_by(
        Match.scheduled_for, Match.round_number, Match.slot_number, Match.leg, Match.id
    ).all()
    return jsonify({"matches": matches_schema.dump(matches)}), 200


@api_bp.route("/matches/<int:match_id>", methods=["GET"])
def get_match(match_id):
    match = db.get_or_404(Match, match_id)
    return jsonify({
        "match": match_schema.dump(match),
        "results": results_schema.dump(match.results.all()),
        "proofs": proofs_schema.dump(match.proofs.all()),
        "lineups": lineups_schema.dump(match.lineups.all()),
        "player_stats": player_stats_schema.dump(match.player_stats.all()),
    }), 200


@api_bp.route("/matches", methods=["POST"])
@admin_required
def create_match_route():
    data = create_match_schema.load(request.get_json())
    match, error = create_match(data)
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"match": match_schema.dump(match)}), 201


@api_bp.route("/matches/<int:match_id>", methods=["PUT"])
@admin_required
def update_match_route(match_id):
    data = update_match_schema.load(request.get_json())
    match, error = update_match(match_id, data)
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"match": match_schema.dump(match)}), 200


@api_bp.route("/matches/<int:match_id>", methods=["DELETE"])
@admin_required
def delete_match_route(match_id):
    _match, error = delete_match(match_id)
    if error:
        return jsonify({"error": error}), 404 if "not found" in error else 409
    return jsonify({"message": "Match deleted"}), 200


@api_bp.route("/matches/<int:match_id>/results", methods=["POST"])
@role_required("captain")
def submit_result_route(match_id):
    data = submit_result_schema.load(request.get_json())
    match, error = submit_result(match_id, _current_user_id(), data)
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"match": match_schema.dump(match)}), 201


# ─── Realtime ─────────────────────────────────────────────────────────────────

@api_bp.route("/events/stream", methods=["GET"])
def event_stream():
    topics = [t for t in request.args.get("topics", "").split(",") if t]

    def generate():
        q = event_bus.subscribe(topics or None)
        try:
            while True:
                try:
                    msg = q.get(timeout=30)
                    yield f"data: {msg}\n\n"
                except queue.Empty:
                    yield ": keepalive\n\n"
        except GeneratorExit:
            pass
        finally:
            event_bus.unsubscribe(q)

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


# ─── Uploads ──────────────────────────────────────────────────────────────────

@api_bp.route("/uploads/<bucket>", methods=["POST"])
@login_required
def upload_file(bucket):
    name, error = storage.save_upload(bucket, request.files.get("file"))
    if error:
        return jsonify({"error": error}), 404 if "Unknown" in error else 400
    url = url_for("api.get_upload", bucket=bucket, name=name)
    return jsonify({"bucket": bucket, "name": name, "url": url}), 201


@api_bp.route("/uploads/<bucket>/<name>", methods=["GET"])
def get_upload(bucket, name):
    directory, safe_name = storage.resolve_upload(bucket, name)
    if not directory:
        return jsonify({"error": "File not found"}), 404
    return send_from_directory(directory, safe_name)
