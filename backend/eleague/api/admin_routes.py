from flask import Blueprint, request, jsonify
from flask_jwt_extended import get_jwt_identity

from eleague.extensions import db
from eleague.models.match import Match
from eleague.models.request import CaptainRequest, TeamRequest, RequestStatus
from eleague.schemas import (
    UserSchema,
    SetRoleSchema,
    SetBannedSchema,
    CaptainRequestSchema,
    TeamRequestSchema,
    ResolveRequestSchema,
    MatchSchema,
    MatchResultSchema,
    MatchProofSchema,
    ApproveResultSchema,
    RejectResultSchema,
    SocialPostSchema,
    CreateSocialPostSchema,
    UpdateSocialPostSchema,
)
from eleague.auth.decorators import admin_required
from eleague.api.routes import error_status
from eleague.services.user_service import list_users, set_role, set_banned
from eleague.services.team_service import resolve_captain_request, resolve_team_request
from eleague.services.match_service import (
    review_queue,
    result_consistency,
    approve_result,
    reject_result,
)
from eleague.services.social_service import (
    list_social_posts,
    create_social_post,
    update_social_post,
    toggle_social_post,
    delete_social_post,
)

admin_bp = Blueprint("admin", __name__)

user_schema = UserSchema()
users_schema = UserSchema(many=True)
set_role_schema = SetRoleSchema()
set_banned_schema = SetBannedSchema()
captain_requests_schema = CaptainRequestSchema(many=True)
captain_request_schema = CaptainRequestSchema()
team_requests_schema = TeamRequestSchema(many=True)
team_request_schema = TeamRequestSchema()
resolve_request_schema = ResolveRequestSchema()
match_schema = MatchSchema()
results_schema = MatchResultSchema(many=True)
proofs_schema = MatchProofSchema(many=True)
approve_result_schema = ApproveResultSchema()
reject_result_schema = RejectResultSchema()
social_post_schema = SocialPostSchema()
social_posts_schema = SocialPostSchema(many=True)
create_social_post_schema = CreateSocialPostSchema()
update_social_post_schema = UpdateSocialPostSchema()


# ─── Users ────────────────────────────────────────────────────────────────────

@admin_bp.route("/users", methods=["GET"])
@admin_required
def get_users():
    role = request.args.get("role")
    banned = request.args.get("banned")
    users = list_users(role, None if banned is None else banned.lower() == "true")
    return jsonify({"users": users_schema.dump(users)}), 200


@admin_bp.route("/users/<int:user_id>/role", methods=["PUT"])
@admin_required
def set_role_route(user_id):
    data = set_role_schema.load(request.get_json())
    user, error = set_role(user_id, data["role"], int(get_jwt_identity()))
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"user": user_schema.dump(user)}), 200


@admin_bp.route("/users/<int:user_id>/ban", methods=["PUT"])
@admin_required
def set_banned_route(user_id):
    data = set_banned_schema.load(request.get_json())
    user, error = set_banned(user_id, data["banned"], int(get_jwt_identity()))
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"user": user_schema.dump(user)}), 200


# ─── Requests ─────────────────────────────────────────────────────────────────

@admin_bp.route("/requests/captain", methods=["GET"])
@admin_required
def get_captain_requests():
    status = request.args.get("status", "pending")
    reqs = CaptainRequest.query.filter_by(status=RequestStatus(status)).order_by(
        CaptainRequest.created_at
    ).all()
    return jsonify({"requests": captain_requests_schema.dump(reqs)}), 200


@admin_bp.route("/requests/captain/<int:request_id>", methods=["POST"])
@admin_required
def resolve_captain_request_route(request_id):
    data = resolve_request_schema.load(request.get_json())
    req, error = resolve_captain_request(request_id, data["approve"])
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"request": captain_request_schema.dump(req)}), 200


@admin_bp.route("/requests/team", methods=["GET"])
@admin_required
def get_team_requests():
    status = request.args.get("status", "pending")
    reqs = TeamRequest.query.filter_by(status=RequestStatus(status)).order_by(
        TeamRequest.created_at
    ).all()
    return jsonify({"requests": team_requests_schema.dump(reqs)}), 200


@admin_bp.route("/requests/team/<int:request_id>", methods=["POST"])
@admin_required
def resolve_team_request_route(request_id):
    data = resolve_request_schema.load(request.get_json())
    req, error = resolve_team_request(request_id, data["approve"])
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"request": team_request_schema.dump(req)}), 200


# ─── Result verification ──────────────────────────────────────────────────────

def _review_entry(match):
    return {
        "match": match_schema.dump(match),
        "results": results_schema.dump(match.results.all()),
        "proofs": proofs_schema.dump(match.proofs.all()),
        "consistent": result_consistency(match),
    }


@admin_bp.route("/review-queue", methods=["GET"])
@admin_required
def get_review_queue():
    competition_id = request.args.get("competition_id", type=int)
    matches = review_queue(competition_id)
    return jsonify({"matches": [_review_entry(m) for m in matches]}), 200


@admin_bp.route("/matches/<int:match_id>/review", methods=["GET"])
@admin_required
def get_match_review(match_id):
    match = db.get_or_404(Match, match_id)
    return jsonify(_review_entry(match)), 200


@admin_bp.route("/matches/<int:match_id>/approve", methods=["POST"])
@admin_required
def approve_result_route(match_id):
    data = approve_result_schema.load(request.get_json() or {})
    match, error = approve_result(
        match_id,
        int(get_jwt_identity()),
        home_score=data["home_score"],
        away_score=data["away_score"],
        notes=data["notes"],
    )
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"match": match_schema.dump(match)}), 200


@admin_bp.route("/matches/<int:match_id>/reject", methods=["POST"])
@admin_required
def reject_result_route(match_id):
    data = reject_result_schema.load(request.get_json() or {})
    match, error = reject_result(match_id, int(get_jwt_identity()), notes=data["notes"])
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"match": match_schema.dump(match)}), 200


# ─── Social feed ──────────────────────────────────────────────────────────────

@admin_bp.route("/social-posts", methods=["GET"])
@admin_required
def get_all_social_posts():
    return jsonify({"posts": social_posts_schema.dump(list_social_posts(active_only=False))}), 200


@admin_bp.route("/social-posts", methods=["POST"])
@admin_required
def create_social_post_route():
    data = create_social_post_schema.load(request.get_json())
    post, error = create_social_post(data, int(get_jwt_identity()))
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"post": social_post_schema.dump(post)}), 201


@admin_bp.route("/social-posts/<int:post_id>", methods=["PUT"])
@admin_required
def update_social_post_route(post_id):
    data = update_social_post_schema.load(request.get_json())
    post, error = update_social_post(post_id, data)
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"post": social_post_schema.dump(post)}), 200


@admin_bp.route("/social-posts/<int:post_id>/toggle", methods=["POST"])
@admin_required
def toggle_social_post_route(post_id):
    post, error = toggle_social_post(post_id)
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"post": social_post_schema.dump(post)}), 200


@admin_bp.route("/social-posts/<int:post_id>", methods=["DELETE"])
@admin_required
def delete_social_post_route(post_id):
    _, error = delete_social_post(post_id)
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"message": "Social post deleted"}), 200
