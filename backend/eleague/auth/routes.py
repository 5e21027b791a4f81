from flask import Blueprint, request, jsonify
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
)
from eleague.extensions import db, limiter
from eleague.models.user import User
from eleague.schemas.user import UserSchema, RegisterSchema, UpdateProfileSchema
from eleague.services.user_service import register_user, update_profile

auth_bp = Blueprint("auth", __name__)
user_schema = UserSchema()
register_schema = RegisterSchema()
update_profile_schema = UpdateProfileSchema()


def _tokens(user):
    return {
        "access_token": create_access_token(identity=str(user.id)),
        "refresh_token": create_refresh_token(identity=str(user.id)),
        "user": user_schema.dump(user),
    }


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    data = request.get_json()

    if not data or not data.get("email") or not data.get("password"):
        return jsonify({"error": "Email and password are required"}), 400

    user = User.query.filter_by(email=data["email"]).first()

    if not user or not user.check_password(data["password"]):
        return jsonify({"error": "Invalid email or password"}), 401

    if user.is_banned:
        return jsonify({"error": "Account is banned"}), 403

    return jsonify(_tokens(user)), 200


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("5 per minute")
def register():
    data = register_schema.load(request.get_json())

    user, error = register_user(data)
    if error:
        status = 409 if "already" in error else 400
        return jsonify({"error": error}), status

    return jsonify(_tokens(user)), 201


@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
@limiter.limit("30 per minute")
def refresh():
    user_id = int(get_jwt_identity())
    user = db.session.get(User, user_id)

    if not user or user.is_banned:
        return jsonify({"error": "Account is banned"}), 403

    access_token = create_access_token(identity=str(user_id))
    return jsonify({"access_token": access_token}), 200


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    user_id = int(get_jwt_identity())
    user = db.session.get(User, user_id)

    if not user:
        return jsonify({"error": "User not found"}), 404

    return jsonify({"user": user_schema.dump(user)}), 200


@auth_bp.route("/me", methods=["PUT"])
@jwt_required()
def update_me():
    user_id = int(get_jwt_identity())
    data = request.get_json()
    if not data:
        return jsonify({"error": "Request body is required"}), 400

    user, error = update_profile(user_id, update_profile_schema.load(data))
    if error:
        status = 404 if "not found" in error else 409
        return jsonify({"error": error}), status

    return jsonify({"user": user_schema.dump(user)}), 200
