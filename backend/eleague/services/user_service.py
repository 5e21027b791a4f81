import logging
import re

from eleague.extensions import db
from eleague.models.user import User, UserRole

logger = logging.getLogger(__name__)

PASSWORD_RE = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#]).{8,}$"
)


def validate_password(password):
    """Require 8+ chars with uppercase, lowercase, digit, and special char."""
    if not PASSWORD_RE.match(password):
        return (
            "Password must be at least 8 characters with uppercase, "
            "lowercase, digit, and special character"
        )
    return None


def register_user(data):
    """Self-service sign-up. New accounts are always players."""
    if User.query.filter_by(email=data["email"]).first():
        return None, "Email already registered"

    if User.query.filter_by(username=data["username"]).first():
        return None, "Username already taken"

    pw_error = validate_password(data["password"])
    if pw_error:
        return None, pw_error

    user = User(
        email=data["email"],
        username=data["username"],
        game_id=data.get("game_id"),
        role=UserRole.PLAYER,
    )
    user.set_password(data["password"])

    db.session.add(user)
    db.session.commit()
    logger.info("Registered user %s (%s)", user.id, user.username)
    return user, None


def update_profile(user_id, data):
    user = db.session.get(User, user_id)
    if not user:
        return None, "User not found"

    if "username" in data and data["username"] != user.username:
        if User.query.filter_by(username=data["username"]).first():
            return None, "Username already taken"
        user.username = data["username"]
    if "game_id" in data:
        user.game_id = data["game_id"]
    if "avatar_url" in data:
        user.avatar_url = data["avatar_url"]

    db.session.commit()
    return user, None


def list_users(role=None, banned=None):
    query = User.query
    if role:
        query = query.filter_by(role=UserRole(role))
    if banned is not None:
        query = query.filter_by(is_banned=banned)
    return query.order_by(User.username).all()


def set_role(user_id, role, actor_id):
    user = db.session.get(User, user_id)
    if not user:
        return None, "User not found"

    new_role = UserRole(role)
    if user.id == actor_id and new_role != UserRole.ADMIN:
        return None, "You cannot remove your own admin role"

    user.role = new_role
    db.session.commit()
    logger.info("User %s role set to %s by %s", user.id, new_role.value, actor_id)
    return user, None


def set_banned(user_id, banned, actor_id):
    user = db.session.get(User, user_id)
    if not user:
        return None, "User not found"

    if user.id == actor_id:
        return None, "You cannot ban yourself"

    user.is_banned = banned
    db.session.commit()
    logger.info("User %s %s by %s", user.id, "banned" if banned else "unbanned", actor_id)
    return user, None
