from eleague.extensions import db
from datetime import datetime, timezone
from werkzeug.security import generate_password_hash, check_password_hash
import enum


class UserRole(enum.Enum):
    ADMIN = "admin"
    CAPTAIN = "captain"
    PLAYER = "player"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    username = db.Column(db.String(50), nullable=False, unique=True)
    game_id = db.Column(db.String(100), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.PLAYER)
    is_banned = db.Column(db.Boolean, default=False, nullable=False)
    avatar_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    membership = db.relationship(
        "TeamMember", backref="user", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def team_id(self):
        return self.membership.team_id if self.membership else None

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<User {self.username}>"
