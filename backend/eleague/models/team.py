from eleague.extensions import db
from datetime import datetime, timezone


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    logo_url = db.Column(db.String(500), nullable=True)
    captain_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    captain = db.relationship("User", foreign_keys=[captain_id])
    members = db.relationship(
        "TeamMember", backref="team", lazy="dynamic", cascade="all, delete-orphan"
    )
    home_matches = db.relationship(
        "Match", foreign_keys="Match.home_team_id", backref="home_team", lazy="dynamic"
    )
    away_matches = db.relationship(
        "Match", foreign_keys="Match.away_team_id", backref="away_team", lazy="dynamic"
    )

    def __repr__(self):
        return f"<Team {self.name}>"


class TeamMember(db.Model):
    __tablename__ = "team_members"

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    # One team per user
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)
    joined_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self):
        return f"<TeamMember team={self.team_id} user={self.user_id}>"
