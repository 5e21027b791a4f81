from eleague.extensions import db
from datetime import datetime, timezone
import enum


class ResultStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MatchResult(db.Model):
    """A result as reported by one of the two teams."""

    __tablename__ = "match_results"

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    submitted_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    home_score = db.Column(db.Integer, nullable=False)
    away_score = db.Column(db.Integer, nullable=False)
    status = db.Column(
        db.Enum(ResultStatus), nullable=False, default=ResultStatus.PENDING
    )
    admin_modified = db.Column(db.Boolean, nullable=False, default=False)
    admin_notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        db.UniqueConstraint("match_id", "team_id", name="uq_result_match_team"),
    )

    team = db.relationship("Team")
    submitted_by = db.relationship("User")

    def __repr__(self):
        return f"<MatchResult match={self.match_id} team={self.team_id}>"


class MatchProof(db.Model):
    __tablename__ = "match_proofs"

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    player_list_url = db.Column(db.String(500), nullable=False)
    result_url = db.Column(db.String(500), nullable=False)
    stats_url = db.Column(db.String(500), nullable=False)
    stream_url = db.Column(db.String(500), nullable=False)
    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )


class MatchLineup(db.Model):
    __tablename__ = "match_lineups"

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    formation = db.Column(db.String(20), nullable=False)
    # {"POR": user_id, "DC": user_id, ...}
    player_positions = db.Column(db.JSON, nullable=False, default=dict)


class PlayerStat(db.Model):
    __tablename__ = "match_player_stats"

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    goals = db.Column(db.Integer, nullable=False, default=0)
    assists = db.Column(db.Integer, nullable=False, default=0)

    player = db.relationship("User")
