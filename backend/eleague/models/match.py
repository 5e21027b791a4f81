from eleague.extensions import db
from datetime import datetime, timezone
import enum

# Placeholder kick-off for fixtures nobody has scheduled yet.
UNSCHEDULED = datetime(1970, 1, 1)


class MatchStage(enum.Enum):
    LEAGUE = "league"
    GROUP = "group"
    KNOCKOUT = "knockout"


class MatchStatus(enum.Enum):
    SCHEDULED = "scheduled"
    PENDING_REVIEW = "pending_review"
    COMPLETED = "completed"


class Match(db.Model):
    __tablename__ = "matches"

    id = db.Column(db.Integer, primary_key=True)
    competition_id = db.Column(
        db.Integer, db.ForeignKey("competitions.id"), nullable=False
    )
    home_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    away_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    home_score = db.Column(db.Integer, nullable=True)
    away_score = db.Column(db.Integer, nullable=True)
    scheduled_for = db.Column(db.DateTime, nullable=False, default=UNSCHEDULED)
    match_day = db.Column(db.Integer, nullable=True)
    stage = db.Column(db.Enum(MatchStage), nullable=False, default=MatchStage.LEAGUE)
    group_name = db.Column(db.String(10), nullable=True)
    round_number = db.Column(db.Integer, nullable=True)
    slot_number = db.Column(db.Integer, nullable=True)
    leg = db.Column(db.Integer, nullable=True)
    status = db.Column(
        db.Enum(MatchStatus), nullable=False, default=MatchStatus.SCHEDULED
    )
    approved = db.Column(db.Boolean, nullable=False, default=False)
    approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    admin_notes = db.Column(db.Text, nullable=True)
    penalty_winner_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        db.UniqueConstraint(
            "competition_id", "round_number", "slot_number", "leg",
            name="uq_match_bracket_leg",
        ),
    )

    # Relationships
    penalty_winner = db.relationship("Team", foreign_keys=[penalty_winner_id])
    approved_by = db.relationship("User", foreign_keys=[approved_by_id])
    results = db.relationship(
        "MatchResult", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )
    proofs = db.relationship(
        "MatchProof", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )
    lineups = db.relationship(
        "MatchLineup", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )
    player_stats = db.relationship(
        "PlayerStat", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )
    chat_messages = db.relationship(
        "ChatMessage", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )
    chat_read_status = db.relationship(
        "ChatReadStatus", lazy="dynamic", cascade="all, delete-orphan"
    )

    @property
    def is_knockout(self):
        return self.stage == MatchStage.KNOCKOUT

    @property
    def is_unscheduled(self):
        return self.scheduled_for is None or self.scheduled_for.replace(tzinfo=None) == UNSCHEDULED

    def involves(self, team_id):
        return team_id is not None and team_id in (self.home_team_id, self.away_team_id)

    def __repr__(self):
        return f"<Match {self.home_team_id} vs {self.away_team_id}>"
