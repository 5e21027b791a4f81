from eleague.extensions import db
from datetime import datetime, timezone
import enum


class CompetitionType(enum.Enum):
    LEAGUE = "league"
    CHAMPIONS = "champions"
    CUP = "cup"


class CompetitionStatus(enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


KNOCKOUT_TYPES = (CompetitionType.CUP, CompetitionType.CHAMPIONS)


competition_teams = db.Table(
    "competition_teams",
    db.Column(
        "competition_id",
        db.Integer,
        db.ForeignKey("competitions.id"),
        primary_key=True,
    ),
    db.Column(
        "team_id", db.Integer, db.ForeignKey("teams.id"), primary_key=True
    ),
)


class Competition(db.Model):
    __tablename__ = "competitions"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.Enum(CompetitionType), nullable=False)
    status = db.Column(
        db.Enum(CompetitionStatus), nullable=False, default=CompetitionStatus.ACTIVE
    )
    team_count = db.Column(db.Integer, nullable=False)
    # {"slot_1": team_id, "slot_2": team_id, ...}
    bracket_slots = db.Column(db.JSON, nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    teams = db.relationship(
        "Team", secondary=competition_teams, backref="competitions", lazy="dynamic"
    )
    matches = db.relationship(
        "Match", backref="competition", lazy="dynamic", cascade="all, delete-orphan"
    )

    @property
    def is_knockout(self):
        return self.type in KNOCKOUT_TYPES

    def __repr__(self):
        return f"<Competition {self.name}>"
