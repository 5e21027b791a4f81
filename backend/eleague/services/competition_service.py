import logging

from eleague.extensions import db
from eleague.models.competition import Competition, CompetitionType, CompetitionStatus
from eleague.models.match import Match
from eleague.models.team import Team
from eleague.services.knockout import is_power_of_two

logger = logging.getLogger(__name__)


def _validate_team_count(comp_type, team_count):
    if comp_type == CompetitionType.LEAGUE:
        if team_count < 2:
            return "A league needs at least 2 teams"
    elif not is_power_of_two(team_count):
        return f"{comp_type.value.capitalize()} team count must be a power of two"
    return None


def create_competition(data):
    comp_type = CompetitionType(data["type"])
    error = _validate_team_count(comp_type, data["team_count"])
    if error:
        return None, error

    competition = Competition(
        name=data["name"],
        type=comp_type,
        team_count=data["team_count"],
        status=CompetitionStatus.ACTIVE,
    )
    db.session.add(competition)
    db.session.commit()
    logger.info("Created %s competition %s (%s)", comp_type.value, competition.id, competition.name)
    return competition, None


def update_competition(comp_id, data):
    """Rename or change status. The format type is fixed once created."""
    competition = db.session.get(Competition, comp_id)
    if not competition:
        return None, "Competition not found"

    if "name" in data:
        competition.name = data["name"]
    if "status" in data:
        competition.status = CompetitionStatus(data["status"])

    db.session.commit()
    return competition, None


def delete_competition(comp_id):
    competition = db.session.get(Competition, comp_id)
    if not competition:
        return None, "Competition not found"

    approved = competition.matches.filter_by(approved=True).count()
    if approved:
        return None, f"Cannot delete: {approved} match(es) already approved"

    db.session.delete(competition)
    db.session.commit()
    logger.info("Deleted competition %s", comp_id)
    return competition, None


def add_team_to_competition(comp_id, team_id):
    competition = db.session.get(Competition, comp_id)
    if not competition:
        return None, "Competition not found"

    team = db.session.get(Team, team_id)
    if not team:
        return None, "Team not found"

    if competition.teams.filter_by(id=team_id).first():
        return None, "Team already in competition"

    if competition.teams.count() >= competition.team_count:
        return None, f"Competition is full ({competition.team_count} teams)"

    competition.teams.append(team)
    db.session.commit()
    return competition, None


def remove_team_from_competition(comp_id, team_id):
    competition = db.session.get(Competition, comp_id)
    if not competition:
        return None, "Competition not found"

    team = competition.teams.filter_by(id=team_id).first()
    if not team:
        return None, "Team not in competition"

    scheduled = Match.query.filter_by(competition_id=comp_id).filter(
        (Match.home_team_id == team_id) | (Match.away_team_id == team_id)
    ).count()
    if scheduled:
        return None, "Team already has fixtures in this competition"

    competition.teams.remove(team)
    db.session.commit()
    return competition, None
