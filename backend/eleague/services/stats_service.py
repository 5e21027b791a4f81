from sqlalchemy import func

from eleague.extensions import db
from eleague.models.match import Match
from eleague.models.result import PlayerStat
from eleague.models.user import User


def _leaders(column, competition_id=None, limit=10):
    total = func.sum(column).label("total")
    query = (
        db.session.query(PlayerStat.player_id, PlayerStat.team_id, total)
        .join(Match, Match.id == PlayerStat.match_id)
        .filter(Match.approved.is_(True))
    )
    if competition_id:
        query = query.filter(Match.competition_id == competition_id)

    rows = (
        query.group_by(PlayerStat.player_id, PlayerStat.team_id)
        .having(total > 0)
        .order_by(total.desc(), PlayerStat.player_id)
        .limit(limit)
        .all()
    )

    users = {u.id: u for u in User.query.filter(User.id.in_([r.player_id for r in rows]))}
    return [
        {
            "player_id": r.player_id,
            "username": users[r.player_id].username if r.player_id in users else None,
            "team_id": r.team_id,
            "total": int(r.total),
        }
        for r in rows
    ]


def top_scorers(competition_id=None, limit=10):
    return _leaders(PlayerStat.goals, competition_id, limit)


def top_assists(competition_id=None, limit=10):
    return _leaders(PlayerStat.assists, competition_id, limit)


def player_totals(player_id):
    """Career goals, assists and appearances from approved matches."""
    goals, assists, appearances = (
        db.session.query(
            func.coalesce(func.sum(PlayerStat.goals), 0),
            func.coalesce(func.sum(PlayerStat.assists), 0),
            func.count(PlayerStat.id),
        )
        .join(Match, Match.id == PlayerStat.match_id)
        .filter(PlayerStat.player_id == player_id, Match.approved.is_(True))
        .one()
    )
    return {
        "player_id": player_id,
        "goals": int(goals),
        "assists": int(assists),
        "appearances": appearances,
    }
