from itertools import groupby

from eleague.extensions import db
from eleague.models.competition import Competition
from eleague.models.match import Match, MatchStage

# Stages that count toward league/group tables
STANDINGS_STAGES = (MatchStage.LEAGUE, MatchStage.GROUP)


def _blank_row(team_id, group_name=None):
    return {
        "team_id": team_id,
        "group_name": group_name,
        "played": 0,
        "won": 0,
        "drawn": 0,
        "lost": 0,
        "goals_for": 0,
        "goals_against": 0,
        "goal_difference": 0,
        "points": 0,
    }


def _apply(row, scored, conceded):
    row["played"] += 1
    row["goals_for"] += scored
    row["goals_against"] += conceded
    row["goal_difference"] = row["goals_for"] - row["goals_against"]
    if scored > conceded:
        row["won"] += 1
        row["points"] += 3
    elif scored == conceded:
        row["drawn"] += 1
        row["points"] += 1
    else:
        row["lost"] += 1


def sort_standings(rows, matches):
    """Sort table rows with head-to-head tiebreakers.

    Order:
      1. Points DESC
      2. Head-to-head points among tied teams DESC
      3. Head-to-head goal difference among tied teams DESC
      4. Overall goal difference DESC
      5. Overall goals for DESC
    """
    if len(rows) <= 1:
        return list(rows)

    by_points = sorted(rows, key=lambda r: r["points"], reverse=True)

    result = []
    for _pts, group in groupby(by_points, key=lambda r: r["points"]):
        tied = list(group)
        if len(tied) == 1:
            result.append(tied[0])
            continue

        tied_ids = {r["team_id"] for r in tied}
        h2h = {tid: {"pts": 0, "gd": 0} for tid in tied_ids}

        for m in matches:
            if m.home_team_id in tied_ids and m.away_team_id in tied_ids:
                if m.home_score > m.away_score:
                    h2h[m.home_team_id]["pts"] += 3
                elif m.home_score < m.away_score:
                    h2h[m.away_team_id]["pts"] += 3
                else:
                    h2h[m.home_team_id]["pts"] += 1
                    h2h[m.away_team_id]["pts"] += 1
                h2h[m.home_team_id]["gd"] += m.home_score - m.away_score
                h2h[m.away_team_id]["gd"] += m.away_score - m.home_score

        tied.sort(
            key=lambda r: (
                h2h[r["team_id"]]["pts"],
                h2h[r["team_id"]]["gd"],
                r["goal_difference"],
                r["goals_for"],
            ),
            reverse=True,
        )
        result.extend(tied)

    return result


def compute_standings(competition_id, group_name=None):
    """Build the table for a league, or for champions groups.

    Only approved league/group matches count. Every team with a fixture in
    scope gets a row, so a team that has not played yet still shows up.
    Returns ``{group_name: [rows]}``; a league uses the key ``None``.
    """
    competition = db.session.get(Competition, competition_id)
    if not competition:
        return None, "Competition not found"

    query = Match.query.filter_by(competition_id=competition_id).filter(
        Match.stage.in_(STANDINGS_STAGES)
    )
    if group_name:
        query = query.filter_by(group_name=group_name)
    fixtures = query.all()

    tables = {}
    approved = {}
    for m in fixtures:
        table = tables.setdefault(m.group_name, {})
        for team_id in (m.home_team_id, m.away_team_id):
            table.setdefault(team_id, _blank_row(team_id, m.group_name))
        if not m.approved or m.home_score is None or m.away_score is None:
            continue
        approved.setdefault(m.group_name, []).append(m)
        _apply(table[m.home_team_id], m.home_score, m.away_score)
        _apply(table[m.away_team_id], m.away_score, m.home_score)

    # Teams entered in a league but without fixtures yet
    if not fixtures and group_name is None:
        tables[None] = {t.id: _blank_row(t.id) for t in competition.teams}

    result = {}
    for name, rows in tables.items():
        ordered = sort_standings(list(rows.values()), approved.get(name, []))
        for position, row in enumerate(ordered, 1):
            row["position"] = position
        result[name] = ordered
    return result, None


def group_stage_complete(competition_id):
    """True when the competition has group fixtures and all are approved."""
    total = Match.query.filter_by(
        competition_id=competition_id, stage=MatchStage.GROUP
    ).count()
    pending = Match.query.filter_by(
        competition_id=competition_id, stage=MatchStage.GROUP, approved=False
    ).count()
    return total > 0 and pending == 0
