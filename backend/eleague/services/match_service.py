import logging

from eleague.extensions import db
from eleague.events import event_bus, competition_topic, match_topic
from eleague.models.competition import Competition
from eleague.models.match import Match, MatchStage, MatchStatus, UNSCHEDULED
from eleague.models.result import (
    MatchResult,
    ResultStatus,
    MatchProof,
    MatchLineup,
    PlayerStat,
)
from eleague.models.team import Team, TeamMember
from eleague.models.user import User
from eleague.services import fixture_store
from eleague.services.bracket_service import advance_knockout

logger = logging.getLogger(__name__)


# ── Fixture management ───────────────────────────────────────────────────────

def create_match(data):
    competition = db.session.get(Competition, data["competition_id"])
    if not competition:
        return None, "Competition not found"

    if data["home_team_id"] == data["away_team_id"]:
        return None, "A team cannot play itself"

    match = Match(
        competition_id=competition.id,
        home_team_id=data["home_team_id"],
        away_team_id=data["away_team_id"],
        scheduled_for=data.get("scheduled_for") or UNSCHEDULED,
        match_day=data.get("match_day"),
        stage=MatchStage(data.get("stage") or "league"),
        group_name=data.get("group_name"),
        status=MatchStatus.SCHEDULED,
    )
    db.session.add(match)
    db.session.commit()
    return match, None


def update_match(match_id, data):
    """Reschedule or correct an unapproved fixture."""
    match = db.session.get(Match, match_id)
    if not match:
        return None, "Match not found"

    if match.approved:
        return None, "Approved matches cannot be edited"

    if match.is_knockout and ("home_team_id" in data or "away_team_id" in data):
        return None, "Bracket fixtures keep the teams the draw gave them"

    for field in ("home_team_id", "away_team_id", "match_day"):
        if field in data:
            setattr(match, field, data[field])
    if "scheduled_for" in data:
        match.scheduled_for = data["scheduled_for"] or UNSCHEDULED

    if match.home_team_id == match.away_team_id:
        db.session.rollback()
        return None, "A team cannot play itself"

    db.session.commit()
    return match, None


def delete_match(match_id):
    match = db.session.get(Match, match_id)
    if not match:
        return None, "Match not found"

    if match.approved:
        return None, "Approved matches cannot be deleted"

    db.session.delete(match)
    db.session.commit()
    logger.info("Deleted match %s", match_id)
    return match, None


# ── Result submission ────────────────────────────────────────────────────────

def _captain_team_for(match, user):
    """The team of ``match`` this user captains, if any."""
    for team_id in (match.home_team_id, match.away_team_id):
        team = db.session.get(Team, team_id)
        if team and team.captain_id == user.id:
            return team
    return None


def submit_result(match_id, user_id, data):
    """A team captain reports the result, proofs, lineup and scorers.

    Each of the two teams submits once. The match moves to PENDING_REVIEW
    and waits for an administrator.
    """
    match = db.session.get(Match, match_id)
    if not match:
        return None, "Match not found"

    if match.approved:
        return None, "Match result already approved"

    user = db.session.get(User, user_id)
    team = _captain_team_for(match, user) if user else None
    if not team:
        return None, "Only a captain of one of the two teams can submit the result"

    if match.results.filter_by(team_id=team.id).first():
        return None, "Your team has already submitted a result for this match"

    home_score, away_score = data["home_score"], data["away_score"]
    team_score = home_score if team.id == match.home_team_id else away_score

    stats = data.get("player_stats") or []
    member_ids = {m.user_id for m in TeamMember.query.filter_by(team_id=team.id)}
    for stat in stats:
        if stat["player_id"] not in member_ids:
            return None, "Player stats can only list members of your team"
    if sum(s.get("goals", 0) for s in stats) > team_score:
        return None, "Player goals cannot exceed the team's score"

    lineup = data.get("lineup")
    if lineup:
        unknown = [pid for pid in lineup["player_positions"].values() if pid not in member_ids]
        if unknown:
            return None, "Lineup can only include members of your team"
        db.session.add(MatchLineup(
            match_id=match.id,
            team_id=team.id,
            formation=lineup["formation"],
            player_positions=lineup["player_positions"],
        ))

    proofs = data["proofs"]
    db.session.add(MatchProof(
        match_id=match.id,
        team_id=team.id,
        player_list_url=proofs["player_list_url"],
        result_url=proofs["result_url"],
        stats_url=proofs["stats_url"],
        stream_url=proofs["stream_url"],
    ))
    db.session.add(MatchResult(
        match_id=match.id,
        team_id=team.id,
        submitted_by_id=user.id,
        home_score=home_score,
        away_score=away_score,
    ))
    for stat in stats:
        db.session.add(PlayerStat(
            match_id=match.id,
            team_id=team.id,
            player_id=stat["player_id"],
            goals=stat.get("goals", 0),
            assists=stat.get("assists", 0),
        ))

    match.status = MatchStatus.PENDING_REVIEW
    db.session.commit()

    logger.info("Result submitted for match %s by team %s", match.id, team.id)
    event_bus.publish("result_submitted", {
        "match_id": match.id,
        "competition_id": match.competition_id,
        "team_id": team.id,
    }, topic=competition_topic(match.competition_id))
    return match, None


def result_consistency(match):
    """True when both teams submitted the same score."""
    results = match.results.filter(MatchResult.status != ResultStatus.REJECTED).all()
    if len(results) != 2:
        return False
    first, second = results
    return (first.home_score, first.away_score) == (second.home_score, second.away_score)


def review_queue(competition_id=None):
    """Unapproved matches with at least one submitted result, oldest first."""
    query = Match.query.filter_by(approved=False, status=MatchStatus.PENDING_REVIEW)
    if competition_id:
        query = query.filter_by(competition_id=competition_id)
    return query.order_by(Match.scheduled_for, Match.id).all()


# ── Verification ─────────────────────────────────────────────────────────────

def approve_result(match_id, admin_id, home_score=None, away_score=None, notes=None):
    """Admin approves a submitted result, optionally correcting the score.

    Without an explicit score the submissions must agree. Approval goes
    through the fixture store and then re-runs bracket advancement for
    knockout fixtures.
    """
    match = db.session.get(Match, match_id)
    if not match:
        return None, "Match not found"

    if match.approved:
        return None, "Match result already approved"

    results = match.results.filter(MatchResult.status != ResultStatus.REJECTED).all()
    if not results:
        return None, "No result has been submitted for this match"

    edited = home_score is not None or away_score is not None
    if edited:
        if home_score is None or away_score is None:
            return None, "Provide both scores when correcting a result"
    else:
        scores = {(r.home_score, r.away_score) for r in results}
        if len(scores) != 1:
            return None, "Submitted results disagree; provide the correct score"
        home_score, away_score = scores.pop()

    for r in results:
        if edited and (r.home_score, r.away_score) != (home_score, away_score):
            r.admin_modified = True
            r.home_score = home_score
            r.away_score = away_score
        r.status = ResultStatus.APPROVED
        r.admin_notes = notes

    match, error = fixture_store.update_approval(
        match.id, home_score, away_score, approved=True, approved_by_id=admin_id
    )
    if error:
        db.session.rollback()
        return None, error
    match.admin_notes = notes
    db.session.commit()

    logger.info("Match %s approved at %s-%s by admin %s", match.id, home_score, away_score, admin_id)
    topic = competition_topic(match.competition_id)
    event_bus.publish("result_approved", {
        "match_id": match.id,
        "competition_id": match.competition_id,
        "home_team_id": match.home_team_id,
        "away_team_id": match.away_team_id,
        "home_score": match.home_score,
        "away_score": match.away_score,
    }, topic=topic)

    if match.is_knockout:
        _result, error = advance_knockout(match.competition_id)
        if error:
            logger.warning("Advancement after approving match %s failed: %s", match.id, error)
        event_bus.publish("bracket_updated", {
            "competition_id": match.competition_id,
            "match_id": match.id,
            "round": match.round_number,
            "slot": match.slot_number,
        }, topic=topic)

    return match, None


def reject_result(match_id, admin_id, notes=None):
    """Reject the submissions; the teams have to resubmit."""
    match = db.session.get(Match, match_id)
    if not match:
        return None, "Match not found"

    if match.approved:
        return None, "Approved results cannot be rejected"

    results = match.results.filter_by(status=ResultStatus.PENDING).all()
    if not results:
        return None, "No pending result for this match"

    for r in results:
        db.session.delete(r)
    for related in (match.proofs, match.lineups, match.player_stats):
        for row in related:
            db.session.delete(row)

    match.status = MatchStatus.SCHEDULED
    match.admin_notes = notes
    db.session.commit()

    logger.info("Match %s results rejected by admin %s", match.id, admin_id)
    event_bus.publish("result_rejected", {
        "match_id": match.id,
        "competition_id": match.competition_id,
        "notes": notes,
    }, topic=match_topic(match.id))
    return match, None
