"""Fixture store: persistence boundary of the knockout engine.

Bracket fixtures are unique on (competition, round, slot, leg). A unique
violation on insert means another request already advanced that slot; it
is logged and the canonical row is returned instead of an error.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from eleague.extensions import db
from eleague.models.match import Match, MatchStage, MatchStatus, UNSCHEDULED

logger = logging.getLogger(__name__)


def list_fixtures(competition_id):
    """All bracket fixtures for a competition, ordered round, slot, leg."""
    return Match.query.filter_by(
        competition_id=competition_id,
        stage=MatchStage.KNOCKOUT,
    ).order_by(
        Match.round_number, Match.slot_number, Match.leg
    ).all()


def get_fixture(competition_id, round_number, slot_number, leg):
    return Match.query.filter_by(
        competition_id=competition_id,
        round_number=round_number,
        slot_number=slot_number,
        leg=leg,
    ).first()


def _build(competition_id, plan, scheduled_for):
    return Match(
        competition_id=competition_id,
        home_team_id=plan.home_team_id,
        away_team_id=plan.away_team_id,
        round_number=plan.round_number,
        slot_number=plan.slot_number,
        leg=plan.leg,
        match_day=plan.round_number,
        stage=MatchStage.KNOCKOUT,
        status=MatchStatus.SCHEDULED,
        scheduled_for=scheduled_for or UNSCHEDULED,
    )


def insert_fixture(competition_id, plan, scheduled_for=None):
    """Insert one leg. Returns ``(match, created)``.

    ``created`` is False when the leg already existed, in which case the
    stored row is returned.
    """
    match = _build(competition_id, plan, scheduled_for)
    try:
        with db.session.begin_nested():
            db.session.add(match)
            db.session.flush()
    except IntegrityError:
        logger.info(
            "Fixture competition=%s round=%s slot=%s leg=%s already exists, keeping stored row",
            competition_id, plan.round_number, plan.slot_number, plan.leg,
        )
        return get_fixture(competition_id, plan.round_number, plan.slot_number, plan.leg), False
    return match, True


def insert_tie(competition_id, plans, scheduled_for=None):
    """Insert the legs of one tie together.

    Both legs land in one savepoint. On a conflict the savepoint is rolled
    back and each leg is retried on its own, so a leg missing after an
    earlier partial write is still filled in. Returns the newly created
    matches.
    """
    matches = [_build(competition_id, plan, scheduled_for) for plan in plans]
    try:
        with db.session.begin_nested():
            db.session.add_all(matches)
            db.session.flush()
        return matches
    except IntegrityError:
        logger.info(
            "Conflict inserting tie competition=%s round=%s slot=%s, retrying per leg",
            competition_id, plans[0].round_number, plans[0].slot_number,
        )

    created = []
    for plan in plans:
        match, was_created = insert_fixture(competition_id, plan, scheduled_for)
        if was_created:
            created.append(match)
    return created


def update_approval(match_id, home_score, away_score, approved, approved_by_id=None):
    """Record the reviewed score and approval flag of a fixture.

    Approval needs both scores; this is the write that makes the engine
    re-evaluate the bracket.
    """
    match = db.session.get(Match, match_id)
    if not match:
        return None, "Match not found"

    if approved and (home_score is None or away_score is None):
        return None, "Both scores are required to approve a result"

    if any(s is not None and s < 0 for s in (home_score, away_score)):
        return None, "Scores cannot be negative"

    match.home_score = home_score
    match.away_score = away_score
    match.approved = bool(approved)
    if approved:
        match.status = MatchStatus.COMPLETED
        match.approved_by_id = approved_by_id
        match.approved_at = datetime.now(timezone.utc)
    else:
        match.approved_by_id = None
        match.approved_at = None

    db.session.flush()
    return match, None
