import logging
from itertools import groupby

from eleague.extensions import db
from eleague.events import event_bus, competition_topic
from eleague.models.competition import Competition, CompetitionStatus, CompetitionType
from eleague.models.team import Team
from eleague.services import fixture_store
from eleague.services import knockout

logger = logging.getLogger(__name__)


def bracket_size(competition):
    """Teams in the knockout phase: the drawn slots, else the entry count."""
    if competition.bracket_slots:
        return len(competition.bracket_slots)
    return competition.team_count


def _ordered_slot_teams(slots):
    """Normalize a ``{"slot_N": team_id}`` map into a list ordered by N."""
    ordered = []
    for key, team_id in slots.items():
        number = str(key)
        if number.startswith("slot_"):
            number = number[len("slot_"):]
        try:
            ordered.append((int(number), team_id))
        except ValueError:
            return None, f"Invalid slot key: {key}"
    ordered.sort()
    numbers = [n for n, _ in ordered]
    if numbers != list(range(1, len(numbers) + 1)):
        return None, "Slots must be numbered consecutively from 1"
    return [team_id for _, team_id in ordered], None


def _persist_plans(competition_id, plans):
    created = []
    plans = sorted(plans, key=lambda p: (p.round_number, p.slot_number, p.leg))
    for _key, tie_plans in groupby(plans, key=lambda p: (p.round_number, p.slot_number)):
        created.extend(fixture_store.insert_tie(competition_id, list(tie_plans)))
    return created


# ── Draw ─────────────────────────────────────────────────────────────────────

def setup_bracket(competition_id, slots):
    """Save the slot → team assignment and create the round-1 ties.

    Slot 2k-1 plays slot 2k in tie k. Two legs per tie unless round 1 is
    already the final. Re-running with the same assignment only fills in
    missing legs.
    """
    competition = db.session.get(Competition, competition_id)
    if not competition:
        return None, "Competition not found"

    if not competition.is_knockout:
        return None, "Bracket draw is only for cup and champions competitions"

    if not slots:
        return None, "slots is required"

    team_ids, error = _ordered_slot_teams(slots)
    if error:
        return None, error

    size = len(team_ids)
    if not knockout.is_power_of_two(size):
        return None, "Number of bracket slots must be a power of two"

    if competition.type == CompetitionType.CUP and size != competition.team_count:
        return None, f"Cup bracket needs exactly {competition.team_count} slots"

    if size > competition.team_count:
        return None, f"Bracket cannot exceed {competition.team_count} teams"

    if any(t is None for t in team_ids) or len(set(team_ids)) != size:
        return None, "Every slot needs a different team"

    teams = Team.query.filter(Team.id.in_(team_ids)).all()
    if len(teams) != size:
        return None, "One or more teams not found"

    normalized = {f"slot_{i}": tid for i, tid in enumerate(team_ids, 1)}
    existing = fixture_store.list_fixtures(competition_id)
    if existing and competition.bracket_slots and competition.bracket_slots != normalized:
        return None, "Bracket already drawn; delete the round 1 fixtures before changing it"

    competition.bracket_slots = normalized
    entered = {t.id for t in competition.teams}
    for team in teams:
        if team.id not in entered:
            competition.teams.append(team)

    max_round = knockout.total_rounds(size)
    existing_keys = {(m.round_number, m.slot_number, m.leg) for m in existing}
    plans = knockout.plan_first_round(team_ids, max_round, existing_keys)
    created = _persist_plans(competition_id, plans)
    db.session.commit()

    logger.info(
        "Bracket drawn for competition %s: %d slots, %d fixture(s) created",
        competition_id, size, len(created),
    )
    if created:
        event_bus.publish("fixtures_created", {
            "competition_id": competition_id,
            "match_ids": [m.id for m in created],
        }, topic=competition_topic(competition_id))

    return {
        "bracket_slots": normalized,
        "total_rounds": max_round,
        "created": created,
    }, None


# ── Progression ──────────────────────────────────────────────────────────────

def advance_knockout(competition_id):
    """Re-evaluate every round and create the fixtures that are now due.

    Safe to call at any time: incomplete rounds produce nothing and legs
    that already exist are skipped.
    """
    competition = db.session.get(Competition, competition_id)
    if not competition:
        return None, "Competition not found"

    if not competition.is_knockout:
        return None, "Competition has no knockout bracket"

    fixtures = fixture_store.list_fixtures(competition_id)
    if not fixtures:
        return {"created": [], "tied_slots": [], "inconsistent_slots": [], "champion_team_id": None}, None

    size = bracket_size(competition)
    if not knockout.is_power_of_two(size):
        return None, "Bracket size must be a power of two"

    plans, report = knockout.plan_advancement(fixtures, size)
    created = _persist_plans(competition_id, plans)

    tied, inconsistent = [], []
    for round_number, outcomes in sorted(report.items()):
        for slot_number, outcome in sorted(outcomes.items()):
            entry = {"round": round_number, "slot": slot_number, **outcome.to_dict()}
            if outcome.state == knockout.SlotState.TIED:
                tied.append(entry)
            elif outcome.state == knockout.SlotState.INCONSISTENT:
                inconsistent.append(entry)
                logger.warning(
                    "Inconsistent slot competition=%s round=%s slot=%s: %s",
                    competition_id, round_number, slot_number, outcome.reason,
                )

    champion_id = knockout.champion(fixtures, size)
    if champion_id and competition.status != CompetitionStatus.COMPLETED:
        competition.status = CompetitionStatus.COMPLETED
        logger.info("Competition %s won by team %s", competition_id, champion_id)

    db.session.commit()

    topic = competition_topic(competition_id)
    if created:
        logger.info("Advanced competition %s: %d fixture(s) created", competition_id, len(created))
        event_bus.publish("fixtures_created", {
            "competition_id": competition_id,
            "match_ids": [m.id for m in created],
        }, topic=topic)
    for entry in tied:
        event_bus.publish("tie_requires_resolution", {
            "competition_id": competition_id,
            "round": entry["round"],
            "slot": entry["slot"],
        }, topic=topic)

    return {
        "created": created,
        "tied_slots": tied,
        "inconsistent_slots": inconsistent,
        "champion_team_id": champion_id,
    }, None


def resolve_tie(competition_id, round_number, slot_number, winner_team_id):
    """Admin override for a slot whose aggregate is level."""
    competition = db.session.get(Competition, competition_id)
    if not competition:
        return None, "Competition not found"

    legs = [
        m for m in fixture_store.list_fixtures(competition_id)
        if m.round_number == round_number and m.slot_number == slot_number
    ]
    if not legs:
        return None, "Bracket slot not found"

    max_round = knockout.total_rounds(bracket_size(competition))
    outcome = knockout.score_tie(legs, knockout.legs_for_round(round_number, max_round))
    if outcome.state != knockout.SlotState.TIED:
        return None, f"Slot is not tied (state: {outcome.state.value})"

    if winner_team_id not in (outcome.team_a_id, outcome.team_b_id):
        return None, "Winner must be one of the two teams in this tie"

    deciding_leg = max(legs, key=lambda m: m.leg or 1)
    deciding_leg.penalty_winner_id = winner_team_id
    db.session.commit()
    logger.info(
        "Tie competition=%s round=%s slot=%s resolved for team %s",
        competition_id, round_number, slot_number, winner_team_id,
    )

    result, error = advance_knockout(competition_id)
    if error:
        return None, error

    event_bus.publish("bracket_updated", {
        "competition_id": competition_id,
        "round": round_number,
        "slot": slot_number,
    }, topic=competition_topic(competition_id))
    return result, None


# ── Bracket query ────────────────────────────────────────────────────────────

def _leg_dict(m):
    return {
        "match_id": m.id,
        "leg": m.leg,
        "home_team_id": m.home_team_id,
        "away_team_id": m.away_team_id,
        "home_score": m.home_score,
        "away_score": m.away_score,
        "approved": m.approved,
        "status": m.status.value,
        "penalty_winner_id": m.penalty_winner_id,
        "scheduled_for": None if m.is_unscheduled else m.scheduled_for.isoformat(),
    }


def get_bracket(competition_id):
    """Bracket tree for rendering: rounds → slots → legs, with slot state."""
    competition = db.session.get(Competition, competition_id)
    if not competition:
        return None, "Competition not found"

    fixtures = fixture_store.list_fixtures(competition_id)
    if not fixtures and not competition.bracket_slots:
        return None, "No bracket found for this competition"

    size = bracket_size(competition)
    max_round = knockout.total_rounds(size)
    by_round = knockout.group_by_slot(fixtures)

    rounds = []
    for round_number in range(1, max_round + 1):
        slots = by_round.get(round_number, {})
        outcomes = knockout.evaluate_round(round_number, max_round, slots)
        rounds.append({
            "round": round_number,
            "name": knockout.round_name(round_number, max_round),
            "legs_per_tie": knockout.legs_for_round(round_number, max_round),
            "complete": knockout.is_round_complete(round_number, max_round, slots),
            "slots": [
                {
                    "slot": slot_number,
                    **outcomes[slot_number].to_dict(),
                    "legs": [_leg_dict(m) for m in slots.get(slot_number, [])],
                }
                for slot_number in sorted(outcomes)
            ],
        })

    return {
        "competition_id": competition_id,
        "bracket_slots": competition.bracket_slots,
        "total_rounds": max_round,
        "rounds": rounds,
        "champion_team_id": knockout.champion(fixtures, size),
    }, None
