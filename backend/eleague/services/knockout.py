"""Knockout progression engine.

Pure functions over fixture rows. Nothing here touches the database: the
bracket service feeds in whatever the fixture store returns and persists
whatever comes back out.

A fixture is any object exposing ``round_number``, ``slot_number``, ``leg``,
``home_team_id``, ``away_team_id``, ``home_score``, ``away_score``,
``approved`` and ``penalty_winner_id``.

Bracket shape, for N teams (N a power of two):
    rounds:              1 .. log2(N)
    slots in round R:    N / 2**R
    legs per tie:        2, except the final (round log2(N)) which is 1
    slot k of round R+1 is fed by slots 2k-1 and 2k of round R
"""
import enum
import logging
from collections import namedtuple

logger = logging.getLogger(__name__)


FixturePlan = namedtuple(
    "FixturePlan",
    ["round_number", "slot_number", "leg", "home_team_id", "away_team_id"],
)


class SlotState(enum.Enum):
    AWAITING_LEGS = "awaiting_legs"
    AWAITING_APPROVAL = "awaiting_approval"
    DECIDED = "decided"
    TIED = "tied"
    INCONSISTENT = "inconsistent"


class TieOutcome:
    """Result of scoring one bracket slot.

    Aggregates are reported from the point of view of the first leg:
    ``aggregate_home`` is the total for the leg-1 home side (team A),
    ``aggregate_away`` the total for the leg-1 away side (team B).
    """

    def __init__(self, state, team_a_id=None, team_b_id=None,
                 aggregate_home=None, aggregate_away=None,
                 winner_team_id=None, reason=None):
        self.state = state
        self.team_a_id = team_a_id
        self.team_b_id = team_b_id
        self.aggregate_home = aggregate_home
        self.aggregate_away = aggregate_away
        self.winner_team_id = winner_team_id
        self.reason = reason

    @property
    def decided(self):
        return self.state == SlotState.DECIDED

    @property
    def requires_manual_resolution(self):
        return self.state == SlotState.TIED

    def to_dict(self):
        return {
            "state": self.state.value,
            "team_a_id": self.team_a_id,
            "team_b_id": self.team_b_id,
            "aggregate_home": self.aggregate_home,
            "aggregate_away": self.aggregate_away,
            "winner_team_id": self.winner_team_id,
            "requires_manual_resolution": self.requires_manual_resolution,
            "reason": self.reason,
        }

    def __repr__(self):
        return f"<TieOutcome {self.state.value} winner={self.winner_team_id}>"


# ── Bracket geometry ────────────────────────────────────────────────────────

def is_power_of_two(n):
    return isinstance(n, int) and n >= 2 and n & (n - 1) == 0


def total_rounds(team_count):
    """Number of rounds for a knockout of ``team_count`` teams."""
    if not is_power_of_two(team_count):
        raise ValueError(f"Knockout team count must be a power of two, got {team_count}")
    return team_count.bit_length() - 1


def slots_in_round(team_count, round_number):
    return team_count >> round_number


def legs_for_round(round_number, max_round):
    return 1 if round_number == max_round else 2


def round_name(round_number, max_round):
    from_final = max_round - round_number
    names = {
        0: "Final",
        1: "Semi-finals",
        2: "Quarter-finals",
        3: "Round of 16",
        4: "Round of 32",
    }
    return names.get(from_final, f"Round {round_number}")


def group_by_slot(fixtures):
    """Index fixtures as ``{round: {slot: [legs sorted by leg]}}``.

    Fixtures without bracket metadata are ignored.
    """
    rounds = {}
    for f in fixtures:
        if f.round_number is None or f.slot_number is None:
            continue
        rounds.setdefault(f.round_number, {}).setdefault(f.slot_number, []).append(f)
    for slots in rounds.values():
        for legs in slots.values():
            legs.sort(key=lambda f: f.leg or 1)
    return rounds


# ── Aggregate scorer ────────────────────────────────────────────────────────

def score_tie(legs, expected_legs=None):
    """Score the one or two legs of a bracket slot.

    Higher aggregate wins; away goals do not count. A level aggregate is
    only decided when an administrator has recorded ``penalty_winner_id``
    on one of the legs, otherwise the slot is TIED.
    """
    legs = sorted(legs, key=lambda f: f.leg or 1)

    if not legs:
        return TieOutcome(SlotState.AWAITING_LEGS, reason="No legs created yet")

    if len(legs) > 2:
        return TieOutcome(SlotState.INCONSISTENT, reason=f"Slot has {len(legs)} legs")

    if expected_legs is not None and len(legs) > expected_legs:
        return TieOutcome(
            SlotState.INCONSISTENT,
            reason=f"Slot has {len(legs)} legs, expected {expected_legs}",
        )

    leg_numbers = [f.leg or 1 for f in legs]
    if len(set(leg_numbers)) != len(leg_numbers) or not set(leg_numbers) <= {1, 2}:
        return TieOutcome(SlotState.INCONSISTENT, reason=f"Invalid leg numbers {leg_numbers}")

    first = legs[0]
    second = legs[1] if len(legs) == 2 else None

    # Team A is the leg-1 home side even when only leg 2 exists so far.
    if (first.leg or 1) == 1:
        team_a, team_b = first.home_team_id, first.away_team_id
    else:
        team_a, team_b = first.away_team_id, first.home_team_id

    if team_a is None or team_b is None or team_a == team_b:
        return TieOutcome(SlotState.INCONSISTENT, team_a, team_b, reason="Invalid team pairing")

    if second is not None and (second.home_team_id, second.away_team_id) != (team_b, team_a):
        return TieOutcome(
            SlotState.INCONSISTENT, team_a, team_b,
            reason="Second leg does not reverse the first leg's pairing",
        )

    if expected_legs is not None and len(legs) < expected_legs:
        return TieOutcome(
            SlotState.AWAITING_LEGS, team_a, team_b,
            reason=f"{len(legs)} of {expected_legs} legs created",
        )

    if any(f.home_score is None or f.away_score is None for f in legs):
        return TieOutcome(SlotState.AWAITING_LEGS, team_a, team_b, reason="Result missing")

    if any(f.home_score < 0 or f.away_score < 0 for f in legs):
        return TieOutcome(SlotState.INCONSISTENT, team_a, team_b, reason="Negative score")

    if not all(f.approved for f in legs):
        return TieOutcome(SlotState.AWAITING_APPROVAL, team_a, team_b, reason="Result not approved")

    if (first.leg or 1) == 1:
        agg_a, agg_b = first.home_score, first.away_score
        if second is not None:
            agg_a += second.away_score
            agg_b += second.home_score
    else:
        agg_a, agg_b = first.away_score, first.home_score

    if agg_a > agg_b:
        return TieOutcome(SlotState.DECIDED, team_a, team_b, agg_a, agg_b, team_a)
    if agg_b > agg_a:
        return TieOutcome(SlotState.DECIDED, team_a, team_b, agg_a, agg_b, team_b)

    overrides = {f.penalty_winner_id for f in legs if f.penalty_winner_id is not None}
    if not overrides:
        return TieOutcome(
            SlotState.TIED, team_a, team_b, agg_a, agg_b,
            reason="Aggregate level, requires manual resolution",
        )
    if len(overrides) > 1 or not overrides <= {team_a, team_b}:
        return TieOutcome(
            SlotState.INCONSISTENT, team_a, team_b, agg_a, agg_b,
            reason="Tie-break winner is not one of the two teams",
        )
    return TieOutcome(
        SlotState.DECIDED, team_a, team_b, agg_a, agg_b, overrides.pop(),
        reason="Decided by tie-break",
    )


# ── Round completeness ──────────────────────────────────────────────────────

def is_round_complete(round_number, max_round, slots):
    """True when every expected slot of the round has all legs approved.

    ``slots`` maps slot number to its legs for this round.
    """
    expected_slots = 2 ** (max_round - round_number)
    expected_legs = legs_for_round(round_number, max_round)
    for slot_number in range(1, expected_slots + 1):
        legs = slots.get(slot_number, [])
        if len(legs) != expected_legs:
            return False
        if not all(f.approved for f in legs):
            return False
    return True


def evaluate_round(round_number, max_round, slots):
    """Score every expected slot in a round. Returns ``{slot: TieOutcome}``."""
    expected_legs = legs_for_round(round_number, max_round)
    return {
        slot_number: score_tie(slots.get(slot_number, []), expected_legs)
        for slot_number in range(1, 2 ** (max_round - round_number) + 1)
    }


# ── Next-round generation ───────────────────────────────────────────────────

def plan_tie(round_number, slot_number, team_a_id, team_b_id, max_round):
    """Legs for one tie: a single leg in the final, otherwise home and away."""
    plans = [FixturePlan(round_number, slot_number, 1, team_a_id, team_b_id)]
    if legs_for_round(round_number, max_round) == 2:
        plans.append(FixturePlan(round_number, slot_number, 2, team_b_id, team_a_id))
    return plans


def plan_first_round(team_ids, max_round, existing=()):
    """Round-1 ties from the ordered slot assignment (slot 2k-1 vs slot 2k)."""
    existing = set(existing)
    plans = []
    for i in range(0, len(team_ids) - 1, 2):
        slot_number = i // 2 + 1
        for plan in plan_tie(1, slot_number, team_ids[i], team_ids[i + 1], max_round):
            if (plan.round_number, plan.slot_number, plan.leg) not in existing:
                plans.append(plan)
    return plans


def plan_next_round(winners, round_number, max_round, existing=()):
    """Fixtures for round ``round_number + 1`` from the ordered winners of
    ``round_number``.

    Winners are paired sequentially (slot 1 vs slot 2, slot 3 vs slot 4).
    ``existing`` holds ``(round, slot, leg)`` keys already in the store;
    those legs are skipped so the call is idempotent and also fills a leg
    left missing by an earlier partial write.
    """
    if round_number >= max_round:
        return []

    destination = round_number + 1
    existing = set(existing)
    plans = []
    for i in range(0, len(winners) - 1, 2):
        slot_number = i // 2 + 1
        for plan in plan_tie(destination, slot_number, winners[i], winners[i + 1], max_round):
            if (plan.round_number, plan.slot_number, plan.leg) not in existing:
                plans.append(plan)
    if len(winners) % 2:
        logger.warning("Round %d produced an odd number of winners (%d)", round_number, len(winners))
    return plans


def plan_advancement(fixtures, team_count):
    """Evaluate every round and plan the fixtures that are now due.

    Returns ``(plans, report)`` where ``report`` maps each round number to
    its ``{slot: TieOutcome}``. A round only feeds the next one once it is
    complete and every slot in it is decided.
    """
    max_round = total_rounds(team_count)
    by_round = group_by_slot(fixtures)
    existing = {
        (f.round_number, f.slot_number, f.leg or 1)
        for f in fixtures
        if f.round_number is not None and f.slot_number is not None
    }

    plans = []
    report = {}
    for round_number in range(1, max_round + 1):
        slots = by_round.get(round_number, {})
        if not slots:
            continue
        outcomes = evaluate_round(round_number, max_round, slots)
        report[round_number] = outcomes

        if round_number == max_round:
            continue
        if not is_round_complete(round_number, max_round, slots):
            continue
        if not all(o.decided for o in outcomes.values()):
            continue

        winners = [outcomes[s].winner_team_id for s in sorted(outcomes)]
        plans.extend(plan_next_round(winners, round_number, max_round, existing))

    return plans, report


def champion(fixtures, team_count):
    """Winner of the final, or None while it is undecided."""
    max_round = total_rounds(team_count)
    final_legs = group_by_slot(fixtures).get(max_round, {}).get(1, [])
    outcome = score_tie(final_legs, legs_for_round(max_round, max_round))
    return outcome.winner_team_id if outcome.decided else None
