import logging
import random
import string
from datetime import datetime, time, timedelta

from eleague.extensions import db
from eleague.events import event_bus, competition_topic
from eleague.models.competition import Competition, CompetitionType
from eleague.models.match import Match, MatchStage, MatchStatus, UNSCHEDULED
from eleague.services import knockout
from eleague.services.bracket_service import setup_bracket
from eleague.services.standings import compute_standings, group_stage_complete

logger = logging.getLogger(__name__)


def _kickoff(start_date, offset_days):
    if start_date is None:
        return UNSCHEDULED
    if isinstance(start_date, datetime):
        return start_date + timedelta(days=offset_days)
    return datetime.combine(start_date + timedelta(days=offset_days), time(20, 0))


def round_robin_rounds(team_ids):
    """Circle-method pairings: n-1 rounds (n rounded up to even).

    Returns a list of rounds, each a list of (home, away) pairs. Byes are
    dropped when the team count is odd.
    """
    teams = list(team_ids)
    if len(teams) % 2:
        teams.append(None)

    n = len(teams)
    half = n // 2
    rotating = list(range(1, n))
    rounds = []

    for r in range(n - 1):
        idx_pairs = [(0, rotating[0])]
        for i in range(1, half):
            idx_pairs.append((rotating[i], rotating[n - 1 - i]))
        pairs = []
        for home_idx, away_idx in idx_pairs:
            home, away = teams[home_idx], teams[away_idx]
            if home is None or away is None:
                continue
            # Alternate the fixed team's venue so nobody plays every first-pass game at home.
            if home_idx == 0 and r % 2:
                home, away = away, home
            pairs.append((home, away))
        rounds.append(pairs)
        rotating = [rotating[-1]] + rotating[:-1]

    return rounds


def _double_round_robin(competition_id, team_ids, stage, start_date, interval_days, group_name=None):
    rounds = round_robin_rounds(team_ids)
    matches = []
    match_day = 0
    # Second pass repeats the first with venues swapped.
    for swap in (False, True):
        for pairs in rounds:
            match_day += 1
            kickoff = _kickoff(start_date, (match_day - 1) * interval_days)
            for home, away in pairs:
                if swap:
                    home, away = away, home
                match = Match(
                    competition_id=competition_id,
                    home_team_id=home,
                    away_team_id=away,
                    scheduled_for=kickoff,
                    stage=stage,
                    group_name=group_name,
                    match_day=match_day,
                    status=MatchStatus.SCHEDULED,
                )
                db.session.add(match)
                matches.append(match)
    return matches


# ── League ───────────────────────────────────────────────────────────────────

def generate_league_fixtures(competition_id, start_date=None, interval_days=7):
    """Generate a full home-and-away round-robin for a league.

    For n teams: 2(n-1) match days (n rounded up to even), n/2 matches each.
    Without a start date every fixture is left unscheduled.
    """
    competition = db.session.get(Competition, competition_id)
    if not competition:
        return None, "Competition not found"

    if competition.type != CompetitionType.LEAGUE:
        return None, "Round-robin fixtures are only for league competitions"

    team_ids = [t.id for t in competition.teams]
    if len(team_ids) < 2:
        return None, "Competition must have at least 2 teams"

    existing = Match.query.filter_by(
        competition_id=competition_id, stage=MatchStage.LEAGUE
    ).first()
    if existing:
        return None, "Fixtures already generated for this competition"

    matches = _double_round_robin(
        competition_id, team_ids, MatchStage.LEAGUE, start_date, interval_days
    )
    db.session.commit()

    logger.info("Generated %d league fixtures for competition %s", len(matches), competition_id)
    event_bus.publish("fixtures_created", {
        "competition_id": competition_id,
        "match_ids": [m.id for m in matches],
    }, topic=competition_topic(competition_id))
    return matches, None


# ── Champions groups ─────────────────────────────────────────────────────────

def generate_group_stage(competition_id, start_date=None, interval_days=7, group_size=4, seed=None):
    """Draw champions teams into groups A, B, ... and schedule each group
    as a double round-robin.

    The two best teams of each group go on to the knockout bracket. Groups
    are paired A/B, C/D, ... so their count must be even, and the number of
    groups times two must itself be a power of two.
    """
    competition = db.session.get(Competition, competition_id)
    if not competition:
        return None, "Competition not found"

    if competition.type != CompetitionType.CHAMPIONS:
        return None, "Group stage is only for champions competitions"

    teams = [t.id for t in competition.teams]
    if len(teams) != competition.team_count:
        return None, f"Competition needs exactly {competition.team_count} teams, has {len(teams)}"

    if group_size < 2 or len(teams) % group_size:
        return None, f"{len(teams)} teams cannot be split into groups of {group_size}"

    group_count = len(teams) // group_size
    if group_count < 2 or group_count % 2:
        return None, "Group stage needs an even number of groups, at least two"
    if not knockout.is_power_of_two(group_count * 2):
        return None, "Group winners and runners-up must fill a power-of-two bracket"

    existing = Match.query.filter_by(
        competition_id=competition_id, stage=MatchStage.GROUP
    ).first()
    if existing:
        return None, "Group fixtures already generated for this competition"

    rng = random.Random(seed)
    rng.shuffle(teams)

    groups = {}
    matches = []
    for i in range(group_count):
        letter = string.ascii_uppercase[i]
        groups[letter] = teams[i * group_size:(i + 1) * group_size]
        matches.extend(_double_round_robin(
            competition_id, groups[letter], MatchStage.GROUP,
            start_date, interval_days, group_name=letter,
        ))

    db.session.commit()

    logger.info(
        "Drew %d groups with %d fixtures for competition %s",
        group_count, len(matches), competition_id,
    )
    event_bus.publish("fixtures_created", {
        "competition_id": competition_id,
        "match_ids": [m.id for m in matches],
    }, topic=competition_topic(competition_id))
    return {"groups": groups, "matches": matches}, None


def seed_knockout_from_groups(competition_id):
    """Place group winners and runners-up into the bracket and draw round 1.

    Groups are taken in pairs (A/B, C/D, ...): winner A v runner-up B,
    then winner B v runner-up A, and so on.
    """
    competition = db.session.get(Competition, competition_id)
    if not competition:
        return None, "Competition not found"

    if competition.type != CompetitionType.CHAMPIONS:
        return None, "Knockout seeding from groups is only for champions competitions"

    if not group_stage_complete(competition_id):
        return None, "Group stage is not complete"

    tables, error = compute_standings(competition_id)
    if error:
        return None, error

    letters = sorted(k for k in tables if k is not None)
    if len(letters) % 2:
        return None, "Group count must be even to pair groups"

    team_ids = []
    for a, b in zip(letters[::2], letters[1::2]):
        group_a, group_b = tables[a], tables[b]
        if len(group_a) < 2 or len(group_b) < 2:
            return None, f"Groups {a} and {b} need at least two teams"
        team_ids += [
            group_a[0]["team_id"], group_b[1]["team_id"],
            group_b[0]["team_id"], group_a[1]["team_id"],
        ]

    slots = {f"slot_{i}": tid for i, tid in enumerate(team_ids, 1)}
    return setup_bracket(competition_id, slots)
