"""Result submission, admin review and the knockout hook on approval."""
import json

import pytest

from eleague.events import event_bus
from eleague.extensions import db
from eleague.models.competition import CompetitionType
from eleague.models.match import Match, MatchStatus
from eleague.models.result import MatchResult, MatchProof, PlayerStat, ResultStatus
from eleague.models.user import UserRole
from eleague.services.bracket_service import setup_bracket
from eleague.services.match_service import (
    create_match,
    submit_result,
    approve_result,
    reject_result,
    review_queue,
    result_consistency,
)
from eleague.services.stats_service import top_scorers, player_totals

from conftest import make_user, make_team, make_competition


PROOFS = {
    "player_list_url": "/api/uploads/match-proofs/a.png",
    "result_url": "/api/uploads/match-proofs/b.png",
    "stats_url": "/api/uploads/match-proofs/c.png",
    "stream_url": "https://twitch.tv/videos/1",
}


def _payload(home, away, **extra):
    data = {"home_score": home, "away_score": away, "proofs": dict(PROOFS)}
    data.update(extra)
    return data


def _drain(q):
    events = []
    while not q.empty():
        events.append(json.loads(q.get_nowait()))
    return events


@pytest.fixture
def fixture(app):
    """A league match between two captained teams."""
    home_captain = make_user("homecap", UserRole.CAPTAIN)
    away_captain = make_user("awaycap", UserRole.CAPTAIN)
    striker = make_user("striker")
    home = make_team("Home FC", home_captain, members=[striker])
    away = make_team("Away FC", away_captain)
    comp = make_competition("Test League", CompetitionType.LEAGUE, 4, teams=[home, away])
    match, err = create_match({
        "competition_id": comp.id,
        "home_team_id": home.id,
        "away_team_id": away.id,
    })
    assert err is None
    return {
        "match_id": match.id,
        "comp_id": comp.id,
        "home": home,
        "away": away,
        "home_captain": home_captain,
        "away_captain": away_captain,
        "striker": striker,
    }


@pytest.fixture
def admin(app):
    return make_user("reviewer", UserRole.ADMIN)


# ── Submission ───────────────────────────────────────────────────────────────

class TestSubmitResult:
    def test_captain_submits(self, fixture):
        match, err = submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        assert err is None
        assert match.status == MatchStatus.PENDING_REVIEW
        assert not match.approved
        assert match.home_score is None

        result = MatchResult.query.filter_by(match_id=match.id).one()
        assert result.team_id == fixture["home"].id
        assert result.status == ResultStatus.PENDING
        assert MatchProof.query.filter_by(match_id=match.id).count() == 1

    def test_non_captain_rejected(self, fixture):
        _, err = submit_result(fixture["match_id"], fixture["striker"].id, _payload(2, 1))
        assert err.startswith("Only a captain")

    def test_outside_captain_rejected(self, fixture):
        other = make_user("othercap", UserRole.CAPTAIN)
        make_team("Other FC", other)
        _, err = submit_result(fixture["match_id"], other.id, _payload(2, 1))
        assert err.startswith("Only a captain")

    def test_one_submission_per_team(self, fixture):
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        _, err = submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(3, 1))
        assert "already submitted" in err

    def test_both_teams_submit(self, fixture):
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        _, err = submit_result(fixture["match_id"], fixture["away_captain"].id, _payload(2, 1))
        assert err is None
        match = db.session.get(Match, fixture["match_id"])
        assert match.results.count() == 2
        assert result_consistency(match) is True

    def test_player_stats_must_be_members(self, fixture):
        payload = _payload(1, 0, player_stats=[
            {"player_id": fixture["away_captain"].id, "goals": 1, "assists": 0},
        ])
        _, err = submit_result(fixture["match_id"], fixture["home_captain"].id, payload)
        assert "members of your team" in err

    def test_goals_capped_by_team_score(self, fixture):
        payload = _payload(1, 3, player_stats=[
            {"player_id": fixture["striker"].id, "goals": 2, "assists": 0},
        ])
        _, err = submit_result(fixture["match_id"], fixture["home_captain"].id, payload)
        assert "cannot exceed" in err

    def test_away_captain_goals_use_away_score(self, fixture):
        payload = _payload(0, 2, player_stats=[
            {"player_id": fixture["away_captain"].id, "goals": 2, "assists": 0},
        ])
        _, err = submit_result(fixture["match_id"], fixture["away_captain"].id, payload)
        assert err is None

    def test_lineup_members_only(self, fixture):
        payload = _payload(1, 0, lineup={
            "formation": "4-4-2",
            "player_positions": {"POR": fixture["away_captain"].id},
        })
        _, err = submit_result(fixture["match_id"], fixture["home_captain"].id, payload)
        assert "Lineup" in err

    def test_publishes_result_submitted(self, fixture):
        q = event_bus.subscribe(topics={f"competition:{fixture['comp_id']}"})
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        events = _drain(q)
        assert [e["type"] for e in events] == ["result_submitted"]
        assert events[0]["data"]["team_id"] == fixture["home"].id

    def test_review_queue(self, fixture):
        assert review_queue() == []
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        assert [m.id for m in review_queue()] == [fixture["match_id"]]
        assert review_queue(competition_id=fixture["comp_id"] + 1) == []


# ── Approval ─────────────────────────────────────────────────────────────────

class TestApproveResult:
    def test_agreeing_results_approved(self, fixture, admin):
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        submit_result(fixture["match_id"], fixture["away_captain"].id, _payload(2, 1))

        match, err = approve_result(fixture["match_id"], admin.id)
        assert err is None
        assert match.approved
        assert match.status == MatchStatus.COMPLETED
        assert (match.home_score, match.away_score) == (2, 1)
        assert match.approved_by_id == admin.id
        assert all(r.status == ResultStatus.APPROVED for r in match.results)

    def test_disagreement_needs_score(self, fixture, admin):
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        submit_result(fixture["match_id"], fixture["away_captain"].id, _payload(1, 1))
        match = db.session.get(Match, fixture["match_id"])
        assert result_consistency(match) is False

        _, err = approve_result(fixture["match_id"], admin.id)
        assert "disagree" in err

    def test_admin_correction_marks_modified(self, fixture, admin):
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        submit_result(fixture["match_id"], fixture["away_captain"].id, _payload(1, 1))

        match, err = approve_result(fixture["match_id"], admin.id, 1, 1, notes="Checked the stream")
        assert err is None
        assert (match.home_score, match.away_score) == (1, 1)
        assert match.admin_notes == "Checked the stream"

        modified = {r.team_id: r.admin_modified for r in match.results}
        assert modified == {fixture["home"].id: True, fixture["away"].id: False}

    def test_partial_correction_rejected(self, fixture, admin):
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        _, err = approve_result(fixture["match_id"], admin.id, home_score=3)
        assert "both scores" in err

    def test_nothing_submitted(self, fixture, admin):
        _, err = approve_result(fixture["match_id"], admin.id)
        assert "No result" in err

    def test_cannot_approve_twice(self, fixture, admin):
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        approve_result(fixture["match_id"], admin.id)
        _, err = approve_result(fixture["match_id"], admin.id)
        assert "already approved" in err

    def test_no_submission_after_approval(self, fixture, admin):
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        approve_result(fixture["match_id"], admin.id)
        _, err = submit_result(fixture["match_id"], fixture["away_captain"].id, _payload(2, 1))
        assert "already approved" in err

    def test_stats_count_once_approved(self, fixture, admin):
        payload = _payload(2, 0, player_stats=[
            {"player_id": fixture["striker"].id, "goals": 2, "assists": 0},
        ])
        submit_result(fixture["match_id"], fixture["home_captain"].id, payload)
        assert top_scorers() == []

        approve_result(fixture["match_id"], admin.id)
        leaders = top_scorers(fixture["comp_id"])
        assert leaders[0]["player_id"] == fixture["striker"].id
        assert leaders[0]["total"] == 2
        assert player_totals(fixture["striker"].id)["appearances"] == 1

    def test_publishes_result_approved(self, fixture, admin):
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        q = event_bus.subscribe()
        approve_result(fixture["match_id"], admin.id)
        events = _drain(q)
        assert [e["type"] for e in events] == ["result_approved"]
        assert events[0]["data"]["home_score"] == 2


# ── Rejection ────────────────────────────────────────────────────────────────

class TestRejectResult:
    def test_reject_returns_to_scheduled(self, fixture, admin):
        payload = _payload(2, 0, player_stats=[
            {"player_id": fixture["striker"].id, "goals": 1, "assists": 1},
        ])
        submit_result(fixture["match_id"], fixture["home_captain"].id, payload)

        match, err = reject_result(fixture["match_id"], admin.id, notes="Blurry proof")
        assert err is None
        assert match.status == MatchStatus.SCHEDULED
        assert match.admin_notes == "Blurry proof"
        assert MatchResult.query.filter_by(match_id=match.id).count() == 0
        assert MatchProof.query.filter_by(match_id=match.id).count() == 0
        assert PlayerStat.query.filter_by(match_id=match.id).count() == 0

    def test_team_can_resubmit(self, fixture, admin):
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 0))
        reject_result(fixture["match_id"], admin.id)
        _, err = submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 1))
        assert err is None

    def test_nothing_pending(self, fixture, admin):
        _, err = reject_result(fixture["match_id"], admin.id)
        assert "No pending result" in err

    def test_publishes_on_match_topic(self, fixture, admin):
        submit_result(fixture["match_id"], fixture["home_captain"].id, _payload(2, 0))
        q = event_bus.subscribe(topics={f"match:{fixture['match_id']}"})
        reject_result(fixture["match_id"], admin.id, notes="Redo")
        events = _drain(q)
        assert [e["type"] for e in events] == ["result_rejected"]
        assert events[0]["data"]["notes"] == "Redo"


# ── Knockout hook ────────────────────────────────────────────────────────────

class TestApprovalAdvancesBracket:
    def test_final_leg_approval_creates_next_round(self, app, admin):
        captains = [make_user(f"kocap{i}", UserRole.CAPTAIN) for i in range(1, 5)]
        teams = [make_team(f"KO {i}", c) for i, c in enumerate(captains, 1)]
        comp = make_competition("Mini Cup", team_count=4, teams=teams)
        setup_bracket(comp.id, {f"slot_{i}": t.id for i, t in enumerate(teams, 1)})

        legs = Match.query.filter_by(competition_id=comp.id, round_number=1).all()
        captain_of = {t.id: c for t, c in zip(teams, captains)}
        q = event_bus.subscribe(topics={f"competition:{comp.id}"})

        for m in legs:
            score = (2, 0) if m.leg == 1 else (0, 0)
            submit_result(m.id, captain_of[m.home_team_id].id, _payload(*score))
            approve_result(m.id, admin.id)

        final = Match.query.filter_by(competition_id=comp.id, round_number=2).all()
        assert len(final) == 1
        assert final[0].leg == 1
        assert {final[0].home_team_id, final[0].away_team_id} <= {t.id for t in teams}

        types = [e["type"] for e in _drain(q)]
        assert types.count("fixtures_created") == 1
        assert "bracket_updated" in types
