import io

import pytest
from sqlalchemy import text

from eleague import create_app
from eleague.extensions import db
from eleague.models.competition import CompetitionType
from eleague.models.match import Match
from eleague.models.user import User, UserRole

from conftest import make_user, make_team, make_competition, login


PROOFS = {
    "player_list_url": "/api/uploads/match-proofs/a.png",
    "result_url": "/api/uploads/match-proofs/b.png",
    "stats_url": "/api/uploads/match-proofs/c.png",
    "stream_url": "https://youtube.com/watch?v=abc",
}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "healthy"


def test_second_app_keeps_transactions_working(app):
    other = create_app("testing")
    with other.app_context():
        db.create_all()
        assert db.session.execute(text("select 1")).scalar() == 1
        with db.session.begin_nested():
            db.session.execute(text("select 1"))
        db.session.commit()
        db.session.remove()
        db.drop_all()

    make_user("afterwards")
    assert User.query.filter_by(username="afterwards").count() == 1


# ── Competitions ─────────────────────────────────────────────────────────────

def test_list_competitions_public(client):
    make_competition("Public Cup")
    resp = client.get("/api/competitions")
    assert resp.status_code == 200
    comps = resp.get_json()["competitions"]
    assert comps[0]["name"] == "Public Cup"
    assert comps[0]["type"] == "cup"


def test_create_competition(client, admin_headers):
    resp = client.post(
        "/api/competitions",
        headers=admin_headers,
        json={"name": "Winter Cup", "type": "cup", "team_count": 16},
    )
    assert resp.status_code == 201
    comp = resp.get_json()["competition"]
    assert comp["team_count"] == 16
    assert comp["status"] == "active"


def test_create_cup_needs_power_of_two(client, admin_headers):
    resp = client.post(
        "/api/competitions",
        headers=admin_headers,
        json={"name": "Odd Cup", "type": "cup", "team_count": 6},
    )
    assert resp.status_code == 400
    assert "power of two" in resp.get_json()["error"]


def test_create_competition_requires_admin(client, captain_headers):
    resp = client.post(
        "/api/competitions",
        headers=captain_headers,
        json={"name": "Nope", "type": "league", "team_count": 4},
    )
    assert resp.status_code == 403


def test_create_competition_validation(client, admin_headers):
    resp = client.post(
        "/api/competitions",
        headers=admin_headers,
        json={"name": "Bad", "type": "friendly", "team_count": 4},
    )
    assert resp.status_code == 400
    assert "type" in resp.get_json()["messages"]


def test_add_team_to_competition(client, admin_headers, captain_user):
    team = make_team("Solo FC", captain_user)
    comp = make_competition(team_count=2)
    resp = client.post(
        f"/api/competitions/{comp.id}/teams",
        headers=admin_headers,
        json={"team_id": team.id},
    )
    assert resp.status_code == 200

    resp = client.post(
        f"/api/competitions/{comp.id}/teams",
        headers=admin_headers,
        json={"team_id": team.id},
    )
    assert resp.status_code == 409

    resp = client.get(f"/api/competitions/{comp.id}/teams")
    assert [t["name"] for t in resp.get_json()["teams"]] == ["Solo FC"]


def test_delete_competition(client, admin_headers):
    comp = make_competition("Short lived")
    resp = client.delete(f"/api/competitions/{comp.id}", headers=admin_headers)
    assert resp.status_code == 200
    assert client.get(f"/api/competitions/{comp.id}").status_code == 404


# ── Bracket flow ─────────────────────────────────────────────────────────────

@pytest.fixture
def drawn_cup(client, admin_headers, cup_teams):
    comp = make_competition("API Cup", teams=cup_teams)
    slots = {f"slot_{i}": t.id for i, t in enumerate(cup_teams, 1)}
    resp = client.post(
        f"/api/competitions/{comp.id}/bracket",
        headers=admin_headers,
        json={"slots": slots},
    )
    assert resp.status_code == 201
    return comp.id


def test_setup_bracket(client, drawn_cup):
    resp = client.get(f"/api/matches?competition_id={drawn_cup}&round=1")
    matches = resp.get_json()["matches"]
    assert len(matches) == 8
    assert all(m["scheduled_for"] is None for m in matches)
    assert all(m["stage"] == "knockout" for m in matches)
    assert all(m["can_submit_result"] for m in matches)


def test_get_bracket(client, drawn_cup):
    resp = client.get(f"/api/competitions/{drawn_cup}/bracket")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["total_rounds"] == 3
    assert len(data["rounds"][0]["slots"]) == 4


def test_bracket_draw_requires_admin(client, captain_headers, cup_teams):
    comp = make_competition(teams=cup_teams)
    resp = client.post(
        f"/api/competitions/{comp.id}/bracket",
        headers=captain_headers,
        json={"slots": {"slot_1": cup_teams[0].id}},
    )
    assert resp.status_code == 403


def test_advance_knockout_without_results(client, admin_headers, drawn_cup):
    resp = client.post(f"/api/competitions/{drawn_cup}/advance-knockout", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["created"] == []


def test_resolve_tie_not_tied(client, admin_headers, drawn_cup, cup_teams):
    resp = client.post(
        f"/api/competitions/{drawn_cup}/resolve-tie",
        headers=admin_headers,
        json={"round": 1, "slot": 1, "winner_team_id": cup_teams[0].id},
    )
    assert resp.status_code == 400


def test_submit_and_approve_via_api(client, admin_headers, drawn_cup, cup_teams):
    leg = Match.query.filter_by(
        competition_id=drawn_cup, round_number=1, slot_number=1, leg=1
    ).first()
    home_captain = login(client, "captain1@eleague.test")
    away_captain = login(client, "captain2@eleague.test")

    resp = client.post(
        f"/api/matches/{leg.id}/results",
        headers=home_captain,
        json={"home_score": 2, "away_score": 0, "proofs": PROOFS},
    )
    assert resp.status_code == 201
    assert resp.get_json()["match"]["status"] == "pending_review"

    resp = client.post(
        f"/api/matches/{leg.id}/results",
        headers=away_captain,
        json={"home_score": 2, "away_score": 0, "proofs": PROOFS},
    )
    assert resp.status_code == 201

    resp = client.get("/api/admin/review-queue", headers=admin_headers)
    queue = resp.get_json()["matches"]
    assert len(queue) == 1
    assert queue[0]["consistent"] is True
    assert len(queue[0]["proofs"]) == 2

    resp = client.post(f"/api/admin/matches/{leg.id}/approve", headers=admin_headers, json={})
    assert resp.status_code == 200
    match = resp.get_json()["match"]
    assert match["approved"] is True
    assert match["can_submit_result"] is False

    resp = client.get(f"/api/matches/{leg.id}")
    detail = resp.get_json()
    assert [r["status"] for r in detail["results"]] == ["approved", "approved"]


def test_outside_captain_cannot_submit(client, drawn_cup):
    leg = Match.query.filter_by(competition_id=drawn_cup, round_number=1, slot_number=1).first()
    outsider = login(client, "captain5@eleague.test")
    resp = client.post(
        f"/api/matches/{leg.id}/results",
        headers=outsider,
        json={"home_score": 1, "away_score": 0, "proofs": PROOFS},
    )
    assert resp.status_code == 403


def test_submit_requires_proofs(client, drawn_cup):
    leg = Match.query.filter_by(competition_id=drawn_cup, round_number=1, slot_number=1).first()
    home_captain = login(client, "captain1@eleague.test")
    resp = client.post(
        f"/api/matches/{leg.id}/results",
        headers=home_captain,
        json={"home_score": 1, "away_score": 0},
    )
    assert resp.status_code == 400
    assert "proofs" in resp.get_json()["messages"]


def test_submit_rejects_bad_stream_url(client, drawn_cup):
    leg = Match.query.filter_by(competition_id=drawn_cup, round_number=1, slot_number=1).first()
    home_captain = login(client, "captain1@eleague.test")
    resp = client.post(
        f"/api/matches/{leg.id}/results",
        headers=home_captain,
        json={"home_score": 1, "away_score": 0, "proofs": {**PROOFS, "stream_url": "not a url"}},
    )
    assert resp.status_code == 400


def test_reject_via_api(client, admin_headers, drawn_cup):
    leg = Match.query.filter_by(competition_id=drawn_cup, round_number=1, slot_number=1).first()
    client.post(
        f"/api/matches/{leg.id}/results",
        headers=login(client, "captain1@eleague.test"),
        json={"home_score": 1, "away_score": 0, "proofs": PROOFS},
    )
    resp = client.post(
        f"/api/admin/matches/{leg.id}/reject",
        headers=admin_headers,
        json={"notes": "Stream link is private"},
    )
    assert resp.status_code == 200
    assert resp.get_json()["match"]["status"] == "scheduled"


# ── Matches ──────────────────────────────────────────────────────────────────

def test_create_and_reschedule_match(client, admin_headers, cup_teams):
    comp = make_competition("Friendlies League", CompetitionType.LEAGUE, 4)
    resp = client.post(
        "/api/matches",
        headers=admin_headers,
        json={
            "competition_id": comp.id,
            "home_team_id": cup_teams[0].id,
            "away_team_id": cup_teams[1].id,
        },
    )
    assert resp.status_code == 201
    match = resp.get_json()["match"]
    assert match["scheduled_for"] is None

    resp = client.put(
        f"/api/matches/{match['id']}",
        headers=admin_headers,
        json={"scheduled_for": "2026-11-20T19:00:00"},
    )
    assert resp.status_code == 200
    assert resp.get_json()["match"]["scheduled_for"].startswith("2026-11-20T19:00")


def test_knockout_teams_locked(client, admin_headers, drawn_cup, cup_teams):
    leg = Match.query.filter_by(competition_id=drawn_cup, round_number=1).first()
    resp = client.put(
        f"/api/matches/{leg.id}",
        headers=admin_headers,
        json={"home_team_id": cup_teams[7].id},
    )
    assert resp.status_code == 400


def test_filter_matches_by_team(client, drawn_cup, cup_teams):
    resp = client.get(f"/api/matches?team_id={cup_teams[0].id}")
    matches = resp.get_json()["matches"]
    assert len(matches) == 2
    assert all(cup_teams[0].id in (m["home_team_id"], m["away_team_id"]) for m in matches)


# ── Standings and stats ──────────────────────────────────────────────────────

def test_league_standings(client, admin_headers, cup_teams):
    comp = make_competition("API League", CompetitionType.LEAGUE, 4, teams=cup_teams[:4])

    resp = client.post(f"/api/competitions/{comp.id}/generate-fixtures", headers=admin_headers, json={})
    assert resp.status_code == 201
    assert len(resp.get_json()["matches"]) == 12

    resp = client.get(f"/api/competitions/{comp.id}/standings")
    groups = resp.get_json()["groups"]
    assert len(groups) == 1
    assert groups[0]["group_name"] is None
    assert len(groups[0]["standings"]) == 4


def test_top_scorers_empty(client):
    resp = client.get("/api/stats/top-scorers")
    assert resp.status_code == 200
    assert resp.get_json()["players"] == []


# ── Teams ────────────────────────────────────────────────────────────────────

def test_get_team_with_members(client, captain_user, player_user):
    team = make_team("Roster FC", captain_user, members=[player_user])
    resp = client.get(f"/api/teams/{team.id}")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["team"]["name"] == "Roster FC"
    assert len(data["members"]) == 2


def test_captain_adds_member(client, captain_user, captain_headers, player_user):
    team = make_team("Growing FC", captain_user)
    resp = client.post(
        f"/api/teams/{team.id}/members",
        headers=captain_headers,
        json={"user_id": player_user.id},
    )
    assert resp.status_code == 201


def test_other_captain_cannot_add_member(client, captain_user, player_user):
    team = make_team("Closed FC", captain_user)
    rival = make_user("rivalcap", UserRole.CAPTAIN)
    make_team("Rival FC", rival)
    resp = client.post(
        f"/api/teams/{team.id}/members",
        headers=login(client, rival.email),
        json={"user_id": player_user.id},
    )
    assert resp.status_code == 403


# ── Uploads ──────────────────────────────────────────────────────────────────

def test_upload_and_fetch(client, app, player_headers, tmp_path, monkeypatch):
    monkeypatch.setitem(app.config, "UPLOAD_FOLDER", str(tmp_path))
    resp = client.post(
        "/api/uploads/match-proofs",
        headers=player_headers,
        data={"file": (io.BytesIO(b"\x89PNG fake"), "score screen.png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    data = resp.get_json()
    assert data["name"].endswith(".png")
    assert data["name"] != "score screen.png"

    resp = client.get(data["url"])
    assert resp.status_code == 200
    assert resp.data == b"\x89PNG fake"


def test_upload_rejects_extension(client, app, player_headers, tmp_path, monkeypatch):
    monkeypatch.setitem(app.config, "UPLOAD_FOLDER", str(tmp_path))
    resp = client.post(
        "/api/uploads/match-proofs",
        headers=player_headers,
        data={"file": (io.BytesIO(b"#!/bin/sh"), "run.sh")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400


def test_upload_unknown_bucket(client, player_headers):
    resp = client.post(
        "/api/uploads/secrets",
        headers=player_headers,
        data={"file": (io.BytesIO(b"x"), "a.png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 404


def test_upload_requires_login(client):
    resp = client.post("/api/uploads/match-proofs")
    assert resp.status_code == 401
