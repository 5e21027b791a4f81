import logging

from eleague.extensions import db
from eleague.events import event_bus
from eleague.models.request import CaptainRequest, TeamRequest, RequestStatus
from eleague.models.team import Team, TeamMember
from eleague.models.user import User, UserRole

logger = logging.getLogger(__name__)


# ── Captain requests ─────────────────────────────────────────────────────────

def request_captaincy(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return None, "User not found"

    if user.role != UserRole.PLAYER:
        return None, "Only players can request captaincy"

    pending = CaptainRequest.query.filter_by(
        user_id=user_id, status=RequestStatus.PENDING
    ).first()
    if pending:
        return None, "You already have a pending captain request"

    req = CaptainRequest(user_id=user_id)
    db.session.add(req)
    db.session.commit()

    event_bus.publish("request_created", {"kind": "captain", "request_id": req.id, "user_id": user_id})
    return req, None


def resolve_captain_request(request_id, approve):
    req = db.session.get(CaptainRequest, request_id)
    if not req:
        return None, "Request not found"

    if req.status != RequestStatus.PENDING:
        return None, "Request already resolved"

    if approve:
        req.status = RequestStatus.APPROVED
        if req.user.role == UserRole.PLAYER:
            req.user.role = UserRole.CAPTAIN
    else:
        req.status = RequestStatus.REJECTED

    db.session.commit()
    logger.info("Captain request %s %s", req.id, req.status.value)
    event_bus.publish("request_resolved", {
        "kind": "captain",
        "request_id": req.id,
        "user_id": req.user_id,
        "status": req.status.value,
    })
    return req, None


# ── Team requests ────────────────────────────────────────────────────────────

def request_team(captain_id, data):
    """A captain without a team asks for one to be created."""
    captain = db.session.get(User, captain_id)
    if not captain:
        return None, "User not found"

    if captain.role != UserRole.CAPTAIN:
        return None, "Only captains can request a team"

    if captain.team_id:
        return None, "You are already in a team"

    pending = TeamRequest.query.filter_by(
        captain_id=captain_id, status=RequestStatus.PENDING
    ).first()
    if pending:
        return None, "You already have a pending team request"

    if Team.query.filter_by(name=data["name"]).first():
        return None, "Team name already taken"

    req = TeamRequest(
        captain_id=captain_id,
        name=data["name"],
        description=data.get("description"),
        logo_url=data.get("logo_url"),
    )
    db.session.add(req)
    db.session.commit()

    event_bus.publish("request_created", {"kind": "team", "request_id": req.id, "user_id": captain_id})
    return req, None


def resolve_team_request(request_id, approve):
    """Approving creates the team with the requester as captain and first member."""
    req = db.session.get(TeamRequest, request_id)
    if not req:
        return None, "Request not found"

    if req.status != RequestStatus.PENDING:
        return None, "Request already resolved"

    team = None
    if approve:
        if Team.query.filter_by(name=req.name).first():
            return None, "Team name already taken"
        if req.captain.team_id:
            return None, "Captain already belongs to a team"

        team = Team(
            name=req.name,
            description=req.description,
            logo_url=req.logo_url,
            captain_id=req.captain_id,
        )
        db.session.add(team)
        db.session.flush()
        db.session.add(TeamMember(team_id=team.id, user_id=req.captain_id))
        req.status = RequestStatus.APPROVED
    else:
        req.status = RequestStatus.REJECTED

    db.session.commit()
    logger.info("Team request %s %s", req.id, req.status.value)
    event_bus.publish("request_resolved", {
        "kind": "team",
        "request_id": req.id,
        "user_id": req.captain_id,
        "status": req.status.value,
        "team_id": team.id if team else None,
    })
    return req, None


# ── Membership ───────────────────────────────────────────────────────────────

def _can_manage(team, actor):
    return actor.is_admin or team.captain_id == actor.id


def add_member(team_id, user_id, actor_id):
    team = db.session.get(Team, team_id)
    if not team:
        return None, "Team not found"

    actor = db.session.get(User, actor_id)
    if not actor or not _can_manage(team, actor):
        return None, "Only the team captain can add members"

    user = db.session.get(User, user_id)
    if not user:
        return None, "User not found"

    if user.is_banned:
        return None, "User is banned"

    if user.team_id:
        return None, "User already belongs to a team"

    member = TeamMember(team_id=team.id, user_id=user.id)
    db.session.add(member)
    db.session.commit()
    return member, None


def remove_member(team_id, user_id, actor_id):
    team = db.session.get(Team, team_id)
    if not team:
        return None, "Team not found"

    actor = db.session.get(User, actor_id)
    if not actor or not _can_manage(team, actor):
        return None, "Only the team captain can remove members"

    if user_id == team.captain_id:
        return None, "The captain cannot be removed from the team"

    member = TeamMember.query.filter_by(team_id=team_id, user_id=user_id).first()
    if not member:
        return None, "User is not a member of this team"

    db.session.delete(member)
    db.session.commit()
    return member, None


def leave_team(user_id):
    member = TeamMember.query.filter_by(user_id=user_id).first()
    if not member:
        return None, "You are not in a team"

    if member.team.captain_id == user_id:
        return None, "A captain cannot leave their own team"

    db.session.delete(member)
    db.session.commit()
    return member, None


def update_team(team_id, data, actor_id):
    team = db.session.get(Team, team_id)
    if not team:
        return None, "Team not found"

    actor = db.session.get(User, actor_id)
    if not actor or not _can_manage(team, actor):
        return None, "Only the team captain or an admin can edit the team"

    if "name" in data and data["name"] != team.name:
        if Team.query.filter_by(name=data["name"]).first():
            return None, "Team name already taken"
        team.name = data["name"]
    if "description" in data:
        team.description = data["description"]
    if "logo_url" in data and data["logo_url"] is not None:
        team.logo_url = data["logo_url"]

    db.session.commit()
    return team, None
