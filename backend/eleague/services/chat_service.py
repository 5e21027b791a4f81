import logging
from datetime import datetime, timezone

from sqlalchemy import func

from eleague.extensions import db
from eleague.events import event_bus, match_topic
from eleague.models.chat import ChatMessage, ChatReadStatus
from eleague.models.match import Match
from eleague.models.team import Team
from eleague.models.user import User

logger = logging.getLogger(__name__)


def _can_chat(match, user):
    """Admins, and captains or members of either team."""
    if user.is_admin:
        return True
    if user.team_id in (match.home_team_id, match.away_team_id):
        return True
    return Team.query.filter(
        Team.id.in_((match.home_team_id, match.away_team_id)),
        Team.captain_id == user.id,
    ).count() > 0


def _load(match_id, user_id):
    match = db.session.get(Match, match_id)
    if not match:
        return None, None, "Match not found"

    user = db.session.get(User, user_id)
    if not user or not _can_chat(match, user):
        return None, None, "You are not part of this match"
    return match, user, None


def post_chat_message(match_id, sender_id, content=None, attachment_url=None):
    match, _user, error = _load(match_id, sender_id)
    if error:
        return None, error

    if not content and not attachment_url:
        return None, "Message needs content or an attachment"

    message = ChatMessage(
        match_id=match.id,
        sender_id=sender_id,
        content=content,
        attachment_url=attachment_url,
    )
    db.session.add(message)
    db.session.commit()

    event_bus.publish("chat_message", {
        "match_id": match.id,
        "message_id": message.id,
        "sender_id": sender_id,
    }, topic=match_topic(match.id))
    return message, None


def list_chat_messages(match_id, user_id):
    match, _user, error = _load(match_id, user_id)
    if error:
        return None, error
    return match.chat_messages.order_by(ChatMessage.created_at, ChatMessage.id).all(), None


def mark_chat_read(match_id, user_id):
    match, _user, error = _load(match_id, user_id)
    if error:
        return None, error

    status = ChatReadStatus.query.filter_by(match_id=match.id, user_id=user_id).first()
    if not status:
        status = ChatReadStatus(match_id=match.id, user_id=user_id)
        db.session.add(status)
    status.last_read_at = datetime.now(timezone.utc)
    db.session.commit()
    return status, None


def _chat_match_ids(user):
    team_ids = {t.id for t in Team.query.filter_by(captain_id=user.id)}
    if user.team_id:
        team_ids.add(user.team_id)
    if not team_ids:
        return []
    return [
        m.id for m in Match.query.filter(
            Match.home_team_id.in_(team_ids) | Match.away_team_id.in_(team_ids)
        )
    ]


def unread_chat_count(user_id):
    """Messages from others, newer than the user's last read marker, per match."""
    user = db.session.get(User, user_id)
    if not user:
        return {}

    match_ids = _chat_match_ids(user)
    if not match_ids:
        return {}

    rows = (
        db.session.query(ChatMessage.match_id, func.count(ChatMessage.id))
        .outerjoin(
            ChatReadStatus,
            (ChatReadStatus.match_id == ChatMessage.match_id)
            & (ChatReadStatus.user_id == user_id),
        )
        .filter(
            ChatMessage.match_id.in_(match_ids),
            ChatMessage.sender_id != user_id,
            ChatReadStatus.id.is_(None)
            | (ChatMessage.created_at > ChatReadStatus.last_read_at),
        )
        .group_by(ChatMessage.match_id)
        .all()
    )
    return {match_id: count for match_id, count in rows}


def list_active_chats():
    """Matches with at least one chat message, most recent activity first."""
    rows = (
        db.session.query(
            ChatMessage.match_id,
            func.count(ChatMessage.id),
            func.max(ChatMessage.created_at),
        )
        .group_by(ChatMessage.match_id)
        .order_by(func.max(ChatMessage.created_at).desc())
        .all()
    )
    return [
        {"match_id": match_id, "message_count": count, "last_message_at": last}
        for match_id, count, last in rows
    ]
