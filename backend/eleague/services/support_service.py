import logging
from datetime import datetime, timezone

from eleague.extensions import db
from eleague.events import event_bus, ticket_topic
from eleague.models.support import SupportTicket, TicketMessage, TicketStatus
from eleague.models.user import User

logger = logging.getLogger(__name__)


def open_ticket(user_id):
    """The user's open ticket, created on first use."""
    ticket = SupportTicket.query.filter_by(
        user_id=user_id, status=TicketStatus.OPEN
    ).first()
    if ticket:
        return ticket, None

    ticket = SupportTicket(user_id=user_id)
    db.session.add(ticket)
    db.session.commit()
    logger.info("Opened support ticket %s for user %s", ticket.id, user_id)
    return ticket, None


def _can_access(ticket, user):
    return user.is_admin or ticket.user_id == user.id


def get_ticket(ticket_id, user_id):
    ticket = db.session.get(SupportTicket, ticket_id)
    if not ticket:
        return None, "Ticket not found"

    user = db.session.get(User, user_id)
    if not user or not _can_access(ticket, user):
        return None, "You cannot view this ticket"
    return ticket, None


def post_ticket_message(ticket_id, sender_id, content=None, attachment_url=None):
    ticket, error = get_ticket(ticket_id, sender_id)
    if error:
        return None, error

    if ticket.status == TicketStatus.CLOSED:
        return None, "Ticket is closed"

    if not content and not attachment_url:
        return None, "Message needs content or an attachment"

    message = TicketMessage(
        ticket_id=ticket.id,
        sender_id=sender_id,
        content=content,
        attachment_url=attachment_url,
    )
    db.session.add(message)
    db.session.commit()

    event_bus.publish("ticket_message", {
        "ticket_id": ticket.id,
        "message_id": message.id,
        "sender_id": sender_id,
    }, topic=ticket_topic(ticket.id))
    return message, None


def close_ticket(ticket_id, user_id):
    ticket, error = get_ticket(ticket_id, user_id)
    if error:
        return None, error

    if ticket.status == TicketStatus.CLOSED:
        return None, "Ticket already closed"

    ticket.status = TicketStatus.CLOSED
    ticket.closed_at = datetime.now(timezone.utc)
    db.session.commit()
    logger.info("Closed support ticket %s", ticket.id)
    return ticket, None


def list_tickets(status=None):
    query = SupportTicket.query
    if status:
        query = query.filter_by(status=TicketStatus(status))
    return query.order_by(SupportTicket.created_at.desc()).all()


def _unread_query(user):
    """Messages sent by the other side of the conversation, still unread."""
    query = TicketMessage.query.join(SupportTicket).filter(
        TicketMessage.is_read.is_(False),
        TicketMessage.sender_id != user.id,
    )
    if not user.is_admin:
        query = query.filter(SupportTicket.user_id == user.id)
    return query


def unread_ticket_count(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return 0
    return _unread_query(user).count()


def mark_ticket_read(ticket_id, user_id):
    ticket, error = get_ticket(ticket_id, user_id)
    if error:
        return None, error

    updated = ticket.messages.filter(
        TicketMessage.sender_id != user_id,
        TicketMessage.is_read.is_(False),
    ).all()
    for message in updated:
        message.is_read = True
    db.session.commit()
    return len(updated), None
