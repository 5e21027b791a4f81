from flask import Blueprint, request, jsonify
from flask_jwt_extended import get_jwt_identity

from eleague.schemas import (
    SupportTicketSchema,
    TicketMessageSchema,
    ChatMessageSchema,
    PostMessageSchema,
)
from eleague.auth.decorators import admin_required, login_required
from eleague.api.routes import error_status
from eleague.services import support_service, chat_service

messaging_bp = Blueprint("messaging", __name__)

ticket_schema = SupportTicketSchema()
tickets_schema = SupportTicketSchema(many=True)
ticket_message_schema = TicketMessageSchema()
ticket_messages_schema = TicketMessageSchema(many=True)
chat_message_schema = ChatMessageSchema()
chat_messages_schema = ChatMessageSchema(many=True)
post_message_schema = PostMessageSchema()


def _user_id():
    return int(get_jwt_identity())


# ─── Support tickets ──────────────────────────────────────────────────────────

@messaging_bp.route("/support/ticket", methods=["POST"])
@login_required
def open_ticket_route():
    ticket, _error = support_service.open_ticket(_user_id())
    return jsonify({"ticket": ticket_schema.dump(ticket)}), 200


@messaging_bp.route("/support/tickets", methods=["GET"])
@admin_required
def list_tickets_route():
    tickets = support_service.list_tickets(request.args.get("status"))
    return jsonify({"tickets": tickets_schema.dump(tickets)}), 200


@messaging_bp.route("/support/tickets/<int:ticket_id>/messages", methods=["GET"])
@login_required
def get_ticket_messages(ticket_id):
    ticket, error = support_service.get_ticket(ticket_id, _user_id())
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({
        "ticket": ticket_schema.dump(ticket),
        "messages": ticket_messages_schema.dump(ticket.messages.all()),
    }), 200


@messaging_bp.route("/support/tickets/<int:ticket_id>/messages", methods=["POST"])
@login_required
def post_ticket_message_route(ticket_id):
    data = post_message_schema.load(request.get_json())
    message, error = support_service.post_ticket_message(
        ticket_id, _user_id(), data["content"], data["attachment_url"]
    )
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"message": ticket_message_schema.dump(message)}), 201


@messaging_bp.route("/support/tickets/<int:ticket_id>/close", methods=["POST"])
@login_required
def close_ticket_route(ticket_id):
    ticket, error = support_service.close_ticket(ticket_id, _user_id())
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"ticket": ticket_schema.dump(ticket)}), 200


@messaging_bp.route("/support/tickets/<int:ticket_id>/read", methods=["POST"])
@login_required
def mark_ticket_read_route(ticket_id):
    updated, error = support_service.mark_ticket_read(ticket_id, _user_id())
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"updated": updated}), 200


@messaging_bp.route("/support/unread", methods=["GET"])
@login_required
def unread_tickets_route():
    return jsonify({"unread": support_service.unread_ticket_count(_user_id())}), 200


# ─── Match chat ───────────────────────────────────────────────────────────────

@messaging_bp.route("/matches/<int:match_id>/chat", methods=["GET"])
@login_required
def get_chat(match_id):
    messages, error = chat_service.list_chat_messages(match_id, _user_id())
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"messages": chat_messages_schema.dump(messages)}), 200


@messaging_bp.route("/matches/<int:match_id>/chat", methods=["POST"])
@login_required
def post_chat(match_id):
    data = post_message_schema.load(request.get_json())
    message, error = chat_service.post_chat_message(
        match_id, _user_id(), data["content"], data["attachment_url"]
    )
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"message": chat_message_schema.dump(message)}), 201


@messaging_bp.route("/matches/<int:match_id>/chat/read", methods=["POST"])
@login_required
def mark_chat_read_route(match_id):
    _status, error = chat_service.mark_chat_read(match_id, _user_id())
    if error:
        return jsonify({"error": error}), error_status(error)
    return jsonify({"message": "Chat marked as read"}), 200


@messaging_bp.route("/chat/unread", methods=["GET"])
@login_required
def unread_chat_route():
    counts = chat_service.unread_chat_count(_user_id())
    return jsonify({
        "total": sum(counts.values()),
        "matches": {str(k): v for k, v in counts.items()},
    }), 200


@messaging_bp.route("/chat/active", methods=["GET"])
@admin_required
def active_chats_route():
    return jsonify({"chats": chat_service.list_active_chats()}), 200
