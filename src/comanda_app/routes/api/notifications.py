"""
Notifications API - Caixa de notificações do usuário logado.

The inbox behind these routes is loaded once per user and then kept current
by ``new_notification`` broadcasts, so polling it does not hit the database.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from comanda_shared.jwt_middleware import admin_required, get_current_actor, login_required
from comanda_shared.logging_config import get_logger
from comanda_shared.schemas import SendNotificationRequest
from comanda_shared.serializers import success_response

from comanda_app.extensions import get_services

notifications_bp = Blueprint("notifications", __name__)
logger = get_logger(__name__)


def _inbox():
    return get_services().inbox_for(get_current_actor().user_id)


@notifications_bp.get("/notifications")
@login_required
def list_notifications():
    """Query params: refresh=true reloads the inbox from the database."""
    inbox = _inbox()
    if request.args.get("refresh", "").lower() == "true":
        inbox.load()
    return jsonify(
        success_response(
            {"notifications": inbox.notifications, "unread_count": inbox.unread_count}
        )
    )


@notifications_bp.get("/notifications/unread-count")
@login_required
def unread_count():
    return jsonify(success_response({"unread_count": _inbox().unread_count}))


@notifications_bp.post("/notifications/<notification_id>/read")
@login_required
def mark_as_read(notification_id: str):
    inbox = _inbox()
    inbox.mark_as_read(notification_id)
    return jsonify(success_response({"id": notification_id, "unread_count": inbox.unread_count}))


@notifications_bp.post("/notifications/read-all")
@login_required
def mark_all_as_read():
    inbox = _inbox()
    inbox.mark_all_as_read()
    return jsonify(success_response({"unread_count": inbox.unread_count}))


@notifications_bp.post("/notifications")
@admin_required
def send_notification():
    """
    Envia uma notificação. Sem ``user_id`` ela vai para o próprio remetente.

    Body: {user_id, title, message, type (order|stock|payment|system), data}
    """
    data = SendNotificationRequest(**(request.get_json(silent=True) or {}))
    notification = get_services().notifications.send_notification(
        data.user_id or get_current_actor().user_id,
        data.title,
        data.message,
        data.type,
        data.data,
    )
    return jsonify(success_response(notification)), HTTPStatus.CREATED
