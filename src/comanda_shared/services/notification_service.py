"""
Notification delivery.

A notification is persisted as a row and then fanned out as a transient
``new_notification`` broadcast carrying the same payload. Connected inboxes
whose user matches apply it to their local list; anyone offline picks the
row up on the next ``get_user_notifications`` poll. Delivery is at most once
per connected subscriber.
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal
from typing import Any

from comanda_shared.constants import (
    DEFAULT_NOTIFICATION_LIMIT,
    NEW_NOTIFICATION_EVENT,
    NOTIFICATIONS_CHANNEL,
    NotificationType,
    Tables,
)
from comanda_shared.rows import Notification
from comanda_shared.supabase.gateway import SupabaseGateway
from comanda_shared.supabase.realtime import ChangeSubscriptionRegistry, Subscription
from comanda_shared.validation import validate_required

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class NotificationService:
    def __init__(self, gateway: SupabaseGateway, registry: ChangeSubscriptionRegistry | None):
        self._gateway = gateway
        self._registry = registry
        self._inboxes: list[NotificationInbox] = []
        self._lock = threading.Lock()
        self._running = False

    def start(self) -> None:
        self._running = True

    def stop(self) -> None:
        with self._lock:
            inboxes, self._inboxes = self._inboxes, []
            self._running = False
        for inbox in inboxes:
            inbox.stop()

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def send_notification(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType | str = NotificationType.SYSTEM,
        data: Any | None = None,
    ) -> Notification:
        validate_required(user_id, "Usuário")
        validate_required(title, "Título")
        row = self._gateway.create(
            Tables.NOTIFICATIONS,
            {
                "user_id": user_id,
                "title": title,
                "message": message,
                "type": NotificationType(type),
                "data": data,
                "read": False,
            },
        )
        notification = Notification.model_validate(row)
        if self._registry is not None and self._registry.running:
            self._registry.broadcast(NOTIFICATIONS_CHANNEL, NEW_NOTIFICATION_EVENT, row)
        logger.info(
            "Notification sent",
            extra={"user_id": user_id, "notification_type": notification.type.value},
        )
        return notification

    def send_restaurant_notification(
        self,
        restaurant_id: str,
        title: str,
        message: str,
        type: NotificationType | str = NotificationType.SYSTEM,
        data: Any | None = None,
    ) -> list[Notification]:
        """Notify every user attached to the restaurant."""
        owners = self._gateway.read(Tables.RESTAURANTS, {"id": restaurant_id}, columns="user_id")
        return [
            self.send_notification(owner["user_id"], title, message, type, data)
            for owner in owners
            if owner.get("user_id")
        ]

    def send_stock_alert(
        self, restaurant_id: str, product_name: str, current_stock: int, min_stock: int
    ) -> list[Notification]:
        return self.send_restaurant_notification(
            restaurant_id,
            "Estoque Baixo",
            f"{product_name} está com estoque baixo ({current_stock}/{min_stock})",
            NotificationType.STOCK,
            {
                "productName": product_name,
                "currentStock": current_stock,
                "minStock": min_stock,
            },
        )

    def send_new_order_notification(
        self, restaurant_id: str, table_number: int, order_items: list[Record]
    ) -> list[Notification]:
        return self.send_restaurant_notification(
            restaurant_id,
            "Novo Pedido",
            f"Mesa {table_number} fez um novo pedido",
            NotificationType.ORDER,
            {"tableNumber": table_number, "orderItems": order_items},
        )

    def send_payment_notification(
        self, user_id: str, amount: Decimal | float, method: str
    ) -> Notification:
        amount = Decimal(str(amount))
        return self.send_notification(
            user_id,
            "Pagamento Recebido",
            f"Pagamento de R$ {amount:.2f} via {method}",
            NotificationType.PAYMENT,
            {"amount": float(amount), "method": method},
        )

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_user_notifications(
        self, user_id: str, limit: int = DEFAULT_NOTIFICATION_LIMIT
    ) -> list[Notification]:
        rows = self._gateway.get_notifications_by_user(user_id, limit)
        return [Notification.model_validate(row) for row in rows]

    def mark_as_read(self, notification_id: str, user_id: str | None = None) -> Notification:
        """With ``user_id`` only that user's notification can be marked."""
        scope = {"user_id": user_id} if user_id else None
        row = self._gateway.update(
            Tables.NOTIFICATIONS, notification_id, {"read": True}, scope=scope
        )
        return Notification.model_validate(row)

    def open_inbox(self, user_id: str, limit: int = DEFAULT_NOTIFICATION_LIMIT) -> NotificationInbox:
        inbox = NotificationInbox(self, self._registry, user_id, limit)
        inbox.load()
        if self._running and self._registry is not None and self._registry.running:
            inbox.start()
            with self._lock:
                self._inboxes.append(inbox)
        return inbox


class NotificationInbox:
    """One user's notification list, kept current by broadcasts."""

    def __init__(
        self,
        service: NotificationService,
        registry: ChangeSubscriptionRegistry | None,
        user_id: str,
        limit: int = DEFAULT_NOTIFICATION_LIMIT,
    ):
        self._service = service
        self._registry = registry
        self.user_id = user_id
        self._limit = limit
        self._items: list[Notification] = []
        self._lock = threading.Lock()
        self._subscription: Subscription | None = None

    def load(self) -> None:
        rows = self._service.get_user_notifications(self.user_id, self._limit)
        with self._lock:
            self._items = rows

    def start(self) -> None:
        if self._registry is None or self._subscription is not None:
            return
        self._subscription = self._registry.on_broadcast(
            NOTIFICATIONS_CHANNEL, NEW_NOTIFICATION_EVENT, self._on_notification
        )

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_notification(self, payload: Record | None) -> None:
        if not payload or payload.get("user_id") != self.user_id:
            return
        notification = Notification.model_validate(payload)
        with self._lock:
            if any(item.id == notification.id for item in self._items):
                return
            self._items.insert(0, notification)
            del self._items[self._limit :]

    @property
    def notifications(self) -> list[Notification]:
        with self._lock:
            return list(self._items)

    @property
    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for item in self._items if not item.read)

    def mark_as_read(self, notification_id: str) -> None:
        self._service.mark_as_read(notification_id, self.user_id)
        with self._lock:
            self._items = [
                item.model_copy(update={"read": True}) if item.id == notification_id else item
                for item in self._items
            ]

    def mark_all_as_read(self) -> None:
        for item in self.notifications:
            if not item.read:
                self.mark_as_read(item.id)
