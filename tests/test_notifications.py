from __future__ import annotations

import pytest

from comanda_shared.constants import NotificationType
from comanda_shared.services.notification_service import NotificationService
from comanda_shared.validation import ValidationError


@pytest.fixture
def notifications(gateway, registry):
    service = NotificationService(gateway, registry)
    service.start()
    yield service
    service.stop()


def test_send_notification_persists_row(notifications, fake_client):
    sent = notifications.send_notification("u1", "Olá", "Bem-vindo", "system", {"k": 1})

    row = fake_client.find("notifications", sent.id)
    assert row["user_id"] == "u1"
    assert row["read"] is False
    assert row["type"] == "system"
    assert sent.data == {"k": 1}


def test_send_notification_requires_user_and_title(notifications):
    with pytest.raises(ValidationError):
        notifications.send_notification("", "Olá", "x")
    with pytest.raises(ValidationError):
        notifications.send_notification("u1", " ", "x")


def test_send_notification_broadcasts_new_notification(notifications, registry):
    payloads = []
    registry.on_broadcast("notifications", "new_notification", payloads.append)

    sent = notifications.send_notification("u1", "Olá", "x")

    assert [payload["id"] for payload in payloads] == [sent.id]


def test_connected_inbox_receives_only_its_users_notifications(notifications):
    inbox = notifications.open_inbox("u1")
    assert inbox.notifications == []

    mine = notifications.send_notification("u1", "Para mim", "x")
    notifications.send_notification("u2", "Para outro", "x")

    assert [item.id for item in inbox.notifications] == [mine.id]
    assert inbox.unread_count == 1


def test_inbox_loads_existing_notifications_newest_first(notifications, fake_client):
    fake_client.seed("notifications", user_id="u1", title="antiga", message="", read=True)
    fake_client.seed("notifications", user_id="u1", title="nova", message="", read=False)

    inbox = notifications.open_inbox("u1")

    assert [item.title for item in inbox.notifications] == ["nova", "antiga"]
    assert inbox.unread_count == 1


def test_inbox_ignores_duplicate_broadcasts(notifications, registry):
    inbox = notifications.open_inbox("u1")
    sent = notifications.send_notification("u1", "Olá", "x")

    registry.broadcast("notifications", "new_notification", sent.to_record())

    assert len(inbox.notifications) == 1


def test_mark_as_read_and_mark_all(notifications, fake_client):
    inbox = notifications.open_inbox("u1")
    first = notifications.send_notification("u1", "Um", "x")
    notifications.send_notification("u1", "Dois", "x")

    inbox.mark_as_read(first.id)
    assert inbox.unread_count == 1
    assert fake_client.find("notifications", first.id)["read"] is True

    inbox.mark_all_as_read()
    assert inbox.unread_count == 0
    assert all(row["read"] for row in fake_client.rows["notifications"])


def test_stopped_inbox_stops_receiving(notifications):
    inbox = notifications.open_inbox("u1")
    inbox.stop()

    notifications.send_notification("u1", "Olá", "x")

    assert inbox.notifications == []


def test_service_stop_closes_inboxes(gateway, registry, transport):
    service = NotificationService(gateway, registry)
    service.start()
    service.open_inbox("u1")
    assert transport.open_count == 1

    service.stop()

    assert transport.open_count == 0
    assert not service.running


def test_inbox_is_static_when_service_not_started(gateway, registry):
    service = NotificationService(gateway, registry)
    inbox = service.open_inbox("u1")

    service.send_notification("u1", "Olá", "x")

    assert inbox.notifications == []
    inbox.load()
    assert len(inbox.notifications) == 1


def test_stock_alert_goes_to_restaurant_owner(notifications, fake_client, restaurant, owner):
    sent = notifications.send_stock_alert(restaurant["id"], "Arroz", 1, 5)

    assert len(sent) == 1
    assert sent[0].user_id == owner.user_id
    assert sent[0].type is NotificationType.STOCK
    assert sent[0].message == "Arroz está com estoque baixo (1/5)"
    assert sent[0].data == {"productName": "Arroz", "currentStock": 1, "minStock": 5}


def test_new_order_notification(notifications, restaurant):
    sent = notifications.send_new_order_notification(restaurant["id"], 4, [{"nome": "Pizza"}])

    assert sent[0].title == "Novo Pedido"
    assert sent[0].message == "Mesa 4 fez um novo pedido"
    assert sent[0].type is NotificationType.ORDER


def test_payment_notification_formats_amount(notifications):
    sent = notifications.send_payment_notification("u1", 64, "pix")

    assert sent.title == "Pagamento Recebido"
    assert sent.message == "Pagamento de R$ 64.00 via pix"
    assert sent.data == {"amount": 64.0, "method": "pix"}
