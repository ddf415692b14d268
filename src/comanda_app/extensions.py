"""
Application-wide services shared by the API blueprints.

One ``Services`` bundle is created per app and kept in
``app.extensions["chefcomanda"]``. Restaurant stores are built lazily, one
per signed-in owner, refreshed once and then kept current by push events.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from flask import current_app

from comanda_shared.actor import Actor
from comanda_shared.config import AppConfig
from comanda_shared.jwt_middleware import get_current_actor
from comanda_shared.services.notification_service import NotificationInbox, NotificationService
from comanda_shared.services.restaurant_store import RestaurantStore
from comanda_shared.supabase.gateway import SupabaseGateway
from comanda_shared.supabase.realtime import ChangeSubscriptionRegistry
from comanda_shared.supabase.storage import SupabaseStorage

logger = logging.getLogger(__name__)

EXTENSION_KEY = "chefcomanda"


class StoreCache:
    """Restaurant stores keyed by the owner's user id."""

    def __init__(self, factory: Callable[[Actor], RestaurantStore]):
        self._factory = factory
        self._stores: dict[str, RestaurantStore] = {}
        self._loading: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(self, actor: Actor) -> RestaurantStore:
        """
        The owner's store, loaded on first use.

        A load holds only that user's lock; the cache lock guards the maps.
        """
        user_id = actor.user_id
        with self._lock:
            store = self._stores.get(user_id)
            if store is not None:
                return store
            loading = self._loading.setdefault(user_id, threading.Lock())

        with loading:
            with self._lock:
                store = self._stores.get(user_id)
            if store is not None:
                return store
            store = self._factory(actor)
            store.refresh()
            store.start()
            with self._lock:
                self._stores[user_id] = store
                self._loading.pop(user_id, None)

        logger.info(
            "Restaurant store loaded",
            extra={"user_id": user_id, "restaurant_id": store.restaurant_id},
        )
        return store

    def evict(self, user_id: str) -> None:
        with self._lock:
            store = self._stores.pop(user_id, None)
        if store is not None:
            store.stop()

    def stop_all(self) -> None:
        with self._lock:
            stores, self._stores = list(self._stores.values()), {}
        for store in stores:
            store.stop()

    def __len__(self) -> int:
        return len(self._stores)


@dataclass
class Services:
    config: AppConfig
    gateway: SupabaseGateway
    registry: ChangeSubscriptionRegistry
    notifications: NotificationService
    storage: SupabaseStorage | None
    stores: StoreCache = field(init=False)
    inboxes: dict[str, NotificationInbox] = field(init=False, default_factory=dict)

    def __post_init__(self):
        self.stores = StoreCache(self._build_store)
        self._inbox_lock = threading.Lock()

    def _build_store(self, actor: Actor) -> RestaurantStore:
        return RestaurantStore(
            self.gateway,
            registry=self.registry,
            actor=actor,
            service_fee_rate=self.config.service_fee_rate,
            cover_charge_per_seat=self.config.cover_charge_per_seat,
        )

    def inbox_for(self, user_id: str) -> NotificationInbox:
        """A live inbox per user, loaded once and then fed by broadcasts."""
        with self._inbox_lock:
            inbox = self.inboxes.get(user_id)
            if inbox is None:
                inbox = self.notifications.open_inbox(user_id)
                self.inboxes[user_id] = inbox
            return inbox

    def shutdown(self) -> None:
        self.stores.stop_all()
        self.inboxes.clear()
        self.notifications.stop()
        self.registry.stop()


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]


def get_gateway() -> SupabaseGateway:
    return get_services().gateway


def current_store() -> RestaurantStore:
    """The signed-in actor's store; routes using it must be login_required."""
    actor = get_current_actor()
    if actor is None:
        raise RuntimeError("current_store() called without a signed-in actor")
    return get_services().stores.get(actor)


def current_restaurant_id() -> str:
    return current_store().restaurant_id
