"""
Change subscription registry.

Push channels keyed by (table, filter) deliver INSERT/UPDATE/DELETE events to
registered handlers; a broadcast channel carries application level fan-out
such as notifications. Events travel over Redis pub/sub: the gateway
publishes a change event after every successful mutation and each open
channel listens on its own worker thread.

There is no replay. Events published while a channel is closed are lost and
the only recovery is a full refresh of whatever state the caller holds.
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol

from redis import Redis
from redis.exceptions import RedisError

from comanda_shared.constants import ChangeEvent

logger = logging.getLogger(__name__)

Record = dict[str, Any]
RowHandler = Callable[[Record], None]
MessageHandler = Callable[[Record], None]


def _serialize_value(value: Any) -> Any:
    """Ensure payloads can be JSON serialised."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, tuple)):
        return list(value)
    return str(value)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


class ChannelTransport(Protocol):
    def open(self, channel: str, handler: MessageHandler) -> Any: ...

    def close(self, handle: Any) -> None: ...

    def publish(self, channel: str, message: Record) -> None: ...


@dataclass
class _RedisHandle:
    channel: str
    pubsub: Any
    thread: Any


class RedisChannelTransport:
    """One pub/sub connection and listener thread per open channel."""

    def __init__(self, client: Redis, sleep_time: float = 0.1):
        self._client = client
        self._sleep_time = sleep_time

    @classmethod
    def from_url(cls, url: str) -> RedisChannelTransport:
        return cls(Redis.from_url(url, decode_responses=True))

    def open(self, channel: str, handler: MessageHandler) -> _RedisHandle:
        def _on_message(message: Record) -> None:
            try:
                payload = json.loads(message["data"])
            except (TypeError, ValueError) as exc:
                logger.warning("Discarding undecodable message on %s: %s", channel, exc)
                return
            handler(payload)

        pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(**{channel: _on_message})
        thread = pubsub.run_in_thread(sleep_time=self._sleep_time, daemon=True)
        logger.debug("Opened redis channel %s", channel)
        return _RedisHandle(channel=channel, pubsub=pubsub, thread=thread)

    def close(self, handle: _RedisHandle) -> None:
        handle.thread.stop()
        handle.thread.join(timeout=self._sleep_time * 10)
        logger.debug("Closed redis channel %s", handle.channel)

    def publish(self, channel: str, message: Record) -> None:
        try:
            self._client.publish(channel, json.dumps(message, default=_serialize_value))
        except RedisError as exc:
            logger.warning("Failed to publish redis event on %s: %s", channel, exc)


class InMemoryChannelTransport:
    """
    Same-process transport: publish dispatches synchronously to open channels.

    Used for single-process deployments (REALTIME_ENABLED=false) and tests.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: dict[int, tuple[str, MessageHandler]] = {}
        self._ids = itertools.count(1)
        self.opened: list[str] = []
        self.closed: list[str] = []

    def open(self, channel: str, handler: MessageHandler) -> int:
        with self._lock:
            handle = next(self._ids)
            self._handlers[handle] = (channel, handler)
            self.opened.append(channel)
        return handle

    def close(self, handle: int) -> None:
        with self._lock:
            channel, _ = self._handlers.pop(handle)
            self.closed.append(channel)

    def publish(self, channel: str, message: Record) -> None:
        encoded = json.loads(json.dumps(message, default=_serialize_value))
        with self._lock:
            targets = [handler for name, handler in self._handlers.values() if name == channel]
        for handler in targets:
            handler(encoded)

    @property
    def open_count(self) -> int:
        return len(self._handlers)


class ChangeFilter:
    """Equality filter in the platform's ``column=eq.value`` syntax."""

    def __init__(self, expression: str):
        column, sep, rest = expression.partition("=")
        operator, dot, value = rest.partition(".")
        if not sep or not dot or operator != "eq" or not column:
            raise ValueError(f"Unsupported filter expression: {expression!r}")
        self.expression = expression
        self.column = column.strip()
        self.value = value

    @classmethod
    def eq(cls, column: str, value: Any) -> ChangeFilter:
        return cls(f"{column}=eq.{value}")

    def matches(self, row: Record | None) -> bool:
        if not row or self.column not in row:
            return False
        value = row[self.column]
        if isinstance(value, bool):
            return str(value).lower() == self.value.lower()
        return str(value) == self.value


@dataclass(frozen=True)
class ChannelKey:
    kind: str
    name: str
    selector: str | None = None


@dataclass
class _Channel:
    key: ChannelKey
    handle: Any = None
    subscribers: list[Subscription] = field(default_factory=list)


class Subscription:
    """Handle returned by the registry; ``unsubscribe`` is idempotent."""

    def __init__(
        self,
        registry: ChangeSubscriptionRegistry,
        key: ChannelKey,
        dispatch: Callable[[Record], None],
    ):
        self._registry = registry
        self.key = key
        self._dispatch = dispatch
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, message: Record) -> None:
        if not self._active:
            return
        try:
            self._dispatch(message)
        except Exception:
            logger.exception(
                "Subscription handler failed",
                extra={"channel_kind": self.key.kind, "channel": self.key.name},
            )

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._registry._release(self)

    def _deactivate(self) -> None:
        self._active = False

    def __call__(self) -> None:
        self.unsubscribe()


class ChangeSubscriptionRegistry:
    """
    Opens push channels and fans events out to subscribers.

    At most one transport channel exists per distinct key; subscribers on the
    same key share it and the channel is released with the last of them.
    """

    def __init__(self, transport: ChannelTransport, prefix: str = "chefcomanda"):
        self._transport = transport
        self._prefix = prefix
        self._channels: dict[ChannelKey, _Channel] = {}
        self._lock = threading.RLock()
        self._running = False

    # Lifecycle ---------------------------------------------------------

    def start(self) -> None:
        self._running = True
        logger.info("Change subscription registry started", extra={"prefix": self._prefix})

    def stop(self) -> None:
        with self._lock:
            channels = list(self._channels.values())
            self._channels.clear()
            self._running = False
        for channel in channels:
            for subscription in channel.subscribers:
                subscription._deactivate()
            self._close(channel)
        logger.info("Change subscription registry stopped", extra={"closed": len(channels)})

    @property
    def running(self) -> bool:
        return self._running

    @property
    def channel_count(self) -> int:
        return len(self._channels)

    # Channel naming ----------------------------------------------------

    def changes_channel(self, table: str) -> str:
        return f"{self._prefix}:changes:{table}"

    def broadcast_channel(self, channel: str) -> str:
        return f"{self._prefix}:broadcast:{channel}"

    # Subscriptions -----------------------------------------------------

    def subscribe(
        self,
        table: str,
        filter: str | None = None,
        on_insert: RowHandler | None = None,
        on_update: RowHandler | None = None,
        on_delete: RowHandler | None = None,
    ) -> Subscription:
        """
        Listen for row changes on ``table``, optionally narrowed by an
        equality filter such as ``restaurante_id=eq.42``.
        """
        change_filter = ChangeFilter(filter) if filter else None
        handlers = {
            ChangeEvent.INSERT.value: on_insert,
            ChangeEvent.UPDATE.value: on_update,
            ChangeEvent.DELETE.value: on_delete,
        }

        def dispatch(message: Record) -> None:
            event_type = message.get("eventType")
            handler = handlers.get(event_type)
            if handler is None:
                return
            row = message.get("old") if event_type == ChangeEvent.DELETE.value else message.get("new")
            if change_filter is not None and not change_filter.matches(row):
                return
            handler(row or {})

        key = ChannelKey("changes", table, filter)
        return self._attach(key, self.changes_channel(table), dispatch)

    def on_broadcast(
        self, channel: str, event: str, handler: Callable[[Any], None]
    ) -> Subscription:
        def dispatch(message: Record) -> None:
            if message.get("event") == event:
                handler(message.get("payload"))

        key = ChannelKey("broadcast", channel, event)
        return self._attach(key, self.broadcast_channel(channel), dispatch)

    def _attach(
        self, key: ChannelKey, channel_name: str, dispatch: Callable[[Record], None]
    ) -> Subscription:
        if not self._running:
            raise RuntimeError("Change subscription registry is not started")

        subscription = Subscription(self, key, dispatch)
        with self._lock:
            channel = self._channels.get(key)
            if channel is None:
                channel = _Channel(key=key)

                def fan_out(message: Record, _channel: _Channel = channel) -> None:
                    for subscriber in list(_channel.subscribers):
                        subscriber.deliver(message)

                channel.handle = self._transport.open(channel_name, fan_out)
                self._channels[key] = channel
                logger.info(
                    "Subscribed to %s changes" if key.kind == "changes" else "Listening on %s",
                    key.name,
                    extra={"selector": key.selector},
                )
            channel.subscribers.append(subscription)
        return subscription

    def _release(self, subscription: Subscription) -> None:
        with self._lock:
            channel = self._channels.get(subscription.key)
            if channel is None or subscription not in channel.subscribers:
                return
            channel.subscribers.remove(subscription)
            if channel.subscribers:
                return
            del self._channels[subscription.key]
        self._close(channel)

    def _close(self, channel: _Channel) -> None:
        try:
            self._transport.close(channel.handle)
        except Exception as exc:
            logger.warning("Error closing channel %s: %s", channel.key.name, exc)

    # Publishing --------------------------------------------------------

    def publish_change(
        self,
        table: str,
        event: ChangeEvent,
        new: Record | None,
        old: Record | None = None,
    ) -> None:
        message = {
            "table": table,
            "eventType": event.value if isinstance(event, ChangeEvent) else event,
            "new": new,
            "old": old,
            "commit_timestamp": _timestamp(),
        }
        self._transport.publish(self.changes_channel(table), message)

    def broadcast(self, channel: str, event: str, payload: Any) -> None:
        message = {"type": "broadcast", "event": event, "payload": payload}
        self._transport.publish(self.broadcast_channel(channel), message)
