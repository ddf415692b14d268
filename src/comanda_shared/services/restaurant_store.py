"""
Aggregate state store for one restaurant.

Holds the working set the back office shows: tables, open orders, the items
of those orders (denormalized with product name/category and table
id/number), products and categories. ``refresh()`` rebuilds everything from
the database; intents write through the gateway and patch local state from
the rows the server returns. Push events from the change registry land in
the same versioned collections, so a local patch and the echo of the same
write converge.

Writers (intents, push callbacks, refresh) are serialized by one re-entrant
lock. Push callbacks run on transport listener threads.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from functools import wraps
from typing import Any

from comanda_shared.actor import Actor
from comanda_shared.constants import (
    DEFAULT_COVER_CHARGE_PER_SEAT,
    DEFAULT_SERVICE_FEE_RATE,
    PAYABLE_TABLE_STATUSES,
    TERMINAL_ITEM_STATUSES,
    ItemStatus,
    OrderStatus,
    PaymentMethod,
    Tables,
    TableStatus,
)
from comanda_shared.error_catalog import message
from comanda_shared.rows import (
    Categoria,
    Comanda,
    ItemComanda,
    Mesa,
    Produto,
    Restaurant,
)
from comanda_shared.services import restaurant_service
from comanda_shared.services.billing import (
    CENTS,
    BillBreakdown,
    calculate_bill,
    items_subtotal,
)
from comanda_shared.services.reconciliation import VersionedCollection
from comanda_shared.services.state_machine import (
    StateTransitionError,
    next_item_status,
    validate_item_transition,
    validate_table_transition,
)
from comanda_shared.supabase.errors import GatewayError, TransportError
from comanda_shared.supabase.gateway import SupabaseGateway
from comanda_shared.supabase.realtime import (
    ChangeFilter,
    ChangeSubscriptionRegistry,
    Subscription,
)
from comanda_shared.validation import (
    ValidationError,
    validate_choice,
    validate_money,
    validate_positive_int,
    validate_required,
)

logger = logging.getLogger(__name__)

Record = dict[str, Any]
Notifier = Callable[[str, str], None]

PRODUCT_FIELDS = {
    "nome",
    "descricao",
    "preco",
    "categoria",
    "disponivel",
    "estoque",
    "estoque_minimo",
    "imagem_url",
}


def log_notifier(level: str, text: str) -> None:
    if level == "error":
        logger.warning(text)
    else:
        logger.info(text)


def notifies_failure(failure_key: str):
    """
    Report a failed intent through the store's notifier and re-raise.

    Validation and transition errors carry their own message; transport
    failures get the generic connection message.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self: RestaurantStore, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except (ValidationError, StateTransitionError) as exc:
                self._notify("error", str(exc))
                raise
            except TransportError:
                self._notify("error", message("connection_error"))
                raise
            except GatewayError as exc:
                logger.error(
                    f"Intent {func.__name__} failed: {exc}",
                    extra={"restaurant_id": self.restaurant_id, "code": exc.code},
                )
                self._notify("error", message(failure_key))
                raise

        return wrapper

    return decorator


@dataclass(frozen=True)
class PaymentResult:
    sale: Record
    table: Mesa
    order: Comanda | None


class RestaurantStore:
    def __init__(
        self,
        gateway: SupabaseGateway,
        registry: ChangeSubscriptionRegistry | None = None,
        restaurant: Restaurant | None = None,
        actor: Actor | None = None,
        notifier: Notifier | None = None,
        service_fee_rate: Decimal = DEFAULT_SERVICE_FEE_RATE,
        cover_charge_per_seat: Decimal = DEFAULT_COVER_CHARGE_PER_SEAT,
        max_workers: int = 5,
    ):
        self._gateway = gateway
        self._registry = registry
        self._restaurant = restaurant
        self._actor = actor
        self._notifier = notifier or log_notifier
        self._service_fee_rate = service_fee_rate
        self._cover_charge_per_seat = cover_charge_per_seat
        self._max_workers = max_workers
        self._lock = threading.RLock()
        self._subscriptions: list[Subscription] = []

        self.tables = VersionedCollection(Mesa, sort_key=lambda row: row.numero)
        self.orders = VersionedCollection(Comanda, sort_key=_created_key)
        self.items = VersionedCollection(ItemComanda, sort_key=_created_key)
        self.products = VersionedCollection(Produto, sort_key=lambda row: row.nome.lower())
        self.categories = VersionedCollection(Categoria, sort_key=lambda row: row.nome.lower())

    # ------------------------------------------------------------------
    # Identity and loading
    # ------------------------------------------------------------------

    @property
    def restaurant(self) -> Restaurant | None:
        return self._restaurant

    @property
    def restaurant_id(self) -> str | None:
        return self._restaurant.id if self._restaurant else None

    def _require_restaurant(self) -> Restaurant:
        if self._restaurant is None:
            raise ValidationError(message("restaurant_not_loaded"))
        return self._restaurant

    def _notify(self, level: str, text: str) -> None:
        try:
            self._notifier(level, text)
        except Exception as exc:
            logger.warning(f"Notifier failed (continuing): {exc}")

    def refresh(self) -> None:
        """
        Rebuild every collection from the database.

        The restaurant identity is resolved first (provisioning it on first
        login), then the five reads run concurrently and replace local state
        wholesale.
        """
        try:
            if self._actor is not None:
                self._restaurant = restaurant_service.get_or_create_restaurant(
                    self._gateway, self._actor
                )
            restaurant_id = self._require_restaurant().id

            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                tables = pool.submit(self._gateway.get_tables_by_restaurant, restaurant_id)
                products = pool.submit(self._gateway.get_products_by_restaurant, restaurant_id)
                categories = pool.submit(
                    self._gateway.get_categories_by_restaurant, restaurant_id
                )
                orders = pool.submit(self._gateway.get_open_orders_by_restaurant, restaurant_id)
                items = pool.submit(self._gateway.get_open_items_by_restaurant, restaurant_id)
                results = {
                    "tables": tables.result(),
                    "products": products.result(),
                    "categories": categories.result(),
                    "orders": orders.result(),
                    "items": items.result(),
                }
        except GatewayError:
            self._notify("error", message("refresh_failed"))
            raise

        with self._lock:
            self.tables.replace_all(results["tables"])
            self.products.replace_all(results["products"])
            self.categories.replace_all(results["categories"])
            self.orders.replace_all(results["orders"])
            self.items.replace_all(results["items"])

        logger.info(
            "Restaurant state refreshed",
            extra={
                "restaurant_id": restaurant_id,
                "tables": len(self.tables),
                "orders": len(self.orders),
                "items": len(self.items),
            },
        )

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "restaurant": self._restaurant.to_record() if self._restaurant else None,
                "tables": self.tables.snapshot(),
                "orders": self.orders.snapshot(),
                "items": self.items.snapshot(),
                "products": self.products.snapshot(),
                "categories": self.categories.snapshot(),
            }

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_table(self, table_id: str) -> Mesa:
        table = self.tables.get(table_id)
        if table is None:
            raise ValidationError(f"Mesa não encontrada: {table_id}")
        return table

    def get_product(self, product_id: str) -> Produto:
        product = self.products.get(product_id)
        if product is None:
            raise ValidationError(f"Produto não encontrado: {product_id}")
        return product

    def open_order_for_table(self, table_id: str) -> Comanda | None:
        for order in self.orders.values():
            if order.mesa_id == table_id and order.status is OrderStatus.OPEN:
                return order
        return None

    def items_for_order(self, order_id: str) -> list[ItemComanda]:
        return self.items.where(lambda item: item.comanda_id == order_id)

    def items_for_table(self, table_id: str) -> list[ItemComanda]:
        order = self.open_order_for_table(table_id)
        return self.items_for_order(order.id) if order else []

    # ------------------------------------------------------------------
    # Table intents
    # ------------------------------------------------------------------

    @notifies_failure("table_add_failed")
    def add_table(self, numero: int, capacidade: int) -> Mesa:
        numero = validate_positive_int(numero, "Número da mesa")
        capacidade = validate_positive_int(capacidade, "Capacidade")
        with self._lock:
            if any(table.numero == numero for table in self.tables):
                raise ValidationError(message("table_exists", numero=numero))
            record = self._gateway.create(
                Tables.TABLES,
                {
                    "restaurante_id": self._require_restaurant().id,
                    "numero": numero,
                    "capacidade": capacidade,
                    "status": TableStatus.FREE,
                    "valor_total": 0,
                },
            )
            table = self.tables.parse(record)
            self.tables.apply(table)
        self._notify("success", message("table_added", numero=numero))
        return table

    @notifies_failure("table_occupy_failed")
    def occupy_table(self, table_id: str, waiter: str | None = None) -> Comanda:
        """Mark the table occupied and make sure it has an open order."""
        order = self._occupy(table_id, waiter)
        self._notify("success", message("table_occupied"))
        return order

    def _occupy(self, table_id: str, waiter: str | None = None) -> Comanda:
        with self._lock:
            table = self.get_table(table_id)
            validate_table_transition(table.status, TableStatus.OCCUPIED)
            record = self._gateway.update(
                Tables.TABLES,
                table_id,
                {
                    "status": TableStatus.OCCUPIED,
                    "horario_abertura": datetime.now(UTC),
                    "garcom": waiter,
                },
            )
            self.tables.apply(record)
            return self._ensure_open_order(table_id)

    @notifies_failure("table_release_failed")
    def release_table(self, table_id: str) -> Mesa:
        """
        Free a table without taking payment. Any open order is cancelled and
        its items leave the local view.
        """
        with self._lock:
            table = self.get_table(table_id)
            validate_table_transition(table.status, TableStatus.FREE)
            order = self.open_order_for_table(table_id)
            if order is not None:
                self._gateway.update(Tables.ORDERS, order.id, {"status": OrderStatus.CANCELLED})
                self._drop_order(order.id)
            record = self._gateway.update(
                Tables.TABLES,
                table_id,
                {
                    "status": TableStatus.FREE,
                    "horario_abertura": None,
                    "garcom": None,
                    "valor_total": 0,
                },
            )
            released = self.tables.parse(record)
            self.tables.apply(released)
        self._notify("success", message("table_released"))
        return released

    @notifies_failure("payment_request_failed")
    def request_payment(self, table_id: str) -> Mesa:
        with self._lock:
            table = self.get_table(table_id)
            validate_table_transition(table.status, TableStatus.AWAITING_PAYMENT)
            record = self._gateway.update(
                Tables.TABLES, table_id, {"status": TableStatus.AWAITING_PAYMENT}
            )
            updated = self.tables.parse(record)
            self.tables.apply(updated)
        self._notify("success", message("payment_requested"))
        return updated

    @notifies_failure("table_delete_failed")
    def delete_table(self, table_id: str) -> None:
        with self._lock:
            table = self.get_table(table_id)
            if table.status is not TableStatus.FREE:
                raise ValidationError(message("table_delete_occupied"))
            self._gateway.delete(Tables.TABLES, table_id)
            self.tables.remove(table_id)
        self._notify("success", message("table_deleted"))

    # ------------------------------------------------------------------
    # Order and item intents
    # ------------------------------------------------------------------

    @notifies_failure("order_create_failed")
    def create_order(self, table_id: str) -> Comanda:
        with self._lock:
            self.get_table(table_id)
            existing = self.open_order_for_table(table_id)
            if existing is not None:
                return existing
            order = self._ensure_open_order(table_id)
        self._notify("success", message("order_created"))
        return order

    def _ensure_open_order(self, table_id: str) -> Comanda:
        order = self.open_order_for_table(table_id)
        if order is not None:
            return order
        record = self._gateway.create(
            Tables.ORDERS,
            {"mesa_id": table_id, "status": OrderStatus.OPEN, "valor_total": 0},
        )
        order = self.orders.parse(record)
        self.orders.apply(order)
        logger.info(
            "Order opened", extra={"restaurant_id": self.restaurant_id, "order_id": order.id}
        )
        return order

    @notifies_failure("item_add_failed")
    def add_item(
        self,
        table_id: str,
        product_id: str,
        quantity: int = 1,
        note: str | None = None,
    ) -> ItemComanda:
        """
        Add a product to the table's tab at the product's current price.

        A free table is occupied first; an occupied table without an open
        order gets one.
        """
        quantity = validate_positive_int(quantity, "Quantidade")
        with self._lock:
            table = self.get_table(table_id)
            product = self.get_product(product_id)
            if not product.disponivel:
                raise ValidationError(f"Produto indisponível: {product.nome}")

            if table.status is TableStatus.FREE:
                self._occupy(table_id)
            order = self._ensure_open_order(table_id)

            record = self._gateway.create(
                Tables.ORDER_ITEMS,
                {
                    "comanda_id": order.id,
                    "produto_id": product.id,
                    "quantidade": quantity,
                    "preco_unitario": product.preco,
                    "observacao": note or "",
                    "status": ItemStatus.PENDING,
                },
            )
            item = self.items.parse(self._enrich_item(record))
            self.items.apply(item)
            self._sync_totals(order.id)
        self._notify("success", message("item_added"))
        return item

    @notifies_failure("item_remove_failed")
    def remove_item(self, item_id: str) -> None:
        with self._lock:
            item = self.items.get(item_id)
            if item is None:
                raise ValidationError(f"Item não encontrado: {item_id}")
            if item.status in TERMINAL_ITEM_STATUSES:
                raise StateTransitionError(
                    f"Item já está {item.status.value} e não pode ser removido",
                    item.status.value,
                    None,
                )
            self._gateway.delete(Tables.ORDER_ITEMS, item_id)
            self.items.remove(item_id)
            self._sync_totals(item.comanda_id)
        self._notify("success", message("item_removed"))

    @notifies_failure("item_status_failed")
    def update_item_status(self, item_id: str, status: ItemStatus | str) -> ItemComanda:
        with self._lock:
            item = self.items.get(item_id)
            if item is None:
                raise ValidationError(f"Item não encontrado: {item_id}")
            target = validate_item_transition(item.status, status)
            record = self._gateway.update(Tables.ORDER_ITEMS, item_id, {"status": target})
            updated = self.items.parse(self._enrich_item(record))
            self.items.apply(updated)
            if target in TERMINAL_ITEM_STATUSES:
                self._sync_totals(item.comanda_id)
        self._notify("success", message("item_status_updated", status=target.value))
        return updated

    def advance_item(self, item_id: str) -> ItemComanda:
        """Move an item one step forward in the kitchen flow."""
        item = self.items.get(item_id)
        if item is None:
            raise ValidationError(f"Item não encontrado: {item_id}")
        target = next_item_status(item.status)
        if target is None:
            raise StateTransitionError(
                f"Item já está {item.status.value}; o status não pode mais mudar",
                item.status.value,
                None,
            )
        return self.update_item_status(item_id, target)

    def _sync_totals(self, order_id: str) -> None:
        """Recompute the order and table totals from active items and persist them."""
        order = self.orders.get(order_id)
        if order is None:
            return
        total = items_subtotal(self.items_for_order(order_id))
        self.orders.apply(self._gateway.update(Tables.ORDERS, order_id, {"valor_total": total}))
        if order.mesa_id in self.tables:
            self.tables.apply(
                self._gateway.update(Tables.TABLES, order.mesa_id, {"valor_total": total})
            )

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    @notifies_failure("payment_failed")
    def finalize_payment(
        self, table_id: str, payment_method: PaymentMethod | str, actor: Actor | None = None
    ) -> PaymentResult:
        """
        Close the table's tab in one server-side transaction: the sale is
        recorded, the order closed and the table freed.
        """
        method = PaymentMethod(
            validate_choice(
                payment_method, {method.value for method in PaymentMethod}, "Forma de pagamento"
            )
        ).value
        actor = actor or self._actor
        if actor is None:
            raise ValidationError(message("auth_required"))

        with self._lock:
            table = self.get_table(table_id)
            if table.status not in PAYABLE_TABLE_STATUSES:
                raise StateTransitionError(
                    f"Mesa {table.numero} não está ocupada",
                    table.status.value,
                    TableStatus.FREE.value,
                )
            order = self.open_order_for_table(table_id)
            result = self._gateway.finalize_payment(table_id, method, actor.user_id)

            freed = self.tables.parse(result["mesa"])
            self.tables.apply(freed)
            closed = Comanda.model_validate(result["comanda"]) if result.get("comanda") else None
            order_id = closed.id if closed else (order.id if order else None)
            if order_id is not None:
                self._drop_order(order_id)

        logger.info(
            "Payment finalized",
            extra={
                "restaurant_id": self.restaurant_id,
                "table_id": table_id,
                "payment_method": method,
            },
        )
        self._notify("success", message("payment_finalized"))
        return PaymentResult(sale=result.get("venda") or {}, table=freed, order=closed)

    def _drop_order(self, order_id: str) -> None:
        """
        Closed and cancelled orders leave the working set with their items.
        Both are tombstoned: an order never reopens, so a late echo of it
        must not bring the tab back.
        """
        self.orders.remove(order_id)
        self.items.remove_where(lambda item: item.comanda_id == order_id)

    # ------------------------------------------------------------------
    # Product intents
    # ------------------------------------------------------------------

    def _product_payload(self, data: Record, partial: bool) -> Record:
        payload = {key: value for key, value in data.items() if key in PRODUCT_FIELDS}
        if not partial or "nome" in payload:
            validate_required(payload.get("nome"), "Nome do produto")
        if not partial or "preco" in payload:
            payload["preco"] = validate_money(payload.get("preco"), "Preço", allow_zero=True)
        for field in ("estoque", "estoque_minimo"):
            if field in payload and payload[field] is not None:
                try:
                    payload[field] = int(payload[field])
                except (TypeError, ValueError):
                    raise ValidationError(f"{field} deve ser um número inteiro")
                if payload[field] < 0:
                    raise ValidationError(f"{field} não pode ser negativo")
        if partial and not payload:
            raise ValidationError("Nenhum campo válido para atualizar")
        return payload

    @notifies_failure("product_create_failed")
    def create_product(self, data: Record) -> Produto:
        payload = self._product_payload(data, partial=False)
        payload.setdefault("categoria", "")
        payload.setdefault("disponivel", True)
        with self._lock:
            payload["restaurante_id"] = self._require_restaurant().id
            product = self.products.parse(self._gateway.create(Tables.PRODUCTS, payload))
            self.products.apply(product)
        self._notify("success", message("product_created"))
        return product

    @notifies_failure("product_update_failed")
    def update_product(self, product_id: str, changes: Record) -> Produto:
        """Existing order items keep the price they were added with."""
        payload = self._product_payload(changes, partial=True)
        with self._lock:
            self.get_product(product_id)
            product = self.products.parse(
                self._gateway.update(Tables.PRODUCTS, product_id, payload)
            )
            self.products.apply(product)
        self._notify("success", message("product_updated"))
        return product

    @notifies_failure("product_delete_failed")
    def delete_product(self, product_id: str) -> None:
        with self._lock:
            self.get_product(product_id)
            self._gateway.delete(Tables.PRODUCTS, product_id)
            self.products.remove(product_id)
        self._notify("success", message("product_deleted"))

    @notifies_failure("restaurant_update_failed")
    def update_restaurant(self, changes: Record) -> Restaurant:
        with self._lock:
            restaurant = restaurant_service.update_restaurant(
                self._gateway, self._require_restaurant().id, changes
            )
            self._restaurant = restaurant
        self._notify("success", message("restaurant_updated"))
        return restaurant

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def bill_for_table(
        self,
        table_id: str,
        service_fee: bool = False,
        cover_charge: bool = False,
        discount_type: str | None = None,
        discount_value: Decimal | float | str = Decimal("0"),
    ) -> BillBreakdown:
        table = self.get_table(table_id)
        return calculate_bill(
            self.items_for_table(table_id),
            table.capacidade,
            service_fee=service_fee,
            cover_charge=cover_charge,
            discount_type=discount_type,
            discount_value=discount_value,
            service_fee_rate=self._service_fee_rate,
            cover_charge_per_seat=self._cover_charge_per_seat,
        )

    def dashboard_counters(self) -> dict[str, Any]:
        tables = self.tables.values()
        orders = self.orders.values()
        occupied = [table for table in tables if table.status is not TableStatus.FREE]
        totals = [items_subtotal(self.items_for_order(order.id)) for order in orders]
        open_amount = sum(totals, Decimal("0"))
        average_ticket = (
            (open_amount / len(totals)).quantize(CENTS, ROUND_HALF_UP) if totals else Decimal("0.00")
        )
        return {
            "total_tables": len(tables),
            "occupied_tables": len(occupied),
            "free_tables": len(tables) - len(occupied),
            "awaiting_payment": sum(
                1 for table in tables if table.status is TableStatus.AWAITING_PAYMENT
            ),
            "open_orders": len(orders),
            "pending_items": len(self.kitchen_queue()),
            "open_amount": float(open_amount),
            "average_ticket": float(average_ticket),
        }

    def kitchen_queue(self) -> list[Record]:
        """Active items oldest first, with the next status the kitchen can set."""
        queue = []
        for item in self.items.values():
            if not item.is_active:
                continue
            entry = item.to_record()
            upcoming = next_item_status(item.status)
            entry["proximo_status"] = upcoming.value if upcoming else None
            queue.append(entry)
        return queue

    # ------------------------------------------------------------------
    # Push events
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to row changes for everything this store holds."""
        if self._registry is None:
            return
        restaurant_id = self._require_restaurant().id
        scoped = ChangeFilter.eq("restaurante_id", restaurant_id).expression
        self._subscriptions = [
            self._registry.subscribe(
                Tables.TABLES.value,
                scoped,
                on_insert=self._on_table_change,
                on_update=self._on_table_change,
                on_delete=self._on_table_delete,
            ),
            self._registry.subscribe(
                Tables.ORDERS.value,
                on_insert=self._on_order_change,
                on_update=self._on_order_change,
                on_delete=self._on_order_delete,
            ),
            self._registry.subscribe(
                Tables.ORDER_ITEMS.value,
                on_insert=self._on_item_change,
                on_update=self._on_item_change,
                on_delete=self._on_item_delete,
            ),
            self._registry.subscribe(
                Tables.PRODUCTS.value,
                scoped,
                on_insert=self._on_product_change,
                on_update=self._on_product_change,
                on_delete=self._on_product_delete,
            ),
            self._registry.subscribe(
                Tables.CATEGORIES.value,
                scoped,
                on_insert=self._on_category_change,
                on_update=self._on_category_change,
                on_delete=self._on_category_delete,
            ),
        ]
        logger.info(
            "Restaurant store listening for changes", extra={"restaurant_id": restaurant_id}
        )

    def stop(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.unsubscribe()

    def _enrich_item(self, record: Record) -> Record:
        """Fill the display columns a bare item row lacks."""
        enriched = dict(record)
        current = self.items.get(enriched.get("id"))
        product = self.products.get(enriched.get("produto_id"))
        order = self.orders.get(enriched.get("comanda_id"))
        if not enriched.get("produto_nome"):
            enriched["produto_nome"] = product.nome if product else (current and current.produto_nome)
        if not enriched.get("categoria"):
            enriched["categoria"] = product.categoria if product else (current and current.categoria)
        if not enriched.get("mesa_id") and order is not None:
            enriched["mesa_id"] = order.mesa_id
        if not enriched.get("mesa_numero") and enriched.get("mesa_id"):
            table = self.tables.get(enriched["mesa_id"])
            enriched["mesa_numero"] = table.numero if table else None
        return enriched

    def _on_table_change(self, row: Record) -> None:
        with self._lock:
            self.tables.apply(row)

    def _on_table_delete(self, row: Record) -> None:
        with self._lock:
            self.tables.remove(row.get("id"))

    def _on_order_change(self, row: Record) -> None:
        with self._lock:
            if row.get("mesa_id") not in self.tables:
                return
            if row.get("status") == OrderStatus.OPEN.value:
                self.orders.apply(row)
            else:
                self._drop_order(row.get("id"))

    def _on_order_delete(self, row: Record) -> None:
        with self._lock:
            self._drop_order(row.get("id"))

    def _on_item_change(self, row: Record) -> None:
        with self._lock:
            if row.get("comanda_id") not in self.orders:
                return
            self.items.apply(self._enrich_item(row))

    def _on_item_delete(self, row: Record) -> None:
        with self._lock:
            self.items.remove(row.get("id"))

    def _on_product_change(self, row: Record) -> None:
        with self._lock:
            self.products.apply(row)

    def _on_product_delete(self, row: Record) -> None:
        with self._lock:
            self.products.remove(row.get("id"))

    def _on_category_change(self, row: Record) -> None:
        with self._lock:
            self.categories.apply(row)

    def _on_category_delete(self, row: Record) -> None:
        with self._lock:
            self.categories.remove(row.get("id"))


def _created_key(row: Any) -> tuple:
    created = getattr(row, "created_at", None)
    return (created is None, created.isoformat() if created else "", row.id)
