"""
Application constants and enums.

Enum values are the literal strings stored by the hosted database.
"""

from decimal import Decimal
from enum import Enum


class Tables(str, Enum):
    RESTAURANTS = "restaurantes"
    TABLES = "mesas"
    ORDERS = "comandas"
    ORDER_ITEMS = "itens_comanda"
    PRODUCTS = "produtos"
    CATEGORIES = "categorias"
    EMPLOYEES = "employees"
    EMPLOYEE_AUTH = "employee_auth"
    COMPANY_PROFILES = "company_profiles"
    NOTIFICATIONS = "notifications"
    SALES = "vendas"
    ONLINE_MENU = "cardapio_online"
    CMV_PRODUCTS = "cmv_produtos"
    USER_ROLES = "user_roles"
    CASH_REGISTERS = "caixas_operadores"
    CASH_MOVEMENTS = "movimentacoes_caixa"


class TableStatus(str, Enum):
    FREE = "livre"
    OCCUPIED = "ocupada"
    AWAITING_PAYMENT = "aguardando"


class OrderStatus(str, Enum):
    OPEN = "aberta"
    CLOSED = "fechada"
    CANCELLED = "cancelada"


class ItemStatus(str, Enum):
    PENDING = "pendente"
    PREPARING = "preparando"
    READY = "pronto"
    DELIVERED = "entregue"
    CANCELLED = "cancelado"


class PaymentMethod(str, Enum):
    PIX = "pix"
    CASH = "dinheiro"
    CARD = "cartao"


class EmployeeRole(str, Enum):
    WAITER = "waiter"
    KITCHEN = "kitchen"
    CASHIER = "cashier"
    STOCK = "stock"

    @classmethod
    def all_values(cls) -> set:
        return {member.value for member in cls}


class UserRole(str, Enum):
    ADMIN = "admin"
    WAITER = "waiter"
    KITCHEN = "kitchen"
    CASHIER = "cashier"
    STOCK = "stock"


class NotificationType(str, Enum):
    ORDER = "order"
    STOCK = "stock"
    PAYMENT = "payment"
    SYSTEM = "system"


class CashRegisterStatus(str, Enum):
    OPEN = "aberto"
    CLOSED = "fechado"


class CashMovementType(str, Enum):
    IN = "entrada"
    OUT = "saida"


class OperatorType(str, Enum):
    EMPLOYEE = "funcionario"
    USER = "usuario"


class DiscountType(str, Enum):
    PERCENT = "percent"
    AMOUNT = "amount"


class ChangeEvent(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# Items in these states never count toward bills or the kitchen queue.
INACTIVE_ITEM_STATUSES = {ItemStatus.DELIVERED, ItemStatus.CANCELLED}

TERMINAL_ITEM_STATUSES = {ItemStatus.DELIVERED, ItemStatus.CANCELLED}

ITEM_STATUS_ORDER = [
    ItemStatus.PENDING,
    ItemStatus.PREPARING,
    ItemStatus.READY,
    ItemStatus.DELIVERED,
]

TABLE_TRANSITIONS = {
    (TableStatus.FREE, TableStatus.OCCUPIED): "occupy",
    (TableStatus.OCCUPIED, TableStatus.AWAITING_PAYMENT): "request_payment",
    (TableStatus.OCCUPIED, TableStatus.FREE): "release",
    (TableStatus.AWAITING_PAYMENT, TableStatus.FREE): "release",
}

PAYABLE_TABLE_STATUSES = {TableStatus.OCCUPIED, TableStatus.AWAITING_PAYMENT}

DEFAULT_SERVICE_FEE_RATE = Decimal("0.10")
DEFAULT_COVER_CHARGE_PER_SEAT = Decimal("15.00")

# PostgREST code returned by maybe_single/single when no row matches.
NO_ROWS_ERROR_CODE = "PGRST116"

NOTIFICATIONS_CHANNEL = "notifications"
NEW_NOTIFICATION_EVENT = "new_notification"

DEFAULT_NOTIFICATION_LIMIT = 50
DEFAULT_TOP_PRODUCTS_LIMIT = 10
TOP_PRODUCTS_ROW_CAP = 1000
SALES_REPORT_DAYS = 7

SESSION_STATE_PREFIX = "chefcomanda_"
PAGE_STATE_MAX_AGE_SECONDS = 30 * 60
