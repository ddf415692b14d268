"""
Typed views over the untyped records returned by the hosted database.

Column names follow the database (Portuguese); only the Python attribute
surface is typed here. Unknown columns are ignored so schema additions on the
platform side never break parsing.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from comanda_shared.constants import (
    INACTIVE_ITEM_STATUSES,
    ItemStatus,
    NotificationType,
    OrderStatus,
    TableStatus,
)

# Exact in Python, a plain number in JSON.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class Row(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id: str
    updated_at: datetime | None = None

    @property
    def version(self) -> datetime | None:
        return self.updated_at

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class Restaurant(Row):
    user_id: str
    nome: str
    telefone: str = ""
    endereco: Any | None = None
    configuracoes: dict[str, Any] = Field(default_factory=dict)


class Mesa(Row):
    restaurante_id: str
    numero: int
    capacidade: int
    status: TableStatus = TableStatus.FREE
    garcom: str | None = None
    horario_abertura: datetime | None = None
    valor_total: Money = Decimal("0")


class Comanda(Row):
    mesa_id: str
    status: OrderStatus = OrderStatus.OPEN
    valor_total: Money = Decimal("0")
    created_at: datetime | None = None


class ItemComanda(Row):
    comanda_id: str
    produto_id: str
    quantidade: int
    preco_unitario: Money
    observacao: str | None = None
    status: ItemStatus = ItemStatus.PENDING
    created_at: datetime | None = None
    # Denormalized for display; filled from product and order -> table joins.
    produto_nome: str | None = None
    categoria: str | None = None
    mesa_id: str | None = None
    mesa_numero: int | None = None

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_ITEM_STATUSES

    @property
    def line_total(self) -> Decimal:
        return self.preco_unitario * self.quantidade


class Produto(Row):
    restaurante_id: str
    nome: str
    descricao: str | None = None
    preco: Money
    categoria: str = ""
    disponivel: bool = True
    estoque: int = 0
    estoque_minimo: int = 0
    imagem_url: str | None = None


class Categoria(Row):
    restaurante_id: str
    nome: str
    ativo: bool = True


class Employee(Row):
    company_id: str
    name: str
    role: str
    active: bool = True
    auth_user_id: str | None = None
    has_auth: bool = False


class Notification(Row):
    user_id: str
    title: str
    message: str
    type: NotificationType = NotificationType.SYSTEM
    read: bool = False
    data: Any | None = None
    created_at: datetime | None = None
