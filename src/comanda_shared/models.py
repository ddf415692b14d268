"""
SQLAlchemy models of the hosted schema.

The application reads and writes through the Supabase gateway; these models
exist so a local PostgreSQL (or SQLite in tests) can be provisioned with the
same tables via ``flask init-db``.
"""

from __future__ import annotations

import json
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from .constants import (
    CashRegisterStatus,
    ItemStatus,
    NotificationType,
    OperatorType,
    OrderStatus,
    TableStatus,
)


class JSONBType(TypeDecorator):
    """JSONB on PostgreSQL, JSON-encoded TEXT elsewhere."""

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        return json.dumps(value)

    def process_result_value(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        return json.loads(value) if isinstance(value, str) else value


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now
    )


class Restaurante(TimestampMixin, Base):
    __tablename__ = "restaurantes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    nome: Mapped[str] = mapped_column(String(255))
    telefone: Mapped[str] = mapped_column(String(40), default="")
    endereco: Mapped[Any | None] = mapped_column(JSONBType, nullable=True)
    configuracoes: Mapped[dict] = mapped_column(JSONBType, default=dict)


class Mesa(TimestampMixin, Base):
    __tablename__ = "mesas"
    __table_args__ = (UniqueConstraint("restaurante_id", "numero"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    restaurante_id: Mapped[str] = mapped_column(ForeignKey("restaurantes.id"), index=True)
    numero: Mapped[int] = mapped_column(Integer)
    capacidade: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(20), default=TableStatus.FREE.value)
    garcom: Mapped[str | None] = mapped_column(String(255), nullable=True)
    horario_abertura: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    valor_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)


class Comanda(TimestampMixin, Base):
    __tablename__ = "comandas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    mesa_id: Mapped[str] = mapped_column(ForeignKey("mesas.id"), index=True)
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.OPEN.value)
    valor_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)


class Produto(TimestampMixin, Base):
    __tablename__ = "produtos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    restaurante_id: Mapped[str] = mapped_column(ForeignKey("restaurantes.id"), index=True)
    nome: Mapped[str] = mapped_column(String(255))
    descricao: Mapped[str | None] = mapped_column(Text, nullable=True)
    preco: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    categoria: Mapped[str] = mapped_column(String(120), default="")
    disponivel: Mapped[bool] = mapped_column(Boolean, default=True)
    estoque: Mapped[int] = mapped_column(Integer, default=0)
    estoque_minimo: Mapped[int] = mapped_column(Integer, default=0)
    imagem_url: Mapped[str | None] = mapped_column(Text, nullable=True)


class ItemComanda(TimestampMixin, Base):
    __tablename__ = "itens_comanda"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    comanda_id: Mapped[str] = mapped_column(ForeignKey("comandas.id"), index=True)
    produto_id: Mapped[str] = mapped_column(ForeignKey("produtos.id"))
    quantidade: Mapped[int] = mapped_column(Integer)
    preco_unitario: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    observacao: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=ItemStatus.PENDING.value)


class Categoria(TimestampMixin, Base):
    __tablename__ = "categorias"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    restaurante_id: Mapped[str] = mapped_column(ForeignKey("restaurantes.id"), index=True)
    nome: Mapped[str] = mapped_column(String(120))
    ativo: Mapped[bool] = mapped_column(Boolean, default=True)


class Venda(TimestampMixin, Base):
    __tablename__ = "vendas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    restaurante_id: Mapped[str] = mapped_column(ForeignKey("restaurantes.id"), index=True)
    mesa_id: Mapped[str | None] = mapped_column(ForeignKey("mesas.id"), nullable=True)
    comanda_id: Mapped[str | None] = mapped_column(ForeignKey("comandas.id"), nullable=True)
    valor_total: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    forma_pagamento: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20), default="concluida")
    usuario_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class CardapioOnline(TimestampMixin, Base):
    __tablename__ = "cardapio_online"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    restaurante_id: Mapped[str] = mapped_column(ForeignKey("restaurantes.id"), index=True)
    nome: Mapped[str] = mapped_column(String(255))
    descricao: Mapped[str] = mapped_column(Text, default="")
    preco: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    categoria: Mapped[str] = mapped_column(String(120), default="")
    imagem_url: Mapped[str] = mapped_column(Text, default="")
    ordem: Mapped[int] = mapped_column(Integer, default=0)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True)
    disponivel_online: Mapped[bool] = mapped_column(Boolean, default=True)


class CmvProduto(TimestampMixin, Base):
    __tablename__ = "cmv_produtos"
    __table_args__ = (
        UniqueConstraint("restaurante_id", "produto_id", "periodo_inicio", "periodo_fim"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    restaurante_id: Mapped[str] = mapped_column(ForeignKey("restaurantes.id"), index=True)
    produto_id: Mapped[str] = mapped_column(ForeignKey("produtos.id"))
    custo_unitario: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    periodo_inicio: Mapped[date] = mapped_column(Date)
    periodo_fim: Mapped[date] = mapped_column(Date)
    quantidade_vendida: Mapped[int] = mapped_column(Integer, default=0)
    receita_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    custo_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    margem_lucro: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    percentual_cmv: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=0)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True)


class CaixaOperador(TimestampMixin, Base):
    __tablename__ = "caixas_operadores"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    restaurante_id: Mapped[str] = mapped_column(ForeignKey("restaurantes.id"), index=True)
    operador_id: Mapped[str] = mapped_column(String(36), index=True)
    operador_nome: Mapped[str] = mapped_column(String(255))
    operador_tipo: Mapped[str] = mapped_column(String(20), default=OperatorType.USER.value)
    valor_inicial: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    valor_final: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    valor_sistema: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    status: Mapped[str] = mapped_column(String(20), default=CashRegisterStatus.OPEN.value)
    data_abertura: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    data_fechamento: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    observacao: Mapped[str | None] = mapped_column(Text, nullable=True)


class MovimentacaoCaixa(Base):
    __tablename__ = "movimentacoes_caixa"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    caixa_operador_id: Mapped[str] = mapped_column(
        ForeignKey("caixas_operadores.id"), index=True
    )
    tipo: Mapped[str] = mapped_column(String(10))
    valor: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    motivo: Mapped[str] = mapped_column(String(255))
    observacao: Mapped[str | None] = mapped_column(Text, nullable=True)
    forma_pagamento: Mapped[str | None] = mapped_column(String(20), nullable=True)
    usuario_id: Mapped[str] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


class CompanyProfile(TimestampMixin, Base):
    __tablename__ = "company_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    cnpj: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(40), nullable=True)


class Employee(TimestampMixin, Base):
    __tablename__ = "employees"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    company_id: Mapped[str] = mapped_column(ForeignKey("company_profiles.id"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    cpf: Mapped[str | None] = mapped_column(String(14), nullable=True)
    role: Mapped[str] = mapped_column(String(20))
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    auth_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class UserRoleRow(Base):
    __tablename__ = "user_roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    role: Mapped[str] = mapped_column(String(20))


class NotificationRow(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    title: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(20), default=NotificationType.SYSTEM.value)
    read: Mapped[bool] = mapped_column(Boolean, default=False)
    data: Mapped[Any | None] = mapped_column(JSONBType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now
    )
