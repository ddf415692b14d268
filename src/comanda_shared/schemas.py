"""
Pydantic schemas for request validation.

Field names follow the database columns the browser already works with.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from comanda_shared.constants import (
    CashMovementType,
    DiscountType,
    EmployeeRole,
    ItemStatus,
    NotificationType,
    PaymentMethod,
)


class AddTableRequest(BaseModel):
    numero: int = Field(..., ge=1)
    capacidade: int = Field(..., ge=1)


class OccupyTableRequest(BaseModel):
    garcom: str | None = None


class AddItemRequest(BaseModel):
    mesa_id: str
    produto_id: str
    quantidade: int = Field(default=1, ge=1)
    observacao: str | None = None


class UpdateItemStatusRequest(BaseModel):
    status: ItemStatus


class BillRequest(BaseModel):
    taxa_servico: bool = False
    couvert: bool = False
    desconto_tipo: DiscountType | None = None
    desconto_valor: Decimal = Field(default=Decimal("0"), ge=0)


class FinalizePaymentRequest(BaseModel):
    forma_pagamento: PaymentMethod


class CreateProductRequest(BaseModel):
    nome: str = Field(..., min_length=1, max_length=255)
    descricao: str | None = None
    preco: Decimal = Field(..., ge=0)
    categoria: str = ""
    disponivel: bool = True
    estoque: int = Field(default=0, ge=0)
    estoque_minimo: int = Field(default=0, ge=0)
    imagem_url: str | None = None


class UpdateProductRequest(BaseModel):
    nome: str | None = Field(None, min_length=1, max_length=255)
    descricao: str | None = None
    preco: Decimal | None = Field(None, ge=0)
    categoria: str | None = None
    disponivel: bool | None = None
    estoque: int | None = Field(None, ge=0)
    estoque_minimo: int | None = Field(None, ge=0)
    imagem_url: str | None = None


class UpdateRestaurantRequest(BaseModel):
    nome: str | None = Field(None, min_length=1)
    telefone: str | None = None
    endereco: Any | None = None
    configuracoes: dict[str, Any] | None = None


class CmvRequest(BaseModel):
    produto_id: str
    custo_unitario: Decimal = Field(..., ge=0)
    periodo_inicio: date
    periodo_fim: date

    @model_validator(mode="after")
    def check_period(self):
        if self.periodo_fim < self.periodo_inicio:
            raise ValueError("Período inválido: data final anterior à inicial")
        return self


class SendNotificationRequest(BaseModel):
    user_id: str | None = None
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.SYSTEM
    data: Any | None = None


class CreateEmployeeRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    role: str
    cpf: str | None = None
    email: str | None = Field(None, pattern=r"^[^@]+@[^@]+\.[^@]+$")
    password: str | None = None

    @field_validator("role")
    @classmethod
    def validate_role_value(cls, v):
        if v not in EmployeeRole.all_values():
            allowed = ", ".join(sorted(EmployeeRole.all_values()))
            raise ValueError(f"Função inválida. Valores permitidos: {allowed}")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if v else v


class UpdateEmployeeRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    role: str | None = None
    cpf: str | None = None
    active: bool | None = None

    @field_validator("role")
    @classmethod
    def validate_role_value(cls, v):
        if v is not None and v not in EmployeeRole.all_values():
            raise ValueError("Função inválida")
        return v


class CompanyProfileRequest(BaseModel):
    name: str = Field(..., min_length=1)
    cnpj: str | None = None
    address: str | None = None
    contact_phone: str | None = None


class MenuItemRequest(BaseModel):
    nome: str | None = Field(None, min_length=1)
    descricao: str | None = None
    preco: Decimal | None = Field(None, ge=0)
    categoria: str | None = None
    imagem_url: str | None = None
    ordem: int | None = Field(None, ge=0)
    ativo: bool | None = None
    disponivel_online: bool | None = None


class ReorderMenuRequest(BaseModel):
    ids: list[str] = Field(..., min_length=1)


class SessionStateRequest(BaseModel):
    current_route: str | None = None
    status_filter: str | None = None
    table_filter: str | None = None


class PageStateRequest(BaseModel):
    state: dict[str, Any]


class OpenCashRegisterRequest(BaseModel):
    valor_inicial: Decimal = Field(default=Decimal("0"), ge=0)


class CloseCashRegisterRequest(BaseModel):
    valor_final: Decimal = Field(..., ge=0)
    observacao: str | None = None


class CashMovementRequest(BaseModel):
    tipo: CashMovementType
    valor: Decimal = Field(..., gt=0)
    motivo: str = Field(..., min_length=1, max_length=255)
    observacao: str | None = None
    forma_pagamento: PaymentMethod | None = None
