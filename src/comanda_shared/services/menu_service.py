"""
Online menu: the public, read-only view customers open from a QR code, and
the editor the owner uses to curate it.

Menu rows are copies of product data (name, description, price, category,
image) so the public menu can differ from the internal catalogue.
"""

from __future__ import annotations

import logging
from typing import Any

from comanda_shared.constants import Tables
from comanda_shared.supabase.errors import NoRowsError
from comanda_shared.supabase.gateway import SupabaseGateway
from comanda_shared.validation import ValidationError, validate_money, validate_required

logger = logging.getLogger(__name__)

Record = dict[str, Any]

MENU_FIELDS = {
    "nome",
    "descricao",
    "preco",
    "categoria",
    "imagem_url",
    "ordem",
    "ativo",
    "disponivel_online",
}

PUBLIC_RESTAURANT_FIELDS = ("id", "nome", "telefone", "endereco")


def get_public_menu(gateway: SupabaseGateway, restaurant_id: str) -> Record:
    """Restaurant details plus its active, online-available items in menu order."""
    try:
        restaurant = gateway.read_one(Tables.RESTAURANTS, {"id": restaurant_id})
    except NoRowsError:
        raise NoRowsError(f"Restaurante não encontrado: {restaurant_id}", operation="public_menu")

    items = gateway.get_online_menu(restaurant_id, public_only=True)
    categories: list[str] = []
    for item in items:
        category = item.get("categoria")
        if category and category not in categories:
            categories.append(category)

    return {
        "restaurante": {field: restaurant.get(field) for field in PUBLIC_RESTAURANT_FIELDS},
        "categorias": categories,
        "itens": items,
    }


def list_menu_items(gateway: SupabaseGateway, restaurant_id: str) -> list[Record]:
    return gateway.get_online_menu(restaurant_id)


def _menu_payload(data: Record, partial: bool) -> Record:
    payload = {key: value for key, value in data.items() if key in MENU_FIELDS}
    if not partial or "nome" in payload:
        validate_required(payload.get("nome"), "Nome")
    if not partial or "preco" in payload:
        payload["preco"] = validate_money(payload.get("preco"), "Preço", allow_zero=True)
    if "ordem" in payload:
        try:
            payload["ordem"] = int(payload["ordem"])
        except (TypeError, ValueError):
            raise ValidationError("Ordem deve ser um número inteiro")
    return payload


def save_menu_item(
    gateway: SupabaseGateway,
    restaurant_id: str,
    data: Record,
    item_id: str | None = None,
) -> Record:
    """Create a menu item, or update ``item_id`` when given."""
    if item_id:
        payload = _menu_payload(data, partial=True)
        if not payload:
            raise ValidationError("Nenhum campo válido para atualizar")
        return gateway.update(
            Tables.ONLINE_MENU, item_id, payload, scope={"restaurante_id": restaurant_id}
        )

    payload = _menu_payload(data, partial=False)
    payload.setdefault("descricao", "")
    payload.setdefault("categoria", "")
    payload.setdefault("imagem_url", "")
    payload.setdefault("ativo", True)
    payload.setdefault("disponivel_online", True)
    if "ordem" not in payload:
        payload["ordem"] = len(gateway.get_online_menu(restaurant_id))
    payload["restaurante_id"] = restaurant_id
    return gateway.create(Tables.ONLINE_MENU, payload)


def delete_menu_item(gateway: SupabaseGateway, restaurant_id: str, item_id: str) -> None:
    gateway.delete(Tables.ONLINE_MENU, item_id, scope={"restaurante_id": restaurant_id})


def reorder_menu(
    gateway: SupabaseGateway, restaurant_id: str, item_ids: list[str]
) -> list[Record]:
    """
    Persist the given order; position in the list becomes ``ordem``.

    Nothing is written unless every id is on this restaurant's menu.
    """
    own_ids = {item["id"] for item in gateway.get_online_menu(restaurant_id)}
    unknown = [item_id for item_id in item_ids if item_id not in own_ids]
    if unknown:
        raise NoRowsError(f"Itens do cardápio não encontrados: {unknown}", operation="reorder_menu")
    scope = {"restaurante_id": restaurant_id}
    return [
        gateway.update(Tables.ONLINE_MENU, item_id, {"ordem": position}, scope=scope)
        for position, item_id in enumerate(item_ids)
    ]


def sync_from_products(gateway: SupabaseGateway, restaurant_id: str) -> list[Record]:
    """Copy products whose name is not on the menu yet; returns the new rows."""
    existing = gateway.get_online_menu(restaurant_id)
    existing_names = {item.get("nome") for item in existing}
    products = gateway.get_products_by_restaurant(restaurant_id)

    created = []
    for product in products:
        if product.get("nome") in existing_names:
            continue
        created.append(
            gateway.create(
                Tables.ONLINE_MENU,
                {
                    "restaurante_id": restaurant_id,
                    "nome": product.get("nome"),
                    "descricao": product.get("descricao") or "",
                    "preco": product.get("preco"),
                    "categoria": product.get("categoria") or "",
                    "imagem_url": product.get("imagem_url") or "",
                    "ordem": len(existing) + len(created),
                    "ativo": bool(product.get("disponivel", True)),
                    "disponivel_online": bool(product.get("disponivel", True)),
                },
            )
        )
    logger.info(
        "Menu synced from products",
        extra={"restaurant_id": restaurant_id, "created": len(created)},
    )
    return created
