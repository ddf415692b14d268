"""
Restaurant identity for the signed-in actor.
"""

from __future__ import annotations

import logging

from comanda_shared.actor import Actor
from comanda_shared.constants import Tables
from comanda_shared.rows import Restaurant
from comanda_shared.supabase.gateway import SupabaseGateway
from comanda_shared.validation import ValidationError, validate_required

logger = logging.getLogger(__name__)


def default_restaurant_name(actor: Actor) -> str:
    return f"Restaurante de {actor.name or 'Usuário'}"


def get_or_create_restaurant(gateway: SupabaseGateway, actor: Actor) -> Restaurant:
    """
    Return the actor's restaurant, provisioning one on first login.

    Lookup and creation are separate steps: an absent row is a normal
    outcome of the lookup, while any other gateway failure propagates.
    """
    record = gateway.find_restaurant_by_user(actor.user_id)
    if record is not None:
        return Restaurant.model_validate(record)

    logger.info("Creating restaurant for new user", extra={"user_id": actor.user_id})
    created = gateway.create(
        Tables.RESTAURANTS,
        {
            "user_id": actor.user_id,
            "nome": default_restaurant_name(actor),
            "telefone": "",
            "configuracoes": {},
        },
    )
    restaurant = Restaurant.model_validate(created)
    logger.info(
        "Restaurant created successfully",
        extra={"user_id": actor.user_id, "restaurant_id": restaurant.id},
    )
    return restaurant


EDITABLE_RESTAURANT_FIELDS = {"nome", "telefone", "endereco", "configuracoes"}


def update_restaurant(
    gateway: SupabaseGateway, restaurant_id: str, changes: dict
) -> Restaurant:
    payload = {key: value for key, value in changes.items() if key in EDITABLE_RESTAURANT_FIELDS}
    if not payload:
        raise ValidationError("Nenhum campo válido para atualizar")
    if "nome" in payload:
        validate_required(payload["nome"], "Nome")
    return Restaurant.model_validate(gateway.update(Tables.RESTAURANTS, restaurant_id, payload))
