"""
Menu API - Cardápio online

The public menu is readable without a token; the editor routes belong to
the restaurant owner.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from comanda_shared.jwt_middleware import login_required
from comanda_shared.logging_config import get_logger
from comanda_shared.schemas import MenuItemRequest, ReorderMenuRequest
from comanda_shared.serializers import success_response
from comanda_shared.services import menu_service

from comanda_app.extensions import current_restaurant_id, get_gateway

menu_bp = Blueprint("menu", __name__)
logger = get_logger(__name__)


@menu_bp.get("/public/menu/<restaurant_id>")
def public_menu(restaurant_id: str):
    return jsonify(success_response(menu_service.get_public_menu(get_gateway(), restaurant_id)))


@menu_bp.get("/menu")
@login_required
def list_menu_items():
    return jsonify(
        success_response(menu_service.list_menu_items(get_gateway(), current_restaurant_id()))
    )


@menu_bp.post("/menu")
@login_required
def create_menu_item():
    data = MenuItemRequest(**(request.get_json(silent=True) or {}))
    item = menu_service.save_menu_item(
        get_gateway(), current_restaurant_id(), data.model_dump(exclude_unset=True)
    )
    return jsonify(success_response(item)), HTTPStatus.CREATED


@menu_bp.put("/menu/<item_id>")
@login_required
def update_menu_item(item_id: str):
    data = MenuItemRequest(**(request.get_json(silent=True) or {}))
    item = menu_service.save_menu_item(
        get_gateway(), current_restaurant_id(), data.model_dump(exclude_unset=True), item_id
    )
    return jsonify(success_response(item))


@menu_bp.delete("/menu/<item_id>")
@login_required
def delete_menu_item(item_id: str):
    menu_service.delete_menu_item(get_gateway(), current_restaurant_id(), item_id)
    return jsonify(success_response({"id": item_id}))


@menu_bp.post("/menu/reorder")
@login_required
def reorder_menu():
    """Body: {ids: [...]} in the new display order."""
    data = ReorderMenuRequest(**(request.get_json(silent=True) or {}))
    items = menu_service.reorder_menu(get_gateway(), current_restaurant_id(), data.ids)
    return jsonify(success_response(items))


@menu_bp.post("/menu/sync-products")
@login_required
def sync_from_products():
    created = menu_service.sync_from_products(get_gateway(), current_restaurant_id())
    logger.info(f"{len(created)} products copied to the online menu")
    return jsonify(success_response(created)), HTTPStatus.CREATED
