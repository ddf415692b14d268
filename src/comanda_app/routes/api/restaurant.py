"""
Restaurant API - Dados do restaurante e estado consolidado do salão
"""

from flask import Blueprint, jsonify, request

from comanda_shared.error_catalog import message
from comanda_shared.jwt_middleware import login_required
from comanda_shared.schemas import UpdateRestaurantRequest
from comanda_shared.serializers import success_response

from comanda_app.extensions import current_store

restaurant_bp = Blueprint("restaurant", __name__)


@restaurant_bp.get("/restaurant")
@login_required
def get_restaurant():
    """The signed-in owner's restaurant, created on first access."""
    return jsonify(success_response(current_store().restaurant))


@restaurant_bp.put("/restaurant")
@login_required
def update_restaurant():
    data = UpdateRestaurantRequest(**(request.get_json(silent=True) or {}))
    restaurant = current_store().update_restaurant(data.model_dump(exclude_unset=True))
    return jsonify(success_response(restaurant, message("restaurant_updated")))


@restaurant_bp.get("/state")
@login_required
def get_state():
    """Everything the back office shows at once: tables, orders, items, menu."""
    return jsonify(success_response(current_store().snapshot()))


@restaurant_bp.post("/state/refresh")
@login_required
def refresh_state():
    store = current_store()
    store.refresh()
    return jsonify(success_response(store.snapshot()))


@restaurant_bp.get("/state/counters")
@login_required
def dashboard_counters():
    return jsonify(success_response(current_store().dashboard_counters()))
