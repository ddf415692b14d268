"""
Health API - liveness and database reachability.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify

from comanda_shared.serializers import success_response
from comanda_shared.supabase.client import get_connection_status

from comanda_app.extensions import get_services

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    services = get_services()
    database = get_connection_status(services.gateway.client)
    payload = {
        "status": "ok" if database == "connected" else "degraded",
        "database": database,
        "realtime": "running" if services.registry.running else "stopped",
    }
    status = HTTPStatus.OK if database == "connected" else HTTPStatus.SERVICE_UNAVAILABLE
    return jsonify(success_response(payload)), status
