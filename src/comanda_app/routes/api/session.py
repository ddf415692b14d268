"""
Session API - Estado de navegação que sobrevive à troca de página.
"""

from flask import Blueprint, jsonify, request, session

from comanda_shared.schemas import PageStateRequest, SessionStateRequest
from comanda_shared.serializers import success_response
from comanda_shared.session_state import SessionState

session_bp = Blueprint("session", __name__)


def _state() -> SessionState:
    return SessionState(session)


@session_bp.get("/session/state")
def get_session_state():
    state = _state()
    return jsonify(
        success_response(
            {
                "current_route": state.current_route,
                "status_filter": state.status_filter,
                "table_filter": state.table_filter,
            }
        )
    )


@session_bp.put("/session/state")
def save_session_state():
    """Only the keys present in the body change; ``table_filter: null`` clears it."""
    data = SessionStateRequest(**(request.get_json(silent=True) or {}))
    changes = data.model_dump(exclude_unset=True)
    state = _state()
    if changes.get("current_route"):
        state.current_route = changes["current_route"]
    if changes.get("status_filter"):
        state.status_filter = changes["status_filter"]
    if "table_filter" in changes:
        state.table_filter = changes["table_filter"]
    return get_session_state()


@session_bp.delete("/session/state")
def clear_session_state():
    _state().clear()
    return jsonify(success_response(None))


@session_bp.get("/session/pages/<page>")
def load_page_state(page: str):
    return jsonify(success_response(_state().load_page_state(page)))


@session_bp.put("/session/pages/<page>")
def save_page_state(page: str):
    data = PageStateRequest(**(request.get_json(silent=True) or {}))
    _state().save_page_state(page, data.state)
    return jsonify(success_response(data.state))
