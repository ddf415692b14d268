"""
Centralized error handlers for Flask applications.
"""

from http import HTTPStatus

from flask import Flask, jsonify
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from comanda_shared.error_catalog import message
from comanda_shared.jwt_service import JWTError
from comanda_shared.logging_config import get_logger
from comanda_shared.serializers import error_response
from comanda_shared.services.state_machine import StateTransitionError
from comanda_shared.supabase.errors import GatewayError, NoRowsError, TransportError
from comanda_shared.validation import ValidationError

logger = get_logger(__name__)


def register_error_handlers(app: Flask) -> None:
    """
    Register centralized error handlers for the Flask app.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        """Handle custom validation errors."""
        logger.warning(f"Validation error: {e}")
        return jsonify(error_response(str(e))), HTTPStatus.BAD_REQUEST

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_validation_error(e: PydanticValidationError):
        """Handle Pydantic validation errors."""
        logger.warning(f"Pydantic validation error: {e}")
        details = e.errors(include_url=False, include_context=False)
        return jsonify(
            error_response(message("invalid_data"), {"details": details})
        ), HTTPStatus.BAD_REQUEST

    @app.errorhandler(StateTransitionError)
    def handle_state_transition_error(e: StateTransitionError):
        logger.warning(f"Rejected transition {e.current_status} -> {e.target_status}: {e}")
        return jsonify(
            error_response(
                str(e), {"current_status": e.current_status, "target_status": e.target_status}
            )
        ), HTTPStatus.CONFLICT

    @app.errorhandler(NoRowsError)
    def handle_no_rows(e: NoRowsError):
        logger.info(f"No rows for {e.operation}: {e.message}")
        return jsonify(error_response(message("not_found"))), HTTPStatus.NOT_FOUND

    @app.errorhandler(TransportError)
    def handle_transport_error(e: TransportError):
        logger.error(f"Transport error on {e.operation}: {e}")
        return jsonify(error_response(message("connection_error"))), HTTPStatus.BAD_GATEWAY

    @app.errorhandler(GatewayError)
    def handle_gateway_error(e: GatewayError):
        """Handle errors reported by the hosted database."""
        logger.error(f"Gateway error on {e.operation}: {e}")
        return jsonify(
            error_response(message("database_error"), {"code": e.code})
        ), HTTPStatus.BAD_GATEWAY

    @app.errorhandler(JWTError)
    def handle_jwt_error(e: JWTError):
        return jsonify(error_response(message("auth_required"))), e.status

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        """Handle HTTP exceptions from Werkzeug."""
        logger.warning(f"HTTP exception {e.code}: {e.description}")
        return jsonify(error_response(e.description or str(e))), e.code

    @app.errorhandler(Exception)
    def handle_generic_exception(e: Exception):
        """Handle any unhandled exceptions."""
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify(error_response(message("internal_error"))), HTTPStatus.INTERNAL_SERVER_ERROR

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify(error_response(message("not_found"))), HTTPStatus.NOT_FOUND

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify(error_response("Método não permitido")), HTTPStatus.METHOD_NOT_ALLOWED
