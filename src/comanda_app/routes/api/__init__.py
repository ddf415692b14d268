"""
Back-office API - Modular Blueprint Structure

Each module handles one resource; all of them hang off ``api_bp`` which the
factory mounts under ``/api``.
"""

import logging

from flask import Blueprint

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)

from .cash_registers import cash_registers_bp  # noqa: E402
from .employees import employees_bp  # noqa: E402
from .health import health_bp  # noqa: E402
from .menu import menu_bp  # noqa: E402
from .notifications import notifications_bp  # noqa: E402
from .orders import orders_bp  # noqa: E402
from .payments import payments_bp  # noqa: E402
from .products import products_bp  # noqa: E402
from .reports import reports_bp  # noqa: E402
from .restaurant import restaurant_bp  # noqa: E402
from .session import session_bp  # noqa: E402
from .tables import tables_bp  # noqa: E402

api_bp.register_blueprint(health_bp)
api_bp.register_blueprint(restaurant_bp)
api_bp.register_blueprint(tables_bp)
api_bp.register_blueprint(orders_bp)
api_bp.register_blueprint(payments_bp)
api_bp.register_blueprint(products_bp)
api_bp.register_blueprint(reports_bp)
api_bp.register_blueprint(notifications_bp)
api_bp.register_blueprint(menu_bp)
api_bp.register_blueprint(employees_bp)
api_bp.register_blueprint(cash_registers_bp)
api_bp.register_blueprint(session_bp)
