"""
Employees API - Empresa e funcionários

Todas as rotas exigem o dono da conta (papel admin). Funcionários criados
com email e senha ganham um login próprio com o papel escolhido.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from comanda_shared.jwt_middleware import admin_required, get_current_actor
from comanda_shared.logging_config import get_logger
from comanda_shared.schemas import (
    CompanyProfileRequest,
    CreateEmployeeRequest,
    UpdateEmployeeRequest,
)
from comanda_shared.serializers import error_response, success_response
from comanda_shared.services import employee_service

from comanda_app.extensions import get_gateway

employees_bp = Blueprint("employees", __name__)
logger = get_logger(__name__)


@employees_bp.get("/company")
@admin_required
def get_company():
    profile = employee_service.get_company_profile(get_gateway(), get_current_actor().user_id)
    if profile is None:
        return jsonify(error_response("Empresa não cadastrada")), HTTPStatus.NOT_FOUND
    return jsonify(success_response(profile))


@employees_bp.put("/company")
@admin_required
def save_company():
    data = CompanyProfileRequest(**(request.get_json(silent=True) or {}))
    profile = employee_service.upsert_company_profile(
        get_gateway(), get_current_actor().user_id, data.model_dump()
    )
    return jsonify(success_response(profile))


@employees_bp.get("/employees")
@admin_required
def list_employees():
    gateway = get_gateway()
    company_id = employee_service.require_company_id(gateway, get_current_actor().user_id)
    return jsonify(success_response(employee_service.list_employees(gateway, company_id)))


@employees_bp.post("/employees")
@admin_required
def create_employee():
    """
    Cria um funcionário.

    Body: Ver CreateEmployeeRequest schema
    """
    data = CreateEmployeeRequest(**(request.get_json(silent=True) or {}))
    gateway = get_gateway()
    actor = get_current_actor()
    company_id = employee_service.require_company_id(gateway, actor.user_id)
    employee = employee_service.create_employee(gateway, company_id, data.model_dump())
    logger.info(f"Admin {actor.user_id} created employee {employee.id}")
    return jsonify(success_response(employee)), HTTPStatus.CREATED


@employees_bp.put("/employees/<employee_id>")
@admin_required
def update_employee(employee_id: str):
    data = UpdateEmployeeRequest(**(request.get_json(silent=True) or {}))
    gateway = get_gateway()
    company_id = employee_service.require_company_id(gateway, get_current_actor().user_id)
    employee = employee_service.update_employee(
        gateway, company_id, employee_id, data.model_dump(exclude_unset=True)
    )
    return jsonify(success_response(employee))


@employees_bp.post("/employees/<employee_id>/activate")
@admin_required
def activate_employee(employee_id: str):
    return _set_active(employee_id, True)


@employees_bp.post("/employees/<employee_id>/deactivate")
@admin_required
def deactivate_employee(employee_id: str):
    return _set_active(employee_id, False)


def _set_active(employee_id: str, active: bool):
    gateway = get_gateway()
    company_id = employee_service.require_company_id(gateway, get_current_actor().user_id)
    employee = employee_service.set_employee_active(gateway, company_id, employee_id, active)
    return jsonify(success_response(employee))
