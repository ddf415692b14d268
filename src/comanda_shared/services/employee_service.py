"""Service for managing employees and the owner's company profile."""

from __future__ import annotations

from comanda_shared.constants import EmployeeRole, Tables
from comanda_shared.logging_config import get_logger
from comanda_shared.rows import Employee
from comanda_shared.supabase.errors import GatewayError
from comanda_shared.supabase.gateway import SupabaseGateway
from comanda_shared.validation import ValidationError, validate_choice, validate_required

logger = get_logger(__name__)

EMPLOYEE_FIELDS = {"name", "cpf", "role", "active"}
COMPANY_FIELDS = {"name", "cnpj", "address", "contact_phone"}
MIN_PASSWORD_LENGTH = 6


def get_company_profile(gateway: SupabaseGateway, user_id: str) -> dict | None:
    rows = gateway.read(Tables.COMPANY_PROFILES, {"user_id": user_id}, limit=1)
    return rows[0] if rows else None


def upsert_company_profile(gateway: SupabaseGateway, user_id: str, data: dict) -> dict:
    payload = {key: value for key, value in data.items() if key in COMPANY_FIELDS}
    validate_required(payload.get("name"), "Nome da empresa")
    payload["user_id"] = user_id
    profile = gateway.upsert(Tables.COMPANY_PROFILES, payload, on_conflict="user_id")
    logger.info(f"Company profile saved for user {user_id}")
    return profile


def require_company_id(gateway: SupabaseGateway, user_id: str) -> str:
    profile = get_company_profile(gateway, user_id)
    if profile is None:
        raise ValidationError("Cadastre os dados da empresa antes de gerenciar funcionários")
    return profile["id"]


def list_employees(gateway: SupabaseGateway, company_id: str) -> list[Employee]:
    """List the company's employees; ``has_auth`` tells whether they can log in."""
    employees = [
        Employee.model_validate(row) for row in gateway.get_employees_by_company(company_id)
    ]
    logger.info(f"Listed {len(employees)} employees for company {company_id}")
    return employees


def create_employee(gateway: SupabaseGateway, company_id: str, data: dict) -> Employee:
    """
    Create an employee. When email and password are given a confirmed login
    is created first; if the employee row then fails, the login is removed.
    """
    name = data.get("name")
    role = data.get("role")
    email = data.get("email")
    password = data.get("password")

    validate_required(name, "Nome")
    validate_choice(role, EmployeeRole.all_values(), "Função")
    if bool(email) != bool(password):
        raise ValidationError("Email e senha devem ser informados juntos")
    if password and len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres")

    auth_user_id = None
    if email:
        auth_user_id = gateway.create_auth_user(
            email, password, {"name": name, "role": role, "is_employee": True}
        )

    try:
        row = gateway.create(
            Tables.EMPLOYEES,
            {
                "company_id": company_id,
                "name": name,
                "cpf": data.get("cpf"),
                "role": role,
                "auth_user_id": auth_user_id,
                "active": True,
            },
        )
    except GatewayError:
        if auth_user_id:
            logger.warning(f"Removing login {auth_user_id} after failed employee insert")
            gateway.delete_auth_user(auth_user_id)
        raise

    if auth_user_id:
        try:
            gateway.create(Tables.USER_ROLES, {"user_id": auth_user_id, "role": role})
        except GatewayError as exc:
            logger.error(f"Error creating role for employee login {auth_user_id}: {exc}")

    employee = Employee.model_validate({**row, "has_auth": bool(auth_user_id)})
    logger.info(f"Employee {employee.id} created for company {company_id}")
    return employee


def update_employee(
    gateway: SupabaseGateway, company_id: str, employee_id: str, data: dict
) -> Employee:
    """Update an employee of ``company_id``; other companies' rows are not found."""
    payload = {key: value for key, value in data.items() if key in EMPLOYEE_FIELDS}
    if not payload:
        raise ValidationError("Nenhum campo válido para atualizar")
    if "name" in payload:
        validate_required(payload["name"], "Nome")
    if "role" in payload:
        validate_choice(payload["role"], EmployeeRole.all_values(), "Função")
    row = gateway.update(Tables.EMPLOYEES, employee_id, payload, scope={"company_id": company_id})
    return Employee.model_validate({**row, "has_auth": bool(row.get("auth_user_id"))})


def set_employee_active(
    gateway: SupabaseGateway, company_id: str, employee_id: str, active: bool
) -> Employee:
    employee = update_employee(gateway, company_id, employee_id, {"active": active})
    logger.info(f"Employee {employee_id} {'activated' if active else 'deactivated'}")
    return employee
