"""
State transitions for order items and tables.

Order items only move forward along pendente -> preparando -> pronto ->
entregue; cancelling is allowed from any non-terminal state. Once an item is
entregue or cancelado it never changes again.

Tables follow livre -> ocupada -> aguardando -> livre, with the shortcut
ocupada -> livre for a forced release.
"""

from __future__ import annotations

from comanda_shared.constants import (
    ITEM_STATUS_ORDER,
    TABLE_TRANSITIONS,
    TERMINAL_ITEM_STATUSES,
    ItemStatus,
    TableStatus,
)


class StateTransitionError(Exception):
    """Error raised when a state transition is invalid."""

    def __init__(self, message: str, current_status: str | None, target_status: str | None):
        super().__init__(message)
        self.current_status = current_status
        self.target_status = target_status


def _coerce_item_status(value: ItemStatus | str) -> ItemStatus:
    try:
        return ItemStatus(value)
    except ValueError:
        raise StateTransitionError(f"Status de item desconhecido: {value}", None, str(value))


def can_transition_item(current: ItemStatus | str, target: ItemStatus | str) -> bool:
    current_status = ItemStatus(current)
    target_status = ItemStatus(target)
    if current_status in TERMINAL_ITEM_STATUSES:
        return False
    if target_status is ItemStatus.CANCELLED:
        return True
    return ITEM_STATUS_ORDER.index(target_status) > ITEM_STATUS_ORDER.index(current_status)


def validate_item_transition(current: ItemStatus | str, target: ItemStatus | str) -> ItemStatus:
    """Return the target status, or raise if the move is not allowed."""
    current_status = _coerce_item_status(current)
    target_status = _coerce_item_status(target)

    if current_status in TERMINAL_ITEM_STATUSES:
        raise StateTransitionError(
            f"Item já está {current_status.value}; o status não pode mais mudar",
            current_status.value,
            target_status.value,
        )
    if not can_transition_item(current_status, target_status):
        raise StateTransitionError(
            f"Transição inválida: {current_status.value} → {target_status.value}",
            current_status.value,
            target_status.value,
        )
    return target_status


def next_item_status(current: ItemStatus | str) -> ItemStatus | None:
    """The next forward step for kitchen displays, or None at the end."""
    current_status = ItemStatus(current)
    if current_status in TERMINAL_ITEM_STATUSES:
        return None
    position = ITEM_STATUS_ORDER.index(current_status)
    return ITEM_STATUS_ORDER[position + 1]


def validate_table_transition(current: TableStatus | str, target: TableStatus | str) -> str:
    """Return the action name for the move, or raise if it is not allowed."""
    current_status = TableStatus(current)
    target_status = TableStatus(target)
    action = TABLE_TRANSITIONS.get((current_status, target_status))
    if action is None:
        raise StateTransitionError(
            f"Transição de mesa inválida: {current_status.value} → {target_status.value}",
            current_status.value,
            target_status.value,
        )
    return action
