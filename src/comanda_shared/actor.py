"""The signed-in user on whose behalf the back office acts."""

from __future__ import annotations

from dataclasses import dataclass

from comanda_shared.constants import UserRole


@dataclass(frozen=True)
class Actor:
    user_id: str
    email: str | None = None
    name: str | None = None
    role: str = UserRole.ADMIN.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def display_name(self) -> str:
        return self.name or (self.email.split("@")[0] if self.email else "Usuário")
