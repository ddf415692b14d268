from __future__ import annotations

import pytest

from comanda_shared.jwt_service import InvalidTokenError, actor_from_claims


def test_owner_without_role_claim_is_admin():
    actor = actor_from_claims(
        {"sub": "u1", "email": "ana@example.com", "user_metadata": {"full_name": "Ana Souza"}}
    )

    assert actor.user_id == "u1"
    assert actor.is_admin
    assert actor.name == "Ana Souza"
    assert actor.display_name == "Ana Souza"


def test_staff_role_comes_from_metadata():
    actor = actor_from_claims({"sub": "u2", "user_metadata": {"role": "kitchen"}})

    assert actor.role == "kitchen"
    assert not actor.is_admin
    assert actor.display_name == "Usuário"


def test_unknown_role_falls_back_to_admin():
    actor = actor_from_claims({"sub": "u3", "app_role": "superuser"})

    assert actor.role == "admin"


def test_display_name_falls_back_to_email_user():
    actor = actor_from_claims({"sub": "u4", "email": "bia@example.com"})

    assert actor.display_name == "bia"


def test_claims_without_subject_are_invalid():
    with pytest.raises(InvalidTokenError):
        actor_from_claims({"email": "x@example.com"})
