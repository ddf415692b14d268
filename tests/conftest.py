from __future__ import annotations

import atexit
import time
from decimal import Decimal

import jwt
import pytest

from comanda_shared.actor import Actor
from comanda_shared.config import AppConfig
from comanda_shared.services.restaurant_store import RestaurantStore
from comanda_shared.supabase.gateway import SupabaseGateway
from comanda_shared.supabase.realtime import ChangeSubscriptionRegistry, InMemoryChannelTransport
from fakes import FakeSupabaseClient

JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"
OWNER_ID = "owner-1"


@pytest.fixture
def fake_client():
    return FakeSupabaseClient()


@pytest.fixture
def transport():
    return InMemoryChannelTransport()


@pytest.fixture
def registry(transport):
    registry = ChangeSubscriptionRegistry(transport, prefix="test")
    registry.start()
    yield registry
    registry.stop()


@pytest.fixture
def gateway(fake_client, registry):
    return SupabaseGateway(fake_client, publisher=registry)


@pytest.fixture
def owner():
    return Actor(user_id=OWNER_ID, email="ana@example.com", name="Ana")


@pytest.fixture
def restaurant(fake_client, owner):
    return fake_client.seed(
        "restaurantes",
        user_id=owner.user_id,
        nome="Cantina da Ana",
        telefone="11 99999-0000",
        configuracoes={},
    )


@pytest.fixture
def seed_table(fake_client, restaurant):
    def _seed(numero: int, capacidade: int = 4, status: str = "livre", **extra):
        return fake_client.seed(
            "mesas",
            restaurante_id=restaurant["id"],
            numero=numero,
            capacidade=capacidade,
            status=status,
            garcom=None,
            horario_abertura=None,
            valor_total=0,
            **extra,
        )

    return _seed


@pytest.fixture
def seed_product(fake_client, restaurant):
    def _seed(nome: str, preco: str, categoria: str = "Pratos", **extra):
        values = {
            "restaurante_id": restaurant["id"],
            "nome": nome,
            "preco": float(Decimal(preco)),
            "categoria": categoria,
            "disponivel": True,
            "estoque": 10,
            "estoque_minimo": 2,
        }
        values.update(extra)
        return fake_client.seed("produtos", **values)

    return _seed


@pytest.fixture
def notices():
    return []


@pytest.fixture
def make_store(gateway, registry, owner, restaurant, notices):
    created = []

    def _make(start: bool = True) -> RestaurantStore:
        store = RestaurantStore(
            gateway,
            registry=registry,
            actor=owner,
            notifier=lambda level, text: notices.append((level, text)),
        )
        store.refresh()
        if start:
            store.start()
        created.append(store)
        return store

    yield _make
    for store in created:
        store.stop()


@pytest.fixture
def store(make_store):
    return make_store()


# ---------------------------------------------------------------------------
# Flask application
# ---------------------------------------------------------------------------


@pytest.fixture
def app_config():
    return AppConfig(
        app_name="chefcomanda-test",
        supabase_url="https://demo.supabase.co",
        supabase_anon_key="anon-key",
        supabase_service_role_key="",
        supabase_jwt_secret=JWT_SECRET,
        supabase_timeout_seconds=10,
        database_url="sqlite://",
        redis_url="redis://localhost:6379/0",
        realtime_channel_prefix="test",
        realtime_enabled=False,
        storage_bucket_products="produtos",
        service_fee_rate=Decimal("0.10"),
        cover_charge_per_seat=Decimal("15.00"),
        secret_key="test-secret-key",
        log_level="WARNING",
        debug_mode=True,
    )


@pytest.fixture
def app(app_config, gateway, registry):
    from comanda_app.app import create_app

    app = create_app(app_config, gateway=gateway, registry=registry)
    app.config["TESTING"] = True
    yield app
    services = app.extensions["chefcomanda"]
    services.shutdown()
    atexit.unregister(services.shutdown)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_token():
    def _make(
        user_id: str = OWNER_ID,
        role: str | None = None,
        name: str = "Ana",
        expires_in: int = 3600,
        secret: str = JWT_SECRET,
    ) -> str:
        metadata = {"name": name}
        if role:
            metadata["role"] = role
        claims = {
            "sub": user_id,
            "aud": "authenticated",
            "email": f"{user_id}@example.com",
            "exp": int(time.time()) + expires_in,
            "user_metadata": metadata,
        }
        return jwt.encode(claims, secret, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(make_token):
    return {"Authorization": f"Bearer {make_token()}"}
