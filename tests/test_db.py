from __future__ import annotations

import pytest
from sqlalchemy import select

from comanda_shared import db
from comanda_shared.models import Base, Mesa, Restaurante


@pytest.fixture
def engine(app_config):
    db.dispose_engine()
    engine = db.init_engine(app_config)
    yield engine
    db.dispose_engine()


def test_init_db_creates_the_schema(engine):
    tables = db.init_db(Base.metadata)

    assert {
        "restaurantes",
        "mesas",
        "comandas",
        "itens_comanda",
        "produtos",
        "categorias",
        "vendas",
        "cardapio_online",
        "cmv_produtos",
        "company_profiles",
        "employees",
        "user_roles",
        "notifications",
        "caixas_operadores",
        "movimentacoes_caixa",
    } <= set(tables)


def test_init_db_is_repeatable(engine):
    first = db.init_db(Base.metadata)

    assert db.init_db(Base.metadata) == first


def test_session_commits_and_rolls_back(engine):
    db.init_db(Base.metadata)

    with db.get_session() as session:
        session.add(Restaurante(user_id="u1", nome="Cantina"))

    with pytest.raises(RuntimeError):
        with db.get_session() as session:
            session.add(Restaurante(user_id="u2", nome="Descartado"))
            session.flush()
            raise RuntimeError("abort")

    with db.get_session() as session:
        names = session.scalars(select(Restaurante.nome)).all()
    assert names == ["Cantina"]


def test_engine_requires_a_url(app_config):
    db.dispose_engine()
    app_config.database_url = ""

    with pytest.raises(RuntimeError):
        db.init_engine(app_config)


def test_init_db_without_engine_fails():
    db.dispose_engine()

    with pytest.raises(RuntimeError):
        db.init_db(Base.metadata)


def test_table_defaults(engine):
    db.init_db(Base.metadata)

    with db.get_session() as session:
        restaurant = Restaurante(user_id="u1", nome="Cantina")
        session.add(restaurant)
        session.flush()
        session.add(Mesa(restaurante_id=restaurant.id, numero=1, capacidade=4))

    with db.get_session() as session:
        table = session.scalars(select(Mesa)).one()
    assert table.status == "livre"
    assert table.id


def test_init_db_cli_command(app):
    db.dispose_engine()
    runner = app.test_cli_runner()

    try:
        result = runner.invoke(args=["init-db", "--database-url", "sqlite://"])
    finally:
        db.dispose_engine()

    assert result.exit_code == 0
    assert "Schema ready" in result.output
    assert "mesas" in result.output
