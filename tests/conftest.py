"""Fixtures de test: base SQLite en memoria con todas las tablas creadas."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable

import pytest
from sqlalchemy.pool import StaticPool

from database import db
from utils.ledger import crear_cuenta


@pytest.fixture(scope="function")
def session() -> Iterable:
    """Sesión sobre una base vacía (se descarta al terminar el test)."""
    db.init_app("sqlite://", echo=False, poolclass=StaticPool, connect_args={"check_same_thread": False})
    db.create_all()
    s = db.session()
    yield s
    s.close()
    db.close_all()


@pytest.fixture
def banco(session):
    return crear_cuenta(session, "Banco", tipo="bank", saldo_inicial=Decimal("1000"))


@pytest.fixture
def ahorro(session):
    return crear_cuenta(session, "Ahorro", tipo="bank", saldo_inicial=Decimal("500"))


@pytest.fixture
def tarjeta(session):
    return crear_cuenta(
        session,
        "Tarjeta",
        tipo="card",
        limite=Decimal("1000"),
        dia_cierre=10,
        dia_vencimiento=20,
    )


@pytest.fixture
def hoy() -> date:
    return date(2024, 3, 15)
