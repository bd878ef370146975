"""Metas de ahorro: validación, edición y progreso."""
from datetime import date
from decimal import Decimal

import pytest

from models.goal import Goal
from utils.goals import (
    actualizar_meta,
    borrar_meta,
    crear_meta,
    listar_metas,
    porcentaje_meta,
    progreso_meta,
)


@pytest.mark.parametrize(
    "objetivo, actual, esperado",
    [
        (Decimal("1000"), Decimal("250"), Decimal("0.25")),
        (Decimal("1000"), Decimal("0"), Decimal("0")),
        (Decimal("1000"), Decimal("1000"), Decimal("1")),
        # con tope en 1
        (Decimal("100"), Decimal("150"), Decimal("1")),
        (Decimal("0"), Decimal("50"), Decimal("0")),
        (Decimal("-10"), Decimal("5"), Decimal("0")),
    ],
)
def test_progreso_meta(objetivo, actual, esperado):
    assert progreso_meta(objetivo, actual) == esperado


def test_porcentaje_redondea():
    assert porcentaje_meta(3, 1) == 33
    assert porcentaje_meta(3, 2) == 67
    assert porcentaje_meta(200, 1) == 1  # 0,5 % sube
    assert porcentaje_meta(100, 150) == 100


def test_crear_meta(session):
    meta = crear_meta(session, "  Viaje  ", "5000", actual="1250.50", fecha_limite="2025-12-31")
    assert meta.id is not None
    assert meta.nombre == "Viaje"
    assert meta.objetivo == Decimal("5000")
    assert meta.actual == Decimal("1250.50")
    assert meta.fecha_limite == date(2025, 12, 31)


@pytest.mark.parametrize(
    "kwargs, mensaje",
    [
        ({"nombre": " "}, "nombre"),
        ({"objetivo": 0}, "mayor que cero"),
        ({"objetivo": "-1"}, "mayor que cero"),
        ({"objetivo": "abc"}, "Número inválido"),
        ({"actual": "-0.01"}, "negativo"),
        ({"actual": "1000.01"}, "mayor que el objetivo"),
        ({"fecha_limite": "31/12/2025"}, "Fecha"),
    ],
)
def test_crear_meta_invalida(session, kwargs, mensaje):
    datos = {"nombre": "Fondo de emergencia", "objetivo": "1000", "actual": "0"}
    datos.update(kwargs)
    with pytest.raises(ValueError, match=mensaje):
        crear_meta(session, **datos)
    assert session.query(Goal).count() == 0


def test_actual_igual_al_objetivo_es_valido(session):
    meta = crear_meta(session, "Portátil", "1000", actual="1000")
    assert progreso_meta(meta.objetivo, meta.actual) == 1


def test_actualizar_meta(session):
    meta = crear_meta(session, "Viaje", "5000", fecha_limite=date(2025, 12, 31))
    actualizar_meta(session, meta.id, actual="2500", nombre="Viaje a Lisboa")

    session.expire_all()
    meta = session.get(Goal, meta.id)
    assert meta.nombre == "Viaje a Lisboa"
    assert meta.actual == Decimal("2500")
    assert meta.fecha_limite == date(2025, 12, 31)

    actualizar_meta(session, meta.id, fecha_limite=None)
    assert session.get(Goal, meta.id).fecha_limite is None


def test_actualizar_meta_valida_el_conjunto(session):
    meta = crear_meta(session, "Viaje", "5000", actual="4000")
    # bajar el objetivo por debajo de lo ya ahorrado no vale
    with pytest.raises(ValueError, match="mayor que el objetivo"):
        actualizar_meta(session, meta.id, objetivo="3000")

    session.expire_all()
    meta = session.get(Goal, meta.id)
    assert meta.objetivo == Decimal("5000")
    assert meta.actual == Decimal("4000")


def test_actualizar_campo_desconocido(session):
    meta = crear_meta(session, "Viaje", "5000")
    with pytest.raises(ValueError, match="desconocidos"):
        actualizar_meta(session, meta.id, color="azul")


def test_borrar_meta(session):
    meta = crear_meta(session, "Viaje", "5000")
    borrar_meta(session, meta.id)
    assert session.query(Goal).count() == 0
    with pytest.raises(ValueError, match="no encontrada"):
        borrar_meta(session, meta.id)


def test_listar_metas_por_fecha_limite(session):
    crear_meta(session, "Sin fecha", "100", actual="100")
    crear_meta(session, "Coche", "20000", actual="5000", fecha_limite=date(2026, 6, 30))
    crear_meta(session, "Vacaciones", "3000", actual="1000", fecha_limite=date(2025, 7, 1))

    filas = listar_metas(session)
    assert [f["nombre"] for f in filas] == ["Vacaciones", "Coche", "Sin fecha"]
    assert [f["porcentaje"] for f in filas] == [33, 25, 100]
    assert filas[1]["progreso"] == Decimal("0.25")
