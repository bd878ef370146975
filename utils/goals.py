# utils/goals.py
"""
Metas: un valor objetivo, lo acumulado hasta ahora y una fecha límite opcional.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from models.goal import Goal
from utils.fechas import a_fecha
from utils.investment_math import a_decimal

logger = logging.getLogger(__name__)

CAMPOS_EDITABLES = ("nombre", "objetivo", "actual", "fecha_limite")


def progreso_meta(objetivo, actual) -> Decimal:
    """Fracción alcanzada, con tope en 1; 0 si el objetivo no es positivo."""
    objetivo = a_decimal(objetivo)
    if objetivo <= 0:
        return Decimal("0")
    return min(a_decimal(actual) / objetivo, Decimal("1"))


def porcentaje_meta(objetivo, actual) -> int:
    return int((progreso_meta(objetivo, actual) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _validar(nombre, objetivo, actual, fecha_limite):
    nombre = (nombre or "").strip()
    if not nombre:
        raise ValueError("Dale un nombre a la meta")
    objetivo = a_decimal(objetivo)
    if objetivo <= 0:
        raise ValueError("El valor objetivo debe ser mayor que cero")
    actual = a_decimal(actual)
    if actual < 0 or actual > objetivo:
        raise ValueError("El valor actual no puede ser negativo ni mayor que el objetivo")
    limite = None
    if fecha_limite is not None and fecha_limite != "":
        limite = a_fecha(fecha_limite)
        if limite is None:
            raise ValueError("Fecha límite inválida")
    return nombre, objetivo, actual, limite


def _meta(session, meta_id: int) -> Goal:
    meta = session.get(Goal, meta_id)
    if meta is None:
        raise ValueError(f"Meta {meta_id} no encontrada")
    return meta


def crear_meta(session, nombre: str, objetivo, actual=0, fecha_limite=None) -> Goal:
    nombre, objetivo, actual, limite = _validar(nombre, objetivo, actual, fecha_limite)
    meta = Goal(nombre=nombre, objetivo=objetivo, actual=actual, fecha_limite=limite)
    try:
        session.add(meta)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise
    logger.info("Meta %s creada (objetivo %s)", nombre, objetivo)
    return meta


def actualizar_meta(session, meta_id: int, **cambios) -> Goal:
    """
    Cambia los campos que se pasen (nombre, objetivo, actual, fecha_limite);
    fecha_limite=None quita la fecha. Se valida la meta completa resultante.
    """
    desconocidos = set(cambios) - set(CAMPOS_EDITABLES)
    if desconocidos:
        raise ValueError(f"Campos desconocidos: {', '.join(sorted(desconocidos))}")

    try:
        meta = _meta(session, meta_id)
        datos = {
            "nombre": meta.nombre,
            "objetivo": meta.objetivo,
            "actual": meta.actual,
            "fecha_limite": meta.fecha_limite,
        }
        datos.update(cambios)
        meta.nombre, meta.objetivo, meta.actual, meta.fecha_limite = _validar(**datos)
        session.commit()
    except (ValueError, SQLAlchemyError):
        session.rollback()
        raise
    return meta


def borrar_meta(session, meta_id: int) -> None:
    try:
        session.delete(_meta(session, meta_id))
        session.commit()
    except (ValueError, SQLAlchemyError):
        session.rollback()
        raise
    logger.info("Meta %s borrada", meta_id)


def listar_metas(session) -> list[dict]:
    """Metas por fecha límite (las que no tienen, al final) con su progreso."""
    metas = session.scalars(select(Goal).order_by(Goal.fecha_limite.is_(None), Goal.fecha_limite, Goal.id)).all()
    return [
        {
            "id": m.id,
            "nombre": m.nombre,
            "objetivo": a_decimal(m.objetivo),
            "actual": a_decimal(m.actual),
            "fecha_limite": m.fecha_limite,
            "progreso": progreso_meta(m.objetivo, m.actual),
            "porcentaje": porcentaje_meta(m.objetivo, m.actual),
        }
        for m in metas
    ]
