# utils/investments.py
import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from models.investment import Investment, InvestmentPurchase, TIPOS_INVERSION, MODOS_COMPRA
from utils.fechas import a_fecha
from utils.investment_math import (
    a_decimal,
    calcular_cantidad_desde_valor,
    calcular_nuevo_precio_medio,
    calcular_total,
)
from utils.market import SUFIJO_B3

logger = logging.getLogger(__name__)


def normalizar_simbolo(tipo: str, simbolo: str) -> str:
    """B3: mayúsculas, sin espacios ni sufijo '.SA'. Cripto: id en minúsculas sin espacios."""
    limpio = "".join((simbolo or "").split())
    if tipo == "b3":
        return limpio.upper().replace(SUFIJO_B3, "", 1)
    return limpio.lower()


def decimales_cantidad(tipo: str) -> int:
    # acciones en unidades enteras, cripto con 8 decimales
    return 8 if tipo == "crypto" else 0


def calcular_compra(
    tipo: str,
    modo: str,
    precio,
    cantidad=None,
    valor=None,
    cantidad_actual=0,
    precio_medio_actual=0,
) -> dict:
    """
    Previsualización de una compra.

    modo 'quantity': se compra `cantidad` y el total es cantidad * precio.
    modo 'value': se invierte `valor` y la cantidad sale truncada a los
    decimales del tipo de activo.
    """
    if modo not in MODOS_COMPRA:
        raise ValueError(f"Modo de compra desconocido: {modo}")
    precio = a_decimal(precio)

    if modo == "quantity":
        cant = a_decimal(cantidad)
        total = calcular_total(cant, precio)
    else:
        cant, total = calcular_cantidad_desde_valor(valor, precio, decimales_cantidad(tipo))

    return {
        "cantidad": cant,
        "total": total,
        "precio_medio": calcular_nuevo_precio_medio(cantidad_actual, precio_medio_actual, cant, precio),
    }


def registrar_compra(
    session,
    tipo: str,
    simbolo: str,
    fecha,
    precio,
    modo: str = "quantity",
    cantidad=None,
    valor=None,
    nombre: str | None = None,
) -> InvestmentPurchase:
    """
    Registra una compra: crea la posición si no existe o actualiza su cantidad y
    precio medio, y guarda el apunte de compra. Todo en un único commit.
    """
    if tipo not in TIPOS_INVERSION:
        raise ValueError(f"Tipo de activo desconocido: {tipo}")
    simbolo_n = normalizar_simbolo(tipo, simbolo)
    if not simbolo_n:
        raise ValueError("El símbolo es obligatorio")
    fecha = a_fecha(fecha)
    if fecha is None:
        raise ValueError("Fecha inválida")
    precio = a_decimal(precio)
    if precio <= 0:
        raise ValueError("El precio es obligatorio")
    if modo == "quantity" and (cantidad is None or a_decimal(cantidad) <= 0):
        raise ValueError("Indica la cantidad")
    if modo == "value" and (valor is None or a_decimal(valor) <= 0):
        raise ValueError("Indica el valor a invertir")

    try:
        posicion = session.query(Investment).filter_by(tipo=tipo, simbolo=simbolo_n).one_or_none()
        cant_actual = a_decimal(posicion.cantidad) if posicion else Decimal("0")
        medio_actual = a_decimal(posicion.precio_medio) if posicion else Decimal("0")

        compra = calcular_compra(tipo, modo, precio, cantidad, valor, cant_actual, medio_actual)
        if compra["cantidad"] <= 0:
            if modo == "value":
                raise ValueError("Valor insuficiente para comprar una unidad")
            raise ValueError("Cantidad inválida")

        if posicion is None:
            posicion = Investment(
                tipo=tipo,
                simbolo=simbolo_n,
                nombre=(nombre or "").strip() or None,
                moneda="BRL",
            )
            session.add(posicion)
        posicion.cantidad = cant_actual + compra["cantidad"]
        posicion.precio_medio = compra["precio_medio"]

        apunte = InvestmentPurchase(
            investment=posicion,
            fecha=fecha,
            precio_unitario=precio,
            cantidad=compra["cantidad"],
            total_invertido=compra["total"],
            modo=modo,
            valor_introducido=a_decimal(valor) if modo == "value" else None,
        )
        session.add(apunte)
        session.commit()
    except (ValueError, SQLAlchemyError):
        session.rollback()
        raise

    logger.info("Compra %s:%s cantidad=%s precio=%s", tipo, simbolo_n, compra["cantidad"], precio)
    return apunte


def resumen_cartera(session, precios: dict | None = None) -> list[dict]:
    """
    Posiciones con coste total y, si se pasa el precio actual por símbolo,
    valor de mercado y resultado.
    """
    precios = precios or {}
    filas = []
    for p in session.query(Investment).order_by(Investment.tipo, Investment.simbolo).all():
        cantidad = a_decimal(p.cantidad)
        coste = cantidad * a_decimal(p.precio_medio)
        precio = precios.get(p.simbolo)
        valor = cantidad * a_decimal(precio) if precio is not None else None
        filas.append({
            "tipo": p.tipo,
            "simbolo": p.simbolo,
            "nombre": p.nombre,
            "cantidad": cantidad,
            "precio_medio": a_decimal(p.precio_medio),
            "coste": coste,
            "valor": valor,
            "resultado": valor - coste if valor is not None else None,
        })
    return filas
