# utils/billing.py
"""
Factura actual de tarjetas de crédito.

La factura no se guarda: se reconstruye en cada consulta a partir de las
transacciones, simulando el ciclo de facturación vigente y repartiendo las
compras en cuotas entre los ciclos siguientes.
"""
import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select

from models.account import Account
from models.transaction import Transaction
from utils.fechas import a_fecha, fecha_desbordada, sumar_meses
from utils.investment_math import a_decimal

logger = logging.getLogger(__name__)

TIPOS_GASTO = ("expense", "card_expense")

UMBRAL_ALTO = 90
UMBRAL_MEDIO = 75


def calcular_ciclo_facturacion(dia_cierre: int | None, ahora) -> tuple[date, date] | None:
    """
    Ciclo de facturación vigente [inicio, fin) para un día de cierre.

    ej. cierre día 10:
      - hoy día 15 -> del 11 de este mes al 11 del mes siguiente
      - hoy día 5  -> del 11 del mes anterior al 11 de este mes

    Sin día de cierre o fuera de 1..31 no hay ciclo.
    """
    if not dia_cierre or dia_cierre < 1 or dia_cierre > 31:
        return None

    hoy = a_fecha(ahora)
    anio, mes = hoy.year, hoy.month

    if hoy.day > dia_cierre:
        # ya pasó el cierre de este mes
        inicio = fecha_desbordada(anio, mes, dia_cierre + 1)
        fin = fecha_desbordada(anio, mes + 1, dia_cierre + 1)
    else:
        inicio = fecha_desbordada(anio, mes - 1, dia_cierre + 1)
        fin = fecha_desbordada(anio, mes, dia_cierre + 1)

    return inicio, fin


def fecha_cargo_parcela(fecha_compra: date, indice: int, dia_cierre: int | None) -> date:
    """
    Fecha aproximada en la que cae la cuota `indice` (0 = primera).

    Se suma `indice` meses a la compra y se sustituye el día por el de cierre
    de la tarjeta (o se deja el de la cuota si no hay cierre). Es una
    aproximación, no el apunte real de cada cuota.
    """
    fecha_parcela = sumar_meses(fecha_compra, indice)
    dia = dia_cierre or fecha_parcela.day
    return fecha_desbordada(fecha_parcela.year, fecha_parcela.month, dia)


def calcular_factura_actual(transacciones, cuenta_id, dia_cierre: int | None, ahora) -> Decimal:
    """Suma de gastos (con cuotas prorrateadas) que caen en el ciclo vigente."""
    total = Decimal("0")
    ciclo = calcular_ciclo_facturacion(dia_cierre, ahora)
    if ciclo is None:
        return total
    inicio, fin = ciclo

    for t in transacciones:
        if t.cuenta_id != cuenta_id or t.tipo not in TIPOS_GASTO or t.monto is None:
            continue
        fecha = a_fecha(t.fecha)
        if fecha is None:
            continue
        valor = a_decimal(t.monto)

        if not t.es_parcelado:
            if inicio <= fecha < fin:
                total += valor
            continue

        # en cuotas: como mucho una cuota por ciclo
        n = t.total_parcelas or 0
        if n < 1:
            continue
        por_parcela = valor / n
        for i in range(n):
            cargo = fecha_cargo_parcela(fecha, i, dia_cierre)
            if inicio <= cargo < fin:
                total += por_parcela

    return total


def calcular_utilizacion(factura, limite) -> Decimal | None:
    """Fracción del límite consumida (0-1); None si no hay límite positivo."""
    if limite is None:
        return None
    limite = a_decimal(limite)
    if limite <= 0:
        return None
    return a_decimal(factura) / limite


def porcentaje_utilizacion(utilizacion) -> int | None:
    if utilizacion is None:
        return None
    return int((a_decimal(utilizacion) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def nivel_utilizacion(porcentaje) -> str:
    """'high' desde 90 %, 'medium' desde 75 %, si no 'low'."""
    if porcentaje >= UMBRAL_ALTO:
        return "high"
    if porcentaje >= UMBRAL_MEDIO:
        return "medium"
    return "low"


def cuentas_con_factura(session, ahora=None) -> list[dict]:
    """
    Devuelve las cuentas (por nombre) con la factura actual y la utilización
    del límite calculadas sobre todas las transacciones.
    """
    ahora = ahora or datetime.now()
    cuentas = session.scalars(select(Account).order_by(Account.nombre)).all()
    transacciones = session.scalars(
        select(Transaction).where(Transaction.tipo.in_(TIPOS_GASTO))
    ).all()
    logger.debug("Calculando factura de %d cuentas sobre %d gastos", len(cuentas), len(transacciones))

    resultado = []
    for c in cuentas:
        factura = calcular_factura_actual(transacciones, c.id, c.dia_cierre, ahora)
        utilizacion = calcular_utilizacion(factura, c.limite)
        porcentaje = porcentaje_utilizacion(utilizacion)
        fila = c.to_dict()
        fila.update({
            "factura_actual": factura,
            "utilizacion": utilizacion,
            "porcentaje_utilizacion": porcentaje,
            "nivel_utilizacion": nivel_utilizacion(porcentaje) if porcentaje is not None else None,
        })
        resultado.append(fila)
    return resultado
