# utils/reconciler.py
from datetime import date
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import select, or_

from models.account import Account
from models.transaction import Transaction
from models.transfer import Transfer
from utils.investment_math import a_decimal
from utils.ledger import efecto_saldo

TOLERANCIA = Decimal("0.01")


def calcular_balance_cuenta(session, cuenta_id: int, fecha_objetivo: date) -> Decimal:
    """
    Recalcula el balance de la cuenta hasta `fecha_objetivo` desde el historial.
    Tiene en cuenta:
      - saldo inicial
      - ingresos y gastos (los gastos de tarjeta van a la factura, no al saldo;
        de las compras en cuotas solo cuentan las cuotas pagadas y los
        ingresos programados no cuentan)
      - transferencias enviadas y recibidas
    """
    cuenta = session.get(Account, cuenta_id)
    if not cuenta:
        raise ValueError(f"Cuenta {cuenta_id} no encontrada")

    saldo = a_decimal(cuenta.saldo_inicial)

    # --- 1) Transacciones ---
    transacciones = session.scalars(
        select(Transaction)
        .where(
            Transaction.cuenta_id == cuenta_id,
            Transaction.fecha <= fecha_objetivo,
            Transaction.tipo.in_(("income", "expense")),
        )
    ).all()
    for t in transacciones:
        saldo += efecto_saldo(t)

    # --- 2) Transferencias ---
    transferencias = session.scalars(
        select(Transfer)
        .where(
            or_(Transfer.cuenta_origen_id == cuenta_id, Transfer.cuenta_destino_id == cuenta_id),
            Transfer.fecha <= fecha_objetivo,
        )
    ).all()
    for tr in transferencias:
        monto = a_decimal(tr.monto)
        if tr.cuenta_origen_id == cuenta_id:
            saldo -= monto
        if tr.cuenta_destino_id == cuenta_id:
            saldo += monto

    return saldo


def resumen_cuentas(session) -> List[Dict]:
    """
    Ingresos, gastos y saldo recalculado (sobre el saldo inicial) por cuenta,
    ordenado por nombre. Una cuenta con límite positivo se trata como tarjeta.
    """
    cuentas = session.scalars(select(Account).order_by(Account.nombre)).all()
    por_id = {}
    for c in cuentas:
        inicial = a_decimal(c.saldo_inicial)
        por_id[c.id] = {
            "id": c.id,
            "nombre": c.nombre,
            "tipo": "card" if c.es_tarjeta else "bank",
            "saldo_inicial": inicial,
            "saldo_guardado": a_decimal(c.saldo),
            "saldo": inicial,
            "ingresos": Decimal("0"),
            "gastos": Decimal("0"),
            "limite": c.limite,
            "dia_cierre": c.dia_cierre,
            "dia_vencimiento": c.dia_vencimiento,
        }

    for t in session.scalars(select(Transaction).where(Transaction.cuenta_id.is_not(None))).all():
        fila = por_id.get(t.cuenta_id)
        if fila is None:
            continue
        efecto = efecto_saldo(t)
        if efecto > 0:
            fila["ingresos"] += efecto
        else:
            fila["gastos"] -= efecto
        fila["saldo"] += efecto

    for tr in session.scalars(select(Transfer)).all():
        monto = a_decimal(tr.monto)
        if tr.cuenta_origen_id in por_id:
            por_id[tr.cuenta_origen_id]["saldo"] -= monto
        if tr.cuenta_destino_id in por_id:
            por_id[tr.cuenta_destino_id]["saldo"] += monto

    return list(por_id.values())


def auditar_saldos(session, fecha_objetivo: date) -> List[Dict]:
    """
    Cuentas cuyo saldo guardado no coincide con el recalculado (diferencia
    mayor de un céntimo). Sirve para detectar datos desincronizados.
    """
    diferencias = []
    for c in session.scalars(select(Account).order_by(Account.nombre)).all():
        recalculado = calcular_balance_cuenta(session, c.id, fecha_objetivo)
        guardado = a_decimal(c.saldo)
        if abs(guardado - recalculado) > TOLERANCIA:
            diferencias.append({
                "id": c.id,
                "nombre": c.nombre,
                "saldo_guardado": guardado,
                "saldo_recalculado": recalculado,
                "diferencia": guardado - recalculado,
            })
    return diferencias


def calcular_detalle_cuenta(session, cuenta_id: int, fecha_inicio: date, fecha_fin: date):
    """
    Devuelve el listado de movimientos entre fecha_inicio y fecha_fin (inclusive)
    ordenados cronológicamente, con el saldo acumulado tras cada uno, y el saldo final.
    El saldo de partida es el recalculado justo antes de fecha_inicio.
    """
    # seguridad: fechas coherentes
    if fecha_fin < fecha_inicio:
        fecha_inicio, fecha_fin = fecha_fin, fecha_inicio

    cuenta = session.get(Account, cuenta_id)
    if not cuenta:
        raise ValueError(f"Cuenta {cuenta_id} no encontrada")

    # saldo al cierre del día anterior al rango
    saldo = calcular_balance_cuenta(session, cuenta_id, fecha_inicio) - _neto_del_dia(session, cuenta_id, fecha_inicio)

    movimientos = []
    transacciones = session.scalars(
        select(Transaction)
        .where(
            Transaction.cuenta_id == cuenta_id,
            Transaction.fecha >= fecha_inicio,
            Transaction.fecha <= fecha_fin,
            Transaction.tipo.in_(("income", "expense")),
        )
    ).all()
    for t in transacciones:
        efecto = efecto_saldo(t)
        if not efecto:
            continue
        movimientos.append({
            "fecha": t.fecha,
            "descripcion": t.descripcion or t.categoria or "",
            "monto": efecto,
            "tipo": t.tipo,
        })

    transferencias = session.scalars(
        select(Transfer)
        .where(
            or_(Transfer.cuenta_origen_id == cuenta_id, Transfer.cuenta_destino_id == cuenta_id),
            Transfer.fecha >= fecha_inicio,
            Transfer.fecha <= fecha_fin,
        )
    ).all()
    for tr in transferencias:
        monto = a_decimal(tr.monto)
        if tr.cuenta_origen_id == cuenta_id:
            movimientos.append({"fecha": tr.fecha, "descripcion": tr.descripcion or "Transferencia enviada",
                                "monto": -monto, "tipo": "transfer"})
        if tr.cuenta_destino_id == cuenta_id:
            movimientos.append({"fecha": tr.fecha, "descripcion": tr.descripcion or "Transferencia recibida",
                                "monto": monto, "tipo": "transfer"})

    tipo_orden = {"income": 1, "transfer": 2, "expense": 3}
    movimientos.sort(key=lambda m: (m["fecha"], tipo_orden.get(m["tipo"], 99)))

    for m in movimientos:
        saldo += m["monto"]
        m["saldo"] = saldo

    return movimientos, saldo


def _neto_del_dia(session, cuenta_id: int, dia: date) -> Decimal:
    # efecto de los movimientos del propio día, para partir del saldo de la víspera
    neto = Decimal("0")
    for t in session.scalars(
        select(Transaction).where(
            Transaction.cuenta_id == cuenta_id,
            Transaction.fecha == dia,
            Transaction.tipo.in_(("income", "expense")),
        )
    ).all():
        neto += efecto_saldo(t)
    for tr in session.scalars(
        select(Transfer).where(
            or_(Transfer.cuenta_origen_id == cuenta_id, Transfer.cuenta_destino_id == cuenta_id),
            Transfer.fecha == dia,
        )
    ).all():
        monto = a_decimal(tr.monto)
        if tr.cuenta_origen_id == cuenta_id:
            neto -= monto
        if tr.cuenta_destino_id == cuenta_id:
            neto += monto
    return neto
