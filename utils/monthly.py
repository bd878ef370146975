# utils/monthly.py
"""
Vista mensual: movimientos del mes (con cuotas repartidas), totales,
flujo diario, gastos por categoría, cuotas futuras e informe de gastos.
"""
import calendar
import csv
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import select

from models.account import Account
from models.transaction import Transaction
from utils.fechas import a_fecha, clave_mes, sumar_meses
from utils.investment_math import a_decimal
from utils.ledger import importe_parcela

logger = logging.getLogger(__name__)

SIN_CATEGORIA = "Sin categoría"
MODOS_CATEGORIA = ("expense", "income", "mixed")


def _es_gasto(tipo: str) -> bool:
    return tipo in ("expense", "card_expense")


def _entrada(t, **cambios) -> dict:
    fila = {
        "id": t.id,
        "tipo": t.tipo,
        "cuenta_id": t.cuenta_id,
        "monto": a_decimal(t.monto),
        "fecha": a_fecha(t.fecha),
        "descripcion": t.descripcion,
        "categoria": t.categoria,
        "es_parcelado": bool(t.es_parcelado),
        "total_parcelas": t.total_parcelas,
        "parcelas_pagadas": t.parcelas_pagadas or 0,
        "pagado": bool(t.pagado),
        "indice_parcela": None,
    }
    fila.update(cambios)
    return fila


def expandir_mes(transacciones, anio: int, mes: int) -> List[dict]:
    """
    Entradas del mes `anio`-`mes`. Una compra en cuotas aparece una vez por
    cada cuota que cae en el mes (fecha de compra + i meses), con el importe
    de la cuota y pagada si i < parcelas_pagadas.
    """
    entradas = []
    for t in transacciones:
        inicio = a_fecha(t.fecha)
        if inicio is None or t.monto is None:
            continue

        n = t.total_parcelas or 0
        if not t.es_parcelado or n <= 0:
            if inicio.year == anio and inicio.month == mes:
                entradas.append(_entrada(t))
            continue

        pagadas = t.parcelas_pagadas or 0
        for i in range(n):
            fecha_parcela = sumar_meses(inicio, i)
            if fecha_parcela.year == anio and fecha_parcela.month == mes:
                entradas.append(_entrada(
                    t,
                    monto=importe_parcela(t.monto, n, i),
                    fecha=fecha_parcela,
                    pagado=i < pagadas,
                    indice_parcela=i,
                ))
    return entradas


def resumen_mes(entradas: List[dict]) -> Dict[str, Decimal]:
    """
    Totales del mes. `gastos_pendientes` suma lo que queda por pagar: las
    cuotas restantes de cada compra en cuotas o el gasto entero si no está pagado.
    """
    ingresos = Decimal("0")
    gastos = Decimal("0")
    pendientes = Decimal("0")
    for e in entradas:
        if e["tipo"] == "income":
            ingresos += e["monto"]
            continue
        if not _es_gasto(e["tipo"]):
            continue
        gastos += e["monto"]
        n = e["total_parcelas"] or 0
        if e["es_parcelado"] and n > 0:
            restantes = n - e["parcelas_pagadas"]
            if restantes > 0:
                # e["monto"] ya es el importe de una cuota
                pendientes += e["monto"] * restantes
        elif not e["pagado"]:
            pendientes += e["monto"]
    return {
        "ingresos": ingresos,
        "gastos": gastos,
        "neto": ingresos - gastos,
        "gastos_pendientes": pendientes,
    }


def flujo_diario(entradas: List[dict], anio: int, mes: int) -> List[dict]:
    """Ingresos y gastos por día del mes con el neto acumulado."""
    dias = calendar.monthrange(anio, mes)[1]
    por_dia = [{"dia": d, "ingresos": Decimal("0"), "gastos": Decimal("0"), "neto": Decimal("0")}
               for d in range(1, dias + 1)]
    for e in entradas:
        fila = por_dia[e["fecha"].day - 1]
        if e["tipo"] == "income":
            fila["ingresos"] += e["monto"]
        elif _es_gasto(e["tipo"]):
            fila["gastos"] += e["monto"]

    acumulado = Decimal("0")
    for fila in por_dia:
        acumulado += fila["ingresos"] - fila["gastos"]
        fila["neto"] = acumulado
    return por_dia


def totales_por_categoria(entradas: List[dict], modo: str = "expense") -> List[dict]:
    """Total por categoría, de mayor a menor. modo: expense | income | mixed."""
    if modo not in MODOS_CATEGORIA:
        raise ValueError(f"Modo de categoría desconocido: {modo}")
    totales = defaultdict(Decimal)
    for e in entradas:
        if modo == "expense" and not _es_gasto(e["tipo"]):
            continue
        if modo == "income" and e["tipo"] != "income":
            continue
        totales[e["categoria"] or SIN_CATEGORIA] += e["monto"]
    items = [{"categoria": c, "total": total} for c, total in totales.items()]
    return sorted(items, key=lambda i: i["total"], reverse=True)


def meses_disponibles(transacciones, hoy: date) -> List[str]:
    """Claves 'YYYY-MM' con movimientos, más el mes actual; la más reciente primero."""
    claves = {clave_mes(hoy)}
    for t in transacciones:
        f = a_fecha(t.fecha)
        if f is not None:
            claves.add(clave_mes(f))
    return sorted(claves, reverse=True)


def parcelas_futuras(transacciones, hoy: date, meses: int = 12) -> List[dict]:
    """
    Total de cuotas aún no pagadas que caen en los próximos `meses` meses
    (a partir del mes siguiente a `hoy`).
    """
    actual = clave_mes(hoy)
    limite = clave_mes(sumar_meses(hoy.replace(day=1), meses))
    totales = defaultdict(Decimal)
    for t in transacciones:
        n = t.total_parcelas or 0
        inicio = a_fecha(t.fecha)
        if not t.es_parcelado or n <= 0 or inicio is None or not _es_gasto(t.tipo):
            continue
        for i in range(t.parcelas_pagadas or 0, n):
            clave = clave_mes(sumar_meses(inicio, i))
            if actual < clave <= limite:
                totales[clave] += importe_parcela(t.monto, n, i)

    resultado = []
    for clave in sorted(totales):
        anio, mes = clave.split("-")
        resultado.append({
            "clave": clave,
            "etiqueta": f"{mes}/{anio[2:]}",
            "total": totales[clave],
        })
    return resultado


def informe_gastos_mes(session, anio: int, mes: int) -> Dict:
    """
    Gastos del mes ordenados por fecha, con el nombre de la cuenta y el total.
    """
    if not anio or not mes or mes < 1 or mes > 12:
        raise ValueError("Parámetros de año/mes inválidos")

    inicio = date(anio, mes, 1)
    fin = sumar_meses(inicio, 1)

    filas = session.execute(
        select(Transaction, Account.nombre)
        .outerjoin(Account, Transaction.cuenta_id == Account.id)
        .where(
            Transaction.fecha >= inicio,
            Transaction.fecha < fin,
            Transaction.tipo.in_(("expense", "card_expense")),
        )
        .order_by(Transaction.fecha, Transaction.id)
    ).all()

    detalle = []
    total = Decimal("0")
    for t, nombre_cuenta in filas:
        monto = a_decimal(t.monto)
        total += monto
        detalle.append({
            "fecha": t.fecha,
            "descripcion": t.descripcion or "(sin descripción)",
            "categoria": t.categoria or "-",
            "cuenta": nombre_cuenta or "-",
            "monto": monto,
        })

    logger.debug("Informe %04d-%02d: %d gastos, total %s", anio, mes, len(detalle), total)
    return {"anio": anio, "mes": mes, "detalle": detalle, "total": total}


def exportar_informe_csv(informe: Dict, ruta) -> None:
    with open(ruta, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["fecha", "descripcion", "categoria", "cuenta", "importe"])
        for e in informe["detalle"]:
            writer.writerow([
                e["fecha"].isoformat(),
                e["descripcion"],
                e["categoria"],
                e["cuenta"],
                f"{e['monto']:.2f}",
            ])
        writer.writerow(["", "", "", "TOTAL", f"{informe['total']:.2f}"])
