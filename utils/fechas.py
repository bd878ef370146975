# utils/fechas.py
from datetime import date, datetime, timedelta
from dateutil.relativedelta import relativedelta


def a_fecha(valor) -> date | None:
    """Normaliza date / datetime / 'YYYY-MM-DD' a date. Devuelve None si no se puede."""
    if valor is None:
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    try:
        return datetime.strptime(str(valor)[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def fecha_desbordada(anio: int, mes: int, dia: int) -> date:
    """
    Construye una fecha dejando que mes y día se desborden hacia delante o atrás
    (mes 0 = diciembre del año anterior, 31 de febrero = 2 o 3 de marzo).
    """
    base = date(anio, 1, 1) + relativedelta(months=mes - 1)
    return base + timedelta(days=dia - 1)


def sumar_meses(fecha: date, meses: int) -> date:
    """Mismo día `meses` más tarde; si ese día no existe pasa al mes siguiente."""
    return fecha_desbordada(fecha.year, fecha.month + meses, fecha.day)


def clave_mes(fecha: date) -> str:
    return f"{fecha.year}-{fecha.month:02d}"
