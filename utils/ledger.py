# utils/ledger.py
"""
Alta, edición y borrado de transacciones, pago de cuotas y transferencias.

El saldo de la cuenta es un campo guardado que se mueve por delta al
registrar cada movimiento (ingreso suma, gasto resta, transferencia resta
en origen y suma en destino). El delta de cada fila es `efecto_saldo`, el
mismo que usa el recálculo del historial, así guardado y recalculado no se
separan. La escritura de la fila y el delta van en el mismo commit: si algo
falla se hace rollback de todo y se relanza el error.
"""
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from models.account import Account
from models.transaction import Transaction, TIPOS_TRANSACCION
from models.transfer import Transfer
from utils.fechas import a_fecha, sumar_meses
from utils.investment_math import a_decimal

logger = logging.getLogger(__name__)

MAX_PARCELAS = 120
MAX_MESES_FIJOS = 60
CENTIMO = Decimal("0.01")


def delta_saldo(tipo: str, monto) -> Decimal:
    """Efecto de una transacción sin cuotas sobre el saldo de su cuenta."""
    monto = a_decimal(monto)
    if tipo == "income":
        return monto
    if tipo == "expense":
        return -monto
    # card_expense va a la factura de la tarjeta, no al saldo
    return Decimal("0")


def importe_parcela(monto, total_parcelas: int, indice: int) -> Decimal:
    """
    Importe de la cuota `indice` (0 = primera) redondeado a céntimos; la
    última se lleva el resto para que la suma sea exactamente `monto`.
    """
    monto = a_decimal(monto)
    base = (monto / total_parcelas).quantize(CENTIMO)
    if indice == total_parcelas - 1:
        return monto - base * (total_parcelas - 1)
    return base


def efecto_saldo(t) -> Decimal:
    """
    Lo que una transacción ha movido del saldo de su cuenta:

      - ingreso: +monto, salvo los programados (pagado=False)
      - gasto: -monto; en cuotas, solo las cuotas ya pagadas
      - gasto de tarjeta: nada, va a la factura
    """
    if t.tipo == "income":
        return Decimal("0") if t.pagado is False else a_decimal(t.monto)
    if t.tipo != "expense":
        return Decimal("0")
    n = t.total_parcelas or 0
    if t.es_parcelado and n > 0:
        pagadas = min(t.parcelas_pagadas or 0, n)
        return -sum((importe_parcela(t.monto, n, i) for i in range(pagadas)), Decimal("0"))
    return -a_decimal(t.monto)


def desfase_meses(fecha_compra, anio: int, mes: int) -> int:
    """Meses entre la compra y `anio`-`mes` (0 = mes de la compra)."""
    f = a_fecha(fecha_compra)
    return (anio - f.year) * 12 + (mes - f.month)


def _aplicar_delta(session, cuenta_id: int, delta: Decimal) -> Account:
    cuenta = session.get(Account, cuenta_id)
    if cuenta is None:
        raise ValueError(f"Cuenta {cuenta_id} no encontrada")
    cuenta.saldo = a_decimal(cuenta.saldo) + delta
    session.add(cuenta)
    return cuenta


def _validar_monto(monto) -> Decimal:
    valor = a_decimal(monto)
    if valor <= 0:
        raise ValueError("Importe inválido: debe ser mayor que cero")
    return valor


def _validar_fecha(fecha) -> date:
    f = a_fecha(fecha)
    if f is None:
        raise ValueError("Fecha inválida")
    return f


def _transaccion(session, transaccion_id: int) -> Transaction:
    t = session.get(Transaction, transaccion_id)
    if t is None:
        raise ValueError(f"Transacción {transaccion_id} no encontrada")
    return t


def registrar_transaccion(
    session,
    tipo: str,
    monto,
    fecha,
    cuenta_id: int | None = None,
    descripcion: str | None = None,
    categoria: str | None = None,
    es_parcelado: bool = False,
    total_parcelas: int | None = None,
    meses_fijos: int = 1,
    pagado: bool = True,
) -> list[Transaction]:
    """
    Registra una transacción y mueve el saldo de la cuenta.

    - income / expense necesitan cuenta bancaria; card_expense la tarjeta.
    - cuotas (es_parcelado) solo en gastos, entre 1 y 120; empiezan sin pagar
      y el saldo se mueve al pagar cada cuota (`pagar_parcela`).
    - meses_fijos > 1 en ingresos crea una fila por mes (ingreso fijo); solo
      la primera mueve el saldo, las siguientes quedan programadas.

    Devuelve la lista de transacciones creadas.
    """
    if tipo not in TIPOS_TRANSACCION:
        raise ValueError(f"Tipo de transacción desconocido: {tipo}")
    valor = _validar_monto(monto)
    fecha = _validar_fecha(fecha)

    if cuenta_id is None:
        if tipo == "card_expense":
            raise ValueError("Elige una tarjeta")
        raise ValueError("Elige una cuenta bancaria")

    parcelas = None
    if es_parcelado:
        if tipo == "income":
            raise ValueError("Solo los gastos pueden ir en cuotas")
        if not isinstance(total_parcelas, int) or not 1 <= total_parcelas <= MAX_PARCELAS:
            raise ValueError("Número de cuotas inválido")
        parcelas = total_parcelas

    meses = 1
    if tipo == "income" and meses_fijos != 1:
        if not isinstance(meses_fijos, int) or not 1 <= meses_fijos <= MAX_MESES_FIJOS:
            raise ValueError(f"Elige entre 1 y {MAX_MESES_FIJOS} meses para el ingreso fijo")
        meses = meses_fijos

    filas = []
    try:
        cuenta = session.get(Account, cuenta_id)
        if cuenta is None:
            raise ValueError(f"Cuenta {cuenta_id} no encontrada")
        if tipo == "card_expense" and not cuenta.es_tarjeta:
            raise ValueError(f"La cuenta {cuenta.nombre} no es una tarjeta")

        for i in range(meses):
            t = Transaction(
                tipo=tipo,
                cuenta_id=cuenta_id,
                monto=valor,
                fecha=sumar_meses(fecha, i),
                descripcion=(descripcion or "").strip() or None,
                categoria=categoria or None,
                es_parcelado=True if parcelas else None,
                total_parcelas=parcelas,
                parcelas_pagadas=0,
                # ingreso fijo: los meses siguientes quedan programados
                pagado=False if parcelas or i > 0 else pagado,
            )
            session.add(t)
            filas.append(t)

        delta = sum((efecto_saldo(t) for t in filas), Decimal("0"))
        if delta:
            _aplicar_delta(session, cuenta_id, delta)

        session.commit()
    except (ValueError, SQLAlchemyError):
        session.rollback()
        raise

    logger.info("Transacción %s de %s registrada en cuenta %s (%d filas)", tipo, valor, cuenta_id, len(filas))
    return filas


def pagar_parcela(session, transaccion_id: int, anio: int | None = None, mes: int | None = None) -> Transaction:
    """
    Registra el pago de la siguiente cuota pendiente.

    Con `anio` y `mes` (el mes que se está viendo) solo se acepta si esa es
    justo la próxima cuota sin pagar. En gastos de cuenta bancaria la cuota
    sale del saldo; en tarjeta solo avanza el contador.
    """
    try:
        t = _transaccion(session, transaccion_id)
        n = t.total_parcelas or 0
        if not t.es_parcelado or n < 1:
            raise ValueError("La transacción no es una compra en cuotas")
        pagadas = t.parcelas_pagadas or 0
        if pagadas >= n:
            raise ValueError("Todas las cuotas ya están pagadas")
        if anio is not None and mes is not None and desfase_meses(t.fecha, anio, mes) != pagadas:
            raise ValueError(f"Solo se puede pagar la próxima cuota ({pagadas + 1}/{n})")

        antes = efecto_saldo(t)
        t.parcelas_pagadas = pagadas + 1
        t.pagado = t.parcelas_pagadas >= n
        delta = efecto_saldo(t) - antes
        if delta and t.cuenta_id is not None:
            _aplicar_delta(session, t.cuenta_id, delta)
        session.commit()
    except (ValueError, SQLAlchemyError):
        session.rollback()
        raise

    logger.info("Cuota %d/%d pagada en transacción %s", t.parcelas_pagadas, n, transaccion_id)
    return t


def deshacer_parcela(session, transaccion_id: int) -> Transaction:
    """Deshace el pago de la última cuota registrada y devuelve su importe al saldo."""
    try:
        t = _transaccion(session, transaccion_id)
        n = t.total_parcelas or 0
        if not t.es_parcelado or n < 1:
            raise ValueError("La transacción no es una compra en cuotas")
        pagadas = t.parcelas_pagadas or 0
        if pagadas <= 0:
            raise ValueError("No hay cuotas pagadas que deshacer")

        antes = efecto_saldo(t)
        t.parcelas_pagadas = pagadas - 1
        t.pagado = t.parcelas_pagadas >= n
        delta = efecto_saldo(t) - antes
        if delta and t.cuenta_id is not None:
            _aplicar_delta(session, t.cuenta_id, delta)
        session.commit()
    except (ValueError, SQLAlchemyError):
        session.rollback()
        raise

    logger.info("Deshecha cuota de transacción %s (quedan %d pagadas)", transaccion_id, t.parcelas_pagadas)
    return t


def editar_transaccion(
    session,
    transaccion_id: int,
    monto=None,
    fecha=None,
    descripcion: str | None = None,
    categoria: str | None = None,
) -> Transaction:
    """
    Cambia importe, fecha, descripción o categoría (None = sin cambios; texto
    vacío borra descripción o categoría). Si cambia el importe, el saldo de la
    cuenta se corrige por la diferencia.
    """
    valor = _validar_monto(monto) if monto is not None else None
    nueva_fecha = _validar_fecha(fecha) if fecha is not None else None

    try:
        t = _transaccion(session, transaccion_id)
        antes = efecto_saldo(t)
        if valor is not None:
            t.monto = valor
        if nueva_fecha is not None:
            t.fecha = nueva_fecha
        if descripcion is not None:
            t.descripcion = descripcion.strip() or None
        if categoria is not None:
            t.categoria = categoria.strip() or None

        delta = efecto_saldo(t) - antes
        if delta and t.cuenta_id is not None:
            _aplicar_delta(session, t.cuenta_id, delta)
        session.commit()
    except (ValueError, SQLAlchemyError):
        session.rollback()
        raise

    logger.info("Transacción %s editada", transaccion_id)
    return t


def borrar_transaccion(session, transaccion_id: int) -> None:
    """Borra la transacción y revierte lo que movió del saldo."""
    try:
        t = _transaccion(session, transaccion_id)
        efecto = efecto_saldo(t)
        if efecto and t.cuenta_id is not None:
            _aplicar_delta(session, t.cuenta_id, -efecto)
        session.delete(t)
        session.commit()
    except (ValueError, SQLAlchemyError):
        session.rollback()
        raise

    logger.info("Transacción %s borrada", transaccion_id)


def registrar_transferencia(
    session,
    cuenta_origen_id: int,
    cuenta_destino_id: int,
    monto,
    fecha,
    descripcion: str | None = None,
) -> Transfer:
    """Mueve `monto` entre dos cuentas: resta en origen y suma en destino."""
    valor = _validar_monto(monto)
    fecha = _validar_fecha(fecha)
    if not cuenta_origen_id or not cuenta_destino_id:
        raise ValueError("Elige cuenta de origen y de destino")
    if cuenta_origen_id == cuenta_destino_id:
        raise ValueError("Origen y destino deben ser cuentas distintas")

    try:
        transferencia = Transfer(
            cuenta_origen_id=cuenta_origen_id,
            cuenta_destino_id=cuenta_destino_id,
            monto=valor,
            fecha=fecha,
            descripcion=descripcion or None,
        )
        session.add(transferencia)
        _aplicar_delta(session, cuenta_origen_id, -valor)
        _aplicar_delta(session, cuenta_destino_id, valor)
        session.commit()
    except (ValueError, SQLAlchemyError):
        session.rollback()
        raise

    logger.info("Transferencia de %s: %s -> %s", valor, cuenta_origen_id, cuenta_destino_id)
    return transferencia


def crear_cuenta(
    session,
    nombre: str,
    tipo: str = "bank",
    saldo_inicial=0,
    limite=None,
    dia_cierre: int | None = None,
    dia_vencimiento: int | None = None,
) -> Account:
    """Alta de cuenta; el saldo arranca en el saldo inicial."""
    nombre = (nombre or "").strip()
    if not nombre:
        raise ValueError("El nombre de la cuenta es obligatorio")
    if tipo not in ("bank", "card"):
        raise ValueError(f"Tipo de cuenta desconocido: {tipo}")
    for etiqueta, dia in (("cierre", dia_cierre), ("vencimiento", dia_vencimiento)):
        if dia is not None and not 1 <= dia <= 31:
            raise ValueError(f"Día de {etiqueta} fuera de 1..31")

    inicial = a_decimal(saldo_inicial)
    cuenta = Account(
        nombre=nombre,
        tipo=tipo,
        saldo_inicial=inicial,
        saldo=inicial,
        limite=a_decimal(limite) if limite is not None else None,
        dia_cierre=dia_cierre,
        dia_vencimiento=dia_vencimiento,
    )
    try:
        session.add(cuenta)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise
    return cuenta
