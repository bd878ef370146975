# main.py
import argparse
import logging
import os
import sys
from datetime import date, datetime

from dotenv import load_dotenv
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError

from database import db
from models.account import Account
from models.reminder_settings import ReminderSettings
from models.transaction import Transaction
from utils.billing import cuentas_con_factura
from utils.investment_math import a_decimal
from utils.investments import registrar_compra, resumen_cartera, normalizar_simbolo
from utils.goals import actualizar_meta, borrar_meta, crear_meta, listar_metas
from utils.ledger import (
    borrar_transaccion,
    crear_cuenta,
    deshacer_parcela,
    editar_transaccion,
    pagar_parcela,
    registrar_transaccion,
    registrar_transferencia,
)
from utils.market import get_cached_price, ticker_yfinance
from utils.money import formatear_moneda, parsear_importe
from utils.monthly import (
    expandir_mes,
    exportar_informe_csv,
    flujo_diario,
    informe_gastos_mes,
    parcelas_futuras,
    resumen_mes,
    totales_por_categoria,
)
from utils.reconciler import auditar_saldos, resumen_cuentas
from utils.reminders import EstadoLocal, recordatorios_pendientes

logger = logging.getLogger("finanzas")

NIVEL_ICONO = {"high": "🔴", "medium": "🟡", "low": "🟢"}


def to_date(s):
    return datetime.strptime(s, "%Y-%m-%d").date()


AYUDA_IMPORTE = "Importe: 1200.50, 1200,50 o 'R$ 1.200,50' (con coma, los puntos son de miles)"


# ---------------------------------------------------------------- comandos

def cmd_init_db(session, args):
    db.create_all()
    if session.get(ReminderSettings, 1) is None:
        session.add(ReminderSettings(id=1, habilitado=True, hora=9, minuto=0))
        session.commit()
    print("✅ Tablas creadas")


def cmd_cuenta_nueva(session, args):
    cuenta = crear_cuenta(
        session,
        args.nombre,
        tipo=args.tipo,
        saldo_inicial=parsear_importe(args.saldo_inicial),
        limite=parsear_importe(args.limite) if args.limite else None,
        dia_cierre=args.cierre,
        dia_vencimiento=args.vencimiento,
    )
    print(f"✅ Cuenta {cuenta.nombre} creada (id {cuenta.id})")


def cmd_cuentas(session, args):
    ahora = to_date(args.fecha) if args.fecha else datetime.now()
    filas = cuentas_con_factura(session, ahora)
    if not filas:
        print("⚠️ No hay cuentas registradas")
        return
    print(f"{'ID':>4}  {'Cuenta':<24}{'Tipo':<6}{'Saldo':>16}{'Factura':>16}  Límite")
    for f in filas:
        factura = formatear_moneda(f["factura_actual"]) if f["es_tarjeta"] else ""
        uso = ""
        if f["porcentaje_utilizacion"] is not None:
            uso = f"{NIVEL_ICONO[f['nivel_utilizacion']]} {f['porcentaje_utilizacion']}% del límite"
        print(f"{f['id']:>4}  {f['nombre'][:23]:<24}{f['tipo']:<6}{formatear_moneda(f['saldo']):>16}{factura:>16}  {uso}")


def cmd_transaccion(session, args):
    filas = registrar_transaccion(
        session,
        args.tipo,
        parsear_importe(args.monto),
        to_date(args.fecha) if args.fecha else date.today(),
        cuenta_id=args.cuenta,
        descripcion=args.descripcion,
        categoria=args.categoria,
        es_parcelado=bool(args.cuotas),
        total_parcelas=args.cuotas,
        meses_fijos=args.meses_fijos,
    )
    print(f"✅ {len(filas)} transacción(es) guardada(s)")


def cmd_transferencia(session, args):
    registrar_transferencia(
        session,
        args.origen,
        args.destino,
        parsear_importe(args.monto),
        to_date(args.fecha) if args.fecha else date.today(),
        descripcion=args.descripcion,
    )
    print("✅ Transferencia guardada")


def cmd_compra(session, args):
    precio = parsear_importe(args.precio) if args.precio else None
    if precio is None:
        simbolo = normalizar_simbolo(args.tipo, args.simbolo)
        precio, _ = get_cached_price(session, ticker_yfinance(args.tipo, simbolo))
    apunte = registrar_compra(
        session,
        args.tipo,
        args.simbolo,
        to_date(args.fecha) if args.fecha else date.today(),
        precio,
        modo="value" if args.valor else "quantity",
        cantidad=a_decimal(args.cantidad) if args.cantidad else None,
        valor=parsear_importe(args.valor) if args.valor else None,
        nombre=args.nombre,
    )
    inv = apunte.investment
    print(f"✅ Compra de {apunte.cantidad} {inv.simbolo} por {formatear_moneda(apunte.total_invertido)}")
    print(f"   Posición: {inv.cantidad} a precio medio {formatear_moneda(inv.precio_medio)}")


def cmd_cartera(session, args):
    filas = resumen_cartera(session)
    if not filas:
        print("⚠️ No hay inversiones registradas")
        return
    for f in filas:
        print(f"{f['tipo']:<7}{f['simbolo']:<12}{f['cantidad']:>18}  medio {formatear_moneda(f['precio_medio']):>14}"
              f"  coste {formatear_moneda(f['coste']):>16}")


def cmd_mes(session, args):
    hoy = date.today()
    anio = args.anio or hoy.year
    mes = args.mes or hoy.month
    transacciones = session.scalars(select(Transaction)).all()
    entradas = expandir_mes(transacciones, anio, mes)
    r = resumen_mes(entradas)
    print(f"=== {mes:02d}/{anio} ===")
    print(f"Ingresos:          {formatear_moneda(r['ingresos'])}")
    print(f"Gastos:            {formatear_moneda(r['gastos'])}")
    print(f"Neto:              {formatear_moneda(r['neto'])}")
    print(f"Pendiente de pago: {formatear_moneda(r['gastos_pendientes'])}")

    print("\nPor categoría:")
    for c in totales_por_categoria(entradas, args.modo):
        print(f"  {c['categoria']:<24}{formatear_moneda(c['total']):>16}")

    if args.flujo:
        print("\nFlujo diario:")
        for d in flujo_diario(entradas, anio, mes):
            if d["ingresos"] or d["gastos"]:
                print(f"  {d['dia']:>2}  +{d['ingresos']:.2f}  -{d['gastos']:.2f}  = {d['neto']:.2f}")

    futuras = parcelas_futuras(transacciones, date(anio, mes, 1))
    if futuras:
        print("\nCuotas futuras:")
        for m in futuras:
            print(f"  {m['etiqueta']}  {formatear_moneda(m['total']):>16}")


def cmd_informe(session, args):
    informe = informe_gastos_mes(session, args.anio, args.mes)
    print(f"Informe de gastos - {args.mes:02d}/{args.anio}")
    print(f"Total de gastos en el periodo: {formatear_moneda(informe['total'])}")
    for e in informe["detalle"]:
        print(f"{e['fecha']!s:<12}{e['descripcion'][:30]:<32}{e['categoria'][:16]:<18}{e['cuenta'][:16]:<18}"
              f"{formatear_moneda(e['monto']):>14}")
    if args.csv:
        exportar_informe_csv(informe, args.csv)
        print(f"✅ CSV guardado en {args.csv}")


def cmd_auditar(session, args):
    fecha = to_date(args.fecha) if args.fecha else date.today()
    diferencias = auditar_saldos(session, fecha)
    if not diferencias:
        print(f"✅ Saldos consistentes a {fecha}")
        return
    print(f"AVISO: {len(diferencias)} cuenta(s) con saldo desincronizado a {fecha}:")
    for d in diferencias:
        print(f"  {d['nombre']:<24} guardado {d['saldo_guardado']:.2f}  recalculado {d['saldo_recalculado']:.2f}"
              f"  diferencia {d['diferencia']:.2f}")
    if args.detalle:
        for r in resumen_cuentas(session):
            print(f"  {r['nombre']:<24} ingresos {r['ingresos']:.2f}  gastos {r['gastos']:.2f}  saldo {r['saldo']:.2f}")


def cmd_recordatorios(session, args):
    estado = EstadoLocal(args.estado)
    ajustes = session.get(ReminderSettings, 1)
    tarjetas = session.scalars(
        select(Account).where(or_(Account.tipo == "card", Account.limite > 0))
    ).all()
    ahora = datetime.strptime(args.ahora, "%Y-%m-%dT%H:%M") if args.ahora else datetime.now()
    avisos = recordatorios_pendientes(ahora, ajustes, tarjetas, estado)
    if not avisos:
        print("Sin recordatorios pendientes")
    for n in avisos:
        print(f"🔔 {n.titulo}: {n.cuerpo}")


def cmd_pagar_parcela(session, args):
    t = pagar_parcela(session, args.id, anio=args.anio, mes=args.mes)
    print(f"✅ Cuota {t.parcelas_pagadas}/{t.total_parcelas} pagada")


def cmd_deshacer_parcela(session, args):
    t = deshacer_parcela(session, args.id)
    print(f"✅ Pago deshecho: {t.parcelas_pagadas}/{t.total_parcelas} cuotas pagadas")


def cmd_editar(session, args):
    editar_transaccion(
        session,
        args.id,
        monto=parsear_importe(args.monto) if args.monto else None,
        fecha=to_date(args.fecha) if args.fecha else None,
        descripcion=args.descripcion,
        categoria=args.categoria,
    )
    print(f"✅ Transacción {args.id} actualizada")


def cmd_borrar(session, args):
    borrar_transaccion(session, args.id)
    print(f"✅ Transacción {args.id} borrada")


def cmd_meta_nueva(session, args):
    meta = crear_meta(
        session,
        args.nombre,
        parsear_importe(args.objetivo),
        actual=parsear_importe(args.actual),
        fecha_limite=to_date(args.limite) if args.limite else None,
    )
    print(f"✅ Meta {meta.nombre} creada (id {meta.id})")


def cmd_metas(session, args):
    filas = listar_metas(session)
    if not filas:
        print("⚠️ No hay metas registradas")
        return
    for m in filas:
        limite = f"hasta {m['fecha_limite']}" if m["fecha_limite"] else ""
        print(f"{m['id']:>4}  {m['nombre'][:23]:<24}{formatear_moneda(m['actual']):>16} / "
              f"{formatear_moneda(m['objetivo']):<16}{m['porcentaje']:>4}%  {limite}")


def cmd_meta_editar(session, args):
    cambios = {}
    if args.nombre is not None:
        cambios["nombre"] = args.nombre
    if args.objetivo is not None:
        cambios["objetivo"] = parsear_importe(args.objetivo)
    if args.actual is not None:
        cambios["actual"] = parsear_importe(args.actual)
    if args.sin_limite:
        cambios["fecha_limite"] = None
    elif args.limite:
        cambios["fecha_limite"] = to_date(args.limite)
    meta = actualizar_meta(session, args.id, **cambios)
    print(f"✅ Meta {meta.nombre} actualizada")


def cmd_meta_borrar(session, args):
    borrar_meta(session, args.id)
    print(f"✅ Meta {args.id} borrada")


# ---------------------------------------------------------------- argparse

def build_parser():
    p = argparse.ArgumentParser(prog="finanzas", description="Finanzas personales: cuentas, tarjetas e inversiones.")
    p.add_argument("--db", help="DATABASE_URL (por defecto la del .env)")
    sub = p.add_subparsers(dest="comando", required=True)

    s = sub.add_parser("init-db", help="Crear tablas")
    s.set_defaults(func=cmd_init_db)

    s = sub.add_parser("cuenta-nueva", help="Alta de cuenta bancaria o tarjeta")
    s.add_argument("--nombre", required=True)
    s.add_argument("--tipo", choices=("bank", "card"), default="bank")
    s.add_argument("--saldo-inicial", default="0", help=AYUDA_IMPORTE)
    s.add_argument("--limite", help=AYUDA_IMPORTE)
    s.add_argument("--cierre", type=int, help="Día de cierre (1-31)")
    s.add_argument("--vencimiento", type=int, help="Día de vencimiento (1-31)")
    s.set_defaults(func=cmd_cuenta_nueva)

    s = sub.add_parser("cuentas", help="Cuentas con saldo y factura actual")
    s.add_argument("--fecha", help="Fecha de referencia YYYY-MM-DD")
    s.set_defaults(func=cmd_cuentas)

    s = sub.add_parser("transaccion", help="Registrar ingreso o gasto")
    s.add_argument("--tipo", choices=("income", "expense", "card_expense"), required=True)
    s.add_argument("--monto", required=True, help=AYUDA_IMPORTE)
    s.add_argument("--cuenta", type=int, required=True)
    s.add_argument("--fecha")
    s.add_argument("--descripcion")
    s.add_argument("--categoria")
    s.add_argument("--cuotas", type=int, help="Número de cuotas (1-120)")
    s.add_argument("--meses-fijos", type=int, default=1, help="Ingreso fijo repetido N meses")
    s.set_defaults(func=cmd_transaccion)

    s = sub.add_parser("transferencia", help="Transferir entre cuentas")
    s.add_argument("--origen", type=int, required=True)
    s.add_argument("--destino", type=int, required=True)
    s.add_argument("--monto", required=True, help=AYUDA_IMPORTE)
    s.add_argument("--fecha")
    s.add_argument("--descripcion")
    s.set_defaults(func=cmd_transferencia)

    s = sub.add_parser("compra", help="Registrar compra de inversión")
    s.add_argument("--tipo", choices=("b3", "crypto"), required=True)
    s.add_argument("--simbolo", required=True)
    s.add_argument("--nombre")
    s.add_argument("--precio", help="Si se omite se consulta yfinance")
    grupo = s.add_mutually_exclusive_group(required=True)
    grupo.add_argument("--cantidad")
    grupo.add_argument("--valor", help=AYUDA_IMPORTE)
    s.add_argument("--fecha")
    s.set_defaults(func=cmd_compra)

    s = sub.add_parser("cartera", help="Posiciones de inversión")
    s.set_defaults(func=cmd_cartera)

    s = sub.add_parser("mes", help="Resumen mensual")
    s.add_argument("--anio", type=int)
    s.add_argument("--mes", type=int)
    s.add_argument("--modo", choices=("expense", "income", "mixed"), default="expense")
    s.add_argument("--flujo", action="store_true", help="Mostrar flujo diario")
    s.set_defaults(func=cmd_mes)

    s = sub.add_parser("informe", help="Informe de gastos del mes")
    s.add_argument("--anio", type=int, required=True)
    s.add_argument("--mes", type=int, required=True)
    s.add_argument("--csv", help="Exportar a CSV")
    s.set_defaults(func=cmd_informe)

    s = sub.add_parser("auditar", help="Comparar saldos guardados con el historial")
    s.add_argument("--fecha")
    s.add_argument("--detalle", action="store_true")
    s.set_defaults(func=cmd_auditar)

    s = sub.add_parser("recordatorios", help="Avisos pendientes de hoy")
    s.add_argument("--estado", help="Fichero de estado local")
    s.add_argument("--ahora", help="Momento de referencia YYYY-MM-DDTHH:MM (por defecto ahora)")
    s.set_defaults(func=cmd_recordatorios)

    s = sub.add_parser("pagar-parcela", help="Marcar pagada la próxima cuota de una compra")
    s.add_argument("--id", type=int, required=True, help="ID de la transacción en cuotas")
    s.add_argument("--anio", type=int, help="Año del mes que se paga")
    s.add_argument("--mes", type=int, help="Mes que se paga (debe ser el de la próxima cuota)")
    s.set_defaults(func=cmd_pagar_parcela)

    s = sub.add_parser("deshacer-parcela", help="Deshacer el pago de la última cuota")
    s.add_argument("--id", type=int, required=True)
    s.set_defaults(func=cmd_deshacer_parcela)

    s = sub.add_parser("editar", help="Editar una transacción")
    s.add_argument("--id", type=int, required=True)
    s.add_argument("--monto", help=AYUDA_IMPORTE)
    s.add_argument("--fecha")
    s.add_argument("--descripcion", help="Texto vacío para borrarla")
    s.add_argument("--categoria", help="Texto vacío para borrarla")
    s.set_defaults(func=cmd_editar)

    s = sub.add_parser("borrar", help="Borrar una transacción")
    s.add_argument("--id", type=int, required=True)
    s.set_defaults(func=cmd_borrar)

    s = sub.add_parser("meta-nueva", help="Crear meta de ahorro")
    s.add_argument("--nombre", required=True)
    s.add_argument("--objetivo", required=True, help=AYUDA_IMPORTE)
    s.add_argument("--actual", default="0", help=AYUDA_IMPORTE)
    s.add_argument("--limite", help="Fecha límite YYYY-MM-DD")
    s.set_defaults(func=cmd_meta_nueva)

    s = sub.add_parser("metas", help="Metas con su progreso")
    s.set_defaults(func=cmd_metas)

    s = sub.add_parser("meta-editar", help="Editar una meta")
    s.add_argument("--id", type=int, required=True)
    s.add_argument("--nombre")
    s.add_argument("--objetivo", help=AYUDA_IMPORTE)
    s.add_argument("--actual", help=AYUDA_IMPORTE)
    fecha = s.add_mutually_exclusive_group()
    fecha.add_argument("--limite", help="Fecha límite YYYY-MM-DD")
    fecha.add_argument("--sin-limite", action="store_true", help="Quitar la fecha límite")
    s.set_defaults(func=cmd_meta_editar)

    s = sub.add_parser("meta-borrar", help="Borrar una meta")
    s.add_argument("--id", type=int, required=True)
    s.set_defaults(func=cmd_meta_borrar)

    return p


def main(argv=None) -> int:
    load_dotenv()
    logging.basicConfig(
        level=os.environ.get("FINANZAS_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = build_parser().parse_args(argv)

    db.init_app(args.db)
    if db.engine is None:
        print("❌ Error: no hay base de datos configurada")
        print("   Define DATABASE_URL en .env o usa --db")
        return 2

    session = db.session()
    try:
        args.func(session, args)
    except ValueError as e:
        print(f"❌ {e}")
        return 1
    except SQLAlchemyError as e:
        logger.exception("Error de base de datos")
        print(f"❌ Error de base de datos: {e}")
        return 1
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
