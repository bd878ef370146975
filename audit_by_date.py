# audit_by_date.py
import argparse
import sys
from datetime import datetime
from decimal import Decimal

from database import db
from utils.reconciler import calcular_detalle_cuenta, calcular_balance_cuenta


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Auditar los movimientos de una cuenta entre dos fechas.")
    p.add_argument("--cuenta", "-c", type=int, required=True, help="ID de la cuenta")
    p.add_argument("--desde", "-d", type=str, required=True, help="Fecha desde (YYYY-MM-DD)")
    p.add_argument("--hasta", "-a", type=str, required=True, help="Fecha hasta (YYYY-MM-DD)")
    p.add_argument("--db", help="DATABASE_URL (por defecto la del .env)")
    return p.parse_args(argv)


def to_date(s):
    return datetime.strptime(s, "%Y-%m-%d").date()


def main(argv=None) -> int:
    args = parse_args(argv)
    cuenta_id = args.cuenta
    fecha_desde = to_date(args.desde)
    fecha_hasta = to_date(args.hasta)

    db.init_app(args.db)
    if db.engine is None:
        print("❌ Error: no hay base de datos configurada (DATABASE_URL)")
        return 2

    session = db.session()
    try:
        movimientos, saldo_final = calcular_detalle_cuenta(session, cuenta_id, fecha_desde, fecha_hasta)
        saldo_antes = saldo_final - sum((m["monto"] for m in movimientos), start=0)

        print(f"\n=== Auditoría (cuenta {cuenta_id}) desde {fecha_desde} hasta {fecha_hasta} ===\n")
        print(f"Saldo justo ANTES de {fecha_desde}: {float(saldo_antes):.2f}")
        print()
        print(f"{'Fecha':<12} {'Tipo':<14} {'Concepto':<30} {'Importe':>10} {'Saldo':>12}")
        print("-" * 84)
        for m in movimientos:
            print(f"{m['fecha']!s:<12};{m['tipo']:<14};{m['descripcion'][:30]:<30};{float(m['monto']):10.2f};{float(m['saldo']):12.2f}")
        print("-" * 84)
        print(f"Saldo final a {fecha_hasta}: {float(saldo_final):.2f}")

        # comprobación: calcular_balance_cuenta hasta fecha_hasta
        saldo_check = calcular_balance_cuenta(session, cuenta_id, fecha_hasta)
        print(f"Saldo (calcular_balance_cuenta) a {fecha_hasta}: {float(saldo_check):.2f}")
        if abs(saldo_final - saldo_check) > Decimal("0.01"):
            print("\nAVISO: saldo final del rango y calcular_balance_cuenta DIFIEREN.")
            return 1
    except ValueError as e:
        print("ERROR durante la auditoría:", e)
        return 1
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
