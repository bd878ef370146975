"""
Script de migración para agregar los campos de cuotas a `transaction`
(es_parcelado, total_parcelas, parcelas_pagadas, pagado) en bases creadas
antes de que existieran.

Ejecutar: python migrations/add_installment_fields.py
"""

import os
import sys

# Agregar el directorio raíz al path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import inspect, text

from database import db

COLUMNAS = {
    "es_parcelado": "BOOLEAN NULL",
    "total_parcelas": "INTEGER NULL",
    "parcelas_pagadas": "INTEGER NULL",
    "pagado": "BOOLEAN NULL",
}


def run_migration(db_url: str | None = None) -> list[str]:
    """Añade las columnas que falten. Devuelve la lista de columnas añadidas."""
    print("Iniciando migración: campos de cuotas en 'transaction'...")

    db.init_app(db_url)
    if db.engine is None:
        raise RuntimeError("DB no inicializado. Configura DATABASE_URL.")

    existentes = {c["name"] for c in inspect(db.engine).get_columns("transaction")}
    faltan = [nombre for nombre in COLUMNAS if nombre not in existentes]
    if not faltan:
        print("✓ Los campos de cuotas ya existen en la tabla 'transaction'")
        return []

    session = db.session()
    try:
        for nombre in faltan:
            print(f"Agregando columna {nombre}...")
            session.execute(text(f'ALTER TABLE "transaction" ADD COLUMN {nombre} {COLUMNAS[nombre]}'))
        session.commit()
        print("✓ Migración completada exitosamente")
    except Exception as e:
        session.rollback()
        print(f"✗ Error durante la migración: {e}")
        raise
    finally:
        session.close()
    return faltan


if __name__ == "__main__":
    run_migration()
