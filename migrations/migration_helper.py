#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Script auxiliar para ejecutar migraciones SQL sobre la base de datos
"""

import logging
import os
import sys

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

# Agregar el directorio raíz al path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import db

logger = logging.getLogger(__name__)


def leer_statements(sql_content: str) -> list[str]:
    """Separa por punto y coma descartando vacíos y líneas de comentario."""
    statements = []
    for bloque in sql_content.split(";"):
        lineas = [l for l in bloque.splitlines() if l.strip() and not l.strip().startswith("--")]
        if lineas:
            statements.append("\n".join(lineas).strip())
    return statements


def run_migration(sql_file_path, db_url: str | None = None) -> bool:
    """
    Ejecuta un archivo SQL de migración, un statement por vez.
    """
    if not os.path.exists(sql_file_path):
        print(f"❌ Error: No se encuentra el archivo {sql_file_path}")
        return False

    db.init_app(db_url)

    if not db.engine:
        print("❌ Error: No se pudo conectar a la base de datos")
        print("   Verifica que DATABASE_URL esté configurado en .env")
        return False

    print(f"📂 Leyendo migración: {sql_file_path}")

    with open(sql_file_path, "r", encoding="utf-8") as f:
        statements = leer_statements(f.read())

    try:
        with db.engine.begin() as conn:
            for i, statement in enumerate(statements, 1):
                print(f"  Ejecutando statement {i}...")
                conn.execute(text(statement))
    except SQLAlchemyError as e:
        logger.error("Migración %s fallida: %s", sql_file_path, e)
        print(f"❌ Error ejecutando migración: {e}")
        return False

    print("✅ Migración completada exitosamente")
    return True


def main():
    if len(sys.argv) != 2:
        print("Uso: python migrations/migration_helper.py <fichero.sql>")
        sys.exit(2)
    sys.exit(0 if run_migration(sys.argv[1]) else 1)


if __name__ == "__main__":
    main()
