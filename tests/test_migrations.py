"""Migraciones sobre bases SQLite en disco."""
import pytest
from sqlalchemy import create_engine, inspect, text

from database import db
from migrations import add_installment_fields, migration_helper


@pytest.fixture
def url_antigua(tmp_path):
    """Base con la tabla `transaction` anterior a las compras en cuotas."""
    url = f"sqlite:///{tmp_path / 'antigua.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        conn.execute(text(
            'CREATE TABLE "transaction" ('
            "id INTEGER PRIMARY KEY, tipo VARCHAR(20) NOT NULL, cuenta_id INTEGER, "
            "monto NUMERIC(14, 2) NOT NULL, fecha DATE NOT NULL, descripcion VARCHAR(255), "
            "categoria VARCHAR(60), creado DATETIME)"
        ))
        conn.execute(text(
            "INSERT INTO \"transaction\" (tipo, monto, fecha) VALUES ('expense', 10, '2024-03-01')"
        ))
    engine.dispose()
    yield url
    db.close_all()


def test_agrega_campos_de_cuotas(url_antigua):
    assert add_installment_fields.run_migration(url_antigua) == [
        "es_parcelado", "total_parcelas", "parcelas_pagadas", "pagado",
    ]
    columnas = {c["name"] for c in inspect(db.engine).get_columns("transaction")}
    assert set(add_installment_fields.COLUMNAS) <= columnas

    with db.engine.connect() as conn:
        fila = conn.execute(text('SELECT monto, es_parcelado FROM "transaction"')).one()
    assert fila.es_parcelado is None


def test_migracion_de_cuotas_es_idempotente(url_antigua):
    add_installment_fields.run_migration(url_antigua)
    assert add_installment_fields.run_migration(url_antigua) == []


def test_sin_base_configurada(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        add_installment_fields.run_migration(None)


def test_leer_statements():
    sql = """
    -- tabla de etiquetas
    CREATE TABLE etiqueta (id INTEGER PRIMARY KEY, nombre VARCHAR(40));

    -- índice
    CREATE INDEX ix_etiqueta_nombre ON etiqueta (nombre);
    ;
    """
    assert migration_helper.leer_statements(sql) == [
        "CREATE TABLE etiqueta (id INTEGER PRIMARY KEY, nombre VARCHAR(40))",
        "CREATE INDEX ix_etiqueta_nombre ON etiqueta (nombre)",
    ]


def test_run_migration_sql(tmp_path):
    sql = tmp_path / "001_etiquetas.sql"
    sql.write_text(
        "CREATE TABLE etiqueta (id INTEGER PRIMARY KEY, nombre VARCHAR(40));\n"
        "INSERT INTO etiqueta (nombre) VALUES ('viaje');\n",
        encoding="utf-8",
    )
    url = f"sqlite:///{tmp_path / 'nueva.db'}"
    try:
        assert migration_helper.run_migration(str(sql), url) is True
        with db.engine.connect() as conn:
            assert conn.execute(text("SELECT nombre FROM etiqueta")).scalar_one() == "viaje"
    finally:
        db.close_all()


def test_run_migration_sql_fallida(tmp_path):
    sql = tmp_path / "002_rota.sql"
    sql.write_text("INSERT INTO tabla_que_no_existe VALUES (1);\n", encoding="utf-8")
    url = f"sqlite:///{tmp_path / 'nueva.db'}"
    try:
        assert migration_helper.run_migration(str(sql), url) is False
    finally:
        db.close_all()


def test_run_migration_fichero_inexistente(tmp_path):
    assert migration_helper.run_migration(str(tmp_path / "no.sql"), "sqlite://") is False
