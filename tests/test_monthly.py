"""Vista mensual, categorías, cuotas futuras e informe de gastos."""
import csv
from datetime import date
from decimal import Decimal

import pytest

from models.transaction import Transaction
from utils.ledger import registrar_transaccion
from utils.monthly import (
    SIN_CATEGORIA,
    expandir_mes,
    exportar_informe_csv,
    flujo_diario,
    informe_gastos_mes,
    meses_disponibles,
    parcelas_futuras,
    resumen_mes,
    totales_por_categoria,
)


def _t(tipo, monto, fecha, categoria=None, parcelas=None, pagadas=0, pagado=True, id=None):
    return Transaction(
        id=id,
        tipo=tipo,
        monto=Decimal(str(monto)),
        fecha=fecha,
        cuenta_id=1,
        categoria=categoria,
        es_parcelado=True if parcelas else None,
        total_parcelas=parcelas,
        parcelas_pagadas=pagadas,
        pagado=pagado,
    )


@pytest.fixture
def marzo():
    return [
        _t("income", 3000, date(2024, 3, 1), categoria="Salario"),
        _t("expense", 800, date(2024, 3, 5), categoria="Alquiler"),
        _t("expense", 50, date(2024, 3, 5), categoria="Mercado", pagado=False),
        _t("card_expense", 120, date(2024, 3, 20), categoria="Mercado"),
        _t("card_expense", 600, date(2024, 1, 15), categoria="Electrónica", parcelas=6, pagadas=1),
        _t("expense", 999, date(2024, 4, 1)),
    ]


def test_expandir_mes_reparte_las_cuotas(marzo):
    entradas = expandir_mes(marzo, 2024, 3)
    assert len(entradas) == 5

    (cuota,) = [e for e in entradas if e["es_parcelado"]]
    assert cuota["monto"] == Decimal("100")
    assert cuota["fecha"] == date(2024, 3, 15)
    assert cuota["indice_parcela"] == 2
    assert cuota["pagado"] is False


def test_cuota_pagada(marzo):
    (cuota,) = [e for e in expandir_mes(marzo, 2024, 1) if e["es_parcelado"]]
    assert cuota["indice_parcela"] == 0
    assert cuota["pagado"] is True


def test_cuotas_fuera_de_rango():
    compra = [_t("expense", 300, date(2024, 1, 31), parcelas=3)]
    assert expandir_mes(compra, 2024, 4) == []
    # 31/01 + 1 mes se desborda a marzo: dos cuotas caen en marzo
    assert len(expandir_mes(compra, 2024, 3)) == 2


def test_resumen_mes(marzo):
    r = resumen_mes(expandir_mes(marzo, 2024, 3))
    assert r["ingresos"] == Decimal("3000")
    assert r["gastos"] == Decimal("1070")
    assert r["neto"] == Decimal("1930")
    # 50 sin pagar + 5 cuotas restantes de 100
    assert r["gastos_pendientes"] == Decimal("550")


def test_resumen_mes_vacio():
    r = resumen_mes([])
    assert r == {"ingresos": 0, "gastos": 0, "neto": 0, "gastos_pendientes": 0}


def test_flujo_diario(marzo):
    dias = flujo_diario(expandir_mes(marzo, 2024, 3), 2024, 3)
    assert len(dias) == 31
    assert dias[0]["neto"] == Decimal("3000")
    assert dias[4]["gastos"] == Decimal("850")
    assert dias[4]["neto"] == Decimal("2150")
    assert dias[-1]["neto"] == Decimal("1930")


def test_flujo_de_febrero_bisiesto():
    assert len(flujo_diario([], 2024, 2)) == 29


def test_totales_por_categoria(marzo):
    entradas = expandir_mes(marzo, 2024, 3)
    gastos = totales_por_categoria(entradas)
    assert [(c["categoria"], c["total"]) for c in gastos] == [
        ("Alquiler", Decimal("800")),
        ("Mercado", Decimal("170")),
        ("Electrónica", Decimal("100")),
    ]
    assert [c["categoria"] for c in totales_por_categoria(entradas, "income")] == ["Salario"]
    assert len(totales_por_categoria(entradas, "mixed")) == 4


def test_categoria_vacia():
    entradas = expandir_mes([_t("expense", 10, date(2024, 3, 1))], 2024, 3)
    assert totales_por_categoria(entradas)[0]["categoria"] == SIN_CATEGORIA


def test_modo_de_categoria_desconocido():
    with pytest.raises(ValueError):
        totales_por_categoria([], "transfer")


def test_meses_disponibles(marzo):
    assert meses_disponibles(marzo, date(2024, 6, 10)) == ["2024-06", "2024-04", "2024-03", "2024-01"]


def test_parcelas_futuras(marzo):
    futuras = parcelas_futuras(marzo, date(2024, 3, 10))
    # cuotas 4..6 (abril a junio)
    assert [(m["clave"], m["etiqueta"], m["total"]) for m in futuras] == [
        ("2024-04", "04/24", Decimal("100")),
        ("2024-05", "05/24", Decimal("100")),
        ("2024-06", "06/24", Decimal("100")),
    ]


def test_cuotas_con_centimos_suman_el_total():
    compra = [_t("expense", 100, date(2024, 1, 10), parcelas=3)]
    cuotas = [e["monto"] for m in (1, 2, 3) for e in expandir_mes(compra, 2024, m)]
    assert cuotas == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]


def test_parcelas_futuras_con_horizonte():
    compra = [_t("expense", 2400, date(2024, 1, 10), parcelas=24)]
    assert len(parcelas_futuras(compra, date(2024, 1, 10))) == 12
    assert len(parcelas_futuras(compra, date(2024, 1, 10), meses=3)) == 3


def test_parcelas_futuras_ignoran_ingresos_y_pagadas():
    compras = [
        _t("income", 100, date(2024, 1, 10), parcelas=3),
        _t("expense", 300, date(2024, 1, 10), parcelas=3, pagadas=3),
    ]
    assert parcelas_futuras(compras, date(2024, 1, 10)) == []


# ---------------------------------------------------------------- informe

def test_informe_gastos_mes(session, banco, tarjeta):
    registrar_transaccion(session, "expense", Decimal("80"), date(2024, 3, 20), cuenta_id=banco.id,
                          descripcion="Luz", categoria="Casa")
    registrar_transaccion(session, "card_expense", Decimal("20.50"), date(2024, 3, 2), cuenta_id=tarjeta.id)
    registrar_transaccion(session, "income", Decimal("999"), date(2024, 3, 3), cuenta_id=banco.id)
    registrar_transaccion(session, "expense", Decimal("5"), date(2024, 4, 1), cuenta_id=banco.id)

    informe = informe_gastos_mes(session, 2024, 3)
    assert informe["total"] == Decimal("100.50")
    assert [e["descripcion"] for e in informe["detalle"]] == ["(sin descripción)", "Luz"]
    assert informe["detalle"][0]["cuenta"] == "Tarjeta"
    assert informe["detalle"][0]["categoria"] == "-"


def test_informe_diciembre_incluye_el_31(session, banco):
    registrar_transaccion(session, "expense", Decimal("10"), date(2024, 12, 31), cuenta_id=banco.id)
    registrar_transaccion(session, "expense", Decimal("10"), date(2025, 1, 1), cuenta_id=banco.id)
    assert informe_gastos_mes(session, 2024, 12)["total"] == Decimal("10")


@pytest.mark.parametrize("anio, mes", [(2024, 0), (2024, 13), (None, 3)])
def test_informe_parametros_invalidos(session, anio, mes):
    with pytest.raises(ValueError):
        informe_gastos_mes(session, anio, mes)


def test_exportar_csv(tmp_path):
    informe = {
        "anio": 2024,
        "mes": 3,
        "detalle": [{"fecha": date(2024, 3, 2), "descripcion": "Café", "categoria": "-",
                     "cuenta": "Tarjeta", "monto": Decimal("4.5")}],
        "total": Decimal("4.5"),
    }
    ruta = tmp_path / "informe.csv"
    exportar_informe_csv(informe, ruta)

    with open(ruta, newline="", encoding="utf-8") as f:
        filas = list(csv.reader(f))
    assert filas[0] == ["fecha", "descripcion", "categoria", "cuenta", "importe"]
    assert filas[1] == ["2024-03-02", "Café", "-", "Tarjeta", "4.50"]
    assert filas[-1] == ["", "", "", "TOTAL", "4.50"]
