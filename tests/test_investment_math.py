"""Aritmética de coste medio de inversiones."""
from decimal import Decimal

import pytest

from utils.investment_math import (
    a_decimal,
    calcular_cantidad_desde_valor,
    calcular_nuevo_precio_medio,
    calcular_total,
)


def test_primera_compra_fija_el_precio():
    assert calcular_nuevo_precio_medio(0, 0, 5, 10) == Decimal("10")


def test_total_en_modo_cantidad():
    assert calcular_total(Decimal("3"), Decimal("12.5")) == Decimal("37.5")


def test_modo_valor_trunca_para_activos_enteros():
    cantidad, total = calcular_cantidad_desde_valor(Decimal("100"), Decimal("33"), 0)
    assert cantidad == Decimal("3")
    assert total == Decimal("99")


def test_modo_valor_insuficiente():
    cantidad, total = calcular_cantidad_desde_valor(Decimal("10"), Decimal("15"), 0)
    assert cantidad == 0
    assert total == 0


def test_precision_cripto():
    cantidad, _ = calcular_cantidad_desde_valor(Decimal("123.456789"), Decimal("2.5"), 8)
    assert cantidad == Decimal("49.3827156")


def test_trunca_nunca_redondea_hacia_arriba():
    # 100 / 3 = 33.333...; con 2 decimales 33.33, nunca 33.34
    cantidad, total = calcular_cantidad_desde_valor(Decimal("100"), Decimal("3"), 2)
    assert cantidad == Decimal("33.33")
    assert total <= Decimal("100")

    cantidad, total = calcular_cantidad_desde_valor(Decimal("2"), Decimal("3"), 0)
    assert cantidad == 0


def test_precio_no_positivo_no_compra():
    assert calcular_cantidad_desde_valor(Decimal("100"), Decimal("0"), 0) == (0, 0)
    assert calcular_cantidad_desde_valor(Decimal("100"), Decimal("-5"), 2) == (0, 0)


def test_precio_medio_ponderado():
    # 10 a 20 + 30 a 40 -> (200 + 1200) / 40 = 35
    assert calcular_nuevo_precio_medio(10, 20, 30, 40) == Decimal("35")


def test_compra_sin_cantidad_no_cambia_el_medio():
    assert calcular_nuevo_precio_medio(10, Decimal("12.5"), 0, 99) == Decimal("12.5")
    assert calcular_nuevo_precio_medio(10, Decimal("12.5"), -1, 99) == Decimal("12.5")


def test_acepta_str_y_float():
    assert calcular_total("0.1", 3) == Decimal("0.3")
    assert calcular_total(0.1, 3) == Decimal("0.3")


def test_a_decimal():
    assert a_decimal(None) == 0
    assert a_decimal(" 12.50 ") == Decimal("12.50")
    assert a_decimal(Decimal("3")) == Decimal("3")


@pytest.mark.parametrize("valor", ["abc", "", "1,5", "NaN", "inf", float("nan"), Decimal("Infinity")])
def test_a_decimal_rechaza_lo_que_no_es_un_numero(valor):
    with pytest.raises(ValueError, match="Número inválido"):
        a_decimal(valor)
