# utils/investment_math.py
"""
Aritmética de coste medio para posiciones de inversión.

Todo en Decimal para no arrastrar errores de coma flotante en importes.
Las funciones son puras: no tocan la base de datos.
"""
from decimal import Decimal, InvalidOperation, ROUND_DOWN

CERO = Decimal("0")


def a_decimal(valor) -> Decimal:
    """
    Convierte int/float/str/Decimal a Decimal (vía str para los float).
    Texto que no es un número, NaN o infinito lanzan ValueError.
    """
    if valor is None:
        return CERO
    if isinstance(valor, Decimal):
        numero = valor
    else:
        try:
            numero = Decimal(str(valor).strip())
        except InvalidOperation:
            raise ValueError(f"Número inválido: {valor!r}") from None
    if not numero.is_finite():
        raise ValueError(f"Número inválido: {valor!r}")
    return numero


def calcular_total(cantidad, precio_unitario) -> Decimal:
    return a_decimal(cantidad) * a_decimal(precio_unitario)


def calcular_cantidad_desde_valor(valor_invertido, precio_unitario, decimales: int) -> tuple[Decimal, Decimal]:
    """
    Cantidad que se puede comprar con `valor_invertido` a `precio_unitario`.

    La cantidad se trunca hacia cero a `decimales` posiciones, así el total
    (cantidad * precio) nunca supera el valor pedido.
    Con precio <= 0 devuelve (0, 0) sin lanzar excepción.
    """
    precio = a_decimal(precio_unitario)
    if precio <= 0:
        return CERO, CERO
    bruto = a_decimal(valor_invertido) / precio
    cantidad = bruto.quantize(Decimal(1).scaleb(-decimales), rounding=ROUND_DOWN)
    return cantidad, calcular_total(cantidad, precio)


def calcular_nuevo_precio_medio(cantidad_actual, precio_medio_actual, cantidad_compra, precio_compra) -> Decimal:
    """
    Precio medio ponderado tras una compra.

      - cantidad_compra <= 0: el precio medio no cambia
      - cantidad_actual <= 0 (primera compra): el precio de compra directamente
    """
    cant_actual = a_decimal(cantidad_actual)
    medio_actual = a_decimal(precio_medio_actual)
    cant_compra = a_decimal(cantidad_compra)
    precio = a_decimal(precio_compra)

    if cant_compra <= 0:
        return medio_actual
    if cant_actual <= 0:
        return precio

    coste_total = cant_actual * medio_actual + cant_compra * precio
    return coste_total / (cant_actual + cant_compra)
