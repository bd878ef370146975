# utils/money.py
from decimal import Decimal

from utils.investment_math import a_decimal


def parsear_importe(texto: str) -> Decimal:
    """
    Importe tecleado con coma o con punto decimal:
    'R$ 1.200,50' -> 1200.50, '1,5' -> 1.5, '1200.50' -> 1200.50.

    Si hay coma es la decimal y los puntos son separadores de miles;
    sin coma el punto es el decimal. Lo que no es un número lanza ValueError.
    """
    limpio = "".join((texto or "").replace("R$", "").split())
    if not limpio:
        raise ValueError("Importe vacío")
    if "," in limpio:
        limpio = limpio.replace(".", "").replace(",", ".")
    return a_decimal(limpio)


def formatear_moneda(valor, simbolo: str = "R$") -> str:
    """1234.5 -> 'R$ 1.234,50' (separador de miles '.' y decimal ',')."""
    numero = a_decimal(valor).quantize(Decimal("0.01"))
    texto = f"{abs(numero):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    signo = "-" if numero < 0 else ""
    return f"{signo}{simbolo} {texto}"
