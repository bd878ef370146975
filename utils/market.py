# utils/market.py
import logging
from datetime import datetime, timezone, timedelta
from decimal import Decimal

import yfinance as yf

from models.investment import PriceSnapshot

logger = logging.getLogger(__name__)

CACHE_TTL = timedelta(minutes=5)  # tiempo de cache
SUFIJO_B3 = ".SA"


def ticker_yfinance(tipo: str, simbolo: str) -> str:
    """
    Ticker que entiende yfinance: las acciones de B3 llevan sufijo '.SA' y las
    cripto se cotizan contra BRL ('BTC-BRL').
    """
    if tipo == "crypto":
        return f"{simbolo.upper()}-BRL"
    return f"{simbolo.upper()}{SUFIJO_B3}"


def fetch_price_yfinance(ticker: str) -> Decimal:
    """Consulta yfinance y devuelve el último cierre como Decimal."""
    t = yf.Ticker(ticker)
    hist = t.history(period="5d", interval="1d")
    if hist is None or hist.empty:
        raise RuntimeError(f"No se pudo obtener precio para {ticker}")
    last = hist["Close"].iloc[-1]
    return Decimal(str(round(float(last), 6)))


def get_cached_price(session, ticker: str, refresh: bool = False) -> tuple[Decimal, datetime]:
    """
    Devuelve (price, updated_at). Si existe snapshot sin caducar y refresh==False,
    devuelve el cache; si no, consulta yfinance y actualiza el snapshot.
    """
    ticker_u = ticker.upper()
    snap = session.query(PriceSnapshot).filter_by(ticker=ticker_u).one_or_none()
    now = datetime.now(timezone.utc)

    if snap and snap.price is not None and not refresh and snap.updated_at:
        updated = snap.updated_at
        if updated.tzinfo is None:
            # SQLite no guarda la zona horaria
            updated = updated.replace(tzinfo=timezone.utc)
        if now - updated < CACHE_TTL:
            return Decimal(str(snap.price)), updated

    price = fetch_price_yfinance(ticker_u)
    logger.info("Precio de %s actualizado: %s", ticker_u, price)
    if snap is None:
        snap = PriceSnapshot(ticker=ticker_u, price=price, updated_at=now)
        session.add(snap)
    else:
        snap.price = price
        snap.updated_at = now
    session.commit()
    return price, now
