# models/investment.py
from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey, CheckConstraint, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database import db

TIPOS_INVERSION = ("b3", "crypto")
MODOS_COMPRA = ("quantity", "value")


class Investment(db.Base):
    """Posición acumulada en un activo: cantidad total y precio medio ponderado."""
    __tablename__ = "investment"
    __table_args__ = (
        CheckConstraint("tipo IN ('b3', 'crypto')", name="ck_investment_tipo"),
        UniqueConstraint("tipo", "simbolo", name="uq_investment_tipo_simbolo"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    tipo = Column(String(10), nullable=False)
    simbolo = Column(String(50), nullable=False)          # e.g. 'PETR4', 'bitcoin'
    nombre = Column(String(120), nullable=True)
    cantidad = Column(Numeric(24, 8), nullable=False, default=0)
    precio_medio = Column(Numeric(24, 8), nullable=False, default=0)
    moneda = Column(String(8), nullable=False, default="BRL")
    creado = Column(DateTime, nullable=False, server_default=func.now())

    purchases = relationship("InvestmentPurchase", back_populates="investment", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Investment id={self.id} {self.tipo}:{self.simbolo} cantidad={self.cantidad} precio_medio={self.precio_medio}>"


class InvestmentPurchase(db.Base):
    __tablename__ = "investment_purchase"
    __table_args__ = (
        CheckConstraint("modo IN ('quantity', 'value')", name="ck_investment_purchase_modo"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    investment_id = Column(Integer, ForeignKey("investment.id", ondelete="CASCADE"), nullable=False)
    fecha = Column(Date, nullable=False)
    precio_unitario = Column(Numeric(24, 8), nullable=False)
    cantidad = Column(Numeric(24, 8), nullable=False)
    total_invertido = Column(Numeric(24, 8), nullable=False)
    modo = Column(String(10), nullable=False)
    valor_introducido = Column(Numeric(24, 8), nullable=True)  # solo modo 'value'

    investment = relationship("Investment", back_populates="purchases")

    def __repr__(self):
        return f"<InvestmentPurchase id={self.id} investment_id={self.investment_id} fecha={self.fecha} cantidad={self.cantidad} precio={self.precio_unitario}>"


class PriceSnapshot(db.Base):
    """
    Cache simple del precio actual por ticker (un registro por ticker)
    """
    __tablename__ = "price_snapshot"
    id = Column(Integer, primary_key=True, autoincrement=True)
    ticker = Column(String(50), nullable=False, unique=True)
    price = Column(Numeric(18, 6), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<PriceSnapshot ticker={self.ticker} price={self.price} updated_at={self.updated_at}>"
