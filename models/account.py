from sqlalchemy import Column, Integer, String, Numeric, DateTime, CheckConstraint, func
from database import db

TIPOS_CUENTA = ("bank", "card")


class Account(db.Base):
    """Cuenta bancaria o tarjeta de crédito (comparten tabla)."""
    __tablename__ = "account"
    __table_args__ = (
        CheckConstraint("tipo IN ('bank', 'card')", name="ck_account_tipo"),
        CheckConstraint("dia_cierre IS NULL OR (dia_cierre BETWEEN 1 AND 31)", name="ck_account_dia_cierre"),
        CheckConstraint("dia_vencimiento IS NULL OR (dia_vencimiento BETWEEN 1 AND 31)", name="ck_account_dia_vencimiento"),
    )

    id = Column(Integer, primary_key=True)
    nombre = Column(String(80), nullable=False)
    tipo = Column(String(10), nullable=False, default="bank")
    saldo_inicial = Column(Numeric(14, 2), nullable=False, default=0)
    saldo = Column(Numeric(14, 2), nullable=False, default=0)  # se mueve por delta al registrar movimientos

    # solo tarjetas
    limite = Column(Numeric(14, 2), nullable=True)
    dia_cierre = Column(Integer, nullable=True)
    dia_vencimiento = Column(Integer, nullable=True)

    creado = Column(DateTime, nullable=False, server_default=func.now())

    @property
    def es_tarjeta(self) -> bool:
        return self.tipo == "card" or (self.limite is not None and self.limite > 0)

    def __repr__(self):
        return f"<Account id={self.id} nombre={self.nombre} tipo={self.tipo} saldo={self.saldo}>"

    def to_dict(self):
        return {
            "id": self.id,
            "nombre": self.nombre,
            "tipo": self.tipo,
            "saldo_inicial": self.saldo_inicial,
            "saldo": self.saldo,
            "limite": self.limite,
            "dia_cierre": self.dia_cierre,
            "dia_vencimiento": self.dia_vencimiento,
            "es_tarjeta": self.es_tarjeta,
        }
