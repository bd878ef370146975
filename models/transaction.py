# models/transaction.py
from sqlalchemy import Column, Integer, ForeignKey, Date, DateTime, String, Numeric, Boolean, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import db

TIPOS_TRANSACCION = ("income", "expense", "card_expense")


class Transaction(db.Base):
    __tablename__ = "transaction"
    __table_args__ = (
        CheckConstraint("tipo IN ('income', 'expense', 'card_expense')", name="ck_transaction_tipo"),
    )

    id = Column(Integer, primary_key=True)
    tipo = Column(String(20), nullable=False)
    cuenta_id = Column(Integer, ForeignKey("account.id", ondelete="SET NULL"), nullable=True)
    monto = Column(Numeric(14, 2), nullable=False)
    fecha = Column(Date, nullable=False, index=True)
    descripcion = Column(String(255), nullable=True)
    categoria = Column(String(60), nullable=True)

    # compras en cuotas
    es_parcelado = Column(Boolean, nullable=True)
    total_parcelas = Column(Integer, nullable=True)
    parcelas_pagadas = Column(Integer, nullable=True)
    pagado = Column(Boolean, nullable=True)

    creado = Column(DateTime, nullable=False, server_default=func.now())

    cuenta = relationship("Account", backref="transactions")

    def __repr__(self):
        return f"<Transaction id={self.id} tipo={self.tipo} cuenta={self.cuenta_id} fecha={self.fecha} monto={self.monto}>"

    def to_dict(self):
        return {
            "id": self.id,
            "tipo": self.tipo,
            "cuenta_id": self.cuenta_id,
            "monto": self.monto,
            "fecha": self.fecha,
            "descripcion": self.descripcion,
            "categoria": self.categoria,
            "es_parcelado": bool(self.es_parcelado),
            "total_parcelas": self.total_parcelas,
            "parcelas_pagadas": self.parcelas_pagadas or 0,
            "pagado": self.pagado,
        }
