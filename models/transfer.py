from sqlalchemy import Column, Integer, ForeignKey, Date, DateTime, String, Numeric, func
from sqlalchemy.orm import relationship
from database import db


class Transfer(db.Base):
    __tablename__ = "transfer"

    id = Column(Integer, primary_key=True)
    cuenta_origen_id = Column(Integer, ForeignKey("account.id", ondelete="SET NULL"), nullable=True)
    cuenta_destino_id = Column(Integer, ForeignKey("account.id", ondelete="SET NULL"), nullable=True)
    monto = Column(Numeric(14, 2), nullable=False)
    fecha = Column(Date, nullable=False, index=True)
    descripcion = Column(String(255), nullable=True)
    creado = Column(DateTime, nullable=False, server_default=func.now())

    cuenta_origen = relationship("Account", foreign_keys=[cuenta_origen_id])
    cuenta_destino = relationship("Account", foreign_keys=[cuenta_destino_id])

    def __repr__(self):
        return (f"<Transfer id={self.id} {self.cuenta_origen_id}->{self.cuenta_destino_id} "
                f"fecha={self.fecha} monto={self.monto}>")
