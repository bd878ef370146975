from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, CheckConstraint, func
from database import db


class Goal(db.Base):
    """Meta de ahorro, inversión o pago de deuda."""
    __tablename__ = "goal"
    __table_args__ = (
        CheckConstraint("objetivo > 0", name="ck_goal_objetivo"),
        CheckConstraint("actual >= 0 AND actual <= objetivo", name="ck_goal_actual"),
    )

    id = Column(Integer, primary_key=True)
    nombre = Column(String(120), nullable=False)
    objetivo = Column(Numeric(14, 2), nullable=False)
    actual = Column(Numeric(14, 2), nullable=False, default=0)
    fecha_limite = Column(Date, nullable=True)
    creado = Column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Goal id={self.id} nombre={self.nombre} actual={self.actual} objetivo={self.objetivo}>"
