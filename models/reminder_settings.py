from sqlalchemy import Column, Integer, Boolean
from database import db


class ReminderSettings(db.Base):
    __tablename__ = "reminder_settings"

    id = Column(Integer, primary_key=True)
    habilitado = Column(Boolean, nullable=False, default=True)
    hora = Column(Integer, nullable=False, default=9)
    minuto = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<ReminderSettings habilitado={self.habilitado} hora={self.hora} minuto={self.minuto}>"
