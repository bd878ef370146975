# database/__init__.py
import logging
import os
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

load_dotenv()

logger = logging.getLogger(__name__)

# Declarative base disponible desde la importación para que los modelos se registren solos
Base = declarative_base()


class _DB:
    def __init__(self):
        self.engine = None
        self.SessionLocal = None
        self.url = None
        self.echo = False
        self._initialized = False

    def init_app(self, db_url: str | None = None, echo: bool | None = None, **engine_kwargs):
        """
        Inicializa engine y SessionLocal. Si no hay DATABASE_URL no lanza excepción:
        deja la configuración en un estado no inicializado y el CLI avisa al usuario.
        """
        if db_url is None:
            db_url = os.environ.get("DATABASE_URL")

        if echo is None:
            echo_env = os.environ.get("DB_ECHO", "False")
            echo = echo_env.lower() in ("1", "true", "yes")

        if not db_url:
            self.engine = None
            self.SessionLocal = None
            self.url = None
            self.echo = echo
            self._initialized = True
            logger.warning("DATABASE_URL no definida; base de datos sin inicializar")
            return

        # Misma URL y engine vivo: no se recrea
        if self.url == db_url and self.engine is not None:
            self.echo = echo
            self._initialized = True
            return

        if self.engine is not None:
            self.close_all()

        self.url = db_url
        self.echo = echo
        if not db_url.startswith("sqlite"):
            # pool_pre_ping ayuda a reconectar conexiones muertas
            engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine = create_engine(db_url, echo=echo, future=True, **engine_kwargs)
        self.SessionLocal = scoped_session(sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False))
        self._initialized = True
        logger.debug("Engine creado para %s", self.engine.url.render_as_string(hide_password=True))

    def session(self):
        if self.SessionLocal is None:
            raise RuntimeError("DB no inicializado. Llama a db.init_app() primero o configura DATABASE_URL.")
        return self.SessionLocal()

    def create_all(self):
        if self.engine is None:
            raise RuntimeError("DB no inicializado. Llama a db.init_app() primero.")
        # importar modelos para registrar todas las tablas en Base.metadata
        import models  # noqa: F401
        Base.metadata.create_all(bind=self.engine)

    def close_all(self):
        """
        Cierra sesiones y engine (útil para reconfigurar y en los tests).
        """
        if self.SessionLocal is not None:
            self.SessionLocal.remove()
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.SessionLocal = None
        self.url = None
        self._initialized = False


# exportados por el paquete
db = _DB()
# para compatibilidad con el código que usa db.Base
db.Base = Base
