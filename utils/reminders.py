# utils/reminders.py
"""
Recordatorio diario y avisos de cierre / vencimiento de tarjetas.

El estado local (idioma, avisos ya mostrados hoy, permiso pedido) se guarda en
un JSON clave-valor; las claves de aviso llevan la fecha para no repetirlos
el mismo día.
"""
import calendar
import json
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path

logger = logging.getLogger(__name__)

VENTANA = timedelta(minutes=10)
CLAVE_PERMISO = "daily-reminder-permission-requested"
CLAVE_IDIOMA = "language"
IDIOMAS = ("es", "en")
HORA_POR_DEFECTO = 20


def ruta_estado_por_defecto() -> Path:
    env_path = os.environ.get("FINANZAS_STATE_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".finanzas" / "estado.json"


class EstadoLocal:
    """Almacén clave-valor persistido en un fichero JSON."""

    def __init__(self, ruta: Path | str | None = None):
        self.ruta = Path(ruta) if ruta else ruta_estado_por_defecto()
        self._datos = self._cargar()

    def _cargar(self) -> dict:
        if not self.ruta.exists():
            return {}
        try:
            with open(self.ruta, "r", encoding="utf-8") as f:
                datos = json.load(f)
        except json.JSONDecodeError as exc:
            logger.warning("Estado local corrupto en %s, se empieza de cero: %s", self.ruta, exc)
            return {}
        return datos if isinstance(datos, dict) else {}

    def get(self, clave: str, defecto=None):
        return self._datos.get(clave, defecto)

    def set(self, clave: str, valor) -> None:
        self._datos[clave] = valor
        self.ruta.parent.mkdir(parents=True, exist_ok=True)
        with open(self.ruta, "w", encoding="utf-8") as f:
            json.dump(self._datos, f, ensure_ascii=False, indent=2)

    @property
    def idioma(self) -> str:
        return self.get(CLAVE_IDIOMA, "es")

    @idioma.setter
    def idioma(self, valor: str) -> None:
        if valor not in IDIOMAS:
            raise ValueError(f"Idioma no soportado: {valor}")
        self.set(CLAVE_IDIOMA, valor)


@dataclass
class Notificacion:
    titulo: str
    cuerpo: str
    etiqueta: str


def clave_fecha(d: date) -> str:
    return f"{d.year}{d.month:02d}{d.day:02d}"


def clave_recordatorio(tipo: str, fecha_clave: str, ident=None) -> str:
    return f"reminder-shown-{tipo}-{ident if ident is not None else 'global'}-{fecha_clave}"


def en_ventana_recordatorio(ahora: datetime, hora: int, minuto: int) -> bool:
    """True durante los 10 minutos siguientes a la hora configurada."""
    objetivo = ahora.replace(hour=hora, minute=minuto, second=0, microsecond=0)
    diff = ahora - objetivo
    return timedelta(0) <= diff < VENTANA


def dia_valido(d: date, dia: int) -> int:
    """Ajusta `dia` al rango del mes de `d` (31 en febrero -> 28/29)."""
    ultimo = calendar.monthrange(d.year, d.month)[1]
    return min(max(dia, 1), ultimo)


def debe_pedir_permiso(estado: EstadoLocal) -> bool:
    return estado.get(CLAVE_PERMISO) != "yes"


def marcar_permiso_pedido(estado: EstadoLocal) -> None:
    estado.set(CLAVE_PERMISO, "yes")


def _avisar_una_vez(estado, clave, notificacion, pendientes):
    if estado.get(clave) == "yes":
        return
    pendientes.append(notificacion)
    estado.set(clave, "yes")


def recordatorios_pendientes(ahora: datetime, ajustes, tarjetas, estado: EstadoLocal) -> list[Notificacion]:
    """
    Avisos que tocan ahora y aún no se mostraron hoy (quedan marcados):

      - recordatorio diario
      - tarjeta que cierra hoy
      - tarjeta que vence mañana
    Solo dentro de la ventana de 10 minutos tras la hora configurada.
    """
    if ajustes is None or not ajustes.habilitado:
        return []
    hora = ajustes.hora if ajustes.hora is not None else HORA_POR_DEFECTO
    minuto = ajustes.minuto if ajustes.minuto is not None else 0
    if not en_ventana_recordatorio(ahora, hora, minuto):
        return []

    hoy = ahora.date()
    fecha_clave = clave_fecha(hoy)
    pendientes = []

    _avisar_una_vez(
        estado,
        clave_recordatorio("daily", fecha_clave),
        Notificacion("Hora de revisar finanzas e inversiones",
                     "Abre la app y consulta el resumen del día.",
                     "finanzas-daily-reminder"),
        pendientes,
    )

    for tarjeta in tarjetas:
        nombre = tarjeta.nombre or "Tarjeta"
        if tarjeta.dia_cierre:
            cierre = hoy.replace(day=dia_valido(hoy, tarjeta.dia_cierre))
            if cierre == hoy:
                _avisar_una_vez(
                    estado,
                    clave_recordatorio("card-closing", fecha_clave, tarjeta.id),
                    Notificacion(f"La tarjeta cierra hoy: {nombre}",
                                 "La factura de la tarjeta cerró hoy.",
                                 f"finanzas-card-closing-{tarjeta.id}"),
                    pendientes,
                )
        if tarjeta.dia_vencimiento:
            vencimiento = hoy.replace(day=dia_valido(hoy, tarjeta.dia_vencimiento))
            if vencimiento - timedelta(days=1) == hoy:
                _avisar_una_vez(
                    estado,
                    clave_recordatorio("card-due", fecha_clave, tarjeta.id),
                    Notificacion(f"Vence mañana: {nombre}",
                                 "La factura vence mañana. Revisa el pago.",
                                 f"finanzas-card-due-{tarjeta.id}"),
                    pendientes,
                )

    if pendientes:
        logger.info("%d recordatorios pendientes", len(pendientes))
    return pendientes
