# ==============================================================================
# CONFIGURACIÓN DE LA APLICACIÓN
# ==============================================================================
# Valores de despliegue leídos de variables de entorno:
#   COSTEO_DATA_DIR          → carpeta de los archivos JSON (default: ./data)
#   COSTEO_SECRET_KEY        → clave de Flask (obligatoria en producción)
#   COSTEO_ENABLE_PROFILING  → '1' para medir rutas y funciones
#   COSTEO_LOG_DIR           → carpeta de logs (default: ./logs)
#   COSTEO_MAX_BACKUPS       → backups ZIP a conservar (default: 7)
#   COSTEO_STARTUP_BACKUP    → '0' para no crear backup al arrancar
#
# La configuración del NEGOCIO (comisiones, moneda...) vive en el almacén
# y se gestiona con ConfigService.
# ==============================================================================

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


BASE = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

_DEFAULT_SECRET = "app_costeo_dev_secret_key_change_in_production"


def _flag(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'si', 'sí', 'on')


@dataclass
class Settings:
    """Configuración de despliegue."""
    data_dir: str
    log_dir: str
    secret_key: str = _DEFAULT_SECRET
    enable_profiling: bool = True
    max_backups: int = 7
    startup_backup: bool = True
    testing: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'Settings':
        """
        Construye la configuración desde variables de entorno.

        Args:
            environ: Diccionario de variables (por defecto os.environ)
        """
        environ = os.environ if environ is None else environ
        try:
            max_backups = int(environ.get('COSTEO_MAX_BACKUPS', 7))
        except ValueError:
            max_backups = 7
        return cls(
            data_dir=environ.get('COSTEO_DATA_DIR') or os.path.join(BASE, 'data'),
            log_dir=environ.get('COSTEO_LOG_DIR') or os.path.join(BASE, 'logs'),
            secret_key=environ.get('COSTEO_SECRET_KEY') or _DEFAULT_SECRET,
            enable_profiling=_flag(environ.get('COSTEO_ENABLE_PROFILING'), default=True),
            max_backups=max(max_backups, 1),
            startup_backup=_flag(environ.get('COSTEO_STARTUP_BACKUP'), default=True),
        )

    def to_flask(self) -> Dict[str, Any]:
        """Claves para app.config."""
        return {
            'SECRET_KEY': self.secret_key,
            'TESTING': self.testing,
            'COSTEO_DATA_DIR': self.data_dir,
            'COSTEO_LOG_DIR': self.log_dir,
            'JSON_SORT_KEYS': False,
            'MAX_CONTENT_LENGTH': 20 * 1024 * 1024,
        }
