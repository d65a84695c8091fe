"""
Configuración de logging para la aplicación
Crea archivos de log por día en la carpeta de logs
"""
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_dir: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Configura el logger 'app_costeo' con consola y archivo diario rotativo.

    Args:
        log_dir: Carpeta de logs (None = solo consola)
        level: Nivel mínimo
    """
    app_logger = logging.getLogger("app_costeo")
    app_logger.setLevel(level)

    # Eliminar handlers existentes para evitar duplicados
    app_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    log_file = None
    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y-%m-%d")
        log_file = path / f"costeo_{today}.log"

        # maxBytes=10MB, backupCount=5
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

    app_logger.info("Sistema de logging configurado. Archivo: %s", log_file or "(solo consola)")
    return app_logger
