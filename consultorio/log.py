"""
Configuración de logging de la aplicación.
"""
from __future__ import annotations

import logging
import sys

from . import config


def configure_logging() -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        stream=sys.stdout,
    )

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if config.SQL_ECHO else logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

    if config.SESSION_SECRET == config.DEFAULT_SESSION_SECRET:
        logging.getLogger(__name__).warning(
            "Usando secreto de sesión por defecto. Configura SESSION_SECRET en .env para producción."
        )
