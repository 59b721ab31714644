from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

ROOT_DIR = Path(__file__).resolve().parents[1]

# Base de datos: por defecto SQLite en la raíz del proyecto
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{ROOT_DIR / 'consultorio.sqlite'}")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Sesión (cookie firmada con JWT)
DEFAULT_SESSION_SECRET = "default-secret-change-in-production"
SESSION_SECRET = os.getenv("SESSION_SECRET", DEFAULT_SESSION_SECRET)
SESSION_ALG = "HS256"
SESSION_COOKIE_NAME = "__consultorio_session"
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", str(60 * 60 * 24 * 7)))
SESSION_COOKIE_SECURE = APP_ENV == "production"

# Cliente Streamlit
API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")
