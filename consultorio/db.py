from __future__ import annotations

import enum
from contextlib import contextmanager
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterator

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from . import config

_connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    config.DATABASE_URL,
    echo=config.SQL_ECHO,
    future=True,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
    expire_on_commit=False
)


if engine.dialect.name == "sqlite":

    @event.listens_for(engine, "connect")
    def _sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
        # SQLite no aplica las claves foráneas si no se activan en cada conexión
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class Base(DeclarativeBase):
    """Base ORM para todos los modelos."""

    def a_dict(self) -> dict[str, Any]:
        """Fila 'plana' serializable (fechas en ISO, importes como texto)."""
        out: dict[str, Any] = {}
        for attr in inspect(self).mapper.column_attrs:
            value = getattr(self, attr.key)
            if isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, (date, datetime, time)):
                value = value.isoformat()
            elif isinstance(value, enum.Enum):
                value = value.value
            out[attr.key] = value
        return out


def init_db() -> None:
    """Crea las tablas si no existen."""
    # registra todos los modelos en el metadata
    from . import auth_models, models  # noqa: F401

    Base.metadata.create_all(bind=engine)


@contextmanager
def db_session() -> Iterator[Session]:
    """
    Context manager para manejar correctamente la sesión:
    - commit si todo sale bien
    - rollback ante excepciones
    - close siempre
    """
    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
