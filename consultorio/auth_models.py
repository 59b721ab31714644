from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from consultorio.db import Base
from consultorio.models import ahora, new_uuid


class Token(Base):
    """
    Token de acceso compartido (no hay cuentas por usuario).
    - tipo único ("Developer", "Recepcion", ...)
    - token_hash con bcrypt (passlib)
    """
    __tablename__ = "tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    tipo: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    token_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)
