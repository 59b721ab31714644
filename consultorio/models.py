from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def new_uuid() -> str:
    return str(uuid.uuid4())


def ahora() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class EstadoTurno(str, enum.Enum):
    PROGRAMADO = "scheduled"
    ATENDIDO = "attended"
    CANCELADO = "cancelled"
    AUSENTE = "no_show"


class EstadoFactura(str, enum.Enum):
    PENDIENTE = "pending"
    PAGADA = "paid"
    ANULADA = "cancelled"


def _valores(enum_cls: type[enum.Enum]) -> list[str]:
    # en la base se guarda el valor ("scheduled"), no el nombre del miembro
    return [m.value for m in enum_cls]


class ObraSocial(Base):
    __tablename__ = "obras_sociales"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    codigo: Mapped[str | None] = mapped_column(String(50), nullable=True)
    descripcion: Mapped[str | None] = mapped_column(Text, nullable=True)
    telefono: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sitio_web: Mapped[str | None] = mapped_column(String(255), nullable=True)
    activa: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)
    actualizado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)

    def __repr__(self) -> str:
        return f"ObraSocial({self.nombre})"


class Paciente(Base):
    __tablename__ = "pacientes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    apellido: Mapped[str] = mapped_column(String(255), nullable=False)
    tipo_documento: Mapped[str] = mapped_column(String(20), nullable=False, default="DNI")
    numero_documento: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    fecha_nacimiento: Mapped[date | None] = mapped_column(Date, nullable=True)
    genero: Mapped[str | None] = mapped_column(String(20), nullable=True)
    telefono: Mapped[str | None] = mapped_column(String(50), nullable=True)
    whatsapp: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    direccion: Mapped[str | None] = mapped_column(Text, nullable=True)
    # HC
    numero_historia_clinica: Mapped[str | None] = mapped_column(String(50), nullable=True, unique=True)
    # la obra social se referencia por nombre: renombrarla arrastra a los pacientes
    obra_social: Mapped[str | None] = mapped_column(
        ForeignKey("obras_sociales.nombre", ondelete="RESTRICT", onupdate="CASCADE"), nullable=True
    )
    numero_afiliado: Mapped[str | None] = mapped_column(String(100), nullable=True)

    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)
    actualizado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)

    def __repr__(self) -> str:
        return f"Paciente({self.nombre} {self.apellido}, {self.numero_documento})"


class Medico(Base):
    __tablename__ = "medicos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    apellido: Mapped[str] = mapped_column(String(255), nullable=False)
    tipo_documento: Mapped[str] = mapped_column(String(20), nullable=False, default="DNI")
    numero_documento: Mapped[str] = mapped_column(String(50), nullable=False)
    matricula: Mapped[str | None] = mapped_column(String(100), nullable=True)
    especialidad: Mapped[str | None] = mapped_column(String(255), nullable=True)
    practica: Mapped[str | None] = mapped_column(String(255), nullable=True)
    foto_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    firma_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    plantilla_atencion: Mapped[str | None] = mapped_column(Text, nullable=True)
    ventana_atencion_inicio: Mapped[time | None] = mapped_column(Time, nullable=True)
    ventana_atencion_fin: Mapped[time | None] = mapped_column(Time, nullable=True)

    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)
    actualizado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)

    dias_no_laborables: Mapped[list["MedicoDiaNoLaborable"]] = relationship(
        back_populates="medico", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"Medico({self.nombre} {self.apellido}, {self.especialidad})"


class MedicoDiaNoLaborable(Base):
    __tablename__ = "medico_dias_no_laborables"
    __table_args__ = (UniqueConstraint("medico_id", "fecha", name="uq_medico_dia_no_laborable"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    medico_id: Mapped[str] = mapped_column(ForeignKey("medicos.id", ondelete="CASCADE"), nullable=False)
    fecha: Mapped[date] = mapped_column(Date, nullable=False)
    motivo: Mapped[str | None] = mapped_column(Text, nullable=True)
    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)

    medico: Mapped["Medico"] = relationship(back_populates="dias_no_laborables")


class Consultorio(Base):
    __tablename__ = "consultorios"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    descripcion: Mapped[str | None] = mapped_column(Text, nullable=True)

    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)
    actualizado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)


class TipoTurno(Base):
    __tablename__ = "tipos_turno"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    descripcion: Mapped[str | None] = mapped_column(Text, nullable=True)
    duracion_minutos: Mapped[int] = mapped_column(Integer, nullable=False, default=30)

    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)
    actualizado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)


class MedicoTipoTurno(Base):
    __tablename__ = "medico_tipos_turno"
    __table_args__ = (UniqueConstraint("medico_id", "tipo_turno_id", name="uq_medico_tipo_turno"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    medico_id: Mapped[str] = mapped_column(ForeignKey("medicos.id", ondelete="CASCADE"), nullable=False)
    tipo_turno_id: Mapped[str] = mapped_column(ForeignKey("tipos_turno.id", ondelete="CASCADE"), nullable=False)
    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)

    tipo_turno: Mapped["TipoTurno"] = relationship()


class Institucion(Base):
    __tablename__ = "instituciones"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    descripcion: Mapped[str | None] = mapped_column(Text, nullable=True)
    direccion: Mapped[str | None] = mapped_column(Text, nullable=True)
    telefono: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sitio_web: Mapped[str | None] = mapped_column(String(255), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)
    actualizado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)


class InstitucionDiaNoLaborable(Base):
    __tablename__ = "institucion_dias_no_laborables"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    fecha: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    motivo: Mapped[str | None] = mapped_column(Text, nullable=True)
    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)


class Turno(Base):
    __tablename__ = "turnos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    paciente_id: Mapped[str] = mapped_column(ForeignKey("pacientes.id", ondelete="CASCADE"), nullable=False)
    # opcionales, pero no se puede borrar un médico / consultorio / tipo con turnos
    medico_id: Mapped[str | None] = mapped_column(ForeignKey("medicos.id", ondelete="RESTRICT"), nullable=True)
    consultorio_id: Mapped[str | None] = mapped_column(
        ForeignKey("consultorios.id", ondelete="RESTRICT"), nullable=True
    )
    tipo_turno_id: Mapped[str | None] = mapped_column(ForeignKey("tipos_turno.id", ondelete="RESTRICT"), nullable=True)

    fecha: Mapped[date] = mapped_column(Date, nullable=False)
    hora: Mapped[time] = mapped_column(Time, nullable=False)

    estado: Mapped[EstadoTurno] = mapped_column(
        Enum(EstadoTurno, values_callable=_valores, native_enum=False, length=20),
        default=EstadoTurno.PROGRAMADO,
        nullable=False,
    )
    sobre_turno: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    notas: Mapped[str | None] = mapped_column(Text, nullable=True)
    hora_recepcion: Mapped[time | None] = mapped_column(Time, nullable=True)
    motivo_inasistencia: Mapped[str | None] = mapped_column(Text, nullable=True)
    seguimiento_inasistencia: Mapped[str | None] = mapped_column(Text, nullable=True)

    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)
    actualizado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)


class Factura(Base):
    __tablename__ = "facturas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    paciente_id: Mapped[str] = mapped_column(ForeignKey("pacientes.id", ondelete="CASCADE"), nullable=False)
    monto: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    estado: Mapped[EstadoFactura] = mapped_column(
        Enum(EstadoFactura, values_callable=_valores, native_enum=False, length=20),
        default=EstadoFactura.PENDIENTE,
        nullable=False,
    )
    fecha: Mapped[date] = mapped_column(Date, default=date.today, nullable=False)
    notas: Mapped[str | None] = mapped_column(Text, nullable=True)

    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)
    actualizado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)

    pagos: Mapped[list["Pago"]] = relationship(back_populates="factura", passive_deletes=True)


class Pago(Base):
    __tablename__ = "pagos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    factura_id: Mapped[str] = mapped_column(ForeignKey("facturas.id", ondelete="CASCADE"), nullable=False)
    monto: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    metodo: Mapped[str | None] = mapped_column(String(50), nullable=True)
    fecha: Mapped[date] = mapped_column(Date, default=date.today, nullable=False)
    creado_el: Mapped[datetime] = mapped_column(DateTime, default=ahora, nullable=False)

    factura: Mapped["Factura"] = relationship(back_populates="pagos")
