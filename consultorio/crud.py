"""
Alta / modificación / baja a partir de formularios.

Cada servicio:
- extrae del formulario solo los campos que conoce (texto recortado, vacío -> None)
- convierte fechas, horas, enteros y booleanos
- valida obligatorios (se devuelve el primer error)
- delega en el repositorio de la entidad
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Callable, Mapping

from . import consultorios, instituciones, medicos, obras_sociales, pacientes, tipos_turno
from .errors import Resultado


# =========================
# Extracción / conversión
# =========================
def limpio(valor: Any) -> str | None:
    if valor is None:
        return None
    texto = str(valor).strip()
    return texto or None


def a_fecha(valor: str | None) -> date | None:
    return date.fromisoformat(valor) if valor else None


def a_hora(valor: str | None) -> time | None:
    return time.fromisoformat(valor) if valor else None


def a_entero(valor: str | None) -> int | None:
    return int(valor) if valor else None


def a_bool(valor: str | None) -> bool:
    return (valor or "").lower() in {"1", "true", "on", "si", "sí", "yes"}


def extraer(form: Mapping[str, Any], campos: tuple[str, ...]) -> dict[str, str | None]:
    """Solo los campos presentes en el formulario."""
    return {c: limpio(form.get(c)) for c in campos if c in form}


@dataclass(frozen=True)
class ServicioCrud:
    entidad: str
    campos: tuple[str, ...]
    # (campo, mensaje) en orden: el primero que falta es el error
    obligatorios: tuple[tuple[str, str], ...]
    repo_crear: Callable[[dict], Resultado]
    repo_actualizar: Callable[[str, dict], Resultado]
    repo_eliminar: Callable[[str], Resultado]
    conversores: dict[str, Callable[[str | None], Any]] = field(default_factory=dict)
    # en la modificación: True = siempre obligatorios, False = solo si vienen en el form
    obligatorios_en_modificacion: bool = False
    valores_por_defecto: dict[str, Any] = field(default_factory=dict)
    # checkboxes: el navegador no envía las desmarcadas
    casillas: tuple[str, ...] = ()

    def _validar(self, datos: dict[str, Any], es_alta: bool) -> str | None:
        for campo, mensaje in self.obligatorios:
            if es_alta or self.obligatorios_en_modificacion or campo in datos:
                if not datos.get(campo):
                    return mensaje
        return None

    def _convertir(self, datos: dict[str, Any]) -> str | None:
        for campo, conv in self.conversores.items():
            if campo in datos:
                try:
                    datos[campo] = conv(datos[campo])
                except ValueError:
                    return f"Valor inválido para {campo}"
        return None

    def _preparar(self, form: Mapping[str, Any], es_alta: bool) -> dict[str, Any]:
        datos: dict[str, Any] = extraer(form, self.campos)
        for campo in self.casillas:
            datos.setdefault(campo, None)
        for campo, valor in self.valores_por_defecto.items():
            # en la modificación solo se completa lo que llegó vacío
            if (es_alta or campo in datos) and not datos.get(campo):
                datos[campo] = valor
        return datos

    def alta(self, form: Mapping[str, Any]) -> Resultado:
        datos = self._preparar(form, es_alta=True)
        error = self._validar(datos, es_alta=True) or self._convertir(datos)
        if error:
            return Resultado.fallo(error)
        res = self.repo_crear(datos)
        if not res.ok:
            return Resultado.fallo(res.error or f"Error al crear {self.entidad}")
        return res

    def modificacion(self, entidad_id: str, form: Mapping[str, Any]) -> Resultado:
        datos = self._preparar(form, es_alta=False)
        error = self._validar(datos, es_alta=False) or self._convertir(datos)
        if error:
            return Resultado.fallo(error)
        res = self.repo_actualizar(entidad_id, datos)
        if not res.ok:
            return Resultado.fallo(res.error or f"Error al actualizar {self.entidad}")
        return res

    def baja(self, entidad_id: str) -> Resultado:
        res = self.repo_eliminar(entidad_id)
        if not res.ok:
            return Resultado.fallo(res.error or f"Error al eliminar {self.entidad}")
        return res


def _duracion(valor: str | None) -> int | None:
    minutos = a_entero(valor)
    if minutos is not None and minutos <= 0:
        raise ValueError(valor)
    return minutos


# =========================
# Servicios por entidad
# =========================
MEDICOS = ServicioCrud(
    entidad="el médico",
    campos=tuple(sorted(medicos.CAMPOS_EDITABLES)),
    obligatorios=(
        ("nombre", "El nombre es obligatorio"),
        ("apellido", "El apellido es obligatorio"),
        ("numero_documento", "El número de documento es obligatorio"),
    ),
    repo_crear=medicos.crear_medico,
    repo_actualizar=medicos.actualizar_medico,
    repo_eliminar=medicos.eliminar_medico,
    conversores={"ventana_atencion_inicio": a_hora, "ventana_atencion_fin": a_hora},
    obligatorios_en_modificacion=True,
    valores_por_defecto={"tipo_documento": "DNI"},
)

CONSULTORIOS = ServicioCrud(
    entidad="el consultorio",
    campos=tuple(sorted(consultorios.CAMPOS_EDITABLES)),
    obligatorios=(("nombre", "El nombre es obligatorio"),),
    repo_crear=consultorios.crear_consultorio,
    repo_actualizar=consultorios.actualizar_consultorio,
    repo_eliminar=consultorios.eliminar_consultorio,
)

TIPOS_TURNO = ServicioCrud(
    entidad="el tipo de turno",
    campos=tuple(sorted(tipos_turno.CAMPOS_EDITABLES)),
    obligatorios=(
        ("nombre", "El nombre es obligatorio"),
        ("duracion_minutos", "La duración es obligatoria"),
    ),
    repo_crear=tipos_turno.crear_tipo_turno,
    repo_actualizar=tipos_turno.actualizar_tipo_turno,
    repo_eliminar=tipos_turno.eliminar_tipo_turno,
    conversores={"duracion_minutos": _duracion},
)

OBRAS_SOCIALES = ServicioCrud(
    entidad="la obra social",
    campos=tuple(sorted(obras_sociales.CAMPOS_EDITABLES)),
    obligatorios=(("nombre", "El nombre es obligatorio"),),
    repo_crear=obras_sociales.crear_obra_social,
    repo_actualizar=obras_sociales.actualizar_obra_social,
    repo_eliminar=obras_sociales.eliminar_obra_social,
    conversores={"activa": a_bool},
    casillas=("activa",),
)

INSTITUCIONES = ServicioCrud(
    entidad="la institución",
    campos=tuple(sorted(instituciones.CAMPOS_EDITABLES)),
    obligatorios=(("nombre", "El nombre es obligatorio"),),
    repo_crear=instituciones.crear_institucion,
    repo_actualizar=instituciones.actualizar_institucion,
    repo_eliminar=instituciones.eliminar_institucion,
)

PACIENTES = ServicioCrud(
    entidad="el paciente",
    campos=tuple(sorted(pacientes.CAMPOS_EDITABLES)),
    obligatorios=(
        ("nombre", "Nombre, apellido y DNI son obligatorios"),
        ("apellido", "Nombre, apellido y DNI son obligatorios"),
        ("numero_documento", "Nombre, apellido y DNI son obligatorios"),
    ),
    repo_crear=pacientes.crear_paciente,
    repo_actualizar=pacientes.actualizar_paciente,
    repo_eliminar=pacientes.eliminar_paciente,
    conversores={"fecha_nacimiento": a_fecha},
    obligatorios_en_modificacion=True,
    valores_por_defecto={"tipo_documento": "DNI"},
)
