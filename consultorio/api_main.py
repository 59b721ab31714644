from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import BaseModel, Field

from consultorio import (
    config,
    consultorios,
    crud,
    dias_no_laborables,
    facturacion,
    instituciones,
    medicos,
    obras_sociales,
    pacientes,
    reportes,
    tipos_turno,
    turnos,
)
from consultorio.auth_security import create_session_token, get_tipo
from consultorio.auth_service import info_usuario, verificar_token
from consultorio.db import Base, init_db
from consultorio.errors import Resultado, es_uuid_valido
from consultorio.log import configure_logging
from consultorio.seed import seed_base

logger = logging.getLogger(__name__)

app = FastAPI(title="Consultorio API", version="1.0.0")


# Startup

@app.on_event("startup")
def startup() -> None:
    # Logging, tablas y datos base (idempotente)
    configure_logging()
    init_db()
    seed_base()


# =========================
# Sesión / dependencias
# =========================
def tipo_sesion(request: Request) -> str | None:
    return get_tipo(request.cookies.get(config.SESSION_COOKIE_NAME))


def requiere_sesion(tipo: str | None = Depends(tipo_sesion)) -> str:
    """Páginas: sin sesión se redirige al login."""
    if not tipo:
        raise HTTPException(status_code=status.HTTP_303_SEE_OTHER, headers={"Location": "/login"})
    return tipo


def requiere_sesion_api(tipo: str | None = Depends(tipo_sesion)) -> str:
    """API JSON: sin sesión, 401."""
    if not tipo:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No autorizado")
    return tipo


async def leer_formulario(request: Request) -> dict[str, str]:
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


# =========================
# Helpers de respuesta
# =========================
def _plano(data: Any) -> Any:
    if isinstance(data, Base):
        return data.a_dict()
    if isinstance(data, list):
        return [_plano(d) for d in data]
    return data


def _accion(resultado: Resultado, accion: str, **extra: Any) -> dict[str, Any]:
    return {"ok": resultado.ok, "error": resultado.error, "data": _plano(resultado.data), "accion": accion, **extra}


def _accion_invalida() -> dict[str, Any]:
    return _accion(Resultado.fallo("Acción no válida"), "")


def _fecha_param(valor: str | None) -> date | None:
    """'' -> None; fecha ISO inválida -> 400."""
    if not valor:
        return None
    try:
        return date.fromisoformat(valor)
    except ValueError:
        raise HTTPException(status_code=400, detail="Fecha inválida")


def _fecha_form(form: dict[str, str], campo: str) -> date | None:
    return _fecha_param(crud.limpio(form.get(campo)))


def _csv(contenido: str, nombre: str) -> Response:
    return Response(
        content=contenido,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{nombre}-{date.today().isoformat()}.csv"'},
    )


def _info(tipo: str) -> dict[str, str]:
    return asdict(info_usuario(tipo))


def _admin_crud(servicio: crud.ServicioCrud, form: dict[str, str]) -> dict[str, Any]:
    intent = form.get("intent", "")
    entidad_id = form.get("id", "")
    if intent == "create":
        return _accion(servicio.alta(form), intent)
    if intent == "update":
        return _accion(servicio.modificacion(entidad_id, form), intent)
    if intent == "delete":
        return _accion(servicio.baja(entidad_id), intent, id=entidad_id)
    return _accion_invalida()


# =========================
# Login / logout
# =========================
@app.get("/")
def index(tipo: str | None = Depends(tipo_sesion)) -> RedirectResponse:
    return RedirectResponse("/dashboard" if tipo else "/login", status_code=status.HTTP_303_SEE_OTHER)


@app.get("/login", response_model=None)
def login_page(tipo: str | None = Depends(tipo_sesion)) -> RedirectResponse | dict[str, Any]:
    if tipo:
        return RedirectResponse("/dashboard", status_code=status.HTTP_303_SEE_OTHER)
    return {"autenticado": False}


@app.post("/login", response_model=None)
def login(form: dict[str, str] = Depends(leer_formulario)) -> Response:
    tipo = verificar_token(form.get("password", ""))
    if not tipo:
        logger.info("Intento de login con token inválido")
        return JSONResponse(
            {"ok": False, "error": "Credenciales inválidas", "data": None, "accion": "login"},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    resp = RedirectResponse("/dashboard", status_code=status.HTTP_303_SEE_OTHER)
    resp.set_cookie(
        config.SESSION_COOKIE_NAME,
        create_session_token(tipo),
        max_age=config.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        samesite="lax",
        secure=config.SESSION_COOKIE_SECURE,
        path="/",
    )
    logger.info("Sesión iniciada con token de tipo %r", tipo)
    return resp


@app.get("/logout")
def logout() -> RedirectResponse:
    resp = RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    resp.delete_cookie(config.SESSION_COOKIE_NAME, path="/")
    return resp


@app.get("/dashboard")
def dashboard(tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    return {"info_usuario": _info(tipo), "panel": reportes.panel_control()}


# =========================
# API JSON
# =========================
class PacienteSugeridoOut(BaseModel):
    id: str
    label: str
    document_number: str = Field(serialization_alias="documentNumber")
    medical_record_number: str | None = Field(default=None, serialization_alias="medicalRecordNumber")
    insurance_company: str | None = Field(default=None, serialization_alias="insuranceCompany")
    full_info: str = Field(serialization_alias="fullInfo")


class BusquedaPacientesOut(BaseModel):
    patients: list[PacienteSugeridoOut] = []


@app.get("/api/patients/search", response_model=BusquedaPacientesOut)
def api_buscar_pacientes(q: str = "", tipo: str = Depends(requiere_sesion_api)) -> BusquedaPacientesOut:
    """Autocompletado: hasta 10 pacientes."""
    if len(q) < 2:
        return BusquedaPacientesOut()

    out = []
    for p in pacientes.buscar_pacientes(q, limit=10):
        etiqueta = f"{p.nombre} {p.apellido}"
        info = f"{etiqueta} - DNI: {p.numero_documento}"
        if p.numero_historia_clinica:
            info += f" - HC: {p.numero_historia_clinica}"
        out.append(
            PacienteSugeridoOut(
                id=p.id,
                label=etiqueta,
                document_number=p.numero_documento,
                medical_record_number=p.numero_historia_clinica,
                insurance_company=p.obra_social,
                full_info=info,
            )
        )
    return BusquedaPacientesOut(patients=out)


@app.get("/api/doctors/{medico_id}/unavailable-days")
def api_dias_no_laborables_medico(medico_id: str, tipo: str = Depends(requiere_sesion_api)) -> list[dict]:
    if not es_uuid_valido(medico_id):
        raise HTTPException(status_code=400, detail="ID inválido")
    return [d.a_dict() for d in medicos.listar_dias_no_laborables(medico_id)]


@app.get("/api/doctors/{medico_id}/appointment-types")
def api_tipos_turno_medico(medico_id: str, tipo: str = Depends(requiere_sesion_api)) -> list[dict]:
    return medicos.listar_tipos_turno_del_medico(medico_id)


@app.get("/api/appointment-types")
def api_tipos_turno(tipo: str = Depends(requiere_sesion_api)) -> list[dict]:
    return [t.a_dict() for t in tipos_turno.listar_tipos_turno(limit=100)]


# =========================
# Médicos
# =========================
@app.get("/dashboard/medicos")
def medicos_page(q: str = "", tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    return {
        "info_usuario": _info(tipo),
        "medicos": [m.a_dict() for m in medicos.listar_medicos(q, limit=100)],
        "tipos_turno": [t.a_dict() for t in tipos_turno.listar_tipos_turno(limit=100)],
        "q": q,
    }


@app.post("/dashboard/medicos")
def medicos_action(form: dict[str, str] = Depends(leer_formulario), tipo: str = Depends(requiere_sesion)) -> dict:
    intent = form.get("intent", "")
    medico_id = form.get("medico_id", "")

    if intent == "addUnavailableDay":
        fecha = _fecha_form(form, "fecha")
        if not fecha:
            return _accion(Resultado.fallo("La fecha es obligatoria"), intent)
        return _accion(medicos.agregar_dia_no_laborable(medico_id, fecha, crud.limpio(form.get("motivo"))), intent)
    if intent == "removeUnavailableDay":
        dia_id = form.get("dia_id", "")
        return _accion(medicos.quitar_dia_no_laborable(dia_id), intent, dia_id=dia_id)
    if intent == "addAppointmentType":
        return _accion(medicos.asociar_tipo_turno(medico_id, form.get("tipo_turno_id", "")), intent)
    if intent == "removeAppointmentType":
        asociacion_id = form.get("asociacion_id", "")
        return _accion(medicos.desasociar_tipo_turno(asociacion_id), intent, asociacion_id=asociacion_id)

    return _admin_crud(crud.MEDICOS, form)


# =========================
# Administración
# =========================
@app.get("/dashboard/administracion/agenda/consultorio")
def consultorios_page(q: str = "", tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    return {"info_usuario": _info(tipo), "consultorios": [c.a_dict() for c in consultorios.listar_consultorios(q)]}


@app.post("/dashboard/administracion/agenda/consultorio")
def consultorios_action(
    form: dict[str, str] = Depends(leer_formulario), tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    return _admin_crud(crud.CONSULTORIOS, form)


@app.get("/dashboard/administracion/web/tipos-turnos")
def tipos_turno_page(q: str = "", tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    return {"info_usuario": _info(tipo), "tipos_turno": [t.a_dict() for t in tipos_turno.listar_tipos_turno(q)]}


@app.post("/dashboard/administracion/web/tipos-turnos")
def tipos_turno_action(
    form: dict[str, str] = Depends(leer_formulario), tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    return _admin_crud(crud.TIPOS_TURNO, form)


@app.get("/dashboard/administracion/pacientes/obras-sociales")
def obras_sociales_page(q: str = "", activa: str = "", tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    filtro = crud.a_bool(activa) if activa else None
    return {
        "info_usuario": _info(tipo),
        "obras_sociales": [o.a_dict() for o in obras_sociales.listar_obras_sociales(q, limit=200, activa=filtro)],
    }


@app.post("/dashboard/administracion/pacientes/obras-sociales")
def obras_sociales_action(
    form: dict[str, str] = Depends(leer_formulario), tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    return _admin_crud(crud.OBRAS_SOCIALES, form)


@app.get("/dashboard/administracion/web/institucion")
def instituciones_page(tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    return {"info_usuario": _info(tipo), "instituciones": [i.a_dict() for i in instituciones.listar_instituciones()]}


@app.post("/dashboard/administracion/web/institucion")
def instituciones_action(
    form: dict[str, str] = Depends(leer_formulario), tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    return _admin_crud(crud.INSTITUCIONES, form)


@app.get("/dashboard/administracion/agenda/dias-no-laborables")
def dias_no_laborables_page(tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    return {"info_usuario": _info(tipo), "dias": [d.a_dict() for d in dias_no_laborables.listar_dias()]}


@app.post("/dashboard/administracion/agenda/dias-no-laborables")
def dias_no_laborables_action(
    form: dict[str, str] = Depends(leer_formulario), tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    intent = form.get("intent", "")
    if intent == "add":
        fecha = _fecha_form(form, "fecha")
        if not fecha:
            return _accion(Resultado.fallo("La fecha es obligatoria"), intent)
        return _accion(dias_no_laborables.agregar_dia(fecha, crud.limpio(form.get("motivo"))), intent)
    if intent == "remove":
        dia_id = form.get("dia_id", "")
        return _accion(dias_no_laborables.quitar_dia(dia_id), intent, dia_id=dia_id)
    return _accion_invalida()


# =========================
# Atención
# =========================
@app.get("/dashboard/atender-sin-turno")
def atender_sin_turno_page(tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    return {
        "info_usuario": _info(tipo),
        "medicos": [m.a_dict() for m in medicos.listar_medicos(limit=100)],
        "pacientes": [p.a_dict() for p in pacientes.listar_pacientes(limit=50)],
    }


@app.post("/dashboard/atender-sin-turno")
def atender_sin_turno_action(
    form: dict[str, str] = Depends(leer_formulario), tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    intent = form.get("intent", "")

    if intent == "createPatient":
        existente = pacientes.obtener_paciente_por_documento(crud.limpio(form.get("numero_documento")) or "")
        if existente:
            return _accion(
                Resultado.fallo("Ya existe un paciente con ese número de documento"), intent, paciente_id=existente.id
            )
        resultado = crud.PACIENTES.alta(form)
        return _accion(resultado, intent, paciente_id=resultado.data.id if resultado.ok else None)

    if intent == "createAppointment":
        try:
            datos = {
                "paciente_id": crud.limpio(form.get("paciente_id")),
                "medico_id": crud.limpio(form.get("medico_id")),
                "consultorio_id": crud.limpio(form.get("consultorio_id")),
                "tipo_turno_id": crud.limpio(form.get("tipo_turno_id")),
                "fecha": crud.a_fecha(crud.limpio(form.get("fecha"))),
                "hora": crud.a_hora(crud.limpio(form.get("hora"))),
                "notas": crud.limpio(form.get("notas")),
            }
        except ValueError:
            return _accion(Resultado.fallo("Fecha u hora inválida"), intent)
        resultado = turnos.crear_turno(datos)
        return _accion(resultado, intent, turno_id=resultado.data.id if resultado.ok else None)

    return _accion_invalida()


@app.get("/dashboard/pool-atencion")
def pool_atencion_page(fecha: str = "", medico_id: str = "", tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    dia = _fecha_param(fecha) or date.today()
    return {
        "info_usuario": _info(tipo),
        "turnos": reportes.pool_atencion(dia, medico_id or None),
        "medicos": [m.a_dict() for m in medicos.listar_medicos(limit=100)],
        "filtros": {"fecha": dia.isoformat(), "medico_id": medico_id or None},
    }


@app.post("/dashboard/pool-atencion")
def pool_atencion_action(
    form: dict[str, str] = Depends(leer_formulario), tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    intent = form.get("intent", "")
    turno_id = form.get("turno_id", "")

    if intent == "attend":
        try:
            hora = crud.a_hora(crud.limpio(form.get("hora_recepcion")))
        except ValueError:
            return _accion(Resultado.fallo("Hora inválida"), intent)
        return _accion(turnos.marcar_atendido(turno_id, hora), intent, turno_id=turno_id)
    if intent == "cancel":
        return _accion(turnos.cancelar_turno(turno_id, crud.limpio(form.get("notas"))), intent, turno_id=turno_id)
    if intent == "noShow":
        resultado = turnos.marcar_inasistencia(
            turno_id, crud.limpio(form.get("motivo")), crud.limpio(form.get("seguimiento"))
        )
        return _accion(resultado, intent, turno_id=turno_id)
    return _accion_invalida()


# =========================
# Pacientes
# =========================
def _paciente_o_error(paciente_id: str):
    if not es_uuid_valido(paciente_id):
        raise HTTPException(status_code=400, detail="ID de paciente inválido")
    p = pacientes.obtener_paciente(paciente_id)
    if p is None:
        raise HTTPException(status_code=404, detail="Paciente no encontrado")
    return p


@app.get("/pacientes/{paciente_id}")
def paciente_page(paciente_id: str, tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    p = _paciente_o_error(paciente_id)
    return {
        "paciente": p.a_dict(),
        "turnos": turnos.listar_turnos(paciente_id=p.id),
        "facturas": facturacion.listar_facturas(paciente_id=p.id),
    }


@app.get("/pacientes/{paciente_id}/editar")
def paciente_editar_page(paciente_id: str, tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    p = _paciente_o_error(paciente_id)
    return {
        "paciente": p.a_dict(),
        "obras_sociales": [o.a_dict() for o in obras_sociales.listar_obras_sociales(limit=200)],
    }


@app.post("/pacientes/{paciente_id}/editar")
def paciente_editar(
    paciente_id: str, form: dict[str, str] = Depends(leer_formulario), tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    return _accion(crud.PACIENTES.modificacion(paciente_id, form), "update")


@app.post("/pacientes/{paciente_id}/eliminar")
def paciente_eliminar(paciente_id: str, tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    return _accion(crud.PACIENTES.baja(paciente_id), "delete", id=paciente_id)


# =========================
# Listados
# =========================
@app.get("/dashboard/listados/pacientes")
def listado_pacientes(q: str = "", filtro: str = "all", tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    q = q.strip()
    return {
        "pacientes": [p.a_dict() for p in pacientes.listar_pacientes(q, limit=100, filtro=filtro)],
        "q": q,
        "filtro": filtro,
    }


@app.get("/dashboard/listados/turnos")
def listado_turnos(
    fecha: str = "", medico_id: str = "", estado: str = "", tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    return {
        "turnos": turnos.listar_turnos(
            fecha=_fecha_param(fecha), medico_id=medico_id or None, estado=estado or None, limit=200
        ),
        "medicos": [m.a_dict() for m in medicos.listar_medicos(limit=100)],
    }


@app.get("/dashboard/listados/agenda")
def listado_agenda(fecha: str = "", medico_id: str = "", tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    dia = _fecha_param(fecha) or date.today()
    return {
        "turnos": reportes.agenda_medico(medico_id or None, dia),
        "medicos": [m.a_dict() for m in medicos.listar_medicos(limit=100)],
        "fecha": dia.isoformat(),
        "medico_id": medico_id,
    }


@app.get("/dashboard/listados/control")
def listado_control(tipo: str = Depends(requiere_sesion)) -> dict[str, int]:
    return reportes.panel_control()


@app.get("/dashboard/listados/gestion-disponibilidad")
def listado_disponibilidad(tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    return {"medicos": reportes.disponibilidad_medicos()}


@app.get("/dashboard/listados/pacientes-atendidos")
def listado_atendidos(fecha: str = "", medico_id: str = "", tipo: str = Depends(requiere_sesion)) -> dict[str, Any]:
    return {"turnos": reportes.pacientes_atendidos(_fecha_param(fecha), medico_id or None)}


@app.get("/dashboard/listados/pacientes-atendidos.csv")
def listado_atendidos_csv(fecha: str = "", medico_id: str = "", tipo: str = Depends(requiere_sesion)) -> Response:
    filas = reportes.pacientes_atendidos(_fecha_param(fecha), medico_id or None)
    return _csv(reportes.csv_pacientes_atendidos(filas), "pacientes-atendidos")


@app.get("/dashboard/listados/pacientes-no-atendidos")
def listado_no_atendidos(
    fecha: str = "", medico_id: str = "", tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    return {"turnos": reportes.pacientes_no_atendidos(_fecha_param(fecha), medico_id or None)}


@app.post("/dashboard/listados/pacientes-no-atendidos")
def listado_no_atendidos_action(
    form: dict[str, str] = Depends(leer_formulario), tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    if form.get("intent") != "updateNoShow":
        return _accion_invalida()
    turno_id = form.get("turno_id", "")
    if not turno_id:
        return _accion(Resultado.fallo("ID de turno requerido"), "updateNoShow")
    cambios = {
        "motivo_inasistencia": crud.limpio(form.get("motivo_inasistencia")),
        "seguimiento_inasistencia": crud.limpio(form.get("seguimiento_inasistencia")),
    }
    return _accion(turnos.actualizar_turno(turno_id, cambios), "updateNoShow", turno_id=turno_id)


@app.get("/dashboard/listados/pacientes-os")
def listado_pacientes_os(
    fecha: str = "", obra_social: str = "", tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    reporte = reportes.pacientes_por_obra_social(_fecha_param(fecha), obra_social or None)
    reporte["obras_sociales"] = [o.a_dict() for o in obras_sociales.listar_obras_sociales(limit=200)]
    return reporte


@app.get("/dashboard/listados/turnos-anulados")
def listado_turnos_anulados(
    fecha: str = "", desde: str = "", hasta: str = "", medico_id: str = "", tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    return reportes.turnos_anulados(_fecha_param(fecha), _fecha_param(desde), _fecha_param(hasta), medico_id or None)


@app.get("/dashboard/listados/turnos-anulados.csv")
def listado_turnos_anulados_csv(
    fecha: str = "", desde: str = "", hasta: str = "", medico_id: str = "", tipo: str = Depends(requiere_sesion)
) -> Response:
    reporte = reportes.turnos_anulados(
        _fecha_param(fecha), _fecha_param(desde), _fecha_param(hasta), medico_id or None
    )
    return _csv(reportes.csv_turnos_anulados(reporte["turnos"]), "turnos-anulados")


# =========================
# Facturación
# =========================
@app.get("/dashboard/listados/facturacion")
def listado_facturacion(
    paciente_id: str = "",
    estado: str = "",
    desde: str = "",
    hasta: str = "",
    tipo: str = Depends(requiere_sesion),
) -> dict[str, Any]:
    d, h = _fecha_param(desde), _fecha_param(hasta)
    reporte = facturacion.reporte_facturacion(d, h)
    return {
        "facturas": facturacion.listar_facturas(paciente_id or None, estado or None, d, h),
        "reporte": {
            "cantidad": reporte["cantidad"],
            "total_facturado": str(reporte["total_facturado"]),
            "total_pagado": str(reporte["total_pagado"]),
        },
    }


@app.post("/dashboard/listados/facturacion")
def facturacion_action(
    form: dict[str, str] = Depends(leer_formulario), tipo: str = Depends(requiere_sesion)
) -> dict[str, Any]:
    intent = form.get("intent", "")
    factura_id = form.get("factura_id", "")

    if intent == "createInvoice":
        resultado = facturacion.crear_factura(
            form.get("paciente_id", ""),
            form.get("monto"),
            crud.limpio(form.get("notas")),
            _fecha_form(form, "fecha"),
        )
        return _accion(resultado, intent)
    if intent == "addPayment":
        resultado = facturacion.registrar_pago(
            factura_id, form.get("monto"), crud.limpio(form.get("metodo")), _fecha_form(form, "fecha")
        )
        pagado = str(facturacion.total_pagado(factura_id))
        return _accion(resultado, intent, factura_id=factura_id, total_pagado=pagado)
    if intent == "markPaid":
        resultado = facturacion.saldar_factura(factura_id, crud.limpio(form.get("metodo")))
        return _accion(resultado, intent, factura_id=factura_id)
    if intent == "cancelInvoice":
        return _accion(facturacion.anular_factura(factura_id), intent, factura_id=factura_id)
    return _accion_invalida()
