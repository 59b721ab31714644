from __future__ import annotations

from datetime import date, datetime

import requests
import streamlit as st

from consultorio.config import API_BASE

st.set_page_config(page_title="Consultorio", layout="wide")

ESTADOS = {
    "scheduled": "Programado",
    "attended": "Atendido",
    "cancelled": "Cancelado",
    "no_show": "No asistió",
}


# HTTP client (cookie de sesión)

def http() -> requests.Session:
    # la cookie de sesión vive en el requests.Session de cada usuario de la UI
    if "http" not in st.session_state:
        st.session_state["http"] = requests.Session()
    return st.session_state["http"]


def _check(r: requests.Response) -> None:
    if r.status_code in (401, 303):
        raise PermissionError("Sesión no válida o vencida. Ingresá nuevamente.")
    r.raise_for_status()


def api_get(path: str, params: dict | None = None) -> dict | list:
    r = http().get(f"{API_BASE}{path}", params=params, timeout=10, allow_redirects=False)
    _check(r)
    return r.json()


def api_get_text(path: str, params: dict | None = None) -> bytes:
    r = http().get(f"{API_BASE}{path}", params=params, timeout=10, allow_redirects=False)
    _check(r)
    return r.content


def api_form(path: str, data: dict) -> dict:
    """POST de formulario: las acciones devuelven {ok, error, data, accion}."""
    payload = {k: v for k, v in data.items() if v is not None}
    r = http().post(f"{API_BASE}{path}", data=payload, timeout=10, allow_redirects=False)
    _check(r)
    return r.json()


def api_login(token: str) -> bool:
    r = http().post(f"{API_BASE}/login", data={"password": token}, timeout=10, allow_redirects=False)
    return r.status_code == 303


def is_logged_in() -> bool:
    return bool(st.session_state.get("logged_in"))


def do_logout() -> None:
    try:
        http().get(f"{API_BASE}/logout", timeout=10, allow_redirects=False)
    except requests.RequestException as e:
        # la sesión local se descarta igual
        st.warning(f"No se pudo cerrar la sesión en el servidor: {e}")
    st.session_state.pop("http", None)
    st.session_state.pop("logged_in", None)
    st.rerun()


def mostrar_resultado(res: dict, mensaje_ok: str) -> None:
    if res.get("ok"):
        st.success(mensaje_ok)
    else:
        st.error(res.get("error") or "Error")


def nombre(x: dict, pref: str = "") -> str:
    return f"{x.get(pref + 'nombre') or ''} {x.get(pref + 'apellido') or ''}".strip() or "-"


# Sidebar login

with st.sidebar:
    st.header("Acceso")

    if not is_logged_in():
        tok = st.text_input("Token de acceso", type="password", key="login_token")

        if st.button("Ingresar", key="login_btn"):
            try:
                if api_login(tok.strip()):
                    st.session_state["logged_in"] = True
                    st.rerun()
                else:
                    st.error("Credenciales inválidas.")
            except requests.RequestException as e:
                st.error(str(e))
    else:
        try:
            info = api_get("/dashboard")["info_usuario"]
            st.write(f"Usuario: **{info['nombre_usuario']}**")
            st.caption(info["nombre_institucion"])
        except PermissionError as e:
            st.error(str(e))
            st.session_state.pop("logged_in", None)

        if st.button("Salir", key="logout_btn"):
            do_logout()

    st.divider()
    st.caption(f"API: {API_BASE}")


st.title("Consultorio")

if not is_logged_in():
    st.info("Ingresá con el token de acceso desde la barra lateral.")
    st.stop()

tab_pac, tab_pool, tab_sin, tab_med, tab_fac, tab_list = st.tabs(
    ["Pacientes", "Pool de atención", "Atender sin turno", "Médicos", "Facturación", "Listados"]
)


@st.cache_data(ttl=10)
def load_medicos() -> list[dict]:
    return api_get("/dashboard/medicos")["medicos"]


@st.cache_data(ttl=10)
def load_tipos_turno() -> list[dict]:
    return api_get("/api/appointment-types")


# TAB - Pacientes

with tab_pac:
    st.subheader("Búsqueda de pacientes")

    c1, c2 = st.columns([3, 1])
    q = c1.text_input("Buscar (nombre, DNI, HC, obra social)", key="pac_q")
    filtro = c2.selectbox("Filtro", ["all", "name", "document", "hc", "insurance"], key="pac_filtro")

    try:
        pacientes = api_get("/dashboard/listados/pacientes", params={"q": q, "filtro": filtro})["pacientes"]
        if not pacientes:
            st.info("No se encontraron pacientes.")
        for p in pacientes:
            st.write(
                f"- **{p['apellido']} {p['nombre']}** | DNI {p['numero_documento']} | "
                f"HC {p.get('numero_historia_clinica') or '-'} | {p.get('obra_social') or 'Sin obra social'}"
            )
    except PermissionError as e:
        st.error(str(e))
    except requests.RequestException as e:
        st.error(f"Error al cargar pacientes: {e}")


# TAB - Pool de atención

with tab_pool:
    st.subheader("Turnos del día")

    c1, c2 = st.columns(2)
    dia = c1.date_input("Fecha", value=date.today(), key="pool_fecha")
    try:
        medicos = load_medicos()
    except (PermissionError, requests.RequestException) as e:
        st.error(str(e))
        medicos = []
    medico = c2.selectbox(
        "Médico",
        options=[None] + medicos,
        format_func=lambda m: "Todos" if m is None else nombre(m),
        key="pool_medico",
    )

    try:
        data = api_get(
            "/dashboard/pool-atencion",
            params={"fecha": dia.isoformat(), "medico_id": medico["id"] if medico else ""},
        )
        turnos = data["turnos"]
        if not turnos:
            st.info("No hay turnos para este día.")
        for t in turnos:
            cols = st.columns([4, 1, 1, 1])
            cols[0].write(
                f"**{t['hora']}** | {nombre(t, 'paciente_')} | {nombre(t, 'medico_')} | "
                f"{t.get('consultorio_nombre') or '-'} | {ESTADOS.get(t['estado'], t['estado'])}"
            )
            if t["estado"] != "scheduled":
                continue
            for col, intent, label in (
                (cols[1], "attend", "Atender"),
                (cols[2], "cancel", "Cancelar"),
                (cols[3], "noShow", "Ausente"),
            ):
                if col.button(label, key=f"{intent}_{t['id']}"):
                    datos = {"intent": intent, "turno_id": t["id"]}
                    if intent == "attend":
                        datos["hora_recepcion"] = datetime.now().strftime("%H:%M")
                    res = api_form("/dashboard/pool-atencion", datos)
                    mostrar_resultado(res, "Turno actualizado.")
                    st.rerun()
    except PermissionError as e:
        st.error(str(e))
    except requests.RequestException as e:
        st.error(f"Error al cargar el pool: {e}")


# TAB - Atender sin turno

with tab_sin:
    st.subheader("Paciente nuevo")

    c1, c2, c3 = st.columns(3)
    nom = c1.text_input("Nombre", key="sin_nombre")
    ape = c2.text_input("Apellido", key="sin_apellido")
    dni = c3.text_input("DNI", key="sin_dni")
    tel = st.text_input("Teléfono (opcional)", key="sin_tel")

    if st.button("Crear paciente", key="sin_crear"):
        try:
            res = api_form(
                "/dashboard/atender-sin-turno",
                {"intent": "createPatient", "nombre": nom, "apellido": ape, "numero_documento": dni, "telefono": tel},
            )
            mostrar_resultado(res, "Paciente creado exitosamente")
            if res.get("paciente_id"):
                st.session_state["sin_paciente_id"] = res["paciente_id"]
        except (PermissionError, requests.RequestException) as e:
            st.error(str(e))

    st.divider()
    st.subheader("Consulta")

    busq = st.text_input("Buscar paciente", key="sin_busq")
    opciones = []
    if len(busq) >= 2:
        try:
            opciones = api_get("/api/patients/search", params={"q": busq})["patients"]
        except (PermissionError, requests.RequestException) as e:
            st.error(str(e))
    pac = st.selectbox("Paciente", options=opciones, format_func=lambda p: p["fullInfo"], key="sin_pac")
    try:
        medicos = load_medicos()
    except (PermissionError, requests.RequestException):
        medicos = []
    med = st.selectbox(
        "Médico", options=[None] + medicos, format_func=lambda m: "-" if m is None else nombre(m), key="sin_med"
    )
    c1, c2 = st.columns(2)
    f = c1.date_input("Fecha", value=date.today(), key="sin_fecha")
    h = c2.time_input("Hora", value=datetime.now().time().replace(second=0, microsecond=0), key="sin_hora")
    notas = st.text_area("Notas (opcional)", key="sin_notas")

    paciente_id = pac["id"] if pac else st.session_state.get("sin_paciente_id")
    if st.button("Crear consulta", key="sin_turno", disabled=not paciente_id):
        try:
            res = api_form(
                "/dashboard/atender-sin-turno",
                {
                    "intent": "createAppointment",
                    "paciente_id": paciente_id,
                    "medico_id": med["id"] if med else None,
                    "fecha": f.isoformat(),
                    "hora": h.strftime("%H:%M"),
                    "notas": notas,
                },
            )
            mostrar_resultado(res, "Consulta creada exitosamente")
        except (PermissionError, requests.RequestException) as e:
            st.error(str(e))


# TAB - Médicos

with tab_med:
    st.subheader("Médicos")

    with st.expander("Nuevo médico"):
        c1, c2, c3 = st.columns(3)
        m_nom = c1.text_input("Nombre", key="med_nombre")
        m_ape = c2.text_input("Apellido", key="med_apellido")
        m_dni = c3.text_input("Documento", key="med_dni")
        m_esp = st.text_input("Especialidad", key="med_esp")
        if st.button("Crear médico", key="med_crear"):
            try:
                res = api_form(
                    "/dashboard/medicos",
                    {
                        "intent": "create",
                        "nombre": m_nom,
                        "apellido": m_ape,
                        "numero_documento": m_dni,
                        "especialidad": m_esp,
                    },
                )
                mostrar_resultado(res, "Médico creado.")
                load_medicos.clear()
            except (PermissionError, requests.RequestException) as e:
                st.error(str(e))

    try:
        for m in load_medicos():
            with st.expander(f"{nombre(m)} | {m.get('especialidad') or '-'}"):
                dias = api_get(f"/api/doctors/{m['id']}/unavailable-days")
                tipos = api_get(f"/api/doctors/{m['id']}/appointment-types")
                st.write("Tipos de turno: " + (", ".join(t["tipo_turno"]["nombre"] for t in tipos) or "-"))
                st.write("Días no laborables: " + (", ".join(d["fecha"] for d in dias) or "-"))

                c1, c2 = st.columns(2)
                dia_nl = c1.date_input("Día no laborable", value=date.today(), key=f"nl_{m['id']}")
                if c2.button("Agregar día", key=f"nl_btn_{m['id']}"):
                    res = api_form(
                        "/dashboard/medicos",
                        {"intent": "addUnavailableDay", "medico_id": m["id"], "fecha": dia_nl.isoformat()},
                    )
                    mostrar_resultado(res, "Día agregado.")
                if st.button("Eliminar médico", key=f"del_{m['id']}"):
                    res = api_form("/dashboard/medicos", {"intent": "delete", "id": m["id"]})
                    mostrar_resultado(res, "Médico eliminado.")
                    load_medicos.clear()
    except PermissionError as e:
        st.error(str(e))
    except requests.RequestException as e:
        st.error(f"Error al cargar médicos: {e}")


# TAB - Facturación

with tab_fac:
    st.subheader("Facturación")

    c1, c2 = st.columns(2)
    desde = c1.date_input("Desde", value=date.today().replace(day=1), key="fac_desde")
    hasta = c2.date_input("Hasta", value=date.today(), key="fac_hasta")

    try:
        data = api_get(
            "/dashboard/listados/facturacion", params={"desde": desde.isoformat(), "hasta": hasta.isoformat()}
        )
        rep = data["reporte"]
        k1, k2, k3 = st.columns(3)
        k1.metric("Facturas", rep["cantidad"])
        k2.metric("Total facturado", f"$ {rep['total_facturado']}")
        k3.metric("Total pagado", f"$ {rep['total_pagado']}")

        st.divider()
        for fac in data["facturas"]:
            cols = st.columns([4, 2, 1, 1])
            cols[0].write(
                f"{fac['fecha']} | {nombre(fac, 'paciente_')} | $ {fac['monto']} "
                f"(pagado $ {fac['total_pagado']}) | {fac['estado']}"
            )
            if fac["estado"] != "pending":
                continue
            monto = cols[1].text_input("Pago", key=f"pago_{fac['id']}", label_visibility="collapsed")
            if cols[2].button("Pagar", key=f"pagar_{fac['id']}"):
                res = api_form(
                    "/dashboard/listados/facturacion",
                    {"intent": "addPayment", "factura_id": fac["id"], "monto": monto},
                )
                mostrar_resultado(res, "Pago registrado.")
            if cols[3].button("Saldar", key=f"saldar_{fac['id']}"):
                res = api_form("/dashboard/listados/facturacion", {"intent": "markPaid", "factura_id": fac["id"]})
                mostrar_resultado(res, "Factura pagada.")
    except PermissionError as e:
        st.error(str(e))
    except requests.RequestException as e:
        st.error(f"Error al cargar facturación: {e}")


# TAB - Listados

with tab_list:
    st.subheader("Panel de control (hoy)")

    try:
        panel = api_get("/dashboard/listados/control")
        cols = st.columns(6)
        for col, (label, clave) in zip(
            cols,
            [
                ("Turnos hoy", "turnos_hoy"),
                ("Programados", "programados"),
                ("Atendidos", "atendidos"),
                ("Cancelados", "cancelados"),
                ("No asistieron", "ausentes"),
                ("Pacientes", "total_pacientes"),
            ],
        ):
            col.metric(label, panel[clave])

        st.divider()
        st.subheader("Pacientes por obra social")
        os_rep = api_get("/dashboard/listados/pacientes-os")
        st.caption(
            f"Atendidos: {os_rep['resumen']['total_atendidos']} | "
            f"Obras sociales: {os_rep['resumen']['cantidad_os']} | "
            f"Top 3: {os_rep['resumen']['top3_porcentaje']}%"
        )
        for r in os_rep["por_obra_social"]:
            st.write(f"- {r['obra_social']}: {r['cantidad']}")

        st.divider()
        st.subheader("Exportar")
        c1, c2 = st.columns(2)
        c1.download_button(
            "Pacientes atendidos (CSV)",
            data=api_get_text("/dashboard/listados/pacientes-atendidos.csv"),
            file_name=f"pacientes-atendidos-{date.today().isoformat()}.csv",
            mime="text/csv",
        )
        c2.download_button(
            "Turnos anulados (CSV)",
            data=api_get_text("/dashboard/listados/turnos-anulados.csv"),
            file_name=f"turnos-anulados-{date.today().isoformat()}.csv",
            mime="text/csv",
        )
    except PermissionError as e:
        st.error(str(e))
    except requests.RequestException as e:
        st.error(f"Error al cargar listados: {e}")
