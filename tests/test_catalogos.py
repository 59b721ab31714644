from __future__ import annotations

from datetime import date, timedelta

from consultorio import (
    consultorios,
    dias_no_laborables,
    instituciones,
    medicos,
    obras_sociales,
    tipos_turno,
)
from consultorio.auth_service import info_usuario


# ============================================================================
# BORRADO CON TURNOS ASOCIADOS
# ============================================================================


class TestBorradoRestringido:
    def test_medico_con_turnos(self, nuevo_paciente, nuevo_medico, nuevo_turno):
        m = nuevo_medico()
        nuevo_turno(nuevo_paciente().id, medico_id=m.id)

        resultado = medicos.eliminar_medico(m.id)
        assert not resultado.ok
        assert resultado.error == "No se puede eliminar el médico porque tiene turnos asociados"
        assert medicos.obtener_medico(m.id) is not None

    def test_consultorio_con_turnos(self, nuevo_paciente, un_consultorio, nuevo_turno):
        nuevo_turno(nuevo_paciente().id, consultorio_id=un_consultorio.id)

        resultado = consultorios.eliminar_consultorio(un_consultorio.id)
        assert resultado.error == "No se puede eliminar el consultorio porque tiene turnos asociados"

    def test_tipo_turno_con_turnos(self, nuevo_paciente, tipo_turno, nuevo_turno):
        nuevo_turno(nuevo_paciente().id, tipo_turno_id=tipo_turno.id)

        resultado = tipos_turno.eliminar_tipo_turno(tipo_turno.id)
        assert resultado.error == "No se puede eliminar el tipo de turno porque tiene turnos asociados"

    def test_obra_social_con_pacientes(self, obra_social, nuevo_paciente):
        nuevo_paciente(obra_social=obra_social.nombre)

        resultado = obras_sociales.eliminar_obra_social(obra_social.id)
        assert resultado.error == "No se puede eliminar la obra social porque tiene pacientes asociados"

    def test_sin_referencias_se_borra(self, un_consultorio):
        assert consultorios.eliminar_consultorio(un_consultorio.id).ok
        assert consultorios.obtener_consultorio(un_consultorio.id) is None
        assert consultorios.eliminar_consultorio(un_consultorio.id).error == "Consultorio no encontrado"


# ============================================================================
# MÉDICOS
# ============================================================================


class TestMedicos:
    def test_busqueda_por_especialidad(self, nuevo_medico):
        nuevo_medico(especialidad="Cardiología")
        nuevo_medico(nombre="Eva", especialidad="Pediatría")
        assert [m.especialidad for m in medicos.buscar_medicos("cardio")] == ["Cardiología"]
        assert medicos.buscar_medicos("c") == []

    def test_dia_no_laborable_duplicado(self, nuevo_medico):
        m = nuevo_medico()
        hoy = date.today()
        assert medicos.agregar_dia_no_laborable(m.id, hoy, "Congreso").ok

        resultado = medicos.agregar_dia_no_laborable(m.id, hoy)
        assert resultado.error == "Este día ya está marcado como no laborable para el médico"

    def test_dias_no_laborables_por_rango(self, nuevo_medico):
        m = nuevo_medico()
        hoy = date.today()
        for d in range(5):
            medicos.agregar_dia_no_laborable(m.id, hoy + timedelta(days=d))

        dias = medicos.listar_dias_no_laborables(m.id, desde=hoy + timedelta(days=1), hasta=hoy + timedelta(days=3))
        assert [d.fecha for d in dias] == [hoy + timedelta(days=3), hoy + timedelta(days=2), hoy + timedelta(days=1)]

    def test_quitar_dia(self, nuevo_medico):
        m = nuevo_medico()
        dia = medicos.agregar_dia_no_laborable(m.id, date.today()).data
        assert medicos.quitar_dia_no_laborable(dia.id).ok
        assert medicos.listar_dias_no_laborables(m.id) == []

    def test_baja_de_medico_borra_sus_dias(self, nuevo_medico):
        m = nuevo_medico()
        medicos.agregar_dia_no_laborable(m.id, date.today())
        assert medicos.eliminar_medico(m.id).ok
        assert medicos.listar_dias_no_laborables(m.id) == []

    def test_asociar_tipo_turno(self, nuevo_medico, tipo_turno):
        m = nuevo_medico()
        assert medicos.asociar_tipo_turno(m.id, tipo_turno.id).ok

        tipos = medicos.listar_tipos_turno_del_medico(m.id)
        assert len(tipos) == 1
        assert tipos[0]["tipo_turno"]["nombre"] == "Consulta"

        resultado = medicos.asociar_tipo_turno(m.id, tipo_turno.id)
        assert resultado.error == "Este tipo de turno ya está asociado al médico"

    def test_desasociar_tipo_turno(self, nuevo_medico, tipo_turno):
        m = nuevo_medico()
        rel = medicos.asociar_tipo_turno(m.id, tipo_turno.id).data
        assert medicos.desasociar_tipo_turno(rel.id).ok
        assert medicos.desasociar_tipo_turno(rel.id).error == "Asociación no encontrada"


# ============================================================================
# OBRAS SOCIALES / INSTITUCIÓN
# ============================================================================


class TestObrasSociales:
    def test_nombre_unico(self, obra_social):
        resultado = obras_sociales.crear_obra_social({"nombre": "OSDE"})
        assert resultado.error == "Ya existe una obra social con ese nombre"

    def test_busqueda_por_codigo_y_activa(self):
        obras_sociales.crear_obra_social({"nombre": "Swiss Medical", "codigo": "SM01"})
        obras_sociales.crear_obra_social({"nombre": "Sancor", "codigo": "SM02", "activa": False})

        assert len(obras_sociales.buscar_obras_sociales("sm0")) == 2
        activas = obras_sociales.buscar_obras_sociales("sm0", activa=True)
        assert [o.nombre for o in activas] == ["Swiss Medical"]

    def test_renombrar_arrastra_pacientes(self, obra_social, nuevo_paciente):
        from consultorio.pacientes import obtener_paciente

        p = nuevo_paciente(obra_social="OSDE")
        assert obras_sociales.actualizar_obra_social(obra_social.id, {"nombre": "OSDE Binario"}).ok
        assert obtener_paciente(p.id).obra_social == "OSDE Binario"


class TestInstitucion:
    def test_info_usuario_usa_primera_institucion(self):
        assert info_usuario("admin").nombre_institucion == "Institución"
        instituciones.crear_institucion({"nombre": "Clínica del Sol"})
        info = info_usuario("admin")
        assert info.nombre_institucion == "Clínica del Sol"
        assert info.nombre_usuario == "admin"

    def test_dia_no_laborable_institucion(self):
        hoy = date.today()
        assert dias_no_laborables.agregar_dia(hoy, "Feriado").ok
        assert [d.fecha for d in dias_no_laborables.listar_dias()] == [hoy]

        resultado = dias_no_laborables.agregar_dia(hoy)
        assert resultado.error == "Este día ya está marcado como no laborable"

    def test_dias_institucion_por_rango(self):
        hoy = date.today()
        for d in range(3):
            dias_no_laborables.agregar_dia(hoy + timedelta(days=d))
        assert len(dias_no_laborables.listar_dias(desde=hoy + timedelta(days=1))) == 2

        dia = dias_no_laborables.listar_dias()[0]
        assert dias_no_laborables.quitar_dia(dia.id).ok
        assert dias_no_laborables.quitar_dia(dia.id).error == "Día no laborable no encontrado"
