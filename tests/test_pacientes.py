from __future__ import annotations

from sqlalchemy import event, func, select

from consultorio import facturacion, pacientes, turnos
from consultorio.db import db_session, engine
from consultorio.models import Factura, Turno


class TestAltaPaciente:
    def test_crea_paciente(self, nuevo_paciente):
        p = nuevo_paciente(nombre="Lucía", numero_documento="12345678")
        assert pacientes.obtener_paciente(p.id).nombre == "Lucía"
        assert pacientes.obtener_paciente_por_documento("12345678").id == p.id

    def test_documento_duplicado(self, nuevo_paciente):
        nuevo_paciente(numero_documento="12345678")
        resultado = pacientes.crear_paciente({"nombre": "Otro", "apellido": "X", "numero_documento": "12345678"})
        assert not resultado.ok
        assert resultado.error == "Ya existe un paciente con ese número de documento"
        assert pacientes.contar_pacientes() == 1

    def test_historia_clinica_duplicada(self, nuevo_paciente):
        nuevo_paciente(numero_historia_clinica="HC-1")
        resultado = pacientes.crear_paciente(
            {"nombre": "Otro", "apellido": "X", "numero_documento": "999", "numero_historia_clinica": "HC-1"}
        )
        assert not resultado.ok
        assert "historia clínica" in resultado.error

    def test_obra_social_inexistente(self):
        resultado = pacientes.crear_paciente(
            {"nombre": "Ana", "apellido": "X", "numero_documento": "1", "obra_social": "No existe"}
        )
        assert not resultado.ok
        assert resultado.error == "La obra social seleccionada no existe"

    def test_obra_social_existente(self, obra_social, nuevo_paciente):
        p = nuevo_paciente(obra_social=obra_social.nombre)
        assert pacientes.obtener_paciente(p.id).obra_social == "OSDE"


class TestBusqueda:
    def test_consulta_corta_no_consulta_la_base(self, nuevo_paciente):
        nuevo_paciente(nombre="Ana")
        sentencias = []

        def _anotar(conn, cursor, statement, *args):
            sentencias.append(statement)

        event.listen(engine, "before_cursor_execute", _anotar)
        try:
            assert pacientes.buscar_pacientes("A") == []
            assert pacientes.buscar_pacientes("") == []
            assert pacientes.buscar_pacientes("", filtro="document") == []
        finally:
            event.remove(engine, "before_cursor_execute", _anotar)
        assert sentencias == []

        # con dos caracteres sí consulta
        event.listen(engine, "before_cursor_execute", _anotar)
        try:
            assert len(pacientes.buscar_pacientes("An")) == 1
        finally:
            event.remove(engine, "before_cursor_execute", _anotar)
        assert sentencias

    def test_filtro_documento_acepta_un_caracter(self, nuevo_paciente):
        nuevo_paciente(numero_documento="5551")
        assert len(pacientes.buscar_pacientes("5", filtro="document")) == 1

    def test_busca_sin_distinguir_mayusculas(self, nuevo_paciente):
        nuevo_paciente(nombre="Mariana", apellido="Suárez")
        nuevo_paciente(nombre="Pedro", apellido="Gómez")
        res = pacientes.buscar_pacientes("mari")
        assert [p.nombre for p in res] == ["Mariana"]

    def test_filtro_nombre_no_mira_documento(self, nuevo_paciente):
        nuevo_paciente(nombre="Pedro", numero_documento="4455")
        assert pacientes.buscar_pacientes("44", filtro="name") == []
        assert len(pacientes.buscar_pacientes("44", filtro="all")) == 1

    def test_filtro_obra_social(self, obra_social, nuevo_paciente):
        nuevo_paciente(obra_social=obra_social.nombre)
        nuevo_paciente()
        assert len(pacientes.buscar_pacientes("osd", filtro="insurance")) == 1

    def test_listar_sin_consulta_devuelve_todos(self, nuevo_paciente):
        for _ in range(3):
            nuevo_paciente()
        assert len(pacientes.listar_pacientes()) == 3
        assert len(pacientes.listar_pacientes(limit=2)) == 2


class TestModificacionYBaja:
    def test_actualiza(self, nuevo_paciente):
        p = nuevo_paciente()
        resultado = pacientes.actualizar_paciente(p.id, {"telefono": "1122334455"})
        assert resultado.ok
        actualizado = pacientes.obtener_paciente(p.id)
        assert actualizado.telefono == "1122334455"
        assert actualizado.actualizado_el >= p.actualizado_el

    def test_actualiza_inexistente(self):
        resultado = pacientes.actualizar_paciente("8f7c1d9e-1111-4a2b-9c3d-000000000000", {"nombre": "X"})
        assert not resultado.ok
        assert resultado.error == "Paciente no encontrado"

    def test_id_invalido(self):
        assert pacientes.actualizar_paciente("no-es-uuid", {}).error == "ID de paciente inválido"
        assert pacientes.obtener_paciente("no-es-uuid") is None

    def test_baja_borra_turnos_y_facturas(self, nuevo_paciente, nuevo_turno):
        p = nuevo_paciente()
        nuevo_turno(p.id)
        f = facturacion.crear_factura(p.id, "1000").data
        facturacion.registrar_pago(f.id, "500")

        assert pacientes.eliminar_paciente(p.id).ok

        with db_session() as s:
            assert s.scalar(select(func.count()).select_from(Turno)) == 0
            assert s.scalar(select(func.count()).select_from(Factura)) == 0
        assert turnos.listar_turnos(paciente_id=p.id) == []
        assert facturacion.listar_pagos(f.id) == []

    def test_baja_inexistente(self):
        resultado = pacientes.eliminar_paciente("8f7c1d9e-1111-4a2b-9c3d-000000000000")
        assert resultado.error == "Paciente no encontrado"
