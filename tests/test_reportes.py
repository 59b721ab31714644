from __future__ import annotations

import csv
import io
from datetime import date, time, timedelta

from consultorio import medicos, reportes, turnos


def _leer_csv(texto: str) -> list[list[str]]:
    assert texto.startswith("\ufeff")
    return list(csv.reader(io.StringIO(texto[1:])))


class TestPanel:
    def test_conteo_por_estado(self, nuevo_paciente, nuevo_turno):
        p = nuevo_paciente()
        nuevo_paciente()
        a = nuevo_turno(p.id, hora=time(8, 0))
        c = nuevo_turno(p.id, hora=time(9, 0))
        nuevo_turno(p.id, hora=time(10, 0))
        nuevo_turno(p.id, fecha=date.today() + timedelta(days=1))
        turnos.marcar_atendido(a.id)
        turnos.cancelar_turno(c.id)

        panel = reportes.panel_control()
        assert panel == {
            "turnos_hoy": 3,
            "programados": 1,
            "atendidos": 1,
            "cancelados": 1,
            "ausentes": 0,
            "total_pacientes": 2,
        }


class TestListados:
    def test_agenda_sin_medico_vacia(self, nuevo_paciente, nuevo_turno):
        nuevo_turno(nuevo_paciente().id)
        assert reportes.agenda_medico(None) == []

    def test_pool_por_medico(self, nuevo_paciente, nuevo_medico, nuevo_turno):
        p = nuevo_paciente()
        m = nuevo_medico()
        nuevo_turno(p.id, medico_id=m.id)
        nuevo_turno(p.id, hora=time(10, 0))
        assert len(reportes.pool_atencion()) == 2
        assert len(reportes.pool_atencion(medico_id=m.id)) == 1

    def test_atendidos_y_no_atendidos(self, nuevo_paciente, nuevo_turno):
        p = nuevo_paciente()
        a = nuevo_turno(p.id, hora=time(8, 0))
        n = nuevo_turno(p.id, hora=time(9, 0))
        turnos.marcar_atendido(a.id)
        turnos.marcar_inasistencia(n.id, motivo="Sin aviso")

        assert [t["id"] for t in reportes.pacientes_atendidos(date.today())] == [a.id]
        no = reportes.pacientes_no_atendidos()
        assert [t["motivo_inasistencia"] for t in no] == ["Sin aviso"]


class TestPorObraSocial:
    def test_agrupa_y_calcula_top3(self, nuevo_paciente, nuevo_turno):
        from consultorio.obras_sociales import crear_obra_social

        for nombre in ("OSDE", "PAMI", "IOMA", "Galeno"):
            crear_obra_social({"nombre": nombre})

        # OSDE x3, PAMI x2, IOMA x1, Galeno x1, sin obra social x1
        distribucion = ["OSDE"] * 3 + ["PAMI"] * 2 + ["IOMA", "Galeno", None]
        for os_ in distribucion:
            t = nuevo_turno(nuevo_paciente(obra_social=os_).id)
            turnos.marcar_atendido(t.id)
        # los no atendidos no cuentan
        nuevo_turno(nuevo_paciente(obra_social="OSDE").id)

        r = reportes.pacientes_por_obra_social()
        assert r["por_obra_social"][0] == {"obra_social": "OSDE", "cantidad": 3}
        assert r["por_obra_social"][1] == {"obra_social": "PAMI", "cantidad": 2}
        assert {"obra_social": "Sin obra social", "cantidad": 1} in r["por_obra_social"]
        # 6 de 8
        assert r["resumen"] == {"total_atendidos": 8, "cantidad_os": 5, "top3_porcentaje": 75}

    def test_sin_atendidos(self):
        r = reportes.pacientes_por_obra_social()
        assert r["resumen"] == {"total_atendidos": 0, "cantidad_os": 0, "top3_porcentaje": 0}


class TestAnulados:
    def test_resumen_por_medico(self, nuevo_paciente, nuevo_medico, nuevo_turno):
        p = nuevo_paciente()
        m = nuevo_medico(nombre="Juan", apellido="Pérez")
        for h in (8, 9):
            turnos.cancelar_turno(nuevo_turno(p.id, hora=time(h, 0), medico_id=m.id).id)
        turnos.cancelar_turno(nuevo_turno(p.id, hora=time(10, 0)).id)
        nuevo_turno(p.id, hora=time(11, 0), medico_id=m.id)

        r = reportes.turnos_anulados()
        assert r["resumen"]["total"] == 3
        assert r["resumen"]["por_medico"] == [
            {"medico": "Juan Pérez", "cantidad": 2},
            {"medico": "Sin médico", "cantidad": 1},
        ]

    def test_fecha_exacta_pisa_el_rango(self, nuevo_paciente, nuevo_turno):
        p = nuevo_paciente()
        hoy = date.today()
        turnos.cancelar_turno(nuevo_turno(p.id).id)
        turnos.cancelar_turno(nuevo_turno(p.id, fecha=hoy - timedelta(days=3)).id)

        r = reportes.turnos_anulados(fecha=hoy, desde=hoy - timedelta(days=10), hasta=hoy)
        assert r["resumen"]["total"] == 1
        assert reportes.turnos_anulados(desde=hoy - timedelta(days=10))["resumen"]["total"] == 2


def test_disponibilidad_medicos(nuevo_medico):
    m = nuevo_medico()
    hoy = date.today()
    medicos.agregar_dia_no_laborable(m.id, hoy - timedelta(days=5))
    medicos.agregar_dia_no_laborable(m.id, hoy)
    medicos.agregar_dia_no_laborable(m.id, hoy + timedelta(days=7))
    otro = nuevo_medico(nombre="Eva", apellido="Zapata")

    filas = {f["medico_id"]: f for f in reportes.disponibilidad_medicos(hoy)}
    assert filas[m.id]["dias_no_laborables"] == 3
    assert filas[m.id]["dias_futuros"] == 2
    assert filas[otro.id]["dias_no_laborables"] == 0
    assert filas[otro.id]["medico"] == "Eva Zapata"


class TestCsv:
    def test_comillas_y_bom(self):
        texto = reportes.a_csv(["A", "B"], [['con "comillas"', None], [1, "x,y"]])
        assert texto.splitlines()[0] == '\ufeff"A","B"'
        assert texto.splitlines()[1] == '"con ""comillas""",""'
        assert _leer_csv(texto)[2] == ["1", "x,y"]

    def test_csv_atendidos(self, nuevo_paciente, nuevo_medico, nuevo_turno):
        p = nuevo_paciente(nombre="Lucía", apellido="Díaz", numero_documento="111", numero_historia_clinica="HC9")
        m = nuevo_medico()
        t = nuevo_turno(p.id, hora=time(9, 15), medico_id=m.id)
        turnos.marcar_atendido(t.id)

        filas = _leer_csv(reportes.csv_pacientes_atendidos(reportes.pacientes_atendidos()))
        assert filas[0] == ["Fecha", "Hora", "Paciente", "DNI", "HC", "Médico"]
        assert filas[1] == [date.today().strftime("%d/%m/%Y"), "09:15", "Lucía Díaz", "111", "HC9", "Juan Pérez"]

    def test_csv_anulados(self, nuevo_paciente, nuevo_turno):
        p = nuevo_paciente(numero_documento="222")
        turnos.cancelar_turno(nuevo_turno(p.id).id, notas="Paro de transporte")

        filas = _leer_csv(reportes.csv_turnos_anulados(reportes.turnos_anulados()["turnos"]))
        assert filas[0][-1] == "Motivo / Notas"
        assert filas[1][3] == "222"
        assert filas[1][4] == ""
        assert filas[1][5] == "Paro de transporte"
