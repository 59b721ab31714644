from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from consultorio import facturacion
from consultorio.models import EstadoFactura


@pytest.mark.parametrize(
    "valor, esperado",
    [
        ("1500", Decimal("1500.00")),
        ("1500,5", Decimal("1500.50")),
        (" 99.999 ", Decimal("100.00")),
        (250, Decimal("250.00")),
        ("0", None),
        ("-10", None),
        ("abc", None),
        ("", None),
        (None, None),
        ("NaN", None),
    ],
)
def test_parse_monto(valor, esperado):
    assert facturacion.parse_monto(valor) == esperado


@pytest.fixture
def factura(nuevo_paciente):
    resultado = facturacion.crear_factura(nuevo_paciente().id, "1000,00", notas="Consulta")
    assert resultado.ok
    return resultado.data


class TestFactura:
    def test_nace_pendiente(self, factura):
        assert factura.estado == EstadoFactura.PENDIENTE
        assert factura.monto == Decimal("1000.00")

    def test_monto_invalido(self, nuevo_paciente):
        resultado = facturacion.crear_factura(nuevo_paciente().id, "gratis")
        assert resultado.error == "El monto debe ser un número mayor a cero"

    def test_paciente_inexistente(self):
        resultado = facturacion.crear_factura("8f7c1d9e-1111-4a2b-9c3d-000000000000", "10")
        assert resultado.error == "El paciente seleccionado no existe"

    def test_anular(self, factura):
        assert facturacion.anular_factura(factura.id).ok
        assert facturacion.obtener_factura(factura.id).estado == EstadoFactura.ANULADA
        assert facturacion.anular_factura(factura.id).error == "Solo se pueden anular facturas pendientes"


class TestPagos:
    def test_pago_parcial_queda_pendiente(self, factura):
        assert facturacion.registrar_pago(factura.id, "400").ok
        assert facturacion.obtener_factura(factura.id).estado == EstadoFactura.PENDIENTE
        assert facturacion.total_pagado(factura.id) == Decimal("400.00")

    def test_pagos_que_completan_el_monto(self, factura):
        facturacion.registrar_pago(factura.id, "400", metodo="efectivo")
        facturacion.registrar_pago(factura.id, "600,00", metodo="tarjeta")
        assert facturacion.obtener_factura(factura.id).estado == EstadoFactura.PAGADA
        assert len(facturacion.listar_pagos(factura.id)) == 2

    def test_centavos_sin_error_de_redondeo(self, nuevo_paciente):
        f = facturacion.crear_factura(nuevo_paciente().id, "0.30").data
        facturacion.registrar_pago(f.id, "0.10")
        facturacion.registrar_pago(f.id, "0.20")
        assert facturacion.obtener_factura(f.id).estado == EstadoFactura.PAGADA

    def test_pago_en_factura_anulada(self, factura):
        facturacion.anular_factura(factura.id)
        resultado = facturacion.registrar_pago(factura.id, "100")
        assert resultado.error == "No se pueden registrar pagos en una factura anulada"
        assert facturacion.listar_pagos(factura.id) == []

    def test_factura_inexistente(self):
        resultado = facturacion.registrar_pago("8f7c1d9e-1111-4a2b-9c3d-000000000000", "100")
        assert resultado.error == "Factura no encontrada"

    def test_saldar_paga_el_saldo(self, factura):
        facturacion.registrar_pago(factura.id, "250")
        assert facturacion.saldar_factura(factura.id, metodo="transferencia").ok

        assert facturacion.obtener_factura(factura.id).estado == EstadoFactura.PAGADA
        montos = sorted(p.monto for p in facturacion.listar_pagos(factura.id))
        assert montos == [Decimal("250.00"), Decimal("750.00")]

    def test_saldar_factura_pagada(self, factura):
        facturacion.saldar_factura(factura.id)
        assert facturacion.saldar_factura(factura.id).error == "La factura ya está pagada"


class TestListadoYReporte:
    def test_listado_con_total_pagado(self, factura):
        facturacion.registrar_pago(factura.id, "100")
        filas = facturacion.listar_facturas()
        assert len(filas) == 1
        assert filas[0]["total_pagado"] == "100.00"
        assert filas[0]["paciente_nombre"] == "Ana"
        assert filas[0]["estado"] == "pending"

    def test_listado_por_estado(self, factura, nuevo_paciente):
        otra = facturacion.crear_factura(nuevo_paciente().id, "50").data
        facturacion.saldar_factura(otra.id)
        assert [f["id"] for f in facturacion.listar_facturas(estado="paid")] == [otra.id]
        assert [f["id"] for f in facturacion.listar_facturas(estado=EstadoFactura.PENDIENTE)] == [factura.id]

    def test_reporte(self, nuevo_paciente):
        p = nuevo_paciente()
        pagada = facturacion.crear_factura(p.id, "1000").data
        facturacion.crear_factura(p.id, "500.50")
        facturacion.crear_factura(p.id, "300", fecha=date.today() - timedelta(days=40))
        facturacion.saldar_factura(pagada.id)

        r = facturacion.reporte_facturacion(desde=date.today() - timedelta(days=7))
        assert r["cantidad"] == 2
        assert r["total_facturado"] == Decimal("1500.50")
        assert r["total_pagado"] == Decimal("1000.00")

    def test_reporte_vacio(self):
        r = facturacion.reporte_facturacion()
        assert r == {"cantidad": 0, "total_facturado": Decimal("0"), "total_pagado": Decimal("0")}


def test_total_pagado_sin_pagos_o_id_invalido(factura):
    assert facturacion.total_pagado(factura.id) == Decimal("0")
    assert facturacion.total_pagado("x") == Decimal("0")
