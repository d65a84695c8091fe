import pytest

from app_costeo.exceptions import (
    ClosingNotReversible,
    DuplicateClosing,
    PeriodClosed,
    UnknownReference,
    ValidationError,
)
from app_costeo.models import EstadoPago, TipoTransaccion
from app_costeo.services import resultado_periodo


VENTA = TipoTransaccion.VENTA
COMPRA = TipoTransaccion.COMPRA


@pytest.fixture
def dos_meses(container, nueva_transaccion):
    # abril: utilidad 25
    nueva_transaccion(VENTA, '2024-04-10T10:00:00', importe=40, costo=15)
    # mayo: ingresos 200, costo 80, gastos operativos 40
    nueva_transaccion(VENTA, '2024-05-05T10:00:00', importe=120, costo=50)
    nueva_transaccion(VENTA, '2024-05-18T10:00:00', importe=80, costo=30, estado=EstadoPago.PENDIENTE)
    nueva_transaccion(COMPRA, '2024-05-07T09:00:00', importe=15)
    nueva_transaccion(COMPRA, '2024-05-08T09:00:00', importe=99, estado=EstadoPago.PENDIENTE)
    container.expense_service.registrar_gasto('Luz', 'Electricidad', 25, fecha='2024-05-20')
    return container


def test_cadena_de_cierres(dos_meses):
    cierres = dos_meses.closing_service
    abril = cierres.cerrar_mes('2024-04', saldo_inicial_manual=100)
    assert abril.saldo_inicial == pytest.approx(100)
    assert abril.utilidad_neta_mes == pytest.approx(25)
    assert abril.saldo_final_mes == pytest.approx(125)
    assert abril.saldo_inicial_manual
    assert abril.fecha_cierre == '2024-06-15T12:00:00'

    mayo = cierres.cerrar_mes('2024-05', impuesto_negocio=10, notas='sin novedades')
    assert mayo.saldo_inicial == pytest.approx(125)
    assert mayo.total_ingresos == pytest.approx(200)
    assert mayo.total_costo_ventas == pytest.approx(80)
    assert mayo.utilidad_bruta == pytest.approx(120)
    # la compra pendiente no cuenta
    assert mayo.total_compras_inventario == pytest.approx(15)
    assert mayo.total_otros_gastos_directos == pytest.approx(25)
    assert mayo.gastos_operativos_totales == pytest.approx(40)
    assert mayo.utilidad_neta_mes == pytest.approx(70)
    assert mayo.saldo_final_mes == pytest.approx(195)
    assert not mayo.saldo_inicial_manual
    assert [(g.categoria, g.total) for g in mayo.gastos_por_categoria] == [('Electricidad', 25)]

    assert [c.mes for c in cierres.listar_cierres()] == ['2024-04', '2024-05']
    assert cierres.sugerir_proximo_mes() == '2024-06'


def test_resultado_periodo_cuenta_comisiones(container, nueva_transaccion):
    nueva_transaccion(VENTA, '2024-06-01T10:00:00', importe=100, costo=40,
                      comision_servicio=10, impuesto_terceros=3)
    totales = resultado_periodo(container.store, '2024-06-01', '2024-06-30')
    assert totales['total_comisiones_servicio_ventas'] == pytest.approx(10)
    assert totales['total_impuestos_terceros_ventas'] == pytest.approx(3)
    assert totales['gastos_operativos_totales'] == pytest.approx(10)
    assert totales['utilidad_antes_impuesto_negocio'] == pytest.approx(50)
    assert totales['cantidad_ventas'] == 1


def test_vista_previa_no_guarda(dos_meses):
    cierre = dos_meses.closing_service.calcular_cierre('2024-04', saldo_inicial_manual=100)
    assert cierre.saldo_final_mes == pytest.approx(125)
    assert cierre.fecha_cierre is None
    assert dos_meses.closing_service.listar_cierres() == []


def test_saldo_inicial_manual_solo_en_el_primer_cierre(dos_meses):
    cierres = dos_meses.closing_service
    with pytest.raises(ValidationError):
        cierres.cerrar_mes('2024-04')
    cierres.cerrar_mes('2024-04', saldo_inicial_manual=100)
    with pytest.raises(ValidationError):
        cierres.cerrar_mes('2024-05', saldo_inicial_manual=500)


def test_orden_de_cierres(dos_meses):
    cierres = dos_meses.closing_service
    with pytest.raises(ValidationError):
        cierres.cerrar_mes('2024-07', saldo_inicial_manual=0)
    with pytest.raises(ValidationError):
        cierres.cerrar_mes('2024-4', saldo_inicial_manual=0)
    with pytest.raises(ValidationError):
        cierres.cerrar_mes('2024-04', impuesto_negocio=-1, saldo_inicial_manual=0)

    cierres.cerrar_mes('2024-04', saldo_inicial_manual=100)
    with pytest.raises(DuplicateClosing):
        cierres.cerrar_mes('2024-04')
    with pytest.raises(ValidationError):
        cierres.cerrar_mes('2024-06')


def test_revertir_solo_el_ultimo(dos_meses):
    cierres = dos_meses.closing_service
    cierres.cerrar_mes('2024-04', saldo_inicial_manual=100)
    cierres.cerrar_mes('2024-05')

    with pytest.raises(ClosingNotReversible):
        cierres.revertir_cierre('2024-04')
    with pytest.raises(UnknownReference):
        cierres.revertir_cierre('2024-03')

    revertido = cierres.revertir_ultimo_cierre()
    assert revertido.mes == '2024-05'
    assert not cierres.mes_cerrado('2024-05-20')
    assert cierres.mes_cerrado('2024-04')
    assert cierres.sugerir_proximo_mes() == '2024-05'

    # reabierto el mes, se puede volver a cerrar con otros datos
    dos_meses.expense_service.registrar_gasto('Gas', 'Combustible', 5, fecha='2024-05-21')
    mayo = cierres.cerrar_mes('2024-05', impuesto_negocio=10)
    assert mayo.saldo_final_mes == pytest.approx(190)


def test_resumen_cierres(dos_meses):
    cierres = dos_meses.closing_service
    cierres.cerrar_mes('2024-04', saldo_inicial_manual=100)
    cierres.cerrar_mes('2024-05', impuesto_negocio=10)

    anual = cierres.resumen_cierres(2024)
    assert anual['meses'] == ['2024-04', '2024-05']
    assert anual['saldo_inicial'] == pytest.approx(100)
    assert anual['saldo_final'] == pytest.approx(195)
    assert anual['utilidad_neta'] == pytest.approx(95)

    segundo = cierres.resumen_cierres('2024', '2')
    assert segundo['trimestre'] == 2
    assert segundo['meses'] == ['2024-04', '2024-05']
    assert cierres.resumen_cierres(2024, 1)['meses'] == []
    with pytest.raises(ValidationError):
        cierres.resumen_cierres(2024, 5)


def test_meses_anteriores_al_primer_cierre_quedan_bloqueados(container, catalogo):
    cierres = container.closing_service
    cierres.cerrar_mes('2024-05', saldo_inicial_manual=100)

    with pytest.raises(PeriodClosed):
        container.expense_service.registrar_gasto('Luz', 'Electricidad', 5, fecha='2024-04-10')
    with pytest.raises(PeriodClosed):
        container.purchase_service.registrar_compra(
            catalogo.harina.id, 1, 2.0, fecha='2023-12-01', estado='EFECTIVO'
        )
    assert cierres.mes_cerrado('2024-03')
    assert not cierres.mes_cerrado('2024-06')
    assert container.statements_service.balance_general('2024-05').total_activos == pytest.approx(100)


def test_compra_pendiente_al_cierre_cuenta_en_el_mes_de_pago(container, catalogo):
    compras = container.purchase_service
    cierres = container.closing_service
    compra = compras.registrar_compra(
        catalogo.harina.id, 10, 2.0, fecha='2024-05-03', estado='PENDIENTE'
    )
    mayo = cierres.cerrar_mes('2024-05', saldo_inicial_manual=100)
    assert mayo.total_compras_inventario == 0

    # el pago no puede fecharse dentro del mes cerrado
    with pytest.raises(PeriodClosed):
        compras.pagar_compra(compra.id_transaccion, 'EFECTIVO', '2024-05-20')

    compras.pagar_compra(compra.id_transaccion, 'EFECTIVO', '2024-06-02')
    junio = cierres.calcular_cierre('2024-06')
    assert junio.total_compras_inventario == pytest.approx(20)
    assert junio.saldo_final_mes == pytest.approx(80)
    assert container.statements_service.balance_general('2024-06').efectivo == pytest.approx(80)


def test_mes_sugerido_sin_cierres(container):
    assert container.closing_service.sugerir_proximo_mes() == '2024-05'
