import pytest

from app_costeo.exceptions import ValidationError
from app_costeo.models import EstadoPago, TipoTransaccion


@pytest.fixture
def junio(container, catalogo):
    """
    Movimientos de junio con fechas explícitas:
      01: compra 10 kg @ 2.00 (efectivo)
      03: compra 5 kg @ 3.20 (transferencia)
      05: venta 6 pan (efectivo)
      06: compra 4 kg @ 2.50 pendiente, pagada el 10
      07: ajuste de salida 1 kg
      08: venta 2 pan pendiente
      09: gasto de luz 12
    """
    harina = catalogo.harina.id
    compras = container.purchase_service
    ventas = container.sales_service
    compras.registrar_compra(harina, 10, 2.00, fecha='2024-06-01', estado='EFECTIVO')
    compras.registrar_compra(harina, 5, 3.20, fecha='2024-06-03', estado='TRANSFERENCIA')
    ventas.registrar_venta(catalogo.pan.id, catalogo.restaurante.id, 6, fecha='2024-06-05')
    pendiente = compras.registrar_compra(harina, 4, 2.50, fecha='2024-06-06', estado='PENDIENTE')
    container.inventory_service.registrar_ajuste(harina, 1, entrada=False, fecha='2024-06-07')
    ventas.registrar_venta(catalogo.pan.id, catalogo.restaurante.id, 2, fecha='2024-06-08',
                           estado='PENDIENTE', nombre_deudor='Ana')
    container.expense_service.registrar_gasto('Luz', 'Electricidad', 12, fecha='2024-06-09')
    compras.pagar_compra(pendiente.id_transaccion, 'EFECTIVO', '2024-06-10')
    return catalogo


def test_replay_coincide_con_el_libro(container, junio):
    reconstruido = container.statements_service.replay_inventario()
    vivo = container.inventory_service.get_item(junio.harina.id)
    item = reconstruido[junio.harina.id]

    assert item.entradas == pytest.approx(vivo.entradas)
    assert item.salidas == pytest.approx(vivo.salidas)
    assert item.stock_actual == pytest.approx(vivo.stock_actual)
    assert item.precio_promedio_ponderado == pytest.approx(vivo.precio_promedio_ponderado)
    assert item.unidad_medida_id == 'kg'


def test_replay_a_una_fecha(container, junio):
    al_dia_4 = container.statements_service.replay_inventario('2024-06-04')
    item = al_dia_4[junio.harina.id]
    assert item.stock_actual == pytest.approx(15)
    assert item.precio_promedio_ponderado == pytest.approx(36 / 15)


def test_flujo_de_efectivo(container, junio):
    flujo = container.statements_service.flujo_efectivo('2024-06-01', '2024-06-30')

    # la venta pendiente no entra en caja
    assert flujo['entradas_ventas'] == pytest.approx(30)
    assert flujo['salidas_compras'] == pytest.approx(20 + 16 + 10)
    assert flujo['salidas_otros_gastos'] == pytest.approx(12)
    assert flujo['flujo_neto'] == pytest.approx(30 - 46 - 12)
    assert flujo['por_metodo']['TRANSFERENCIA'] == pytest.approx(-16)
    assert flujo['por_metodo']['EFECTIVO'] == pytest.approx(30 - 20 - 10)
    dias = {d['fecha']: d for d in flujo['detalle_diario']}
    # la compra pendiente sale de caja el día en que se paga
    assert dias['2024-06-10']['salidas'] == pytest.approx(10)
    assert '2024-06-06' not in dias


def test_estado_de_cuenta(container, junio):
    estado = container.statements_service.estado_cuenta('2024-06-01', '2024-06-30')
    assert estado['total_ingresos'] == pytest.approx(40)
    assert estado['total_compras_inventario'] == pytest.approx(46)
    assert estado['total_otros_gastos_directos'] == pytest.approx(12)
    assert estado['gastos_por_categoria'] == [{'categoria': 'Electricidad', 'total': 12}]
    assert estado['saldo_inicial_estimado'] == 0
    assert estado['cierre_referencia'] is None
    assert estado['saldo_final_estimado'] == pytest.approx(estado['utilidad_neta_periodo'])


def test_estado_de_cuenta_parte_del_ultimo_cierre(container, nueva_transaccion):
    nueva_transaccion(TipoTransaccion.VENTA, '2024-05-10T10:00:00', importe=50, costo=20)
    container.closing_service.cerrar_mes('2024-05', saldo_inicial_manual=100)
    nueva_transaccion(TipoTransaccion.VENTA, '2024-06-02T10:00:00', importe=10, costo=4)

    estado = container.statements_service.estado_cuenta('2024-06-01', '2024-06-15')
    assert estado['cierre_referencia'] == '2024-05'
    assert estado['saldo_inicial_estimado'] == pytest.approx(130)
    assert estado['saldo_final_estimado'] == pytest.approx(136)


def test_balance_general_cuadra(container, junio):
    balance = container.statements_service.balance_general('2024-06')
    harina = container.inventory_service.get_item(junio.harina.id)

    assert balance.fecha_corte == '2024-06-30'
    assert balance.efectivo == pytest.approx(30 - 46 - 12)
    assert balance.cuentas_por_cobrar == pytest.approx(10)
    assert balance.cuentas_por_pagar == 0
    assert balance.inventario == pytest.approx(harina.valor)
    assert balance.total_activos == pytest.approx(balance.total_pasivos + balance.patrimonio)


def test_balance_con_pendientes_al_corte(container, catalogo):
    compras = container.purchase_service
    compra = compras.registrar_compra(catalogo.harina.id, 4, 2.5, fecha='2024-05-20', estado='PENDIENTE')
    container.closing_service.cerrar_mes('2024-05', saldo_inicial_manual=50)
    compras.pagar_compra(compra.id_transaccion, 'EFECTIVO', '2024-06-02')

    mayo = container.statements_service.balance_general('2024-05')
    assert mayo.efectivo == pytest.approx(50)
    assert mayo.cuentas_por_pagar == pytest.approx(10)
    assert mayo.inventario == 0

    junio = container.statements_service.balance_general('2024-06')
    assert junio.efectivo == pytest.approx(40)
    assert junio.cuentas_por_pagar == 0
    assert junio.inventario == pytest.approx(10)
    assert junio.total_activos == pytest.approx(junio.total_pasivos + junio.patrimonio)


def test_rendimiento_platos(container, junio):
    rendimiento = container.statements_service.rendimiento_platos('2024-06-01', '2024-06-30')
    assert rendimiento['resumen']['total_ventas'] == 2
    assert rendimiento['resumen']['unidades'] == pytest.approx(8)
    pan = rendimiento['platos'][0]
    assert pan['nombre'] == 'Pan'
    assert pan['ingresos'] == pytest.approx(40)
    assert rendimiento['con_perdida'] == []
    assert rendimiento['mas_rentables'][0]['plato_id'] == junio.pan.id


def test_estados_validan_el_rango(container):
    with pytest.raises(ValidationError):
        container.statements_service.flujo_efectivo('2024-06-30', '2024-06-01')
    with pytest.raises(ValidationError):
        container.statements_service.balance_general('junio')
    assert EstadoPago.PENDIENTE.mueve_caja is False
