import pytest

from app_costeo.exceptions import (
    FutureDatedTransaction,
    InvalidQuantity,
    PeriodClosed,
    UnknownReference,
    ValidationError,
)
from app_costeo.models import EstadoPago


@pytest.fixture
def con_stock(container, catalogo):
    container.inventory_service.registrar_entrada(catalogo.harina.id, 10, 2.0)
    return catalogo


def test_venta_con_precio_del_menu(container, con_stock):
    container.catalog_service.guardar_carta(
        con_stock.pan.id,
        [{'producto_base_id': con_stock.harina.id, 'cantidad': 500, 'unidad_medida_id': 'g'}],
        otros_gastos=0.5,
    )
    venta = container.sales_service.registrar_venta(con_stock.pan.id, con_stock.restaurante.id, 2)

    assert venta.precio_unitario == pytest.approx(5.0)
    assert venta.importe_total == pytest.approx(10.0)
    # 1 kg de harina a 2.00 + 0.5 de gastos por unidad vendida
    assert venta.costo_total_transaccion == pytest.approx(3.0)
    assert venta.utilidad_transaccion == pytest.approx(7.0)
    assert venta.estado_pago is EstadoPago.EFECTIVO
    assert venta.fecha == '2024-06-15T12:00:00'
    descontado = venta.ingredientes_descontados[0]
    assert descontado.cantidad == pytest.approx(1.0)
    assert descontado.costo_unitario == pytest.approx(2.0)
    assert container.inventory_service.get_stock(con_stock.harina.id) == pytest.approx(9)


def test_venta_promocion_sin_importe(container, con_stock):
    venta = container.sales_service.registrar_venta(
        con_stock.pan.id, con_stock.restaurante.id, 1, estado='PROMOCION'
    )
    assert venta.importe_total == 0
    assert venta.costo_total_transaccion == pytest.approx(2.0)
    assert venta.utilidad_transaccion == pytest.approx(-2.0)


def test_comision_del_canal(container, con_stock):
    mandado = container.catalog_service.crear_servicio('Mandado')
    container.catalog_service.guardar_precios(con_stock.pan.id, {'precio_mandado': 8.0})
    venta = container.sales_service.registrar_venta(con_stock.pan.id, mandado.id, 2)
    assert venta.importe_total == pytest.approx(16.0)
    assert venta.comision_servicio == pytest.approx(1.6)


def test_venta_rechazos(container, con_stock):
    ventas = container.sales_service
    with pytest.raises(InvalidQuantity):
        ventas.registrar_venta(con_stock.pan.id, con_stock.restaurante.id, 0)
    with pytest.raises(UnknownReference):
        ventas.registrar_venta('x', con_stock.restaurante.id, 1)
    with pytest.raises(FutureDatedTransaction):
        ventas.registrar_venta(con_stock.pan.id, con_stock.restaurante.id, 1, fecha='2024-06-16')
    with pytest.raises(ValidationError):
        ventas.registrar_venta(con_stock.pan.id, con_stock.restaurante.id, 1, estado='FIADO')

    bar = container.catalog_service.crear_servicio('Bar')
    container.catalog_service.guardar_precios(con_stock.pan.id, {'precio_restaurante': None})
    with pytest.raises(ValidationError):
        ventas.registrar_venta(con_stock.pan.id, bar.id, 1)
    assert container.inventory_service.get_stock(con_stock.harina.id) == pytest.approx(10)


def test_ciclo_de_cobro(container, con_stock):
    ventas = container.sales_service
    venta = ventas.registrar_venta(
        con_stock.pan.id, con_stock.restaurante.id, 1,
        fecha='2024-06-10', estado='PENDIENTE', nombre_deudor='Juan'
    )
    # el inventario se descuenta aunque no se haya cobrado
    assert container.inventory_service.get_stock(con_stock.harina.id) == pytest.approx(9)
    assert [v.id_transaccion for v in ventas.cuentas_por_cobrar()] == [venta.id_transaccion]

    ventas.modificar_cuenta_pendiente(venta.id_transaccion, {'descripcion_pago_deuda': 'paga el viernes'})
    with pytest.raises(ValidationError):
        ventas.marcar_venta_pagada(venta.id_transaccion, 'EFECTIVO', '2024-06-09')

    pagada = ventas.marcar_venta_pagada(venta.id_transaccion, 'transferencia', '2024-06-12')
    assert pagada.estado_pago is EstadoPago.TRANSFERENCIA
    assert pagada.fecha_pago == '2024-06-12T00:00:00'
    assert ventas.cuentas_por_cobrar() == []
    with pytest.raises(ValidationError):
        ventas.marcar_venta_pagada(venta.id_transaccion, 'EFECTIVO')

    revertida = ventas.deshacer_pago_venta(venta.id_transaccion)
    assert revertida.es_pendiente
    assert revertida.fecha_pago is None
    assert revertida.descripcion_pago_deuda == 'paga el viernes'


def test_eliminar_venta_devuelve_inventario(container, con_stock):
    venta = container.sales_service.registrar_venta(con_stock.pan.id, con_stock.restaurante.id, 3)
    assert container.inventory_service.get_stock(con_stock.harina.id) == pytest.approx(7)

    container.sales_service.eliminar_venta(venta.id_transaccion)
    assert container.inventory_service.get_stock(con_stock.harina.id) == pytest.approx(10)
    assert container.inventory_service.get_promedio(con_stock.harina.id) == pytest.approx(2.0)
    with pytest.raises(UnknownReference):
        container.sales_service.obtener_venta(venta.id_transaccion)


def test_venta_en_mes_cerrado(container, con_stock):
    venta = container.sales_service.registrar_venta(
        con_stock.pan.id, con_stock.restaurante.id, 1, fecha='2024-05-20', estado='PENDIENTE'
    )
    container.closing_service.cerrar_mes('2024-05', saldo_inicial_manual=0)

    with pytest.raises(PeriodClosed):
        container.sales_service.registrar_venta(
            con_stock.pan.id, con_stock.restaurante.id, 1, fecha='2024-05-21'
        )
    with pytest.raises(PeriodClosed):
        container.sales_service.eliminar_venta(venta.id_transaccion)
    with pytest.raises(PeriodClosed):
        container.sales_service.marcar_venta_pagada(venta.id_transaccion, 'EFECTIVO', '2024-05-31')
    # cobrar una deuda de un mes cerrado sí está permitido
    pagada = container.sales_service.marcar_venta_pagada(venta.id_transaccion, 'EFECTIVO')
    with pytest.raises(PeriodClosed):
        container.sales_service.deshacer_pago_venta(pagada.id_transaccion)


def test_eliminar_venta_con_ingrediente_borrado(container, con_stock):
    cat = container.catalog_service
    sal = cat.crear_producto('Sal', 'kg')
    cat.guardar_carta(con_stock.pan.id, [
        {'producto_base_id': con_stock.harina.id, 'cantidad': 1, 'unidad_medida_id': 'kg'},
        {'producto_base_id': sal.id, 'cantidad': 10, 'unidad_medida_id': 'g'},
    ])
    container.inventory_service.registrar_entrada(sal.id, 1, 1.0)
    venta = container.sales_service.registrar_venta(con_stock.pan.id, con_stock.restaurante.id, 2)
    assert container.inventory_service.get_stock(con_stock.harina.id) == pytest.approx(8)

    cat.eliminar_producto(sal.id)
    container.sales_service.eliminar_venta(venta.id_transaccion)

    # la harina vuelve al stock aunque la sal ya no exista
    assert container.inventory_service.get_stock(con_stock.harina.id) == pytest.approx(10)
    assert container.inventory_service.get_item(sal.id) is None
    assert container.sales_service.listar_ventas() == []
