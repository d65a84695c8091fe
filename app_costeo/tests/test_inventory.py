import pytest

from app_costeo.exceptions import InsufficientInventory, PeriodClosed
from app_costeo.models import TipoTransaccion
from app_costeo.services.valuation import nuevo_promedio, promedio_de_compras


def test_nuevo_promedio():
    assert nuevo_promedio(0, 0, 10, 2.0) == 2.0
    assert nuevo_promedio(10, 2.0, 5, 3.2) == pytest.approx(36 / 15)
    # stock negativo o cero descarta el promedio anterior
    assert nuevo_promedio(-3, 9.9, 4, 1.5) == 1.5


def test_promedio_no_depende_del_orden(container, catalogo):
    inv = container.inventory_service
    compras = [(10, 2.0), (5, 3.2), (2.5, 1.1), (7, 4.0)]
    for cantidad, precio in compras:
        inv.registrar_entrada(catalogo.harina.id, cantidad, precio)
    directo = inv.get_promedio(catalogo.harina.id)

    otro = container.catalog_service.crear_producto('Harina integral', 'kg')
    for cantidad, precio in reversed(compras):
        inv.registrar_entrada(otro.id, cantidad, precio)

    assert directo == pytest.approx(inv.get_promedio(otro.id))
    assert directo == pytest.approx(promedio_de_compras(compras))


def test_escenario_harina(container, catalogo):
    harina = catalogo.harina.id
    compras = container.purchase_service
    compras.registrar_compra(harina, 10, 2.00, estado='EFECTIVO')
    assert container.inventory_service.get_promedio(harina) == pytest.approx(2.00)

    compras.registrar_compra(harina, 5, 3.20, estado='EFECTIVO')
    promedio = (10 * 2.00 + 5 * 3.20) / 15
    assert container.inventory_service.get_promedio(harina) == pytest.approx(promedio)
    assert container.inventory_service.get_stock(harina) == pytest.approx(15)

    venta = container.sales_service.registrar_venta(catalogo.pan.id, catalogo.restaurante.id, 6)
    assert container.inventory_service.get_stock(harina) == pytest.approx(9)
    assert container.inventory_service.get_promedio(harina) == pytest.approx(promedio)
    assert venta.costo_total_transaccion == pytest.approx(6 * promedio)

    with pytest.raises(InsufficientInventory) as exc:
        container.sales_service.registrar_venta(catalogo.pan.id, catalogo.restaurante.id, 20)
    faltante = exc.value.faltantes[0]
    assert faltante['producto_base_id'] == harina
    assert faltante['faltante'] == pytest.approx(11)
    assert container.inventory_service.get_stock(harina) == pytest.approx(9)


def test_salida_no_cambia_promedio(container, catalogo):
    inv = container.inventory_service
    inv.registrar_entrada(catalogo.harina.id, 10, 2.0)
    costo = inv.registrar_salida(catalogo.harina.id, 4)
    assert costo == pytest.approx(8.0)
    assert inv.get_promedio(catalogo.harina.id) == pytest.approx(2.0)
    assert inv.get_stock(catalogo.harina.id) == pytest.approx(6)


def test_revertir_entrada_no_desmezcla_promedio(container, catalogo):
    inv = container.inventory_service
    inv.registrar_entrada(catalogo.harina.id, 10, 2.0)
    inv.registrar_entrada(catalogo.harina.id, 10, 4.0)
    inv.revertir_entrada(catalogo.harina.id, 10)
    assert inv.get_stock(catalogo.harina.id) == pytest.approx(10)
    assert inv.get_promedio(catalogo.harina.id) == pytest.approx(3.0)


def test_suficiencia_todo_o_nada(container, catalogo):
    cat = container.catalog_service
    sal = cat.crear_producto('Sal', 'kg')
    cat.guardar_carta(catalogo.pan.id, [
        {'producto_base_id': catalogo.harina.id, 'cantidad': 1, 'unidad_medida_id': 'kg'},
        {'producto_base_id': sal.id, 'cantidad': 10, 'unidad_medida_id': 'g'},
    ])
    inv = container.inventory_service
    inv.registrar_entrada(catalogo.harina.id, 5, 2.0)
    inv.registrar_entrada(sal.id, 0.02, 1.0)

    with pytest.raises(InsufficientInventory) as exc:
        container.sales_service.registrar_venta(catalogo.pan.id, catalogo.restaurante.id, 3)

    assert [f['producto_base_id'] for f in exc.value.faltantes] == [sal.id]
    assert exc.value.faltantes[0]['faltante'] == pytest.approx(0.01)
    # la harina alcanzaba pero tampoco se descontó
    assert inv.get_stock(catalogo.harina.id) == pytest.approx(5)
    assert inv.get_stock(sal.id) == pytest.approx(0.02)
    assert container.sales_service.listar_ventas() == []


def test_verificar_suficiencia_lista_faltantes(container, catalogo):
    faltantes = container.inventory_service.verificar_suficiencia({catalogo.harina.id: 3})
    assert len(faltantes) == 1
    assert faltantes[0].nombre == 'Harina'
    assert faltantes[0].unidad == 'kg'
    assert faltantes[0].faltante == pytest.approx(3)


def test_ajustes_de_inventario(container, catalogo):
    inv = container.inventory_service
    entrada = inv.registrar_ajuste(catalogo.harina.id, 4, entrada=True, precio=2.5, notas='Conteo')
    assert entrada.tipo_transaccion is TipoTransaccion.AJUSTE_ENTRADA
    assert inv.get_stock(catalogo.harina.id) == pytest.approx(4)
    assert inv.get_promedio(catalogo.harina.id) == pytest.approx(2.5)

    salida = inv.registrar_ajuste(catalogo.harina.id, 1, entrada=False, notas='Merma')
    assert salida.precio_unitario == pytest.approx(2.5)
    assert inv.get_stock(catalogo.harina.id) == pytest.approx(3)

    with pytest.raises(InsufficientInventory):
        inv.registrar_ajuste(catalogo.harina.id, 10, entrada=False)

    inv.eliminar_ajuste(salida.id_transaccion)
    assert inv.get_stock(catalogo.harina.id) == pytest.approx(4)


def test_ajuste_en_mes_cerrado(container, catalogo):
    container.closing_service.cerrar_mes('2024-05', saldo_inicial_manual=0)
    with pytest.raises(PeriodClosed):
        container.inventory_service.registrar_ajuste(
            catalogo.harina.id, 1, entrada=True, precio=1, fecha='2024-05-31'
        )


def test_stock_minimo(container, catalogo):
    inv = container.inventory_service
    inv.actualizar_stock_minimo(catalogo.harina.id, 5)
    assert [i.producto_base_id for i in inv.productos_bajo_minimo()] == [catalogo.harina.id]

    inv.registrar_entrada(catalogo.harina.id, 6, 1.0)
    assert inv.productos_bajo_minimo() == []
    assert inv.valor_total() == pytest.approx(6.0)
