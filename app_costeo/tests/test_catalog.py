import pytest

from app_costeo.exceptions import ConversionNotFound, PeriodClosed, UnknownReference, ValidationError
from app_costeo.repositories import CARTAS, CONVERSIONES, INVENTARIO, MENU_PRECIOS


def test_crear_producto_crea_registro_de_inventario(container, catalogo):
    item = container.inventory_service.get_item(catalogo.harina.id)
    assert item.unidad_medida_id == 'kg'
    assert item.stock_actual == 0

    azucar = container.catalog_service.crear_producto('Azucar', 'kg', stock_minimo=2)
    assert container.inventory_service.get_item(azucar.id).stock_minimo == 2


def test_nombres_y_referencias(container, catalogo):
    cat = container.catalog_service
    with pytest.raises(ValidationError):
        cat.crear_producto('harina', 'kg')
    with pytest.raises(UnknownReference):
        cat.crear_producto('Aceite', 'litro')
    with pytest.raises(ValidationError):
        cat.crear_plato('')
    with pytest.raises(ValidationError):
        cat.crear_servicio('restaurante')


def test_carta_requiere_conversion(container, catalogo):
    cat = container.catalog_service
    cat.crear_unidad('taza', 'taza')
    with pytest.raises(ConversionNotFound):
        cat.guardar_carta(catalogo.pan.id, [
            {'producto_base_id': catalogo.harina.id, 'cantidad': 2, 'unidad_medida_id': 'taza'},
        ])
    # la carta anterior sigue intacta
    carta = container.recipe_cost_service.carta_obligatoria(catalogo.pan.id)
    assert carta.ingredientes_receta[0].unidad_medida_id == 'g'


def test_guardar_carta_reemplaza(container, catalogo):
    cat = container.catalog_service
    anterior = container.recipe_cost_service.carta_obligatoria(catalogo.pan.id)
    nueva = cat.guardar_carta(
        catalogo.pan.id,
        [{'producto_base_id': catalogo.harina.id, 'cantidad': 0.5, 'unidad_medida_id': 'kg'}],
        salario=1.5, notas_preparacion='Hornear 20 min',
    )
    assert nueva.id == anterior.id
    assert nueva.gastos_indirectos == pytest.approx(1.5)
    assert len(container.store.get_all(CARTAS)) == 1

    cat.eliminar_carta(catalogo.pan.id)
    assert container.recipe_cost_service.obtener_carta(catalogo.pan.id) is None
    with pytest.raises(UnknownReference):
        cat.eliminar_carta(catalogo.pan.id)


def test_cambiar_unidad_de_producto(container, catalogo):
    cat = container.catalog_service
    azucar = cat.crear_producto('Azucar', 'kg')
    cat.actualizar_producto(azucar.id, {'um_predeterminada': 'g'})
    assert container.inventory_service.unidad_inventario(azucar.id) == 'g'

    container.inventory_service.registrar_entrada(catalogo.harina.id, 1, 2.0)
    with pytest.raises(ValidationError):
        cat.actualizar_producto(catalogo.harina.id, {'um_predeterminada': 'g'})
    assert container.inventory_service.unidad_inventario(catalogo.harina.id) == 'kg'


def test_eliminar_producto_en_cascada(container, catalogo):
    cat = container.catalog_service
    sal = cat.crear_producto('Sal', 'kg')
    cat.guardar_carta(catalogo.pan.id, [
        {'producto_base_id': catalogo.harina.id, 'cantidad': 1, 'unidad_medida_id': 'kg'},
        {'producto_base_id': sal.id, 'cantidad': 10, 'unidad_medida_id': 'g'},
    ])
    container.conversion_service.crear_conversion('kg', 'g', 1001, producto_base_id=catalogo.harina.id)
    container.purchase_service.registrar_compra(catalogo.harina.id, 10, 2.0, estado='EFECTIVO')
    container.purchase_service.registrar_compra(sal.id, 1, 1.0, estado='EFECTIVO')
    venta = container.sales_service.registrar_venta(catalogo.pan.id, catalogo.restaurante.id, 1)

    resumen = cat.eliminar_producto(catalogo.harina.id)
    assert resumen == {'cartas_modificadas': 1, 'transacciones': 1, 'conversiones': 1}

    carta = container.recipe_cost_service.carta_obligatoria(catalogo.pan.id)
    assert [i.producto_base_id for i in carta.ingredientes_receta] == [sal.id]
    assert container.store.get(INVENTARIO, catalogo.harina.id) is None
    assert len(container.store.get_all(CONVERSIONES)) == 1
    assert container.purchase_service.listar_compras()[0].producto_base_relacionado_id == sal.id
    # la venta registrada conserva su historia
    assert container.sales_service.obtener_venta(venta.id_transaccion).importe_total == pytest.approx(5.0)


def test_eliminar_producto_con_movimientos_cerrados(container, catalogo):
    container.purchase_service.registrar_compra(
        catalogo.harina.id, 10, 2.0, fecha='2024-05-02', estado='EFECTIVO'
    )
    container.closing_service.cerrar_mes('2024-05', saldo_inicial_manual=0)
    with pytest.raises(PeriodClosed):
        container.catalog_service.eliminar_producto(catalogo.harina.id)
    assert container.inventory_service.get_stock(catalogo.harina.id) == pytest.approx(10)


def test_eliminar_unidad(container, catalogo):
    cat = container.catalog_service
    with pytest.raises(ValidationError):
        cat.eliminar_unidad('kg')
    with pytest.raises(ValidationError):
        cat.eliminar_unidad('g')

    cat.crear_unidad('onza', 'oz')
    container.conversion_service.crear_conversion('oz', 'g', 28.35)
    assert cat.eliminar_unidad('oz') == 1
    assert [u.id for u in cat.listar_unidades()] == ['kg', 'g']


def test_eliminar_plato_con_carta_y_precios(container, catalogo):
    container.catalog_service.eliminar_plato(catalogo.pan.id)
    assert container.store.get_all(CARTAS) == []
    assert container.store.get(MENU_PRECIOS, catalogo.pan.id) is None
    assert container.catalog_service.listar_platos() == []


def test_precios_del_menu(container, catalogo):
    cat = container.catalog_service
    item = cat.guardar_precios(catalogo.pan.id, {'precio_mandado': 6, 'precio_bar': ''})
    assert item.precio_restaurante == 5.0
    assert item.precio_mandado == 6.0
    assert item.precio_bar is None
    with pytest.raises(ValidationError):
        cat.guardar_precios(catalogo.pan.id, {'precio_delivery': 3})
    with pytest.raises(ValidationError):
        cat.guardar_precios(catalogo.pan.id, {'precio_bar': -1})


def test_proveedores_y_servicios(container, catalogo):
    cat = container.catalog_service
    proveedor = cat.crear_proveedor('Molino')
    assert [p.nombre_proveedor for p in cat.listar_proveedores()] == ['Molino']
    cat.eliminar_proveedor(proveedor.id)
    assert cat.listar_proveedores() == []
    with pytest.raises(UnknownReference):
        cat.eliminar_servicio('no-existe')
