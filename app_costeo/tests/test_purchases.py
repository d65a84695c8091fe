import pytest

from app_costeo.exceptions import (
    ConversionNotFound,
    InvalidQuantity,
    PeriodClosed,
    StorageUnavailable,
    UnknownReference,
    ValidationError,
)
from app_costeo.models import EstadoPago


def test_compra_en_otra_unidad_se_convierte(container, catalogo):
    compra = container.purchase_service.registrar_compra(
        catalogo.harina.id, 2000, 0.003, unidad_compra_id='g', estado='EFECTIVO'
    )
    assert compra.importe_total == pytest.approx(6.0)
    assert compra.cantidad_convertida == pytest.approx(2.0)
    assert compra.precio_unitario_convertido == pytest.approx(3.0)
    assert compra.unidad_medida_inventario_id == 'kg'
    assert container.inventory_service.get_stock(catalogo.harina.id) == pytest.approx(2.0)
    assert container.inventory_service.get_promedio(catalogo.harina.id) == pytest.approx(3.0)


def test_compra_rechazos(container, catalogo):
    compras = container.purchase_service
    container.catalog_service.crear_unidad('saco', 'saco')
    with pytest.raises(InvalidQuantity):
        compras.registrar_compra(catalogo.harina.id, -1, 2.0)
    with pytest.raises(InvalidQuantity):
        compras.registrar_compra(catalogo.harina.id, 1, 0)
    with pytest.raises(UnknownReference):
        compras.registrar_compra('nada', 1, 2.0)
    with pytest.raises(UnknownReference):
        compras.registrar_compra(catalogo.harina.id, 1, 2.0, proveedor_id='nadie')
    with pytest.raises(ConversionNotFound):
        compras.registrar_compra(catalogo.harina.id, 1, 2.0, unidad_compra_id='saco')
    with pytest.raises(ValidationError):
        compras.registrar_compra(catalogo.harina.id, 1, 2.0, estado='PROMOCION')
    assert compras.listar_compras() == []
    assert container.inventory_service.get_stock(catalogo.harina.id) == 0


def test_compra_pendiente_entra_al_pagar(container, catalogo):
    compras = container.purchase_service
    proveedor = container.catalog_service.crear_proveedor('Molino')
    compra = compras.registrar_compra(
        catalogo.harina.id, 10, 2.0, proveedor_id=proveedor.id,
        fecha='2024-06-01', estado='PENDIENTE', referencia_factura_proveedor='F-001'
    )
    assert compra.servicio_proveedor_nombre == 'Molino'
    assert container.inventory_service.get_stock(catalogo.harina.id) == 0
    assert [c.id_transaccion for c in compras.cuentas_por_pagar()] == [compra.id_transaccion]

    pagada = compras.pagar_compra(compra.id_transaccion, 'ZELLE', '2024-06-05')
    assert pagada.estado_pago is EstadoPago.ZELLE
    assert pagada.fecha_pago == '2024-06-05T00:00:00'
    assert container.inventory_service.get_stock(catalogo.harina.id) == pytest.approx(10)
    assert compras.cuentas_por_pagar() == []

    compras.deshacer_pago_compra(compra.id_transaccion)
    assert container.inventory_service.get_stock(catalogo.harina.id) == 0
    assert compras.obtener_compra(compra.id_transaccion).es_pendiente


def test_pago_anterior_a_la_compra(container, catalogo):
    compra = container.purchase_service.registrar_compra(
        catalogo.harina.id, 1, 2.0, fecha='2024-06-10', estado='PENDIENTE'
    )
    with pytest.raises(ValidationError):
        container.purchase_service.pagar_compra(compra.id_transaccion, 'EFECTIVO', '2024-06-01')
    assert container.inventory_service.get_stock(catalogo.harina.id) == 0


def test_editar_compra_liquidada(container, catalogo):
    compras = container.purchase_service
    compra = compras.registrar_compra(catalogo.harina.id, 10, 2.0, estado='EFECTIVO')
    compras.editar_compra(compra.id_transaccion, {'cantidad': 4, 'notas': 'corregida'})

    editada = compras.obtener_compra(compra.id_transaccion)
    assert editada.cantidad == 4
    assert editada.importe_total == pytest.approx(8.0)
    assert editada.notas == 'corregida'
    assert container.inventory_service.get_stock(catalogo.harina.id) == pytest.approx(4)


def test_editar_compra_es_todo_o_nada(container, catalogo, monkeypatch):
    compras = container.purchase_service
    compra = compras.registrar_compra(catalogo.harina.id, 10, 2.0, estado='EFECTIVO')

    def falla(*args, **kwargs):
        raise StorageUnavailable("disco lleno")

    monkeypatch.setattr(container.inventory_service, 'registrar_entrada', falla)
    with pytest.raises(StorageUnavailable):
        compras.editar_compra(compra.id_transaccion, {'cantidad': 4})
    monkeypatch.undo()

    # la reversión de la entrada original tampoco quedó aplicada
    assert container.inventory_service.get_stock(catalogo.harina.id) == pytest.approx(10)
    assert compras.obtener_compra(compra.id_transaccion).cantidad == 10


def test_eliminar_compra(container, catalogo):
    compras = container.purchase_service
    compra = compras.registrar_compra(catalogo.harina.id, 10, 2.0, estado='EFECTIVO')
    pendiente = compras.registrar_compra(catalogo.harina.id, 5, 2.0, estado='PENDIENTE')

    compras.eliminar_compra(pendiente.id_transaccion)
    assert container.inventory_service.get_stock(catalogo.harina.id) == pytest.approx(10)
    compras.eliminar_compra(compra.id_transaccion)
    assert container.inventory_service.get_stock(catalogo.harina.id) == 0
    assert compras.listar_compras() == []


def test_compra_en_mes_cerrado(container, catalogo):
    compras = container.purchase_service
    compra = compras.registrar_compra(
        catalogo.harina.id, 10, 2.0, fecha='2024-05-03', estado='PENDIENTE'
    )
    container.closing_service.cerrar_mes('2024-05', saldo_inicial_manual=0)

    with pytest.raises(PeriodClosed):
        compras.registrar_compra(catalogo.harina.id, 1, 2.0, fecha='2024-05-30')
    with pytest.raises(PeriodClosed):
        compras.editar_compra(compra.id_transaccion, {'cantidad': 3})
    with pytest.raises(PeriodClosed):
        compras.eliminar_compra(compra.id_transaccion)
    # mover una compra abierta hacia un mes cerrado tampoco se permite
    abierta = compras.registrar_compra(catalogo.harina.id, 1, 2.0, estado='EFECTIVO')
    with pytest.raises(PeriodClosed):
        compras.editar_compra(abierta.id_transaccion, {'fecha': '2024-05-15'})

    compras.pagar_compra(compra.id_transaccion, 'EFECTIVO')
    with pytest.raises(PeriodClosed):
        compras.deshacer_pago_compra(compra.id_transaccion)
