# -*- coding: utf-8 -*-
"""
Exportación/importación del almacén y backups ZIP
"""
import os
import zipfile

import pytest

from app_costeo.exceptions import StorageUnavailable, ValidationError
from app_costeo.repositories import (
    DataStore,
    IDataStore,
    IListRepository,
    INVENTARIO,
    PRODUCTOS,
    TIPOS_ENTIDAD,
)


def test_exportar_e_importar(container, catalogo):
    container.purchase_service.registrar_compra(catalogo.harina.id, 10, 2.0, estado='EFECTIVO')
    container.sales_service.registrar_venta(catalogo.pan.id, catalogo.restaurante.id, 2)
    exportado = container.backup_service.exportar()
    assert exportado['fecha_exportacion'] == '2024-06-15T12:00:00'
    assert set(exportado['datos']) == set(TIPOS_ENTIDAD)

    # se modifica todo y se vuelve a la instantánea
    container.catalog_service.crear_producto('Sal', 'kg')
    container.sales_service.registrar_venta(catalogo.pan.id, catalogo.restaurante.id, 1)
    conteo = container.backup_service.importar(exportado)

    assert conteo[PRODUCTOS] == 1
    assert container.store.snapshot() == exportado['datos']
    assert container.inventory_service.get_stock(catalogo.harina.id) == pytest.approx(8)

    # también sobrevive a una recarga desde disco
    otro = DataStore(container.base_path)
    assert otro.snapshot() == exportado['datos']


def test_importar_estructura_invalida_no_modifica_nada(container, catalogo):
    antes = container.store.snapshot()
    with pytest.raises(ValidationError):
        container.backup_service.importar({'datos': {'clientes': []}})
    with pytest.raises(ValidationError):
        container.backup_service.importar({'datos': {PRODUCTOS: [{'nombre_producto': 'sin id'}]}})
    with pytest.raises(ValidationError):
        container.backup_service.importar({'datos': {INVENTARIO: {}}})
    assert container.store.snapshot() == antes


def test_importar_formato_plano(container, catalogo):
    datos = container.store.snapshot()
    datos[PRODUCTOS] = []
    conteo = container.backup_service.importar(datos)
    assert conteo[PRODUCTOS] == 0
    assert container.catalog_service.listar_productos() == []


def test_unidad_de_trabajo_restaura_todo(container, catalogo):
    store = container.store
    antes = store.snapshot()
    with pytest.raises(RuntimeError):
        with store.unidad_de_trabajo():
            container.inventory_service.registrar_entrada(catalogo.harina.id, 5, 1.0)
            store.delete(PRODUCTOS, catalogo.harina.id)
            raise RuntimeError("falla a mitad")
    assert store.snapshot() == antes
    assert DataStore(container.base_path).snapshot() == antes


def test_archivo_corrupto(container, catalogo):
    ruta = os.path.join(container.base_path, 'productos_base.json')
    with open(ruta, 'w', encoding='utf-8') as f:
        f.write('{no es json')
    with pytest.raises(StorageUnavailable):
        DataStore(container.base_path).get_all(PRODUCTOS)


def test_backup_zip_diario(container, catalogo):
    backups = container.backup_service
    resultado = backups.crear_backup()
    assert resultado['success']
    assert os.path.basename(resultado['backup_path']) == 'backup_2024-06-15.zip'
    with zipfile.ZipFile(resultado['backup_path']) as zf:
        assert 'productos_base.json' in zf.namelist()
        assert 'transacciones.json' in zf.namelist()

    repetido = backups.crear_backup()
    assert repetido['message'] == 'Backup del día ya existe'
    assert backups.get_backup_status()['today_exists']


def test_rotacion_de_backups(container):
    backups = container.backup_service
    backups.max_backups = 2
    for dia in ('2024-06-10', '2024-06-11', '2024-06-12'):
        with open(os.path.join(backups.backup_root, f'backup_{dia}.zip'), 'wb') as f:
            f.write(b'PK')
    with open(os.path.join(backups.backup_root, 'notas.txt'), 'w') as f:
        f.write('no es un backup')

    resultado = backups.run_daily_backup()
    assert resultado['backup']['success']
    assert resultado['rotation'] == {'deleted_count': 2, 'remaining_count': 2}
    nombres = [b['filename'] for b in backups.get_backup_status()['backups']]
    assert nombres == ['backup_2024-06-15.zip', 'backup_2024-06-12.zip']
    assert os.path.exists(os.path.join(backups.backup_root, 'notas.txt'))


def test_almacen_cumple_los_protocolos(store):
    assert isinstance(store, IDataStore)
    assert isinstance(store.transacciones, IListRepository)
    assert isinstance(store.cierres, IListRepository)
