# -*- coding: utf-8 -*-
"""
Fixtures compartidos: contenedor con datos en carpeta temporal,
reloj fijo y un catálogo mínimo (harina en kg, receta en g).
"""
from datetime import datetime
from types import SimpleNamespace

import pytest

from app_costeo.app_container import AppContainer
from app_costeo.config import Settings
from app_costeo.main import create_app
from app_costeo.models import EstadoPago, TipoTransaccion, Transaccion
from app_costeo.repositories import TRANSACCIONES
from app_costeo.services.utils import nuevo_id


AHORA = datetime(2024, 6, 15, 12, 0, 0)


def reloj_fijo():
    return AHORA


@pytest.fixture
def container(tmp_path):
    AppContainer.reset_instance()
    c = AppContainer(str(tmp_path / 'data'), reloj=reloj_fijo)
    yield c
    AppContainer.reset_instance()


@pytest.fixture
def store(container):
    return container.store


@pytest.fixture
def catalogo(container):
    """
    Unidades kg y g (1 kg = 1000 g), producto Harina (inventario en kg),
    canal Restaurante y plato Pan cuya receta usa 1000 g de harina.
    """
    cat = container.catalog_service
    cat.crear_unidad('kg', 'kg')
    cat.crear_unidad('g', 'g')
    container.conversion_service.crear_conversion('kg', 'g', 1000)
    harina = cat.crear_producto('Harina', 'kg')
    restaurante = cat.crear_servicio('Restaurante')
    pan = cat.crear_plato('Pan')
    cat.guardar_carta(pan.id, [
        {'producto_base_id': harina.id, 'cantidad': 1000, 'unidad_medida_id': 'g'},
    ])
    cat.guardar_precios(pan.id, {'precio_restaurante': 5.0})
    return SimpleNamespace(harina=harina, restaurante=restaurante, pan=pan)


@pytest.fixture
def client(container, tmp_path):
    settings = Settings(
        data_dir=container.base_path,
        log_dir=str(tmp_path / 'logs'),
        testing=True,
        startup_backup=False,
        enable_profiling=False,
    )
    app = create_app(settings, container)
    with app.test_client() as c:
        yield c


def agregar_transaccion(store, tipo, fecha, importe=0.0, costo=0.0, estado=EstadoPago.EFECTIVO, **extra):
    """Inserta una transacción directamente en el libro (sin tocar inventario)."""
    transaccion = Transaccion(
        id_transaccion=nuevo_id(),
        fecha=fecha,
        tipo_transaccion=tipo,
        estado_pago=estado,
        cantidad=1,
        precio_unitario=importe,
        importe_total=importe,
        costo_total_transaccion=costo,
        utilidad_transaccion=importe - costo if tipo is TipoTransaccion.VENTA else 0.0,
        **extra
    )
    store.put(TRANSACCIONES, transaccion.to_dict())
    return transaccion


@pytest.fixture
def nueva_transaccion(store):
    def _crear(tipo, fecha, importe=0.0, costo=0.0, estado=EstadoPago.EFECTIVO, **extra):
        return agregar_transaccion(store, tipo, fecha, importe, costo, estado, **extra)
    return _crear
