# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (archivos JSON).
#
# ESTRUCTURA:
# ├── interfaces.py               → Protocolos (contratos para otros almacenes)
# ├── base.py                     → BaseRepository, ListRepository
# ├── transaccion_repository.py   → transacciones.json
# ├── cierre_repository.py        → cierres_mensuales.json
# ├── configuracion_repository.py → configuracion.json
# └── data_store.py               → DataStore (un repo por tipo + unidad de trabajo)
# ==============================================================================

from .interfaces import IListRepository, IDataStore
from .base import BaseRepository, ListRepository
from .transaccion_repository import TransaccionRepository
from .cierre_repository import CierreRepository
from .configuracion_repository import ConfiguracionRepository
from .data_store import (
    DataStore,
    TIPOS_ENTIDAD,
    UNIDADES,
    PRODUCTOS,
    CONVERSIONES,
    INVENTARIO,
    PLATOS,
    CARTAS,
    PROVEEDORES,
    SERVICIOS,
    MENU_PRECIOS,
    TRANSACCIONES,
    OTROS_GASTOS,
    CIERRES,
    CONFIGURACION,
)

__all__ = [
    'IListRepository',
    'IDataStore',
    'BaseRepository',
    'ListRepository',
    'TransaccionRepository',
    'CierreRepository',
    'ConfiguracionRepository',
    'DataStore',
    'TIPOS_ENTIDAD',
    'UNIDADES',
    'PRODUCTOS',
    'CONVERSIONES',
    'INVENTARIO',
    'PLATOS',
    'CARTAS',
    'PROVEEDORES',
    'SERVICIOS',
    'MENU_PRECIOS',
    'TRANSACCIONES',
    'OTROS_GASTOS',
    'CIERRES',
    'CONFIGURACION',
]
