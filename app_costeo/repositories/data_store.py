# ==============================================================================
# ALMACÉN DE DATOS - Acceso clave/valor por tipo de entidad
# ==============================================================================
# Agrupa un repositorio por tipo de entidad y expone:
#   get_all(tipo), get(tipo, id), put(tipo, registro), delete(tipo, id)
#
# Las operaciones que tocan varios tipos (una venta escribe transacciones
# e inventario) se ejecutan dentro de unidad_de_trabajo(): un lock global,
# escrituras diferidas hasta el final y restauración completa si algo falla.
# ==============================================================================

import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from app_costeo.exceptions import StorageUnavailable, ValidationError
from .base import ListRepository
from .cierre_repository import CierreRepository
from .configuracion_repository import ConfiguracionRepository
from .transaccion_repository import TransaccionRepository


logger = logging.getLogger(__name__)


# Tipos de entidad
UNIDADES = 'unidades_medida'
PRODUCTOS = 'productos_base'
CONVERSIONES = 'conversiones_unidades'
INVENTARIO = 'inventario'
PLATOS = 'platos'
CARTAS = 'cartas_tecnologicas'
PROVEEDORES = 'proveedores'
SERVICIOS = 'restaurantes_servicios'
MENU_PRECIOS = 'menu_precios'
TRANSACCIONES = 'transacciones'
OTROS_GASTOS = 'otros_gastos'
CIERRES = 'cierres_mensuales'
CONFIGURACION = 'configuracion'

# Tipos genéricos: {tipo: campo_id}
_REPOS_GENERICOS = {
    UNIDADES: 'id',
    PRODUCTOS: 'id',
    CONVERSIONES: 'id',
    INVENTARIO: 'producto_base_id',
    PLATOS: 'id',
    CARTAS: 'id',
    PROVEEDORES: 'id',
    SERVICIOS: 'id',
    MENU_PRECIOS: 'plato_id',
    OTROS_GASTOS: 'id',
}

TIPOS_ENTIDAD = tuple(_REPOS_GENERICOS) + (TRANSACCIONES, CIERRES, CONFIGURACION)


class DataStore:
    """
    Almacén clave/valor sobre archivos JSON (uno por tipo de entidad).

    Uso:
        store = DataStore('/ruta/data')
        with store.unidad_de_trabajo():
            store.put(INVENTARIO, item)
            store.put(TRANSACCIONES, venta)
    """

    def __init__(self, base_path: str):
        """
        Inicializa el almacén.

        Args:
            base_path: Carpeta donde viven los archivos JSON
        """
        self.base_path = base_path
        os.makedirs(base_path, exist_ok=True)

        self._lock = threading.RLock()
        self._en_unidad = False

        self._repos: Dict[str, ListRepository] = {
            tipo: ListRepository(os.path.join(base_path, f'{tipo}.json'), id_field=campo)
            for tipo, campo in _REPOS_GENERICOS.items()
        }
        self._repos[TRANSACCIONES] = TransaccionRepository(base_path)
        self._repos[CIERRES] = CierreRepository(base_path)
        self._repos[CONFIGURACION] = ConfiguracionRepository(base_path)

    # =========================================================================
    # ACCESO POR TIPO
    # =========================================================================

    def repo(self, tipo: str) -> ListRepository:
        """Repositorio concreto de un tipo de entidad."""
        try:
            return self._repos[tipo]
        except KeyError:
            raise ValidationError(f"Tipo de entidad desconocido: {tipo}") from None

    @property
    def transacciones(self) -> TransaccionRepository:
        return self._repos[TRANSACCIONES]

    @property
    def cierres(self) -> CierreRepository:
        return self._repos[CIERRES]

    @property
    def configuracion(self) -> ConfiguracionRepository:
        return self._repos[CONFIGURACION]

    def get_all(self, tipo: str) -> List[Dict[str, Any]]:
        return self.repo(tipo).get_all()

    def get(self, tipo: str, record_id: Any) -> Optional[Dict[str, Any]]:
        return self.repo(tipo).get(record_id)

    def put(self, tipo: str, record: Dict[str, Any]) -> None:
        with self._lock:
            self.repo(tipo).put(record)

    def delete(self, tipo: str, record_id: Any) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self.repo(tipo).delete(record_id)

    def files(self) -> List[str]:
        """Rutas de todos los archivos de datos."""
        return [repo.file_path for repo in self._repos.values()]

    # =========================================================================
    # UNIDAD DE TRABAJO
    # =========================================================================

    @contextmanager
    def unidad_de_trabajo(self) -> Iterator['DataStore']:
        """
        Ejecuta un bloque de escrituras como todo-o-nada.

        Anidable: solo la unidad más externa escribe a disco o restaura.
        Si el bloque lanza una excepción, todos los tipos vuelven al
        estado previo y la excepción se propaga sin cambios.
        """
        with self._lock:
            if self._en_unidad:
                yield self
                return

            previo = {tipo: repo.snapshot() for tipo, repo in self._repos.items()}
            for repo in self._repos.values():
                repo.diferir()
            self._en_unidad = True
            escritos: List[str] = []
            try:
                yield self
                for tipo, repo in self._repos.items():
                    if repo.flush():
                        escritos.append(tipo)
            except Exception:
                logger.warning("Unidad de trabajo revertida")
                self._restaurar(previo, escritos)
                raise
            finally:
                self._en_unidad = False

    def _restaurar(self, previo: Dict[str, List[Dict[str, Any]]], escritos: List[str]) -> None:
        for tipo, repo in self._repos.items():
            try:
                repo.restaurar(previo[tipo], persistir=tipo in escritos)
            except StorageUnavailable:
                logger.exception("No se pudo restaurar %s tras un fallo", tipo)

    # =========================================================================
    # INSTANTÁNEA COMPLETA
    # =========================================================================

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Exporta todas las listas de entidades.

        Returns:
            Diccionario {tipo: [registros]}
        """
        with self._lock:
            return {tipo: repo.get_all() for tipo, repo in self._repos.items()}

    def reemplazar(self, data: Dict[str, List[Dict[str, Any]]]) -> None:
        """
        Reemplaza el contenido completo del almacén de forma atómica.

        Args:
            data: Diccionario {tipo: [registros]}; los tipos ausentes quedan vacíos
        """
        with self.unidad_de_trabajo():
            for tipo, repo in self._repos.items():
                repo.save_all(data.get(tipo, []))

    def reload(self) -> None:
        with self._lock:
            for repo in self._repos.values():
                repo.reload()
