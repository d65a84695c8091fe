# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común para acceso a archivos JSON
# ==============================================================================
# Cada tipo de entidad vive en su propio archivo <tipo>.json como lista de
# registros. El repositorio mantiene una copia en memoria y puede diferir
# las escrituras mientras dura una unidad de trabajo (ver data_store.py).
# ==============================================================================

import copy
import json
import logging
import os
from typing import Any, Dict, List, Optional
from abc import ABC, abstractmethod
import threading

from app_costeo.exceptions import StorageUnavailable


logger = logging.getLogger(__name__)


class BaseRepository(ABC):
    """
    Clase base abstracta para todos los repositorios.
    Proporciona lectura/escritura de archivos JSON con escritura atómica
    (archivo temporal + os.replace) y un lock global.
    """

    # Lock global para evitar escrituras concurrentes a archivos
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        """
        Inicializa el repositorio con la ruta al archivo JSON.

        Args:
            file_path: Ruta absoluta al archivo JSON de datos
        """
        self.file_path = file_path
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Crea el archivo con datos vacíos si no existe."""
        if not os.path.exists(self.file_path):
            self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """
        Retorna la estructura de datos vacía para este repositorio.

        Returns:
            Estructura vacía (dict, list, etc.) según el repositorio
        """
        pass

    def _read_raw(self) -> Any:
        """
        Lee los datos crudos del archivo JSON.

        Returns:
            Datos parseados del JSON

        Raises:
            StorageUnavailable: Si el archivo tiene JSON inválido o no se puede leer
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except FileNotFoundError:
                return self._empty_data()
            except (json.JSONDecodeError, OSError) as e:
                # Un archivo corrupto no se reemplaza en silencio por datos vacíos
                logger.error("No se pudo leer %s: %s", self.file_path, e)
                raise StorageUnavailable(
                    f"No se pudo leer {os.path.basename(self.file_path)}: {e}"
                ) from e

    def _write_raw(self, data: Any) -> None:
        """
        Escribe datos al archivo JSON.

        Args:
            data: Datos a serializar y escribir

        Raises:
            StorageUnavailable: Si hay error de escritura
        """
        with self._file_lock:
            # Escribir a archivo temporal primero para atomicidad
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except (OSError, TypeError, ValueError) as e:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                logger.error("No se pudo escribir %s: %s", self.file_path, e)
                raise StorageUnavailable(
                    f"No se pudo escribir {os.path.basename(self.file_path)}: {e}"
                ) from e

    def reload(self) -> None:
        """Recarga los datos desde el archivo."""
        pass


class ListRepository(BaseRepository):
    """
    Repositorio para registros almacenados como lista, identificados
    por un campo (id_field).

    Ejemplo: transacciones.json -> [{"id_transaccion": "...", ...}, ...]

    En modo diferido (unidad de trabajo) las modificaciones quedan en
    memoria hasta flush(); restaurar() descarta los cambios.
    """

    def __init__(self, file_path: str, id_field: str = 'id'):
        self.id_field = id_field
        self._cache: Optional[List[Dict[str, Any]]] = None
        self._diferido = False
        self._dirty = False
        super().__init__(file_path)

    def _empty_data(self) -> List:
        """Retorna lista vacía."""
        return []

    def _records(self) -> List[Dict[str, Any]]:
        if self._cache is None:
            data = self._read_raw()
            self._cache = data if isinstance(data, list) else []
        return self._cache

    def _persist(self) -> None:
        if self._diferido:
            self._dirty = True
            return
        self._write_raw(self._records())

    def reload(self) -> None:
        """Descarta la caché y vuelve a leer el archivo en el próximo acceso."""
        with self._file_lock:
            self._cache = None
            self._dirty = False

    # =========================================================================
    # LECTURA
    # =========================================================================

    def get_all(self) -> List[Dict[str, Any]]:
        """
        Obtiene todos los registros.

        Returns:
            Lista con copias de todos los registros
        """
        with self._file_lock:
            return copy.deepcopy(self._records())

    def get(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """
        Obtiene un registro por su ID.

        Args:
            record_id: Valor del campo id_field

        Returns:
            Copia del registro o None si no existe
        """
        with self._file_lock:
            for record in self._records():
                if record.get(self.id_field) == record_id:
                    return copy.deepcopy(record)
        return None

    def find_all_by(self, field: str, value: Any) -> List[Dict[str, Any]]:
        """
        Busca todos los registros que coinciden con un campo.

        Args:
            field: Nombre del campo
            value: Valor a buscar

        Returns:
            Lista de registros que coinciden
        """
        with self._file_lock:
            return [copy.deepcopy(r) for r in self._records() if r.get(field) == value]

    # =========================================================================
    # ESCRITURA
    # =========================================================================

    def put(self, record: Dict[str, Any]) -> None:
        """
        Inserta o reemplaza un registro (según id_field).

        Args:
            record: Datos completos del registro
        """
        record_id = record.get(self.id_field)
        if record_id in (None, ''):
            raise ValueError(f"El registro no tiene '{self.id_field}'")
        with self._file_lock:
            records = self._records()
            for index, existing in enumerate(records):
                if existing.get(self.id_field) == record_id:
                    records[index] = copy.deepcopy(record)
                    break
            else:
                records.append(copy.deepcopy(record))
            self._persist()

    def delete(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """
        Elimina un registro.

        Args:
            record_id: ID del registro a eliminar

        Returns:
            Datos del registro eliminado o None si no existía
        """
        with self._file_lock:
            records = self._records()
            for index, existing in enumerate(records):
                if existing.get(self.id_field) == record_id:
                    removed = records.pop(index)
                    self._persist()
                    return removed
        return None

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        """
        Guarda todos los registros (reemplazo completo).

        Args:
            data: Lista completa de datos
        """
        with self._file_lock:
            self._cache = copy.deepcopy(list(data))
            self._persist()

    # =========================================================================
    # UNIDAD DE TRABAJO
    # =========================================================================

    def snapshot(self) -> List[Dict[str, Any]]:
        """Copia profunda del estado actual en memoria."""
        return self.get_all()

    def diferir(self) -> None:
        """Entra en modo diferido: las escrituras quedan en memoria."""
        self._records()
        self._diferido = True
        self._dirty = False

    def flush(self) -> bool:
        """
        Escribe a disco si hubo cambios durante el modo diferido.

        Returns:
            True si se escribió el archivo
        """
        with self._file_lock:
            escrito = False
            if self._dirty:
                self._write_raw(self._records())
                escrito = True
            self._dirty = False
            self._diferido = False
            return escrito

    def restaurar(self, data: List[Dict[str, Any]], persistir: bool = False) -> None:
        """
        Restaura el estado en memoria a una copia previa.

        Args:
            data: Registros a restaurar
            persistir: Si True, también reescribe el archivo
        """
        with self._file_lock:
            self._cache = copy.deepcopy(data)
            self._dirty = False
            self._diferido = False
            if persistir:
                self._write_raw(self._cache)
