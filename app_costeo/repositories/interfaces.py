# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
# Protocolos que describen lo que los servicios esperan de la persistencia.
# Permiten sustituir el almacén JSON por otro (o por un doble en tests)
# sin tocar la lógica de negocio.
# ==============================================================================

from typing import Any, ContextManager, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class IListRepository(Protocol):
    """Repositorio de registros identificados por un campo."""

    def get_all(self) -> List[Dict[str, Any]]:
        """Obtiene todos los registros."""
        ...

    def get(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """Obtiene un registro por ID."""
        ...

    def put(self, record: Dict[str, Any]) -> None:
        """Inserta o reemplaza un registro."""
        ...

    def delete(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """Elimina un registro."""
        ...

    def reload(self) -> None:
        """Recarga datos desde el almacenamiento."""
        ...


@runtime_checkable
class IDataStore(Protocol):
    """
    Almacén clave/valor por tipo de entidad.
    Usado por todos los servicios del motor.
    """

    def get_all(self, tipo: str) -> List[Dict[str, Any]]:
        ...

    def get(self, tipo: str, record_id: Any) -> Optional[Dict[str, Any]]:
        ...

    def put(self, tipo: str, record: Dict[str, Any]) -> None:
        ...

    def delete(self, tipo: str, record_id: Any) -> Optional[Dict[str, Any]]:
        ...

    def unidad_de_trabajo(self) -> ContextManager[Any]:
        """Bloque todo-o-nada de escrituras."""
        ...

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        ...

    def reemplazar(self, data: Dict[str, List[Dict[str, Any]]]) -> None:
        ...
