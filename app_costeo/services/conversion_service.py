# ==============================================================================
# SERVICIO DE CONVERSIÓN DE UNIDADES
# ==============================================================================
# Resuelve cuántas unidades destino equivalen a una cantidad en unidad origen.
#
# ORDEN DE RESOLUCIÓN:
#   1. Regla específica del producto (directa o inversa)
#   2. Regla genérica para el par de unidades (directa o inversa)
#   3. Identidad si origen == destino
#   4. ConversionNotFound (nunca se asume 1:1 entre unidades distintas)
#
# Una regla "1 origen = factor destino" recorrida al revés divide por factor.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional, Tuple

from app_costeo.exceptions import ConversionNotFound, UnknownReference, ValidationError
from app_costeo.models import ConversionUnidad
from app_costeo.repositories import CONVERSIONES, PRODUCTOS, UNIDADES
from app_costeo.services.utils import nuevo_id, positivo


logger = logging.getLogger(__name__)


# Conversiones estándar: (nombres origen, nombres destino, factor)
CONVERSIONES_ESTANDAR = [
    (('kg',), ('g',), 1000.0),
    (('l', 'litro'), ('ml',), 1000.0),
    (('docena',), ('unidad', 'u'), 12.0),
]


class ConversionService:
    """
    Servicio para conversión de unidades de medida.

    Responsabilidades:
    - Resolver factores entre unidades (con o sin producto)
    - CRUD de reglas de conversión
    - Sembrar las conversiones estándar
    """

    def __init__(self, store):
        """
        Args:
            store: DataStore (o cualquier IDataStore)
        """
        self.store = store

    # =========================================================================
    # RESOLUCIÓN
    # =========================================================================

    def _reglas(self) -> List[ConversionUnidad]:
        return [ConversionUnidad.from_dict(r) for r in self.store.get_all(CONVERSIONES)]

    def _resolver(
        self,
        origen_id: str,
        destino_id: str,
        producto_id: Optional[str] = None
    ) -> Tuple[float, bool]:
        """
        Busca la regla aplicable.

        Returns:
            Tupla (factor, inversa). Si inversa es True la cantidad se divide.

        Raises:
            ConversionNotFound: Si no hay regla ni identidad
        """
        reglas = self._reglas()
        ambitos = [producto_id, None] if producto_id else [None]

        for ambito in ambitos:
            candidatas = [r for r in reglas if r.producto_base_id == ambito]
            for regla in candidatas:
                if regla.unidad_origen_id == origen_id and regla.unidad_destino_id == destino_id:
                    return regla.factor, False
            for regla in candidatas:
                if regla.unidad_origen_id == destino_id and regla.unidad_destino_id == origen_id:
                    return regla.factor, True

        if origen_id == destino_id:
            return 1.0, False

        raise ConversionNotFound(origen_id, destino_id, producto_id)

    def factor(self, origen_id: str, destino_id: str, producto_id: Optional[str] = None) -> float:
        """
        Factor multiplicativo de origen a destino.

        Args:
            origen_id: Unidad de partida
            destino_id: Unidad de llegada
            producto_id: Producto (habilita reglas específicas)

        Returns:
            Cantidad de destino equivalente a 1 de origen
        """
        factor, inversa = self._resolver(origen_id, destino_id, producto_id)
        return 1.0 / factor if inversa else factor

    def convertir(
        self,
        cantidad: float,
        origen_id: str,
        destino_id: str,
        producto_id: Optional[str] = None
    ) -> float:
        """
        Convierte una cantidad entre unidades.

        Args:
            cantidad: Cantidad en unidad origen
            origen_id: Unidad de partida
            destino_id: Unidad de llegada
            producto_id: Producto (habilita reglas específicas)

        Returns:
            Cantidad expresada en unidad destino

        Raises:
            ConversionNotFound: Si no existe regla aplicable
        """
        factor, inversa = self._resolver(origen_id, destino_id, producto_id)
        return cantidad / factor if inversa else cantidad * factor

    # =========================================================================
    # CRUD DE REGLAS
    # =========================================================================

    def listar_conversiones(self) -> List[ConversionUnidad]:
        return self._reglas()

    def obtener_conversion(self, conversion_id: str) -> ConversionUnidad:
        data = self.store.get(CONVERSIONES, conversion_id)
        if data is None:
            raise UnknownReference('Conversión', conversion_id)
        return ConversionUnidad.from_dict(data)

    def _validar_regla(
        self,
        origen_id: str,
        destino_id: str,
        factor: Any,
        producto_id: Optional[str],
        excluir_id: Optional[str] = None
    ) -> float:
        if self.store.get(UNIDADES, origen_id) is None:
            raise UnknownReference('Unidad de medida', origen_id)
        if self.store.get(UNIDADES, destino_id) is None:
            raise UnknownReference('Unidad de medida', destino_id)
        if producto_id and self.store.get(PRODUCTOS, producto_id) is None:
            raise UnknownReference('Producto base', producto_id)
        if origen_id == destino_id:
            raise ValidationError(
                "La unidad de origen y destino deben ser distintas",
                {'unidad_origen_id': origen_id}
            )
        valor = positivo('factor', factor)

        for regla in self._reglas():
            if regla.id == excluir_id:
                continue
            if (regla.unidad_origen_id == origen_id
                    and regla.unidad_destino_id == destino_id
                    and regla.producto_base_id == producto_id):
                raise ValidationError(
                    "Ya existe una conversión para ese par de unidades",
                    {'conversion_id': regla.id}
                )
        return valor

    def crear_conversion(
        self,
        unidad_origen_id: str,
        unidad_destino_id: str,
        factor: Any,
        producto_base_id: Optional[str] = None
    ) -> ConversionUnidad:
        """
        Crea una regla de conversión.

        Args:
            unidad_origen_id: Unidad de origen
            unidad_destino_id: Unidad de destino (distinta del origen)
            factor: 1 origen = factor destino (> 0)
            producto_base_id: Producto si la regla es específica

        Returns:
            Regla creada
        """
        producto_base_id = producto_base_id or None
        valor = self._validar_regla(unidad_origen_id, unidad_destino_id, factor, producto_base_id)
        regla = ConversionUnidad(
            id=nuevo_id(),
            unidad_origen_id=unidad_origen_id,
            unidad_destino_id=unidad_destino_id,
            factor=valor,
            producto_base_id=producto_base_id,
        )
        self.store.put(CONVERSIONES, regla.to_dict())
        logger.info(
            "Conversión creada %s -> %s x%s (producto=%s)",
            unidad_origen_id, unidad_destino_id, valor, producto_base_id
        )
        return regla

    def actualizar_conversion(self, conversion_id: str, datos: Dict[str, Any]) -> ConversionUnidad:
        """Actualiza unidades, factor o producto de una regla existente."""
        actual = self.obtener_conversion(conversion_id)
        origen = datos.get('unidad_origen_id', actual.unidad_origen_id)
        destino = datos.get('unidad_destino_id', actual.unidad_destino_id)
        producto = datos.get('producto_base_id', actual.producto_base_id) or None
        valor = self._validar_regla(
            origen, destino, datos.get('factor', actual.factor), producto, excluir_id=conversion_id
        )
        regla = ConversionUnidad(
            id=conversion_id,
            unidad_origen_id=origen,
            unidad_destino_id=destino,
            factor=valor,
            producto_base_id=producto,
        )
        self.store.put(CONVERSIONES, regla.to_dict())
        return regla

    def eliminar_conversion(self, conversion_id: str) -> None:
        if self.store.delete(CONVERSIONES, conversion_id) is None:
            raise UnknownReference('Conversión', conversion_id)
        logger.info("Conversión eliminada %s", conversion_id)

    # =========================================================================
    # CONVERSIONES ESTÁNDAR
    # =========================================================================

    def sembrar_conversiones_estandar(self) -> List[ConversionUnidad]:
        """
        Crea las conversiones genéricas kg→g, L→ml y docena→unidad
        cuando ambas unidades existen y aún no hay regla para el par
        (en ninguno de los dos sentidos).

        Returns:
            Reglas creadas
        """
        unidades = self.store.get_all(UNIDADES)

        def buscar(nombres):
            for u in unidades:
                if (u.get('unidad_nombre') or '').strip().lower() in nombres:
                    return u['id']
            return None

        existentes = {
            (r.unidad_origen_id, r.unidad_destino_id)
            for r in self._reglas() if r.producto_base_id is None
        }
        creadas = []
        for nombres_origen, nombres_destino, factor in CONVERSIONES_ESTANDAR:
            origen, destino = buscar(nombres_origen), buscar(nombres_destino)
            if not origen or not destino:
                continue
            if (origen, destino) in existentes or (destino, origen) in existentes:
                continue
            creadas.append(self.crear_conversion(origen, destino, factor))
        return creadas
