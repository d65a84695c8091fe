# ==============================================================================
# SERVICIO DE COSTO DE RECETAS (FICHA DE COSTO)
# ==============================================================================
# Costo de producción de un plato a partir de su carta tecnológica:
#   Σ (cantidad receta convertida a unidad de inventario × promedio ACTUAL)
#   + otros_gastos + combustible + salario (por tanda, sin dividir)
#
# Un ingrediente nunca comprado (promedio 0) aporta 0 y la ficha queda
# marcada como incompleta; no es un error.
# ==============================================================================

import logging
from typing import Dict, List, Optional

from app_costeo.exceptions import ConversionNotFound, UnknownReference, ValidationError
from app_costeo.models import (
    CartaTecnologica,
    FichaCostoPlato,
    LineaFichaCosto,
    Plato,
)
from app_costeo.performance_logger import profile_function
from app_costeo.repositories import CARTAS, PLATOS, PRODUCTOS, UNIDADES
from app_costeo.services.conversion_service import ConversionService
from app_costeo.services.inventory_service import InventoryService


logger = logging.getLogger(__name__)


class RecipeCostService:
    """
    Servicio de costeo de platos.

    Responsabilidades:
    - Ficha de costo por plato
    - Explosión de receta en consumo por ingrediente
    - Disponibilidad de platos según stock
    """

    def __init__(
        self,
        store,
        conversion_service: ConversionService,
        inventory_service: InventoryService
    ):
        self.store = store
        self.conversion_service = conversion_service
        self.inventory_service = inventory_service

    def _plato(self, plato_id: str) -> Plato:
        data = self.store.get(PLATOS, plato_id)
        if data is None:
            raise UnknownReference('Plato', plato_id)
        return Plato.from_dict(data)

    def obtener_carta(self, plato_id: str) -> Optional[CartaTecnologica]:
        """Carta tecnológica del plato o None."""
        for data in self.store.get_all(CARTAS):
            if data.get('plato_id') == plato_id:
                return CartaTecnologica.from_dict(data)
        return None

    def carta_obligatoria(self, plato_id: str) -> CartaTecnologica:
        carta = self.obtener_carta(plato_id)
        if carta is None:
            raise ValidationError(
                f"El plato {plato_id} no tiene carta tecnológica",
                {'plato_id': plato_id}
            )
        return carta

    def _nombre_unidad(self, unidad_id: str) -> str:
        data = self.store.get(UNIDADES, unidad_id) or {}
        return data.get('unidad_nombre', unidad_id)

    # =========================================================================
    # EXPLOSIÓN DE RECETA
    # =========================================================================

    def explotar_receta(self, plato_id: str, cantidad: float = 1.0) -> Dict[str, float]:
        """
        Consumo de ingredientes para `cantidad` unidades del plato.

        Las líneas repetidas de un mismo ingrediente se suman.

        Args:
            plato_id: ID del plato
            cantidad: Unidades a producir

        Returns:
            {producto_id: cantidad en unidad de inventario}

        Raises:
            UnknownReference: Plato o ingrediente inexistente
            ValidationError: Plato sin receta
            ConversionNotFound: Unidad de receta sin conversión
        """
        self._plato(plato_id)
        carta = self.carta_obligatoria(plato_id)
        consumo: Dict[str, float] = {}
        for linea in carta.ingredientes_receta:
            if self.store.get(PRODUCTOS, linea.producto_base_id) is None:
                raise UnknownReference('Producto base', linea.producto_base_id)
            unidad_inv = self.inventory_service.unidad_inventario(linea.producto_base_id)
            por_unidad = self.conversion_service.convertir(
                linea.cantidad, linea.unidad_medida_id, unidad_inv, linea.producto_base_id
            )
            consumo[linea.producto_base_id] = (
                consumo.get(linea.producto_base_id, 0.0) + por_unidad * cantidad
            )
        return consumo

    # =========================================================================
    # FICHA DE COSTO
    # =========================================================================

    @profile_function(name="Calcular ficha de costo")
    def calcular_ficha_costo(self, plato_id: str) -> FichaCostoPlato:
        """
        Calcula la ficha de costo de un plato con el promedio vigente.

        Args:
            plato_id: ID del plato

        Returns:
            FichaCostoPlato con detalle por ingrediente
        """
        plato = self._plato(plato_id)
        carta = self.carta_obligatoria(plato_id)
        ficha = FichaCostoPlato(
            plato_id=plato_id,
            nombre_plato=plato.nombre_plato,
            otros_gastos=carta.otros_gastos,
            combustible=carta.combustible,
            salario=carta.salario,
        )
        for linea in carta.ingredientes_receta:
            producto = self.store.get(PRODUCTOS, linea.producto_base_id)
            if producto is None:
                raise UnknownReference('Producto base', linea.producto_base_id)
            unidad_inv = self.inventory_service.unidad_inventario(linea.producto_base_id)
            cantidad_inv = self.conversion_service.convertir(
                linea.cantidad, linea.unidad_medida_id, unidad_inv, linea.producto_base_id
            )
            ficha.ingredientes.append(LineaFichaCosto(
                producto_base_id=linea.producto_base_id,
                nombre_producto=producto.get('nombre_producto', ''),
                cantidad_receta=linea.cantidad,
                unidad_receta=self._nombre_unidad(linea.unidad_medida_id),
                cantidad_inventario=cantidad_inv,
                unidad_inventario=self._nombre_unidad(unidad_inv),
                costo_unitario=self.inventory_service.get_promedio(linea.producto_base_id),
            ))
        if ficha.incompleta:
            logger.info("Ficha de costo incompleta para %s: hay ingredientes sin costo", plato.nombre_plato)
        return ficha

    def calcular_costo_plato(self, plato_id: str) -> float:
        """Costo total de producción unitario del plato."""
        return self.calcular_ficha_costo(plato_id).costo_total_produccion_unitario

    # =========================================================================
    # DISPONIBILIDAD
    # =========================================================================

    def disponibilidad_platos(self) -> List[Dict[str, object]]:
        """
        Porciones que se pueden preparar de cada plato con el stock actual.

        Los platos sin receta o con conversiones faltantes se informan
        con porciones None y el motivo.

        Returns:
            Lista de {plato_id, nombre_plato, porciones, limitante, motivo}
        """
        resultado = []
        for data in self.store.get_all(PLATOS):
            plato = Plato.from_dict(data)
            fila = {
                'plato_id': plato.id,
                'nombre_plato': plato.nombre_plato,
                'porciones': None,
                'limitante': None,
                'motivo': None,
            }
            try:
                consumo = self.explotar_receta(plato.id, 1.0)
            except (ValidationError, ConversionNotFound) as e:
                fila['motivo'] = e.message
                resultado.append(fila)
                continue

            porciones = None
            for producto_id, requerido in consumo.items():
                if requerido <= 0:
                    continue
                posibles = int(max(self.inventory_service.get_stock(producto_id), 0.0) // requerido)
                if porciones is None or posibles < porciones:
                    porciones = posibles
                    fila['limitante'] = producto_id
            fila['porciones'] = porciones if porciones is not None else 0
            resultado.append(fila)
        return resultado
