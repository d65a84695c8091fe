# ==============================================================================
# SERVICIO DE OTROS GASTOS
# ==============================================================================
# Gastos que no pasan por el inventario: alquiler, servicios, impuestos...
# Suman a los gastos operativos del cierre y salen de caja en el flujo.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from app_costeo.exceptions import UnknownReference
from app_costeo.models import OtroGasto
from app_costeo.repositories import OTROS_GASTOS
from app_costeo.services.utils import (
    Reloj,
    ahora,
    exigir_mes_abierto,
    fecha_operacion,
    nuevo_id,
    positivo,
    requerido,
)


logger = logging.getLogger(__name__)


class ExpenseService:
    """Alta, edición, baja y consulta de otros gastos."""

    def __init__(self, store, reloj: Reloj = None):
        self.store = store
        self.reloj = reloj or ahora

    def obtener_gasto(self, gasto_id: str) -> OtroGasto:
        data = self.store.get(OTROS_GASTOS, gasto_id)
        if data is None:
            raise UnknownReference('Gasto', gasto_id)
        return OtroGasto.from_dict(data)

    def listar_gastos(
        self,
        desde: Optional[str] = None,
        hasta: Optional[str] = None,
        categoria: Optional[str] = None
    ) -> List[OtroGasto]:
        """
        Gastos filtrados por rango de fechas y categoría.

        Args:
            desde: Fecha inicial inclusiva (YYYY-MM-DD)
            hasta: Fecha final inclusiva (YYYY-MM-DD)
            categoria: Categoría exacta

        Returns:
            Gastos ordenados del más reciente al más antiguo
        """
        gastos = []
        for data in self.store.get_all(OTROS_GASTOS):
            gasto = OtroGasto.from_dict(data)
            dia = gasto.fecha[:10]
            if desde and dia < desde:
                continue
            if hasta and dia > hasta:
                continue
            if categoria and gasto.categoria != categoria:
                continue
            gastos.append(gasto)
        return sorted(gastos, key=lambda g: g.fecha, reverse=True)

    def registrar_gasto(
        self,
        descripcion: str,
        categoria: str,
        importe: Any,
        fecha: Any = None,
        notas: Optional[str] = None
    ) -> OtroGasto:
        """
        Registra un gasto.

        Raises:
            InvalidQuantity: importe <= 0
            FutureDatedTransaction: fecha posterior a ahora
            PeriodClosed: mes cerrado
        """
        gasto = OtroGasto(
            id=nuevo_id(),
            fecha=fecha_operacion(fecha, self.reloj),
            descripcion=requerido('descripcion', descripcion),
            categoria=requerido('categoria', categoria),
            importe=positivo('importe', importe),
            notas=notas,
        )
        exigir_mes_abierto(self.store, gasto.fecha)
        self.store.put(OTROS_GASTOS, gasto.to_dict())
        logger.info("Gasto registrado %s: %s %.2f (%s)", gasto.id, gasto.categoria, gasto.importe, gasto.fecha)
        return gasto

    def actualizar_gasto(self, gasto_id: str, datos: Dict[str, Any]) -> OtroGasto:
        """Modifica un gasto; el mes original y el nuevo deben estar abiertos."""
        gasto = self.obtener_gasto(gasto_id)
        exigir_mes_abierto(self.store, gasto.fecha)
        if 'fecha' in datos:
            gasto.fecha = fecha_operacion(datos['fecha'], self.reloj)
            exigir_mes_abierto(self.store, gasto.fecha)
        if 'descripcion' in datos:
            gasto.descripcion = requerido('descripcion', datos['descripcion'])
        if 'categoria' in datos:
            gasto.categoria = requerido('categoria', datos['categoria'])
        if 'importe' in datos:
            gasto.importe = positivo('importe', datos['importe'])
        if 'notas' in datos:
            gasto.notas = datos['notas']
        self.store.put(OTROS_GASTOS, gasto.to_dict())
        logger.info("Gasto %s actualizado", gasto_id)
        return gasto

    def eliminar_gasto(self, gasto_id: str) -> None:
        gasto = self.obtener_gasto(gasto_id)
        exigir_mes_abierto(self.store, gasto.fecha)
        self.store.delete(OTROS_GASTOS, gasto_id)
        logger.info("Gasto %s eliminado", gasto_id)
