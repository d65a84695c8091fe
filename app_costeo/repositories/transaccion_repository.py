# ==============================================================================
# REPOSITORIO DE TRANSACCIONES
# ==============================================================================
# Encapsula el acceso a transacciones.json (ventas, compras y ajustes).
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from .base import ListRepository


class TransaccionRepository(ListRepository):
    """
    Repositorio del libro de transacciones.

    Formato de datos en transacciones.json:
    [
        {"id_transaccion": "...", "fecha": "2024-05-03T12:00:00",
         "tipo_transaccion": "Venta", "estado_pago": "EFECTIVO", ...},
        ...
    ]
    """

    FILENAME = 'transacciones.json'

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, self.FILENAME), id_field='id_transaccion')

    def por_tipo(self, tipo: str) -> List[Dict[str, Any]]:
        """Transacciones de un tipo ('Venta', 'Compra', ...)."""
        return self.find_all_by('tipo_transaccion', tipo)

    def en_rango(
        self,
        desde: Optional[str] = None,
        hasta: Optional[str] = None,
        campo: str = 'fecha'
    ) -> List[Dict[str, Any]]:
        """
        Transacciones cuya fecha (parte YYYY-MM-DD) cae en [desde, hasta].

        Args:
            desde: Fecha inicial inclusiva (YYYY-MM-DD) o None
            hasta: Fecha final inclusiva (YYYY-MM-DD) o None
            campo: Campo de fecha a comparar
        """
        resultado = []
        for record in self.get_all():
            dia = (record.get(campo) or '')[:10]
            if desde and dia < desde:
                continue
            if hasta and dia > hasta:
                continue
            resultado.append(record)
        return resultado

    def pendientes(self, tipo: str) -> List[Dict[str, Any]]:
        """Transacciones de un tipo con estado PENDIENTE."""
        return [r for r in self.por_tipo(tipo) if r.get('estado_pago') == 'PENDIENTE']
