# ==============================================================================
# SERVICIO DE CONFIGURACIÓN DEL NEGOCIO
# ==============================================================================
# Moneda, comisiones por canal, estado de pago por defecto y datos del
# restaurante. El motor solo la lee; se modifica desde la capa HTTP.
# ==============================================================================

import logging
from typing import Any, Dict

from app_costeo.exceptions import ValidationError
from app_costeo.models import Configuracion, EstadoPago


logger = logging.getLogger(__name__)


class ConfigService:
    """Lectura y guardado de la configuración."""

    def __init__(self, store):
        self.store = store

    def obtener(self) -> Configuracion:
        """
        Obtiene la configuración vigente.

        Returns:
            Configuración guardada o la configuración por defecto
        """
        data = self.store.configuracion.load()
        return Configuracion.from_dict(data) if data else Configuracion()

    def guardar(self, datos: Dict[str, Any]) -> Configuracion:
        """
        Actualiza campos de la configuración.

        Args:
            datos: Campos a modificar (los ausentes se conservan)

        Returns:
            Configuración resultante

        Raises:
            ValidationError: Porcentajes fuera de [0, 1] o estado inválido
        """
        actual = self.obtener().to_dict()
        actual.update({k: v for k, v in datos.items() if k != 'id'})

        for campo in ('comision_catauro_pct', 'comision_mandado_pct'):
            try:
                valor = float(actual[campo])
            except (TypeError, ValueError):
                raise ValidationError(f"'{campo}' debe ser numérico", {'campo': campo}) from None
            if not 0 <= valor <= 1:
                raise ValidationError(
                    f"'{campo}' debe estar entre 0 y 1 (recibido: {valor})",
                    {'campo': campo, 'valor': valor}
                )
        try:
            EstadoPago(actual['default_estado_pago'])
        except ValueError:
            raise ValidationError(
                f"Estado de pago inválido: {actual['default_estado_pago']}",
                {'campo': 'default_estado_pago'}
            ) from None

        config = Configuracion.from_dict(actual)
        self.store.configuracion.save(config.to_dict())
        logger.info("Configuración actualizada: %s", ', '.join(sorted(datos)))
        return config
