# ==============================================================================
# REPOSITORIO DE CONFIGURACIÓN
# ==============================================================================
# Encapsula el acceso a configuracion.json.
# Guarda un único registro con ID fijo ('general').
# ==============================================================================

import os
from typing import Any, Dict, Optional

from .base import ListRepository


class ConfiguracionRepository(ListRepository):
    """
    Repositorio de la configuración del negocio.

    Formato de datos en configuracion.json:
    [
        {"id": "general", "comision_mandado_pct": 0.1, "moneda_principal": "CUP", ...}
    ]
    """

    FILENAME = 'configuracion.json'
    CONFIG_ID = 'general'

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, self.FILENAME), id_field='id')

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Carga la configuración.

        Returns:
            Diccionario de configuración o None si nunca se guardó
        """
        return self.get(self.CONFIG_ID)

    def save(self, config: Dict[str, Any]) -> None:
        """
        Guarda la configuración completa.

        Args:
            config: Diccionario de configuración
        """
        data = dict(config)
        data['id'] = self.CONFIG_ID
        self.put(data)
