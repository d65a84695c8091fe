# ==============================================================================
# REPOSITORIO DE CIERRES MENSUALES
# ==============================================================================
# Encapsula el acceso a cierres_mensuales.json. El ID de cada cierre es
# su mes (YYYY-MM), por lo que el orden alfabético es el cronológico.
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from .base import ListRepository


class CierreRepository(ListRepository):
    """Repositorio de cierres mensuales."""

    FILENAME = 'cierres_mensuales.json'

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, self.FILENAME), id_field='id')

    def ordenados(self) -> List[Dict[str, Any]]:
        """Cierres en orden cronológico ascendente."""
        return sorted(self.get_all(), key=lambda c: c.get('mes') or c.get('id'))

    def ultimo(self) -> Optional[Dict[str, Any]]:
        """Cierre más reciente o None."""
        cierres = self.ordenados()
        return cierres[-1] if cierres else None

    def primero(self) -> Optional[Dict[str, Any]]:
        cierres = self.ordenados()
        return cierres[0] if cierres else None

    def anterior_a(self, mes: str) -> Optional[Dict[str, Any]]:
        """Último cierre con mes estrictamente anterior a `mes`."""
        previos = [c for c in self.ordenados() if c['id'] < mes]
        return previos[-1] if previos else None
