# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Punto único para obtener el almacén y los servicios del motor. Facilita:
#   - Inyección de dependencias
#   - Testing (almacén en una carpeta temporal, reloj fijo)
#   - Cambiar el almacén JSON por otro sin tocar los servicios
#
# Los servicios dependen del contrato IDataStore (repositories/interfaces.py),
# no del almacén JSON concreto.
# ==============================================================================

import os
from typing import Optional

from app_costeo.repositories import DataStore
from app_costeo.services import (
    BackupService,
    CatalogService,
    ClosingService,
    ConfigService,
    ConversionService,
    ExpenseService,
    InventoryService,
    PurchaseService,
    RecipeCostService,
    SalesService,
    StatementsService,
)
from app_costeo.services.utils import Reloj


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Implementa el patrón Singleton para asegurar una única instancia
    del almacén y de cada servicio.

    Uso:
        container = AppContainer(base_path='/ruta/data')
        sales_service = container.sales_service
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, base_path: str = None, reloj: Reloj = None, max_backups: int = None):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, base_path: str = None, reloj: Reloj = None, max_backups: int = None):
        """
        Inicializa el contenedor.

        Args:
            base_path: Carpeta de los archivos JSON
            reloj: Función que devuelve la hora actual (None = reloj del sistema)
            max_backups: Backups ZIP a conservar
        """
        if self._initialized:
            return

        self._base_path = base_path or os.path.join(
            os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data'
        )
        self._reloj = reloj
        self._max_backups = max_backups
        self._clear()
        self._initialized = True

    def _clear(self) -> None:
        self._store: Optional[DataStore] = None
        self._conversion_service: Optional[ConversionService] = None
        self._inventory_service: Optional[InventoryService] = None
        self._recipe_cost_service: Optional[RecipeCostService] = None
        self._config_service: Optional[ConfigService] = None
        self._sales_service: Optional[SalesService] = None
        self._purchase_service: Optional[PurchaseService] = None
        self._expense_service: Optional[ExpenseService] = None
        self._closing_service: Optional[ClosingService] = None
        self._statements_service: Optional[StatementsService] = None
        self._catalog_service: Optional[CatalogService] = None
        self._backup_service: Optional[BackupService] = None

    @property
    def base_path(self) -> str:
        return self._base_path

    # =========================================================================
    # ALMACÉN
    # =========================================================================

    @property
    def store(self) -> DataStore:
        """Almacén de datos (singleton)."""
        if self._store is None:
            self._store = DataStore(self._base_path)
        return self._store

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def conversion_service(self) -> ConversionService:
        if self._conversion_service is None:
            self._conversion_service = ConversionService(self.store)
        return self._conversion_service

    @property
    def inventory_service(self) -> InventoryService:
        """Libro de inventario (singleton)."""
        if self._inventory_service is None:
            self._inventory_service = InventoryService(self.store, self._reloj)
        return self._inventory_service

    @property
    def recipe_cost_service(self) -> RecipeCostService:
        if self._recipe_cost_service is None:
            self._recipe_cost_service = RecipeCostService(
                self.store,
                self.conversion_service,
                self.inventory_service
            )
        return self._recipe_cost_service

    @property
    def config_service(self) -> ConfigService:
        if self._config_service is None:
            self._config_service = ConfigService(self.store)
        return self._config_service

    @property
    def sales_service(self) -> SalesService:
        """Servicio de ventas (singleton)."""
        if self._sales_service is None:
            self._sales_service = SalesService(
                self.store,
                self.inventory_service,
                self.recipe_cost_service,
                self.config_service,
                self._reloj
            )
        return self._sales_service

    @property
    def purchase_service(self) -> PurchaseService:
        """Servicio de compras (singleton)."""
        if self._purchase_service is None:
            self._purchase_service = PurchaseService(
                self.store,
                self.inventory_service,
                self.conversion_service,
                self.config_service,
                self._reloj
            )
        return self._purchase_service

    @property
    def expense_service(self) -> ExpenseService:
        if self._expense_service is None:
            self._expense_service = ExpenseService(self.store, self._reloj)
        return self._expense_service

    @property
    def closing_service(self) -> ClosingService:
        """Servicio de cierres mensuales (singleton)."""
        if self._closing_service is None:
            self._closing_service = ClosingService(self.store, self._reloj)
        return self._closing_service

    @property
    def statements_service(self) -> StatementsService:
        if self._statements_service is None:
            self._statements_service = StatementsService(self.store)
        return self._statements_service

    @property
    def catalog_service(self) -> CatalogService:
        if self._catalog_service is None:
            self._catalog_service = CatalogService(
                self.store,
                self.inventory_service,
                self.conversion_service
            )
        return self._catalog_service

    @property
    def backup_service(self) -> BackupService:
        if self._backup_service is None:
            self._backup_service = BackupService(
                self.store,
                max_backups=self._max_backups,
                reloj=self._reloj
            )
        return self._backup_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia todas las instancias.
        Útil para testing o para recargar datos desde disco.
        """
        self._clear()

    @classmethod
    def get_instance(cls, base_path: str = None, reloj: Reloj = None, max_backups: int = None) -> 'AppContainer':
        """
        Obtiene la instancia singleton del contenedor.

        Args:
            base_path: Carpeta de datos (solo se usa en la primera llamada)
        """
        if cls._instance is None:
            return cls(base_path, reloj, max_backups)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(base_path: str = None) -> AppContainer:
    """
    Obtiene el contenedor de dependencias global.

    Args:
        base_path: Carpeta de datos

    Returns:
        Instancia del contenedor
    """
    return AppContainer.get_instance(base_path)
