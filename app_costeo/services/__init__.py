# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de costeo y contabilidad.
#
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones sobre el DataStore
# 2. Validan todas las precondiciones antes de la primera escritura
# 3. Las operaciones de varios pasos corren en store.unidad_de_trabajo()
# 4. Las rutas (controllers) solo llaman a servicios
#
# ESTRUCTURA:
# ├── utils.py               → Fechas, meses, IDs, validación numérica
# ├── valuation.py           → Promedio ponderado y reconstrucción del libro
# ├── conversion_service.py  → Conversión de unidades
# ├── inventory_service.py   → Libro de inventario (único que lo escribe)
# ├── recipe_cost_service.py → Ficha de costo y explosión de recetas
# ├── sales_service.py       → Ventas y cobros
# ├── purchase_service.py    → Compras y pagos
# ├── expense_service.py     → Otros gastos
# ├── closing_service.py     → Cierres mensuales
# ├── statements_service.py  → Estado de cuenta, flujo, balance, rendimiento
# ├── catalog_service.py     → Datos maestros y bajas en cascada
# ├── config_service.py      → Configuración del negocio
# └── backup_service.py      → Exportar/importar y backups ZIP
# ==============================================================================

from app_costeo.services.conversion_service import ConversionService
from app_costeo.services.inventory_service import InventoryService
from app_costeo.services.recipe_cost_service import RecipeCostService
from app_costeo.services.config_service import ConfigService
from app_costeo.services.sales_service import SalesService
from app_costeo.services.purchase_service import PurchaseService
from app_costeo.services.expense_service import ExpenseService
from app_costeo.services.closing_service import ClosingService, resultado_periodo
from app_costeo.services.statements_service import StatementsService
from app_costeo.services.catalog_service import CatalogService
from app_costeo.services.backup_service import BackupService, run_startup_backup

__all__ = [
    'ConversionService',
    'InventoryService',
    'RecipeCostService',
    'ConfigService',
    'SalesService',
    'PurchaseService',
    'ExpenseService',
    'ClosingService',
    'resultado_periodo',
    'StatementsService',
    'CatalogService',
    'BackupService',
    'run_startup_backup',
]
