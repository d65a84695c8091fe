# ==============================================================================
# APP COSTEO - Motor de costeo y contabilidad para restaurante
# ==============================================================================
# Inventario a costo promedio ponderado, fichas de costo por plato,
# registro de compras/ventas, cierres mensuales y estados financieros.
# ==============================================================================

__version__ = '1.0.0'
