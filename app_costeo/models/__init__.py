# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Entidades del dominio (dataclasses) independientes de la persistencia.
# ==============================================================================

from .entities import (
    # Enumeraciones
    TipoTransaccion,
    EstadoPago,
    CategoriaGasto,
    METODOS_LIQUIDACION,

    # Datos maestros
    UnidadMedida,
    ProductoBase,
    ConversionUnidad,
    Plato,
    Proveedor,
    RestauranteServicio,

    # Recetas y precios
    IngredienteReceta,
    CartaTecnologica,
    MenuPrecioItem,
    CAMPOS_PRECIO,

    # Inventario
    InventarioItem,
    Faltante,

    # Transacciones
    IngredienteDescontado,
    Transaccion,
    OtroGasto,

    # Cierres y reportes
    GastoPorCategoria,
    CierreMensual,
    LineaFichaCosto,
    FichaCostoPlato,
    BalanceGeneral,

    # Configuración
    Configuracion,
)

__all__ = [
    'TipoTransaccion',
    'EstadoPago',
    'CategoriaGasto',
    'METODOS_LIQUIDACION',
    'UnidadMedida',
    'ProductoBase',
    'ConversionUnidad',
    'Plato',
    'Proveedor',
    'RestauranteServicio',
    'IngredienteReceta',
    'CartaTecnologica',
    'MenuPrecioItem',
    'CAMPOS_PRECIO',
    'InventarioItem',
    'Faltante',
    'IngredienteDescontado',
    'Transaccion',
    'OtroGasto',
    'GastoPorCategoria',
    'CierreMensual',
    'LineaFichaCosto',
    'FichaCostoPlato',
    'BalanceGeneral',
    'Configuracion',
]
