# ==============================================================================
# EXCEPCIONES DEL MOTOR DE COSTEO
# ==============================================================================
# Todas las operaciones validan sus precondiciones antes de la primera
# escritura y señalan el rechazo con una de estas excepciones.
# La capa HTTP (main.py) las traduce a respuestas JSON.
# ==============================================================================

from typing import Any, Dict, List, Optional


class CosteoError(Exception):
    """
    Error base del motor.

    Attributes:
        code: Código estable para clientes (ej. 'INSUFFICIENT_INVENTORY')
        message: Mensaje legible
        detalle: Datos estructurados opcionales
    """

    code = 'COSTEO_ERROR'
    http_status = 400

    def __init__(self, message: str, detalle: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detalle = detalle or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convierte el error a diccionario para respuestas JSON."""
        return {
            'ok': False,
            'error': self.message,
            'code': self.code,
            'detalle': self.detalle,
        }


# ==============================================================================
# VALIDACIÓN DE ENTRADA
# ==============================================================================

class ValidationError(CosteoError):
    """Entrada mal formada."""
    code = 'VALIDATION_ERROR'


class InvalidQuantity(ValidationError):
    """Cantidad o precio no positivo."""
    code = 'INVALID_QUANTITY'

    def __init__(self, campo: str, valor: Any):
        super().__init__(
            f"El campo '{campo}' debe ser mayor que cero (recibido: {valor})",
            {'campo': campo, 'valor': valor}
        )
        self.campo = campo
        self.valor = valor


class UnknownReference(ValidationError):
    """Referencia a una entidad inexistente."""
    code = 'UNKNOWN_REFERENCE'
    http_status = 404

    def __init__(self, tipo: str, ref_id: Any):
        super().__init__(
            f"{tipo} no encontrado: {ref_id}",
            {'tipo': tipo, 'id': ref_id}
        )
        self.tipo = tipo
        self.ref_id = ref_id


class FutureDatedTransaction(ValidationError):
    """Fecha posterior al momento actual."""
    code = 'FUTURE_DATED_TRANSACTION'

    def __init__(self, fecha: str, ahora: str):
        super().__init__(
            f"La fecha {fecha} es posterior a la fecha actual ({ahora})",
            {'fecha': fecha, 'ahora': ahora}
        )


class PeriodClosed(ValidationError):
    """Operación sobre un mes que ya tiene cierre."""
    code = 'PERIOD_CLOSED'
    http_status = 409

    def __init__(self, mes: str):
        super().__init__(
            f"El mes {mes} ya está cerrado; revierta el cierre para modificarlo",
            {'mes': mes}
        )
        self.mes = mes


# ==============================================================================
# INVENTARIO Y CONVERSIONES
# ==============================================================================

class InsufficientInventory(CosteoError):
    """
    Venta bloqueada por falta de existencias.

    Attributes:
        faltantes: Lista con un dict por ingrediente insuficiente
                   (producto_base_id, nombre, requerido, disponible, faltante, unidad)
    """
    code = 'INSUFFICIENT_INVENTORY'
    http_status = 409

    def __init__(self, faltantes: List[Dict[str, Any]]):
        nombres = ', '.join(
            f"{f.get('nombre') or f['producto_base_id']} (faltan {f['faltante']:g})"
            for f in faltantes
        )
        super().__init__(
            f"Inventario insuficiente: {nombres}",
            {'faltantes': faltantes}
        )
        self.faltantes = faltantes


class ConversionNotFound(CosteoError):
    """No existe regla para convertir entre dos unidades."""
    code = 'CONVERSION_NOT_FOUND'

    def __init__(self, origen_id: str, destino_id: str, producto_id: Optional[str] = None):
        texto = f"No hay conversión de '{origen_id}' a '{destino_id}'"
        if producto_id:
            texto += f" para el producto '{producto_id}'"
        super().__init__(texto, {
            'unidad_origen_id': origen_id,
            'unidad_destino_id': destino_id,
            'producto_base_id': producto_id,
        })


# ==============================================================================
# CIERRES MENSUALES
# ==============================================================================

class DuplicateClosing(CosteoError):
    """Ya existe un cierre para el mes."""
    code = 'DUPLICATE_CLOSING'
    http_status = 409

    def __init__(self, mes: str):
        super().__init__(f"Ya existe un cierre para el mes {mes}", {'mes': mes})


class ClosingNotReversible(CosteoError):
    """Solo el último cierre puede revertirse."""
    code = 'CLOSING_NOT_REVERSIBLE'
    http_status = 409

    def __init__(self, mes: str, ultimo: Optional[str]):
        super().__init__(
            f"Solo se puede revertir el último cierre ({ultimo}); solicitado: {mes}",
            {'mes': mes, 'ultimo': ultimo}
        )


# ==============================================================================
# PERSISTENCIA
# ==============================================================================

class StorageUnavailable(CosteoError):
    """Fallo de lectura/escritura en el almacenamiento."""
    code = 'STORAGE_UNAVAILABLE'
    http_status = 503
