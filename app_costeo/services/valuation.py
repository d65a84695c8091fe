# ==============================================================================
# VALUACIÓN A COSTO PROMEDIO PONDERADO
# ==============================================================================
# Fórmula pura del promedio móvil y reconstrucción del inventario a una
# fecha a partir del libro de transacciones. La reconstrucción es la
# fuente de verdad de los reportes históricos (balance general).
# ==============================================================================

from typing import Any, Dict, Iterable, List, Optional, Tuple

from app_costeo.models import EstadoPago, InventarioItem, TipoTransaccion, Transaccion


def nuevo_promedio(
    stock_antes: float,
    promedio_antes: float,
    cantidad: float,
    precio: float
) -> float:
    """
    Promedio ponderado tras una entrada.

    Si el stock previo es cero o negativo se descarta el promedio viejo
    y el nuevo promedio es el precio de entrada.

    Args:
        stock_antes: entradas - salidas antes de la entrada
        promedio_antes: Promedio vigente
        cantidad: Cantidad que entra (unidad de inventario)
        precio: Precio unitario de entrada (unidad de inventario)

    Returns:
        Nuevo precio promedio ponderado
    """
    if stock_antes <= 0:
        return precio
    return (stock_antes * promedio_antes + cantidad * precio) / (stock_antes + cantidad)


def promedio_de_compras(compras: Iterable[Tuple[float, float]]) -> float:
    """Σ(q·p)/Σq para una serie de (cantidad, precio)."""
    total_q = 0.0
    total_valor = 0.0
    for cantidad, precio in compras:
        total_q += cantidad
        total_valor += cantidad * precio
    return total_valor / total_q if total_q else 0.0


# ==============================================================================
# RECONSTRUCCIÓN DEL LIBRO
# ==============================================================================

def _movimientos(transacciones: Iterable[Transaccion]) -> List[Tuple[str, int, str, str, float, float]]:
    """
    Convierte transacciones en movimientos de inventario fechados.

    Returns:
        Lista de (fecha, orden, producto_id, 'E'|'S', cantidad, precio)
    """
    movimientos = []
    for orden, t in enumerate(transacciones):
        if t.tipo_transaccion is TipoTransaccion.COMPRA:
            if t.estado_pago is EstadoPago.PENDIENTE or not t.producto_base_relacionado_id:
                continue
            cantidad = t.cantidad_convertida if t.cantidad_convertida is not None else t.cantidad
            precio = (t.precio_unitario_convertido
                      if t.precio_unitario_convertido is not None else t.precio_unitario)
            movimientos.append(
                (t.fecha_liquidacion, orden, t.producto_base_relacionado_id, 'E', cantidad, precio)
            )
        elif t.tipo_transaccion is TipoTransaccion.AJUSTE_ENTRADA:
            movimientos.append(
                (t.fecha, orden, t.producto_base_relacionado_id, 'E',
                 t.cantidad_convertida or t.cantidad, t.precio_unitario_convertido or t.precio_unitario)
            )
        elif t.tipo_transaccion is TipoTransaccion.AJUSTE_SALIDA:
            movimientos.append(
                (t.fecha, orden, t.producto_base_relacionado_id, 'S',
                 t.cantidad_convertida or t.cantidad, 0.0)
            )
        elif t.tipo_transaccion is TipoTransaccion.VENTA:
            for ing in t.ingredientes_descontados:
                movimientos.append((t.fecha, orden, ing.producto_base_id, 'S', ing.cantidad, 0.0))
    movimientos.sort(key=lambda m: (m[0], m[1]))
    return movimientos


def reconstruir_inventario(
    transacciones: Iterable[Transaccion],
    hasta: Optional[str] = None,
    unidades: Optional[Dict[str, str]] = None
) -> Dict[str, InventarioItem]:
    """
    Reproduce el libro en orden cronológico hasta una fecha.

    Args:
        transacciones: Todas las transacciones
        hasta: Fecha límite inclusiva (YYYY-MM-DD); None = todo
        unidades: {producto_id: unidad_inventario} para completar los registros

    Returns:
        {producto_id: InventarioItem} con entradas, salidas y promedio
    """
    unidades = unidades or {}
    items: Dict[str, InventarioItem] = {}
    for fecha, _, producto_id, sentido, cantidad, precio in _movimientos(transacciones):
        if hasta and fecha[:10] > hasta:
            break
        item = items.get(producto_id)
        if item is None:
            item = InventarioItem(producto_base_id=producto_id,
                                  unidad_medida_id=unidades.get(producto_id, ''))
            items[producto_id] = item
        if sentido == 'E':
            item.precio_promedio_ponderado = nuevo_promedio(
                item.stock_actual, item.precio_promedio_ponderado, cantidad, precio
            )
            item.entradas += cantidad
        else:
            item.salidas += cantidad
    return items


def valor_inventario(items: Dict[str, Any]) -> float:
    """Σ stock × promedio de un conjunto de registros de inventario."""
    return sum(item.stock_actual * item.precio_promedio_ponderado for item in items.values())
