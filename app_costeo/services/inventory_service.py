# ==============================================================================
# SERVICIO DE INVENTARIO - Libro de valuación a costo promedio ponderado
# ==============================================================================
# Dueño exclusivo de los registros de inventario (uno por producto base).
# Las únicas escrituras de entradas, salidas y precio promedio pasan por
# las funciones de asiento de esta clase:
#   registrar_entrada / registrar_salida / revertir_entrada / revertir_salida
#
# Una entrada recalcula el promedio; una salida nunca lo cambia.
# Revertir una entrada resta la cantidad pero NO "desmezcla" el promedio.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from app_costeo.exceptions import InsufficientInventory, UnknownReference, ValidationError
from app_costeo.models import (
    EstadoPago,
    Faltante,
    InventarioItem,
    ProductoBase,
    TipoTransaccion,
    Transaccion,
)
from app_costeo.performance_logger import profile_function
from app_costeo.repositories import INVENTARIO, PRODUCTOS, TRANSACCIONES, UNIDADES
from app_costeo.services.utils import (
    Reloj,
    ahora,
    exigir_mes_abierto,
    fecha_operacion,
    no_negativo,
    nuevo_id,
    positivo,
)
from app_costeo.services.valuation import nuevo_promedio


logger = logging.getLogger(__name__)


class InventoryService:
    """
    Servicio para gestión del inventario valorizado.

    Responsabilidades:
    - Asientos de entrada y salida (promedio ponderado)
    - Reversiones exactas
    - Verificación de suficiencia de stock
    - Ajustes manuales y stock mínimo
    """

    def __init__(self, store, reloj: Reloj = None):
        """
        Inicializa el servicio de inventario.

        Args:
            store: DataStore
            reloj: Función que devuelve la hora actual (inyectable en tests)
        """
        self.store = store
        self.reloj = reloj or ahora

    # =========================================================================
    # LECTURA
    # =========================================================================

    def get_item(self, producto_id: str) -> Optional[InventarioItem]:
        """
        Obtiene el registro de inventario de un producto.

        Args:
            producto_id: ID del producto base

        Returns:
            InventarioItem o None si el producto nunca tuvo movimiento
        """
        data = self.store.get(INVENTARIO, producto_id)
        return InventarioItem.from_dict(data) if data else None

    def get_stock(self, producto_id: str) -> float:
        item = self.get_item(producto_id)
        return item.stock_actual if item else 0.0

    def get_promedio(self, producto_id: str) -> float:
        """Precio promedio ponderado vigente (0 si nunca se compró)."""
        item = self.get_item(producto_id)
        return item.precio_promedio_ponderado if item else 0.0

    def listar(self) -> List[InventarioItem]:
        return [InventarioItem.from_dict(d) for d in self.store.get_all(INVENTARIO)]

    def productos_bajo_minimo(self) -> List[InventarioItem]:
        """Registros cuyo stock actual es menor que el stock mínimo."""
        return [item for item in self.listar() if item.bajo_minimo]

    def valor_total(self) -> float:
        """Valor del inventario: Σ stock × promedio."""
        return sum(item.valor for item in self.listar())

    def _producto(self, producto_id: str) -> ProductoBase:
        data = self.store.get(PRODUCTOS, producto_id)
        if data is None:
            raise UnknownReference('Producto base', producto_id)
        return ProductoBase.from_dict(data)

    def _item_o_nuevo(self, producto_id: str) -> InventarioItem:
        item = self.get_item(producto_id)
        if item is None:
            producto = self._producto(producto_id)
            item = InventarioItem(
                producto_base_id=producto_id,
                unidad_medida_id=producto.um_predeterminada,
            )
        return item

    def unidad_inventario(self, producto_id: str) -> str:
        """Unidad en la que se lleva el stock del producto."""
        item = self.get_item(producto_id)
        if item and item.unidad_medida_id:
            return item.unidad_medida_id
        return self._producto(producto_id).um_predeterminada

    def crear_registro(self, producto_id: str) -> InventarioItem:
        """Crea el registro vacío de un producto si no existe."""
        item = self._item_o_nuevo(producto_id)
        self.store.put(INVENTARIO, item.to_dict())
        return item

    # =========================================================================
    # ASIENTOS
    # =========================================================================

    def registrar_entrada(self, producto_id: str, cantidad: float, precio: float) -> InventarioItem:
        """
        Asienta una entrada y recalcula el promedio ponderado.

        Args:
            producto_id: ID del producto base
            cantidad: Cantidad en unidad de inventario (> 0)
            precio: Precio unitario en unidad de inventario (>= 0)

        Returns:
            Registro actualizado
        """
        cantidad = positivo('cantidad', cantidad)
        precio = no_negativo('precio', precio)
        item = self._item_o_nuevo(producto_id)
        item.precio_promedio_ponderado = nuevo_promedio(
            item.stock_actual, item.precio_promedio_ponderado, cantidad, precio
        )
        item.entradas += cantidad
        self.store.put(INVENTARIO, item.to_dict())
        logger.debug(
            "Entrada %s: +%s @ %s -> promedio %s",
            producto_id, cantidad, precio, item.precio_promedio_ponderado
        )
        return item

    def registrar_salida(self, producto_id: str, cantidad: float) -> float:
        """
        Asienta una salida al costo promedio vigente.

        No verifica suficiencia: el llamador debe haberla comprobado antes.

        Args:
            producto_id: ID del producto base
            cantidad: Cantidad en unidad de inventario (> 0)

        Returns:
            Costo cargado = cantidad × promedio
        """
        cantidad = positivo('cantidad', cantidad)
        item = self._item_o_nuevo(producto_id)
        item.salidas += cantidad
        self.store.put(INVENTARIO, item.to_dict())
        costo = cantidad * item.precio_promedio_ponderado
        logger.debug("Salida %s: -%s costo %s", producto_id, cantidad, costo)
        return costo

    def _item_para_reversion(self, producto_id: str) -> Optional[InventarioItem]:
        """Registro a corregir, o None si el producto ya fue eliminado."""
        item = self.get_item(producto_id)
        if item is None and self.store.get(PRODUCTOS, producto_id) is not None:
            item = self._item_o_nuevo(producto_id)
        if item is None:
            logger.warning("Reversión omitida: el producto %s ya no existe", producto_id)
        return item

    def revertir_entrada(self, producto_id: str, cantidad: float) -> Optional[InventarioItem]:
        """
        Resta exactamente una entrada previa. El promedio no se modifica.
        """
        cantidad = positivo('cantidad', cantidad)
        item = self._item_para_reversion(producto_id)
        if item is None:
            return None
        item.entradas -= cantidad
        self.store.put(INVENTARIO, item.to_dict())
        logger.debug("Reversión de entrada %s: -%s", producto_id, cantidad)
        return item

    def revertir_salida(self, producto_id: str, cantidad: float) -> Optional[InventarioItem]:
        """Resta exactamente una salida previa (devuelve el stock)."""
        cantidad = positivo('cantidad', cantidad)
        item = self._item_para_reversion(producto_id)
        if item is None:
            return None
        item.salidas -= cantidad
        self.store.put(INVENTARIO, item.to_dict())
        logger.debug("Reversión de salida %s: +%s", producto_id, cantidad)
        return item

    # =========================================================================
    # SUFICIENCIA
    # =========================================================================

    def verificar_suficiencia(self, requerimientos: Dict[str, float]) -> List[Faltante]:
        """
        Compara lo requerido contra el stock de cada producto.

        Args:
            requerimientos: {producto_id: cantidad en unidad de inventario}

        Returns:
            Lista de faltantes (vacía si todo alcanza)
        """
        faltantes = []
        for producto_id, requerido in requerimientos.items():
            item = self.get_item(producto_id)
            disponible = item.stock_actual if item else 0.0
            if disponible < requerido:
                producto = self.store.get(PRODUCTOS, producto_id) or {}
                unidad = self.store.get(UNIDADES, item.unidad_medida_id if item else
                                        producto.get('um_predeterminada')) or {}
                faltantes.append(Faltante(
                    producto_base_id=producto_id,
                    nombre=producto.get('nombre_producto', producto_id),
                    requerido=requerido,
                    disponible=disponible,
                    unidad=unidad.get('unidad_nombre', ''),
                ))
        return faltantes

    def exigir_suficiencia(self, requerimientos: Dict[str, float]) -> None:
        """
        Raises:
            InsufficientInventory: Con el detalle de todos los faltantes
        """
        faltantes = self.verificar_suficiencia(requerimientos)
        if faltantes:
            logger.warning(
                "Stock insuficiente: %s",
                ', '.join(f"{f.nombre} ({f.faltante:g})" for f in faltantes)
            )
            raise InsufficientInventory([f.to_dict() for f in faltantes])

    # =========================================================================
    # AJUSTES
    # =========================================================================

    def actualizar_stock_minimo(self, producto_id: str, stock_minimo: Any) -> InventarioItem:
        valor = no_negativo('stock_minimo', stock_minimo)
        item = self._item_o_nuevo(producto_id)
        item.stock_minimo = valor
        self.store.put(INVENTARIO, item.to_dict())
        return item

    @profile_function(name="Ajustar inventario")
    def registrar_ajuste(
        self,
        producto_id: str,
        cantidad: Any,
        entrada: bool,
        precio: Any = None,
        fecha: Any = None,
        notas: Optional[str] = None
    ) -> Transaccion:
        """
        Registra una corrección manual de inventario como transacción.

        Args:
            producto_id: ID del producto base
            cantidad: Cantidad en unidad de inventario (> 0)
            entrada: True suma stock, False lo resta
            precio: Precio unitario de la entrada (None = promedio vigente)
            fecha: Fecha del ajuste (None = ahora)
            notas: Motivo

        Returns:
            Transacción de ajuste registrada

        Raises:
            InsufficientInventory: Si una salida excede el stock
        """
        producto = self._producto(producto_id)
        cantidad = positivo('cantidad', cantidad)
        fecha_iso = fecha_operacion(fecha, self.reloj)
        exigir_mes_abierto(self.store, fecha_iso)
        unidad = self.unidad_inventario(producto_id)

        if entrada:
            precio_unit = (self.get_promedio(producto_id) if precio in (None, '')
                           else no_negativo('precio', precio))
        else:
            self.exigir_suficiencia({producto_id: cantidad})
            precio_unit = self.get_promedio(producto_id)

        transaccion = Transaccion(
            id_transaccion=nuevo_id(),
            fecha=fecha_iso,
            tipo_transaccion=(TipoTransaccion.AJUSTE_ENTRADA if entrada
                              else TipoTransaccion.AJUSTE_SALIDA),
            estado_pago=EstadoPago.NA,
            cantidad=cantidad,
            precio_unitario=precio_unit,
            importe_total=cantidad * precio_unit,
            producto_plato_nombre=producto.nombre_producto,
            servicio_proveedor_nombre='Interno',
            producto_base_relacionado_id=producto_id,
            unidad_compra_id=unidad,
            unidad_medida_inventario_id=unidad,
            cantidad_convertida=cantidad,
            precio_unitario_convertido=precio_unit,
            notas=notas,
        )

        with self.store.unidad_de_trabajo():
            if entrada:
                self.registrar_entrada(producto_id, cantidad, precio_unit)
            else:
                self.registrar_salida(producto_id, cantidad)
            self.store.put(TRANSACCIONES, transaccion.to_dict())

        logger.info(
            "Ajuste de inventario %s %s %s (%s)",
            '+' if entrada else '-', cantidad, producto.nombre_producto, notas or 'sin motivo'
        )
        return transaccion

    def eliminar_ajuste(self, transaccion_id: str) -> None:
        """Elimina un ajuste y revierte su efecto en el inventario."""
        data = self.store.get(TRANSACCIONES, transaccion_id)
        if data is None:
            raise UnknownReference('Transacción', transaccion_id)
        ajuste = Transaccion.from_dict(data)
        if ajuste.tipo_transaccion not in (TipoTransaccion.AJUSTE_ENTRADA,
                                           TipoTransaccion.AJUSTE_SALIDA):
            raise ValidationError(
                "La transacción no es un ajuste de inventario",
                {'id_transaccion': transaccion_id}
            )
        exigir_mes_abierto(self.store, ajuste.fecha)
        with self.store.unidad_de_trabajo():
            if ajuste.tipo_transaccion is TipoTransaccion.AJUSTE_ENTRADA:
                self.revertir_entrada(ajuste.producto_base_relacionado_id, ajuste.cantidad_convertida)
            else:
                self.revertir_salida(ajuste.producto_base_relacionado_id, ajuste.cantidad_convertida)
            self.store.delete(TRANSACCIONES, transaccion_id)
        logger.info("Ajuste %s eliminado", transaccion_id)
