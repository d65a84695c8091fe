# ==============================================================================
# SERVICIO DE COMPRAS
# ==============================================================================
# Registra compras de productos base y su efecto en el inventario.
#
# CICLO DE VIDA:
#   CREADA → PENDIENTE   : no toca el inventario (cuenta por pagar)
#   CREADA → LIQUIDADA   : entra al inventario de inmediato
#   PENDIENTE → LIQUIDADA: entra al inventario al pagar, con la cantidad y
#                          el precio convertidos guardados al crearla
#
# La cantidad y el precio se convierten a la unidad de inventario del
# producto al crear la compra y se guardan en la transacción.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from app_costeo.exceptions import UnknownReference, ValidationError
from app_costeo.models import (
    EstadoPago,
    METODOS_LIQUIDACION,
    ProductoBase,
    Proveedor,
    TipoTransaccion,
    Transaccion,
)
from app_costeo.performance_logger import profile_function
from app_costeo.repositories import PRODUCTOS, PROVEEDORES, TRANSACCIONES, UNIDADES
from app_costeo.services.config_service import ConfigService
from app_costeo.services.conversion_service import ConversionService
from app_costeo.services.inventory_service import InventoryService
from app_costeo.services.utils import (
    Reloj,
    ahora,
    exigir_mes_abierto,
    fecha_operacion,
    nuevo_id,
    parse_estado_pago,
    positivo,
)


logger = logging.getLogger(__name__)


class PurchaseService:
    """
    Servicio para gestión de compras.

    Responsabilidades:
    - Registrar compras con conversión a unidad de inventario
    - Pago de compras pendientes (asiento diferido)
    - Edición todo-o-nada de compras liquidadas
    - Cuentas por pagar
    """

    ESTADOS_COMPRA = frozenset(METODOS_LIQUIDACION | {EstadoPago.PAGADO, EstadoPago.PENDIENTE})

    def __init__(
        self,
        store,
        inventory_service: InventoryService,
        conversion_service: ConversionService,
        config_service: ConfigService,
        reloj: Reloj = None
    ):
        self.store = store
        self.inventory_service = inventory_service
        self.conversion_service = conversion_service
        self.config_service = config_service
        self.reloj = reloj or ahora

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def obtener_compra(self, compra_id: str) -> Transaccion:
        data = self.store.get(TRANSACCIONES, compra_id)
        if data is None or data.get('tipo_transaccion') != TipoTransaccion.COMPRA.value:
            raise UnknownReference('Compra', compra_id)
        return Transaccion.from_dict(data)

    def listar_compras(self, desde: Optional[str] = None, hasta: Optional[str] = None) -> List[Transaccion]:
        compras = [
            Transaccion.from_dict(t) for t in self.store.transacciones.en_rango(desde, hasta)
            if t.get('tipo_transaccion') == TipoTransaccion.COMPRA.value
        ]
        return sorted(compras, key=lambda t: t.fecha, reverse=True)

    def cuentas_por_pagar(self) -> List[Transaccion]:
        """Compras pendientes de pago."""
        return [
            Transaccion.from_dict(t)
            for t in self.store.transacciones.pendientes(TipoTransaccion.COMPRA.value)
        ]

    # =========================================================================
    # REGISTRO
    # =========================================================================

    def _preparar(
        self,
        compra: Transaccion,
        producto_id: str,
        cantidad: Any,
        precio_unitario: Any,
        unidad_compra_id: Optional[str],
        proveedor_id: Optional[str]
    ) -> Transaccion:
        """
        Valida referencias y cantidades y completa los campos calculados.

        Raises:
            InvalidQuantity, UnknownReference, ConversionNotFound
        """
        cantidad = positivo('cantidad', cantidad)
        precio = positivo('precio_unitario', precio_unitario)

        producto_data = self.store.get(PRODUCTOS, producto_id)
        if producto_data is None:
            raise UnknownReference('Producto base', producto_id)
        producto = ProductoBase.from_dict(producto_data)

        unidad_compra_id = unidad_compra_id or producto.um_predeterminada
        if self.store.get(UNIDADES, unidad_compra_id) is None:
            raise UnknownReference('Unidad de medida', unidad_compra_id)

        proveedor_nombre = ''
        if proveedor_id:
            proveedor_data = self.store.get(PROVEEDORES, proveedor_id)
            if proveedor_data is None:
                raise UnknownReference('Proveedor', proveedor_id)
            proveedor_nombre = Proveedor.from_dict(proveedor_data).nombre_proveedor

        unidad_inv = self.inventory_service.unidad_inventario(producto_id)
        cantidad_conv = self.conversion_service.convertir(
            cantidad, unidad_compra_id, unidad_inv, producto_id
        )
        importe = cantidad * precio

        compra.producto_base_relacionado_id = producto_id
        compra.producto_plato_nombre = producto.nombre_producto
        compra.proveedor_id = proveedor_id or None
        compra.servicio_proveedor_nombre = proveedor_nombre
        compra.cantidad = cantidad
        compra.precio_unitario = precio
        compra.importe_total = importe
        compra.costo_total_transaccion = importe
        compra.unidad_compra_id = unidad_compra_id
        compra.unidad_medida_inventario_id = unidad_inv
        compra.cantidad_convertida = cantidad_conv
        compra.precio_unitario_convertido = importe / cantidad_conv
        return compra

    @profile_function(name="Registrar compra")
    def registrar_compra(
        self,
        producto_id: str,
        cantidad: Any,
        precio_unitario: Any,
        unidad_compra_id: Optional[str] = None,
        proveedor_id: Optional[str] = None,
        fecha: Any = None,
        estado: Any = None,
        referencia_factura_proveedor: Optional[str] = None,
        nombre_deudor: Optional[str] = None,
        notas: Optional[str] = None
    ) -> Transaccion:
        """
        Registra una compra.

        Args:
            producto_id: Producto base comprado
            cantidad: Cantidad en la unidad de compra (> 0)
            precio_unitario: Precio por unidad de compra (> 0)
            unidad_compra_id: Unidad de compra (None = unidad del producto)
            proveedor_id: Proveedor (opcional)
            fecha: Fecha de compra (None = ahora; no futura)
            estado: Estado de pago (None = configuración por defecto)
            referencia_factura_proveedor: Nº de factura
            nombre_deudor: A quién se le debe (compras pendientes)
            notas: Observaciones

        Returns:
            Transacción de compra registrada

        Raises:
            InvalidQuantity, UnknownReference, FutureDatedTransaction,
            PeriodClosed, ConversionNotFound
        """
        fecha_iso = fecha_operacion(fecha, self.reloj)
        exigir_mes_abierto(self.store, fecha_iso)
        if estado in (None, ''):
            estado = self.config_service.obtener().default_estado_pago
        estado_final = parse_estado_pago(estado, self.ESTADOS_COMPRA)

        compra = Transaccion(
            id_transaccion=nuevo_id(),
            fecha=fecha_iso,
            tipo_transaccion=TipoTransaccion.COMPRA,
            estado_pago=estado_final,
            cantidad=0.0,
            referencia_factura_proveedor=referencia_factura_proveedor,
            nombre_deudor=nombre_deudor,
            notas=notas,
        )
        self._preparar(compra, producto_id, cantidad, precio_unitario, unidad_compra_id, proveedor_id)

        with self.store.unidad_de_trabajo():
            if not compra.es_pendiente:
                self.inventory_service.registrar_entrada(
                    producto_id, compra.cantidad_convertida, compra.precio_unitario_convertido
                )
            self.store.put(TRANSACCIONES, compra.to_dict())

        logger.info(
            "Compra registrada %s: %s %s @ %s (%s)",
            compra.id_transaccion, compra.cantidad, compra.producto_plato_nombre,
            compra.precio_unitario, estado_final.value
        )
        return compra

    # =========================================================================
    # PAGOS
    # =========================================================================

    @profile_function(name="Pagar compra")
    def pagar_compra(self, compra_id: str, metodo: Any, fecha_pago: Any = None) -> Transaccion:
        """
        Liquida una compra pendiente y la asienta en el inventario.

        Args:
            compra_id: ID de la compra
            metodo: EFECTIVO, TRANSFERENCIA o ZELLE
            fecha_pago: Fecha del pago (None = ahora)

        Raises:
            PeriodClosed: Si la fecha de pago cae en un mes cerrado
        """
        compra = self.obtener_compra(compra_id)
        if not compra.es_pendiente:
            raise ValidationError(
                f"La compra {compra_id} no está pendiente ({compra.estado_pago.value})",
                {'id_transaccion': compra_id}
            )
        metodo_final = parse_estado_pago(metodo, METODOS_LIQUIDACION)
        fecha_iso = fecha_operacion(fecha_pago, self.reloj)
        if fecha_iso < compra.fecha:
            raise ValidationError(
                "La fecha de pago no puede ser anterior a la compra",
                {'fecha_pago': fecha_iso, 'fecha': compra.fecha}
            )
        exigir_mes_abierto(self.store, fecha_iso)

        compra.estado_pago = metodo_final
        compra.fecha_pago = fecha_iso
        with self.store.unidad_de_trabajo():
            self.inventory_service.registrar_entrada(
                compra.producto_base_relacionado_id,
                compra.cantidad_convertida,
                compra.precio_unitario_convertido,
            )
            self.store.put(TRANSACCIONES, compra.to_dict())
        logger.info("Compra %s pagada (%s) y asentada en inventario", compra_id, metodo_final.value)
        return compra

    def deshacer_pago_compra(self, compra_id: str) -> Transaccion:
        """
        Devuelve una compra liquidada a PENDIENTE y retira su entrada.

        Raises:
            PeriodClosed: Si el mes de la compra o el de su pago ya está cerrado
        """
        compra = self.obtener_compra(compra_id)
        if compra.es_pendiente:
            raise ValidationError(
                f"La compra {compra_id} ya está pendiente",
                {'id_transaccion': compra_id}
            )
        exigir_mes_abierto(self.store, compra.fecha)
        exigir_mes_abierto(self.store, compra.fecha_liquidacion)
        with self.store.unidad_de_trabajo():
            self.inventory_service.revertir_entrada(
                compra.producto_base_relacionado_id, compra.cantidad_convertida
            )
            compra.estado_pago = EstadoPago.PENDIENTE
            compra.fecha_pago = None
            self.store.put(TRANSACCIONES, compra.to_dict())
        logger.info("Pago de la compra %s deshecho", compra_id)
        return compra

    # =========================================================================
    # EDICIÓN Y ELIMINACIÓN
    # =========================================================================

    @profile_function(name="Editar compra")
    def editar_compra(self, compra_id: str, datos: Dict[str, Any]) -> Transaccion:
        """
        Modifica una compra.

        Si la compra está liquidada, revierte su entrada anterior y asienta
        la nueva dentro de una misma unidad de trabajo: ante cualquier fallo
        el inventario queda como antes de la edición.

        Args:
            compra_id: ID de la compra
            datos: Campos a cambiar (producto_base_id, cantidad, precio_unitario,
                   unidad_compra_id, proveedor_id, fecha,
                   referencia_factura_proveedor, nombre_deudor, notas)
        """
        original = self.obtener_compra(compra_id)
        exigir_mes_abierto(self.store, original.fecha)

        editada = Transaccion.from_dict(original.to_dict())
        if 'fecha' in datos:
            editada.fecha = fecha_operacion(datos['fecha'], self.reloj)
            exigir_mes_abierto(self.store, editada.fecha)
        for campo in ('referencia_factura_proveedor', 'nombre_deudor', 'notas'):
            if campo in datos:
                setattr(editada, campo, datos[campo])
        self._preparar(
            editada,
            datos.get('producto_base_id', original.producto_base_relacionado_id),
            datos.get('cantidad', original.cantidad),
            datos.get('precio_unitario', original.precio_unitario),
            datos.get('unidad_compra_id', original.unidad_compra_id),
            datos.get('proveedor_id', original.proveedor_id),
        )

        with self.store.unidad_de_trabajo():
            if not original.es_pendiente:
                self.inventory_service.revertir_entrada(
                    original.producto_base_relacionado_id, original.cantidad_convertida
                )
                self.inventory_service.registrar_entrada(
                    editada.producto_base_relacionado_id,
                    editada.cantidad_convertida,
                    editada.precio_unitario_convertido,
                )
            self.store.put(TRANSACCIONES, editada.to_dict())

        logger.info("Compra %s editada", compra_id)
        return editada

    def eliminar_compra(self, compra_id: str) -> None:
        """Elimina una compra; si estaba liquidada retira su entrada."""
        compra = self.obtener_compra(compra_id)
        exigir_mes_abierto(self.store, compra.fecha)
        with self.store.unidad_de_trabajo():
            if not compra.es_pendiente:
                self.inventory_service.revertir_entrada(
                    compra.producto_base_relacionado_id, compra.cantidad_convertida
                )
            self.store.delete(TRANSACCIONES, compra_id)
        logger.info("Compra %s eliminada", compra_id)
