# ==============================================================================
# SERVICIO DE VENTAS
# ==============================================================================
# Registra ventas de platos y gestiona su ciclo de pago.
#
# CICLO DE VIDA:
#   - Al crear: se verifica suficiencia de TODOS los ingredientes y se
#     descuenta el inventario de inmediato, esté cobrada o no.
#   - Pago: PENDIENTE → EFECTIVO/TRANSFERENCIA/ZELLE (reversible mientras
#     el mes de la venta no esté cerrado).
#   - Eliminar: devuelve al inventario exactamente lo descontado.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from app_costeo.exceptions import UnknownReference, ValidationError
from app_costeo.models import (
    EstadoPago,
    IngredienteDescontado,
    MenuPrecioItem,
    METODOS_LIQUIDACION,
    Plato,
    RestauranteServicio,
    TipoTransaccion,
    Transaccion,
)
from app_costeo.performance_logger import profile_function
from app_costeo.repositories import MENU_PRECIOS, PLATOS, SERVICIOS, TRANSACCIONES
from app_costeo.services.config_service import ConfigService
from app_costeo.services.inventory_service import InventoryService
from app_costeo.services.recipe_cost_service import RecipeCostService
from app_costeo.services.utils import (
    Reloj,
    ahora,
    exigir_mes_abierto,
    fecha_operacion,
    no_negativo,
    nuevo_id,
    parse_estado_pago,
    positivo,
)


logger = logging.getLogger(__name__)


class SalesService:
    """
    Servicio para gestión de ventas.

    Responsabilidades:
    - Registrar ventas con descuento de inventario
    - Cobro y reversión de cobro
    - Eliminación con devolución de inventario
    - Cuentas por cobrar
    """

    ESTADOS_VENTA = frozenset(METODOS_LIQUIDACION | {
        EstadoPago.PAGADO, EstadoPago.PENDIENTE, EstadoPago.PROMOCION
    })

    def __init__(
        self,
        store,
        inventory_service: InventoryService,
        recipe_cost_service: RecipeCostService,
        config_service: ConfigService,
        reloj: Reloj = None
    ):
        """
        Inicializa el servicio de ventas.

        Args:
            store: DataStore
            inventory_service: Libro de inventario
            recipe_cost_service: Explosión de recetas
            config_service: Configuración (comisiones, estado por defecto)
            reloj: Función que devuelve la hora actual
        """
        self.store = store
        self.inventory_service = inventory_service
        self.recipe_cost_service = recipe_cost_service
        self.config_service = config_service
        self.reloj = reloj or ahora

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def obtener_venta(self, venta_id: str) -> Transaccion:
        data = self.store.get(TRANSACCIONES, venta_id)
        if data is None or data.get('tipo_transaccion') != TipoTransaccion.VENTA.value:
            raise UnknownReference('Venta', venta_id)
        return Transaccion.from_dict(data)

    def listar_ventas(self, desde: Optional[str] = None, hasta: Optional[str] = None) -> List[Transaccion]:
        """Ventas en el rango [desde, hasta] (YYYY-MM-DD), más recientes primero."""
        ventas = [
            Transaccion.from_dict(t) for t in self.store.transacciones.en_rango(desde, hasta)
            if t.get('tipo_transaccion') == TipoTransaccion.VENTA.value
        ]
        return sorted(ventas, key=lambda t: t.fecha, reverse=True)

    def cuentas_por_cobrar(self) -> List[Transaccion]:
        """Ventas pendientes de cobro."""
        return [
            Transaccion.from_dict(t)
            for t in self.store.transacciones.pendientes(TipoTransaccion.VENTA.value)
        ]

    def obtener_precio_venta(self, plato_id: str, servicio: RestauranteServicio) -> Optional[float]:
        """Precio del menú para el plato en el canal indicado."""
        data = self.store.get(MENU_PRECIOS, plato_id)
        if data is None:
            return None
        return MenuPrecioItem.from_dict(data).precio_para(servicio)

    # =========================================================================
    # REGISTRO
    # =========================================================================

    @profile_function(name="Registrar venta")
    def registrar_venta(
        self,
        plato_id: str,
        servicio_id: str,
        cantidad: Any,
        fecha: Any = None,
        precio_unitario: Any = None,
        estado: Any = None,
        nombre_deudor: Optional[str] = None,
        descripcion_pago_deuda: Optional[str] = None,
        impuesto_terceros: Any = 0,
        notas: Optional[str] = None
    ) -> Transaccion:
        """
        Registra una venta y descuenta sus ingredientes del inventario.

        Todas las validaciones se hacen antes de escribir.

        Args:
            plato_id: Plato vendido
            servicio_id: Canal de venta
            cantidad: Unidades vendidas (> 0)
            fecha: Fecha de la venta (None = ahora; no futura)
            precio_unitario: Precio (None = precio del menú para el canal)
            estado: Estado de pago (None = configuración por defecto)
            nombre_deudor: Cliente que debe (ventas pendientes)
            descripcion_pago_deuda: Detalle de la deuda
            impuesto_terceros: Impuesto retenido por terceros (informativo)
            notas: Observaciones

        Returns:
            Transacción de venta registrada

        Raises:
            InvalidQuantity, UnknownReference, FutureDatedTransaction,
            PeriodClosed, ConversionNotFound, InsufficientInventory
        """
        cantidad = positivo('cantidad', cantidad)
        plato_data = self.store.get(PLATOS, plato_id)
        if plato_data is None:
            raise UnknownReference('Plato', plato_id)
        servicio_data = self.store.get(SERVICIOS, servicio_id)
        if servicio_data is None:
            raise UnknownReference('Servicio', servicio_id)
        plato = Plato.from_dict(plato_data)
        servicio = RestauranteServicio.from_dict(servicio_data)

        fecha_iso = fecha_operacion(fecha, self.reloj)
        exigir_mes_abierto(self.store, fecha_iso)

        config = self.config_service.obtener()
        estado_final = parse_estado_pago(
            estado if estado not in (None, '') else config.default_estado_pago,
            self.ESTADOS_VENTA
        )

        if estado_final is EstadoPago.PROMOCION:
            precio = 0.0
        elif precio_unitario not in (None, ''):
            precio = positivo('precio_unitario', precio_unitario)
        else:
            precio = self.obtener_precio_venta(plato_id, servicio)
            if precio is None:
                raise ValidationError(
                    f"No hay precio de venta para '{plato.nombre_plato}' en '{servicio.nombre_servicio}'",
                    {'plato_id': plato_id, 'servicio_id': servicio_id}
                )
            precio = positivo('precio_unitario', precio)
        impuesto = no_negativo('impuesto_terceros', impuesto_terceros)

        carta = self.recipe_cost_service.carta_obligatoria(plato_id)
        consumo = self.recipe_cost_service.explotar_receta(plato_id, cantidad)
        self.inventory_service.exigir_suficiencia(consumo)

        importe = cantidad * precio
        venta = Transaccion(
            id_transaccion=nuevo_id(),
            fecha=fecha_iso,
            tipo_transaccion=TipoTransaccion.VENTA,
            estado_pago=estado_final,
            cantidad=cantidad,
            precio_unitario=precio,
            importe_total=importe,
            producto_plato_nombre=plato.nombre_plato,
            servicio_proveedor_nombre=servicio.nombre_servicio,
            plato_relacionado_id=plato_id,
            servicio_id=servicio_id,
            comision_servicio=importe * config.comision_para(servicio.nombre_servicio),
            impuesto_terceros=impuesto,
            nombre_deudor=nombre_deudor,
            descripcion_pago_deuda=descripcion_pago_deuda,
            notas=notas,
        )

        with self.store.unidad_de_trabajo():
            costo_ingredientes = 0.0
            for producto_id, requerido in consumo.items():
                costo = self.inventory_service.registrar_salida(producto_id, requerido)
                costo_ingredientes += costo
                venta.ingredientes_descontados.append(IngredienteDescontado(
                    producto_base_id=producto_id,
                    cantidad=requerido,
                    unidad_medida_id=self.inventory_service.unidad_inventario(producto_id),
                    costo_unitario=costo / requerido,
                ))
            venta.costo_total_transaccion = costo_ingredientes + carta.gastos_indirectos * cantidad
            venta.utilidad_transaccion = importe - venta.costo_total_transaccion
            self.store.put(TRANSACCIONES, venta.to_dict())

        logger.info(
            "Venta registrada %s: %s x %s (%s) importe %.2f costo %.2f",
            venta.id_transaccion, cantidad, plato.nombre_plato, estado_final.value,
            importe, venta.costo_total_transaccion
        )
        return venta

    # =========================================================================
    # PAGOS
    # =========================================================================

    @profile_function(name="Cobrar venta")
    def marcar_venta_pagada(self, venta_id: str, metodo: Any, fecha_pago: Any = None) -> Transaccion:
        """
        Liquida una venta pendiente.

        Args:
            venta_id: ID de la venta
            metodo: EFECTIVO, TRANSFERENCIA o ZELLE
            fecha_pago: Fecha del cobro (None = ahora)

        Raises:
            PeriodClosed: Si la fecha de cobro cae en un mes cerrado
        """
        venta = self.obtener_venta(venta_id)
        if not venta.es_pendiente:
            raise ValidationError(
                f"La venta {venta_id} no está pendiente ({venta.estado_pago.value})",
                {'id_transaccion': venta_id}
            )
        venta.estado_pago = parse_estado_pago(metodo, METODOS_LIQUIDACION)
        fecha_iso = fecha_operacion(fecha_pago, self.reloj)
        if fecha_iso < venta.fecha:
            raise ValidationError(
                "La fecha de pago no puede ser anterior a la venta",
                {'fecha_pago': fecha_iso, 'fecha': venta.fecha}
            )
        exigir_mes_abierto(self.store, fecha_iso)
        venta.fecha_pago = fecha_iso
        self.store.put(TRANSACCIONES, venta.to_dict())
        logger.info("Venta %s cobrada (%s)", venta_id, venta.estado_pago.value)
        return venta

    def deshacer_pago_venta(self, venta_id: str) -> Transaccion:
        """
        Devuelve una venta cobrada a PENDIENTE.

        Raises:
            PeriodClosed: Si el mes de la venta ya está cerrado
        """
        venta = self.obtener_venta(venta_id)
        if venta.es_pendiente or venta.estado_pago is EstadoPago.PROMOCION:
            raise ValidationError(
                f"La venta {venta_id} no tiene un pago que deshacer",
                {'id_transaccion': venta_id}
            )
        exigir_mes_abierto(self.store, venta.fecha)
        venta.estado_pago = EstadoPago.PENDIENTE
        venta.fecha_pago = None
        self.store.put(TRANSACCIONES, venta.to_dict())
        logger.info("Pago de la venta %s deshecho", venta_id)
        return venta

    def modificar_cuenta_pendiente(self, venta_id: str, datos: Dict[str, Any]) -> Transaccion:
        """Edita deudor, descripción o notas de una venta pendiente."""
        venta = self.obtener_venta(venta_id)
        if not venta.es_pendiente:
            raise ValidationError(
                f"La venta {venta_id} no está pendiente",
                {'id_transaccion': venta_id}
            )
        for campo in ('nombre_deudor', 'descripcion_pago_deuda', 'notas'):
            if campo in datos:
                setattr(venta, campo, datos[campo])
        self.store.put(TRANSACCIONES, venta.to_dict())
        return venta

    # =========================================================================
    # ELIMINACIÓN
    # =========================================================================

    @profile_function(name="Eliminar venta")
    def eliminar_venta(self, venta_id: str) -> None:
        """
        Elimina una venta devolviendo al inventario lo que descontó.

        Raises:
            PeriodClosed: Si el mes de la venta ya está cerrado
        """
        venta = self.obtener_venta(venta_id)
        exigir_mes_abierto(self.store, venta.fecha)
        with self.store.unidad_de_trabajo():
            for ingrediente in venta.ingredientes_descontados:
                self.inventory_service.revertir_salida(
                    ingrediente.producto_base_id, ingrediente.cantidad
                )
            self.store.delete(TRANSACCIONES, venta_id)
        logger.info("Venta %s eliminada; inventario restituido", venta_id)
