# ==============================================================================
# SERVICIO DE CATÁLOGO (DATOS MAESTROS)
# ==============================================================================
# Alta, edición y baja de unidades, productos base, platos, cartas
# tecnológicas, proveedores, canales de venta y precios del menú.
#
# BAJAS EN CASCADA (una sola unidad de trabajo):
#   producto base → líneas de receta, registro de inventario, compras,
#                   ajustes y conversiones propias del producto
#   unidad        → conversiones que la usan
#   plato         → carta tecnológica y precios del menú
# Las ventas ya registradas no se tocan: conservan nombres e importes.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from app_costeo.exceptions import PeriodClosed, UnknownReference, ValidationError
from app_costeo.models import (
    CAMPOS_PRECIO,
    CartaTecnologica,
    IngredienteReceta,
    MenuPrecioItem,
    Plato,
    ProductoBase,
    Proveedor,
    RestauranteServicio,
    TipoTransaccion,
    UnidadMedida,
)
from app_costeo.repositories import (
    CARTAS,
    CONVERSIONES,
    INVENTARIO,
    MENU_PRECIOS,
    PLATOS,
    PRODUCTOS,
    PROVEEDORES,
    SERVICIOS,
    TRANSACCIONES,
    UNIDADES,
)
from app_costeo.services.conversion_service import ConversionService
from app_costeo.services.inventory_service import InventoryService
from app_costeo.services.utils import no_negativo, nuevo_id, positivo, requerido


logger = logging.getLogger(__name__)


class CatalogService:
    """
    Servicio de datos maestros.

    Responsabilidades:
    - CRUD de entidades de referencia
    - Validación de referencias cruzadas
    - Bajas en cascada atómicas
    """

    def __init__(
        self,
        store,
        inventory_service: InventoryService,
        conversion_service: ConversionService
    ):
        self.store = store
        self.inventory_service = inventory_service
        self.conversion_service = conversion_service

    def _existe(self, tipo: str, ref_id: Any, nombre: str) -> Dict[str, Any]:
        data = self.store.get(tipo, ref_id)
        if data is None:
            raise UnknownReference(nombre, ref_id)
        return data

    def _nombre_libre(self, tipo: str, campo: str, nombre: str, excluir: Optional[str] = None) -> None:
        """Rechaza nombres repetidos (sin distinguir mayúsculas)."""
        clave = nombre.strip().lower()
        for data in self.store.get_all(tipo):
            if data.get('id') != excluir and str(data.get(campo, '')).strip().lower() == clave:
                raise ValidationError(f"Ya existe '{nombre}'", {'campo': campo, 'valor': nombre})

    # =========================================================================
    # UNIDADES DE MEDIDA
    # =========================================================================

    def listar_unidades(self) -> List[UnidadMedida]:
        return [UnidadMedida.from_dict(d) for d in self.store.get_all(UNIDADES)]

    def crear_unidad(self, unidad_nombre: str, unidad_id: Optional[str] = None) -> UnidadMedida:
        nombre = requerido('unidad_nombre', unidad_nombre)
        self._nombre_libre(UNIDADES, 'unidad_nombre', nombre)
        unidad = UnidadMedida(id=unidad_id or nuevo_id(), unidad_nombre=nombre)
        if self.store.get(UNIDADES, unidad.id) is not None:
            raise ValidationError(f"La unidad {unidad.id} ya existe", {'id': unidad.id})
        self.store.put(UNIDADES, unidad.to_dict())
        return unidad

    def actualizar_unidad(self, unidad_id: str, unidad_nombre: str) -> UnidadMedida:
        self._existe(UNIDADES, unidad_id, 'Unidad de medida')
        nombre = requerido('unidad_nombre', unidad_nombre)
        self._nombre_libre(UNIDADES, 'unidad_nombre', nombre, excluir=unidad_id)
        unidad = UnidadMedida(id=unidad_id, unidad_nombre=nombre)
        self.store.put(UNIDADES, unidad.to_dict())
        return unidad

    def eliminar_unidad(self, unidad_id: str) -> int:
        """
        Elimina una unidad y sus conversiones.

        Raises:
            ValidationError: Si algún producto o receta usa la unidad

        Returns:
            Número de conversiones eliminadas
        """
        self._existe(UNIDADES, unidad_id, 'Unidad de medida')
        en_uso = [p['nombre_producto'] for p in self.store.get_all(PRODUCTOS)
                  if p.get('um_predeterminada') == unidad_id]
        for carta in self.store.get_all(CARTAS):
            if any(i.get('unidad_medida_id') == unidad_id for i in carta.get('ingredientes_receta', [])):
                en_uso.append(f"receta {carta.get('plato_id')}")
        if en_uso:
            raise ValidationError(
                "La unidad está en uso y no puede eliminarse",
                {'unidad_id': unidad_id, 'en_uso': en_uso}
            )

        conversiones = [
            c['id'] for c in self.store.get_all(CONVERSIONES)
            if unidad_id in (c.get('unidad_origen_id'), c.get('unidad_destino_id'))
        ]
        with self.store.unidad_de_trabajo():
            for conversion_id in conversiones:
                self.store.delete(CONVERSIONES, conversion_id)
            self.store.delete(UNIDADES, unidad_id)
        logger.info("Unidad %s eliminada con %d conversiones", unidad_id, len(conversiones))
        return len(conversiones)

    # =========================================================================
    # PRODUCTOS BASE
    # =========================================================================

    def listar_productos(self) -> List[ProductoBase]:
        productos = [ProductoBase.from_dict(d) for d in self.store.get_all(PRODUCTOS)]
        return sorted(productos, key=lambda p: p.nombre_producto)

    def crear_producto(
        self,
        nombre_producto: str,
        um_predeterminada: str,
        stock_minimo: Any = 0
    ) -> ProductoBase:
        """
        Crea un producto base y su registro de inventario vacío.

        Args:
            nombre_producto: Nombre visible
            um_predeterminada: Unidad de inventario
            stock_minimo: Umbral para alertas de stock bajo
        """
        nombre = requerido('nombre_producto', nombre_producto)
        self._nombre_libre(PRODUCTOS, 'nombre_producto', nombre)
        self._existe(UNIDADES, um_predeterminada, 'Unidad de medida')
        minimo = no_negativo('stock_minimo', stock_minimo)

        producto = ProductoBase(id=nuevo_id(), nombre_producto=nombre, um_predeterminada=um_predeterminada)
        with self.store.unidad_de_trabajo():
            self.store.put(PRODUCTOS, producto.to_dict())
            self.inventory_service.crear_registro(producto.id)
            if minimo:
                self.inventory_service.actualizar_stock_minimo(producto.id, minimo)
        logger.info("Producto creado: %s (%s)", nombre, producto.id)
        return producto

    def actualizar_producto(self, producto_id: str, datos: Dict[str, Any]) -> ProductoBase:
        """
        Cambia nombre o unidad de inventario.

        La unidad solo puede cambiarse mientras el producto no tenga
        movimientos.
        """
        producto = ProductoBase.from_dict(self._existe(PRODUCTOS, producto_id, 'Producto base'))
        if 'nombre_producto' in datos:
            producto.nombre_producto = requerido('nombre_producto', datos['nombre_producto'])
            self._nombre_libre(PRODUCTOS, 'nombre_producto', producto.nombre_producto, excluir=producto_id)

        nueva_um = datos.get('um_predeterminada')
        with self.store.unidad_de_trabajo():
            if nueva_um and nueva_um != producto.um_predeterminada:
                self._existe(UNIDADES, nueva_um, 'Unidad de medida')
                item = self.inventory_service.get_item(producto_id)
                if item and (item.entradas or item.salidas):
                    raise ValidationError(
                        "No se puede cambiar la unidad de un producto con movimientos",
                        {'producto_id': producto_id}
                    )
                producto.um_predeterminada = nueva_um
                item = self.inventory_service.crear_registro(producto_id)
                item.unidad_medida_id = nueva_um
                self.store.put(INVENTARIO, item.to_dict())
            self.store.put(PRODUCTOS, producto.to_dict())
        return producto

    def eliminar_producto(self, producto_id: str) -> Dict[str, int]:
        """
        Elimina un producto base y todo lo que depende de él.

        Raises:
            PeriodClosed: Si alguna compra o ajuste del producto está en un mes cerrado

        Returns:
            Conteo de registros eliminados por tipo
        """
        self._existe(PRODUCTOS, producto_id, 'Producto base')

        movimientos = [
            t for t in self.store.transacciones.find_all_by('producto_base_relacionado_id', producto_id)
            if t.get('tipo_transaccion') != TipoTransaccion.VENTA.value
        ]
        for t in movimientos:
            if self.store.cierres.get(t['fecha'][:7]) is not None:
                raise PeriodClosed(t['fecha'][:7])
        conversiones = [c['id'] for c in self.store.get_all(CONVERSIONES)
                        if c.get('producto_base_id') == producto_id]
        cartas_afectadas = [
            CartaTecnologica.from_dict(c) for c in self.store.get_all(CARTAS)
            if any(i.get('producto_base_id') == producto_id for i in c.get('ingredientes_receta', []))
        ]

        with self.store.unidad_de_trabajo():
            for carta in cartas_afectadas:
                carta.ingredientes_receta = [
                    i for i in carta.ingredientes_receta if i.producto_base_id != producto_id
                ]
                self.store.put(CARTAS, carta.to_dict())
            for t in movimientos:
                self.store.delete(TRANSACCIONES, t['id_transaccion'])
            for conversion_id in conversiones:
                self.store.delete(CONVERSIONES, conversion_id)
            self.store.delete(INVENTARIO, producto_id)
            self.store.delete(PRODUCTOS, producto_id)

        resumen = {
            'cartas_modificadas': len(cartas_afectadas),
            'transacciones': len(movimientos),
            'conversiones': len(conversiones),
        }
        logger.info("Producto %s eliminado en cascada: %s", producto_id, resumen)
        return resumen

    # =========================================================================
    # PLATOS Y CARTAS TECNOLÓGICAS
    # =========================================================================

    def listar_platos(self) -> List[Plato]:
        return sorted((Plato.from_dict(d) for d in self.store.get_all(PLATOS)),
                      key=lambda p: p.nombre_plato)

    def crear_plato(self, nombre_plato: str) -> Plato:
        nombre = requerido('nombre_plato', nombre_plato)
        self._nombre_libre(PLATOS, 'nombre_plato', nombre)
        plato = Plato(id=nuevo_id(), nombre_plato=nombre)
        self.store.put(PLATOS, plato.to_dict())
        return plato

    def actualizar_plato(self, plato_id: str, nombre_plato: str) -> Plato:
        self._existe(PLATOS, plato_id, 'Plato')
        nombre = requerido('nombre_plato', nombre_plato)
        self._nombre_libre(PLATOS, 'nombre_plato', nombre, excluir=plato_id)
        plato = Plato(id=plato_id, nombre_plato=nombre)
        self.store.put(PLATOS, plato.to_dict())
        return plato

    def eliminar_plato(self, plato_id: str) -> None:
        """Elimina un plato con su carta tecnológica y sus precios."""
        self._existe(PLATOS, plato_id, 'Plato')
        cartas = [c['id'] for c in self.store.get_all(CARTAS) if c.get('plato_id') == plato_id]
        with self.store.unidad_de_trabajo():
            for carta_id in cartas:
                self.store.delete(CARTAS, carta_id)
            self.store.delete(MENU_PRECIOS, plato_id)
            self.store.delete(PLATOS, plato_id)
        logger.info("Plato %s eliminado", plato_id)

    def guardar_carta(
        self,
        plato_id: str,
        ingredientes: List[Dict[str, Any]],
        otros_gastos: Any = 0,
        combustible: Any = 0,
        salario: Any = 0,
        notas_preparacion: Optional[str] = None
    ) -> CartaTecnologica:
        """
        Crea o reemplaza la carta tecnológica de un plato.

        Cada línea se valida: producto y unidad existentes, cantidad > 0 y
        conversión disponible hacia la unidad de inventario.

        Args:
            plato_id: Plato al que pertenece la receta
            ingredientes: [{'producto_base_id', 'cantidad', 'unidad_medida_id'}]
            otros_gastos, combustible, salario: Gastos por tanda (>= 0)
            notas_preparacion: Texto libre
        """
        self._existe(PLATOS, plato_id, 'Plato')
        lineas = []
        for linea in ingredientes:
            producto_id = linea.get('producto_base_id')
            unidad_id = linea.get('unidad_medida_id')
            self._existe(PRODUCTOS, producto_id, 'Producto base')
            self._existe(UNIDADES, unidad_id, 'Unidad de medida')
            cantidad = positivo('cantidad', linea.get('cantidad'))
            self.conversion_service.factor(
                unidad_id, self.inventory_service.unidad_inventario(producto_id), producto_id
            )
            lineas.append(IngredienteReceta(
                producto_base_id=producto_id,
                cantidad=cantidad,
                unidad_medida_id=unidad_id,
                id=linea.get('id') or nuevo_id(),
            ))

        existente = next(
            (c for c in self.store.get_all(CARTAS) if c.get('plato_id') == plato_id), None
        )
        carta = CartaTecnologica(
            id=existente['id'] if existente else nuevo_id(),
            plato_id=plato_id,
            ingredientes_receta=lineas,
            otros_gastos=no_negativo('otros_gastos', otros_gastos),
            combustible=no_negativo('combustible', combustible),
            salario=no_negativo('salario', salario),
            notas_preparacion=notas_preparacion,
        )
        self.store.put(CARTAS, carta.to_dict())
        logger.info("Carta tecnológica guardada para %s (%d ingredientes)", plato_id, len(lineas))
        return carta

    def eliminar_carta(self, plato_id: str) -> None:
        cartas = [c['id'] for c in self.store.get_all(CARTAS) if c.get('plato_id') == plato_id]
        if not cartas:
            raise UnknownReference('Carta tecnológica', plato_id)
        with self.store.unidad_de_trabajo():
            for carta_id in cartas:
                self.store.delete(CARTAS, carta_id)

    # =========================================================================
    # PROVEEDORES Y CANALES
    # =========================================================================

    def listar_proveedores(self) -> List[Proveedor]:
        return [Proveedor.from_dict(d) for d in self.store.get_all(PROVEEDORES)]

    def crear_proveedor(self, nombre_proveedor: str) -> Proveedor:
        nombre = requerido('nombre_proveedor', nombre_proveedor)
        self._nombre_libre(PROVEEDORES, 'nombre_proveedor', nombre)
        proveedor = Proveedor(id=nuevo_id(), nombre_proveedor=nombre)
        self.store.put(PROVEEDORES, proveedor.to_dict())
        return proveedor

    def eliminar_proveedor(self, proveedor_id: str) -> None:
        self._existe(PROVEEDORES, proveedor_id, 'Proveedor')
        self.store.delete(PROVEEDORES, proveedor_id)

    def listar_servicios(self) -> List[RestauranteServicio]:
        return [RestauranteServicio.from_dict(d) for d in self.store.get_all(SERVICIOS)]

    def crear_servicio(self, nombre_servicio: str) -> RestauranteServicio:
        nombre = requerido('nombre_servicio', nombre_servicio)
        self._nombre_libre(SERVICIOS, 'nombre_servicio', nombre)
        servicio = RestauranteServicio(id=nuevo_id(), nombre_servicio=nombre)
        self.store.put(SERVICIOS, servicio.to_dict())
        return servicio

    def eliminar_servicio(self, servicio_id: str) -> None:
        self._existe(SERVICIOS, servicio_id, 'Servicio')
        self.store.delete(SERVICIOS, servicio_id)

    # =========================================================================
    # PRECIOS DEL MENÚ
    # =========================================================================

    def listar_precios(self) -> List[MenuPrecioItem]:
        return [MenuPrecioItem.from_dict(d) for d in self.store.get_all(MENU_PRECIOS)]

    def guardar_precios(self, plato_id: str, precios: Dict[str, Any]) -> MenuPrecioItem:
        """
        Crea o actualiza los precios de un plato.

        Args:
            plato_id: ID del plato
            precios: {campo de CAMPOS_PRECIO: valor >= 0 o None}
        """
        self._existe(PLATOS, plato_id, 'Plato')
        actual = self.store.get(MENU_PRECIOS, plato_id) or {'plato_id': plato_id}
        for campo, valor in precios.items():
            if campo not in CAMPOS_PRECIO:
                raise ValidationError(f"Columna de precio desconocida: {campo}", {'campo': campo})
            actual[campo] = no_negativo(campo, valor, default=None)
        item = MenuPrecioItem.from_dict(actual)
        self.store.put(MENU_PRECIOS, item.to_dict())
        return item
