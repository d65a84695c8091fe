# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio del restaurante.
# Diseñadas para ser independientes del mecanismo de persistencia:
# se guardan como diccionarios (to_dict) y se reconstruyen con from_dict.
# ==============================================================================

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from enum import Enum


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class TipoTransaccion(str, Enum):
    """Tipos de movimiento registrados en el libro de transacciones."""
    COMPRA = "Compra"
    VENTA = "Venta"
    AJUSTE_ENTRADA = "Ajuste Entrada"
    AJUSTE_SALIDA = "Ajuste Salida"


class EstadoPago(str, Enum):
    """Estados de pago de una transacción."""
    EFECTIVO = "EFECTIVO"
    TRANSFERENCIA = "TRANSFERENCIA"
    ZELLE = "ZELLE"
    PAGADO = "PAGADO"
    PENDIENTE = "PENDIENTE"      # Cuenta por cobrar / por pagar
    PROMOCION = "PROMOCION"      # Venta sin cobro
    NA = "N/A"                   # Sin movimiento de caja (ajustes)

    @property
    def es_pendiente(self) -> bool:
        return self is EstadoPago.PENDIENTE

    @property
    def mueve_caja(self) -> bool:
        """True si el estado representa dinero efectivamente cobrado o pagado."""
        return self not in (EstadoPago.PENDIENTE, EstadoPago.PROMOCION, EstadoPago.NA)


# Métodos aceptados al liquidar una deuda
METODOS_LIQUIDACION = frozenset([
    EstadoPago.EFECTIVO,
    EstadoPago.TRANSFERENCIA,
    EstadoPago.ZELLE,
])


class CategoriaGasto(str, Enum):
    """Categorías sugeridas para otros gastos (el campo admite texto libre)."""
    IMPUESTOS = "Impuestos"
    SERVICIOS_PUBLICOS = "Servicios (Luz, Agua, Teléfono, Gas)"
    ALQUILER = "Alquiler"
    MANTENIMIENTO = "Mantenimiento y Reparaciones"
    SALARIOS_ADMIN = "Salarios (Administrativos/Otros)"
    SUMINISTROS_OFICINA_LIMPIEZA = "Suministros (Oficina/Limpieza)"
    MARKETING = "Marketing y Publicidad"
    TRANSPORTE_NO_RECETA = "Transporte (No Receta)"
    COMPRA_ACTIVOS = "Compra de Activos Fijos"
    MATERIA_PRIMA_NO_RECETA = "Materia Prima (No Receta)"
    GASTOS_FINANCIEROS = "Gastos Financieros"
    OTROS_VARIOS = "Otros Gastos Varios"


def _float(value: Any, default: float = 0.0) -> float:
    if value is None or value == '':
        return default
    return float(value)


def _opt_float(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    return float(value)


# ==============================================================================
# DATOS MAESTROS
# ==============================================================================

@dataclass
class UnidadMedida:
    """Unidad de medida (g, kg, ml, U, RACION...)."""
    id: str
    unidad_nombre: str

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'unidad_nombre': self.unidad_nombre}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UnidadMedida':
        return cls(id=data['id'], unidad_nombre=data.get('unidad_nombre', ''))


@dataclass
class ProductoBase:
    """
    Ingrediente o insumo que se compra y se almacena.

    Attributes:
        id: Identificador único
        nombre_producto: Nombre visible (ej. "HARINA")
        um_predeterminada: ID de la unidad en la que se lleva el inventario
    """
    id: str
    nombre_producto: str
    um_predeterminada: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'nombre_producto': self.nombre_producto,
            'um_predeterminada': self.um_predeterminada,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProductoBase':
        return cls(
            id=data['id'],
            nombre_producto=data.get('nombre_producto', ''),
            um_predeterminada=data.get('um_predeterminada', ''),
        )


@dataclass
class ConversionUnidad:
    """
    Regla de conversión: 1 unidad origen = factor unidades destino.

    Attributes:
        producto_base_id: Si se indica, la regla aplica solo a ese producto
                          y tiene prioridad sobre la regla genérica
    """
    id: str
    unidad_origen_id: str
    unidad_destino_id: str
    factor: float
    producto_base_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'unidad_origen_id': self.unidad_origen_id,
            'unidad_destino_id': self.unidad_destino_id,
            'factor': self.factor,
            'producto_base_id': self.producto_base_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConversionUnidad':
        return cls(
            id=data['id'],
            unidad_origen_id=data.get('unidad_origen_id', ''),
            unidad_destino_id=data.get('unidad_destino_id', ''),
            factor=_float(data.get('factor')),
            producto_base_id=data.get('producto_base_id') or None,
        )


@dataclass
class Plato:
    """Plato o bebida de la carta."""
    id: str
    nombre_plato: str

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'nombre_plato': self.nombre_plato}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Plato':
        return cls(id=data['id'], nombre_plato=data.get('nombre_plato', ''))


@dataclass
class Proveedor:
    id: str
    nombre_proveedor: str

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'nombre_proveedor': self.nombre_proveedor}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Proveedor':
        return cls(id=data['id'], nombre_proveedor=data.get('nombre_proveedor', ''))


@dataclass
class RestauranteServicio:
    """Canal de venta (Restaurante, Mandado, Catauro...)."""
    id: str
    nombre_servicio: str

    @property
    def clave_precio(self) -> str:
        """Clave del precio en MenuPrecioItem: 'precio_<nombre normalizado>'."""
        return 'precio_' + self.nombre_servicio.strip().lower().replace(' ', '_')

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'nombre_servicio': self.nombre_servicio}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RestauranteServicio':
        return cls(id=data['id'], nombre_servicio=data.get('nombre_servicio', ''))


# ==============================================================================
# RECETAS Y PRECIOS
# ==============================================================================

@dataclass
class IngredienteReceta:
    """Línea de receta: ingrediente, cantidad y unidad."""
    producto_base_id: str
    cantidad: float
    unidad_medida_id: str
    id: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'producto_base_id': self.producto_base_id,
            'cantidad': self.cantidad,
            'unidad_medida_id': self.unidad_medida_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IngredienteReceta':
        return cls(
            producto_base_id=data.get('producto_base_id', ''),
            cantidad=_float(data.get('cantidad')),
            unidad_medida_id=data.get('unidad_medida_id', ''),
            id=data.get('id', ''),
        )


@dataclass
class CartaTecnologica:
    """
    Receta (carta tecnológica) de un plato.

    Los gastos otros_gastos, combustible y salario son costos fijos por
    tanda y se suman completos a cada unidad producida.
    """
    id: str
    plato_id: str
    ingredientes_receta: List[IngredienteReceta] = field(default_factory=list)
    otros_gastos: float = 0.0
    combustible: float = 0.0
    salario: float = 0.0
    notas_preparacion: Optional[str] = None

    @property
    def gastos_indirectos(self) -> float:
        return self.otros_gastos + self.combustible + self.salario

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'plato_id': self.plato_id,
            'ingredientes_receta': [i.to_dict() for i in self.ingredientes_receta],
            'otros_gastos': self.otros_gastos,
            'combustible': self.combustible,
            'salario': self.salario,
            'notas_preparacion': self.notas_preparacion,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartaTecnologica':
        return cls(
            id=data['id'],
            plato_id=data.get('plato_id', ''),
            ingredientes_receta=[
                IngredienteReceta.from_dict(i) for i in data.get('ingredientes_receta', [])
            ],
            otros_gastos=_float(data.get('otros_gastos')),
            combustible=_float(data.get('combustible')),
            salario=_float(data.get('salario')),
            notas_preparacion=data.get('notas_preparacion'),
        )


# Columnas de precio del menú
CAMPOS_PRECIO = (
    'precio_restaurante',
    'precio_mandado',
    'precio_catauro',
    'precio_cocina',
    'precio_bar',
    'precio_zelle_mandado',
    'precio_zelle_restaurante',
)


@dataclass
class MenuPrecioItem:
    """Precios de venta de un plato por canal."""
    plato_id: str
    precio_restaurante: Optional[float] = None
    precio_mandado: Optional[float] = None
    precio_catauro: Optional[float] = None
    precio_cocina: Optional[float] = None
    precio_bar: Optional[float] = None
    precio_zelle_mandado: Optional[float] = None
    precio_zelle_restaurante: Optional[float] = None

    def precio_para(self, servicio: RestauranteServicio) -> Optional[float]:
        """
        Obtiene el precio del plato para un canal de venta.

        Busca la columna 'precio_<servicio>'; para canales Zelle usa la
        columna zelle correspondiente; en otro caso, el precio de restaurante.
        """
        clave = servicio.clave_precio
        if clave in CAMPOS_PRECIO and getattr(self, clave) is not None:
            return getattr(self, clave)
        if 'zelle' in clave:
            if 'mandado' in clave and self.precio_zelle_mandado is not None:
                return self.precio_zelle_mandado
            if 'restaurante' in clave and self.precio_zelle_restaurante is not None:
                return self.precio_zelle_restaurante
        return self.precio_restaurante

    def to_dict(self) -> Dict[str, Any]:
        data = {'plato_id': self.plato_id}
        for campo in CAMPOS_PRECIO:
            data[campo] = getattr(self, campo)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MenuPrecioItem':
        return cls(
            plato_id=data['plato_id'],
            **{campo: _opt_float(data.get(campo)) for campo in CAMPOS_PRECIO}
        )


# ==============================================================================
# INVENTARIO
# ==============================================================================

@dataclass
class InventarioItem:
    """
    Registro de inventario de un ingrediente (uno por producto base).

    Solo las funciones de asiento del InventoryService modifican
    entradas, salidas y precio_promedio_ponderado.

    Attributes:
        producto_base_id: Producto al que pertenece (también es su ID)
        unidad_medida_id: Unidad en la que se lleva el stock
        entradas: Acumulado de entradas
        salidas: Acumulado de salidas
        precio_promedio_ponderado: Costo unitario promedio vigente
        stock_minimo: Umbral de alerta
    """
    producto_base_id: str
    unidad_medida_id: str
    entradas: float = 0.0
    salidas: float = 0.0
    precio_promedio_ponderado: float = 0.0
    stock_minimo: float = 0.0

    @property
    def id(self) -> str:
        return self.producto_base_id

    @property
    def stock_actual(self) -> float:
        """Stock disponible (puede ser negativo solo como señal de corrección)."""
        return self.entradas - self.salidas

    @property
    def valor(self) -> float:
        return self.stock_actual * self.precio_promedio_ponderado

    @property
    def bajo_minimo(self) -> bool:
        return self.stock_actual < self.stock_minimo

    def to_dict(self) -> Dict[str, Any]:
        return {
            'producto_base_id': self.producto_base_id,
            'unidad_medida_id': self.unidad_medida_id,
            'entradas': self.entradas,
            'salidas': self.salidas,
            'precio_promedio_ponderado': self.precio_promedio_ponderado,
            'stock_minimo': self.stock_minimo,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InventarioItem':
        return cls(
            producto_base_id=data['producto_base_id'],
            unidad_medida_id=data.get('unidad_medida_id', ''),
            entradas=_float(data.get('entradas')),
            salidas=_float(data.get('salidas')),
            precio_promedio_ponderado=_float(data.get('precio_promedio_ponderado')),
            stock_minimo=_float(data.get('stock_minimo')),
        )


@dataclass
class Faltante:
    """Detalle de un ingrediente insuficiente para una venta."""
    producto_base_id: str
    nombre: str
    requerido: float
    disponible: float
    unidad: str = ''

    @property
    def faltante(self) -> float:
        return self.requerido - self.disponible

    def to_dict(self) -> Dict[str, Any]:
        return {
            'producto_base_id': self.producto_base_id,
            'nombre': self.nombre,
            'requerido': self.requerido,
            'disponible': self.disponible,
            'faltante': self.faltante,
            'unidad': self.unidad,
        }


# ==============================================================================
# TRANSACCIONES
# ==============================================================================

@dataclass
class IngredienteDescontado:
    """Consumo exacto de un ingrediente causado por una venta."""
    producto_base_id: str
    cantidad: float
    unidad_medida_id: str
    costo_unitario: float = 0.0

    @property
    def costo_total(self) -> float:
        return self.cantidad * self.costo_unitario

    def to_dict(self) -> Dict[str, Any]:
        return {
            'producto_base_id': self.producto_base_id,
            'cantidad': self.cantidad,
            'unidad_medida_id': self.unidad_medida_id,
            'costo_unitario': self.costo_unitario,
            'costo_total': self.costo_total,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IngredienteDescontado':
        return cls(
            producto_base_id=data['producto_base_id'],
            cantidad=_float(data.get('cantidad')),
            unidad_medida_id=data.get('unidad_medida_id', ''),
            costo_unitario=_float(data.get('costo_unitario')),
        )


@dataclass
class Transaccion:
    """
    Asiento del libro de transacciones (venta, compra o ajuste).

    Attributes:
        id_transaccion: Identificador único
        fecha: Fecha ISO (YYYY-MM-DDTHH:MM:SS)
        tipo_transaccion: Tipo de movimiento
        estado_pago: Estado de pago actual
        cantidad: Cantidad en la unidad original
        precio_unitario: Precio unitario en la unidad original
        importe_total: cantidad * precio_unitario
        costo_total_transaccion: Costo de lo vendido (ventas)
        utilidad_transaccion: importe_total - costo_total_transaccion (ventas)
        comision_servicio: Comisión del canal calculada al vender
        ingredientes_descontados: Consumo por ingrediente (ventas)
        cantidad_convertida: Cantidad en unidad de inventario (compras/ajustes)
        precio_unitario_convertido: Precio por unidad de inventario (compras)
        fecha_pago: Fecha en que se liquidó (si se cobró/pagó después)
    """
    id_transaccion: str
    fecha: str
    tipo_transaccion: TipoTransaccion
    estado_pago: EstadoPago
    cantidad: float
    precio_unitario: float = 0.0
    importe_total: float = 0.0
    producto_plato_nombre: str = ''
    servicio_proveedor_nombre: str = ''
    plato_relacionado_id: Optional[str] = None
    producto_base_relacionado_id: Optional[str] = None
    servicio_id: Optional[str] = None
    proveedor_id: Optional[str] = None
    costo_total_transaccion: float = 0.0
    utilidad_transaccion: float = 0.0
    comision_servicio: float = 0.0
    impuesto_terceros: float = 0.0
    ingredientes_descontados: List[IngredienteDescontado] = field(default_factory=list)
    unidad_compra_id: Optional[str] = None
    unidad_medida_inventario_id: Optional[str] = None
    cantidad_convertida: Optional[float] = None
    precio_unitario_convertido: Optional[float] = None
    nombre_deudor: Optional[str] = None
    descripcion_pago_deuda: Optional[str] = None
    fecha_pago: Optional[str] = None
    referencia_factura_proveedor: Optional[str] = None
    notas: Optional[str] = None

    @property
    def mes(self) -> str:
        return self.fecha[:7]

    @property
    def es_venta(self) -> bool:
        return self.tipo_transaccion is TipoTransaccion.VENTA

    @property
    def es_compra(self) -> bool:
        return self.tipo_transaccion is TipoTransaccion.COMPRA

    @property
    def es_pendiente(self) -> bool:
        return self.estado_pago.es_pendiente

    @property
    def fecha_liquidacion(self) -> str:
        """Fecha en que el dinero se movió (pago posterior o fecha original)."""
        return self.fecha_pago or self.fecha

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id_transaccion': self.id_transaccion,
            'fecha': self.fecha,
            'tipo_transaccion': self.tipo_transaccion.value,
            'estado_pago': self.estado_pago.value,
            'cantidad': self.cantidad,
            'precio_unitario': self.precio_unitario,
            'importe_total': self.importe_total,
            'producto_plato_nombre': self.producto_plato_nombre,
            'servicio_proveedor_nombre': self.servicio_proveedor_nombre,
            'plato_relacionado_id': self.plato_relacionado_id,
            'producto_base_relacionado_id': self.producto_base_relacionado_id,
            'servicio_id': self.servicio_id,
            'proveedor_id': self.proveedor_id,
            'costo_total_transaccion': self.costo_total_transaccion,
            'utilidad_transaccion': self.utilidad_transaccion,
            'comision_servicio': self.comision_servicio,
            'impuesto_terceros': self.impuesto_terceros,
            'ingredientes_descontados': [i.to_dict() for i in self.ingredientes_descontados],
            'unidad_compra_id': self.unidad_compra_id,
            'unidad_medida_inventario_id': self.unidad_medida_inventario_id,
            'cantidad_convertida': self.cantidad_convertida,
            'precio_unitario_convertido': self.precio_unitario_convertido,
            'nombre_deudor': self.nombre_deudor,
            'descripcion_pago_deuda': self.descripcion_pago_deuda,
            'fecha_pago': self.fecha_pago,
            'referencia_factura_proveedor': self.referencia_factura_proveedor,
            'notas': self.notas,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaccion':
        """Crea instancia desde diccionario."""
        return cls(
            id_transaccion=data['id_transaccion'],
            fecha=data.get('fecha', ''),
            tipo_transaccion=TipoTransaccion(data.get('tipo_transaccion')),
            estado_pago=EstadoPago(data.get('estado_pago', EstadoPago.EFECTIVO.value)),
            cantidad=_float(data.get('cantidad')),
            precio_unitario=_float(data.get('precio_unitario')),
            importe_total=_float(data.get('importe_total')),
            producto_plato_nombre=data.get('producto_plato_nombre', ''),
            servicio_proveedor_nombre=data.get('servicio_proveedor_nombre', ''),
            plato_relacionado_id=data.get('plato_relacionado_id'),
            producto_base_relacionado_id=data.get('producto_base_relacionado_id'),
            servicio_id=data.get('servicio_id'),
            proveedor_id=data.get('proveedor_id'),
            costo_total_transaccion=_float(data.get('costo_total_transaccion')),
            utilidad_transaccion=_float(data.get('utilidad_transaccion')),
            comision_servicio=_float(data.get('comision_servicio')),
            impuesto_terceros=_float(data.get('impuesto_terceros')),
            ingredientes_descontados=[
                IngredienteDescontado.from_dict(i)
                for i in data.get('ingredientes_descontados', [])
            ],
            unidad_compra_id=data.get('unidad_compra_id'),
            unidad_medida_inventario_id=data.get('unidad_medida_inventario_id'),
            cantidad_convertida=_opt_float(data.get('cantidad_convertida')),
            precio_unitario_convertido=_opt_float(data.get('precio_unitario_convertido')),
            nombre_deudor=data.get('nombre_deudor'),
            descripcion_pago_deuda=data.get('descripcion_pago_deuda'),
            fecha_pago=data.get('fecha_pago'),
            referencia_factura_proveedor=data.get('referencia_factura_proveedor'),
            notas=data.get('notas'),
        )


@dataclass
class OtroGasto:
    """Gasto que no pasa por inventario (alquiler, luz, impuestos...)."""
    id: str
    fecha: str
    descripcion: str
    categoria: str
    importe: float
    notas: Optional[str] = None

    @property
    def mes(self) -> str:
        return self.fecha[:7]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'fecha': self.fecha,
            'descripcion': self.descripcion,
            'categoria': self.categoria,
            'importe': self.importe,
            'notas': self.notas,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OtroGasto':
        return cls(
            id=data['id'],
            fecha=data.get('fecha', ''),
            descripcion=data.get('descripcion', ''),
            categoria=data.get('categoria', CategoriaGasto.OTROS_VARIOS.value),
            importe=_float(data.get('importe')),
            notas=data.get('notas'),
        )


# ==============================================================================
# CIERRES Y REPORTES
# ==============================================================================

@dataclass
class GastoPorCategoria:
    categoria: str
    total: float

    def to_dict(self) -> Dict[str, Any]:
        return {'categoria': self.categoria, 'total': self.total}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GastoPorCategoria':
        return cls(categoria=data.get('categoria', ''), total=_float(data.get('total')))


@dataclass
class CierreMensual:
    """
    Cierre mensual: foto inmutable del resultado de un mes.

    Invariante: saldo_final_mes == saldo_inicial + utilidad_neta_mes.
    El saldo inicial de un cierre es el saldo final del anterior,
    excepto el primero (valor manual).
    """
    mes: str
    saldo_inicial: float
    total_ingresos: float = 0.0
    total_costo_ventas: float = 0.0
    utilidad_bruta: float = 0.0
    total_compras_inventario: float = 0.0
    total_comisiones_servicio_ventas: float = 0.0
    gastos_por_categoria: List[GastoPorCategoria] = field(default_factory=list)
    total_otros_gastos_directos: float = 0.0
    total_impuestos_terceros_ventas: float = 0.0
    gastos_operativos_totales: float = 0.0
    utilidad_antes_impuesto_negocio: float = 0.0
    impuesto_negocio_pagado: float = 0.0
    utilidad_neta_mes: float = 0.0
    saldo_final_mes: float = 0.0
    saldo_inicial_manual: bool = False
    fecha_cierre: Optional[str] = None
    notas_cierre: Optional[str] = None

    @property
    def id(self) -> str:
        return self.mes

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.mes,
            'mes': self.mes,
            'saldo_inicial': self.saldo_inicial,
            'total_ingresos': self.total_ingresos,
            'total_costo_ventas': self.total_costo_ventas,
            'utilidad_bruta': self.utilidad_bruta,
            'total_compras_inventario': self.total_compras_inventario,
            'total_comisiones_servicio_ventas': self.total_comisiones_servicio_ventas,
            'gastos_por_categoria': [g.to_dict() for g in self.gastos_por_categoria],
            'total_otros_gastos_directos': self.total_otros_gastos_directos,
            'total_impuestos_terceros_ventas': self.total_impuestos_terceros_ventas,
            'gastos_operativos_totales': self.gastos_operativos_totales,
            'utilidad_antes_impuesto_negocio': self.utilidad_antes_impuesto_negocio,
            'impuesto_negocio_pagado': self.impuesto_negocio_pagado,
            'utilidad_neta_mes': self.utilidad_neta_mes,
            'saldo_final_mes': self.saldo_final_mes,
            'saldo_inicial_manual': self.saldo_inicial_manual,
            'fecha_cierre': self.fecha_cierre,
            'notas_cierre': self.notas_cierre,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CierreMensual':
        """Crea instancia desde diccionario."""
        return cls(
            mes=data.get('mes') or data['id'],
            saldo_inicial=_float(data.get('saldo_inicial')),
            total_ingresos=_float(data.get('total_ingresos')),
            total_costo_ventas=_float(data.get('total_costo_ventas')),
            utilidad_bruta=_float(data.get('utilidad_bruta')),
            total_compras_inventario=_float(data.get('total_compras_inventario')),
            total_comisiones_servicio_ventas=_float(data.get('total_comisiones_servicio_ventas')),
            gastos_por_categoria=[
                GastoPorCategoria.from_dict(g) for g in data.get('gastos_por_categoria', [])
            ],
            total_otros_gastos_directos=_float(data.get('total_otros_gastos_directos')),
            total_impuestos_terceros_ventas=_float(data.get('total_impuestos_terceros_ventas')),
            gastos_operativos_totales=_float(data.get('gastos_operativos_totales')),
            utilidad_antes_impuesto_negocio=_float(data.get('utilidad_antes_impuesto_negocio')),
            impuesto_negocio_pagado=_float(data.get('impuesto_negocio_pagado')),
            utilidad_neta_mes=_float(data.get('utilidad_neta_mes')),
            saldo_final_mes=_float(data.get('saldo_final_mes')),
            saldo_inicial_manual=bool(data.get('saldo_inicial_manual', False)),
            fecha_cierre=data.get('fecha_cierre'),
            notas_cierre=data.get('notas_cierre'),
        )


@dataclass
class LineaFichaCosto:
    """Línea de la ficha de costo de un plato."""
    producto_base_id: str
    nombre_producto: str
    cantidad_receta: float
    unidad_receta: str
    cantidad_inventario: float
    unidad_inventario: str
    costo_unitario: float

    @property
    def costo_total(self) -> float:
        return self.cantidad_inventario * self.costo_unitario

    def to_dict(self) -> Dict[str, Any]:
        return {
            'producto_base_id': self.producto_base_id,
            'nombre_producto': self.nombre_producto,
            'cantidad_receta': self.cantidad_receta,
            'unidad_receta': self.unidad_receta,
            'cantidad_inventario': self.cantidad_inventario,
            'unidad_inventario': self.unidad_inventario,
            'costo_unitario': self.costo_unitario,
            'costo_total': self.costo_total,
            'sin_costo': self.costo_unitario == 0,
        }


@dataclass
class FichaCostoPlato:
    """Ficha de costo de producción de un plato."""
    plato_id: str
    nombre_plato: str
    ingredientes: List[LineaFichaCosto] = field(default_factory=list)
    otros_gastos: float = 0.0
    combustible: float = 0.0
    salario: float = 0.0

    @property
    def costo_total_ingredientes(self) -> float:
        return sum(linea.costo_total for linea in self.ingredientes)

    @property
    def costo_total_produccion_unitario(self) -> float:
        return self.costo_total_ingredientes + self.otros_gastos + self.combustible + self.salario

    @property
    def incompleta(self) -> bool:
        """True si algún ingrediente aún no tiene costo promedio."""
        return any(linea.costo_unitario == 0 for linea in self.ingredientes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'plato_id': self.plato_id,
            'nombre_plato': self.nombre_plato,
            'ingredientes': [linea.to_dict() for linea in self.ingredientes],
            'costo_total_ingredientes': self.costo_total_ingredientes,
            'otros_gastos': self.otros_gastos,
            'combustible': self.combustible,
            'salario': self.salario,
            'costo_total_produccion_unitario': self.costo_total_produccion_unitario,
            'incompleta': self.incompleta,
        }


@dataclass
class BalanceGeneral:
    """Balance general a una fecha de corte."""
    fecha_corte: str
    efectivo: float
    cuentas_por_cobrar: float
    inventario: float
    cuentas_por_pagar: float

    @property
    def total_activos(self) -> float:
        return self.efectivo + self.cuentas_por_cobrar + self.inventario

    @property
    def total_pasivos(self) -> float:
        return self.cuentas_por_pagar

    @property
    def patrimonio(self) -> float:
        return self.total_activos - self.total_pasivos

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fecha_corte': self.fecha_corte,
            'efectivo': self.efectivo,
            'cuentas_por_cobrar': self.cuentas_por_cobrar,
            'inventario': self.inventario,
            'total_activos': self.total_activos,
            'cuentas_por_pagar': self.cuentas_por_pagar,
            'total_pasivos': self.total_pasivos,
            'patrimonio': self.patrimonio,
        }


# ==============================================================================
# CONFIGURACIÓN
# ==============================================================================

@dataclass
class Configuracion:
    """Configuración del negocio (solo lectura para el motor)."""
    id: str = 'general'
    comision_catauro_pct: float = 0.1
    comision_mandado_pct: float = 0.1
    zelle_mandado_valor: float = 1.0
    zelle_restaurante_valor: float = 1.0
    nombre_restaurante: str = 'Lady Beer'
    slogan_restaurante: Optional[str] = None
    moneda_principal: str = 'CUP'
    simbolo_moneda: str = '$'
    direccion_restaurante: Optional[str] = None
    telefono_restaurante: Optional[str] = None
    id_fiscal_restaurante: Optional[str] = None
    default_estado_pago: EstadoPago = EstadoPago.EFECTIVO

    def comision_para(self, nombre_servicio: str) -> float:
        """Porcentaje de comisión que aplica a un canal de venta."""
        nombre = (nombre_servicio or '').lower()
        if 'catauro' in nombre:
            return self.comision_catauro_pct
        if 'mandado' in nombre:
            return self.comision_mandado_pct
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'comision_catauro_pct': self.comision_catauro_pct,
            'comision_mandado_pct': self.comision_mandado_pct,
            'zelle_mandado_valor': self.zelle_mandado_valor,
            'zelle_restaurante_valor': self.zelle_restaurante_valor,
            'nombre_restaurante': self.nombre_restaurante,
            'slogan_restaurante': self.slogan_restaurante,
            'moneda_principal': self.moneda_principal,
            'simbolo_moneda': self.simbolo_moneda,
            'direccion_restaurante': self.direccion_restaurante,
            'telefono_restaurante': self.telefono_restaurante,
            'id_fiscal_restaurante': self.id_fiscal_restaurante,
            'default_estado_pago': self.default_estado_pago.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Configuracion':
        defaults = cls()
        try:
            estado = EstadoPago(data.get('default_estado_pago', defaults.default_estado_pago.value))
        except ValueError:
            estado = defaults.default_estado_pago
        return cls(
            id=data.get('id', defaults.id),
            comision_catauro_pct=_float(data.get('comision_catauro_pct'), defaults.comision_catauro_pct),
            comision_mandado_pct=_float(data.get('comision_mandado_pct'), defaults.comision_mandado_pct),
            zelle_mandado_valor=_float(data.get('zelle_mandado_valor'), defaults.zelle_mandado_valor),
            zelle_restaurante_valor=_float(data.get('zelle_restaurante_valor'), defaults.zelle_restaurante_valor),
            nombre_restaurante=data.get('nombre_restaurante', defaults.nombre_restaurante),
            slogan_restaurante=data.get('slogan_restaurante'),
            moneda_principal=data.get('moneda_principal', defaults.moneda_principal),
            simbolo_moneda=data.get('simbolo_moneda', defaults.simbolo_moneda),
            direccion_restaurante=data.get('direccion_restaurante'),
            telefono_restaurante=data.get('telefono_restaurante'),
            id_fiscal_restaurante=data.get('id_fiscal_restaurante'),
            default_estado_pago=estado,
        )
