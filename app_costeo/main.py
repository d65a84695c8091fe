# ==============================================================================
# APLICACIÓN FLASK - API JSON del motor de costeo
# ==============================================================================
# Las rutas solo traducen HTTP ↔ servicios. Toda la lógica vive en services/.
#
# ERRORES:
#   Los servicios lanzan CosteoError; el manejador global los convierte en
#   {"ok": false, "error": ..., "code": ..., "detalle": ...} con el status
#   HTTP de cada excepción (400 / 404 / 409 / 503).
# ==============================================================================

import atexit
import logging
import os
from typing import Any, Dict, Optional

from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from app_costeo.app_container import AppContainer
from app_costeo.config import Settings
from app_costeo.exceptions import CosteoError, ValidationError
from app_costeo.logging_config import setup_logging
from app_costeo.performance_logger import (
    get_function_stats,
    init_profiling,
    log_function_stats_report,
)
from app_costeo.services import run_startup_backup


logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api')


# ═══════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def _container() -> AppContainer:
    return current_app.extensions['costeo']


def _json() -> Dict[str, Any]:
    """Cuerpo JSON de la petición (objeto)."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("El cuerpo debe ser un objeto JSON")
    return data


def _serializar(valor: Any) -> Any:
    if hasattr(valor, 'to_dict'):
        return valor.to_dict()
    if isinstance(valor, list):
        return [_serializar(v) for v in valor]
    if isinstance(valor, dict):
        return {k: _serializar(v) for k, v in valor.items()}
    return valor


def _ok(data: Any = None, status: int = 200, **extra):
    body = {'ok': True, 'data': _serializar(data)}
    body.update(extra)
    return jsonify(body), status


def _rango():
    return request.args.get('desde'), request.args.get('hasta')


def _requerir_args(*nombres: str) -> None:
    faltan = [n for n in nombres if not request.args.get(n)]
    if faltan:
        raise ValidationError(
            f"Parámetros requeridos: {', '.join(faltan)}", {'faltan': faltan}
        )


# ═══════════════════════════════════════════════════════════════════════════
# INVENTARIO
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/inventario', methods=['GET'])
def inventario_listar():
    """Inventario con stock, promedio y valor por producto."""
    c = _container()
    productos = {p.id: p.nombre_producto for p in c.catalog_service.listar_productos()}
    items = (c.inventory_service.productos_bajo_minimo()
             if request.args.get('bajo_minimo') == '1' else c.inventory_service.listar())
    filas = []
    for item in items:
        fila = item.to_dict()
        fila.update({
            'nombre_producto': productos.get(item.producto_base_id, ''),
            'stock_actual': item.stock_actual,
            'valor': item.valor,
            'bajo_minimo': item.bajo_minimo,
        })
        filas.append(fila)
    return _ok(filas, valor_total=c.inventory_service.valor_total())


@api.route('/inventario/<producto_id>', methods=['GET'])
def inventario_obtener(producto_id):
    c = _container()
    item = c.inventory_service.get_item(producto_id)
    if item is None:
        item = c.inventory_service.crear_registro(producto_id)
    fila = item.to_dict()
    fila['stock_actual'] = item.stock_actual
    return _ok(fila)


@api.route('/inventario/<producto_id>/ajuste', methods=['POST'])
def inventario_ajustar(producto_id):
    data = _json()
    tipo = str(data.get('tipo', 'entrada')).lower()
    if tipo not in ('entrada', 'salida'):
        raise ValidationError("tipo debe ser 'entrada' o 'salida'", {'tipo': tipo})
    ajuste = _container().inventory_service.registrar_ajuste(
        producto_id,
        data.get('cantidad'),
        entrada=tipo == 'entrada',
        precio=data.get('precio'),
        fecha=data.get('fecha'),
        notas=data.get('notas'),
    )
    return _ok(ajuste, 201)


@api.route('/inventario/<producto_id>/stock-minimo', methods=['PUT'])
def inventario_stock_minimo(producto_id):
    data = _json()
    item = _container().inventory_service.actualizar_stock_minimo(producto_id, data.get('stock_minimo'))
    return _ok(item)


@api.route('/ajustes/<transaccion_id>', methods=['DELETE'])
def ajuste_eliminar(transaccion_id):
    _container().inventory_service.eliminar_ajuste(transaccion_id)
    return _ok()


@api.route('/inventario/suficiencia', methods=['POST'])
def inventario_suficiencia():
    """Verifica un consumo {producto_id: cantidad} contra el stock."""
    data = _json()
    faltantes = _container().inventory_service.verificar_suficiencia(
        {k: float(v) for k, v in data.get('requerimientos', {}).items()}
    )
    return _ok(faltantes, suficiente=not faltantes)


# ═══════════════════════════════════════════════════════════════════════════
# CONVERSIONES
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/conversiones', methods=['GET'])
def conversiones_listar():
    return _ok(_container().conversion_service.listar_conversiones())


@api.route('/conversiones', methods=['POST'])
def conversiones_crear():
    data = _json()
    regla = _container().conversion_service.crear_conversion(
        data.get('unidad_origen_id'),
        data.get('unidad_destino_id'),
        data.get('factor'),
        data.get('producto_base_id'),
    )
    return _ok(regla, 201)


@api.route('/conversiones/<conversion_id>', methods=['PUT'])
def conversiones_actualizar(conversion_id):
    return _ok(_container().conversion_service.actualizar_conversion(conversion_id, _json()))


@api.route('/conversiones/<conversion_id>', methods=['DELETE'])
def conversiones_eliminar(conversion_id):
    _container().conversion_service.eliminar_conversion(conversion_id)
    return _ok()


@api.route('/conversiones/estandar', methods=['POST'])
def conversiones_estandar():
    return _ok(_container().conversion_service.sembrar_conversiones_estandar(), 201)


@api.route('/conversiones/convertir', methods=['GET'])
def conversiones_convertir():
    _requerir_args('cantidad', 'origen', 'destino')
    resultado = _container().conversion_service.convertir(
        request.args.get('cantidad', type=float),
        request.args['origen'],
        request.args['destino'],
        request.args.get('producto_id'),
    )
    return _ok({'cantidad': resultado})


# ═══════════════════════════════════════════════════════════════════════════
# COMPRAS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/compras', methods=['GET'])
def compras_listar():
    desde, hasta = _rango()
    return _ok(_container().purchase_service.listar_compras(desde, hasta))


@api.route('/compras', methods=['POST'])
def compras_registrar():
    data = _json()
    compra = _container().purchase_service.registrar_compra(
        producto_id=data.get('producto_base_id'),
        cantidad=data.get('cantidad'),
        precio_unitario=data.get('precio_unitario'),
        unidad_compra_id=data.get('unidad_compra_id'),
        proveedor_id=data.get('proveedor_id'),
        fecha=data.get('fecha'),
        estado=data.get('estado_pago'),
        referencia_factura_proveedor=data.get('referencia_factura_proveedor'),
        nombre_deudor=data.get('nombre_deudor'),
        notas=data.get('notas'),
    )
    return _ok(compra, 201)


@api.route('/compras/<compra_id>', methods=['PUT'])
def compras_editar(compra_id):
    return _ok(_container().purchase_service.editar_compra(compra_id, _json()))


@api.route('/compras/<compra_id>', methods=['DELETE'])
def compras_eliminar(compra_id):
    _container().purchase_service.eliminar_compra(compra_id)
    return _ok()


@api.route('/compras/<compra_id>/pagar', methods=['POST'])
def compras_pagar(compra_id):
    data = _json()
    compra = _container().purchase_service.pagar_compra(
        compra_id, data.get('metodo'), data.get('fecha_pago')
    )
    return _ok(compra)


@api.route('/compras/<compra_id>/deshacer-pago', methods=['POST'])
def compras_deshacer_pago(compra_id):
    return _ok(_container().purchase_service.deshacer_pago_compra(compra_id))


@api.route('/cuentas-por-pagar', methods=['GET'])
def cuentas_por_pagar():
    cuentas = _container().purchase_service.cuentas_por_pagar()
    return _ok(cuentas, total=sum(c.importe_total for c in cuentas))


# ═══════════════════════════════════════════════════════════════════════════
# VENTAS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/ventas', methods=['GET'])
def ventas_listar():
    desde, hasta = _rango()
    return _ok(_container().sales_service.listar_ventas(desde, hasta))


@api.route('/ventas', methods=['POST'])
def ventas_registrar():
    data = _json()
    venta = _container().sales_service.registrar_venta(
        plato_id=data.get('plato_id'),
        servicio_id=data.get('servicio_id'),
        cantidad=data.get('cantidad'),
        fecha=data.get('fecha'),
        precio_unitario=data.get('precio_unitario'),
        estado=data.get('estado_pago'),
        nombre_deudor=data.get('nombre_deudor'),
        descripcion_pago_deuda=data.get('descripcion_pago_deuda'),
        impuesto_terceros=data.get('impuesto_terceros', 0),
        notas=data.get('notas'),
    )
    return _ok(venta, 201)


@api.route('/ventas/<venta_id>', methods=['DELETE'])
def ventas_eliminar(venta_id):
    _container().sales_service.eliminar_venta(venta_id)
    return _ok()


@api.route('/ventas/<venta_id>/pagar', methods=['POST'])
def ventas_pagar(venta_id):
    data = _json()
    venta = _container().sales_service.marcar_venta_pagada(
        venta_id, data.get('metodo'), data.get('fecha_pago')
    )
    return _ok(venta)


@api.route('/ventas/<venta_id>/deshacer-pago', methods=['POST'])
def ventas_deshacer_pago(venta_id):
    return _ok(_container().sales_service.deshacer_pago_venta(venta_id))


@api.route('/ventas/<venta_id>/cuenta', methods=['PUT'])
def ventas_modificar_cuenta(venta_id):
    return _ok(_container().sales_service.modificar_cuenta_pendiente(venta_id, _json()))


@api.route('/cuentas-por-cobrar', methods=['GET'])
def cuentas_por_cobrar():
    cuentas = _container().sales_service.cuentas_por_cobrar()
    return _ok(cuentas, total=sum(c.importe_total for c in cuentas))


# ═══════════════════════════════════════════════════════════════════════════
# COSTOS DE PLATOS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/platos/<plato_id>/ficha-costo', methods=['GET'])
def platos_ficha_costo(plato_id):
    return _ok(_container().recipe_cost_service.calcular_ficha_costo(plato_id))


@api.route('/platos/disponibilidad', methods=['GET'])
def platos_disponibilidad():
    return _ok(_container().recipe_cost_service.disponibilidad_platos())


# ═══════════════════════════════════════════════════════════════════════════
# OTROS GASTOS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/gastos', methods=['GET'])
def gastos_listar():
    desde, hasta = _rango()
    return _ok(_container().expense_service.listar_gastos(desde, hasta, request.args.get('categoria')))


@api.route('/gastos', methods=['POST'])
def gastos_registrar():
    data = _json()
    gasto = _container().expense_service.registrar_gasto(
        data.get('descripcion'),
        data.get('categoria'),
        data.get('importe'),
        data.get('fecha'),
        data.get('notas'),
    )
    return _ok(gasto, 201)


@api.route('/gastos/<gasto_id>', methods=['PUT'])
def gastos_actualizar(gasto_id):
    return _ok(_container().expense_service.actualizar_gasto(gasto_id, _json()))


@api.route('/gastos/<gasto_id>', methods=['DELETE'])
def gastos_eliminar(gasto_id):
    _container().expense_service.eliminar_gasto(gasto_id)
    return _ok()


# ═══════════════════════════════════════════════════════════════════════════
# CIERRES MENSUALES
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/cierres', methods=['GET'])
def cierres_listar():
    c = _container()
    return _ok(c.closing_service.listar_cierres(), proximo_mes=c.closing_service.sugerir_proximo_mes())


@api.route('/cierres/calcular', methods=['POST'])
def cierres_calcular():
    """Vista previa del cierre (no guarda nada)."""
    data = _json()
    cierre = _container().closing_service.calcular_cierre(
        data.get('mes'),
        data.get('impuesto_negocio_pagado', 0),
        data.get('saldo_inicial_manual'),
    )
    return _ok(cierre)


@api.route('/cierres', methods=['POST'])
def cierres_cerrar():
    data = _json()
    cierre = _container().closing_service.cerrar_mes(
        data.get('mes'),
        data.get('impuesto_negocio_pagado', 0),
        data.get('saldo_inicial_manual'),
        data.get('notas_cierre'),
    )
    return _ok(cierre, 201)


@api.route('/cierres/ultimo', methods=['DELETE'])
def cierres_revertir_ultimo():
    return _ok(_container().closing_service.revertir_ultimo_cierre())


@api.route('/cierres/<mes>', methods=['DELETE'])
def cierres_revertir(mes):
    return _ok(_container().closing_service.revertir_cierre(mes))


@api.route('/cierres/resumen', methods=['GET'])
def cierres_resumen():
    _requerir_args('anio')
    return _ok(_container().closing_service.resumen_cierres(
        request.args['anio'], request.args.get('trimestre')
    ))


# ═══════════════════════════════════════════════════════════════════════════
# REPORTES
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/reportes/estado-cuenta', methods=['GET'])
def reportes_estado_cuenta():
    _requerir_args('desde', 'hasta')
    return _ok(_container().statements_service.estado_cuenta(*_rango()))


@api.route('/reportes/flujo-efectivo', methods=['GET'])
def reportes_flujo_efectivo():
    _requerir_args('desde', 'hasta')
    return _ok(_container().statements_service.flujo_efectivo(*_rango()))


@api.route('/reportes/balance-general', methods=['GET'])
def reportes_balance_general():
    _requerir_args('mes')
    return _ok(_container().statements_service.balance_general(request.args['mes']))


@api.route('/reportes/rendimiento-platos', methods=['GET'])
def reportes_rendimiento_platos():
    _requerir_args('desde', 'hasta')
    return _ok(_container().statements_service.rendimiento_platos(*_rango()))


@api.route('/reportes/inventario-reconstruido', methods=['GET'])
def reportes_inventario_reconstruido():
    items = _container().statements_service.replay_inventario(request.args.get('hasta'))
    return _ok(list(items.values()))


# ═══════════════════════════════════════════════════════════════════════════
# CATÁLOGO
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/unidades', methods=['GET'])
def unidades_listar():
    return _ok(_container().catalog_service.listar_unidades())


@api.route('/unidades', methods=['POST'])
def unidades_crear():
    data = _json()
    return _ok(_container().catalog_service.crear_unidad(data.get('unidad_nombre'), data.get('id')), 201)


@api.route('/unidades/<unidad_id>', methods=['PUT'])
def unidades_actualizar(unidad_id):
    return _ok(_container().catalog_service.actualizar_unidad(unidad_id, _json().get('unidad_nombre')))


@api.route('/unidades/<unidad_id>', methods=['DELETE'])
def unidades_eliminar(unidad_id):
    eliminadas = _container().catalog_service.eliminar_unidad(unidad_id)
    return _ok({'conversiones_eliminadas': eliminadas})


@api.route('/productos', methods=['GET'])
def productos_listar():
    return _ok(_container().catalog_service.listar_productos())


@api.route('/productos', methods=['POST'])
def productos_crear():
    data = _json()
    producto = _container().catalog_service.crear_producto(
        data.get('nombre_producto'), data.get('um_predeterminada'), data.get('stock_minimo', 0)
    )
    return _ok(producto, 201)


@api.route('/productos/<producto_id>', methods=['PUT'])
def productos_actualizar(producto_id):
    return _ok(_container().catalog_service.actualizar_producto(producto_id, _json()))


@api.route('/productos/<producto_id>', methods=['DELETE'])
def productos_eliminar(producto_id):
    return _ok(_container().catalog_service.eliminar_producto(producto_id))


@api.route('/platos', methods=['GET'])
def platos_listar():
    return _ok(_container().catalog_service.listar_platos())


@api.route('/platos', methods=['POST'])
def platos_crear():
    return _ok(_container().catalog_service.crear_plato(_json().get('nombre_plato')), 201)


@api.route('/platos/<plato_id>', methods=['PUT'])
def platos_actualizar(plato_id):
    return _ok(_container().catalog_service.actualizar_plato(plato_id, _json().get('nombre_plato')))


@api.route('/platos/<plato_id>', methods=['DELETE'])
def platos_eliminar(plato_id):
    _container().catalog_service.eliminar_plato(plato_id)
    return _ok()


@api.route('/platos/<plato_id>/carta', methods=['GET'])
def platos_carta(plato_id):
    return _ok(_container().recipe_cost_service.carta_obligatoria(plato_id))


@api.route('/platos/<plato_id>/carta', methods=['PUT'])
def platos_guardar_carta(plato_id):
    data = _json()
    carta = _container().catalog_service.guardar_carta(
        plato_id,
        data.get('ingredientes_receta', []),
        data.get('otros_gastos', 0),
        data.get('combustible', 0),
        data.get('salario', 0),
        data.get('notas_preparacion'),
    )
    return _ok(carta)


@api.route('/platos/<plato_id>/carta', methods=['DELETE'])
def platos_eliminar_carta(plato_id):
    _container().catalog_service.eliminar_carta(plato_id)
    return _ok()


@api.route('/platos/<plato_id>/precios', methods=['PUT'])
def platos_precios(plato_id):
    return _ok(_container().catalog_service.guardar_precios(plato_id, _json()))


@api.route('/menu-precios', methods=['GET'])
def menu_precios_listar():
    return _ok(_container().catalog_service.listar_precios())


@api.route('/proveedores', methods=['GET'])
def proveedores_listar():
    return _ok(_container().catalog_service.listar_proveedores())


@api.route('/proveedores', methods=['POST'])
def proveedores_crear():
    return _ok(_container().catalog_service.crear_proveedor(_json().get('nombre_proveedor')), 201)


@api.route('/proveedores/<proveedor_id>', methods=['DELETE'])
def proveedores_eliminar(proveedor_id):
    _container().catalog_service.eliminar_proveedor(proveedor_id)
    return _ok()


@api.route('/servicios', methods=['GET'])
def servicios_listar():
    return _ok(_container().catalog_service.listar_servicios())


@api.route('/servicios', methods=['POST'])
def servicios_crear():
    return _ok(_container().catalog_service.crear_servicio(_json().get('nombre_servicio')), 201)


@api.route('/servicios/<servicio_id>', methods=['DELETE'])
def servicios_eliminar(servicio_id):
    _container().catalog_service.eliminar_servicio(servicio_id)
    return _ok()


# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN Y DATOS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/configuracion', methods=['GET'])
def configuracion_obtener():
    return _ok(_container().config_service.obtener())


@api.route('/configuracion', methods=['PUT'])
def configuracion_guardar():
    return _ok(_container().config_service.guardar(_json()))


@api.route('/datos/exportar', methods=['GET'])
def datos_exportar():
    return _ok(_container().backup_service.exportar())


@api.route('/datos/importar', methods=['POST'])
def datos_importar():
    return _ok(_container().backup_service.importar(_json()))


@api.route('/datos/backup', methods=['POST'])
def datos_backup():
    resultado = _container().backup_service.crear_backup(force=request.args.get('force') == '1')
    _container().backup_service.rotate_backups()
    return _ok(resultado, 201 if resultado['success'] else 500)


@api.route('/datos/backups', methods=['GET'])
def datos_backups():
    return _ok(_container().backup_service.get_backup_status())


@api.route('/rendimiento', methods=['GET'])
def rendimiento_funciones():
    """Estadísticas de las funciones perfiladas."""
    return _ok(get_function_stats())


# ═══════════════════════════════════════════════════════════════════════════
# MANEJO DE ERRORES
# ═══════════════════════════════════════════════════════════════════════════

def _registrar_errores(app: Flask) -> None:

    @app.errorhandler(CosteoError)
    def _costeo_error(error: CosteoError):
        if error.http_status >= 500:
            logger.error("%s: %s", error.code, error.message)
        else:
            logger.warning("Operación rechazada (%s): %s", error.code, error.message)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(HTTPException)
    def _http_error(error: HTTPException):
        return jsonify({
            'ok': False,
            'error': error.description,
            'code': error.name,
            'detalle': {},
        }), error.code

    @app.after_request
    def set_security_headers(response):
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
        return response


# ═══════════════════════════════════════════════════════════════════════════
# FÁBRICA DE LA APLICACIÓN
# ═══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None, container: Optional[AppContainer] = None) -> Flask:
    """
    Crea la aplicación Flask.

    Args:
        settings: Configuración de despliegue (None = variables de entorno)
        container: Contenedor ya construido (tests); None = singleton global

    Returns:
        Aplicación lista para servir
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_dir)

    app = Flask(__name__)
    app.config.update(settings.to_flask())

    if container is None:
        container = AppContainer.get_instance(settings.data_dir, max_backups=settings.max_backups)
    app.extensions['costeo'] = container

    if settings.enable_profiling:
        init_profiling(app)
    app.register_blueprint(api)
    _registrar_errores(app)

    if not settings.testing:
        # resumen de rendimiento al cerrar el proceso
        atexit.register(log_function_stats_report)

    if settings.startup_backup and not settings.testing:
        run_startup_backup(container.backup_service)

    logger.info("Aplicación iniciada. Datos en %s", container.base_path)
    return app


if __name__ == "__main__":
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))
    create_app().run(debug=DEBUG, host=HOST, port=PORT)
