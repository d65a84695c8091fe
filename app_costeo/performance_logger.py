# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide rendimiento de rutas y operaciones del motor sin afectar la respuesta.
# Los registros van al logger 'app_costeo.performance' (ver logging_config.py).
#
# ACTIVAR/DESACTIVAR: variable de entorno COSTEO_ENABLE_PROFILING (1/0)
# ==============================================================================

import logging
import os
import threading
import time
from collections import defaultdict
from functools import wraps

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

ENABLE_PROFILING = os.environ.get('COSTEO_ENABLE_PROFILING', '1') not in ('0', 'false', 'False')

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

logger = logging.getLogger('app_costeo.performance')

# Mapeo de rutas a nombres legibles
ROUTE_NAMES = {
    # Inventario
    'GET /api/inventario': 'Ver inventario',
    'POST /api/inventario/<producto_id>/ajuste': 'Ajustar inventario',

    # Compras y ventas
    'POST /api/compras': 'Registrar compra',
    'POST /api/compras/<compra_id>/pagar': 'Pagar compra',
    'PUT /api/compras/<compra_id>': 'Editar compra',
    'POST /api/ventas': 'Registrar venta',
    'POST /api/ventas/<venta_id>/pagar': 'Cobrar venta',
    'DELETE /api/ventas/<venta_id>': 'Eliminar venta',

    # Costos
    'GET /api/platos/<plato_id>/ficha-costo': 'Ficha de costo',

    # Cierres y reportes
    'POST /api/cierres': 'Cerrar mes',
    'DELETE /api/cierres/ultimo': 'Revertir último cierre',
    'GET /api/reportes/estado-cuenta': 'Estado de cuenta',
    'GET /api/reportes/flujo-efectivo': 'Flujo de efectivo',
    'GET /api/reportes/balance-general': 'Balance general',

    # Respaldo
    'GET /api/datos/exportar': 'Exportar datos',
    'POST /api/datos/importar': 'Importar datos',
}


# ═══════════════════════════════════════════════════════════════════════════
# ESTADÍSTICAS DE FUNCIONES (en memoria)
# ═══════════════════════════════════════════════════════════════════════════

# {nombre: {calls, total_time, max_time, lentas}}
_function_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0, 'lentas': 0})
_stats_lock = threading.Lock()


def _get_route_name(method, rule):
    """Nombre legible para una ruta; si no está mapeada, la ruta tal cual."""
    return ROUTE_NAMES.get(f"{method} {rule}", f"{method} {rule}")


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ HOOKS PARA FLASK (before/after request)
# ═══════════════════════════════════════════════════════════════════════════

def init_profiling(app):
    """
    Inicializa el profiling en una app Flask.
    Registra hooks before_request y after_request.

    Uso:
        from app_costeo.performance_logger import init_profiling
        init_profiling(app)
    """
    if not ENABLE_PROFILING:
        return

    @app.before_request
    def _start_timer():
        from flask import g
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        from flask import g, request

        if not hasattr(g, 'start_time'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000  # ms
        rule = str(request.url_rule) if request.url_rule else request.path
        action = _get_route_name(request.method, rule)

        if elapsed >= THRESHOLD_CRITICAL:
            logger.warning("Ruta MUY LENTA: %s (%s %s) %.0f ms",
                           action, request.method, request.path, elapsed)
        elif elapsed >= THRESHOLD_WARNING:
            logger.warning("Ruta lenta: %s (%s %s) %.0f ms",
                           action, request.method, request.path, elapsed)
        else:
            logger.debug("%s (%s %s) %.0f ms -> %s",
                         action, request.method, request.path, elapsed, response.status_code)
        return response


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ DECORADOR PARA OPERACIONES DEL MOTOR
# ═══════════════════════════════════════════════════════════════════════════

def _acumular(nombre: str, elapsed_ms: float) -> None:
    with _stats_lock:
        stats = _function_stats[nombre]
        stats['calls'] += 1
        stats['total_time'] += elapsed_ms
        stats['max_time'] = max(stats['max_time'], elapsed_ms)
        if elapsed_ms >= THRESHOLD_WARNING:
            stats['lentas'] += 1


def profile_function(func=None, name=None):
    """
    Decorador que cronometra una operación del motor.

    Se puede usar con o sin argumentos:

        @profile_function
        def recalcular(): ...

        @profile_function(name="Cerrar mes")
        def cerrar_mes(...): ...

    Las llamadas que superan THRESHOLD_WARNING se registran en el log.
    Con el profiling desactivado devuelve la función sin envolver.
    """
    def decorator(fn):
        if not ENABLE_PROFILING:
            return fn
        nombre = name or fn.__qualname__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            inicio = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - inicio) * 1000
                _acumular(nombre, elapsed_ms)
                if elapsed_ms >= THRESHOLD_CRITICAL:
                    logger.warning("[CRÍTICO] %s: %.0f ms", nombre, elapsed_ms)
                elif elapsed_ms >= THRESHOLD_WARNING:
                    logger.warning("[LENTO] %s: %.0f ms", nombre, elapsed_ms)

        return wrapper

    if callable(func):
        return decorator(func)
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ REPORTE DE ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

def get_function_stats():
    """
    Estadísticas acumuladas de las operaciones perfiladas.

    Returns:
        dict: {nombre: {calls, avg_time, max_time, lentas}} (tiempos en ms)
    """
    with _stats_lock:
        return {
            nombre: {
                'calls': s['calls'],
                'avg_time': round(s['total_time'] / s['calls'], 2) if s['calls'] else 0.0,
                'max_time': round(s['max_time'], 2),
                'lentas': s['lentas'],
            }
            for nombre, s in _function_stats.items()
        }


def log_function_stats_report():
    """Escribe en el log las operaciones ordenadas de más lenta a más rápida."""
    stats = get_function_stats()
    orden = sorted(stats.items(), key=lambda item: item[1]['avg_time'], reverse=True)
    for nombre, s in orden:
        logger.info(
            "%s: %d llamadas, promedio %.0f ms, máximo %.0f ms, %d lentas",
            nombre, s['calls'], s['avg_time'], s['max_time'], s['lentas']
        )


def reset_stats():
    with _stats_lock:
        _function_stats.clear()


__all__ = [
    'ENABLE_PROFILING',
    'init_profiling',
    'profile_function',
    'get_function_stats',
    'log_function_stats_report',
    'reset_stats',
]
