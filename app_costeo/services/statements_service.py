# ==============================================================================
# SERVICIO DE ESTADOS FINANCIEROS
# ==============================================================================
# Reportes de solo lectura calculados sobre los datos vivos:
#   - Estado de cuenta (fórmula del cierre sobre un rango cualquiera)
#   - Flujo de efectivo (solo dinero cobrado o pagado, por fecha de pago)
#   - Balance general a fin de mes (activos = pasivos + patrimonio)
#   - Rendimiento por plato
#
# Ninguna función de este módulo escribe en el almacén.
# ==============================================================================

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from app_costeo.models import (
    BalanceGeneral,
    InventarioItem,
    OtroGasto,
    ProductoBase,
    TipoTransaccion,
    Transaccion,
)
from app_costeo.performance_logger import profile_function
from app_costeo.repositories import OTROS_GASTOS, PRODUCTOS
from app_costeo.services.closing_service import resultado_periodo
from app_costeo.services.utils import ultimo_dia, validar_mes, validar_rango
from app_costeo.services.valuation import reconstruir_inventario, valor_inventario


logger = logging.getLogger(__name__)


class StatementsService:
    """
    Servicio de reportes financieros.

    Todas las cifras se derivan de transacciones, otros gastos y cierres;
    nada se guarda.
    """

    def __init__(self, store):
        self.store = store

    def _transacciones(self) -> List[Transaccion]:
        return [Transaccion.from_dict(t) for t in self.store.transacciones.get_all()]

    def _gastos(self) -> List[OtroGasto]:
        return [OtroGasto.from_dict(g) for g in self.store.get_all(OTROS_GASTOS)]

    def capital_inicial(self) -> float:
        """Saldo inicial manual del primer cierre (0 si no hay cierres)."""
        primero = self.store.cierres.primero()
        return float(primero['saldo_inicial']) if primero else 0.0

    # =========================================================================
    # ESTADO DE CUENTA
    # =========================================================================

    @profile_function(name="Estado de cuenta")
    def estado_cuenta(self, desde: str, hasta: str) -> Dict[str, Any]:
        """
        Resultado de un período arbitrario con los datos vivos.

        El saldo inicial se estima con el último cierre anterior al mes
        en que empieza el período.

        Args:
            desde: Fecha inicial (YYYY-MM-DD)
            hasta: Fecha final (YYYY-MM-DD)

        Returns:
            Totales del período, saldo inicial estimado y saldo final estimado
        """
        desde, hasta = validar_rango(desde, hasta)
        anterior = self.store.cierres.anterior_a(desde[:7])
        if anterior is not None:
            saldo_inicial = float(anterior['saldo_final_mes'])
        else:
            saldo_inicial = self.capital_inicial()

        totales = resultado_periodo(self.store, desde, hasta)
        utilidad_neta = totales['utilidad_antes_impuesto_negocio']
        resultado = dict(totales)
        resultado['gastos_por_categoria'] = [g.to_dict() for g in totales['gastos_por_categoria']]
        resultado.update({
            'desde': desde,
            'hasta': hasta,
            'cierre_referencia': anterior['mes'] if anterior else None,
            'saldo_inicial_estimado': saldo_inicial,
            'utilidad_neta_periodo': utilidad_neta,
            'saldo_final_estimado': saldo_inicial + utilidad_neta,
        })
        return resultado

    # =========================================================================
    # FLUJO DE EFECTIVO
    # =========================================================================

    def _movimientos_caja(self, desde: Optional[str], hasta: Optional[str]) -> List[Dict[str, Any]]:
        """Movimientos de dinero (fecha de liquidación en el rango)."""
        def en_rango(fecha: str) -> bool:
            dia = (fecha or '')[:10]
            return (not desde or dia >= desde) and (not hasta or dia <= hasta)

        movimientos = []
        for t in self._transacciones():
            if not t.estado_pago.mueve_caja or not en_rango(t.fecha_liquidacion):
                continue
            if t.tipo_transaccion is TipoTransaccion.VENTA:
                concepto = 'venta'
            elif t.tipo_transaccion is TipoTransaccion.COMPRA:
                concepto = 'compra'
            else:
                continue
            movimientos.append({
                'fecha': t.fecha_liquidacion,
                'concepto': concepto,
                'referencia': t.id_transaccion,
                'descripcion': t.producto_plato_nombre,
                'metodo': t.estado_pago.value,
                'importe': t.importe_total if concepto == 'venta' else -t.importe_total,
            })
        for gasto in self._gastos():
            if en_rango(gasto.fecha):
                movimientos.append({
                    'fecha': gasto.fecha,
                    'concepto': 'gasto',
                    'referencia': gasto.id,
                    'descripcion': gasto.descripcion,
                    'metodo': None,
                    'importe': -gasto.importe,
                })
        movimientos.sort(key=lambda m: m['fecha'])
        return movimientos

    @profile_function(name="Flujo de efectivo")
    def flujo_efectivo(self, desde: str, hasta: str) -> Dict[str, Any]:
        """
        Entradas y salidas de dinero del período.

        Una venta pendiente no aporta entrada aunque ya haya consumido
        inventario; cuenta el día en que se cobra.

        Returns:
            {
                'desde', 'hasta',
                'entradas_ventas': float,
                'salidas_compras': float,
                'salidas_otros_gastos': float,
                'flujo_neto': float,
                'por_metodo': {metodo: float},
                'detalle_diario': [{'fecha', 'entradas', 'salidas', 'neto'}],
                'movimientos': [...]
            }
        """
        desde, hasta = validar_rango(desde, hasta)
        movimientos = self._movimientos_caja(desde, hasta)

        entradas = sum(m['importe'] for m in movimientos if m['concepto'] == 'venta')
        salidas_compras = -sum(m['importe'] for m in movimientos if m['concepto'] == 'compra')
        salidas_gastos = -sum(m['importe'] for m in movimientos if m['concepto'] == 'gasto')

        por_metodo: Dict[str, float] = defaultdict(float)
        diario = defaultdict(lambda: {'entradas': 0.0, 'salidas': 0.0})
        for m in movimientos:
            if m['metodo']:
                por_metodo[m['metodo']] += m['importe']
            dia = diario[m['fecha'][:10]]
            if m['importe'] >= 0:
                dia['entradas'] += m['importe']
            else:
                dia['salidas'] += -m['importe']

        return {
            'desde': desde,
            'hasta': hasta,
            'entradas_ventas': entradas,
            'salidas_compras': salidas_compras,
            'salidas_otros_gastos': salidas_gastos,
            'flujo_neto': entradas - salidas_compras - salidas_gastos,
            'por_metodo': dict(por_metodo),
            'detalle_diario': [
                {'fecha': fecha, 'entradas': d['entradas'], 'salidas': d['salidas'],
                 'neto': d['entradas'] - d['salidas']}
                for fecha, d in sorted(diario.items())
            ],
            'movimientos': movimientos,
        }

    # =========================================================================
    # BALANCE GENERAL
    # =========================================================================

    def replay_inventario(self, hasta: Optional[str] = None) -> Dict[str, InventarioItem]:
        """
        Reconstruye el inventario a una fecha reproduciendo el libro.

        Args:
            hasta: Fecha límite inclusiva (YYYY-MM-DD); None = hoy

        Returns:
            {producto_id: InventarioItem}
        """
        unidades = {
            p['id']: ProductoBase.from_dict(p).um_predeterminada
            for p in self.store.get_all(PRODUCTOS)
        }
        return reconstruir_inventario(self._transacciones(), hasta=hasta, unidades=unidades)

    @staticmethod
    def _pendiente_al_corte(t: Transaccion, corte: str) -> bool:
        """True si la transacción existía y seguía sin pagar al cierre del día de corte."""
        if t.fecha[:10] > corte:
            return False
        if t.es_pendiente:
            return True
        return bool(t.fecha_pago) and t.fecha_pago[:10] > corte

    @profile_function(name="Balance general")
    def balance_general(self, mes: str) -> BalanceGeneral:
        """
        Balance general al último día del mes.

        Activos: efectivo (capital inicial + flujo acumulado), cuentas por
        cobrar e inventario reconstruido. Pasivos: cuentas por pagar.

        Args:
            mes: Mes de corte (YYYY-MM)
        """
        mes = validar_mes(mes)
        corte = ultimo_dia(mes)

        flujo = sum(m['importe'] for m in self._movimientos_caja(None, corte))
        por_cobrar = 0.0
        por_pagar = 0.0
        for t in self._transacciones():
            if not self._pendiente_al_corte(t, corte):
                continue
            if t.tipo_transaccion is TipoTransaccion.VENTA:
                por_cobrar += t.importe_total
            elif t.tipo_transaccion is TipoTransaccion.COMPRA:
                por_pagar += t.importe_total

        balance = BalanceGeneral(
            fecha_corte=corte,
            efectivo=self.capital_inicial() + flujo,
            cuentas_por_cobrar=por_cobrar,
            inventario=valor_inventario(self.replay_inventario(corte)),
            cuentas_por_pagar=por_pagar,
        )
        logger.debug("Balance al %s: activos %.2f pasivos %.2f",
                     corte, balance.total_activos, balance.total_pasivos)
        return balance

    # =========================================================================
    # RENDIMIENTO POR PLATO
    # =========================================================================

    def rendimiento_platos(self, desde: str, hasta: str, limite: int = 10) -> Dict[str, Any]:
        """
        Ventas, costo y utilidad agrupados por plato.

        Returns:
            {
                'desde', 'hasta',
                'resumen': {'total_ventas', 'unidades', 'ingresos', 'costo', 'utilidad'},
                'platos': [{'plato_id', 'nombre', 'unidades', 'ingresos', 'costo',
                            'utilidad', 'margen_pct'}],
                'mas_rentables': [...],
                'con_perdida': [...]
            }
        """
        desde, hasta = validar_rango(desde, hasta)
        ventas = [
            Transaccion.from_dict(t) for t in self.store.transacciones.en_rango(desde, hasta)
            if t.get('tipo_transaccion') == TipoTransaccion.VENTA.value
        ]

        por_plato = defaultdict(lambda: {'nombre': '', 'unidades': 0.0, 'ingresos': 0.0,
                                         'costo': 0.0, 'utilidad': 0.0})
        for venta in ventas:
            fila = por_plato[venta.plato_relacionado_id]
            fila['nombre'] = venta.producto_plato_nombre
            fila['unidades'] += venta.cantidad
            fila['ingresos'] += venta.importe_total
            fila['costo'] += venta.costo_total_transaccion
            fila['utilidad'] += venta.utilidad_transaccion

        platos = []
        for plato_id, fila in por_plato.items():
            margen = (fila['utilidad'] / fila['ingresos'] * 100) if fila['ingresos'] else 0.0
            platos.append({
                'plato_id': plato_id,
                'nombre': fila['nombre'],
                'unidades': fila['unidades'],
                'ingresos': round(fila['ingresos'], 2),
                'costo': round(fila['costo'], 2),
                'utilidad': round(fila['utilidad'], 2),
                'margen_pct': round(margen, 2),
            })
        platos.sort(key=lambda p: p['utilidad'], reverse=True)

        return {
            'desde': desde,
            'hasta': hasta,
            'resumen': {
                'total_ventas': len(ventas),
                'unidades': sum(v.cantidad for v in ventas),
                'ingresos': round(sum(v.importe_total for v in ventas), 2),
                'costo': round(sum(v.costo_total_transaccion for v in ventas), 2),
                'utilidad': round(sum(v.utilidad_transaccion for v in ventas), 2),
            },
            'platos': platos,
            'mas_rentables': [p for p in platos if p['utilidad'] >= 0][:limite],
            'con_perdida': sorted(
                (p for p in platos if p['utilidad'] < 0), key=lambda p: p['utilidad']
            )[:limite],
        }
