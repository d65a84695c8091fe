# ==============================================================================
# SERVICIO DE CIERRES MENSUALES
# ==============================================================================
# Un cierre congela el resultado de un mes:
#
#   utilidad_bruta          = ingresos - costo de ventas
#   gastos_operativos       = compras liquidadas + comisiones + otros gastos
#   utilidad_antes_impuesto = utilidad_bruta - gastos_operativos
#   utilidad_neta           = utilidad_antes_impuesto - impuesto del negocio
#   saldo_final             = saldo_inicial + utilidad_neta
#
# El saldo inicial es el saldo final del cierre anterior. Solo el primer
# cierre de la historia recibe un saldo inicial manual.
# Los cierres se crean en orden (mes siguiente al último) y solo el último
# puede revertirse.
# ==============================================================================

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from app_costeo.exceptions import (
    ClosingNotReversible,
    DuplicateClosing,
    UnknownReference,
    ValidationError,
)
from app_costeo.models import (
    CierreMensual,
    GastoPorCategoria,
    OtroGasto,
    TipoTransaccion,
    Transaccion,
)
from app_costeo.performance_logger import profile_function
from app_costeo.repositories import CIERRES, OTROS_GASTOS
from app_costeo.services.utils import (
    Reloj,
    ahora,
    formatear_fecha,
    mes_anterior,
    mes_bloqueado,
    mes_siguiente,
    no_negativo,
    primer_dia,
    ultimo_dia,
    validar_mes,
)


logger = logging.getLogger(__name__)


def _en_rango(fecha: str, desde: str, hasta: str) -> bool:
    return desde <= (fecha or '')[:10] <= hasta


def resultado_periodo(store, desde: str, hasta: str) -> Dict[str, Any]:
    """
    Agrega la actividad de [desde, hasta] con la fórmula del cierre.

    Ventas: todas las fechadas en el período (cobradas o no). Compras: las
    liquidadas dentro del período, por fecha de liquidación, así una compra
    pendiente al cierre cuenta en el mes en que se paga. Otros gastos:
    todos, agrupados por categoría.

    Args:
        store: DataStore
        desde: Fecha inicial inclusiva (YYYY-MM-DD)
        hasta: Fecha final inclusiva (YYYY-MM-DD)

    Returns:
        Diccionario con los totales del período, sin impuesto del negocio
    """
    ventas: List[Transaccion] = []
    compras: List[Transaccion] = []
    for data in store.transacciones.get_all():
        transaccion = Transaccion.from_dict(data)
        tipo = transaccion.tipo_transaccion
        if tipo is TipoTransaccion.VENTA and _en_rango(transaccion.fecha, desde, hasta):
            ventas.append(transaccion)
        elif (tipo is TipoTransaccion.COMPRA and not transaccion.es_pendiente
              and _en_rango(transaccion.fecha_liquidacion, desde, hasta)):
            compras.append(transaccion)

    gastos = [
        OtroGasto.from_dict(g) for g in store.get_all(OTROS_GASTOS)
        if _en_rango(g.get('fecha'), desde, hasta)
    ]
    por_categoria: Dict[str, float] = defaultdict(float)
    for gasto in gastos:
        por_categoria[gasto.categoria] += gasto.importe

    ingresos = sum(v.importe_total for v in ventas)
    costo_ventas = sum(v.costo_total_transaccion for v in ventas)
    total_compras = sum(c.importe_total for c in compras)
    comisiones = sum(v.comision_servicio for v in ventas)
    otros = sum(g.importe for g in gastos)

    utilidad_bruta = ingresos - costo_ventas
    gastos_operativos = total_compras + comisiones + otros
    return {
        'total_ingresos': ingresos,
        'total_costo_ventas': costo_ventas,
        'utilidad_bruta': utilidad_bruta,
        'total_compras_inventario': total_compras,
        'total_comisiones_servicio_ventas': comisiones,
        'gastos_por_categoria': [
            GastoPorCategoria(categoria=cat, total=total)
            for cat, total in sorted(por_categoria.items())
        ],
        'total_otros_gastos_directos': otros,
        'total_impuestos_terceros_ventas': sum(v.impuesto_terceros for v in ventas),
        'gastos_operativos_totales': gastos_operativos,
        'utilidad_antes_impuesto_negocio': utilidad_bruta - gastos_operativos,
        'cantidad_ventas': len(ventas),
        'cantidad_compras': len(compras),
        'cantidad_gastos': len(gastos),
    }


class ClosingService:
    """
    Servicio de cierres mensuales.

    Responsabilidades:
    - Vista previa y registro del cierre de un mes
    - Reversión del último cierre
    - Consultas: meses cerrados, próximo mes sugerido, resúmenes
    """

    def __init__(self, store, reloj: Reloj = None):
        """
        Args:
            store: DataStore
            reloj: Función que devuelve la hora actual
        """
        self.store = store
        self.reloj = reloj or ahora

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def listar_cierres(self) -> List[CierreMensual]:
        """Cierres en orden cronológico."""
        return [CierreMensual.from_dict(c) for c in self.store.cierres.ordenados()]

    def obtener_cierre(self, mes: str) -> CierreMensual:
        data = self.store.cierres.get(validar_mes(mes))
        if data is None:
            raise UnknownReference('Cierre', mes)
        return CierreMensual.from_dict(data)

    def ultimo_cierre(self) -> Optional[CierreMensual]:
        data = self.store.cierres.ultimo()
        return CierreMensual.from_dict(data) if data else None

    def mes_cerrado(self, fecha: str) -> bool:
        """True si el mes de `fecha` (YYYY-MM o fecha ISO) ya no admite movimientos."""
        return mes_bloqueado(self.store, str(fecha)[:7])

    def sugerir_proximo_mes(self) -> str:
        """Mes siguiente al último cierre, o el mes anterior al actual si no hay cierres."""
        ultimo = self.store.cierres.ultimo()
        if ultimo is None:
            return mes_anterior(self.reloj().strftime('%Y-%m'))
        return mes_siguiente(ultimo['mes'])

    # =========================================================================
    # CÁLCULO
    # =========================================================================

    def _validar_mes_a_cerrar(self, mes: str) -> Optional[Dict[str, Any]]:
        """Devuelve el cierre anterior (o None) tras validar el mes."""
        if self.store.cierres.get(mes) is not None:
            raise DuplicateClosing(mes)
        actual = self.reloj().strftime('%Y-%m')
        if mes > actual:
            raise ValidationError(
                f"No se puede cerrar un mes futuro: {mes}",
                {'mes': mes, 'mes_actual': actual}
            )
        ultimo = self.store.cierres.ultimo()
        if ultimo is not None:
            esperado = mes_siguiente(ultimo['mes'])
            if mes != esperado:
                raise ValidationError(
                    f"El próximo mes a cerrar es {esperado} (último cierre: {ultimo['mes']})",
                    {'mes': mes, 'esperado': esperado, 'ultimo_cierre': ultimo['mes']}
                )
        return ultimo

    @profile_function(name="Calcular cierre")
    def calcular_cierre(
        self,
        mes: str,
        impuesto_negocio: Any = 0,
        saldo_inicial_manual: Any = None
    ) -> CierreMensual:
        """
        Calcula el cierre de un mes sin guardarlo.

        Args:
            mes: Mes a cerrar (YYYY-MM)
            impuesto_negocio: Impuesto pagado por el negocio en el mes (>= 0)
            saldo_inicial_manual: Solo para el primer cierre de la historia

        Returns:
            CierreMensual calculado

        Raises:
            DuplicateClosing: El mes ya está cerrado
            ValidationError: Mes fuera de orden o futuro, impuesto negativo,
                             saldo manual ausente o indebido
        """
        mes = validar_mes(mes)
        anterior = self._validar_mes_a_cerrar(mes)
        impuesto = no_negativo('impuesto_negocio_pagado', impuesto_negocio)

        manual = saldo_inicial_manual not in (None, '')
        if anterior is None:
            if not manual:
                raise ValidationError(
                    "El primer cierre requiere un saldo inicial manual",
                    {'mes': mes}
                )
            try:
                saldo_inicial = float(saldo_inicial_manual)
            except (TypeError, ValueError):
                raise ValidationError(
                    f"Saldo inicial inválido: {saldo_inicial_manual}",
                    {'saldo_inicial_manual': saldo_inicial_manual}
                ) from None
        else:
            if manual:
                raise ValidationError(
                    "El saldo inicial se toma del cierre anterior; no se admite un valor manual",
                    {'mes': mes, 'cierre_anterior': anterior['mes']}
                )
            saldo_inicial = float(anterior['saldo_final_mes'])

        totales = resultado_periodo(self.store, primer_dia(mes), ultimo_dia(mes))
        utilidad_neta = totales['utilidad_antes_impuesto_negocio'] - impuesto
        return CierreMensual(
            mes=mes,
            saldo_inicial=saldo_inicial,
            total_ingresos=totales['total_ingresos'],
            total_costo_ventas=totales['total_costo_ventas'],
            utilidad_bruta=totales['utilidad_bruta'],
            total_compras_inventario=totales['total_compras_inventario'],
            total_comisiones_servicio_ventas=totales['total_comisiones_servicio_ventas'],
            gastos_por_categoria=totales['gastos_por_categoria'],
            total_otros_gastos_directos=totales['total_otros_gastos_directos'],
            total_impuestos_terceros_ventas=totales['total_impuestos_terceros_ventas'],
            gastos_operativos_totales=totales['gastos_operativos_totales'],
            utilidad_antes_impuesto_negocio=totales['utilidad_antes_impuesto_negocio'],
            impuesto_negocio_pagado=impuesto,
            utilidad_neta_mes=utilidad_neta,
            saldo_final_mes=saldo_inicial + utilidad_neta,
            saldo_inicial_manual=anterior is None,
        )

    # =========================================================================
    # CIERRE Y REVERSIÓN
    # =========================================================================

    @profile_function(name="Cerrar mes")
    def cerrar_mes(
        self,
        mes: str,
        impuesto_negocio: Any = 0,
        saldo_inicial_manual: Any = None,
        notas: Optional[str] = None
    ) -> CierreMensual:
        """
        Calcula y guarda el cierre de un mes.

        A partir de aquí toda operación fechada en el mes se rechaza
        con PeriodClosed.
        """
        with self.store.unidad_de_trabajo():
            cierre = self.calcular_cierre(mes, impuesto_negocio, saldo_inicial_manual)
            cierre.fecha_cierre = formatear_fecha(self.reloj())
            cierre.notas_cierre = notas
            self.store.put(CIERRES, cierre.to_dict())
        logger.info(
            "Mes %s cerrado: saldo inicial %.2f, utilidad neta %.2f, saldo final %.2f",
            cierre.mes, cierre.saldo_inicial, cierre.utilidad_neta_mes, cierre.saldo_final_mes
        )
        return cierre

    def revertir_cierre(self, mes: str) -> CierreMensual:
        """
        Elimina un cierre, reabriendo su mes.

        Raises:
            UnknownReference: El mes no tiene cierre
            ClosingNotReversible: No es el último cierre
        """
        mes = validar_mes(mes)
        with self.store.unidad_de_trabajo():
            data = self.store.cierres.get(mes)
            if data is None:
                raise UnknownReference('Cierre', mes)
            ultimo = self.store.cierres.ultimo()
            if ultimo['mes'] != mes:
                logger.warning("Reversión rechazada del cierre %s (último: %s)", mes, ultimo['mes'])
                raise ClosingNotReversible(mes, ultimo['mes'])
            self.store.delete(CIERRES, mes)
        logger.info("Cierre %s revertido", mes)
        return CierreMensual.from_dict(data)

    def revertir_ultimo_cierre(self) -> CierreMensual:
        ultimo = self.store.cierres.ultimo()
        if ultimo is None:
            raise ValidationError("No hay cierres para revertir")
        return self.revertir_cierre(ultimo['mes'])

    # =========================================================================
    # RESÚMENES
    # =========================================================================

    def resumen_cierres(self, anio: Any, trimestre: Any = None) -> Dict[str, Any]:
        """
        Suma los cierres de un año o de un trimestre.

        Args:
            anio: Año (YYYY)
            trimestre: 1-4 o None para el año completo

        Returns:
            {
                'anio': int, 'trimestre': int|None, 'meses': [YYYY-MM cerrados],
                'saldo_inicial': float, 'saldo_final': float,
                'total_ingresos', 'total_costo_ventas', 'utilidad_bruta',
                'gastos_operativos_totales', 'impuesto_negocio_pagado',
                'utilidad_neta': float
            }
        """
        try:
            anio = int(anio)
            trimestre = int(trimestre) if trimestre not in (None, '') else None
        except (TypeError, ValueError):
            raise ValidationError(
                "Año o trimestre inválido", {'anio': anio, 'trimestre': trimestre}
            ) from None
        if trimestre is not None and trimestre not in (1, 2, 3, 4):
            raise ValidationError(f"Trimestre inválido: {trimestre}", {'trimestre': trimestre})

        if trimestre is None:
            meses = [f'{anio:04d}-{m:02d}' for m in range(1, 13)]
        else:
            inicio = (trimestre - 1) * 3 + 1
            meses = [f'{anio:04d}-{m:02d}' for m in range(inicio, inicio + 3)]

        cierres = [c for c in self.listar_cierres() if c.mes in meses]
        return {
            'anio': anio,
            'trimestre': trimestre,
            'meses': [c.mes for c in cierres],
            'saldo_inicial': cierres[0].saldo_inicial if cierres else 0.0,
            'saldo_final': cierres[-1].saldo_final_mes if cierres else 0.0,
            'total_ingresos': sum(c.total_ingresos for c in cierres),
            'total_costo_ventas': sum(c.total_costo_ventas for c in cierres),
            'utilidad_bruta': sum(c.utilidad_bruta for c in cierres),
            'gastos_operativos_totales': sum(c.gastos_operativos_totales for c in cierres),
            'impuesto_negocio_pagado': sum(c.impuesto_negocio_pagado for c in cierres),
            'utilidad_neta': sum(c.utilidad_neta_mes for c in cierres),
        }
