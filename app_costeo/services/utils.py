# ==============================================================================
# UTILIDADES COMPARTIDAS POR LOS SERVICIOS
# ==============================================================================
# Fechas (naive UTC, formato ISO), meses YYYY-MM, IDs y validación numérica.
# ==============================================================================

import calendar
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional, Tuple

from app_costeo.exceptions import (
    FutureDatedTransaction,
    InvalidQuantity,
    PeriodClosed,
    ValidationError,
)
from app_costeo.models import EstadoPago


Reloj = Callable[[], datetime]


def ahora() -> datetime:
    """Fecha y hora actual en UTC, sin zona horaria."""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def nuevo_id() -> str:
    """Identificador único para nuevas entidades."""
    return uuid.uuid4().hex


def parse_fecha(valor: Any) -> datetime:
    """
    Convierte una fecha a datetime naive.

    Acepta datetime, date o texto ISO ('YYYY-MM-DD' o 'YYYY-MM-DDTHH:MM:SS',
    con o sin zona; la zona se convierte a UTC).

    Raises:
        ValidationError: Si el valor no es una fecha válida
    """
    if isinstance(valor, datetime):
        dt = valor
    elif isinstance(valor, date):
        dt = datetime(valor.year, valor.month, valor.day)
    elif isinstance(valor, str) and valor.strip():
        texto = valor.strip().replace('Z', '+00:00')
        try:
            dt = datetime.fromisoformat(texto)
        except ValueError:
            raise ValidationError(f"Fecha inválida: {valor}", {'fecha': valor}) from None
    else:
        raise ValidationError(f"Fecha inválida: {valor!r}", {'fecha': valor})
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0)


def formatear_fecha(dt: datetime) -> str:
    return dt.strftime('%Y-%m-%dT%H:%M:%S')


def fecha_operacion(valor: Any, reloj: Reloj) -> str:
    """
    Normaliza la fecha de una operación y rechaza fechas futuras.

    Args:
        valor: Fecha recibida (None = ahora)
        reloj: Función que devuelve la hora actual

    Returns:
        Fecha ISO 'YYYY-MM-DDTHH:MM:SS'

    Raises:
        FutureDatedTransaction: Si la fecha es posterior a ahora
    """
    actual = reloj()
    if valor is None or valor == '':
        return formatear_fecha(actual)
    dt = parse_fecha(valor)
    # Una fecha sin hora del día actual es válida
    if isinstance(valor, str) and len(valor.strip()) == 10:
        if dt.date() > actual.date():
            raise FutureDatedTransaction(valor, formatear_fecha(actual))
    elif dt > actual:
        raise FutureDatedTransaction(formatear_fecha(dt), formatear_fecha(actual))
    return formatear_fecha(dt)


def validar_mes(mes: Any) -> str:
    """
    Valida un mes en formato YYYY-MM.

    Raises:
        ValidationError: Si el formato no es válido
    """
    try:
        datetime.strptime(str(mes), '%Y-%m')
    except ValueError:
        raise ValidationError(f"Mes inválido (se espera YYYY-MM): {mes}", {'mes': mes}) from None
    if len(str(mes)) != 7:
        raise ValidationError(f"Mes inválido (se espera YYYY-MM): {mes}", {'mes': mes})
    return str(mes)


def mes_siguiente(mes: str) -> str:
    anio, num = int(mes[:4]), int(mes[5:7])
    if num == 12:
        return f'{anio + 1:04d}-01'
    return f'{anio:04d}-{num + 1:02d}'


def mes_anterior(mes: str) -> str:
    anio, num = int(mes[:4]), int(mes[5:7])
    if num == 1:
        return f'{anio - 1:04d}-12'
    return f'{anio:04d}-{num - 1:02d}'


def primer_dia(mes: str) -> str:
    return f'{mes}-01'


def ultimo_dia(mes: str) -> str:
    anio, num = int(mes[:4]), int(mes[5:7])
    return f'{mes}-{calendar.monthrange(anio, num)[1]:02d}'


def validar_rango(desde: Any, hasta: Any) -> Tuple[str, str]:
    """
    Normaliza un rango de fechas a ('YYYY-MM-DD', 'YYYY-MM-DD').

    Raises:
        ValidationError: Si desde > hasta
    """
    inicio = parse_fecha(desde).strftime('%Y-%m-%d')
    fin = parse_fecha(hasta).strftime('%Y-%m-%d')
    if inicio > fin:
        raise ValidationError(
            f"Rango inválido: {inicio} es posterior a {fin}",
            {'desde': inicio, 'hasta': fin}
        )
    return inicio, fin


def positivo(campo: str, valor: Any) -> float:
    """
    Convierte a float y exige un valor > 0.

    Raises:
        InvalidQuantity: Si no es número o no es positivo
    """
    try:
        numero = float(valor)
    except (TypeError, ValueError):
        raise InvalidQuantity(campo, valor) from None
    if numero != numero or numero <= 0:
        raise InvalidQuantity(campo, valor)
    return numero


def no_negativo(campo: str, valor: Any, default: Optional[float] = 0.0) -> float:
    """Convierte a float y exige un valor >= 0."""
    if valor is None or valor == '':
        return default
    try:
        numero = float(valor)
    except (TypeError, ValueError):
        raise ValidationError(f"El campo '{campo}' debe ser numérico", {'campo': campo}) from None
    if numero != numero or numero < 0:
        raise ValidationError(
            f"El campo '{campo}' no puede ser negativo (recibido: {valor})",
            {'campo': campo, 'valor': valor}
        )
    return numero


def requerido(campo: str, valor: Any) -> str:
    """Exige un texto no vacío."""
    texto = (valor or '').strip() if isinstance(valor, str) else valor
    if not texto:
        raise ValidationError(f"El campo '{campo}' es obligatorio", {'campo': campo})
    return texto


def mes_bloqueado(store, mes: str) -> bool:
    """
    True si el mes tiene cierre o es anterior al primer cierre.

    Los meses previos al primer cierre quedan dentro de su saldo inicial
    manual y ya no admiten movimientos.
    """
    if store.cierres.get(mes) is not None:
        return True
    primero = store.cierres.primero()
    return primero is not None and mes < primero['mes']


def exigir_mes_abierto(store, fecha: str) -> None:
    """
    Rechaza operaciones fechadas en un mes cerrado.

    Raises:
        PeriodClosed: Si el mes de `fecha` está cerrado
    """
    mes = fecha[:7]
    if mes_bloqueado(store, mes):
        raise PeriodClosed(mes)


def parse_estado_pago(valor: Any, permitidos=None) -> EstadoPago:
    """
    Convierte texto a EstadoPago validando los valores permitidos.

    Raises:
        ValidationError: Si el estado no existe o no está permitido
    """
    if isinstance(valor, EstadoPago):
        estado = valor
    else:
        texto = str(valor or '').strip()
        try:
            estado = EstadoPago(texto if texto == EstadoPago.NA.value else texto.upper())
        except ValueError:
            raise ValidationError(f"Estado de pago inválido: {valor}", {'estado_pago': valor}) from None
    if permitidos is not None and estado not in permitidos:
        raise ValidationError(
            f"Estado de pago no permitido aquí: {estado.value}",
            {'estado_pago': estado.value, 'permitidos': sorted(e.value for e in permitidos)}
        )
    return estado
