# ==============================================================================
# SERVICIO DE RESPALDOS Y EXPORTACIÓN
# ==============================================================================
# Dos mecanismos:
#   1. Exportar / importar la instantánea completa del almacén (JSON con
#      todas las listas de entidades). Importar reemplaza todo de forma
#      atómica tras validar la estructura.
#   2. Backups diarios en ZIP de los archivos de datos con rotación.
#
# FORMATO ZIP: backup_YYYY-MM-DD.zip (se conservan los últimos N)
# ==============================================================================

import logging
import os
import zipfile
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from app_costeo import __version__
from app_costeo.exceptions import StorageUnavailable, ValidationError
from app_costeo.repositories import TIPOS_ENTIDAD
from app_costeo.services.utils import Reloj, ahora, formatear_fecha


logger = logging.getLogger(__name__)


class BackupService:
    """
    Servicio para respaldo de datos.

    Responsabilidades:
    - Exportar e importar la instantánea completa
    - Crear backups diarios en formato ZIP
    - Rotar backups antiguos (mantener solo los últimos N)

    Uso:
        backup_service = BackupService(store)
        backup_service.run_daily_backup()
    """

    MAX_BACKUPS = 7
    BACKUP_DIR_NAME = 'backups'

    def __init__(
        self,
        store,
        backup_root: Optional[str] = None,
        max_backups: Optional[int] = None,
        reloj: Reloj = None
    ):
        """
        Args:
            store: DataStore a respaldar
            backup_root: Carpeta de backups (por defecto <datos>/backups)
            max_backups: Cantidad de ZIP a conservar
            reloj: Función que devuelve la hora actual
        """
        self.store = store
        self.backup_root = backup_root or os.path.join(store.base_path, self.BACKUP_DIR_NAME)
        self.max_backups = max_backups or self.MAX_BACKUPS
        self.reloj = reloj or ahora
        os.makedirs(self.backup_root, exist_ok=True)

    # =========================================================================
    # EXPORTAR / IMPORTAR
    # =========================================================================

    def exportar(self) -> Dict[str, Any]:
        """
        Instantánea completa del almacén.

        Returns:
            {'version': str, 'fecha_exportacion': str, 'datos': {tipo: [registros]}}
        """
        datos = self.store.snapshot()
        logger.info("Exportación completa: %s", ', '.join(f"{t}={len(r)}" for t, r in datos.items()))
        return {
            'version': __version__,
            'fecha_exportacion': formatear_fecha(self.reloj()),
            'datos': datos,
        }

    def _validar_estructura(self, datos: Any) -> Dict[str, List[Dict[str, Any]]]:
        if not isinstance(datos, dict):
            raise ValidationError("La importación debe ser un objeto JSON")
        desconocidos = sorted(set(datos) - set(TIPOS_ENTIDAD))
        if desconocidos:
            raise ValidationError(
                f"Tipos de entidad desconocidos: {', '.join(desconocidos)}",
                {'tipos': desconocidos}
            )
        for tipo, registros in datos.items():
            if not isinstance(registros, list):
                raise ValidationError(f"'{tipo}' debe ser una lista", {'tipo': tipo})
            id_field = self.store.repo(tipo).id_field
            for indice, registro in enumerate(registros):
                if not isinstance(registro, dict) or registro.get(id_field) in (None, ''):
                    raise ValidationError(
                        f"Registro {indice} de '{tipo}' sin '{id_field}'",
                        {'tipo': tipo, 'indice': indice}
                    )
        return datos

    def importar(self, data: Dict[str, Any]) -> Dict[str, int]:
        """
        Reemplaza todo el almacén con una instantánea.

        Acepta el formato de exportar() o directamente {tipo: [registros]}.
        Los tipos ausentes quedan vacíos.

        Returns:
            {tipo: cantidad de registros importados}

        Raises:
            ValidationError: Estructura inválida (no se modifica nada)
        """
        datos = data.get('datos', data) if isinstance(data, dict) else data
        datos = self._validar_estructura(datos)
        self.store.reemplazar(datos)
        conteo = {tipo: len(datos.get(tipo, [])) for tipo in TIPOS_ENTIDAD}
        logger.info("Importación completa: %s", conteo)
        return conteo

    # =========================================================================
    # BACKUPS ZIP
    # =========================================================================

    def _get_today_zip_path(self) -> str:
        today = self.reloj().strftime('%Y-%m-%d')
        return os.path.join(self.backup_root, f'backup_{today}.zip')

    def _backup_exists_today(self) -> bool:
        zip_path = self._get_today_zip_path()
        return os.path.exists(zip_path) and os.path.getsize(zip_path) > 0

    def _get_existing_backups(self) -> List[str]:
        """
        Archivos backup_YYYY-MM-DD.zip, más reciente primero.
        """
        backups = []
        for item in os.listdir(self.backup_root):
            if not (item.startswith('backup_') and item.endswith('.zip')):
                continue
            if not os.path.isfile(os.path.join(self.backup_root, item)):
                continue
            try:
                datetime.strptime(item[7:-4], '%Y-%m-%d')
            except ValueError:
                continue
            backups.append(item)
        backups.sort(reverse=True)
        return backups

    def _backup_json_files(self, zip_path: str) -> Tuple[int, List[str]]:
        """
        Crea el ZIP con los archivos de datos existentes.

        Returns:
            Tupla (archivos_agregados, lista_de_errores)
        """
        added = 0
        errors = []
        try:
            with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as zf:
                for src in self.store.files():
                    if os.path.exists(src):
                        zf.write(src, os.path.basename(src))
                        added += 1
        except OSError as e:
            errors.append(f"Error creando ZIP: {e}")
            if os.path.exists(zip_path):
                os.remove(zip_path)
        return added, errors

    def _delete_old_backups(self) -> int:
        deleted = 0
        for backup_name in self._get_existing_backups()[self.max_backups:]:
            try:
                os.remove(os.path.join(self.backup_root, backup_name))
                deleted += 1
                logger.info("Eliminado backup antiguo: %s", backup_name)
            except OSError as e:
                logger.error("No se pudo eliminar %s: %s", backup_name, e)
        return deleted

    def crear_backup(self, force: bool = False) -> Dict[str, Any]:
        """
        Crea el backup ZIP del día.

        Args:
            force: Si True, lo recrea aunque ya exista uno hoy

        Returns:
            Dict con resultado: {success, message, files_added, errors, backup_path}
        """
        zip_path = self._get_today_zip_path()
        result = {
            'success': False,
            'message': '',
            'files_added': 0,
            'errors': [],
            'backup_path': zip_path,
        }

        if not force and self._backup_exists_today():
            result['success'] = True
            result['message'] = 'Backup del día ya existe'
            logger.info("Backup ya existe hoy: %s", os.path.basename(zip_path))
            return result

        with self.store.unidad_de_trabajo():
            added, errors = self._backup_json_files(zip_path)
        result['success'] = added > 0 and not errors
        result['files_added'] = added
        result['errors'] = errors
        if errors:
            result['message'] = 'Error al crear backup'
            logger.error("Backup fallido: %s", errors)
        elif added:
            size_kb = round(os.path.getsize(zip_path) / 1024, 2)
            result['message'] = f'Backup creado: {added} archivos ({size_kb} KB)'
            logger.info("Backup creado: %s (%d archivos, %s KB)", os.path.basename(zip_path), added, size_kb)
        else:
            result['message'] = 'No se encontraron archivos para respaldar'
        return result

    def rotate_backups(self) -> Dict[str, int]:
        deleted = self._delete_old_backups()
        return {
            'deleted_count': deleted,
            'remaining_count': len(self._get_existing_backups()),
        }

    def run_daily_backup(self) -> Dict[str, Any]:
        """Crea el backup del día (si falta) y rota los antiguos."""
        return {
            'backup': self.crear_backup(),
            'rotation': self.rotate_backups(),
        }

    def get_backup_status(self) -> Dict[str, Any]:
        """Información de los backups existentes."""
        backup_info = []
        for backup_name in self._get_existing_backups():
            backup_path = os.path.join(self.backup_root, backup_name)
            size_bytes = os.path.getsize(backup_path)
            try:
                with zipfile.ZipFile(backup_path, 'r') as zf:
                    file_count = len(zf.namelist())
            except zipfile.BadZipFile:
                file_count = 0
            backup_info.append({
                'filename': backup_name,
                'date': backup_name[7:-4],
                'files': file_count,
                'size_bytes': size_bytes,
                'size_kb': round(size_bytes / 1024, 2),
            })
        return {
            'total_backups': len(backup_info),
            'max_backups': self.max_backups,
            'backup_root': self.backup_root,
            'backups': backup_info,
            'today_exists': self._backup_exists_today(),
        }


def run_startup_backup(backup_service: BackupService) -> None:
    """
    Ejecuta el backup al iniciar la aplicación.

    Un fallo se registra en el log sin impedir el arranque.
    """
    try:
        result = backup_service.run_daily_backup()
    except (OSError, StorageUnavailable):
        logger.exception("No se pudo ejecutar el backup de inicio")
        return
    if not result['backup']['success'] and result['backup']['errors']:
        logger.warning("Backup de inicio con errores: %s", result['backup']['errors'])
