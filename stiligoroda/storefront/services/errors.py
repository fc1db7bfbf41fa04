"""
Exceptions raised by the catalog synchronization services.

Data-quality problems (bad CSV rows, missing categories, absent media files)
are reported in result objects; these exceptions cover environmental
failures that leave nothing sensible to report.
"""


class CatalogSyncError(Exception):
    """Базовая ошибка синхронизации каталога"""
    pass


class CatalogExportError(CatalogSyncError):
    """Не удалось собрать или записать экспорт каталога"""
    pass
