"""
Storefront views package.

Структура:
- import_export.py - Обмен данными каталога (экспорт, импорт, CSV, WildBerries)
"""

from .import_export import (
    catalog_export,
    catalog_import,
    products_import_csv,
    products_export_csv,
    products_sample_csv,
    import_wildberries,
)

__all__ = [
    'catalog_export',
    'catalog_import',
    'products_import_csv',
    'products_export_csv',
    'products_sample_csv',
    'import_wildberries',
]
