"""
Restoring a catalog from an export archive (or a bare export document).

Order is fixed: categories (parents before children), products with their
variants, then media files. Every category and product is written in its own
transaction; a failing item is reported and the run continues.
"""
from __future__ import annotations

import io
import json
import logging
import posixpath
import zipfile
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.exceptions import SuspiciousFileOperation
from django.core.files.base import ContentFile
from django.core.files.storage import FileSystemStorage
from django.db import DatabaseError

from storefront.models import ProductTier, ProductVisibility
from storefront.services.catalog_store import CatalogStore

from .archive_writer import DATA_FILE, MEDIA_DIR
from .results import ImportOptions, ImportResult

logger = logging.getLogger(__name__)

ITEM_ERRORS = (DatabaseError, KeyError, TypeError, ValueError, InvalidOperation)
MEDIA_ERRORS = (OSError, SuspiciousFileOperation)

DOCUMENT_LISTS = ('categories', 'products', 'mediaIndex')


def _decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    if value is None or value == '':
        return default
    return Decimal(str(value))


def order_categories(categories: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Parents first; input order otherwise kept. Cycles are cut where found."""
    by_id = {item.get('id'): item for item in categories if item.get('id')}
    ordered: List[Dict[str, Any]] = []
    visited = set()

    def visit(item):
        key = id(item)
        if key in visited:
            return
        visited.add(key)
        parent = by_id.get(item.get('parentId'))
        if parent is not None:
            visit(parent)
        ordered.append(item)

    for item in categories:
        visit(item)
    return ordered


class ImportService:
    """
    Импорт каталога из ZIP-архива экспорта.

    Основные методы:
    - import_archive(content, options) - data.json + media/
    - import_json(content, options) - только документ, без медиа
    """

    def __init__(self, store: Optional[CatalogStore] = None, storage=None):
        self.store = store or CatalogStore()
        self._storage = storage

    @property
    def storage(self):
        if self._storage is None:
            self._storage = FileSystemStorage(
                location=getattr(settings, 'CATALOG_UPLOADS_ROOT', settings.MEDIA_ROOT),
                base_url=getattr(settings, 'CATALOG_UPLOADS_URL', settings.MEDIA_URL),
            )
        return self._storage

    # ---- entry points ---------------------------------------------------

    def import_archive(self, content: bytes, options: Optional[ImportOptions] = None) -> ImportResult:
        options = options or ImportOptions()
        try:
            archive = zipfile.ZipFile(io.BytesIO(content))
        except zipfile.BadZipFile as exc:
            return ImportResult.failed(f'Не удалось прочитать архив: {exc}')

        with archive:
            if DATA_FILE not in archive.namelist():
                return ImportResult.failed('Файл data.json не найден в архиве')
            data = self._load_document(archive.read(DATA_FILE))
            if isinstance(data, ImportResult):
                return data
            return self.import_document(data, options, archive=archive)

    def import_json(self, content, options: Optional[ImportOptions] = None) -> ImportResult:
        options = options or ImportOptions()
        data = self._load_document(content)
        if isinstance(data, ImportResult):
            return data
        return self.import_document(data, options)

    def _load_document(self, raw):
        try:
            if isinstance(raw, bytes):
                raw = raw.decode('utf-8-sig')
            data = json.loads(raw)
        except (UnicodeDecodeError, ValueError) as exc:
            return ImportResult.failed(f'Некорректный JSON в {DATA_FILE}: {exc}')
        if not isinstance(data, dict):
            return ImportResult.failed(f'Некорректная структура {DATA_FILE}')
        for key in DOCUMENT_LISTS:
            items = data.get(key)
            if items is None:
                continue
            if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
                return ImportResult.failed(
                    f'Некорректная структура {DATA_FILE}: поле {key} должно быть списком объектов'
                )
        return data

    def import_document(self, data: Dict[str, Any], options: ImportOptions, archive: Optional[zipfile.ZipFile] = None) -> ImportResult:
        result = ImportResult()
        self._import_categories(data.get('categories') or [], options, result)
        self._import_products(data.get('products') or [], options, result)
        if archive is not None and options.import_media:
            self._import_media(archive, data.get('mediaIndex') or [], result)

        logger.info(
            f"Catalog import finished: processed={result.processed}, "
            f"errors={len(result.errors)}, warnings={len(result.warnings)}"
        )
        return result

    # ---- categories -----------------------------------------------------

    def _category_fields(self, item: Dict[str, Any]) -> Dict[str, Any]:
        seo = item.get('seo') or {}
        return {
            'name': item['name'],
            'description': item.get('description') or '',
            'image': item.get('image') or '',
            'is_active': bool(item.get('isActive', True)),
            'sort_order': int(item.get('sortOrder') or 0),
            'seo_title': seo.get('title') or '',
            'seo_description': seo.get('description') or '',
        }

    def _import_categories(self, categories, options: ImportOptions, result: ImportResult) -> None:
        for item in order_categories(categories):
            name = item.get('name') or item.get('slug') or '?'
            try:
                existing = self.store.find_category_by_slug(item['slug'])
                if existing:
                    if options.skip_existing:
                        result.skipped['categories'].append(name)
                        result.processed['categories'] += 1
                    elif options.update_existing:
                        with self.store.atomic():
                            self.store.update_category(existing, **self._category_fields(item))
                        result.processed['categories'] += 1
                        result.updated['categories'] += 1
                        result.warnings.append(f'Обновлена категория: {name}')
                    else:
                        result.skipped['categories'].append(name)
                    continue

                parent = None
                if item.get('parentId'):
                    parent = self.store.get_category(item['parentId'])
                    if parent is None:
                        result.warnings.append(
                            f'Категория "{name}": родительская категория не найдена, создана как корневая'
                        )
                fields = self._category_fields(item)
                if item.get('id'):
                    fields['id'] = item['id']
                with self.store.atomic():
                    self.store.create_category(slug=item['slug'], parent=parent, **fields)
                result.processed['categories'] += 1
                result.created['categories'] += 1
            except ITEM_ERRORS as exc:
                logger.warning(f"Category import failed for {name}: {exc}")
                result.errors.append(f'Ошибка импорта категории "{name}": {exc}')

    # ---- products -------------------------------------------------------

    def _resolve_category(self, name: str, options: ImportOptions):
        if not name:
            return None
        mapped = options.category_mapping.get(name)
        if mapped:
            return self.store.get_category(mapped)
        return self.store.find_category_by_name(name)

    def _product_fields(self, item: Dict[str, Any], category) -> Dict[str, Any]:
        seo = item.get('seo') or {}
        images = list(item.get('images') or [])
        thumbnail = item.get('thumbnail') or ''
        if images and thumbnail == images[0]:
            # exported as a fallback to the first image
            thumbnail = ''
        return {
            'title': item['title'],
            'description': item.get('description') or '',
            'content': item.get('content') or '',
            'price': _decimal(item.get('price'), Decimal('0')),
            'old_price': _decimal(item.get('oldPrice')),
            'currency': item.get('currency') or 'RUB',
            'stock': int(item.get('stock') or 0),
            'min_order': int(item.get('minOrder') or 1),
            'weight': _decimal(item.get('weight')),
            'dimensions': item.get('dimensions') or '',
            'material': item.get('material') or '',
            'tier': item.get('tier') or ProductTier.MIDDLE,
            'category': category,
            'tags': list(item.get('tags') or []),
            'images': images,
            'thumbnail': thumbnail,
            'is_active': bool(item.get('isActive', True)),
            'is_featured': bool(item.get('isFeatured', False)),
            'visibility': item.get('visibility') or ProductVisibility.VISIBLE,
            'seo_title': seo.get('title') or '',
            'seo_description': seo.get('description') or '',
            'meta_title': seo.get('metaTitle') or '',
            'meta_description': seo.get('metaDesc') or '',
        }

    def _create_variants(self, product, variants: List[Dict[str, Any]]) -> None:
        for variant in variants:
            # absolute price = stored base price + delta
            base_price = self.store.product_price(product.pk)
            attrs = variant.get('attrs') or {}
            fields = {
                'sku': variant['sku'],
                'size': attrs.get('size'),
                'color': attrs.get('color'),
                'material': attrs.get('material'),
                'price': base_price + _decimal(variant.get('priceDiff'), Decimal('0')),
                'stock': int(variant.get('stock') or 0),
                'image_url': variant.get('imageRef'),
                'is_active': bool(variant.get('isActive', True)),
            }
            if variant.get('id'):
                fields['id'] = variant['id']
            self.store.create_variant(product, **fields)

    def _import_products(self, products, options: ImportOptions, result: ImportResult) -> None:
        for item in products:
            title = item.get('title') or item.get('sku') or '?'
            try:
                category = self._resolve_category(item.get('category'), options)
                existing = self.store.find_product(sku=item.get('sku') or '', slug=item.get('slug') or '')

                if existing and options.skip_existing:
                    result.skipped['products'].append(title)
                    result.processed['products'] += 1
                    continue
                if existing and not options.update_existing:
                    result.skipped['products'].append(title)
                    continue
                if category is None:
                    result.errors.append(f'Товар {title} пропущен: категория не найдена')
                    result.skipped['products'].append(title)
                    continue

                fields = self._product_fields(item, category)
                with self.store.atomic():
                    if existing:
                        product = self.store.update_product(existing, **fields)
                        self.store.delete_variants(product)
                    else:
                        if item.get('id'):
                            fields['id'] = item['id']
                        product = self.store.create_product(slug=item['slug'], sku=item['sku'], **fields)
                    self._create_variants(product, item.get('variants') or [])

                result.processed['products'] += 1
                if existing:
                    result.updated['products'] += 1
                    result.warnings.append(f'Обновлен товар: {title}')
                else:
                    result.created['products'] += 1
            except ITEM_ERRORS as exc:
                logger.warning(f"Product import failed for {title}: {exc}")
                result.errors.append(f'Ошибка импорта товара "{title}": {exc}')

    # ---- media ----------------------------------------------------------

    def _import_media(self, archive: zipfile.ZipFile, media_index, result: ImportResult) -> None:
        names = set(archive.namelist())
        if not any(name.startswith(MEDIA_DIR) for name in names):
            result.warnings.append('Папка media не найдена в архиве')
            return

        for entry in media_index:
            file_name = posixpath.basename(str(entry.get('fileName') or ''))
            if not file_name:
                continue
            if file_name in ('.', '..'):
                result.warnings.append(f'Некорректное имя медиафайла: {file_name}')
                continue
            member = f'{MEDIA_DIR}{file_name}'
            if member not in names:
                result.warnings.append(f'Файл не найден: {file_name}')
                continue
            try:
                if self.storage.exists(file_name):
                    self.storage.delete(file_name)
                self.storage.save(file_name, ContentFile(archive.read(member)))
            except MEDIA_ERRORS as exc:
                logger.warning(f"Media restore failed for {file_name}: {exc}")
                result.errors.append(f'Ошибка импорта медиафайла "{file_name}": {exc}')
                continue
            result.processed['media'] += 1
            result.created['media'] += 1
