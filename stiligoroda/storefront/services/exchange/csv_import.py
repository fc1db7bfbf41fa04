"""
CSV import/export of products.

Import rules:
- header row required, delimiter (``;``, ``,`` or tab) detected from it;
- required columns: sku, title, category, price, stock;
- every row is validated, its category resolved by name or slug;
- an existing product (same SKU or slug) is updated or skipped;
- a failing row stops the run unless ``skip_invalid`` is set.
"""
from __future__ import annotations

import csv
import io
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, NamedTuple, Optional

from django.db import DatabaseError

from storefront.models import ProductTier, ProductVisibility
from storefront.services.catalog_store import CatalogStore
from storefront.utils.slugs import generate_slug

from .results import ImportOptions, ImportResult

logger = logging.getLogger(__name__)

BOM = '\ufeff'

REQUIRED_COLUMNS = ['sku', 'title', 'category', 'price', 'stock']

CSV_COLUMNS = [
    'product_id',
    'sku',
    'title',
    'category',
    'price',
    'currency',
    'old_price',
    'stock',
    'description',
    'material',
    'size',
    'dimensions',
    'weight',
    'tags',
    'images',
    'seo_title',
    'seo_description',
    'slug',
    'visibility',
]

DELIMITER_CANDIDATES = [';', ',', '\t']


class CSVRowError(Exception):
    """Строка CSV не прошла проверку"""
    pass


class CSVStructure(NamedTuple):
    is_valid: bool
    errors: List[str]
    columns: List[str]


def detect_delimiter(text: str) -> str:
    header = next((line for line in text.splitlines() if line.strip()), '')
    counts = {candidate: header.count(candidate) for candidate in DELIMITER_CANDIDATES}
    best = max(DELIMITER_CANDIDATES, key=lambda candidate: counts[candidate])
    return best if counts[best] else ','


def _decode(content) -> str:
    if isinstance(content, bytes):
        content = content.decode('utf-8-sig')
    return content.lstrip(BOM)


def _read_rows(text: str):
    reader = csv.DictReader(io.StringIO(text), delimiter=detect_delimiter(text))
    columns = [(name or '').strip() for name in (reader.fieldnames or [])]
    rows: List[Dict[str, str]] = []
    for raw in reader:
        row = {}
        for key, value in zip(columns, (raw.get(name) for name in reader.fieldnames)):
            row[key] = (value or '').strip() if isinstance(value, str) else ''
        if any(row.values()):
            rows.append(row)
    return columns, rows


def parse_decimal(value: str) -> Decimal:
    number = Decimal(value.replace(' ', '').replace(',', '.'))
    if not number.is_finite():
        raise InvalidOperation(value)
    return number


def resolve_tier(category_name: str) -> str:
    lowered = category_name.lower()
    if 'эконом' in lowered or 'economy' in lowered:
        return ProductTier.ECONOMY
    if 'люкс' in lowered or 'luxury' in lowered or 'премиум' in lowered:
        return ProductTier.LUXURY
    return ProductTier.MIDDLE


def resolve_visibility(value: str) -> str:
    lowered = (value or '').lower()
    if lowered in ('hidden', 'скрытый', 'скрыт'):
        return ProductVisibility.HIDDEN
    if lowered in ('draft', 'черновик'):
        return ProductVisibility.DRAFT
    return ProductVisibility.VISIBLE


def split_list(value: str) -> List[str]:
    return [item.strip() for item in (value or '').split(',') if item.strip()]


class CSVImporter:
    """
    Импорт товаров из CSV.

    Основные методы:
    - import_csv(content, options) - разобрать, проверить и записать товары
    """

    def __init__(self, store: Optional[CatalogStore] = None):
        self.store = store or CatalogStore()

    def import_csv(self, content, options: Optional[ImportOptions] = None) -> ImportResult:
        options = options or ImportOptions()
        result = ImportResult()

        try:
            columns, rows = _read_rows(_decode(content))
        except (csv.Error, UnicodeDecodeError) as exc:
            result.errors.append(f'CSV Parse Error: {exc}')
            return result

        if not rows:
            result.errors.append('CSV файл пуст или не содержит данных')
            return result

        missing = [column for column in REQUIRED_COLUMNS if column not in columns]
        if missing:
            result.errors.append(f'Отсутствуют обязательные колонки: {", ".join(missing)}')
            return result

        category_map = self.store.category_lookup()
        for key, value in options.category_mapping.items():
            category_map[key.lower()] = value

        for index, row in enumerate(rows):
            row_number = index + 2
            result.processed['products'] += 1
            try:
                self._process_row(row, row_number, category_map, options, result)
            except (CSVRowError, DatabaseError) as exc:
                result.errors.append(f'Строка {row_number}: {exc}')
                logger.warning(f"CSV row {row_number} rejected: {exc}")
                if not options.skip_invalid:
                    break

        logger.info(
            f"CSV import finished: processed={result.processed['products']}, "
            f"created={result.created['products']}, updated={result.updated['products']}, "
            f"errors={len(result.errors)}"
        )
        return result

    def _validate_row(self, row: Dict[str, str], row_number: int, category_map: Dict[str, str], result: ImportResult) -> Dict:
        if not row.get('sku'):
            raise CSVRowError('Отсутствует SKU')
        if not row.get('title'):
            raise CSVRowError('Отсутствует название товара')
        if not row.get('category'):
            raise CSVRowError('Отсутствует категория')
        if not row.get('price'):
            raise CSVRowError('Отсутствует цена')
        if not row.get('stock'):
            raise CSVRowError('Отсутствует количество на складе')

        try:
            price = parse_decimal(row['price'])
        except InvalidOperation:
            raise CSVRowError('Некорректная цена')
        if price < 0:
            raise CSVRowError('Некорректная цена')

        try:
            stock = int(row['stock'])
        except ValueError:
            raise CSVRowError('Некорректное количество на складе')
        if stock < 0:
            raise CSVRowError('Некорректное количество на складе')

        old_price = None
        if row.get('old_price'):
            try:
                old_price = parse_decimal(row['old_price'])
            except InvalidOperation:
                old_price = None
            if old_price is None or old_price <= price:
                result.warnings.append(f'Строка {row_number}: Старая цена меньше или равна текущей цене')

        category_id = category_map.get(row['category'].lower())
        if not category_id:
            raise CSVRowError(f'Категория "{row["category"]}" не найдена')

        weight = None
        if row.get('weight'):
            try:
                weight = parse_decimal(row['weight'])
            except InvalidOperation:
                raise CSVRowError('Некорректный вес')

        return {
            'sku': row['sku'],
            'title': row['title'],
            'slug': row.get('slug') or generate_slug(row['title']),
            'description': row.get('description', ''),
            'price': price,
            'old_price': old_price,
            'currency': row.get('currency') or 'RUB',
            'stock': stock,
            'material': row.get('material', ''),
            'dimensions': row.get('dimensions', ''),
            'weight': weight,
            'tier': resolve_tier(row['category']),
            'tags': split_list(row.get('tags', '')),
            'images': split_list(row.get('images', '')),
            'category_id': category_id,
            'visibility': resolve_visibility(row.get('visibility', '')),
            'is_active': True,
            'seo_title': row.get('seo_title', ''),
            'seo_description': row.get('seo_description', ''),
            'meta_title': row.get('seo_title') or row['title'],
            'meta_description': row.get('seo_description') or row.get('description', ''),
        }

    def _process_row(self, row, row_number, category_map, options: ImportOptions, result: ImportResult) -> None:
        fields = self._validate_row(row, row_number, category_map, result)
        if not fields['slug']:
            raise CSVRowError('Не удалось сформировать slug товара')
        if options.validate_only:
            return

        existing = self.store.find_product(sku=fields['sku'], slug=fields['slug'])
        if existing:
            if options.update_existing:
                with self.store.atomic():
                    self.store.update_product(existing, **fields)
                result.updated['products'] += 1
                result.warnings.append(f'Строка {row_number}: Товар "{fields["title"]}" обновлён')
            else:
                result.skipped['products'].append(fields['title'])
                result.warnings.append(
                    f'Строка {row_number}: Товар с SKU "{fields["sku"]}" уже существует (пропущен)'
                )
            return

        with self.store.atomic():
            self.store.create_product(**fields)
        result.created['products'] += 1


def _write_csv(rows: Iterable[Dict[str, str]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, delimiter=';', lineterminator='\r\n')
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return BOM + buffer.getvalue()


def _format_decimal(value) -> str:
    if value is None:
        return ''
    return format(value.normalize(), 'f') if isinstance(value, Decimal) else str(value)


def export_products_csv(store: Optional[CatalogStore] = None) -> str:
    """All products as ``;``-separated UTF-8 CSV with BOM (Excel friendly)."""
    store = store or CatalogStore()
    rows = []
    for product in store.list_products():
        rows.append({
            'product_id': product.pk,
            'sku': product.sku,
            'title': product.title,
            'category': product.category.name,
            'price': _format_decimal(product.price),
            'currency': product.currency,
            'old_price': _format_decimal(product.old_price),
            'stock': str(product.stock),
            'description': product.description,
            'material': product.material,
            'size': '',
            'dimensions': product.dimensions,
            'weight': _format_decimal(product.weight),
            'tags': ','.join(product.tags or []),
            'images': ','.join(product.images or []),
            'seo_title': product.seo_title,
            'seo_description': product.seo_description,
            'slug': product.slug,
            'visibility': product.visibility,
        })
    return _write_csv(rows)


def generate_sample_csv() -> str:
    return _write_csv([
        {
            'product_id': '',
            'sku': 'BED001',
            'title': 'Комплект постельного белья "Образец"',
            'category': 'Постельное белье',
            'price': '2500',
            'currency': 'RUB',
            'old_price': '3000',
            'stock': '10',
            'description': 'Качественный комплект постельного белья',
            'material': '100% хлопок',
            'size': '1.5-спальный',
            'dimensions': '145x210 см',
            'weight': '1.2',
            'tags': 'хлопок,1.5-спальный,комплект',
            'images': 'https://example.com/image1.jpg,https://example.com/image2.jpg',
            'seo_title': 'Комплект постельного белья Образец - купить в Москве',
            'seo_description': 'Качественный комплект постельного белья из 100% хлопка',
            'slug': 'komplekt-obrazets',
            'visibility': 'VISIBLE',
        },
        {
            'product_id': '',
            'sku': 'PIL001',
            'title': 'Подушка ортопедическая "Образец"',
            'category': 'Подушки',
            'price': '1200',
            'currency': 'RUB',
            'old_price': '',
            'stock': '15',
            'description': 'Ортопедическая подушка для комфортного сна',
            'material': 'Пенополиуретан',
            'size': '60x40 см',
            'dimensions': '60x40x12 см',
            'weight': '0.8',
            'tags': 'ортопедическая,подушка,пенополиуретан',
            'images': 'https://example.com/pillow1.jpg',
            'seo_title': 'Ортопедическая подушка Образец',
            'seo_description': 'Удобная ортопедическая подушка для здорового сна',
            'slug': 'podushka-obrazets',
            'visibility': 'VISIBLE',
        },
    ])


def validate_csv_structure(content) -> CSVStructure:
    """Checks only the header row."""
    try:
        text = _decode(content)
        header = next((line for line in text.splitlines() if line.strip()), '')
        columns = [column.strip() for column in next(csv.reader([header], delimiter=detect_delimiter(text)), [])]
    except (csv.Error, UnicodeDecodeError):
        return CSVStructure(False, ['Ошибка при анализе CSV файла'], [])

    errors = []
    missing = [column for column in REQUIRED_COLUMNS if column not in columns]
    if missing:
        errors.append(f'Отсутствуют обязательные колонки: {", ".join(missing)}')
    return CSVStructure(not errors, errors, columns)
