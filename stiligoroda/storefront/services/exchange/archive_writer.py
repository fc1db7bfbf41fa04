"""
Serialization of an export document to JSON, ZIP (with media) and XLSX.
"""
from __future__ import annotations

import io
import json
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests
from django.conf import settings
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from storefront.services.errors import CatalogExportError

from .export_service import ExportDocument

logger = logging.getLogger(__name__)

FORMAT_ZIP = 'zip'
FORMAT_JSON = 'json'
FORMAT_XLSX = 'xlsx'
FORMATS = (FORMAT_ZIP, FORMAT_JSON, FORMAT_XLSX)

CONTENT_TYPES = {
    FORMAT_ZIP: 'application/zip',
    FORMAT_JSON: 'application/json',
    FORMAT_XLSX: 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}

DATA_FILE = 'data.json'
MEDIA_DIR = 'media/'
README_FILE = 'README.md'

PRODUCT_HEADERS = [
    'ID', 'SKU', 'Название', 'Описание', 'Цена', 'Старая цена', 'Валюта',
    'Остаток', 'Мин. заказ', 'Вес', 'Размеры', 'Материал', 'Категория', 'Теги',
    'Активен', 'Рекомендуемый', 'В наличии', 'Видимость', 'SEO заголовок',
    'SEO описание', 'Изображения', 'Миниатюра', 'Вариантов', 'Создан', 'Обновлен',
]

CATEGORY_HEADERS = [
    'ID', 'Название', 'Slug', 'Описание', 'Изображение', 'Родительская категория',
    'Активна', 'Порядок сортировки', 'SEO заголовок', 'SEO описание', 'Дочерних категорий',
]

SETTINGS_LABELS = {
    'siteName': 'Название сайта',
    'siteDescription': 'Описание сайта',
    'contactEmail': 'Email',
    'contactPhone': 'Телефон',
    'address': 'Адрес',
    'workingHours': 'Часы работы',
    'socialLinks': 'Соцсети',
    'deliverySettings.freeDeliveryFrom': 'Бесплатная доставка от',
    'deliverySettings.defaultDeliveryPrice': 'Цена доставки по умолчанию',
}

DOWNLOAD_OK = 'ok'
DOWNLOAD_FAILED = 'failed'
DOWNLOAD_DUPLICATE = 'skipped_duplicate'


@dataclass
class DownloadAttempt:
    target: str
    outcome: str
    detail: str = ''


@dataclass
class ExportArtifact:
    content: bytes
    content_type: str
    extension: str
    filename: str
    attempts: List[DownloadAttempt] = field(default_factory=list)

    @property
    def downloaded(self) -> int:
        return sum(1 for attempt in self.attempts if attempt.outcome == DOWNLOAD_OK)


def _yes_no(value: Any) -> str:
    return 'Да' if value else 'Нет'


def _cell(value: Any) -> Any:
    if value is None:
        return ''
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub('', value)
    return value


def flatten_settings(values: Dict[str, Any], prefix: str = '') -> List[Tuple[str, Any]]:
    """Nested settings -> ``(label, value)`` rows, known keys get Russian labels."""
    rows: List[Tuple[str, Any]] = []
    for key, value in values.items():
        path = f'{prefix}.{key}' if prefix else key
        if isinstance(value, dict):
            rows.extend(flatten_settings(value, path))
            continue
        if isinstance(value, (list, tuple)):
            value = ', '.join(str(item) for item in value)
        label = SETTINGS_LABELS.get(path)
        if label is None and prefix in SETTINGS_LABELS:
            label = f'{SETTINGS_LABELS[prefix]}: {key}'
        rows.append((label or path, value))
    return rows


def render_readme(data: Dict[str, Any]) -> str:
    return (
        '# Экспорт данных Стили Города\n'
        '\n'
        f'Дата экспорта: {data["exportedAt"]}\n'
        f'Версия схемы: {data["schemaVersion"]}\n'
        '\n'
        '## Содержимое архива:\n'
        '- data.json - основные данные (товары, категории, настройки)\n'
        '- media/ - папка с изображениями товаров и категорий\n'
        '- README.md - этот файл\n'
        '\n'
        '## Статистика:\n'
        f'- Товаров: {len(data["products"])}\n'
        f'- Категорий: {len(data["categories"])}\n'
        f'- Медиафайлов: {len(data["mediaIndex"])}\n'
        '\n'
        '## Импорт:\n'
        'Для импорта данных используйте админ-панель сайта или команду\n'
        '`python manage.py import_catalog <архив>`.\n'
    )


class ArchiveWriter:
    """
    Запись ExportDocument в файл выгрузки.

    Основные методы:
    - write(document, fmt) - zip / json / xlsx, возвращает ExportArtifact
    """

    DOWNLOAD_TIMEOUT = 15  # секунды

    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.session = session or requests.Session()
        self.timeout = timeout or getattr(settings, 'CATALOG_MEDIA_DOWNLOAD_TIMEOUT', self.DOWNLOAD_TIMEOUT)

    def write(self, document: ExportDocument, fmt: str = FORMAT_ZIP) -> ExportArtifact:
        if fmt not in FORMATS:
            raise CatalogExportError(f'Неподдерживаемый формат экспорта: {fmt}')

        data = document.to_dict()
        attempts: List[DownloadAttempt] = []
        if fmt == FORMAT_JSON:
            content = self.to_json(data)
        elif fmt == FORMAT_XLSX:
            content = self.to_xlsx(data)
        else:
            content, attempts = self.to_zip(data)

        filename = f'export-{timezone.localdate().isoformat()}.{fmt}'
        logger.info(f"Catalog export written: {filename} ({len(content)} bytes)")
        return ExportArtifact(
            content=content,
            content_type=CONTENT_TYPES[fmt],
            extension=fmt,
            filename=filename,
            attempts=attempts,
        )

    def to_json(self, data: Dict[str, Any]) -> bytes:
        return json.dumps(data, ensure_ascii=False, indent=2).encode('utf-8')

    def _download(self, url: str) -> bytes:
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.content

    def to_zip(self, data: Dict[str, Any]) -> Tuple[bytes, List[DownloadAttempt]]:
        attempts: List[DownloadAttempt] = []
        written = set()
        buffer = io.BytesIO()

        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(DATA_FILE, self.to_json(data))

            media_dir = zipfile.ZipInfo(MEDIA_DIR)
            media_dir.external_attr = 0o40755 << 16 | 0x10
            archive.writestr(media_dir, b'')

            for entry in data['mediaIndex']:
                url = entry['originalUrl']
                file_name = entry['fileName']
                if file_name in written:
                    attempts.append(DownloadAttempt(url, DOWNLOAD_DUPLICATE, f'{file_name} уже добавлен'))
                    logger.warning(f"Duplicate media name {file_name} skipped for {url}")
                    continue
                try:
                    payload = self._download(url)
                except requests.RequestException as exc:
                    attempts.append(DownloadAttempt(url, DOWNLOAD_FAILED, str(exc)))
                    logger.warning(f"Media download failed: {url} ({exc})")
                    continue
                archive.writestr(f'{MEDIA_DIR}{file_name}', payload)
                written.add(file_name)
                attempts.append(DownloadAttempt(url, DOWNLOAD_OK, f'{len(payload)} bytes'))

            archive.writestr(README_FILE, render_readme(data))

        logger.info(f"Media downloaded: {len(written)} of {len(data['mediaIndex'])}")
        return buffer.getvalue(), attempts

    def to_xlsx(self, data: Dict[str, Any]) -> bytes:
        wb = Workbook()
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="1F2937", end_color="1F2937", fill_type="solid")

        def add_sheet(ws, headers, rows, widths):
            ws.append(headers)
            for col in range(1, len(headers) + 1):
                cell = ws.cell(row=1, column=col)
                cell.font = header_font
                cell.fill = header_fill
                cell.alignment = Alignment(horizontal="center")
            for row in rows:
                ws.append([_cell(value) for value in row])
            for col, width in enumerate(widths, start=1):
                ws.column_dimensions[get_column_letter(col)].width = width

        ws_products = wb.active
        ws_products.title = "Товары"
        add_sheet(
            ws_products,
            PRODUCT_HEADERS,
            (
                [
                    product['id'],
                    product['sku'],
                    product['title'],
                    product['description'],
                    product['price'],
                    product['oldPrice'],
                    product['currency'],
                    product['stock'],
                    product['minOrder'],
                    product['weight'],
                    product['dimensions'],
                    product['material'],
                    product['category'],
                    ', '.join(product['tags']),
                    _yes_no(product['isActive']),
                    _yes_no(product['isFeatured']),
                    _yes_no(product['isInStock']),
                    product['visibility'],
                    product['seo']['title'],
                    product['seo']['description'],
                    ', '.join(product['images']),
                    product['thumbnail'],
                    len(product['variants']),
                    product['createdAt'],
                    product['updatedAt'],
                ]
                for product in data['products']
            ),
            [34, 18, 40, 60] + [14] * (len(PRODUCT_HEADERS) - 4),
        )

        add_sheet(
            wb.create_sheet("Категории"),
            CATEGORY_HEADERS,
            (
                [
                    category['id'],
                    category['name'],
                    category['slug'],
                    category['description'],
                    category['image'],
                    category['parentId'],
                    _yes_no(category['isActive']),
                    category['sortOrder'],
                    category['seo']['title'],
                    category['seo']['description'],
                    len(category.get('children') or []),
                ]
                for category in data['categories']
            ),
            [34, 30, 24, 50] + [18] * (len(CATEGORY_HEADERS) - 4),
        )

        add_sheet(
            wb.create_sheet("Настройки"),
            ['Параметр', 'Значение'],
            flatten_settings(data.get('settings') or {}),
            [32, 60],
        )

        buffer = io.BytesIO()
        try:
            wb.save(buffer)
        except (OSError, ValueError) as exc:
            logger.exception("XLSX export failed")
            raise CatalogExportError(f'Не удалось сформировать XLSX: {exc}') from exc
        return buffer.getvalue()
