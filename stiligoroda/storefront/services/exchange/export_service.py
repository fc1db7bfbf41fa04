"""
Collection of the full catalog into an export document.

The document is denormalized for portability: products reference their
category by name, variant prices are stored as ``priceDiff`` (delta from the
product base price) and every remote image is listed once in ``mediaIndex``.
"""
from __future__ import annotations

import base64
import logging
import posixpath
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from storefront.models import Category, Product
from storefront.services.catalog_store import CatalogStore
from storefront.services.errors import CatalogExportError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = '1.0'
DEFAULT_CATEGORY_NAME = 'Без категории'

MIME_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.svg': 'image/svg+xml',
}


@dataclass
class MediaFile:
    fileName: str
    checksum: str
    originalUrl: str
    mimeType: str
    size: int = 0


@dataclass
class ExportDocument:
    schemaVersion: str
    exportedAt: str
    products: List[Dict[str, Any]] = field(default_factory=list)
    categories: List[Dict[str, Any]] = field(default_factory=list)
    mediaIndex: List[MediaFile] = field(default_factory=list)
    settings: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _number(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


def media_file_name(url: str) -> str:
    return posixpath.basename(urlparse(url).path)


def media_checksum(url: str) -> str:
    return base64.b64encode(url.encode('utf-8')).decode('ascii')[:16]


def media_mime_type(url: str) -> str:
    extension = posixpath.splitext(urlparse(url).path)[1].lower()
    return MIME_TYPES.get(extension, 'application/octet-stream')


def serialize_category(category: Category, with_children: bool = True) -> Dict[str, Any]:
    data = {
        'id': category.pk,
        'name': category.name,
        'slug': category.slug,
        'description': category.description,
        'image': category.image,
        'parentId': category.parent_id,
        'isActive': category.is_active,
        'sortOrder': category.sort_order,
        'seo': {
            'title': category.seo_title,
            'description': category.seo_description,
        },
    }
    if with_children:
        data['children'] = [
            serialize_category(child, with_children=False)
            for child in category.children.all()
        ]
    return data


def serialize_product(product: Product) -> Dict[str, Any]:
    images = list(product.images or [])
    return {
        'id': product.pk,
        'slug': product.slug,
        'sku': product.sku,
        'title': product.title,
        'description': product.description,
        'content': product.content,
        'price': _number(product.price),
        'oldPrice': _number(product.old_price),
        'currency': product.currency,
        'stock': product.stock,
        'minOrder': product.min_order,
        'weight': _number(product.weight),
        'dimensions': product.dimensions,
        'material': product.material,
        'tier': product.tier,
        'category': product.category.name if product.category_id else DEFAULT_CATEGORY_NAME,
        'tags': list(product.tags or []),
        'images': images,
        'isActive': product.is_active,
        'isFeatured': product.is_featured,
        'isInStock': product.is_in_stock,
        'visibility': product.visibility,
        'seo': {
            'title': product.seo_title,
            'description': product.seo_description,
            'metaTitle': product.meta_title,
            'metaDesc': product.meta_description,
        },
        'thumbnail': product.thumbnail or (images[0] if images else ''),
        'variants': [
            {
                'id': variant.pk,
                'sku': variant.sku,
                'attrs': {
                    'color': variant.color,
                    'size': variant.size,
                    'material': variant.material,
                },
                'priceDiff': float(variant.price - product.price),
                'stock': variant.stock,
                'imageRef': variant.image_url,
                'isActive': variant.is_active,
            }
            for variant in product.variants.all()
        ],
        'createdAt': _isoformat(product.created_at),
        'updatedAt': _isoformat(product.updated_at),
    }


def _remote_urls(products: Iterable[Dict[str, Any]], categories: Iterable[Dict[str, Any]]) -> List[str]:
    candidates: List[str] = []
    for product in products:
        candidates.extend(product['images'])
        candidates.append(product['thumbnail'])
        candidates.extend(variant['imageRef'] for variant in product['variants'])
    candidates.extend(category['image'] for category in categories)
    # first-seen order, http(s) only
    return list(dict.fromkeys(
        url for url in candidates
        if url and url.lower().startswith(('http://', 'https://'))
    ))


def build_media_index(products, categories) -> List[MediaFile]:
    index: List[MediaFile] = []
    for url in _remote_urls(products, categories):
        file_name = media_file_name(url)
        if not file_name:
            logger.warning(f"Media URL without file name skipped: {url}")
            continue
        index.append(MediaFile(
            fileName=file_name,
            checksum=media_checksum(url),
            originalUrl=url,
            mimeType=media_mime_type(url),
        ))
    return index


class ExportCollector:
    """
    Сбор полного каталога в ExportDocument.

    Raises:
        CatalogExportError: хранилище недоступно
    """

    def __init__(self, store: Optional[CatalogStore] = None, site_settings: Optional[Dict[str, Any]] = None):
        self.store = store or CatalogStore()
        self.site_settings = site_settings

    def collect(self) -> ExportDocument:
        try:
            products = [serialize_product(product) for product in self.store.list_products()]
            categories = [serialize_category(category) for category in self.store.list_categories()]
        except DatabaseError as exc:
            logger.exception("Catalog export failed while reading the store")
            raise CatalogExportError(f'Не удалось прочитать каталог: {exc}') from exc

        site_settings = self.site_settings
        if site_settings is None:
            site_settings = getattr(settings, 'CATALOG_EXPORT_SITE_SETTINGS', {})

        document = ExportDocument(
            schemaVersion=SCHEMA_VERSION,
            exportedAt=timezone.now().isoformat(),
            products=products,
            categories=categories,
            mediaIndex=build_media_index(products, categories),
            settings=dict(site_settings),
        )
        logger.info(
            f"Catalog collected: {len(products)} products, {len(categories)} categories, "
            f"{len(document.mediaIndex)} media files"
        )
        return document
