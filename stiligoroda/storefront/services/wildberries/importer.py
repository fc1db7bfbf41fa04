"""
Persisting Wildberries products into the catalog.
"""
from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from decimal import InvalidOperation
from typing import List, Optional

from django.conf import settings
from django.db import DatabaseError

from storefront.models import Product, ProductVisibility
from storefront.services.catalog_store import CatalogStore

from .client import WildberriesAPIError, WildberriesClient
from .normalizer import ProductDraft, normalize_card
from .parser import extract_product_id, parse_multiple_product_urls
from .payload import decode_card

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_NAME = 'Без категории'

# raised by decode_card on payload fields of an unexpected shape
DECODE_ERRORS = (AttributeError, TypeError, ValueError, InvalidOperation)


@dataclass
class WildberriesImportOutcome:
    url: str
    product: Optional[Product] = None
    error: str = ''
    duplicate_of: Optional[Product] = None

    @property
    def success(self) -> bool:
        return self.product is not None


@dataclass
class WildberriesBatchResult:
    total: int = 0
    imported: List[Product] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f'Импортировано: {len(self.imported)} из {self.total}. '
            f'Ошибок: {len(self.errors)}'
        )


def _random_token(length: int = 5) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


class WildberriesImporter:
    """
    Импорт товаров Wildberries в каталог.

    Основные методы:
    - import_url(url, category_id=None) - один товар
    - import_many(text, category_id=None) - список ссылок (перенос строки / запятая)
    """

    def __init__(self, store: Optional[CatalogStore] = None, client: Optional[WildberriesClient] = None):
        self.store = store or CatalogStore()
        self.client = client or WildberriesClient()
        self.batch_delay = getattr(settings, 'WILDBERRIES_BATCH_DELAY', 0.15)

    def fetch_draft(self, product_id: int) -> ProductDraft:
        """
        Raises:
            WildberriesAPIError: marketplace returned nothing usable
        """
        result = self.client.get_card(product_id)
        card = decode_card(result.payload, product_id)
        logger.info(f"WB product {product_id} decoded ({card.schema} schema, {len(card.sizes)} sizes)")
        return normalize_card(card)

    def import_url(self, url: str, category_id: Optional[str] = None, sku_base: Optional[str] = None) -> WildberriesImportOutcome:
        product_id = extract_product_id(url)
        if not product_id:
            return WildberriesImportOutcome(url, error='Не удалось извлечь ID товара из ссылки')

        category = None
        if category_id:
            category = self.store.get_category(category_id)
            if category is None:
                return WildberriesImportOutcome(url, error='Указанная категория не найдена')

        try:
            draft = self.fetch_draft(product_id)
        except WildberriesAPIError as exc:
            logger.error(f"WB import failed for {url}: {exc}")
            return WildberriesImportOutcome(
                url,
                error='Не удалось импортировать товар с WildBerries. Проверьте ссылку и попробуйте снова.',
            )
        except DECODE_ERRORS as exc:
            logger.exception(f"WB payload for {product_id} could not be decoded: {exc}")
            return WildberriesImportOutcome(url, error='Не удалось разобрать данные товара WildBerries')

        if draft.images:
            existing = self.store.find_product_with_image(draft.images[0])
            if existing:
                return WildberriesImportOutcome(
                    url,
                    error=f'Этот товар уже импортирован: "{existing.title}"',
                    duplicate_of=existing,
                )

        with self.store.atomic():
            if category is None:
                category = self.store.get_or_create_category(
                    draft.category or DEFAULT_CATEGORY_NAME,
                    description=(
                        f'Категория "{draft.category or DEFAULT_CATEGORY_NAME}" '
                        f'создана автоматически при импорте из WildBerries'
                    ),
                )
            product = self._create_product(draft, category, sku_base or f'WB-{product_id}-{int(time.time() * 1000)}')

        logger.info(f"WB product {product_id} imported as {product.sku} ({len(draft.variants)} variants)")
        return WildberriesImportOutcome(url, product=product)

    def _create_product(self, draft: ProductDraft, category, sku_base: str) -> Product:
        base_price = draft.price
        base_old_price = draft.old_price
        variant_prices = [variant.price for variant in draft.variants if variant.price > 0]
        if variant_prices:
            base_price = min(variant_prices)
            if not base_old_price and max(variant_prices) > base_price:
                base_old_price = max(variant_prices)

        product = self.store.create_product(
            sku=self.store.unique_product_sku(sku_base),
            slug=self.store.unique_product_slug(draft.title),
            title=draft.title,
            description=draft.description,
            content=draft.description,
            price=base_price,
            old_price=base_old_price,
            stock=draft.stock,
            material=draft.material,
            tags=draft.tags,
            images=draft.images,
            category=category,
            visibility=ProductVisibility.DRAFT,
            is_active=True,
            is_featured=False,
        )

        for variant in draft.variants:
            sku = variant.sku
            if self.store.variant_sku_exists(sku):
                logger.info(f"Variant SKU {sku} already exists, generating new one")
                sku = f'{sku}-{_random_token()}'
            self.store.create_variant(
                product,
                sku=sku,
                size=variant.size,
                color=variant.color,
                price=variant.price,
                stock=variant.stock,
                is_active=True,
            )
        return product

    def import_many(self, text: str, category_id: Optional[str] = None) -> WildberriesBatchResult:
        """Imports every link found in ``text`` sequentially."""
        urls = parse_multiple_product_urls(text)
        result = WildberriesBatchResult(total=len(urls))
        stamp = int(time.time() * 1000)

        for index, url in enumerate(urls):
            try:
                outcome = self.import_url(url, category_id, sku_base=f'WB-MULTI-{index + 1}-{stamp}')
            except DatabaseError as exc:
                logger.exception(f"WB batch import failed for {url}")
                result.errors.append(f'{url}: {exc}')
                continue

            if outcome.success:
                result.imported.append(outcome.product)
            else:
                label = url
                if outcome.duplicate_of is not None:
                    label = outcome.duplicate_of.title
                    result.errors.append(f'{label}: Уже импортирован (дубликат)')
                else:
                    result.errors.append(f'{label}: {outcome.error}')

            if self.batch_delay and index < len(urls) - 1:
                time.sleep(self.batch_delay)

        logger.info(f"WB batch import finished: {result.message}")
        return result
