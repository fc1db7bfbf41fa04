"""
Decoding of raw Wildberries card payloads.

The card API has changed shape over time: the current (v2) responses carry
prices per size as ``sizes[].price.{total,product}`` and stock as
``sizes[].stocks[].qty``, while legacy responses keep ``salePriceU`` /
``priceU`` on the product and ``qty`` on the size. ``decode_card`` turns
either shape into one ``WBCard`` before any business logic runs.
All prices arrive in kopecks.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from .basket import image_url

SCHEMA_V2 = 'v2'
SCHEMA_LEGACY = 'legacy'

DEFAULT_IMAGE_COUNT = 10
MAX_IMAGE_COUNT = 14

SUBJECT_CATEGORIES = {
    162: 'Пижамы',
    192: 'Футболки',
    159: 'Свитшоты',
    150: 'Туники',
    138: 'Рюкзаки',
    297: 'Брелоки',
    908: 'Ножи',
}

ZERO = Decimal('0')


@dataclass
class WBSize:
    name: Optional[str]
    orig_name: Optional[str]
    price: Decimal
    stock: int

    @property
    def is_valid(self) -> bool:
        return bool(self.name) and self.name != '0'


@dataclass
class WBCard:
    """Normalized marketplace product record."""

    id: int
    name: str
    brand: str
    description: str
    category: str
    price: Decimal
    old_price: Optional[Decimal]
    images: List[str]
    characteristics: Dict[str, str] = field(default_factory=dict)
    colors: List[str] = field(default_factory=list)
    sizes: List[WBSize] = field(default_factory=list)
    schema: str = SCHEMA_V2


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def kopecks_to_rubles(value: Any) -> Decimal:
    try:
        return Decimal(str(value)) / 100
    except (InvalidOperation, ValueError, TypeError):
        return ZERO


def _dicts(value: Any) -> List[Dict[str, Any]]:
    """Dict entries of a payload list; anything else is dropped."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def detect_schema(product: Dict[str, Any]) -> str:
    for size in _dicts(product.get('sizes')):
        if isinstance(size.get('price'), dict) or isinstance(size.get('stocks'), list):
            return SCHEMA_V2
    if product.get('salePriceU') or product.get('priceU'):
        return SCHEMA_LEGACY
    return SCHEMA_V2


def _size_price(size: Dict[str, Any], product: Dict[str, Any]) -> Decimal:
    price = size.get('price') if isinstance(size.get('price'), dict) else {}
    candidates = (
        price.get('total'),
        price.get('product'),
        size.get('salePriceU'),
        product.get('salePriceU'),
        product.get('priceU'),
    )
    for candidate in candidates:
        if candidate:
            return kopecks_to_rubles(candidate)
    return ZERO


def _size_stock(size: Dict[str, Any]) -> int:
    stocks = size.get('stocks')
    if isinstance(stocks, list):
        return sum(_to_int(entry.get('qty')) for entry in _dicts(stocks))
    return _to_int(size.get('qty'))


def _decode_size(size: Dict[str, Any], product: Dict[str, Any]) -> WBSize:
    raw_name = str(size.get('name') or size.get('origName') or '').strip()
    return WBSize(
        name=raw_name if raw_name and raw_name != '0' else None,
        orig_name=size.get('origName') or size.get('name') or None,
        price=_size_price(size, product),
        stock=_size_stock(size),
    )


def _decode_characteristics(product: Dict[str, Any]) -> Dict[str, str]:
    characteristics: Dict[str, str] = {}
    for option in _dicts(product.get('options')):
        name = option.get('name')
        value = option.get('value')
        if not name or not value:
            continue
        if isinstance(value, list):
            value = ', '.join(str(item) for item in value)
        characteristics[name] = str(value)
    return characteristics


def _decode_images(product: Dict[str, Any], product_id: int) -> List[str]:
    images: List[str] = []
    media = product.get('media')
    if not isinstance(media, dict):
        media = {}
    for entry in media.get('images') or []:
        if isinstance(entry, str):
            url = entry
        elif isinstance(entry, dict):
            url = entry.get('big') or entry.get('c516x688') or entry.get('c246x328') or ''
        else:
            url = ''
        if url and isinstance(url, str):
            images.append(url if url.startswith('http') else f'https:{url}')
    if images:
        return images

    count = _to_int(product.get('pics')) or DEFAULT_IMAGE_COUNT
    return [image_url(product_id, index) for index in range(1, min(count, MAX_IMAGE_COUNT) + 1)]


def _decode_category(product: Dict[str, Any], characteristics: Dict[str, str]) -> str:
    category = product.get('subjectName') or product.get('subject') or ''
    if not category:
        category = (
            characteristics.get('Категория')
            or characteristics.get('Предмет')
            or characteristics.get('Тип')
            or ''
        )
    if not category and product.get('subjectId'):
        category = SUBJECT_CATEGORIES.get(product['subjectId'], '')
    return category


def decode_card(product: Dict[str, Any], product_id: int) -> WBCard:
    """
    Builds a ``WBCard`` from ``data.products[0]`` of a card API response.
    """
    characteristics = _decode_characteristics(product)
    sizes = [_decode_size(size, product) for size in _dicts(product.get('sizes'))]
    colors = [str(color['name']) for color in _dicts(product.get('colors')) if color.get('name')]

    sale_price_u = product.get('salePriceU')
    price_u = product.get('priceU')
    if sale_price_u:
        price = kopecks_to_rubles(sale_price_u)
    elif sizes and sizes[0].price > 0:
        price = sizes[0].price
    else:
        price = ZERO

    old_price = None
    if price_u and sale_price_u and kopecks_to_rubles(price_u) > price:
        old_price = kopecks_to_rubles(price_u)

    name = product.get('name') or ''
    brand = product.get('brand') or characteristics.get('Бренд', '')
    description = product.get('description') or ''
    if not description and name:
        description = f'{product["brand"]} - {name}' if product.get('brand') else name

    return WBCard(
        id=_to_int(product.get('id')) or product_id,
        name=name,
        brand=brand,
        description=description,
        category=_decode_category(product, characteristics),
        price=price,
        old_price=old_price,
        images=_decode_images(product, product_id),
        characteristics=characteristics,
        colors=colors,
        sizes=sizes,
        schema=detect_schema(product),
    )
