"""
Conversion of a decoded ``WBCard`` into a store product draft.
"""
from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from .payload import WBCard

COMPOSITION_KEYS = ['Состав', 'Материал', 'Материал верха', 'Материал подкладки']

IMPORTANT_CHARACTERISTICS = [
    'Количество отделений',
    'Количество карманов',
    'Размер рюкзака',
    'Вместимость рюкзака',
    'Вместимость',
    'Объем',
    'Размер',
    'Размер на модели',
    'Рост модели на фото',
    'Особенности',
    'Особенности рюкзака',
    'Тип',
    'Назначение',
    'Материал подкладки',
    'Страна производства',
    'Пол',
    'Возраст',
    'Сезон',
    'Комплектация',
]

DIMENSION_KEYS = ['Длина', 'Ширина', 'Высота', 'Размеры']
WEIGHT_KEYS = ['Вес', 'Вес товара', 'Вес товара с упаковкой']

# Already rendered above or carried as tags
DESCRIBED_KEYS = set(
    COMPOSITION_KEYS + IMPORTANT_CHARACTERISTICS + DIMENSION_KEYS + WEIGHT_KEYS + ['Бренд', 'Цвет']
)

TAG_CHARACTERISTICS = ['Состав', 'Материал', 'Сезон', 'Пол', 'Цвет']

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class VariantDraft:
    sku: str
    price: Decimal
    stock: int
    size: Optional[str] = None
    color: Optional[str] = None


@dataclass
class ProductDraft:
    """Marketplace product mapped onto the store's product fields."""

    source_id: int
    title: str
    description: str
    category: str
    price: Decimal
    old_price: Optional[Decimal]
    images: List[str]
    stock: int
    material: str
    tags: List[str] = field(default_factory=list)
    variants: List[VariantDraft] = field(default_factory=list)


def sku_suffix() -> str:
    """Epoch milliseconds plus a 5-character random token."""
    token = ''.join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(5))
    return f'{int(time.time() * 1000)}-{token}'


def build_description(card: WBCard) -> str:
    description = card.description or ''
    chars: Dict[str, str] = card.characteristics
    if not chars:
        return description.strip()

    composition = next((chars[key] for key in COMPOSITION_KEYS if chars.get(key)), None)
    if composition:
        description += f'\n\nСостав: {composition}'

    for name in IMPORTANT_CHARACTERISTICS:
        if chars.get(name):
            description += f'\n{name}: {chars[name]}'

    if chars.get('Длина') and chars.get('Ширина'):
        dimensions = f'{chars["Ширина"]}х{chars["Длина"]}'
        if chars.get('Высота'):
            dimensions += f'х{chars["Высота"]}'
        description += f'\n\nРазмеры: {dimensions}'
    else:
        dimensions = next((chars[key] for key in DIMENSION_KEYS if chars.get(key)), None)
        if dimensions:
            description += f'\n\nРазмеры: {dimensions}'

    weight = next((chars[key] for key in WEIGHT_KEYS if chars.get(key)), None)
    if weight:
        description += f'\nВес: {weight}'

    others = [(key, value) for key, value in chars.items() if key not in DESCRIBED_KEYS]
    if others:
        description += '\n\nДополнительные характеристики:'
        for key, value in others:
            description += f'\n{key}: {value}'

    return description.strip()


def build_tags(card: WBCard) -> List[str]:
    tags: List[str] = []
    if card.brand:
        tags.append(card.brand)
    tags.extend(card.colors)
    for name in TAG_CHARACTERISTICS:
        if card.characteristics.get(name):
            tags.append(card.characteristics[name])
    # order-preserving dedup
    return list(dict.fromkeys(tags))


def build_variants(card: WBCard, suffix: str) -> List[VariantDraft]:
    """
    Size x color cross product.

    Stock of a size is split evenly between colors with floor division;
    the remainder is dropped.
    """
    variants: List[VariantDraft] = []
    valid_sizes = [size for size in card.sizes if size.is_valid]
    colors = card.colors

    if valid_sizes:
        for size_index, size in enumerate(valid_sizes):
            if colors:
                for color_index, color in enumerate(colors):
                    variants.append(VariantDraft(
                        sku=f'WB{card.id}-S{size_index}-C{color_index}-{suffix}',
                        price=size.price,
                        stock=size.stock // len(colors),
                        size=size.name,
                        color=color,
                    ))
            else:
                variants.append(VariantDraft(
                    sku=f'WB{card.id}-S{size_index}-{suffix}',
                    price=size.price,
                    stock=size.stock,
                    size=size.name,
                ))
    elif colors:
        total_stock = sum(size.stock for size in card.sizes)
        for color_index, color in enumerate(colors):
            variants.append(VariantDraft(
                sku=f'WB{card.id}-C{color_index}-{suffix}',
                price=card.price,
                stock=total_stock // len(colors),
                color=color,
            ))
    return variants


def normalize_card(card: WBCard, suffix: Optional[str] = None) -> ProductDraft:
    """Maps a decoded card onto a ``ProductDraft`` with generated variants."""
    old_price = card.old_price if card.old_price and card.old_price > card.price else None
    chars = card.characteristics
    return ProductDraft(
        source_id=card.id,
        title=f'{card.brand} - {card.name}' if card.brand else card.name,
        description=build_description(card),
        category=card.category,
        price=card.price,
        old_price=old_price,
        images=list(card.images),
        stock=sum(size.stock for size in card.sizes),
        material=chars.get('Материал') or chars.get('Состав') or '',
        tags=build_tags(card),
        variants=build_variants(card, suffix or sku_suffix()),
    )
