"""
Thin access layer over the catalog models.

Every pipeline service receives a ``CatalogStore`` through its constructor,
so the ORM is touched in one place and tests can hand in a prepared store.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import Q

from storefront.models import Category, Product, ProductVariant
from storefront.utils.slugs import generate_slug, make_unique


class CatalogStore:
    """Create/find/update/delete for categories, products and variants."""

    # ---- transactions -------------------------------------------------

    def atomic(self):
        return transaction.atomic()

    # ---- categories ---------------------------------------------------

    def list_categories(self) -> List[Category]:
        return list(
            Category.objects.select_related('parent')
            .prefetch_related('children')
            .order_by('sort_order', 'name')
        )

    def get_category(self, category_id: str) -> Optional[Category]:
        return Category.objects.filter(pk=category_id).first()

    def find_category_by_slug(self, slug: str) -> Optional[Category]:
        if not slug:
            return None
        return Category.objects.filter(slug=slug).first()

    def find_category_by_name(self, name: str) -> Optional[Category]:
        if not name:
            return None
        return Category.objects.filter(name=name).first()

    def category_lookup(self) -> Dict[str, str]:
        """Lowercased name and slug -> category id."""
        lookup: Dict[str, str] = {}
        for pk, name, slug in Category.objects.values_list('pk', 'name', 'slug'):
            lookup[name.lower()] = pk
            lookup[slug.lower()] = pk
        return lookup

    def create_category(self, **fields: Any) -> Category:
        return Category.objects.create(**fields)

    def update_category(self, category: Category, **fields: Any) -> Category:
        for name, value in fields.items():
            setattr(category, name, value)
        category.save()
        return category

    def get_or_create_category(self, name: str, description: str = '') -> Category:
        slug = generate_slug(name) or 'category'
        category = self.find_category_by_slug(slug)
        if category:
            return category
        return Category.objects.create(
            name=name,
            slug=slug,
            description=description,
            is_active=True,
        )

    # ---- products -----------------------------------------------------

    def list_products(self) -> List[Product]:
        return list(
            Product.objects.select_related('category')
            .prefetch_related('variants')
            .order_by('created_at', 'sku')
        )

    def get_product(self, product_id: str) -> Optional[Product]:
        return Product.objects.filter(pk=product_id).first()

    def find_product(self, *, sku: str = '', slug: str = '') -> Optional[Product]:
        """Existing product matching either the SKU or the slug."""
        query = Q()
        if sku:
            query |= Q(sku=sku)
        if slug:
            query |= Q(slug=slug)
        if not query:
            return None
        return Product.objects.filter(query).first()

    def find_product_with_image(self, image_url: str) -> Optional[Product]:
        # JSON containment lookups are not portable across backends
        if not image_url:
            return None
        for product in Product.objects.only('pk', 'title', 'images'):
            if image_url in (product.images or []):
                return product
        return None

    def product_slug_exists(self, slug: str) -> bool:
        return Product.objects.filter(slug=slug).exists()

    def product_sku_exists(self, sku: str) -> bool:
        return Product.objects.filter(sku=sku).exists()

    def unique_product_slug(self, title: str) -> str:
        base = generate_slug(title) or 'product'
        return make_unique(base, self.product_slug_exists)

    def unique_product_sku(self, base: str) -> str:
        return make_unique(base, self.product_sku_exists)

    def create_product(self, **fields: Any) -> Product:
        return Product.objects.create(**fields)

    def update_product(self, product: Product, **fields: Any) -> Product:
        for name, value in fields.items():
            setattr(product, name, value)
        product.save()
        return product

    def product_price(self, product_id: str) -> Optional[Decimal]:
        """Current stored base price (re-read, not taken from memory)."""
        return Product.objects.filter(pk=product_id).values_list('price', flat=True).first()

    # ---- variants -----------------------------------------------------

    def delete_variants(self, product: Product) -> int:
        deleted, _ = ProductVariant.objects.filter(product=product).delete()
        return deleted

    def variant_sku_exists(self, sku: str) -> bool:
        return ProductVariant.objects.filter(sku=sku).exists()

    def create_variant(self, product: Product, **fields: Any) -> ProductVariant:
        return ProductVariant.objects.create(product=product, **fields)

    def list_variants(self, product: Product) -> Iterable[ProductVariant]:
        return product.variants.all()
