import uuid

from django.db import models
from django.utils.translation import gettext_lazy as _


def generate_object_id():
    """Opaque string id; preserved when a catalog document is re-imported."""
    return uuid.uuid4().hex


class ProductTier(models.TextChoices):
    ECONOMY = 'ECONOMY', _('Эконом')
    MIDDLE = 'MIDDLE', _('Средний')
    LUXURY = 'LUXURY', _('Люкс')


class ProductVisibility(models.TextChoices):
    VISIBLE = 'VISIBLE', _('Опубликован')
    HIDDEN = 'HIDDEN', _('Скрыт')
    DRAFT = 'DRAFT', _('Черновик')


class Category(models.Model):
    id = models.CharField(primary_key=True, max_length=64, default=generate_object_id, editable=False)
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    description = models.TextField(blank=True, default='')
    image = models.CharField(max_length=500, blank=True, default='', verbose_name='Изображение (URL)')
    parent = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        related_name='children',
        null=True,
        blank=True,
        verbose_name='Родительская категория'
    )
    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0, verbose_name='Порядок сортировки')
    seo_title = models.CharField(max_length=200, blank=True, default='', verbose_name='SEO Title')
    seo_description = models.CharField(max_length=500, blank=True, default='', verbose_name='SEO Description')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sort_order', 'name']
        verbose_name = 'Категория'
        verbose_name_plural = 'Категории'
        indexes = [
            models.Index(fields=['name'], name='idx_category_name'),
            models.Index(fields=['is_active'], name='idx_category_active'),
        ]

    def __str__(self):
        return self.name


class Product(models.Model):
    id = models.CharField(primary_key=True, max_length=64, default=generate_object_id, editable=False)
    slug = models.SlugField(max_length=255, unique=True)
    sku = models.CharField(max_length=100, unique=True, verbose_name='Артикул')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    content = models.TextField(blank=True, default='', verbose_name='Контент (HTML)')
    price = models.DecimalField(max_digits=10, decimal_places=2, verbose_name='Цена')
    old_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, verbose_name='Старая цена')
    currency = models.CharField(max_length=3, default='RUB')
    stock = models.IntegerField(default=0, verbose_name='Остаток')
    min_order = models.PositiveIntegerField(default=1, verbose_name='Минимальный заказ')
    weight = models.DecimalField(max_digits=8, decimal_places=3, null=True, blank=True, verbose_name='Вес (кг)')
    dimensions = models.CharField(max_length=200, blank=True, default='')
    material = models.CharField(max_length=255, blank=True, default='')
    tier = models.CharField(max_length=10, choices=ProductTier.choices, default=ProductTier.MIDDLE)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='products')
    tags = models.JSONField(blank=True, default=list)
    images = models.JSONField(blank=True, default=list, verbose_name='Изображения (URL)')
    thumbnail = models.CharField(max_length=500, blank=True, default='')
    is_active = models.BooleanField(default=True)
    is_featured = models.BooleanField(default=False)
    visibility = models.CharField(
        max_length=10,
        choices=ProductVisibility.choices,
        default=ProductVisibility.VISIBLE,
        verbose_name='Видимость'
    )
    seo_title = models.CharField(max_length=255, blank=True, default='', verbose_name='SEO Title')
    seo_description = models.CharField(max_length=500, blank=True, default='', verbose_name='SEO Description')
    meta_title = models.CharField(max_length=255, blank=True, default='')
    meta_description = models.CharField(max_length=500, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Товар'
        verbose_name_plural = 'Товары'
        indexes = [
            models.Index(fields=['category', 'visibility'], name='idx_product_cat_visibility'),
            models.Index(fields=['is_featured'], name='idx_product_featured'),
        ]

    def __str__(self):
        return self.title

    @property
    def is_in_stock(self):
        return self.stock > 0

    @property
    def display_thumbnail(self):
        """Миниатюра или первое изображение галереи."""
        if self.thumbnail:
            return self.thumbnail
        return self.images[0] if self.images else ''


class ProductVariant(models.Model):
    id = models.CharField(primary_key=True, max_length=64, default=generate_object_id, editable=False)
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='variants')
    size = models.CharField(max_length=100, blank=True, null=True)
    color = models.CharField(max_length=100, blank=True, null=True)
    material = models.CharField(max_length=255, blank=True, null=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    stock = models.IntegerField(default=0)
    sku = models.CharField(max_length=120, unique=True)
    is_active = models.BooleanField(default=True)
    image_url = models.CharField(max_length=500, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at', 'sku']
        verbose_name = 'Вариант товара'
        verbose_name_plural = 'Варианты товара'

    def __str__(self):
        attrs = ' / '.join(part for part in (self.size, self.color) if part)
        return f'{self.sku} ({attrs})' if attrs else self.sku
