from django.db import migrations, models
import django.db.models.deletion

import storefront.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.CharField(default=storefront.models.generate_object_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('slug', models.SlugField(max_length=200, unique=True)),
                ('description', models.TextField(blank=True, default='')),
                ('image', models.CharField(blank=True, default='', max_length=500, verbose_name='Изображение (URL)')),
                ('is_active', models.BooleanField(default=True)),
                ('sort_order', models.IntegerField(default=0, verbose_name='Порядок сортировки')),
                ('seo_title', models.CharField(blank=True, default='', max_length=200, verbose_name='SEO Title')),
                ('seo_description', models.CharField(blank=True, default='', max_length=500, verbose_name='SEO Description')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='children', to='storefront.category', verbose_name='Родительская категория')),
            ],
            options={
                'verbose_name': 'Категория',
                'verbose_name_plural': 'Категории',
                'ordering': ['sort_order', 'name'],
                'indexes': [
                    models.Index(fields=['name'], name='idx_category_name'),
                    models.Index(fields=['is_active'], name='idx_category_active'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.CharField(default=storefront.models.generate_object_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ('slug', models.SlugField(max_length=255, unique=True)),
                ('sku', models.CharField(max_length=100, unique=True, verbose_name='Артикул')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('content', models.TextField(blank=True, default='', verbose_name='Контент (HTML)')),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Цена')),
                ('old_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name='Старая цена')),
                ('currency', models.CharField(default='RUB', max_length=3)),
                ('stock', models.IntegerField(default=0, verbose_name='Остаток')),
                ('min_order', models.PositiveIntegerField(default=1, verbose_name='Минимальный заказ')),
                ('weight', models.DecimalField(blank=True, decimal_places=3, max_digits=8, null=True, verbose_name='Вес (кг)')),
                ('dimensions', models.CharField(blank=True, default='', max_length=200)),
                ('material', models.CharField(blank=True, default='', max_length=255)),
                ('tier', models.CharField(choices=[('ECONOMY', 'Эконом'), ('MIDDLE', 'Средний'), ('LUXURY', 'Люкс')], default='MIDDLE', max_length=10)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('images', models.JSONField(blank=True, default=list, verbose_name='Изображения (URL)')),
                ('thumbnail', models.CharField(blank=True, default='', max_length=500)),
                ('is_active', models.BooleanField(default=True)),
                ('is_featured', models.BooleanField(default=False)),
                ('visibility', models.CharField(choices=[('VISIBLE', 'Опубликован'), ('HIDDEN', 'Скрыт'), ('DRAFT', 'Черновик')], default='VISIBLE', max_length=10, verbose_name='Видимость')),
                ('seo_title', models.CharField(blank=True, default='', max_length=255, verbose_name='SEO Title')),
                ('seo_description', models.CharField(blank=True, default='', max_length=500, verbose_name='SEO Description')),
                ('meta_title', models.CharField(blank=True, default='', max_length=255)),
                ('meta_description', models.CharField(blank=True, default='', max_length=500)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='products', to='storefront.category')),
            ],
            options={
                'verbose_name': 'Товар',
                'verbose_name_plural': 'Товары',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['category', 'visibility'], name='idx_product_cat_visibility'),
                    models.Index(fields=['is_featured'], name='idx_product_featured'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProductVariant',
            fields=[
                ('id', models.CharField(default=storefront.models.generate_object_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ('size', models.CharField(blank=True, max_length=100, null=True)),
                ('color', models.CharField(blank=True, max_length=100, null=True)),
                ('material', models.CharField(blank=True, max_length=255, null=True)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('stock', models.IntegerField(default=0)),
                ('sku', models.CharField(max_length=120, unique=True)),
                ('is_active', models.BooleanField(default=True)),
                ('image_url', models.CharField(blank=True, max_length=500, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='variants', to='storefront.product')),
            ],
            options={
                'verbose_name': 'Вариант товара',
                'verbose_name_plural': 'Варианты товара',
                'ordering': ['created_at', 'sku'],
            },
        ),
    ]
