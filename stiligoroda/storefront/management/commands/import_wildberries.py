from django.core.management.base import BaseCommand

from storefront.services.wildberries import WildberriesImporter


class Command(BaseCommand):
    help = 'Импортирует товары с WildBerries по ссылкам или артикулам'

    def add_arguments(self, parser):
        parser.add_argument('urls', nargs='+', type=str, help='Ссылки на товары или артикулы')
        parser.add_argument(
            '--category',
            type=str,
            default=None,
            help='ID категории (по умолчанию - категория товара на WildBerries)'
        )

    def handle(self, *args, **options):
        importer = WildberriesImporter()
        batch = importer.import_many('\n'.join(options['urls']), options['category'])

        for product in batch.imported:
            self.stdout.write(f"+ {product.sku}: {product.title}")
        for error in batch.errors:
            self.stdout.write(self.style.ERROR(error))

        style = self.style.SUCCESS if not batch.errors else self.style.WARNING
        self.stdout.write(style(batch.message))
