from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from storefront.services.exchange import CSVImporter, ImportOptions


class Command(BaseCommand):
    help = 'Импортирует товары из CSV файла'

    def add_arguments(self, parser):
        parser.add_argument('path', type=str, help='Путь к CSV файлу')
        parser.add_argument(
            '--update-existing',
            action='store_true',
            help='Обновлять товары с совпадающим SKU или slug'
        )
        parser.add_argument(
            '--skip-invalid',
            action='store_true',
            help='Продолжать импорт после строки с ошибкой'
        )
        parser.add_argument(
            '--validate-only',
            action='store_true',
            help='Только проверить файл, ничего не записывать'
        )

    def handle(self, *args, **options):
        path = Path(options['path'])
        if not path.is_file():
            raise CommandError(f'Файл не найден: {path}')

        result = CSVImporter().import_csv(
            path.read_bytes(),
            ImportOptions(
                update_existing=options['update_existing'],
                skip_invalid=options['skip_invalid'],
                validate_only=options['validate_only'],
            ),
        )

        for warning in result.warnings:
            self.stdout.write(self.style.WARNING(warning))
        for error in result.errors:
            self.stdout.write(self.style.ERROR(error))
        self.stdout.write(
            f"Rows: {result.processed['products']}, created: {result.created['products']}, "
            f"updated: {result.updated['products']}, skipped: {len(result.skipped['products'])}"
        )
        if not result.success:
            raise CommandError(f'Импорт завершён с ошибками: {len(result.errors)}')
        self.stdout.write(self.style.SUCCESS('Импорт CSV завершён'))
