"""
Восстановление каталога из архива экспорта или data.json.
"""
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from storefront.services.exchange import ImportOptions, ImportService


class Command(BaseCommand):
    help = 'Импортирует каталог из архива экспорта (.zip) или документа (.json)'

    def add_arguments(self, parser):
        parser.add_argument('path', type=str, help='Путь к .zip или .json файлу')
        parser.add_argument(
            '--update-existing',
            action='store_true',
            help='Обновлять существующие категории и товары'
        )
        parser.add_argument(
            '--skip-existing',
            action='store_true',
            help='Пропускать существующие категории и товары'
        )
        parser.add_argument(
            '--no-media',
            action='store_true',
            help='Не восстанавливать медиафайлы из архива'
        )

    def handle(self, *args, **options):
        path = Path(options['path'])
        if not path.is_file():
            raise CommandError(f'Файл не найден: {path}')

        import_options = ImportOptions(
            skip_existing=options['skip_existing'],
            update_existing=options['update_existing'],
            import_media=not options['no_media'],
        )
        service = ImportService()
        content = path.read_bytes()
        if path.suffix.lower() == '.json':
            result = service.import_json(content, import_options)
        else:
            result = service.import_archive(content, import_options)

        for entity in ('categories', 'products', 'media'):
            self.stdout.write(
                f"{entity}: processed={result.processed[entity]}, "
                f"created={result.created[entity]}, updated={result.updated[entity]}, "
                f"skipped={len(result.skipped[entity])}"
            )
        for warning in result.warnings:
            self.stdout.write(self.style.WARNING(warning))
        for error in result.errors:
            self.stdout.write(self.style.ERROR(error))

        if result.success:
            self.stdout.write(self.style.SUCCESS('Импорт завершён'))
        else:
            raise CommandError(f'Импорт завершён с ошибками: {len(result.errors)}')
