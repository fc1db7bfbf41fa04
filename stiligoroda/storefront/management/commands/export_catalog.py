"""
Полная выгрузка каталога в файл (zip / json / xlsx).
"""
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from storefront.services.errors import CatalogExportError
from storefront.services.exchange import FORMATS, ArchiveWriter, ExportCollector
from storefront.services.exchange.archive_writer import DOWNLOAD_OK


class Command(BaseCommand):
    help = 'Выгружает каталог (товары, категории, настройки, медиа) в zip, json или xlsx'

    def add_arguments(self, parser):
        parser.add_argument(
            '--format',
            choices=FORMATS,
            default='zip',
            help='Формат выгрузки'
        )
        parser.add_argument(
            '--output',
            type=str,
            default=None,
            help='Путь к файлу (по умолчанию export-YYYY-MM-DD.<format> в текущей папке)'
        )

    def handle(self, *args, **options):
        fmt = options['format']
        self.stdout.write(f"Collecting catalog for {fmt} export...")

        try:
            document = ExportCollector().collect()
            artifact = ArchiveWriter().write(document, fmt)
        except CatalogExportError as e:
            raise CommandError(str(e))

        output = Path(options['output'] or artifact.filename)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(artifact.content)

        self.stdout.write(f"Products: {len(document.products)}, categories: {len(document.categories)}")
        for attempt in artifact.attempts:
            if attempt.outcome != DOWNLOAD_OK:
                self.stdout.write(self.style.WARNING(f"{attempt.outcome}: {attempt.target} ({attempt.detail})"))
        if fmt == 'zip':
            self.stdout.write(f"Media downloaded: {artifact.downloaded} of {len(document.mediaIndex)}")
        self.stdout.write(self.style.SUCCESS(f"Export written to {output} ({len(artifact.content)} bytes)"))
