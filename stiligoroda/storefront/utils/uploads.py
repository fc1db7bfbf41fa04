"""
Validation of files uploaded to the catalog import endpoints.
"""

from typing import Iterable, Optional

from django.conf import settings

DEFAULT_UPLOAD_LIMITS = {
    'csv': 10 * 1024 * 1024,
    'json': 20 * 1024 * 1024,
    'zip': 100 * 1024 * 1024,
}


class UploadValidationError(Exception):
    """Загруженный файл не подходит для импорта"""
    pass


def _format_megabytes(size: int) -> str:
    return f'{size // (1024 * 1024)}MB'


def detect_upload_type(filename: str) -> Optional[str]:
    """Returns ``csv`` / ``json`` / ``zip`` by file extension, or None."""
    name = (filename or '').lower()
    for file_type in ('csv', 'json', 'zip'):
        if name.endswith(f'.{file_type}'):
            return file_type
    return None


def validate_upload(uploaded_file, expected_types: Iterable[str]) -> str:
    """
    Checks an uploaded file before it is handed to an importer.

    Args:
        uploaded_file: Django ``UploadedFile`` (or anything with name/size)
        expected_types: Allowed types, e.g. ``('zip', 'json')``

    Returns:
        Detected file type

    Raises:
        UploadValidationError: missing/empty file, wrong extension or too large
    """
    expected = list(expected_types)
    if uploaded_file is None:
        raise UploadValidationError('Файл не найден')
    if not uploaded_file.size:
        raise UploadValidationError('Файл пустой')

    file_type = detect_upload_type(uploaded_file.name)
    if file_type is None:
        raise UploadValidationError(
            f'Неподдерживаемый тип файла. Поддерживаются: {", ".join(expected)}'
        )
    if file_type not in expected:
        raise UploadValidationError(
            f'Файл типа {file_type} не поддерживается для данного импорта. '
            f'Поддерживаются: {", ".join(expected)}'
        )

    limits = getattr(settings, 'CATALOG_UPLOAD_LIMITS', DEFAULT_UPLOAD_LIMITS)
    limit = limits.get(file_type, DEFAULT_UPLOAD_LIMITS[file_type])
    if uploaded_file.size > limit:
        raise UploadValidationError(
            f'Размер файла не должен превышать {_format_megabytes(limit)}'
        )
    return file_type
