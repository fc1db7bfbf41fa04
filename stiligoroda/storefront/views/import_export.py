"""
Import/export views - обмен данными каталога из админ-панели.

Содержит views для:
- Полной выгрузки каталога (zip / json / xlsx)
- Восстановления каталога из архива или JSON
- Импорта и выгрузки товаров в CSV
- Импорта товаров с WildBerries по ссылке
"""

import json
import logging

from django.contrib.admin.views.decorators import staff_member_required
from django.http import HttpResponse, JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from ..services.errors import CatalogExportError
from ..services.exchange import (
    FORMATS,
    ArchiveWriter,
    CSVImporter,
    ExportCollector,
    ImportOptions,
    ImportService,
    export_products_csv,
    generate_sample_csv,
    validate_csv_structure,
)
from ..services.wildberries import WildberriesImporter
from ..utils.uploads import UploadValidationError, validate_upload

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPE = 'text/csv; charset=utf-8'


def _attachment(content, content_type, filename):
    response = HttpResponse(content, content_type=content_type)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def _error(message, status=400):
    return JsonResponse({'success': False, 'error': message}, status=status)


def _read_options(request):
    """Опции импорта из поля ``options`` (JSON-строка)."""
    raw = request.POST.get('options') or '{}'
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError('options must be an object')
    return ImportOptions.from_dict(data)


def _result_response(result):
    return JsonResponse({
        'success': result.success,
        'data': result.as_dict(),
        'error': result.errors[0] if result.errors else None,
    })


@staff_member_required
@require_http_methods(["GET"])
def catalog_export(request):
    """
    Полная выгрузка каталога.

    GET params:
        format: zip (по умолчанию), json или xlsx
    """
    fmt = request.GET.get('format', 'zip').lower()
    if fmt not in FORMATS:
        return _error(f'Неподдерживаемый формат экспорта: {fmt}')

    try:
        document = ExportCollector().collect()
        artifact = ArchiveWriter().write(document, fmt)
    except CatalogExportError as e:
        logger.error(f"Catalog export failed: {e}")
        return _error(str(e), status=500)

    return _attachment(artifact.content, artifact.content_type, artifact.filename)


@staff_member_required
@require_http_methods(["POST"])
def catalog_import(request):
    """
    Восстановление каталога из архива экспорта (.zip) или data.json (.json).

    POST params:
        file: файл выгрузки
        options: JSON с опциями (updateExisting, skipExisting, importMedia, ...)
    """
    uploaded = request.FILES.get('file')
    try:
        file_type = validate_upload(uploaded, ['zip', 'json'])
        options = _read_options(request)
    except UploadValidationError as e:
        return _error(str(e))
    except ValueError:
        return _error('Некорректные параметры импорта')

    service = ImportService()
    content = uploaded.read()
    if file_type == 'zip':
        result = service.import_archive(content, options)
    else:
        result = service.import_json(content, options)

    logger.info(f"Catalog import by {request.user}: {uploaded.name}, errors={len(result.errors)}")
    return _result_response(result)


@staff_member_required
@require_http_methods(["POST"])
def products_import_csv(request):
    """
    Импорт товаров из CSV.

    POST params:
        file: CSV файл (разделитель ; , или табуляция)
        options: JSON с опциями (updateExisting, skipInvalid, validateOnly, categoryMapping)
    """
    uploaded = request.FILES.get('file')
    try:
        validate_upload(uploaded, ['csv'])
        options = _read_options(request)
    except UploadValidationError as e:
        return _error(str(e))
    except ValueError:
        return _error('Некорректные параметры импорта')

    content = uploaded.read()
    structure = validate_csv_structure(content)
    if not structure.is_valid:
        return JsonResponse({
            'success': False,
            'error': structure.errors[0],
            'data': {'errors': structure.errors, 'columns': structure.columns},
        }, status=400)

    result = CSVImporter().import_csv(content, options)
    return _result_response(result)


@staff_member_required
@require_http_methods(["GET"])
def products_export_csv(request):
    filename = f'products-export-{timezone.localdate().isoformat()}.csv'
    return _attachment(export_products_csv(), CSV_CONTENT_TYPE, filename)


@staff_member_required
@require_http_methods(["GET"])
def products_sample_csv(request):
    return _attachment(generate_sample_csv(), CSV_CONTENT_TYPE, 'products-sample.csv')


@staff_member_required
@require_http_methods(["POST"])
def import_wildberries(request):
    """
    Импорт товара с WildBerries.

    POST params (form или JSON):
        url: ссылка на товар или несколько ссылок через перенос строки / запятую
        categoryId: ID категории (опционально)

    Returns:
        JsonResponse: success, data (id, title, sku) или error
    """
    if request.content_type == 'application/json':
        try:
            data = json.loads(request.body or b'{}')
        except ValueError:
            return _error('Некорректный JSON')
        if not isinstance(data, dict):
            return _error('Некорректный JSON')
    else:
        data = request.POST

    text = (data.get('url') or '').strip()
    category_id = data.get('categoryId') or None
    if not text:
        return _error('URL товара обязателен')

    importer = WildberriesImporter()
    lines = [line for line in text.replace(',', '\n').splitlines() if line.strip()]
    if len(lines) > 1:
        batch = importer.import_many(text, category_id)
        return JsonResponse({
            'success': bool(batch.imported),
            'data': {
                'total': batch.total,
                'imported': [{'id': p.pk, 'title': p.title, 'sku': p.sku} for p in batch.imported],
                'errors': batch.errors,
                'message': batch.message,
            },
            'error': None if batch.imported else batch.message,
        })

    outcome = importer.import_url(text, category_id)
    if not outcome.success:
        status = 409 if outcome.duplicate_of is not None else 400
        return _error(outcome.error, status=status)

    product = outcome.product
    return JsonResponse({
        'success': True,
        'data': {
            'id': product.pk,
            'title': product.title,
            'sku': product.sku,
            'slug': product.slug,
            'variants': product.variants.count(),
        },
    })
