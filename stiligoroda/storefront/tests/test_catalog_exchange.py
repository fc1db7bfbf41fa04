"""
Tests for full catalog export (json/zip/xlsx) and restore from an archive.
"""
from __future__ import annotations

import io
import json
import shutil
import tempfile
import zipfile
from decimal import Decimal
from pathlib import Path
from unittest import mock

import requests
from django.core.exceptions import SuspiciousFileOperation
from django.core.files.storage import FileSystemStorage
from django.db import OperationalError
from django.test import SimpleTestCase, TestCase
from openpyxl import load_workbook

from storefront.models import Category, Product, ProductVariant
from storefront.services.errors import CatalogExportError
from storefront.services.exchange import (
    ArchiveWriter,
    ExportCollector,
    ImportOptions,
    ImportService,
)
from storefront.services.exchange.archive_writer import (
    DOWNLOAD_DUPLICATE,
    DOWNLOAD_FAILED,
    DOWNLOAD_OK,
    flatten_settings,
)
from storefront.services.exchange.export_service import build_media_index
from storefront.services.exchange.import_service import order_categories

SITE_SETTINGS = {
    "siteName": "Стили Города",
    "contactEmail": "info@example.com",
    "socialLinks": {"vk": "https://vk.com/example"},
    "deliverySettings": {"freeDeliveryFrom": 5000},
}

IMAGE_A = "https://cdn.example.com/img/a.jpg"
IMAGE_B = "https://cdn.example.com/img/b.png"


def fake_session(content=b"IMG"):
    session = mock.Mock()
    session.get.return_value = mock.Mock(content=content, raise_for_status=mock.Mock())
    return session


def make_archive(files):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in files.items():
            archive.writestr(name, data)
    return buffer.getvalue()


class MediaStorageMixin:
    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls._uploads_root = tempfile.mkdtemp(prefix="catalog_uploads_tests_")

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(cls._uploads_root, ignore_errors=True)
        super().tearDownClass()

    def make_service(self):
        return ImportService(storage=FileSystemStorage(location=self._uploads_root))


class CatalogFixtureMixin:
    @classmethod
    def setUpTestData(cls):
        cls.parent = Category.objects.create(name="Текстиль", slug="textile", sort_order=1)
        cls.child = Category.objects.create(
            name="Постельное белье",
            slug="bedding",
            parent=cls.parent,
            image="https://cdn.example.com/cat/bedding.jpg",
            seo_title="Белье",
        )
        cls.product = Product.objects.create(
            sku="BED001",
            slug="komplekt",
            title="Комплект",
            description="Сатин",
            category=cls.child,
            price=Decimal("2500.00"),
            old_price=Decimal("3000.00"),
            stock=10,
            weight=Decimal("1.200"),
            tags=["сатин"],
            images=[IMAGE_A, IMAGE_B],
            seo_title="Комплект сатин",
        )
        ProductVariant.objects.create(product=cls.product, sku="BED001-M", size="M", price=Decimal("2300.00"), stock=4)
        ProductVariant.objects.create(product=cls.product, sku="BED001-L", size="L", price=Decimal("2700.00"), stock=6)


class ExportCollectorTests(CatalogFixtureMixin, TestCase):
    def test_document_shape(self):
        document = ExportCollector(site_settings=SITE_SETTINGS).collect()

        self.assertEqual(document.schemaVersion, "1.0")
        self.assertEqual(document.settings, SITE_SETTINGS)
        self.assertEqual(len(document.products), 1)

        product = document.products[0]
        self.assertEqual(product["category"], "Постельное белье")
        self.assertEqual(product["price"], 2500.0)
        self.assertEqual(product["oldPrice"], 3000.0)
        self.assertEqual(product["thumbnail"], IMAGE_A)
        self.assertTrue(product["isInStock"])
        self.assertEqual(
            sorted(variant["priceDiff"] for variant in product["variants"]),
            [-200.0, 200.0],
        )

        parent = next(c for c in document.categories if c["slug"] == "textile")
        self.assertEqual([child["slug"] for child in parent["children"]], ["bedding"])
        self.assertNotIn("children", parent["children"][0])

    def test_media_index(self):
        document = ExportCollector(site_settings={}).collect()

        self.assertEqual(
            [(m.fileName, m.mimeType) for m in document.mediaIndex],
            [("a.jpg", "image/jpeg"), ("b.png", "image/png"), ("bedding.jpg", "image/jpeg")],
        )
        self.assertTrue(all(len(m.checksum) == 16 for m in document.mediaIndex))

    def test_store_failure_raises_export_error(self):
        store = mock.Mock()
        store.list_products.side_effect = OperationalError("no such table")

        with self.assertRaises(CatalogExportError):
            ExportCollector(store=store, site_settings={}).collect()


class MediaIndexTests(SimpleTestCase):
    def test_remote_only_and_deduplicated(self):
        products = [
            {"images": ["/local/x.jpg", IMAGE_A, IMAGE_A], "thumbnail": IMAGE_A, "variants": [{"imageRef": None}]},
            {"images": [], "thumbnail": "", "variants": [{"imageRef": "https://cdn.example.com/v/red.webp"}]},
        ]
        categories = [{"image": ""}, {"image": "https://cdn.example.com/"}]

        index = build_media_index(products, categories)

        self.assertEqual([m.originalUrl for m in index], [IMAGE_A, "https://cdn.example.com/v/red.webp"])
        self.assertEqual(index[1].mimeType, "image/webp")

    def test_flatten_settings_labels(self):
        rows = dict(flatten_settings(SITE_SETTINGS))
        self.assertEqual(rows["Название сайта"], "Стили Города")
        self.assertEqual(rows["Соцсети: vk"], "https://vk.com/example")
        self.assertEqual(rows["Бесплатная доставка от"], 5000)

    def test_order_categories_parents_first(self):
        categories = [
            {"id": "c", "parentId": "b"},
            {"id": "b", "parentId": "a"},
            {"id": "a", "parentId": None},
            {"id": "d", "parentId": "ghost"},
        ]
        self.assertEqual([c["id"] for c in order_categories(categories)], ["a", "b", "c", "d"])


class ArchiveWriterTests(CatalogFixtureMixin, TestCase):
    def setUp(self):
        self.document = ExportCollector(site_settings=SITE_SETTINGS).collect()

    def test_json(self):
        artifact = ArchiveWriter(session=mock.Mock()).write(self.document, "json")

        self.assertEqual(artifact.content_type, "application/json")
        self.assertRegex(artifact.filename, r"^export-\d{4}-\d{2}-\d{2}\.json$")
        data = json.loads(artifact.content.decode("utf-8"))
        self.assertEqual(data["products"][0]["title"], "Комплект")
        self.assertIn("Комплект", artifact.content.decode("utf-8"))

    def test_zip_layout(self):
        session = fake_session()
        artifact = ArchiveWriter(session=session, timeout=7).write(self.document, "zip")

        with zipfile.ZipFile(io.BytesIO(artifact.content)) as archive:
            names = archive.namelist()
            self.assertEqual(json.loads(archive.read("data.json"))["schemaVersion"], "1.0")
            self.assertEqual(archive.read("media/a.jpg"), b"IMG")
            self.assertIn("Товаров: 1", archive.read("README.md").decode("utf-8"))
        self.assertIn("media/", names)
        self.assertIn("media/b.png", names)
        self.assertIn("media/bedding.jpg", names)
        self.assertEqual(artifact.downloaded, 3)
        session.get.assert_any_call(IMAGE_A, timeout=7)

    def test_zip_download_failures_are_not_fatal(self):
        session = mock.Mock()
        session.get.side_effect = requests.ConnectionError("down")

        artifact = ArchiveWriter(session=session).write(self.document, "zip")

        with zipfile.ZipFile(io.BytesIO(artifact.content)) as archive:
            names = archive.namelist()
        self.assertIn("data.json", names)
        self.assertNotIn("media/a.jpg", names)
        self.assertEqual({a.outcome for a in artifact.attempts}, {DOWNLOAD_FAILED})

    def test_zip_duplicate_media_names(self):
        self.product.images = [IMAGE_A, "https://mirror.example.com/a.jpg"]
        self.product.save()
        document = ExportCollector(site_settings={}).collect()

        artifact = ArchiveWriter(session=fake_session()).write(document, "zip")

        outcomes = [(a.target, a.outcome) for a in artifact.attempts]
        self.assertIn((IMAGE_A, DOWNLOAD_OK), outcomes)
        self.assertIn(("https://mirror.example.com/a.jpg", DOWNLOAD_DUPLICATE), outcomes)

    def test_xlsx(self):
        artifact = ArchiveWriter(session=mock.Mock()).write(self.document, "xlsx")

        workbook = load_workbook(io.BytesIO(artifact.content))
        self.assertEqual(workbook.sheetnames, ["Товары", "Категории", "Настройки"])
        products = workbook["Товары"]
        self.assertEqual(products["A1"].value, "ID")
        self.assertEqual(products["B2"].value, "BED001")
        self.assertEqual(products.max_row, 2)
        self.assertEqual(workbook["Категории"].max_row, 3)
        settings_rows = {row[0]: row[1] for row in workbook["Настройки"].iter_rows(min_row=2, values_only=True)}
        self.assertEqual(settings_rows["Название сайта"], "Стили Города")

    def test_unknown_format(self):
        with self.assertRaises(CatalogExportError):
            ArchiveWriter(session=mock.Mock()).write(self.document, "pdf")


class ImportServiceTests(MediaStorageMixin, CatalogFixtureMixin, TestCase):
    def export_zip(self):
        document = ExportCollector(site_settings=SITE_SETTINGS).collect()
        return ArchiveWriter(session=fake_session(b"PIXELS")).write(document, "zip").content

    def test_round_trip_update_restores_values(self):
        content = self.export_zip()
        Product.objects.filter(pk=self.product.pk).update(title="Изменено", price=Decimal("1.00"), stock=0)
        ProductVariant.objects.filter(product=self.product).update(price=Decimal("5.00"))

        result = self.make_service().import_archive(content, ImportOptions(update_existing=True))

        self.assertEqual(result.errors, [])
        self.assertEqual(result.updated["products"], 1)
        self.assertEqual(result.updated["categories"], 2)
        self.assertIn("Обновлен товар: Комплект", result.warnings)
        product = Product.objects.get(pk=self.product.pk)
        self.assertEqual(product.title, "Комплект")
        self.assertEqual(product.price, Decimal("2500.00"))
        self.assertEqual(product.old_price, Decimal("3000.00"))
        self.assertEqual(product.stock, 10)
        self.assertEqual(product.thumbnail, "")
        self.assertEqual(product.images, [IMAGE_A, IMAGE_B])
        self.assertEqual(
            sorted(product.variants.values_list("sku", "price")),
            [("BED001-L", Decimal("2700.00")), ("BED001-M", Decimal("2300.00"))],
        )
        self.assertEqual(result.processed["media"], 3)
        self.assertEqual((Path(self._uploads_root) / "a.jpg").read_bytes(), b"PIXELS")

    def test_restore_into_empty_store_preserves_ids(self):
        content = self.export_zip()
        variant_ids = set(ProductVariant.objects.values_list("pk", flat=True))
        Product.objects.all().delete()
        Category.objects.filter(pk=self.child.pk).delete()
        Category.objects.all().delete()

        result = self.make_service().import_archive(content, ImportOptions(import_media=False))

        self.assertEqual(result.errors, [])
        self.assertEqual(result.created, {"products": 1, "categories": 2, "media": 0})
        child = Category.objects.get(pk=self.child.pk)
        self.assertEqual(child.parent_id, self.parent.pk)
        self.assertEqual(child.seo_title, "Белье")
        product = Product.objects.get(pk=self.product.pk)
        self.assertEqual(product.category_id, self.child.pk)
        self.assertEqual(set(product.variants.values_list("pk", flat=True)), variant_ids)

    def test_existing_records_skipped_by_default(self):
        result = self.make_service().import_archive(self.export_zip(), ImportOptions(import_media=False))

        self.assertEqual(result.processed, {"products": 0, "categories": 0, "media": 0})
        self.assertEqual(result.skipped["products"], ["Комплект"])
        self.assertEqual(sorted(result.skipped["categories"]), ["Постельное белье", "Текстиль"])

    def test_skip_existing_counts_as_processed(self):
        result = self.make_service().import_archive(
            self.export_zip(),
            ImportOptions(skip_existing=True, import_media=False),
        )

        self.assertEqual(result.processed["products"], 1)
        self.assertEqual(result.processed["categories"], 2)
        self.assertEqual(result.created["products"], 0)

    def test_unknown_category_is_never_created(self):
        document = {
            "products": [{
                "id": "p-new", "slug": "new", "sku": "NEW-1", "title": "Новинка",
                "price": 10, "category": "Нет такой", "variants": [],
            }],
        }

        result = self.make_service().import_json(json.dumps(document).encode("utf-8"))

        self.assertEqual(result.errors, ["Товар Новинка пропущен: категория не найдена"])
        self.assertEqual(result.skipped["products"], ["Новинка"])
        self.assertFalse(Product.objects.filter(sku="NEW-1").exists())

    def test_category_mapping_and_missing_parent(self):
        document = {
            "categories": [{"id": "orphan", "name": "Сироты", "slug": "orphans", "parentId": "ghost"}],
            "products": [{
                "slug": "mapped", "sku": "MAP-1", "title": "Товар", "price": 99.5,
                "category": "Старое имя", "variants": [{"sku": "MAP-1-S", "attrs": {"size": "S"}, "priceDiff": 0.5}],
            }],
        }

        result = self.make_service().import_json(
            json.dumps(document),
            ImportOptions(category_mapping={"Старое имя": self.parent.pk}),
        )

        self.assertEqual(result.errors, [])
        self.assertIsNone(Category.objects.get(pk="orphan").parent)
        self.assertEqual(len(result.warnings), 1)
        product = Product.objects.get(sku="MAP-1")
        self.assertEqual(product.category, self.parent)
        self.assertEqual(product.variants.get().price, Decimal("100.00"))

    def test_item_error_does_not_stop_run(self):
        document = {
            "products": [
                {"slug": "broken", "sku": "BRK", "category": "Текстиль", "price": 1},
                {"slug": "ok", "sku": "OK-1", "title": "Нормальный", "category": "Текстиль", "price": 1},
            ],
        }

        result = self.make_service().import_json(json.dumps(document))

        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.created["products"], 1)
        self.assertTrue(Product.objects.filter(sku="OK-1").exists())

    def test_structural_failures(self):
        service = self.make_service()
        cases = [
            (b"not a zip", "Не удалось прочитать архив"),
            (make_archive({"README.md": "x"}), "Файл data.json не найден в архиве"),
            (make_archive({"data.json": "{oops"}), "Некорректный JSON в data.json"),
            (make_archive({"data.json": "[]"}), "Некорректная структура data.json"),
            (make_archive({"data.json": '{"categories": {"a": 1}}'}), "Некорректная структура data.json"),
            (make_archive({"data.json": '{"products": ["x"]}'}), "Некорректная структура data.json"),
            (make_archive({"data.json": '{"mediaIndex": "a.jpg"}'}), "Некорректная структура data.json"),
        ]
        for content, message in cases:
            with self.subTest(message=message):
                result = service.import_archive(content)
                self.assertEqual(len(result.errors), 1)
                self.assertTrue(result.errors[0].startswith(message))
                self.assertEqual(result.processed, {"products": 0, "categories": 0, "media": 0})

    def test_malformed_lists_write_nothing(self):
        document = {"categories": [{"id": "c9", "name": "Пледы", "slug": "pledy"}], "products": ["x"]}

        result = self.make_service().import_json(json.dumps(document))

        self.assertEqual(result.errors, ["Некорректная структура data.json: поле products должно быть списком объектов"])
        self.assertFalse(Category.objects.filter(slug="pledy").exists())

    def test_media_warnings(self):
        document = json.dumps({"mediaIndex": [{"fileName": "missing.jpg"}]})
        service = self.make_service()

        without_folder = service.import_archive(make_archive({"data.json": document}))
        self.assertEqual(without_folder.warnings, ["Папка media не найдена в архиве"])

        missing_file = service.import_archive(make_archive({"data.json": document, "media/other.jpg": b"x"}))
        self.assertEqual(missing_file.warnings, ["Файл не найден: missing.jpg"])
        self.assertEqual(missing_file.processed["media"], 0)

    def test_unsafe_media_name_is_reported_and_restore_continues(self):
        document = json.dumps({"mediaIndex": [{"fileName": ".."}, {"fileName": "ok.jpg"}]})

        result = self.make_service().import_archive(make_archive({"data.json": document, "media/ok.jpg": b"ok"}))

        self.assertEqual(result.warnings, ["Некорректное имя медиафайла: .."])
        self.assertEqual(result.processed["media"], 1)
        self.assertEqual((Path(self._uploads_root) / "ok.jpg").read_bytes(), b"ok")

    def test_storage_refusal_is_reported_per_file(self):
        document = json.dumps({"mediaIndex": [{"fileName": "a.jpg"}, {"fileName": "b.jpg"}]})
        storage = mock.Mock()
        storage.exists.return_value = False
        storage.save.side_effect = [SuspiciousFileOperation("outside of the base path"), "b.jpg"]
        service = ImportService(storage=storage)

        result = service.import_archive(
            make_archive({"data.json": document, "media/a.jpg": b"a", "media/b.jpg": b"b"})
        )

        self.assertEqual(len(result.errors), 1)
        self.assertIn("a.jpg", result.errors[0])
        self.assertEqual(result.processed["media"], 1)

    def test_media_overwrites_existing_file(self):
        document = json.dumps({"mediaIndex": [{"fileName": "same.jpg"}]})
        service = self.make_service()

        service.import_archive(make_archive({"data.json": document, "media/same.jpg": b"old"}))
        service.import_archive(make_archive({"data.json": document, "media/same.jpg": b"new"}))

        self.assertEqual((Path(self._uploads_root) / "same.jpg").read_bytes(), b"new")


class EmptyCatalogTests(MediaStorageMixin, TestCase):
    def test_empty_export_round_trip(self):
        artifact = ArchiveWriter(session=mock.Mock()).write(ExportCollector(site_settings={}).collect(), "zip")

        with zipfile.ZipFile(io.BytesIO(artifact.content)) as archive:
            self.assertEqual(json.loads(archive.read("data.json"))["products"], [])
            self.assertEqual([n for n in archive.namelist() if n.startswith("media/")], ["media/"])

        result = self.make_service().import_archive(artifact.content)

        self.assertEqual(result.processed, {"products": 0, "categories": 0, "media": 0})
        self.assertEqual(result.errors, [])
        self.assertEqual(result.warnings, [])
