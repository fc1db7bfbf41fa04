"""
Tests for the Wildberries HTTP client (fake session) and the store importer.
"""
from __future__ import annotations

from decimal import Decimal
from unittest import mock

import requests
from django.test import SimpleTestCase, TestCase

from storefront.models import Category, Product, ProductVisibility
from storefront.services.wildberries import (
    FetchResult,
    WildberriesAPIError,
    WildberriesClient,
    WildberriesImporter,
)
from storefront.services.wildberries.client import (
    OUTCOME_EMPTY,
    OUTCOME_HTTP_ERROR,
    OUTCOME_INVALID_JSON,
    OUTCOME_NETWORK_ERROR,
    OUTCOME_OK,
)

URLS = ["https://a.example/{product_id}", "https://b.example/{product_id}"]


def make_response(status_code=200, payload=None, json_error=None):
    response = mock.Mock(status_code=status_code, reason="Server Error" if status_code >= 400 else "OK")
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


def make_product(product_id):
    return {
        "id": product_id,
        "name": "Рюкзак",
        "brand": "Acme",
        "subjectName": "Рюкзаки",
        "pics": 2,
        "sizes": [
            {"name": "S", "price": {"total": 150000}, "stocks": [{"qty": 4}]},
            {"name": "M", "price": {"total": 170000}, "stocks": [{"qty": 2}]},
        ],
        "colors": [{"name": "черный"}],
    }


class WildberriesClientTests(SimpleTestCase):
    def setUp(self):
        self.session = mock.Mock()
        self.client = WildberriesClient(session=self.session, urls=URLS, timeout=5)

    def test_falls_back_to_next_endpoint(self):
        self.session.get.side_effect = [
            make_response(status_code=500),
            make_response(payload={"data": {"products": [{"id": 1}]}}),
        ]

        result = self.client.fetch(1)

        self.assertTrue(result.available)
        self.assertEqual(result.payload, {"id": 1})
        self.assertEqual([a.outcome for a in result.attempts], [OUTCOME_HTTP_ERROR, OUTCOME_OK])
        self.assertEqual([a.target for a in result.attempts], ["https://a.example/1", "https://b.example/1"])
        self.session.get.assert_called_with(
            "https://b.example/1",
            headers=WildberriesClient.HEADERS,
            timeout=5,
        )

    def test_stops_at_first_success(self):
        self.session.get.return_value = make_response(payload={"data": {"products": [{"id": 2}]}})

        result = self.client.fetch(2)

        self.assertEqual(self.session.get.call_count, 1)
        self.assertEqual(len(result.attempts), 1)

    def test_invalid_json_and_empty_products(self):
        self.session.get.side_effect = [
            make_response(json_error=ValueError("bad")),
            make_response(payload={"data": {"products": []}}),
        ]

        result = self.client.fetch(3)

        self.assertFalse(result.available)
        self.assertEqual([a.outcome for a in result.attempts], [OUTCOME_INVALID_JSON, OUTCOME_EMPTY])
        self.assertEqual(result.last_error, "Product not found in API response")

    def test_get_card_raises_when_all_endpoints_fail(self):
        self.session.get.side_effect = requests.ConnectionError("down")

        with self.assertRaises(WildberriesAPIError) as ctx:
            self.client.get_card(4)

        self.assertEqual(len(ctx.exception.attempts), 2)
        self.assertTrue(all(a.outcome == OUTCOME_NETWORK_ERROR for a in ctx.exception.attempts))
        self.assertIn("down", str(ctx.exception))

    def test_endpoint_templates_from_settings(self):
        with self.settings(WILDBERRIES_CARD_URLS=["https://c.example/{product_id}"], WILDBERRIES_REQUEST_TIMEOUT=3):
            client = WildberriesClient(session=self.session)
        self.assertEqual(client.urls, ["https://c.example/{product_id}"])
        self.assertEqual(client.timeout, 3)


class WildberriesImporterTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.category = Category.objects.create(name="Сумки", slug="sumki")

    def setUp(self):
        self.client = mock.Mock()
        self.client.get_card.side_effect = lambda product_id: FetchResult(
            product_id=product_id,
            payload=make_product(product_id),
        )
        self.importer = WildberriesImporter(client=self.client)

    def test_import_creates_draft_product_with_variants(self):
        outcome = self.importer.import_url("https://www.wildberries.ru/catalog/100/detail.aspx")

        self.assertTrue(outcome.success, outcome.error)
        product = outcome.product
        self.assertTrue(product.sku.startswith("WB-100-"))
        self.assertEqual(product.title, "Acme - Рюкзак")
        self.assertEqual(product.visibility, ProductVisibility.DRAFT)
        self.assertEqual(product.price, Decimal("1500"))
        self.assertEqual(product.old_price, Decimal("1700"))
        self.assertEqual(product.category.name, "Рюкзаки")
        self.assertEqual(len(product.images), 2)
        self.assertEqual(product.variants.count(), 2)
        self.assertEqual(
            sorted(product.variants.values_list("size", flat=True)),
            ["M", "S"],
        )

    def test_import_into_given_category(self):
        outcome = self.importer.import_url("100", category_id=self.category.pk)

        self.assertTrue(outcome.success)
        self.assertEqual(outcome.product.category, self.category)
        self.assertFalse(Category.objects.filter(name="Рюкзаки").exists())

    def test_unknown_category(self):
        outcome = self.importer.import_url("100", category_id="missing")

        self.assertEqual(outcome.error, "Указанная категория не найдена")
        self.client.get_card.assert_not_called()

    def test_link_without_id(self):
        outcome = self.importer.import_url("https://example.com/item")

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error, "Не удалось извлечь ID товара из ссылки")
        self.client.get_card.assert_not_called()

    def test_duplicate_by_first_image(self):
        first = self.importer.import_url("100")
        second = self.importer.import_url("https://www.wildberries.ru/catalog/100/detail.aspx")

        self.assertFalse(second.success)
        self.assertEqual(second.duplicate_of, first.product)
        self.assertEqual(second.error, 'Этот товар уже импортирован: "Acme - Рюкзак"')
        self.assertEqual(Product.objects.count(), 1)

    def test_marketplace_unavailable(self):
        self.client.get_card.side_effect = WildberriesAPIError("all endpoints failed")

        outcome = self.importer.import_url("100")

        self.assertFalse(outcome.success)
        self.assertIn("Не удалось импортировать товар с WildBerries", outcome.error)
        self.assertEqual(Product.objects.count(), 0)

    def test_undecodable_payload_is_reported(self):
        self.client.get_card.side_effect = lambda product_id: FetchResult(product_id=product_id, payload="broken")

        outcome = self.importer.import_url("100")

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error, "Не удалось разобрать данные товара WildBerries")
        self.assertEqual(Product.objects.count(), 0)

    def test_import_many_continues_after_undecodable_payload(self):
        self.client.get_card.side_effect = lambda product_id: FetchResult(
            product_id=product_id,
            payload="broken" if product_id == 200 else make_product(product_id),
        )

        result = self.importer.import_many(
            "https://www.wildberries.ru/catalog/200/detail.aspx\n"
            "https://www.wildberries.ru/catalog/100/detail.aspx"
        )

        self.assertEqual(len(result.imported), 1)
        self.assertEqual(len(result.errors), 1)
        self.assertIn("Не удалось разобрать данные товара WildBerries", result.errors[0])

    def test_import_many(self):
        result = self.importer.import_many(
            "https://www.wildberries.ru/catalog/100/detail.aspx\n"
            "https://www.wildberries.ru/catalog/200/detail.aspx\n"
            "https://www.wildberries.ru/catalog/100/detail.aspx"
        )

        self.assertEqual(result.total, 3)
        self.assertEqual(len(result.imported), 2)
        self.assertEqual(result.errors, ["Acme - Рюкзак: Уже импортирован (дубликат)"])
        self.assertEqual(result.message, "Импортировано: 2 из 3. Ошибок: 1")
        self.assertTrue(all(p.sku.startswith("WB-MULTI-") for p in result.imported))
        self.assertEqual(len({p.slug for p in result.imported}), 2)
