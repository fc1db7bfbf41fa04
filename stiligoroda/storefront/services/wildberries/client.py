"""
HTTP client for the Wildberries public card API.

Endpoints are tried one after another until one of them returns a product;
each try is recorded as a ``FetchAttempt`` so the caller (and the logs) can
see why earlier endpoints were skipped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import requests
from django.conf import settings

from storefront.services.errors import CatalogSyncError

logger = logging.getLogger(__name__)


class WildberriesAPIError(CatalogSyncError):
    """Ни один эндпоинт Wildberries не вернул данные товара"""

    def __init__(self, message, attempts=None):
        super().__init__(message)
        self.attempts = list(attempts or [])


OUTCOME_OK = 'ok'
OUTCOME_HTTP_ERROR = 'http_error'
OUTCOME_NETWORK_ERROR = 'network_error'
OUTCOME_INVALID_JSON = 'invalid_json'
OUTCOME_EMPTY = 'empty'


@dataclass
class FetchAttempt:
    target: str
    outcome: str
    detail: str = ''

    @property
    def succeeded(self) -> bool:
        return self.outcome == OUTCOME_OK


@dataclass
class FetchResult:
    product_id: int
    payload: Optional[Dict[str, Any]] = None
    attempts: List[FetchAttempt] = field(default_factory=list)
    last_error: str = ''

    @property
    def available(self) -> bool:
        return self.payload is not None


class WildberriesClient:
    """
    Клиент публичного API карточек Wildberries.

    Основные методы:
    - fetch(product_id) - перебрать эндпоинты, вернуть FetchResult
    - get_card(product_id) - то же, но с WildberriesAPIError при неудаче
    """

    CARD_URLS = [
        'https://card.wb.ru/cards/v2/detail?appType=1&curr=rub&dest=-1257786&spp=30&nm={product_id}',
        'https://card.wb.ru/cards/v1/detail?appType=1&curr=rub&dest=-1257786&spp=30&nm={product_id}',
        'https://card.wb.ru/cards/detail?appType=1&curr=rub&dest=-1257786&spp=30&nm={product_id}',
        'https://card.wb.ru/cards/detail?nm={product_id}',
    ]
    REQUEST_TIMEOUT = 10  # секунды

    HEADERS = {
        'Accept': 'application/json',
        'Accept-Language': 'ru-RU,ru;q=0.9,en;q=0.8',
        'User-Agent': (
            'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
            '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
        ),
        'Origin': 'https://www.wildberries.ru',
        'Referer': 'https://www.wildberries.ru/',
    }

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        urls: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
    ):
        self.session = session or requests.Session()
        self.urls = list(urls or getattr(settings, 'WILDBERRIES_CARD_URLS', self.CARD_URLS))
        self.timeout = timeout or getattr(settings, 'WILDBERRIES_REQUEST_TIMEOUT', self.REQUEST_TIMEOUT)

    def fetch(self, product_id: int) -> FetchResult:
        """
        Returns the first ``data.products[0]`` found across the endpoints.

        Failures of individual endpoints never raise; they are recorded in
        ``FetchResult.attempts`` and the next endpoint is tried.
        """
        result = FetchResult(product_id=product_id)

        for template in self.urls:
            url = template.format(product_id=product_id)
            try:
                response = self.session.get(url, headers=self.HEADERS, timeout=self.timeout)
            except requests.RequestException as exc:
                attempt = FetchAttempt(url, OUTCOME_NETWORK_ERROR, str(exc))
            else:
                attempt = self._inspect_response(url, response, result)

            result.attempts.append(attempt)
            if attempt.succeeded:
                logger.info(f"WB product {product_id} fetched from {url}")
                return result

            result.last_error = attempt.detail
            logger.warning(
                f"WB endpoint failed for {product_id}: {url} "
                f"({attempt.outcome}: {attempt.detail})"
            )

        logger.error(
            f"All WB endpoints failed for {product_id}. Last error: {result.last_error}"
        )
        return result

    def _inspect_response(self, url: str, response, result: FetchResult) -> FetchAttempt:
        if not 200 <= response.status_code < 300:
            return FetchAttempt(
                url,
                OUTCOME_HTTP_ERROR,
                f'WB API error: {response.status_code} {response.reason or ""}'.strip(),
            )
        try:
            data = response.json()
        except ValueError as exc:
            return FetchAttempt(url, OUTCOME_INVALID_JSON, f'Invalid JSON: {exc}')

        products = ((data or {}).get('data') or {}).get('products') if isinstance(data, dict) else None
        if not products:
            return FetchAttempt(url, OUTCOME_EMPTY, 'Product not found in API response')

        result.payload = products[0]
        return FetchAttempt(url, OUTCOME_OK)

    def get_card(self, product_id: int) -> FetchResult:
        """
        Raises:
            WildberriesAPIError: when every endpoint failed
        """
        result = self.fetch(product_id)
        if not result.available:
            raise WildberriesAPIError(
                f'Не удалось получить данные товара с WildBerries: {result.last_error}',
                attempts=result.attempts,
            )
        return result
