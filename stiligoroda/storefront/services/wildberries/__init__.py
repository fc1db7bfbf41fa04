"""
Wildberries marketplace integration: fetch, decode, normalize, import.
"""

from .basket import basket_number, image_url
from .client import FetchAttempt, FetchResult, WildberriesAPIError, WildberriesClient
from .importer import WildberriesBatchResult, WildberriesImporter, WildberriesImportOutcome
from .normalizer import ProductDraft, VariantDraft, normalize_card
from .parser import extract_product_id, parse_multiple_product_urls
from .payload import WBCard, WBSize, decode_card

__all__ = [
    "basket_number",
    "image_url",
    "FetchAttempt",
    "FetchResult",
    "WildberriesAPIError",
    "WildberriesClient",
    "WildberriesBatchResult",
    "WildberriesImporter",
    "WildberriesImportOutcome",
    "ProductDraft",
    "VariantDraft",
    "normalize_card",
    "extract_product_id",
    "parse_multiple_product_urls",
    "WBCard",
    "WBSize",
    "decode_card",
]
