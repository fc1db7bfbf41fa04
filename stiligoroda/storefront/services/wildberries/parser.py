"""
Product id extraction from Wildberries links.
"""

import re
from typing import List, Optional

# URL forms first, the bare-id form last
PRODUCT_ID_PATTERNS = [
    re.compile(r'wildberries\.ru/catalog/(\d+)', re.IGNORECASE),
    re.compile(r'wb\.ru/catalog/(\d+)', re.IGNORECASE),
    re.compile(r'^(\d+)$'),
]

_SPLIT_RE = re.compile(r'[\n,]')


def extract_product_id(value: str) -> Optional[int]:
    """
    Extracts a marketplace product id from a link or a bare id.

    ``https://www.wildberries.ru/catalog/407325131/detail.aspx`` -> 407325131

    Returns None when nothing usable is found; never raises.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    for pattern in PRODUCT_ID_PATTERNS:
        match = pattern.search(text)
        if match:
            product_id = int(match.group(1))
            if product_id > 0:
                return product_id
    return None


def parse_multiple_product_urls(text: str) -> List[str]:
    """Splits a pasted list (newline or comma separated) into usable links."""
    if not text or not text.strip():
        return []
    entries = (line.strip() for line in _SPLIT_RE.split(text))
    return [entry for entry in entries if entry and extract_product_id(entry) is not None]
