"""
Wildberries image CDN ("basket") shard resolution.

The CDN spreads product images over ``basket-NN`` hosts by ``vol`` (the
product id divided by 100 000). The boundaries are not published; the table
below is what has been observed on the marketplace and is the only place in
the project that knows it. Newer products beyond the table fall back to an
estimate, so generated URLs may occasionally 404.
"""

from typing import List, Tuple

IMAGE_HOST_TEMPLATE = 'https://basket-{shard}.wbbasket.ru'

# (vol_low, vol_high, shard), inclusive bounds, first match wins
BASKET_RANGES: List[Tuple[int, int, int]] = [
    (0, 143, 1),
    (144, 287, 2),
    (288, 431, 3),
    (432, 719, 4),
    (720, 1007, 5),
    (1008, 1061, 6),
    (1062, 1115, 7),
    (1116, 1169, 8),
    (1170, 1313, 9),
    (1314, 1601, 10),
    (1602, 1655, 11),
    (1656, 1919, 12),
    (1920, 2045, 13),
    (2046, 2189, 14),
    (2190, 2405, 15),
    (2406, 2621, 16),
    (2622, 2837, 17),
    (2838, 3053, 18),
    (3054, 3269, 19),
    (3270, 3485, 20),
    (3486, 3701, 21),
    (3702, 3917, 22),
    (3918, 4133, 23),
    (4134, 4349, 24),
    (4350, 4599, 25),
    (4600, 4849, 26),
    (4850, 5099, 27),
    (5100, 5349, 28),
    (5350, 5699, 29),
    (5700, 5999, 30),
    (6000, 6299, 31),
    (6100, 6349, 32),
    (6350, 6599, 33),
    (6600, 6849, 34),
    (6850, 7099, 35),
]

LAST_RANGE_START = BASKET_RANGES[-1][1] + 1
RANGE_WIDTH = 250
NEXT_SHARD = BASKET_RANGES[-1][2] + 1
MAX_SHARD = 99


def basket_number(product_id: int) -> str:
    """
    Returns the two-digit CDN shard for a product id (``"01"`` .. ``"99"``).
    """
    vol = product_id // 100000
    for low, high, shard in BASKET_RANGES:
        if low <= vol <= high:
            return f'{shard:02d}'
    shard = min((vol - LAST_RANGE_START) // RANGE_WIDTH + NEXT_SHARD, MAX_SHARD)
    return f'{shard:02d}'


def image_url(product_id: int, index: int) -> str:
    """Big ``webp`` image URL for the ``index``-th (1-based) product photo."""
    nm = str(product_id)
    host = IMAGE_HOST_TEMPLATE.format(shard=basket_number(product_id))
    return f'{host}/vol{nm[:4]}/part{nm[:6]}/{nm}/images/big/{index}.webp'
