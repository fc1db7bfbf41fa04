"""
Slug helpers for catalog entities.

Russian titles are transliterated to latin before slugification so that
product URLs stay readable (``Комплект "Образец"`` -> ``komplekt-obrazets``).
"""

from typing import Callable

from django.utils.text import slugify

CYRILLIC_TRANSLIT = {
    'а': 'a', 'б': 'b', 'в': 'v', 'г': 'g', 'д': 'd', 'е': 'e', 'ё': 'yo',
    'ж': 'zh', 'з': 'z', 'и': 'i', 'й': 'y', 'к': 'k', 'л': 'l', 'м': 'm',
    'н': 'n', 'о': 'o', 'п': 'p', 'р': 'r', 'с': 's', 'т': 't', 'у': 'u',
    'ф': 'f', 'х': 'h', 'ц': 'ts', 'ч': 'ch', 'ш': 'sh', 'щ': 'sch',
    'ъ': '', 'ы': 'y', 'ь': '', 'э': 'e', 'ю': 'yu', 'я': 'ya',
}


def generate_slug(text: str) -> str:
    """
    Transliterates and slugifies text.

    Args:
        text: Arbitrary title (Cyrillic or latin)

    Returns:
        Lowercase latin slug without leading/trailing dashes (may be empty)
    """
    lowered = (text or '').lower()
    translit = ''.join(CYRILLIC_TRANSLIT.get(char, char) for char in lowered)
    return slugify(translit)


def make_unique(base: str, exists: Callable[[str], bool]) -> str:
    """
    Appends ``-1``, ``-2`` ... to ``base`` until ``exists`` returns False.
    """
    candidate = base
    counter = 0
    while exists(candidate):
        counter += 1
        candidate = f'{base}-{counter}'
    return candidate
