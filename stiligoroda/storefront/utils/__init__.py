"""
Storefront utilities package.
"""

from .slugs import (
    generate_slug,
    make_unique,
)
from .uploads import (
    UploadValidationError,
    validate_upload,
)

__all__ = [
    'generate_slug',
    'make_unique',
    'UploadValidationError',
    'validate_upload',
]
