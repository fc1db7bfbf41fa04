"""
Options and result containers shared by the catalog importers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

ENTITIES = ('products', 'categories', 'media')


def _counter() -> Dict[str, int]:
    return {entity: 0 for entity in ENTITIES}


def _name_lists() -> Dict[str, List[str]]:
    return {entity: [] for entity in ENTITIES}


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


@dataclass
class ImportOptions:
    skip_existing: bool = False
    update_existing: bool = False
    import_media: bool = True
    validate_only: bool = False
    skip_invalid: bool = False
    category_mapping: Dict[str, str] = field(default_factory=dict)

    # wire name -> attribute
    ALIASES = {
        'skipExisting': 'skip_existing',
        'updateExisting': 'update_existing',
        'importMedia': 'import_media',
        'validateOnly': 'validate_only',
        'skipInvalid': 'skip_invalid',
        'categoryMapping': 'category_mapping',
    }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'ImportOptions':
        """Accepts both ``updateExisting`` and ``update_existing`` spellings."""
        options = cls()
        for key, value in (data or {}).items():
            name = cls.ALIASES.get(key, key)
            if name == 'category_mapping':
                options.category_mapping = dict(value or {})
            elif name in ('skip_existing', 'update_existing', 'import_media', 'validate_only', 'skip_invalid'):
                setattr(options, name, _truthy(value))
        return options


@dataclass
class ImportResult:
    """
    Report of one import run.

    ``processed``/``created``/``updated`` are per-entity counters,
    ``skipped`` keeps the names of skipped items per entity.
    """

    processed: Dict[str, int] = field(default_factory=_counter)
    created: Dict[str, int] = field(default_factory=_counter)
    updated: Dict[str, int] = field(default_factory=_counter)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    skipped: Dict[str, List[str]] = field(default_factory=_name_lists)

    @property
    def success(self) -> bool:
        return not self.errors

    def as_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'processed': dict(self.processed),
            'created': dict(self.created),
            'updated': dict(self.updated),
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'skipped': {entity: list(names) for entity, names in self.skipped.items()},
        }

    @classmethod
    def failed(cls, message: str) -> 'ImportResult':
        result = cls()
        result.errors.append(message)
        return result
