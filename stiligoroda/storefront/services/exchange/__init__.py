"""
Catalog exchange: CSV import/export, full export (zip/json/xlsx) and restore.
"""

from .archive_writer import ArchiveWriter, DownloadAttempt, ExportArtifact, FORMATS
from .csv_import import CSVImporter, export_products_csv, generate_sample_csv, validate_csv_structure
from .export_service import ExportCollector, ExportDocument, MediaFile
from .import_service import ImportService
from .results import ImportOptions, ImportResult

__all__ = [
    "ArchiveWriter",
    "DownloadAttempt",
    "ExportArtifact",
    "FORMATS",
    "CSVImporter",
    "export_products_csv",
    "generate_sample_csv",
    "validate_csv_structure",
    "ExportCollector",
    "ExportDocument",
    "MediaFile",
    "ImportService",
    "ImportOptions",
    "ImportResult",
]
