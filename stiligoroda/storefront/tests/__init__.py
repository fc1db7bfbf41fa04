"""
Unit tests for the storefront app.

Test structure:
- test_wildberries_parsing.py: link parsing, CDN shards, card decoding, variants
- test_wildberries_import.py: marketplace client (fake session) and importer
- test_csv_exchange.py: CSV import/export
- test_catalog_exchange.py: full export (json/zip/xlsx) and archive restore
- test_import_export_views.py: admin-panel endpoints
- test_commands.py: management commands
- test_utils.py: slugs, upload validation, import options
"""
