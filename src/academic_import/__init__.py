"""Spreadsheet bulk-ingestion pipeline for academic administration imports.

Locates meaningful columns in arbitrary operator spreadsheets, validates every
row against a per-import-kind target schema, and submits accepted records to a
batch-create endpoint, reconciling its partial success back to spreadsheet rows.
"""

__version__ = "0.1.0"
