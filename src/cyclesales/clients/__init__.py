# File readers for the supported export formats

from .spreadsheet_client import IngestionError, SpreadsheetLoader, load_file

__all__ = ["IngestionError", "SpreadsheetLoader", "load_file"]
