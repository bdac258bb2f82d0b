"""
Loader for the sales-cycle spreadsheet exports.

THIS FILE CONTAINS EXPORT-SPECIFIC LOGIC:
- Excel workbooks: only the first sheet is read
- CSV exports: the delimiter varies between exports (pipe, semicolon or
  comma) and is detected from the header line
- Numbers in CSV exports use decimal commas ("15,48"); they are kept as
  text here and resolved by the row schema

Anything that prevents reading the file at all raises IngestionError and
aborts the load. Problems inside individual rows never do: they are
handled row by row by the normalizer.
"""

import logging
import zipfile
from pathlib import Path
from typing import Any

import pandas as pd

from ..core.ingest import IngestionResult, normalize_rows

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv", ".txt"}


class IngestionError(Exception):
    """The file could not be read or decoded; no records were produced."""


def detect_delimiter(header_line: str) -> str:
    """Pick the delimiter that dominates the header line."""
    pipes = header_line.count("|")
    semicolons = header_line.count(";")
    commas = header_line.count(",")

    if pipes > semicolons and pipes > commas:
        return "|"
    if semicolons > commas:
        return ";"
    return ","


def _strip_quotes(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().strip("\"'")
    return value


class SpreadsheetLoader:
    """
    Reads one sales export (.xlsx or .csv) and normalizes its rows.

    Usage:
        result = SpreadsheetLoader("exports/cycle_sales.xlsx").load()
        result.records, result.quality
    """

    def __init__(self, path: Path | str, encoding: str = "utf-8"):
        self.path = Path(path)
        self.encoding = encoding

    def load(self) -> IngestionResult:
        """Read and normalize the file."""
        rows = self.read_rows()
        result = normalize_rows(rows)
        logger.info(
            "Loaded %s: %d rows, %.1f%% valid",
            self.path.name,
            result.quality.total_rows,
            result.quality.percent_valid,
        )
        return result

    def read_rows(self) -> list[dict[str, Any]]:
        """Read the raw rows as header -> cell mappings."""
        if not self.path.is_file():
            raise self._fail(f"File not found: {self.path}")

        suffix = self.path.suffix.lower()
        logger.info("Reading %s", self.path)

        if suffix in EXCEL_SUFFIXES:
            df = self._read_excel()
        elif suffix in CSV_SUFFIXES:
            df = self._read_csv()
        else:
            raise self._fail(
                f"Unsupported file type '{suffix}': expected .xlsx, .xls or .csv"
            )

        if df.empty:
            raise self._fail(f"{self.path.name} has no data rows")

        df.columns = [str(c).strip().strip("\"'") for c in df.columns]
        return df.to_dict(orient="records")

    def _read_excel(self) -> pd.DataFrame:
        try:
            return pd.read_excel(self.path, sheet_name=0)
        except (OSError, ValueError, ImportError, zipfile.BadZipFile) as exc:
            raise self._fail(f"Could not read workbook {self.path.name}: {exc}") from exc

    def _read_csv(self) -> pd.DataFrame:
        try:
            with open(self.path, encoding=self.encoding) as f:
                header = f.readline()
        except (OSError, UnicodeDecodeError) as exc:
            raise self._fail(f"Could not read {self.path.name}: {exc}") from exc

        delimiter = detect_delimiter(header)
        logger.debug("CSV delimiter for %s: %r", self.path.name, delimiter)

        try:
            df = pd.read_csv(
                self.path,
                sep=delimiter,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                encoding=self.encoding,
            )
        except (OSError, ValueError, UnicodeDecodeError, pd.errors.ParserError) as exc:
            raise self._fail(f"Could not parse CSV {self.path.name}: {exc}") from exc

        return df.map(_strip_quotes)

    def _fail(self, message: str) -> IngestionError:
        logger.error(message)
        return IngestionError(message)


def load_file(path: Path | str) -> IngestionResult:
    """Convenience wrapper: SpreadsheetLoader(path).load()."""
    return SpreadsheetLoader(path).load()
