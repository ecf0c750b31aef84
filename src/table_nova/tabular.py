"""
Tabular readers: CSV/TSV text and XLSX workbooks into a common grid.

Delimited text is parsed line by line with a quote-aware scanner
(RFC4180-ish: quoted fields, doubled-quote escapes). Quoted fields do
not span lines. Workbooks are read through Polars (calamine engine),
first sheet only, every cell stringified.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import List, Optional, Union

import polars as pl

from table_nova.models import DelimiterHint, FileOptions, TabularData

logger = logging.getLogger(__name__)


class TabularParseError(ValueError):
    """Raised when source bytes cannot be decoded or read as a table."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


# =============================================================================
# Detection
# =============================================================================

def detect_tabular_type(filename: str) -> str:
    """Detect the tabular kind from a filename: csv, tsv, xlsx or unknown."""
    lower = str(filename or "").lower()
    if lower.endswith((".xlsx", ".xls")):
        return "xlsx"
    if lower.endswith(".tsv"):
        return "tsv"
    if lower.endswith((".csv", ".txt")):
        return "csv"
    return "unknown"


def detect_delimiter_from_line(line: str) -> str:
    """Prefer tab only when the line has more tabs than commas."""
    return "\t" if line.count("\t") > line.count(",") else ","


# =============================================================================
# Delimited text
# =============================================================================

def parse_line(line: str, delimiter: str) -> List[str]:
    """
    Split one line into raw (untrimmed) fields.

    Inside quotes a doubled quote is a literal quote and any other quote
    closes the span; outside quotes a quote opens a span and the
    delimiter ends the field.
    """
    out: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and line[i + 1] == '"':
                    current.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                current.append(ch)
        elif ch == '"':
            in_quotes = True
        elif ch == delimiter:
            out.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    out.append("".join(current))
    return out


def normalize_row(row: Optional[List[object]]) -> List[str]:
    """Trim every cell, keeping empty cells in place."""
    return ["" if c is None else str(c).strip() for c in (row or [])]


def parse_delimited_text(text: str, delimiter: Optional[str] = None) -> TabularData:
    """
    Parse CSV/TSV text into header + rows.

    Args:
        text: Decoded source text
        delimiter: ',' or '\\t'; detected from the first non-blank line when None

    Returns:
        TabularData (header None and no rows for empty input)
    """
    src = str(text or "").replace("\r\n", "\n").replace("\r", "\n")
    lines = src.split("\n")

    if delimiter is None:
        first = next((line for line in lines if line.strip()), "")
        delimiter = detect_delimiter_from_line(first)

    grid = [parse_line(line, delimiter) for line in lines if len(line) > 0]
    if not grid:
        return TabularData(header=None, rows=[])

    return TabularData(
        header=normalize_row(grid[0]),
        rows=[normalize_row(row) for row in grid[1:]],
    )


def decode_text(data: Union[bytes, str], source: str = "<input>") -> str:
    """Decode UTF-8 bytes (BOM tolerated)."""
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise TabularParseError(source, f"not valid UTF-8 text ({e.reason} at byte {e.start})")


# =============================================================================
# Workbooks
# =============================================================================

def parse_spreadsheet(data: Union[bytes, str, Path], source: str = "<workbook>") -> TabularData:
    """
    Read the first sheet of a workbook; first row becomes the header.

    Numbers and dates are stringified by the reader; empty cells become "".
    """
    if isinstance(data, (bytes, bytearray)):
        handle = io.BytesIO(data)
    else:
        handle = Path(data)

    try:
        df = pl.read_excel(
            handle,
            sheet_id=1,
            has_header=False,
            infer_schema_length=0,
            drop_empty_rows=False,
            drop_empty_cols=False,
            raise_if_empty=False,
        )
    except Exception as e:
        raise TabularParseError(source, f"unreadable workbook: {e}")

    if df.height == 0:
        return TabularData(header=None, rows=[])

    grid = [normalize_row(list(row)) for row in df.iter_rows()]
    return TabularData(header=grid[0], rows=grid[1:])


# =============================================================================
# Entry points
# =============================================================================

def load_tabular(
    filename: str,
    data: Union[bytes, str],
    options: Optional[FileOptions] = None,
) -> TabularData:
    """
    Parse raw source bytes into a grid, dispatching on the filename.

    Args:
        filename: Original filename (used for kind detection and errors)
        data: Raw bytes (or already-decoded text for delimited input)
        options: File options; only the delimiter hint is consulted here

    Raises:
        TabularParseError: If the source cannot be decoded or read
    """
    options = options or FileOptions()
    kind = detect_tabular_type(filename)

    if kind == "xlsx":
        if isinstance(data, str):
            raise TabularParseError(filename, "workbook input must be bytes")
        tabular = parse_spreadsheet(data, source=filename)
    else:
        delimiter = options.delimiter_hint.char
        if delimiter is None and kind == "tsv":
            delimiter = DelimiterHint.TAB.char
        tabular = parse_delimited_text(decode_text(data, filename), delimiter)

    logger.debug(
        f"Parsed {filename} as {kind}: header={'yes' if tabular.header is not None else 'no'}, "
        f"{len(tabular.rows)} rows"
    )
    return tabular


def preview_tabular(tabular: TabularData, limit: int = 5) -> TabularData:
    """Header plus the first ``limit`` rows, for datatype pickers."""
    return TabularData(
        header=list(tabular.header) if tabular.header is not None else None,
        rows=[list(row) for row in tabular.rows[:max(0, limit)]],
    )
