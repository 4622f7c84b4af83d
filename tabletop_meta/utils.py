"""
Shared utilities for Tabletop Meta.

This module provides common functions used across multiple modules
to avoid code duplication.
"""

import csv
import io
import logging
import math
import re
import warnings

import pandas as pd

from tabletop_meta.config import MAX_INPUT_SIZE
from tabletop_meta.errors import UnreadableInputError

# --- Shared Regex Patterns ---
# Leading integer of a stat value: "3+" -> 3, '6"' -> 6, "-1" -> -1
LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")

# Runs of whitespace inside CSV headers ("Total   Points" -> "total points")
WHITESPACE_RE = re.compile(r"\s+")


# --- Logging Setup ---
def setup_logging(name: str | None = None, level: int = logging.INFO) -> logging.Logger:
    """
    Configure and return a logger with consistent formatting.

    Args:
        name: Logger name (usually __name__ from the calling module)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger


# --- Module Logger ---
logger = setup_logging(__name__)


# --- Validation ---
def validate_input_size(text: str, max_size: int) -> None:
    """
    Validate that input text does not exceed maximum size.

    Args:
        text: Input text to validate
        max_size: Maximum allowed size in bytes

    Raises:
        ValueError: If input exceeds max_size
    """
    if len(text) > max_size:
        raise ValueError(
            f"Input too large: {len(text):,} bytes. "
            f"Maximum allowed: {max_size:,} bytes"
        )


# --- Value Coercion ---
def clean_text(value) -> str:
    """Return value as a stripped string; None and NaN become ''."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def coerce_int(value, default: int = 0) -> int:
    """
    Parse an integer defensively.

    Decimal strings are truncated ("95.0" -> 95). Anything non-numeric,
    missing or non-finite returns the default instead of raising.
    """
    text = clean_text(value)
    if not text:
        return default
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return default
    if not math.isfinite(number):
        return default
    return int(number)


def coerce_float(value, default: float = 0.0) -> float:
    """Parse a float defensively, returning default for non-numeric input."""
    text = clean_text(value)
    if not text:
        return default
    try:
        number = float(text)
    except ValueError:
        return default
    return number if math.isfinite(number) else default


def parse_leading_int(value: str, default: int = 0) -> int:
    """Read the leading integer of a stat string such as '3+' or '6\"'."""
    match = LEADING_INT_RE.match(value or "")
    if not match:
        return default
    return int(match.group(1))


# --- CSV Helpers ---
def normalize_header(header) -> str:
    """Lower-case a CSV header and collapse its whitespace."""
    text = clean_text(header).lstrip("\ufeff")
    return WHITESPACE_RE.sub(" ", text).lower()


def _is_blank_record(fields: list[str]) -> bool:
    """Match pandas skip_blank_lines: no fields, or one whitespace-only field."""
    return not fields or (len(fields) == 1 and not fields[0].strip())


def find_overlong_rows(text: str, width: int) -> list[tuple[int, int]]:
    """
    Find data rows carrying more non-empty fields than the header has columns.

    Records are tokenized with the same csv dialect the pandas python engine
    uses, and blank records are skipped the same way, so positions line up
    with the DataFrame rows read_csv_text() produces. Extra fields that are
    all empty (a trailing delimiter) are tolerated.

    Args:
        text: Raw CSV text
        width: Number of header columns

    Returns:
        List of (0-based data row position, field count)
    """
    records = (fields for fields in csv.reader(io.StringIO(text)) if not _is_blank_record(fields))
    next(records, None)  # header

    overlong = []
    for position, fields in enumerate(records):
        if len(fields) > width and any(f.strip() for f in fields[width:]):
            overlong.append((position, len(fields)))
    return overlong


def read_csv_text(text: str) -> pd.DataFrame:
    """
    Read raw CSV text into a DataFrame of strings.

    Every column is kept as text so that numeric coercion happens per field
    in the dialect parsers. Headers are normalized with normalize_header().
    Rows shorter than the header are padded with empty strings, and a
    trailing delimiter never shifts the first column into the index. Rows
    with extra non-empty fields (an unquoted comma inside a value, usually)
    cannot be aligned to the header and are dropped with a warning.

    Args:
        text: Raw CSV export

    Returns:
        DataFrame with normalized headers (empty if text has no content)

    Raises:
        ValueError: If text exceeds MAX_INPUT_SIZE
        UnreadableInputError: If pandas cannot tokenize the text at all
    """
    validate_input_size(text, MAX_INPUT_SIZE)

    if not text.strip():
        return pd.DataFrame()

    try:
        with warnings.catch_warnings():
            # Over-long rows are reported below
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            df = pd.read_csv(
                io.StringIO(text),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                index_col=False,
                engine="python",
            )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except pd.errors.ParserError as e:
        raise UnreadableInputError(f"Could not read CSV text: {e}") from e

    overlong = find_overlong_rows(text, len(df.columns))
    if overlong:
        for position, field_count in overlong:
            logger.warning(
                f"CSV data row {position + 1} has {field_count} fields, "
                f"expected {len(df.columns)}; skipping"
            )
        positions = [position for position, _ in overlong if position < len(df)]
        df = df.drop(index=df.index[positions]).reset_index(drop=True)

    df.columns = [normalize_header(c) for c in df.columns]
    return df.fillna("")


def resolve_columns(headers, aliases: dict[str, list[str]]) -> dict[str, str | None]:
    """
    Map canonical field names to the first matching source column.

    Args:
        headers: Normalized column names present in the export
        aliases: Canonical field -> accepted header spellings, in priority order

    Returns:
        Canonical field -> source column name, or None when absent
    """
    present = set(headers)
    columns = {}
    for field, names in aliases.items():
        columns[field] = next((name for name in names if name in present), None)
    return columns


def cell(row: dict, column: str | None) -> str:
    """Return a stripped cell value, or '' when the column is absent."""
    if column is None:
        return ""
    return clean_text(row.get(column))


__all__ = [
    # Logging
    'setup_logging',
    # Validation
    'validate_input_size',
    # Coercion
    'clean_text',
    'coerce_int',
    'coerce_float',
    'parse_leading_int',
    'LEADING_INT_RE',
    # CSV
    'normalize_header',
    'find_overlong_rows',
    'read_csv_text',
    'resolve_columns',
    'cell',
]
