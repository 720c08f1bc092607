from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
import requests


logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1]
DEFAULT_SOURCE = "powerapps-test.csv"
# Only applies to http(s) sources.
FETCH_TIMEOUT = 10

LOAD_ERROR_PREFIX = "Failed to load data: "


@dataclass(frozen=True)
class FieldNames:
    id: str = "NTP Number"
    category: str = "Assigned Supervisor"
    cost: str = "SOW Estimated Cost"


DEFAULT_FIELDS = FieldNames()

Source = Union[str, Path]


class LoadError(Exception):
    """The dataset could not be produced; the only error shown to users."""

    def __str__(self) -> str:
        detail = super().__str__()
        if detail.startswith(LOAD_ERROR_PREFIX):
            return detail
        return LOAD_ERROR_PREFIX + detail


class FetchError(LoadError):
    """The source resource could not be read (missing file, network, HTTP status)."""


class ParseError(LoadError):
    """The source text is not well-formed delimited text."""


# ---------------- Coercion ----------------
def _cost_text(raw: object) -> str:
    if raw is None or isinstance(raw, (bool, np.bool_)) or not pd.api.types.is_scalar(raw):
        return ""
    if pd.isna(raw):
        return ""
    return str(raw).strip()


def coerce_cost_column(series: pd.Series) -> pd.Series:
    """Coerce cost cells to finite, non-negative floats; anything else is ``0.0``."""
    values = pd.to_numeric(series.map(_cost_text), errors="coerce").astype("float64")
    return values.where(np.isfinite(values) & values.ge(0), 0.0)


def to_cost(raw: object) -> float:
    """Single-value form of :func:`coerce_cost_column`.

    Blank, non-numeric, NaN, infinite, negative and boolean values become
    ``0.0``. Used both at parse time and when aggregating.
    """
    return float(coerce_cost_column(pd.Series([raw], dtype=object)).iloc[0])


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = df[col].fillna("").astype(str).str.strip()
    return df


# ---------------- Parsing ----------------
def empty_dataset(fields: FieldNames = DEFAULT_FIELDS) -> pd.DataFrame:
    return pd.DataFrame(
        {
            fields.id: pd.Series(dtype=object),
            fields.category: pd.Series(dtype=object),
            fields.cost: pd.Series(dtype="float64"),
        }
    )


def read_rows(raw_text: str) -> List[List[str]]:
    """Tokenize CSV text into rows of cells, skipping blank lines."""
    reader = csv.reader(io.StringIO(raw_text, newline=""), strict=True)
    try:
        return [row for row in reader if row]
    except csv.Error as exc:
        raise ParseError(f"malformed delimited text on line {reader.line_num} ({exc})") from exc


def fit_row(row: List[str], width: int) -> List[str]:
    # Short rows are padded, extra cells past the header are ignored.
    return (row + [""] * (width - len(row)))[:width]


def parse_records(raw_text: str, *, fields: FieldNames = DEFAULT_FIELDS) -> pd.DataFrame:
    """Parse CSV text into a dataset of project records.

    The first line is the header. Labels and values are trimmed, blank lines
    are skipped, each row is fitted to the header width, the cost column is
    coerced with :func:`coerce_cost_column` and rows without an identifier
    are dropped. Raises :class:`ParseError` when the text cannot be tokenized
    (e.g. an unterminated quoted field).
    """
    if not raw_text or not raw_text.strip():
        return empty_dataset(fields)

    rows = read_rows(raw_text)
    if not rows:
        return empty_dataset(fields)
    header = [str(c).strip() for c in rows[0]]
    records = [fit_row(row, len(header)) for row in rows[1:]]

    df = pd.DataFrame(records, columns=header, dtype=object)
    df = df.loc[:, ~df.columns.duplicated()].copy()
    df = coerce_str_safe(df, df.columns)

    # Optional columns are materialised so downstream code can rely on them.
    if fields.category not in df.columns:
        df[fields.category] = ""
    if fields.cost not in df.columns:
        df[fields.cost] = ""
    df[fields.cost] = coerce_cost_column(df[fields.cost])

    total_rows = len(df)
    if fields.id in df.columns:
        df = df[df[fields.id] != ""]
    else:
        df = df.iloc[0:0].copy()
        df[fields.id] = ""
    dropped = total_rows - len(df)
    if dropped:
        logger.debug("Dropped %d row(s) without %r", dropped, fields.id)
    return df.reset_index(drop=True)


def decode_source(payload: bytes) -> str:
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError(f"source is not valid UTF-8 ({exc.reason} at byte {exc.start})") from exc


# ---------------- Fetching ----------------
def resolve_source(source: Optional[Source] = None) -> Source:
    """Default to ``powerapps-test.csv`` in the data directory; relative paths resolve there too."""
    if source is None:
        source = DEFAULT_SOURCE
    if is_url(source):
        return str(source)
    path = Path(source)
    if not path.is_absolute():
        path = DATA_DIR / path
    return path


def is_url(source: Source) -> bool:
    return isinstance(source, str) and source.lower().startswith(("http://", "https://"))


def fetch_source(source: Source) -> bytes:
    if is_url(source):
        try:
            resp = requests.get(str(source), timeout=FETCH_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(str(exc)) from exc
        return resp.content
    try:
        return Path(source).read_bytes()
    except OSError as exc:
        raise FetchError(f"cannot read {source} ({exc.strerror or exc})") from exc


def file_signature(path: Path) -> Tuple[str, float]:
    return (str(path), path.stat().st_mtime)


@lru_cache(maxsize=4)
def _load_file_cached(signature: Tuple[str, float], fields: FieldNames) -> pd.DataFrame:
    path = Path(signature[0])
    return parse_records(decode_source(fetch_source(path)), fields=fields)


def load_dataset(source: Optional[Source] = None, *, fields: FieldNames = DEFAULT_FIELDS) -> pd.DataFrame:
    """Fetch and parse the project dataset.

    Local files are memoised by (path, mtime); URLs are fetched every call.
    Any fetch or parse failure is raised as a :class:`LoadError`.
    """
    resolved = resolve_source(source)
    if isinstance(resolved, Path):
        try:
            signature = file_signature(resolved)
        except OSError as exc:
            raise FetchError(f"cannot read {resolved} ({exc.strerror or exc})") from exc
        dataset = _load_file_cached(signature, fields).copy()
    else:
        dataset = parse_records(decode_source(fetch_source(resolved)), fields=fields)
    logger.info("Loaded %d project record(s) from %s", len(dataset), resolved)
    return dataset


def clear_cache() -> None:
    _load_file_cached.cache_clear()


# ---------------- Formatting ----------------
def format_currency(value: object) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    text = f"{float(value):,.2f}".rstrip("0").rstrip(".")
    return f"${text}"


def format_currency_columns(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    formatted = df.copy()
    for c in cols:
        if c in formatted.columns:
            formatted[c] = formatted[c].apply(format_currency)
    return formatted
