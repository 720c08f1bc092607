from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from core.data import DEFAULT_FIELDS, FieldNames


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectFilters:
    category: str = ""


def normalize_category(value: Optional[object]) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_filters(raw: Optional[dict]) -> ProjectFilters:
    raw = raw or {}
    return ProjectFilters(category=normalize_category(raw.get("category")))


def filter_records(
    dataset: pd.DataFrame,
    category: Optional[str] = "",
    *,
    fields: FieldNames = DEFAULT_FIELDS,
) -> pd.DataFrame:
    """Return the rows of ``dataset`` whose category equals ``category``.

    An empty category is the identity filter. Matching is exact (no case
    folding, no substring match). The result is always a new frame in
    dataset order; ``dataset`` itself is never modified.
    """
    category = (category or "").strip()
    if not category:
        return dataset.copy()
    if dataset.empty or fields.category not in dataset.columns:
        return dataset.iloc[0:0].copy()
    view = dataset[dataset[fields.category] == category].copy()
    logger.debug("Filter %r matched %d of %d record(s)", category, len(view), len(dataset))
    return view
