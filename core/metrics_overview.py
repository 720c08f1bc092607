from __future__ import annotations

from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping

import pandas as pd

from core.charts import cost_by_category_chart, project_count_chart, to_vega_spec
from core.data import DEFAULT_FIELDS, FieldNames, coerce_cost_column, format_currency, to_cost
from core.filters import ProjectFilters

if TYPE_CHECKING:
    from core.store import RecordStore


UNASSIGNED_LABEL = "Unassigned"


@dataclass(frozen=True)
class Aggregate:
    record_count: int = 0
    total_cost: float = 0.0
    cost_by_category: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_count": self.record_count,
            "total_cost": self.total_cost,
            "cost_by_category": dict(self.cost_by_category),
        }


def category_labels(view: pd.DataFrame, fields: FieldNames = DEFAULT_FIELDS) -> pd.Series:
    if fields.category not in view.columns:
        return pd.Series(UNASSIGNED_LABEL, index=view.index, dtype=object)
    labels = view[fields.category].fillna("").astype(str).str.strip()
    return labels.mask(labels == "", UNASSIGNED_LABEL)


def aggregate(view: pd.DataFrame, *, fields: FieldNames = DEFAULT_FIELDS) -> Aggregate:
    """Summarise a view: record count, total cost and cost per category.

    Costs are re-coerced here, so a frame built by hand (or with a damaged
    cost column) still aggregates to finite numbers. Rows without a category
    are grouped under ``"Unassigned"``. Groups keep first-appearance order.
    """
    if view.empty:
        return Aggregate()
    if fields.cost in view.columns:
        costs = coerce_cost_column(view[fields.cost])
    else:
        costs = pd.Series(0.0, index=view.index)
    grouped = costs.groupby(category_labels(view, fields), sort=False).sum()
    by_category = {str(k): float(v) for k, v in grouped.items()}
    return Aggregate(
        record_count=int(len(view)),
        total_cost=float(costs.sum()),
        cost_by_category=MappingProxyType(by_category),
    )


def cost_by_category_rows(agg: Aggregate) -> List[Dict[str, Any]]:
    return [{"category": k, "cost": v} for k, v in agg.cost_by_category.items()]


def table_rows(view: pd.DataFrame, fields: FieldNames = DEFAULT_FIELDS) -> List[Dict[str, Any]]:
    rows = []
    for rec in view.to_dict(orient="records"):
        cost = to_cost(rec.get(fields.cost))
        rows.append(
            {
                "id": rec.get(fields.id, ""),
                "category": rec.get(fields.category, ""),
                "cost": cost,
                "cost_display": format_currency(cost),
            }
        )
    return rows


def compute_overview(filters: ProjectFilters, store: "RecordStore") -> Dict[str, Any]:
    agg = store.aggregate
    by_category = cost_by_category_rows(agg)
    return {
        "filters": asdict(filters),
        "categories": store.category_options(),
        "summary": {
            **agg.to_dict(),
            "total_cost_display": format_currency(agg.total_cost),
        },
        "cost_by_category": by_category,
        "projects": table_rows(store.active_view, store.fields),
        "charts": {
            "project_count": to_vega_spec(project_count_chart(agg.record_count)),
            "cost_by_category": to_vega_spec(cost_by_category_chart(by_category)),
        },
    }
