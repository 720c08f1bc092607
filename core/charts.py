from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

ACCENT_COLOR = "#00d4ff"


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def project_count_chart(record_count: int) -> alt.Chart:
    data = pd.DataFrame([{"name": "Total", "value": int(record_count)}])
    return (
        alt.Chart(data)
        .mark_arc(outerRadius=80, color=ACCENT_COLOR)
        .encode(
            theta=alt.Theta("value:Q"),
            tooltip=["name", "value"],
        )
        .properties(width=300, height=200)
    )


def cost_by_category_chart(rows: List[Dict[str, Any]], category_title: str = "Supervisor") -> alt.Chart:
    data = pd.DataFrame(rows, columns=["category", "cost"])
    return (
        alt.Chart(data)
        .mark_bar(color=ACCENT_COLOR)
        .encode(
            x=alt.X("category:N", title=category_title, sort=None),
            y=alt.Y("cost:Q", title="Cost", axis=alt.Axis(format="$,.0f")),
            tooltip=[alt.Tooltip("category:N", title=category_title), alt.Tooltip("cost:Q", format="$,.2f")],
        )
        .properties(width=600, height=300)
    )
