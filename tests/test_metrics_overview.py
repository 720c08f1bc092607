from __future__ import annotations

import json
import math

import pandas as pd
import pytest

from core.data import parse_records
from core.filters import ProjectFilters, filter_records
from core.metrics_overview import UNASSIGNED_LABEL, Aggregate, aggregate, compute_overview


def test_scenario_full_aggregate(scenario_dataset):
    agg = aggregate(scenario_dataset)
    assert agg.record_count == 2
    assert agg.total_cost == 100.0
    assert dict(agg.cost_by_category) == {"A": 100.0, "B": 0.0}


def test_scenario_filtered_aggregate(scenario_dataset):
    agg = aggregate(filter_records(scenario_dataset, "A"))
    assert agg.record_count == 1
    assert agg.total_cost == 100.0


def test_scenario_identity_filter_aggregate(scenario_dataset):
    view = filter_records(scenario_dataset, "")
    assert len(view) == 2
    assert aggregate(view).total_cost == 100.0


def test_empty_view():
    agg = aggregate(parse_records(""))
    assert agg == Aggregate()
    assert agg.to_dict() == {"record_count": 0, "total_cost": 0.0, "cost_by_category": {}}


def test_missing_category_groups_under_unassigned(sample_csv_path):
    df = parse_records(sample_csv_path.read_text(encoding="utf-8"))
    agg = aggregate(df)
    assert agg.record_count == 6
    assert dict(agg.cost_by_category) == pytest.approx(
        {
            "Maria Lopez": 125000.0,
            "James Carter": 158250.5,
            UNASSIGNED_LABEL: 45000.0,
            "Priya Shah": 0.0,
        }
    )
    # Groups keep first-appearance order.
    assert list(agg.cost_by_category) == ["Maria Lopez", "James Carter", UNASSIGNED_LABEL, "Priya Shah"]


def test_costs_are_recoerced_on_hand_built_views():
    view = pd.DataFrame(
        {
            "NTP Number": ["N1", "N2", "N3", "N4"],
            "Assigned Supervisor": ["A", None, "A", "  "],
            "SOW Estimated Cost": ["10", "oops", float("nan"), 2.5],
        }
    )
    agg = aggregate(view)
    assert agg.record_count == 4
    assert agg.total_cost == 12.5
    assert dict(agg.cost_by_category) == {"A": 10.0, UNASSIGNED_LABEL: 2.5}
    assert not any(math.isnan(v) for v in agg.cost_by_category.values())


def test_group_sums_match_total():
    rows = [f"N{i},{'ABC'[i % 3]},{i * 0.1}" for i in range(1, 200)]
    df = parse_records("NTP Number,Assigned Supervisor,SOW Estimated Cost\n" + "\n".join(rows))
    agg = aggregate(df)
    assert agg.record_count == len(df)
    assert agg.total_cost == pytest.approx(sum(i * 0.1 for i in range(1, 200)))
    assert sum(agg.cost_by_category.values()) == pytest.approx(agg.total_cost)


def test_aggregate_is_deterministic_and_read_only(scenario_dataset):
    first = aggregate(scenario_dataset)
    assert aggregate(scenario_dataset) == first
    with pytest.raises(TypeError):
        first.cost_by_category["C"] = 1.0  # type: ignore[index]


def test_compute_overview_payload(scenario_store):
    scenario_store.apply_filter("A")
    payload = compute_overview(ProjectFilters(category="A"), scenario_store)

    assert payload["filters"] == {"category": "A"}
    assert payload["categories"] == ["A", "B"]
    assert payload["summary"] == {
        "record_count": 1,
        "total_cost": 100.0,
        "cost_by_category": {"A": 100.0},
        "total_cost_display": "$100",
    }
    assert payload["cost_by_category"] == [{"category": "A", "cost": 100.0}]
    assert payload["projects"] == [{"id": "N1", "category": "A", "cost": 100.0, "cost_display": "$100"}]
    assert payload["charts"]["project_count"]["mark"]["type"] == "arc"
    assert payload["charts"]["cost_by_category"]["mark"]["type"] == "bar"
    json.dumps(payload)
