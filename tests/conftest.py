"""Shared fixtures for the dashboard tests.

Local CSV loads are memoised per (path, mtime). Every test starts with an
empty load cache so results never leak between tests.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pandas as pd
import pytest

from core.data import clear_cache, parse_records
from core.store import RecordStore


def dedent_csv(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


SCENARIO_CSV = dedent_csv(
    """
    NTP Number,Assigned Supervisor,SOW Estimated Cost
    N1,A,100
    N2,B,abc
    ,A,50
    """
)


@pytest.fixture(autouse=True)
def _isolate_loader():
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def scenario_csv() -> str:
    return SCENARIO_CSV


@pytest.fixture
def scenario_dataset() -> pd.DataFrame:
    return parse_records(SCENARIO_CSV)


@pytest.fixture
def scenario_store(scenario_dataset: pd.DataFrame) -> RecordStore:
    store = RecordStore()
    store.initialize(scenario_dataset)
    return store


@pytest.fixture
def sample_csv_path() -> Path:
    return Path(__file__).resolve().parents[1] / "powerapps-test.csv"


@pytest.fixture
def csv_file(tmp_path: Path):
    def _write(text: str, name: str = "projects.csv") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
