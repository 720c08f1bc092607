"""Session state for the dashboard: the loaded dataset and the active view.

A :class:`RecordStore` moves through ``LOADING -> READY`` (dataset parsed) or
``LOADING -> FAILED`` (fetch/parse error). While ``READY`` every filter change
replaces the active view and its aggregate and notifies subscribers.
``FAILED`` is terminal.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional

import pandas as pd

from core.data import DEFAULT_FIELDS, FieldNames, LoadError, Source, load_dataset
from core.filters import filter_records
from core.metrics_overview import Aggregate, aggregate


logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class StoreStateError(RuntimeError):
    """Store operation called in the wrong session state."""


@dataclass(frozen=True)
class StoreEvent:
    state: SessionState
    category: str
    view: Optional[pd.DataFrame]
    aggregate: Aggregate
    error: Optional[LoadError] = None


Listener = Callable[[StoreEvent], None]


class RecordStore:
    def __init__(self, *, fields: FieldNames = DEFAULT_FIELDS) -> None:
        self.fields = fields
        self.state = SessionState.LOADING
        self.error: Optional[LoadError] = None
        self.category = ""
        self.aggregate = Aggregate()
        self._full_dataset: Optional[pd.DataFrame] = None
        self._active_view: Optional[pd.DataFrame] = None
        self._listeners: List[Listener] = []

    @property
    def full_dataset(self) -> pd.DataFrame:
        self._require_ready()
        return self._full_dataset  # type: ignore[return-value]

    @property
    def active_view(self) -> pd.DataFrame:
        self._require_ready()
        return self._active_view  # type: ignore[return-value]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load(self, source: Optional[Source] = None) -> "RecordStore":
        try:
            dataset = load_dataset(source, fields=self.fields)
        except LoadError as exc:
            self.fail(exc)
            raise
        self.initialize(dataset)
        return self

    def initialize(self, dataset: pd.DataFrame) -> None:
        if self.state is not SessionState.LOADING:
            raise StoreStateError(f"cannot initialize a store in state {self.state.value!r}")
        self._full_dataset = dataset
        self._active_view = filter_records(dataset, "", fields=self.fields)
        self.category = ""
        self.aggregate = aggregate(dataset, fields=self.fields)
        self.state = SessionState.READY
        logger.debug("Store ready with %d record(s)", len(dataset))
        self._emit()

    def fail(self, error: LoadError) -> None:
        if self.state is not SessionState.LOADING:
            raise StoreStateError(f"cannot fail a store in state {self.state.value!r}")
        self.error = error
        self.state = SessionState.FAILED
        logger.warning("Store failed: %s", error)
        self._emit()

    def apply_filter(self, category: Optional[str] = "") -> pd.DataFrame:
        self._require_ready()
        category = (category or "").strip()
        view = filter_records(self._full_dataset, category, fields=self.fields)  # type: ignore[arg-type]
        self.category = category
        self._active_view = view
        self.aggregate = aggregate(view, fields=self.fields)
        self._emit()
        return view

    def distinct_categories(self) -> FrozenSet[str]:
        if self.state is not SessionState.READY or self.fields.category not in self._full_dataset.columns:  # type: ignore[union-attr]
            return frozenset()
        values = self._full_dataset[self.fields.category]  # type: ignore[index]
        return frozenset(v for v in values.fillna("").astype(str) if v)

    def category_options(self) -> List[str]:
        return sorted(self.distinct_categories())

    def _require_ready(self) -> None:
        if self.state is not SessionState.READY:
            raise StoreStateError(f"store is {self.state.value}, not ready")

    def _emit(self) -> None:
        event = StoreEvent(
            state=self.state,
            category=self.category,
            view=self._active_view,
            aggregate=self.aggregate,
            error=self.error,
        )
        for listener in list(self._listeners):
            listener(event)
