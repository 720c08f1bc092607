import logging
from contextlib import contextmanager
from typing import Optional

import streamlit as st

from core.charts import cost_by_category_chart, project_count_chart
from core.data import LoadError, format_currency, format_currency_columns
from core.filters import normalize_category
from core.metrics_overview import cost_by_category_rows
from core.store import RecordStore, SessionState

logger = logging.getLogger(__name__)

ALL_CATEGORIES_LABEL = "All Supervisors"


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #374151;border-radius: 12px;padding: 16px;background: #111827;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #f9fafb;margin-bottom: 8px;}
        .card-value {font-size: 1.6rem;font-weight: 700;color: #00d4ff;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def card_value(text: str):
    st.markdown(f"<div class='card-value'>{text}</div>", unsafe_allow_html=True)


def get_store() -> RecordStore:
    """One store per browser session; loading happens on first access only."""
    store: Optional[RecordStore] = st.session_state.get("record_store")
    if store is None:
        store = RecordStore()
        st.session_state["record_store"] = store
        with st.spinner("Loading..."):
            try:
                store.load()
            except LoadError:
                logger.exception("initial load failed")
    return store


def on_filter_change():
    store: RecordStore = st.session_state["record_store"]
    store.apply_filter(normalize_category(st.session_state.get("supervisor_filter")))


# ---------- UI setup ----------
st.set_page_config(page_title="Market 1 CMS", layout="wide")
inject_base_styles()
st.title("Market 1 CMS")

store = get_store()
if store.state is SessionState.FAILED:
    st.error(str(store.error))
    st.stop()

fields = store.fields
st.selectbox(
    "Supervisor",
    [""] + store.category_options(),
    format_func=lambda value: value or ALL_CATEGORIES_LABEL,
    key="supervisor_filter",
    on_change=on_filter_change,
    label_visibility="collapsed",
)

agg = store.aggregate
view = store.active_view

c1, c2, c3 = st.columns(3)
with c1:
    with card("Total Projects"):
        st.altair_chart(project_count_chart(agg.record_count), use_container_width=False)
        card_value(f"{agg.record_count:,}")
with c2:
    with card("Total Cost"):
        card_value(format_currency(agg.total_cost))
with c3:
    st.download_button(
        "Export CSV",
        data=view.to_csv(index=False).encode("utf-8"),
        file_name="projects.csv",
        mime="text/csv",
    )

st.subheader("Project Costs by Supervisor")
st.altair_chart(cost_by_category_chart(cost_by_category_rows(agg)), use_container_width=True)

st.subheader("Projects List")
table = view.reindex(columns=[fields.id, fields.category, fields.cost]).rename(
    columns={fields.id: "NTP Number", fields.category: "Supervisor", fields.cost: "Cost"}
)
st.dataframe(format_currency_columns(table, ["Cost"]), use_container_width=True, hide_index=True)
