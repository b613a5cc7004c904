import json
import sys
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from vaxcov.charts import to_vega_spec
from vaxcov.config import CONFLICT_ISO3, DEFAULT_VACCINE, VACCINES, normalize_settings
from vaxcov.data import load_coverage_data, prepare_context
from vaxcov.errors import PipelineError
from vaxcov.report import PAGES

alt.data_transformers.disable_max_rows()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_vx_css"):
        return
    st.markdown(
        """
        <style>
        .vx-crumb {color: #6b7280;font-size: 0.85rem;}
        .vx-title {font-size: 1.35rem;font-weight: 700;border-bottom: 1px solid #e5e7eb;padding-bottom: 4px;}
        .vx-chips {display: flex;flex-wrap: wrap;gap: 6px;margin: 6px 0 12px;}
        .vx-chip {background: #eef2ff;border-radius: 12px;padding: 3px 10px;font-size: 0.85rem;color: #3730a3;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_vx_css"] = True


@contextmanager
def card(title: str):
    with st.container(border=True):
        st.markdown(f"**{title}**")
        yield


def format_settings_summary(vaccine: str, year: Optional[int], ranking_n: int, focus: List[str]) -> str:
    chips = [
        f"Vaccine: {vaccine}",
        f"Year: {year if year is not None else 'n/a'}",
        f"Top/bottom N: {ranking_n}",
        f"Focus: {', '.join(focus) if focus else 'lowest median'}",
    ]
    return "".join(f"<span class='vx-chip'>{txt}</span>" for txt in chips)


def render_page_header(title: str, breadcrumb: str, summary_html: str, export_rows: Optional[List[Dict[str, Any]]] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(f"<div class='vx-crumb'>{breadcrumb}</div><div class='vx-title'>{title}</div>", unsafe_allow_html=True)
    with c2:
        if export_rows:
            st.download_button(
                "Export CSV",
                data=pd.DataFrame(export_rows).to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='vx-chips'>{summary_html}</div>", unsafe_allow_html=True)


def render_payload(payload: Dict[str, Any]):
    for note in payload.get("notes", []):
        st.info(note)
    for name, chart in payload.get("charts", {}).items():
        with card(name.replace("_", " ").title()):
            st.altair_chart(chart, use_container_width=True)
            st.download_button(
                "Vega-Lite JSON",
                data=json.dumps(to_vega_spec(chart), default=str).encode("utf-8"),
                file_name=f"{name}.vl.json",
                mime="application/json",
                key=f"vl_{name}",
            )
    if payload.get("table"):
        with card("Table"):
            st.dataframe(pd.DataFrame(payload["table"]), hide_index=True, use_container_width=True)


def render_data_summary(payload: Dict[str, Any]):
    with card("Workbook"):
        st.write(payload["row_counts"])
        st.write({"year_range": payload["year_range"], "countries": payload["countries"]})
    with card("Missing coverage by vaccine"):
        st.dataframe(pd.DataFrame(payload["missing_by_vaccine"]), hide_index=True, use_container_width=True)
    if payload["countries_without_data"]:
        with card("Countries with no reported coverage"):
            st.write(", ".join(payload["countries_without_data"]))


# ---------- UI setup ----------
st.set_page_config(page_title="Vaccination Coverage Explorer", layout="wide")
inject_base_styles()
st.title("Vaccination Coverage Explorer")
st.caption("National immunization coverage: global trends, rankings, country and conflict-country views.")

default_path = sys.argv[1] if len(sys.argv) > 1 else ""
with st.sidebar:
    workbook_path = st.text_input("Workbook (.xlsx)", value=default_path)

if not workbook_path:
    st.error("No workbook given. Run `streamlit run app.py -- path/to/coverage.xlsx` or enter a path in the sidebar.")
    st.stop()

try:
    data_ctx = load_coverage_data(workbook_path)
except PipelineError as exc:
    st.error(f"Could not load the workbook ({exc.stage}): {exc.message}")
    st.stop()

years: List[int] = data_ctx.get("years") or []
countries: List[str] = data_ctx.get("countries") or []
vaccines: List[str] = data_ctx.get("vaccines") or list(VACCINES)

# ----- Sidebar: navigation + settings -----
page_titles = [title for title, _ in PAGES]
with st.sidebar:
    st.markdown("### Navigate")
    current_page = st.radio("Navigate", page_titles, index=0)

    st.markdown("---")
    st.markdown("### Settings")
    vaccine = st.selectbox("Vaccine", options=vaccines, index=vaccines.index(DEFAULT_VACCINE) if DEFAULT_VACCINE in vaccines else 0)
    year = st.selectbox("Year", options=years[::-1]) if years else None
    focus_countries = st.multiselect("Focus countries (optional)", options=countries, default=[])
    with st.expander("Advanced settings", expanded=False):
        ranking_n = st.slider("Top/bottom N (split evenly)", min_value=2, max_value=30, value=8, step=2)
        facet_columns = st.slider("Panels per row", min_value=1, max_value=6, value=4)
        max_bar_countries = st.slider("Countries in stacked bar", min_value=5, max_value=200, value=30, step=5)
    st.caption(f"Conflict list: {', '.join(CONFLICT_ISO3)}")

settings = normalize_settings(
    {
        "vaccine": vaccine,
        "year": year,
        "ranking_n": ranking_n,
        "focus_countries": focus_countries,
        "facet_columns": facet_columns,
        "max_bar_countries": max_bar_countries,
    },
    available_years=years,
    available_countries=countries,
    available_vaccines=vaccines,
)
ctx = prepare_context(settings, data_ctx)
summary_html = format_settings_summary(settings.vaccine, settings.year, settings.ranking_n, ctx["focus_countries"])

page_fn = dict(PAGES)[current_page]
try:
    payload = page_fn(settings, ctx)
except PipelineError as exc:
    render_page_header(current_page, f"Home / {current_page}", summary_html)
    st.error(f"{current_page} failed during {exc.stage}: {exc.message}")
    st.stop()

render_page_header(
    current_page,
    f"Home / {current_page}",
    summary_html,
    export_rows=payload.get("table"),
    export_name=f"{current_page.lower().replace(' / ', '_').replace(' ', '_')}.csv",
)
if current_page == "Data summary":
    render_data_summary(payload)
else:
    render_payload(payload)
st.caption(f"Source: {data_ctx['path']}")
