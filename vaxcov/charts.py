from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Sequence, Union

import altair as alt
import pandas as pd

from vaxcov.errors import EmptySelectionError

alt.data_transformers.disable_max_rows()

ChartKind = Literal["line", "stacked_bar", "facet_line"]
Chart = Union[alt.Chart, alt.FacetChart]

FIELD_TITLES = {
    "country": "Country",
    "iso3": "ISO3",
    "vaccine": "Vaccine",
    "region": "Region",
    "year": "Year",
    "coverage": "Coverage (%)",
    "statistic": "Value",
    "group": "Group",
}


@dataclass(frozen=True)
class ChartSpec:
    kind: ChartKind
    x: str = "year"
    y: str = "coverage"
    color: Optional[str] = None
    facet: Optional[str] = None
    sort: Optional[Sequence[str]] = None
    columns: int = 4
    title: str = ""
    height: int = 260


def field_type(series: pd.Series) -> str:
    if pd.api.types.is_datetime64_any_dtype(series):
        return "T"
    if pd.api.types.is_numeric_dtype(series):
        return "Q"
    return "N"


def field_title(col: str) -> str:
    return FIELD_TITLES.get(col, col.replace("_", " ").title())


def row_tooltips(view: pd.DataFrame) -> List[alt.Tooltip]:
    """One tooltip entry per column, so hovering shows the whole underlying row."""
    out: List[alt.Tooltip] = []
    for col in view.columns:
        kind = field_type(view[col])
        if kind == "T":
            out.append(alt.Tooltip(f"{col}:T", title=field_title(col), format="%Y"))
        elif kind == "Q":
            out.append(alt.Tooltip(f"{col}:Q", title=field_title(col), format=".1f"))
        else:
            out.append(alt.Tooltip(f"{col}:N", title=field_title(col)))
    return out


def _plain_frame(view: pd.DataFrame) -> pd.DataFrame:
    frame = view.copy()
    for col in frame.columns:
        if pd.api.types.is_string_dtype(frame[col]) and not pd.api.types.is_object_dtype(frame[col]):
            series = frame[col].astype(object)
            frame[col] = series.where(series.notna(), None)
    return frame


def _x_encoding(view: pd.DataFrame, spec: ChartSpec) -> alt.X:
    kind = field_type(view[spec.x])
    if kind == "T":
        return alt.X(f"{spec.x}:T", title=field_title(spec.x), axis=alt.Axis(format="%Y", grid=False))
    if spec.sort is not None:
        return alt.X(f"{spec.x}:N", title=field_title(spec.x), sort=list(spec.sort), axis=alt.Axis(labelAngle=-45))
    return alt.X(f"{spec.x}:{kind}", title=field_title(spec.x))


def _y_encoding(spec: ChartSpec, *, stack: Optional[str] = None) -> alt.Y:
    axis = alt.Axis(gridDash=[4, 4], domain=False, ticks=False)
    if stack:
        return alt.Y(f"{spec.y}:Q", title=field_title(spec.y), stack=stack, axis=axis)
    return alt.Y(f"{spec.y}:Q", title=field_title(spec.y), axis=axis)


def render_line(view: pd.DataFrame, spec: ChartSpec) -> alt.Chart:
    encoding: Dict[str, Any] = {
        "x": _x_encoding(view, spec),
        "y": _y_encoding(spec),
        "tooltip": row_tooltips(view),
    }
    if spec.color:
        encoding["color"] = alt.Color(f"{spec.color}:N", title=field_title(spec.color))
    return alt.Chart(_plain_frame(view)).mark_line(point={"filled": True}).encode(**encoding)


def render_stacked_bar(view: pd.DataFrame, spec: ChartSpec) -> alt.Chart:
    if not spec.color:
        raise ValueError("stacked bar charts need a fill field (ChartSpec.color)")
    return (
        alt.Chart(_plain_frame(view))
        .mark_bar()
        .encode(
            x=_x_encoding(view, spec),
            y=_y_encoding(spec, stack="zero"),
            color=alt.Color(f"{spec.color}:N", title=field_title(spec.color)),
            order=alt.Order(f"{spec.color}:N"),
            tooltip=row_tooltips(view),
        )
    )


def render_facet_line(view: pd.DataFrame, spec: ChartSpec) -> alt.FacetChart:
    if not spec.facet:
        raise ValueError("faceted charts need a facet field (ChartSpec.facet)")
    panel = render_line(view, spec).properties(width=180, height=max(80, spec.height // 2))
    return panel.facet(
        facet=alt.Facet(f"{spec.facet}:N", title=field_title(spec.facet)),
        columns=max(1, int(spec.columns)),
    )


def render(view: pd.DataFrame, spec: ChartSpec) -> Chart:
    """Render a view; rows without a value for ``spec.y`` are left out, never zero-filled."""
    missing = [c for c in (spec.x, spec.y, spec.color, spec.facet) if c and c not in view.columns]
    if missing:
        raise ValueError(f"chart fields {missing} are not columns of the view")
    view = view.dropna(subset=[spec.y])
    if view.empty:
        raise EmptySelectionError(f"nothing to plot for '{spec.title or spec.kind}'", stage="render")

    if spec.kind == "line":
        chart: Chart = render_line(view, spec).properties(height=spec.height)
    elif spec.kind == "stacked_bar":
        chart = render_stacked_bar(view, spec).properties(height=spec.height)
    elif spec.kind == "facet_line":
        chart = render_facet_line(view, spec)
    else:
        raise ValueError(f"unknown chart kind {spec.kind!r}")
    if spec.title:
        chart = chart.properties(title=spec.title)
    return chart


def to_vega_spec(chart: Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict; the app offers it as a JSON download."""
    return chart.to_dict()
