from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from vaxcov.charts import ChartSpec, render
from vaxcov.config import ReportSettings
from vaxcov.filters import filter_vaccine, require_rows


def compute_country_trends(settings: ReportSettings, ctx: Dict[str, Any]) -> Dict[str, Any]:
    view: pd.DataFrame = ctx.get("focus_view", pd.DataFrame())
    countries = list(ctx.get("focus_countries") or [])
    payload: Dict[str, Any] = {
        "settings": asdict(settings),
        "countries": countries,
        "charts": {},
        "table": [],
        "notes": [],
    }
    if not settings.focus_countries and countries:
        payload["notes"].append("No focus countries chosen; showing the lowest median-coverage countries.")

    require_rows(view, f"focus countries {countries}")
    present = set(view["country"].astype(str))
    absent = [c for c in countries if c not in present]
    if absent:
        payload["notes"].append(f"Not in workbook: {', '.join(absent)}")

    payload["charts"]["by_vaccine"] = render(
        view,
        ChartSpec(
            kind="facet_line",
            x="year",
            y="coverage",
            color="country",
            facet="vaccine",
            columns=settings.facet_columns,
            title="Coverage over time per vaccine, focus countries",
        ),
    )
    selected = filter_vaccine(view, [settings.vaccine]).dropna(subset=["coverage"])
    if selected.empty:
        payload["notes"].append(f"No {settings.vaccine} coverage reported for the focus countries.")
    else:
        payload["charts"]["selected_vaccine"] = render(
            selected,
            ChartSpec(kind="line", x="year", y="coverage", color="country", title=f"{settings.vaccine} coverage, focus countries"),
        )

    observed = view.dropna(subset=["coverage"])
    if not observed.empty:
        summary = (
            observed.groupby(["country", "vaccine"], observed=True)
            .agg(first_year=("year", "min"), last_year=("year", "max"), median_coverage=("coverage", "median"))
            .reset_index()
        )
        summary["first_year"] = summary["first_year"].dt.year
        summary["last_year"] = summary["last_year"].dt.year
        payload["table"] = summary.to_dict(orient="records")
    return payload
