from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from vaxcov.aggregates import category_order, total_coverage_by_country_year
from vaxcov.charts import ChartSpec, render
from vaxcov.config import ReportSettings
from vaxcov.filters import filter_countries, require_rows


def compute_total_coverage(settings: ReportSettings, ctx: Dict[str, Any]) -> Dict[str, Any]:
    coverage: pd.DataFrame = ctx.get("coverage", pd.DataFrame())
    view: pd.DataFrame = ctx.get("year_view", pd.DataFrame())
    payload: Dict[str, Any] = {"settings": asdict(settings), "year": settings.year, "charts": {}, "table": [], "notes": []}

    require_rows(view, f"year {settings.year}")
    totals = total_coverage_by_country_year(coverage, settings.year)
    # Lowest totals first; the chart keeps the first max_bar_countries of them.
    shown = totals.head(settings.max_bar_countries)
    if len(shown) < len(totals):
        payload["notes"].append(f"Chart limited to the {len(shown)} countries with the lowest total coverage of {len(totals)}.")

    order = category_order(shown)
    bars = filter_countries(view, order)
    payload["charts"]["stacked"] = render(
        bars[["country", "iso3", "vaccine", "year", "coverage"]],
        ChartSpec(
            kind="stacked_bar",
            x="country",
            y="coverage",
            color="vaccine",
            sort=order,
            height=360,
            title=f"Coverage summed across vaccines, {settings.year} (ascending total)",
        ),
    )
    payload["table"] = totals.rename(columns={"statistic": "total_coverage"}).to_dict(orient="records")
    return payload
