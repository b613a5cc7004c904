from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from vaxcov.charts import ChartSpec, render
from vaxcov.config import ReportSettings
from vaxcov.filters import filter_vaccine, require_rows


def latest_by_vaccine(view: pd.DataFrame) -> pd.DataFrame:
    observed = view.dropna(subset=["coverage"]).sort_values(["vaccine", "year"])
    latest = observed.groupby("vaccine", observed=True).tail(1)
    return latest.assign(year=latest["year"].dt.year).reset_index(drop=True)


def compute_global_trends(settings: ReportSettings, ctx: Dict[str, Any]) -> Dict[str, Any]:
    regions: pd.DataFrame = ctx.get("regions", pd.DataFrame())
    view: pd.DataFrame = ctx.get("global_trends", pd.DataFrame())
    payload: Dict[str, Any] = {"settings": asdict(settings), "charts": {}, "table": [], "notes": []}

    require_rows(view, f"region '{settings.global_region}' in the summary sheet")

    payload["charts"]["trend"] = render(
        view,
        ChartSpec(kind="line", x="year", y="coverage", color="vaccine", title=f"{settings.global_region} coverage by vaccine"),
    )
    payload["charts"]["by_vaccine"] = render(
        view,
        ChartSpec(
            kind="facet_line",
            x="year",
            y="coverage",
            color="vaccine",
            facet="vaccine",
            columns=settings.facet_columns,
            title=f"{settings.global_region} coverage, one panel per vaccine",
        ),
    )

    # Regions side by side for the selected vaccine; only a note when the sheet lacks it.
    by_region = filter_vaccine(regions, [settings.vaccine]).dropna(subset=["coverage"])
    if by_region.empty:
        payload["notes"].append(f"No regional rows for {settings.vaccine} in the summary sheet.")
    else:
        payload["charts"]["regions"] = render(
            by_region,
            ChartSpec(kind="line", x="year", y="coverage", color="region", title=f"{settings.vaccine} coverage by region"),
        )

    latest = latest_by_vaccine(view)
    payload["table"] = latest[["vaccine", "year", "coverage"]].to_dict(orient="records")
    return payload
