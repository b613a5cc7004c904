from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from vaxcov.aggregates import median_coverage_by_country
from vaxcov.charts import ChartSpec, render
from vaxcov.config import CONFLICT_ISO3, ReportSettings
from vaxcov.filters import filter_vaccine, require_rows


def with_reference_series(view: pd.DataFrame, reference: pd.DataFrame, label: str) -> pd.DataFrame:
    """Append a region series (e.g. Global) to country rows, labelled as a pseudo-country."""
    if reference.empty:
        return view[["country", "vaccine", "year", "coverage"]]
    ref = reference.assign(country=label)[["country", "vaccine", "year", "coverage"]]
    return pd.concat([view[["country", "vaccine", "year", "coverage"]].astype({"country": object}), ref], ignore_index=True)


def compute_conflict_countries(settings: ReportSettings, ctx: Dict[str, Any]) -> Dict[str, Any]:
    view: pd.DataFrame = ctx.get("conflict_view", pd.DataFrame())
    global_view: pd.DataFrame = ctx.get("global_trends", pd.DataFrame())
    payload: Dict[str, Any] = {
        "settings": asdict(settings),
        "iso3": list(CONFLICT_ISO3),
        "charts": {},
        "table": [],
        "notes": [],
    }

    require_rows(view, "conflict-country list")
    absent = [code for code in CONFLICT_ISO3 if code not in set(view["iso3"].astype(str))]
    if absent:
        payload["notes"].append(f"Conflict-list codes not in workbook: {', '.join(absent)}")

    selected = require_rows(filter_vaccine(view, [settings.vaccine]), f"{settings.vaccine} rows for conflict countries")
    reference = filter_vaccine(global_view, [settings.vaccine])
    payload["charts"]["vs_global"] = render(
        with_reference_series(selected, reference, settings.global_region),
        ChartSpec(
            kind="line",
            x="year",
            y="coverage",
            color="country",
            title=f"{settings.vaccine} coverage, conflict countries vs {settings.global_region}",
        ),
    )
    payload["charts"]["by_country"] = render(
        view,
        ChartSpec(
            kind="facet_line",
            x="year",
            y="coverage",
            color="vaccine",
            facet="country",
            columns=settings.facet_columns,
            title="All vaccines, one panel per conflict country",
        ),
    )

    if view["coverage"].notna().any():
        ranking = median_coverage_by_country(view).rename(columns={"statistic": "median_coverage"})
        payload["table"] = ranking.to_dict(orient="records")
    return payload
