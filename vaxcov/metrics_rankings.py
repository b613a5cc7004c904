from __future__ import annotations

from dataclasses import asdict
import logging
from typing import Any, Dict

import pandas as pd

from vaxcov.aggregates import category_order, median_coverage_by_country
from vaxcov.charts import ChartSpec, render
from vaxcov.config import ReportSettings
from vaxcov.filters import filter_countries, filter_vaccine, require_rows, top_bottom_countries


logger = logging.getLogger(__name__)


def compute_rankings(settings: ReportSettings, ctx: Dict[str, Any]) -> Dict[str, Any]:
    coverage: pd.DataFrame = ctx.get("coverage", pd.DataFrame())
    payload: Dict[str, Any] = {"settings": asdict(settings), "charts": {}, "table": [], "notes": []}

    ranking = median_coverage_by_country(coverage)
    selected = require_rows(top_bottom_countries(ranking, settings.ranking_n), "top/bottom median ranking")
    if len(selected) < settings.ranking_n:
        payload["notes"].append(
            f"Showing {len(selected)} countries for N={settings.ranking_n} "
            f"({settings.ranking_n // 2} per side, {len(ranking)} countries ranked)."
        )
    logger.debug("Top/bottom selection: %s", selected["country"].tolist())

    groups = dict(zip(selected["country"], selected["group"]))
    series = filter_vaccine(filter_countries(coverage, groups), [settings.vaccine])
    series = require_rows(series, f"{settings.vaccine} rows for the top/bottom countries")
    series = series.assign(group=series["country"].astype(str).map(groups))

    medians = selected.rename(columns={"statistic": "median_coverage"})
    payload["charts"]["medians"] = render(
        medians,
        ChartSpec(
            kind="stacked_bar",
            x="country",
            y="median_coverage",
            color="group",
            sort=category_order(ranking, groups),
            title=f"Median coverage, top and bottom {settings.ranking_n // 2} countries",
        ),
    )
    payload["charts"]["trends"] = render(
        series,
        ChartSpec(
            kind="facet_line",
            x="year",
            y="coverage",
            color="group",
            facet="country",
            columns=settings.facet_columns,
            title=f"{settings.vaccine} coverage over time, top vs bottom countries",
        ),
    )

    table = ranking.rename(columns={"statistic": "median_coverage"})
    table.insert(0, "rank", range(1, len(table) + 1))
    payload["table"] = table.to_dict(orient="records")
    return payload
