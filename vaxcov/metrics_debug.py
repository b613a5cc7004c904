from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from vaxcov.config import ReportSettings


def compute_data_summary(settings: ReportSettings, ctx: Dict[str, Any]) -> Dict[str, Any]:
    coverage: pd.DataFrame = ctx.get("coverage", pd.DataFrame())
    regions: pd.DataFrame = ctx.get("regions", pd.DataFrame())
    years = list(ctx.get("years") or [])
    payload: Dict[str, Any] = {
        "settings": asdict(settings),
        "row_counts": {
            "sheets": dict(ctx.get("sheets") or {}),
            "summary_sheet": ctx.get("summary_sheet"),
            "coverage_records": int(len(coverage)),
            "region_records": int(len(regions)),
        },
        "year_range": [years[0], years[-1]] if years else [],
        "countries": int(coverage["country"].nunique()) if not coverage.empty else 0,
        "missing_by_vaccine": [],
        "countries_without_data": [],
        "charts": {},
    }
    if coverage.empty:
        return payload

    missing = (
        coverage.assign(missing=coverage["coverage"].isna())
        .groupby("vaccine", observed=True)
        .agg(records=("coverage", "size"), missing=("missing", "sum"))
        .reset_index()
    )
    missing["missing_pct"] = missing["missing"] / missing["records"] * 100
    payload["missing_by_vaccine"] = missing.to_dict(orient="records")

    has_data = coverage["coverage"].notna().groupby(coverage["country"], observed=True).any()
    payload["countries_without_data"] = sorted(str(c) for c in has_data[~has_data].index)
    return payload
