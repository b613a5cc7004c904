from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import altair as alt

from vaxcov.config import ReportSettings
from vaxcov.data import load_coverage_data, prepare_context
from vaxcov.metrics_conflict import compute_conflict_countries
from vaxcov.metrics_countries import compute_country_trends
from vaxcov.metrics_debug import compute_data_summary
from vaxcov.metrics_global import compute_global_trends
from vaxcov.metrics_rankings import compute_rankings
from vaxcov.metrics_totals import compute_total_coverage


logger = logging.getLogger(__name__)

PageFn = Callable[[ReportSettings, Dict[str, Any]], Dict[str, Any]]

PAGES: List[Tuple[str, PageFn]] = [
    ("Global trends", compute_global_trends),
    ("Top / bottom countries", compute_rankings),
    ("Country trends", compute_country_trends),
    ("Total coverage", compute_total_coverage),
    ("Conflict countries", compute_conflict_countries),
    ("Data summary", compute_data_summary),
]


def build_report(path: str | Path, settings: Optional[dict | ReportSettings] = None) -> Dict[str, Any]:
    raw = settings if settings is not None else {}
    summary_sheet = raw.summary_sheet if isinstance(raw, ReportSettings) else raw.get("summary_sheet")
    data_ctx = load_coverage_data(path, summary_sheet=summary_sheet)
    ctx = prepare_context(raw, data_ctx)
    resolved: ReportSettings = ctx["settings"]

    sections: List[Dict[str, Any]] = []
    for title, page in PAGES:
        logger.debug("Computing page %s", title)
        sections.append({"title": title, "payload": page(resolved, ctx)})
    logger.info("Built %d report sections from %s", len(sections), Path(path).name)
    return {"path": str(path), "settings": resolved, "sections": sections}


def report_charts(report: Dict[str, Any]) -> List[Any]:
    charts: List[Any] = []
    for section in report["sections"]:
        charts.extend(section["payload"].get("charts", {}).values())
    return charts


def default_report_path(workbook: str | Path) -> Path:
    workbook = Path(workbook)
    return workbook.with_name(f"{workbook.stem}_report.html")


def write_html_report(report: Dict[str, Any], out_path: str | Path) -> Path:
    out_path = Path(out_path)
    combined = (
        alt.vconcat(*report_charts(report), spacing=40)
        .resolve_scale(color="independent")
        .properties(title=f"Vaccination coverage report: {Path(report['path']).name}")
    )
    combined.save(str(out_path))
    logger.info("Wrote report to %s", out_path)
    return out_path
