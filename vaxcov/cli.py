from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from vaxcov.errors import PipelineError
from vaxcov.report import build_report, default_report_path, write_html_report


logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="vaxcov-report",
        description="Write an interactive HTML coverage report next to a WUENIC-style workbook.",
    )
    parser.add_argument("workbook", type=Path, help="Path to the .xlsx coverage workbook")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        report = build_report(args.workbook)
        out_path = write_html_report(report, default_report_path(args.workbook))
    except PipelineError as exc:
        logger.error("Report generation failed during %s: %s", exc.stage, exc.message)
        return 1
    print(out_path)
    return 0
