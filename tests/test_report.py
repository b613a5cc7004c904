import os
import unittest

from tests.conftest import (
    COUNTRIES,
    NO_DATA_COUNTRY,
    YEARS,
    cleanup_dir,
    make_chad_sheets,
    make_country_sheet,
    make_coverage_workbook,
    make_summary_sheet,
    make_temp_dir,
    write_workbook,
)
from vaxcov.cli import main
from vaxcov.config import ReportSettings
from vaxcov.data import load_coverage_data, prepare_context
from vaxcov.errors import EmptySelectionError
from vaxcov.metrics_conflict import compute_conflict_countries
from vaxcov.metrics_rankings import compute_rankings
from vaxcov.metrics_totals import compute_total_coverage
from vaxcov.report import PAGES, build_report, default_report_path, report_charts, write_html_report


class TestReportPages(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.tmp = make_temp_dir()
        cls.path = make_coverage_workbook(cls.tmp)
        cls.data = load_coverage_data(cls.path)

    @classmethod
    def tearDownClass(cls):
        cleanup_dir(cls.tmp)

    def context(self, **raw):
        return prepare_context(raw, self.data)

    def test_settings_default_to_latest_year(self):
        ctx = self.context()
        self.assertEqual(ctx["settings"].year, YEARS[-1])
        self.assertEqual(ctx["settings"].vaccine, "DTP3")

    def test_default_focus_is_lowest_median_countries(self):
        ctx = self.context(ranking_n=6)
        self.assertEqual(len(ctx["focus_countries"]), 3)
        self.assertNotIn(NO_DATA_COUNTRY, ctx["focus_countries"])

    def test_rankings_page(self):
        ctx = self.context()
        payload = compute_rankings(ctx["settings"], ctx)
        self.assertEqual(set(payload["charts"]), {"medians", "trends"})
        ranks = [row["rank"] for row in payload["table"]]
        self.assertEqual(ranks, list(range(1, len(COUNTRIES))))
        self.assertNotIn(NO_DATA_COUNTRY, [row["country"] for row in payload["table"]])

    def test_total_coverage_page_is_ascending(self):
        ctx = self.context(year=2021)
        payload = compute_total_coverage(ctx["settings"], ctx)
        totals = [row["total_coverage"] for row in payload["table"]]
        self.assertEqual(totals, sorted(totals))
        self.assertEqual(payload["table"][0], {"country": NO_DATA_COUNTRY, "total_coverage": 0.0})
        self.assertIn("stacked", payload["charts"])

    def test_total_coverage_chart_cap_is_noted(self):
        ctx = self.context(max_bar_countries=5)
        payload = compute_total_coverage(ctx["settings"], ctx)
        self.assertEqual(len(payload["table"]), len(COUNTRIES))
        self.assertTrue(any("lowest total" in note for note in payload["notes"]))

    def test_conflict_page_notes_absent_codes(self):
        ctx = self.context()
        payload = compute_conflict_countries(ctx["settings"], ctx)
        self.assertEqual(set(payload["charts"]), {"vs_global", "by_country"})
        self.assertEqual({row["country"] for row in payload["table"]}, {"Afghanistan", "Syrian Arab Republic", "Yemen", "Nigeria"})
        self.assertTrue(any("IRQ" in note for note in payload["notes"]))

    def test_every_page_returns_a_payload(self):
        ctx = self.context()
        for title, page in PAGES:
            payload = page(ctx["settings"], ctx)
            self.assertIn("charts", payload, title)


class TestBuildReport(unittest.TestCase):
    def setUp(self):
        self.tmp = make_temp_dir()

    def tearDown(self):
        cleanup_dir(self.tmp)

    def test_build_and_write(self):
        path = make_coverage_workbook(self.tmp)
        report = build_report(path, {"vaccine": "MCV1", "focus_countries": ["Chad", "Kenya"]})
        self.assertEqual([s["title"] for s in report["sections"]], [t for t, _ in PAGES])
        self.assertIsInstance(report["settings"], ReportSettings)
        self.assertEqual(report["settings"].focus_countries, ["Chad", "Kenya"])
        self.assertGreaterEqual(len(report_charts(report)), 10)

        out = write_html_report(report, default_report_path(path))
        self.assertEqual(out.name, "coverage_report.html")
        with open(out, encoding="utf-8") as fh:
            html = fh.read()
        self.assertIn("vegaEmbed", html)
        self.assertIn("Syrian Arab Republic", html)

    def test_unknown_global_region_stops_the_report(self):
        path = make_coverage_workbook(self.tmp)
        with self.assertRaises(EmptySelectionError) as ctx:
            build_report(path, ReportSettings(global_region="Atlantis"))
        self.assertEqual(ctx.exception.stage, "filter")


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = make_temp_dir()

    def tearDown(self):
        cleanup_dir(self.tmp)

    def test_writes_report_next_to_workbook(self):
        path = make_coverage_workbook(self.tmp, name="wuenic.xlsx")
        self.assertEqual(main([path]), 0)
        self.assertTrue(os.path.isfile(os.path.join(self.tmp, "wuenic_report.html")))

    def test_pipeline_error_exit_code(self):
        self.assertEqual(main([os.path.join(self.tmp, "missing.xlsx")]), 1)

    def test_conflict_free_workbook_fails_at_filter_stage(self):
        path = write_workbook(os.path.join(self.tmp, "chad.xlsx"), make_chad_sheets())
        with self.assertLogs("vaxcov.cli", level="ERROR") as logs:
            self.assertEqual(main([path]), 1)
        self.assertIn("filter", logs.output[0])

    def test_workbook_without_dtp3_uses_a_vaccine_it_has(self):
        sheets = {"MCV1": make_country_sheet("MCV1"), "regional_global": make_summary_sheet(vaccines=("MCV1",))}
        path = write_workbook(os.path.join(self.tmp, "measles.xlsx"), sheets)
        self.assertEqual(main([path]), 0)
        self.assertTrue(os.path.isfile(os.path.join(self.tmp, "measles_report.html")))
        report = build_report(path)
        self.assertEqual(report["settings"].vaccine, "MCV1")
        self.assertEqual(build_report(path, ReportSettings(vaccine="DTP3"))["settings"].vaccine, "MCV1")


if __name__ == "__main__":
    unittest.main()
