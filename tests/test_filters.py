import unittest

import numpy as np
import pandas as pd

from tests.conftest import make_long
from vaxcov.errors import EmptySelectionError
from vaxcov.filters import (
    bottom_countries,
    filter_countries,
    filter_iso3,
    filter_region,
    filter_vaccine,
    filter_year,
    require_rows,
    select,
    top_bottom_countries,
    top_countries,
)


def ranking_of(n):
    countries = [f"C{i:02d}" for i in range(n)]
    return pd.DataFrame({"country": countries, "statistic": np.linspace(99, 10, n)})


class TestRowFilters(unittest.TestCase):
    def setUp(self):
        self.table = make_long(
            [
                ("Afghanistan", "AFG", "DTP3", 2020, 66),
                ("Afghanistan", "AFG", "DTP3", 2021, 68),
                ("Afghanistan", "AFG", "MCV1", 2021, 60),
                ("Iraq", "IRQ", "DTP3", 2021, 73),
                ("Kenya", "KEN", "DTP3", 2021, 91),
            ]
        )

    def test_absent_iso3_codes_are_silently_ignored(self):
        view = select(self.table, vaccines=["DTP3"], iso3={"AFG", "SYR"})
        self.assertEqual(set(view["iso3"]), {"AFG"})
        self.assertEqual(len(view), 2)

    def test_filters_commute(self):
        a = filter_year(filter_vaccine(filter_iso3(self.table, ["AFG", "IRQ"]), ["DTP3"]), [2021])
        b = filter_iso3(filter_year(filter_vaccine(self.table, ["DTP3"]), [2021]), ["AFG", "IRQ"])
        self.assertEqual(sorted(a.index), sorted(b.index))
        self.assertEqual(set(a["iso3"]), {"AFG", "IRQ"})

    def test_filters_return_views_without_mutating(self):
        before = self.table.copy()
        view = filter_countries(self.table, ["Kenya"])
        self.assertEqual(len(view), 1)
        pd.testing.assert_frame_equal(self.table, before)

    def test_codes_are_case_insensitive(self):
        self.assertEqual(len(filter_iso3(self.table, ["afg"])), 3)
        self.assertEqual(len(filter_vaccine(self.table, ["mcv1"])), 1)

    def test_filter_region(self):
        regions = pd.DataFrame({"region": ["Global", "WCAR"], "vaccine": ["DTP3", "DTP3"], "coverage": [84.0, 70.0]})
        self.assertEqual(filter_region(regions, ["global"])["coverage"].tolist(), [84.0])

    def test_empty_selection_raises(self):
        with self.assertRaises(EmptySelectionError) as ctx:
            select(self.table, iso3=["SYR"], what="conflict countries")
        self.assertEqual(ctx.exception.stage, "filter")
        self.assertIn("conflict countries", str(ctx.exception))

    def test_require_rows_passes_through(self):
        self.assertIs(require_rows(self.table, "all"), self.table)


class TestTopBottom(unittest.TestCase):
    def test_n8_gives_disjoint_four_and_four(self):
        ranking = ranking_of(12)
        top = top_countries(ranking, 8)
        bottom = bottom_countries(ranking, 8)
        self.assertEqual(top, ["C00", "C01", "C02", "C03"])
        self.assertEqual(bottom, ["C11", "C10", "C09", "C08"])
        self.assertFalse(set(top) & set(bottom))
        self.assertEqual(len(set(top) | set(bottom)), 8)

    def test_odd_n_rounds_down_per_side(self):
        selected = top_bottom_countries(ranking_of(12), 7)
        self.assertEqual(selected["group"].value_counts().to_dict(), {"Top": 3, "Bottom": 3})

    def test_sides_never_overlap_with_few_countries(self):
        selected = top_bottom_countries(ranking_of(5), 8)
        self.assertEqual(len(selected), 5)
        self.assertFalse(selected["country"].duplicated().any())

    def test_statistic_carried_over(self):
        ranking = ranking_of(10)
        selected = top_bottom_countries(ranking, 2)
        self.assertEqual(selected["country"].tolist(), ["C00", "C09"])
        self.assertAlmostEqual(selected["statistic"].iloc[0], 99.0)
        self.assertAlmostEqual(selected["statistic"].iloc[1], 10.0)


if __name__ == "__main__":
    unittest.main()
