"""Country rankings over the long coverage table.

The two rankings treat missing coverage differently and that difference is
kept on purpose:

- ``median_coverage_by_country`` drops missing values, so a country with no
  reported coverage at all has no median and leaves the ranking.
- ``total_coverage_by_country_year`` counts missing values as 0, so every
  country present in the year stays in the ranking, possibly with a total of 0.
"""

from __future__ import annotations

import logging
from typing import Iterable

import pandas as pd

from vaxcov.errors import EmptySelectionError


logger = logging.getLogger(__name__)

RANKING_COLUMNS = ["country", "statistic"]


def drop_missing_coverage(df: pd.DataFrame) -> pd.DataFrame:
    return df.dropna(subset=["coverage"])


def zero_fill_coverage(df: pd.DataFrame) -> pd.DataFrame:
    return df.assign(coverage=df["coverage"].fillna(0.0))


def _require(df: pd.DataFrame, what: str) -> None:
    if df.empty:
        raise EmptySelectionError(f"no coverage rows to aggregate for {what}", stage="aggregate")


def _ranking(grouped: pd.Series, *, ascending: bool) -> pd.DataFrame:
    out = grouped.rename("statistic").reset_index()
    out["country"] = out["country"].astype(str)
    out = out.sort_values("country").sort_values("statistic", ascending=ascending, kind="stable")
    return out[RANKING_COLUMNS].reset_index(drop=True)


def median_coverage_by_country(table: pd.DataFrame) -> pd.DataFrame:
    _require(table, "median coverage")
    observed = drop_missing_coverage(table)
    medians = observed.groupby("country", observed=True)["coverage"].median()
    ranking = _ranking(medians, ascending=False)
    dropped = table["country"].nunique() - len(ranking)
    if dropped:
        logger.debug("Median ranking excludes %d countries with no reported coverage", dropped)
    return ranking


def total_coverage_by_country_year(table: pd.DataFrame, year: int) -> pd.DataFrame:
    rows = table[table["year"].dt.year == int(year)]
    _require(rows, f"year {year}")
    totals = zero_fill_coverage(rows).groupby("country", observed=True)["coverage"].sum()
    return _ranking(totals, ascending=True)


def category_order(ranking: pd.DataFrame, countries: Iterable[str] | None = None) -> list[str]:
    """Country order of a ranking, optionally restricted to ``countries``."""
    order = ranking["country"].astype(str).tolist()
    if countries is None:
        return order
    keep = set(countries)
    return [c for c in order if c in keep]
