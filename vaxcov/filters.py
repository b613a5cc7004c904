from __future__ import annotations

from typing import Iterable, List, Optional

import pandas as pd

from vaxcov.errors import EmptySelectionError


def _as_str_set(values: Iterable[object], *, upper: bool = False) -> set[str]:
    out = {str(v).strip() for v in values if v is not None}
    return {v.upper() for v in out} if upper else out


def filter_iso3(df: pd.DataFrame, codes: Iterable[str]) -> pd.DataFrame:
    # Codes with no rows in the data are simply absent from the result.
    return df[df["iso3"].astype(str).isin(_as_str_set(codes, upper=True))]


def filter_countries(df: pd.DataFrame, countries: Iterable[str]) -> pd.DataFrame:
    return df[df["country"].astype(str).isin(_as_str_set(countries))]


def filter_vaccine(df: pd.DataFrame, vaccines: Iterable[str]) -> pd.DataFrame:
    return df[df["vaccine"].astype(str).isin(_as_str_set(vaccines, upper=True))]


def filter_year(df: pd.DataFrame, years: Iterable[int]) -> pd.DataFrame:
    wanted = {int(y) for y in years}
    return df[df["year"].dt.year.isin(wanted)]


def filter_region(df: pd.DataFrame, regions: Iterable[str]) -> pd.DataFrame:
    wanted = {r.lower() for r in _as_str_set(regions)}
    return df[df["region"].astype(str).str.strip().str.lower().isin(wanted)]


def require_rows(view: pd.DataFrame, what: str, *, stage: str = "filter") -> pd.DataFrame:
    if view.empty:
        raise EmptySelectionError(f"{what} matched no rows", stage=stage)
    return view


def select(
    df: pd.DataFrame,
    *,
    iso3: Optional[Iterable[str]] = None,
    countries: Optional[Iterable[str]] = None,
    vaccines: Optional[Iterable[str]] = None,
    years: Optional[Iterable[int]] = None,
    regions: Optional[Iterable[str]] = None,
    what: str = "selection",
) -> pd.DataFrame:
    """Intersect the given criteria; an empty result raises EmptySelectionError."""
    view = df
    if iso3 is not None:
        view = filter_iso3(view, iso3)
    if countries is not None:
        view = filter_countries(view, countries)
    if vaccines is not None:
        view = filter_vaccine(view, vaccines)
    if years is not None:
        view = filter_year(view, years)
    if regions is not None:
        view = filter_region(view, regions)
    return require_rows(view, what)


# ---------------- Ranking selections ----------------
# n is split evenly: floor(n / 2) countries from each end, so an odd n drops one.
def _half(n: int) -> int:
    if n < 0:
        raise ValueError("n must be non-negative")
    return n // 2


def top_countries(ranking: pd.DataFrame, n: int) -> List[str]:
    return ranking["country"].astype(str).head(_half(n)).tolist()


def bottom_countries(ranking: pd.DataFrame, n: int) -> List[str]:
    half = _half(n)
    if half == 0:
        return []
    return ranking["country"].astype(str).tail(half).tolist()[::-1]


def top_bottom_countries(ranking: pd.DataFrame, n: int) -> pd.DataFrame:
    """Top and bottom countries of a ranking, labelled by side; the sides never overlap."""
    top = top_countries(ranking, n)
    taken = set(top)
    bottom = [c for c in bottom_countries(ranking, n) if c not in taken]
    stats = ranking.set_index(ranking["country"].astype(str))["statistic"]
    rows = [{"country": c, "group": "Top", "statistic": stats[c]} for c in top]
    rows += [{"country": c, "group": "Bottom", "statistic": stats[c]} for c in bottom]
    return pd.DataFrame(rows, columns=["country", "group", "statistic"])
