from __future__ import annotations

import logging
import re
from dataclasses import replace
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from vaxcov.aggregates import median_coverage_by_country
from vaxcov.config import (
    CONFLICT_ISO3,
    COUNTRY_ID_COLUMNS,
    HEADER_ALIASES,
    LONG_COLUMNS,
    SUMMARY_ID_COLUMNS,
    VACCINES,
    ReportSettings,
    normalize_settings,
)
from vaxcov.errors import FormatError, InvalidYearError, LoadError
from vaxcov.filters import (
    bottom_countries,
    filter_countries,
    filter_iso3,
    filter_region,
    filter_vaccine,
    filter_year,
)


logger = logging.getLogger(__name__)

YEAR_LABEL = re.compile(r"^\d{4}$")


def _label_text(label: object) -> str:
    if not isinstance(label, str):
        try:
            as_float = float(label)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            as_float = None
        if as_float is not None and as_float.is_integer():
            return str(int(as_float))
    return str(label).strip()


def normalize_header(label: object) -> str:
    """Excel hands back year headers as ints; everything is compared as stripped text."""
    text = _label_text(label)
    return HEADER_ALIASES.get(text, text)


def drop_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[:, ~df.columns.duplicated()]


def drop_unnamed_columns(df: pd.DataFrame) -> pd.DataFrame:
    unnamed = [c for c in df.columns if str(c).startswith("Unnamed:") and df[c].isna().all()]
    return df.drop(columns=unnamed)


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            series = df[col]
            if isinstance(series, pd.DataFrame):
                series = series.iloc[:, 0]
            series = series.astype("string").str.strip()
            series = series.replace({"nan": pd.NA, "None": pd.NA, "": pd.NA})
            df[col] = series
    return df


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def drop_blank_rows(df: pd.DataFrame, key_cols: Sequence[str]) -> pd.DataFrame:
    keys = [c for c in key_cols if c in df.columns]
    if not keys:
        return df
    return df.dropna(subset=keys, how="all")


def parse_year_label(label: object, *, sheet: Optional[str] = None) -> pd.Timestamp:
    """Map a year column header such as ``2019`` to the date 2019-01-01."""
    text = _label_text(label)
    if not YEAR_LABEL.match(text):
        raise InvalidYearError(label, sheet=sheet)
    try:
        return pd.Timestamp(year=int(text), month=1, day=1)
    except (ValueError, OverflowError) as exc:
        raise InvalidYearError(label, sheet=sheet) from exc


def year_columns(df: pd.DataFrame, id_columns: Sequence[str], *, sheet: Optional[str] = None) -> List[str]:
    cols = [c for c in df.columns if c not in set(id_columns)]
    for col in cols:
        parse_year_label(col, sheet=sheet)
    return cols


# ---------------- Loader ----------------
def read_workbook(path: str | Path) -> Dict[str, pd.DataFrame]:
    path = Path(path)
    if not path.is_file():
        raise LoadError(f"workbook not found: {path}")
    try:
        raw = pd.read_excel(path, sheet_name=None)
    except Exception as exc:
        raise LoadError(f"cannot open workbook {path.name}: {exc}") from exc
    if not raw:
        raise LoadError(f"workbook {path.name} has no sheets")

    sheets: Dict[str, pd.DataFrame] = {}
    for name, df in raw.items():
        df = df.rename(columns=normalize_header)
        df = drop_duplicate_columns(df)
        df = drop_unnamed_columns(df)
        df = df.dropna(how="all")
        if df.empty:
            raise LoadError(f"sheet '{name}' in {path.name} is empty")
        sheets[str(name)] = df.reset_index(drop=True)
    logger.info("Read %d sheets from %s", len(sheets), path.name)
    return sheets


def is_summary_sheet(df: pd.DataFrame) -> bool:
    cols = set(df.columns)
    return set(SUMMARY_ID_COLUMNS).issubset(cols) and not ({"country", "iso3"} & cols)


def split_sheets(
    sheets: Dict[str, pd.DataFrame], *, summary_sheet: Optional[str] = None
) -> Tuple[Dict[str, pd.DataFrame], Tuple[str, pd.DataFrame]]:
    """Separate the region/global rollup sheet from the per-vaccine country sheets.

    The rollup is found by its columns (region and vaccine, no country or iso3)
    unless ``summary_sheet`` names it.
    """
    if summary_sheet is not None:
        if summary_sheet not in sheets:
            raise LoadError(f"summary sheet '{summary_sheet}' not found; sheets are {list(sheets)}")
        summary_name = summary_sheet
    else:
        candidates = [name for name, df in sheets.items() if is_summary_sheet(df)]
        if not candidates:
            raise LoadError("no region/global summary sheet found (columns region and vaccine without country/iso3)")
        if len(candidates) > 1:
            raise LoadError(f"several sheets look like the region/global summary: {candidates}")
        summary_name = candidates[0]

    summary = sheets[summary_name]
    missing = [c for c in SUMMARY_ID_COLUMNS if c not in summary.columns]
    if missing:
        raise LoadError(f"summary sheet '{summary_name}' is missing columns {missing}")

    country_sheets = {name: df for name, df in sheets.items() if name != summary_name}
    if not country_sheets:
        raise LoadError("workbook has no country coverage sheets")
    for name, df in country_sheets.items():
        missing = [c for c in COUNTRY_ID_COLUMNS if c not in df.columns]
        if missing:
            raise LoadError(f"sheet '{name}' is missing identifying columns {missing}")
    return country_sheets, (summary_name, summary)


# ---------------- Reshape ----------------
def concat_country_sheets(sheets: Dict[str, pd.DataFrame]) -> pd.DataFrame:
    names = list(sheets)
    if not names:
        raise FormatError("no country sheets to combine")
    reference = names[0]
    ref_cols = list(sheets[reference].columns)
    ref_set = set(ref_cols)
    for name in names[1:]:
        cols = list(sheets[name].columns)
        missing = [c for c in ref_cols if c not in set(cols)]
        extra = [c for c in cols if c not in ref_set]
        if missing or extra:
            raise FormatError(
                f"sheet '{name}' columns differ from '{reference}': missing {missing}, unexpected {extra}"
            )
    return pd.concat([sheets[name][ref_cols] for name in names], ignore_index=True)


def melt_years(wide: pd.DataFrame, id_columns: Sequence[str], *, sheet: Optional[str] = None) -> pd.DataFrame:
    """Wide (one column per year) to long; yields ``len(wide) * n_years`` rows."""
    id_columns = list(id_columns)
    years = year_columns(wide, id_columns, sheet=sheet)
    dates = {label: parse_year_label(label) for label in years}
    long = wide.melt(id_vars=id_columns, value_vars=years, var_name="year", value_name="coverage")
    long["year"] = pd.to_datetime(long["year"].map(dates))
    long = numericize(long, ["coverage"])
    long["coverage"] = long["coverage"].astype("float64")
    return long


def _check_vaccines(df: pd.DataFrame, where: str) -> None:
    if df["vaccine"].isna().any():
        raise FormatError(f"{where}: {int(df['vaccine'].isna().sum())} rows have no vaccine code")
    unknown = sorted(set(df["vaccine"].astype(str)) - set(VACCINES))
    if unknown:
        raise FormatError(f"{where}: unknown vaccine codes {unknown}")


def reshape_coverage(country_sheets: Dict[str, pd.DataFrame]) -> pd.DataFrame:
    for name, df in country_sheets.items():
        if not year_columns(df, COUNTRY_ID_COLUMNS, sheet=name):
            raise FormatError(f"sheet '{name}' has no year columns")

    wide = concat_country_sheets(country_sheets)
    wide = coerce_str_safe(wide, COUNTRY_ID_COLUMNS)
    wide = drop_blank_rows(wide, ["country", "iso3"])
    wide["vaccine"] = wide["vaccine"].str.upper()
    wide["iso3"] = wide["iso3"].str.upper()
    _check_vaccines(wide, "country sheets")

    long = melt_years(wide, COUNTRY_ID_COLUMNS)

    dupes = long.duplicated(subset=["country", "vaccine", "year"], keep=False)
    if dupes.any():
        sample = long.loc[dupes, ["country", "vaccine"]].drop_duplicates().head(5).to_dict(orient="records")
        raise FormatError(f"duplicate country/vaccine/year rows, e.g. {sample}")

    cov = long["coverage"]
    out_of_range = cov.notna() & ~cov.between(0, 100)
    if out_of_range.any():
        raise FormatError(f"{int(out_of_range.sum())} coverage values fall outside 0-100")

    logger.info(
        "Reshaped %d wide rows into %d coverage records (%d countries, %d vaccines)",
        len(wide),
        len(long),
        long["country"].nunique(),
        long["vaccine"].nunique(),
    )
    return long[list(LONG_COLUMNS)].reset_index(drop=True)


def reshape_summary(summary: pd.DataFrame, *, sheet: Optional[str] = None) -> pd.DataFrame:
    wide = coerce_str_safe(summary.copy(), SUMMARY_ID_COLUMNS)
    wide = drop_blank_rows(wide, ["region"])
    wide["vaccine"] = wide["vaccine"].str.upper()
    _check_vaccines(wide, f"summary sheet '{sheet}'" if sheet else "summary sheet")
    long = melt_years(wide, SUMMARY_ID_COLUMNS, sheet=sheet)
    return long[["region", "vaccine", "year", "coverage"]].reset_index(drop=True)


def to_wide(long: pd.DataFrame, id_columns: Sequence[str] = COUNTRY_ID_COLUMNS) -> pd.DataFrame:
    """Pivot long records back to one ``YYYY`` column per year."""
    frame = long.assign(year=long["year"].dt.year.astype(str))
    wide = frame.pivot(index=list(id_columns), columns="year", values="coverage").reset_index()
    wide.columns.name = None
    return wide


# ---------------- Public API ----------------
def file_signature(path: Path) -> Tuple[str, float]:
    return str(path.resolve()), path.stat().st_mtime


@lru_cache(maxsize=4)
def _load_coverage_data_cached(signature: Tuple[str, float], summary_sheet: Optional[str]) -> Dict[str, object]:
    path = Path(signature[0])
    sheets = read_workbook(path)
    country_sheets, (summary_name, summary) = split_sheets(sheets, summary_sheet=summary_sheet)
    coverage = reshape_coverage(country_sheets)
    regions = reshape_summary(summary, sheet=summary_name)

    years = sorted(coverage["year"].dt.year.dropna().astype(int).unique().tolist())
    countries = sorted(coverage["country"].dropna().astype(str).unique().tolist())
    vaccines = [v for v in VACCINES if v in set(coverage["vaccine"].astype(str))]

    return {
        "path": str(path),
        "sheets": {name: int(len(df)) for name, df in sheets.items()},
        "summary_sheet": summary_name,
        "coverage": coverage,
        "regions": regions,
        "years": years,
        "countries": countries,
        "vaccines": vaccines,
    }


def load_coverage_data(path: str | Path, *, summary_sheet: Optional[str] = None) -> Dict[str, object]:
    path = Path(path)
    if not path.is_file():
        raise LoadError(f"workbook not found: {path}")
    return _load_coverage_data_cached(file_signature(path), summary_sheet)


def prepare_context(settings: dict | ReportSettings, data_ctx: Dict[str, object]) -> Dict[str, object]:
    coverage: pd.DataFrame = data_ctx["coverage"]  # type: ignore[assignment]
    regions: pd.DataFrame = data_ctx["regions"]  # type: ignore[assignment]
    years: List[int] = list(data_ctx.get("years") or [])  # type: ignore[arg-type]
    countries: List[str] = list(data_ctx.get("countries") or [])  # type: ignore[arg-type]

    vaccines: List[str] = list(data_ctx.get("vaccines") or [])  # type: ignore[arg-type]

    if not isinstance(settings, ReportSettings):
        settings = normalize_settings(
            settings, available_years=years, available_countries=countries, available_vaccines=vaccines
        )
    else:
        if settings.year is None and years:
            settings = replace(settings, year=years[-1])
        if vaccines and settings.vaccine not in vaccines:
            settings = replace(settings, vaccine=vaccines[0])

    vaccine_view = filter_vaccine(coverage, [settings.vaccine])
    year_view = filter_year(coverage, [settings.year]) if settings.year is not None else coverage.iloc[0:0]

    focus_countries = list(settings.focus_countries)
    if not focus_countries and coverage["coverage"].notna().any():
        ranking = median_coverage_by_country(coverage)
        focus_countries = bottom_countries(ranking, settings.ranking_n)

    return {
        "settings": settings,
        "coverage": coverage,
        "regions": regions,
        "global_trends": filter_region(regions, [settings.global_region]),
        "vaccine_view": vaccine_view,
        "year_view": year_view,
        "focus_countries": focus_countries,
        "focus_view": filter_countries(coverage, focus_countries),
        "conflict_view": filter_iso3(coverage, CONFLICT_ISO3),
        "sheets": data_ctx.get("sheets", {}),
        "summary_sheet": data_ctx.get("summary_sheet"),
        "years": years,
        "countries": countries,
        "vaccines": data_ctx.get("vaccines", []),
    }
