from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple


# WHO/UNICEF (WUENIC) antigen codes, one worksheet per code in the source workbook.
VACCINES: Tuple[str, ...] = (
    "BCG",
    "DTP1",
    "DTP3",
    "HEPB3",
    "HEPBB",
    "HIB3",
    "IPV1",
    "MCV1",
    "MCV2",
    "PCV3",
    "POL3",
    "RCV1",
    "ROTAC",
    "YFV",
)

# Curated list shipped with the source workbook analysis. Mixed on purpose (MEX, THA); keep as given.
CONFLICT_ISO3: Tuple[str, ...] = ("AFG", "IRQ", "SDN", "THA", "PAK", "MEX", "NGA", "SYR", "YEM")

COUNTRY_ID_COLUMNS: Tuple[str, ...] = ("country", "iso3", "vaccine", "region")
SUMMARY_ID_COLUMNS: Tuple[str, ...] = ("region", "vaccine")
LONG_COLUMNS: Tuple[str, ...] = ("country", "iso3", "vaccine", "region", "year", "coverage")

HEADER_ALIASES: Dict[str, str] = {
    "country": "country",
    "Country": "country",
    "COUNTRY": "country",
    "country_name": "country",
    "iso3": "iso3",
    "ISO3": "iso3",
    "iso_code": "iso3",
    "vaccine": "vaccine",
    "Vaccine": "vaccine",
    "VACCINE": "vaccine",
    "antigen": "vaccine",
    "region": "region",
    "Region": "region",
    "unicef_region": "region",
    "who_region": "region",
}

GLOBAL_REGION_DEFAULT = "Global"
DEFAULT_VACCINE = "DTP3"
RANKING_N_DEFAULT = 8
FACET_COLUMNS_DEFAULT = 4
MAX_BAR_COUNTRIES_DEFAULT = 30


@dataclass(frozen=True)
class ReportSettings:
    vaccine: str = DEFAULT_VACCINE
    year: Optional[int] = None
    ranking_n: int = RANKING_N_DEFAULT
    focus_countries: List[str] = field(default_factory=list)
    facet_columns: int = FACET_COLUMNS_DEFAULT
    max_bar_countries: int = MAX_BAR_COUNTRIES_DEFAULT
    global_region: str = GLOBAL_REGION_DEFAULT
    summary_sheet: Optional[str] = None


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def normalize_settings(
    raw: dict,
    *,
    available_years: Optional[List[int]] = None,
    available_countries: Optional[List[str]] = None,
    available_vaccines: Optional[List[str]] = None,
) -> ReportSettings:
    available_years = sorted(available_years or [])

    vaccine = str(raw.get("vaccine") or DEFAULT_VACCINE).strip().upper()
    if vaccine not in VACCINES:
        raise ValueError(f"Unknown vaccine code {vaccine!r}; expected one of {', '.join(VACCINES)}")
    if available_vaccines and vaccine not in available_vaccines:
        vaccine = available_vaccines[0]

    year = raw.get("year")
    year = _as_int(year, 0) if year is not None else None
    if available_years and (year is None or year not in available_years):
        year = available_years[-1]

    ranking_n = max(2, min(50, _as_int(raw.get("ranking_n", RANKING_N_DEFAULT), RANKING_N_DEFAULT)))
    facet_columns = max(1, min(8, _as_int(raw.get("facet_columns", FACET_COLUMNS_DEFAULT), FACET_COLUMNS_DEFAULT)))
    max_bar_countries = max(
        1, min(250, _as_int(raw.get("max_bar_countries", MAX_BAR_COUNTRIES_DEFAULT), MAX_BAR_COUNTRIES_DEFAULT))
    )

    focus_countries = _as_str_list(raw.get("focus_countries"))
    if available_countries is not None:
        known = set(available_countries)
        focus_countries = [c for c in focus_countries if c in known]

    global_region = str(raw.get("global_region") or GLOBAL_REGION_DEFAULT).strip()
    summary_sheet = raw.get("summary_sheet") or None

    return ReportSettings(
        vaccine=vaccine,
        year=year,
        ranking_n=ranking_n,
        focus_countries=focus_countries,
        facet_columns=facet_columns,
        max_bar_countries=max_bar_countries,
        global_region=global_region,
        summary_sheet=str(summary_sheet) if summary_sheet else None,
    )
