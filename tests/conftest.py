import os
import shutil
import tempfile

import numpy as np
import pandas as pd

COUNTRIES = [
    ("Afghanistan", "AFG", "ROSA"),
    ("Syrian Arab Republic", "SYR", "MENA"),
    ("Yemen", "YEM", "MENA"),
    ("Nigeria", "NGA", "WCAR"),
    ("Chad", "TCD", "WCAR"),
    ("France", "FRA", "ECAR"),
    ("Brazil", "BRA", "LACR"),
    ("India", "IND", "ROSA"),
    ("Japan", "JPN", "EAPR"),
    ("Kenya", "KEN", "ESAR"),
    ("Atlantis", "ATL", "ECAR"),
]
NO_DATA_COUNTRY = "Atlantis"
VACCINES = ("BCG", "DTP3", "MCV1")
YEARS = (2019, 2020, 2021, 2022)
REGIONS = ("Global", "WCAR", "ROSA")


def make_temp_dir():
    return tempfile.mkdtemp(prefix="vaxcov_")


def cleanup_dir(d):
    if os.path.isdir(d):
        shutil.rmtree(d)


def coverage_value(i, j, k):
    return float(40 + (i * 7 + j * 3 + k * 2) % 60)


def make_country_sheet(vaccine, countries=COUNTRIES, years=YEARS, vaccine_index=0):
    """Wide sheet laid out like the WUENIC download: region alias, newest year first."""
    rows = []
    for i, (name, iso3, region) in enumerate(countries):
        row = {"unicef_region": region, "iso3": iso3, "country": name, "vaccine": vaccine}
        for k, year in enumerate(years):
            row[year] = np.nan if name == NO_DATA_COUNTRY else coverage_value(i, vaccine_index, k)
        rows.append(row)
    cols = ["unicef_region", "iso3", "country", "vaccine"] + sorted(years, reverse=True)
    return pd.DataFrame(rows)[cols]


def make_summary_sheet(regions=REGIONS, vaccines=VACCINES, years=YEARS):
    rows = []
    for i, region in enumerate(regions):
        for j, vaccine in enumerate(vaccines):
            row = {"region": region, "vaccine": vaccine}
            for k, year in enumerate(years):
                row[year] = float(70 + i + j + k)
            rows.append(row)
    return pd.DataFrame(rows)[["region", "vaccine"] + sorted(years, reverse=True)]


def write_workbook(path, sheets):
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)
    return path


def make_coverage_workbook(directory, name="coverage.xlsx"):
    sheets = {v: make_country_sheet(v, vaccine_index=j) for j, v in enumerate(VACCINES)}
    sheets["regional_global"] = make_summary_sheet()
    return write_workbook(os.path.join(directory, name), sheets)


def make_chad_sheets():
    country = pd.DataFrame(
        {"country": ["Chad"], "iso3": ["TCD"], "vaccine": ["DTP3"], "region": ["Africa"], "2019": [50], "2020": [55], "2021": [60]}
    )
    summary = pd.DataFrame({"region": ["Global"], "vaccine": ["DTP3"], "2021": [80]})
    return {"DTP3": country, "regional_global": summary}


def make_long(rows):
    """Long coverage frame from (country, iso3, vaccine, year, coverage) tuples."""
    df = pd.DataFrame(rows, columns=["country", "iso3", "vaccine", "year", "coverage"])
    df["region"] = "R"
    df["year"] = pd.to_datetime(df["year"].astype(str) + "-01-01")
    df["coverage"] = df["coverage"].astype("float64")
    return df[["country", "iso3", "vaccine", "region", "year", "coverage"]]
