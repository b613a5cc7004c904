"""Vaccination coverage report logic (UI-agnostic).

This package contains:
- workbook loading and wide -> long reshape (XLSX -> pandas)
- country rankings and row filters
- page compute functions (payload dicts with Altair charts)
- chart rendering and HTML report assembly
"""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
