"""
CSV helpers for the team library import/export.

Parsing uses the csv module so quoted commas and doubled quotes survive.
Export cells are sanitised against spreadsheet formula injection.
"""

import csv
import io
from typing import Dict, List, Sequence

FORMULA_PREFIXES = ("=", "+", "-", "@")

TEAM_CSV_HEADERS = ["name", "role", "level", "defaultRatePerDay", "notes", "status"]
TEAM_CSV_REQUIRED = TEAM_CSV_HEADERS[:4]


def parse_csv(content: str, delimiter: str = ",") -> List[List[str]]:
    """Rows of trimmed cells. Blank lines are dropped."""
    reader = csv.reader(io.StringIO(content), delimiter=delimiter)
    rows = []
    for row in reader:
        cells = [cell.strip() for cell in row]
        if any(cells):
            rows.append(cells)
    return rows


def validate_csv_headers(headers: Sequence[str], expected: Sequence[str], required_count: int = None) -> Dict:
    """
    Compare headers case-insensitively.

    Returns {"valid", "missing", "extra"}. Only the first required_count
    expected headers must be present for valid to be True.
    """
    normalized = [h.strip().lower() for h in headers]
    normalized_expected = [h.lower() for h in expected]

    missing = [h for h in normalized_expected if h not in normalized]
    extra = [h for h in normalized if h not in normalized_expected]

    required = normalized_expected[:required_count] if required_count else normalized_expected
    valid = all(h in normalized for h in required)

    return {"valid": valid, "missing": missing, "extra": extra}


def sanitize_csv_cell(value) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    if text.startswith(FORMULA_PREFIXES):
        return f"'{text}"
    return text


def rows_to_csv(headers: Sequence[str], rows: Sequence[Sequence]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow([sanitize_csv_cell(h) for h in headers])
    for row in rows:
        writer.writerow([sanitize_csv_cell(cell) for cell in row])
    return output.getvalue()
