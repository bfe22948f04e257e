"""Per-tract match fractions and the rent filter."""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from config import (
    AGE_BRACKETS,
    ETHNICITY_TOTAL_COLUMN,
    GENDER_COLUMNS,
    INCOME_BRACKETS,
    TOTAL_POPULATION_COLUMN,
    WATCHED_ZONES,
)


def safe_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            return float(value) if value == value else None
        if isinstance(value, str) and value.strip():
            return float(value.replace(",", ""))
    except ValueError:
        return None
    return None


def safe_number(value: Any) -> float:
    """Numeric cell value, or 0 when the cell is missing or unparseable."""
    number = safe_float(value)
    return number if number is not None else 0.0


def pad_geoid(value: Any) -> Optional[str]:
    """Left-pad a tract id to 11 digits. Returns None for anything that is not a tract id."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        text = str(value)
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    elif isinstance(value, str):
        text = value.strip()
    else:
        return None
    if not text or not (text.isascii() and text.isdigit()) or len(text) > 11:
        return None
    return text.zfill(11)


def row_geoid(row: Mapping[str, Any]) -> Optional[str]:
    return pad_geoid(row.get("GEOID", row.get("geoid")))


def _overlapping(brackets: Sequence[Dict[str, Any]], value_range: Sequence[float]) -> List[Dict[str, Any]]:
    low, high = value_range
    return [bracket for bracket in brackets if low <= bracket["max"] and high >= bracket["min"]]


def calculate_age_percentages(rows: Iterable[Mapping[str, Any]], age_range: Sequence[float]) -> Dict[str, float]:
    """
    Fraction of each tract's population inside the requested age range.

    A bracket counts in full when it touches the range at all. Sums above 100%
    are reported as-is.
    """
    brackets = _overlapping(AGE_BRACKETS, age_range)
    percentages: Dict[str, float] = {}
    for row in rows:
        geoid = row_geoid(row)
        if geoid is None:
            continue
        percentages[geoid] = sum(safe_number(row.get(bracket["key"])) for bracket in brackets) / 100
    return percentages


def calculate_ethnicity_percentages(rows: Iterable[Mapping[str, Any]], ethnicity_ids: Iterable[str]) -> Dict[str, float]:
    """Share of each tract's population in the selected ethnicities (0 when total is unknown)."""
    selected = list(dict.fromkeys(ethnicity_ids))
    percentages: Dict[str, float] = {}
    for row in rows:
        geoid = row_geoid(row)
        if geoid is None:
            continue
        total = safe_number(row.get(ETHNICITY_TOTAL_COLUMN))
        if total <= 0:
            percentages[geoid] = 0.0
            continue
        percentages[geoid] = sum(safe_number(row.get(ethnicity_id)) for ethnicity_id in selected) / total
    return percentages


def calculate_gender_percentages(rows: Iterable[Mapping[str, Any]], genders: Iterable[str]) -> Dict[str, float]:
    columns = [GENDER_COLUMNS[gender] for gender in dict.fromkeys(g.lower() for g in genders) if gender in GENDER_COLUMNS]
    percentages: Dict[str, float] = {}
    for row in rows:
        geoid = row_geoid(row)
        if geoid is None:
            continue
        if safe_number(row.get(TOTAL_POPULATION_COLUMN)) <= 0:
            percentages[geoid] = 0.0
            continue
        percentages[geoid] = sum(safe_number(row.get(column)) for column in columns) / 100
    return percentages


def calculate_income_percentages(rows: Iterable[Mapping[str, Any]], income_range: Sequence[float]) -> Dict[str, float]:
    """Share of households whose income bracket touches the requested range."""
    brackets = _overlapping(INCOME_BRACKETS, income_range)
    percentages: Dict[str, float] = {}
    for row in rows:
        geoid = row_geoid(row)
        if geoid is None:
            continue
        households = sum(safe_number(row.get(bracket["key"])) for bracket in INCOME_BRACKETS)
        if households <= 0:
            percentages[geoid] = 0.0
            continue
        percentages[geoid] = sum(safe_number(row.get(bracket["key"])) for bracket in brackets) / households
    return percentages


def filter_zones_by_rent(
    zones: Iterable[Mapping[str, Any]],
    rent_range: Sequence[Optional[float]],
    watched_zones: Iterable[str] = WATCHED_ZONES,
) -> List[Mapping[str, Any]]:
    """Keep zones priced inside the range, zones with no rent data, and watched zones."""
    min_rent, max_rent = rent_range
    if max_rent is None:
        max_rent = float("inf")
    watched = set(watched_zones)
    kept = []
    for zone in zones:
        rent = safe_float(zone.get("avg_rent"))
        if rent is None or min_rent <= rent <= max_rent or row_geoid(zone) in watched:
            kept.append(zone)
    return kept
