"""Composite scoring and the tract ranking pipeline behind POST /score."""
import math
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Union

from config import (
    BOROUGH_BY_COUNTY,
    DEFAULT_AGE_RANGE,
    DEFAULT_INCOME_RANGE,
    FACTOR_IDS,
    MATCH_THRESHOLDS,
    VALID_TIME_PERIODS,
)
from filter_aggregator import (
    calculate_age_percentages,
    calculate_ethnicity_percentages,
    calculate_gender_percentages,
    calculate_income_percentages,
    filter_zones_by_rent,
    row_geoid,
    safe_float,
    safe_number,
)
from schemas import ScoreRequest, WeightSet, ZoneRecord
from weight_normalizer import apply_weights, normalize_demographic_weights, redistribute_demographic_weight

DEMOGRAPHIC_DIMENSIONS = ("ethnicity", "gender", "age", "income")
SOURCE_COLUMNS = {
    "GEOID", "geoid", "avg_rent", "foot_traffic_score", "crime_score",
    "flood_risk_score", "rent_score", "poi_score",
} | {f"foot_traffic_{period}" for period in VALID_TIME_PERIODS}


def calculate_custom_score(
    foot_traffic: float,
    demographic: Optional[float],
    crime: float,
    flood_risk: float,
    rent: float,
    poi: float,
    weights: Union[WeightSet, Mapping],
) -> float:
    """
    Weighted sum of the six component scores.

    ``weights`` holds fractions. A missing demographic component contributes 0
    while its weight stays spent. Nothing is clamped; callers pass components
    on a shared scale.
    """
    weight_values = weights.model_dump() if isinstance(weights, WeightSet) else dict(weights)
    components = {
        "foot_traffic": foot_traffic,
        "demographic": demographic,
        "crime": crime,
        "flood_risk": flood_risk,
        "rent_score": rent,
        "poi": poi,
    }
    return sum((components[factor_id] or 0) * (weight_values.get(factor_id) or 0) for factor_id in FACTOR_IDS)


def score_percentage_match(fraction: float) -> float:
    """Map a population match fraction (0-1) onto a 0-100 score curve."""
    pct = fraction * 100
    if pct >= MATCH_THRESHOLDS["excellent"]:
        return min(100, 80 + (pct - MATCH_THRESHOLDS["excellent"]) / 20 * 20)
    if pct >= MATCH_THRESHOLDS["strong"]:
        return 70 + (pct - MATCH_THRESHOLDS["strong"]) / 5 * 9
    if pct >= MATCH_THRESHOLDS["good"]:
        return 60 + (pct - MATCH_THRESHOLDS["good"]) / 5 * 9
    if pct >= MATCH_THRESHOLDS["average"]:
        return 50 + (pct - MATCH_THRESHOLDS["average"]) / 5 * 9
    if pct >= MATCH_THRESHOLDS["weak"]:
        return 40 + (pct - MATCH_THRESHOLDS["weak"]) / 5 * 9
    if pct >= MATCH_THRESHOLDS["poor"]:
        return 20 + (pct - MATCH_THRESHOLDS["poor"]) / 5 * 19
    return max(0, pct / MATCH_THRESHOLDS["poor"] * 19)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _is_non_default(value_range: Sequence[float], default: Sequence[float]) -> bool:
    return tuple(value_range) != tuple(default)


def active_demographic_dimensions(request: ScoreRequest) -> List[str]:
    active = []
    if request.ethnicities:
        active.append("ethnicity")
    if request.genders:
        active.append("gender")
    if _is_non_default(request.age_range, DEFAULT_AGE_RANGE):
        active.append("age")
    if _is_non_default(request.income_range, DEFAULT_INCOME_RANGE):
        active.append("income")
    return active


def calculate_match_percentages(tables: Mapping[str, Any], request: ScoreRequest) -> Dict[str, Dict[str, float]]:
    """Per-dimension GEOID -> match fraction, computed only for the active dimensions."""
    percentages: Dict[str, Dict[str, float]] = {dimension: {} for dimension in DEMOGRAPHIC_DIMENSIONS}
    active = active_demographic_dimensions(request)
    ethnicity_rows = tables.get("ethnicity") or []
    demographic_rows = tables.get("demographics") or []
    income_rows = tables.get("income") or []

    if "ethnicity" in active:
        percentages["ethnicity"] = calculate_ethnicity_percentages(ethnicity_rows, request.ethnicities)
    if "gender" in active:
        percentages["gender"] = calculate_gender_percentages(demographic_rows, request.genders)
    if "age" in active:
        percentages["age"] = calculate_age_percentages(demographic_rows, request.age_range)
    if "income" in active:
        percentages["income"] = calculate_income_percentages(income_rows, request.income_range)
    return percentages


def calculate_demographic_score(geoid: str, request: ScoreRequest, percentages: Mapping[str, Mapping[str, float]]) -> float:
    """Combine the active match fractions for one tract into a 0-1 score."""
    scores: Dict[str, float] = {}
    for dimension in active_demographic_dimensions(request):
        dimension_values = percentages.get(dimension) or {}
        if geoid in dimension_values:
            scores[dimension] = score_percentage_match(dimension_values[geoid]) / 100

    if not scores:
        return 0.0

    scoring = request.demographic_scoring
    if scoring is not None and scoring.weights is not None:
        weights = normalize_demographic_weights(scoring.weights).weights.model_dump()
        total_weight = sum(weights[dimension] for dimension in scores)
        if total_weight <= 0:
            return 0.0
        weighted = sum(score * weights[dimension] for dimension, score in scores.items())
        return _clamp(weighted / total_weight)

    return _clamp(sum(scores.values()) / len(scores))


def borough_name(geoid: str) -> str:
    return BOROUGH_BY_COUNTY.get(geoid[2:5], "Unknown")


def tract_names(geoid: str, demographics_row: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    nta = (demographics_row or {}).get("NTA2020_1")
    tract_name = f"{nta}-{geoid[-3:]}" if nta else f"Tract {geoid[-3:]}"
    return {
        "tract_name": tract_name,
        "display_name": f"{tract_name} ({borough_name(geoid)})",
        "nta_name": nta or "Unknown Area",
    }


def foot_traffic_value(zone: Mapping[str, Any], time_periods: Sequence[str]) -> float:
    """Average the per-period foot traffic for the chosen periods, else the overall score."""
    values = [safe_float(zone.get(f"foot_traffic_{period}")) for period in time_periods]
    values = [value for value in values if value is not None]
    if values:
        return sum(values) / len(values)
    return safe_number(zone.get("foot_traffic_score"))


def _component(raw: Any) -> float:
    # Source tables score each factor 0-10.
    return _clamp(safe_number(raw) / 10)


def _display(fraction: float) -> float:
    return round(fraction * 100, 2)


def _match_pct(percentages, active, dimension: str, geoid: str) -> Optional[float]:
    if dimension not in active:
        return None
    return _display(percentages[dimension].get(geoid, 0.0))


def score_zones(tables: Mapping[str, Any], request: ScoreRequest) -> Dict[str, Any]:
    """
    Rank tracts for a scoring request.

    Zones are rent-filtered, scored with the request's weights (the
    demographic weight is redistributed when no demographic filter is set),
    sorted by composite score and cut to the top ``top_n`` percent.
    """
    zones = tables.get("zones") or []
    filtered = filter_zones_by_rent(zones, request.rent_range)

    weights = apply_weights(request.weights)
    active = active_demographic_dimensions(request)
    if not active:
        print("[ScoreCalculator] No demographic filters, redistributing demographic weight")
        weights = redistribute_demographic_weight(weights)
    percentages = calculate_match_percentages(tables, request)

    time_periods = [period for period in dict.fromkeys(request.time_periods) if period in VALID_TIME_PERIODS]
    time_periods = time_periods or list(VALID_TIME_PERIODS)
    demographics_by_geoid = {}
    for row in tables.get("demographics") or []:
        geoid = row_geoid(row)
        if geoid is not None:
            demographics_by_geoid[geoid] = row

    scored: List[ZoneRecord] = []
    for zone in filtered:
        geoid = row_geoid(zone)
        if geoid is None:
            continue

        combined = calculate_demographic_score(geoid, request, percentages) if active else None
        foot_traffic = _clamp(foot_traffic_value(zone, time_periods) / 10)
        crime = _component(zone.get("crime_score"))
        flood_risk = _component(zone.get("flood_risk_score"))
        rent = _component(zone.get("rent_score"))
        poi = _component(zone.get("poi_score"))
        custom = _clamp(calculate_custom_score(foot_traffic, combined, crime, flood_risk, rent, poi, weights))

        scored.append(ZoneRecord(
            geoid=geoid,
            borough=borough_name(geoid),
            avg_rent=safe_float(zone.get("avg_rent")),
            foot_traffic_score=_display(foot_traffic),
            demographic_score=_display(combined or 0.0),
            crime_score=_display(crime),
            flood_risk_score=_display(flood_risk),
            rent_score=_display(rent),
            poi_score=_display(poi),
            custom_score=_display(custom),
            demographic_match_pct=_match_pct(percentages, active, "ethnicity", geoid),
            gender_match_pct=_match_pct(percentages, active, "gender", geoid),
            age_match_pct=_match_pct(percentages, active, "age", geoid),
            income_match_pct=_match_pct(percentages, active, "income", geoid),
            combined_match_pct=combined,
            attributes={key: value for key, value in zone.items() if key not in SOURCE_COLUMNS},
            **tract_names(geoid, demographics_by_geoid.get(geoid)),
        ))

    scored.sort(key=lambda record: record.custom_score, reverse=True)
    top_count = math.ceil(len(scored) * request.top_n / 100)
    top_zones = scored[:top_count]
    print(f"[ScoreCalculator] Scored {len(scored)} zones, returning top {len(top_zones)} ({request.top_n}%)")

    min_rent, max_rent = request.rent_range
    return {
        "zones": top_zones,
        "total_zones_found": len(scored),
        "top_zones_returned": len(top_zones),
        "top_percentage": request.top_n,
        "demographic_scoring_applied": bool(active),
        "foot_traffic_periods_used": time_periods,
        "debug": {
            "weights_used": weights.model_dump(),
            "demographic_dimensions": active,
            "zones_before_rent_filter": len(zones),
            "zones_after_rent_filter": len(filtered),
            "rent_range": [min_rent, None if math.isinf(max_rent) else max_rent],
        },
    }
