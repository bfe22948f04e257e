"""Typed payloads shared by the scoring core, the assistant parser and the API."""
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import (
    DEFAULT_AGE_RANGE,
    DEFAULT_INCOME_RANGE,
    DEFAULT_TOP_PERCENT,
    FACTOR_IDS,
    VALID_TIME_PERIODS,
)


def _ordered_range(value: Tuple[float, Optional[float]]) -> Tuple[float, float]:
    """Treat a missing upper bound as unbounded and swap reversed pairs."""
    low, high = value
    if high is None:
        high = float("inf")
    if low > high:
        low, high = high, low
    return (low, high)


def _is_pair(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) == 2


def _clamp_bound(bound: Any, low: float, high: Optional[float] = None) -> Any:
    """Clamp a numeric bound, leaving None and non-numbers for field validation."""
    if isinstance(bound, bool) or not isinstance(bound, (int, float)):
        return bound
    bound = max(low, bound)
    return min(high, bound) if high is not None else bound


class WeightOption(BaseModel):
    """One factor weight as shown to users, expressed as a percentage."""

    id: str
    value: float
    label: str = ""
    icon: str = ""
    color: str = ""


class WeightSet(BaseModel):
    """The six factor weights. Percentages for display, fractions for score math."""

    model_config = ConfigDict(frozen=True)

    foot_traffic: float = Field(0.0, ge=0)
    demographic: float = Field(0.0, ge=0)
    crime: float = Field(0.0, ge=0)
    flood_risk: float = Field(0.0, ge=0)
    rent_score: float = Field(0.0, ge=0)
    poi: float = Field(0.0, ge=0)

    @classmethod
    def from_options(cls, options: List[WeightOption]) -> "WeightSet":
        values = {option.id: option.value for option in options if option.id in FACTOR_IDS}
        return cls(**values)

    def total(self) -> float:
        return sum(getattr(self, factor_id) for factor_id in FACTOR_IDS)

    def as_fractions(self) -> "WeightSet":
        return WeightSet(**{factor_id: getattr(self, factor_id) / 100 for factor_id in FACTOR_IDS})


class NormalizedWeights(BaseModel):
    """Canonical weights plus a flag telling whether the default table was used."""

    weights: List[WeightOption]
    defaulted: bool = False

    @property
    def weight_set(self) -> WeightSet:
        return WeightSet.from_options(self.weights)

    def as_percentages(self) -> Dict[str, float]:
        return {option.id: option.value for option in self.weights}


class DemographicWeights(BaseModel):
    ethnicity: float
    age: float
    income: float
    gender: float


class DemographicWeightsResult(BaseModel):
    weights: DemographicWeights
    defaulted: bool = False


class DemographicScoring(BaseModel):
    weights: Optional[Dict[str, Any]] = None


class FilterSpec(BaseModel):
    """User or assistant filter state, rebuilt on every interaction."""

    model_config = ConfigDict(populate_by_name=True)

    age_range: Tuple[float, float] = Field(DEFAULT_AGE_RANGE, alias="ageRange")
    income_range: Tuple[float, float] = Field(DEFAULT_INCOME_RANGE, alias="incomeRange")
    rent_range: Tuple[float, Optional[float]] = Field((0, None), alias="rentRange", validate_default=True)
    selected_ethnicities: List[str] = Field(default_factory=list, alias="selectedEthnicities")
    selected_genders: List[str] = Field(default_factory=list, alias="selectedGenders")
    weights: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("age_range", "income_range", "rent_range")
    @classmethod
    def _order_range(cls, value):
        return _ordered_range(value)


class ScoreRequest(BaseModel):
    """Body of the scoring endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    weights: List[Dict[str, Any]] = Field(default_factory=list)
    rent_range: Tuple[float, Optional[float]] = Field((0, None), alias="rentRange", validate_default=True)
    ethnicities: List[str] = Field(default_factory=list)
    genders: List[str] = Field(default_factory=list)
    age_range: Tuple[float, float] = Field(DEFAULT_AGE_RANGE, alias="ageRange")
    income_range: Tuple[float, float] = Field(DEFAULT_INCOME_RANGE, alias="incomeRange")
    time_periods: List[str] = Field(default_factory=lambda: list(VALID_TIME_PERIODS), alias="timePeriods")
    top_n: float = Field(DEFAULT_TOP_PERCENT, alias="topN")
    demographic_scoring: Optional[DemographicScoring] = Field(None, alias="demographicScoring")

    @field_validator("age_range", mode="before")
    @classmethod
    def _clamp_age(cls, value):
        return [_clamp_bound(bound, 0, 100) for bound in value] if _is_pair(value) else value

    @field_validator("income_range", "rent_range", mode="before")
    @classmethod
    def _clamp_non_negative(cls, value):
        return [_clamp_bound(bound, 0) for bound in value] if _is_pair(value) else value

    @field_validator("age_range", "income_range", "rent_range")
    @classmethod
    def _order_range(cls, value):
        return _ordered_range(value)

    @field_validator("time_periods", mode="before")
    @classmethod
    def _known_time_periods(cls, value):
        if not isinstance(value, list):
            return list(VALID_TIME_PERIODS)
        periods = [period for period in value if period in VALID_TIME_PERIODS]
        return periods or list(VALID_TIME_PERIODS)

    @field_validator("top_n", mode="before")
    @classmethod
    def _top_n_or_default(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 < value <= 100:
            print(f"[ScoreRequest] Invalid topN {value!r}, using {DEFAULT_TOP_PERCENT}")
            return DEFAULT_TOP_PERCENT
        return value


class ZoneRecord(BaseModel):
    """A scored tract. Unknown source columns travel in ``attributes``."""

    geoid: str
    tract_name: str
    display_name: str
    nta_name: str
    borough: str
    avg_rent: Optional[float] = None
    foot_traffic_score: float = 0.0
    demographic_score: float = 0.0
    crime_score: float = 0.0
    flood_risk_score: float = 0.0
    rent_score: float = 0.0
    poi_score: float = 0.0
    custom_score: float = 0.0
    demographic_match_pct: Optional[float] = None
    gender_match_pct: Optional[float] = None
    age_match_pct: Optional[float] = None
    income_match_pct: Optional[float] = None
    combined_match_pct: Optional[float] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)


class AssistantFilters(BaseModel):
    """Sanitized filter changes proposed by the assistant. Unset fields mean "keep current"."""

    model_config = ConfigDict(populate_by_name=True)

    weights: Optional[List[WeightOption]] = None
    selected_ethnicities: Optional[List[str]] = Field(None, alias="selectedEthnicities")
    selected_genders: Optional[List[str]] = Field(None, alias="selectedGenders")
    selected_time_periods: Optional[List[str]] = Field(None, alias="selectedTimePeriods")
    age_range: Optional[Tuple[float, float]] = Field(None, alias="ageRange")
    income_range: Optional[Tuple[float, float]] = Field(None, alias="incomeRange")
    rent_range: Optional[Tuple[float, float]] = Field(None, alias="rentRange")
    demographic_scoring: Optional[DemographicWeights] = Field(None, alias="demographicScoring")
    reset: bool = False


class AssistantReply(BaseModel):
    filters: AssistantFilters = Field(default_factory=AssistantFilters)
    message: str
    fallback: bool = False
