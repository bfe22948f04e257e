"""Turn untrusted weight proposals into canonical six-factor weight sets."""
import math
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Tuple

from config import (
    DEFAULT_DEMOGRAPHIC_WEIGHTS,
    DEFAULT_WEIGHT_PERCENTAGES,
    FACTOR_DISPLAY,
    FACTOR_IDS,
    SCORING_DEFAULT_FRACTIONS,
)
from schemas import (
    DemographicWeights,
    DemographicWeightsResult,
    NormalizedWeights,
    WeightOption,
    WeightSet,
)

DEMOGRAPHIC_KEYS = ("ethnicity", "age", "income", "gender")


def round_half_up(value: float, digits: int = 1) -> float:
    """Round halves away from zero for non-negative values (0.25 -> 0.3 at one digit)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _entry_fields(entry: Any) -> Tuple[Any, Any]:
    if isinstance(entry, WeightOption):
        return entry.id, entry.value
    if isinstance(entry, Mapping):
        return entry.get("id"), entry.get("value")
    return None, None


def _weight_option(factor_id: str, value: float) -> WeightOption:
    display = FACTOR_DISPLAY[factor_id]
    return WeightOption(
        id=factor_id,
        value=value,
        label=display["label"],
        icon=display["icon"],
        color=display["color"],
    )


def default_weights() -> NormalizedWeights:
    options = [_weight_option(factor_id, DEFAULT_WEIGHT_PERCENTAGES[factor_id]) for factor_id in FACTOR_IDS]
    return NormalizedWeights(weights=options, defaulted=True)


def _valid_entries(proposal: Optional[Iterable[Any]]) -> List[Tuple[str, float]]:
    """Keep well-formed canonical entries; the first occurrence of an id wins."""
    entries: Dict[str, float] = {}
    for entry in proposal or []:
        factor_id, value = _entry_fields(entry)
        if not isinstance(factor_id, str) or not _is_number(value) or not value >= 0:
            continue
        if factor_id not in FACTOR_IDS or factor_id in entries:
            continue
        entries[factor_id] = float(value)
    return list(entries.items())


def normalize_weights(proposal: Optional[Iterable[Any]]) -> NormalizedWeights:
    """
    Rescale a weight proposal so its percentages sum to 100.

    Malformed entries (non-string id, non-numeric or negative value) and ids
    outside the six factors are dropped. An empty or all-zero proposal yields
    the default table with ``defaulted=True``. Values are rounded to one
    decimal; any residual beyond 0.1 goes to the largest entry. Factors the
    proposal left out are appended with weight 0.
    """
    entries = _valid_entries(proposal)
    total = sum(value for _, value in entries)
    if not entries or total == 0:
        print("[WeightNormalizer] No usable weights in proposal, using defaults")
        return default_weights()

    scale = 100 / total
    values = {factor_id: round_half_up(value * scale) for factor_id, value in entries}

    rounded_total = sum(values.values())
    if abs(rounded_total - 100) > 0.1:
        largest = max(values, key=values.get)
        values[largest] = round_half_up(values[largest] + (100 - rounded_total))

    options = [_weight_option(factor_id, value) for factor_id, value in values.items()]
    options.extend(_weight_option(factor_id, 0) for factor_id in FACTOR_IDS if factor_id not in values)
    return NormalizedWeights(weights=options, defaulted=False)


def normalize_demographic_weights(weights: Any) -> DemographicWeightsResult:
    """Validate the ethnicity/age/income/gender split, resetting to defaults when unusable."""
    defaults = DemographicWeightsResult(weights=DemographicWeights(**DEFAULT_DEMOGRAPHIC_WEIGHTS), defaulted=True)
    if not isinstance(weights, Mapping):
        return defaults

    values = {key: weights.get(key) for key in DEMOGRAPHIC_KEYS}
    if any(not _is_number(value) or not 0 <= value <= 1 for value in values.values()):
        print(f"[WeightNormalizer] Invalid demographic weights {dict(weights)}, using defaults")
        return defaults

    total = sum(values.values())
    if total == 0:
        print("[WeightNormalizer] Demographic weights sum to zero, using defaults")
        return defaults

    if abs(total - 1) > 0.01:
        values = {key: round_half_up(value / total, 2) for key, value in values.items()}

    return DemographicWeightsResult(weights=DemographicWeights(**values), defaulted=False)


def apply_weights(proposal: Optional[Iterable[Any]], defaults: Mapping = SCORING_DEFAULT_FRACTIONS) -> WeightSet:
    """Merge percentage entries over a table of default fractions."""
    values = dict(defaults)
    for entry in proposal or []:
        factor_id, value = _entry_fields(entry)
        if factor_id not in FACTOR_IDS:
            continue
        if not _is_number(value) or not 0 <= value <= 100:
            print(f"[WeightNormalizer] Dropping invalid weight for {factor_id}: {value!r}")
            continue
        values[factor_id] = value / 100
    return WeightSet(**values)


def redistribute_demographic_weight(weight_set: WeightSet) -> WeightSet:
    """Spread the demographic weight over the other factors in proportion to theirs."""
    if weight_set.demographic <= 0:
        return weight_set

    others = [factor_id for factor_id in FACTOR_IDS if factor_id != "demographic"]
    other_total = sum(getattr(weight_set, factor_id) for factor_id in others)
    update: Dict[str, float] = {"demographic": 0.0}
    if other_total > 0:
        for factor_id in others:
            current = getattr(weight_set, factor_id)
            update[factor_id] = current + current / other_total * weight_set.demographic
    return weight_set.model_copy(update=update)
