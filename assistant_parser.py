"""Parse and sanitize the assistant's free-text reply into safe filter changes."""
import json
import re
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config import (
    ASSISTANT_FALLBACK_MESSAGE,
    ASSISTANT_RENT_BOUNDS,
    DEFAULT_AGE_RANGE,
    DEFAULT_INCOME_RANGE,
    VALID_GENDERS,
    VALID_TIME_PERIODS,
)
from demographic_resolver import resolve_ethnicities
from schemas import AssistantFilters, AssistantReply
from weight_normalizer import normalize_demographic_weights, normalize_weights

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_REPLY_KEYS = {"message", "intent", "filters"}


def extract_json_block(reply: str) -> Optional[Dict[str, Any]]:
    """Return the first fenced JSON object in the reply, or the whole reply parsed as JSON."""
    if not isinstance(reply, str) or not reply.strip():
        return None

    candidates = [match.group(1) for match in _FENCED_JSON.finditer(reply)]
    candidates.append(reply.strip())
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def _sanitize_range(value: Any, bounds: Sequence[float]) -> Optional[Tuple[float, float]]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    low, high = value
    if not _is_number(low) or not _is_number(high):
        return None
    if low > high:
        low, high = high, low
    floor, ceiling = bounds
    return (float(min(max(low, floor), ceiling)), float(min(max(high, floor), ceiling)))


def _weight_entries(raw_weights: List[Any]) -> List[Dict[str, Any]]:
    entries = []
    for entry in raw_weights:
        if isinstance(entry, Mapping):
            entries.append({"id": entry.get("id"), "value": entry.get("value", entry.get("weight"))})
    return entries


def _sanitize_time_periods(raw_periods: List[Any]) -> List[str]:
    periods: List[str] = []
    for period in raw_periods:
        if isinstance(period, str) and period.lower() in VALID_TIME_PERIODS:
            if period.lower() not in periods:
                periods.append(period.lower())
        else:
            print(f"[Assistant] Ignoring invalid time period: {period!r}")
    return periods


def sanitize_filters(raw: Any) -> AssistantFilters:
    """
    Convert the untrusted filter object into validated changes.

    Weights are normalized, ethnicity terms resolved against the taxonomy,
    genders and time periods restricted to known values, and ranges ordered
    and clamped. Anything malformed is dropped so the caller keeps its state.
    """
    if not isinstance(raw, Mapping):
        return AssistantFilters()

    fields: Dict[str, Any] = {}

    if isinstance(raw.get("weights"), list):
        fields["weights"] = normalize_weights(_weight_entries(raw["weights"])).weights

    if isinstance(raw.get("selectedEthnicities"), list):
        fields["selected_ethnicities"] = resolve_ethnicities(raw["selectedEthnicities"])

    if isinstance(raw.get("selectedGenders"), list):
        genders = [g.lower() for g in raw["selectedGenders"] if isinstance(g, str)]
        fields["selected_genders"] = [g for g in VALID_GENDERS if g in genders]

    if isinstance(raw.get("selectedTimePeriods"), list):
        fields["selected_time_periods"] = _sanitize_time_periods(raw["selectedTimePeriods"])

    for key, field_name, bounds in (
        ("ageRange", "age_range", DEFAULT_AGE_RANGE),
        ("incomeRange", "income_range", DEFAULT_INCOME_RANGE),
        ("rentRange", "rent_range", ASSISTANT_RENT_BOUNDS),
    ):
        if key in raw:
            value_range = _sanitize_range(raw[key], bounds)
            if value_range is None:
                print(f"[Assistant] Ignoring malformed {key}: {raw[key]!r}")
            else:
                fields[field_name] = value_range

    scoring = raw.get("demographicScoring")
    if isinstance(scoring, Mapping):
        scoring_weights = scoring.get("weights", scoring)
        fields["demographic_scoring"] = normalize_demographic_weights(scoring_weights).weights

    return AssistantFilters(**fields)


def parse_assistant_reply(reply: str) -> AssistantReply:
    """Parse a model reply. Replies without a JSON object fall back to a fixed message."""
    payload = extract_json_block(reply)
    if payload is None:
        print("[Assistant] No JSON object found in reply, using fallback message")
        return AssistantReply(message=ASSISTANT_FALLBACK_MESSAGE, fallback=True)

    message = payload.get("message")
    if not isinstance(message, str) or not message.strip():
        message = ASSISTANT_FALLBACK_MESSAGE

    if payload.get("intent") == "reset":
        return AssistantReply(filters=AssistantFilters(reset=True), message=message)

    raw_filters = payload.get("filters")
    if not isinstance(raw_filters, Mapping):
        raw_filters = {key: value for key, value in payload.items() if key not in _REPLY_KEYS}
    return AssistantReply(filters=sanitize_filters(raw_filters), message=message)
