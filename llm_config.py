"""Prompt configuration for the neighborhood filter assistant."""
import json
from functools import lru_cache
from typing import Any, Dict, Optional

from config import (
    ASSISTANT_RENT_BOUNDS,
    DEFAULT_AGE_RANGE,
    DEFAULT_INCOME_RANGE,
    FACTOR_DISPLAY,
    FACTOR_IDS,
    VALID_GENDERS,
    VALID_TIME_PERIODS,
)


@lru_cache(maxsize=1)
def get_factor_labels() -> Dict[str, str]:
    """Return a mapping of factor identifiers to human-readable labels."""
    return {factor_id: FACTOR_DISPLAY[factor_id]["label"] for factor_id in FACTOR_IDS}


def _factor_lines() -> str:
    return "\n".join(f"- {factor_id}: {label}" for factor_id, label in get_factor_labels().items())


_GENDERS = ", ".join(VALID_GENDERS)
_TIME_PERIODS = ", ".join(VALID_TIME_PERIODS)

SYSTEM_INSTRUCTION = f"""You are Bricky, an assistant that helps entrepreneurs find NYC neighborhoods (census tracts) for a business. You translate the user's request into changes to the map filters.

Always reply with a single JSON object inside a ```json code fence, shaped like:
```json
{{"filters": {{"weights": [{{"id": "foot_traffic", "weight": 40}}], "selectedEthnicities": ["puerto rican"], "ageRange": [25, 40]}}, "message": "Short friendly explanation."}}
```

Scoring factors you may weight (weights are percentages and should sum to 100):
{_factor_lines()}

Other filters:
- selectedEthnicities: plain names such as "asian", "hispanic", "puerto rican", "caribbean".
- selectedGenders: any of {_GENDERS}.
- selectedTimePeriods: any of {_TIME_PERIODS} (foot traffic periods).
- ageRange: [min, max] between {DEFAULT_AGE_RANGE[0]} and {DEFAULT_AGE_RANGE[1]}.
- incomeRange: [min, max] household income in dollars between {DEFAULT_INCOME_RANGE[0]} and {DEFAULT_INCOME_RANGE[1]}.
- rentRange: [min, max] commercial rent in dollars per square foot between {ASSISTANT_RENT_BOUNDS[0]} and {ASSISTANT_RENT_BOUNDS[1]}.

Only include filters the user asked to change. If the user asks to reset or start over, reply with exactly {{"intent": "reset", "message": "Okay, I've reset all filters to their defaults for you."}}.
If you need to ask a clarifying question, send empty filters and put the question in "message"."""


def build_context_prompt(user_query: str, current_filters: Optional[Dict[str, Any]] = None) -> str:
    """Prefix the user's message with the current filter state so the model edits rather than replaces it."""
    if not current_filters:
        return user_query
    state = json.dumps(current_filters, indent=2, sort_keys=True, default=str)
    return f"Current filter state:\n{state}\n\nUser request: {user_query}"


__all__ = ["SYSTEM_INSTRUCTION", "build_context_prompt", "get_factor_labels"]
