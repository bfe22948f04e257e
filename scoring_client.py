import math
from typing import Any, Dict, List, Optional

import httpx

import config
from schemas import FilterSpec


def build_score_request(
    filter_spec: FilterSpec,
    time_periods: Optional[List[str]] = None,
    top_n: Optional[float] = None,
) -> Dict[str, Any]:
    """Map UI filter state onto the scoring endpoint's flat JSON body."""
    min_rent, max_rent = filter_spec.rent_range
    body: Dict[str, Any] = {
        "weights": filter_spec.weights,
        "rentRange": [min_rent, None if math.isinf(max_rent) else max_rent],
        "ethnicities": filter_spec.selected_ethnicities,
        "genders": filter_spec.selected_genders,
        "ageRange": list(filter_spec.age_range),
        "incomeRange": list(filter_spec.income_range),
    }
    if time_periods is not None:
        body["timePeriods"] = time_periods
    if top_n is not None:
        body["topN"] = top_n
    return body


class ScoringClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = config.SCORING_TIMEOUT,
    ):
        self.base_url = base_url or config.SCORING_ENDPOINT_URL
        if not self.base_url:
            raise ValueError("SCORING_ENDPOINT_URL not found in environment variables. Please add it.")
        self.api_key = api_key if api_key is not None else config.SCORING_API_KEY
        self.transport = transport
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _fallback(self, error: str) -> Dict[str, Any]:
        return {"zones": [], "error": error, "message": config.SCORING_FALLBACK_MESSAGE}

    async def fetch_scores(
        self,
        filter_spec: FilterSpec,
        time_periods: Optional[List[str]] = None,
        top_n: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        POST the filter state to the scoring endpoint.

        Returns the decoded body, or a payload with no zones and a user-facing
        message when the endpoint cannot be reached or answers with an error.
        """
        body = build_score_request(filter_spec, time_periods=time_periods, top_n=top_n)
        print(f"Requesting scores from {self.base_url}")

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(self.base_url, json=body, headers=self._headers())
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            print(f"HTTP error occurred: {e} - {e.response.text}")
            return self._fallback(f"Scoring endpoint returned {e.response.status_code}")
        except httpx.RequestError as e:
            print(f"Request error occurred: {e}")
            return self._fallback("Scoring endpoint unreachable")
        except ValueError as e:
            print(f"Invalid JSON from scoring endpoint: {e}")
            return self._fallback("Scoring endpoint returned invalid JSON")

        if not isinstance(data, dict) or not isinstance(data.get("zones"), list):
            print(f"Unexpected scoring response shape: {type(data)}")
            return self._fallback("Scoring endpoint returned an unexpected payload")
        return data
