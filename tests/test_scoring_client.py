import asyncio
import json

import httpx
import pytest

import config
from schemas import FilterSpec
from scoring_client import ScoringClient, build_score_request

ENDPOINT = "https://scores.example.test/calculate-resilience"


def _client(handler, api_key="secret"):
    return ScoringClient(base_url=ENDPOINT, api_key=api_key, transport=httpx.MockTransport(handler))


def test_build_score_request_uses_wire_names():
    spec = FilterSpec(selectedEthnicities=["Cuban"], rentRange=[90, 40], weights=[{"id": "crime", "value": 50}])

    body = build_score_request(spec, time_periods=["morning"], top_n=5)

    assert body == {
        "weights": [{"id": "crime", "value": 50}],
        "rentRange": [40, 90],
        "ethnicities": ["Cuban"],
        "genders": [],
        "ageRange": [0, 100],
        "incomeRange": [0, 250000],
        "timePeriods": ["morning"],
        "topN": 5,
    }


def test_unbounded_rent_is_sent_as_null():
    assert build_score_request(FilterSpec())["rentRange"] == [0, None]


def test_fetch_scores_posts_filters():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"zones": [{"geoid": "36061019500"}], "debug": {}})

    result = asyncio.run(_client(handler).fetch_scores(FilterSpec(selectedGenders=["female"])))

    assert result["zones"] == [{"geoid": "36061019500"}]
    assert seen["body"]["genders"] == ["female"]
    assert seen["auth"] == "Bearer secret"


def test_http_error_returns_fallback():
    def handler(request):
        return httpx.Response(500, text="boom")

    result = asyncio.run(_client(handler).fetch_scores(FilterSpec()))

    assert result["zones"] == []
    assert "500" in result["error"]
    assert result["message"] == config.SCORING_FALLBACK_MESSAGE


def test_network_error_returns_fallback():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = asyncio.run(_client(handler).fetch_scores(FilterSpec()))

    assert result["zones"] == []
    assert result["error"] == "Scoring endpoint unreachable"


@pytest.mark.parametrize("payload", [{"debug": {}}, [1, 2]])
def test_unexpected_payload_returns_fallback(payload):
    def handler(request):
        return httpx.Response(200, json=payload)

    result = asyncio.run(_client(handler).fetch_scores(FilterSpec()))

    assert result["zones"] == []


def test_invalid_json_returns_fallback():
    def handler(request):
        return httpx.Response(200, text="<html>oops</html>")

    result = asyncio.run(_client(handler, api_key="").fetch_scores(FilterSpec()))

    assert result["error"] == "Scoring endpoint returned invalid JSON"


def test_missing_endpoint_url_raises(monkeypatch):
    monkeypatch.setattr(config, "SCORING_ENDPOINT_URL", "")

    with pytest.raises(ValueError):
        ScoringClient()
