"""Unit tests for weight proposal normalization."""

import pytest

from config import DEFAULT_WEIGHT_PERCENTAGES, FACTOR_IDS
from schemas import WeightSet
from weight_normalizer import (
    apply_weights,
    normalize_demographic_weights,
    normalize_weights,
    redistribute_demographic_weight,
    round_half_up,
)


def test_empty_proposal_returns_default_table():
    result = normalize_weights([])

    assert result.defaulted is True
    assert result.as_percentages() == {
        "demographic": 40,
        "foot_traffic": 30,
        "crime": 15,
        "flood_risk": 10,
        "rent_score": 5,
        "poi": 0,
    }


@pytest.mark.parametrize(
    "proposal",
    [
        None,
        [{"id": "crime", "value": 0}, {"id": "poi", "value": 0}],
        [{"id": 5, "value": 10}, {"id": "crime", "value": "10"}, {"id": "crime", "value": -5}, {"id": "poi", "value": True}],
        ["crime", 42],
    ],
)
def test_degenerate_or_malformed_proposals_fall_back_to_defaults(proposal):
    result = normalize_weights(proposal)

    assert result.defaulted is True
    assert result.as_percentages() == dict(DEFAULT_WEIGHT_PERCENTAGES)


def test_rescales_to_one_hundred_and_appends_missing_factors():
    result = normalize_weights([{"id": "foot_traffic", "value": 3}, {"id": "crime", "value": 1}])

    values = result.as_percentages()
    assert result.defaulted is False
    assert values["foot_traffic"] == 75
    assert values["crime"] == 25
    assert set(values) == set(FACTOR_IDS)
    assert [option.id for option in result.weights[:2]] == ["foot_traffic", "crime"]
    assert values["poi"] == 0


def test_residual_goes_to_first_largest_entry():
    proposal = [{"id": factor_id, "value": 1} for factor_id in ("foot_traffic", "crime", "poi", "demographic", "flood_risk", "rent_score")]

    values = normalize_weights(proposal).as_percentages()

    assert values["foot_traffic"] == pytest.approx(16.5)
    for factor_id in ("crime", "poi", "demographic", "flood_risk", "rent_score"):
        assert values[factor_id] == pytest.approx(16.7)
    assert sum(values.values()) == pytest.approx(100, abs=0.1)


@pytest.mark.parametrize(
    "proposal",
    [
        [{"id": "crime", "value": 1}, {"id": "poi", "value": 1}, {"id": "flood_risk", "value": 1}],
        [{"id": "foot_traffic", "value": 7}, {"id": "demographic", "value": 13}, {"id": "rent_score", "value": 2.5}],
        [{"id": "foot_traffic", "value": 999}, {"id": "poi", "value": 0.001}],
    ],
)
def test_positive_proposals_sum_to_one_hundred(proposal):
    values = normalize_weights(proposal).as_percentages()

    assert len(values) == 6
    assert sum(values.values()) == pytest.approx(100, abs=0.1)


def test_unknown_ids_are_dropped_and_first_duplicate_wins():
    result = normalize_weights([
        {"id": "crime", "value": 30},
        {"id": "parking", "value": 500},
        {"id": "crime", "value": 90},
        {"id": "poi", "value": 70},
    ])

    values = result.as_percentages()
    assert "parking" not in values
    assert values["crime"] == 30
    assert values["poi"] == 70


def test_entries_carry_display_metadata():
    crime = next(option for option in normalize_weights([{"id": "crime", "value": 10}]).weights if option.id == "crime")

    assert crime.label == "Safety"
    assert crime.color == "#EA4335"
    assert crime.icon


def test_rounding_is_half_up():
    assert round_half_up(12.25) == 12.3
    assert round_half_up(0.125, 2) == 0.13

    values = normalize_weights([{"id": "crime", "value": 12.25}, {"id": "poi", "value": 87.75}]).as_percentages()
    assert values["crime"] == 12.3


def test_normalizing_canonical_weights_is_idempotent():
    first = normalize_weights([{"id": "crime", "value": 2}, {"id": "poi", "value": 1}, {"id": "demographic", "value": 4}])
    second = normalize_weights([option.model_dump() for option in first.weights])

    for factor_id, value in first.as_percentages().items():
        assert second.as_percentages()[factor_id] == pytest.approx(value, abs=0.1)


def test_weight_set_fractions():
    weight_set = normalize_weights([]).weight_set

    fractions = weight_set.as_fractions()
    assert fractions.demographic == pytest.approx(0.4)
    assert fractions.total() == pytest.approx(1.0)
    assert weight_set.total() == pytest.approx(100)


def test_demographic_weights_summing_to_one_are_kept():
    result = normalize_demographic_weights({"ethnicity": 0.5, "age": 0.2, "income": 0.2, "gender": 0.1})

    assert result.defaulted is False
    assert result.weights.ethnicity == 0.5


def test_demographic_weights_within_tolerance_are_not_rescaled():
    result = normalize_demographic_weights({"ethnicity": 0.4, "age": 0.3, "income": 0.2, "gender": 0.105})

    assert result.weights.gender == 0.105


def test_demographic_weights_are_rescaled_to_two_decimals():
    result = normalize_demographic_weights({"ethnicity": 0.5, "age": 0.5, "income": 0.5, "gender": 0.5})

    assert result.defaulted is False
    assert result.weights.model_dump() == {"ethnicity": 0.25, "age": 0.25, "income": 0.25, "gender": 0.25}


@pytest.mark.parametrize(
    "weights",
    [
        {"ethnicity": 1.5, "age": 0.3, "income": 0.2, "gender": 0.1},
        {"ethnicity": "0.4", "age": 0.3, "income": 0.2, "gender": 0.1},
        {"ethnicity": 0.4, "age": 0.3, "income": 0.2},
        {"ethnicity": 0, "age": 0, "income": 0, "gender": 0},
        None,
    ],
)
def test_invalid_demographic_weights_reset_to_defaults(weights):
    result = normalize_demographic_weights(weights)

    assert result.defaulted is True
    assert result.weights.model_dump() == {"ethnicity": 0.4, "age": 0.3, "income": 0.2, "gender": 0.1}


def test_apply_weights_merges_over_scoring_defaults():
    weights = apply_weights([{"id": "foot_traffic", "value": 50}])

    assert weights.foot_traffic == pytest.approx(0.50)
    assert weights.demographic == pytest.approx(0.25)
    assert weights.crime == pytest.approx(0.15)


def test_apply_weights_drops_malformed_entries_and_keeps_defaults():
    weights = apply_weights([
        {"id": "parking", "value": 90},
        {"id": "poi", "value": "lots"},
        {"id": "crime", "value": -5},
        {"id": "flood_risk", "value": 150},
        {"id": "rent_score", "value": 20},
    ])

    assert weights.poi == pytest.approx(0.05)
    assert weights.crime == pytest.approx(0.15)
    assert weights.flood_risk == pytest.approx(0.10)
    assert weights.rent_score == pytest.approx(0.20)
    assert weights.foot_traffic == pytest.approx(0.35)


def test_redistribute_demographic_weight_proportionally():
    weights = WeightSet(foot_traffic=0.35, demographic=0.25, crime=0.15, flood_risk=0.10, rent_score=0.10, poi=0.05)

    redistributed = redistribute_demographic_weight(weights)

    assert redistributed.demographic == 0
    assert redistributed.foot_traffic == pytest.approx(0.35 + 0.35 / 0.75 * 0.25)
    assert redistributed.total() == pytest.approx(1.0)
    assert weights.demographic == 0.25
