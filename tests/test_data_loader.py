import json

import pytest

from data_loader import load_tract_tables, parse_tract_tables


def test_parse_pads_and_deduplicates_geoids():
    tables = parse_tract_tables({
        "zones": [
            {"GEOID": 6061000100, "avg_rent": 55},
            {"GEOID": "06061000100", "avg_rent": 99},
            {"GEOID": "not-a-tract"},
            "garbage",
        ],
        "ethnicity": [{"geoid": "36047000100", "total_population": 10}],
    })

    assert tables["zones"] == [{"GEOID": "06061000100", "avg_rent": 55}]
    assert tables["ethnicity"][0]["GEOID"] == "36047000100"
    assert tables["demographics"] == []
    assert tables["income"] == []


@pytest.mark.parametrize("payload", [[], {"ethnicity": []}, {"zones": {"GEOID": "1"}}])
def test_parse_rejects_malformed_snapshots(payload):
    with pytest.raises(ValueError):
        parse_tract_tables(payload)


def test_load_from_file(tmp_path):
    path = tmp_path / "tracts.json"
    path.write_text(json.dumps({"zones": [{"GEOID": "36061019500", "avg_rent": 120}]}), encoding="utf-8")

    tables = load_tract_tables(str(path))

    assert [zone["GEOID"] for zone in tables["zones"]] == ["36061019500"]


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_tract_tables(str(tmp_path / "missing.json"))


def test_load_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError):
        load_tract_tables(str(path))
