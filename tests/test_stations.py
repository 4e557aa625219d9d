import json

import pytest

from shopfloor import InvalidStation, StationRegistry


def test_default_pipeline_order(registry):
    codes = [station.code for station in registry.stations()]
    assert codes == ["wallsaw", "cnc", "banding", "packaging", "complete"]
    assert [station.ordinal for station in registry.stations()] == [0, 1, 2, 3, 4]
    assert registry.first.code == "wallsaw"
    assert registry.terminal.code == "complete"


def test_lookup_by_code_or_display_name(registry):
    assert registry.get("CNC").code == "cnc"
    assert registry.get("Wall Saw").code == "wallsaw"
    assert registry.get("  edge banding ").code == "banding"
    assert "packaging" in registry
    assert "sanding" not in registry


def test_unknown_station_raises(registry):
    with pytest.raises(InvalidStation) as excinfo:
        registry.ordinal_of("sanding")
    assert excinfo.value.station == "sanding"
    with pytest.raises(InvalidStation):
        registry.get(42)


def test_next_station_and_terminal(registry):
    assert registry.next_station("wallsaw").code == "cnc"
    assert registry.next_station("packaging").code == "complete"
    assert registry.next_station("complete") is None
    assert registry.is_terminal("complete")
    assert not registry.is_terminal("packaging")


def test_status_labels_come_from_configuration(registry):
    assert registry.status_label("wallsaw") == "Cutting"
    assert registry.status_label("cnc") == "Drilling"
    assert registry.status_label("packaging") == "Assembly"

    custom = StationRegistry.from_config(
        [
            {"code": "saw", "name": "Panel Saw", "status": "Sawing"},
            {"code": "done"},
        ]
    )
    assert custom.status_label("Panel Saw") == "Sawing"
    assert custom.status_label("done") == "done"


def test_invalid_configuration_is_rejected():
    with pytest.raises(ValueError):
        StationRegistry.from_config([])
    with pytest.raises(ValueError):
        StationRegistry.from_config([{"code": "cnc"}, {"code": "CNC"}])


def test_registry_from_file(tmp_path):
    path = tmp_path / "stations.json"
    path.write_text(
        json.dumps([{"code": "cut", "status": "Cutting"}, {"code": "ship", "status": "Shipped"}]),
        encoding="utf-8",
    )
    loaded = StationRegistry.from_file(path)
    assert [station.code for station in loaded] == ["cut", "ship"]
    assert loaded.is_terminal("ship")
