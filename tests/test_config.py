import argparse

import pytest

from cli import parse_bbox, to_feature_collection
from planes.config import PipelineConfig, get_config, validate_config
from planes.parking.legend import LEGEND, get_color
from planes.parking.conditions import ConditionCategory
from planes.parking.render_state import RenderState

from conftest import MONDAY_MORNING


def test_default_config_is_valid():
    validate_config(get_config())


def test_invalid_split_zoom():
    config = PipelineConfig()
    config.lanes.split_zoom = 30
    with pytest.raises(ValueError, match="split_zoom"):
        validate_config(config)


def test_overlapping_road_classes():
    config = PipelineConfig()
    config.lanes.minor_highways.add("primary")
    with pytest.raises(ValueError, match="both major and minor"):
        validate_config(config)


def test_legend_covers_every_known_category():
    categories = {entry.category for entry in LEGEND}
    assert categories == set(ConditionCategory) - {ConditionCategory.UNKNOWN}
    assert get_color(ConditionCategory.UNKNOWN) == get_config().lanes.unknown_color


def test_parse_bbox():
    assert parse_bbox("52.5,13.4,52.51,13.42") == (52.5, 13.4, 52.51, 13.42)
    with pytest.raises(argparse.ArgumentTypeError):
        parse_bbox("52.51,13.4,52.5,13.42")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_bbox("52.5,13.4")


def test_feature_collection(osm_data):
    state = RenderState(zoom=17, instant=MONDAY_MORNING)
    state.merge(osm_data)
    collection = to_feature_collection(state)
    ids = {feature["id"] for feature in collection["features"]}
    assert ids == {"left100", "right100", "way200", "node500"}
    lane = next(f for f in collection["features"] if f["id"] == "left100")
    assert lane["geometry"]["type"] == "LineString"
    assert lane["properties"]["category"] == "free"
    assert lane["properties"]["side"] == "left"
