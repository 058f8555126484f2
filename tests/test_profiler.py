"""Tests for attribute profiling."""

import math

import numpy as np
import pytest

from preference_tree.profiling import calculate_statistics, parse_one_hot_name
from preference_tree.profiling import profile_attribute, profile_attributes


def test_statistics_use_nearest_rank_quantiles():
    vr = calculate_statistics([4, 1, 3, 2])
    assert vr.min == 1
    assert vr.max == 4
    assert vr.mean == 2.5
    assert vr.median == 2.5
    assert vr.q25 == 2
    assert vr.q75 == 4
    assert vr.std_dev == pytest.approx(math.sqrt(1.25))


def test_statistics_odd_length_median():
    vr = calculate_statistics([5, 1, 9])
    assert vr.median == 5
    assert vr.q25 == 1
    assert vr.q75 == 9


@pytest.mark.parametrize(
    "values",
    [
        [1.0],
        [3.0, 3.0, 3.0],
        [10, 12, 12, 10],
        [0.5, 100.0, -20.0, 7.0, 7.0, 8.25],
        list(range(37)),
    ],
)
def test_quantiles_are_ordered(values):
    vr = calculate_statistics(values)
    assert vr.min <= vr.q25 <= vr.median <= vr.q75 <= vr.max


def test_empty_statistics_are_zero():
    vr = calculate_statistics([])
    assert (vr.min, vr.max, vr.mean, vr.q25, vr.q75) == (0, 0, 0, 0, 0)


def test_price_profile():
    profile = profile_attribute("price", [10, 20, 30])
    assert profile.type == "price"
    assert profile.direction == "lower_better"
    assert profile.unit == "dollars"
    assert profile.description == "affordability"
    assert profile.is_preference_relevant
    assert profile.scale == "medium"


def test_rating_profile():
    profile = profile_attribute("rating", [4.5, 4.0, 4.2])
    assert profile.type == "rating"
    assert profile.direction == "higher_better"
    assert profile.scale == "small"


def test_shipping_profile():
    profile = profile_attribute("shipping_days", [1, 2, 3, 5])
    assert profile.type == "duration"
    assert profile.direction == "lower_better"
    assert profile.description == "shipping speed"
    assert profile.unit == "days"


def test_error_rate_is_lower_better_percentage():
    profile = profile_attribute("error_rate", [1, 2, 5])
    assert profile.type == "percentage"
    assert profile.direction == "lower_better"


def test_one_hot_profile_is_categorical():
    profile = profile_attribute("color=dark_red", [0, 1, 0, 1])
    assert profile.categorical
    assert profile.type == "unknown"
    assert profile.direction == "neutral"
    assert profile.description == "color is dark red"
    assert profile.is_preference_relevant


def test_sequential_integers_are_identifiers():
    profile = profile_attribute("product_id", list(range(1, 21)))
    assert profile.type == "identifier"
    assert not profile.is_preference_relevant


def test_coordinates_are_not_relevant():
    profile = profile_attribute("lat", [40.1, 40.2, 41.5])
    assert profile.type == "coordinate"
    assert not profile.is_preference_relevant


def test_no_valid_values_gives_degenerate_profile():
    profile = profile_attribute("price", [float("nan"), float("inf")])
    assert profile.type == "unknown"
    assert profile.direction == "neutral"
    assert not profile.is_preference_relevant
    assert profile.unique_values == 0


def test_invalid_values_are_dropped():
    profile = profile_attribute("price", [10, float("nan"), 20])
    assert profile.value_range.max == 20
    assert profile.unique_values == 2


def test_profile_attributes_follows_feature_order():
    matrix = np.array([[10.0, 4.5], [12.0, 4.0], [12.0, 4.2], [10.0, 4.5]])
    profiles = profile_attributes(["price", "rating"], matrix)
    assert [p.name for p in profiles] == ["price", "rating"]
    assert profiles[0].type == "price"
    assert profiles[1].type == "rating"


def test_profile_round_trip():
    profile = profile_attribute("price", [10, 20, 30])
    assert type(profile).from_dict(profile.to_dict()) == profile


def test_parse_one_hot_name():
    assert parse_one_hot_name("color=red") == ("color", "red")
    assert parse_one_hot_name("price") is None
