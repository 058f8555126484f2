"""Semantic profiling of catalog attributes."""

from ._types import AttributeProfile, ValueRange, AttributeType
from ._types import PreferenceDirection, ValueScale
from ._profiler import profile_attribute, profile_attributes, calculate_statistics
from ._profiler import parse_one_hot_name

__all__ = [
    "AttributeProfile",
    "ValueRange",
    "AttributeType",
    "PreferenceDirection",
    "ValueScale",
    "profile_attribute",
    "profile_attributes",
    "calculate_statistics",
    "parse_one_hot_name",
]
