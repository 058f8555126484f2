"""Attribute profiling.

Infers what a feature means from its name and the shape of its values, so that
questions can talk about "affordability" instead of "col_3".
"""

from __future__ import annotations

from typing import List, Sequence, Iterable
import logging
import math
import re

import numpy as np

from ._types import AttributeProfile, AttributeType, PreferenceDirection
from ._types import ValueRange, ValueScale


logger = logging.getLogger(__name__)

COORDINATE_NAMES = {"lat", "latitude", "lng", "longitude", "lon", "x", "y", "z"}
NON_PREFERENCE_NAMES = {"id", "product_id", "productid", "index", "row", "rowid"}
ID_NAME_PATTERN = re.compile(r"(^id$|^id[_\s-]|[_\s-]id$|identifier)")


def parse_one_hot_name(name: str) -> tuple[str, str] | None:
    """Split an encoded ``base=value`` feature name, or return None."""
    parts = name.split("=")
    if len(parts) == 2:
        return parts[0], parts[1]
    return None


def readable(text: str) -> str:
    return text.replace("_", " ").replace("-", " ").lower()


def _is_integer(value: float) -> bool:
    return math.isfinite(value) and float(value).is_integer()


def calculate_statistics(values: Sequence[float]) -> ValueRange:
    """Min, max, mean, median, population std dev and nearest-rank quartiles."""
    if len(values) == 0:
        return ValueRange()

    arr = np.sort(np.asarray(values, dtype=float))
    n = arr.shape[0]
    if n % 2 == 0:
        median = (arr[n // 2 - 1] + arr[n // 2]) / 2
    else:
        median = arr[n // 2]

    return ValueRange(
        min=float(arr[0]),
        max=float(arr[-1]),
        mean=float(arr.mean()),
        median=float(median),
        std_dev=float(arr.std()),
        q25=float(arr[math.floor(n * 0.25)]),
        q75=float(arr[math.floor(n * 0.75)]),
    )


def determine_scale(value_range: ValueRange) -> ValueScale:
    magnitude = max(abs(value_range.max), abs(value_range.min))
    if magnitude < 10:
        return "small"
    if magnitude < 1000:
        return "medium"
    return "large"


def detect_attribute_type(
    name: str,
    value_range: ValueRange,
    unique_value_ratio: float,
    unique_values: int = 0,
    all_integers: bool = False,
) -> AttributeType:
    """Name rules first, then a numeric-shape fallback."""
    lower = name.lower().strip()
    vr = value_range

    if unique_value_ratio > 0.95 and _is_integer(vr.mean):
        if ID_NAME_PATTERN.search(lower):
            return "identifier"

    if lower in COORDINATE_NAMES:
        return "coordinate"

    if any(kw in lower for kw in ("price", "cost", "amount")):
        return "price"
    if vr.min >= 0 and vr.max <= 100000 and vr.mean > 0 and not _is_integer(vr.mean):
        if any(kw in lower for kw in ("$", "usd", "dollar")):
            return "price"

    if any(kw in lower for kw in ("rating", "review", "score")):
        return "rating"

    if any(kw in lower for kw in ("percent", "%")):
        return "percentage"
    if vr.min >= 0 and vr.max <= 100 and ("rate" in lower or "ratio" in lower):
        return "percentage"

    if any(kw in lower for kw in ("duration", "time", "delay", "wait", "ship")):
        return "duration"
    if any(kw in lower for kw in ("day", "hour", "minute", "second")):
        return "duration"

    if any(kw in lower for kw in ("width", "height", "length", "depth")):
        return "dimension"
    if "size" in lower and vr.min >= 0:
        return "dimension"

    if "weight" in lower or "mass" in lower:
        return "weight"

    if _is_integer(vr.mean) and vr.min >= 0:
        if any(kw in lower for kw in ("count", "quantity", "num", "qty")):
            return "count"

    # Long runs of distinct integers look like row identifiers
    if unique_value_ratio > 0.95 and unique_values >= 10 and all_integers:
        return "identifier"

    # Bounded, low-cardinality values look like star ratings
    if vr.min >= 0 and vr.max <= 10 and unique_value_ratio < 0.3:
        return "rating"

    return "unknown"


def determine_preference_direction(
    type_: AttributeType, name: str
) -> PreferenceDirection:
    lower = name.lower()

    if type_ == "price" or "price" in lower or "cost" in lower:
        return "lower_better"
    if type_ == "duration" or any(kw in lower for kw in ("time", "duration", "delay")):
        return "lower_better"
    if type_ == "rating" or any(kw in lower for kw in ("rating", "review", "score")):
        return "higher_better"
    if type_ in ("percentage", "count"):
        if any(kw in lower for kw in ("error", "failure", "defect", "issue")):
            return "lower_better"
        return "higher_better"
    return "neutral"


def generate_description(name: str, type_: AttributeType) -> str:
    lower = name.lower().strip()

    if type_ == "price":
        return "affordability"
    if type_ == "rating":
        return "customer ratings"
    if type_ == "duration":
        if "ship" in lower or "delivery" in lower:
            return "shipping speed"
        if "time" in lower or "wait" in lower:
            return "time efficiency"
        return "duration"
    if type_ == "percentage":
        if "discount" in lower or "sale" in lower:
            return "discount"
        return "percentage"
    if type_ == "count":
        if "feature" in lower:
            return "number of features"
        if "item" in lower:
            return "quantity"
        return "count"
    if type_ == "dimension":
        return "size" if "size" in lower else "dimensions"
    if type_ == "weight":
        return "weight"

    text = readable(name)
    return text[:1].upper() + text[1:]


def infer_unit(name: str, type_: AttributeType, value_range: ValueRange) -> str | None:
    lower = name.lower()
    max_ = value_range.max

    if type_ == "price":
        return "dollars"
    if type_ == "duration":
        if "day" in lower or max_ > 30:
            return "days"
        if "hour" in lower or max_ > 24:
            return "hours"
        if "minute" in lower:
            return "minutes"
        if "second" in lower:
            return "seconds"
        if max_ < 10:
            return "days"
        return "hours"
    if type_ == "weight":
        if "kg" in lower or max_ > 100:
            return "kilograms"
        if "lb" in lower or "pound" in lower:
            return "pounds"
        return "grams"
    if type_ == "dimension":
        if "inch" in lower:
            return "inches"
        if "cm" in lower or "centimeter" in lower:
            return "centimeters"
        if "meter" in lower:
            return "meters"
        return "units"
    if type_ == "percentage":
        return "percent"
    return None


def is_preference_relevant(
    type_: AttributeType, unique_value_ratio: float, name: str
) -> bool:
    if type_ in ("identifier", "coordinate"):
        return False
    if unique_value_ratio > 0.9 and type_ == "unknown":
        return False
    return name.lower() not in NON_PREFERENCE_NAMES


def profile_attribute(name: str, values: Iterable[float]) -> AttributeProfile:
    """Profile a single feature from its values.

    Args:
        name: The feature name. Encoded one-hot names (``base=value``) are
            profiled as categorical flags.
        values: Raw (not normalized) values. NaN and infinite values are
            ignored.

    Returns:
        The feature's profile. A feature with no valid values gets a neutral,
        non preference-relevant profile.
    """
    valid = [float(v) for v in values if v is not None and math.isfinite(float(v))]

    if not valid:
        logger.debug(f"No valid values for '{name}'. Using a degenerate profile.")
        return AttributeProfile(
            name=name,
            type="unknown",
            is_preference_relevant=False,
            value_range=ValueRange(),
            scale="small",
            direction="neutral",
            description=name,
            unit=None,
            categorical=False,
            unique_values=0,
            unique_value_ratio=0.0,
        )

    value_range = calculate_statistics(valid)
    scale = determine_scale(value_range)
    unique_values = len(set(valid))
    unique_value_ratio = unique_values / len(valid)
    categorical = unique_value_ratio < 0.2 and unique_values < 20

    all_integers = all(v.is_integer() for v in valid)
    type_ = detect_attribute_type(
        name, value_range, unique_value_ratio, unique_values, all_integers
    )
    direction = determine_preference_direction(type_, name)
    description = generate_description(name, type_)

    if (one_hot := parse_one_hot_name(name)) is not None:
        base, value = one_hot
        categorical = True
        type_ = "unknown"
        direction = "neutral"
        description = f"{readable(base)} is {readable(value)}"

    return AttributeProfile(
        name=name,
        type=type_,
        is_preference_relevant=is_preference_relevant(type_, unique_value_ratio, name),
        value_range=value_range,
        scale=scale,
        direction=direction,
        description=description,
        unit=infer_unit(name, type_, value_range),
        categorical=categorical,
        unique_values=unique_values,
        unique_value_ratio=unique_value_ratio,
    )


def profile_attributes(
    feature_names: Sequence[str], raw_matrix: np.ndarray
) -> List[AttributeProfile]:
    """Profile every feature of an encoded catalog.

    Args:
        feature_names: Names of the matrix columns.
        raw_matrix: ``(n_products, n_features)`` array of raw values.

    Returns:
        One profile per feature, in ``feature_names`` order.
    """
    if len(feature_names) == 0 or raw_matrix.shape[0] == 0:
        return []

    profiles = [
        profile_attribute(name, raw_matrix[:, idx])
        for idx, name in enumerate(feature_names)
    ]
    logger.debug(
        "Profiled attributes: "
        + ", ".join(f"{p.name}={p.type}/{p.direction}" for p in profiles)
    )
    return profiles
