"""Question generation.

Turns an oblique split into one natural-language question. The output only
depends on the node, the tree's bounds, the profiles, the asked attributes and
the depth, so a question rendered while previewing a tree and the one stored
when the customer answers it are the same question.
"""

from __future__ import annotations

from typing import Any, Collection, Dict, List, Literal, Sequence, Tuple
from dataclasses import dataclass, field, asdict
import hashlib
import logging
import math

import numpy as np
import orjson

from preference_tree.core._exceptions import InvalidNodeKind
from preference_tree.oblique._types import InternalNode, Normalization, TreeNode
from preference_tree.profiling._profiler import parse_one_hot_name, readable
from preference_tree.profiling._types import AttributeProfile
from . import _templates as templates
from ._split_analyzer import LEFT_PLACEHOLDER, RIGHT_PLACEHOLDER
from ._split_analyzer import analyze_split, describe_left_branch
from ._split_analyzer import describe_right_branch


logger = logging.getLogger(__name__)

MAX_FEATURES = 3
ONE_HOT_BOOST = 3.0
SECONDARY_NUMERIC_FACTOR = 0.6
ASKED_PENALTY = 0.5
DOMINANT_IMPORTANCE = 0.6
AXIS_WEIGHT_EPSILON = 1e-6

NON_PREFERENCE_NAMES = {
    "id",
    "product_id",
    "productid",
    "lat",
    "latitude",
    "lng",
    "longitude",
    "lon",
    "x",
    "y",
    "z",
    "index",
    "row",
    "rowid",
}

ATTRIBUTE_DESCRIPTIONS: List[Tuple[Tuple[str, ...], str]] = [
    (("price", "cost"), "affordability"),
    (("rating", "review"), "customer ratings"),
    (("ship", "delivery"), "shipping speed"),
    (("eco", "sustain"), "eco-friendliness"),
    (("warranty", "guarantee"), "warranty coverage"),
    (("popular", "trend"), "popularity"),
    (("durab",), "durability"),
    (("qual",), "quality"),
    (("weight",), "weight"),
    (("size", "dimension"), "size"),
    (("color", "colour"), "color options"),
    (("brand",), "brand reputation"),
    (("material",), "material quality"),
    (("feature", "function"), "features"),
    (("battery", "power"), "battery life"),
    (("speed", "performance"), "performance"),
    (("storage", "capacity"), "storage capacity"),
    (("screen", "display"), "display quality"),
    (("camera",), "camera quality"),
    (("audio", "sound"), "audio quality"),
    (("duration", "time", "length"), "time efficiency"),
]
"Name keywords to customer-facing descriptions, used when no profile exists."

LOWER_BETTER_KEYWORDS = ("price", "cost", "ship", "time", "duration", "delay")


@dataclass(slots=True)
class Question:
    """A question shown to the customer."""

    id: str = field(
        metadata={"description": "Stable id derived from the split parameters."}
    )
    text: str
    type: Literal["hyperplane", "attribute"] = "hyperplane"
    weights: List[float] = field(default_factory=list)
    feature_names: List[str] = field(default_factory=list)
    threshold: float | None = None
    attribute_a: str | None = None
    attribute_b: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> Question:
        return cls(**d)


@dataclass(slots=True)
class _FeatureWeight:
    name: str
    weight: float
    score: float
    profile: AttributeProfile | None = None


def is_meaningful(name: str, profiles: Dict[str, AttributeProfile] | None) -> bool:
    if profiles is not None and name in profiles:
        return profiles[name].is_preference_relevant
    return name.lower().strip() not in NON_PREFERENCE_NAMES


def is_secondary_numeric(name: str) -> bool:
    lower = name.lower()
    return any(kw in lower for kw in ("rating", "score", "price"))


def describe_attribute(
    name: str, profiles: Dict[str, AttributeProfile] | None = None
) -> str:
    """Customer-facing description of a feature."""
    profile = (profiles or {}).get(name)
    if profile is not None and profile.description:
        return profile.description

    if (one_hot := parse_one_hot_name(name)) is not None:
        base, value = one_hot
        return f"{readable(base)} is {readable(value)}"

    lower = name.lower().strip()
    for keywords, description in ATTRIBUTE_DESCRIPTIONS:
        if any(kw in lower for kw in keywords):
            return description

    text = readable(name)
    return text[:1].upper() + text[1:]


def is_lower_better(
    name: str, profiles: Dict[str, AttributeProfile] | None = None
) -> bool:
    profile = (profiles or {}).get(name)
    if profile is not None:
        return profile.direction == "lower_better"
    lower = name.lower()
    return any(kw in lower for kw in LOWER_BETTER_KEYWORDS)


def _number_text(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def format_value(value: float, profile: AttributeProfile | None = None) -> str:
    """Round by the attribute's scale and attach its unit."""
    if profile is None:
        return f"{value:.2f}"

    if profile.scale == "small":
        rounded = round(value, 2)
    elif profile.scale == "medium":
        rounded = round(value, 1)
    else:
        rounded = float(round(value))

    if profile.unit:
        if profile.type == "price":
            return f"${rounded:.2f}"
        return f"{_number_text(rounded)} {profile.unit}"
    return _number_text(rounded)


def _with_unit(value: float, profile: AttributeProfile) -> str:
    text = format_value(value, profile)
    return text if profile.unit else f"{text} units"


def value_range_description(profile: AttributeProfile, is_low: bool) -> str:
    """Qualitative phrase for the low or high end of an attribute's values."""
    vr = profile.value_range

    if profile.type == "price":
        if is_low:
            cutoff = format_value(min(vr.q25, vr.max * 0.3), profile)
            return f"budget-friendly (under {cutoff})"
        cutoff = format_value(max(vr.q75, vr.max * 0.7), profile)
        return f"premium (over {cutoff})"

    if profile.type == "rating":
        if is_low:
            return (
                f"moderate ratings ({format_value(vr.q25, profile)}"
                f"-{format_value(vr.median, profile)})"
            )
        return f"high ratings ({format_value(vr.q75, profile)}+)"

    if profile.type in ("duration", "count"):
        if profile.direction == "lower_better":
            if is_low:
                return f"faster (under {_with_unit(vr.q25, profile)})"
            return f"slower (over {_with_unit(vr.q75, profile)})"
        if is_low:
            return f"fewer (under {_with_unit(vr.q25, profile)})"
        return f"more (over {_with_unit(vr.q75, profile)})"

    if is_low:
        return f"lower {profile.description} (around {format_value(vr.q25, profile)})"
    return f"higher {profile.description} (around {format_value(vr.q75, profile)})"


def rank_features(
    node: InternalNode,
    profiles: Dict[str, AttributeProfile] | None,
    asked_attributes: Collection[str],
) -> List[_FeatureWeight]:
    """Features ordered by how well they can carry the question."""
    ranked: List[_FeatureWeight] = []
    for name, weight in zip(node.feature_names, node.weights):
        if not is_meaningful(name, profiles):
            continue
        score = abs(weight)
        if parse_one_hot_name(name) is not None:
            score *= ONE_HOT_BOOST
        elif is_secondary_numeric(name):
            score *= SECONDARY_NUMERIC_FACTOR
        if name in asked_attributes:
            score *= ASKED_PENALTY
        ranked.append(_FeatureWeight(name, weight, score, (profiles or {}).get(name)))

    if not ranked:
        ranked = [
            _FeatureWeight(name, weight, abs(weight), (profiles or {}).get(name))
            for name, weight in zip(node.feature_names, node.weights)
        ]

    ranked.sort(key=lambda f: f.score, reverse=True)
    return ranked


def relative_importance(
    node: InternalNode, profiles: Dict[str, AttributeProfile] | None
) -> List[_FeatureWeight]:
    """Share of the total absolute weight per relevant feature, highest first."""
    total = sum(abs(w) for w in node.weights)
    if total == 0:
        return []
    ranked: List[_FeatureWeight] = []
    for name, weight in zip(node.feature_names, node.weights):
        profile = (profiles or {}).get(name)
        if profile is not None and not profile.is_preference_relevant:
            continue
        importance = abs(weight) / total
        if importance > 0:
            ranked.append(_FeatureWeight(name, weight, importance, profile))
    ranked.sort(key=lambda f: f.score, reverse=True)
    return ranked


def _split_descriptions(
    node: InternalNode,
    profiles: Sequence[AttributeProfile] | None,
    normalization: Normalization,
) -> Tuple[str, str] | None:
    try:
        analysis = analyze_split(node, normalization)
        if analysis is None or not analysis.distinguishing_attributes:
            return None
        left = describe_left_branch(analysis, profiles)
        right = describe_right_branch(analysis, profiles)
    except (ValueError, IndexError, TypeError) as e:
        logger.warning(f"Split analysis failed, using value ranges instead: {e}")
        return None
    if left == LEFT_PLACEHOLDER or right == RIGHT_PLACEHOLDER:
        return None
    return left, right


def _axis_descriptions(
    node: InternalNode,
    profiles: Dict[str, AttributeProfile] | None,
    normalization: Normalization,
) -> Tuple[str, str] | None:
    nonzero = [
        (i, w) for i, w in enumerate(node.weights) if abs(w) > AXIS_WEIGHT_EPSILON
    ]
    if len(nonzero) != 1:
        return None

    idx, w = nonzero[0]
    name = node.feature_names[idx]
    # Indicator features read better as "is" / "is not"
    if parse_one_hot_name(name) is not None:
        return None
    lo, hi = normalization.mins[idx], normalization.maxs[idx]
    if not (math.isfinite(lo) and math.isfinite(hi)):
        return None

    cutoff = normalization.denormalize(idx, node.threshold / w)
    if not math.isfinite(cutoff):
        return None
    profile = (profiles or {}).get(name)
    formatted = format_value(cutoff, profile) if profile else f"{cutoff:.2f}"
    description = describe_attribute(name, profiles)
    if w < 0:
        # Dividing by a negative weight flips the inequality: left holds high values
        return (
            f"{description} at or above {formatted}",
            f"{description} below {formatted}",
        )
    return f"{description} at or below {formatted}", f"{description} above {formatted}"


def _feature_descriptions(
    features: Sequence[_FeatureWeight],
    profiles: Dict[str, AttributeProfile] | None,
) -> Tuple[str, str]:
    left_features: List[str] = []
    right_features: List[str] = []
    left_ranges: List[str] = []
    right_ranges: List[str] = []

    for f in features:
        if f.weight == 0:
            continue
        # Positive weight: higher values go right
        positive = f.weight > 0
        if (one_hot := parse_one_hot_name(f.name)) is not None:
            base, value = one_hot
            present, absent = f"{base} is {value}", f"{base} is not {value}"
            left_features.append(absent if positive else present)
            right_features.append(present if positive else absent)
            continue

        if f.profile is not None:
            left_ranges.append(value_range_description(f.profile, is_low=positive))
            right_ranges.append(value_range_description(f.profile, is_low=not positive))
            continue

        description = describe_attribute(f.name, profiles)
        low, high = (
            (f"more {description}", f"less {description}")
            if is_lower_better(f.name, profiles)
            else (f"less {description}", f"more {description}")
        )
        left_features.append(low if positive else high)
        right_features.append(high if positive else low)

    if left_ranges or right_ranges:
        left = " and ".join(left_ranges or left_features)
        right = " and ".join(right_ranges or right_features)
    else:
        left = " and ".join(left_features)
        right = " and ".join(right_features)
    return left, right


def _rotate(
    options: Sequence[str], threshold: float, rng: np.random.Generator | None
) -> str:
    if rng is not None:
        return options[int(rng.integers(len(options)))]
    return options[abs(math.floor(threshold * 1000)) % len(options)]


def question_id(threshold: float, weights: Sequence[float]) -> str:
    """Stable id of a split, identical for identical threshold and weights."""
    payload = orjson.dumps([float(threshold), [float(w) for w in weights]])
    return "q_" + hashlib.blake2b(payload, digest_size=8).hexdigest()


def generate_question(
    node: TreeNode,
    normalization: Normalization,
    profiles: Sequence[AttributeProfile] | None = None,
    asked_attributes: Collection[str] | None = None,
    depth: int = 0,
    *,
    rng: np.random.Generator | None = None,
) -> Question:
    """Generate the question asked at an internal node of an oblique tree.

    Branch descriptions come, in order of preference, from the products observed
    on each side of the split, from the real cutoff of an axis-aligned split,
    from the profiled value ranges, and finally from plain "more/less" phrasing.

    Args:
        node: An internal node.
        normalization: Bounds of the tree the node belongs to, as stored on
            its ``ObliqueTree``. Observed values and axis cutoffs are reported
            in raw units with them.
        profiles: Attribute profiles of the tree's features, if any.
        asked_attributes: Features already asked about in this session. They
            are deprioritized, not excluded.
        depth: Depth of the node, 0 for the root. Shapes the framing when the
            question is built from observed products.
        rng: Optional generator for choosing among equivalent templates. By
            default the choice is derived from the threshold.

    Returns:
        The question.

    Raises:
        InvalidNodeKind: If ``node`` is a leaf.
    """
    if not isinstance(node, InternalNode):
        raise InvalidNodeKind("Cannot generate a question from a leaf node")

    by_name = {p.name: p for p in profiles} if profiles is not None else None
    asked = set(asked_attributes or ())
    top_features = rank_features(node, by_name, asked)[:MAX_FEATURES]
    top_important = relative_importance(node, by_name)[:MAX_FEATURES]

    from_analysis = _split_descriptions(node, profiles, normalization)
    if from_analysis is not None:
        left, right = from_analysis
    else:
        left, right = _axis_descriptions(node, by_name, normalization) or (
            _feature_descriptions(top_features, by_name)
        )

    if not left or not right:
        features = ", ".join(describe_attribute(f.name, by_name) for f in top_features)
        text = templates.FEATURE_IMPORTANCE_TEMPLATE.format(features=features)
    elif from_analysis is not None:
        if depth <= 2:
            template = templates.BROAD_SPLIT_TEMPLATE
        elif depth >= 4:
            template = templates.NARROWED_SPLIT_TEMPLATE
        else:
            template = templates.NEUTRAL_SPLIT_TEMPLATE
        text = template.format(left=left, right=right)
    else:
        text = _template_for(top_important, by_name, node.threshold, rng).format(
            left=left, right=right
        )

    return Question(
        id=question_id(node.threshold, node.weights),
        text=text,
        type="hyperplane",
        weights=list(node.weights),
        feature_names=list(node.feature_names),
        threshold=node.threshold,
    )


def _template_for(
    top_important: Sequence[_FeatureWeight],
    profiles: Dict[str, AttributeProfile] | None,
    threshold: float,
    rng: np.random.Generator | None,
) -> str:
    primary = top_important[0] if top_important else None
    primary_type = primary.profile.type if primary and primary.profile else None

    if profiles is not None and primary_type is not None:
        if primary_type in templates.TYPE_TEMPLATES:
            return templates.TYPE_TEMPLATES[primary_type]
        if len(top_important) <= 1:
            return _rotate(templates.SINGLE_ATTRIBUTE_TEMPLATES, threshold, rng)
        if top_important[0].score > DOMINANT_IMPORTANCE:
            return templates.DOMINANT_ATTRIBUTE_TEMPLATE
        return templates.TRADEOFF_TEMPLATE

    if len(top_important) <= 1:
        return _rotate(templates.SINGLE_ATTRIBUTE_TEMPLATES, threshold, rng)
    return _rotate(templates.MULTI_ATTRIBUTE_TEMPLATES, threshold, rng)


def generate_attribute_question(
    attribute_a: str,
    attribute_b: str,
    profiles: Sequence[AttributeProfile] | None = None,
    rng: np.random.Generator | None = None,
) -> Question:
    """A direct "which matters more" question between two attributes."""
    by_name = {p.name: p for p in profiles} if profiles is not None else None
    a = describe_attribute(attribute_a, by_name)
    b = describe_attribute(attribute_b, by_name)

    options = templates.ATTRIBUTE_COMPARISON_TEMPLATES
    if rng is not None:
        index = int(rng.integers(len(options)))
    else:
        digest = hashlib.blake2b(
            f"{attribute_a}|{attribute_b}".encode("utf-8"), digest_size=4
        ).digest()
        index = int.from_bytes(digest, "big") % len(options)

    return Question(
        id=f"attr_{attribute_a}_{attribute_b}",
        text=options[index].format(a=a, b=b),
        type="attribute",
        attribute_a=attribute_a,
        attribute_b=attribute_b,
    )
