"""Split analysis.

Looks at the products actually routed to each side of an oblique split and
reports which attributes differ between the two sides.
"""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple
from dataclasses import dataclass, field
import logging

import numpy as np

from preference_tree.oblique._types import InternalNode, LeafNode, Normalization
from preference_tree.oblique._types import ProductVector, TreeNode
from preference_tree.profiling._types import AttributeProfile


logger = logging.getLogger(__name__)

DISTINGUISHING_THRESHOLD_PERCENT = 5.0
MAX_DESCRIBED_ATTRIBUTES = 3

LEFT_PLACEHOLDER = "one set of products"
RIGHT_PLACEHOLDER = "another set of products"


@dataclass(slots=True)
class BranchStatistics:
    product_count: int
    attribute_averages: Dict[str, float] = field(default_factory=dict)
    attribute_medians: Dict[str, float] = field(default_factory=dict)
    attribute_ranges: Dict[str, Tuple[float, float]] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class DistinguishingAttribute:
    attribute_name: str
    left_value: float
    right_value: float
    difference: float
    difference_percent: float


@dataclass(slots=True)
class SplitAnalysis:
    """What separates the two branches of a split."""

    left_stats: BranchStatistics
    right_stats: BranchStatistics
    distinguishing_attributes: List[DistinguishingAttribute] = field(
        default_factory=list,
        metadata={
            "description": "Attributes whose branch averages differ by more than "
            "5%, most distinguishing first."
        },
    )
    product_count_difference: int = 0


def collect_products(node: TreeNode) -> List[ProductVector]:
    """All products under ``node``, left to right."""
    products: List[ProductVector] = []
    stack: List[TreeNode] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, LeafNode):
            products.extend(current.products)
        else:
            stack.append(current.right)
            stack.append(current.left)
    return products


def branch_statistics(
    products: Sequence[ProductVector],
    feature_names: Sequence[str],
    normalization: Normalization,
) -> BranchStatistics:
    """Average, median and range of every feature over ``products``, in raw units."""
    stats = BranchStatistics(product_count=len(products))
    if not products:
        return stats

    matrix = np.asarray([p.values for p in products], dtype=float)
    mins = np.asarray(normalization.mins, dtype=float)
    maxs = np.asarray(normalization.maxs, dtype=float)
    matrix = mins + matrix * (maxs - mins)

    for idx, name in enumerate(feature_names):
        column = matrix[:, idx]
        column = np.sort(column[np.isfinite(column)])
        if column.shape[0] == 0:
            continue
        stats.attribute_averages[name] = float(column.mean())
        stats.attribute_medians[name] = float(np.median(column))
        stats.attribute_ranges[name] = (float(column[0]), float(column[-1]))
    return stats


def analyze_split(
    node: TreeNode, normalization: Normalization
) -> SplitAnalysis | None:
    """Compare the products on either side of an internal node.

    Args:
        node: The node to analyze.
        normalization: Bounds of the tree the node belongs to. Statistics are
            reported in raw units.

    Returns:
        The analysis, or None for a leaf, an empty branch or fewer than two
        products.
    """
    if not isinstance(node, InternalNode):
        return None

    left_products = collect_products(node.left)
    right_products = collect_products(node.right)
    if not left_products or not right_products:
        return None
    if len(left_products) + len(right_products) < 2:
        return None

    left = branch_statistics(left_products, node.feature_names, normalization)
    right = branch_statistics(right_products, node.feature_names, normalization)

    distinguishing: List[DistinguishingAttribute] = []
    for name in node.feature_names:
        if name not in left.attribute_averages or name not in right.attribute_averages:
            continue
        left_avg = left.attribute_averages[name]
        right_avg = right.attribute_averages[name]
        difference = abs(right_avg - left_avg)
        center = (left_avg + right_avg) / 2
        percent = difference / abs(center) * 100 if center != 0 else 0.0
        if percent > DISTINGUISHING_THRESHOLD_PERCENT:
            distinguishing.append(
                DistinguishingAttribute(name, left_avg, right_avg, difference, percent)
            )

    distinguishing.sort(key=lambda a: a.difference_percent, reverse=True)
    logger.debug(
        f"Split analysis: {len(left_products)} left / {len(right_products)} right, "
        f"{len(distinguishing)} distinguishing attributes"
    )
    return SplitAnalysis(
        left_stats=left,
        right_stats=right,
        distinguishing_attributes=distinguishing,
        product_count_difference=abs(left.product_count - right.product_count),
    )


def format_observed_value(value: float, profile: AttributeProfile) -> str:
    if profile.type == "price":
        return f"${value:.2f}"
    if profile.unit:
        return f"{value:.{1 if profile.scale == 'small' else 0}f} {profile.unit}"
    return f"{value:.{2 if profile.scale == 'small' else 1}f}"


def _describe(
    analysis: SplitAnalysis,
    profiles: Sequence[AttributeProfile] | None,
    side: str,
) -> List[str]:
    by_name = {p.name: p for p in profiles or []}
    descriptions: List[str] = []

    for attr in analysis.distinguishing_attributes[:MAX_DESCRIBED_ATTRIBUTES]:
        this, other = (
            (attr.left_value, attr.right_value)
            if side == "left"
            else (attr.right_value, attr.left_value)
        )
        higher = this > other
        profile = by_name.get(attr.attribute_name)

        if profile is None:
            direction = "higher" if higher else "lower"
            descriptions.append(f"{direction} {attr.attribute_name} ({this:.2f})")
            continue

        value = format_observed_value(this, profile)
        if profile.type == "price":
            label = "premium" if higher else "budget-friendly"
            descriptions.append(f"{label} (around {value})")
        elif profile.type == "rating":
            descriptions.append(f"ratings around {value}")
        elif profile.type == "duration":
            label = "slower" if higher else "faster"
            descriptions.append(f"{label} (around {value})")
        else:
            direction = "higher" if higher else "lower"
            descriptions.append(f"{direction} {profile.description} (around {value})")

    return descriptions


def describe_left_branch(
    analysis: SplitAnalysis, profiles: Sequence[AttributeProfile] | None = None
) -> str:
    """Describe the left branch by its top distinguishing attributes."""
    return " and ".join(_describe(analysis, profiles, "left")) or LEFT_PLACEHOLDER


def describe_right_branch(
    analysis: SplitAnalysis, profiles: Sequence[AttributeProfile] | None = None
) -> str:
    """Describe the right branch by its top distinguishing attributes."""
    return " and ".join(_describe(analysis, profiles, "right")) or RIGHT_PLACEHOLDER
