"""Shared catalogs for the preference tree tests."""

from typing import List, Tuple

import pytest

from preference_tree.oblique import InternalNode, LeafNode, Normalization
from preference_tree.oblique import ProductVector
from preference_tree.profiling import AttributeProfile, profile_attribute


Catalog = Tuple[List[str], List[List[str]]]


@pytest.fixture
def small_catalog() -> Catalog:
    headers = ["id", "price", "rating"]
    rows = [
        ["p1", "10", "4.5"],
        ["p2", "12", "4.0"],
        ["p3", "12", "4.2"],
        ["p4", "10", "4.5"],
    ]
    return headers, rows


@pytest.fixture
def split_catalog() -> Catalog:
    """24 products: cheap ones rate 1, expensive ones rate 5."""
    headers = ["sku", "category", "price", "rating"]
    rows = [
        [
            f"SKU-{i:03d}",
            "a" if i % 2 == 0 else "b",
            str(10 * (i + 1)),
            "1" if i < 12 else "5",
        ]
        for i in range(24)
    ]
    return headers, rows


@pytest.fixture
def mixed_catalog() -> Catalog:
    """40 products with numeric and categorical attributes."""
    colors = ["red", "blue", "green", "black"]
    headers = ["product_id", "color", "price", "rating", "shipping_days"]
    rows = []
    for i in range(40):
        rows.append(
            [
                f"P{i}",
                colors[i % 4],
                f"{20 + (i * 37) % 180}.99",
                f"{3 + (i % 5) * 0.4:.1f}",
                str(1 + (i * 7) % 9),
            ]
        )
    return headers, rows


@pytest.fixture
def price_rating_node() -> InternalNode:
    """Cheap, lower rated products on the left; premium ones on the right."""
    names = ["price", "rating"]
    left = LeafNode(
        feature_names=names,
        products=[
            ProductVector(id="a", values=[15.0, 4.2], raw_values=[15.0, 4.2]),
            ProductVector(id="b", values=[18.0, 4.0], raw_values=[18.0, 4.0]),
        ],
    )
    right = LeafNode(
        feature_names=names,
        products=[
            ProductVector(id="c", values=[45.0, 4.8], raw_values=[45.0, 4.8]),
            ProductVector(id="d", values=[50.0, 4.9], raw_values=[50.0, 4.9]),
        ],
    )
    return InternalNode(
        feature_names=names,
        weights=[1.0, 0.0],
        threshold=30.0,
        sample_count=4,
        left=left,
        right=right,
    )


@pytest.fixture
def raw_bounds() -> Normalization:
    """Identity bounds for ``price_rating_node``, whose values are already raw."""
    return Normalization(mins=[0.0, 0.0], maxs=[1.0, 1.0])


@pytest.fixture
def price_rating_profiles() -> List[AttributeProfile]:
    return [
        profile_attribute("price", [15.0, 18.0, 45.0, 50.0]),
        profile_attribute("rating", [4.2, 4.0, 4.8, 4.9]),
    ]
