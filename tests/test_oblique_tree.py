"""Tests for the oblique tree builder."""

from typing import List

import numpy as np
import pytest
from pydantic import ValidationError

from preference_tree.core import CorruptionError
from preference_tree.oblique import BuildOptions, InternalNode, LeafNode
from preference_tree.oblique import ObliqueTree, ObliqueTreeBuilder, TreeNode
from preference_tree.oblique import build_oblique_tree, impurity, information_gain
from preference_tree.oblique import node_from_dict, vectorize
from preference_tree.oblique._builder import farthest_pair_exact


def _leaf_ids(node: TreeNode) -> List[str]:
    if isinstance(node, LeafNode):
        return [p.id for p in node.products]
    return _leaf_ids(node.left) + _leaf_ids(node.right)


def _check_partitions(node: TreeNode) -> int:
    if isinstance(node, LeafNode):
        return len(node.products)
    left = _check_partitions(node.left)
    right = _check_partitions(node.right)
    assert left + right == node.sample_count
    assert left > 0 and right > 0
    return node.sample_count


def _leaf_depths(node: TreeNode, depth: int = 0) -> List[int]:
    if isinstance(node, LeafNode):
        return [depth]
    return _leaf_depths(node.left, depth + 1) + _leaf_depths(node.right, depth + 1)


def _distinct_catalog(n: int):
    headers = ["width", "height"]
    rows = [[str(i + 0.25), str((i * 7) % n + 0.5)] for i in range(n)]
    return headers, rows


def test_small_catalog_build(small_catalog):
    headers, rows = small_catalog
    tree = build_oblique_tree(
        headers, rows, BuildOptions(max_depth=4, min_leaf_size=1)
    )

    assert len(tree.feature_names) > 0
    assert isinstance(tree.root, (InternalNode, LeafNode))
    assert sorted(_leaf_ids(tree.root)) == ["p1", "p2", "p3", "p4"]


def test_splits_partition_exactly(mixed_catalog):
    headers, rows = mixed_catalog
    tree = build_oblique_tree(headers, rows, random_state=0)

    assert _check_partitions(tree.root) == len(rows)
    ids = _leaf_ids(tree.root)
    assert len(ids) == len(set(ids)) == len(rows)


def test_depth_is_bounded(mixed_catalog):
    headers, rows = mixed_catalog
    for max_depth in (0, 1, 2, 3):
        tree = build_oblique_tree(headers, rows, BuildOptions(max_depth=max_depth))
        assert max(_leaf_depths(tree.root)) <= max_depth


def test_leaves_reach_min_leaf_size_without_other_limits():
    headers, rows = _distinct_catalog(30)
    options = BuildOptions(
        max_depth=30, min_leaf_size=2, min_info_gain=0.0, min_branch_fraction=0.0
    )
    tree = build_oblique_tree(headers, rows, options)
    for leaf in tree.leaves():
        assert len(leaf.products) <= 2


def test_sampled_build_is_reproducible():
    headers, rows = _distinct_catalog(120)
    first = build_oblique_tree(headers, rows, random_state=7)
    second = build_oblique_tree(headers, rows, random_state=7)
    assert first.to_dict() == second.to_dict()


def test_builder_accepts_a_generator(small_catalog):
    headers, rows = small_catalog
    catalog = vectorize(headers, rows)
    builder = ObliqueTreeBuilder(random_state=np.random.default_rng(3))
    tree = builder.build(catalog)
    assert tree.normalization == catalog.normalization


def test_categorical_split_is_preferred():
    headers = ["color", "price"]
    rows = [["red", str(10 + i % 3)] for i in range(10)]
    rows += [["blue", str(50 + i % 3)] for i in range(10)]
    tree = build_oblique_tree(headers, rows)

    root = tree.root
    assert isinstance(root, InternalNode)
    used = [name for name, w in zip(root.feature_names, root.weights) if w != 0]
    assert len(used) == 1
    assert used[0].startswith("color=")


def test_impurity_and_gain():
    X = np.array([[0.0], [0.0], [1.0], [1.0]])
    assert impurity(X) == pytest.approx(0.25)
    gain = information_gain(X, np.array([True, True, False, False]))
    assert gain == pytest.approx(0.25)
    assert impurity(np.empty((0, 2))) == 0.0


def test_farthest_pair_exact():
    X = np.array([[0.0, 0.0], [1.0, 0.0], [5.0, 5.0]])
    assert farthest_pair_exact(X) == (0, 2)


def test_tree_round_trip(mixed_catalog):
    headers, rows = mixed_catalog
    tree = build_oblique_tree(headers, rows, random_state=1)
    restored = ObliqueTree.from_dict(tree.to_dict())
    assert restored.to_dict() == tree.to_dict()


def test_unknown_node_type_is_corruption():
    with pytest.raises(CorruptionError):
        node_from_dict({"type": "branch"})
    with pytest.raises(CorruptionError):
        ObliqueTree.from_dict({"feature_names": []})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_leaf_size": 0},
        {"max_depth": -1},
        {"min_branch_fraction": 0.5},
        {"categorical_preference_ratio": 1.5},
        {"unknown_option": 1},
    ],
)
def test_invalid_options(kwargs):
    with pytest.raises(ValidationError):
        BuildOptions(**kwargs)


def _weighted_names(node: InternalNode) -> List[str]:
    return [n for n, w in zip(node.feature_names, node.weights) if w != 0]


@pytest.mark.parametrize(
    "ratio, expected",
    [(0.35, ["f1"]), (0.25, ["color=red"])],
)
def test_categorical_preference_ratio_decides_the_split(ratio, expected):
    # Numeric gain is 0.25 * 7/9, the color gain 0.25 * 2/9 (about 29% of it)
    headers = ["sku"] + [f"f{i}" for i in range(1, 8)] + ["color"]
    colors = ["red", "red", "blue", "blue"] * 2
    rows = [
        [f"S{i}"] + ["1.5" if i < 4 else "9.5"] * 7 + [colors[i]] for i in range(8)
    ]
    options = BuildOptions(
        categorical_boost=1.0,
        num_oblique_candidates=0,
        max_depth=1,
        categorical_preference_ratio=ratio,
    )
    root = build_oblique_tree(headers, rows, options, random_state=0).root

    assert isinstance(root, InternalNode)
    assert _weighted_names(root) == expected
