"""Tests for the raw-attribute question tree."""

from typing import List

import numpy as np
import pytest

from preference_tree.core import CorruptionError
from preference_tree.oblique import BuildOptions
from preference_tree.question_tree import CategoricalQuestionNode, FeatureMetadata
from preference_tree.question_tree import NumericQuestionNode, QuestionLeaf
from preference_tree.question_tree import OTHER_KEY, ProductSummary
from preference_tree.question_tree import QuestionTreeBuilder
from preference_tree.question_tree import QuestionTreeNode
from preference_tree.question_tree import build_question_tree, compute_score
from preference_tree.question_tree import format_value, humanize
from preference_tree.question_tree import question_node_from_dict


def _leaves(node: QuestionTreeNode) -> List[QuestionLeaf]:
    if isinstance(node, QuestionLeaf):
        return [node]
    if isinstance(node, NumericQuestionNode):
        return _leaves(node.left) + _leaves(node.right)
    return [leaf for child in node.children.values() for leaf in _leaves(child)]


def test_root_splits_on_price(split_catalog):
    headers, rows = split_catalog
    result = build_question_tree(headers, rows)
    root = result.question_tree

    assert isinstance(root, NumericQuestionNode)
    assert root.feature == "price"
    assert root.threshold == 125.0
    assert root.question == "Are you looking for Price at or below $125.00?"
    assert [o.id for o in root.options] == ["leq", "gt"]
    assert [o.value for o in root.options] == ["<=", ">"]
    assert root.options[0].label == "At or below $125.00"
    assert root.sample_count == 24


def test_pure_branches_become_leaves(split_catalog):
    headers, rows = split_catalog
    root = build_question_tree(headers, rows).question_tree

    assert isinstance(root.left, QuestionLeaf)
    assert isinstance(root.right, QuestionLeaf)
    assert root.left.sample_count == 12
    assert {p.score for p in root.left.products} == {1.0}
    assert {p.score for p in root.right.products} == {5.0}
    assert len(root.left.representative_products) == 3
    assert root.left.products[0].id == "SKU-000"


def test_feature_metadata(split_catalog):
    headers, rows = split_catalog
    meta = {m.name: m for m in build_question_tree(headers, rows).feature_metadata}

    assert meta["sku"].type == "ignored"
    assert not meta["sku"].question_worthy
    assert meta["category"].type == "categorical"
    assert meta["category"].distinct_values == ["a", "b"]
    assert meta["price"].type == "numeric"
    assert (meta["price"].min, meta["price"].max) == (10.0, 240.0)
    assert meta["price"].example_values == ["10", "20", "30"]


def test_timestamps_and_free_text_are_ignored():
    headers = ["created_at", "name", "price"]
    rows = [[f"2024-01-{i:02d}", f"item{i}", str(i % 5)] for i in range(1, 41)]
    meta = build_question_tree(headers, rows).feature_metadata

    assert [m.type for m in meta] == ["ignored", "ignored", "numeric"]


def test_categorical_split_folds_small_groups_into_other():
    headers = ["brand", "rating"]
    rows = [["A", "5"]] * 4 + [["B", "1"]] * 4 + [["C", "3"]] * 2 + [["D", "3"]]
    root = build_question_tree(headers, rows).question_tree

    assert isinstance(root, CategoricalQuestionNode)
    assert root.question == "Which Brand do you prefer?"
    assert list(root.children) == ["A", "B", OTHER_KEY]
    assert [o.label for o in root.options] == ["A", "B", "Other"]
    assert root.children[OTHER_KEY].sample_count == 3


def _summaries(groups):
    items = []
    for brand, count, score in groups:
        for i in range(count):
            items.append(
                ProductSummary(
                    id=f"{brand}{i}", attributes={"brand": brand}, score=score
                )
            )
    return items


def test_undersized_other_absorbs_least_frequent_category():
    builder = QuestionTreeBuilder(BuildOptions(question_tree_min_leaf_size=3))
    meta = FeatureMetadata(name="brand", type="categorical", question_worthy=True)
    items = _summaries([("A", 4, 5.0), ("B", 3, 1.0), ("C", 2, 3.0)])
    parent = float(np.var([p.score for p in items]))

    split = builder._categorical_split(items, meta, parent)

    assert list(split.branches) == ["A", OTHER_KEY]
    assert len(split.branches[OTHER_KEY]) == 5
    assert all(len(b) >= 3 for b in split.branches.values())


def test_no_categorical_split_when_other_absorbs_everything():
    builder = QuestionTreeBuilder(BuildOptions(question_tree_min_leaf_size=3))
    meta = FeatureMetadata(name="brand", type="categorical", question_worthy=True)
    items = _summaries([("A", 4, 5.0), ("B", 1, 1.0)])
    parent = float(np.var([p.score for p in items]))

    assert builder._categorical_split(items, meta, parent) is None


def test_no_product_is_lost_with_missing_cells(split_catalog):
    headers, rows = split_catalog
    rows = [list(r) for r in rows]
    rows[0][2] = ""
    rows[20][2] = ""
    root = build_question_tree(headers, rows).question_tree

    leaves = _leaves(root)
    assert sum(leaf.sample_count for leaf in leaves) == 24
    ids = sorted(p.id for leaf in leaves for p in leaf.products)
    assert ids == sorted(r[0] for r in rows)


def test_build_is_deterministic(mixed_catalog):
    headers, rows = mixed_catalog
    first = build_question_tree(headers, rows).question_tree
    second = build_question_tree(headers, rows).question_tree
    assert first.to_dict() == second.to_dict()


def test_max_depth_zero_gives_single_leaf(split_catalog):
    headers, rows = split_catalog
    options = BuildOptions(question_tree_max_depth=0)
    root = build_question_tree(headers, rows, options).question_tree

    assert isinstance(root, QuestionLeaf)
    assert root.sample_count == 24
    assert root.id.startswith("leaf_0_")


def test_round_trip(mixed_catalog):
    headers, rows = mixed_catalog
    root = build_question_tree(headers, rows).question_tree
    assert question_node_from_dict(root.to_dict()).to_dict() == root.to_dict()


def test_unknown_node_type_is_corruption():
    with pytest.raises(CorruptionError):
        question_node_from_dict({"type": "fork"})


def test_compute_score():
    price = FeatureMetadata(
        name="price", type="numeric", min=10.0, max=20.0, question_worthy=True
    )
    rating = FeatureMetadata(
        name="rating", type="numeric", min=1.0, max=5.0, question_worthy=True
    )

    assert compute_score({"price": "12"}, [price]) == pytest.approx(0.8)
    assert compute_score({"price": "12", "rating": "4.5"}, [price, rating]) == 4.5
    assert compute_score({"price": "12", "rating": ""}, [price, rating]) == (
        pytest.approx(0.8)
    )
    assert compute_score({"color": "red"}, []) == 1.0


def test_format_value():
    def meta(name):
        return FeatureMetadata(name=name, type="numeric")

    assert format_value(125.0, meta("price")) == "$125.00"
    assert format_value(4.0, meta("rating")) == "4.0"
    assert format_value(250.0, meta("weight")) == "250"
    assert format_value(2.5, meta("weight")) == "2.50"
    assert format_value(2.5) == "2.50"


def test_humanize():
    assert humanize("shipping_days") == "Shipping Days"
    assert humanize("color-name") == "Color Name"
