"""Tests for the end-to-end catalog build."""

import orjson
import pytest

from preference_tree import BuildOptions, build_catalog, compute_tree_metrics
from preference_tree import dumps_build, loads_build, loads_tree
from preference_tree.core import CorruptionError, DataError
from preference_tree.oblique import InternalNode, LeafNode, Normalization
from preference_tree.oblique import ObliqueTree, ProductVector
from preference_tree.question_tree import QuestionLeaf


def _product(pid):
    return ProductVector(id=pid, values=[0.0], raw_values=[0.0])


@pytest.fixture
def small_build(small_catalog):
    headers, rows = small_catalog
    return build_catalog(
        headers, rows, BuildOptions(max_depth=4, min_leaf_size=1), random_state=0
    )


def test_build_catalog(small_build):
    assert small_build.headers == ["id", "price", "rating"]
    assert small_build.product_count == 4
    assert [p.name for p in small_build.profiles] == (
        small_build.oblique_tree.feature_names
    )
    assert [m.name for m in small_build.feature_metadata] == ["id", "price", "rating"]

    metrics = small_build.metrics
    assert metrics.depth >= 1
    assert metrics.leaf_count >= 1
    assert metrics.build_time_ms >= 0
    assert metrics.question_tree_depth is not None


def test_build_round_trip(small_build):
    data = dumps_build(small_build)
    restored = loads_build(data)

    assert restored.to_dict() == orjson.loads(data)
    assert restored.product_count == 4
    assert loads_tree(data).to_dict() == orjson.loads(data)["oblique_tree"]


def test_loads_tree_accepts_a_bare_tree(small_build):
    data = orjson.dumps(small_build.oblique_tree.to_dict())
    tree = loads_tree(data)
    assert tree.feature_names == small_build.oblique_tree.feature_names


@pytest.mark.parametrize(
    "data",
    [b"not json", b"[1, 2]", b"{}", b'{"root": {"type": "fork"}}'],
)
def test_loads_tree_rejects_corrupt_payloads(data):
    with pytest.raises(CorruptionError):
        loads_tree(data)


@pytest.mark.parametrize("data", [b"{", b"42", b'{"headers": []}'])
def test_loads_build_rejects_corrupt_payloads(data):
    with pytest.raises(CorruptionError):
        loads_build(data)


def test_compute_tree_metrics():
    names = ["price"]
    tree = ObliqueTree(
        root=InternalNode(
            feature_names=names,
            weights=[1.0],
            threshold=0.5,
            sample_count=3,
            left=LeafNode(feature_names=names, products=[_product("a")]),
            right=LeafNode(
                feature_names=names, products=[_product("b"), _product("c")]
            ),
        ),
        feature_names=names,
        normalization=Normalization(mins=[0.0], maxs=[1.0]),
    )
    metrics = compute_tree_metrics(
        tree, 12.5, question_tree=QuestionLeaf(id="leaf_0_x", sample_count=3)
    )

    assert metrics.depth == 2
    assert metrics.leaf_count == 2
    assert metrics.average_leaf_size == 1.5
    assert (metrics.min_leaf_size, metrics.max_leaf_size) == (1, 2)
    assert metrics.build_time_ms == 12.5
    assert metrics.question_tree_depth == 1
    assert metrics.question_tree_leaf_count == 1
    assert metrics.question_tree_average_leaf_size == 3.0


def test_empty_catalog_is_a_data_error():
    with pytest.raises(DataError):
        build_catalog(["price"], [])
