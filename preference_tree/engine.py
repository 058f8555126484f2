"""End-to-end catalog build.

Builds everything a questionnaire needs from one catalog snapshot: attribute
profiles, the oblique tree, the question tree with its feature metadata, and
summary metrics. Apart from the measured build time the result is a pure
function of the inputs and the random state.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence
from dataclasses import dataclass, field, asdict
import logging
import time

import orjson

from preference_tree.core._exceptions import CorruptionError
from preference_tree.core._types import RandomState
from preference_tree.oblique._builder import ObliqueTreeBuilder
from preference_tree.oblique._types import BuildOptions, LeafNode, ObliqueTree
from preference_tree.oblique._vectorizer import vectorize
from preference_tree.profiling._profiler import profile_attributes
from preference_tree.profiling._types import AttributeProfile
from preference_tree.question_tree._builder import build_question_tree
from preference_tree.question_tree._types import CategoricalQuestionNode
from preference_tree.question_tree._types import FeatureMetadata, NumericQuestionNode
from preference_tree.question_tree._types import QuestionTreeNode
from preference_tree.question_tree._types import question_node_from_dict


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TreeMetrics:
    """Shape of the built trees. Depth counts the root as level 1."""

    depth: int
    leaf_count: int
    average_leaf_size: float
    max_leaf_size: int
    min_leaf_size: int
    build_time_ms: float
    question_tree_depth: int | None = None
    question_tree_leaf_count: int | None = None
    question_tree_average_leaf_size: float | None = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> TreeMetrics:
        return cls(**d)


@dataclass(slots=True)
class CatalogBuild:
    headers: List[str]
    profiles: List[AttributeProfile]
    oblique_tree: ObliqueTree
    question_tree: QuestionTreeNode
    feature_metadata: List[FeatureMetadata] = field(default_factory=list)
    metrics: TreeMetrics | None = None
    product_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headers": self.headers,
            "profiles": [p.to_dict() for p in self.profiles],
            "oblique_tree": self.oblique_tree.to_dict(),
            "question_tree": self.question_tree.to_dict(),
            "feature_metadata": [m.to_dict() for m in self.feature_metadata],
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "product_count": self.product_count,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> CatalogBuild:
        try:
            metrics = d.get("metrics")
            return cls(
                headers=list(d["headers"]),
                profiles=[AttributeProfile.from_dict(p) for p in d["profiles"]],
                oblique_tree=ObliqueTree.from_dict(d["oblique_tree"]),
                question_tree=question_node_from_dict(d["question_tree"]),
                feature_metadata=[
                    FeatureMetadata.from_dict(m) for m in d.get("feature_metadata", [])
                ],
                metrics=TreeMetrics.from_dict(metrics) if metrics else None,
                product_count=int(d.get("product_count", 0)),
            )
        except (KeyError, TypeError) as e:
            raise CorruptionError(f"Catalog build payload is malformed: {e}") from e


def _question_tree_stats(root: QuestionTreeNode) -> tuple[int, int, float]:
    depth, sizes = 0, []
    stack: List[tuple[QuestionTreeNode, int]] = [(root, 1)]
    while stack:
        node, level = stack.pop()
        depth = max(depth, level)
        if isinstance(node, NumericQuestionNode):
            stack.extend([(node.left, level + 1), (node.right, level + 1)])
        elif isinstance(node, CategoricalQuestionNode):
            stack.extend((child, level + 1) for child in node.children.values())
        else:
            sizes.append(node.sample_count)
    average = sum(sizes) / len(sizes) if sizes else 0.0
    return depth, len(sizes), average


def compute_tree_metrics(
    tree: ObliqueTree,
    build_time_ms: float,
    question_tree: QuestionTreeNode | None = None,
) -> TreeMetrics:
    """Depth, leaf counts and leaf sizes of a built tree.

    Args:
        tree: The oblique tree.
        build_time_ms: Wall-clock build time to record.
        question_tree: If given, its depth, leaf count and average leaf size
            are recorded too.

    Returns:
        The metrics.
    """
    depth, sizes = 0, []
    stack = [(tree.root, 1)]
    while stack:
        node, level = stack.pop()
        depth = max(depth, level)
        if isinstance(node, LeafNode):
            sizes.append(len(node.products))
        else:
            stack.extend([(node.left, level + 1), (node.right, level + 1)])

    metrics = TreeMetrics(
        depth=depth,
        leaf_count=len(sizes),
        average_leaf_size=sum(sizes) / len(sizes) if sizes else 0.0,
        max_leaf_size=max(sizes, default=0),
        min_leaf_size=min(sizes, default=0),
        build_time_ms=build_time_ms,
    )
    if question_tree is not None:
        qt_depth, qt_leaves, qt_average = _question_tree_stats(question_tree)
        metrics.question_tree_depth = qt_depth
        metrics.question_tree_leaf_count = qt_leaves
        metrics.question_tree_average_leaf_size = qt_average
    return metrics


def build_catalog(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    options: BuildOptions | None = None,
    *,
    random_state: RandomState = None,
) -> CatalogBuild:
    """Build profiles, both trees and metrics for a catalog.

    Args:
        headers: Column names.
        rows: Catalog rows as strings.
        options: Build options. Defaults come from the settings.
        random_state: Seed or generator for the oblique tree's sampling.

    Returns:
        The complete build.

    Raises:
        DataError: If the catalog is empty or has no usable column.
    """
    options = options or BuildOptions()
    start = time.perf_counter()

    catalog = vectorize(headers, rows)
    tree = ObliqueTreeBuilder(options, random_state).build(catalog)
    profiles = profile_attributes(catalog.feature_names, catalog.raw_matrix)
    question_tree = build_question_tree(headers, rows, options)

    build_time_ms = (time.perf_counter() - start) * 1000
    metrics = compute_tree_metrics(tree, build_time_ms, question_tree.question_tree)
    logger.info(
        f"Catalog build done in {build_time_ms:.1f} ms: depth {metrics.depth}, "
        f"{metrics.leaf_count} leaves, question tree depth "
        f"{metrics.question_tree_depth}"
    )

    return CatalogBuild(
        headers=list(headers),
        profiles=profiles,
        oblique_tree=tree,
        question_tree=question_tree.question_tree,
        feature_metadata=question_tree.feature_metadata,
        metrics=metrics,
        product_count=len(catalog.products),
    )


def dumps_build(build: CatalogBuild) -> bytes:
    """Serialize a build to JSON bytes."""
    return orjson.dumps(build.to_dict(), option=orjson.OPT_SERIALIZE_NUMPY)


def loads_build(data: bytes | str) -> CatalogBuild:
    """Inverse of :func:`dumps_build`.

    Raises:
        CorruptionError: If the payload is not valid JSON or misses fields.
    """
    try:
        payload = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise CorruptionError(f"Catalog build payload is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise CorruptionError("Catalog build payload must be a JSON object")
    return CatalogBuild.from_dict(payload)


def loads_tree(data: bytes | str) -> ObliqueTree:
    """Load the oblique tree from a serialized build or a serialized tree.

    Raises:
        CorruptionError: If the payload is not valid JSON or not a tree.
    """
    try:
        payload = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise CorruptionError(f"Tree payload is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise CorruptionError("Tree payload must be a JSON object")
    return ObliqueTree.from_dict(payload.get("oblique_tree", payload))
