"""Oblique tree.

Unsupervised decision tree where each split is a hyperplane over the
normalized features::

    w1*x1 + w2*x2 + ... + wk*xk <= threshold

LEFT branch = lower projection, RIGHT branch = higher projection. Splits are
chosen greedily by the reduction of the mean per-feature variance.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple
from dataclasses import dataclass
import logging
import math

import numpy as np
import numpy.typing as npt

from preference_tree.core._config import settings
from preference_tree.core._types import RandomState, make_rng
from ._types import BuildOptions, InternalNode, LeafNode, ObliqueTree, TreeNode
from ._vectorizer import VectorizedCatalog, vectorize


logger = logging.getLogger(__name__)

IndexArray = npt.NDArray[np.intp]
FloatArray = npt.NDArray[np.float64]


@dataclass(slots=True)
class SplitCandidate:
    weights: FloatArray
    threshold: float
    info_gain: float
    categorical: bool = False


def impurity(X: FloatArray) -> float:
    """Mean over features of the within-set variance."""
    if X.shape[0] == 0 or X.shape[1] == 0:
        return 0.0
    return float(X.var(axis=0).mean())


def information_gain(X: FloatArray, left_mask: npt.NDArray[np.bool_]) -> float:
    n = X.shape[0]
    if n == 0:
        return 0.0
    left, right = X[left_mask], X[~left_mask]
    weighted = (left.shape[0] / n) * impurity(left) + (right.shape[0] / n) * impurity(
        right
    )
    return impurity(X) - weighted


def is_one_hot(name: str) -> bool:
    return "=" in name


class ObliqueTreeBuilder:
    """Greedy builder for oblique preference trees.

    Args:
        options: Build options. Defaults come from the settings.
        random_state: Seed or generator for farthest-pair sampling on large
            nodes. Small nodes are searched exhaustively and need no
            randomness.
    """

    def __init__(
        self,
        options: BuildOptions | None = None,
        random_state: RandomState = None,
    ):
        self.options = options or BuildOptions()
        self._rng = make_rng(random_state)
        self._feature_names: List[str] = []
        self._X: FloatArray | None = None
        self._catalog: VectorizedCatalog | None = None

    def build(self, catalog: VectorizedCatalog) -> ObliqueTree:
        """Grow a tree over an encoded catalog."""
        self._catalog = catalog
        self._feature_names = list(catalog.feature_names)
        self._X = np.asarray(catalog.matrix, dtype=float)

        indices: IndexArray = np.arange(self._X.shape[0], dtype=np.intp)
        root = self._build_node(indices, depth=0)
        logger.info(
            f"Built oblique tree over {indices.shape[0]} products "
            f"and {len(self._feature_names)} features"
        )
        return ObliqueTree(
            root=root,
            feature_names=self._feature_names,
            normalization=catalog.normalization,
        )

    def _leaf(self, indices: IndexArray) -> LeafNode:
        assert self._catalog is not None
        return LeafNode(
            feature_names=self._feature_names,
            products=[self._catalog.products[i] for i in indices],
        )

    def _is_degenerate(self, n_left: int, n_right: int) -> bool:
        n = n_left + n_right
        min_branch = self.options.min_branch_fraction * n
        if n_left == 0 or n_right == 0:
            return True
        return n_left < min_branch or n_right < min_branch

    def _build_node(self, indices: IndexArray, depth: int) -> TreeNode:
        assert self._X is not None
        if (
            depth >= self.options.max_depth
            or indices.shape[0] <= self.options.min_leaf_size
        ):
            return self._leaf(indices)

        X = self._X[indices]
        split = self.find_best_split(X)
        if split is None or split.info_gain <= self.options.min_info_gain:
            logger.debug(
                f"Leaf at depth {depth} with {indices.shape[0]} products: "
                "no split above the minimum gain"
            )
            return self._leaf(indices)

        left_mask = X @ split.weights <= split.threshold
        left_idx, right_idx = indices[left_mask], indices[~left_mask]
        if self._is_degenerate(left_idx.shape[0], right_idx.shape[0]):
            logger.debug(f"Degenerate split at depth {depth}. Making a leaf.")
            return self._leaf(indices)

        logger.debug(
            f"Split at depth {depth}: {left_idx.shape[0]} left / "
            f"{right_idx.shape[0]} right, gain={split.info_gain:.5f}"
            + (" (categorical)" if split.categorical else "")
        )
        return InternalNode(
            feature_names=self._feature_names,
            weights=[float(w) for w in split.weights],
            threshold=float(split.threshold),
            sample_count=int(indices.shape[0]),
            left=self._build_node(left_idx, depth + 1),
            right=self._build_node(right_idx, depth + 1),
        )

    def _axis_thresholds(self, column: FloatArray) -> FloatArray:
        unique = np.unique(column[~np.isnan(column)])
        if unique.shape[0] <= 1:
            return np.empty(0)
        mids = (unique[:-1] + unique[1:]) / 2
        limit = self.options.max_axis_thresholds
        if mids.shape[0] > limit:
            step = math.ceil(mids.shape[0] / limit)
            mids = mids[::step]
        return mids

    def find_best_split(self, X: FloatArray) -> SplitCandidate | None:
        """Search axis-aligned and oblique candidates for the best split.

        Args:
            X: Normalized values of the products at the node.

        Returns:
            The chosen split, or None if no candidate partitions the node.
        """
        n, num_features = X.shape
        if n < 2:
            return None

        boost = self.options.categorical_boost
        best: SplitCandidate | None = None
        best_score = -math.inf
        best_categorical: SplitCandidate | None = None
        best_categorical_score = -math.inf

        for f in range(num_features):
            one_hot = is_one_hot(self._feature_names[f])
            column = X[:, f]
            for thr in self._axis_thresholds(column):
                left_mask = column <= thr
                n_left = int(left_mask.sum())
                if self._is_degenerate(n_left, n - n_left):
                    continue

                gain = information_gain(X, left_mask)
                score = gain * boost if one_hot else gain
                weights = np.zeros(num_features)
                weights[f] = 1.0
                candidate = SplitCandidate(weights, float(thr), gain, one_hot)

                if one_hot and score > best_categorical_score:
                    best_categorical_score = score
                    best_categorical = candidate
                if score > best_score:
                    best_score = score
                    best = candidate

        for a, b in self._oblique_pairs(X):
            w = X[b] - X[a]
            if not np.any(w):
                continue
            threshold = float(w @ ((X[a] + X[b]) / 2))
            left_mask = X @ w <= threshold
            n_left = int(left_mask.sum())
            if self._is_degenerate(n_left, n - n_left):
                continue

            gain = information_gain(X, left_mask)
            if gain > best_score:
                best_score = gain
                best = SplitCandidate(w, threshold, gain, False)

        if best_categorical is not None and (
            best is None
            or best.categorical
            or best_categorical.info_gain
            >= self.options.categorical_preference_ratio * best.info_gain
        ):
            return best_categorical
        return best

    def _oblique_pairs(self, X: FloatArray) -> List[Tuple[int, int]]:
        rounds = self.options.num_oblique_candidates
        if rounds == 0:
            return []
        if X.shape[0] <= settings.EXACT_FARTHEST_PAIR_LIMIT:
            # Exhaustive search is deterministic, every round finds the same pair
            return [farthest_pair_exact(X)] * rounds
        return [
            farthest_pair_sampled(X, self._rng, settings.FARTHEST_PAIR_SAMPLE_SIZE)
            for _ in range(rounds)
        ]


def farthest_pair_exact(X: FloatArray) -> Tuple[int, int]:
    """The pair of rows with the largest squared distance (first one on ties)."""
    sq = (X * X).sum(axis=1)
    dists = sq[:, None] + sq[None, :] - 2 * (X @ X.T)
    dists = np.triu(dists, k=1)
    flat = int(np.argmax(dists))
    a, b = divmod(flat, X.shape[0])
    return a, b


def farthest_pair_sampled(
    X: FloatArray, rng: np.random.Generator, sample_size: int
) -> Tuple[int, int]:
    """Farthest pair among up to ``sample_size`` random distinct pairs."""
    n = X.shape[0]
    max_samples = min(sample_size, n * (n - 1) // 2)
    checked: set[Tuple[int, int]] = set()
    best_dist, best_pair = -1.0, (0, 1)

    while len(checked) < max_samples:
        i, j = (int(v) for v in rng.integers(0, n, size=2))
        if i == j:
            continue
        pair = (min(i, j), max(i, j))
        if pair in checked:
            continue
        checked.add(pair)
        d = float(((X[pair[0]] - X[pair[1]]) ** 2).sum())
        if d > best_dist:
            best_dist, best_pair = d, pair
    return best_pair


def build_oblique_tree(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    options: BuildOptions | None = None,
    random_state: RandomState = None,
) -> ObliqueTree:
    """Vectorize a catalog and grow its oblique tree."""
    catalog = vectorize(headers, rows)
    return ObliqueTreeBuilder(options, random_state).build(catalog)
