"""Oblique (hyperplane) preference trees over encoded catalog features.

Catalog rows are vectorized and normalized, then split recursively by
hyperplanes chosen to reduce the mean per-feature variance.
"""

from ._types import ProductVector, Normalization, LeafNode, InternalNode
from ._types import TreeNode, ObliqueTree, BuildOptions, node_from_dict
from ._vectorizer import VectorizedCatalog, ColumnEncoding, vectorize
from ._builder import ObliqueTreeBuilder, build_oblique_tree, impurity
from ._builder import information_gain

__all__ = [
    "ProductVector",
    "Normalization",
    "LeafNode",
    "InternalNode",
    "TreeNode",
    "ObliqueTree",
    "BuildOptions",
    "node_from_dict",
    "VectorizedCatalog",
    "ColumnEncoding",
    "vectorize",
    "ObliqueTreeBuilder",
    "build_oblique_tree",
    "impurity",
    "information_gain",
]
