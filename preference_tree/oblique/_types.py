from __future__ import annotations

from typing import Any, Dict, List, TypeAlias, Iterator
from dataclasses import dataclass, field, asdict

from pydantic import BaseModel, Field, ConfigDict

from preference_tree.core._config import settings
from preference_tree.core._exceptions import CorruptionError


@dataclass(slots=True)
class ProductVector:
    """A catalog row encoded as a numeric vector."""

    id: str = field(metadata={"description": "The product id."})
    values: List[float] = field(
        metadata={"description": "Encoded values normalized to [0, 1]."}
    )
    raw_values: List[float] = field(
        metadata={"description": "Encoded values before normalization."}
    )
    original_row: List[str] = field(
        default_factory=list,
        metadata={"description": "The catalog cells, for display."},
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert the product vector to a dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> ProductVector:
        """Convert a dictionary to a product vector."""
        return cls(**d)


@dataclass(slots=True, frozen=True)
class Normalization:
    """Per-feature bounds used to map raw values to [0, 1] and back."""

    mins: List[float]
    maxs: List[float]

    def denormalize(self, index: int, value: float) -> float:
        """Map a normalized value of feature ``index`` back to raw units."""
        lo, hi = self.mins[index], self.maxs[index]
        return lo + value * (hi - lo)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> Normalization:
        return cls(mins=list(d["mins"]), maxs=list(d["maxs"]))


@dataclass(slots=True)
class LeafNode:
    """A terminal node holding the products that reached it."""

    feature_names: List[str]
    products: List[ProductVector] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "leaf",
            "feature_names": self.feature_names,
            "products": [p.to_dict() for p in self.products],
        }


@dataclass(slots=True)
class InternalNode:
    """A hyperplane split: ``dot(weights, values) <= threshold`` goes left."""

    feature_names: List[str]
    weights: List[float]
    threshold: float
    sample_count: int
    left: TreeNode
    right: TreeNode

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "internal",
            "feature_names": self.feature_names,
            "weights": self.weights,
            "threshold": self.threshold,
            "sample_count": self.sample_count,
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
        }


TreeNode: TypeAlias = InternalNode | LeafNode


def node_from_dict(d: Dict[str, Any]) -> TreeNode:
    """Rebuild an oblique node (and its subtree) from its tagged dictionary."""
    kind = d.get("type")
    if kind == "leaf":
        return LeafNode(
            feature_names=list(d["feature_names"]),
            products=[ProductVector.from_dict(p) for p in d.get("products", [])],
        )
    if kind == "internal":
        return InternalNode(
            feature_names=list(d["feature_names"]),
            weights=list(d["weights"]),
            threshold=float(d["threshold"]),
            sample_count=int(d["sample_count"]),
            left=node_from_dict(d["left"]),
            right=node_from_dict(d["right"]),
        )
    raise CorruptionError(f"Unknown oblique node type: {kind!r}")


@dataclass(slots=True)
class ObliqueTree:
    """A built oblique tree together with the normalization it was built on."""

    root: TreeNode
    feature_names: List[str]
    normalization: Normalization

    def leaves(self) -> Iterator[LeafNode]:
        """Yield every leaf, left to right."""
        stack: List[TreeNode] = [self.root]
        while stack:
            node = stack.pop()
            if isinstance(node, LeafNode):
                yield node
            else:
                stack.append(node.right)
                stack.append(node.left)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root.to_dict(),
            "feature_names": self.feature_names,
            "normalization": self.normalization.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> ObliqueTree:
        try:
            return cls(
                root=node_from_dict(d["root"]),
                feature_names=list(d["feature_names"]),
                normalization=Normalization.from_dict(d["normalization"]),
            )
        except KeyError as e:
            raise CorruptionError(f"Oblique tree payload is missing {e}") from e


class BuildOptions(BaseModel):
    """Options for growing the trees. Defaults come from the settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_depth: int = Field(
        default_factory=lambda: settings.OBLIQUE_MAX_DEPTH,
        ge=0,
        description="Maximum depth of the oblique tree.",
    )
    min_leaf_size: int = Field(
        default_factory=lambda: settings.OBLIQUE_MIN_LEAF_SIZE,
        ge=1,
        description="Nodes with at most this many products become leaves.",
    )
    min_info_gain: float = Field(
        default_factory=lambda: settings.OBLIQUE_MIN_INFO_GAIN,
        ge=0,
        description="Splits must improve impurity by more than this.",
    )
    min_branch_fraction: float = Field(
        default_factory=lambda: settings.MIN_BRANCH_FRACTION,
        ge=0,
        lt=0.5,
        description="Each branch must hold at least this share of the parent.",
    )
    categorical_boost: float = Field(
        default_factory=lambda: settings.CATEGORICAL_BOOST,
        ge=1,
        description="Gain multiplier for one-hot axis splits when ranking.",
    )
    categorical_preference_ratio: float = Field(
        default_factory=lambda: settings.CATEGORICAL_PREFERENCE_RATIO,
        ge=0,
        le=1,
        description="A categorical split replaces a non-categorical winner when "
        "its raw gain is at least this fraction of the winner's gain.",
    )
    num_oblique_candidates: int = Field(
        default_factory=lambda: settings.NUM_OBLIQUE_CANDIDATES, ge=0
    )
    max_axis_thresholds: int = Field(
        default_factory=lambda: settings.MAX_AXIS_THRESHOLDS, ge=1
    )
    question_tree_max_depth: int = Field(
        default_factory=lambda: settings.QUESTION_TREE_MAX_DEPTH, ge=0
    )
    question_tree_min_leaf_size: int = Field(
        default_factory=lambda: settings.QUESTION_TREE_MIN_LEAF_SIZE, ge=1
    )
    question_tree_min_gain: float = Field(
        default_factory=lambda: settings.QUESTION_TREE_MIN_GAIN, ge=0
    )
