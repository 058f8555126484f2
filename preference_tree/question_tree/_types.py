from __future__ import annotations

from typing import Any, Dict, List, Literal, TypeAlias
from dataclasses import dataclass, field, asdict

from preference_tree.core._exceptions import CorruptionError


FeatureKind: TypeAlias = Literal["numeric", "categorical", "ignored"]


@dataclass(slots=True)
class FeatureMetadata:
    """How a raw attribute takes part in the question tree."""

    name: str
    type: FeatureKind
    distinct_values: List[str] = field(
        default_factory=list,
        metadata={"description": "Up to 50 distinct values, in first-seen order."},
    )
    min: float | None = None
    max: float | None = None
    question_worthy: bool = False
    example_values: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> FeatureMetadata:
        return cls(**d)


@dataclass(slots=True)
class ProductSummary:
    """A catalog row as seen by the question tree."""

    id: str
    attributes: Dict[str, str]
    original_row: List[str] = field(default_factory=list)
    score: float = field(
        default=0.0,
        metadata={
            "description": "Synthetic preference score used only to drive splits."
        },
    )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> ProductSummary:
        return cls(**d)


@dataclass(slots=True, frozen=True)
class QuestionChoice:
    """One answer option of a question."""

    id: str
    label: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class QuestionLeaf:
    id: str
    sample_count: int
    products: List[ProductSummary] = field(default_factory=list)
    representative_products: List[ProductSummary] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "leaf",
            "id": self.id,
            "sample_count": self.sample_count,
            "products": [p.to_dict() for p in self.products],
            "representative_products": [
                p.to_dict() for p in self.representative_products
            ],
        }


@dataclass(slots=True)
class NumericQuestionNode:
    """"At or below ``threshold``?" goes left, "above" goes right."""

    id: str
    feature: str
    question: str
    threshold: float
    options: List[QuestionChoice]
    left: QuestionTreeNode
    right: QuestionTreeNode
    sample_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "numeric",
            "id": self.id,
            "feature": self.feature,
            "question": self.question,
            "threshold": self.threshold,
            "options": [o.to_dict() for o in self.options],
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
            "sample_count": self.sample_count,
        }


@dataclass(slots=True)
class CategoricalQuestionNode:
    """One child per answer option, keyed by the option value."""

    id: str
    feature: str
    question: str
    options: List[QuestionChoice]
    children: Dict[str, QuestionTreeNode]
    sample_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "categorical",
            "id": self.id,
            "feature": self.feature,
            "question": self.question,
            "options": [o.to_dict() for o in self.options],
            "children": {k: v.to_dict() for k, v in self.children.items()},
            "sample_count": self.sample_count,
        }


QuestionTreeNode: TypeAlias = (
    QuestionLeaf | NumericQuestionNode | CategoricalQuestionNode
)


def question_node_from_dict(d: Dict[str, Any]) -> QuestionTreeNode:
    """Rebuild a question-tree node (and its subtree) from its tagged dictionary."""
    kind = d.get("type")
    if kind == "leaf":
        return QuestionLeaf(
            id=d["id"],
            sample_count=int(d["sample_count"]),
            products=[ProductSummary.from_dict(p) for p in d.get("products", [])],
            representative_products=[
                ProductSummary.from_dict(p)
                for p in d.get("representative_products", [])
            ],
        )
    if kind == "numeric":
        return NumericQuestionNode(
            id=d["id"],
            feature=d["feature"],
            question=d["question"],
            threshold=float(d["threshold"]),
            options=[QuestionChoice(**o) for o in d["options"]],
            left=question_node_from_dict(d["left"]),
            right=question_node_from_dict(d["right"]),
            sample_count=int(d["sample_count"]),
        )
    if kind == "categorical":
        return CategoricalQuestionNode(
            id=d["id"],
            feature=d["feature"],
            question=d["question"],
            options=[QuestionChoice(**o) for o in d["options"]],
            children={k: question_node_from_dict(v) for k, v in d["children"].items()},
            sample_count=int(d["sample_count"]),
        )
    raise CorruptionError(f"Unknown question tree node type: {kind!r}")


@dataclass(slots=True)
class QuestionTreeBuildResult:
    headers: List[str]
    feature_metadata: List[FeatureMetadata]
    question_tree: QuestionTreeNode
