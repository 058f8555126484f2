"""Stateless traversal helpers for both tree kinds.

Session state (the steps a customer has taken) belongs to the caller; helpers
here return new values and never mutate their inputs.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging

import numpy as np

from preference_tree.core._exceptions import DimensionMismatch, InvalidOperation
from preference_tree.core._exceptions import NotALeaf
from preference_tree.core._types import Side
from preference_tree.oblique._types import InternalNode, LeafNode, ProductVector
from preference_tree.oblique._types import TreeNode
from preference_tree.question_tree._builder import OTHER_KEY
from preference_tree.question_tree._types import CategoricalQuestionNode
from preference_tree.question_tree._types import NumericQuestionNode, QuestionLeaf
from preference_tree.question_tree._types import QuestionTreeNode


logger = logging.getLogger(__name__)

LEFT_CHOICES = {"left", "<=", "leq"}
RIGHT_CHOICES = {"right", ">", "gt"}


@dataclass(slots=True, frozen=True)
class Answer:
    choice: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True, frozen=True)
class NavigationStep:
    """One answered question of a session."""

    node_id: str
    question: str
    answer: Answer


def is_leaf(node: TreeNode | QuestionTreeNode) -> bool:
    return isinstance(node, (LeafNode, QuestionLeaf))


def navigate(node: TreeNode, side: Side) -> TreeNode:
    """Follow an answer from an internal oblique node to the chosen child.

    Raises:
        InvalidOperation: If ``node`` is a leaf or ``side`` is neither
            "left" nor "right".
    """
    if not isinstance(node, InternalNode):
        raise InvalidOperation("Cannot navigate from a leaf node")
    if side == "left":
        return node.left
    if side == "right":
        return node.right
    raise InvalidOperation(f"Unknown side {side!r}, expected 'left' or 'right'")


def projection(
    vector: ProductVector | Sequence[float], weights: Sequence[float]
) -> float:
    """Dot product of a product's normalized values with split weights.

    Raises:
        DimensionMismatch: If the lengths differ.
    """
    values = vector.values if isinstance(vector, ProductVector) else vector
    if len(values) != len(weights):
        raise DimensionMismatch(
            f"Product has {len(values)} values, the split has {len(weights)} weights"
        )
    return float(np.dot(np.asarray(values, dtype=float), np.asarray(weights)))


def side(
    vector: ProductVector | Sequence[float],
    weights: Sequence[float],
    threshold: float,
) -> Side:
    """Which side of the hyperplane a product falls on. Ties go left."""
    return "left" if projection(vector, weights) <= threshold else "right"


def leaf_products(node: TreeNode) -> List[ProductVector]:
    """Products of an oblique leaf.

    Raises:
        NotALeaf: If ``node`` is an internal node.
    """
    if not isinstance(node, LeafNode):
        raise NotALeaf("Node is not a leaf")
    return node.products


def route(node: TreeNode, vector: ProductVector | Sequence[float]) -> LeafNode:
    """Walk a product down to the leaf it belongs to."""
    current = node
    while isinstance(current, InternalNode):
        current = navigate(current, side(vector, current.weights, current.threshold))
    return current


def follow_question_tree(node: QuestionTreeNode, choice: str) -> QuestionTreeNode:
    """Follow an answer option in the question tree.

    Numeric nodes accept the option values ``"<="`` and ``">"`` (or their ids
    and ``"left"``/``"right"``). Categorical nodes accept a category value; an
    unknown value follows the "Other" branch when the node has one.

    Raises:
        InvalidOperation: If ``node`` is a leaf or the choice matches no branch.
    """
    if isinstance(node, NumericQuestionNode):
        if choice in LEFT_CHOICES:
            return node.left
        if choice in RIGHT_CHOICES:
            return node.right
        raise InvalidOperation(f"'{choice}' is not an option of question {node.id}")

    if isinstance(node, CategoricalQuestionNode):
        if choice in node.children:
            return node.children[choice]
        if OTHER_KEY in node.children:
            logger.debug(f"Unknown choice '{choice}' at {node.id}. Following Other.")
            return node.children[OTHER_KEY]
        raise InvalidOperation(f"'{choice}' is not an option of question {node.id}")

    raise InvalidOperation("Cannot navigate from a leaf node")


def record_step(
    steps: Sequence[NavigationStep],
    node_id: str,
    question: str,
    choice: str,
    timestamp: datetime | None = None,
) -> Tuple[NavigationStep, ...]:
    """Return ``steps`` extended with a new answered question."""
    answer = Answer(choice) if timestamp is None else Answer(choice, timestamp)
    return (*steps, NavigationStep(node_id=node_id, question=question, answer=answer))
