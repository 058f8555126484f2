"""Axis-aligned question trees over raw catalog attributes."""

from ._types import FeatureMetadata, ProductSummary, QuestionChoice, QuestionLeaf
from ._types import NumericQuestionNode, CategoricalQuestionNode, QuestionTreeNode
from ._types import QuestionTreeBuildResult, question_node_from_dict
from ._builder import QuestionTreeBuilder, build_question_tree, compute_score
from ._builder import infer_feature_metadata, humanize, format_value
from ._builder import OTHER_KEY, MISSING_KEY

__all__ = [
    "FeatureMetadata",
    "ProductSummary",
    "QuestionChoice",
    "QuestionLeaf",
    "NumericQuestionNode",
    "CategoricalQuestionNode",
    "QuestionTreeNode",
    "QuestionTreeBuildResult",
    "question_node_from_dict",
    "QuestionTreeBuilder",
    "build_question_tree",
    "compute_score",
    "infer_feature_metadata",
    "humanize",
    "format_value",
    "OTHER_KEY",
    "MISSING_KEY",
]
