"""Natural-language questions for oblique tree splits."""

from ._split_analyzer import BranchStatistics, DistinguishingAttribute, SplitAnalysis
from ._split_analyzer import analyze_split, describe_left_branch
from ._split_analyzer import describe_right_branch, collect_products
from ._generator import Question, generate_question, generate_attribute_question
from ._generator import describe_attribute, question_id

__all__ = [
    "BranchStatistics",
    "DistinguishingAttribute",
    "SplitAnalysis",
    "analyze_split",
    "describe_left_branch",
    "describe_right_branch",
    "collect_products",
    "Question",
    "generate_question",
    "generate_attribute_question",
    "describe_attribute",
    "question_id",
]
