"""Question tree.

A compact axis-aligned tree over the raw catalog attributes. Every internal
node carries its question text and answer options, fixed at build time, so a
questionnaire can be replayed without regenerating anything. Splits reduce the
variance of a synthetic per-product score that is never shown to users.
"""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple
from dataclasses import dataclass
import hashlib
import logging
import re

import numpy as np
import pandas as pd

from preference_tree.core._config import settings
from preference_tree.oblique._types import BuildOptions
from preference_tree.oblique._vectorizer import product_ids, to_frame
from ._types import CategoricalQuestionNode, FeatureMetadata, NumericQuestionNode
from ._types import ProductSummary, QuestionChoice, QuestionLeaf
from ._types import QuestionTreeBuildResult, QuestionTreeNode


logger = logging.getLogger(__name__)

OTHER_KEY = "__OTHER__"
MISSING_KEY = "__MISSING__"

SCORE_FIELD_KEYWORDS = ("rating", "review", "score", "popularity", "rank", "quality")
LOWER_BETTER_KEYWORDS = ("price", "cost", "time", "duration", "ship", "wait")

ID_LIKE = re.compile(
    r"(^id$|[_\s-]id$|product|sku|uuid|serial|code|identifier)", re.I
)
TIMESTAMP_LIKE = re.compile(r"(timestamp|created_at|updated_at|date)", re.I)


def humanize(text: str) -> str:
    """``"shipping_days"`` -> ``"Shipping Days"``."""
    text = re.sub(r"[_-]", " ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), text)


def format_value(value: float, meta: FeatureMetadata | None = None) -> str:
    if meta is None:
        return f"{value:.2f}"
    lower = meta.name.lower()
    if "price" in lower or "cost" in lower:
        return f"${value:.2f}"
    if "rating" in lower or "review" in lower:
        return f"{value:.1f}"
    if abs(value) >= 100:
        return f"{value:.0f}"
    return f"{value:.2f}"


def _parse_numbers(series: pd.Series) -> pd.Series:
    parsed = pd.to_numeric(series.where(series != ""), errors="coerce").astype(float)
    return parsed.where(np.isfinite(parsed))


def infer_feature_metadata(
    headers: Sequence[str], frame: pd.DataFrame
) -> List[FeatureMetadata]:
    """Classify every column as numeric, categorical or ignored."""
    metadata: List[FeatureMetadata] = []

    for idx, name in enumerate(headers):
        series = frame[idx]
        nonempty = series[series != ""]
        parsed = _parse_numbers(nonempty)
        numbers = parsed.dropna()

        fraction = numbers.shape[0] / nonempty.shape[0] if nonempty.shape[0] else 0.0
        is_numeric = fraction >= settings.NUMERIC_FRACTION
        distinct = [str(v) for v in pd.unique(nonempty)][:50]

        type_ = "numeric" if is_numeric else "categorical"
        min_ = max_ = None
        if is_numeric and not numbers.empty:
            min_, max_ = float(numbers.min()), float(numbers.max())

        excluded = bool(ID_LIKE.search(name) or TIMESTAMP_LIKE.search(name))
        if type_ == "numeric":
            worthy = (max_ or 0.0) != (min_ or 0.0)
        else:
            worthy = 1 < len(distinct) <= 30
        question_worthy = not excluded and worthy

        metadata.append(
            FeatureMetadata(
                name=name,
                type=type_ if question_worthy else "ignored",
                distinct_values=distinct,
                min=min_,
                max=max_,
                question_worthy=question_worthy,
                example_values=distinct[:3],
            )
        )

    return metadata


def _number(attributes: Dict[str, str], name: str) -> float | None:
    try:
        value = float(attributes.get(name, ""))
    except ValueError:
        return None
    return value if np.isfinite(value) else None


def compute_score(
    attributes: Dict[str, str], metadata: Sequence[FeatureMetadata]
) -> float:
    """Synthetic preference score of one product.

    A rating-like numeric attribute is used directly when the product has a
    value for it. Otherwise the score is the mean of the min-max normalized
    numeric attributes, flipped for lower-is-better names.
    """
    numeric = [m for m in metadata if m.type == "numeric"]
    scoring = next(
        (
            m
            for m in numeric
            if any(kw in m.name.lower() for kw in SCORE_FIELD_KEYWORDS)
        ),
        None,
    )
    if scoring is not None:
        direct = _number(attributes, scoring.name)
        if direct is not None:
            return direct

    normalized: List[float] = []
    for meta in numeric:
        value = _number(attributes, meta.name)
        if value is None or meta.min is None or meta.max is None:
            continue
        span = meta.max - meta.min
        if span == 0:
            continue
        x = (value - meta.min) / span
        if any(kw in meta.name.lower() for kw in LOWER_BETTER_KEYWORDS):
            x = 1 - x
        normalized.append(min(1.0, max(0.0, x)))

    if not normalized:
        return 1.0
    return float(np.mean(normalized))


def _variance(items: Sequence[ProductSummary]) -> float:
    if not items:
        return 0.0
    return float(np.var([item.score for item in items]))


def _weighted_variance(
    branches: Sequence[Sequence[ProductSummary]], total: int
) -> float:
    return sum(len(b) / total * _variance(b) for b in branches)


@dataclass(slots=True)
class _NumericSplit:
    feature: str
    threshold: float
    gain: float
    left: List[ProductSummary]
    right: List[ProductSummary]


@dataclass(slots=True)
class _CategoricalSplit:
    feature: str
    gain: float
    branches: Dict[str, List[ProductSummary]]


class QuestionTreeBuilder:
    """Greedy builder for the raw-attribute question tree."""

    def __init__(self, options: BuildOptions | None = None):
        self.options = options or BuildOptions()
        self.max_depth = self.options.question_tree_max_depth
        self.min_leaf_size = self.options.question_tree_min_leaf_size
        self.min_gain = self.options.question_tree_min_gain
        self._meta_by_name: Dict[str, FeatureMetadata] = {}
        self._worthy: List[FeatureMetadata] = []

    def build(
        self, products: Sequence[ProductSummary], metadata: Sequence[FeatureMetadata]
    ) -> QuestionTreeNode:
        self._meta_by_name = {m.name: m for m in metadata}
        self._worthy = [
            m for m in metadata if m.question_worthy and m.type != "ignored"
        ]
        root = self._build_node(list(products), depth=0)
        logger.info(
            f"Built question tree over {len(products)} products "
            f"using {len(self._worthy)} question-worthy attributes"
        )
        return root

    def _build_node(self, items: List[ProductSummary], depth: int) -> QuestionTreeNode:
        if depth >= self.max_depth or len(items) <= self.min_leaf_size:
            return make_leaf(items, depth)

        split = self.find_best_split(items)
        if split is None:
            logger.debug(f"Question leaf at depth {depth} with {len(items)} products")
            return make_leaf(items, depth)

        if isinstance(split, _NumericSplit):
            question, options = numeric_question(
                split.feature, split.threshold, self._meta_by_name.get(split.feature)
            )
            return NumericQuestionNode(
                id=f"num_{split.feature}_{split.threshold:.4f}_{depth}",
                feature=split.feature,
                question=question,
                threshold=split.threshold,
                options=options,
                left=self._build_node(split.left, depth + 1),
                right=self._build_node(split.right, depth + 1),
                sample_count=len(items),
            )

        question, options = categorical_question(split.feature, list(split.branches))
        return CategoricalQuestionNode(
            id=f"cat_{split.feature}_{depth}",
            feature=split.feature,
            question=question,
            options=options,
            children={
                key: self._build_node(branch, depth + 1)
                for key, branch in split.branches.items()
            },
            sample_count=len(items),
        )

    def find_best_split(
        self, items: Sequence[ProductSummary]
    ) -> _NumericSplit | _CategoricalSplit | None:
        """Best split by score variance reduction, or None below the minimum gain."""
        parent = _variance(items)
        best: _NumericSplit | _CategoricalSplit | None = None
        best_gain = self.min_gain

        for meta in self._worthy:
            if meta.type == "numeric":
                candidate = self._numeric_split(items, meta, parent)
            else:
                candidate = self._categorical_split(items, meta, parent)
            if candidate is not None and candidate.gain > best_gain:
                best_gain = candidate.gain
                best = candidate
        return best

    def _numeric_split(
        self, items: Sequence[ProductSummary], meta: FeatureMetadata, parent: float
    ) -> _NumericSplit | None:
        values = [_number(item.attributes, meta.name) for item in items]
        known = sorted({v for v in values if v is not None})
        if sum(v is not None for v in values) < self.min_leaf_size * 2:
            return None

        mids = [(a + b) / 2 for a, b in zip(known[:-1], known[1:])]
        best: _NumericSplit | None = None
        for thr in mids[: settings.QUESTION_TREE_MAX_THRESHOLDS]:
            left = [it for it, v in zip(items, values) if v is not None and v <= thr]
            # Missing values follow the "above" answer
            right = [it for it, v in zip(items, values) if v is None or v > thr]
            if len(left) < self.min_leaf_size or len(right) < self.min_leaf_size:
                continue
            gain = parent - _weighted_variance([left, right], len(items))
            if best is None or gain > best.gain:
                best = _NumericSplit(meta.name, float(thr), gain, left, right)
        return best

    def _categorical_split(
        self, items: Sequence[ProductSummary], meta: FeatureMetadata, parent: float
    ) -> _CategoricalSplit | None:
        keys = [item.attributes.get(meta.name, "") or MISSING_KEY for item in items]
        counts: Dict[str, int] = {}
        for key in keys:
            counts[key] = counts.get(key, 0) + 1
        # Frequency desc, first appearance on ties
        ranked = sorted(counts.items(), key=lambda kv: -kv[1])
        top = [cat for cat, count in ranked if count >= self.min_leaf_size][
            : settings.QUESTION_TREE_MAX_CATEGORIES
        ]

        branches: Dict[str, List[ProductSummary]] = {cat: [] for cat in top}
        for item, key in zip(items, keys):
            branches.setdefault(key if key in branches else OTHER_KEY, []).append(item)

        other = branches.get(OTHER_KEY)
        if other is not None and len(other) < self.min_leaf_size and top:
            # Undersized Other absorbs the least frequent kept category
            other.extend(branches.pop(top.pop()))

        if len(branches) < 2:
            return None
        gain = parent - _weighted_variance(list(branches.values()), len(items))
        if gain <= 0:
            return None
        return _CategoricalSplit(meta.name, gain, branches)


def make_leaf(items: Sequence[ProductSummary], depth: int) -> QuestionLeaf:
    ranked = sorted(items, key=lambda p: -p.score)
    digest = hashlib.blake2b(
        "|".join(p.id for p in items).encode("utf-8"), digest_size=4
    ).hexdigest()
    return QuestionLeaf(
        id=f"leaf_{depth}_{digest}",
        sample_count=len(items),
        products=ranked[: settings.MAX_PRODUCTS_PER_LEAF],
        representative_products=ranked[: settings.REPRESENTATIVE_PRODUCTS],
    )


def numeric_question(
    feature: str, threshold: float, meta: FeatureMetadata | None = None
) -> Tuple[str, List[QuestionChoice]]:
    formatted = format_value(threshold, meta)
    question = f"Are you looking for {humanize(feature)} at or below {formatted}?"
    options = [
        QuestionChoice(id="leq", label=f"At or below {formatted}", value="<="),
        QuestionChoice(id="gt", label=f"Above {formatted}", value=">"),
    ]
    return question, options


def categorical_question(
    feature: str, categories: Sequence[str]
) -> Tuple[str, List[QuestionChoice]]:
    labels = {OTHER_KEY: "Other", MISSING_KEY: "Not specified"}
    options = [
        QuestionChoice(id=cat, label=labels.get(cat) or humanize(cat), value=cat)
        for cat in categories
    ]
    return f"Which {humanize(feature)} do you prefer?", options


def build_question_tree(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    options: BuildOptions | None = None,
) -> QuestionTreeBuildResult:
    """Infer feature metadata and grow the question tree for a catalog.

    Args:
        headers: Column names.
        rows: Catalog rows as strings.
        options: Build options; the ``question_tree_*`` fields apply.

    Returns:
        The headers, the per-column metadata and the root of the tree.

    Raises:
        DataError: If headers or rows are missing.
    """
    frame = to_frame(headers, rows)
    metadata = infer_feature_metadata(headers, frame)
    worthy = [m for m in metadata if m.question_worthy and m.type != "ignored"]

    ids = product_ids(headers, frame)
    products: List[ProductSummary] = []
    for i in range(frame.shape[0]):
        attributes = {name: frame.iat[i, j] for j, name in enumerate(headers)}
        products.append(
            ProductSummary(
                id=ids[i],
                attributes=attributes,
                original_row=[str(c) for c in rows[i]],
                score=compute_score(attributes, worthy),
            )
        )

    root = QuestionTreeBuilder(options).build(products, metadata)
    return QuestionTreeBuildResult(
        headers=list(headers), feature_metadata=metadata, question_tree=root
    )
