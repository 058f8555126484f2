"""Feature vectorization.

Encodes catalog rows into numeric vectors: numeric columns pass through and
categorical columns are one-hot encoded with a capped vocabulary and an
"Other" bucket. Every feature is then min-max normalized to [0, 1].
"""

from __future__ import annotations

from typing import List, Literal, Sequence, Tuple
from dataclasses import dataclass, field
import logging
import re

import numpy as np
import numpy.typing as npt
import pandas as pd

from preference_tree.core._config import settings
from preference_tree.core._exceptions import DataError
from ._types import Normalization, ProductVector


logger = logging.getLogger(__name__)

FloatArray = npt.NDArray[np.float64]

OTHER_CATEGORY = "Other"

ID_LIKE = re.compile(r"(^id$|_id$|^product_?(id|name)?$|sku|serial|code|uuid)", re.I)
COORDINATE_LIKE = re.compile(
    r"(^(lat|lng|lon|long|latitude|longitude)$|coord)", re.I
)


def is_id_like(name: str) -> bool:
    return bool(ID_LIKE.search(name.strip()))


def is_coordinate_like(name: str) -> bool:
    return bool(COORDINATE_LIKE.search(name.strip()))


@dataclass(slots=True)
class ColumnEncoding:
    """How one source column is turned into features."""

    index: int
    name: str
    kind: Literal["numeric", "categorical"]
    categories: List[str] = field(default_factory=list)
    has_other: bool = False
    fill_value: float = 0.0

    @property
    def feature_names(self) -> List[str]:
        if self.kind == "numeric":
            return [self.name]
        names = [f"{self.name}={cat}" for cat in self.categories]
        if self.has_other:
            names.append(f"{self.name}={OTHER_CATEGORY}")
        return names


@dataclass(slots=True)
class VectorizedCatalog:
    """The encoded catalog handed to the oblique tree builder."""

    feature_names: List[str]
    products: List[ProductVector]
    normalization: Normalization
    columns: List[ColumnEncoding]
    raw_matrix: FloatArray
    matrix: FloatArray


def to_frame(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> pd.DataFrame:
    """Build a string DataFrame, padding short rows and trimming long ones."""
    if not headers:
        raise DataError("CSV headers missing. Cannot build a preference tree.")
    if not rows:
        raise DataError("No CSV rows found. Cannot build a preference tree.")

    width = len(headers)
    cells = [
        [("" if c is None else str(c)).strip() for c in list(row)[:width]]
        + [""] * max(0, width - len(row))
        for row in rows
    ]
    frame = pd.DataFrame(cells, columns=range(width), dtype=object)
    return frame


def _numeric_fraction(values: pd.Series) -> Tuple[float, pd.Series]:
    parsed = pd.to_numeric(values, errors="coerce")
    parsed = parsed.where(np.isfinite(parsed.astype(float)))
    if values.shape[0] == 0:
        return 0.0, parsed
    return float(parsed.notna().sum() / values.shape[0]), parsed


def _encode_categorical(index: int, name: str, values: pd.Series) -> ColumnEncoding:
    counts = values.value_counts(sort=True)
    total = max(int(counts.sum()), 1)
    # Stable order: frequency desc, then first appearance
    order = {v: i for i, v in enumerate(pd.unique(values))}
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], order[kv[0]]))

    supported = [
        str(cat)
        for cat, count in ranked
        if count >= settings.MIN_CATEGORY_SUPPORT
        or count / total >= settings.MIN_CATEGORY_FRACTION
    ]
    if not supported:
        supported = [str(cat) for cat, _ in ranked]

    kept = supported[: max(1, settings.MAX_CATEGORICAL_CARDINALITY)]
    has_other = len(ranked) > len(kept)
    return ColumnEncoding(
        index=index,
        name=name,
        kind="categorical",
        categories=kept,
        has_other=has_other,
    )


def classify_columns(
    headers: Sequence[str], frame: pd.DataFrame
) -> List[ColumnEncoding]:
    """Decide which columns become features and how they are encoded."""
    columns: List[ColumnEncoding] = []

    for idx, name in enumerate(headers):
        series = frame[idx]
        nonempty = series[series != ""]
        if nonempty.empty:
            logger.debug(f"Skipping empty column '{name}'")
            continue

        if is_id_like(name) or is_coordinate_like(name):
            logger.debug(f"Skipping identifier/coordinate column '{name}'")
            continue

        fraction, parsed = _numeric_fraction(nonempty)
        if fraction >= settings.NUMERIC_FRACTION:
            numbers = parsed.dropna().astype(float)
            unique_ratio = numbers.nunique() / numbers.shape[0]
            all_integers = bool((numbers == np.floor(numbers)).all())
            if all_integers and unique_ratio > 0.95 and numbers.shape[0] >= 10:
                logger.debug(f"Skipping sequential identifier column '{name}'")
                continue
            if float(numbers.max() - numbers.min()) == 0:
                logger.debug(f"Skipping zero-variance column '{name}'")
                continue
            columns.append(
                ColumnEncoding(
                    index=idx,
                    name=name,
                    kind="numeric",
                    fill_value=float(numbers.median()),
                )
            )
            continue

        encoding = _encode_categorical(idx, name, nonempty)
        if len(encoding.categories) + int(encoding.has_other) < 2:
            logger.debug(f"Skipping single-valued categorical column '{name}'")
            continue
        columns.append(encoding)

    return columns


def encode(frame: pd.DataFrame, columns: Sequence[ColumnEncoding]) -> FloatArray:
    """Encode every row into the raw (unnormalized) feature matrix."""
    blocks: List[FloatArray] = []
    for col in columns:
        series = frame[col.index]
        if col.kind == "numeric":
            parsed = pd.to_numeric(series.where(series != ""), errors="coerce")
            parsed = parsed.astype(float)
            parsed = parsed.where(np.isfinite(parsed), col.fill_value)
            blocks.append(parsed.to_numpy(dtype=float).reshape(-1, 1))
            continue

        for cat in col.categories:
            blocks.append((series == cat).to_numpy(dtype=float).reshape(-1, 1))
        if col.has_other:
            is_other = (series != "") & ~series.isin(col.categories)
            blocks.append(is_other.to_numpy(dtype=float).reshape(-1, 1))

    return np.hstack(blocks) if blocks else np.zeros((frame.shape[0], 0))


def normalize(raw: FloatArray) -> Tuple[FloatArray, Normalization]:
    """Min-max normalize each column; a constant column maps to 0.5."""
    if raw.shape[0] == 0:
        return raw.copy(), Normalization(mins=[], maxs=[])

    mins = raw.min(axis=0)
    maxs = raw.max(axis=0)
    ranges = maxs - mins
    safe = np.where(ranges == 0, 1.0, ranges)
    normalized = np.where(ranges == 0, 0.5, (raw - mins) / safe)
    return normalized, Normalization(
        mins=[float(v) for v in mins], maxs=[float(v) for v in maxs]
    )


def product_ids(headers: Sequence[str], frame: pd.DataFrame) -> List[str]:
    id_index = next((i for i, h in enumerate(headers) if is_id_like(h)), None)
    ids: List[str] = []
    for row_index in range(frame.shape[0]):
        cell = frame.iat[row_index, id_index] if id_index is not None else ""
        ids.append(cell if cell else f"product_{row_index}")
    return ids


def vectorize(
    headers: Sequence[str], rows: Sequence[Sequence[str]]
) -> VectorizedCatalog:
    """Encode and normalize a catalog.

    Args:
        headers: Column names.
        rows: Catalog rows as strings, one cell per header.

    Returns:
        The encoded catalog with its feature names and normalization bounds.

    Raises:
        DataError: If the input is empty or no usable column remains.
    """
    frame = to_frame(headers, rows)
    columns = classify_columns(headers, frame)
    if not columns:
        raise DataError(
            "No meaningful columns found. A preference tree requires "
            "preference-relevant attributes."
        )

    feature_names = [name for col in columns for name in col.feature_names]
    raw = encode(frame, columns)
    matrix, normalization = normalize(raw)

    ids = product_ids(headers, frame)
    original_rows = [[str(c) for c in row] for row in rows]
    products = [
        ProductVector(
            id=ids[i],
            values=[float(v) for v in matrix[i]],
            raw_values=[float(v) for v in raw[i]],
            original_row=original_rows[i],
        )
        for i in range(matrix.shape[0])
    ]

    logger.info(
        f"Vectorized {len(products)} products into {len(feature_names)} features "
        f"from {len(columns)} of {len(headers)} columns"
    )
    return VectorizedCatalog(
        feature_names=feature_names,
        products=products,
        normalization=normalization,
        columns=columns,
        raw_matrix=raw,
        matrix=matrix,
    )
