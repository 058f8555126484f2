from __future__ import annotations

from typing import Any, Dict, Literal, TypeAlias
from dataclasses import dataclass, field, asdict


AttributeType: TypeAlias = Literal[
    "price",
    "rating",
    "count",
    "percentage",
    "duration",
    "coordinate",
    "identifier",
    "dimension",
    "weight",
    "unknown",
]
PreferenceDirection: TypeAlias = Literal["higher_better", "lower_better", "neutral"]
ValueScale: TypeAlias = Literal["small", "medium", "large"]


@dataclass(slots=True, frozen=True)
class ValueRange:
    """Summary statistics of an attribute's valid values."""

    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    median: float = 0.0
    std_dev: float = field(
        default=0.0, metadata={"description": "Population standard deviation."}
    )
    q25: float = field(
        default=0.0,
        metadata={"description": "Nearest-rank 25th percentile (no interpolation)."},
    )
    q75: float = field(
        default=0.0,
        metadata={"description": "Nearest-rank 75th percentile (no interpolation)."},
    )


@dataclass(slots=True, frozen=True)
class AttributeProfile:
    """Semantic profile of a single catalog feature."""

    name: str = field(metadata={"description": "The feature name."})
    type: AttributeType = field(metadata={"description": "Inferred semantic type."})
    is_preference_relevant: bool = field(
        metadata={
            "description": "Whether a shopper could have a preference about it."
        }
    )
    value_range: ValueRange
    scale: ValueScale = field(
        metadata={"description": "Order of magnitude of the values."}
    )
    direction: PreferenceDirection = field(
        metadata={"description": "Which end of the range shoppers usually prefer."}
    )
    description: str = field(
        metadata={"description": "Human-readable name used in question text."}
    )
    unit: str | None = None
    categorical: bool = False
    unique_values: int = 0
    unique_value_ratio: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert the profile to a dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> AttributeProfile:
        """Convert a dictionary to a profile."""
        d = dict(d)
        d["value_range"] = ValueRange(**d["value_range"])
        return cls(**d)
