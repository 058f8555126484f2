"""Shared configuration, exceptions and types."""

from ._config import Settings, settings
from ._exceptions import DataError, CorruptionError, InvalidNodeKind
from ._exceptions import InvalidOperation, DimensionMismatch, NotALeaf

__all__ = [
    "Settings",
    "settings",
    "DataError",
    "CorruptionError",
    "InvalidNodeKind",
    "InvalidOperation",
    "DimensionMismatch",
    "NotALeaf",
]
