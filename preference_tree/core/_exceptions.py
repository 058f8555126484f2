class DataError(Exception):
    """Data not in the expected format."""


class CorruptionError(Exception):
    """A serialized tree could not be restored. Its payload is corrupted."""


class InvalidNodeKind(Exception):
    """The operation does not apply to this kind of tree node."""


class InvalidOperation(Exception):
    """Navigation was attempted from a node that has no children."""


class DimensionMismatch(Exception):
    """A vector and a weight vector have different lengths."""


class NotALeaf(Exception):
    """Leaf-only data was requested from an internal node."""
