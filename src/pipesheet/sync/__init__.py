"""Schema discovery and two-way sync engine."""

from .codec import ValueCodec
from .flattener import SchemaFlattener, discover_columns
from .grid_writer import GridWriter, WriteOptions
from .preferences import ColumnPreferenceStore
from .reconciler import Reconciler
from .tracker import RowChangeTracker

__all__ = [
    "ColumnPreferenceStore",
    "GridWriter",
    "Reconciler",
    "RowChangeTracker",
    "SchemaFlattener",
    "ValueCodec",
    "WriteOptions",
    "discover_columns",
]
