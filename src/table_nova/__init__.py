"""
Table Nova: tabular data (CSV, TSV, XLSX) to RDF named graphs.

Each run becomes one named graph with one subject per data row, stored
under its graph IRI and serialized to Turtle, TriG, N-Triples, N-Quads
and JSON-LD.
"""

__version__ = "0.1.0"

from table_nova.config import ConfigValidationError, NamespaceConfig, TableNovaConfig
from table_nova.dataset import RdfDataset, build_dataset_from_tabular, dataset_from_quads
from table_nova.engine import RunInProgressError, RunOutcome, TableNovaEngine, create_store
from table_nova.formats import SerializationError, Serializations, Serializer
from table_nova.models import (
    DelimiterHint,
    FileOptions,
    PredicateCasing,
    PredicateOptions,
    QuadRecord,
    RunSummary,
    StoredRun,
    TabularData,
    Term,
    TermKind,
    WhenNoHeader,
)
from table_nova.storage import MemoryRunStore, ParquetRunStore, RunStore, RunStoreError
from table_nova.tabular import TabularParseError, load_tabular, preview_tabular

__all__ = [
    "TableNovaEngine",
    "RunOutcome",
    "RunInProgressError",
    "create_store",
    # Configuration
    "TableNovaConfig",
    "NamespaceConfig",
    "ConfigValidationError",
    # Models
    "FileOptions",
    "PredicateOptions",
    "PredicateCasing",
    "WhenNoHeader",
    "DelimiterHint",
    "TabularData",
    "Term",
    "TermKind",
    "QuadRecord",
    "RunSummary",
    "StoredRun",
    # Pipeline
    "load_tabular",
    "preview_tabular",
    "TabularParseError",
    "RdfDataset",
    "build_dataset_from_tabular",
    "dataset_from_quads",
    "Serializer",
    "Serializations",
    "SerializationError",
    # Storage
    "RunStore",
    "RunStoreError",
    "MemoryRunStore",
    "ParquetRunStore",
]
