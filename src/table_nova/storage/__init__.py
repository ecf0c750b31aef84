"""
Run persistence for Table Nova.

- RunStore: contract (put / list_runs / get / delete), keyed by graph IRI
- MemoryRunStore: in-process dict store
- ParquetRunStore: one directory per run, Parquet quad table
"""

from table_nova.storage.persistence import ParquetRunStore
from table_nova.storage.runs import MemoryRunStore, RunStore, RunStoreError

__all__ = [
    "RunStore",
    "RunStoreError",
    "MemoryRunStore",
    "ParquetRunStore",
]
