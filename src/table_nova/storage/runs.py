"""
Run store contract and in-memory implementation.

A run store is a key-value store of StoredRun records keyed by graph
IRI. ``put`` on an existing key fully replaces the prior value
(last-write-wins), ``list_runs`` returns metadata newest first, and
every operation is atomic for its single record.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from table_nova.models import RunSummary, StoredRun

logger = logging.getLogger(__name__)


class RunStoreError(Exception):
    """A store operation failed; carries the operation and target key."""

    def __init__(self, operation: str, target: str, message: str):
        super().__init__(f"{operation} <{target}> failed: {message}")
        self.operation = operation
        self.target = target
        self.message = message


class RunStore(ABC):
    """Persistence contract for runs, keyed by graph IRI."""

    @abstractmethod
    def put(self, run: StoredRun) -> None:
        """Store a run, replacing any run with the same graph IRI."""

    @abstractmethod
    def list_runs(self) -> List[RunSummary]:
        """Metadata of all runs, sorted by created_at descending."""

    @abstractmethod
    def get(self, graph_iri: str) -> Optional[StoredRun]:
        """The full run, or None when absent."""

    @abstractmethod
    def delete(self, graph_iri: str) -> None:
        """Remove a run; deleting an absent key is not an error."""

    def __contains__(self, graph_iri: str) -> bool:
        return self.get(graph_iri) is not None


def sort_summaries(summaries: List[RunSummary]) -> List[RunSummary]:
    return sorted(summaries, key=lambda s: s.created_at, reverse=True)


class MemoryRunStore(RunStore):
    """Dict-backed run store for tests and ephemeral sessions."""

    def __init__(self):
        self._runs: Dict[str, StoredRun] = {}
        self._lock = threading.Lock()

    def put(self, run: StoredRun) -> None:
        copy = StoredRun(run.graph_iri, run.filename, run.created_at, list(run.quads))
        with self._lock:
            replaced = run.graph_iri in self._runs
            self._runs[run.graph_iri] = copy
        logger.info(f"{'Replaced' if replaced else 'Stored'} run <{run.graph_iri}> ({len(run.quads)} quads)")

    def list_runs(self) -> List[RunSummary]:
        with self._lock:
            return sort_summaries([r.summary() for r in self._runs.values()])

    def get(self, graph_iri: str) -> Optional[StoredRun]:
        with self._lock:
            run = self._runs.get(graph_iri)
        if run is None:
            return None
        return StoredRun(run.graph_iri, run.filename, run.created_at, list(run.quads))

    def delete(self, graph_iri: str) -> None:
        with self._lock:
            self._runs.pop(graph_iri, None)
        logger.info(f"Deleted run <{graph_iri}>")
