"""
Run orchestration for Table Nova.

A run goes: raw bytes -> grid -> column keys / predicate IRIs / graph IRI
-> quads -> store -> serializations. Only one run is active at a time;
a run requested meanwhile is rejected, not interleaved.

Every public entry point returns a RunOutcome instead of raising, with
enough context (operation, target) to present a message. Storage is the
source of truth: a run's quads are stored before serialization, and a
serialization failure afterwards is reported without undoing the write.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from table_nova.config import TableNovaConfig
from table_nova.dataset import RdfDataset, build_dataset_from_tabular, dataset_from_quads
from table_nova.formats import SerializationError, Serializations, Serializer, export_filename, get_syntax
from table_nova.models import FileOptions, QuadRecord, RunSummary, StoredRun, TabularData
from table_nova.schema import build_column_keys, build_predicate_iris, build_run_graph_iri
from table_nova.storage import MemoryRunStore, ParquetRunStore, RunStore, RunStoreError
from table_nova.tabular import TabularParseError, load_tabular, preview_tabular

logger = logging.getLogger(__name__)


class RunInProgressError(RuntimeError):
    """Raised when a run is requested while another run is active."""


# Error kinds reported on failed outcomes
INPUT_ERROR = "input"
CODEC_ERROR = "codec"
STORE_ERROR = "store"
BUSY_ERROR = "busy"
NOT_FOUND_ERROR = "not_found"
INVALID_ERROR = "invalid"


@dataclass
class AssembledRun:
    """Everything derived from one grid before persistence."""
    filename: str
    graph_iri: str
    column_keys: List[str]
    predicate_iris: Dict[str, str]
    dataset: RdfDataset
    quads: List[QuadRecord]


@dataclass
class ExportedText:
    """One serialization ready for download."""
    filename: str
    media_type: str
    text: str


@dataclass
class RunOutcome:
    """Result of an engine entry point: success payload or failure context."""
    ok: bool
    operation: str
    target: str = ""
    error_kind: Optional[str] = None
    message: str = ""
    persisted: bool = False
    run: Optional[StoredRun] = None
    serializations: Optional[Serializations] = None
    runs: List[RunSummary] = field(default_factory=list)
    preview: Optional[TabularData] = None
    column_keys: List[str] = field(default_factory=list)
    export: Optional[ExportedText] = None

    @classmethod
    def failure(
        cls, operation: str, target: str, error_kind: str, message: str, **extra: Any
    ) -> "RunOutcome":
        return cls(ok=False, operation=operation, target=target, error_kind=error_kind,
                   message=message, **extra)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "ok": self.ok,
            "operation": self.operation,
            "target": self.target,
            "persisted": self.persisted,
        }
        if not self.ok:
            data["error"] = {"kind": self.error_kind, "message": self.message}
        if self.run is not None:
            data["run"] = self.run.to_dict()
        if self.serializations is not None:
            data["serializations"] = self.serializations.to_dict()
        if self.operation == "list":
            data["runs"] = [r.to_dict() for r in self.runs]
        if self.preview is not None:
            data["preview"] = self.preview.to_dict()
            data["columnKeys"] = self.column_keys
        return data


def create_store(config: TableNovaConfig) -> RunStore:
    """Instantiate the configured run store backend."""
    if config.store_backend == "memory":
        return MemoryRunStore()
    return ParquetRunStore(config.data_dir)


class TableNovaEngine:
    """
    Tabular -> RDF run engine.

    Usage:
        engine = TableNovaEngine(TableNovaConfig())
        outcome = engine.run_file("people.csv", data, FileOptions())
        if outcome.ok:
            print(outcome.serializations.turtle)

        engine.list_runs()
        engine.load_run(outcome.run.graph_iri)
    """

    def __init__(
        self,
        config: Optional[TableNovaConfig] = None,
        store: Optional[RunStore] = None,
        serializer: Optional[Serializer] = None,
    ):
        self.config = config or TableNovaConfig()
        self.store = store if store is not None else create_store(self.config)
        self.serializer = serializer or Serializer()
        self._run_lock = threading.Lock()

    @property
    def namespaces(self):
        return self.config.namespaces

    # =========================================================================
    # Core pipeline
    # =========================================================================

    def assemble(
        self,
        tabular: TabularData,
        options: FileOptions,
        filename: str,
        now: Optional[datetime] = None,
    ) -> AssembledRun:
        """Derive schema and identifiers for a grid and build its quads."""
        ns = self.namespaces
        column_keys = build_column_keys(
            tabular.header,
            tabular.rows,
            options.treat_first_row_as_header,
            options.predicate.when_no_header,
        )
        predicate_iris = build_predicate_iris(column_keys, options.predicate, ns.base_predicate_iri)
        graph_iri = build_run_graph_iri(ns.base_run_iri, filename, now)
        dataset, quads = build_dataset_from_tabular(
            tabular,
            options,
            predicate_iris,
            graph_iri,
            ns.base_instance_iri,
        )
        return AssembledRun(filename, graph_iri, column_keys, predicate_iris, dataset, quads)

    def serialize(self, dataset: RdfDataset, graph_iri: str) -> Serializations:
        return self.serializer.serialize(dataset, graph_iri, self.namespaces.prefixes)

    # =========================================================================
    # Entry points
    # =========================================================================

    def run_file(
        self,
        filename: str,
        data: Union[bytes, str],
        options: Optional[FileOptions] = None,
        now: Optional[datetime] = None,
    ) -> RunOutcome:
        """
        Convert one input, store it under its graph IRI, and serialize it.

        Args:
            filename: Original filename (kind detection, graph slug)
            data: Raw file bytes (or decoded text for delimited input)
            options: File options; config defaults when None
            now: Clock override for the graph date stamp and createdAt

        Returns:
            RunOutcome with the stored run and its serializations
        """
        if not self._run_lock.acquire(blocking=False):
            logger.warning(f"Rejected run of {filename}: another run is active")
            return RunOutcome.failure(
                "run", filename, BUSY_ERROR, str(RunInProgressError("Another run is already in progress"))
            )
        try:
            return self._run_locked(filename, data, options or self.config.default_file_options, now)
        finally:
            self._run_lock.release()

    def _run_locked(
        self,
        filename: str,
        data: Union[bytes, str],
        options: FileOptions,
        now: Optional[datetime],
    ) -> RunOutcome:
        now = now or datetime.now(timezone.utc)
        logger.info(f"Starting run for {filename}")

        try:
            tabular = load_tabular(filename, data, options)
        except TabularParseError as e:
            logger.warning(f"Run failed reading {filename}: {e}")
            return RunOutcome.failure("run", filename, INPUT_ERROR, str(e))

        assembled = self.assemble(tabular, options, filename, now)
        run = StoredRun(assembled.graph_iri, filename, now, assembled.quads)

        try:
            self.store.put(run)
        except RunStoreError as e:
            return RunOutcome.failure("put", assembled.graph_iri, STORE_ERROR, str(e))

        try:
            serializations = self.serialize(assembled.dataset, assembled.graph_iri)
        except SerializationError as e:
            logger.error(f"Serialization failed for stored run <{assembled.graph_iri}>: {e}")
            return RunOutcome.failure(
                "serialize", assembled.graph_iri, CODEC_ERROR, str(e), persisted=True, run=run
            )

        logger.info(
            f"Run complete for {filename}: {len(assembled.quads)} quads in <{assembled.graph_iri}>"
        )
        return RunOutcome(
            ok=True,
            operation="run",
            target=assembled.graph_iri,
            persisted=True,
            run=run,
            serializations=serializations,
            column_keys=assembled.column_keys,
        )

    def preview(
        self,
        filename: str,
        data: Union[bytes, str],
        options: Optional[FileOptions] = None,
        limit: int = 5,
    ) -> RunOutcome:
        """Parse an input and return its header, first rows and column keys."""
        options = options or self.config.default_file_options
        try:
            tabular = load_tabular(filename, data, options)
        except TabularParseError as e:
            return RunOutcome.failure("preview", filename, INPUT_ERROR, str(e))

        column_keys = build_column_keys(
            tabular.header,
            tabular.rows,
            options.treat_first_row_as_header,
            options.predicate.when_no_header,
        )
        return RunOutcome(
            ok=True,
            operation="preview",
            target=filename,
            preview=preview_tabular(tabular, limit),
            column_keys=column_keys,
        )

    def list_runs(self) -> RunOutcome:
        try:
            runs = self.store.list_runs()
        except RunStoreError as e:
            return RunOutcome.failure("list", "", STORE_ERROR, str(e))
        return RunOutcome(ok=True, operation="list", runs=runs)

    def load_run(self, graph_iri: str) -> RunOutcome:
        """Reload a stored run and re-serialize it with the current prefixes."""
        try:
            run = self.store.get(graph_iri)
        except RunStoreError as e:
            return RunOutcome.failure("get", graph_iri, STORE_ERROR, str(e))
        if run is None:
            return RunOutcome.failure("get", graph_iri, NOT_FOUND_ERROR, f"Run <{graph_iri}> not found")

        dataset = dataset_from_quads(run.quads)
        try:
            serializations = self.serialize(dataset, run.graph_iri)
        except SerializationError as e:
            return RunOutcome.failure("serialize", graph_iri, CODEC_ERROR, str(e), persisted=True, run=run)

        logger.info(f"Loaded run <{graph_iri}> ({len(run.quads)} quads)")
        return RunOutcome(
            ok=True, operation="get", target=graph_iri, persisted=True,
            run=run, serializations=serializations,
        )

    def delete_run(self, graph_iri: str) -> RunOutcome:
        try:
            self.store.delete(graph_iri)
        except RunStoreError as e:
            return RunOutcome.failure("delete", graph_iri, STORE_ERROR, str(e))
        return RunOutcome(ok=True, operation="delete", target=graph_iri)

    def export(self, graph_iri: str, syntax: str) -> RunOutcome:
        """Render one syntax of a stored run as a downloadable file."""
        try:
            info = get_syntax(syntax)
        except ValueError as e:
            return RunOutcome.failure("export", graph_iri, INVALID_ERROR, str(e))

        outcome = self.load_run(graph_iri)
        if not outcome.ok:
            return outcome

        outcome.operation = "export"
        outcome.export = ExportedText(
            filename=export_filename(outcome.run.filename, graph_iri, syntax),
            media_type=info.media_type,
            text=outcome.serializations.get(syntax),
        )
        return outcome
