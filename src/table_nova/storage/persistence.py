"""
Parquet-backed run store.

File layout:
    base_path/
        <sha256(graph_iri)>/
            run.json        - graphIri, filename, createdAt, quadCount
            quads.parquet   - one row per quad (s, p, g, o_type, o_value, datatype, lang)

A put writes the new record into a hidden temporary directory and swaps
it into place, so a failed put leaves the previous record untouched.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import polars as pl

from table_nova.models import QuadRecord, RunSummary, StoredRun, TermKind
from table_nova.storage.runs import RunStore, RunStoreError, sort_summaries

logger = logging.getLogger(__name__)


QUAD_SCHEMA = {
    "s": pl.Utf8,
    "p": pl.Utf8,
    "g": pl.Utf8,
    "o_type": pl.Utf8,
    "o_value": pl.Utf8,
    "datatype": pl.Utf8,
    "lang": pl.Utf8,
}


def run_key(graph_iri: str) -> str:
    """Directory name for a graph IRI."""
    return hashlib.sha256(graph_iri.encode("utf-8")).hexdigest()


def quads_to_frame(quads: List[QuadRecord]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "s": [q.subject for q in quads],
            "p": [q.predicate for q in quads],
            "g": [q.graph for q in quads],
            "o_type": [q.object_kind.value for q in quads],
            "o_value": [q.object_value for q in quads],
            "datatype": [q.datatype for q in quads],
            "lang": [q.language for q in quads],
        },
        schema=QUAD_SCHEMA,
    )


def frame_to_quads(df: pl.DataFrame) -> List[QuadRecord]:
    return [
        QuadRecord(
            subject=row["s"],
            predicate=row["p"],
            graph=row["g"],
            object_kind=TermKind(row["o_type"]),
            object_value=row["o_value"],
            datatype=row["datatype"],
            language=row["lang"],
        )
        for row in df.iter_rows(named=True)
    ]


class ParquetRunStore(RunStore):
    """
    Run store persisting each run as JSON metadata + a Parquet quad table.

    Usage:
        store = ParquetRunStore("./data/runs")
        store.put(run)
        store.list_runs()
        store.get(graph_iri)
    """

    META_FILE = "run.json"
    QUADS_FILE = "quads.parquet"

    def __init__(self, base_path: str | Path):
        """
        Args:
            base_path: Directory holding one subdirectory per run
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _run_dir(self, graph_iri: str) -> Path:
        return self.base_path / run_key(graph_iri)

    def put(self, run: StoredRun) -> None:
        key = run_key(run.graph_iri)
        target = self.base_path / key
        staging = self.base_path / f".{key}.{uuid.uuid4().hex}.tmp"
        retired = self.base_path / f".{key}.{uuid.uuid4().hex}.old"

        try:
            staging.mkdir(parents=True)
            quads_to_frame(run.quads).write_parquet(staging / self.QUADS_FILE)
            with open(staging / self.META_FILE, "w", encoding="utf-8") as f:
                json.dump(run.to_dict(include_quads=False), f, indent=2)

            replaced = target.exists()
            if replaced:
                os.replace(target, retired)
            try:
                os.replace(staging, target)
            except OSError:
                if replaced:
                    os.replace(retired, target)
                raise
        except (OSError, pl.exceptions.PolarsError) as e:
            shutil.rmtree(staging, ignore_errors=True)
            logger.error(f"Failed to store run <{run.graph_iri}>: {e}")
            raise RunStoreError("put", run.graph_iri, str(e)) from e

        shutil.rmtree(retired, ignore_errors=True)
        logger.info(f"{'Replaced' if replaced else 'Stored'} run <{run.graph_iri}> ({len(run.quads)} quads)")

    def _read_meta(self, run_dir: Path) -> dict:
        with open(run_dir / self.META_FILE, encoding="utf-8") as f:
            return json.load(f)

    def list_runs(self) -> List[RunSummary]:
        summaries = []
        try:
            entries = list(self.base_path.iterdir())
        except OSError as e:
            raise RunStoreError("list", str(self.base_path), str(e)) from e

        for run_dir in entries:
            if not run_dir.is_dir() or run_dir.name.startswith("."):
                continue
            try:
                meta = self._read_meta(run_dir)
                summaries.append(RunSummary(
                    graph_iri=meta["graphIri"],
                    filename=meta.get("filename", ""),
                    created_at=datetime.fromisoformat(meta["createdAt"]),
                ))
            except (OSError, ValueError, KeyError) as e:
                logger.warning(f"Skipping unreadable run metadata in {run_dir.name}: {e}")
        return sort_summaries(summaries)

    def get(self, graph_iri: str) -> Optional[StoredRun]:
        run_dir = self._run_dir(graph_iri)
        if not run_dir.exists():
            return None
        try:
            meta = self._read_meta(run_dir)
            stored_iri = meta["graphIri"]
            created_at = datetime.fromisoformat(meta["createdAt"])
            df = pl.read_parquet(run_dir / self.QUADS_FILE)
        except KeyError as e:
            raise RunStoreError("get", graph_iri, f"run metadata missing {e}") from e
        except (OSError, ValueError, pl.exceptions.PolarsError) as e:
            raise RunStoreError("get", graph_iri, str(e)) from e

        return StoredRun(
            graph_iri=stored_iri,
            filename=meta.get("filename", ""),
            created_at=created_at,
            quads=frame_to_quads(df),
        )

    def delete(self, graph_iri: str) -> None:
        run_dir = self._run_dir(graph_iri)
        if not run_dir.exists():
            return
        try:
            shutil.rmtree(run_dir)
        except OSError as e:
            raise RunStoreError("delete", graph_iri, str(e)) from e
        logger.info(f"Deleted run <{graph_iri}>")
