"""
Quad assembly: tabular grid -> RDF dataset + storable quad records.

The dataset is an insertion-ordered set of quads. Records are the flat
list emitted row-major (column order within a row), one per non-blank
cell; the dataset collapses exact duplicates the way a quad store would.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from table_nova.literals import build_object_term
from table_nova.models import FileOptions, QuadRecord, TabularData, Term
from table_nova.schema import build_row_instance_iri

logger = logging.getLogger(__name__)


RowIriFactory = Callable[[str, int], str]
ObjectBuilder = Callable[[str, str], Term]


class RdfDataset:
    """In-memory, insertion-ordered set of quads."""

    def __init__(self, quads: Optional[Iterable[QuadRecord]] = None):
        self._quads: Dict[QuadRecord, None] = {}
        for quad in quads or []:
            self.add(quad)

    def add(self, quad: QuadRecord) -> bool:
        """Add a quad; returns False if it was already present."""
        if quad in self._quads:
            return False
        self._quads[quad] = None
        return True

    def __len__(self) -> int:
        return len(self._quads)

    def __iter__(self) -> Iterator[QuadRecord]:
        return iter(self._quads)

    def __contains__(self, quad: object) -> bool:
        return quad in self._quads

    def quads(self) -> List[QuadRecord]:
        return list(self._quads)

    def triples(self) -> List[Tuple[str, str, Term]]:
        """Project to triples (graph dropped), deduplicated, order preserved."""
        seen: Dict[Tuple[str, str, Term], None] = {}
        for q in self._quads:
            seen.setdefault((q.subject, q.predicate, q.object), None)
        return list(seen)

    def graphs(self) -> List[str]:
        return list(dict.fromkeys(q.graph for q in self._quads))

    def subjects(self) -> List[str]:
        return list(dict.fromkeys(q.subject for q in self._quads))


def select_data_rows(tabular: TabularData, treat_first_row_as_header: bool) -> List[List[str]]:
    """Data rows; the header row is ordinary data when there is no header."""
    if treat_first_row_as_header:
        return list(tabular.rows)
    head = [tabular.header] if tabular.header is not None else []
    return head + list(tabular.rows)


def build_dataset_from_tabular(
    tabular: TabularData,
    options: FileOptions,
    predicate_iris: Dict[str, str],
    graph_iri: str,
    base_instance_iri: str,
    row_iri_factory: RowIriFactory = build_row_instance_iri,
    object_builder: ObjectBuilder = build_object_term,
) -> Tuple[RdfDataset, List[QuadRecord]]:
    """
    Build a dataset and its quad records from a grid.

    Args:
        tabular: Parsed grid
        options: File options (header handling, datatypes per column key)
        predicate_iris: Column key -> predicate IRI, in column order
        graph_iri: Named graph for every quad
        base_instance_iri: Base for minted row subjects
        row_iri_factory: (base, row_index) -> subject IRI
        object_builder: (cell, datatype) -> object Term

    Returns:
        Tuple of (dataset, records)
    """
    dataset = RdfDataset()
    records: List[QuadRecord] = []
    columns = list(predicate_iris.items())
    data_rows = select_data_rows(tabular, options.treat_first_row_as_header)

    for r, row in enumerate(data_rows):
        row = row or []
        subject = row_iri_factory(base_instance_iri, r)

        for c, (key, predicate) in enumerate(columns):
            if not predicate or c >= len(row):
                continue
            cell = row[c]
            if cell is None or not str(cell).strip():
                continue

            term = object_builder(str(cell), options.datatype_for(key))
            record = QuadRecord.from_term(subject, predicate, graph_iri, term)
            dataset.add(record)
            records.append(record)

    logger.debug(f"Assembled {len(records)} quads from {len(data_rows)} rows into <{graph_iri}>")
    return dataset, records


def dataset_from_quads(records: Iterable[QuadRecord]) -> RdfDataset:
    """Rebuild a dataset from stored records; identifiers are reused as-is."""
    return RdfDataset(records)
