"""
Core data model for Table Nova.

Defines the shapes that flow through a run:
- TabularData: header + row grid produced by the tabular readers
- FileOptions / PredicateOptions: per-input configuration
- Term / QuadRecord: RDF terms and flat quad records
- StoredRun / RunSummary: the persisted projection of a run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# Namespaces
# =============================================================================

XSD_NS = "http://www.w3.org/2001/XMLSchema#"

XSD_STRING = f"{XSD_NS}string"
XSD_BOOLEAN = f"{XSD_NS}boolean"
XSD_INTEGER = f"{XSD_NS}integer"
XSD_DECIMAL = f"{XSD_NS}decimal"
XSD_DOUBLE = f"{XSD_NS}double"
XSD_FLOAT = f"{XSD_NS}float"
XSD_DATE = f"{XSD_NS}date"
XSD_DATETIME = f"{XSD_NS}dateTime"
XSD_ANYURI = f"{XSD_NS}anyURI"


def expand_xsd(datatype: Optional[str]) -> str:
    """Expand an ``xsd:``-prefixed datatype to its full IRI (default xsd:string)."""
    value = (datatype or "").strip()
    if not value:
        return XSD_STRING
    if value.startswith("xsd:"):
        return XSD_NS + value[4:]
    return value


# =============================================================================
# Options
# =============================================================================

class PredicateCasing(str, Enum):
    """Case-join strategy for predicate local names."""
    CAMEL_CASE = "camelCase"
    PASCAL_CASE = "PascalCase"
    SNAKE_CASE = "snake_case"
    SHOUT_CASE = "SHOUT_CASE"


class WhenNoHeader(str, Enum):
    """Column key scheme used when the grid has no header."""
    ORDINAL = "ordinal"  # ColumnA, ColumnB, ... ColumnAA
    INDEX = "index"      # Column1, Column2, ...


class DelimiterHint(str, Enum):
    """Delimiter forced for delimited text (NONE = auto-detect)."""
    COMMA = "comma"
    TAB = "tab"
    NONE = "none"

    @property
    def char(self) -> Optional[str]:
        return {"comma": ",", "tab": "\t"}.get(self.value)

    @classmethod
    def coerce(cls, value: Any) -> "DelimiterHint":
        """Accept enum members, names, or the raw delimiter characters."""
        if isinstance(value, cls):
            return value
        if value is None or value == "":
            return cls.NONE
        if value == ",":
            return cls.COMMA
        if value == "\t":
            return cls.TAB
        return cls(str(value).lower())


@dataclass
class PredicateOptions:
    """How column keys become predicate local names."""
    prefix_has: bool = True
    casing: PredicateCasing = PredicateCasing.CAMEL_CASE
    when_no_header: WhenNoHeader = WhenNoHeader.ORDINAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prefixHas": self.prefix_has,
            "casing": self.casing.value,
            "whenNoHeader": self.when_no_header.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PredicateOptions":
        return cls(
            prefix_has=bool(data.get("prefixHas", data.get("prefix_has", True))),
            casing=PredicateCasing(data.get("casing", PredicateCasing.CAMEL_CASE.value)),
            when_no_header=WhenNoHeader(
                data.get("whenNoHeader", data.get("when_no_header", WhenNoHeader.ORDINAL.value))
            ),
        )


@dataclass
class FileOptions:
    """Per-input configuration supplied by the options collaborator."""
    treat_first_row_as_header: bool = True
    delimiter_hint: DelimiterHint = DelimiterHint.NONE
    predicate: PredicateOptions = field(default_factory=PredicateOptions)
    # column key -> XSD datatype IRI
    datatypes_by_column_key: Dict[str, str] = field(default_factory=dict)

    def datatype_for(self, column_key: str) -> str:
        return expand_xsd(self.datatypes_by_column_key.get(column_key))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "treatFirstRowAsHeader": self.treat_first_row_as_header,
            "delimiterHint": self.delimiter_hint.value,
            "predicate": self.predicate.to_dict(),
            "datatypesByColumnKey": dict(self.datatypes_by_column_key),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FileOptions":
        data = data or {}
        datatypes = data.get("datatypesByColumnKey", data.get("datatypes_by_column_key", {})) or {}
        return cls(
            treat_first_row_as_header=bool(
                data.get("treatFirstRowAsHeader", data.get("treat_first_row_as_header", True))
            ),
            delimiter_hint=DelimiterHint.coerce(
                data.get("delimiterHint", data.get("delimiter_hint"))
            ),
            predicate=PredicateOptions.from_dict(
                data.get("predicate", data.get("predicateOptions", {})) or {}
            ),
            datatypes_by_column_key={str(k): expand_xsd(v) for k, v in datatypes.items()},
        )


# =============================================================================
# Tabular grid
# =============================================================================

@dataclass
class TabularData:
    """Header + rows. Cells are trimmed strings; rows may be ragged."""
    header: Optional[List[str]] = None
    rows: List[List[str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.header is None and not self.rows

    def to_dict(self) -> Dict[str, Any]:
        return {"header": self.header, "rows": self.rows}


# =============================================================================
# Terms and quads
# =============================================================================

class TermKind(str, Enum):
    """Kind of an object term."""
    IRI = "iri"
    LITERAL = "literal"


@dataclass(frozen=True)
class Term:
    """An RDF object term: a named node or a (typed / language-tagged) literal."""
    kind: TermKind
    value: str
    datatype: Optional[str] = None
    language: Optional[str] = None

    @classmethod
    def iri(cls, value: str) -> "Term":
        return cls(TermKind.IRI, value)

    @classmethod
    def literal(cls, value: str, datatype: Optional[str] = XSD_STRING, language: Optional[str] = None) -> "Term":
        return cls(TermKind.LITERAL, value, datatype, language)

    @property
    def is_iri(self) -> bool:
        return self.kind == TermKind.IRI


@dataclass(frozen=True)
class QuadRecord:
    """
    A flat, storable quad.

    Subject, predicate and graph are always IRIs. The object is an IRI
    or a literal, with datatype / language only set for literals.
    """
    subject: str
    predicate: str
    graph: str
    object_kind: TermKind
    object_value: str
    datatype: Optional[str] = None
    language: Optional[str] = None

    @classmethod
    def from_term(cls, subject: str, predicate: str, graph: str, term: Term) -> "QuadRecord":
        if term.is_iri:
            return cls(subject, predicate, graph, TermKind.IRI, term.value)
        return cls(
            subject, predicate, graph, TermKind.LITERAL, term.value,
            datatype=term.datatype or XSD_STRING,
            language=term.language or None,
        )

    @property
    def object(self) -> Term:
        if self.object_kind == TermKind.IRI:
            return Term.iri(self.object_value)
        return Term.literal(self.object_value, self.datatype or XSD_STRING, self.language)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject": self.subject,
            "predicate": self.predicate,
            "graph": self.graph,
            "objectKind": self.object_kind.value,
            "objectValue": self.object_value,
            "datatype": self.datatype,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuadRecord":
        return cls(
            subject=data["subject"],
            predicate=data["predicate"],
            graph=data["graph"],
            object_kind=TermKind(data.get("objectKind", TermKind.LITERAL.value)),
            object_value=data["objectValue"],
            datatype=data.get("datatype"),
            language=data.get("language"),
        )


# =============================================================================
# Persisted runs
# =============================================================================

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunSummary:
    """Metadata-only view of a stored run."""
    graph_iri: str
    filename: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "graphIri": self.graph_iri,
            "filename": self.filename,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class StoredRun:
    """A run persisted under its graph IRI (primary key)."""
    graph_iri: str
    filename: str
    created_at: datetime = field(default_factory=utc_now)
    quads: List[QuadRecord] = field(default_factory=list)

    def summary(self) -> RunSummary:
        return RunSummary(self.graph_iri, self.filename, self.created_at)

    def to_dict(self, include_quads: bool = True) -> Dict[str, Any]:
        data = self.summary().to_dict()
        data["quadCount"] = len(self.quads)
        if include_quads:
            data["quads"] = [q.to_dict() for q in self.quads]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredRun":
        created_at = data.get("createdAt")
        return cls(
            graph_iri=data["graphIri"],
            filename=data.get("filename", ""),
            created_at=datetime.fromisoformat(created_at) if isinstance(created_at, str) else utc_now(),
            quads=[QuadRecord.from_dict(q) for q in data.get("quads", [])],
        )
