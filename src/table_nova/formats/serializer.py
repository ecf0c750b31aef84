"""
Multi-syntax serialization of a run's dataset.

Two views of one dataset:
- triples view (graph dropped): Turtle, N-Triples, JSON-LD (triples)
- named-graph view: TriG, N-Quads, JSON-LD (graph-wrapped)

Prefixes apply to Turtle and TriG only. Lexical forms are written as
assembled; only syntax escaping happens here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from table_nova.dataset import RdfDataset
from table_nova.formats.jsonld import JsonLdCodec, PyLDCodec, SerializationError, rdf_to_jsonld
from table_nova.formats.nquads import NQuadsSerializer
from table_nova.formats.ntriples import NTriplesSerializer
from table_nova.formats.trig import TriGSerializer
from table_nova.formats.turtle import TurtleSerializer
from table_nova.schema import strip_extension

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyntaxInfo:
    """Download metadata for one output syntax."""
    key: str
    extension: str
    media_type: str


SYNTAXES: Dict[str, SyntaxInfo] = {
    "turtle": SyntaxInfo("turtle", "ttl", "text/turtle"),
    "trig": SyntaxInfo("trig", "trig", "application/trig"),
    "ntriples": SyntaxInfo("ntriples", "nt", "application/n-triples"),
    "nquads": SyntaxInfo("nquads", "nq", "application/n-quads"),
    "jsonldTriples": SyntaxInfo("jsonldTriples", "jsonld", "application/ld+json"),
    "jsonldGraph": SyntaxInfo("jsonldGraph", "jsonld", "application/ld+json"),
}


def get_syntax(key: str) -> SyntaxInfo:
    try:
        return SYNTAXES[key]
    except KeyError:
        raise ValueError(f"Unknown syntax '{key}'. Valid options: {sorted(SYNTAXES)}")


def export_filename(filename: str, graph_iri: str, syntax: str) -> str:
    """
    Download name for an export: ``<file>__<day>_<slug>.<ext>``.

    The graph part is the last two path segments of the run IRI.
    """
    info = get_syntax(syntax)
    base = strip_extension(filename) or "export"
    graph_part = "_".join(graph_iri.split("/")[-2:])
    graph_part = "".join(ch if ch.isascii() and (ch.isalnum() or ch in "._-") else "_" for ch in graph_part)
    return f"{base}__{graph_part}.{info.extension}"


@dataclass
class Serializations:
    """The six textual renderings of one run."""
    turtle: str
    trig: str
    ntriples: str
    nquads: str
    jsonld_triples: str
    jsonld_graph: str

    def get(self, syntax: str) -> str:
        get_syntax(syntax)
        return self.to_dict()[syntax]

    def to_dict(self) -> Dict[str, str]:
        return {
            "turtle": self.turtle,
            "trig": self.trig,
            "ntriples": self.ntriples,
            "nquads": self.nquads,
            "jsonldTriples": self.jsonld_triples,
            "jsonldGraph": self.jsonld_graph,
        }


class Serializer:
    """
    Renders a dataset into all supported syntaxes.

    Usage:
        serializer = Serializer()  # PyLD-backed JSON-LD
        out = serializer.serialize(dataset, graph_iri, prefixes)
        out.turtle, out.nquads, out.jsonld_graph
    """

    def __init__(self, jsonld_codec: Optional[JsonLdCodec] = None):
        self.jsonld_codec = jsonld_codec or PyLDCodec()

    def serialize(
        self,
        dataset: RdfDataset,
        graph_iri: str,
        prefixes: Optional[Dict[str, str]] = None,
    ) -> Serializations:
        """
        Serialize a dataset.

        Args:
            dataset: Assembled or reloaded dataset
            graph_iri: The run's named graph (JSON-LD wrapper @id)
            prefixes: Prefix -> namespace map for Turtle / TriG

        Raises:
            SerializationError: If a writer or the JSON-LD codec fails
        """
        prefixes = dict(prefixes or {})
        triples = dataset.triples()
        quads = dataset.quads()

        turtle = self._run("turtle", lambda: TurtleSerializer(prefixes).serialize(triples))
        ntriples = self._run("ntriples", lambda: NTriplesSerializer().serialize(triples))
        trig = self._run("trig", lambda: TriGSerializer(prefixes).serialize_quads(quads))
        nquads = self._run("nquads", lambda: NQuadsSerializer().serialize_quads(quads))

        jsonld_triples = self._run("jsonldTriples", lambda: rdf_to_jsonld(ntriples, self.jsonld_codec))
        jsonld_graph = self._run(
            "jsonldGraph", lambda: rdf_to_jsonld(nquads, self.jsonld_codec, graph_iri=graph_iri)
        )

        logger.debug(f"Serialized {len(quads)} quads of <{graph_iri}> into {len(SYNTAXES)} syntaxes")
        return Serializations(turtle, trig, ntriples, nquads, jsonld_triples, jsonld_graph)

    def _run(self, syntax: str, write: Callable[[], str]) -> str:
        try:
            return write()
        except SerializationError:
            raise
        except Exception as e:
            raise SerializationError(syntax, str(e)) from e
