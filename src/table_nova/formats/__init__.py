"""
RDF Serializers.

Supports:
- Turtle (.ttl)
- TriG (.trig) with named graphs
- N-Triples (.nt)
- N-Quads (.nq) with named graphs
- JSON-LD (.jsonld), plain and graph-wrapped
"""

from table_nova.formats.jsonld import JsonLdCodec, PyLDCodec, SerializationError, rdf_to_jsonld
from table_nova.formats.nquads import NQuadsSerializer, serialize_nquads
from table_nova.formats.ntriples import NTriplesSerializer, serialize_ntriples
from table_nova.formats.serializer import (
    SYNTAXES,
    Serializations,
    Serializer,
    SyntaxInfo,
    export_filename,
    get_syntax,
)
from table_nova.formats.trig import TriGSerializer, serialize_trig
from table_nova.formats.turtle import TurtleSerializer, serialize_turtle

__all__ = [
    # Turtle
    "TurtleSerializer",
    "serialize_turtle",
    # TriG
    "TriGSerializer",
    "serialize_trig",
    # N-Triples
    "NTriplesSerializer",
    "serialize_ntriples",
    # N-Quads
    "NQuadsSerializer",
    "serialize_nquads",
    # JSON-LD
    "JsonLdCodec",
    "PyLDCodec",
    "rdf_to_jsonld",
    # Multi-syntax
    "Serializer",
    "Serializations",
    "SerializationError",
    "SyntaxInfo",
    "SYNTAXES",
    "get_syntax",
    "export_filename",
]
