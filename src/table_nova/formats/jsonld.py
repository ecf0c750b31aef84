"""
JSON-LD output via RDF -> JSON-LD conversion.

The JSON-LD documents are derived from the N-Triples / N-Quads text
rather than built directly, so they describe exactly the statements the
line-based syntaxes do. The conversion codec is injected; the default
wraps PyLD's ``from_rdf``.

Reference: https://www.w3.org/TR/json-ld11-api/#serialize-rdf-as-json-ld-algorithm
"""

import json
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from pyld import jsonld


class SerializationError(RuntimeError):
    """Raised when a syntax writer or the JSON-LD codec fails."""

    def __init__(self, syntax: str, message: str):
        super().__init__(f"{syntax}: {message}")
        self.syntax = syntax
        self.message = message


class JsonLdCodec(ABC):
    """Converts N-Quads text into an expanded JSON-LD document."""

    @abstractmethod
    def from_rdf(self, nquads: str) -> List[Any]:
        ...


class PyLDCodec(JsonLdCodec):
    """JSON-LD codec backed by PyLD."""

    FORMAT = "application/n-quads"

    def __init__(self, use_native_types: bool = False):
        self.use_native_types = use_native_types

    def from_rdf(self, nquads: str) -> List[Any]:
        try:
            return jsonld.from_rdf(
                nquads,
                {"format": self.FORMAT, "useNativeTypes": self.use_native_types},
            )
        except jsonld.JsonLdError as e:
            raise SerializationError("json-ld", str(e)) from e


def dump_json(document: Any) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False)


def rdf_to_jsonld(text: str, codec: JsonLdCodec, graph_iri: Optional[str] = None) -> str:
    """
    Convert N-Triples / N-Quads text to a JSON-LD string.

    With ``graph_iri`` the document is wrapped as
    ``{"@context": {}, "@id": graph_iri, "@graph": document}`` so the
    named graph identity survives the JSON-LD document model.
    """
    document = codec.from_rdf(text or "")
    if graph_iri is None:
        return dump_json(document)
    return dump_json({"@context": {}, "@id": graph_iri, "@graph": document})
