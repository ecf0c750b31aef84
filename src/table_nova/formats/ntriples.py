"""
N-Triples Serializer.

One triple per line, every IRI fully expanded, no prefixes:
  <subject> <predicate> object .

Literals typed xsd:string are written as simple literals (RDF 1.1
treats the two as identical). Only the ECHARs PyLD decodes are used;
other control characters are written raw, which the grammar allows.

Reference: https://www.w3.org/TR/n-triples/
"""

from typing import Iterable, List, Tuple

from table_nova.models import XSD_STRING, Term
from table_nova.schema import encode_iri

Triple = Tuple[str, str, Term]

_LITERAL_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def escape_literal(value: str) -> str:
    """Escape a literal's lexical form for a double-quoted string."""
    return "".join(_LITERAL_ESCAPES.get(ch, ch) for ch in value)


def escape_iri(iri: str) -> str:
    """Percent-encode characters not allowed inside an IRIREF."""
    return encode_iri(iri)


def format_iri(iri: str) -> str:
    return f"<{escape_iri(iri)}>"


def format_literal(term: Term) -> str:
    lexical = f'"{escape_literal(term.value)}"'
    if term.language:
        return f"{lexical}@{term.language}"
    if term.datatype and term.datatype != XSD_STRING:
        return f"{lexical}^^{format_iri(term.datatype)}"
    return lexical


def format_term(term: Term) -> str:
    return format_iri(term.value) if term.is_iri else format_literal(term)


class NTriplesSerializer:
    """Serializer for N-Triples."""

    def _format_statement(self, subject: str, predicate: str, obj: Term) -> str:
        return f"{format_iri(subject)} {format_iri(predicate)} {format_term(obj)}"

    def serialize(self, triples: Iterable[Triple]) -> str:
        """
        Serialize triples to N-Triples.

        Args:
            triples: (subject IRI, predicate IRI, object Term) tuples

        Returns:
            N-Triples text, one newline-terminated line per triple
        """
        lines: List[str] = [f"{self._format_statement(s, p, o)} ." for s, p, o in triples]
        return "".join(f"{line}\n" for line in lines)


def serialize_ntriples(triples: Iterable[Triple]) -> str:
    return NTriplesSerializer().serialize(triples)
