"""
Turtle Serializer.

Writes @prefix directives for the supplied prefix map, then one block
per subject (first-seen order) with predicate lists joined by ';' and
repeated objects joined by ','. An IRI is compacted to prefix:local only
when the local part is a safe PN_LOCAL; everything else stays <...>.

Reference: https://www.w3.org/TR/turtle/
"""

import re
from typing import Dict, Iterable, List, Optional, Tuple

from table_nova.formats.ntriples import Triple, escape_literal, format_iri
from table_nova.models import XSD_STRING, Term

_PN_LOCAL = re.compile(r"^(?:[A-Za-z0-9_](?:[A-Za-z0-9_.-]*[A-Za-z0-9_-])?)?$")


class TurtleSerializer:
    """
    Serializer for Turtle format.

    Prefix compaction picks the longest matching namespace.
    """

    def __init__(self, prefixes: Optional[Dict[str, str]] = None):
        self.prefixes: Dict[str, str] = dict(prefixes or {})
        self._by_length = sorted(self.prefixes.items(), key=lambda kv: len(kv[1]), reverse=True)

    def compact_iri(self, iri: str) -> str:
        """Compact an IRI using the prefix map, or wrap it in angle brackets."""
        for prefix, namespace in self._by_length:
            if namespace and iri.startswith(namespace):
                local = iri[len(namespace):]
                if _PN_LOCAL.match(local):
                    return f"{prefix}:{local}"
        return format_iri(iri)

    def format_term(self, term: Term) -> str:
        if term.is_iri:
            return self.compact_iri(term.value)
        lexical = f'"{escape_literal(term.value)}"'
        if term.language:
            return f"{lexical}@{term.language}"
        if term.datatype and term.datatype != XSD_STRING:
            return f"{lexical}^^{self.compact_iri(term.datatype)}"
        return lexical

    def prefix_block(self) -> List[str]:
        return [f"@prefix {prefix}: {format_iri(ns)} ." for prefix, ns in self.prefixes.items()]

    def subject_blocks(self, triples: Iterable[Triple], indent: str = "") -> List[str]:
        """
        Render triples grouped by subject.

        Returns one string per subject block, each ending in ' .'.
        """
        grouped: Dict[str, List[Tuple[str, List[Term]]]] = {}
        for s, p, o in triples:
            predicates = grouped.setdefault(s, [])
            if predicates and predicates[-1][0] == p:
                predicates[-1][1].append(o)
            else:
                predicates.append((p, [o]))

        blocks = []
        for subject, predicates in grouped.items():
            parts = []
            for predicate, objects in predicates:
                rendered = ", ".join(self.format_term(o) for o in objects)
                parts.append(f"{self.compact_iri(predicate)} {rendered}")
            separator = f" ;\n{indent}    "
            blocks.append(f"{indent}{self.compact_iri(subject)} {separator.join(parts)} .")
        return blocks

    def serialize(self, triples: Iterable[Triple]) -> str:
        """
        Serialize triples to Turtle.

        Args:
            triples: (subject IRI, predicate IRI, object Term) tuples

        Returns:
            Turtle text
        """
        sections = []
        directives = self.prefix_block()
        if directives:
            sections.append("\n".join(directives) + "\n")
        sections.extend(f"{block}\n" for block in self.subject_blocks(triples))
        return "\n".join(sections)


def serialize_turtle(triples: Iterable[Triple], prefixes: Optional[Dict[str, str]] = None) -> str:
    return TurtleSerializer(prefixes).serialize(triples)
