"""
N-Quads Serializer.

N-Quads extends N-Triples with a fourth element, the graph name:
  <subject> <predicate> object <graph> .

Quads without a graph are written as plain triples (default graph).

Reference: https://www.w3.org/TR/n-quads/
"""

from typing import Iterable

from table_nova.formats.ntriples import NTriplesSerializer, format_iri
from table_nova.models import QuadRecord


class NQuadsSerializer(NTriplesSerializer):
    """
    Serializer for N-Quads format.

    Extends NTriplesSerializer to output graph names.
    """

    def serialize_quads(self, quads: Iterable[QuadRecord]) -> str:
        lines = []
        for quad in quads:
            statement = self._format_statement(quad.subject, quad.predicate, quad.object)
            if quad.graph:
                lines.append(f"{statement} {format_iri(quad.graph)} .\n")
            else:
                lines.append(f"{statement} .\n")
        return "".join(lines)


def serialize_nquads(quads: Iterable[QuadRecord]) -> str:
    return NQuadsSerializer().serialize_quads(quads)
