"""
TriG Serializer.

TriG extends Turtle with named graph blocks:

    @prefix ex: <http://example.org/> .

    ex:graph1 {
        ex:s1 ex:p1 ex:o1 .
    }

Quads in the default graph are written as bare Turtle statements.

Reference: https://www.w3.org/TR/trig/
"""

from typing import Dict, Iterable, List, Optional

from table_nova.formats.ntriples import Triple
from table_nova.formats.turtle import TurtleSerializer
from table_nova.models import QuadRecord


class TriGSerializer:
    """
    Serializer for TriG format.

    Outputs triples organized by named graphs, graphs in first-seen order.
    """

    def __init__(self, prefixes: Optional[Dict[str, str]] = None):
        self.turtle_serializer = TurtleSerializer(prefixes)

    def serialize_quads(self, quads: Iterable[QuadRecord]) -> str:
        graphs: Dict[str, List[Triple]] = {}
        for q in quads:
            graphs.setdefault(q.graph or "", []).append((q.subject, q.predicate, q.object))
        return self.serialize(graphs)

    def serialize(self, graphs: Dict[str, List[Triple]]) -> str:
        """
        Serialize graphs to TriG format.

        Args:
            graphs: Graph IRI ("" for the default graph) -> triples

        Returns:
            TriG formatted string
        """
        ts = self.turtle_serializer
        sections = []

        directives = ts.prefix_block()
        if directives:
            sections.append("\n".join(directives) + "\n")

        for graph_name, triples in graphs.items():
            if not triples:
                continue
            if graph_name:
                body = "\n".join(ts.subject_blocks(triples, indent="    "))
                sections.append(f"{ts.compact_iri(graph_name)} {{\n{body}\n}}\n")
            else:
                sections.extend(f"{block}\n" for block in ts.subject_blocks(triples))

        return "\n".join(sections)


def serialize_trig(quads: Iterable[QuadRecord], prefixes: Optional[Dict[str, str]] = None) -> str:
    return TriGSerializer(prefixes).serialize_quads(quads)
