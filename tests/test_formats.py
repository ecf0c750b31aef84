"""
Tests for the RDF serializers.

Covers the line-based syntaxes (N-Triples, N-Quads), Turtle/TriG layout
and prefix compaction, JSON-LD conversion, and the multi-syntax
Serializer with its error wrapping.
"""

import json

import pytest

from table_nova.dataset import RdfDataset
from table_nova.formats import (
    SYNTAXES,
    JsonLdCodec,
    NQuadsSerializer,
    NTriplesSerializer,
    PyLDCodec,
    SerializationError,
    Serializer,
    TriGSerializer,
    TurtleSerializer,
    export_filename,
    get_syntax,
    rdf_to_jsonld,
)
from table_nova.formats.ntriples import escape_iri, escape_literal
from table_nova.literals import build_object_term
from table_nova.models import XSD_ANYURI, XSD_INTEGER, XSD_NS, XSD_STRING, QuadRecord, Term, TermKind

NS = "https://example.org/TableNova/ns#"
ID = "https://example.org/TableNova/id/"
GRAPH = "https://example.org/TableNova/run/2025-03-01/people"
PREFIXES = {"tablenova": NS, "tnid": ID, "xsd": XSD_NS}

S1 = f"{ID}aaaa?row=0"
S2 = f"{ID}bbbb?row=1"


def literal(subject, local, value, datatype=XSD_STRING):
    return QuadRecord(subject, f"{NS}{local}", GRAPH, TermKind.LITERAL, value, datatype)


@pytest.fixture
def dataset():
    return RdfDataset([
        literal(S1, "hasFirst", "Ada"),
        literal(S1, "hasLast", "Lovelace"),
        literal(S2, "hasFirst", "Alan"),
        literal(S2, "hasAge", "41", XSD_INTEGER),
    ])


# ========== Escaping ==========

class TestEscaping:
    def test_literal_escapes(self):
        assert escape_literal('a "b"\\c\nd\te') == 'a \\"b\\"\\\\c\\nd\\te'

    def test_control_characters_written_raw(self):
        assert escape_literal("a\x01b\x0c") == "a\x01b\x0c"

    def test_non_ascii_kept(self):
        assert escape_literal("Zoë") == "Zoë"

    def test_iri_escapes(self):
        assert escape_iri("https://x.org/a b<c>") == "https://x.org/a%20b%3Cc%3E"


# ========== N-Triples / N-Quads ==========

class TestNTriples:
    def test_lines(self, dataset):
        text = NTriplesSerializer().serialize(dataset.triples())
        lines = text.splitlines()
        assert len(lines) == 4
        assert lines[0] == f'<{S1}> <{NS}hasFirst> "Ada" .'
        assert lines[3] == f'<{S2}> <{NS}hasAge> "41"^^<{XSD_INTEGER}> .'
        assert text.endswith(" .\n")

    def test_iri_object(self):
        triple = (S1, f"{NS}hasHome", Term.iri("https://ada.example/"))
        assert NTriplesSerializer().serialize([triple]) == f"<{S1}> <{NS}hasHome> <https://ada.example/> .\n"

    def test_language_literal(self):
        triple = (S1, f"{NS}hasName", Term.literal("Ada", None, "en"))
        assert NTriplesSerializer().serialize([triple]).strip().endswith('"Ada"@en .')

    def test_empty(self):
        assert NTriplesSerializer().serialize([]) == ""


class TestNQuads:
    def test_graph_column(self, dataset):
        lines = NQuadsSerializer().serialize_quads(dataset.quads()).splitlines()
        assert lines[0] == f'<{S1}> <{NS}hasFirst> "Ada" <{GRAPH}> .'

    def test_default_graph(self):
        quad = QuadRecord(S1, f"{NS}p", "", TermKind.LITERAL, "x", XSD_STRING)
        assert NQuadsSerializer().serialize_quads([quad]) == f'<{S1}> <{NS}p> "x" .\n'


# ========== Turtle / TriG ==========

class TestTurtle:
    def test_layout(self, dataset):
        text = TurtleSerializer(PREFIXES).serialize(dataset.triples())
        assert text == (
            f"@prefix tablenova: <{NS}> .\n"
            f"@prefix tnid: <{ID}> .\n"
            f"@prefix xsd: <{XSD_NS}> .\n"
            "\n"
            f'<{S1}> tablenova:hasFirst "Ada" ;\n'
            f'    tablenova:hasLast "Lovelace" .\n'
            "\n"
            f'<{S2}> tablenova:hasFirst "Alan" ;\n'
            f'    tablenova:hasAge "41"^^xsd:integer .\n'
        )

    def test_compaction_requires_safe_local(self):
        ts = TurtleSerializer({"ex": "https://x.org/"})
        assert ts.compact_iri("https://x.org/alice") == "ex:alice"
        assert ts.compact_iri("https://x.org/a?row=1") == "<https://x.org/a?row=1>"
        assert ts.compact_iri("https://x.org/trailing.") == "<https://x.org/trailing.>"
        assert ts.compact_iri("https://x.org/") == "ex:"

    def test_longest_namespace_wins(self):
        ts = TurtleSerializer({"ex": "https://x.org/", "deep": "https://x.org/deep/"})
        assert ts.compact_iri("https://x.org/deep/thing") == "deep:thing"

    def test_repeated_predicate_objects(self):
        triples = [
            (S1, f"{NS}hasTag", Term.literal("a")),
            (S1, f"{NS}hasTag", Term.literal("b")),
        ]
        text = TurtleSerializer(PREFIXES).serialize(triples)
        assert 'tablenova:hasTag "a", "b" .' in text

    def test_no_prefixes(self, dataset):
        text = TurtleSerializer().serialize(dataset.triples())
        assert text.startswith(f'<{S1}> <{NS}hasFirst> "Ada" ;')


class TestTriG:
    def test_named_graph_block(self, dataset):
        text = TriGSerializer(PREFIXES).serialize_quads(dataset.quads())
        assert f"<{GRAPH}> {{\n" in text
        assert f'    <{S1}> tablenova:hasFirst "Ada" ;\n        tablenova:hasLast "Lovelace" .\n' in text
        assert text.endswith("}\n")

    def test_graph_compacted_when_safe(self):
        quad = QuadRecord(S1, f"{NS}p", f"{NS}graph1", TermKind.LITERAL, "x", XSD_STRING)
        text = TriGSerializer(PREFIXES).serialize_quads([quad])
        assert "tablenova:graph1 {" in text

    def test_default_graph_statements(self):
        quad = QuadRecord(S1, f"{NS}p", "", TermKind.LITERAL, "x", XSD_STRING)
        text = TriGSerializer().serialize_quads([quad])
        assert text == f'<{S1}> <{NS}p> "x" .\n'


# ========== JSON-LD ==========

class TestJsonLd:
    def test_triples_document(self):
        text = rdf_to_jsonld(f'<{S1}> <{NS}hasFirst> "Ada" .\n', PyLDCodec())
        document = json.loads(text)
        assert document == [{"@id": S1, f"{NS}hasFirst": [{"@value": "Ada"}]}]

    def test_typed_literals_not_native(self):
        text = rdf_to_jsonld(f'<{S1}> <{NS}hasAge> "41"^^<{XSD_INTEGER}> .\n', PyLDCodec())
        value = json.loads(text)[0][f"{NS}hasAge"][0]
        assert value == {"@value": "41", "@type": XSD_INTEGER}

    def test_graph_wrapper(self):
        nquads = f'<{S1}> <{NS}hasFirst> "Ada" <{GRAPH}> .\n'
        document = json.loads(rdf_to_jsonld(nquads, PyLDCodec(), graph_iri=GRAPH))
        assert document["@context"] == {}
        assert document["@id"] == GRAPH
        assert isinstance(document["@graph"], list)
        assert json.dumps(document).count("Ada") == 1

    def test_empty_input(self):
        assert json.loads(rdf_to_jsonld("", PyLDCodec())) == []

    def test_pretty_printed(self):
        text = rdf_to_jsonld(f'<{S1}> <{NS}hasFirst> "Zoë" .\n', PyLDCodec())
        assert "\n  " in text
        assert "Zoë" in text


# ========== Multi-syntax ==========

class BrokenCodec(JsonLdCodec):
    def from_rdf(self, nquads):
        raise RuntimeError("codec unavailable")


class RecordingCodec(JsonLdCodec):
    def __init__(self):
        self.inputs = []

    def from_rdf(self, nquads):
        self.inputs.append(nquads)
        return []


class TestSerializer:
    def test_all_syntaxes(self, dataset):
        out = Serializer().serialize(dataset, GRAPH, PREFIXES)
        assert set(out.to_dict()) == set(SYNTAXES)
        assert out.turtle.startswith("@prefix tablenova:")
        assert out.ntriples.count("\n") == 4
        assert out.nquads.count(f"<{GRAPH}>") == 4
        assert json.loads(out.jsonld_graph)["@id"] == GRAPH

    def test_prefixes_only_affect_turtle_family(self, dataset):
        with_prefixes = Serializer().serialize(dataset, GRAPH, PREFIXES)
        without = Serializer().serialize(dataset, GRAPH, {})
        assert with_prefixes.ntriples == without.ntriples
        assert with_prefixes.nquads == without.nquads
        assert with_prefixes.jsonld_triples == without.jsonld_triples
        assert with_prefixes.turtle != without.turtle

    def test_deterministic(self, dataset):
        first = Serializer().serialize(dataset, GRAPH, PREFIXES)
        second = Serializer().serialize(dataset, GRAPH, PREFIXES)
        assert first == second

    def test_codec_is_injected(self, dataset):
        codec = RecordingCodec()
        out = Serializer(jsonld_codec=codec).serialize(dataset, GRAPH, PREFIXES)
        assert codec.inputs == [out.ntriples, out.nquads]

    def test_codec_failure_wrapped(self, dataset):
        with pytest.raises(SerializationError) as exc:
            Serializer(jsonld_codec=BrokenCodec()).serialize(dataset, GRAPH, PREFIXES)
        assert exc.value.syntax == "jsonldTriples"
        assert "codec unavailable" in str(exc.value)

    def test_empty_dataset(self):
        out = Serializer().serialize(RdfDataset(), GRAPH, {})
        assert out.ntriples == ""
        assert out.nquads == ""
        assert out.turtle == ""
        assert json.loads(out.jsonld_graph) == {"@context": {}, "@id": GRAPH, "@graph": []}

    def test_jsonld_objects_match_ntriples(self):
        note = build_object_term("tab\there ctl\x01", XSD_STRING)
        home = build_object_term("http://x.example/a b", XSD_ANYURI)
        dataset = RdfDataset([
            QuadRecord(S1, f"{NS}hasNote", GRAPH, note.kind, note.value, note.datatype),
            QuadRecord(S1, f"{NS}hasHome", GRAPH, home.kind, home.value, home.datatype),
        ])
        out = Serializer().serialize(dataset, GRAPH, PREFIXES)

        assert '"tab\\there ctl\x01"' in out.ntriples
        assert "<http://x.example/a%20b>" in out.ntriples

        nodes = {node["@id"]: node for node in json.loads(out.jsonld_triples)}
        assert nodes[S1][f"{NS}hasNote"] == [{"@value": "tab\there ctl\x01"}]
        assert nodes[S1][f"{NS}hasHome"] == [{"@id": "http://x.example/a%20b"}]

    def test_get_by_key(self, dataset):
        out = Serializer().serialize(dataset, GRAPH, PREFIXES)
        assert out.get("jsonldTriples") == out.jsonld_triples
        with pytest.raises(ValueError):
            out.get("rdfxml")


class TestExportNaming:
    def test_extensions(self):
        assert get_syntax("turtle").extension == "ttl"
        assert get_syntax("ntriples").media_type == "application/n-triples"
        assert get_syntax("jsonldGraph").extension == "jsonld"

    def test_filename(self):
        assert export_filename("people.csv", GRAPH, "turtle") == "people__2025-03-01_people.ttl"
        assert export_filename("people.csv", GRAPH, "nquads") == "people__2025-03-01_people.nq"

    def test_unsafe_characters_replaced(self):
        graph = "https://x.org/run/2025-03-01/caf\u00e9 menu"
        assert export_filename("menu.xlsx", graph, "trig") == "menu__2025-03-01_caf__menu.trig"

    def test_unknown_syntax(self):
        with pytest.raises(ValueError):
            export_filename("a.csv", GRAPH, "rdfxml")
