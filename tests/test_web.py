"""
Tests for the runs HTTP API.

Uses FastAPI's TestClient against an app wired to an in-memory store.
"""

import json

import pytest
from fastapi.testclient import TestClient

from table_nova.config import TableNovaConfig
from table_nova.engine import TableNovaEngine
from table_nova.formats import JsonLdCodec, Serializer
from table_nova.storage import MemoryRunStore
from table_nova.web import create_app

PEOPLE = b"first,last\nAda,Lovelace\n"


class BrokenCodec(JsonLdCodec):
    def from_rdf(self, nquads):
        raise RuntimeError("codec down")


@pytest.fixture
def engine():
    return TableNovaEngine(TableNovaConfig(store_backend="memory"))


@pytest.fixture
def client(engine):
    return TestClient(create_app(engine=engine))


def upload(client, content=PEOPLE, filename="people.csv", options=None, path="/runs"):
    data = {"options": json.dumps(options)} if options is not None else {}
    return client.post(path, files={"file": (filename, content, "text/csv")}, data=data)


class TestCreateRun:
    def test_create(self, client):
        r = upload(client)
        assert r.status_code == 200
        body = r.json()
        assert body["filename"] == "people.csv"
        assert body["quad_count"] == 2
        assert body["column_keys"] == ["first", "last"]
        assert body["graph_iri"].endswith("/people")
        assert set(body["serializations"]) == {
            "turtle", "trig", "ntriples", "nquads", "jsonldTriples", "jsonldGraph",
        }

    def test_options_json(self, client):
        r = upload(client, options={
            "treatFirstRowAsHeader": False,
            "predicate": {"casing": "snake_case", "prefixHas": False},
        })
        assert r.status_code == 200
        body = r.json()
        assert body["column_keys"] == ["ColumnA", "ColumnB"]
        assert body["quad_count"] == 4
        assert "tablenova:columna " in body["serializations"]["turtle"]

    def test_invalid_options(self, client):
        assert upload(client, options={"predicate": {"casing": "kebab"}}).status_code == 400
        r = client.post("/runs", files={"file": ("people.csv", PEOPLE)}, data={"options": "{oops"})
        assert r.status_code == 400

    def test_unreadable_input(self, client):
        r = upload(client, content=b"not a workbook", filename="book.xlsx")
        assert r.status_code == 400
        assert r.json()["detail"]["kind"] == "input"

    def test_busy(self, client, engine):
        engine._run_lock.acquire()
        try:
            r = upload(client)
        finally:
            engine._run_lock.release()
        assert r.status_code == 409

    def test_codec_failure_reports_persisted(self):
        engine = TableNovaEngine(
            TableNovaConfig(store_backend="memory"),
            serializer=Serializer(jsonld_codec=BrokenCodec()),
        )
        client = TestClient(create_app(engine=engine))
        r = upload(client)
        assert r.status_code == 500
        detail = r.json()["detail"]
        assert detail["kind"] == "codec"
        assert detail["persisted"] is True
        assert len(engine.store.list_runs()) == 1


class TestPreview:
    def test_preview(self, client):
        r = upload(client, content=b"a,b\n1,2\n3,4\n", path="/runs/preview")
        assert r.status_code == 200
        body = r.json()
        assert body["header"] == ["a", "b"]
        assert body["rows"] == [["1", "2"], ["3", "4"]]
        assert body["column_keys"] == ["a", "b"]
        assert client.get("/runs").json()["count"] == 0


class TestStoredRuns:
    def test_list(self, client):
        upload(client)
        body = client.get("/runs").json()
        assert body["count"] == 1
        assert body["runs"][0]["filename"] == "people.csv"

    def test_get(self, client):
        created = upload(client).json()
        r = client.get("/runs/graph", params={"iri": created["graph_iri"]})
        assert r.status_code == 200
        assert r.json()["serializations"] == created["serializations"]

    def test_get_missing(self, client):
        r = client.get("/runs/graph", params={"iri": "https://x.org/nope"})
        assert r.status_code == 404
        assert r.json()["detail"]["operation"] == "get"

    def test_export(self, client):
        created = upload(client).json()
        r = client.get("/runs/graph/export", params={"iri": created["graph_iri"], "syntax": "ntriples"})
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("application/n-triples")
        assert 'filename="people__' in r.headers["content-disposition"]
        assert r.text == created["serializations"]["ntriples"]

    def test_export_bad_syntax(self, client):
        created = upload(client).json()
        r = client.get("/runs/graph/export", params={"iri": created["graph_iri"], "syntax": "rdfxml"})
        assert r.status_code == 400

    def test_delete(self, client):
        created = upload(client).json()
        r = client.delete("/runs/graph", params={"iri": created["graph_iri"]})
        assert r.status_code == 200
        assert client.get("/runs").json()["count"] == 0


class TestApp:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "ok"

    def test_create_app_from_config(self):
        app = create_app(TableNovaConfig(store_backend="memory"))
        assert isinstance(app.state.engine.store, MemoryRunStore)
