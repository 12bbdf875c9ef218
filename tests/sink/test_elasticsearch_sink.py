"""Tests for tracksim.sink.elasticsearch — REST calls against a mock transport."""

import base64
import json

import httpx
import pytest

from tracksim.config import Settings
from tracksim.errors import SinkError
from tracksim.sink.elasticsearch import ElasticsearchSink

pytestmark = pytest.mark.unit

URL = "http://es.test:9200"


class FakeCluster:
    """Minimal in-memory stand-in for the Elasticsearch REST API."""

    def __init__(self):
        self.indices: dict[str, dict] = {}
        self.docs: dict[str, list[dict]] = {}
        self.requests: list[httpx.Request] = []
        self.bulk_errors = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = [p for p in request.url.path.split("/") if p]
        if not parts:
            return httpx.Response(200, json={"tagline": "You Know, for Search"})
        name = parts[0]
        if len(parts) == 1:
            if request.method == "HEAD":
                return httpx.Response(200 if name in self.indices else 404)
            if request.method == "PUT":
                if name in self.indices:
                    return httpx.Response(400, json={"error": {"type": "resource_already_exists_exception"}})
                self.indices[name] = json.loads(request.content)
                self.docs[name] = []
                return httpx.Response(200, json={"acknowledged": True})
            if request.method == "DELETE":
                if self.indices.pop(name, None) is None:
                    return httpx.Response(404, json={"error": "index_not_found_exception"})
                self.docs.pop(name, None)
                return httpx.Response(200, json={"acknowledged": True})
        if parts[1:] == ["_doc"] and request.method == "POST":
            self.docs.setdefault(name, []).append(json.loads(request.content))
            return httpx.Response(201, json={"result": "created"})
        if parts[1:] == ["_bulk"] and request.method == "POST":
            lines = request.content.decode().strip().split("\n")
            items = []
            for action, doc in zip(lines[::2], lines[1::2]):
                assert json.loads(action) == {"create": {}}
                self.docs.setdefault(name, []).append(json.loads(doc))
                if self.bulk_errors:
                    items.append({"create": {"status": 400, "error": {
                        "type": "document_parsing_exception", "reason": "bad location"}}})
                else:
                    items.append({"create": {"status": 201}})
            return httpx.Response(200, json={"errors": self.bulk_errors, "items": items})
        return httpx.Response(405)


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def sink(cluster):
    s = ElasticsearchSink(URL, "elastic", "changeme", transport=httpx.MockTransport(cluster))
    yield s
    s.close()


def _refusing(request):
    raise httpx.ConnectError("connection refused", request=request)


class TestPing:

    def test_ok(self, sink):
        assert sink.ping() is True

    def test_connection_refused(self, log_messages):
        with ElasticsearchSink(URL, transport=httpx.MockTransport(_refusing)) as s:
            assert s.ping() is False
        assert any("Cannot reach" in m for m in log_messages)

    def test_error_status(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(503))
        with ElasticsearchSink(URL, transport=transport) as s:
            assert s.ping() is False


class TestIndexLifecycle:

    def test_exists_false_then_true(self, sink, cluster):
        assert sink.exists("tracks") is False
        sink.create("tracks", {"mappings": {}})
        assert sink.exists("tracks") is True
        assert cluster.indices["tracks"] == {"mappings": {}}

    def test_delete(self, sink, cluster):
        sink.create("tracks", {})
        sink.delete("tracks")
        assert "tracks" not in cluster.indices

    def test_create_conflict_raises(self, sink):
        sink.create("tracks", {})
        with pytest.raises(SinkError, match="400"):
            sink.create("tracks", {})

    def test_delete_missing_raises(self, sink):
        with pytest.raises(SinkError, match="404"):
            sink.delete("nope")

    def test_exists_server_error_raises(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(500))
        with ElasticsearchSink(URL, transport=transport) as s:
            with pytest.raises(SinkError):
                s.exists("tracks")

    def test_transport_error_is_sink_error(self):
        with ElasticsearchSink(URL, transport=httpx.MockTransport(_refusing)) as s:
            with pytest.raises(SinkError, match="refused"):
                s.exists("tracks")


class TestWrites:

    def test_index_one(self, sink, cluster):
        sink.index("tracks", {"entity_id": "a"})
        assert cluster.docs["tracks"] == [{"entity_id": "a"}]

    def test_bulk_ndjson(self, sink, cluster):
        docs = [{"entity_id": "a"}, {"entity_id": "b"}]
        assert sink.bulk("tracks", docs) == []
        assert cluster.docs["tracks"] == docs
        request = cluster.requests[-1]
        assert request.url.path == "/tracks/_bulk"
        assert request.headers["content-type"] == "application/x-ndjson"
        assert request.content.endswith(b"\n")

    def test_bulk_empty_sends_nothing(self, sink, cluster):
        assert sink.bulk("tracks", []) == []
        assert cluster.requests == []

    def test_bulk_item_errors(self, sink, cluster):
        cluster.bulk_errors = True
        reasons = sink.bulk("tracks", [{"entity_id": "a"}])
        assert reasons == ["400: bad location"]

    def test_bulk_request_failure(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(413, text="too large"))
        with ElasticsearchSink(URL, transport=transport) as s:
            with pytest.raises(SinkError, match="413: too large"):
                s.bulk("tracks", [{"entity_id": "a"}])


class TestAuth:

    def test_basic_auth(self, sink, cluster):
        sink.ping()
        expected = base64.b64encode(b"elastic:changeme").decode()
        assert cluster.requests[0].headers["authorization"] == f"Basic {expected}"

    def test_api_key_wins(self, cluster):
        with ElasticsearchSink(URL, "elastic", "changeme", api_key="abc123",
                               transport=httpx.MockTransport(cluster)) as s:
            s.ping()
        assert cluster.requests[0].headers["authorization"] == "ApiKey abc123"

    def test_no_credentials(self, cluster):
        with ElasticsearchSink(URL, transport=httpx.MockTransport(cluster)) as s:
            s.ping()
        assert "authorization" not in cluster.requests[0].headers

    def test_user_agent(self, sink, cluster):
        sink.ping()
        assert cluster.requests[0].headers["user-agent"].startswith("tracksim/")


class TestFromSettings:

    def test_uses_settings(self):
        settings = Settings(_env_file=None, es_url="http://example:9200/", es_timeout=3.0)
        s = ElasticsearchSink.from_settings(settings)
        try:
            assert s.url == "http://example:9200"
        finally:
            s.close()
