import io
import json
from urllib import error
from urllib.request import Request

import pytest

from ag_common.errors import UnexpectedResponseError
from ag_instance import client as client_mod
from ag_instance.client import ServiceClient

pytestmark = [pytest.mark.unit_instance]


class DummyResponse:
    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self._body = body

    def read(self) -> bytes:
        return self._body.encode("utf-8")

    def __enter__(self) -> "DummyResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False


def _http_error(url: str, code: int, body: str = "") -> error.HTTPError:
    return error.HTTPError(url, code, "err", hdrs=None, fp=io.BytesIO(body.encode("utf-8")))


def test_base_url_requires_http_scheme() -> None:
    with pytest.raises(ValueError):
        ServiceClient(base_url="file:///tmp/qdrant")


def test_upsert_waits_and_sends_points(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_urlopen(req: Request, timeout: float | None = None) -> DummyResponse:
        captured["method"] = req.get_method()
        captured["url"] = req.full_url
        captured["data"] = req.data
        captured["content_type"] = req.get_header("Content-type")
        return DummyResponse(200, '{"result": {"status": "completed"}}')

    monkeypatch.setattr(client_mod.request, "urlopen", fake_urlopen)

    ServiceClient("http://127.0.0.1:6333/").upsert_points(
        "smoke", [{"id": 1, "vector": [0.1, 0.2], "payload": {"city": "Berlin"}}]
    )

    assert captured["method"] == "PUT"
    assert captured["url"] == "http://127.0.0.1:6333/collections/smoke/points?wait=true"
    assert captured["content_type"] == "application/json"
    body = json.loads(captured["data"].decode("utf-8"))  # type: ignore[union-attr]
    assert body == {"points": [{"id": 1, "vector": [0.1, 0.2], "payload": {"city": "Berlin"}}]}


@pytest.mark.parametrize("code", [200, 404])
def test_delete_accepts_absent_collection(monkeypatch: pytest.MonkeyPatch, code: int) -> None:
    def fake_urlopen(req: Request, timeout: float | None = None) -> DummyResponse:
        if code == 404:
            raise _http_error(req.full_url, 404, '{"status": {"error": "Not found"}}')
        return DummyResponse(200, '{"result": true}')

    monkeypatch.setattr(client_mod.request, "urlopen", fake_urlopen)
    assert ServiceClient("http://127.0.0.1:6333").delete_collection("smoke") == code


def test_delete_rejects_other_statuses(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(req: Request, timeout: float | None = None) -> DummyResponse:
        raise _http_error(req.full_url, 500, "oops")

    monkeypatch.setattr(client_mod.request, "urlopen", fake_urlopen)
    with pytest.raises(UnexpectedResponseError) as excinfo:
        ServiceClient("http://127.0.0.1:6333").delete_collection("smoke")
    assert excinfo.value.context["status"] == 500
    assert excinfo.value.context["body"] == "oops"


def test_create_collection_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_urlopen(req: Request, timeout: float | None = None) -> DummyResponse:
        captured["url"] = req.full_url
        captured["body"] = json.loads(req.data.decode("utf-8"))  # type: ignore[union-attr]
        return DummyResponse(200, '{"result": true}')

    monkeypatch.setattr(client_mod.request, "urlopen", fake_urlopen)
    ServiceClient("http://127.0.0.1:6333").create_collection(
        "smoke",
        vectors={"size": 4, "distance": "Dot"},
        optimizers_config={"default_segment_number": 1},
        replication_factor=1,
    )
    assert captured["url"] == "http://127.0.0.1:6333/collections/smoke"
    assert captured["body"] == {
        "vectors": {"size": 4, "distance": "Dot"},
        "optimizers_config": {"default_segment_number": 1},
        "replication_factor": 1,
    }


def test_search_parses_hits(monkeypatch: pytest.MonkeyPatch) -> None:
    body = {"result": [{"id": 3, "version": 0, "score": 1.2, "payload": {"city": "Moscow"}}], "status": "ok"}
    monkeypatch.setattr(
        client_mod.request, "urlopen", lambda req, timeout=None: DummyResponse(200, json.dumps(body))
    )
    response = ServiceClient("http://127.0.0.1:6333").search("smoke", (0.2, 0.1, 0.9, 0.7), top=3)
    assert [hit.id for hit in response.result] == [3]
    assert response.result[0].payload == {"city": "Moscow"}


def test_collection_info_requires_integer_count(monkeypatch: pytest.MonkeyPatch) -> None:
    bodies = iter(
        [
            '{"result": {"status": "green", "points_count": 3}}',
            '{"result": {"status": "green", "points_count": "3"}}',
        ]
    )
    monkeypatch.setattr(
        client_mod.request, "urlopen", lambda req, timeout=None: DummyResponse(200, next(bodies))
    )
    client = ServiceClient("http://127.0.0.1:6333")
    assert client.collection_info("smoke").points_count == 3
    with pytest.raises(UnexpectedResponseError, match="collection info"):
        client.collection_info("smoke")


def test_connection_refused_is_typed(monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(req: Request, timeout: float | None = None) -> DummyResponse:
        raise error.URLError(ConnectionRefusedError(111, "refused"))

    monkeypatch.setattr(client_mod.request, "urlopen", refuse)
    with pytest.raises(UnexpectedResponseError, match="GET /collections/smoke failed"):
        ServiceClient("http://127.0.0.1:6333").collection_info("smoke")
