import pytest
import requests

from weatherdiary.storage.backends import FirestoreBackend, decode_fields, encode_fields
from weatherdiary.storage.crypto import is_encrypted


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, *responses):
        self.calls = []
        self._responses = list(responses)

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self._responses.pop(0)


DOCS = "https://firestore.googleapis.com/v1/projects/diary-demo/databases/(default)/documents"


def test_fields_round_trip_through_firestore_values():
    data = {
        "userId": "user_1",
        "timestamp": 1_700_000_000_000,
        "encrypted": True,
        "mood": {"emoji": "😊", "type": "happy"},
        "weather": {"humidity": None, "temperature_c": "21"},
        "tags": ["a", 2.5],
    }

    encoded = encode_fields(data)

    assert encoded["timestamp"] == {"integerValue": "1700000000000"}
    assert encoded["encrypted"] == {"booleanValue": True}
    assert decode_fields(encoded) == data


def test_create_returns_document_id():
    session = FakeSession(FakeResponse({"name": f"{DOCS}/diaries/abc123"}))
    backend = FirestoreBackend("diary-demo", "api-key", session=session)

    doc_id = backend.create({"userId": "user_1", "title": "Trip"})

    method, url, kwargs = session.calls[0]
    assert doc_id == "abc123"
    assert (method, url) == ("POST", f"{DOCS}/diaries")
    assert kwargs["params"] == [("key", "api-key")]
    assert kwargs["json"]["fields"]["title"] == {"stringValue": "Trip"}


def test_query_filters_by_user():
    rows = [
        {"document": {"name": f"{DOCS}/diaries/one", "fields": {"title": {"stringValue": "Trip"}}}},
        {"readTime": "2025-05-10T12:00:00Z"},
    ]
    session = FakeSession(FakeResponse(rows))
    backend = FirestoreBackend("diary-demo", session=session)

    results = backend.query("user_1", 100)

    method, url, kwargs = session.calls[0]
    query = kwargs["json"]["structuredQuery"]
    assert url == f"{DOCS}:runQuery"
    assert query["where"]["fieldFilter"]["value"] == {"stringValue": "user_1"}
    assert query["limit"] == 100
    assert results == [("one", {"title": "Trip"})]


def test_update_of_missing_document_raises_key_error():
    session = FakeSession(FakeResponse(status_code=404))
    backend = FirestoreBackend("diary-demo", session=session)

    with pytest.raises(KeyError):
        backend.update("gone", {"title": "x"})

    params = session.calls[0][2]["params"]
    assert ("updateMask.fieldPaths", "title") in params
    assert ("currentDocument.exists", "true") in params


def test_server_errors_propagate():
    backend = FirestoreBackend("diary-demo", session=FakeSession(FakeResponse(status_code=503)))

    with pytest.raises(requests.HTTPError):
        backend.ping()


@pytest.mark.parametrize(
    "text, expected",
    [
        ("dXNlcl8xOlRyaXAgdG8gdGhlIHJpdmVy", True),
        ("U2hvcnQ=", False),
        ("A walk along the river", False),
        ("", False),
    ],
)
def test_is_encrypted(text, expected):
    assert is_encrypted(text) is expected
