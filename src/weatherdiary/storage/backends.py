"""Document store backends for the remote diary store.

Documents are plain dicts scoped by their ``userId`` field. Backends are
blocking; :class:`RemoteDiaryStore` runs them in a worker thread.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..errors import RemoteUnavailableError

logger = logging.getLogger(__name__)

Document = Dict[str, Any]

FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"


class DocumentBackend(ABC):
    @abstractmethod
    def ping(self) -> None:
        """Raise if the store cannot be reached."""

    @abstractmethod
    def create(self, data: Document) -> str:
        """Store a new document and return its id."""

    @abstractmethod
    def query(self, user_id: str, limit: int) -> List[Tuple[str, Document]]:
        ...

    @abstractmethod
    def update(self, doc_id: str, data: Document) -> None:
        """Merge ``data`` into an existing document. Raises KeyError if it does not exist."""

    @abstractmethod
    def delete(self, doc_id: str) -> None:
        ...


class InMemoryDocumentBackend(DocumentBackend):
    """Process-local document store for development mode and tests.

    Flip ``available`` to simulate an outage: every call then raises
    :class:`RemoteUnavailableError`.
    """

    def __init__(self) -> None:
        self.available = True
        self.documents: Dict[str, Document] = {}
        self._lock = threading.Lock()

    def _check(self) -> None:
        if not self.available:
            raise RemoteUnavailableError("in-memory backend is offline")

    def ping(self) -> None:
        self._check()

    def create(self, data: Document) -> str:
        self._check()
        doc_id = uuid.uuid4().hex[:20]
        with self._lock:
            self.documents[doc_id] = copy.deepcopy(data)
        return doc_id

    def query(self, user_id: str, limit: int) -> List[Tuple[str, Document]]:
        self._check()
        with self._lock:
            matches = [
                (doc_id, copy.deepcopy(doc))
                for doc_id, doc in self.documents.items()
                if doc.get("userId") == user_id
            ]
        return matches[:limit]

    def update(self, doc_id: str, data: Document) -> None:
        self._check()
        with self._lock:
            if doc_id not in self.documents:
                raise KeyError(f"Document not found: {doc_id}")
            self.documents[doc_id].update(copy.deepcopy(data))

    def delete(self, doc_id: str) -> None:
        self._check()
        with self._lock:
            self.documents.pop(doc_id, None)


class FirestoreBackend(DocumentBackend):
    """Cloud Firestore over its REST API."""

    def __init__(
        self,
        project_id: str,
        api_key: Optional[str] = None,
        *,
        collection: str = "diaries",
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.project_id = project_id
        self.api_key = api_key
        self.collection = collection
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def documents_url(self) -> str:
        return f"{FIRESTORE_BASE_URL}/projects/{self.project_id}/databases/(default)/documents"

    def _params(self, extra: Optional[List[Tuple[str, str]]] = None) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = list(extra or [])
        if self.api_key:
            params.append(("key", self.api_key))
        return params

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response

    def ping(self) -> None:
        self._request(
            "GET",
            f"{self.documents_url}/{self.collection}",
            params=self._params([("pageSize", "1")]),
        )

    def create(self, data: Document) -> str:
        response = self._request(
            "POST",
            f"{self.documents_url}/{self.collection}",
            params=self._params(),
            json={"fields": encode_fields(data)},
        )
        return response.json()["name"].rsplit("/", 1)[-1]

    def query(self, user_id: str, limit: int) -> List[Tuple[str, Document]]:
        body = {
            "structuredQuery": {
                "from": [{"collectionId": self.collection}],
                "where": {
                    "fieldFilter": {
                        "field": {"fieldPath": "userId"},
                        "op": "EQUAL",
                        "value": {"stringValue": user_id},
                    }
                },
                "limit": limit,
            }
        }
        response = self._request("POST", f"{self.documents_url}:runQuery", params=self._params(), json=body)
        results: List[Tuple[str, Document]] = []
        for row in response.json():
            document = row.get("document")
            if not document:
                continue
            doc_id = document["name"].rsplit("/", 1)[-1]
            results.append((doc_id, decode_fields(document.get("fields", {}))))
        return results

    def update(self, doc_id: str, data: Document) -> None:
        params = [("updateMask.fieldPaths", field) for field in data]
        params.append(("currentDocument.exists", "true"))
        try:
            self._request(
                "PATCH",
                f"{self.documents_url}/{self.collection}/{doc_id}",
                params=self._params(params),
                json={"fields": encode_fields(data)},
            )
        except requests.HTTPError as exc:
            if exc.response is not None and exc.response.status_code == 404:
                raise KeyError(f"Document not found: {doc_id}") from exc
            raise

    def delete(self, doc_id: str) -> None:
        self._request("DELETE", f"{self.documents_url}/{self.collection}/{doc_id}", params=self._params())


def encode_value(value: Any) -> Dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    raise TypeError(f"Unsupported Firestore value: {value!r}")


def encode_fields(data: Document) -> Dict[str, Any]:
    return {key: encode_value(value) for key, value in data.items()}


def decode_value(value: Dict[str, Any]) -> Any:
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return value["timestampValue"]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(item) for item in value["arrayValue"].get("values", [])]
    logger.debug("ignoring unsupported Firestore value %s", value)
    return None


def decode_fields(fields: Dict[str, Any]) -> Document:
    return {key: decode_value(value) for key, value in fields.items()}


__all__ = [
    "DocumentBackend",
    "FirestoreBackend",
    "InMemoryDocumentBackend",
    "decode_fields",
    "encode_fields",
]
