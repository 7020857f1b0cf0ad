"""
Document store client.

Thin HTTP wrapper over a document store that offers per-document
optimistic versioning:

- get     GET    {collection}/{id}                  -> found, version, source
- put     PUT    {collection}/{id}[?version=V]      -> created, version
- delete  DELETE {collection}/{id}                  -> ok
- search  POST   {collection}/_search               -> [(id, source)]
- count   GET    {collection}/_count                -> n

A conditional put that loses the version check is reported through
PutResult.conflict, not raised. Network failures and unexpected statuses
raise JobPersistenceError.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from .config import StoreConfig
from .errors import JobPersistenceError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GetResult:
    """Result of a single-document read."""

    found: bool
    version: Optional[int] = None
    source: Optional[dict] = None


@dataclass(frozen=True)
class PutResult:
    """
    Result of a single-document write.

    ok is False only when the write was rejected because of a version
    mismatch or, for create-only writes, an existing document.
    """

    ok: bool
    created: bool = False
    version: Optional[int] = None
    conflict: bool = False


@dataclass(frozen=True)
class SearchHit:
    """Search hit with the index's (possibly stale) copy of the document."""

    id: str
    source: dict


class DocumentStore(Protocol):
    """Operations the job store needs from a versioned document store."""

    def get(self, collection: str, doc_id: str) -> GetResult:
        ...

    def put(
        self,
        collection: str,
        doc_id: str,
        document: dict,
        expected_version: Optional[int] = None,
        create_only: bool = False,
    ) -> PutResult:
        ...

    def delete(self, collection: str, doc_id: str) -> bool:
        ...

    def search(self, collection: str, query: dict, size: Optional[int] = None) -> list[SearchHit]:
        ...

    def count(self, collection: str) -> int:
        ...


class DocumentStoreClient:
    """
    httpx-based DocumentStore.

    One pooled httpx.Client is kept per instance; pass http_client to
    inject a preconfigured one (custom transport, auth, ...).
    """

    def __init__(self, config: StoreConfig, http_client: Optional[httpx.Client] = None):
        self.config = config
        self._client = http_client or httpx.Client(
            timeout=config.timeout_seconds,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    def close(self) -> None:
        self._client.close()

    def _url(self, collection: str, doc_id: str) -> str:
        return f"{self.config.collection_url(collection)}/{doc_id}"

    def _request(
        self,
        method: str,
        url: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> httpx.Response:
        logger.debug(f"Executing HTTP {method} against '{url}' with body {json}")
        try:
            response = self._client.request(method, url, json=json, params=params)
        except httpx.TimeoutException as e:
            raise JobPersistenceError(
                f"Timeout after {self.config.timeout_seconds}s on {method} {url}"
            ) from e
        except httpx.HTTPError as e:
            raise JobPersistenceError(f"Error when making HTTP request: {e}") from e

        logger.debug(f"Received response '{response.status_code}' with body {response.text[:500]}")
        return response

    @staticmethod
    def _body(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError as e:
            raise JobPersistenceError(
                f"Could not read JSON from response ({response.status_code})"
            ) from e
        if not isinstance(body, dict):
            raise JobPersistenceError(f"Unexpected response body: {response.text[:200]}")
        return body

    @staticmethod
    def _unexpected(action: str, response: httpx.Response) -> JobPersistenceError:
        return JobPersistenceError(
            f"Error when {action}: {response.status_code} {response.text[:200]}"
        )

    def get(self, collection: str, doc_id: str) -> GetResult:
        response = self._request("GET", self._url(collection, doc_id))

        if response.status_code == 404:
            return GetResult(found=False)
        if response.status_code != 200:
            raise self._unexpected(f"requesting {collection} {doc_id}", response)

        body = self._body(response)
        if not body.get("found", False):
            return GetResult(found=False)

        return GetResult(
            found=True,
            version=body.get("_version"),
            source=body.get("_source") or {},
        )

    def put(
        self,
        collection: str,
        doc_id: str,
        document: dict,
        expected_version: Optional[int] = None,
        create_only: bool = False,
    ) -> PutResult:
        params = {}
        if expected_version is not None:
            params["version"] = expected_version
        if create_only:
            params["op_type"] = "create"

        response = self._request(
            "PUT", self._url(collection, doc_id), json=document, params=params or None
        )

        if response.status_code == 409:
            return PutResult(ok=False, conflict=True)
        if response.status_code not in (200, 201):
            raise self._unexpected(f"storing {collection} {doc_id}", response)

        body = self._body(response)
        created = body.get("created", body.get("result") == "created")
        return PutResult(ok=True, created=bool(created), version=body.get("_version"))

    def delete(self, collection: str, doc_id: str) -> bool:
        response = self._request("DELETE", self._url(collection, doc_id))

        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise self._unexpected(f"removing {collection} {doc_id}", response)

    def search(self, collection: str, query: dict, size: Optional[int] = None) -> list[SearchHit]:
        params = {"size": size} if size is not None else None
        response = self._request(
            "POST", self._url(collection, "_search"), json=query, params=params
        )

        # Missing index: nothing has been stored yet
        if response.status_code == 404:
            return []
        if response.status_code != 200:
            raise self._unexpected(f"searching {collection}", response)

        body = self._body(response)
        hits = (body.get("hits") or {}).get("hits") or []
        return [SearchHit(id=hit["_id"], source=hit.get("_source") or {}) for hit in hits]

    def count(self, collection: str) -> int:
        response = self._request("GET", self._url(collection, "_count"))

        if response.status_code == 404:
            return 0
        if response.status_code != 200:
            raise self._unexpected(f"counting {collection}", response)

        return int(self._body(response).get("count", 0))
