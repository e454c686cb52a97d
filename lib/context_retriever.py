from __future__ import annotations

import re
from collections import Counter
from typing import Any, Iterable, Optional, Protocol, Sequence

import httpx

from lib.errors import RequestValidationError, RetrievalError
from schemas.context import ContextChunk
from schemas.settings import RetrievalSettings

MIN_QUERY_CHARS = 10
MAX_QUERY_CHARS = 500
MIN_CHUNK_CHARS = 50
MAX_REPETITION_RATIO = 0.3
MAX_DOC_CONTENT_CHARS = 500

LOW_QUALITY_MARKERS = (
    "lorem ipsum",
    "placeholder",
    "coming soon",
    "under construction",
    "test content",
)

RE_HTML_TAG = re.compile(r"<[^>]+>")


class VectorSearchService(Protocol):
    def search(
        self,
        query: str,
        k: int,
        min_score: float,
        namespaces: Sequence[str],
    ) -> list[ContextChunk]: ...


def _doc_text(data: Any) -> str:
    if isinstance(data, str):
        return data.strip()
    if not isinstance(data, dict):
        return ""
    parts: list[str] = []
    for key in ("post_title", "post_excerpt"):
        if data.get(key):
            parts.append(str(data[key]).strip())
    content = data.get("post_content") or data.get("content") or data.get("text")
    if content:
        content = " ".join(RE_HTML_TAG.sub(" ", str(content)).split())
        if len(content) > MAX_DOC_CONTENT_CHARS:
            content = content[: MAX_DOC_CONTENT_CHARS - 3] + "..."
        parts.append(content)
    return " ".join(p for p in parts if p)


def parse_chunk(doc: Any) -> Optional[ContextChunk]:
    """Build a chunk from one search hit; None for hits missing an id, score or text."""
    if not isinstance(doc, dict) or doc.get("id") in (None, "") or doc.get("score") is None:
        return None

    text = _doc_text(doc.get("text") or doc.get("content") or doc.get("data"))
    if not text:
        return None

    try:
        score = float(doc["score"])
    except (TypeError, ValueError):
        return None
    if not 0.0 <= score <= 1.0:
        return None

    metadata = doc.get("metadata") if isinstance(doc.get("metadata"), dict) else {}
    raw_id = str(doc["id"])
    source = str(doc.get("source") or metadata.get("source_url") or metadata.get("source") or "")
    return ContextChunk(
        id=raw_id if raw_id.startswith("chunk-") else f"chunk-{raw_id}",
        text=text,
        score=score,
        source_id=str(doc.get("source_id") or metadata.get("post_id") or raw_id),
        source=source,
        metadata=dict(metadata),
    )


class MvdbSearchClient:
    """
    Vector search over HTTP.

    POSTs `{query, namespaces, k, min_score}` to `<api_url>/vector-search` and
    accepts either a flat `results` list or the GraphQL-style
    `data.similarity.docs` shape. Without an endpoint or token it returns no
    chunks rather than failing.
    """

    def __init__(
        self,
        api_url: str,
        access_token: str,
        *,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_url = (api_url or "").rstrip("/")
        self.access_token = (access_token or "").strip()
        self.timeout_seconds = float(timeout_seconds)
        self._client = client

    @classmethod
    def from_settings(cls, settings: RetrievalSettings) -> "MvdbSearchClient":
        return cls(settings.api_url, settings.access_token, timeout_seconds=settings.timeout_seconds)

    def search(self, query: str, k: int, min_score: float, namespaces: Sequence[str]) -> list[ContextChunk]:
        if not self.api_url or not self.access_token:
            return []

        payload = {"query": query, "namespaces": list(namespaces), "k": int(k), "min_score": float(min_score)}
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "User-Agent": "page-composer/0.1",
        }
        url = f"{self.api_url}/vector-search"

        try:
            if self._client is not None:
                resp = self._client.post(url, json=payload, headers=headers, timeout=self.timeout_seconds)
            else:
                with httpx.Client(timeout=self.timeout_seconds) as client:
                    resp = client.post(url, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise RetrievalError(f"Vector search returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise RetrievalError(f"Vector search request failed: {e}") from e
        except ValueError as e:
            raise RetrievalError("Vector search returned invalid JSON") from e

        if isinstance(data, dict) and data.get("errors"):
            messages = ", ".join(str(err.get("message", "Unknown error")) for err in data["errors"] if isinstance(err, dict))
            raise RetrievalError(f"Vector search errors: {messages}")

        docs: Iterable[Any] = []
        if isinstance(data, dict):
            if isinstance(data.get("results"), list):
                docs = data["results"]
            else:
                similarity = (data.get("data") or {}).get("similarity") or {}
                docs = similarity.get("docs") or []

        chunks: list[ContextChunk] = []
        for doc in docs:
            chunk = parse_chunk(doc)
            if chunk is not None:
                chunks.append(chunk)
        return chunks


def passes_quality_check(chunk: ContextChunk) -> bool:
    text = chunk.text
    if len(text) < MIN_CHUNK_CHARS:
        return False

    lowered = text.lower()
    if any(marker in lowered for marker in LOW_QUALITY_MARKERS):
        return False

    words = text.split(" ")
    if len(words) > 10:
        most_common = Counter(words).most_common(1)[0][1]
        if most_common / len(words) > MAX_REPETITION_RATIO:
            return False
    return True


class ContextRetriever:
    """
    Validates retrieval parameters, queries the search service and drops weak
    or low-quality chunks. Surviving chunks keep the service's order.
    """

    def __init__(self, service: VectorSearchService, settings: Optional[RetrievalSettings] = None) -> None:
        self.service = service
        self.settings = settings or RetrievalSettings()

    def _namespaces(self, namespaces: Optional[Sequence[str]]) -> list[str]:
        allowed = set(self.settings.allowed_namespaces)
        if isinstance(namespaces, str):
            namespaces = [namespaces]
        picked: list[str] = []
        for ns in namespaces or []:
            ns = str(ns).strip().lower()
            if ns in allowed and ns not in picked:
                picked.append(ns)
        return picked or list(self.settings.default_namespaces)

    def retrieve(
        self,
        query: str,
        *,
        k: int = 10,
        min_score: float = 0.5,
        namespaces: Optional[Sequence[str]] = None,
    ) -> list[ContextChunk]:
        query = (query or "").strip()
        if not MIN_QUERY_CHARS <= len(query) <= MAX_QUERY_CHARS:
            raise RequestValidationError(
                f"Query must be between {MIN_QUERY_CHARS} and {MAX_QUERY_CHARS} characters"
            )

        try:
            k = int(k)
        except (TypeError, ValueError):
            k = self.settings.k
        if not 1 <= k <= 50:
            k = self.settings.k

        try:
            min_score = float(min_score)
        except (TypeError, ValueError):
            min_score = self.settings.min_score
        if not 0.0 <= min_score <= 1.0:
            min_score = 0.5

        chunks = self.service.search(query, k, min_score, self._namespaces(namespaces))
        return [c for c in chunks if c.score >= min_score and passes_quality_check(c)][:k]
