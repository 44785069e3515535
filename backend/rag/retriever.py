"""Retriever adapters over the ChromaDB clause store."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import threading
import time
from typing import Any

from adjudication.errors import RetrievalUnavailable
from adjudication.models import EvidenceClause
from adjudication.ports import Retriever
from config import RETRIEVAL_CACHE_MAX_ENTRIES, RETRIEVAL_CACHE_TTL_SECONDS

from .chroma_store import ChromaStore, get_store

logger = logging.getLogger(__name__)


def result_to_clause(result: dict[str, Any]) -> EvidenceClause:
    metadata = result.get("metadata") or {}
    return EvidenceClause(
        id=str(result["id"]),
        text=result.get("content", ""),
        category=metadata.get("category", "General"),
        relevance_score=float(result.get("score", 0.0)),
    )


class ChromaRetriever:
    """Retriever over ``ChromaStore``; Chroma queries run in a worker thread."""

    def __init__(self, store: ChromaStore | None = None) -> None:
        self._store = store

    @property
    def store(self) -> ChromaStore:
        if self._store is None:
            self._store = get_store()
        return self._store

    def _search(self, query_text: str, category: str, k: int) -> list[EvidenceClause]:
        results = self.store.search_policy_type(query_text, category, n_results=k)
        clauses = [result_to_clause(r) for r in results]
        clauses.sort(key=lambda c: c.relevance_score, reverse=True)
        return clauses[:k]

    async def retrieve(
        self, query_text: str, category: str, k: int
    ) -> list[EvidenceClause]:
        try:
            clauses = await asyncio.to_thread(self._search, query_text, category, k)
        except Exception as e:
            logger.error(f"Policy clause search failed for {category}: {e}")
            raise RetrievalUnavailable(f"Policy clause search failed: {e}") from e

        logger.debug(f"Retrieved {len(clauses)} {category} clause(s)")
        return clauses


class CachedRetriever:
    """TTL cache in front of any Retriever.

    Keys are the SHA-256 of ``category|k|text``. Concurrent misses for the
    same key both hit the inner retriever; the last writer wins. Expired
    entries are purged on every insert, and the oldest entries are dropped
    once ``max_entries`` is reached.
    """

    def __init__(
        self,
        inner: Retriever,
        ttl_seconds: float = RETRIEVAL_CACHE_TTL_SECONDS,
        clock: Any = time.monotonic,
        max_entries: int = RETRIEVAL_CACHE_MAX_ENTRIES,
    ) -> None:
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: dict[str, tuple[float, tuple[EvidenceClause, ...]]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def cache_key(query_text: str, category: str, k: int) -> str:
        raw = f"{category}|{k}|{query_text}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    async def retrieve(
        self, query_text: str, category: str, k: int
    ) -> list[EvidenceClause]:
        if self.ttl_seconds <= 0:
            return await self.inner.retrieve(query_text, category, k)

        key = self.cache_key(query_text, category, k)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                stored_at, clauses = entry
                if now - stored_at < self.ttl_seconds:
                    return list(clauses)
                del self._entries[key]

        clauses = await self.inner.retrieve(query_text, category, k)
        with self._lock:
            stored_at = self._clock()
            self._evict(stored_at)
            self._entries.pop(key, None)
            self._entries[key] = (stored_at, tuple(clauses))
        return list(clauses)

    def _evict(self, now: float) -> None:
        # Caller holds the lock. Dicts keep insertion order, so the first
        # keys are the oldest.
        expired = [
            key
            for key, (stored_at, _) in self._entries.items()
            if now - stored_at >= self.ttl_seconds
        ]
        for key in expired:
            del self._entries[key]

        overflow = len(self._entries) - self.max_entries + 1
        for key in list(self._entries)[: max(0, overflow)]:
            del self._entries[key]
        if expired or overflow > 0:
            logger.debug(
                f"Retrieval cache evicted {len(expired)} expired and "
                f"{max(0, overflow)} overflow entries"
            )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
