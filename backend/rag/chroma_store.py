"""ChromaDB vector store for policy clause retrieval.

This module provides a wrapper around ChromaDB for storing and retrieving
insurance policy clauses. Features include:
- Semantic search with metadata filtering (policy type, clause category)
- Deduplication via content hashing
- Cached per-policy-type clause counts
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

import chromadb
from chromadb.config import Settings

from config import CHROMA_COLLECTION, CHROMA_PERSIST_DIR

logger = logging.getLogger(__name__)

COLLECTION_DESCRIPTION = "Insurance policy clauses for claim adjudication"


def _compute_content_hash(content: str) -> str:
    """Compute SHA-256 hash of clause text for deduplication.

    Whitespace and case are normalised first so re-ingesting a reformatted
    copy of the same clause is still detected.

    Returns:
        First 16 characters of hex-encoded SHA-256 hash
    """
    normalized = " ".join(content.split()).lower()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]


def distance_to_score(distance: float | None) -> float:
    """Convert a Chroma distance to a similarity score in [0, 1].

    ChromaDB uses cosine distance by default which ranges from 0-2:
      0 = identical vectors, 2 = opposite vectors
    """
    if distance is None:
        return 0.0
    return round(max(0.0, min(1.0, 1 - (distance / 2))), 4)


# Simple cache for metadata aggregations
_metadata_cache: dict[str, tuple[float, Any]] = {}
_CACHE_TTL_SECONDS = 60

# Serialises the hash lookup and insert in add_clauses
_ingest_lock = threading.Lock()


class ChromaStore:
    """Simple ChromaDB wrapper for policy clause retrieval."""

    def __init__(
        self,
        persist_dir: str | None = None,
        collection_name: str = CHROMA_COLLECTION,
        client: Any = None,
    ):
        self.persist_dir = persist_dir or CHROMA_PERSIST_DIR
        self.collection_name = collection_name

        # Initialize ChromaDB client with persistence
        self.client = client or chromadb.PersistentClient(
            path=self.persist_dir,
            settings=Settings(anonymized_telemetry=False),
        )

        self.collection = self.client.get_or_create_collection(
            name=collection_name,
            metadata={"description": COLLECTION_DESCRIPTION},
        )

    def add_clauses(
        self,
        clauses: Iterable[Mapping[str, Any]],
        policy_type: str,
        source: str = "seed",
    ) -> dict[str, Any]:
        """Index policy clauses for one policy type.

        Each clause mapping needs ``text`` and may carry ``id`` and
        ``category``; clauses without an id get one derived from their hash.
        Clauses whose normalised text is already indexed are skipped.

        Returns:
            Dict with ``added`` (new clause ids) and ``duplicates``
            (ids of clauses skipped because identical text exists).
        """
        added: list[str] = []
        duplicates: list[str] = []

        with _ingest_lock:
            documents: list[str] = []
            metadatas: list[dict[str, Any]] = []
            ids: list[str] = []
            seen_hashes: set[str] = set()

            for clause in clauses:
                text = str(clause.get("text", "")).strip()
                if not text:
                    logger.warning("Skipping policy clause with empty text")
                    continue

                content_hash = _compute_content_hash(text)
                clause_id = str(
                    clause.get("id") or f"{policy_type[:3].upper()}-{content_hash[:8]}"
                )

                if content_hash in seen_hashes or self._find_by_hash(
                    content_hash, policy_type
                ):
                    duplicates.append(clause_id)
                    continue
                seen_hashes.add(content_hash)

                documents.append(text)
                ids.append(clause_id)
                metadatas.append(
                    {
                        "policy_type": policy_type,
                        "category": str(clause.get("category") or "General"),
                        "source": source,
                        "content_hash": content_hash,
                        "created_at": datetime.now(timezone.utc).isoformat(),
                    }
                )

            if documents:
                self.collection.add(documents=documents, metadatas=metadatas, ids=ids)
                self.invalidate_cache()
                added.extend(ids)

        logger.info(
            f"Indexed {len(added)} {policy_type} clause(s), "
            f"skipped {len(duplicates)} duplicate(s)"
        )
        return {"added": added, "duplicates": duplicates}

    def _find_by_hash(self, content_hash: str, policy_type: str) -> bool:
        existing = self.collection.get(
            where={
                "$and": [
                    {"content_hash": content_hash},
                    {"policy_type": policy_type},
                ]
            },
            include=["metadatas"],
        )
        return bool(existing["ids"])

    def search(
        self,
        query: str,
        n_results: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Search for relevant clauses with optional metadata filters.

        Args:
            query: Search query text
            n_results: Maximum number of results to return
            filters: Optional metadata filters using ChromaDB where clause syntax.
                     Examples:
                     - {"policy_type": "Motor"} - exact match
                     - {"category": {"$in": ["Coverage", "Exclusion"]}} - match any

        Returns:
            List of matching clauses with id, content, metadata, distance, and score.
        """
        if self.collection.count() == 0:
            return []

        query_kwargs: dict[str, Any] = {
            "query_texts": [query],
            "n_results": n_results,
        }
        if filters:
            query_kwargs["where"] = filters

        results = self.collection.query(**query_kwargs)

        documents = (results.get("documents") or [[]])[0]
        count = len(documents)
        # Chroma omits metadatas or distances when they were not requested
        metadatas = (results.get("metadatas") or [[{}] * count])[0]
        distances = (results.get("distances") or [[None] * count])[0]

        return [
            {
                "id": clause_id,
                "content": document,
                "metadata": metadata or {},
                "distance": distance,
                "score": distance_to_score(distance),
            }
            for clause_id, document, metadata, distance in zip(
                results["ids"][0], documents, metadatas, distances
            )
        ]

    def search_policy_type(
        self, query: str, policy_type: str, n_results: int = 5
    ) -> list[dict[str, Any]]:
        """Search within one policy type only."""
        return self.search(query, n_results, {"policy_type": policy_type})

    def get_clause(self, clause_id: str) -> dict[str, Any] | None:
        """Get a single clause by ID, or None if it is not indexed."""
        result = self.collection.get(ids=[clause_id])
        if not result["ids"]:
            return None
        return {
            "id": clause_id,
            "content": result["documents"][0] if result["documents"] else "",
            "metadata": result["metadatas"][0] if result["metadatas"] else {},
        }

    def delete_policy_type(self, policy_type: str) -> int:
        """Delete all clauses for a policy type; returns the number deleted."""
        existing = self.collection.get(
            where={"policy_type": policy_type}, include=["metadatas"]
        )
        if not existing["ids"]:
            return 0
        self.collection.delete(ids=existing["ids"])
        self.invalidate_cache()
        return len(existing["ids"])

    def count(self) -> int:
        """Return number of clauses in collection."""
        return self.collection.count()

    def clear(self) -> None:
        """Clear all clauses from collection."""
        self.client.delete_collection(self.collection_name)
        self.collection = self.client.get_or_create_collection(
            name=self.collection_name,
            metadata={"description": COLLECTION_DESCRIPTION},
        )
        self.invalidate_cache()

    def _get_cached_or_compute(
        self, cache_key: str, compute_fn: Callable[[], dict[str, int]]
    ) -> dict[str, int]:
        now = time.time()
        if cache_key in _metadata_cache:
            cached_time, cached_value = _metadata_cache[cache_key]
            if now - cached_time < _CACHE_TTL_SECONDS:
                return cached_value

        value = compute_fn()
        _metadata_cache[cache_key] = (now, value)
        return value

    def _compute_policy_type_counts(self) -> dict[str, int]:
        all_clauses = self.collection.get(include=["metadatas"])
        counts: dict[str, int] = {}
        for meta in all_clauses["metadatas"] or []:
            policy_type = meta.get("policy_type", "unknown")
            counts[policy_type] = counts.get(policy_type, 0) + 1
        return counts

    def list_policy_types(self) -> dict[str, int]:
        """Clause counts per policy type, cached for 60 seconds."""
        cache_key = f"{self.collection_name}:policy_types"
        return self._get_cached_or_compute(cache_key, self._compute_policy_type_counts)

    def invalidate_cache(self) -> None:
        """Invalidate the metadata cache after adding or deleting clauses."""
        keys_to_remove = [
            k for k in _metadata_cache if k.startswith(self.collection_name)
        ]
        for k in keys_to_remove:
            _metadata_cache.pop(k, None)


# Global instance
_store: ChromaStore | None = None


def get_store() -> ChromaStore:
    """Get or create the global ChromaDB store."""
    global _store
    if _store is None:
        _store = ChromaStore()
    return _store
