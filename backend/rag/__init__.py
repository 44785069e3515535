"""RAG module for policy clause retrieval."""

from .chroma_store import ChromaStore, get_store
from .retriever import CachedRetriever, ChromaRetriever

__all__ = ["CachedRetriever", "ChromaRetriever", "ChromaStore", "get_store"]
