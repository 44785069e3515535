"""Post-generation validators for LLM claim decisions."""

from .citations import CitationValidator, ensure_grounded, is_grounded
from .contradictions import ContradictionDetector, extract_amounts

__all__ = [
    "CitationValidator",
    "ContradictionDetector",
    "ensure_grounded",
    "extract_amounts",
    "is_grounded",
]
