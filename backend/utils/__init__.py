"""Shared utility functions for the claims adjudication backend."""

from .sanitization import sanitize_log_value

__all__ = ["sanitize_log_value"]
