"""Retry with exponential backoff."""

from .service import ErrorClassifier, RetryExecutor, is_retryable

__all__ = ["ErrorClassifier", "RetryExecutor", "is_retryable"]
