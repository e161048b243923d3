"""
Utility modules for Ignite.
"""

from .retry import (
    RetryConfig,
    RetryPolicy,
    QUERY_RETRY_POLICY,
    MUTATION_RETRY_POLICY,
    is_retryable_error,
    calculate_delay,
    run_with_policy,
    retry_with_backoff,
)

__all__ = [
    "RetryConfig",
    "RetryPolicy",
    "QUERY_RETRY_POLICY",
    "MUTATION_RETRY_POLICY",
    "is_retryable_error",
    "calculate_delay",
    "run_with_policy",
    "retry_with_backoff",
]
