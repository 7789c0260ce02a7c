"""
Retry Policy
============
Error classification and exponential backoff used by the attempt loop.
"""

from .backoff import BackoffPolicy, compute_delay
from .classifier import Classification, classify, classify_status, to_request_error

__all__ = [
    # Backoff
    "BackoffPolicy",
    "compute_delay",
    # Classifier
    "Classification",
    "classify",
    "classify_status",
    "to_request_error",
]
