"""
Utility modules for shared functionality.
"""
from .formatting import format_score, format_timestamp
from .signature import compute_signature, verify_signature

__all__ = [
    "format_score",
    "format_timestamp",
    "compute_signature",
    "verify_signature",
]
