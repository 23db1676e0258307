"""
Compatibility adapters over the streaming architecture.
"""

from .compatibility import CALLER_CANCELLED_REASON, CALLER_FAILED_REASON, ServiceAdapter

__all__ = ["ServiceAdapter", "CALLER_CANCELLED_REASON", "CALLER_FAILED_REASON"]
