"""
Operations package: the queue that serializes grid store mutations.
"""

from .queue import (
    OperationKind,
    OperationQueue,
    OperationStatus,
    PendingOperation,
)

__all__ = ["OperationKind", "OperationQueue", "OperationStatus", "PendingOperation"]
