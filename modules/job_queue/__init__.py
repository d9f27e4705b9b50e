"""
Job Queue Module.

In-memory job store with guarded status transitions, and the
bounded-concurrency scheduler that drains it.
"""

from .scheduler import QueueScheduler
from .store import JobStore

__all__ = ["JobStore", "QueueScheduler"]
