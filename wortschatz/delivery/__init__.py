"""
Delivery: scheduling and persistence.

- scheduler: SM-2 engine
- state_store: word store port, SQL and in-memory stores, details cache
"""

from wortschatz.delivery.scheduler import SchedulingEngine, SM2Config
from wortschatz.delivery.state_store import (
    DetailsCache,
    InMemoryWordStore,
    ReviewLogEntry,
    SqlWordStore,
    WordStore,
)

__all__ = [
    # Scheduling
    "SchedulingEngine",
    "SM2Config",
    # Persistence
    "WordStore",
    "SqlWordStore",
    "InMemoryWordStore",
    "ReviewLogEntry",
    "DetailsCache",
]
