"""Admission counter adapters.

The remote counter shares the Redis connection of the cache store; the
in-process counter stands in whenever that store is unavailable.
"""

from shelter_api.adapters.rate_limit.base import AdmissionCounter, WindowUsage
from shelter_api.adapters.rate_limit.failover import FailoverAdmissionCounter
from shelter_api.adapters.rate_limit.in_memory import InMemoryFixedWindowCounter
from shelter_api.adapters.rate_limit.redis_counter import RedisFixedWindowCounter

__all__ = [
    "AdmissionCounter",
    "FailoverAdmissionCounter",
    "InMemoryFixedWindowCounter",
    "RedisFixedWindowCounter",
    "WindowUsage",
]
