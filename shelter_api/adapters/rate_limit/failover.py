"""Per-call selection between the remote and the in-process counter."""

from __future__ import annotations

import logging

from shelter_api.adapters.cache.base import BackendResult, CacheStore
from shelter_api.adapters.rate_limit.base import AdmissionCounter, WindowUsage

logger = logging.getLogger(__name__)


class FailoverAdmissionCounter(AdmissionCounter):
    """Use the remote counter while its store is up, the local one otherwise.

    Selection is re-evaluated on every call, so enforcement moves back to the
    shared store as soon as it recovers. A remote call that fails mid-flight
    is reported as ``Unavailable``; the rate-limit layer admits such
    requests.
    """

    def __init__(
        self,
        *,
        store: CacheStore,
        remote: AdmissionCounter,
        local: AdmissionCounter,
    ) -> None:
        self._store = store
        self._remote = remote
        self._local = local

    async def consume(self, key: str, window_seconds: int) -> BackendResult[WindowUsage]:
        if self._store.is_available():
            return await self._remote.consume(key, window_seconds)

        logger.debug("rate_limit.local_counter", extra={"reason": "store_unavailable"})
        return await self._local.consume(key, window_seconds)
