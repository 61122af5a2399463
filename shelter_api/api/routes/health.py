from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Liveness plus cache availability.

    The service stays up while the cache store is down (reads go to the
    store of record and rate limiting is per instance), so an unavailable
    cache reports ``degraded`` rather than failing the check.
    """
    store = getattr(request.app.state, "cache_store", None)
    available = bool(store is not None and store.is_available())
    return {
        "status": "ok" if available else "degraded",
        "cache": {
            "backend": type(store).__name__ if store is not None else None,
            "available": available,
        },
    }


@router.get("/healthz", include_in_schema=False)
async def healthz(request: Request) -> dict:
    return await health_check(request)
