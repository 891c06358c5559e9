from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(prefix="/_gateway", tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check answered by the gateway itself, never proxied."""

    return {"status": "ok"}
