"""
Limitation de débit des endpoints publics (checkout).

- Redis via fastapi-limiter quand le lifespan l'a initialisé
- Fallback mémoire par processus si LOCAL_RATE_LIMIT_FALLBACK=1 (dev/tests)
- Aucun blocage si le limiter est désactivé ou indisponible
"""
from typing import Dict, Any, List, Tuple
from urllib.parse import urlparse
import logging
import os
import time

from fastapi import Request, Response, HTTPException
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

logger = logging.getLogger(__name__)


def client_key(request: Request) -> str:
    """Clé de limitation: IP cliente (X-Forwarded-For en premier) + chemin."""
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip() if forwarded else ""
    if not ip:
        ip = request.client.host if request.client else "local"
    return f"ip:{ip}:{request.url.path}"


def _prune(store: Dict[str, Tuple[int, List[float]]], now: float) -> None:
    """Retire les clés dont toutes les requêtes sont sorties de leur fenêtre."""
    stale = [k for k, (window, hits) in store.items() if not hits or now - hits[-1] >= window]
    for k in stale:
        del store[k]


def _local_hit(request: Request, key: str, times: int, seconds: int) -> None:
    now = time.time()
    # clé -> (fenêtre en secondes, horodatages des requêtes dans la fenêtre)
    store: Dict[str, Tuple[int, List[float]]] = getattr(request.app.state, "rate_limit_store", None) or {}
    _prune(store, now)
    _, previous = store.get(key, (seconds, []))
    hits = [t for t in previous if now - t < seconds]
    if len(hits) >= times:
        store[key] = (seconds, hits)
        request.app.state.rate_limit_store = store
        raise HTTPException(status_code=429, detail="Too Many Requests")
    hits.append(now)
    store[key] = (seconds, hits)
    request.app.state.rate_limit_store = store


def optional_rate_limit(times: int, seconds: int):
    async def _identifier(req: Request) -> str:
        return client_key(req)

    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            _local_hit(request, client_key(request), times, seconds)
            return
        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return
        if getattr(FastAPILimiter, "redis", None) is None:
            return
        try:
            await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception:
            # Redis indisponible en cours de route: on laisse passer plutôt que de bloquer le checkout
            logger.warning("rate_limit: limiter error on %s, request allowed", request.url.path, exc_info=True)
    return _dep


def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    ready = getattr(FastAPILimiter, "redis", None) is not None
    info: Dict[str, Any] = {
        "enabled": bool(enabled) if enabled is not None else None,
        "ready": ready,
        "backend": "redis" if ready else ("memory" if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1" else None),
    }
    redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
    if ready and redis_url:
        p = urlparse(redis_url)
        info["redis"] = {"scheme": p.scheme, "host": p.hostname, "port": p.port}
    return info
