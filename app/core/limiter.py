from __future__ import annotations

"""
Reelkeeper — HTTP Rate Limiting (SlowAPI)
=========================================

Highlights
----------
- Per-client-IP keying (XFF/X-Real-IP/client.host); the dashboard is
  single-user, so the limits mostly protect the scraped third parties.
- **Exemptions**: health/docs paths, configurable trusted IPs.
- **Test/CI friendly**:
    - `RATE_LIMIT_ENABLED=false` at import turns every decorator into a no-op.
    - `RATE_LIMIT_TEST_BYPASS`: exempts requests while keeping decorators.
    - `RATE_LIMIT_NAMESPACE`: prefixes keys so parallel runs don't collide.
- **Backends**: `RATELIMIT_STORAGE_URI` (e.g. Redis) or in-memory.

Environment
-----------
RATE_LIMIT_ENABLED           default: "true"
DEFAULT_RATE_LIMIT           default: "100/minute"
RATELIMIT_STORAGE_URI        default: "" (falls back to "memory://")
RATELIMIT_STRATEGY           default: "moving-window"
RATE_LIMIT_SKIP_PATHS        default: "/healthz,/readyz,/docs,/openapi.json"
RATE_LIMIT_TRUSTED_IPS       default: "" (comma separated)
RATE_LIMIT_NAMESPACE         default: ""
RATE_LIMIT_TEST_BYPASS       default: ""

Usage
-----
    from app.core.limiter import install_rate_limiter, rate_limit

    install_rate_limiter(app)

    @router.post("/media")
    @rate_limit("10/minute")
    async def add_media(request: Request, ...): ...
"""

import os
from typing import Callable, List, Optional, Set

from dotenv import load_dotenv
from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request

# ──────────────────────────────────────────────────────────────
# ⚙️ Environment & defaults
# ──────────────────────────────────────────────────────────────
load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").strip().lower() == "true"
DEFAULT_LIMIT = os.getenv("DEFAULT_RATE_LIMIT", "100/minute").strip()
STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "").strip()
STRATEGY = os.getenv("RATELIMIT_STRATEGY", "moving-window").strip()

SKIP_PATHS: List[str] = [
    p.strip()
    for p in os.getenv("RATE_LIMIT_SKIP_PATHS", "/healthz,/readyz,/docs,/openapi.json").split(",")
    if p.strip()
]
TRUSTED_IPS: Set[str] = {ip.strip() for ip in os.getenv("RATE_LIMIT_TRUSTED_IPS", "").split(",") if ip.strip()}
NAMESPACE = os.getenv("RATE_LIMIT_NAMESPACE", "").strip()


# ──────────────────────────────────────────────────────────────
# 🧠 Keying & exemptions
# ──────────────────────────────────────────────────────────────
def _client_ip(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = xff.split(",")[0].strip()
        if ip:
            return ip
    xri = request.headers.get("x-real-ip")
    if xri:
        return xri.strip()
    return get_remote_address(request) or "unknown"


def get_rate_limit_key(request: Request) -> str:
    key = f"ip:{_client_ip(request)}"
    return f"{NAMESPACE}:{key}" if NAMESPACE else key


def should_exempt_request(request: Optional[Request]) -> bool:
    """Exempt when the test bypass is on, the path is skipped, or the IP is trusted."""
    if os.getenv("RATE_LIMIT_TEST_BYPASS", "").strip().lower() in _TRUTHY:
        return True
    if request is None:
        return False
    path = request.url.path
    if any(path == p or path.startswith(p) for p in SKIP_PATHS):
        return True
    return _client_ip(request) in TRUSTED_IPS


# ──────────────────────────────────────────────────────────────
# 🧰 Limiter instance
# ──────────────────────────────────────────────────────────────
def _default_limits() -> List[str]:
    return [chunk.strip() for chunk in DEFAULT_LIMIT.split(",") if chunk.strip()]


limiter: Optional[Limiter] = (
    Limiter(
        key_func=get_rate_limit_key,
        default_limits=_default_limits(),
        headers_enabled=False,
        storage_uri=STORAGE_URI or "memory://",
        strategy=STRATEGY,
    )
    if RATE_LIMIT_ENABLED
    else None
)


# ──────────────────────────────────────────────────────────────
# 🎛 Decorators
# ──────────────────────────────────────────────────────────────
def _exempt_when(request: Optional[Request] = None) -> bool:
    return should_exempt_request(request)


def rate_limit(*limits: str) -> Callable:
    """Apply one or more per-route limits, e.g. `@rate_limit("5/second", "100/minute")`.

    Decorated endpoints must accept a `request: Request` argument.
    """
    if limiter is None:
        def _noop(fn: Callable) -> Callable:
            return fn
        return _noop

    decorators = [limiter.limit(value, exempt_when=_exempt_when) for value in (limits or _default_limits())]

    def _apply(fn: Callable) -> Callable:
        for deco in reversed(decorators):
            fn = deco(fn)
        return fn
    return _apply


# ──────────────────────────────────────────────────────────────
# 🔧 Installer
# ──────────────────────────────────────────────────────────────
def install_rate_limiter(app) -> None:
    """Attach the limiter to `app.state` and install SlowAPI middleware."""
    if limiter is None:
        logger.info("RateLimiter disabled by env; middleware not installed")
        return
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    logger.info(
        "✅ RateLimiter ready | default={} | storage={} | skip={} | ns={}",
        _default_limits(),
        STORAGE_URI or "memory://",
        SKIP_PATHS,
        NAMESPACE,
    )


__all__ = ["limiter", "rate_limit", "install_rate_limiter", "should_exempt_request", "get_rate_limit_key"]
