"""
API Authentication
==================

API key authentication for the gateway's HTTP surface.

Each key maps to an actor name; the actor is recorded as the user of every
pipeline run made with that key.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Annotated, Optional

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from observability.logging_config import get_logger

logger = get_logger(__name__)

API_KEY_HEADER = "X-API-Key"

ANONYMOUS = {"key_id": None, "actor": None}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class APIKeyAuth:
    """
    API key authentication handler.

    Supports:
    - Key validation against hashed keys
    - Sliding-window rate limiting per key
    - Key expiration
    """

    def __init__(
        self,
        api_keys: Optional[dict[str, str]] = None,
        rate_limit: int = 100,
        rate_window_seconds: int = 60,
        enabled: bool = True,
    ):
        """
        Initialize API key authentication.

        Args:
            api_keys: Plain API key to actor name
            rate_limit: Maximum requests per window
            rate_window_seconds: Rate limit window in seconds
            enabled: When False every request passes as anonymous
        """
        self.rate_limit = rate_limit
        self.rate_window = timedelta(seconds=rate_window_seconds)
        self.enabled = enabled
        self._lock = Lock()
        self._keys: dict[str, dict] = {}
        self._requests: dict[str, list[datetime]] = {}
        for key, actor in (api_keys or {}).items():
            self._store_key(key, actor)

    async def __call__(self, request: Request, api_key: Optional[str]) -> dict:
        """
        Validate API key and check rate limits.

        Returns:
            API key metadata (``key_id``, ``actor``) if valid

        Raises:
            HTTPException: If authentication fails
        """
        if not self.enabled:
            request.state.api_key_data = ANONYMOUS
            return ANONYMOUS

        if api_key is None:
            raise HTTPException(
                status_code=401,
                detail={
                    "error": "AuthenticationRequired",
                    "message": f"Missing {API_KEY_HEADER} header",
                },
            )

        key_data = self._validate_key(api_key)
        if key_data is None:
            logger.warning("api_key_rejected", path=request.url.path)
            raise HTTPException(
                status_code=401,
                detail={
                    "error": "InvalidAPIKey",
                    "message": "Invalid or expired API key",
                },
            )

        if not self._check_rate_limit(api_key):
            logger.warning("rate_limit_exceeded", key_id=key_data["key_id"], actor=key_data["actor"])
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "RateLimitExceeded",
                    "message": f"Rate limit exceeded. Max {self.rate_limit} requests per {self.rate_window.seconds}s",
                },
                headers={"Retry-After": str(self.rate_window.seconds)},
            )

        request.state.api_key_data = key_data
        return key_data

    def issue_key(self, actor: str, expires_in_days: Optional[int] = None) -> str:
        """
        Generate and register a new API key for an actor.

        Returns:
            The generated API key (store securely - cannot be retrieved later)
        """
        api_key = f"nl2sql_{secrets.token_urlsafe(32)}"
        expires_at = _now() + timedelta(days=expires_in_days) if expires_in_days else None
        self._store_key(api_key, actor, expires_at)
        logger.info("api_key_issued", actor=actor, expires_at=expires_at)
        return api_key

    def revoke_key(self, api_key: str) -> bool:
        """Revoke an API key. Returns False if it was not registered."""
        with self._lock:
            return self._keys.pop(self._hash_key(api_key), None) is not None

    def _store_key(self, api_key: str, actor: str, expires_at: Optional[datetime] = None) -> None:
        key_hash = self._hash_key(api_key)
        with self._lock:
            self._keys[key_hash] = {
                "key_id": key_hash[:12],
                "actor": actor,
                "created_at": _now(),
                "expires_at": expires_at,
            }

    def _validate_key(self, api_key: str) -> Optional[dict]:
        with self._lock:
            key_data = self._keys.get(self._hash_key(api_key))
        if key_data is None:
            return None

        if key_data.get("expires_at") and _now() > key_data["expires_at"]:
            return None

        return {"key_id": key_data["key_id"], "actor": key_data["actor"]}

    def _check_rate_limit(self, api_key: str) -> bool:
        """Check if request is within rate limits."""
        now = _now()
        window_start = now - self.rate_window
        key_hash = self._hash_key(api_key)

        with self._lock:
            requests = [ts for ts in self._requests.get(key_hash, []) if ts > window_start]
            if len(requests) >= self.rate_limit:
                self._requests[key_hash] = requests
                return False
            requests.append(now)
            self._requests[key_hash] = requests
        return True

    @staticmethod
    def _hash_key(api_key: str) -> str:
        """Hash an API key for storage/lookup."""
        return hashlib.sha256(api_key.encode()).hexdigest()


async def verify_api_key(
    request: Request,
    api_key: Annotated[Optional[str], Security(APIKeyHeader(name=API_KEY_HEADER, auto_error=False))] = None,
) -> dict:
    """
    FastAPI dependency for API key verification.

    Uses the APIKeyAuth instance stored on ``app.state.auth``.

    Usage:
        @app.get("/protected")
        async def protected_route(key_data: dict = Depends(verify_api_key)):
            ...
    """
    auth: APIKeyAuth = request.app.state.auth
    return await auth(request, api_key)
