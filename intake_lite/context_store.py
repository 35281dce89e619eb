"""
Conversation Context Store
==========================

Key-value persistence for ConversationContext, keyed by session and team,
with a rolling TTL refreshed on every save.

- RedisContextStore: production store (SETEX, JSON payload)
- MemoryContextStore: single-process store for development and tests

Store I/O failures raise ContextStoreError; they are the only errors the
intake core lets propagate.
"""

import time
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from pydantic import ValidationError
from redis import Redis
from redis.exceptions import RedisError

from .config import get_settings
from .errors import ContextStoreError
from .schemas import ConversationContext

logger = logging.getLogger(__name__)


def context_key(prefix: str, session_id: str, team_id: str) -> str:
    return f"{prefix}{session_id}:{team_id}"


class ContextStore(ABC):
    """load/save contract shared by every backend"""

    name = "abstract"

    def __init__(self, ttl_seconds: int = 3600, key_prefix: str = "conv_ctx:"):
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    @abstractmethod
    def _get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def _set(self, key: str, value: str) -> None:
        ...

    def load(self, session_id: str, team_id: str) -> ConversationContext:
        """
        Load the context for a (session, team) pair.

        A missing or unreadable record yields a fresh default context.

        Raises:
            ContextStoreError: backend unreachable
        """
        key = context_key(self.key_prefix, session_id, team_id)
        raw = self._get(key)

        if raw:
            try:
                context = ConversationContext.model_validate_json(raw)
                context.touch()
                return context
            except ValidationError as e:
                logger.warning(f"Discarding unreadable context {key}: {e.error_count()} validation errors")

        return ConversationContext(session_id=session_id, team_id=team_id)

    def save(self, context: ConversationContext) -> bool:
        """
        Persist the context and refresh its TTL.

        Raises:
            ContextStoreError: backend unreachable
        """
        context.touch()
        key = context_key(self.key_prefix, context.session_id, context.team_id)
        self._set(key, context.model_dump_json())
        return True


class RedisContextStore(ContextStore):
    """Redis-backed store; each context is one key with SETEX expiry"""

    name = "redis"

    def __init__(self, client: Redis, ttl_seconds: int = 3600, key_prefix: str = "conv_ctx:"):
        super().__init__(ttl_seconds=ttl_seconds, key_prefix=key_prefix)
        self.client = client

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisContextStore":
        return cls(Redis.from_url(url, decode_responses=True), **kwargs)

    def _get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(key)
        except RedisError as e:
            logger.error(f"Redis context load failed for {key}: {e}")
            raise ContextStoreError(f"Context load failed: {e}") from e

    def _set(self, key: str, value: str) -> None:
        try:
            self.client.setex(key, self.ttl_seconds, value)
        except RedisError as e:
            logger.error(f"Redis context save failed for {key}: {e}")
            raise ContextStoreError(f"Context save failed: {e}") from e

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


class MemoryContextStore(ContextStore):
    """In-process store honoring the same TTL semantics"""

    name = "memory"

    def __init__(self, ttl_seconds: int = 3600, key_prefix: str = "conv_ctx:"):
        super().__init__(ttl_seconds=ttl_seconds, key_prefix=key_prefix)
        self._data: Dict[str, Tuple[float, str]] = {}
        self._lock = threading.Lock()

    def _get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= time.monotonic():
                del self._data[key]
                return None
            return value

    def _set(self, key: str, value: str) -> None:
        now = time.monotonic()
        with self._lock:
            # Sessions that never come back are dropped here, not on read
            expired = [k for k, (expires_at, _) in self._data.items() if expires_at <= now]
            for k in expired:
                del self._data[k]
            self._data[key] = (now + self.ttl_seconds, value)

    def size(self) -> int:
        with self._lock:
            return len(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


_store: Optional[ContextStore] = None


def get_context_store() -> ContextStore:
    """Get the configured context store (singleton)."""
    global _store

    if _store is None:
        settings = get_settings()
        kwargs = dict(ttl_seconds=settings.context_ttl_seconds, key_prefix=settings.context_key_prefix)

        if settings.context_store == "redis":
            _store = RedisContextStore.from_url(settings.redis_url, **kwargs)
            logger.info(f"Context store: redis ({settings.redis_url})")
        else:
            _store = MemoryContextStore(**kwargs)
            logger.info("Context store: memory")

    return _store


def reset_context_store() -> None:
    """Drop the cached store (tests, settings reload)"""
    global _store
    _store = None
