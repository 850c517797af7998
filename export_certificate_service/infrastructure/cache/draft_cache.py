# Per-owner read-through cache in front of the document store
import json
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol

from redis.exceptions import RedisError

from export_certificate_service.app.models.journey import Journey
from export_certificate_service.app.observability import (
    draft_cache_hits_counter,
    draft_cache_misses_counter,
    draft_cache_errors_counter,
)
from export_certificate_service.app.service.ownership import Owner

logger = logging.getLogger(__name__)

DELIMITER = ":"
DRAFT_HEADERS_KEY = "draftHeaders"
COMPLETED_HEADERS_KEY = "completedHeaders"


class CacheClient(Protocol):
    """The subset of redis.asyncio.Redis the draft cache relies on."""
    async def get(self, name: str) -> Optional[bytes]: ...
    async def set(self, name: str, value: Any) -> Any: ...
    async def delete(self, *names: str) -> int: ...


class _CacheMiss:
    def __repr__(self) -> str:
        return "CACHE_MISS"

    def __bool__(self) -> bool:
        return False


# Distinguishes "nothing cached" from a cached null (a document that was not found).
CACHE_MISS = _CacheMiss()


def draft_headers_key(journey: Journey) -> str:
    return f"{journey.value}/{DRAFT_HEADERS_KEY}"


def completed_headers_key(journey: Journey, month: int, year: int) -> str:
    return f"{journey.value}/{COMPLETED_HEADERS_KEY}/{month}-{year}"


def build_key_for_user(owner_identifier: str, key: str) -> str:
    return owner_identifier + DELIMITER + key


class DraftCache:
    """
    Values are stored as JSON without expiry; entries live until a write
    through the engine invalidates them. Reads degrade to a miss when the
    cache misbehaves, invalidation failures propagate.
    """

    def __init__(self, client: CacheClient):
        self.client = client

    async def get(self, owner: Owner, key: str) -> Any:
        full_key = build_key_for_user(owner.cache_identity, key)
        try:
            raw = await self.client.get(full_key)
        except (RedisError, OSError) as e:
            draft_cache_errors_counter.add(1, {"operation": "get"})
            logger.warning(f"[DRAFT-CACHE][GET][{full_key}][UNAVAILABLE][{e}]")
            return CACHE_MISS

        if raw is None:
            return CACHE_MISS

        try:
            return json.loads(raw)
        except ValueError as e:
            draft_cache_errors_counter.add(1, {"operation": "decode"})
            logger.warning(f"[DRAFT-CACHE][GET][{full_key}][UNDECODABLE][{e}]")
            return CACHE_MISS

    async def put(self, owner: Owner, key: str, value: Any) -> None:
        full_key = build_key_for_user(owner.cache_identity, key)
        await self.client.set(full_key, json.dumps(value))
        logger.debug(f"[DRAFT-CACHE][PUT][{full_key}]")

    async def invalidate(self, owner: Owner, *keys: str, co_owner_ids: Iterable[str] = ()) -> None:
        """
        Deletes each key for the owner and for every co-owner id given, so a
        write by one owner also clears the views other owners cached of the
        same document. Absent keys are fine.
        """
        identifiers = [owner.cache_identity]
        # Entries written by a session that only knew the principal
        if owner.user_principal and owner.user_principal not in identifiers:
            identifiers.append(owner.user_principal)
        for identifier in co_owner_ids:
            if identifier and identifier not in identifiers:
                identifiers.append(identifier)

        full_keys = [build_key_for_user(identifier, key) for key in keys for identifier in identifiers]
        if not full_keys:
            return
        await self.client.delete(*full_keys)
        logger.debug(f"[DRAFT-CACHE][INVALIDATE][{full_keys}]")

    async def read_through(
        self,
        owner: Owner,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        cache_empty: bool,
    ) -> Any:
        """
        Serves ``key`` from the cache, or runs ``loader`` and caches its JSON-ready
        result. Empty results are only cached when ``cache_empty`` is set.
        """
        cached = await self.get(owner, key)
        if cached is not CACHE_MISS:
            draft_cache_hits_counter.add(1)
            logger.info(f"[DRAFT-CACHE][HIT][{key}]")
            return cached

        draft_cache_misses_counter.add(1)
        logger.info(f"[DRAFT-CACHE][MISS][{key}]")
        value = await loader()

        if value or cache_empty:
            try:
                await self.put(owner, key, value)
            except (RedisError, OSError) as e:
                draft_cache_errors_counter.add(1, {"operation": "put"})
                logger.warning(f"[DRAFT-CACHE][PUT][{key}][UNAVAILABLE][{e}]")

        return value
