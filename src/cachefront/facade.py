#!/usr/bin/env python3
"""
Cache Facade — memcached get / set / get-or-compute

Implements:
- get(name | names, expire, compute) → value | None | {name: value}
- set(name | {name: value}, expire, value) → bool
- delete(name | names) → bool
- flush() → bool (store-wide)
- get_stats() → {hits, misses, writes, ...}

Every public call checks the active flag first. With caching inactive,
calls return a falsy result and never touch the store, so call sites
keep working while memcached is not configured yet.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .config import CacheConfig
from .errors import UsageError
from .expiry import ExpirationPolicy, ExpireSpec
from .keys import KeyNormalizer
from .save_triggers import SaveTriggerIndex
from .store import MemcacheStore, StoreClient

logger = logging.getLogger(__name__)

Names = Union[str, List[str], tuple]


class CacheFacade:
    """
    Public cache API on top of a StoreClient.

    Design principles:
    - Graceful degradation: store failure = miss, not error
    - No stampede protection: concurrent misses each compute, last write wins
    - Save-expiring keys are indexed before their value is written
    """

    def __init__(
        self,
        store: StoreClient,
        active: bool = True,
        policy: Optional[ExpirationPolicy] = None,
        normalizer: Optional[KeyNormalizer] = None,
        trigger_index: Optional[SaveTriggerIndex] = None,
    ):
        self.store = store
        self.active = active
        self.policy = policy or ExpirationPolicy()
        self.normalizer = normalizer or KeyNormalizer()
        self.trigger_index = trigger_index or SaveTriggerIndex(store)

        self.stats = {
            "hits": 0,
            "misses": 0,
            "writes": 0,
            "deletes": 0,
            "computes": 0,
            "start_time": time.time(),
        }

        logger.info(f"CacheFacade initialized (active={active})")

    @classmethod
    def from_config(cls, config: CacheConfig) -> "CacheFacade":
        """Build a memcached-backed facade from loaded configuration."""
        store = MemcacheStore(
            config.servers,
            connect_timeout=config.connect_timeout,
            timeout=config.timeout,
        )
        return cls(
            store,
            active=config.active,
            policy=ExpirationPolicy(config.default_expire),
        )

    def _key(self, name: str, namespace: Optional[Union[str, bool]]) -> str:
        return self.normalizer.normalize(name, namespace)

    def get(
        self,
        name: Names,
        expire: ExpireSpec = None,
        compute: Optional[Callable[[], Any]] = None,
        namespace: Optional[Union[str, bool]] = None,
    ) -> Any:
        """
        Retrieve one or many cached values, optionally computing on a miss.

        Args:
            name: Cache name, or a list of names for a batch lookup
            expire: Expiry used when compute fills a miss
            compute: Zero-argument callable producing the value on a miss.
                Returning None or False means "do not cache".
            namespace: Namespace for the name(s)

        Returns:
            The value or None for a single name; {name: value} for the found
            subset of a batch
        """
        is_batch = isinstance(name, (list, tuple))

        if not self.active:
            return {} if is_batch else None

        if is_batch:
            if compute is not None:
                raise UsageError("A compute function cannot be combined with a batch lookup")
            return self._get_many(name, namespace)

        key = self._key(name, namespace)
        value = self.store.get(key)

        if value is not None:
            self.stats["hits"] += 1
            logger.debug(f"Cache hit: {key}")
            return value

        self.stats["misses"] += 1
        logger.debug(f"Cache miss: {key}")

        if compute is None:
            return None

        self.stats["computes"] += 1
        value = compute()
        if value is None or value is False:
            logger.debug(f"Compute for {key} returned {value!r}, not caching")
            return value

        self.set(name, expire, value, namespace=namespace)
        return value

    def _get_many(self, names: Iterable[str], namespace) -> Dict[str, Any]:
        by_key: Dict[str, List[str]] = {}
        for name in names:
            group = by_key.setdefault(self._key(name, namespace), [])
            if name not in group:
                group.append(name)
        found = self.store.get_many(list(by_key))

        result = {}
        for key, value in found.items():
            for name in by_key.get(key, []):
                result[name] = value
        requested = sum(len(group) for group in by_key.values())
        self.stats["hits"] += len(result)
        self.stats["misses"] += requested - len(result)
        return result

    def set(
        self,
        name: Union[str, Dict[str, Any]],
        expire: ExpireSpec = None,
        value: Any = None,
        namespace: Optional[Union[str, bool]] = None,
    ) -> bool:
        """
        Write one value, or every pair of a {name: value} mapping.

        The single form requires a value; None is refused (returns False).
        The mapping form ignores the value argument.

        Returns:
            True when every write succeeded
        """
        if not self.active:
            return False

        if isinstance(name, dict):
            results = [self._set_one(n, v, expire, namespace) for n, v in name.items()]
            return all(results)

        if value is None:
            logger.debug(f"Refusing to cache None for {name}")
            return False

        return self._set_one(name, value, expire, namespace)

    def _set_one(self, name: str, value: Any, expire: ExpireSpec, namespace) -> bool:
        if value is None:
            return False

        key = self._key(name, namespace)
        resolved = self.policy.resolve(expire)

        if resolved.on_save and not self.trigger_index.register(key):
            return False

        ok = self.store.set(key, value, resolved.ttl)
        if ok:
            self.stats["writes"] += 1
            logger.debug(f"Cached {key} (ttl={resolved.ttl}, on_save={resolved.on_save})")
        return ok

    def delete(self, name: Names, namespace: Optional[Union[str, bool]] = None) -> bool:
        """Delete one or many names. Missing keys are not an error."""
        if not self.active:
            return False

        names = name if isinstance(name, (list, tuple)) else [name]
        keys = [self._key(n, namespace) for n in names]

        ok = self.store.delete_many(keys)
        if ok:
            self.stats["deletes"] += len(keys)
            logger.debug(f"Deleted {len(keys)} cache keys")
        return ok

    def flush(self) -> bool:
        """
        Flush the whole store.

        This clears every key on the configured memcached servers, including
        keys written by other applications sharing them.
        """
        if not self.active:
            return False

        logger.warning("Flushing all memcached servers (store-wide, not limited to this cache)")
        return self.store.flush_all()

    def get_stats(self) -> Dict[str, Any]:
        """Get in-process cache statistics."""
        total_requests = self.stats["hits"] + self.stats["misses"]
        hit_rate = (self.stats["hits"] / total_requests * 100) if total_requests > 0 else 0

        return {
            "active": self.active,
            "hits": self.stats["hits"],
            "misses": self.stats["misses"],
            "hit_rate_percent": round(hit_rate, 1),
            "total_requests": total_requests,
            "writes": self.stats["writes"],
            "deletes": self.stats["deletes"],
            "computes": self.stats["computes"],
            "uptime_seconds": int(time.time() - self.stats["start_time"]),
        }
