#!/usr/bin/env python3
"""
Save-Triggered Invalidation

Entries cached with Expire.ON_SAVE have no TTL. Their keys are tracked in a
store-resident index, and the host application's "saved" event runs a sweep
that deletes every tracked key and then the index itself.

Wiring:
    sweep = MaintenanceSweep(facade)
    events.subscribe("saved", sweep.on_saved)

The index update is a read-modify-write without CAS: concurrent
registrations from separate processes can lose an entry.
"""

import logging
from typing import Any, List

from .keys import content_hash
from .store import StoreClient

logger = logging.getLogger(__name__)

INDEX_KEY = content_hash("expireSave")


class SaveTriggerIndex:
    """List of cache keys to delete on the next save event."""

    def __init__(self, store: StoreClient, index_key: str = INDEX_KEY):
        self.store = store
        self.index_key = index_key

    def keys(self) -> List[str]:
        keys = self.store.get(self.index_key)
        if not isinstance(keys, list):
            return []
        return keys

    def register(self, key: str) -> bool:
        """Add key to the index. Idempotent."""
        keys = self.keys()
        if key in keys:
            return True

        keys.append(key)
        ok = self.store.set(self.index_key, keys, 0)
        if ok:
            logger.debug(f"Registered {key} for save-triggered expiry ({len(keys)} tracked)")
        else:
            logger.warning(f"Could not register {key} for save-triggered expiry")
        return ok

    def clear(self) -> bool:
        return self.store.delete_many([self.index_key])


class MaintenanceSweep:
    """Deletes every save-tracked entry when the host reports a save."""

    def __init__(self, facade):
        self.facade = facade

    def sweep(self) -> int:
        """
        Delete all tracked keys, then reset the index.

        Returns:
            Number of tracked keys that were swept
        """
        if not self.facade.active:
            return 0

        index = self.facade.trigger_index
        keys = index.keys()

        for key in keys:
            if not self.facade.store.delete_many([key]):
                logger.warning(f"Sweep could not delete {key}, skipping")

        index.clear()

        if keys:
            logger.info(f"Save sweep cleared {len(keys)} cache entries")
        return len(keys)

    def on_saved(self, *args: Any, **kwargs: Any) -> int:
        """Event hook; the event payload is ignored."""
        return self.sweep()
