"""Expiry descriptors and their translation to memcached TTLs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from .errors import UsageError

logger = logging.getLogger(__name__)

DEFAULT_EXPIRE = 86400
# memcached treats any TTL above 30 days as an absolute unix timestamp.
MAX_RELATIVE_TTL = 2592000


class Expire(Enum):
    """Named expiry descriptors."""
    NEVER = "never"
    ON_SAVE = "save"
    HOURLY = 3600
    DAILY = 86400
    WEEKLY = 604800
    MONTHLY = 2419200


ExpireSpec = Union[None, int, datetime, Expire]


@dataclass(frozen=True)
class ResolvedExpiry:
    ttl: int
    on_save: bool = False


class ExpirationPolicy:
    """
    Resolve an ExpireSpec into the TTL handed to the store.

    - int seconds: passed through. Values above MAX_RELATIVE_TTL reach the
      store unchanged and are read by memcached as absolute unix time.
    - datetime: converted to its unix timestamp (absolute expiry)
    - Expire.NEVER or 0: ttl 0, no expiry
    - Expire.ON_SAVE: ttl 0 plus registration in the save trigger index
    - None: default_expire
    """

    def __init__(self, default_expire: int = DEFAULT_EXPIRE):
        self.default_expire = default_expire

    def resolve(self, expire: ExpireSpec = None) -> ResolvedExpiry:
        if expire is None:
            return ResolvedExpiry(ttl=self.default_expire)

        if isinstance(expire, Expire):
            if expire is Expire.ON_SAVE:
                return ResolvedExpiry(ttl=0, on_save=True)
            if expire is Expire.NEVER:
                return ResolvedExpiry(ttl=0)
            return ResolvedExpiry(ttl=expire.value)

        if isinstance(expire, datetime):
            return ResolvedExpiry(ttl=int(expire.timestamp()))

        if isinstance(expire, bool) or not isinstance(expire, int):
            raise UsageError(f"Unsupported expire value: {expire!r}")

        if expire < 0:
            raise UsageError(f"Expire seconds must not be negative: {expire}")

        if expire > MAX_RELATIVE_TTL:
            logger.debug(f"Expire {expire} exceeds {MAX_RELATIVE_TTL}s, store reads it as unix time")

        return ResolvedExpiry(ttl=expire)
