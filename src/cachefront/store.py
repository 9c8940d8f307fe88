#!/usr/bin/env python3
"""
Store Clients — memcached access for the cache facade

Implements:
- parse_server_list(text) -> list[ServerDescriptor]
- MemcacheStore: pymemcache HashClient adapter (sharding handled by the client)
- InMemoryStore: dict-backed store with memcached TTL semantics, for tests
  and single-process use

Every store call fails soft: connection and protocol errors are logged and
reported as a miss / False, never raised. The cache is not a source of truth.
"""

import copy
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

from pymemcache import serde
from pymemcache.client.hash import HashClient
from pymemcache.exceptions import MemcacheError

from .errors import ConfigurationInvalid
from .expiry import MAX_RELATIVE_TTL

logger = logging.getLogger(__name__)

UNIX_PREFIX = "unix:"


@dataclass(frozen=True)
class ServerDescriptor:
    """A memcached server: host + port, or a unix socket with port 0."""
    host: str
    port: int

    @classmethod
    def of(cls, host: str, port: int = 0) -> "ServerDescriptor":
        """Build a descriptor; socket hosts always get port 0."""
        return cls(host=host, port=0 if host.startswith(UNIX_PREFIX) else port)

    @property
    def is_socket(self) -> bool:
        return self.host.startswith(UNIX_PREFIX)

    @property
    def address(self) -> Union[str, tuple]:
        """Server spec in the form pymemcache expects."""
        if self.is_socket:
            return self.host[len(UNIX_PREFIX):]
        return (self.host, self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def parse_server_entry(entry: str) -> ServerDescriptor:
    """Parse one "host:port" or "unix:/path/to.sock:0" entry."""
    host, sep, port_text = entry.strip().rpartition(":")
    if not sep or not host:
        raise ConfigurationInvalid(f"Server entry needs host:port: {entry!r}", {"entry": entry})

    try:
        port = int(port_text)
    except ValueError:
        raise ConfigurationInvalid(f"Invalid port in server entry: {entry!r}", {"entry": entry})

    if host.startswith(UNIX_PREFIX):
        if len(host) == len(UNIX_PREFIX):
            raise ConfigurationInvalid(f"Socket entry has no path: {entry!r}", {"entry": entry})
        return ServerDescriptor(host=host, port=0)

    if not 0 < port < 65536:
        raise ConfigurationInvalid(f"Port out of range in server entry: {entry!r}", {"entry": entry})

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return ServerDescriptor(host=host, port=port)


def parse_server_list(text: str) -> List[ServerDescriptor]:
    """
    Parse a newline-separated server list.

    Malformed entries are logged and skipped. Duplicates are dropped.
    """
    servers: List[ServerDescriptor] = []
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        try:
            server = parse_server_entry(line)
        except ConfigurationInvalid as e:
            logger.warning(f"Skipping server entry: {e.message}")
            continue
        if server not in servers:
            servers.append(server)
    return servers


class StoreClient(Protocol):
    def get(self, key: str) -> Any: ...

    def get_many(self, keys: Iterable[str]) -> Dict[str, Any]: ...

    def set(self, key: str, value: Any, ttl: int = 0) -> bool: ...

    def delete_many(self, keys: Iterable[str]) -> bool: ...

    def flush_all(self) -> bool: ...

    def add_server(self, host: str, port: int = 0) -> None: ...


class MemcacheStore:
    """memcached store backed by pymemcache's consistent-hashing client."""

    def __init__(
        self,
        servers: Iterable[ServerDescriptor] = (),
        connect_timeout: float = 1.0,
        timeout: float = 1.0,
        client: Optional[HashClient] = None,
    ):
        self.servers: List[ServerDescriptor] = list(servers)

        if client is None:
            client = HashClient(
                [server.address for server in self.servers],
                serde=serde.pickle_serde,
                connect_timeout=connect_timeout,
                timeout=timeout,
                ignore_exc=False,
                allow_unicode_keys=True,
            )
        self.client = client

        logger.info(f"MemcacheStore initialized with servers: {', '.join(map(str, self.servers)) or 'none'}")

    def add_server(self, host: str, port: int = 0) -> None:
        server = ServerDescriptor.of(host, port)
        if server in self.servers:
            return
        self.servers.append(server)
        address = server.address
        if isinstance(address, tuple):
            self.client.add_server(*address)
        else:
            self.client.add_server(address)
        logger.info(f"Added memcached server {server}")

    def get(self, key: str) -> Any:
        try:
            return self.client.get(key)
        except (MemcacheError, OSError) as e:
            logger.warning(f"Store get failed for {key}: {e}")
            return None

    def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        keys = list(keys)
        if not keys:
            return {}
        try:
            return self.client.get_many(keys)
        except (MemcacheError, OSError) as e:
            logger.warning(f"Store get_many failed for {len(keys)} keys: {e}")
            return {}

    def set(self, key: str, value: Any, ttl: int = 0) -> bool:
        try:
            return bool(self.client.set(key, value, expire=ttl, noreply=False))
        except (MemcacheError, OSError) as e:
            logger.warning(f"Store set failed for {key}: {e}")
            return False

    def delete_many(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        if not keys:
            return True
        try:
            return bool(self.client.delete_many(keys, noreply=False))
        except (MemcacheError, OSError) as e:
            logger.warning(f"Store delete failed for {len(keys)} keys: {e}")
            return False

    def flush_all(self) -> bool:
        try:
            self.client.flush_all(noreply=False)
            return True
        except (MemcacheError, OSError) as e:
            logger.warning(f"Store flush failed: {e}")
            return False

    def close(self):
        self.client.close()
        logger.info("MemcacheStore closed")


class InMemoryStore:
    """
    Process-local store with memcached TTL semantics.

    ttl 0 never expires, ttl <= MAX_RELATIVE_TTL is relative seconds,
    anything larger is an absolute unix timestamp. Values are deep-copied
    on the way in and out, as a serializing client would.
    """

    def __init__(self) -> None:
        self._data: Dict[str, tuple] = {}
        self._lock = threading.Lock()
        self.servers: List[ServerDescriptor] = []

    def add_server(self, host: str, port: int = 0) -> None:
        server = ServerDescriptor.of(host, port)
        if server not in self.servers:
            self.servers.append(server)

    @staticmethod
    def _expires_at(ttl: int) -> float:
        if ttl <= 0:
            return 0.0
        if ttl > MAX_RELATIVE_TTL:
            return float(ttl)
        return time.time() + ttl

    def _live(self, key: str) -> Optional[tuple]:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at and expires_at <= time.time():
            del self._data[key]
            return None
        return entry

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._live(key)
            return None if entry is None else copy.deepcopy(entry[0])

    def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        found = {}
        with self._lock:
            for key in keys:
                entry = self._live(key)
                if entry is not None:
                    found[key] = copy.deepcopy(entry[0])
        return found

    def set(self, key: str, value: Any, ttl: int = 0) -> bool:
        with self._lock:
            self._data[key] = (copy.deepcopy(value), self._expires_at(ttl))
        return True

    def delete_many(self, keys: Iterable[str]) -> bool:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)
        return True

    def flush_all(self) -> bool:
        with self._lock:
            self._data.clear()
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
