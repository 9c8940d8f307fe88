#!/usr/bin/env python3
"""
Cache Key Normalization

Turns a logical cache name plus namespace into a memcached-safe key:
- namespace + "__" + name, with "__" runs collapsed inside both parts
- keys never exceed MAX_KEY_LENGTH bytes and never hold whitespace or
  control characters
- overflowing or unsafe parts are replaced by an MD5 hex digest, so the same
  input always yields the same key across processes
"""

import hashlib
import logging
import re
from typing import Optional, Union

logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 190
MAX_REST_LENGTH = 32
NAMESPACE_DELIMITER = "__"

# Passing this as the namespace forbids any namespace in the name itself.
NO_NAMESPACE = False

_UNDERSCORE_RUN = re.compile(r"__+")
# memcached keys cannot hold whitespace or control characters
_UNSAFE_CHARS = re.compile(r"[\s\x00-\x1f\x7f]")


def content_hash(text: str) -> str:
    """MD5 hex digest of text (32 chars)."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def collapse_delimiters(text: str) -> str:
    """Replace every run of two or more underscores with a single one."""
    return _UNDERSCORE_RUN.sub("_", text)


def _byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


def is_key_safe(text: str) -> bool:
    return _UNSAFE_CHARS.search(text) is None


class KeyNormalizer:
    """
    Build bounded, deterministic store keys.

    Design:
    - Readable keys are kept whenever they fit
    - Only the overflowing part is hashed: first the name part (when longer
      than MAX_REST_LENGTH), then the namespace part
    - Parts holding whitespace or control characters are hashed at any length
    - A name with no namespace delimiter at all is hashed whole
    """

    def __init__(self, max_length: int = MAX_KEY_LENGTH):
        self.max_length = max_length

    def normalize(self, name: str, namespace: Optional[Union[str, bool]] = None) -> str:
        """
        Normalize a cache name.

        Args:
            name: Logical cache name
            namespace: Namespace string, NO_NAMESPACE (False) to forbid
                namespacing, or None when name already carries its own prefix

        Returns:
            Store key of at most max_length bytes
        """
        name = str(name)

        if namespace is NO_NAMESPACE:
            collapsed = collapse_delimiters(name)
            if _byte_length(collapsed) > self.max_length or not is_key_safe(collapsed):
                return content_hash(name)
            return collapsed

        if namespace:
            prefix = collapse_delimiters(str(namespace)).rstrip("_") + NAMESPACE_DELIMITER
            if name.startswith(prefix):
                name = name[len(prefix):]
            name = prefix + collapse_delimiters(name)

        too_long = _byte_length(name) > self.max_length
        if not too_long and is_key_safe(name):
            return name

        return self._shorten(name, too_long)

    def _shorten(self, name: str, too_long: bool) -> str:
        """Hash the parts of name that overflow or hold unsafe characters."""
        if NAMESPACE_DELIMITER not in name:
            return content_hash(name)

        ns, rest = name.split(NAMESPACE_DELIMITER, 1)
        rest = collapse_delimiters(rest)
        if not is_key_safe(rest) or (too_long and len(rest) > MAX_REST_LENGTH):
            rest = content_hash(rest)
        if not is_key_safe(ns) or _byte_length(ns + NAMESPACE_DELIMITER + rest) > self.max_length:
            ns = content_hash(ns)

        key = ns + NAMESPACE_DELIMITER + rest
        logger.debug(f"Hashed cache name parts into {key}")
        return key
