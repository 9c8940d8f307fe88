#!/usr/bin/env python3
"""
File Render Cache

Caches the output of the host application's template renderer per source
file. Entries are stored as (created_at, output) and are re-rendered when
- the entry is missing or not a 2-tuple
- the source file was modified after created_at
- the expiry passed
- the host fired its save event (every rendered entry is indexed for the sweep)
"""

import logging
import os
import re
import time
from typing import Any, Dict, Optional, Protocol, Union

from .errors import RenderError, TemplateNotFound
from .expiry import ExpireSpec

logger = logging.getLogger(__name__)

DEFAULT_CACHE_NAME = "renderFile"
NAMESPACE_PREFIX = "cache."

_URL_LIKE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


class Renderer(Protocol):
    def render(self, file_path: str, variables: Dict[str, Any], options: Dict[str, Any]) -> Union[str, bool, None]: ...

    def current_path(self) -> str: ...


class FileRenderCache:
    """Render-and-cache wrapper around a Renderer and a CacheFacade."""

    def __init__(self, facade, renderer: Renderer, root_path: str):
        self.facade = facade
        self.renderer = renderer
        self.root_path = os.path.abspath(root_path)

    def resolve_path(self, file_path: str) -> str:
        """Resolve a relative path against the renderer's current path."""
        if os.path.isabs(file_path) or _URL_LIKE.match(file_path):
            return file_path
        return os.path.join(self.renderer.current_path(), file_path)

    def cache_name(self, path: str) -> str:
        """Path relative to root_path, or the path itself when outside it."""
        absolute = os.path.abspath(path)
        if absolute == self.root_path or absolute.startswith(self.root_path + os.sep):
            return os.path.relpath(absolute, self.root_path).replace(os.sep, "/")
        return path

    def render_file(
        self,
        file_path: str,
        expire: ExpireSpec = None,
        variables: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
        name: str = DEFAULT_CACHE_NAME,
        throw_exceptions: bool = True,
    ) -> Union[str, bool]:
        """
        Render file_path through the cache.

        Args:
            file_path: Template path, absolute or relative to the renderer's
                current path
            expire: Expiry of the cached output
            variables: Variables handed to the renderer
            options: Renderer options
            name: Cache name; the namespace is "cache." + name
            throw_exceptions: Raise TemplateNotFound / RenderError when True,
                return False when not

        Returns:
            Rendered output, or False on failure with throw_exceptions off
        """
        path = self.resolve_path(file_path)

        try:
            mtime = os.path.getmtime(path)
        except OSError:
            logger.warning(f"Cannot stat template {path}")
            if throw_exceptions:
                raise TemplateNotFound(path)
            return False

        namespace = NAMESPACE_PREFIX + name
        cache_name = self.cache_name(path)

        cached = self.facade.get(cache_name, namespace=namespace)
        if isinstance(cached, (tuple, list)) and len(cached) == 2:
            created_at, output = cached
            if isinstance(created_at, (int, float)) and created_at >= mtime:
                return output
            logger.debug(f"Template {path} changed since it was cached, re-rendering")

        output = self.renderer.render(path, variables or {}, options or {})
        if output is None or output is False:
            logger.warning(f"Renderer returned no output for {path}")
            if throw_exceptions:
                raise RenderError(path)
            return False

        if self.facade.set(cache_name, expire, (time.time(), output), namespace=namespace):
            # indexed for the save sweep regardless of expiry
            self.facade.trigger_index.register(self.facade.normalizer.normalize(cache_name, namespace))
        return output
