"""Error types raised by the cache facade."""

from __future__ import annotations

from typing import Any, Dict, Optional


class CacheError(Exception):
    """Base exception for cachefront."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationInvalid(CacheError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_INVALID", message, details)


class UsageError(CacheError):
    """Caller misuse, e.g. a batch lookup combined with a compute function."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("USAGE_ERROR", message, details)


class TemplateNotFound(CacheError):
    def __init__(self, path: str):
        super().__init__("TEMPLATE_NOT_FOUND", f"Template file not found: {path}", {"path": path})


class RenderError(CacheError):
    def __init__(self, path: str, message: str = "Renderer returned no output"):
        super().__init__("RENDER_ERROR", f"{message}: {path}", {"path": path})
