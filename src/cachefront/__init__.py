"""
cachefront — memcached caching facade
Key normalization, get-or-compute, save-triggered expiry and render caching
"""

from .config import CacheConfig, load_config
from .errors import CacheError, ConfigurationInvalid, RenderError, TemplateNotFound, UsageError
from .expiry import Expire, ExpirationPolicy, ResolvedExpiry
from .facade import CacheFacade
from .keys import NO_NAMESPACE, KeyNormalizer, content_hash
from .render import FileRenderCache, Renderer
from .save_triggers import MaintenanceSweep, SaveTriggerIndex
from .store import InMemoryStore, MemcacheStore, ServerDescriptor, StoreClient, parse_server_list

__all__ = [
    'CacheConfig', 'load_config',
    'CacheError', 'ConfigurationInvalid', 'RenderError', 'TemplateNotFound', 'UsageError',
    'Expire', 'ExpirationPolicy', 'ResolvedExpiry',
    'CacheFacade',
    'NO_NAMESPACE', 'KeyNormalizer', 'content_hash',
    'FileRenderCache', 'Renderer',
    'MaintenanceSweep', 'SaveTriggerIndex',
    'InMemoryStore', 'MemcacheStore', 'ServerDescriptor', 'StoreClient', 'parse_server_list',
]
