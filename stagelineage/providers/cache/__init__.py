"""Cache providers."""

from stagelineage.providers.cache.object_cache import ObjectCache

__all__ = ["ObjectCache"]
