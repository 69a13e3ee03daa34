"""Run-scoped cache of fully-fetched repository objects.

Every full-object fetch (``IRepositoryClient.get_asset_by_id``) and every
identity resolution that needs one goes through an :class:`ObjectCache`, so
the same asset is fetched at most once per synchronisation run even when it
is reached from several jobs.  There is no eviction and no TTL: the cache
lives exactly as long as the :class:`~stagelineage.services.datastage_cache.DataStageCache`
that owns it.

Not thread-safe; owned by a single thread for the duration of one run.
"""

from __future__ import annotations

from collections.abc import Iterator

import structlog

from stagelineage.models.assets import Reference

logger = structlog.get_logger(logger_name=__name__)


class ObjectCache:
    """Maps repository ids (RIDs) to the full objects fetched for them."""

    def __init__(self) -> None:
        self._objects: dict[str, Reference] = {}

    def get(self, rid: str) -> Reference | None:
        """Return the cached object for *rid*, or ``None`` if not yet fetched."""
        obj = self._objects.get(rid)
        if obj is not None:
            logger.debug("object_cache_hit", rid=rid)
        else:
            logger.debug("object_cache_miss", rid=rid)
        return obj

    def add(self, obj: Reference) -> None:
        """Store *obj* under its id.  An object already present is kept."""
        if obj.id not in self._objects:
            self._objects[obj.id] = obj
            logger.debug("object_cache_set", rid=obj.id, type=obj.type)

    def __contains__(self, rid: object) -> bool:
        return rid in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._objects))
