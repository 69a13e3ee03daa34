"""Field expansion for virtual data stores.

Virtual assets (tables, views and file records the repository only knows
about because a job references them) cannot be searched by parent
reference.  Their fields are only reachable through the embedded, paged,
summary-only relationship on the full store object, and each summary has to
be re-fetched to obtain a complete field record.

That is one round trip per field, so this path is reserved for virtual
stores.
"""

from __future__ import annotations

import structlog

from stagelineage.interfaces.repository_client import IRepositoryClient
from stagelineage.models.assets import ItemList, Reference
from stagelineage.providers.cache.object_cache import ObjectCache
from stagelineage.utils.errors import ErrorCode, RepositoryError, raise_runtime_error

logger = structlog.get_logger(logger_name=__name__)


class VirtualFieldExpander:
    """Materialises complete field records from an embedded virtual field list."""

    def __init__(self, client: IRepositoryClient, object_cache: ObjectCache) -> None:
        self._client = client
        self._object_cache = object_cache

    def get_data_fields_from_virtual_list(
        self,
        property_name: str,
        virtual_fields: ItemList | None,
    ) -> list[Reference]:
        """Return the fully-detailed fields behind *virtual_fields*, in order.

        Returns an empty list (never ``None``) when *virtual_fields* is
        ``None``.  Any repository failure is fatal.
        """
        method_name = "get_data_fields_from_virtual_list"
        full_fields: list[Reference] = []
        if virtual_fields is None:
            return full_fields
        try:
            all_virtual_fields = self._client.get_all_pages(property_name, virtual_fields)
            logger.debug(
                "expanding_virtual_fields",
                property=property_name,
                count=len(all_virtual_fields),
            )
            for virtual_field in all_virtual_fields:
                full_fields.append(
                    self._client.get_asset_by_id(virtual_field.id, self._object_cache)
                )
        except RepositoryError as exc:
            raise_runtime_error(
                ErrorCode.UNKNOWN_RUNTIME_ERROR,
                type(self).__name__,
                method_name,
                exc,
            )
        return full_fields
