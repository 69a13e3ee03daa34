"""Abstract base class for metadata repository clients.

Defines the capabilities the DataStage cache consumes from the remote
repository: typed search with paging, full-object fetch by id, and the
job-scoped lineage detection call.  Concrete adapters (e.g. the httpx-based
:class:`~stagelineage.providers.igc.rest_client.IGCRestClient`) implement
the transport; unit tests inject an in-memory fake.

All calls are synchronous and blocking.  Every failure is reported as
:class:`~stagelineage.utils.errors.RepositoryError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import structlog

from stagelineage.models.assets import ItemList, Reference
from stagelineage.models.search import Search

if TYPE_CHECKING:
    from stagelineage.providers.cache.object_cache import ObjectCache

logger = structlog.get_logger(logger_name=__name__)


class IRepositoryClient(ABC):
    """Contract for the metadata repository (search, fetch, detect lineage)."""

    @abstractmethod
    def search(self, search: Search) -> ItemList:
        """Run *search* and return the first page of results.

        Raises
        ------
        stagelineage.utils.errors.RepositoryError
            If the query fails or the response cannot be parsed.
        """

    @abstractmethod
    def get_next_page(self, property_name: str | None, current_page: ItemList) -> ItemList:
        """Return the page following *current_page*.

        Parameters
        ----------
        property_name:
            Name of the embedded relationship the page belongs to, or
            ``None`` for a top-level search result.
        current_page:
            A page whose :meth:`ItemList.has_more_pages` is ``True``.
        """

    @abstractmethod
    def get_asset_by_id(self, rid: str, object_cache: ObjectCache | None = None) -> Reference:
        """Fetch the full object with id *rid*, bypassing search.

        When *object_cache* is given it is consulted first and filled on a
        fetch, so repeated calls for the same id cost one round trip.
        """

    @abstractmethod
    def detect_lineage(self, job_rid: str) -> bool:
        """Trigger lineage detection for a job; ``True`` when it succeeded."""

    def get_all_pages(self, property_name: str | None, item_list: ItemList | None) -> list[Reference]:
        """Drain *item_list* and every following page into one list.

        Returns an empty list when *item_list* is ``None``.
        """
        if item_list is None:
            return []
        items: list[Reference] = list(item_list.items)
        page = item_list
        while page.has_more_pages():
            page = self.get_next_page(property_name, page)
            if not page.items:
                logger.warning(
                    "empty_continuation_page",
                    property=property_name,
                    collected=len(items),
                    num_total=page.paging.num_total,
                )
                break
            items.extend(page.items)
        return items
