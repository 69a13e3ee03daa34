"""Information Governance Catalog (IGC) REST client implementing IRepositoryClient.

Talks to ``https://{host}:{port}/ibm/iis/igc-rest/v1`` over an injected
``httpx.Client`` (blocking), using HTTP basic authentication:

    POST /search                              typed, paged search
    GET  {paging.next}                        continuation of any page
    GET  /assets/{rid}                        full object by id
    GET  /flows/detectFlows/dsjob/{rid}       lineage detection for one job

Every transport failure, non-2xx status and unparseable payload is raised
as :class:`~stagelineage.utils.errors.RepositoryError`.  The one exception
is lineage detection: a 4xx answer means the repository could not detect
lineage for that job, which is reported as ``False`` rather than raised.
There are no retries.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from stagelineage.config.settings import Settings
from stagelineage.interfaces.repository_client import IRepositoryClient
from stagelineage.models.assets import ItemList, Reference
from stagelineage.models.search import Search
from stagelineage.providers.cache.object_cache import ObjectCache
from stagelineage.utils.errors import RepositoryError

logger = structlog.get_logger(logger_name=__name__)

_PROVIDER_NAME = "igc"


class IGCRestClient(IRepositoryClient):
    """Blocking IGC REST adapter.

    Parameters
    ----------
    settings:
        Connection settings (host, port, credentials, TLS, page size).
    http_client:
        Optional pre-built ``httpx.Client``.  When omitted, one is created
        and closed by :meth:`close`; an injected client is left open.
    """

    def __init__(self, settings: Settings, http_client: httpx.Client | None = None) -> None:
        self._base_url = settings.igc_base_url
        self._page_size = settings.igc_page_size
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            auth=(settings.igc_username, settings.igc_password),
            verify=settings.igc_verify_ssl,
            timeout=httpx.Timeout(settings.igc_timeout),
            headers={"Accept": "application/json"},
        )
        logger.info("igc_client_initialized", base_url=self._base_url, page_size=self._page_size)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> IGCRestClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # IRepositoryClient implementation
    # ------------------------------------------------------------------

    def search(self, search: Search) -> ItemList:
        if search.page_size is None:
            search = search.with_page_size(self._page_size)
        payload = self._request("POST", self._url("search"), json=search.to_query())
        return self._parse_item_list(payload, "search")

    def get_next_page(self, property_name: str | None, current_page: ItemList) -> ItemList:
        next_url = current_page.paging.next
        if not next_url:
            raise RepositoryError(
                message=f"No continuation URL for next page of {property_name or 'search results'}",
                provider_name=_PROVIDER_NAME,
            )
        payload = self._request("GET", next_url)
        if property_name and isinstance(payload, dict) and property_name in payload:
            payload = payload[property_name]
        return self._parse_item_list(payload, property_name or "search")

    def get_asset_by_id(self, rid: str, object_cache: ObjectCache | None = None) -> Reference:
        if object_cache is not None:
            cached = object_cache.get(rid)
            if cached is not None:
                return cached
        payload = self._request("GET", self._url(f"assets/{rid}"))
        try:
            asset = Reference.model_validate(payload)
        except ValidationError as exc:
            raise RepositoryError(
                message=f"Unparseable asset payload for {rid}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        if object_cache is not None:
            object_cache.add(asset)
        return asset

    def detect_lineage(self, job_rid: str) -> bool:
        url = self._url(f"flows/detectFlows/dsjob/{job_rid}")
        try:
            response = self._client.get(url, params={"force": "true"})
        except httpx.HTTPError as exc:
            raise RepositoryError(
                message=f"Lineage detection request failed for {job_rid}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        if response.is_success:
            return True
        if response.is_client_error:
            logger.warning(
                "igc_lineage_not_detected",
                rid=job_rid,
                status_code=response.status_code,
            )
            return False
        raise RepositoryError(
            message=f"HTTP {response.status_code} detecting lineage for {job_rid}",
            provider_name=_PROVIDER_NAME,
            status_code=response.status_code,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path}"

    def _request(self, method: str, url: str, json: dict[str, Any] | None = None) -> Any:
        logger.debug("igc_request", method=method, url=url)
        try:
            response = self._client.request(method, url, json=json)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as exc:
            raise RepositoryError(
                message=f"Timeout calling {method} {url}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise RepositoryError(
                message=f"HTTP {exc.response.status_code} calling {method} {url}",
                provider_name=_PROVIDER_NAME,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise RepositoryError(
                message=f"HTTP error calling {method} {url}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        except ValueError as exc:
            raise RepositoryError(
                message=f"Invalid JSON from {method} {url}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

    @staticmethod
    def _parse_item_list(payload: Any, what: str) -> ItemList:
        # A missing "items" key is a broken response, not an empty result.
        if not isinstance(payload, dict) or "items" not in payload:
            raise RepositoryError(
                message=f"Response for {what} is not a paged item list",
                provider_name=_PROVIDER_NAME,
            )
        try:
            return ItemList.model_validate(payload)
        except ValidationError as exc:
            raise RepositoryError(
                message=f"Unparseable item list for {what}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
