"""Shared pytest fixtures for the stagelineage test suite."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any

import pytest

from stagelineage.interfaces.repository_client import IRepositoryClient
from stagelineage.models.assets import ItemList, Reference
from stagelineage.models.lineage import CacheWindow
from stagelineage.models.search import Search
from stagelineage.providers.cache.object_cache import ObjectCache
from stagelineage.utils.errors import RepositoryError

# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------

HOST = {"_id": "host1", "_type": "host", "_name": "INFOSVR"}


def page_payload(
    items: list[dict[str, Any]],
    next_url: str | None = None,
    total: int | None = None,
    begin: int = 0,
) -> dict[str, Any]:
    """Raw item-list payload; *next_url* and *total* describe further pages."""
    num_total = total if total is not None else begin + len(items)
    return {
        "items": items,
        "paging": {
            "numTotal": num_total,
            "pageSize": max(len(items), 1),
            "begin": begin,
            "end": begin + len(items) - 1,
            "next": next_url,
        },
    }


def make_page(items: list[dict[str, Any]], **kwargs: Any) -> ItemList:
    return ItemList.model_validate(page_payload(items, **kwargs))


def table_payload(rid: str, name: str, store_type: str = "database_table", **extra: Any) -> dict:
    return {
        "_id": rid,
        "_type": store_type,
        "_name": name,
        "_context": [
            HOST,
            {"_id": "db1", "_type": "database", "_name": "SALES"},
            {"_id": "schema1", "_type": "database_schema", "_name": "DBO"},
        ],
        **extra,
    }


def store_ref(rid: str, store_type: str = "database_table", name: str | None = None) -> dict:
    """A bare relationship reference to a store (no ``_context``)."""
    return {"_id": rid, "_type": store_type, "_name": name or rid.upper()}


def column_payload(rid: str, name: str, parent_rid: str, parent_name: str,
                   parent_type: str = "database_table", field_type: str = "database_column") -> dict:
    return {
        "_id": rid,
        "_type": field_type,
        "_name": name,
        "_context": [
            HOST,
            {"_id": "db1", "_type": "database", "_name": "SALES"},
            {"_id": "schema1", "_type": "database_schema", "_name": "DBO"},
            {"_id": parent_rid, "_type": parent_type, "_name": parent_name},
        ],
    }


def job_payload(
    rid: str,
    name: str,
    project: str = "dstage1",
    reads: list[dict] | None = None,
    writes: list[dict] | None = None,
    job_type: str = "Parallel",
    sequenced: list[dict] | None = None,
    modified_on: int = 1714500000000,
) -> dict:
    return {
        "_id": rid,
        "_type": "dsjob",
        "_name": name,
        "type": job_type,
        "modified_on": modified_on,
        "short_description": f"{name} job",
        "transformation_project": {"_id": f"p_{project}", "_type": "transformation_project", "_name": project},
        "stages": page_payload([]),
        "sequenced_jobs": page_payload(sequenced or []),
        "reads_from_(design)": page_payload(reads or []),
        "writes_to_(design)": page_payload(writes or []),
    }


# ---------------------------------------------------------------------------
# Fake repository client
# ---------------------------------------------------------------------------


class FakeRepositoryClient(IRepositoryClient):
    """In-memory repository that records every call.

    - ``jobs``: job RID → payload returned by a point search on ``_id``.
    - ``changed_jobs``: first page returned by the changed-jobs search.
    - ``fields``: parent store RID → first page of its field search.
    - ``next_pages``: continuation URL → page payload.
    - ``assets``: RID → full object payload for ``get_asset_by_id``.
    - ``lineage``: job RID → result of ``detect_lineage`` (default True).
    - ``fail``: capability names that raise ``RepositoryError``.
    """

    def __init__(self) -> None:
        self.jobs: dict[str, dict] = {}
        self.changed_jobs: dict = page_payload([])
        self.fields: dict[str, dict] = {}
        self.next_pages: dict[str, dict] = {}
        self.assets: dict[str, dict] = {}
        self.lineage: dict[str, bool] = {}
        self.fail: set[str] = set()
        self.calls: Counter[str] = Counter()
        self.searches: list[Search] = []
        self.detected: list[str] = []
        self.fetched: list[str] = []

    def _check(self, capability: str) -> None:
        self.calls[capability] += 1
        if capability in self.fail:
            raise RepositoryError(message=f"{capability} failed")

    def search(self, search: Search) -> ItemList:
        self._check("search")
        self.searches.append(search)
        conditions = search.conditions.conditions
        first = conditions[0] if conditions else None
        if search.types == ("dsjob",) and first is not None and first.property == "_id":
            job = self.jobs.get(first.value)
            return make_page([job] if job else [])
        if search.types == ("dsjob",):
            return ItemList.model_validate(self.changed_jobs)
        if first is not None:
            return ItemList.model_validate(self.fields.get(first.value, page_payload([])))
        return make_page([])

    def get_next_page(self, property_name: str | None, current_page: ItemList) -> ItemList:
        self._check("get_next_page")
        return ItemList.model_validate(self.next_pages[current_page.paging.next])

    def get_asset_by_id(self, rid: str, object_cache: ObjectCache | None = None) -> Reference:
        if object_cache is not None and rid in object_cache:
            return object_cache.get(rid)
        self._check("get_asset_by_id")
        self.fetched.append(rid)
        asset = Reference.model_validate(self.assets[rid])
        if object_cache is not None:
            object_cache.add(asset)
        return asset

    def detect_lineage(self, job_rid: str) -> bool:
        self._check("detect_lineage")
        self.detected.append(job_rid)
        return self.lineage.get(job_rid, True)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_client() -> FakeRepositoryClient:
    return FakeRepositoryClient()


@pytest.fixture
def window() -> CacheWindow:
    return CacheWindow(
        start=datetime(2024, 4, 30, tzinfo=timezone.utc),
        end=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables out of Settings-based tests."""
    for name in (
        "IGC_HOST", "IGC_PORT", "IGC_USERNAME", "IGC_PASSWORD", "IGC_VERIFY_SSL",
        "IGC_PAGE_SIZE", "IGC_TIMEOUT", "LINEAGE_MODE", "LIMIT_TO_PROJECTS",
        "LIMIT_TO_LINEAGE_ENABLED", "APP_ENV", "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
