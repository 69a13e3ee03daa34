"""Unit tests for the changed-jobs search and the change scan driver."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import FakeRepositoryClient, job_payload, make_page, page_payload
from stagelineage.models.lineage import CacheWindow, LineageMode
from stagelineage.services.change_scan import ChangeScanDriver, build_changed_jobs_search
from stagelineage.services.datastage_cache import DataStageCache
from stagelineage.utils.errors import CacheRuntimeError, ErrorCode

T_END = datetime(2024, 5, 1, tzinfo=timezone.utc)
T_END_MILLIS = "1714521600000"


def _summary(rid: str) -> dict:
    return {"_id": rid, "_type": "dsjob", "_name": rid.upper(), "modified_on": 1714500000000}


# ======================================================================
# build_changed_jobs_search
# ======================================================================


class TestBuildChangedJobsSearch:
    def test_upper_bound_only(self) -> None:
        search = build_changed_jobs_search(CacheWindow(end=T_END))

        assert search.types == ("dsjob",)
        assert search.properties == ("modified_on",)
        assert search.to_query()["where"] == {
            "operator": "and",
            "conditions": [{"property": "modified_on", "operator": "<=", "value": T_END_MILLIS}],
        }

    def test_lower_bound_added_when_start_set(self) -> None:
        window = CacheWindow(start=datetime(2024, 4, 30, tzinfo=timezone.utc), end=T_END)
        conditions = build_changed_jobs_search(window).to_query()["where"]["conditions"]

        assert conditions[1] == {"property": "modified_on", "operator": ">", "value": "1714435200000"}

    def test_project_filter_adds_set_membership(self) -> None:
        query = build_changed_jobs_search(CacheWindow(end=T_END), ["P1", "P2"]).to_query()

        assert query["where"]["operator"] == "and"
        assert query["where"]["conditions"] == [
            {"property": "modified_on", "operator": "<=", "value": T_END_MILLIS},
            {"property": "transformation_project.name", "operator": "in", "value": ["P1", "P2"]},
        ]

    def test_lineage_enabled_filter(self) -> None:
        window = CacheWindow(start=datetime(2024, 4, 30, tzinfo=timezone.utc), end=T_END)
        search = build_changed_jobs_search(window, ["P1"], limit_to_lineage_enabled=True)

        conditions = search.conditions.conditions
        assert [c.property for c in conditions] == [
            "modified_on",
            "modified_on",
            "transformation_project.name",
            "include_for_lineage",
        ]
        assert conditions[-1].operator == "="
        assert conditions[-1].value == "true"
        assert search.conditions.match_any is False


# ======================================================================
# Change scan
# ======================================================================


class TestChangeScan:
    def test_initialize_caches_detected_jobs(self, fake_client: FakeRepositoryClient) -> None:
        fake_client.changed_jobs = page_payload([_summary("j1"), _summary("j2")])
        fake_client.jobs["j1"] = job_payload("j1", "LoadSales")
        fake_client.jobs["j2"] = job_payload("j2", "LoadStock")
        cache = DataStageCache(CacheWindow(end=T_END))

        summary = cache.initialize(fake_client)

        assert {j.rid for j in cache.get_all_jobs()} == {"j1", "j2"}
        assert fake_client.detected == ["j1", "j2"]
        assert summary.pages == 1
        assert summary.cached == 2
        assert cache.initialized is True

    def test_failed_detection_excludes_job(self, fake_client: FakeRepositoryClient) -> None:
        fake_client.changed_jobs = page_payload([_summary("j1"), _summary("j2")])
        fake_client.jobs["j1"] = job_payload("j1", "LoadSales")
        fake_client.jobs["j2"] = job_payload("j2", "Broken")
        fake_client.lineage["j2"] = False
        cache = DataStageCache(CacheWindow(end=T_END))

        summary = cache.initialize(fake_client)

        assert [j.rid for j in cache.get_all_jobs()] == ["j1"]
        assert cache.is_job_cached("j2") is False
        assert summary.skipped == 1
        assert cache.is_job_excluded("j2") is True
        assert cache.get_job_by_rid("j2") is None
        assert cache.get_process_by_rid("j2") is None
        # Only j1 was point-loaded.
        point_queries = [s for s in fake_client.searches if s.conditions.conditions[0].property == "_id"]
        assert [s.conditions.conditions[0].value for s in point_queries] == ["j1"]

    def test_drains_every_page(self, fake_client: FakeRepositoryClient) -> None:
        fake_client.changed_jobs = page_payload([_summary("j1")], next_url="http://scan/2", total=3)
        fake_client.next_pages["http://scan/2"] = page_payload(
            [_summary("j2")], next_url="http://scan/3", total=3, begin=1
        )
        fake_client.next_pages["http://scan/3"] = page_payload([_summary("j3")], total=3, begin=2)
        for rid in ("j1", "j2", "j3"):
            fake_client.jobs[rid] = job_payload(rid, rid.upper())
        cache = DataStageCache(CacheWindow(end=T_END))

        summary = cache.initialize(fake_client)

        assert summary.pages == 3
        assert summary.seen == 3
        assert fake_client.calls["get_next_page"] == 2
        assert {j.rid for j in cache.get_all_jobs()} == {"j1", "j2", "j3"}

    def test_already_cached_job_is_not_redetected(self, fake_client: FakeRepositoryClient) -> None:
        fake_client.jobs["j1"] = job_payload("j1", "LoadSales")
        cache = DataStageCache(CacheWindow(end=T_END), client=fake_client)
        cache.get_job_by_rid("j1")
        fake_client.changed_jobs = page_payload([_summary("j1")])

        cache.initialize()

        assert fake_client.detected == []

    def test_filters_reach_the_search(self, fake_client: FakeRepositoryClient) -> None:
        cache = DataStageCache(
            CacheWindow(end=T_END),
            mode=LineageMode.GRANULAR,
            limit_to_projects=["P1", "P2"],
            limit_to_lineage_enabled=True,
        )
        cache.initialize(fake_client)

        properties = [c.property for c in fake_client.searches[0].conditions.conditions]
        assert properties == ["modified_on", "transformation_project.name", "include_for_lineage"]

    @pytest.mark.parametrize("capability", ["search", "detect_lineage", "get_next_page"])
    def test_remote_failure_aborts_initialize(self, fake_client: FakeRepositoryClient, capability: str) -> None:
        fake_client.changed_jobs = page_payload([_summary("j1")], next_url="http://scan/2", total=2)
        fake_client.next_pages["http://scan/2"] = page_payload([_summary("j2")], total=2, begin=1)
        fake_client.jobs["j1"] = job_payload("j1", "A")
        fake_client.fail.add(capability)
        cache = DataStageCache(CacheWindow(end=T_END))

        with pytest.raises(CacheRuntimeError) as exc_info:
            cache.initialize(fake_client)
        assert exc_info.value.code is ErrorCode.UNKNOWN_RUNTIME_ERROR

    def test_initialize_runs_once(self, fake_client: FakeRepositoryClient) -> None:
        cache = DataStageCache(CacheWindow(end=T_END))
        cache.initialize(fake_client)

        with pytest.raises(CacheRuntimeError) as exc_info:
            cache.initialize(fake_client)
        assert exc_info.value.code is ErrorCode.ALREADY_INITIALIZED
        assert fake_client.calls["search"] == 1

    def test_initialize_without_client_is_fatal(self) -> None:
        with pytest.raises(CacheRuntimeError) as exc_info:
            DataStageCache(CacheWindow(end=T_END)).initialize()
        assert exc_info.value.code is ErrorCode.NOT_INITIALIZED

    def test_driver_can_rescan_a_page(self, fake_client: FakeRepositoryClient) -> None:
        fake_client.jobs["j1"] = job_payload("j1", "A")
        cache = DataStageCache(CacheWindow(end=T_END), client=fake_client)
        driver = ChangeScanDriver(cache)

        first = driver.cache_changed_jobs(make_page([_summary("j1")]))
        second = driver.cache_changed_jobs(make_page([_summary("j1")]))

        assert first.cached == 1
        assert second.cached == 0
        assert fake_client.detected == ["j1"]

    def test_driver_does_not_redetect_excluded_jobs(self, fake_client: FakeRepositoryClient) -> None:
        fake_client.lineage["j1"] = False
        cache = DataStageCache(CacheWindow(end=T_END), client=fake_client)
        driver = ChangeScanDriver(cache)

        driver.cache_changed_jobs(make_page([_summary("j1")]))
        again = driver.cache_changed_jobs(make_page([_summary("j1")]))

        assert again.skipped == 0
        assert fake_client.detected == ["j1"]
        assert fake_client.calls["search"] == 0
