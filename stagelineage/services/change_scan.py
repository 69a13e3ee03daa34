"""Change scan: the cache's only eager population path.

Searches for DataStage jobs modified inside the cache window (optionally
limited to some projects and to lineage-enabled jobs), asks the repository
to detect lineage on each one not yet cached, and point-loads the full
detail of every job for which detection succeeded.  Jobs whose detection
fails are left out of the cache entirely.

Result pages are drained with an explicit loop rather than recursion, so a
long scan does not grow the call stack.  This could hold a lot of jobs in
memory for a wide window; narrow the window to bound it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from stagelineage.models.assets import ItemList
from stagelineage.models.job import JOB_ASSET_TYPE
from stagelineage.models.lineage import CacheWindow
from stagelineage.models.search import Search, SearchCondition, SearchConditionSet
from stagelineage.utils.errors import ErrorCode, RepositoryError, raise_runtime_error

if TYPE_CHECKING:
    from stagelineage.services.datastage_cache import DataStageCache

logger = structlog.get_logger(logger_name=__name__)


@dataclass(frozen=True)
class ScanSummary:
    """Counts collected while draining the changed-jobs search."""

    pages: int = 0
    seen: int = 0
    cached: int = 0
    skipped: int = 0


def build_changed_jobs_search(
    window: CacheWindow,
    limit_to_projects: list[str] | tuple[str, ...] = (),
    limit_to_lineage_enabled: bool = False,
) -> Search:
    """Build the search for jobs changed inside *window*.

    Only ``modified_on`` is requested: full detail is re-read after lineage
    detection anyway.  All conditions are combined with AND.
    """
    conditions = SearchConditionSet(
        conditions=(
            SearchCondition(property="modified_on", operator="<=", value=str(window.end_millis)),
        ),
    )
    if window.start_millis is not None:
        conditions = conditions.with_condition(
            SearchCondition(property="modified_on", operator=">", value=str(window.start_millis))
        )
    if limit_to_projects:
        conditions = conditions.with_condition(
            SearchCondition.one_of("transformation_project.name", list(limit_to_projects))
        )
    if limit_to_lineage_enabled:
        conditions = conditions.with_condition(
            SearchCondition.equals("include_for_lineage", "true")
        )
    return Search(types=(JOB_ASSET_TYPE,), properties=("modified_on",), conditions=conditions)


class ChangeScanDriver:
    """Runs the changed-jobs search once and feeds the results into *cache*."""

    def __init__(self, cache: DataStageCache) -> None:
        self._cache = cache

    def get_changed_jobs(self) -> ScanSummary:
        """Search for changed jobs and cache every one whose lineage is detected."""
        method_name = "get_changed_jobs"
        client = self._cache.client
        search = build_changed_jobs_search(
            self._cache.window,
            self._cache.limit_to_projects,
            self._cache.limit_to_lineage_enabled,
        )
        logger.info(
            "changed_job_search",
            start=self._cache.window.start_millis or 0,
            end=self._cache.window.end_millis,
            projects=list(self._cache.limit_to_projects),
            lineage_enabled_only=self._cache.limit_to_lineage_enabled,
        )
        try:
            first_page = client.search(search)
        except RepositoryError as exc:
            raise_runtime_error(ErrorCode.UNKNOWN_RUNTIME_ERROR, type(self).__name__, method_name, exc)
        return self.cache_changed_jobs(first_page)

    def cache_changed_jobs(self, jobs: ItemList) -> ScanSummary:
        """Detect lineage on, and cache, every job in *jobs* and its following pages."""
        method_name = "cache_changed_jobs"
        client = self._cache.client
        pages = seen = cached = skipped = 0
        page = jobs
        try:
            while True:
                pages += 1
                for job in page.items:
                    seen += 1
                    if self._cache.is_job_cached(job.id) or self._cache.is_job_excluded(job.id):
                        continue
                    logger.debug("detecting_lineage", rid=job.id)
                    if client.detect_lineage(job.id):
                        # Full detail is only read once detection has succeeded.
                        if self._cache.get_job_by_rid(job.id) is not None:
                            cached += 1
                    else:
                        skipped += 1
                        self._cache.exclude_job(job.id)
                        logger.warning("lineage_detection_failed", rid=job.id)
                if not page.has_more_pages():
                    break
                page = client.get_next_page(None, page)
        except RepositoryError as exc:
            raise_runtime_error(ErrorCode.UNKNOWN_RUNTIME_ERROR, type(self).__name__, method_name, exc)
        summary = ScanSummary(pages=pages, seen=seen, cached=cached, skipped=skipped)
        logger.info(
            "changed_jobs_cached",
            pages=summary.pages,
            seen=summary.seen,
            cached=summary.cached,
            skipped=summary.skipped,
        )
        return summary
