"""stagelineage domain models — re-exports all public model classes.

    - assets.py   — repository references, paged item lists, identities, stores
    - job.py      — DataStage job records held by the job memo
    - lineage.py  — cache window, lineage mode and the Process output
    - search.py   — search conditions rendered into repository queries
"""

from __future__ import annotations

from stagelineage.models.assets import (
    DataStore,
    Identity,
    IdentityComponent,
    ItemList,
    Paging,
    Reference,
    StoreKind,
)
from stagelineage.models.job import JOB_ASSET_TYPE, JOB_SEARCH_PROPERTIES, DataStageJob, JobType
from stagelineage.models.lineage import CacheWindow, LineageMapping, LineageMode, Process
from stagelineage.models.search import Search, SearchCondition, SearchConditionSet

__all__ = [
    "CacheWindow",
    "DataStageJob",
    "DataStore",
    "Identity",
    "IdentityComponent",
    "ItemList",
    "JOB_ASSET_TYPE",
    "JOB_SEARCH_PROPERTIES",
    "JobType",
    "LineageMapping",
    "LineageMode",
    "Paging",
    "Process",
    "Reference",
    "Search",
    "SearchCondition",
    "SearchConditionSet",
    "StoreKind",
]
