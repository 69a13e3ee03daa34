"""Abstract base class for job → Process translation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from stagelineage.models.job import DataStageJob
from stagelineage.models.lineage import Process

if TYPE_CHECKING:
    from stagelineage.services.datastage_cache import DataStageCache


class IProcessTranslator(ABC):
    """Contract for turning a cached job record into a lineage Process."""

    @abstractmethod
    def get_for_job(self, job: DataStageJob, cache: DataStageCache) -> Process | None:
        """Translate *job*, resolving its data stores through *cache*.

        Returns
        -------
        Process or None
            ``None`` when nothing lineage-relevant can be derived from the
            job.  This is not an error and is not cached.
        """
