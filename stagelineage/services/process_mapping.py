"""Default job → Process translation.

A job becomes a Process whose inputs are the stores it reads and whose
outputs are the stores it writes.  A sequence has no stores of its own; it
takes the union of the stores of the jobs it sequences, which are looked up
(and cached) through the job memo.

In JOB_LEVEL mode each store is named by its identity and lineage edges run
store → process → store.  In GRANULAR mode the edges run field → process →
field, using the field records the cache resolves for every store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from stagelineage.interfaces.process_translator import IProcessTranslator
from stagelineage.models.assets import DataStore
from stagelineage.models.job import DataStageJob
from stagelineage.models.lineage import LineageMapping, LineageMode, Process

if TYPE_CHECKING:
    from stagelineage.services.datastage_cache import DataStageCache

logger = structlog.get_logger(logger_name=__name__)


class ProcessMapping(IProcessTranslator):
    """Maps DataStage jobs and sequences to lineage Processes."""

    def get_for_job(self, job: DataStageJob, cache: DataStageCache) -> Process | None:
        inputs, outputs = self._collect_stores(job, cache)
        if not inputs and not outputs:
            logger.debug("job_without_stores", rid=job.rid, name=job.name)
            return None

        qualified_name = self._qualified_name(job)
        input_names = tuple(self._store_name(store, cache) for store in inputs)
        output_names = tuple(self._store_name(store, cache) for store in outputs)

        mappings: list[LineageMapping] = []
        if cache.mode is LineageMode.GRANULAR:
            for store in inputs:
                for field_name in self._field_names(store, cache):
                    mappings.append(LineageMapping(source=field_name, target=qualified_name))
            for store in outputs:
                for field_name in self._field_names(store, cache):
                    mappings.append(LineageMapping(source=qualified_name, target=field_name))
        else:
            mappings.extend(LineageMapping(source=name, target=qualified_name) for name in input_names)
            mappings.extend(LineageMapping(source=qualified_name, target=name) for name in output_names)

        return Process(
            qualified_name=qualified_name,
            name=job.name,
            display_name=job.name,
            description=job.description,
            job_type=job.job_type,
            project=job.project,
            input_stores=input_names,
            output_stores=output_names,
            lineage_mappings=tuple(mappings),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _qualified_name(job: DataStageJob) -> str:
        job_part = f"(dsjob)={job.name}"
        if job.project:
            return f"(transformation_project)={job.project}::{job_part}"
        return job_part

    @staticmethod
    def _collect_stores(
        job: DataStageJob,
        cache: DataStageCache,
    ) -> tuple[list[DataStore], list[DataStore]]:
        if not job.is_sequence:
            return list(job.inputs), list(job.outputs)
        inputs: dict[str, DataStore] = {}
        outputs: dict[str, DataStore] = {}
        for sequenced in job.sequenced_jobs:
            sub_job = cache.get_job_by_rid(sequenced.id)
            if sub_job is None:
                continue
            inputs.update((store.id, store) for store in sub_job.inputs)
            outputs.update((store.id, store) for store in sub_job.outputs)
        return list(inputs.values()), list(outputs.values())

    @staticmethod
    def _store_name(store: DataStore, cache: DataStageCache) -> str:
        # Resolving fields (or, in JOB_LEVEL mode, the identity) fills the identity memo.
        cache.get_fields_for_store(store)
        identity = cache.get_store_identity_from_rid(store.id)
        if identity is not None:
            return str(identity)
        return f"({store.type})={store.reference.name or store.id}"

    @staticmethod
    def _field_names(store: DataStore, cache: DataStageCache) -> list[str]:
        fields = cache.get_fields_for_store(store) or ()
        store_name = ProcessMapping._store_name(store, cache)
        return [f"{store_name}::({field.type})={field.name or field.id}" for field in fields]
