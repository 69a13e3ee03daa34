"""Run-scoped cache of DataStage information for lineage synchronisation.

One :class:`DataStageCache` serves exactly one synchronisation run over a
fixed window of changes.  It holds four memo tables:

    job RID    → DataStageJob        (filled by the change scan, or on miss)
    job RID    → Process             (derived lazily from the job)
    store RID  → Identity            (store naming path)
    store RID  → fields              (GRANULAR mode only)

plus the :class:`ObjectCache` of fully-fetched repository objects that every
full-object fetch and identity resolution shares.  Entries are never
invalidated or re-fetched: the change scan in :meth:`initialize` is the
only eager writer; everything else is filled on first miss.

Not-found is logged at warning and returned as ``None``.  Any repository
failure is fatal and raised as :class:`CacheRuntimeError` with the failing
method's name.

The cache is not thread-safe: it is owned by the single thread driving the
run.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

import structlog
from pydantic import ValidationError

from stagelineage.interfaces.process_translator import IProcessTranslator
from stagelineage.interfaces.repository_client import IRepositoryClient
from stagelineage.models.assets import DataStore, Identity, ItemList, Reference, StoreKind
from stagelineage.models.job import JOB_ASSET_TYPE, JOB_SEARCH_PROPERTIES, DataStageJob
from stagelineage.models.lineage import CacheWindow, LineageMode, Process
from stagelineage.models.search import Search, SearchCondition, SearchConditionSet
from stagelineage.providers.cache.object_cache import ObjectCache
from stagelineage.services.change_scan import ChangeScanDriver, ScanSummary
from stagelineage.services.process_mapping import ProcessMapping
from stagelineage.services.virtual_fields import VirtualFieldExpander
from stagelineage.utils.errors import ErrorCode, RepositoryError, raise_runtime_error

logger = structlog.get_logger(logger_name=__name__)

# Properties requested for every data field (column or file field).
DATA_FIELD_SEARCH_PROPERTIES: tuple[str, ...] = (
    "name",
    "short_description",
    "long_description",
    "data_type",
    "odbc_type",
    "length",
    "minimum_length",
    "fraction",
    "position",
    "allows_null_values",
    "database_table_or_view",
    "data_file_record",
    "modified_on",
)


@dataclass(frozen=True)
class FieldLookup:
    """Where the fields of one store kind live in the repository."""

    field_type: str
    parent_property: str
    embedded_property: str


_COLUMN_LOOKUP = FieldLookup("database_column", "database_table_or_view", "database_columns")
_FILE_FIELD_LOOKUP = FieldLookup("data_file_field", "data_file_record", "data_file_fields")

FIELD_LOOKUPS: dict[StoreKind, FieldLookup] = {
    StoreKind.DATABASE_TABLE: _COLUMN_LOOKUP,
    StoreKind.VIEW: _COLUMN_LOOKUP,
    StoreKind.DATA_FILE_RECORD: _FILE_FIELD_LOOKUP,
}


class DataStageCache:
    """Memoises jobs, processes, store identities and fields for one window.

    Parameters
    ----------
    window:
        The ``(start, end]`` window of changes to cache.
    mode:
        Level of lineage detail; governs which memos are populated.
    limit_to_projects:
        When non-empty, only jobs in these projects are scanned.
    limit_to_lineage_enabled:
        When ``True``, only jobs flagged ``include_for_lineage`` are scanned.
    client:
        Optional repository client bound up front, so lookups work before
        (or without) :meth:`initialize`.
    object_cache:
        Shared cache of fetched repository objects; a fresh one by default.
    translator:
        Job → Process translation; :class:`ProcessMapping` by default.
    """

    def __init__(
        self,
        window: CacheWindow,
        mode: LineageMode = LineageMode.JOB_LEVEL,
        limit_to_projects: Iterable[str] | None = None,
        limit_to_lineage_enabled: bool = False,
        client: IRepositoryClient | None = None,
        object_cache: ObjectCache | None = None,
        translator: IProcessTranslator | None = None,
    ) -> None:
        self._window = window
        self._mode = mode
        self._limit_to_projects: tuple[str, ...] = tuple(limit_to_projects or ())
        self._limit_to_lineage_enabled = limit_to_lineage_enabled
        self._client = client
        self._object_cache = object_cache if object_cache is not None else ObjectCache()
        self._translator = translator or ProcessMapping()
        self._initialized = False

        self._rid_to_job: dict[str, DataStageJob] = {}
        self._excluded_jobs: set[str] = set()
        self._rid_to_process: dict[str, Process] = {}
        self._store_to_identity: dict[str, Identity] = {}
        self._store_to_fields: dict[str, tuple[Reference, ...]] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, client: IRepositoryClient | None = None) -> ScanSummary:
        """Bind *client* (borrowed, not owned) and run the change scan once."""
        method_name = "initialize"
        if self._initialized:
            raise_runtime_error(ErrorCode.ALREADY_INITIALIZED, type(self).__name__, method_name)
        if client is not None:
            self._client = client
        self._require_client(method_name)
        self._initialized = True
        return ChangeScanDriver(self).get_changed_jobs()

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def window(self) -> CacheWindow:
        return self._window

    @property
    def start(self) -> datetime | None:
        return self._window.start

    @property
    def end(self) -> datetime:
        return self._window.end

    @property
    def mode(self) -> LineageMode:
        return self._mode

    @property
    def limit_to_projects(self) -> tuple[str, ...]:
        return self._limit_to_projects

    @property
    def limit_to_lineage_enabled(self) -> bool:
        return self._limit_to_lineage_enabled

    @property
    def object_cache(self) -> ObjectCache:
        return self._object_cache

    @property
    def client(self) -> IRepositoryClient:
        return self._require_client("client")

    @property
    def initialized(self) -> bool:
        return self._initialized

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, DataStageCache):
            return NotImplemented
        return self._window == other._window

    def __hash__(self) -> int:
        return hash(self._window)

    def __repr__(self) -> str:
        return (
            f"DataStageCache(start={self.start!r}, end={self.end!r}, mode={self._mode.value!r}, "
            f"jobs={len(self._rid_to_job)})"
        )

    # ------------------------------------------------------------------
    # Job memo
    # ------------------------------------------------------------------

    def is_job_cached(self, rid: str) -> bool:
        return rid in self._rid_to_job

    def exclude_job(self, rid: str) -> None:
        """Keep *rid* out of the job memo for the rest of the run."""
        self._excluded_jobs.add(rid)

    def is_job_excluded(self, rid: str) -> bool:
        return rid in self._excluded_jobs

    def get_all_jobs(self) -> list[DataStageJob]:
        """Snapshot of every cached job, in no particular order."""
        return list(self._rid_to_job.values())

    def get_job_by_rid(self, rid: str) -> DataStageJob | None:
        """Return the job with *rid*, fetching and caching it on a miss.

        Returns ``None`` (and caches nothing) when no such job exists, or
        when the change scan excluded it because lineage detection failed.
        """
        method_name = "get_job_by_rid"
        job = self._rid_to_job.get(rid)
        if job is not None:
            return job
        if rid in self._excluded_jobs:
            logger.debug("job_excluded", rid=rid)
            return None
        client = self._require_client(method_name)
        search = Search(
            types=(JOB_ASSET_TYPE,),
            properties=JOB_SEARCH_PROPERTIES,
            conditions=SearchConditionSet(conditions=(SearchCondition.equals("_id", rid),)),
        )
        logger.info("job_cache_miss", rid=rid)
        try:
            results = client.search(search)
            if results.items:
                job = DataStageJob.build(client, results.items[0])
                self._rid_to_job[rid] = job
            else:
                logger.warning("job_not_found", rid=rid)
        except (RepositoryError, ValidationError) as exc:
            raise_runtime_error(ErrorCode.UNKNOWN_RUNTIME_ERROR, type(self).__name__, method_name, exc)
        return job

    # ------------------------------------------------------------------
    # Process memo
    # ------------------------------------------------------------------

    def get_process_by_rid(self, rid: str) -> Process | None:
        """Return the Process for job (or sequence) *rid*, deriving it on a miss."""
        process = self._rid_to_process.get(rid)
        if process is not None:
            return process
        logger.debug("process_cache_miss", rid=rid)
        job = self.get_job_by_rid(rid)
        if job is None:
            return None
        process = self._translator.get_for_job(job, self)
        if process is not None:
            self._rid_to_process[rid] = process
        else:
            logger.debug("process_not_derivable", rid=rid)
        return process

    def get_cached_process_rids(self) -> set[str]:
        """A copy of the RIDs whose Process is cached."""
        return set(self._rid_to_process)

    # ------------------------------------------------------------------
    # Identity / field memo
    # ------------------------------------------------------------------

    def get_store_identity_from_rid(self, rid: str) -> Identity | None:
        """Cached identity of data store *rid*; never fetches."""
        return self._store_to_identity.get(rid)

    def get_fields_for_store(self, store: DataStore) -> tuple[Reference, ...] | None:
        """Resolve what lineage needs about *store* for the current mode.

        JOB_LEVEL caches the store's identity and always returns ``None``.
        GRANULAR returns the store's fields, caching them (and the store
        identity derived from them) on a miss.  ``None`` in GRANULAR mode
        means the store kind is unknown.
        """
        method_name = "get_fields_for_store"
        rid = store.id
        if self._mode is LineageMode.JOB_LEVEL:
            if rid not in self._store_to_identity:
                logger.debug("store_cache_miss", type=store.type, rid=rid)
                self._store_to_identity[rid] = self._resolve_store_identity(store, method_name)
            return None

        fields = self._store_to_fields.get(rid)
        if fields is not None:
            return fields
        logger.debug("field_cache_miss", type=store.type, rid=rid)
        retrieved = self._retrieve_fields(store, method_name)
        if retrieved is None:
            return None
        fields = tuple(retrieved)
        self._store_to_fields[rid] = fields
        if fields:
            self._cache_identity_from_field(fields[0], method_name)
        return fields

    def get_data_fields_from_virtual_list(
        self,
        property_name: str,
        virtual_fields: ItemList | None,
    ) -> list[Reference]:
        """Fully-detailed fields behind an embedded virtual field list."""
        expander = VirtualFieldExpander(
            self._require_client("get_data_fields_from_virtual_list"),
            self._object_cache,
        )
        return expander.get_data_fields_from_virtual_list(property_name, virtual_fields)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_client(self, method_name: str) -> IRepositoryClient:
        if self._client is None:
            raise_runtime_error(ErrorCode.NOT_INITIALIZED, type(self).__name__, method_name)
        return self._client

    def _resolve_store_identity(self, store: DataStore, method_name: str) -> Identity:
        client = self._require_client(method_name)
        try:
            if store.is_virtual:
                # Virtual stores cannot be searched; fetch the full object.
                virtual_store = client.get_asset_by_id(store.id, self._object_cache)
                return virtual_store.get_identity(client, self._object_cache)
            return store.reference.get_identity(client, self._object_cache)
        except RepositoryError as exc:
            raise_runtime_error(ErrorCode.UNKNOWN_RUNTIME_ERROR, type(self).__name__, method_name, exc)

    def _retrieve_fields(self, store: DataStore, method_name: str) -> list[Reference] | None:
        client = self._require_client(method_name)
        if store.is_virtual:
            return self._retrieve_virtual_fields(client, store, method_name)

        lookup = FIELD_LOOKUPS.get(store.kind)
        if lookup is None:
            logger.warning("unknown_store_type", type=store.type, rid=store.id)
            return None
        search = Search(
            types=(lookup.field_type,),
            properties=DATA_FIELD_SEARCH_PROPERTIES,
            conditions=SearchConditionSet(
                conditions=(SearchCondition.equals(lookup.parent_property, store.id),),
            ),
        )
        try:
            return client.get_all_pages(None, client.search(search))
        except RepositoryError as exc:
            raise_runtime_error(ErrorCode.UNKNOWN_RUNTIME_ERROR, type(self).__name__, method_name, exc)

    def _retrieve_virtual_fields(
        self,
        client: IRepositoryClient,
        store: DataStore,
        method_name: str,
    ) -> list[Reference]:
        try:
            virtual_store = DataStore.from_reference(
                client.get_asset_by_id(store.id, self._object_cache)
            )
            lookup = FIELD_LOOKUPS.get(virtual_store.kind)
            if lookup is None:
                logger.warning("unhandled_virtual_store_type", type=virtual_store.type, rid=store.id)
                return []
            virtual_fields = virtual_store.reference.get_item_list(lookup.embedded_property)
        except RepositoryError as exc:
            raise_runtime_error(ErrorCode.UNKNOWN_RUNTIME_ERROR, type(self).__name__, method_name, exc)
        return VirtualFieldExpander(client, self._object_cache).get_data_fields_from_virtual_list(
            lookup.embedded_property,
            virtual_fields,
        )

    def _cache_identity_from_field(self, field: Reference, method_name: str) -> None:
        client = self._require_client(method_name)
        try:
            store_identity = field.get_identity(client, self._object_cache).parent_identity()
        except RepositoryError as exc:
            raise_runtime_error(ErrorCode.UNKNOWN_RUNTIME_ERROR, type(self).__name__, method_name, exc)
        if store_identity is None or store_identity.rid is None:
            logger.warning("store_identity_not_derivable", field=field.id)
            return
        self._store_to_identity[store_identity.rid] = store_identity
