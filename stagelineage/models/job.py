"""DataStage job records held by the job memo.

A :class:`DataStageJob` is built from the single result of a point search
for the job.  Building it drains every paged relationship the search
returned (stages, sequenced jobs, stores read and written), so a cached job
never needs another round trip for its own detail.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from stagelineage.models.assets import DataStore, Reference
from stagelineage.utils.errors import RepositoryError

if TYPE_CHECKING:
    from stagelineage.interfaces.repository_client import IRepositoryClient

JOB_ASSET_TYPE = "dsjob"

# Properties requested by a point lookup of a single job.
JOB_SEARCH_PROPERTIES: tuple[str, ...] = (
    "name",
    "short_description",
    "long_description",
    "type",
    "created_on",
    "modified_on",
    "modified_by",
    "transformation_project",
    "stages",
    "sequenced_jobs",
    "reads_from_(design)",
    "writes_to_(design)",
)


class JobType(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    JOB = "JOB"
    SEQUENCE = "SEQUENCE"

    @classmethod
    def from_property(cls, value: str | None) -> JobType:
        if value and value.strip().lower() == "sequence":
            return cls.SEQUENCE
        return cls.JOB


class DataStageJob(BaseModel):
    """Fully-populated detail of one DataStage job (or sequence)."""

    model_config = ConfigDict(frozen=True)

    rid: str
    name: str
    job_type: JobType
    modified_on: datetime | None = None
    project: str | None = None
    description: str | None = None
    stages: tuple[Reference, ...] = ()
    sequenced_jobs: tuple[Reference, ...] = ()
    inputs: tuple[DataStore, ...] = ()
    outputs: tuple[DataStore, ...] = ()

    @classmethod
    def build(cls, client: IRepositoryClient, summary: Reference) -> DataStageJob:
        """Build the job from its point-search result, draining nested pages."""
        project = summary.get_reference("transformation_project")
        return cls(
            rid=summary.id,
            name=summary.name or summary.get_property("name") or summary.id,
            job_type=JobType.from_property(summary.get_property("type")),
            modified_on=_from_millis(summary.get_property("modified_on")),
            project=project.name if project is not None else None,
            description=summary.get_property("long_description")
            or summary.get_property("short_description"),
            stages=tuple(_drain(client, summary, "stages")),
            sequenced_jobs=tuple(_drain(client, summary, "sequenced_jobs")),
            inputs=tuple(
                DataStore.from_reference(r) for r in _drain(client, summary, "reads_from_(design)")
            ),
            outputs=tuple(
                DataStore.from_reference(r) for r in _drain(client, summary, "writes_to_(design)")
            ),
        )

    @property
    def is_sequence(self) -> bool:
        return self.job_type is JobType.SEQUENCE


def _drain(client: IRepositoryClient, summary: Reference, property_name: str) -> list[Reference]:
    return client.get_all_pages(property_name, summary.get_item_list(property_name))


def _from_millis(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError) as exc:
        raise RepositoryError(message=f"Unparseable timestamp {value!r}: {exc}") from exc
