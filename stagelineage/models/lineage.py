"""Lineage-side models: the cache window, lineage mode and Process output."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from stagelineage.models.job import JobType


class LineageMode(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Level of detail to resolve for lineage.

    JOB_LEVEL:  only the identity of each data store is needed.
    GRANULAR:   every field of every data store is resolved.
    """

    JOB_LEVEL = "job_level"
    GRANULAR = "granular"


class CacheWindow(BaseModel):
    """Immutable ``(start, end]`` window of changes a cache covers.

    ``start`` may be ``None``, meaning "since the beginning".  Naive
    datetimes are taken to be UTC.
    """

    model_config = ConfigDict(frozen=True)

    start: datetime | None = None
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> CacheWindow:
        if self.start is not None and self.start > self.end:
            raise ValueError("window start must not be after window end")
        return self

    @property
    def start_millis(self) -> int | None:
        return None if self.start is None else _to_millis(self.start)

    @property
    def end_millis(self) -> int:
        return _to_millis(self.end)


class LineageMapping(BaseModel):
    """A directed source → target edge between two qualified names."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str


class Process(BaseModel):
    """Lineage-graph representation of a DataStage job or sequence."""

    model_config = ConfigDict(frozen=True)

    qualified_name: str
    name: str
    display_name: str
    description: str | None = None
    job_type: JobType
    project: str | None = None
    input_stores: tuple[str, ...] = ()
    output_stores: tuple[str, ...] = ()
    lineage_mappings: tuple[LineageMapping, ...] = Field(default_factory=tuple)


def _to_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)
