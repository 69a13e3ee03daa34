"""Repository asset models: references, paged item lists, identities, stores.

Every object returned by the metadata repository is parsed into a
:class:`Reference`.  The repository's own bookkeeping keys (``_id``,
``_type``, ``_name``, ``_url``, ``_context``) become typed fields; any other
requested property (``modified_on``, ``database_columns``, ...) is kept as a
pydantic "extra" and read through :meth:`Reference.get_property`.

Embedded relationships and search results are paged.  A page is an
:class:`ItemList` whose :class:`Paging` block says whether more pages exist
and where the next one lives.

Data stores are wrapped in :class:`DataStore`, which resolves the closed
:class:`StoreKind` variant once, when the store reference is obtained, so
the cache can dispatch on it without re-inspecting type strings.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from stagelineage.utils.errors import RepositoryError

if TYPE_CHECKING:
    from stagelineage.interfaces.repository_client import IRepositoryClient
    from stagelineage.providers.cache.object_cache import ObjectCache


# Asset types at the top of a naming path; they never carry a _context.
_ROOT_TYPES = frozenset({"host", "host_(engine)"})


class Reference(BaseModel):
    """A single asset (or a summary of one) as returned by the repository."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    id: str = Field(alias="_id")
    type: str = Field(alias="_type")
    name: str | None = Field(default=None, alias="_name")
    url: str | None = Field(default=None, alias="_url")
    context: tuple[Reference, ...] = Field(default_factory=tuple, alias="_context")
    virtual_asset: bool = False

    def get_property(self, name: str, default: Any = None) -> Any:
        """Return the raw value of a requested (non-underscore) property."""
        return (self.model_extra or {}).get(name, default)

    def get_item_list(self, name: str) -> ItemList | None:
        """Return an embedded paged relationship as an :class:`ItemList`.

        A malformed embedded list is raised as :class:`RepositoryError`.
        """
        raw = self.get_property(name)
        if raw is None:
            return None
        if isinstance(raw, ItemList):
            return raw
        try:
            return ItemList.model_validate(raw)
        except ValidationError as exc:
            raise RepositoryError(
                message=f"Unparseable {name} of {self.id}: {exc}",
            ) from exc

    def get_reference(self, name: str) -> Reference | None:
        """Return a single-valued relationship (e.g. ``transformation_project``)."""
        raw = self.get_property(name)
        if raw is None:
            return None
        if isinstance(raw, Reference):
            return raw
        try:
            return Reference.model_validate(raw)
        except ValidationError as exc:
            raise RepositoryError(
                message=f"Unparseable {name} of {self.id}: {exc}",
            ) from exc

    def get_identity(
        self,
        client: IRepositoryClient,
        object_cache: ObjectCache,
    ) -> Identity:
        """Resolve the naming path of this asset.

        Search results normally carry their ``_context``; bare references
        (e.g. from a relationship list) do not, in which case the full asset
        is fetched through *object_cache* first.
        """
        source: Reference = self
        if not self.context and self.type not in _ROOT_TYPES:
            source = client.get_asset_by_id(self.id, object_cache)
        return Identity.from_reference(source)


class Paging(BaseModel):
    """Paging block attached to every repository item list."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    num_total: int = Field(default=0, alias="numTotal")
    page_size: int = Field(default=0, alias="pageSize")
    begin: int = 0
    end: int = -1
    next: str | None = None


class ItemList(BaseModel):
    """One page of a search result or of an embedded relationship."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    items: list[Reference] = Field(default_factory=list)
    paging: Paging = Field(default_factory=Paging)

    def has_more_pages(self) -> bool:
        return self.paging.end < self.paging.num_total - 1


class IdentityComponent(BaseModel):
    """One ``(type)=name`` step of an identity path."""

    model_config = ConfigDict(frozen=True)

    type: str
    name: str
    rid: str | None = None

    def __str__(self) -> str:
        return f"({self.type})={self.name}"


class Identity(BaseModel):
    """Stable naming path of an asset, e.g.
    ``(host)=H::(database)=DB::(database_schema)=S::(database_table)=T``.
    """

    model_config = ConfigDict(frozen=True)

    components: tuple[IdentityComponent, ...]

    @classmethod
    def from_reference(cls, reference: Reference) -> Identity:
        steps = [
            IdentityComponent(type=ctx.type, name=ctx.name or "", rid=ctx.id)
            for ctx in reference.context
        ]
        steps.append(
            IdentityComponent(type=reference.type, name=reference.name or "", rid=reference.id)
        )
        return cls(components=tuple(steps))

    @property
    def rid(self) -> str | None:
        return self.components[-1].rid if self.components else None

    @property
    def asset_type(self) -> str | None:
        return self.components[-1].type if self.components else None

    def parent_identity(self) -> Identity | None:
        """Identity of the containing asset, or ``None`` at the root."""
        if len(self.components) < 2:
            return None
        return Identity(components=self.components[:-1])

    def __str__(self) -> str:
        return "::".join(str(c) for c in self.components)


class StoreKind(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Closed set of data store kinds whose fields the cache knows how to find."""

    DATABASE_TABLE = "database_table"
    VIEW = "view"
    DATA_FILE_RECORD = "data_file_record"
    UNKNOWN = "unknown"

    @classmethod
    def from_type_tag(cls, type_tag: str | None) -> StoreKind:
        for kind in cls:
            if kind is not cls.UNKNOWN and kind.value == type_tag:
                return kind
        return cls.UNKNOWN


class DataStore(BaseModel):
    """A data store read or written by a job, with its kind resolved."""

    model_config = ConfigDict(frozen=True)

    reference: Reference
    kind: StoreKind

    @classmethod
    def from_reference(cls, reference: Reference) -> DataStore:
        return cls(reference=reference, kind=StoreKind.from_type_tag(reference.type))

    @property
    def id(self) -> str:
        return self.reference.id

    @property
    def type(self) -> str:
        return self.reference.type

    @property
    def is_virtual(self) -> bool:
        return self.reference.virtual_asset


Reference.model_rebuild()
