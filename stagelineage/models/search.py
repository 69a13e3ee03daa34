"""Search query models rendered into the repository's JSON search body.

A :class:`Search` names the asset types to look for, the properties to
return for each hit, and a :class:`SearchConditionSet` that combines
individual :class:`SearchCondition` objects with AND (the default) or OR.

Rendered shape (``Search.to_query()``)::

    {
        "types": ["dsjob"],
        "properties": ["modified_on"],
        "where": {
            "operator": "and",
            "conditions": [
                {"property": "modified_on", "operator": "<=", "value": "1714521600000"}
            ]
        },
        "pageSize": 100
    }
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

_SET_OPERATOR = "in"


class SearchCondition(BaseModel):
    """A single ``property <operator> value`` condition.

    Passing a list as *value* creates a set-membership condition; the
    operator is then forced to ``in``.
    """

    model_config = ConfigDict(frozen=True)

    property: str
    operator: str = _SET_OPERATOR
    value: str | tuple[str, ...]

    @model_validator(mode="before")
    @classmethod
    def _normalise_set_membership(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("value"), (list, tuple, set, frozenset)):
            data = {**data, "operator": _SET_OPERATOR, "value": tuple(data["value"])}
        return data

    @classmethod
    def equals(cls, prop: str, value: str) -> SearchCondition:
        return cls(property=prop, operator="=", value=value)

    @classmethod
    def one_of(cls, prop: str, values: list[str]) -> SearchCondition:
        return cls(property=prop, value=list(values))

    @property
    def is_set_membership(self) -> bool:
        return self.operator == _SET_OPERATOR

    def to_query(self) -> dict[str, Any]:
        value: Any = list(self.value) if isinstance(self.value, tuple) else self.value
        return {"property": self.property, "operator": self.operator, "value": value}


class SearchConditionSet(BaseModel):
    """Conditions combined with AND (``match_any=False``) or OR."""

    model_config = ConfigDict(frozen=True)

    conditions: tuple[SearchCondition, ...] = ()
    match_any: bool = False

    def with_condition(self, condition: SearchCondition) -> SearchConditionSet:
        return self.model_copy(update={"conditions": (*self.conditions, condition)})

    def to_query(self) -> dict[str, Any]:
        return {
            "operator": "or" if self.match_any else "and",
            "conditions": [c.to_query() for c in self.conditions],
        }


class Search(BaseModel):
    """A typed, property-projected search against the repository."""

    model_config = ConfigDict(frozen=True)

    types: tuple[str, ...]
    properties: tuple[str, ...] = ()
    conditions: SearchConditionSet = Field(default_factory=SearchConditionSet)
    page_size: int | None = None

    def with_page_size(self, page_size: int) -> Search:
        return self.model_copy(update={"page_size": page_size})

    def to_query(self) -> dict[str, Any]:
        query: dict[str, Any] = {
            "types": list(self.types),
            "properties": list(self.properties),
        }
        if self.conditions.conditions:
            query["where"] = self.conditions.to_query()
        if self.page_size is not None:
            query["pageSize"] = self.page_size
        return query
