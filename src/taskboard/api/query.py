"""Parsing of the ``where`` / ``sort`` / ``select`` / ``skip`` / ``limit`` / ``count`` list options."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from ..errors import ValidationError
from ..repositories.base import Filters, SortSpec

_SCALAR_TYPES = (str, int, float, bool)


def field_map(model: type[BaseModel]) -> dict[str, str]:
    """Map wire names (camelCase, snake_case and ``_id``) to attribute names."""
    mapping: dict[str, str] = {"_id": "id"}
    for name, info in model.model_fields.items():
        mapping[name] = name
        if info.alias:
            mapping[info.alias] = name
    return mapping


def _load_json_object(raw: str | None, option: str) -> dict[str, Any]:
    if raw is None or not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"'{option}' must be a JSON object.", details={"option": option}) from exc
    if not isinstance(value, dict):
        raise ValidationError(f"'{option}' must be a JSON object.", details={"option": option})
    return value


def _resolve_field(raw: str, fields: dict[str, str], option: str) -> str:
    try:
        return fields[raw]
    except KeyError:
        raise ValidationError(
            f"Unknown field '{raw}' in '{option}'.",
            details={"option": option, "field": raw},
        ) from None


def _filter_value(raw_field: str, value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) != {"$in"} or not isinstance(value["$in"], list):
            raise ValidationError(
                f"Unsupported operator for '{raw_field}'; only $in is accepted.",
                details={"field": raw_field},
            )
        return [item for item in value["$in"] if isinstance(item, _SCALAR_TYPES)]
    if value is None or isinstance(value, _SCALAR_TYPES):
        return value
    raise ValidationError(f"Unsupported filter value for '{raw_field}'.", details={"field": raw_field})


def _parse_projection(raw: str | None, fields: dict[str, str]) -> tuple[set[str] | None, set[str] | None]:
    """Turn a ``{field: 1 | 0}`` selection into include / exclude sets.

    Inclusions and exclusions cannot be mixed, except for the id, which is
    kept unless it is explicitly excluded.
    """
    spec = _load_json_object(raw, "select")
    if not spec:
        return None, None
    included: set[str] = set()
    excluded: set[str] = set()
    id_flag: bool | None = None
    for key, flag in spec.items():
        if isinstance(flag, bool):
            flag = int(flag)
        if flag not in (0, 1):
            raise ValidationError(
                f"Selection for '{key}' must be 1 or 0.",
                details={"option": "select", "field": key},
            )
        name = _resolve_field(key, fields, "select")
        if name == "id":
            id_flag = bool(flag)
        elif flag:
            included.add(name)
        else:
            excluded.add(name)
    if included and excluded:
        raise ValidationError(
            "'select' cannot mix included and excluded fields.",
            details={"option": "select"},
        )
    if included or id_flag is True:
        if id_flag is not False:
            included.add("id")
        return included, None
    if id_flag is False:
        excluded.add("id")
    return None, excluded or None


@dataclass(slots=True)
class ListQuery:
    """Normalised list options ready to hand to a store query."""

    filters: Filters = field(default_factory=dict)
    sort: SortSpec = field(default_factory=list)
    skip: int = 0
    limit: int | None = None
    count: bool = False
    include: set[str] | None = None
    exclude: set[str] | None = None

    @property
    def projected(self) -> bool:
        return self.include is not None or self.exclude is not None

    def project(self, document: BaseModel) -> dict[str, Any]:
        """Serialise ``document`` with its wire names, keeping only the selected fields."""
        return document.model_dump(mode="json", by_alias=True, include=self.include, exclude=self.exclude)

    @classmethod
    def parse(
        cls,
        model: type[BaseModel],
        *,
        where: str | None = None,
        sort: str | None = None,
        select: str | None = None,
        skip: int = 0,
        limit: int | None = None,
        count: bool = False,
    ) -> "ListQuery":
        fields = field_map(model)
        filters = {
            _resolve_field(key, fields, "where"): _filter_value(key, value)
            for key, value in _load_json_object(where, "where").items()
        }
        ordering: list[tuple[str, bool]] = []
        for key, direction in _load_json_object(sort, "sort").items():
            if direction not in (1, -1):
                raise ValidationError(
                    f"Sort direction for '{key}' must be 1 or -1.",
                    details={"field": key},
                )
            ordering.append((_resolve_field(key, fields, "sort"), direction == -1))
        include, exclude = _parse_projection(select, fields)
        return cls(
            filters=filters,
            sort=ordering,
            skip=max(skip, 0),
            limit=limit or None,
            count=count,
            include=include,
            exclude=exclude,
        )


__all__ = ["ListQuery", "field_map"]
