from __future__ import annotations

import json

import pytest

from taskboard.api.query import ListQuery, field_map
from taskboard.errors import ValidationError
from taskboard.schemas import TaskRead, UserRead


def test_field_map_accepts_wire_and_attribute_names() -> None:
    fields = field_map(TaskRead)

    assert fields["assignedUser"] == "assigned_user"
    assert fields["assigned_user"] == "assigned_user"
    assert fields["_id"] == "id"


def test_parse_translates_filters_and_sort() -> None:
    query = ListQuery.parse(
        TaskRead,
        where=json.dumps({"assignedUserName": "Ann", "_id": {"$in": ["a", "b"]}}),
        sort=json.dumps({"deadline": -1, "name": 1}),
        skip=5,
        limit=10,
    )

    assert query.filters == {"assigned_user_name": "Ann", "id": ["a", "b"]}
    assert query.sort == [("deadline", True), ("name", False)]
    assert query.skip == 5
    assert query.limit == 10
    assert query.count is False


def test_parse_defaults_are_unbounded() -> None:
    query = ListQuery.parse(UserRead, limit=0)

    assert query.filters == {}
    assert query.sort == []
    assert query.limit is None


@pytest.mark.parametrize(
    ("where", "sort"),
    [
        ("{", None),
        ('"name"', None),
        (json.dumps({"password": "x"}), None),
        (json.dumps({"pendingTasks": ["a"]}), None),
        (None, json.dumps({"email": "asc"})),
    ],
)
def test_parse_rejects_malformed_options(where, sort) -> None:
    with pytest.raises(ValidationError):
        ListQuery.parse(UserRead, where=where, sort=sort)


def test_parse_select_inclusion_keeps_id() -> None:
    query = ListQuery.parse(TaskRead, select=json.dumps({"name": 1, "assignedUser": 1}))

    assert query.projected is True
    assert query.include == {"id", "name", "assigned_user"}
    assert query.exclude is None


def test_parse_select_exclusion_and_id_opt_out() -> None:
    excluded = ListQuery.parse(UserRead, select=json.dumps({"pendingTasks": 0}))
    id_only_dropped = ListQuery.parse(UserRead, select=json.dumps({"_id": 0, "email": 1}))

    assert excluded.include is None
    assert excluded.exclude == {"pending_tasks"}
    assert id_only_dropped.include == {"email"}


def test_parse_without_select_is_not_projected() -> None:
    assert ListQuery.parse(TaskRead).projected is False


@pytest.mark.parametrize(
    "select",
    [json.dumps({"name": 1, "email": 0}), json.dumps({"name": "yes"}), json.dumps({"password": 1})],
)
def test_parse_rejects_malformed_select(select) -> None:
    with pytest.raises(ValidationError):
        ListQuery.parse(UserRead, select=select)
