import pytest
from sqlalchemy.dialects import sqlite

from taskboard.exceptions import ValidationError
from taskboard.models.tasks import TASK_FIELDS
from taskboard.models.user import USER_FIELDS
from taskboard.services.store import build_order, build_where, project

DOC = {"_id": "abc", "name": "Alice", "email": "a@b.com", "pendingTasks": []}


def compiled(clause) -> str:
    return str(clause.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


def test_where_equality_and_operators():
    sql = compiled(build_where(TASK_FIELDS, {"completed": False, "name": {"$in": ["a", "b"]}}))
    assert "tasks.completed" in sql
    assert "tasks.name IN ('a', 'b')" in sql


def test_where_id_alias_and_or():
    sql = compiled(build_where(USER_FIELDS, {"$or": [{"_id": "x"}, {"id": "y"}]}))
    assert "users.id = 'x'" in sql
    assert "users.id = 'y'" in sql


def test_where_rejects_unknown_operator():
    with pytest.raises(ValidationError):
        build_where(USER_FIELDS, {"name": {"$where": "1"}})
    with pytest.raises(ValidationError):
        build_where(USER_FIELDS, {"pendingTasks": {"$regex": "abc"}})


def test_where_pending_tasks_matches_by_membership():
    sql = compiled(build_where(USER_FIELDS, {"pendingTasks": "abc"}))
    assert "EXISTS (SELECT 1" in sql
    assert "user_pending_tasks.task_id = 'abc'" in sql

    sql = compiled(build_where(USER_FIELDS, {"pendingTasks": {"$nin": ["a", "b"]}}))
    assert "NOT (EXISTS" in sql
    assert "user_pending_tasks.task_id IN ('a', 'b')" in sql

    assert "NOT (EXISTS" in compiled(build_where(USER_FIELDS, {"pendingTasks": []}))
    with pytest.raises(ValidationError):
        build_where(USER_FIELDS, {"pendingTasks": ["a", "b"]})


def test_sort_ignores_array_field():
    assert build_order(USER_FIELDS, {"pendingTasks": 1}) == []


def test_order_directions():
    order = build_order(USER_FIELDS, {"name": 1, "email": -1, "unknown": 1})
    assert [compiled(o) for o in order] == ["users.name ASC", "users.email DESC"]
    with pytest.raises(ValidationError):
        build_order(USER_FIELDS, {"name": "sideways"})


def test_projection_inclusion_and_exclusion():
    assert project(DOC, {"name": 1}) == {"_id": "abc", "name": "Alice"}
    assert project(DOC, {"name": 1, "_id": 0}) == {"name": "Alice"}
    assert project(DOC, {"_id": 1}) == {"_id": "abc"}
    assert project(DOC, {"email": 0, "pendingTasks": 0}) == {"_id": "abc", "name": "Alice"}
    assert project(DOC, None) is DOC


def test_projection_rejects_mixed_modes():
    with pytest.raises(ValidationError):
        project(DOC, {"name": 1, "email": 0})


def test_projection_reads_string_and_boolean_flags():
    assert project(DOC, {"email": "0"}) == {"_id": "abc", "name": "Alice", "pendingTasks": []}
    assert project(DOC, {"name": "1"}) == {"_id": "abc", "name": "Alice"}
    assert project(DOC, {"email": False, "_id": "0"}) == {"name": "Alice", "pendingTasks": []}
    assert project(DOC, {"name": "true", "_id": "false"}) == {"name": "Alice"}
    assert project(DOC, {"name": 0.0}) == {"_id": "abc", "email": "a@b.com", "pendingTasks": []}
