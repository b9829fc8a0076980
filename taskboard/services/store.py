"""
Document-style access to the users and tasks tables.

`where`, `sort` and `select` arrive as JSON documents in the style of a
document database (`{"completed": false, "deadline": {"$lt": ...}}`) and are
translated here into SQLAlchemy clauses. Every write commits on its own;
multi-record operations are ordered sequences of these writes.
"""
import functools
import logging
import re

from sqlalchemy import String, and_, delete, false, func, literal, not_, or_, select, true, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.types import Boolean, DateTime

from taskboard.exceptions import StoreError, ValidationError
from taskboard.models.user import PendingTask, User
from taskboard.utils.params import ListParams, parse_boolean, parse_timestamp

logger = logging.getLogger(__name__)

_COMPARISONS = {
    "$eq": lambda col, v: col == v,
    "$ne": lambda col, v: col != v,
    "$gt": lambda col, v: col > v,
    "$gte": lambda col, v: col >= v,
    "$lt": lambda col, v: col < v,
    "$lte": lambda col, v: col <= v,
}

# Dialects with INSERT ... ON CONFLICT DO NOTHING
_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


def store_call(fn):
    """Roll back and wrap driver failures so they surface as StoreError."""

    @functools.wraps(fn)
    async def wrapper(db: AsyncSession, *args, **kwargs):
        try:
            return await fn(db, *args, **kwargs)
        except IntegrityError:
            await db.rollback()
            raise
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Store call %s failed: %s", fn.__name__, exc)
            raise StoreError(exc) from exc

    return wrapper


def _coerce(column, value):
    if value is None:
        return None
    if isinstance(column.type, DateTime):
        try:
            return parse_timestamp(value)
        except ValueError:
            raise ValidationError(f"Bad Request: invalid date {value!r} in 'where'", data=[])
    if isinstance(column.type, Boolean):
        return parse_boolean(value)
    if isinstance(value, (dict, list)):
        raise ValidationError("Bad Request: unsupported value in 'where'", data=[])
    return str(value) if not isinstance(value, str) else value


def _field_clause(column, condition):
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        clauses = []
        for op, value in condition.items():
            if op in _COMPARISONS:
                coerced = _coerce(column, value)
                if coerced is None and op in ("$eq", "$ne"):
                    clauses.append(column.is_(None) if op == "$eq" else column.is_not(None))
                else:
                    clauses.append(_COMPARISONS[op](column, coerced))
            elif op in ("$in", "$nin"):
                if not isinstance(value, list):
                    raise ValidationError(f"Bad Request: '{op}' needs a list in 'where'", data=[])
                clause = column.in_([_coerce(column, v) for v in value])
                clauses.append(clause if op == "$in" else not_(clause))
            elif op == "$regex":
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                clauses.append(_regex_clause(column, str(value), flags))
            elif op == "$options":
                continue
            elif op == "$exists":
                # Every column always exists on both tables
                clauses.append(true() if value else false())
            else:
                raise ValidationError(f"Bad Request: unsupported operator '{op}' in 'where'", data=[])
        return and_(*clauses)
    coerced = _coerce(column, condition)
    return column.is_(None) if coerced is None else column == coerced


def _regex_clause(column, pattern: str, flags: int):
    # Only anchored/plain substring patterns map to LIKE; anything else is rejected
    try:
        re.compile(pattern)
    except re.error:
        raise ValidationError("Bad Request: invalid '$regex' in 'where'", data=[])
    body = pattern.removeprefix("^").removesuffix("$")
    if re.search(r"[\\.*+?()\[\]{}|]", body):
        raise ValidationError("Bad Request: only literal '$regex' patterns are supported", data=[])
    escaped = body.replace("%", r"\%").replace("_", r"\_")
    like = ("" if pattern.startswith("^") else "%") + escaped + ("" if pattern.endswith("$") else "%")
    if flags & re.IGNORECASE:
        return func.lower(column).like(like.lower(), escape="\\")
    return column.like(like, escape="\\")


def build_where(fields: dict, where: dict):
    """Translate a where document into a SQLAlchemy boolean clause."""
    clauses = []
    for key, condition in where.items():
        if key in ("$and", "$or", "$nor"):
            if not isinstance(condition, list) or not all(isinstance(c, dict) for c in condition):
                raise ValidationError(f"Bad Request: '{key}' needs a list of objects in 'where'", data=[])
            parts = [build_where(fields, c) for c in condition]
            if key == "$and":
                clauses.append(and_(true(), *parts))
            elif key == "$or":
                clauses.append(or_(false(), *parts))
            else:
                clauses.append(not_(or_(false(), *parts)))
            continue
        column = fields.get(key)
        if column is None:
            # Unknown fields never match, as in a schemaless store
            clauses.append(false())
            continue
        if isinstance(column, tuple):
            clauses.append(_array_clause(*column, condition, key))
            continue
        clauses.append(_field_clause(column, condition))
    return and_(true(), *clauses)


def _array_clause(collection, element, condition, key: str):
    # A scalar matches arrays containing it; [] matches the empty array
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        clauses = []
        for op, value in condition.items():
            if op in ("$eq", "$ne"):
                contains = collection.any(element == _coerce(element, value))
                clauses.append(contains if op == "$eq" else not_(contains))
            elif op in ("$in", "$nin", "$all"):
                if not isinstance(value, list):
                    raise ValidationError(f"Bad Request: '{op}' needs a list in 'where'", data=[])
                values = [_coerce(element, v) for v in value]
                if op == "$all":
                    clauses.extend(collection.any(element == v) for v in values)
                else:
                    contains = collection.any(element.in_(values))
                    clauses.append(contains if op == "$in" else not_(contains))
            elif op == "$exists":
                clauses.append(true() if value else false())
            else:
                raise ValidationError(f"Bad Request: unsupported operator '{op}' on '{key}' in 'where'", data=[])
        return and_(true(), *clauses)
    if condition == []:
        return not_(collection.any())
    if isinstance(condition, list):
        raise ValidationError(f"Bad Request: cannot match '{key}' against a list in 'where'", data=[])
    return collection.any(element == _coerce(element, condition))


def build_order(fields: dict, sort: dict | None) -> list:
    order = []
    for key, direction in (sort or {}).items():
        column = fields.get(key)
        if column is None or isinstance(column, tuple):
            continue
        if direction in (1, "1", "asc", "ascending"):
            order.append(column.asc())
        elif direction in (-1, "-1", "desc", "descending"):
            order.append(column.desc())
        else:
            raise ValidationError(f"Bad Request: invalid direction for '{key}' in 'sort'", data=[])
    return order


def _projection_flag(value) -> bool:
    # 0, "0", false and "false" exclude; other values include
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "false"):
            return text == "true"
        try:
            return float(text) != 0
        except ValueError:
            return bool(text)
    if value is None:
        return False
    if isinstance(value, (bool, int, float)):
        return value != 0
    return True


def project(document: dict, projection: dict | None) -> dict:
    """Apply an inclusion (`{"name": 1}`) or exclusion (`{"email": 0}`) projection."""
    if not projection:
        return document
    flags = {("_id" if k == "id" else k): _projection_flag(v) for k, v in projection.items()}
    id_flag = flags.pop("_id", None)
    included = [k for k, v in flags.items() if v]
    excluded = [k for k, v in flags.items() if not v]
    if included and excluded:
        raise ValidationError(
            "Bad Request: cannot mix inclusion and exclusion in 'select/filter'", data=[]
        )
    if included or (id_flag and not excluded):
        result = {k: document[k] for k in included if k in document}
        if id_flag is not False:
            result = {"_id": document["_id"], **result}
        return result
    result = {k: v for k, v in document.items() if k not in excluded}
    if id_flag is False:
        result.pop("_id", None)
    return result


@store_call
async def find(db: AsyncSession, model, fields: dict, params: ListParams, default_limit: int | None = None):
    query = select(model).filter(build_where(fields, params.where))
    order = build_order(fields, params.sort)
    if order:
        query = query.order_by(*order)
    if params.skip:
        query = query.offset(params.skip)
    limit = params.limit if params.limit is not None else default_limit
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@store_call
async def count(db: AsyncSession, model, fields: dict, where: dict) -> int:
    result = await db.execute(
        select(func.count()).select_from(model).filter(build_where(fields, where))
    )
    return result.scalar_one()


@store_call
async def find_by_id(db: AsyncSession, model, record_id: str):
    return await db.get(model, record_id)


@store_call
async def find_all(db: AsyncSession, model, *criteria):
    result = await db.execute(select(model).filter(*criteria))
    return result.scalars().all()


@store_call
async def find_one(db: AsyncSession, model, *criteria):
    result = await db.execute(select(model).filter(*criteria).limit(1))
    return result.scalars().first()


@store_call
async def save(db: AsyncSession, record):
    db.add(record)
    await db.commit()
    return record


@store_call
async def update_many(db: AsyncSession, model, criteria, values: dict) -> int:
    result = await db.execute(
        update(model).where(criteria).values(**values).execution_options(synchronize_session="fetch")
    )
    await db.commit()
    return result.rowcount


@store_call
async def delete_one(db: AsyncSession, model, record_id: str) -> int:
    result = await db.execute(delete(model).where(model.id == record_id))
    await db.commit()
    return result.rowcount


@store_call
async def refresh(db: AsyncSession, model, record_id: str):
    """Re-read a record together with its eagerly loaded collections."""
    result = await db.execute(
        select(model).filter(model.id == record_id).execution_options(populate_existing=True)
    )
    return result.scalars().first()


def _add_pending_statement(db: AsyncSession, user_id: str, task_id: str):
    insert = _INSERTS[db.get_bind().dialect.name]
    # Selecting the user row makes the insert a no-op for unknown users
    source = select(User.id, literal(task_id, String)).where(User.id == user_id)
    return (
        insert(PendingTask.__table__)
        .from_select(["user_id", "task_id"], source)
        .on_conflict_do_nothing(index_elements=["user_id", "task_id"])
    )


@store_call
async def add_pending_task(db: AsyncSession, user_id: str, task_id: str) -> bool:
    """Add a task id to a user's pending set; missing users are ignored."""
    result = await db.execute(_add_pending_statement(db, user_id, task_id))
    await db.commit()
    if result.rowcount:
        logger.debug("Added task %s to pendingTasks of user %s", task_id, user_id)
    return bool(result.rowcount)


@store_call
async def pull_pending_task(db: AsyncSession, user_id: str, task_id: str) -> bool:
    """Remove a task id from a user's pending set; missing users are ignored."""
    result = await db.execute(
        delete(PendingTask.__table__).where(
            PendingTask.user_id == user_id, PendingTask.task_id == task_id
        )
    )
    await db.commit()
    if result.rowcount:
        logger.debug("Removed task %s from pendingTasks of user %s", task_id, user_id)
    return bool(result.rowcount)


@store_call
async def replace_pending_tasks(db: AsyncSession, user_id: str, task_ids: list[str]):
    """Make a user's pending set exactly `task_ids`, keeping the order of surviving entries."""
    stale = delete(PendingTask.__table__).where(PendingTask.user_id == user_id)
    if task_ids:
        stale = stale.where(PendingTask.task_id.not_in(task_ids))
    await db.execute(stale)
    for task_id in task_ids:
        await db.execute(_add_pending_statement(db, user_id, task_id))
    await db.commit()
