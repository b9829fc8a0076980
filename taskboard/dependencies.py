import json

from fastapi import Depends, Query, Request
from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.database import get_db as db_session
from taskboard.exceptions import ValidationError
from taskboard.schemas.task import TaskPayload
from taskboard.schemas.user import UserPayload
from taskboard.utils.params import ListParams, parse_list_params, parse_projection

FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def get_db(db: AsyncSession = Depends(db_session)):
    return db


def list_params(
    where: str | None = None,
    sort: str | None = None,
    select: str | None = None,
    filter_: str | None = Query(None, alias="filter"),
    skip: str | None = None,
    limit: str | None = None,
    count: str | None = None,
) -> ListParams:
    return parse_list_params(
        where=where, sort=sort, select=select, filter=filter_,
        skip=skip, limit=limit, count=count,
    )


def projection_param(
    select: str | None = None,
    filter_: str | None = Query(None, alias="filter"),
) -> dict | None:
    return parse_projection(select, filter_, empty_data={})


async def read_body(request: Request) -> dict:
    """JSON or form body as a plain dict; repeated form keys become lists."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_TYPES):
        form = await request.form()
        body = {}
        for key in form.keys():
            values = form.getlist(key)
            body[key] = values if len(values) > 1 else values[0]
        return body

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        raise ValidationError("Bad Request: invalid JSON body")
    if not isinstance(body, dict):
        raise ValidationError("Bad Request: body must be a JSON object")
    return body


def validate_payload(model: type[BaseModel], body: dict):
    try:
        return model.model_validate(body)
    except PydanticValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False)
        raise ValidationError(errors[0]["msg"], data={"errors": errors})


def user_payload(body: dict = Depends(read_body)) -> UserPayload:
    return validate_payload(UserPayload, body)


def task_payload(body: dict = Depends(read_body)) -> TaskPayload:
    return validate_payload(TaskPayload, body)
