"""
Request parameter parsing shared by the user and task endpoints.

Query strings carry `where`, `sort` and `select`/`filter` as JSON documents,
`skip`/`limit` as integers and `count` as the literal "true". Bodies may carry
booleans as strings and timestamps as epoch milliseconds or date strings.
"""
import json
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from dateutil import parser as date_parser

from taskboard.exceptions import ValidationError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Fills in parts a date string leaves out ("November 2023" is the 1st, at midnight)
_DATE_DEFAULT = datetime(2000, 1, 1)

_NUMERIC = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


@dataclass
class ListParams:
    where: dict = field(default_factory=dict)
    sort: dict | None = None
    projection: dict | None = None
    skip: int | None = None
    limit: int | None = None
    count: bool = False


def parse_json_param(name: str, raw: str | None, empty_data=None):
    """Decode a JSON object parameter. Absent or empty values give None."""
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        value = None
    if not isinstance(value, dict):
        raise ValidationError(
            f"Bad Request: invalid JSON in '{name}'",
            data=[] if empty_data is None else empty_data,
        )
    return value


def parse_projection(select: str | None, filter: str | None, empty_data=None) -> dict | None:
    # `filter` is an alias of `select`; the first one that parses wins
    for raw in (select, filter):
        if not raw:
            continue
        try:
            return parse_json_param("select/filter", raw, empty_data)
        except ValidationError:
            continue
    if select or filter:
        raise ValidationError(
            "Bad Request: invalid JSON in 'select/filter'",
            data=[] if empty_data is None else empty_data,
        )
    return None


def parse_int_param(name: str, raw: str | None) -> int | None:
    if raw is None or raw.strip() == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"Bad Request: '{name}' must be an integer", data=[])
    if value < 0:
        raise ValidationError(f"Bad Request: '{name}' must not be negative", data=[])
    return value


def parse_list_params(*, where=None, sort=None, select=None, filter=None,
                      skip=None, limit=None, count=None) -> ListParams:
    return ListParams(
        where=parse_json_param("where", where) or {},
        sort=parse_json_param("sort", sort),
        projection=parse_projection(select, filter),
        skip=parse_int_param("skip", skip),
        limit=parse_int_param("limit", limit),
        count=count == "true",
    )


def parse_boolean(value, default: bool | None = False) -> bool | None:
    """Booleans pass through, strings are true only for "true" (any case)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return default


def _from_epoch_ms(ms: float) -> datetime:
    if not math.isfinite(ms):
        raise ValueError("timestamp is not finite")
    try:
        return EPOCH + timedelta(milliseconds=ms)
    except OverflowError as exc:
        raise ValueError("timestamp out of range") from exc


def _from_date_string(text: str) -> datetime:
    try:
        parsed = date_parser.parse(text.strip(), default=_DATE_DEFAULT)
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"unparseable date {text!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_timestamp(value) -> datetime:
    """
    Turn epoch milliseconds (number or numeric string) or a date string into
    an aware UTC datetime. Raises ValueError for anything else.
    """
    if isinstance(value, bool):
        raise ValueError("booleans are not timestamps")
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return _from_epoch_ms(float(value))
    if isinstance(value, str):
        if _NUMERIC.match(value.strip()):
            return _from_epoch_ms(float(value))
        return _from_date_string(value)
    raise ValueError(f"unsupported timestamp value {value!r}")


def to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int((value - EPOCH) / timedelta(milliseconds=1))
