from datetime import datetime
from pydantic import Field, field_validator
from pydantic_core import PydanticCustomError
from taskboard.schemas.common import Document, Payload, as_text
from taskboard.utils.params import parse_boolean, parse_timestamp


class TaskPayload(Payload):
    name: str | None = None
    description: str | None = None
    deadline: datetime | None = None
    completed: bool | None = None
    assigned_user: str | None = Field(None, alias="assignedUser")

    @field_validator("name", "description", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return as_text(v)

    @field_validator("deadline", mode="before")
    @classmethod
    def parse_deadline(cls, v):
        # Numbers and numeric strings are epoch milliseconds
        if v is None or v == "":
            return None
        try:
            return parse_timestamp(v)
        except ValueError:
            raise PydanticCustomError("invalid_deadline", "Invalid deadline date")

    @field_validator("completed", mode="before")
    @classmethod
    def coerce_completed(cls, v):
        return parse_boolean(v, default=None)

    @field_validator("assigned_user", mode="before")
    @classmethod
    def coerce_assigned_user(cls, v):
        # An explicit null clears the assignment just like ""
        if v is None:
            return ""
        return str(v).strip()


class TaskDocument(Document):
    id: str = Field(serialization_alias="_id")
    name: str
    description: str
    deadline: datetime
    completed: bool
    assigned_user: str = Field(serialization_alias="assignedUser")
    assigned_user_name: str = Field(serialization_alias="assignedUserName")
    date_created: datetime = Field(serialization_alias="dateCreated")
