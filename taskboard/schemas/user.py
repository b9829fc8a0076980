from datetime import datetime
from pydantic import Field, field_validator
from pydantic_core import PydanticCustomError
from taskboard.schemas.common import Document, Payload, as_text
from taskboard.utils.params import parse_timestamp


class UserPayload(Payload):
    name: str | None = None
    email: str | None = None
    pending_tasks: list[str] | None = Field(None, alias="pendingTasks")
    # Lets re-imported users keep their original creation time
    date_created: datetime | None = Field(None, alias="dateCreated")

    @field_validator("name", "email", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return as_text(v)

    @field_validator("pending_tasks", mode="before")
    @classmethod
    def coerce_pending_tasks(cls, v):
        if v is None or v == "":
            return []
        if not isinstance(v, (list, tuple)):
            v = [v]
        return [str(task_id) for task_id in v]

    @field_validator("date_created", mode="before")
    @classmethod
    def parse_date_created(cls, v):
        if v is None or v == "":
            return None
        try:
            return parse_timestamp(v)
        except ValueError:
            raise PydanticCustomError("invalid_date", "Invalid dateCreated date")


class UserDocument(Document):
    id: str = Field(serialization_alias="_id")
    name: str
    email: str
    pending_tasks: list[str] = Field(serialization_alias="pendingTasks")
    date_created: datetime = Field(serialization_alias="dateCreated")
