from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator


def as_text(v):
    if v is None or isinstance(v, str):
        return v
    return str(v)


class Payload(BaseModel):
    """Inbound body. Wire names are camelCase aliases; unknown keys are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Document(BaseModel):
    """Outbound record serialized by alias (`_id`, camelCase)."""

    model_config = ConfigDict(from_attributes=True)

    @field_validator("*", mode="after")
    @classmethod
    def assume_utc(cls, v):
        # SQLite hands back naive datetimes; everything is stored in UTC
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
