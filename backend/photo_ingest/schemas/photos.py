from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadRequest(BaseModel):
    """Incoming upload body; ``data`` is still base64 text at this point."""

    model_config = ConfigDict(extra="ignore")

    filename: str = ""
    filetype: str = ""
    data: str = ""
    prefix: str = ""

    @field_validator("filename", "filetype", "data", "prefix", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None or value is False:
            return ""
        return value if isinstance(value, str) else str(value)


class UploadResponse(CamelModel):
    key: str
    url: str
    content_type: str
    size: int


class StoredObjectRead(CamelModel):
    key: str
    content_type: str | None = None
    size: int
    last_modified: datetime | None = None
    original_filename: str
    url: str | None = None


class GroupRead(CamelModel):
    name: str
    count: int
    latest: datetime | None = None
    photos: list[StoredObjectRead]
