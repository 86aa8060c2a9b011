from __future__ import annotations

from pydantic import Field

from qtrack.schemas.common import RequestModel


class MediaRegister(RequestModel):
    file_name: str = Field(min_length=1, max_length=255)
    file_size: int = Field(gt=0)
    file_type: str = Field(min_length=1, max_length=200)
    storage_url: str = Field(min_length=1, max_length=1000, pattern=r"^https?://")


class UploadUrlRequest(RequestModel):
    file_name: str = Field(min_length=1, max_length=255)
    content_type: str = Field(min_length=1, max_length=200)
    directory: str | None = Field(default=None, max_length=200)
