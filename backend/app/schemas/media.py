"""Media commit Pydantic schemas for API requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CommitMediaRequest(BaseModel):
    """Commit request body.

    Fields are untyped: the service normalises them and reports malformed
    values as ``invalid-argument`` with a reason.
    Accepts camelCase (mobile client) and snake_case names.
    """

    model_config = ConfigDict(populate_by_name=True)

    username: Any = None
    kind: Any = None
    path: Any = None
    download_url: Any = Field(default=None, alias="downloadUrl")
    size_bytes: Any = Field(default=None, alias="sizeBytes")
    content_type: Any = Field(default=None, alias="contentType")


class CommitMediaResponse(BaseModel):
    success: bool = True
    kind: str
    count_images: int
    count_videos: int
