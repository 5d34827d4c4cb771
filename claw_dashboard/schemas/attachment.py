from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AttachmentInfo(_CamelModel):
    name: str
    size: int
    is_image: bool
    created_at: str
    ext: str
    mime: str


class UploadAttachmentRequest(_CamelModel):
    """Either ``file_path`` (server-local copy) or ``filename`` + base64 ``data``."""

    file_path: Optional[str] = None
    filename: Optional[str] = None
    data: Optional[str] = None
    source: Optional[str] = None  # "agent" or "user"


class DeleteAttachmentResponse(BaseModel):
    deleted: str
