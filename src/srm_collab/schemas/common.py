"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

import base64
import binascii
from pathlib import PurePosixPath

from pydantic import BaseModel, Field


class FileUpload(BaseModel):
    """Raw bytes of an image chosen by the user."""

    filename: str = Field(..., min_length=1)
    data: bytes
    content_type: str | None = None

    @property
    def extension(self) -> str:
        """File extension without the dot, lower-cased; ``bin`` when absent."""
        suffix = PurePosixPath(self.filename).suffix.lstrip(".").lower()
        return suffix or "bin"


class Base64Upload(BaseModel):
    """Image sent inline in a JSON request body."""

    filename: str = Field(..., min_length=1, description="Original file name")
    data_b64: str = Field(..., min_length=1, description="Base64-encoded file content")
    content_type: str | None = Field(None, description="MIME type of the file")

    def decode(self) -> FileUpload:
        """Return the decoded upload.

        Raises:
            ValueError: If ``data_b64`` is not valid base64.
        """
        try:
            data = base64.b64decode(self.data_b64, validate=True)
        except binascii.Error as exc:
            raise ValueError("Upload data is not valid base64") from exc
        return FileUpload(filename=self.filename, data=data, content_type=self.content_type)


class ErrorResponse(BaseModel):
    """Body of every error surfaced to the user as a dismissable notice."""

    detail: str
    kind: str
    dismissable: bool = True
