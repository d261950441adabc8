"""Pydantic models for service responses."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, ValidationError

from filebin.exceptions import MalformedResponseError


class FilePayload(BaseModel):
    """A file entry as reported by the service."""
    model_config = ConfigDict(populate_by_name=True)

    filename: str
    content_type: Optional[str] = Field(default=None, alias="content-type")
    size: StrictInt = Field(alias="bytes")
    size_readable: Optional[str] = Field(default=None, alias="bytes_readable")
    md5: Optional[str] = None
    sha256: Optional[str] = None
    updated_at: Optional[str] = None
    updated_at_relative: Optional[str] = None
    created_at: Optional[str] = None
    created_at_relative: Optional[str] = None


class BinPayload(BaseModel):
    """Bin metadata as reported by the service."""
    model_config = ConfigDict(populate_by_name=True)

    readonly: StrictBool
    size: StrictInt = Field(alias="bytes")
    size_readable: Optional[str] = Field(default=None, alias="bytes_readable")
    updated_at: Optional[str] = None
    updated_at_relative: Optional[str] = None
    created_at: Optional[str] = None
    created_at_relative: Optional[str] = None
    expired_at: Optional[str] = None
    expired_at_relative: Optional[str] = None


class BinResponse(BaseModel):
    """Response model for GET /{bin}."""
    bin: BinPayload
    files: List[FilePayload] = Field(default_factory=list)


class UploadResponse(BaseModel):
    """Response model for POST /{bin}/{filename}."""
    file: FilePayload


def parse_bin_response(payload) -> BinResponse:
    """
    Validate a bin payload.

    Raises:
        MalformedResponseError: If required fields are absent or mistyped
    """
    if isinstance(payload, dict) and payload.get("files") is None:
        payload = {k: v for k, v in payload.items() if k != "files"}
    try:
        return BinResponse.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponseError(f"Invalid bin response: {e}") from e


def parse_upload_response(payload) -> UploadResponse:
    """
    Validate an upload payload.

    Raises:
        MalformedResponseError: If required fields are absent or mistyped
    """
    try:
        return UploadResponse.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponseError(f"Invalid upload response: {e}") from e
