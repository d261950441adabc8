"""Value records handed to callers (FileRecord, EncryptedUpload)."""

from dataclasses import dataclass, field
from typing import Optional

from filebin.models import FilePayload


@dataclass(frozen=True)
class FileRecord:
    """
    A file stored in a bin, as last confirmed by the service.
    """
    bin_id: str
    filename: str
    content_type: Optional[str]
    size: int
    size_readable: Optional[str]
    md5: Optional[str]
    sha256: Optional[str]
    updated_at: Optional[str]
    updated_at_relative: Optional[str]
    created_at: Optional[str]
    created_at_relative: Optional[str]

    @classmethod
    def from_payload(cls, bin_id: str, payload: FilePayload) -> "FileRecord":
        return cls(
            bin_id=bin_id,
            filename=payload.filename,
            content_type=payload.content_type,
            size=payload.size,
            size_readable=payload.size_readable,
            md5=payload.md5,
            sha256=payload.sha256,
            updated_at=payload.updated_at,
            updated_at_relative=payload.updated_at_relative,
            created_at=payload.created_at,
            created_at_relative=payload.created_at_relative,
        )

    def matches(self, identifier: str) -> bool:
        """True if identifier equals the filename, MD5 or SHA-256 of this file."""
        return identifier in (self.filename, self.md5, self.sha256)


@dataclass(frozen=True)
class EncryptedUpload:
    """
    Result of an encrypted upload. The caller must keep key and iv to decrypt.
    """
    file: FileRecord
    key: bytes = field(repr=False)
    iv: bytes = field(repr=False)
    algorithm: str
