"""Client for filebin-style ephemeral file bins, with optional client-side encryption."""

from filebin.config import Config
from filebin.exceptions import (
    BinLockedError,
    BinNotFoundError,
    CipherConfigError,
    CreationFailedError,
    EmptyBinError,
    FetchFailedError,
    FileRecordNotFoundError,
    FilebinError,
    InvalidDirectoryError,
    InvalidInputError,
    LockFailedError,
    MalformedResponseError,
    PipelineError,
    ScratchCleanupError,
    StorageLimitReachedError,
    TransportError,
)
from filebin.session import BinSession
from filebin.transport import Transport
from filebin.types import EncryptedUpload, FileRecord

__all__ = [
    "BinLockedError",
    "BinNotFoundError",
    "BinSession",
    "CipherConfigError",
    "Config",
    "CreationFailedError",
    "EmptyBinError",
    "EncryptedUpload",
    "FetchFailedError",
    "FileRecord",
    "FileRecordNotFoundError",
    "FilebinError",
    "InvalidDirectoryError",
    "InvalidInputError",
    "LockFailedError",
    "MalformedResponseError",
    "PipelineError",
    "ScratchCleanupError",
    "StorageLimitReachedError",
    "Transport",
    "TransportError",
]
