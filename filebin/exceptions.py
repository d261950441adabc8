"""Custom exception classes for the filebin client."""

from typing import Optional


class FilebinError(Exception):
    """
    Base exception class for all filebin client errors.
    """
    pass


class CreationFailedError(FilebinError):
    """
    Raised when the service refuses to allocate or return a new bin.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FetchFailedError(FilebinError):
    """
    Raised when an existing bin cannot be loaded.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(FilebinError):
    """
    Raised when a service response is not JSON or lacks required fields.
    """
    pass


class EmptyBinError(FilebinError):
    """
    Raised when locking or deleting a bin that holds no files.
    """
    pass


class BinLockedError(FilebinError):
    """
    Raised when uploading to a read-only bin.
    """
    pass


class StorageLimitReachedError(FilebinError):
    """
    Raised when the service reports its storage limit is reached.
    """
    pass


class InvalidInputError(FilebinError):
    """
    Raised when the service rejects a request as invalid, or a local argument is unusable.
    """
    pass


class BinNotFoundError(FilebinError):
    """
    Raised when the service reports that a bin does not exist.
    """
    pass


class FileRecordNotFoundError(FilebinError):
    """
    Raised when a file identifier matches no record in the session.
    """
    pass


class LockFailedError(FilebinError):
    """
    Raised when the service fails to lock a bin for an unspecified reason.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(FilebinError):
    """
    Raised on network failures and on non-2xx responses no operation classifies.

    Network failures carry the underlying httpx exception as ``__cause__`` and
    no status code.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class InvalidDirectoryError(FilebinError):
    """
    Raised when a target directory for a download does not exist.
    """
    pass


class ScratchCleanupError(FilebinError):
    """
    Raised when a scratch ciphertext artifact could not be removed.
    """

    def __init__(self, path: str):
        super().__init__(f"Scratch artifact could not be deleted: {path}")
        self.path = path


class PipelineError(FilebinError):
    """
    Raised when any stage of a transfer pipeline fails.

    All stages have been released by the time this is raised.
    """

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"Transfer failed in {stage} stage: {cause}")
        self.stage = stage
        self.cause = cause


class CipherConfigError(FilebinError):
    """
    Raised for an unknown cipher algorithm or mis-sized key/IV.
    """
    pass
