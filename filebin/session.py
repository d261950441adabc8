"""BinSession: the local view of one bin and every operation against it."""

import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, TextIO

from common.constants import ARCHIVE_FORMATS, BIN_ID_LENGTH
from common.logging_config import get_logger
from filebin.cipher import DEFAULT_ALGORITHM, decryptor, encryptor, generate_key_material
from filebin.config import Config
from filebin.exceptions import (
    BinLockedError,
    BinNotFoundError,
    CreationFailedError,
    EmptyBinError,
    FetchFailedError,
    FilebinError,
    FileRecordNotFoundError,
    InvalidInputError,
    LockFailedError,
    StorageLimitReachedError,
    TransportError,
)
from filebin.models import parse_bin_response, parse_upload_response
from filebin.pipeline import FileSink, FileSource, Pipeline, ResponseSource, Source, StreamSource
from filebin.qr import render_terminal_qr
from filebin.scratch import scratch_artifact
from filebin.transport import StreamingResponse, Transport, TransportResponse
from filebin.types import EncryptedUpload, FileRecord
from filebin.utils import (
    encrypted_name,
    format_file_size,
    require_directory,
    require_file,
    strip_encrypted_suffix,
    url_path,
)

logger = get_logger(__name__)

JSON_HEADERS = {"Accept": "application/json"}

UPLOAD_ERRORS = {
    405: (BinLockedError, "Bin is locked"),
    403: (StorageLimitReachedError, "Storage limit reached"),
    400: (InvalidInputError, "Invalid input"),
}


def generate_bin_id() -> str:
    """Generate a fresh bin identifier (16 hex characters)."""
    return uuid.uuid4().hex[:BIN_ID_LENGTH]


class BinSession:
    """
    A named bin and the authoritative local list of its files.

    The file list is only changed by confirmed service responses: replaced
    wholesale on fetch, appended to on upload, shrunk on delete. A session
    is not safe for concurrent mutation.
    """

    def __init__(
        self,
        bin_id: str,
        transport: Optional[Transport] = None,
        config: Optional[Config] = None,
    ):
        """
        Initialize an unloaded session. Use create() or fetch() to populate it.

        Args:
            bin_id: Bin identifier
            transport: Transport to use; one is built from config if omitted
            config: Configuration instance
        """
        self.bin_id = bin_id
        self._owns_transport = transport is None
        self.transport = transport or Transport(config)
        self.config = config or self.transport.config

        self.readonly = False
        self.size = 0
        self.size_readable: Optional[str] = None
        self.updated_at: Optional[str] = None
        self.updated_at_relative: Optional[str] = None
        self.created_at: Optional[str] = None
        self.created_at_relative: Optional[str] = None
        self.expired_at: Optional[str] = None
        self.expired_at_relative: Optional[str] = None
        self.files: List[FileRecord] = []

    def __repr__(self) -> str:
        return f"BinSession(bin_id={self.bin_id!r}, readonly={self.readonly}, files={len(self.files)})"

    # Construction and state

    @classmethod
    def create(
        cls,
        bin_id: Optional[str] = None,
        transport: Optional[Transport] = None,
        config: Optional[Config] = None,
    ) -> 'BinSession':
        """
        Create a bin, or fetch it if the identifier already exists.

        Args:
            bin_id: Identifier to use; a fresh one is generated if omitted

        Returns:
            Populated session

        Raises:
            CreationFailedError: If the service does not return the bin
            MalformedResponseError: If the response cannot be parsed
        """
        session = cls(bin_id or generate_bin_id(), transport=transport, config=config)
        try:
            session._load_or_create()
        except FilebinError:
            session.close()
            raise

        logger.info(f"Bin ready: {session.bin_id} [files={len(session.files)}]")
        return session

    def _load_or_create(self) -> None:
        try:
            response = self.transport.request("GET", url_path(self.bin_id), headers=JSON_HEADERS)
        except TransportError as e:
            raise CreationFailedError(f"Failed to create bin {self.bin_id}: {e}") from e

        if not response.is_success:
            logger.warning(f"Bin creation failed: {self.bin_id} status={response.status_code}")
            raise CreationFailedError(
                f"Failed to create bin {self.bin_id} (status {response.status_code})",
                status_code=response.status_code,
            )

        self.load_service_response(response.json())

    @classmethod
    def from_service_response(
        cls,
        bin_id: str,
        payload: dict,
        transport: Optional[Transport] = None,
        config: Optional[Config] = None,
    ) -> 'BinSession':
        """Build a session from a GET /{bin} payload."""
        session = cls(bin_id, transport=transport, config=config)
        session.load_service_response(payload)
        return session

    def load_service_response(self, payload: dict) -> None:
        """
        Replace all bin metadata and the file list from a GET /{bin} payload.

        State is only touched once the whole payload has validated.

        Raises:
            MalformedResponseError: If required fields are absent or mistyped
        """
        parsed = parse_bin_response(payload)
        meta = parsed.bin

        self.readonly = meta.readonly
        self.size = meta.size
        self.size_readable = meta.size_readable
        self.updated_at = meta.updated_at
        self.updated_at_relative = meta.updated_at_relative
        self.created_at = meta.created_at
        self.created_at_relative = meta.created_at_relative
        self.expired_at = meta.expired_at
        self.expired_at_relative = meta.expired_at_relative
        self.files = [FileRecord.from_payload(self.bin_id, f) for f in parsed.files]

    def fetch(self) -> None:
        """
        Reload the bin from the service, replacing local state.

        Raises:
            FetchFailedError: If the service does not return the bin
            MalformedResponseError: If the response cannot be parsed
        """
        try:
            response = self.transport.request("GET", url_path(self.bin_id), headers=JSON_HEADERS)
        except TransportError as e:
            raise FetchFailedError(f"Failed to load bin {self.bin_id}: {e}") from e

        if not response.is_success:
            logger.warning(f"Bin fetch failed: {self.bin_id} status={response.status_code}")
            raise FetchFailedError(
                f"Failed to load bin {self.bin_id} (status {response.status_code})",
                status_code=response.status_code,
            )

        self.load_service_response(response.json())

    def get_file(self, identifier: str) -> Optional[FileRecord]:
        """
        Find a file by filename, MD5 or SHA-256.

        Returns:
            First matching record in list order, or None
        """
        for record in self.files:
            if record.matches(identifier):
                return record
        return None

    @property
    def public_url(self) -> str:
        return f"{self.config.get_base_url()}{url_path(self.bin_id)}"

    # Bin-level mutations

    def lock(self) -> None:
        """
        Make the bin read-only. Does nothing if it already is.

        Raises:
            EmptyBinError: If the bin has no files (checked before any request)
            BinNotFoundError: If the service does not know the bin
            LockFailedError: On any other failure
        """
        if self.readonly:
            logger.debug(f"Bin {self.bin_id} already read-only, not locking again")
            return

        if not self.files:
            raise EmptyBinError(f"Cannot lock empty bin {self.bin_id}")

        try:
            response = self.transport.request("PUT", url_path(self.bin_id), headers=JSON_HEADERS)
        except TransportError as e:
            raise LockFailedError(f"Failed to lock bin {self.bin_id}: {e}") from e

        if response.status_code == 404:
            raise BinNotFoundError(f"Bin {self.bin_id} doesn't exist")
        if response.status_code != 200:
            logger.warning(f"Lock failed: {self.bin_id} status={response.status_code}")
            raise LockFailedError(
                f"Failed to lock bin {self.bin_id} (status {response.status_code})",
                status_code=response.status_code,
            )

        self.readonly = True
        logger.info(f"Bin locked: {self.bin_id}")

    def delete(self) -> None:
        """
        Delete the whole bin on the service and clear the local file list.

        Raises:
            EmptyBinError: If the bin has no files (checked before any request)
            TransportError: On network failure or a non-2xx response
        """
        if not self.files:
            raise EmptyBinError(f"Cannot delete empty bin {self.bin_id}")

        response = self.transport.request("DELETE", url_path(self.bin_id), headers=JSON_HEADERS)
        if not response.is_success:
            raise self._status_error("Failed to delete bin", response)

        self.files = []
        logger.info(f"Bin deleted: {self.bin_id}")

    def delete_file(self, identifier: str) -> FileRecord:
        """
        Delete one file on the service, then drop it from the local list.

        Args:
            identifier: Filename, MD5 or SHA-256 of the file

        Returns:
            The removed record

        Raises:
            FileRecordNotFoundError: If no local record matches
            TransportError: On network failure or a non-2xx response
        """
        index = next((i for i, record in enumerate(self.files) if record.matches(identifier)), None)
        if index is None:
            raise FileRecordNotFoundError(f"No file matching '{identifier}' in bin {self.bin_id}")

        record = self.files[index]
        response = self.transport.request(
            "DELETE", url_path(self.bin_id, record.filename), headers=JSON_HEADERS
        )
        if not response.is_success:
            raise self._status_error(f"Failed to delete file {record.filename}", response)

        del self.files[index]
        logger.info(f"File deleted: {self.bin_id}/{record.filename}")
        return record

    # Uploads

    def upload_file(self, file_path) -> FileRecord:
        """
        Upload a local file, streamed in pieces.

        Args:
            file_path: Path of the file; its basename becomes the remote name

        Returns:
            Record of the stored file, also appended to files

        Raises:
            InvalidInputError: If file_path is not an existing file
        """
        path = require_file(file_path)
        self._ensure_writable()
        source = FileSource(path)
        return self._upload(source, path.name, source.size)

    def upload_stream(self, stream: BinaryIO, filename: str, content_length: int) -> FileRecord:
        """
        Upload from any readable binary stream of known length.

        The stream is read but not closed.

        Args:
            stream: Readable binary stream
            filename: Remote filename
            content_length: Exact number of bytes the stream will yield

        Returns:
            Record of the stored file, also appended to files
        """
        if content_length < 0:
            raise InvalidInputError(f"Invalid content length: {content_length}")
        self._ensure_writable()
        return self._upload(StreamSource(stream), filename, content_length)

    def upload_encrypted_file(
        self,
        file_path,
        algorithm: str = DEFAULT_ALGORITHM,
        key: Optional[bytes] = None,
        iv: Optional[bytes] = None,
    ) -> EncryptedUpload:
        """
        Encrypt a local file and upload the ciphertext as "<name>.enc".

        The ciphertext is first written to a private scratch artifact so its
        exact length is known; the artifact is deleted afterwards whether or
        not the upload succeeded.

        Args:
            file_path: Plaintext file to upload
            algorithm: Cipher identifier (see filebin.cipher.SUPPORTED_ALGORITHMS)
            key: Cipher key; generated if omitted
            iv: Initialization vector; generated if omitted

        Returns:
            EncryptedUpload with the stored record, key, iv and algorithm

        Raises:
            ScratchCleanupError: If the scratch artifact cannot be removed
        """
        path = require_file(file_path)
        self._ensure_writable()

        generated_key, generated_iv = generate_key_material(algorithm)
        key = key if key is not None else generated_key
        iv = iv if iv is not None else generated_iv
        transform = encryptor(key, iv, algorithm)

        with scratch_artifact(encrypted_name(path.name), self.config.get_scratch_dir()) as artifact:
            with Pipeline(FileSource(path), [transform], FileSink(artifact), self.config.get_chunk_size()) as pipe:
                pipe.run()
            logger.debug(f"Encrypted {path.name} with {algorithm} [plain={pipe.bytes_in}, cipher={pipe.bytes_out}]")

            source = FileSource(artifact)
            record = self._upload(source, artifact.name, source.size)

        return EncryptedUpload(file=record, key=key, iv=iv, algorithm=algorithm)

    def _ensure_writable(self) -> None:
        if self.readonly:
            raise BinLockedError(f"Bin {self.bin_id} is locked")

    def _upload(self, source: Source, filename: str, content_length: int) -> FileRecord:
        headers = {
            "Content-Type": "application/octet-stream",
            "Content-Length": str(content_length),
            **JSON_HEADERS,
        }
        logger.debug(f"Uploading {filename} to {self.bin_id} ({format_file_size(content_length)})")

        with Pipeline(source, chunk_size=self.config.get_chunk_size()) as pipe:
            response = self.transport.request(
                "POST",
                url_path(self.bin_id, filename),
                headers=headers,
                content=pipe.iter_chunks(),
            )

        if not response.is_success:
            logger.warning(f"Upload failed: {self.bin_id}/{filename} status={response.status_code}")
            if response.status_code == 405:
                self.readonly = True
            if response.status_code in UPLOAD_ERRORS:
                error_class, message = UPLOAD_ERRORS[response.status_code]
                raise error_class(f"{message} (uploading {filename} to {self.bin_id})")
            raise self._status_error(f"Failed to upload {filename}", response)

        record = FileRecord.from_payload(self.bin_id, parse_upload_response(response.json()).file)
        self.files.append(record)
        logger.info(f"Uploaded {record.filename} to {self.bin_id} [size={record.size}]")
        return record

    # Downloads

    def download_file(self, filename: str, file_path=None) -> Path:
        """
        Download a file to file_path (default: ./<filename>).

        Returns:
            Path written to

        Raises:
            InvalidDirectoryError: If the target's parent directory is missing
        """
        target = Path(file_path) if file_path is not None else Path(".") / filename
        require_directory(target.parent)
        self._download(url_path(self.bin_id, filename), target, f"Failed to download file {filename}")
        return target

    @contextmanager
    def download_stream(self, filename: str) -> Iterator[Iterator[bytes]]:
        """
        Stream a file's bytes to the caller instead of a local file.

        The connection is released when the block exits, whether or not the
        body was read to the end.

        Usage:
            with session.download_stream("a.txt") as pieces:
                for piece in pieces:
                    out.write(piece)

        Raises:
            TransportError: On a non-2xx response, with the status text
            PipelineError: If the connection drops while pieces are read
        """
        path = url_path(self.bin_id, filename)
        with self.transport.stream("GET", path, headers={"User-Agent": self.config.get_user_agent()}) as response:
            self._check_download(path, response, f"Failed to download file {filename}")
            with Pipeline(ResponseSource(response), chunk_size=self.config.get_chunk_size()) as pipe:
                yield pipe.iter_chunks()

    def download_encrypted_file(
        self,
        filename: str,
        key: bytes,
        iv: bytes,
        folder_path=".",
        algorithm: str = DEFAULT_ALGORITHM,
    ) -> Path:
        """
        Download "<name>.enc" and decrypt it into folder_path/<name>.

        filename may be given with or without the ".enc" suffix; exactly one
        trailing suffix is stripped to derive the output name.

        Returns:
            Path of the decrypted file
        """
        folder = require_directory(folder_path)
        plain_name = strip_encrypted_suffix(filename)
        transform = decryptor(key, iv, algorithm)
        target = folder / plain_name
        self._download(
            url_path(self.bin_id, encrypted_name(plain_name)),
            target,
            f"Failed to download file {encrypted_name(plain_name)}",
            transforms=[transform],
        )
        return target

    def download_archive(self, archive_format: str, filename: Optional[str] = None, folder_path=".") -> Path:
        """
        Download the whole bin as a tar or zip archive.

        Args:
            archive_format: "tar" or "zip"
            filename: Output filename (default: archive.<format>)
            folder_path: Existing directory to write into

        Returns:
            Path of the archive
        """
        if archive_format not in ARCHIVE_FORMATS:
            raise InvalidInputError(f"Unknown archive format '{archive_format}'")
        folder = require_directory(folder_path)
        target = folder / (filename or f"archive.{archive_format}")
        self._download(
            url_path("archive", self.bin_id, archive_format),
            target,
            f"Failed to download {archive_format} archive",
        )
        return target

    def download_tar_archive(self, filename: str = "archive.tar", folder_path=".") -> Path:
        return self.download_archive("tar", filename, folder_path)

    def download_zip_archive(self, filename: str = "archive.zip", folder_path=".") -> Path:
        return self.download_archive("zip", filename, folder_path)

    def save_qr_code(self, filename: str = "qr.png", folder_path=".") -> Path:
        """
        Save the service-rendered PNG QR code of the bin URL.

        Returns:
            Path of the PNG file
        """
        folder = require_directory(folder_path)
        target = folder / filename
        self._download(
            url_path("qr", self.bin_id),
            target,
            "Failed to fetch QR code",
            headers={"Accept": "image/png"},
        )
        return target

    def show_qr_code(self, out: Optional[TextIO] = None) -> None:
        """Render a QR code of the bin URL to a terminal, without any request."""
        render_terminal_qr(self.public_url, out=out)

    def _download(self, path: str, target: Path, failure_message: str, transforms=(), headers=None) -> int:
        request_headers = headers or {"User-Agent": self.config.get_user_agent()}
        with self.transport.stream("GET", path, headers=request_headers) as response:
            self._check_download(path, response, failure_message)
            with Pipeline(
                ResponseSource(response),
                transforms,
                FileSink(target),
                self.config.get_chunk_size(),
            ) as pipe:
                written = pipe.run()

        logger.info(f"Downloaded {path} to {target} ({format_file_size(written)})")
        return written

    @staticmethod
    def _check_download(path: str, response: StreamingResponse, failure_message: str) -> None:
        if not response.is_success:
            logger.warning(f"Download failed: {path} status={response.status_code}")
            raise TransportError(
                f"{failure_message}: {response.reason}",
                status_code=response.status_code,
                reason=response.reason,
            )

    @staticmethod
    def _status_error(message: str, response: TransportResponse) -> TransportError:
        return TransportError(
            f"{message}: {response.status_code} {response.reason}",
            status_code=response.status_code,
            reason=response.reason,
        )

    # Lifecycle

    def close(self) -> None:
        """Close the transport if this session built it."""
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> 'BinSession':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
