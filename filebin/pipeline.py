"""
Staged byte pipeline: source -> transforms -> sink.

Every transfer, plain or encrypted, upload or download, goes through a
Pipeline. Pieces are pulled one at a time, so memory use is bounded by the
piece size and a slow consumer slows the source down. A failure in any
stage aborts every stage and surfaces as a single PipelineError.
"""

import os
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Protocol, Sequence

from common.constants import STREAM_PIECE_SIZE_BYTES
from common.logging_config import get_logger
from filebin.exceptions import PipelineError
from filebin.transport import StreamingResponse

logger = get_logger(__name__)


class Source(Protocol):
    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]: ...

    def close(self) -> None: ...


class Transform(Protocol):
    def update(self, data: bytes) -> bytes: ...

    def finalize(self) -> bytes: ...

    def close(self) -> None: ...


class Sink(Protocol):
    def write(self, data: bytes) -> None: ...

    def close(self) -> None: ...

    def abort(self) -> None: ...


class StreamSource:
    """Source over an already open binary stream."""

    def __init__(self, stream: BinaryIO, owned: bool = False):
        """
        Args:
            stream: Readable binary stream
            owned: Close the stream when the pipeline is released
        """
        self.stream = stream
        self.owned = owned

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        while True:
            chunk = self.stream.read(chunk_size)
            if not chunk:
                break
            yield chunk

    def close(self) -> None:
        if self.owned:
            self.stream.close()


class FileSource(StreamSource):
    """Source reading a local file."""

    def __init__(self, path):
        self.path = Path(path)
        super().__init__(open(self.path, 'rb'), owned=True)

    @property
    def size(self) -> int:
        return os.fstat(self.stream.fileno()).st_size


class ResponseSource:
    """Source reading a streamed service response body."""

    def __init__(self, response: StreamingResponse):
        self.response = response

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        return self.response.iter_bytes(chunk_size)

    def close(self) -> None:
        self.response.close()


class FileSink:
    """
    Sink writing to a local file. An aborted transfer removes the partial file.
    """

    def __init__(self, path):
        self.path = Path(path)
        self._file = open(self.path, 'wb')

    def write(self, data: bytes) -> None:
        self._file.write(data)

    def close(self) -> None:
        self._file.close()

    def abort(self) -> None:
        self._file.close()
        self.path.unlink(missing_ok=True)


class Pipeline:
    """
    Composes one source, zero or more transforms and an optional sink.

    Use as a context manager; leaving the block releases every stage, and
    aborts the sink if the block raised or the transfer did not complete.

    Usage:
        with Pipeline(FileSource(path), [encryptor(key, iv)], FileSink(out)) as pipe:
            written = pipe.run()
    """

    def __init__(
        self,
        source: Source,
        transforms: Sequence[Transform] = (),
        sink: Optional[Sink] = None,
        chunk_size: int = STREAM_PIECE_SIZE_BYTES,
    ):
        self.source = source
        self.transforms = list(transforms)
        self.sink = sink
        self.chunk_size = chunk_size
        self.bytes_in = 0
        self.bytes_out = 0
        self._started = False
        self._completed = False
        self._released = False

    def iter_chunks(self) -> Iterator[bytes]:
        """
        Pull transformed pieces from the source, one at a time.

        Raises:
            PipelineError: If the source or a transform fails
        """
        if self._started:
            raise RuntimeError("Pipeline can only be consumed once")
        self._started = True

        try:
            pieces = iter(self.source.iter_chunks(self.chunk_size))
            while True:
                try:
                    piece = next(pieces)
                except StopIteration:
                    break
                except Exception as e:
                    raise PipelineError("source", e) from e
                self.bytes_in += len(piece)
                out = self._apply(piece)
                if out:
                    self.bytes_out += len(out)
                    yield out

            tail = self._flush()
            if tail:
                self.bytes_out += len(tail)
                yield tail
            self._completed = True
        except BaseException:
            self.release(aborted=True)
            raise

    def run(self) -> int:
        """
        Drain the pipeline into its sink.

        Returns:
            Number of bytes delivered to the sink

        Raises:
            PipelineError: If any stage fails
        """
        if self.sink is None:
            raise RuntimeError("Pipeline has no sink to run into")

        for piece in self.iter_chunks():
            try:
                self.sink.write(piece)
            except Exception as e:
                self.release(aborted=True)
                raise PipelineError("sink", e) from e

        self.release(aborted=False)
        return self.bytes_out

    def _apply(self, data: bytes) -> bytes:
        for index, transform in enumerate(self.transforms):
            try:
                data = transform.update(data)
            except Exception as e:
                raise PipelineError(f"transform[{index}]", e) from e
        return data

    def _flush(self) -> bytes:
        data = b""
        for index, transform in enumerate(self.transforms):
            try:
                data = (transform.update(data) if data else b"") + transform.finalize()
            except Exception as e:
                raise PipelineError(f"transform[{index}]", e) from e
        return data

    def release(self, aborted: bool) -> None:
        """
        Release every stage once. The sink is committed, or aborted when the
        transfer failed or did not complete.

        Raises:
            PipelineError: If a stage fails to release and no other error is in flight
        """
        if self._released:
            return
        self._released = True

        failures = []
        for name, action in self._release_actions(aborted or not self._completed):
            try:
                action()
            except Exception as e:
                logger.error(f"Failed to release {name} stage: {e}")
                failures.append((name, e))

        if failures and not aborted:
            name, error = failures[0]
            raise PipelineError(name, error) from error

    def _release_actions(self, aborted: bool):
        yield "source", self.source.close
        for index, transform in enumerate(self.transforms):
            yield f"transform[{index}]", transform.close
        if self.sink is not None:
            yield "sink", self.sink.abort if aborted else self.sink.close

    def __enter__(self) -> 'Pipeline':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release(aborted=exc_type is not None)
