"""Scoped scratch artifacts holding ciphertext during encrypted uploads."""

import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from common.constants import SCRATCH_PREFIX
from common.logging_config import get_logger
from filebin.exceptions import ScratchCleanupError

logger = get_logger(__name__)


@contextmanager
def scratch_artifact(filename: str, scratch_root: Optional[Path] = None) -> Iterator[Path]:
    """
    Provide a private path for one ciphertext artifact.

    Each call gets its own directory (mode 0700), so concurrent operations
    never collide even with identical filenames. The artifact and its
    directory are removed when the block exits, whatever the outcome.

    Args:
        filename: Name the artifact file should have
        scratch_root: Parent directory; the system temp directory if None

    Yields:
        Path of the (not yet created) artifact file

    Raises:
        ScratchCleanupError: If the artifact or its directory cannot be removed
    """
    if scratch_root is not None:
        scratch_root.mkdir(parents=True, exist_ok=True)

    workdir = Path(tempfile.mkdtemp(prefix=SCRATCH_PREFIX, dir=scratch_root))
    artifact = workdir / filename
    logger.debug(f"Created scratch directory {workdir}")
    try:
        yield artifact
    finally:
        try:
            artifact.unlink(missing_ok=True)
            workdir.rmdir()
        except OSError as e:
            logger.error(f"Scratch artifact could not be deleted: {artifact}: {e}")
            raise ScratchCleanupError(str(artifact)) from e
