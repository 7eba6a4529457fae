"""
Artifact Store

Named text/byte storage under a single working directory. Every file the
pipeline reads or writes goes through here.
"""

import logging
from pathlib import Path

from .exceptions import ArtifactDecodeError, ArtifactIOError, ArtifactNotFoundError

logger = logging.getLogger(__name__)


class ArtifactStore:
    """
    Reads and writes artifacts relative to one working directory.

    Names are relative paths such as ``Prover.toml`` or ``target/proof``.
    No locking is performed; one store must only serve one pipeline run.
    """

    def __init__(self, base_path: str | Path):
        """
        Initialize ArtifactStore with its working directory.

        Args:
            base_path: Directory all artifact names are resolved against
        """
        self.base_path = Path(base_path)

    def path(self, name: str) -> Path:
        """Return the absolute path of the named artifact."""
        return self.base_path / name

    def exists(self, name: str) -> bool:
        """Return whether the named artifact is present."""
        return self.path(name).is_file()

    def write_text(self, name: str, content: str) -> Path:
        """
        Overwrite the named artifact with text content.

        Args:
            name: Artifact name relative to the working directory
            content: Text to write (UTF-8)

        Returns:
            Path: Location of the written artifact

        Raises:
            ArtifactIOError: On permission or disk failure
        """
        file_path = self.path(name)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write artifact {file_path}: {e}")
            raise ArtifactIOError(
                f"Failed to write {name}: {e}", details={"path": str(file_path)}
            ) from e

        logger.debug(f"Wrote artifact {file_path} ({len(content)} chars)")
        return file_path

    def read_bytes(self, name: str) -> bytes:
        """
        Return the raw bytes of the named artifact.

        Raises:
            ArtifactNotFoundError: If the artifact is absent
            ArtifactIOError: On read failure
        """
        file_path = self.path(name)
        if not file_path.exists():
            raise ArtifactNotFoundError(
                f"Artifact not found: {file_path}", details={"path": str(file_path)}
            )

        try:
            return file_path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read artifact {file_path}: {e}")
            raise ArtifactIOError(
                f"Failed to read {name} at {file_path}: {e}",
                details={"path": str(file_path)},
            ) from e

    def read_text(self, name: str) -> str:
        """
        Return the full content of the named artifact as text.

        Raises:
            ArtifactNotFoundError: If the artifact is absent
            ArtifactDecodeError: If the content is not valid UTF-8
            ArtifactIOError: On read failure
        """
        data = self.read_bytes(name)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ArtifactDecodeError(
                f"Artifact {name} is not UTF-8 text",
                details={"path": str(self.path(name))},
            ) from e
