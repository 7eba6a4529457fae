"""
Result Store Service

Persists successful proofs: the hex proof and the public inputs are written
to timestamp-named files so they can be verified later.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class SavedResult(BaseModel):
    """Locations of the files written for one proof."""

    proof_path: Path
    public_inputs_path: Path

    @property
    def proof_filename(self) -> str:
        return self.proof_path.name

    @property
    def public_inputs_filename(self) -> str:
        return self.public_inputs_path.name


class ResultStore:
    """
    Saves proof results outside the pipeline working directories.

    File names combine the UTC Unix timestamp with a short random suffix so
    sessions finishing within the same second never collide:
    ``proof_<timestamp>_<suffix>.hex`` and
    ``public_inputs_<timestamp>_<suffix>.txt``.
    """

    def __init__(self, base_path: str = "."):
        """
        Initialize ResultStore with its output directory.

        Args:
            base_path: Directory result files are written to (default: cwd)
        """
        self.base_path = Path(base_path)

    def _stamp(self) -> str:
        timestamp = int(datetime.now(timezone.utc).timestamp())
        return f"{timestamp}_{uuid.uuid4().hex[:8]}"

    def save(self, proof_hex: str, public_inputs: str) -> SavedResult:
        """
        Write the hex proof and public inputs to new files.

        Args:
            proof_hex: 0x-prefixed hex proof
            public_inputs: Rendered public inputs

        Returns:
            SavedResult: Paths of both written files

        Raises:
            OSError: If directory creation or file write fails
        """
        stamp = self._stamp()
        proof_path = self.base_path / f"proof_{stamp}.hex"
        public_inputs_path = self.base_path / f"public_inputs_{stamp}.txt"

        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            proof_path.write_text(proof_hex, encoding="utf-8")
            public_inputs_path.write_text(public_inputs, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save proof result to {self.base_path}: {e}")
            raise

        logger.info(f"Saved proof result: {proof_path.name}, {public_inputs_path.name}")
        return SavedResult(proof_path=proof_path, public_inputs_path=public_inputs_path)
