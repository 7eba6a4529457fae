"""
Request-scoped working directories.

Each pipeline run gets its own copy of the circuit definition so concurrent
runs never overwrite each other's Prover.toml, witness or proof files.
"""

import logging
import os
import shutil
import uuid
from pathlib import Path

from .exceptions import WorkspaceError

logger = logging.getLogger(__name__)

# Files produced by a run; never copied from the template circuit
PER_RUN_ARTIFACTS = (
    "Prover.toml",
    "proof",
    "public_inputs",
    "public_inputs_fields.json",
    "proof_fields.json",
    "vk",
    "*.gz",
)


class WorkspaceAllocator:
    """
    Allocates fresh working directories from a circuit template.

    The template directory holds Nargo.toml, the circuit sources and the
    compiled ``target/<circuit>.json``. Witnesses and proofs left in the
    template are not carried into a workspace.
    """

    def __init__(
        self,
        circuit_path: str | Path,
        circuit_name: str,
        workspace_root: str | Path,
        keep_workspaces: bool = False,
    ):
        self.circuit_path = Path(circuit_path)
        self.circuit_name = circuit_name
        self.workspace_root = Path(workspace_root)
        self.keep_workspaces = keep_workspaces

    def _ignore(self, directory: str, names: list[str]) -> set[str]:
        ignored = set(shutil.ignore_patterns(*PER_RUN_ARTIFACTS)(directory, names))
        # Uncompressed witness shares the circuit name without an extension
        if self.circuit_name in names and Path(directory).name == "target":
            ignored.add(self.circuit_name)
        return ignored

    def allocate(self) -> Path:
        """
        Create a new workspace populated from the circuit template.

        Returns:
            Path: The new workspace directory

        Raises:
            WorkspaceError: If the template is missing or the copy fails
        """
        if not self.circuit_path.is_dir():
            raise WorkspaceError(
                f"Circuit directory not found: {self.circuit_path}",
                details={"circuit_path": str(self.circuit_path)},
            )

        workspace = self.workspace_root / f"run_{uuid.uuid4().hex}"
        try:
            self.workspace_root.mkdir(parents=True, exist_ok=True)
            shutil.copytree(self.circuit_path, workspace, ignore=self._ignore)
            # copytree carries over the template mtime; cleanup ages runs by mtime
            os.utime(workspace)
        except OSError as e:
            logger.error(f"Failed to prepare workspace {workspace}: {e}")
            shutil.rmtree(workspace, ignore_errors=True)
            raise WorkspaceError(
                f"Failed to prepare working directory: {e}",
                details={"workspace": str(workspace)},
            ) from e

        logger.debug(f"Allocated workspace {workspace}")
        return workspace

    def release(self, workspace: Path) -> None:
        """Remove a workspace unless workspaces are kept for debugging."""
        if self.keep_workspaces:
            logger.info(f"Keeping workspace {workspace}")
            return
        shutil.rmtree(workspace, ignore_errors=True)
        logger.debug(f"Released workspace {workspace}")
