"""
External tool invocation.

Runs one external program to completion and hands back its exit status and
both output streams. Interpreting the result is left to the caller.
"""

import asyncio
import logging
import subprocess
import time
from pathlib import Path
from typing import Sequence

from pydantic import BaseModel

from .exceptions import ToolInvocationError, ToolTimeoutError

logger = logging.getLogger(__name__)


class ToolResult(BaseModel):
    """Captured outcome of one external program run."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ExternalTool:
    """
    One external program, such as ``nargo`` or ``bb``.

    A non-zero exit is a normal outcome returned in the ToolResult. Only a
    program that cannot be started, or one that runs past its timeout,
    raises.
    """

    def __init__(self, binary: str, timeout: float | None = None):
        """
        Args:
            binary: Executable name (resolved on PATH) or path
            timeout: Seconds before the process is killed (None = no limit)
        """
        self.binary = binary
        self.timeout = timeout

    @property
    def name(self) -> str:
        return Path(self.binary).name

    def run(self, args: Sequence[str], cwd: str | Path) -> ToolResult:
        """
        Run the program synchronously with full output capture.

        Args:
            args: Arguments passed after the binary
            cwd: Working directory for the process

        Returns:
            ToolResult: Exit status and captured stdout/stderr

        Raises:
            ToolInvocationError: Program not found, not executable, or spawn failure
            ToolTimeoutError: Program exceeded the configured timeout
        """
        command = [self.binary, *args]
        if not Path(cwd).is_dir():
            logger.error(f"Working directory for {self.name} does not exist: {cwd}")
            raise ToolInvocationError(
                f"Failed to start {self.name}: working directory not found ({cwd})",
                details={"binary": self.binary, "cwd": str(cwd)},
            )
        logger.info(f"Running {' '.join(command)} in {cwd}")

        start_time = time.time()
        try:
            completed = subprocess.run(
                command,
                cwd=str(cwd),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            logger.error(f"{self.name} timed out after {self.timeout} seconds")
            raise ToolTimeoutError(self.name, self.timeout) from e
        except FileNotFoundError as e:
            logger.error(f"{self.name} binary not found: {self.binary}")
            raise ToolInvocationError(
                f"Failed to start {self.name}: executable not found ({self.binary})",
                details={"binary": self.binary},
            ) from e
        except PermissionError as e:
            logger.error(f"{self.name} binary not executable: {self.binary}")
            raise ToolInvocationError(
                f"Failed to start {self.name}: permission denied ({self.binary})",
                details={"binary": self.binary},
            ) from e
        except OSError as e:
            logger.error(f"System error starting {self.name}: {e}")
            raise ToolInvocationError(
                f"Failed to start {self.name}: {e}", details={"binary": self.binary}
            ) from e

        duration = time.time() - start_time
        result = ToolResult(
            command=command,
            returncode=completed.returncode,
            stdout=completed.stdout.decode("utf-8", errors="replace"),
            stderr=completed.stderr.decode("utf-8", errors="replace"),
            duration=duration,
        )

        if result.ok:
            logger.info(f"{self.name} finished in {duration:.2f}s")
        else:
            logger.warning(
                f"{self.name} exited with code {result.returncode} after {duration:.2f}s"
            )
        return result

    async def run_async(self, args: Sequence[str], cwd: str | Path) -> ToolResult:
        """Run the program in the default executor so the event loop stays free."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.run, list(args), cwd)
